# Overview: Session commit helper shared by the stores.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db


def commit_or_rollback() -> None:
    """
    Commit the current session. On a database error the session is rolled
    back and the error propagates unchanged; nothing is retried.
    """
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
