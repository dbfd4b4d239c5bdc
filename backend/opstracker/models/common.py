from __future__ import annotations

import uuid


def new_id() -> str:
    """String ids, client-compatible with browser crypto.randomUUID()."""
    return str(uuid.uuid4())
