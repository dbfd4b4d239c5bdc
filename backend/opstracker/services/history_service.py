# Overview: Append-only inventory history store (snapshots and analyses).

"""
Inventory Record (history) store.

IMMUTABLE: records are appended, never updated. The only removal is
delete_all_records(), an irreversible operator action; callers are
responsible for obtaining explicit confirmation first.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app

from ..extensions import db
from ..models import InventoryRecord, InventoryRecordLine
from ..models.common import new_id
from ..reconciliation import RECORD_TYPE_ANALYSIS, RECORD_TYPE_SNAPSHOT
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, parse_decimal
from .persistence import commit_or_rollback


RECORD_TYPES = {RECORD_TYPE_SNAPSHOT, RECORD_TYPE_ANALYSIS}

_NUMERIC_LINE_FIELDS = ("currentStock", "pendingStock", "initialStock", "endStock", "consumption")


def list_records() -> list[InventoryRecord]:
    """All records, most recent first."""
    return (
        db.session.query(InventoryRecord)
        .order_by(InventoryRecord.date.desc(), InventoryRecord.created_at.desc())
        .all()
    )


def get_record(record_id: str) -> InventoryRecord:
    record = db.session.get(InventoryRecord, record_id)
    if not record:
        raise NotFoundError(f"Inventory record {record_id} not found")
    return record


def _build_line(raw: dict, position: int) -> InventoryRecordLine:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{position}] must be an object")
    item_id = str(raw.get("itemId") or "").strip()
    if not item_id:
        raise ValidationError(f"items[{position}].itemId is required")

    line = InventoryRecordLine(
        position=position,
        item_id=item_id,
        name=str(raw.get("name") or ""),
        unit=raw.get("unit"),
    )
    for key in _NUMERIC_LINE_FIELDS:
        value = raw.get(key)
        if value is not None:
            setattr(line, InventoryRecordLine.JSON_FIELDS[key], parse_decimal(value, f"items[{position}].{key}"))
    snapshot = raw.get("stockByLocationSnapshot")
    if snapshot is not None:
        line.stock_by_location_snapshot = dict(snapshot)
    return line


def _record_date(raw) -> datetime:
    """ISO string or datetime, normalized to UTC-naive. Missing means now."""
    if raw is None:
        return utcnow()
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc).replace(tzinfo=None)
        return raw
    if not isinstance(raw, str):
        raise ValidationError("date must be an ISO-8601 datetime")
    try:
        when = parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError("date must be an ISO-8601 datetime")
    return when or utcnow()


def save_record(record: dict) -> InventoryRecord:
    """
    Append a record. A missing id is generated; a missing date is now.

    Returns:
        The stored InventoryRecord (to_dict() gives the round-tripped shape)

    Raises:
        ValidationError: unknown type, malformed date or items
        ConflictError: a record with this id already exists (no overwrite)
    """
    if not isinstance(record, dict):
        raise ValidationError("Invalid JSON payload")

    record_type = record.get("type")
    if record_type not in RECORD_TYPES:
        raise ValidationError(f"Invalid record type: {record_type}")

    record_id = str(record.get("id") or "").strip() or new_id()
    if db.session.get(InventoryRecord, record_id) is not None:
        raise ConflictError(f"Inventory record {record_id} already exists")

    when = _record_date(record.get("date"))

    items = record.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    stored = InventoryRecord(
        id=record_id,
        date=when,
        label=str(record.get("label") or ""),
        type=record_type,
        lines=[_build_line(raw, position) for position, raw in enumerate(items)],
    )
    db.session.add(stored)
    commit_or_rollback()
    current_app.logger.info(
        "Appended %s record %s with %d items", record_type, stored.id, len(stored.lines)
    )
    return stored


def delete_all_records() -> int:
    """Irreversible bulk wipe of the history. Items and orders are untouched."""
    count = db.session.query(InventoryRecord).count()
    db.session.query(InventoryRecordLine).delete()
    db.session.query(InventoryRecord).delete()
    commit_or_rollback()
    current_app.logger.warning("Deleted all %d inventory history records", count)
    return count
