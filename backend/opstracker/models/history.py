from __future__ import annotations

from ..extensions import db
from .common import new_id
from opstracker.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    Immutable inventory history entry.

    type = "snapshot": point-in-time capture of stock, no consumption math.
    type = "analysis": consumption reconciliation for a period; lines carry
    current/pending/initial/end stock and consumption.

    Append-only: rows are never updated. The only delete is the operator's
    bulk wipe of the whole history.
    """
    __tablename__ = "inventory_records"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    date = db.Column(db.DateTime, nullable=False, index=True)
    label = db.Column(db.String(255), nullable=False, default="")
    type = db.Column(db.String(16), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "InventoryRecordLine",
        backref="record",
        cascade="all, delete-orphan",
        order_by="InventoryRecordLine.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<InventoryRecord id={self.id!r} type={self.type} date={self.date}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "label": self.label,
            "type": self.type,
            "items": [line.to_dict() for line in self.lines],
        }


class InventoryRecordLine(db.Model):
    __tablename__ = "inventory_record_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.String(64), db.ForeignKey("inventory_records.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    item_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False, default="")
    unit = db.Column(db.String(64), nullable=True)

    # Nullable: snapshots and older records do not carry every figure
    current_stock = db.Column(db.Float, nullable=True)
    pending_stock = db.Column(db.Float, nullable=True)
    initial_stock = db.Column(db.Float, nullable=True)
    end_stock = db.Column(db.Float, nullable=True)
    consumption = db.Column(db.Float, nullable=True)
    stock_by_location_snapshot = db.Column(db.JSON, nullable=True)

    # JSON key -> column; absent values are omitted from the serialized item
    JSON_FIELDS = {
        "unit": "unit",
        "currentStock": "current_stock",
        "pendingStock": "pending_stock",
        "initialStock": "initial_stock",
        "endStock": "end_stock",
        "consumption": "consumption",
        "stockByLocationSnapshot": "stock_by_location_snapshot",
    }

    def to_dict(self) -> dict:
        data = {"itemId": self.item_id, "name": self.name}
        for key, attr in self.JSON_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data
