from __future__ import annotations

from ..extensions import db
from .common import new_id
from opstracker.time_utils import to_iso_date


class InventoryItem(db.Model):
    """
    Beverage/stock item tracked across physical locations.

    stock_by_location is a {location name: quantity} map whose keys are
    validated against the configured location registry on write. On-hand
    stock is the mutable counter the operator edits; total stock is the sum
    over locations.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_category_name", "category", "name"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(128), nullable=False, default="")
    unit = db.Column(db.String(64), nullable=False, default="")

    stock_by_location = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def total_stock(self) -> float:
        return sum(float(v or 0) for v in (self.stock_by_location or {}).values())

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id!r} name={self.name!r} total={self.total_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "stockByLocation": dict(self.stock_by_location or {}),
        }


class PurchaseOrder(db.Model):
    """
    Purchase order to a supplier.

    LIFECYCLE:
    - Pending: created, goods not yet received
    - Completed: goods received (delivery_date set); counts as pending stock
      for the next consumption analysis
    - Archived: folded into a consumption analysis, never counted again
    - Cancelled: abandoned before receipt
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status_order_date", "status", "order_date"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    order_date = db.Column(db.Date, nullable=False, index=True)
    delivery_date = db.Column(db.Date, nullable=True)
    supplier_name = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "PurchaseOrderLine",
        backref="order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id!r} supplier={self.supplier_name!r} status={self.status}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "orderDate": to_iso_date(self.order_date),
            "supplierName": self.supplier_name,
            "items": [line.to_dict() for line in self.lines],
            "status": self.status,
            "totalAmount": self.total_amount,
        }
        if self.delivery_date is not None:
            data["deliveryDate"] = to_iso_date(self.delivery_date)
        return data


class PurchaseOrderLine(db.Model):
    __tablename__ = "purchase_order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Not a foreign key: deleting an item must not rewrite order history
    inventory_item_id = db.Column(db.String(64), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    cost_at_time_of_purchase = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        return {
            "inventoryItemId": self.inventory_item_id,
            "quantity": self.quantity,
            "costAtTimeOfPurchase": self.cost_at_time_of_purchase,
        }
