# Overview: Service-layer operations for purchase orders (the order store).

"""
Purchase Order store.

LIFECYCLE:
1. Pending: created, lines editable
2. Completed: goods received (deliveryDate set). Counted as pending stock by
   the next consumption analysis.
3. Archived: folded into a consumption analysis. Never counted again.
4. Cancelled: abandoned before receipt

save_order is an upsert by id and accepts any valid status, mirroring the
operator's order form; the dedicated transition helpers enforce the
lifecycle above.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, PurchaseOrderLine
from ..time_utils import parse_iso_date, today
from ..validation import (
    NotFoundError,
    PayloadPolicy,
    ValidationError,
    enforce_rules_order_line,
    validate_payload,
)
from .persistence import commit_or_rollback


STATUS_PENDING = "Pending"
STATUS_COMPLETED = "Completed"
STATUS_ARCHIVED = "Archived"
STATUS_CANCELLED = "Cancelled"

ORDER_STATUSES = {STATUS_PENDING, STATUS_COMPLETED, STATUS_ARCHIVED, STATUS_CANCELLED}

ORDER_POLICY = PayloadPolicy(
    fields={
        "orderDate": "order_date",
        "deliveryDate": "delivery_date",
        "supplierName": "supplier_name",
        "status": "status",
    },
    required_on_create=frozenset({"orderDate", "supplierName"}),
)


class OrderStateError(Exception):
    """Raised when a lifecycle transition is invalid for the current status."""
    pass


def order_total(lines: Iterable[dict]) -> float:
    return sum(line["quantity"] * line["costAtTimeOfPurchase"] for line in lines)


def list_orders() -> list[PurchaseOrder]:
    return (
        db.session.query(PurchaseOrder)
        .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.created_at.desc())
        .all()
    )


def get_order(order_id: str) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError(f"Purchase order {order_id} not found")
    return order


def list_suppliers() -> list[str]:
    """Distinct non-blank supplier names, alphabetical."""
    rows = db.session.query(PurchaseOrder.supplier_name).distinct().all()
    return sorted({name.strip() for (name,) in rows if name and name.strip()})


def save_order(payload: dict) -> PurchaseOrder:
    """
    Create or update a purchase order (upsert by id).

    totalAmount is always recomputed from the lines; a client-sent value is
    ignored.

    Raises:
        ValidationError: missing/blank supplier name, malformed dates,
            unknown status, no lines, non-positive quantity, negative cost,
            reference to an unknown inventory item
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = dict(payload)
    order_id = str(data.pop("id", None) or "").strip() or None
    raw_lines = data.pop("items", None)
    data.pop("totalAmount", None)

    existing = db.session.get(PurchaseOrder, order_id) if order_id else None
    patch = validate_payload(
        model=PurchaseOrder,
        payload=data,
        policy=ORDER_POLICY,
        partial=existing is not None,
    )

    if "supplier_name" in patch and not patch["supplier_name"]:
        raise ValidationError("supplierName cannot be blank")

    status = patch.get("status")
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    lines = None
    if raw_lines is not None or existing is None:
        if not isinstance(raw_lines, list) or not raw_lines:
            raise ValidationError("A purchase order needs at least one item")
        lines = [enforce_rules_order_line(line, i) for i, line in enumerate(raw_lines)]
        _ensure_items_exist(line["inventoryItemId"] for line in lines)

    if existing is None:
        order = PurchaseOrder(id=order_id) if order_id else PurchaseOrder()
        order.status = STATUS_PENDING
        db.session.add(order)
        action = "Created"
    else:
        order = existing
        action = "Updated"

    for key, value in patch.items():
        setattr(order, key, value)

    if lines is not None:
        order.lines = [
            PurchaseOrderLine(
                position=position,
                inventory_item_id=line["inventoryItemId"],
                quantity=line["quantity"],
                cost_at_time_of_purchase=line["costAtTimeOfPurchase"],
            )
            for position, line in enumerate(lines)
        ]
        order.total_amount = order_total(lines)

    commit_or_rollback()
    current_app.logger.info(
        "%s purchase order %s (%s, %s, total %.2f)",
        action, order.id, order.supplier_name, order.status, order.total_amount,
    )
    return order


def _ensure_items_exist(item_ids: Iterable[str]) -> None:
    wanted = set(item_ids)
    found = {
        row_id
        for (row_id,) in db.session.query(InventoryItem.id).filter(InventoryItem.id.in_(wanted)).all()
    }
    missing = sorted(wanted - found)
    if missing:
        raise ValidationError(f"Unknown inventory item(s): {', '.join(missing)}")


def complete_order(order_id: str, delivery_date: str | None = None) -> PurchaseOrder:
    """
    Mark a Pending order as received. deliveryDate defaults to today.

    Raises:
        NotFoundError, OrderStateError, ValidationError (bad date)
    """
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise OrderStateError(f"Cannot complete order in {order.status} status")

    try:
        received = parse_iso_date(delivery_date) if delivery_date else today()
    except ValueError:
        raise ValidationError("deliveryDate must be a date (YYYY-MM-DD)")

    order.status = STATUS_COMPLETED
    order.delivery_date = received
    commit_or_rollback()
    current_app.logger.info("Purchase order %s completed on %s", order.id, received.isoformat())
    return order


def cancel_order(order_id: str) -> PurchaseOrder:
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise OrderStateError(
            f"Cannot cancel order in {order.status} status. "
            f"Orders can only be cancelled before receipt."
        )
    order.status = STATUS_CANCELLED
    commit_or_rollback()
    current_app.logger.info("Purchase order %s cancelled", order.id)
    return order


def archive_orders(order_ids: Iterable[str]) -> list[PurchaseOrder]:
    """
    Completed -> Archived for every id given. Orders no longer Completed
    (or deleted) are skipped and logged rather than failing the batch.
    """
    archived = []
    for order_id in order_ids:
        order = db.session.get(PurchaseOrder, order_id)
        if order is None or order.status != STATUS_COMPLETED:
            current_app.logger.warning(
                "Archive skipped for order %s (status %s)",
                order_id, order.status if order else "missing",
            )
            continue
        order.status = STATUS_ARCHIVED
        archived.append(order)
    commit_or_rollback()
    return archived


def delete_order(order_id: str) -> None:
    order = get_order(order_id)
    db.session.delete(order)
    commit_or_rollback()
    current_app.logger.info("Deleted purchase order %s", order_id)
