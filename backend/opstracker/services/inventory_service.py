# Overview: Service-layer operations for inventory items (the item store).

"""
Inventory Item store.

Stock model:
- Each item holds a mutable {location: quantity} map (stockByLocation).
- Keys must belong to the location registry (config_service.get_locations()).
- Total stock = sum over locations. Negative quantities are not rejected.

Writes:
- Manual edits (save_item / set_item_stock)
- Bulk set/add against the primary location (sheet sync)
- Post-analysis resets (apply_stock_resets) and the manual emergency
  reset (reset_all_stocks), which writes no history.

JSON columns are always re-assigned (never mutated in place) so SQLAlchemy
sees the change.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import InventoryItem
from ..reconciliation import zero_stock_levels
from ..validation import (
    NotFoundError,
    PayloadPolicy,
    ValidationError,
    parse_decimal,
    validate_keyed_quantities,
    validate_payload,
)
from .config_service import empty_stock_map, get_locations, primary_location
from .persistence import commit_or_rollback


BULK_MODE_SET = "set"
BULK_MODE_ADD = "add"

ITEM_POLICY = PayloadPolicy(
    fields={
        "name": "name",
        "category": "category",
        "unit": "unit",
    },
    required_on_create=frozenset({"name"}),
)


def total_stock(stock_by_location: dict | None) -> float:
    return sum(float(v or 0) for v in (stock_by_location or {}).values())


def list_items() -> list[InventoryItem]:
    return db.session.query(InventoryItem).order_by(InventoryItem.name).all()


def get_item(item_id: str) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError(f"Inventory item {item_id} not found")
    return item


def save_item(payload: dict) -> InventoryItem:
    """
    Upsert an inventory item by id.

    - Missing id, or an id not yet stored: create. A new item without
      stockByLocation starts at 0 in every registry location.
    - Existing id: update the provided fields only.

    Raises:
        ValidationError: unknown fields, blank name, unknown location keys,
            non-numeric stock values
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = dict(payload)
    item_id = str(data.pop("id", None) or "").strip() or None
    raw_stock = data.pop("stockByLocation", None)

    existing = db.session.get(InventoryItem, item_id) if item_id else None
    patch = validate_payload(
        model=InventoryItem,
        payload=data,
        policy=ITEM_POLICY,
        partial=existing is not None,
    )

    stock = None
    if raw_stock is not None:
        stock = validate_keyed_quantities(raw_stock, get_locations(), field_name="stockByLocation")

    if existing is None:
        item = InventoryItem(id=item_id) if item_id else InventoryItem()
        item.category = ""
        item.unit = ""
        item.stock_by_location = stock if stock is not None else empty_stock_map()
        db.session.add(item)
        action = "Created"
    else:
        item = existing
        if stock is not None:
            item.stock_by_location = stock
        action = "Updated"

    for key, value in patch.items():
        setattr(item, key, value if value is not None else "")

    commit_or_rollback()
    current_app.logger.info("%s inventory item %s (%s)", action, item.id, item.name)
    return item


def delete_item(item_id: str) -> None:
    item = get_item(item_id)
    db.session.delete(item)
    commit_or_rollback()
    current_app.logger.info("Deleted inventory item %s", item_id)


def set_item_stock(item_id: str, location: str, quantity) -> InventoryItem:
    """Manual count edit of a single location."""
    if location not in get_locations():
        raise ValidationError(f"Unknown location: {location}")
    qty = parse_decimal(quantity, "quantity")

    item = get_item(item_id)
    stock = dict(item.stock_by_location or {})
    if stock.get(location) == qty:
        return item
    stock[location] = qty
    item.stock_by_location = stock
    commit_or_rollback()
    return item


def bulk_update_stock(updates: Iterable[dict], mode: str = BULK_MODE_SET) -> int:
    """
    Apply {name, stock} updates to the primary location.

    Names match case-insensitively. mode="set" overwrites the primary
    location, mode="add" adds to it. Unknown names are logged and skipped.

    Returns:
        Number of items updated
    """
    if mode not in (BULK_MODE_SET, BULK_MODE_ADD):
        raise ValidationError(f"Invalid bulk update mode: {mode}")

    cleaned = []
    for index, update in enumerate(updates):
        if not isinstance(update, dict):
            raise ValidationError(f"updates[{index}] must be an object")
        name = str(update.get("name") or "").strip()
        if not name:
            raise ValidationError(f"updates[{index}].name is required")
        cleaned.append((name, parse_decimal(update.get("stock"), f"updates[{index}].stock")))

    by_name = {item.name.lower(): item for item in list_items()}
    primary = primary_location()
    updated = 0

    for name, value in cleaned:
        item = by_name.get(name.lower())
        if item is None:
            current_app.logger.warning("Item not found for bulk update: %s", name)
            continue
        stock = dict(item.stock_by_location or {})
        if mode == BULK_MODE_ADD:
            stock[primary] = float(stock.get(primary) or 0) + value
        else:
            stock[primary] = value
        item.stock_by_location = stock
        updated += 1

    commit_or_rollback()
    current_app.logger.info("Bulk %s update processed for %d/%d items", mode, updated, len(cleaned))
    return updated


def search_items(term: str | None) -> list[InventoryItem]:
    """Case-insensitive match on name or category; empty term returns all."""
    items = list_items()
    if not term:
        return items
    needle = term.lower()
    return [i for i in items if needle in i.name.lower() or needle in (i.category or "").lower()]


def group_by_category(items: Iterable[InventoryItem]) -> "OrderedDict[str, list[InventoryItem]]":
    groups: OrderedDict[str, list[InventoryItem]] = OrderedDict()
    for item in sorted(items, key=lambda i: ((i.category or "Uncategorized"), i.name)):
        groups.setdefault(item.category or "Uncategorized", []).append(item)
    return groups


def apply_stock_resets(resets: Iterable) -> int:
    """
    Apply post-analysis resets: each item's stock collapses to a single
    primary-location entry holding the reset value. Items deleted in the
    meantime are skipped.
    """
    primary = primary_location()
    applied = 0
    for reset in resets:
        item = db.session.get(InventoryItem, reset.item_id)
        if item is None:
            current_app.logger.warning("Stock reset skipped, item %s no longer exists", reset.item_id)
            continue
        item.stock_by_location = {primary: reset.new_stock}
        applied += 1
    commit_or_rollback()
    return applied


def reset_all_stocks() -> list[InventoryItem]:
    """
    Operator emergency reset: every location of every item set to 0.
    Writes no history record.
    """
    items = list_items()
    zeroed = zero_stock_levels(item.to_dict() for item in items)
    for item, levels in zip(items, zeroed):
        item.stock_by_location = levels["stockByLocation"]
    commit_or_rollback()
    current_app.logger.warning("Manual stock reset applied to %d items", len(items))
    return items
