"""
Consumption reconciliation (pure computation, no database access).

Inputs and outputs are the plain JSON shapes exchanged with the stores
(InventoryItem / PurchaseOrder / InventoryRecord dicts), so the engine can be
fed from any store and tested without one.

Per item, for a new analysis:

    currentStock     = sum(stockByLocation)              counted now
    pendingStock     = sum(quantity) over Completed orders (received, not yet folded)
    previousEndStock = baseline endStock | baseline initialStock | 0
    initialStock     = previousEndStock + pendingStock
    endStock         = currentStock
    consumption      = initialStock - endStock           (may be negative)

The baseline is the most recent "analysis" record, else the most recent
"snapshot", else nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Union

from opstracker.models.common import new_id
from opstracker.time_utils import format_label_date, parse_iso_datetime, to_utc_z, utcnow
from opstracker.validation import ValidationError


RECORD_TYPE_SNAPSHOT = "snapshot"
RECORD_TYPE_ANALYSIS = "analysis"

ORDER_STATUS_COMPLETED = "Completed"

DEFAULT_DISPLAY_THRESHOLD = 0.001

ANALYSIS_LABEL = "Análisis de consumo ({})"
SNAPSHOT_LABEL = "Inventario ({})"


@dataclass(frozen=True)
class StockReset:
    item_id: str
    new_stock: float = 0.0

    def to_dict(self) -> dict:
        return {"itemId": self.item_id, "newStock": self.new_stock}


@dataclass(frozen=True)
class NoBaseline:
    """No usable history: every item starts the period at 0."""

    def previous_end_stock(self, item_id: str) -> float:
        return 0.0


@dataclass(frozen=True)
class BaselineRecord:
    """The history record a new analysis starts from."""
    record_id: str
    record_type: str
    date: datetime
    items: Mapping[str, dict] = field(default_factory=dict)

    def previous_end_stock(self, item_id: str) -> float:
        entry = self.items.get(item_id)
        if entry is None:
            return 0.0
        if entry.get("endStock") is not None:
            return float(entry["endStock"])
        # older records may only carry initialStock
        if entry.get("initialStock") is not None:
            return float(entry["initialStock"])
        return 0.0


Baseline = Union[BaselineRecord, NoBaseline]
NO_BASELINE = NoBaseline()


@dataclass(frozen=True)
class AnalysisResult:
    record: dict
    baseline: Baseline
    resets: list[StockReset]
    orders_to_archive: list[dict]


def total_stock(item: Mapping) -> float:
    return sum(float(v or 0) for v in (item.get("stockByLocation") or {}).values())


def _record_date(record: Mapping) -> datetime:
    raw = record.get("date")
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc).replace(tzinfo=None)
        return raw
    try:
        parsed = parse_iso_datetime(raw) if isinstance(raw, str) else None
    except ValueError:
        parsed = None
    return parsed or datetime.min


def find_baseline(history: Iterable[Mapping]) -> Baseline:
    """
    Most recent analysis record, else most recent snapshot, else NO_BASELINE.
    Ties on date keep the caller's order (stores list newest first).
    """
    ordered = sorted(history, key=_record_date, reverse=True)
    for wanted in (RECORD_TYPE_ANALYSIS, RECORD_TYPE_SNAPSHOT):
        for record in ordered:
            if record.get("type") == wanted:
                return BaselineRecord(
                    record_id=record.get("id"),
                    record_type=wanted,
                    date=_record_date(record),
                    items={entry["itemId"]: entry for entry in record.get("items") or [] if entry.get("itemId")},
                )
    return NO_BASELINE


def pending_stock_by_item(orders: Iterable[Mapping]) -> dict[str, float]:
    """Quantities received (Completed) but not yet folded into an analysis (Archived)."""
    pending: dict[str, float] = {}
    for order in orders:
        if order.get("status") != ORDER_STATUS_COMPLETED:
            continue
        for line in order.get("items") or []:
            item_id = line.get("inventoryItemId")
            pending[item_id] = pending.get(item_id, 0.0) + float(line.get("quantity") or 0)
    return pending


def _require_items(items: list) -> None:
    if not items:
        raise ValidationError("Nothing to save: the inventory has no items")


def run_analysis(
    items: Iterable[Mapping],
    orders: Iterable[Mapping],
    history: Iterable[Mapping],
    *,
    now: Optional[datetime] = None,
) -> AnalysisResult:
    """
    Build the analysis record plus the follow-up instructions (stock resets,
    orders to archive). Nothing is persisted here.

    Raises:
        ValidationError: empty item list
    """
    items = list(items)
    orders = list(orders)
    _require_items(items)

    when = now or utcnow()
    baseline = find_baseline(history)
    pending = pending_stock_by_item(orders)

    lines = []
    for item in items:
        item_id = item["id"]
        current = total_stock(item)
        pending_qty = pending.get(item_id, 0.0)
        initial = baseline.previous_end_stock(item_id) + pending_qty
        lines.append({
            "itemId": item_id,
            "name": item.get("name", ""),
            "unit": item.get("unit", ""),
            "currentStock": current,
            "pendingStock": pending_qty,
            "initialStock": initial,
            "endStock": current,
            "consumption": initial - current,
            "stockByLocationSnapshot": dict(item.get("stockByLocation") or {}),
        })

    record = {
        "id": new_id(),
        "date": to_utc_z(when),
        "label": ANALYSIS_LABEL.format(format_label_date(when)),
        "type": RECORD_TYPE_ANALYSIS,
        "items": lines,
    }

    return AnalysisResult(
        record=record,
        baseline=baseline,
        resets=[StockReset(item_id=item["id"]) for item in items],
        orders_to_archive=[o for o in orders if o.get("status") == ORDER_STATUS_COMPLETED],
    )


def take_snapshot(items: Iterable[Mapping], *, now: Optional[datetime] = None) -> dict:
    """Point-in-time stock capture. No consumption math, no resets."""
    items = list(items)
    _require_items(items)

    when = now or utcnow()
    return {
        "id": new_id(),
        "date": to_utc_z(when),
        "label": SNAPSHOT_LABEL.format(format_label_date(when)),
        "type": RECORD_TYPE_SNAPSHOT,
        "items": [
            {
                "itemId": item["id"],
                "name": item.get("name", ""),
                "unit": item.get("unit", ""),
                "currentStock": total_stock(item),
                "endStock": total_stock(item),
                "stockByLocationSnapshot": dict(item.get("stockByLocation") or {}),
            }
            for item in items
        ],
    }


def zero_stock_levels(items: Iterable[Mapping]) -> list[dict]:
    """Every location of every item set to 0 (manual reset, no history)."""
    return [
        {**item, "stockByLocation": {loc: 0.0 for loc in (item.get("stockByLocation") or {})}}
        for item in items
    ]


def consumption_report(record: Mapping, threshold: float = DEFAULT_DISPLAY_THRESHOLD) -> list[dict]:
    """
    Display filter for an analysis record: drop items whose consumption is
    ~0. The stored record itself is not altered.
    """
    return [
        entry for entry in record.get("items") or []
        if entry.get("consumption") is not None and abs(entry["consumption"]) > threshold
    ]
