# Overview: Runs consumption analyses and snapshots against the stores.

"""
Consumption reconciliation service.

WHY: Weekly, the operator counts stock at every location. The analysis
compares that count with what should be there (previous period's end stock
plus everything received since), records the consumption, then starts the
next period from zero.

perform_analysis() persists three effects, in order, each with its own
commit:
1. append the analysis record to the history
2. reset every item's on-hand stock to 0 (collapsed to the primary location)
3. archive every Completed order so it is not counted as pending again

There is no cross-store transaction. If step 2 or 3 fails, the record from
step 1 stays; the failure is logged with the record id and re-raised, and
the operator reconciles by hand (compare latest analysis with current stock
and order statuses).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from flask import current_app

from ..models import InventoryRecord
from ..reconciliation import (
    RECORD_TYPE_ANALYSIS,
    AnalysisResult,
    consumption_report,
    run_analysis,
    take_snapshot,
)
from .history_service import get_record, list_records, save_record
from .config_service import primary_location
from .inventory_service import apply_stock_resets, list_items
from .order_service import archive_orders, list_orders


def perform_analysis(now: Optional[datetime] = None) -> AnalysisResult:
    """
    Run a consumption analysis on the current stores and persist it.

    Returns:
        AnalysisResult whose record is the stored (round-tripped) record

    Raises:
        ValidationError: the inventory is empty or PRIMARY_LOCATION is not a
            configured location (nothing is written)
    """
    # resets target the primary location; fail before the record is appended
    primary_location()

    items = [item.to_dict() for item in list_items()]
    orders = [order.to_dict() for order in list_orders()]
    history = [record.to_dict() for record in list_records()]

    result = run_analysis(items, orders, history, now=now)

    stored = save_record(result.record)
    baseline_id = getattr(result.baseline, "record_id", None)
    current_app.logger.info(
        "Consumption analysis %s saved (baseline: %s, %d items, %d orders to archive)",
        stored.id, baseline_id or "none", len(result.resets), len(result.orders_to_archive),
    )

    try:
        apply_stock_resets(result.resets)
        archive_orders(order["id"] for order in result.orders_to_archive)
    except Exception:
        current_app.logger.exception(
            "Analysis %s was saved but the stock reset / order archive did not complete; "
            "reconcile stock and order statuses manually",
            stored.id,
        )
        raise

    return replace(result, record=stored.to_dict())


def perform_snapshot(now: Optional[datetime] = None) -> InventoryRecord:
    """Append a snapshot of current stock. Items and orders are not touched."""
    items = [item.to_dict() for item in list_items()]
    return save_record(take_snapshot(items, now=now))


def latest_analysis() -> Optional[InventoryRecord]:
    for record in list_records():
        if record.type == RECORD_TYPE_ANALYSIS:
            return record
    return None


def record_consumption_report(record_id: str, threshold: Optional[float] = None) -> list[dict]:
    """Items of a stored record with non-negligible consumption (display only)."""
    if threshold is None:
        threshold = current_app.config["CONSUMPTION_DISPLAY_THRESHOLD"]
    return consumption_report(get_record(record_id).to_dict(), threshold)
