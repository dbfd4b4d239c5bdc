# Overview: CSV export of inventory / history records and parsing of stock sheets.

"""
CSV formats follow the spreadsheet conventions used at the bar:
';' separator, decimal comma, Spanish headers.

Stock sheets (input for bulk updates) are plain "name, stock" lines.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Iterable

from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_decimal
from .config_service import get_locations


INVENTORY_HEADERS_PREFIX = ["Categoría", "Artículo"]
INVENTORY_HEADERS_SUFFIX = ["Stock Total", "Unidad"]
RECORD_HEADERS = ["Artículo", "Unidad", "Stock Actual", "En Pedidos", "Stock Inicial", "Stock Final", "Consumo"]


def _num(value) -> str:
    if value is None:
        return ""
    value = float(value)
    text = str(int(value)) if value.is_integer() else repr(value)
    return text.replace(".", ",")


def _writer(buffer: io.StringIO):
    return csv.writer(buffer, delimiter=";", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")


def export_inventory_csv(items: Iterable[dict]) -> str:
    """Current stock per location, sorted by category then name."""
    locations = list(get_locations())
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(INVENTORY_HEADERS_PREFIX + locations + INVENTORY_HEADERS_SUFFIX)

    for item in sorted(items, key=lambda i: (i.get("category") or "", i.get("name") or "")):
        stock = item.get("stockByLocation") or {}
        total = sum(float(v or 0) for v in stock.values())
        writer.writerow(
            [item.get("category") or "", item.get("name") or ""]
            + [_num(stock.get(loc, 0)) for loc in locations]
            + [_num(total), item.get("unit") or ""]
        )
    return buffer.getvalue()


def export_record_csv(record: dict) -> str:
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(RECORD_HEADERS)
    for entry in record.get("items") or []:
        consumption = entry.get("consumption")
        writer.writerow([
            entry.get("name") or "",
            entry.get("unit") or "",
            _num(entry.get("currentStock")),
            _num(entry.get("pendingStock")),
            _num(entry.get("initialStock")),
            _num(entry.get("endStock")),
            f"{consumption:.2f}".replace(".", ",") if consumption is not None else "0",
        ])
    return buffer.getvalue()


def inventory_filename(when: datetime) -> str:
    return f"inventario_actual_{when.strftime('%d-%m-%Y')}.csv"


def record_filename(record: dict) -> str:
    when = parse_iso_datetime(record.get("date")) or datetime.min
    return f"inventario_{when.strftime('%d-%m-%Y')}.csv"


def parse_stock_sheet(text: str) -> list[dict]:
    """
    Parse "name, stock" lines into bulk-update entries. Blank lines and
    rows without a name are skipped; an unparsable stock counts as 0.
    """
    updates = []
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    for row in reader:
        if not row or not row[0].strip():
            continue
        name = row[0].strip()
        # "Absolut, 12,5": a decimal comma splits the stock across columns
        raw_stock = ",".join(row[1:]).strip()
        try:
            stock = parse_decimal(raw_stock, "stock")
        except ValidationError:
            stock = 0.0
        updates.append({"name": name, "stock": stock})
    return updates
