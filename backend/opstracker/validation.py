from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import Date, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeMeta

from opstracker.time_utils import parse_iso_date, parse_iso_datetime


class ValidationError(ValueError):
    """400-level input problem. Raised before any write."""


class NotFoundError(LookupError):
    """404-level: referenced entity does not exist."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate history record id)."""


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Maps the JSON contract onto model columns:
    - fields: JSON key -> column key (the writable surface)
    - required_on_create: JSON keys required when creating
    """
    fields: dict[str, str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(value: Any, field_name: str) -> float:
    """
    Accept ints, floats and numeric strings. Strings may use a decimal comma
    ("12,5") as typed on the stock sheets.
    """
    number = _to_float(value, field_name)
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def _to_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            raise ValidationError(f"{field_name} must be a finite number")
    if isinstance(value, str):
        stripped = value.strip().replace(",", ".")
        if not stripped:
            raise ValidationError(f"{field_name} must be a number")
        try:
            return float(stripped)
        except ValueError:
            raise ValidationError(f"{field_name} must be a number")
    raise ValidationError(f"{field_name} must be a number")


def _coerce_value(col, key: str, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Float before Integer: sqlalchemy Float is not an Integer subclass, but be explicit
    if isinstance(coltype, Float):
        return parse_decimal(value, key)

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValidationError(f"{key} must be an integer")

    if isinstance(coltype, DateTime):
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{key} must be an ISO-8601 datetime")

    if isinstance(coltype, Date):
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    if isinstance(coltype, JSON):
        return value

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: PayloadPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming JSON dict against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - the policy's JSON-key allowlist
    - required_on_create (if partial=False)
    Returns a patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: update semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = [f for f in sorted(policy.required_on_create) if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[policy.fields[k]]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[col.key] = None
            continue

        val = _coerce_value(col, k, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[col.key] = val

    return patch


def validate_keyed_quantities(
    mapping: Any,
    allowed_keys: Iterable[str],
    *,
    field_name: str,
) -> dict[str, float]:
    """
    Validate a {key: number} map against a registry of known keys
    (stock locations, income sources). Values are coerced to float.
    """
    if not isinstance(mapping, dict):
        raise ValidationError(f"{field_name} must be an object")
    allowed = set(allowed_keys)
    cleaned: dict[str, float] = {}
    for key, raw in mapping.items():
        if key not in allowed:
            raise ValidationError(f"{field_name}: unknown key '{key}'")
        cleaned[key] = parse_decimal(raw, f"{field_name}.{key}")
    return cleaned


def enforce_rules_order_line(line: Any, index: int) -> dict:
    """An order line needs an item reference and a strictly positive quantity."""
    if not isinstance(line, dict):
        raise ValidationError(f"items[{index}] must be an object")

    item_id = str(line.get("inventoryItemId") or "").strip()
    if not item_id:
        raise ValidationError(f"items[{index}].inventoryItemId is required")

    if "quantity" not in line:
        raise ValidationError(f"items[{index}].quantity is required")
    quantity = parse_decimal(line["quantity"], f"items[{index}].quantity")
    if quantity <= 0:
        raise ValidationError(f"items[{index}].quantity must be > 0")

    cost = parse_decimal(line.get("costAtTimeOfPurchase", 0), f"items[{index}].costAtTimeOfPurchase")
    if cost < 0:
        raise ValidationError(f"items[{index}].costAtTimeOfPurchase must be >= 0")

    return {
        "inventoryItemId": item_id,
        "quantity": quantity,
        "costAtTimeOfPurchase": cost,
    }
