# Overview: Registries for keyed maps: stock locations (app config), income sources and employees (DB).

"""
Configuration registries.

Keyed structures in the data model (stock by location, income by source,
payment breakdown by source) only accept keys from these registries.

- Locations come from app config (INVENTORY_LOCATIONS / PRIMARY_LOCATION).
- Income sources are operator-editable and stored in the income_sources
  table; an empty table means the default list applies.
- Employees are operator-editable and stored in the employees table; worked
  hours in cash sessions must reference one of them.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Employee, IncomeSource
from ..validation import ValidationError, parse_decimal
from .persistence import commit_or_rollback


DEFAULT_INCOME_SOURCES = [
    {"id": "barra1", "label": "B1"},
    {"id": "barra2", "label": "B2"},
    {"id": "barra3", "label": "B3"},
    {"id": "barra4", "label": "B4"},
    {"id": "restaurante", "label": "Rest"},
    {"id": "tickets", "label": "Puerta"},
    {"id": "vip", "label": "Puerta VIP"},
    {"id": "web", "label": "Web"},
]

EMPLOYEE_HOURLY = "Hourly"
EMPLOYEE_SALARIED = "Salaried"
EMPLOYEE_TYPES = {EMPLOYEE_HOURLY, EMPLOYEE_SALARIED}


def get_locations() -> tuple[str, ...]:
    return tuple(current_app.config["INVENTORY_LOCATIONS"])


def primary_location() -> str:
    """Main warehouse: target of bulk stock updates and post-analysis resets."""
    primary = current_app.config.get("PRIMARY_LOCATION")
    locations = get_locations()
    if not primary:
        return locations[0]
    if primary not in locations:
        raise ValidationError(f"PRIMARY_LOCATION '{primary}' is not a configured location")
    return primary


def empty_stock_map() -> dict[str, float]:
    return {loc: 0.0 for loc in get_locations()}


def get_income_sources() -> list[dict]:
    rows = db.session.query(IncomeSource).order_by(IncomeSource.position).all()
    if not rows:
        return [dict(s) for s in DEFAULT_INCOME_SOURCES]
    return [row.to_dict() for row in rows]


def income_source_ids() -> list[str]:
    return [s["id"] for s in get_income_sources()]


def save_income_sources(sources: list[dict]) -> list[dict]:
    """
    Replace the whole income source list (order is preserved).

    Raises:
        ValidationError: blank or duplicate ids, blank labels
    """
    if not isinstance(sources, list):
        raise ValidationError("Income sources must be a list")

    cleaned = []
    seen = set()
    for index, source in enumerate(sources):
        if not isinstance(source, dict):
            raise ValidationError(f"sources[{index}] must be an object")
        source_id = str(source.get("id") or "").strip()
        label = str(source.get("label") or "").strip()
        if not source_id:
            raise ValidationError(f"sources[{index}].id is required")
        if not label:
            raise ValidationError(f"sources[{index}].label is required")
        if source_id in seen:
            raise ValidationError(f"Duplicate income source id: {source_id}")
        seen.add(source_id)
        cleaned.append({"id": source_id, "label": label})

    db.session.query(IncomeSource).delete()
    for position, source in enumerate(cleaned):
        db.session.add(IncomeSource(id=source["id"], label=source["label"], position=position))
    commit_or_rollback()

    current_app.logger.info("Saved %d income sources", len(cleaned))
    return cleaned


def get_employees() -> list[dict]:
    return [e.to_dict() for e in db.session.query(Employee).order_by(Employee.name).all()]


def employee_ids() -> list[str]:
    return [row_id for (row_id,) in db.session.query(Employee.id).all()]


def hourly_rates() -> dict[str, float]:
    """employee id -> hourly rate; salaried staff cost 0 per worked hour."""
    return {
        e.id: (e.hourly_rate if e.type == EMPLOYEE_HOURLY else 0.0)
        for e in db.session.query(Employee).all()
    }


def _clean_employee(raw, index: int) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError(f"employees[{index}] must be an object")
    employee_id = str(raw.get("id") or "").strip()
    name = str(raw.get("name") or "").strip()
    if not employee_id:
        raise ValidationError(f"employees[{index}].id is required")
    if not name:
        raise ValidationError(f"employees[{index}].name is required")
    employee_type = raw.get("type") or EMPLOYEE_HOURLY
    if employee_type not in EMPLOYEE_TYPES:
        raise ValidationError(f"employees[{index}].type must be Hourly or Salaried")

    cleaned = {"id": employee_id, "name": name, "type": employee_type}
    for key in ("hourlyRate", "salary", "otherCosts"):
        value = parse_decimal(raw.get(key) or 0, f"employees[{index}].{key}")
        if value < 0:
            raise ValidationError(f"employees[{index}].{key} cannot be negative")
        cleaned[key] = value
    # only the field matching the pay type is kept
    if employee_type == EMPLOYEE_HOURLY:
        cleaned["salary"] = 0.0
    else:
        cleaned["hourlyRate"] = 0.0
    return cleaned


def save_employees(employees: list[dict]) -> list[dict]:
    """
    Replace the whole staff list.

    Raises:
        ValidationError: blank or duplicate ids, blank names, unknown type,
            negative or non-numeric amounts
    """
    if not isinstance(employees, list):
        raise ValidationError("Employees must be a list")

    cleaned = [_clean_employee(raw, index) for index, raw in enumerate(employees)]
    ids = [e["id"] for e in cleaned]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate employee id: {', '.join(duplicates)}")

    db.session.query(Employee).delete()
    for e in cleaned:
        db.session.add(Employee(
            id=e["id"],
            name=e["name"],
            type=e["type"],
            hourly_rate=e["hourlyRate"],
            salary=e["salary"],
            other_costs=e["otherCosts"],
        ))
    commit_or_rollback()

    current_app.logger.info("Saved %d employees", len(cleaned))
    return get_employees()
