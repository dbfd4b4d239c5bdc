# Overview: Service-layer operations for cash register sessions.

"""
Cash Session store.

A session records one register night: income per source, expenses, the
cash/card split per source and worked hours per employee.

RULES:
- income and paymentBreakdown keys must be registered income sources
- for a source present in paymentBreakdown, income[source] = cash + card
- expense amounts and worked hours are numbers; hours cannot be negative
- workedHours entries must reference a registered employee; labour cost is
  hours x the employee's hourly rate (salaried staff cost 0 per hour)
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import CashSession
from ..validation import (
    NotFoundError,
    PayloadPolicy,
    ValidationError,
    parse_decimal,
    validate_keyed_quantities,
    validate_payload,
)
from .config_service import employee_ids, hourly_rates, income_source_ids
from .persistence import commit_or_rollback


SESSION_POLICY = PayloadPolicy(
    fields={
        "date": "date",
        "description": "description",
    },
    required_on_create=frozenset({"date"}),
)


def _clean_breakdown(raw, allowed: list[str]) -> dict[str, dict]:
    if not isinstance(raw, dict):
        raise ValidationError("paymentBreakdown must be an object")
    cleaned = {}
    for source, split in raw.items():
        if source not in allowed:
            raise ValidationError(f"paymentBreakdown: unknown key '{source}'")
        if not isinstance(split, dict):
            raise ValidationError(f"paymentBreakdown.{source} must be an object")
        cleaned[source] = {
            "cash": parse_decimal(split.get("cash", 0), f"paymentBreakdown.{source}.cash"),
            "card": parse_decimal(split.get("card", 0), f"paymentBreakdown.{source}.card"),
        }
    return cleaned


def _clean_expenses(raw) -> list[dict]:
    if not isinstance(raw, list):
        raise ValidationError("expenses must be a list")
    cleaned = []
    for index, expense in enumerate(raw):
        if not isinstance(expense, dict):
            raise ValidationError(f"expenses[{index}] must be an object")
        cleaned.append({
            "description": str(expense.get("description") or "").strip(),
            "amount": parse_decimal(expense.get("amount", 0), f"expenses[{index}].amount"),
        })
    return cleaned


def _clean_worked_hours(raw, employees: list[str]) -> list[dict]:
    if not isinstance(raw, list):
        raise ValidationError("workedHours must be a list")
    cleaned = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"workedHours[{index}] must be an object")
        employee_id = str(entry.get("employeeId") or "").strip()
        if not employee_id:
            raise ValidationError(f"workedHours[{index}].employeeId is required")
        if employee_id not in employees:
            raise ValidationError(f"workedHours[{index}].employeeId: unknown employee '{employee_id}'")
        hours = parse_decimal(entry.get("hours", 0), f"workedHours[{index}].hours")
        if hours < 0:
            raise ValidationError(f"workedHours[{index}].hours cannot be negative")
        cleaned.append({"employeeId": employee_id, "hours": hours})
    return cleaned


def list_sessions(start: Optional[date] = None, end: Optional[date] = None) -> list[CashSession]:
    """Sessions newest first, optionally limited to start <= date <= end."""
    query = db.session.query(CashSession)
    if start is not None:
        query = query.filter(CashSession.date >= start)
    if end is not None:
        query = query.filter(CashSession.date <= end)
    return query.order_by(CashSession.date.desc(), CashSession.created_at.desc()).all()


def get_session(session_id: str) -> CashSession:
    session = db.session.get(CashSession, session_id)
    if not session:
        raise NotFoundError(f"Cash session {session_id} not found")
    return session


def save_session(payload: dict) -> CashSession:
    """
    Create or update a cash session (upsert by id).

    Raises:
        ValidationError: missing date, unknown income source, bad numbers
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = dict(payload)
    session_id = str(data.pop("id", None) or "").strip() or None
    raw_income = data.pop("income", None)
    raw_breakdown = data.pop("paymentBreakdown", None)
    raw_expenses = data.pop("expenses", None)
    raw_hours = data.pop("workedHours", None)

    existing = db.session.get(CashSession, session_id) if session_id else None
    patch = validate_payload(
        model=CashSession,
        payload=data,
        policy=SESSION_POLICY,
        partial=existing is not None,
    )

    sources = income_source_ids()
    income_patch = None
    if raw_income is not None:
        income_patch = validate_keyed_quantities(raw_income, sources, field_name="income")
    breakdown = _clean_breakdown(raw_breakdown, sources) if raw_breakdown is not None else None
    expenses = _clean_expenses(raw_expenses) if raw_expenses is not None else None
    worked_hours = _clean_worked_hours(raw_hours, employee_ids()) if raw_hours is not None else None

    if existing is None:
        session = CashSession(id=session_id) if session_id else CashSession()
        session.description = ""
        session.income = {}
        session.payment_breakdown = {}
        session.expenses = []
        session.worked_hours = []
        db.session.add(session)
        action = "Created"
    else:
        session = existing
        action = "Updated"

    for key, value in patch.items():
        setattr(session, key, value if value is not None else "")

    income = income_patch if income_patch is not None else dict(session.income or {})
    if breakdown is not None:
        session.payment_breakdown = breakdown
        for source, split in breakdown.items():
            income[source] = split["cash"] + split["card"]
    session.income = income

    if expenses is not None:
        session.expenses = expenses
    if worked_hours is not None:
        session.worked_hours = worked_hours

    commit_or_rollback()
    current_app.logger.info("%s cash session %s (%s)", action, session.id, session.date)
    return session


def delete_session(session_id: str) -> None:
    session = get_session(session_id)
    db.session.delete(session)
    commit_or_rollback()
    current_app.logger.info("Deleted cash session %s", session_id)


def labour_cost(session: dict, rates: Optional[dict[str, float]] = None) -> float:
    """Hourly staff cost of a session. Unknown employees cost 0."""
    if rates is None:
        rates = hourly_rates()
    return sum(
        float(entry.get("hours") or 0) * rates.get(entry.get("employeeId"), 0.0)
        for entry in session.get("workedHours") or []
    )


def session_totals(session: dict, rates: Optional[dict[str, float]] = None) -> dict:
    """
    Income, expenses, net result, the cash/card split and the hourly labour
    cost of one session. net does not include labour; netAfterLabour does.
    """
    cost = labour_cost(session, rates)
    total_income = sum(float(v or 0) for v in (session.get("income") or {}).values())
    total_expenses = sum(float(e.get("amount") or 0) for e in session.get("expenses") or [])
    total_cash = sum(float(s.get("cash") or 0) for s in (session.get("paymentBreakdown") or {}).values())
    total_card = sum(float(s.get("card") or 0) for s in (session.get("paymentBreakdown") or {}).values())
    return {
        "totalIncome": total_income,
        "totalExpenses": total_expenses,
        "net": total_income - total_expenses,
        "totalCash": total_cash,
        "totalCard": total_card,
        "labourCost": cost,
        "netAfterLabour": total_income - total_expenses - cost,
    }


def summarize_sessions(sessions: Iterable[dict]) -> dict:
    summary = {
        "sessions": 0,
        "totalIncome": 0.0,
        "totalExpenses": 0.0,
        "net": 0.0,
        "totalCash": 0.0,
        "totalCard": 0.0,
        "labourCost": 0.0,
        "netAfterLabour": 0.0,
    }
    rates = hourly_rates()
    for session in sessions:
        summary["sessions"] += 1
        for key, value in session_totals(session, rates).items():
            summary[key] += value
    return summary
