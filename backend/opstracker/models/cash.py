from __future__ import annotations

from ..extensions import db
from .common import new_id
from opstracker.time_utils import to_iso_date


class CashSession(db.Model):
    """
    One register session (typically a night of service).

    income and payment_breakdown are keyed by income source id (validated
    against the IncomeSource registry). For a source present in
    payment_breakdown, income[source] == cash + card.
    """
    __tablename__ = "cash_sessions"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    date = db.Column(db.Date, nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False, default="")

    income = db.Column(db.JSON, nullable=False, default=dict)
    expenses = db.Column(db.JSON, nullable=False, default=list)
    payment_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    worked_hours = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.date),
            "description": self.description,
            "income": dict(self.income or {}),
            "expenses": list(self.expenses or []),
            "paymentBreakdown": dict(self.payment_breakdown or {}),
            "workedHours": list(self.worked_hours or []),
        }


class IncomeSource(db.Model):
    """Registry of income sources (bars, door, web...) in display order."""
    __tablename__ = "income_sources"

    id = db.Column(db.String(64), primary_key=True)
    label = db.Column(db.String(128), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label}


class Employee(db.Model):
    """
    Staff registry. Hourly staff cost hours x hourly_rate per session;
    salaried staff cost salary + other_costs per month.
    """
    __tablename__ = "employees"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="Hourly")
    hourly_rate = db.Column(db.Float, nullable=False, default=0.0)
    salary = db.Column(db.Float, nullable=False, default=0.0)
    other_costs = db.Column(db.Float, nullable=False, default=0.0)

    def __repr__(self) -> str:
        return f"<Employee id={self.id!r} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "type": self.type, "otherCosts": self.other_costs}
        if self.type == "Hourly":
            data["hourlyRate"] = self.hourly_rate
        else:
            data["salary"] = self.salary
        return data
