import pytest

from opstracker.services import cash_session_service, config_service
from opstracker.time_utils import parse_iso_date
from opstracker.validation import NotFoundError, ValidationError


@pytest.fixture(autouse=True)
def staff(app):
    return config_service.save_employees([
        {"id": "e1", "name": "Lucía", "type": "Hourly", "hourlyRate": 12},
        {"id": "e2", "name": "Marcos", "type": "Salaried", "salary": 1800, "otherCosts": 250},
    ])


def session_payload(**overrides):
    payload = {
        "date": "2026-10-10",
        "description": "Viernes",
        "income": {"tickets": 800, "web": 120},
        "paymentBreakdown": {
            "barra1": {"cash": 300, "card": 450.5},
            "vip": {"cash": 0, "card": 200},
        },
        "expenses": [{"description": "Hielo", "amount": 40}, {"description": "DJ", "amount": "150,5"}],
        "workedHours": [{"employeeId": "e1", "hours": 7.5}],
    }
    payload.update(overrides)
    return payload


class TestSaveSession:
    def test_breakdown_fixes_income_per_source(self, app):
        session = cash_session_service.save_session(session_payload())

        assert session.income == {"tickets": 800.0, "web": 120.0, "barra1": 750.5, "vip": 200.0}
        assert session.expenses[1] == {"description": "DJ", "amount": 150.5}
        assert session.to_dict()["date"] == "2026-10-10"

    def test_breakdown_overrides_sent_income(self, app):
        session = cash_session_service.save_session(
            session_payload(income={"barra1": 1}, paymentBreakdown={"barra1": {"cash": 5, "card": 5}})
        )
        assert session.income == {"barra1": 10.0}

    def test_unknown_income_source(self, app):
        with pytest.raises(ValidationError, match="unknown key"):
            cash_session_service.save_session(session_payload(income={"terraza": 10}))
        with pytest.raises(ValidationError, match="unknown key"):
            cash_session_service.save_session(session_payload(paymentBreakdown={"terraza": {"cash": 1}}))

    def test_registry_changes_are_respected(self, app):
        config_service.save_income_sources([{"id": "terraza", "label": "Terraza"}])
        session = cash_session_service.save_session(
            session_payload(income={"terraza": 10}, paymentBreakdown={})
        )
        assert session.income == {"terraza": 10.0}

    def test_negative_hours_and_missing_date(self, app):
        with pytest.raises(ValidationError):
            cash_session_service.save_session(session_payload(workedHours=[{"employeeId": "e1", "hours": -1}]))
        with pytest.raises(ValidationError, match="Missing required fields"):
            cash_session_service.save_session({"description": "Sin fecha"})

    def test_update_keeps_untouched_fields(self, app):
        session = cash_session_service.save_session(session_payload())
        updated = cash_session_service.save_session({"id": session.id, "description": "Viernes noche"})

        assert updated.description == "Viernes noche"
        assert updated.income["barra1"] == 750.5


def test_totals(app):
    session = cash_session_service.save_session(session_payload())
    totals = cash_session_service.session_totals(session.to_dict())

    assert totals["totalIncome"] == pytest.approx(1870.5)
    assert totals["totalExpenses"] == pytest.approx(190.5)
    assert totals["net"] == pytest.approx(1680.0)
    assert totals["totalCash"] == pytest.approx(300.0)
    assert totals["totalCard"] == pytest.approx(650.5)
    assert totals["labourCost"] == pytest.approx(90.0)
    assert totals["netAfterLabour"] == pytest.approx(1590.0)


def test_list_range_and_summary(app):
    cash_session_service.save_session(session_payload(date="2026-10-03"))
    cash_session_service.save_session(session_payload(date="2026-10-10"))
    cash_session_service.save_session(session_payload(date="2026-09-26"))

    sessions = cash_session_service.list_sessions(parse_iso_date("2026-10-01"), parse_iso_date("2026-10-31"))
    assert [s.date.isoformat() for s in sessions] == ["2026-10-10", "2026-10-03"]

    summary = cash_session_service.summarize_sessions(s.to_dict() for s in sessions)
    assert summary["sessions"] == 2
    assert summary["totalIncome"] == pytest.approx(3741.0)
    assert summary["labourCost"] == pytest.approx(180.0)


def test_delete_session(app):
    session = cash_session_service.save_session(session_payload())
    cash_session_service.delete_session(session.id)
    with pytest.raises(NotFoundError):
        cash_session_service.get_session(session.id)


class TestLabour:
    def test_worked_hours_must_reference_an_employee(self, app):
        with pytest.raises(ValidationError, match="unknown employee 'e9'"):
            cash_session_service.save_session(session_payload(workedHours=[{"employeeId": "e9", "hours": 3}]))
        assert cash_session_service.list_sessions() == []

    def test_salaried_hours_cost_nothing_per_hour(self, app):
        session = cash_session_service.save_session(session_payload(workedHours=[
            {"employeeId": "e1", "hours": 5},
            {"employeeId": "e2", "hours": 8},
        ]))
        assert cash_session_service.labour_cost(session.to_dict()) == pytest.approx(60.0)

    def test_removed_employee_costs_nothing(self, app):
        session = cash_session_service.save_session(session_payload())
        config_service.save_employees([{"id": "e2", "name": "Marcos", "type": "Salaried", "salary": 1800}])

        assert cash_session_service.session_totals(session.to_dict())["labourCost"] == 0
