"""
Operator CLI: flask system / inventory / orders / analysis / sessions.
"""

import json

from opstracker.cli import SEED_ITEMS
from opstracker.services import (
    cash_session_service,
    config_service,
    history_service,
    inventory_service,
    order_service,
)


def test_seed_is_idempotent(runner):
    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0
    assert f"PASS Seeded {len(SEED_ITEMS)} inventory items" in result.output

    again = runner.invoke(args=["system", "seed"])
    assert "PASS Seeded 0 inventory items" in again.output
    assert inventory_service.get_item("a1").stock_by_location["Almacén"] == 50


def test_reset_db_requires_confirmation(runner, make_item):
    make_item("Absolut")

    aborted = runner.invoke(args=["system", "reset-db"], input="n\n")
    assert aborted.exit_code == 1
    assert len(inventory_service.list_items()) == 1

    result = runner.invoke(args=["system", "reset-db", "--yes"])
    assert result.exit_code == 0
    assert inventory_service.list_items() == []


def test_inventory_list_and_search(runner, make_item):
    make_item("Absolut", {"Barra 1": 3})
    make_item("Brugal", category="🥥 Ron")

    result = runner.invoke(args=["inventory", "list", "--search", "vodka"])

    assert result.exit_code == 0
    assert "Absolut" in result.output
    assert "Barra 1=3" in result.output
    assert "Brugal" not in result.output


def test_set_stock_reports_failures(runner, make_item):
    item = make_item("Absolut")

    ok = runner.invoke(args=["inventory", "set-stock", item.id, "Barra 2", "4,5"])
    assert ok.exit_code == 0
    assert inventory_service.get_item(item.id).stock_by_location["Barra 2"] == 4.5

    bad = runner.invoke(args=["inventory", "set-stock", item.id, "Terraza", "1"])
    assert bad.exit_code == 1
    assert "FAIL Unknown location: Terraza" in bad.output

    missing = runner.invoke(args=["inventory", "set-stock", "nope", "Barra 2", "1"])
    assert missing.exit_code == 1
    assert "FAIL" in missing.output


def test_bulk_update_from_sheet(runner, make_item, tmp_path):
    item = make_item("Absolut", {"Almacén": 1})
    sheet = tmp_path / "stock.csv"
    sheet.write_text("absolut, 2,5\nDesconocido, 3\n", encoding="utf-8")

    result = runner.invoke(args=["inventory", "bulk-update", str(sheet), "--mode", "add"])

    assert result.exit_code == 0
    assert "1/2 items matched" in result.output
    assert inventory_service.get_item(item.id).stock_by_location["Almacén"] == 3.5


def test_inventory_export(runner, make_item, tmp_path):
    make_item("Absolut", {"Almacén": 2})
    target = tmp_path / "inventario.csv"

    result = runner.invoke(args=["inventory", "export", "--output", str(target)])

    assert result.exit_code == 0
    assert "Absolut" in target.read_text(encoding="utf-8")


def test_reset_stocks(runner, make_item):
    item = make_item("Absolut", {"Almacén": 2, "Barra 1": 1})

    aborted = runner.invoke(args=["inventory", "reset-stocks"], input="n\n")
    assert aborted.exit_code == 1
    assert inventory_service.get_item(item.id).total_stock == 3

    result = runner.invoke(args=["inventory", "reset-stocks", "--yes"])
    assert result.exit_code == 0
    assert inventory_service.get_item(item.id).stock_by_location == {"Almacén": 0.0, "Barra 1": 0.0}
    assert history_service.list_records() == []


def test_order_commands(runner, make_item, make_order):
    make_item("Absolut", item_id="a1")
    order = make_order([("a1", 6, 10)])

    listed = runner.invoke(args=["orders", "list", "--status", "Pending"])
    assert order.id in listed.output

    done = runner.invoke(args=["orders", "complete", order.id, "--delivery-date", "2026-10-05"])
    assert done.exit_code == 0
    assert order_service.get_order(order.id).status == "Completed"

    again = runner.invoke(args=["orders", "cancel", order.id])
    assert again.exit_code == 1
    assert "FAIL Cannot cancel order in Completed status" in again.output


def test_analysis_run_history_report_and_clear(runner, make_item, make_order, tmp_path):
    absolut = make_item("Absolut", {"Almacén": 10}, item_id="a1")
    make_item("Beluga", {"Almacén": 0})
    order = make_order([("a1", 12, 10)], status="Completed")

    result = runner.invoke(args=["analysis", "run"])

    assert result.exit_code == 0, result.output
    assert "Baseline: none (first analysis)" in result.output
    assert "1 orders archived" in result.output
    assert "Absolut" in result.output
    assert inventory_service.get_item(absolut.id).total_stock == 0
    assert order_service.get_order(order.id).status == "Archived"

    record = history_service.list_records()[0]
    history = runner.invoke(args=["analysis", "history"])
    assert record.id in history.output

    report = runner.invoke(args=["analysis", "report", record.id])
    assert "Absolut" in report.output
    assert "Beluga" not in report.output

    target = tmp_path / "analisis.csv"
    exported = runner.invoke(args=["analysis", "export", record.id, "--output", str(target)])
    assert exported.exit_code == 0
    assert "Absolut;botella 750ml;10;12;12;10;2,00" in target.read_text(encoding="utf-8")

    cleared = runner.invoke(args=["analysis", "clear-history", "--yes"])
    assert "PASS Deleted 1 history records" in cleared.output
    assert history_service.list_records() == []


def test_analysis_on_empty_inventory_fails(runner):
    result = runner.invoke(args=["analysis", "run"])
    assert result.exit_code == 1
    assert "FAIL Nothing to save" in result.output

    snap = runner.invoke(args=["analysis", "snapshot"])
    assert snap.exit_code == 1


def test_snapshot_command(runner, make_item):
    make_item("Absolut", {"Almacén": 4})

    result = runner.invoke(args=["analysis", "snapshot"])

    assert result.exit_code == 0
    assert "PASS Inventario (" in result.output
    assert inventory_service.list_items()[0].total_stock == 4


def test_sessions_summary(runner, app):
    cash_session_service.save_session({
        "date": "2026-10-10",
        "description": "Viernes",
        "paymentBreakdown": {"barra1": {"cash": 100, "card": 50}},
        "expenses": [{"description": "Hielo", "amount": 30}],
    })

    listed = runner.invoke(args=["sessions", "list", "--start", "2026-10-01"])
    assert "2026-10-10" in listed.output
    assert "net=120.00" in listed.output

    summary = runner.invoke(args=["sessions", "summary"])
    assert "Sessions:  1" in summary.output
    assert "Income:    150.00 (cash 100.00, card 50.00)" in summary.output

    bad = runner.invoke(args=["sessions", "list", "--start", "octubre"])
    assert bad.exit_code == 1


def test_staff_and_labour_cost(runner, tmp_path):
    staff_file = tmp_path / "employees.json"
    staff_file.write_text(json.dumps([
        {"id": "e1", "name": "Lucía", "type": "Hourly", "hourlyRate": 12},
        {"id": "e2", "name": "Marcos", "type": "Salaried", "salary": 1800},
    ]), encoding="utf-8")

    saved = runner.invoke(args=["sessions", "set-staff", str(staff_file)])
    assert saved.exit_code == 0
    assert "PASS Saved 2 employees" in saved.output
    assert config_service.employee_ids()

    listed = runner.invoke(args=["sessions", "staff"])
    assert "12.00/h" in listed.output
    assert "1800.00/mes" in listed.output

    cash_session_service.save_session({
        "date": "2026-10-10",
        "paymentBreakdown": {"barra1": {"cash": 100, "card": 50}},
        "workedHours": [{"employeeId": "e1", "hours": 5}, {"employeeId": "e2", "hours": 8}],
    })
    summary = runner.invoke(args=["sessions", "summary"])
    assert "Labour:    60.00 (net after labour 90.00)" in summary.output

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"id": "e1", "name": "Lucía", "type": "Freelance"}]), encoding="utf-8")
    rejected = runner.invoke(args=["sessions", "set-staff", str(bad)])
    assert rejected.exit_code == 1
    assert "FAIL" in rejected.output
    assert sorted(config_service.employee_ids()) == ["e1", "e2"]
