# Overview: Flask CLI command groups for the operator: stores, analyses, history.

# backend/opstracker/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent). Use `flask db upgrade` for migrated installs.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load the starter beverage catalogue (skips items that already exist).
#
# Inventory:
# - python -m flask inventory list [--search vodka]
# - python -m flask inventory set-stock <item-id> "Barra 1" 12,5
# - python -m flask inventory bulk-update stock.csv --mode set|add
#   Apply "name, stock" lines to the primary location.
# - python -m flask inventory export [--output inventario.csv]
# - python -m flask inventory reset-stocks --yes
#   Emergency manual reset: every location to 0, no history record.
#
# Purchase orders:
# - python -m flask orders list
# - python -m flask orders complete <order-id> [--delivery-date 2026-10-16]
# - python -m flask orders cancel <order-id>
#
# Consumption analysis & history:
# - python -m flask analysis run
#   Save a consumption analysis, reset stock to 0, archive completed orders.
# - python -m flask analysis snapshot
# - python -m flask analysis history
# - python -m flask analysis report <record-id> [--threshold 0.001]
# - python -m flask analysis export <record-id> [--output file.csv]
# - python -m flask analysis clear-history --yes
#   Irreversible: delete every snapshot and analysis record.
#
# Cash sessions:
# - python -m flask sessions list [--start 2026-10-01] [--end 2026-10-31]
# - python -m flask sessions summary [--start ...] [--end ...]
# - python -m flask sessions staff
# - python -m flask sessions set-staff employees.json
#   Replace the employee registry (worked hours must reference these ids).

import json

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import InventoryItem
from .reconciliation import consumption_report
from .services import (
    cash_session_service,
    config_service,
    export_service,
    history_service,
    inventory_service,
    order_service,
    reconciliation_service,
)
from .time_utils import parse_iso_date, utcnow
from .validation import ConflictError, NotFoundError, ValidationError


# Starter catalogue (stock held in the primary warehouse)
SEED_ITEMS = [
    ("a1", "Absolut", "🧊 Vodka", "botella 750ml", 50),
    ("a2", "Beluga", "🧊 Vodka", "botella 750ml", 12),
    ("a3", "Belvedere", "🧊 Vodka", "botella 750ml", 15),
    ("a4", "Grey Goose", "🧊 Vodka", "botella 750ml", 18),
    ("a5", "Vozca Negro", "🧊 Vodka", "botella 750ml", 25),
    ("a6", "Bacardi 8", "🥥 Ron", "unidad", 0),
    ("a7", "Bacardi Carta Blanca 1Lt", "🥥 Ron", "unidad", 0),
    ("a8", "Bumbu Original", "🥥 Ron", "unidad", 0),
    ("a9", "Brugal", "🥥 Ron", "unidad", 0),
    ("a10", "Havana Club", "🥥 Ron", "unidad", 0),
    ("a11", "Malibu", "🥥 Ron", "unidad", 0),
    ("a12", "Sta Teresa Gran Reserva", "🥥 Ron", "unidad", 0),
    ("a13", "Sta Teresa 1796", "🥥 Ron", "unidad", 0),
]

OPERATOR_ERRORS = (ValidationError, NotFoundError, ConflictError, order_service.OrderStateError)


def _fail(message: str):
    click.echo(f"FAIL {message}")
    raise click.exceptions.Exit(1)


def _fmt(value) -> str:
    if value is None:
        return "-"
    return f"{float(value):g}"


def _parse_date_option(value, option_name):
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        _fail(f"{option_name} must be a date (YYYY-MM-DD)")


# ---------------------------------------------------------------------------
# system
# ---------------------------------------------------------------------------

@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (safe to run repeatedly)."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed')
@with_appcontext
def seed():
    """Load the starter catalogue. Existing ids are left alone."""
    primary = inventory_service.primary_location()
    created = 0
    for item_id, name, category, unit, stock in SEED_ITEMS:
        if db.session.get(InventoryItem, item_id) is not None:
            click.echo(f"WARN  Item '{name}' already exists, skipping...")
            continue
        stock_map = {loc: 0.0 for loc in inventory_service.get_locations()}
        stock_map[primary] = float(stock)
        inventory_service.save_item({
            "id": item_id,
            "name": name,
            "category": category,
            "unit": unit,
            "stockByLocation": stock_map,
        })
        created += 1
    click.echo(f"PASS Seeded {created} inventory items")


# ---------------------------------------------------------------------------
# inventory
# ---------------------------------------------------------------------------

@click.group('inventory')
def inventory_group():
    """Inventory item commands."""


@inventory_group.command('list')
@click.option('--search', default=None, help='Filter by name or category')
@with_appcontext
def list_inventory(search):
    """List items grouped by category with per-location stock."""
    items = inventory_service.search_items(search)
    if not items:
        click.echo("No inventory items found.")
        return

    for category, group in inventory_service.group_by_category(items).items():
        click.echo(f"\n{category}")
        click.echo("-" * 80)
        for item in group:
            locations = ", ".join(
                f"{loc}={_fmt(qty)}" for loc, qty in (item.stock_by_location or {}).items() if qty
            )
            click.echo(
                f"  {item.id:<38} {item.name:<28} total={_fmt(item.total_stock):<8} "
                f"{item.unit:<14} {locations}"
            )
    click.echo("")


@inventory_group.command('set-stock')
@click.argument('item_id')
@click.argument('location')
@click.argument('quantity')
@with_appcontext
def set_stock(item_id, location, quantity):
    """Set the counted stock of one item at one location."""
    try:
        item = inventory_service.set_item_stock(item_id, location, quantity)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS {item.name} @ {location} = {_fmt(item.stock_by_location.get(location))}")


@inventory_group.command('bulk-update')
@click.argument('sheet', type=click.File('r', encoding='utf-8'))
@click.option('--mode', type=click.Choice(['set', 'add']), default='set', show_default=True)
@with_appcontext
def bulk_update(sheet, mode):
    """Apply a "name, stock" sheet to the primary location."""
    updates = export_service.parse_stock_sheet(sheet.read())
    if not updates:
        _fail("The sheet has no rows")
    try:
        updated = inventory_service.bulk_update_stock(updates, mode=mode)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS Bulk update processed: {updated}/{len(updates)} items matched")


@inventory_group.command('export')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None)
@with_appcontext
def export_inventory(output):
    """Export current stock as CSV."""
    items = [item.to_dict() for item in inventory_service.list_items()]
    if not items:
        _fail("No hay artículos en el inventario para exportar.")
    path = output or export_service.inventory_filename(utcnow())
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(export_service.export_inventory_csv(items))
    click.echo(f"PASS Exported {len(items)} items to {path}")


@inventory_group.command('reset-stocks')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_stocks(yes):
    """Set every location of every item to 0 (no history record)."""
    if not yes:
        click.confirm("WARN This sets ALL stock to 0 without saving an analysis. Continue?", abort=True)
    try:
        items = inventory_service.reset_all_stocks()
    except SQLAlchemyError as e:
        current_app.logger.exception("Failed to reset stocks")
        _fail(str(e))
    click.echo(f"PASS Stock reset for {len(items)} items")


# ---------------------------------------------------------------------------
# orders
# ---------------------------------------------------------------------------

@click.group('orders')
def orders_group():
    """Purchase order commands."""


@orders_group.command('list')
@click.option('--status', type=click.Choice(sorted(order_service.ORDER_STATUSES)), default=None)
@with_appcontext
def list_orders(status):
    orders = order_service.list_orders()
    if status:
        orders = [o for o in orders if o.status == status]
    if not orders:
        click.echo("No purchase orders found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<38} {'Ordered':<11} {'Delivered':<11} {'Supplier':<20} {'Status':<10} {'Total'}")
    click.echo("=" * 100)
    for order in orders:
        delivered = order.delivery_date.isoformat() if order.delivery_date else "-"
        click.echo(
            f"{order.id:<38} {order.order_date.isoformat():<11} {delivered:<11} "
            f"{order.supplier_name[:20]:<20} {order.status:<10} {order.total_amount:.2f}"
        )
    click.echo("=" * 100 + "\n")


@orders_group.command('complete')
@click.argument('order_id')
@click.option('--delivery-date', default=None, help='YYYY-MM-DD (defaults to today)')
@with_appcontext
def complete_order(order_id, delivery_date):
    """Mark a pending order as received."""
    try:
        order = order_service.complete_order(order_id, delivery_date)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS Order {order.id} completed ({order.delivery_date.isoformat()})")


@orders_group.command('cancel')
@click.argument('order_id')
@with_appcontext
def cancel_order(order_id):
    try:
        order = order_service.cancel_order(order_id)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS Order {order.id} cancelled")


# ---------------------------------------------------------------------------
# analysis / history
# ---------------------------------------------------------------------------

@click.group('analysis')
def analysis_group():
    """Consumption analysis and inventory history commands."""


@analysis_group.command('run')
@with_appcontext
def run_analysis():
    """Save a consumption analysis, then reset stock and archive completed orders."""
    try:
        result = reconciliation_service.perform_analysis()
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    except SQLAlchemyError as e:
        current_app.logger.exception("Failed to run consumption analysis")
        _fail(str(e))

    record = result.record
    baseline = getattr(result.baseline, "record_id", None)
    click.echo(f"PASS {record['label']} saved as {record['id']}")
    click.echo(f"     Baseline: {baseline or 'none (first analysis)'}")
    click.echo(f"     Stock reset for {len(result.resets)} items, "
               f"{len(result.orders_to_archive)} orders archived")

    threshold = current_app.config["CONSUMPTION_DISPLAY_THRESHOLD"]
    _print_consumption(consumption_report(record, threshold))


@analysis_group.command('snapshot')
@with_appcontext
def snapshot():
    """Save a snapshot of current stock (no consumption, no reset)."""
    try:
        record = reconciliation_service.perform_snapshot()
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS {record.label} saved as {record.id}")


@analysis_group.command('history')
@with_appcontext
def history():
    records = history_service.list_records()
    if not records:
        click.echo("No inventory history.")
        return
    for record in records:
        click.echo(f"{record.id:<38} {record.type:<9} {len(record.lines):>4} items  {record.label}")


@analysis_group.command('report')
@click.argument('record_id')
@click.option('--threshold', type=float, default=None, help='Hide |consumption| at or below this')
@with_appcontext
def report(record_id, threshold):
    """Show the non-negligible consumption of a history record."""
    try:
        entries = reconciliation_service.record_consumption_report(record_id, threshold)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    _print_consumption(entries)


@analysis_group.command('export')
@click.argument('record_id')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None)
@with_appcontext
def export_record(record_id, output):
    try:
        record = history_service.get_record(record_id).to_dict()
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    path = output or export_service.record_filename(record)
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(export_service.export_record_csv(record))
    click.echo(f"PASS Exported record {record_id} to {path}")


@analysis_group.command('clear-history')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def clear_history(yes):
    """Irreversibly delete every snapshot and analysis record."""
    if not yes:
        click.confirm(
            "WARN This deletes ALL inventory history and analyses. This cannot be undone. Continue?",
            abort=True,
        )
    try:
        count = history_service.delete_all_records()
    except SQLAlchemyError as e:
        current_app.logger.exception("Failed to delete inventory history")
        _fail(str(e))
    click.echo(f"PASS Deleted {count} history records")


def _print_consumption(entries):
    if not entries:
        click.echo("No consumption to report.")
        return
    click.echo(f"\n{'Artículo':<28} {'Inicial':>9} {'Final':>9} {'Consumo':>9}")
    click.echo("-" * 60)
    for entry in entries:
        click.echo(
            f"{entry.get('name', '')[:28]:<28} {_fmt(entry.get('initialStock')):>9} "
            f"{_fmt(entry.get('endStock')):>9} {_fmt(entry.get('consumption')):>9}"
        )
    click.echo("")


# ---------------------------------------------------------------------------
# sessions
# ---------------------------------------------------------------------------

@click.group('sessions')
def sessions_group():
    """Cash register session commands."""


@sessions_group.command('list')
@click.option('--start', default=None, help='YYYY-MM-DD')
@click.option('--end', default=None, help='YYYY-MM-DD')
@with_appcontext
def list_sessions(start, end):
    sessions = cash_session_service.list_sessions(
        _parse_date_option(start, "--start"), _parse_date_option(end, "--end")
    )
    if not sessions:
        click.echo("No cash sessions found.")
        return
    rates = config_service.hourly_rates()
    for session in sessions:
        totals = cash_session_service.session_totals(session.to_dict(), rates)
        click.echo(
            f"{session.date.isoformat()}  {session.description[:30]:<30} "
            f"income={totals['totalIncome']:.2f} expenses={totals['totalExpenses']:.2f} "
            f"net={totals['net']:.2f} labour={totals['labourCost']:.2f}"
        )


@sessions_group.command('summary')
@click.option('--start', default=None, help='YYYY-MM-DD')
@click.option('--end', default=None, help='YYYY-MM-DD')
@with_appcontext
def summary(start, end):
    sessions = cash_session_service.list_sessions(
        _parse_date_option(start, "--start"), _parse_date_option(end, "--end")
    )
    totals = cash_session_service.summarize_sessions(s.to_dict() for s in sessions)
    click.echo(f"Sessions:  {totals['sessions']}")
    click.echo(f"Income:    {totals['totalIncome']:.2f} (cash {totals['totalCash']:.2f}, card {totals['totalCard']:.2f})")
    click.echo(f"Expenses:  {totals['totalExpenses']:.2f}")
    click.echo(f"Net:       {totals['net']:.2f}")
    click.echo(f"Labour:    {totals['labourCost']:.2f} (net after labour {totals['netAfterLabour']:.2f})")


@sessions_group.command('staff')
@with_appcontext
def staff():
    """List registered employees."""
    employees = config_service.get_employees()
    if not employees:
        click.echo("No employees registered.")
        return
    for e in employees:
        pay = f"{e['hourlyRate']:.2f}/h" if e["type"] == config_service.EMPLOYEE_HOURLY else f"{e['salary']:.2f}/mes"
        click.echo(f"{e['id']:<38} {e['name']:<24} {e['type']:<9} {pay:<12} other={e['otherCosts']:.2f}")


@sessions_group.command('set-staff')
@click.argument('employees_file', type=click.File('r', encoding='utf-8'))
@with_appcontext
def set_staff(employees_file):
    """Replace the employee registry from a JSON list."""
    try:
        employees = json.load(employees_file)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")
    try:
        saved = config_service.save_employees(employees)
    except OPERATOR_ERRORS as e:
        _fail(str(e))
    click.echo(f"PASS Saved {len(saved)} employees")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(analysis_group)
    app.cli.add_command(sessions_group)
