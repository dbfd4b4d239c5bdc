"""
Pytest fixtures for opstracker backend tests.

Provides an in-memory app per test, a CLI runner and small factories for
items and purchase orders.
"""

from datetime import datetime

import pytest

from opstracker import create_app
from opstracker.extensions import db
from opstracker.services import inventory_service, order_service


LOCATIONS = ("Almacén", "Barra 1", "Barra 2", "Barra 3", "Barra 4", "Restaurante")


@pytest.fixture(scope='function')
def app():
    """Create application for testing with a fresh schema."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'INVENTORY_LOCATIONS': LOCATIONS,
        'PRIMARY_LOCATION': 'Almacén',
        'CONSUMPTION_DISPLAY_THRESHOLD': 0.001,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def runner(app):
    """Click runner for the flask CLI commands."""
    return app.test_cli_runner()


@pytest.fixture
def make_item(app):
    """Create an inventory item. stock is a {location: qty} map."""
    def _make(name, stock=None, *, item_id=None, category="🧊 Vodka", unit="botella 750ml"):
        payload = {"name": name, "category": category, "unit": unit}
        if item_id:
            payload["id"] = item_id
        if stock is not None:
            payload["stockByLocation"] = stock
        return inventory_service.save_item(payload)
    return _make


@pytest.fixture
def make_order(app):
    """Create a purchase order. lines are (item_id, quantity, cost) tuples."""
    def _make(lines, *, status=None, supplier="Distribuciones Norte", order_date="2026-10-01"):
        payload = {
            "orderDate": order_date,
            "supplierName": supplier,
            "items": [
                {"inventoryItemId": item_id, "quantity": qty, "costAtTimeOfPurchase": cost}
                for item_id, qty, cost in lines
            ],
        }
        if status:
            payload["status"] = status
        return order_service.save_order(payload)
    return _make


@pytest.fixture
def week():
    """Three fixed instants a week apart (analysis dates)."""
    return [datetime(2026, 10, 2, 22, 0), datetime(2026, 10, 9, 22, 0), datetime(2026, 10, 16, 22, 0)]
