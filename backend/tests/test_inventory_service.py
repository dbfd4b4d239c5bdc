import pytest

from opstracker.reconciliation import StockReset
from opstracker.services import inventory_service
from opstracker.validation import NotFoundError, ValidationError


class TestSaveItem:
    def test_new_item_without_stock_starts_at_zero_everywhere(self, make_item):
        item = make_item("Absolut")

        assert item.id
        assert set(item.stock_by_location) == {"Almacén", "Barra 1", "Barra 2", "Barra 3", "Barra 4", "Restaurante"}
        assert item.total_stock == 0

    def test_client_id_is_kept_and_upserted(self, make_item):
        make_item("Absolut", {"Almacén": 3}, item_id="a1")
        updated = inventory_service.save_item({"id": "a1", "unit": "botella 1L"})

        assert updated.name == "Absolut"
        assert updated.unit == "botella 1L"
        assert updated.stock_by_location == {"Almacén": 3.0}
        assert len(inventory_service.list_items()) == 1

    def test_decimal_comma_stock(self, make_item):
        item = make_item("Absolut", {"Barra 1": "2,5"})
        assert item.stock_by_location == {"Barra 1": 2.5}

    def test_unknown_location_is_rejected(self, make_item):
        with pytest.raises(ValidationError, match="unknown key"):
            make_item("Absolut", {"Terraza": 1})

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValidationError, match="Field not allowed"):
            inventory_service.save_item({"name": "Absolut", "price": 10})

    def test_name_required_on_create(self):
        with pytest.raises(ValidationError, match="Missing required fields"):
            inventory_service.save_item({"category": "🧊 Vodka"})


def test_list_is_sorted_by_name(make_item):
    make_item("Grey Goose")
    make_item("Absolut")
    make_item("Beluga")

    assert [i.name for i in inventory_service.list_items()] == ["Absolut", "Beluga", "Grey Goose"]


def test_delete_item(make_item):
    item = make_item("Absolut")
    inventory_service.delete_item(item.id)

    with pytest.raises(NotFoundError):
        inventory_service.get_item(item.id)
    with pytest.raises(NotFoundError):
        inventory_service.delete_item(item.id)


def test_set_item_stock(make_item):
    item = make_item("Absolut", {"Almacén": 1})

    inventory_service.set_item_stock(item.id, "Barra 3", 4)
    assert inventory_service.get_item(item.id).stock_by_location == {"Almacén": 1.0, "Barra 3": 4.0}

    with pytest.raises(ValidationError):
        inventory_service.set_item_stock(item.id, "Terraza", 4)
    with pytest.raises(ValidationError):
        inventory_service.set_item_stock(item.id, "Barra 3", "mucho")


class TestBulkUpdate:
    def test_set_mode_overwrites_primary_location(self, make_item):
        item = make_item("Absolut", {"Almacén": 10, "Barra 1": 2})

        updated = inventory_service.bulk_update_stock([{"name": "absolut", "stock": 4}])

        assert updated == 1
        assert inventory_service.get_item(item.id).stock_by_location == {"Almacén": 4.0, "Barra 1": 2.0}

    def test_add_mode_adds_to_primary_location(self, make_item):
        item = make_item("Absolut", {"Barra 1": 2})

        inventory_service.bulk_update_stock([{"name": "Absolut", "stock": "1,5"}], mode="add")

        assert inventory_service.get_item(item.id).stock_by_location == {"Barra 1": 2.0, "Almacén": 1.5}

    def test_unknown_names_are_skipped(self, make_item, caplog):
        make_item("Absolut")

        updated = inventory_service.bulk_update_stock([{"name": "Ginebra X", "stock": 1}])

        assert updated == 0
        assert "Ginebra X" in caplog.text

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            inventory_service.bulk_update_stock([], mode="replace")


def test_search_and_group(make_item):
    make_item("Absolut", category="🧊 Vodka")
    make_item("Brugal", category="🥥 Ron")
    make_item("Beluga", category="🧊 Vodka")

    assert [i.name for i in inventory_service.search_items("ron")] == ["Brugal"]
    assert [i.name for i in inventory_service.search_items("BEL")] == ["Beluga"]
    assert len(inventory_service.search_items("")) == 3

    groups = inventory_service.group_by_category(inventory_service.list_items())
    assert list(groups) == ["🥥 Ron", "🧊 Vodka"]
    assert [i.name for i in groups["🧊 Vodka"]] == ["Absolut", "Beluga"]


def test_apply_stock_resets_collapses_to_primary(make_item):
    a = make_item("Absolut", {"Barra 1": 3, "Barra 2": 1})

    applied = inventory_service.apply_stock_resets([StockReset(a.id), StockReset("deleted-id")])

    assert applied == 1
    assert inventory_service.get_item(a.id).stock_by_location == {"Almacén": 0.0}


def test_reset_all_stocks_zeroes_every_location(make_item):
    a = make_item("Absolut", {"Barra 1": 3, "Almacén": 1})
    b = make_item("Beluga", {"Restaurante": 2})

    items = inventory_service.reset_all_stocks()

    assert len(items) == 2
    assert inventory_service.get_item(a.id).stock_by_location == {"Barra 1": 0.0, "Almacén": 0.0}
    assert inventory_service.get_item(b.id).stock_by_location == {"Restaurante": 0.0}


def test_non_finite_stock_is_rejected(make_item):
    with pytest.raises(ValidationError, match="finite"):
        make_item("Absolut", {"Almacén": "nan"})
    assert inventory_service.list_items() == []
