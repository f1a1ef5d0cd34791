"""Reservations that are released unless the enclosing block confirms them."""

import pytest
from protean import current_domain
from storefront.inventory import ledger
from storefront.inventory.catalog import RegisterProduct
from storefront.inventory.ledger import held_stock, load_products
from storefront.inventory.management import RegisterWarehouse, SetStock
from storefront.inventory.product import Product
from storefront.inventory.warehouse import HoldStatus, Warehouse
from storefront.shared.errors import InsufficientStock
from structlog.testing import CapturingLogger


class PaymentDeclined(Exception):
    pass


@pytest.fixture()
def setup():
    product_id = current_domain.process(
        RegisterProduct(name="Darjeeling Tea 250g", price=280.0, stock=10),
        asynchronous=False,
    )
    warehouse_id = current_domain.process(
        RegisterWarehouse(name="Kolkata Hub", pincode="700001"),
        asynchronous=False,
    )
    current_domain.process(
        SetStock(warehouse_id=warehouse_id, product_id=product_id, quantity=10),
        asynchronous=False,
    )
    lines = [{"product_id": product_id, "quantity": 4}]
    return warehouse_id, product_id, lines


def _warehouse(warehouse_id):
    return current_domain.repository_for(Warehouse).get(warehouse_id)


class TestHeldStock:
    def test_confirmed_block_commits(self, setup):
        warehouse_id, product_id, lines = setup

        with held_stock(_warehouse(warehouse_id), lines, load_products(lines), reference="ORD-7") as held:
            assert held.warehouse_id == warehouse_id
            held.confirm()

        warehouse = _warehouse(warehouse_id)
        assert warehouse.record_for(product_id).quantity == 6
        assert warehouse.record_for(product_id).reserved_quantity == 0
        assert warehouse.holds[0].status == HoldStatus.CONFIRMED.value
        assert current_domain.repository_for(Product).get(product_id).stock == 6

    def test_confirm_is_idempotent(self, setup):
        warehouse_id, product_id, lines = setup

        with held_stock(_warehouse(warehouse_id), lines, load_products(lines)) as held:
            held.confirm()
            held.confirm()

        assert _warehouse(warehouse_id).record_for(product_id).quantity == 6

    def test_failure_releases_reservation(self, setup):
        warehouse_id, product_id, lines = setup

        with pytest.raises(PaymentDeclined):
            with held_stock(_warehouse(warehouse_id), lines, load_products(lines), reference="ORD-8"):
                raise PaymentDeclined()

        warehouse = _warehouse(warehouse_id)
        assert warehouse.record_for(product_id).quantity == 10
        assert warehouse.record_for(product_id).reserved_quantity == 0
        assert warehouse.holds[0].status == HoldStatus.RELEASED.value

    def test_block_exit_without_confirm_releases(self, setup):
        warehouse_id, product_id, lines = setup

        with held_stock(_warehouse(warehouse_id), lines, load_products(lines)):
            assert _warehouse(warehouse_id).record_for(product_id).reserved_quantity == 4

        assert _warehouse(warehouse_id).record_for(product_id).reserved_quantity == 0

    def test_failed_release_is_logged_and_original_error_kept(self, setup, monkeypatch):
        warehouse_id, _, lines = setup
        capture = CapturingLogger()
        monkeypatch.setattr(ledger, "logger", capture)

        def broken_release(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(ledger, "release_stock", broken_release)

        with pytest.raises(PaymentDeclined):
            with held_stock(_warehouse(warehouse_id), lines, load_products(lines), reference="ORD-9"):
                raise PaymentDeclined()

        incidents = [c for c in capture.calls if c.method_name == "exception"]
        assert len(incidents) == 1
        assert incidents[0].kwargs["incident"] == "reconciliation"
        assert incidents[0].kwargs["reference"] == "ORD-9"


class TestHeldStockWithoutWarehouse:
    def test_confirm_decrements_product_counter(self, setup):
        _, product_id, lines = setup

        with held_stock(None, lines, load_products(lines)) as held:
            assert held.warehouse_id is None
            held.confirm()

        assert current_domain.repository_for(Product).get(product_id).stock == 6

    def test_counter_shortfall_raises(self, setup):
        _, product_id, _ = setup
        lines = [{"product_id": product_id, "quantity": 11}]

        with pytest.raises(InsufficientStock):
            with held_stock(None, lines, load_products(lines)) as held:
                held.confirm()

        assert current_domain.repository_for(Product).get(product_id).stock == 10
