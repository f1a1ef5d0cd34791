import pytest
from protean import current_domain
from storefront.inventory.catalog import RegisterProduct
from storefront.inventory.management import RegisterWarehouse, SetStock


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture()
def warehouse_id():
    return current_domain.process(
        RegisterWarehouse(name="Bengaluru Central", pincode="560001"),
        asynchronous=False,
    )


@pytest.fixture()
def make_product(warehouse_id):
    """Register a product, stocking the same quantity at the warehouse unless told otherwise."""

    def _make(name="Basmati Rice 5kg", price=250.0, stock=10, warehouse_stock=None):
        product_id = current_domain.process(
            RegisterProduct(name=name, price=price, stock=stock),
            asynchronous=False,
        )
        quantity = stock if warehouse_stock is None else warehouse_stock
        if quantity:
            current_domain.process(
                SetStock(warehouse_id=warehouse_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )
        return product_id

    return _make
