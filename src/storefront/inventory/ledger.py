"""Stock ledger operations — reserve, confirm, release, transfer and the TTL sweep.

The module-level functions work on aggregates the caller has already loaded
and locked, so checkout and bulk approval can run them inside their own unit
of work. The commands at the bottom expose the same operations directly.

Every warehouse commit also moves the aggregate ``Product.stock`` counter in
the same unit of work.
"""

from contextlib import contextmanager
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.product import Product
from storefront.inventory.warehouse import DEFAULT_HOLD_TTL_MINUTES, Warehouse
from storefront.shared.errors import InsufficientStock
from storefront.shared.lines import parse_lines
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)


def product_lock_keys(lines):
    return [row_key("product", line["product_id"]) for line in lines]


def load_products(lines):
    repo = current_domain.repository_for(Product)
    return {line["product_id"]: repo.get(line["product_id"]) for line in lines}


def _sync_product_counters(lines, products):
    repo = current_domain.repository_for(Product)
    for line in lines:
        product = products[line["product_id"]]
        if product.stock < line["quantity"]:
            # The warehouse ledger wins; the aggregate counter is floored at zero.
            logger.warning(
                "Product stock counter behind warehouse ledger",
                product_id=line["product_id"],
                counter=product.stock,
                committed=line["quantity"],
            )
            product.set_stock(0)
        else:
            product.decrement_stock(line["quantity"])
        repo.add(product)


def reserve_stock(warehouse, lines, reference=None, ttl_minutes=DEFAULT_HOLD_TTL_MINUTES):
    hold = warehouse.reserve(lines, reference=reference, ttl_minutes=ttl_minutes)
    current_domain.repository_for(Warehouse).add(warehouse)
    logger.info(
        "Stock reserved",
        warehouse_id=str(warehouse.id),
        reference=reference,
        lines=len(lines),
    )
    return hold


def confirm_stock(warehouse, lines, products, reference=None, hold_id=None):
    warehouse.confirm(lines, reference=reference, hold_id=hold_id)
    current_domain.repository_for(Warehouse).add(warehouse)
    _sync_product_counters(lines, products)
    logger.info("Stock confirmed", warehouse_id=str(warehouse.id), reference=reference)


def release_stock(warehouse, lines, reference=None, reason=None, hold_id=None):
    warehouse.release(lines, reference=reference, hold_id=hold_id, reason=reason)
    current_domain.repository_for(Warehouse).add(warehouse)
    logger.info("Stock released", warehouse_id=str(warehouse.id), reference=reference, reason=reason)


def commit_without_warehouse(lines, products):
    """Guarded decrement of ``Product.stock`` when no warehouse can fulfill the lines."""
    shortfalls = [
        f"Insufficient stock for {products[line['product_id']].name}"
        for line in lines
        if not products[line["product_id"]].has_stock(line["quantity"])
    ]
    if shortfalls:
        raise InsufficientStock({"items": shortfalls})

    repo = current_domain.repository_for(Product)
    for line in lines:
        product = products[line["product_id"]]
        product.decrement_stock(line["quantity"])
        repo.add(product)


class HeldStock:
    """Stock reserved for the duration of a ``held_stock`` block."""

    def __init__(self, warehouse, lines, products, reference, hold=None):
        self.warehouse = warehouse
        self.hold = hold
        self.lines = lines
        self.products = products
        self.reference = reference
        self.confirmed = False

    @property
    def warehouse_id(self):
        return str(self.warehouse.id) if self.warehouse is not None else None

    def confirm(self):
        if self.confirmed:
            return
        if self.warehouse is not None:
            confirm_stock(
                self.warehouse, self.lines, self.products, reference=self.reference, hold_id=self.hold.id
            )
        else:
            commit_without_warehouse(self.lines, self.products)
        self.confirmed = True


@contextmanager
def held_stock(warehouse, lines, products, reference=None):
    """Reserve ``lines`` at ``warehouse`` and release them unless confirmed.

    With no warehouse nothing is reserved up front; ``confirm`` then falls
    back to the guarded aggregate counter. A failing release is logged as a
    reconciliation incident and the original error keeps propagating.
    """
    hold = reserve_stock(warehouse, lines, reference=reference) if warehouse is not None else None
    held = HeldStock(warehouse, lines, products, reference, hold=hold)
    try:
        yield held
    finally:
        if warehouse is not None and not held.confirmed:
            try:
                release_stock(warehouse, lines, reference=reference, reason="checkout_aborted", hold_id=hold.id)
            except Exception:
                logger.exception(
                    "Failed to release reserved stock",
                    incident="reconciliation",
                    warehouse_id=str(warehouse.id),
                    hold_id=str(hold.id),
                    reference=reference,
                    lines=lines,
                )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="Warehouse")
class ReserveStock:
    warehouse_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity}
    reference = String(max_length=255)
    ttl_minutes = Integer(default=DEFAULT_HOLD_TTL_MINUTES, min_value=1)


@storefront.command(part_of="Warehouse")
class ConfirmStock:
    warehouse_id = Identifier(required=True)
    items = Text(required=True)
    hold_id = Identifier()
    reference = String(max_length=255)


@storefront.command(part_of="Warehouse")
class ReleaseStock:
    warehouse_id = Identifier(required=True)
    items = Text(required=True)
    hold_id = Identifier()
    reference = String(max_length=255)
    reason = String(max_length=255)


@storefront.command(part_of="Warehouse")
class TransferStock:
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Warehouse")
class ReleaseExpiredHolds:
    """Sweep every warehouse for reservations past their expiry."""

    as_of = DateTime()


@storefront.command_handler(part_of=Warehouse)
class StockLedgerHandler:
    @handle(ReserveStock)
    def reserve(self, command):
        lines = parse_lines(command.items)
        with row_locks(row_key("warehouse", command.warehouse_id)):
            warehouse = current_domain.repository_for(Warehouse).get(command.warehouse_id)
            hold = reserve_stock(
                warehouse,
                lines,
                reference=command.reference,
                ttl_minutes=command.ttl_minutes or DEFAULT_HOLD_TTL_MINUTES,
            )
        return str(hold.id)

    @handle(ConfirmStock)
    def confirm(self, command):
        lines = parse_lines(command.items)
        with row_locks(row_key("warehouse", command.warehouse_id), *product_lock_keys(lines)):
            warehouse = current_domain.repository_for(Warehouse).get(command.warehouse_id)
            products = load_products(lines)
            confirm_stock(warehouse, lines, products, reference=command.reference, hold_id=command.hold_id)

    @handle(ReleaseStock)
    def release(self, command):
        lines = parse_lines(command.items)
        with row_locks(row_key("warehouse", command.warehouse_id)):
            warehouse = current_domain.repository_for(Warehouse).get(command.warehouse_id)
            release_stock(
                warehouse, lines, reference=command.reference, reason=command.reason, hold_id=command.hold_id
            )

    @handle(TransferStock)
    def transfer(self, command):
        if str(command.from_warehouse_id) == str(command.to_warehouse_id):
            raise ValidationError({"to_warehouse_id": ["Source and destination must differ"]})

        with row_locks(
            row_key("warehouse", command.from_warehouse_id),
            row_key("warehouse", command.to_warehouse_id),
        ):
            repo = current_domain.repository_for(Warehouse)
            source = repo.get(command.from_warehouse_id)
            destination = repo.get(command.to_warehouse_id)

            source.transfer_out(destination.id, command.product_id, command.quantity)
            destination.transfer_in(source.id, command.product_id, command.quantity)
            repo.add(source)
            repo.add(destination)

        logger.info(
            "Stock transferred",
            from_warehouse_id=str(command.from_warehouse_id),
            to_warehouse_id=str(command.to_warehouse_id),
            product_id=str(command.product_id),
            quantity=command.quantity,
        )

    @handle(ReleaseExpiredHolds)
    def release_expired(self, command):
        now = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Warehouse)
        released = 0
        for warehouse_id in [str(w.id) for w in repo._dao.query.all().items]:
            with row_locks(row_key("warehouse", warehouse_id)):
                warehouse = repo.get(warehouse_id)
                count = warehouse.expire_holds(now)
                if count:
                    repo.add(warehouse)
                    released += count

        if released:
            logger.info("Expired stock holds released", count=released)
        return released
