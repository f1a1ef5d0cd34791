"""Warehouse aggregate (CQRS) — per-warehouse stock ledger.

Each warehouse owns one StockRecord per product it carries and the StockHold
entities that track open reservations against those records.

Stock Level Model:
    quantity:          Physical count in the warehouse
    reserved_quantity: Held for orders that have not been confirmed yet
    available:         quantity - reserved_quantity

Every mutation checks all requested lines before touching any record, so a
reservation either applies to every line or to none.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.inventory.events import (
    StockConfirmed,
    StockLevelSet,
    StockReleased,
    StockReserved,
    StockTransferredIn,
    StockTransferredOut,
    WarehouseDeactivated,
    WarehouseRegistered,
)
from storefront.shared.errors import InsufficientStock
from storefront.shared.lines import dump_lines

DEFAULT_HOLD_TTL_MINUTES = 15


class HoldStatus(Enum):
    ACTIVE = "Active"
    CONFIRMED = "Confirmed"
    RELEASED = "Released"
    EXPIRED = "Expired"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Warehouse")
class StockRecord:
    """Quantity of one product held at the warehouse."""

    product_id = Identifier(required=True)
    quantity = Integer(default=0, min_value=0)
    reserved_quantity = Integer(default=0, min_value=0)

    @property
    def available(self):
        return (self.quantity or 0) - (self.reserved_quantity or 0)


@storefront.entity(part_of="Warehouse")
class StockHold:
    """An open or settled reservation against this warehouse's records.

    ACTIVE holds expire after ``expires_at``; the sweep returns their lines to
    availability and marks them EXPIRED.
    """

    reference = String(max_length=255)
    lines = Text(required=True)  # JSON list of {product_id, quantity}
    status = String(choices=HoldStatus, default=HoldStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)
    settled_at = DateTime()

    def line_items(self):
        return json.loads(self.lines)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Warehouse:
    """A fulfillment location and its stock ledger."""

    name = String(required=True, max_length=255)
    city = String(max_length=100)
    pincode = String(required=True, max_length=20)
    zone = String(max_length=100)
    is_active = Boolean(default=True)
    stock_records = HasMany(StockRecord)
    holds = HasMany(StockHold)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def reserved_never_exceeds_quantity(self):
        for record in self.stock_records or []:
            if (record.reserved_quantity or 0) > (record.quantity or 0):
                raise ValidationError(
                    {"reserved_quantity": [f"Reserved quantity exceeds quantity for product {record.product_id}"]}
                )

    @classmethod
    def register(cls, name, pincode, city=None, zone=None):
        now = datetime.now(UTC)
        warehouse = cls(
            name=name,
            city=city,
            pincode=pincode,
            zone=zone,
            created_at=now,
            updated_at=now,
        )
        warehouse.raise_(
            WarehouseRegistered(
                warehouse_id=str(warehouse.id),
                name=name,
                city=city,
                pincode=pincode,
                zone=zone,
                registered_at=now,
            )
        )
        return warehouse

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"warehouse": ["Warehouse is already inactive"]})
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            WarehouseDeactivated(
                warehouse_id=str(self.id),
                deactivated_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def record_for(self, product_id):
        return next(
            (r for r in (self.stock_records or []) if str(r.product_id) == str(product_id)),
            None,
        )

    def available_for(self, product_id):
        record = self.record_for(product_id)
        return record.available if record else 0

    def can_fulfill(self, lines):
        """True if every line fits in this warehouse's available stock."""
        return all(self.available_for(line["product_id"]) >= line["quantity"] for line in lines)

    def held_quantity(self, product_id):
        """Units of ``product_id`` tied up in ACTIVE holds."""
        return sum(
            line["quantity"]
            for hold in (self.holds or [])
            if hold.status == HoldStatus.ACTIVE.value
            for line in hold.line_items()
            if str(line["product_id"]) == str(product_id)
        )

    def _active_hold(self, reference=None, hold_id=None):
        for hold in self.holds or []:
            if hold.status != HoldStatus.ACTIVE.value:
                continue
            if hold_id and str(hold.id) == str(hold_id):
                return hold
            if not hold_id and reference and hold.reference == reference:
                return hold
        return None

    def _hold_for(self, lines, reference=None, hold_id=None):
        """The ACTIVE hold named by ``hold_id`` or ``reference``, whose lines must equal ``lines``.

        A hold is settled as a whole; partial confirms and releases are refused.
        """
        if not hold_id and not reference:
            raise ValidationError({"hold_id": ["A hold id or reference is required"]})

        hold = self._active_hold(reference=reference, hold_id=hold_id)
        if hold is None:
            raise ValidationError({"items": [f"No matching reservation for {hold_id or reference}"]})

        requested = {str(line["product_id"]): line["quantity"] for line in lines}
        held = {str(line["product_id"]): line["quantity"] for line in hold.line_items()}
        if requested != held:
            raise ValidationError({"items": [f"Lines do not match the reservation for {hold_id or reference}"]})

        for line in lines:
            record = self.record_for(line["product_id"])
            if record is None or record.reserved_quantity < line["quantity"]:
                raise ValidationError({"items": [f"No matching reservation for product {line['product_id']}"]})
        return hold

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def set_stock(self, product_id, quantity, reserved_quantity=None):
        """Create or overwrite the record for ``product_id``."""
        if quantity is None or quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if reserved_quantity is not None and reserved_quantity < 0:
            raise ValidationError({"reserved_quantity": ["Reserved quantity cannot be negative"]})

        record = self.record_for(product_id)
        reserved = reserved_quantity if reserved_quantity is not None else (record.reserved_quantity if record else 0)
        if reserved > quantity:
            raise ValidationError({"reserved_quantity": ["Reserved quantity cannot exceed quantity"]})
        held = self.held_quantity(product_id)
        if reserved < held:
            raise ValidationError({"reserved_quantity": [f"Active reservations hold {held} units of this product"]})

        with atomic_change(self):
            if record is None:
                self.add_stock_records(
                    StockRecord(product_id=str(product_id), quantity=quantity, reserved_quantity=reserved)
                )
            else:
                record.quantity = quantity
                record.reserved_quantity = reserved

        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockLevelSet(
                warehouse_id=str(self.id),
                product_id=str(product_id),
                quantity=quantity,
                reserved_quantity=reserved,
                set_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Reserve / confirm / release
    # -------------------------------------------------------------------
    def reserve(self, lines, reference=None, ttl_minutes=DEFAULT_HOLD_TTL_MINUTES):
        """Hold stock for every line, or fail without touching any record."""
        if not self.is_active:
            raise ValidationError({"warehouse": ["Warehouse is inactive"]})

        shortfalls = [
            f"Insufficient stock for product {line['product_id']}: "
            f"available {self.available_for(line['product_id'])}, requested {line['quantity']}"
            for line in lines
            if self.available_for(line["product_id"]) < line["quantity"]
        ]
        if reference and self._active_hold(reference=reference) is not None:
            raise ValidationError({"reference": [f"An active reservation already exists for {reference}"]})

        if shortfalls:
            raise InsufficientStock({"items": shortfalls})

        now = datetime.now(UTC)
        hold = StockHold(
            id=str(uuid4()),
            reference=reference or None,
            lines=dump_lines(lines),
            status=HoldStatus.ACTIVE.value,
            reserved_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
        with atomic_change(self):
            for line in lines:
                record = self.record_for(line["product_id"])
                record.reserved_quantity = record.reserved_quantity + line["quantity"]
            self.add_holds(hold)

        self.updated_at = now
        self.raise_(
            StockReserved(
                warehouse_id=str(self.id),
                hold_id=str(hold.id),
                reference=reference,
                lines=hold.lines,
                expires_at=hold.expires_at,
            )
        )
        return hold

    def confirm(self, lines, reference=None, hold_id=None):
        """Turn the stock of one ACTIVE hold into a permanent decrement."""
        hold = self._hold_for(lines, reference=reference, hold_id=hold_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            for line in lines:
                record = self.record_for(line["product_id"])
                record.reserved_quantity = record.reserved_quantity - line["quantity"]
                record.quantity = record.quantity - line["quantity"]
            hold.status = HoldStatus.CONFIRMED.value
            hold.settled_at = now

        self.updated_at = now
        self.raise_(
            StockConfirmed(
                warehouse_id=str(self.id),
                hold_id=str(hold.id),
                reference=hold.reference,
                lines=hold.lines,
                confirmed_at=now,
            )
        )
        return hold

    def release(self, lines, reference=None, hold_id=None, reason=None):
        """Return the stock of one ACTIVE hold to availability; ``quantity`` is untouched."""
        hold = self._hold_for(lines, reference=reference, hold_id=hold_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            for line in lines:
                record = self.record_for(line["product_id"])
                record.reserved_quantity = record.reserved_quantity - line["quantity"]
            hold.status = HoldStatus.RELEASED.value
            hold.settled_at = now

        self.updated_at = now
        self.raise_(
            StockReleased(
                warehouse_id=str(self.id),
                hold_id=str(hold.id),
                reference=hold.reference,
                lines=hold.lines,
                reason=reason,
                released_at=now,
            )
        )
        return hold

    def expire_holds(self, now=None):
        """Release every ACTIVE hold whose expiry has passed. Returns the count."""
        now = now or datetime.now(UTC)
        expired = [
            h for h in (self.holds or []) if h.status == HoldStatus.ACTIVE.value and h.expires_at <= now
        ]
        if not expired:
            return 0

        with atomic_change(self):
            for hold in expired:
                for line in hold.line_items():
                    record = self.record_for(line["product_id"])
                    if record is not None:
                        record.reserved_quantity = max(0, record.reserved_quantity - line["quantity"])
                hold.status = HoldStatus.EXPIRED.value
                hold.settled_at = now

        self.updated_at = now
        for hold in expired:
            self.raise_(
                StockReleased(
                    warehouse_id=str(self.id),
                    hold_id=str(hold.id),
                    reference=hold.reference,
                    lines=hold.lines,
                    reason="expired",
                    released_at=now,
                )
            )
        return len(expired)

    # -------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------
    def transfer_out(self, destination_id, product_id, quantity):
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Transfer quantity must be positive"]})
        available = self.available_for(product_id)
        if available < quantity:
            raise InsufficientStock(
                {"quantity": [f"Insufficient available stock: available {available}, requested {quantity}"]}
            )

        record = self.record_for(product_id)
        record.quantity = record.quantity - quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockTransferredOut(
                warehouse_id=str(self.id),
                destination_warehouse_id=str(destination_id),
                product_id=str(product_id),
                quantity=quantity,
                transferred_at=self.updated_at,
            )
        )

    def transfer_in(self, source_id, product_id, quantity):
        record = self.record_for(product_id)
        if record is None:
            self.add_stock_records(StockRecord(product_id=str(product_id), quantity=quantity, reserved_quantity=0))
        else:
            record.quantity = record.quantity + quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockTransferredIn(
                warehouse_id=str(self.id),
                source_warehouse_id=str(source_id),
                product_id=str(product_id),
                quantity=quantity,
                transferred_at=self.updated_at,
            )
        )
