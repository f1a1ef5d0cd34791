"""Tests for the Warehouse aggregate and its stock ledger."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
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
from storefront.inventory.warehouse import HoldStatus, StockRecord, Warehouse
from storefront.shared.errors import InsufficientStock


def _make_warehouse(**overrides):
    defaults = {
        "name": "Bengaluru Central",
        "pincode": "560001",
        "city": "Bengaluru",
        "zone": "South",
    }
    defaults.update(overrides)
    return Warehouse.register(**defaults)


def _stocked_warehouse(stock=None):
    wh = _make_warehouse()
    for product_id, quantity in (stock or {"prod-a": 10}).items():
        wh.set_stock(product_id, quantity)
    wh._events.clear()
    return wh


class TestWarehouseRegistration:
    def test_register_sets_fields(self):
        wh = _make_warehouse()
        assert wh.name == "Bengaluru Central"
        assert wh.pincode == "560001"
        assert wh.city == "Bengaluru"
        assert wh.zone == "South"

    def test_register_is_active_by_default(self):
        wh = _make_warehouse()
        assert wh.is_active is True

    def test_register_sets_timestamps(self):
        wh = _make_warehouse()
        assert wh.created_at is not None
        assert wh.updated_at is not None

    def test_register_raises_event(self):
        wh = _make_warehouse()
        assert len(wh._events) == 1
        assert isinstance(wh._events[0], WarehouseRegistered)
        assert wh._events[0].pincode == "560001"

    def test_pincode_is_required(self):
        with pytest.raises(ValidationError):
            Warehouse.register(name="No Pincode", pincode=None)


class TestWarehouseDeactivation:
    def test_deactivate(self):
        wh = _make_warehouse()
        wh._events.clear()
        wh.deactivate()
        assert wh.is_active is False
        assert isinstance(wh._events[0], WarehouseDeactivated)

    def test_deactivate_twice_fails(self):
        wh = _make_warehouse()
        wh.deactivate()
        with pytest.raises(ValidationError, match="already inactive"):
            wh.deactivate()


class TestSetStock:
    def test_creates_record(self):
        wh = _make_warehouse()
        wh.set_stock("prod-a", 10)
        record = wh.record_for("prod-a")
        assert record.quantity == 10
        assert record.reserved_quantity == 0
        assert record.available == 10

    def test_overwrites_existing_record(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.set_stock("prod-a", 25)
        assert len(wh.stock_records) == 1
        assert wh.record_for("prod-a").quantity == 25

    def test_keeps_reserved_when_not_given(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 3}])
        wh.set_stock("prod-a", 20)
        assert wh.record_for("prod-a").reserved_quantity == 3

    def test_negative_quantity_rejected(self):
        wh = _make_warehouse()
        with pytest.raises(ValidationError, match="cannot be negative"):
            wh.set_stock("prod-a", -1)

    def test_reserved_above_quantity_rejected(self):
        wh = _make_warehouse()
        with pytest.raises(ValidationError, match="cannot exceed quantity"):
            wh.set_stock("prod-a", 5, reserved_quantity=6)

    def test_raises_stock_level_set(self):
        wh = _make_warehouse()
        wh._events.clear()
        wh.set_stock("prod-a", 10)
        assert isinstance(wh._events[0], StockLevelSet)


class TestReserve:
    def test_reserve_increments_reserved(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        record = wh.record_for("prod-a")
        assert record.reserved_quantity == 4
        assert record.quantity == 10
        assert wh.available_for("prod-a") == 6

    def test_reserve_records_active_hold(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        assert hold.status == HoldStatus.ACTIVE.value
        assert hold.reference == "ORD-1"
        assert hold.line_items() == [{"product_id": "prod-a", "quantity": 4}]
        assert hold.expires_at - hold.reserved_at == timedelta(minutes=15)

    def test_reserve_uses_custom_ttl(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 1}], ttl_minutes=5)
        assert hold.expires_at - hold.reserved_at == timedelta(minutes=5)

    def test_reserve_raises_event(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        event = wh._events[-1]
        assert isinstance(event, StockReserved)
        assert event.hold_id == str(hold.id)
        assert event.reference == "ORD-1"

    def test_shortfall_on_any_line_changes_nothing(self):
        wh = _stocked_warehouse({"prod-a": 10, "prod-b": 2})
        with pytest.raises(InsufficientStock):
            wh.reserve(
                [
                    {"product_id": "prod-a", "quantity": 5},
                    {"product_id": "prod-b", "quantity": 3},
                ]
            )
        assert wh.record_for("prod-a").reserved_quantity == 0
        assert wh.record_for("prod-b").reserved_quantity == 0
        assert not wh.holds

    def test_unknown_product_is_a_shortfall(self):
        wh = _stocked_warehouse({"prod-a": 10})
        with pytest.raises(InsufficientStock):
            wh.reserve([{"product_id": "prod-missing", "quantity": 1}])

    def test_reserved_stock_is_not_available_twice(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 7}])
        with pytest.raises(InsufficientStock):
            wh.reserve([{"product_id": "prod-a", "quantity": 4}])

    def test_inactive_warehouse_cannot_reserve(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.deactivate()
        with pytest.raises(ValidationError, match="inactive"):
            wh.reserve([{"product_id": "prod-a", "quantity": 1}])


class TestConfirm:
    def test_confirm_by_hold_id(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        wh.confirm([{"product_id": "prod-a", "quantity": 4}], hold_id=hold.id)
        record = wh.record_for("prod-a")
        assert record.quantity == 6
        assert record.reserved_quantity == 0
        assert hold.status == HoldStatus.CONFIRMED.value

    def test_confirm_by_reference_marks_hold(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        wh.confirm([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        assert hold.status == HoldStatus.CONFIRMED.value
        assert hold.settled_at is not None
        event = wh._events[-1]
        assert isinstance(event, StockConfirmed)
        assert event.hold_id == str(hold.id)

    def test_confirm_needs_a_hold_id_or_reference(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        with pytest.raises(ValidationError, match="hold id or reference"):
            wh.confirm([{"product_id": "prod-a", "quantity": 4}])
        assert wh.record_for("prod-a").reserved_quantity == 4

    def test_confirm_without_reservation_fails(self):
        wh = _stocked_warehouse({"prod-a": 10})
        with pytest.raises(ValidationError, match="No matching reservation"):
            wh.confirm([{"product_id": "prod-a", "quantity": 1}], reference="ORD-1")
        assert wh.record_for("prod-a").quantity == 10

    def test_partial_confirm_is_refused(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        with pytest.raises(ValidationError, match="do not match"):
            wh.confirm([{"product_id": "prod-a", "quantity": 3}], reference="ORD-1")
        assert hold.status == HoldStatus.ACTIVE.value
        assert wh.record_for("prod-a").quantity == 10
        assert wh.record_for("prod-a").reserved_quantity == 4

    def test_settled_hold_cannot_be_confirmed_again(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        wh.confirm([{"product_id": "prod-a", "quantity": 4}], hold_id=hold.id)
        with pytest.raises(ValidationError, match="No matching reservation"):
            wh.confirm([{"product_id": "prod-a", "quantity": 4}], hold_id=hold.id)
        assert wh.record_for("prod-a").quantity == 6


class TestRelease:
    def test_release_restores_availability(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        wh.release([{"product_id": "prod-a", "quantity": 4}], hold_id=hold.id)
        record = wh.record_for("prod-a")
        assert record.quantity == 10
        assert record.reserved_quantity == 0
        assert record.available == 10

    def test_release_marks_hold(self):
        wh = _stocked_warehouse({"prod-a": 10})
        hold = wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        wh.release([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1", reason="cancelled")
        assert hold.status == HoldStatus.RELEASED.value
        event = wh._events[-1]
        assert isinstance(event, StockReleased)
        assert event.reason == "cancelled"

    def test_release_more_than_reserved_fails(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 2}], reference="ORD-1")
        with pytest.raises(ValidationError):
            wh.release([{"product_id": "prod-a", "quantity": 3}], reference="ORD-1")
        assert wh.record_for("prod-a").reserved_quantity == 2

    def test_release_leaves_other_holds_alone(self):
        wh = _stocked_warehouse({"prod-a": 10})
        first = wh.reserve([{"product_id": "prod-a", "quantity": 2}], reference="ORD-1")
        second = wh.reserve([{"product_id": "prod-a", "quantity": 3}], reference="ORD-2")
        wh.release([{"product_id": "prod-a", "quantity": 3}], reference="ORD-2")
        assert first.status == HoldStatus.ACTIVE.value
        assert second.status == HoldStatus.RELEASED.value
        assert wh.record_for("prod-a").reserved_quantity == 2


class TestReservationReferences:
    def test_duplicate_active_reference_rejected(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 2}], reference="ORD-1")
        with pytest.raises(ValidationError, match="already exists"):
            wh.reserve([{"product_id": "prod-a", "quantity": 1}], reference="ORD-1")
        assert wh.record_for("prod-a").reserved_quantity == 2

    def test_reference_reusable_after_settlement(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 2}], reference="ORD-1")
        wh.release([{"product_id": "prod-a", "quantity": 2}], reference="ORD-1")
        wh.reserve([{"product_id": "prod-a", "quantity": 1}], reference="ORD-1")
        assert wh.record_for("prod-a").reserved_quantity == 1

    def test_set_stock_cannot_undercut_active_holds(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 4}], reference="ORD-1")
        with pytest.raises(ValidationError, match="Active reservations"):
            wh.set_stock("prod-a", 10, reserved_quantity=1)
        assert wh.held_quantity("prod-a") == 4


class TestExpireHolds:
    def test_expires_only_overdue_active_holds(self):
        wh = _stocked_warehouse({"prod-a": 10})
        overdue = wh.reserve([{"product_id": "prod-a", "quantity": 3}], reference="OLD", ttl_minutes=1)
        fresh = wh.reserve([{"product_id": "prod-a", "quantity": 2}], reference="NEW", ttl_minutes=60)

        released = wh.expire_holds(datetime.now(UTC) + timedelta(minutes=5))

        assert released == 1
        assert overdue.status == HoldStatus.EXPIRED.value
        assert fresh.status == HoldStatus.ACTIVE.value
        assert wh.record_for("prod-a").reserved_quantity == 2

    def test_confirmed_holds_are_not_expired(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 3}], reference="ORD-1", ttl_minutes=1)
        wh.confirm([{"product_id": "prod-a", "quantity": 3}], reference="ORD-1")

        assert wh.expire_holds(datetime.now(UTC) + timedelta(minutes=5)) == 0
        assert wh.record_for("prod-a").quantity == 7

    def test_confirmed_unreferenced_hold_does_not_eat_another_reservation(self):
        wh = _stocked_warehouse({"prod-a": 10})
        first = wh.reserve([{"product_id": "prod-a", "quantity": 4}])
        wh.confirm([{"product_id": "prod-a", "quantity": 4}], hold_id=first.id)
        second = wh.reserve([{"product_id": "prod-a", "quantity": 3}], reference="ORD-B")

        released = wh.expire_holds(datetime.now(UTC) + timedelta(minutes=16))

        assert released == 1
        assert second.status == HoldStatus.EXPIRED.value
        record = wh.record_for("prod-a")
        assert record.quantity == 6
        assert record.reserved_quantity == 0

    def test_nothing_to_expire(self):
        wh = _stocked_warehouse({"prod-a": 10})
        wh.reserve([{"product_id": "prod-a", "quantity": 3}])
        assert wh.expire_holds() == 0
        assert wh.record_for("prod-a").reserved_quantity == 3


class TestTransfer:
    def test_transfer_out_decrements_quantity(self):
        source = _stocked_warehouse({"prod-a": 10})
        source.transfer_out("wh-dest", "prod-a", 4)
        assert source.record_for("prod-a").quantity == 6
        assert isinstance(source._events[-1], StockTransferredOut)

    def test_transfer_out_respects_reservations(self):
        source = _stocked_warehouse({"prod-a": 10})
        source.reserve([{"product_id": "prod-a", "quantity": 8}])
        with pytest.raises(InsufficientStock):
            source.transfer_out("wh-dest", "prod-a", 3)
        assert source.record_for("prod-a").quantity == 10

    def test_transfer_out_requires_positive_quantity(self):
        source = _stocked_warehouse({"prod-a": 10})
        with pytest.raises(ValidationError):
            source.transfer_out("wh-dest", "prod-a", 0)

    def test_transfer_in_creates_record(self):
        destination = _make_warehouse(name="Mysuru", pincode="570001")
        destination.transfer_in("wh-src", "prod-a", 4)
        assert destination.record_for("prod-a").quantity == 4
        assert isinstance(destination._events[-1], StockTransferredIn)

    def test_transfer_in_adds_to_existing_record(self):
        destination = _stocked_warehouse({"prod-a": 3})
        destination.transfer_in("wh-src", "prod-a", 4)
        assert destination.record_for("prod-a").quantity == 7


class TestLookups:
    def test_can_fulfill_every_line(self):
        wh = _stocked_warehouse({"prod-a": 10, "prod-b": 1})
        assert wh.can_fulfill([{"product_id": "prod-a", "quantity": 10}, {"product_id": "prod-b", "quantity": 1}])
        assert not wh.can_fulfill([{"product_id": "prod-a", "quantity": 1}, {"product_id": "prod-b", "quantity": 2}])

    def test_available_for_unknown_product_is_zero(self):
        wh = _make_warehouse()
        assert wh.available_for("prod-x") == 0


class TestStockRecordEntity:
    def test_available_property(self):
        record = StockRecord(product_id="prod-a", quantity=10, reserved_quantity=3)
        assert record.available == 7

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            StockRecord(product_id="prod-a", quantity=-1)
