"""Domain events for the Warehouse and Product aggregates."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Warehouse")
class WarehouseRegistered:
    """A new fulfillment warehouse was registered."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    name = String(required=True)
    city = String()
    pincode = String(required=True)
    zone = String()
    registered_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class WarehouseDeactivated:
    """A warehouse stopped taking part in selection."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockLevelSet:
    """An administrator set the quantities of a stock record."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer()
    reserved_quantity = Integer()
    set_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockReserved:
    """Stock was put on hold for a set of lines."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    hold_id = Identifier(required=True)
    reference = String()
    lines = Text(required=True)  # JSON list of {product_id, quantity}
    expires_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockConfirmed:
    """Reserved stock became a permanent decrement."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    hold_id = Identifier()
    reference = String()
    lines = Text(required=True)
    confirmed_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockReleased:
    """Reserved stock was returned to availability."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    hold_id = Identifier()
    reference = String()
    lines = Text(required=True)
    reason = String()
    released_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockTransferredOut:
    """Stock left this warehouse for another."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    destination_warehouse_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    transferred_at = DateTime(required=True)


@storefront.event(part_of="Warehouse")
class StockTransferredIn:
    """Stock arrived from another warehouse."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    source_warehouse_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    transferred_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductRegistered:
    """A sellable product was registered."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = String(required=True)  # Stored as string to avoid Float(0.0) issue
    registered_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductStockDecremented:
    """The aggregate product stock counter went down."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Identifier(required=True)  # Stored as string to avoid Integer(0) issue
    decremented_at = DateTime(required=True)
