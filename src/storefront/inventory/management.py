"""Warehouse management — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.warehouse import Warehouse
from storefront.utils.locks import row_key, row_locks


@storefront.command(part_of="Warehouse")
class RegisterWarehouse:
    name = String(required=True, max_length=255)
    pincode = String(required=True, max_length=20)
    city = String(max_length=100)
    zone = String(max_length=100)


@storefront.command(part_of="Warehouse")
class DeactivateWarehouse:
    warehouse_id = Identifier(required=True)


@storefront.command(part_of="Warehouse")
class SetStock:
    """Create or overwrite a stock record at a warehouse."""

    warehouse_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=0)
    reserved_quantity = Integer()


@storefront.command_handler(part_of=Warehouse)
class WarehouseManagementHandler:
    @handle(RegisterWarehouse)
    def register_warehouse(self, command):
        warehouse = Warehouse.register(
            name=command.name,
            pincode=command.pincode,
            city=command.city,
            zone=command.zone,
        )
        current_domain.repository_for(Warehouse).add(warehouse)
        return str(warehouse.id)

    @handle(DeactivateWarehouse)
    def deactivate_warehouse(self, command):
        with row_locks(row_key("warehouse", command.warehouse_id)):
            repo = current_domain.repository_for(Warehouse)
            warehouse = repo.get(command.warehouse_id)
            warehouse.deactivate()
            repo.add(warehouse)

    @handle(SetStock)
    def set_stock(self, command):
        with row_locks(row_key("warehouse", command.warehouse_id)):
            repo = current_domain.repository_for(Warehouse)
            warehouse = repo.get(command.warehouse_id)
            warehouse.set_stock(
                product_id=command.product_id,
                quantity=command.quantity,
                reserved_quantity=command.reserved_quantity,
            )
            repo.add(warehouse)
