"""Product registration and stock counter maintenance — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.product import Product
from storefront.utils.locks import row_key, row_locks


@storefront.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0)
    is_available = Boolean(default=True)


@storefront.command(part_of="Product")
class SetProductStock:
    """Overwrite the aggregate stock counter (admin correction)."""

    product_id = Identifier(required=True)
    stock = Integer(default=0, min_value=0)


@storefront.command(part_of="Product")
class SetProductAvailability:
    product_id = Identifier(required=True)
    is_available = Boolean(default=True)


@storefront.command_handler(part_of=Product)
class ProductCatalogHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            price=command.price,
            stock=command.stock or 0,
            is_available=command.is_available,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(SetProductStock)
    def set_product_stock(self, command):
        with row_locks(row_key("product", command.product_id)):
            repo = current_domain.repository_for(Product)
            product = repo.get(command.product_id)
            product.set_stock(command.stock)
            repo.add(product)

    @handle(SetProductAvailability)
    def set_product_availability(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_availability(command.is_available)
        repo.add(product)
