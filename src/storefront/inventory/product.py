"""Product aggregate (CQRS) — catalog entry with the aggregate stock counter.

``stock`` is the legacy aggregate counter. The warehouse ledger is the
source of truth for availability; this counter is kept in step with every
warehouse commit and is the only guard when no warehouse can fulfill a line.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from storefront.domain import storefront
from storefront.inventory.events import ProductRegistered, ProductStockDecremented
from storefront.shared.errors import InsufficientStock


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    is_available = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, price, stock=0, is_available=True):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            price=price,
            stock=stock,
            is_available=is_available,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=str(price),
                registered_at=now,
            )
        )
        return product

    def has_stock(self, quantity):
        return (self.stock or 0) >= quantity

    def decrement_stock(self, quantity):
        if not self.has_stock(quantity):
            raise InsufficientStock(
                {"stock": [f"Insufficient stock for {self.name}. Available: {self.stock}, Requested: {quantity}"]}
            )
        self.stock = self.stock - quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductStockDecremented(
                product_id=str(self.id),
                quantity=quantity,
                remaining=str(self.stock),
                decremented_at=self.updated_at,
            )
        )

    def set_stock(self, quantity):
        if quantity is None or quantity < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})
        self.stock = quantity
        self.updated_at = datetime.now(UTC)

    def set_availability(self, is_available):
        self.is_available = bool(is_available)
        self.updated_at = datetime.now(UTC)
