from storefront.inventory.api.routes import maintenance_router as inventory_maintenance_router
from storefront.inventory.api.routes import product_router, warehouse_router

__all__ = ["product_router", "warehouse_router", "inventory_maintenance_router"]
