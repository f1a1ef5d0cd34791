from storefront.ordering.api.routes import bulk_router, order_router, pos_router

__all__ = ["order_router", "bulk_router", "pos_router"]
