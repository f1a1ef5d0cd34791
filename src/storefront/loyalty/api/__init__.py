from storefront.loyalty.api.routes import loyalty_router

__all__ = ["loyalty_router"]
