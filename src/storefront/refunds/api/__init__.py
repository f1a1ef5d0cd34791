from storefront.refunds.api.routes import refund_router

__all__ = ["refund_router"]
