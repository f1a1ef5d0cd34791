from storefront.configuration.api.routes import config_router

__all__ = ["config_router"]
