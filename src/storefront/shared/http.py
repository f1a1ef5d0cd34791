"""HTTP mapping for storefront domain errors.

Protean's handlers cover ValidationError (400) and ObjectNotFoundError (404).
Stock shortfalls and out-of-order transitions are conflicts with the current
state (409); gateway failures are upstream errors (502).
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.shared.errors import GatewayFailure, InsufficientStock, InvalidTransition


async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages})


async def _gateway_failure(request: Request, exc: GatewayFailure) -> JSONResponse:
    return JSONResponse(status_code=502, content={"error": {"gateway": [exc.reason]}})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(InsufficientStock, _conflict)
    app.add_exception_handler(InvalidTransition, _conflict)
    app.add_exception_handler(GatewayFailure, _gateway_failure)
