"""HTTP middleware and exception handlers."""

from fastapi import FastAPI

from snx.config import Settings
from snx.middleware.cors import setup_cors
from snx.middleware.error_handler import setup_error_handlers
from snx.middleware.logging import setup_logging
from snx.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers, request ids and CORS.

    Starlette runs middleware last-added outermost, so CORS also wraps error
    responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
