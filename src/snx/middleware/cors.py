"""CORS for the Nexus web client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snx.config import Settings
from snx.middleware.request_id import REQUEST_ID_HEADER


def setup_cors(app: FastAPI, settings: Settings) -> None:
    # The API is cookie-less; wallets identify callers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
