"""Entrypoint for the FastAPI application."""

import os

import structlog
from dotenv import load_dotenv

# Load .env locally only; deployed environments inject variables directly.
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import appointments, audit_logs, compliance, health, invoices
from .core.errors import (
    CareflowError,
    ConcurrencyConflict,
    InvalidAppointment,
    InvalidLineItem,
    InvalidState,
    NotFound,
)
from .core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)

ERROR_STATUS_CODES: dict[type[CareflowError], int] = {
    NotFound: 404,
    InvalidState: 403,
    InvalidLineItem: 400,
    InvalidAppointment: 400,
    ConcurrencyConflict: 409,
}


def _status_for(exc: CareflowError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


async def careflow_error_handler(request: Request, exc: CareflowError) -> JSONResponse:
    status_code = _status_for(exc)
    LOGGER.warning(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        error=exc.kind,
        status_code=status_code,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Careflow Billing", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CareflowError, careflow_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")
    app.include_router(appointments.router, prefix="/api")
    app.include_router(audit_logs.router, prefix="/api")
    app.include_router(compliance.router, prefix="/api")

    return app


app = create_app()
