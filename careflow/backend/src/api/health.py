"""Liveness, readiness and metrics endpoints for the billing service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..db import get_financial_session_dependency, get_session_dependency

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live", "service": "careflow-billing"}


@router.get("/health/ready")
def readiness(
    session: Session = Depends(get_session_dependency),
    financial_session: Session = Depends(get_financial_session_dependency),
) -> dict[str, str]:
    """Check both engines respond; invoice writes depend on the financial one."""

    session.execute(text("SELECT 1"))
    financial_session.execute(text("SELECT 1"))
    return {
        "status": "ready",
        "database": session.get_bind().dialect.name,
        "financial_isolation_level": get_settings().financial_isolation_level,
    }


@router.get("/metrics")
def metrics() -> Response:
    """Expose billing and compliance counters in Prometheus text format."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
