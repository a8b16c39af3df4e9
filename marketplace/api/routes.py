"""
Contractor Marketplace -- Centralised router registration.

This module is the single place where every APIRouter is mounted onto the
FastAPI application.  Import and call ``register_routes(app)`` once in
``marketplace.app``.

  GET  /contracts, /contracts/{id}
  GET  /jobs/unpaid
  POST /jobs/{job_id}/pay
  POST /balances/deposit/{user_id}
  GET  /admin/best-profession, /admin/best-clients
  GET  /health
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, FastAPI

from marketplace import config, database
from marketplace.api.schemas import HealthResponse
from marketplace.metrics import metrics_snapshot

logger = logging.getLogger(__name__)

_START_TIME: float = time.time()

system_router = APIRouter(tags=["system"])


@system_router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness plus the in-process payment/deposit counters."""
    snapshot = metrics_snapshot()
    snapshot["uptime_seconds"] = int(time.time() - _START_TIME)
    return HealthResponse(
        version=config.VERSION,
        database=database.engine.dialect.name,
        metrics=snapshot,
    )


def register_routes(app: FastAPI) -> None:
    """Mount all routers onto ``app``."""
    from marketplace.routers import admin, balances, contracts, jobs

    app.include_router(contracts.router)
    app.include_router(jobs.router)
    app.include_router(balances.router)
    app.include_router(admin.router)
    app.include_router(system_router)

    logger.info("Routes registered: %d total endpoints", len(app.routes))
