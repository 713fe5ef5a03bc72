# src/lpgauge/api/routes.py
from __future__ import annotations

from fastapi import APIRouter

from lpgauge.api.routes_parts.accounts import router as accounts_router
from lpgauge.api.routes_parts.epochs import router as epochs_router
from lpgauge.api.routes_parts.gauge import router as gauge_router
from lpgauge.api.routes_parts.health import router as health_router
from lpgauge.api.routes_parts.metrics import router as metrics_router

public_router = APIRouter()

# Versioned API surface
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(gauge_router, prefix="/v1", tags=["gauge"])
public_router.include_router(accounts_router, prefix="/v1", tags=["accounts"])
public_router.include_router(epochs_router, prefix="/v1", tags=["epochs"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
