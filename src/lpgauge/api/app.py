from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lpgauge.api.errors import install_error_handlers
from lpgauge.api.routes import public_router
from lpgauge.api.structured_logging import RequestLogMiddleware
from lpgauge.gauge_logging import configure_structured_logging
from lpgauge.runtime.gauge import LiquidityGauge
from lpgauge.runtime.gauge_config import apply_gauge_config_to_env, load_gauge_config


def build_gauge() -> LiquidityGauge:
    """Build the LiquidityGauge served by the API.

    This wrapper exists so tests can monkeypatch `lpgauge.api.app.build_gauge`
    without reaching into runtime modules.
    """
    cfg = load_gauge_config()
    apply_gauge_config_to_env(cfg)
    return LiquidityGauge.from_config(cfg)


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load gauge config + attach a LiquidityGauge
      - False: keep lightweight for unit tests / import-time validation
    """
    mode = os.environ.get("LPGAUGE_MODE", "prod").strip().lower()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        configure_structured_logging()
        yield

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(
            title="LP Gauge API",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=_lifespan,
        )
    else:
        app = FastAPI(title="LP Gauge API", lifespan=_lifespan)

    app.state.gauge = build_gauge() if boot_runtime else None

    app.add_middleware(RequestLogMiddleware)
    install_error_handlers(app)
    app.include_router(public_router)

    return app
