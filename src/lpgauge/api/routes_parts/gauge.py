from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from lpgauge.api.routes_parts.common import _gauge, _receipt
from lpgauge.ledger.state import GaugeView

router = APIRouter()

Json = Dict[str, Any]


@router.get("/gauge")
def v1_gauge(request: Request) -> Json:
    g = _gauge(request)
    view = GaugeView.from_state(g.snapshot())
    return {"ok": True, "gauge": view.summary()}


@router.post("/gauge/checkpoint")
def v1_gauge_checkpoint(request: Request) -> Json:
    """Advance the global ledgers.

    Useful to resume an emission catch-up that stopped at its iteration budget.
    """
    receipt = _gauge(request).checkpoint()
    return _receipt(request, receipt)
