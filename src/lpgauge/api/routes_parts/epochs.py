from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from lpgauge.api.errors import ApiError
from lpgauge.api.routes_parts.common import _gauge, _receipt
from lpgauge.api.schemas import EpochAdvanceRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/epochs")
def v1_epoch_advance(body: EpochAdvanceRequest, request: Request) -> Json:
    """Record the distribution for the epoch being closed by a rebalance."""
    receipt = _gauge(request).advance_epoch(body.amounts(), epoch=body.epoch)
    return _receipt(request, receipt)


@router.get("/epochs/{epoch}")
def v1_epoch_get(epoch: int, request: Request) -> Json:
    g = _gauge(request)
    rec = g.epoch_record(epoch)
    if rec is None:
        raise ApiError.not_found(
            "epoch_not_recorded",
            "no distribution recorded for epoch",
            {"epoch": epoch, "current": g.current_epoch()},
        )
    return {"ok": True, "record": rec}
