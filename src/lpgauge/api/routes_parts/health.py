from __future__ import annotations

import time

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    # must never crash; reports whether a gauge is attached
    g = getattr(request.app.state, "gauge", None)
    return {
        "ok": True,
        "service": "lpgauge",
        "version": "v1",
        "ts_ms": _now_ms(),
        "gauge_id": getattr(g, "gauge_id", None),
        "ready": g is not None,
    }
