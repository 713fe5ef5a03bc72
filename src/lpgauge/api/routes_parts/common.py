from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from lpgauge.api.errors import ApiError
from lpgauge.api.structured_logging import tag_receipt
from lpgauge.runtime.gauge import LiquidityGauge


def _gauge(request: Request) -> LiquidityGauge:
    g = getattr(request.app.state, "gauge", None)
    if g is None:
        raise ApiError.internal("not_ready", "gauge not attached to app.state", {})
    return g


def _account_id(account: str) -> str:
    a = str(account or "").strip()
    if not a:
        raise ApiError.bad_request("bad_account", "account id is required", {})
    return a


def _receipt(request: Request, receipt: Dict[str, Any]) -> Dict[str, Any]:
    tag_receipt(request, receipt)
    return {"ok": True, "receipt": receipt}
