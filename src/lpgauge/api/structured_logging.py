# src/lpgauge/api/structured_logging.py
from __future__ import annotations

"""
HTTP request logging for the gauge API.

One JSONL `http_request` event per request. Routes that run a gauge operation
tag the request with the receipt's gauge fields (operation, accounts, epoch,
checkpoint position) and the GaugeError handler tags the rejection code, so a
single event says what the request did to the ledger.

LPGAUGE_LOG_REQUESTS=0 disables the middleware (default on).
"""

import logging
import os
import time
import uuid
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from lpgauge.gauge_logging import log_event

Json = Dict[str, Any]

_RECEIPT_FIELDS = ("account", "sender", "recipient", "amount", "current_epoch")


def request_logging_enabled() -> bool:
    raw = (os.environ.get("LPGAUGE_LOG_REQUESTS") or "1").strip().lower()
    return raw not in {"0", "false", "no", "n", "off"}


def _gauge_fields(request: Request) -> Json:
    fields = getattr(request.state, "gauge", None)
    if not isinstance(fields, dict):
        fields = {}
        request.state.gauge = fields
    return fields


def tag_receipt(request: Request, receipt: Json) -> None:
    fields = _gauge_fields(request)
    fields["op"] = receipt.get("applied")
    for key in _RECEIPT_FIELDS:
        if key in receipt:
            fields[key] = receipt[key]
    cp = receipt.get("checkpoint")
    if isinstance(cp, dict):
        fields["caught_up"] = cp.get("caught_up")
        fields["emission_ts"] = cp.get("last_timestamp")


def tag_rejection(request: Request, code: str) -> None:
    _gauge_fields(request)["rejected"] = str(code)


class RequestLogMiddleware(BaseHTTPMiddleware):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = request_logging_enabled()
        self._logger = logging.getLogger("lpgauge.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        gauge = _gauge_fields(request)

        status = 500
        try:
            response = await call_next(request)
            status = int(response.status_code)
            response.headers.setdefault("x-request-id", request_id)
            return response
        finally:
            log_event(
                self._logger,
                "http_request",
                level=logging.WARNING if status >= 500 else logging.INFO,
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                gauge_id=getattr(getattr(request.app.state, "gauge", None), "gauge_id", None),
                gauge=gauge,
            )
