# src/lpgauge/api/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lpgauge.api.structured_logging import tag_rejection
from lpgauge.ledger.errors import GaugeError


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


# Logic-invariant violations; everything else a GaugeError reports is a
# rejected request.
_INTERNAL_GAUGE_CODES = frozenset({"division_by_zero", "invariant_violation"})


def _error_body(code: str, message: str, details: Dict[str, Any]) -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, "details": details}}


def install_error_handlers(app: FastAPI) -> None:
    """Map ApiError and ledger GaugeError to JSON error envelopes.

    Ledger rejections are client errors (400) and arithmetic or supply invariant
    failures are server errors (500). Either way the operation left no trace in
    gauge state.
    """

    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message, exc.details))

    @app.exception_handler(GaugeError)
    async def _gauge_error(request: Request, exc: GaugeError) -> JSONResponse:
        tag_rejection(request, exc.code)
        status = 500 if exc.code in _INTERNAL_GAUGE_CODES else 400
        return JSONResponse(status_code=status, content=_error_body(exc.code, exc.reason, dict(exc.details)))
