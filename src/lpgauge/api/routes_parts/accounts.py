from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from lpgauge.api.errors import ApiError
from lpgauge.api.routes_parts.common import _account_id, _gauge, _receipt
from lpgauge.api.schemas import ClaimRequest, DepositRequest, SyncRequest, TransferRequest, WithdrawRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/accounts/{account}")
def v1_account_get(account: str, request: Request) -> Json:
    g = _gauge(request)
    a = _account_id(account)
    snap = g.account_snapshot(a)
    if not snap:
        raise ApiError.not_found("account_not_found", "account has never staked", {"account": a})
    return {"ok": True, "account": a, "state": snap}


@router.get("/accounts/{account}/claimable")
def v1_account_claimable(account: str, request: Request) -> Json:
    g = _gauge(request)
    return {"ok": True, **g.claimable_rewards(_account_id(account))}


@router.post("/accounts/{account}/deposit")
def v1_account_deposit(account: str, body: DepositRequest, request: Request) -> Json:
    receipt = _gauge(request).deposit(_account_id(account), body.amount)
    return _receipt(request, receipt)


@router.post("/accounts/{account}/withdraw")
def v1_account_withdraw(account: str, body: WithdrawRequest, request: Request) -> Json:
    receipt = _gauge(request).withdraw(_account_id(account), body.amount)
    return _receipt(request, receipt)


@router.post("/accounts/{account}/sync")
def v1_account_sync(account: str, body: SyncRequest, request: Request) -> Json:
    receipt = _gauge(request).sync_with_voting_escrow(_account_id(account))
    return _receipt(request, receipt)


@router.post("/accounts/{account}/claim")
def v1_account_claim(account: str, body: ClaimRequest, request: Request) -> Json:
    receipt = _gauge(request).claim_rewards(_account_id(account))
    return _receipt(request, receipt)


@router.post("/transfers")
def v1_transfer(body: TransferRequest, request: Request) -> Json:
    receipt = _gauge(request).transfer(
        _account_id(body.sender),
        _account_id(body.recipient),
        body.amount,
    )
    return _receipt(request, receipt)
