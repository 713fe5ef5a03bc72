from __future__ import annotations

"""Pydantic request schemas for the gauge HTTP API.

Amounts are 18-decimal fixed-point integers. Clients that cannot carry large
JSON integers may send them as decimal strings.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _int_from_wire(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip()
        if s.lstrip("-").isdigit():
            return int(s)
    return v


class AmountRequest(BaseModel):
    amount: int = Field(..., ge=0, description="Stake amount in fixed-point units")

    model_config = {"extra": "forbid"}

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_wire(cls, v: Any) -> Any:
        return _int_from_wire(v)


class DepositRequest(AmountRequest):
    pass


class WithdrawRequest(AmountRequest):
    pass


class TransferRequest(AmountRequest):
    sender: str = Field(..., min_length=1, description="Account the stake moves from")
    recipient: str = Field(..., min_length=1, description="Account the stake moves to")


class SyncRequest(BaseModel):
    """Empty body; operations always run at the server clock."""

    model_config = {"extra": "forbid"}


class ClaimRequest(SyncRequest):
    pass


class EpochAdvanceRequest(BaseModel):
    q: int = Field(default=0, ge=0, description="Share asset q distributed this epoch")
    b: int = Field(default=0, ge=0, description="Share asset b distributed this epoch")
    r: int = Field(default=0, ge=0, description="Share asset r distributed this epoch")
    u: int = Field(default=0, ge=0, description="Quote asset distributed this epoch")
    epoch: Optional[int] = Field(default=None, ge=0, description="Epoch being closed; must equal the current epoch")

    model_config = {"extra": "forbid"}

    @field_validator("q", "b", "r", "u", mode="before")
    @classmethod
    def _amounts_wire(cls, v: Any) -> Any:
        return _int_from_wire(v)

    def amounts(self) -> dict:
        return {"q": self.q, "b": self.b, "r": self.r, "u": self.u}
