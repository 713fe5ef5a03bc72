from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

Json = Dict[str, Any]


@dataclass
class GaugeError(RuntimeError):
    """Canonical error type for gauge accounting failures.

    Any GaugeError raised inside an operation aborts it; the gauge never commits
    a partially applied state.
    """

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class DivisionByZero(GaugeError):
    def __init__(self, reason: str, details: Json | None = None) -> None:
        super().__init__("division_by_zero", reason, details or {})


class StaleRebalanceReplay(GaugeError):
    def __init__(self, reason: str, details: Json | None = None) -> None:
        super().__init__("stale_rebalance_replay", reason, details or {})


class EpochRecordImmutable(GaugeError):
    def __init__(self, reason: str, details: Json | None = None) -> None:
        super().__init__("epoch_record_immutable", reason, details or {})


class InsufficientBalance(GaugeError):
    def __init__(self, reason: str, details: Json | None = None) -> None:
        super().__init__("insufficient_balance", reason, details or {})


class InvalidAmount(GaugeError):
    def __init__(self, reason: str, details: Json | None = None) -> None:
        super().__init__("invalid_amount", reason, details or {})


__all__ = [
    "GaugeError",
    "DivisionByZero",
    "StaleRebalanceReplay",
    "EpochRecordImmutable",
    "InsufficientBalance",
    "InvalidAmount",
]
