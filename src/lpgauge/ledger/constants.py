# src/lpgauge/ledger/constants.py
from __future__ import annotations

"""Gauge accounting constants.

All amounts are integers in 18-decimal fixed point:
- token amounts are in wei (1 token = 1e18 units)
- rates, weights and proportions are UNIT-scaled fractions
"""

# Fixed-point precision
DECIMALS: int = 18
UNIT: int = 10**DECIMALS

# Weekly emission cadence
WEEK: int = 7 * 24 * 60 * 60

# Weeks roll over at 14:00 UTC on the unix-epoch weekday
SETTLEMENT_TIME: int = 14 * 60 * 60

# Upper bound on week steps a single checkpoint may take
MAX_ITERATIONS: int = 500

# Boosted stake is capped at 3x raw stake
MAX_BOOSTING_FACTOR: int = 3 * UNIT
MAX_BOOSTING_FACTOR_MINUS_ONE: int = MAX_BOOSTING_FACTOR - UNIT

# Redistribution buckets: three share assets and one quote asset
SHARE_ASSETS = ("q", "b", "r")
QUOTE_ASSET = "u"
ASSET_BUCKETS = SHARE_ASSETS + (QUOTE_ASSET,)
