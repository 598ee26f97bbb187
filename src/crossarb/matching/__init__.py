"""Matching of equivalent markets across venues."""

from crossarb.matching.resolver import (
    DEFAULT_TOLERANCE_SECONDS,
    MarketPairResolver,
    find_match,
    match_markets,
)

__all__ = ["DEFAULT_TOLERANCE_SECONDS", "MarketPairResolver", "find_match", "match_markets"]
