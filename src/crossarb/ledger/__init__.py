"""Session position ledger."""

from crossarb.ledger.positions import PositionLedger, PositionsSummary

__all__ = ["PositionLedger", "PositionsSummary"]
