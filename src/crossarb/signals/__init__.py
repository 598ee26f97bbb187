"""Arbitrage signal computation."""

from crossarb.signals.evaluator import (
    PAR_VALUE,
    OpportunityEvaluator,
    choose_action,
    profit_potential,
)

__all__ = ["OpportunityEvaluator", "PAR_VALUE", "choose_action", "profit_potential"]
