"""Hedge execution across venues."""

from crossarb.execution.executor import ExecutionOutcome, HedgeExecutor, LegOutcome

__all__ = ["ExecutionOutcome", "HedgeExecutor", "LegOutcome"]
