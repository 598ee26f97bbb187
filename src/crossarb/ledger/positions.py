"""In-memory, append-only position ledger for the process lifetime."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from structlog import get_logger

from crossarb.domain.markets import utcnow
from crossarb.domain.positions import OPEN_STATUSES, Position, PositionStatus

logger = get_logger(__name__)


@dataclass(slots=True)
class PositionsSummary:
    """Aggregate view used for periodic logging and the status API."""

    active: int = 0
    partially_filled: int = 0
    redeemed: int = 0
    expired: int = 0
    total_cost: float = 0.0
    expected_profit: float = 0.0

    def as_dict(self) -> dict[str, float | int]:
        return {
            "active": self.active,
            "partially_filled": self.partially_filled,
            "redeemed": self.redeemed,
            "expired": self.expired,
            "total_cost": round(self.total_cost, 2),
            "expected_profit": round(self.expected_profit, 2),
        }


class PositionLedger:
    """Passive store of positions; it never rejects or removes entries.

    The at-most-one-active-position-per-market guard belongs to the caller,
    which holds `lock` across its find-then-append sequence.
    """

    def __init__(self, positions: Iterable[Position] | None = None) -> None:
        self._positions: list[Position] = list(positions or [])
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._positions)

    def append(self, position: Position) -> None:
        self._positions.append(position)
        logger.info(
            "position_recorded",
            position_id=position.position_id,
            market=position.market_id,
            status=position.status.value,
            total_cost=round(position.total_cost, 2),
            expected_profit=round(position.expected_profit, 2),
        )

    def all(self) -> list[Position]:
        return list(self._positions)

    def list_active(self) -> list[Position]:
        return [p for p in self._positions if p.status is PositionStatus.ACTIVE]

    def list_open(self) -> list[Position]:
        """Positions still holding venue exposure (active or partially filled)."""

        return [p for p in self._positions if p.status in OPEN_STATUSES]

    def find_by_market(self, market_id: str) -> list[Position]:
        return [p for p in self._positions if p.market_id == market_id]

    def has_open_position(self, market_id: str) -> bool:
        return any(p.is_open for p in self.find_by_market(market_id))

    def mark_redeemed(self, position: Position) -> None:
        self._close(position, PositionStatus.REDEEMED)

    def mark_expired(self, position: Position) -> None:
        self._close(position, PositionStatus.EXPIRED)

    def summary(self) -> PositionsSummary:
        counts = Counter(p.status for p in self._positions)
        return PositionsSummary(
            active=counts[PositionStatus.ACTIVE],
            partially_filled=counts[PositionStatus.PARTIALLY_FILLED],
            redeemed=counts[PositionStatus.REDEEMED],
            expired=counts[PositionStatus.EXPIRED],
            total_cost=sum(p.total_cost for p in self._positions),
            expected_profit=sum(p.expected_profit for p in self._positions),
        )

    def _close(self, position: Position, status: PositionStatus) -> None:
        # Closed states are terminal.
        if not position.is_open:
            logger.debug(
                "position_already_closed",
                position_id=position.position_id,
                status=position.status.value,
            )
            return
        position.status = status
        position.closed_at = utcnow()
        logger.info(
            "position_status_changed",
            position_id=position.position_id,
            market=position.market_id,
            status=status.value,
        )


__all__ = ["PositionLedger", "PositionsSummary"]
