"""Tests for resolution polling and redemption."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from crossarb.domain.markets import Outcome
from crossarb.domain.opportunities import TradeAction
from crossarb.domain.positions import LegAmounts, Position, PositionStatus
from crossarb.ledger.positions import PositionLedger
from crossarb.resolution.monitor import ResolutionMonitor


@pytest.fixture
def monitor(venue_a, venue_b):
    return ResolutionMonitor(venue_a=venue_a, venue_b=venue_b)


@pytest.fixture
def position():
    return Position(
        market_id="pm-1",
        venue_b_market_id="KX-1",
        action=TradeAction.BUY_A_UP_B_DOWN,
        venue_a=LegAmounts(up=100),
        venue_b=LegAmounts(down=100),
        total_cost=88,
        expected_profit=13.6,
    )


@pytest.fixture
def ledger(position):
    return PositionLedger([position])


@pytest.mark.asyncio
async def test_redeems_once_both_venues_resolve(monitor, ledger, position, venue_a, venue_b):
    venue_a.resolved.add("pm-1")
    venue_b.resolved.add("KX-1")

    assert await monitor.check_and_redeem(ledger) == 1

    assert position.status is PositionStatus.REDEEMED
    assert venue_a.redeemed == [("pm-1", Outcome.UP)]
    assert venue_b.redeemed == [("KX-1", Outcome.DOWN)]


@pytest.mark.asyncio
async def test_waits_for_both_venues(monitor, ledger, position, venue_a, venue_b):
    venue_a.resolved.add("pm-1")

    assert await monitor.check_and_redeem(ledger) == 0

    assert position.status is PositionStatus.ACTIVE
    assert venue_a.redeemed == []


@pytest.mark.asyncio
async def test_failed_leg_keeps_position_open(monitor, ledger, position, venue_a, venue_b):
    venue_a.resolved.add("pm-1")
    venue_b.resolved.add("KX-1")
    venue_b.redeem_results[("KX-1", Outcome.DOWN)] = False

    assert await monitor.check_and_redeem(ledger) == 0
    assert position.status is PositionStatus.ACTIVE

    venue_b.redeem_results.clear()

    assert await monitor.check_and_redeem(ledger) == 1
    assert position.status is PositionStatus.REDEEMED
    # a second full pass is harmless
    assert len(venue_a.redeemed) == 2


@pytest.mark.asyncio
async def test_redeemed_positions_are_not_polled_again(monitor, ledger, venue_a, venue_b):
    venue_a.resolved.add("pm-1")
    venue_b.resolved.add("KX-1")

    await monitor.check_and_redeem(ledger)
    await monitor.check_and_redeem(ledger)

    assert len(venue_a.redeemed) == 1


@pytest.mark.asyncio
async def test_resolution_errors_count_as_unresolved(monitor, ledger, position, venue_a, venue_b):
    venue_a.resolved.add("pm-1")
    venue_b.resolved.add("KX-1")
    venue_b.resolution_error = True

    assert await monitor.check_and_redeem(ledger) == 0
    assert position.status is PositionStatus.ACTIVE


@pytest.mark.asyncio
async def test_partial_exposure_redeems_only_held_leg(monitor, venue_a, venue_b):
    exposure = Position(
        market_id="pm-2",
        venue_b_market_id="KX-2",
        action=TradeAction.BUY_A_DOWN_B_UP,
        venue_b=LegAmounts(up=50),
        total_cost=24,
        expected_profit=0,
        status=PositionStatus.PARTIALLY_FILLED,
    )
    ledger = PositionLedger([exposure])
    venue_a.resolved.add("pm-2")
    venue_b.resolved.add("KX-2")

    assert await monitor.check_and_redeem(ledger) == 1
    assert venue_a.redeemed == []
    assert venue_b.redeemed == [("KX-2", Outcome.UP)]


@pytest.mark.asyncio
async def test_expiry_after_grace_period(venue_a, venue_b, position):
    position.end_time = datetime.now(UTC) - timedelta(hours=2)
    ledger = PositionLedger([position])
    monitor = ResolutionMonitor(venue_a=venue_a, venue_b=venue_b, expire_after_seconds=3600)

    assert await monitor.check_and_redeem(ledger) == 0
    assert position.status is PositionStatus.EXPIRED


@pytest.mark.asyncio
async def test_no_expiry_by_default(monitor, ledger, position):
    position.end_time = datetime.now(UTC) - timedelta(days=2)

    await monitor.check_and_redeem(ledger)

    assert position.status is PositionStatus.ACTIVE


@pytest.mark.asyncio
async def test_empty_ledger(monitor):
    assert await monitor.check_and_redeem(PositionLedger()) == 0
