"""Read-only FastAPI status service exposing the position ledger."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, HTTPException

from crossarb.bot.orchestrator import ArbitrageBot
from crossarb.domain.positions import PositionStatus
from crossarb.ledger.positions import PositionLedger


def create_app(ledger: PositionLedger, bot: Optional[ArbitrageBot] = None) -> FastAPI:
    """Create the status app bound to a ledger (and optionally the running bot)."""

    app = FastAPI(
        title="crossarb status",
        description="Open hedges and redemption state for the running bot.",
    )

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        """Basic health endpoint."""

        return {"status": "ok", "service": "crossarb"}

    @app.get("/positions", tags=["Positions"])
    async def list_positions(status: Optional[str] = None) -> list[dict[str, Any]]:
        """List recorded positions, optionally filtered by status."""

        positions = ledger.all()
        if status is not None:
            try:
                wanted = PositionStatus(status.lower())
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=f"Unknown status {status!r}") from exc
            positions = [p for p in positions if p.status is wanted]
        return [p.model_dump(mode="json") for p in positions]

    @app.get("/positions/summary", tags=["Positions"])
    async def positions_summary() -> dict[str, Any]:
        summary: dict[str, Any] = ledger.summary().as_dict()
        summary["running"] = bot.running if bot is not None else None
        return summary

    return app


__all__ = ["create_app"]
