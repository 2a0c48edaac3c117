"""
Parlay repository.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, exists
from sqlalchemy.orm import Session

from parlay_settlement.models import Parlay, ParlayLeg, LegStatus, ParlayResult
from parlay_settlement.repositories.base import BaseRepository


class ParlayRepository(BaseRepository[Parlay]):
    """Repository for Parlay model."""

    def __init__(self, db: Session):
        super().__init__(Parlay, db)

    def find_open_without_pending_legs(self) -> List[Parlay]:
        """
        Find unsettled parlays that have legs but none of them pending.

        These are left behind when a run resolved the last leg and stopped
        before aggregating the parlay.
        """
        has_legs = exists().where(ParlayLeg.parlay_id == Parlay.id)
        has_pending = exists().where(and_(
            ParlayLeg.parlay_id == Parlay.id,
            ParlayLeg.status == LegStatus.PENDING,
        ))
        return (
            self.db.query(Parlay)
            .filter(
                Parlay.final_outcome == ParlayResult.PENDING,
                has_legs,
                ~has_pending,
            )
            .all()
        )

    def find_open_without_legs(self) -> List[Parlay]:
        """Find unsettled parlays with no legs at all."""
        has_legs = exists().where(ParlayLeg.parlay_id == Parlay.id)
        return (
            self.db.query(Parlay)
            .filter(Parlay.final_outcome == ParlayResult.PENDING, ~has_legs)
            .order_by(Parlay.created_at)
            .all()
        )

    def settle_if_pending(
        self,
        parlay_id: str,
        outcome: str,
        payout: Optional[float],
        profit_loss: Optional[float],
        hit_percentage: Optional[float],
        settled_at: datetime,
    ) -> bool:
        """
        Write a terminal outcome only if the parlay is still pending.

        Returns:
            True if this call settled the parlay, False if another writer got
            there first

        Raises:
            ValueError: If outcome is not terminal
        """
        if outcome not in ParlayResult.TERMINAL:
            raise ValueError(f"Cannot settle parlay {parlay_id} to {outcome!r}")

        updated = self.update_where(
            {
                Parlay.final_outcome: outcome,
                Parlay.payout: payout,
                Parlay.profit_loss: profit_loss,
                Parlay.hit_percentage: hit_percentage,
                Parlay.settled_at: settled_at,
                Parlay.updated_at: settled_at,
            },
            Parlay.id == parlay_id,
            Parlay.final_outcome == ParlayResult.PENDING,
        )
        return updated == 1

    def override(
        self,
        parlay_id: str,
        outcome: str,
        profit_loss: Optional[float],
        payout: Optional[float],
        now: datetime,
    ) -> bool:
        """
        Unconditionally set a parlay's outcome (operator override).

        Returns:
            True if the parlay exists
        """
        updated = self.update_where(
            {
                Parlay.final_outcome: outcome,
                Parlay.profit_loss: profit_loss,
                Parlay.payout: payout,
                Parlay.settled_at: now if outcome in ParlayResult.TERMINAL else None,
                Parlay.updated_at: now,
            },
            Parlay.id == parlay_id,
        )
        return updated == 1
