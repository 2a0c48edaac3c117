"""
Parlay leg repository.

Resolution is a compare-and-set: the UPDATE only applies while the row is
still pending, and the affected row count tells the caller whether it won.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from parlay_settlement.models import ParlayLeg, Parlay, LegStatus, LegResult, ParlayResult
from parlay_settlement.repositories.base import BaseRepository


class LegRepository(BaseRepository[ParlayLeg]):
    """Repository for ParlayLeg model."""

    def __init__(self, db: Session):
        super().__init__(ParlayLeg, db)

    def find_pending_for_open_parlays(self) -> List[ParlayLeg]:
        """
        Find legs still pending whose parlay has not been settled.

        Legs left pending on a parlay already settled as a loss are never
        looked at again.
        """
        return (
            self.db.query(ParlayLeg)
            .join(Parlay, ParlayLeg.parlay_id == Parlay.id)
            .filter(
                ParlayLeg.status == LegStatus.PENDING,
                Parlay.final_outcome == ParlayResult.PENDING,
            )
            .order_by(ParlayLeg.game_time, ParlayLeg.parlay_id, ParlayLeg.leg_number)
            .all()
        )

    def find_by_parlay(self, parlay_id: str, refresh: bool = True) -> List[ParlayLeg]:
        """
        Find all legs of a parlay.

        Args:
            parlay_id: Parlay ID
            refresh: Reload already-loaded legs from the database

        Returns:
            Legs ordered by leg number
        """
        query = self.db.query(ParlayLeg).filter(ParlayLeg.parlay_id == parlay_id)
        if refresh:
            query = query.populate_existing()
        return query.order_by(ParlayLeg.leg_number).all()

    def mark_resolved_if_pending(
        self,
        leg_id: str,
        outcome: str,
        resolved_at: datetime,
        actual_value: Optional[Decimal] = None,
        margin_of_victory: Optional[Decimal] = None,
        matched_event_id: Optional[str] = None,
        final_home_score: Optional[int] = None,
        final_away_score: Optional[int] = None,
    ) -> bool:
        """
        Resolve a leg only if it is still pending.

        Args:
            leg_id: Leg ID
            outcome: 'won', 'lost' or 'push'
            resolved_at: Resolution timestamp (naive UTC)

        Returns:
            True if this call resolved the leg, False if it was already
            resolved (by a concurrent run or an operator)

        Raises:
            ValueError: If outcome is not a settled value
        """
        if outcome not in LegResult.SETTLED:
            raise ValueError(f"Cannot resolve leg {leg_id} to {outcome!r}")

        updated = self.update_where(
            {
                ParlayLeg.status: LegStatus.RESOLVED,
                ParlayLeg.outcome: outcome,
                ParlayLeg.resolved_at: resolved_at,
                ParlayLeg.actual_value: actual_value,
                ParlayLeg.margin_of_victory: margin_of_victory,
                ParlayLeg.matched_event_id: matched_event_id,
                ParlayLeg.final_home_score: final_home_score,
                ParlayLeg.final_away_score: final_away_score,
            },
            ParlayLeg.id == leg_id,
            ParlayLeg.status == LegStatus.PENDING,
        )
        return updated == 1
