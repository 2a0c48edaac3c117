"""
Manual settlement: operator intervention for stuck or disputed bets.

- resolve_leg() settles a leg the engine cannot (e.g. no feed coverage) using
  the same conditional update as a run, so it never re-resolves a leg
- override_parlay() is the only way to change a settled parlay

Every change is written to the audit log with the operator's name.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from parlay_settlement.core.config import settings
from parlay_settlement.models import LegResult, LegStatus, ParlayResult
from parlay_settlement.repositories import LegRepository, ParlayRepository, AuditLogRepository
from parlay_settlement.services.settlement.parlay_aggregator import aggregate
from parlay_settlement.services.settlement.types import ParlayOutcome
from parlay_settlement.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class ManualSettlementService:
    """
    Operator-facing settlement actions.

    Changes are added to the session; the caller commits.

    Usage:
        service = ManualSettlementService(db)
        service.resolve_leg(leg_id, "won", performed_by="ops@example.com")
        db.commit()
    """

    def __init__(self, db: Session):
        self.db = db
        self.legs = LegRepository(db)
        self.parlays = ParlayRepository(db)
        self.audit = AuditLogRepository(db)

    def resolve_leg(self, leg_id: str, outcome: str, performed_by: str) -> bool:
        """
        Resolve a pending leg by hand.

        The parlay is re-aggregated afterwards, so settling the last leg (or a
        losing one) also settles the parlay.

        Args:
            leg_id: Leg ID
            outcome: 'won', 'lost' or 'push'
            performed_by: Operator name

        Returns:
            True if the leg was resolved, False if it was already resolved

        Raises:
            ValueError: If the leg does not exist or outcome is invalid
        """
        if outcome not in LegResult.SETTLED:
            raise ValueError(f"Invalid leg outcome: {outcome!r}")

        leg = self.legs.find_by_id(leg_id)
        if leg is None:
            raise ValueError(f"Leg not found: {leg_id}")

        resolved = self.legs.mark_resolved_if_pending(leg_id, outcome, resolved_at=utc_now())
        if not resolved:
            logger.info(f"Manual resolution of leg {leg_id} skipped: already resolved")
            return False

        self.audit.record(
            entity_type="leg",
            entity_id=leg_id,
            action="manual_resolve",
            previous_state=LegStatus.PENDING,
            new_state=outcome,
            performed_by=performed_by,
        )
        logger.info(f"Leg {leg_id} manually resolved {outcome} by {performed_by}")

        self._reaggregate(leg.parlay_id, performed_by)
        self.db.flush()
        return True

    def _reaggregate(self, parlay_id: str, performed_by: str) -> Optional[ParlayOutcome]:
        parlay = self.parlays.find_by_ids([parlay_id], refresh=True)[0]
        outcome = aggregate(parlay, self.legs.find_by_parlay(parlay_id), default_stake=settings.DEFAULT_STAKE)
        if parlay.final_outcome in ParlayResult.TERMINAL or outcome.outcome not in ParlayResult.TERMINAL:
            return None

        settled = self.parlays.settle_if_pending(
            parlay_id,
            outcome.outcome,
            payout=outcome.payout,
            profit_loss=outcome.profit_loss,
            hit_percentage=outcome.hit_percentage,
            settled_at=utc_now(),
        )
        if settled:
            self.audit.record(
                entity_type="parlay",
                entity_id=parlay_id,
                action="settled",
                previous_state=ParlayResult.PENDING,
                new_state=outcome.outcome,
                details={"payout": outcome.payout, "profit_loss": outcome.profit_loss},
                performed_by=performed_by,
            )
        return outcome

    def override_parlay(
        self,
        parlay_id: str,
        outcome: str,
        profit_loss: Optional[float] = None,
        performed_by: str = "system",
    ) -> bool:
        """
        Set a parlay's final outcome, settled or not.

        Args:
            parlay_id: Parlay ID
            outcome: 'win', 'loss' or 'pending'
            profit_loss: Profit/loss to record (default: derived from stake
                and potential payout for win/loss, None for pending)
            performed_by: Operator name

        Returns:
            True if the parlay exists and was updated

        Raises:
            ValueError: If outcome is invalid
        """
        if outcome not in (ParlayResult.WIN, ParlayResult.LOSS, ParlayResult.PENDING):
            raise ValueError(f"Invalid parlay outcome: {outcome!r}")

        parlay = self.parlays.find_by_id(parlay_id)
        if parlay is None:
            logger.warning(f"Override skipped: parlay {parlay_id} not found")
            return False

        previous = {
            "final_outcome": parlay.final_outcome,
            "payout": parlay.payout,
            "profit_loss": parlay.profit_loss,
        }
        stake = parlay.stake if parlay.stake is not None else settings.DEFAULT_STAKE

        payout = None
        if profit_loss is None:
            if outcome == ParlayResult.LOSS:
                profit_loss = -stake
            elif outcome == ParlayResult.WIN and parlay.potential_payout is not None:
                profit_loss = round(parlay.potential_payout - stake, 2)
        if profit_loss is not None and outcome in ParlayResult.TERMINAL:
            payout = round(stake + profit_loss, 2)

        self.parlays.override(parlay_id, outcome, profit_loss=profit_loss, payout=payout, now=utc_now())
        self.audit.record(
            entity_type="parlay",
            entity_id=parlay_id,
            action="manual_override",
            previous_state=previous["final_outcome"],
            new_state=outcome,
            details={"previous": previous, "profit_loss": profit_loss, "payout": payout},
            performed_by=performed_by,
        )
        self.db.flush()

        logger.warning(
            f"Parlay {parlay_id} overridden {previous['final_outcome']} -> {outcome} by {performed_by}"
        )
        return True
