"""
Parlay aggregator: combine leg outcomes into a parlay outcome.

Rules:
- Any lost leg: the parlay is a loss, even with other legs still pending
- Every leg resolved and none lost: win; pushed legs drop out of the payout
- Otherwise: pending

A terminal parlay is returned as it is; only an operator override changes it.
"""
import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from parlay_settlement.models import Parlay, LegResult, ParlayResult
from parlay_settlement.services.settlement.odds import parlay_payout, to_cents
from parlay_settlement.services.settlement.types import ParlayOutcome

logger = logging.getLogger(__name__)


def _hit_percentage(won: int, resolved: int) -> Optional[float]:
    """Share of resolved legs won; pending legs are left out."""
    if resolved == 0:
        return None
    return round(won * 100.0 / resolved, 2)


def _stake(parlay: Parlay, default_stake: Optional[float]) -> Decimal:
    stake = parlay.stake if parlay.stake is not None else default_stake
    if stake is None:
        from parlay_settlement.core.config import settings
        stake = settings.DEFAULT_STAKE
    return Decimal(str(stake))


def _win_payout(parlay: Parlay, won_prices: Sequence[Optional[int]], push_legs: int, stake: Decimal):
    """Return (payout, profit_loss) for a winning parlay, or (None, None)."""
    if not won_prices:
        # Every leg pushed: stake is returned
        return to_cents(stake), 0.0

    if all(p is not None for p in won_prices):
        try:
            payout = parlay_payout(stake, won_prices)
            return payout, to_cents(Decimal(str(payout)) - stake)
        except ValueError as e:
            logger.warning(f"Parlay {parlay.id} has an invalid leg price: {e}")

    if push_legs == 0 and parlay.potential_payout is not None:
        # The quoted return still holds when no leg dropped out
        quoted = Decimal(str(parlay.potential_payout))
        return to_cents(quoted), to_cents(quoted - stake)

    logger.warning(
        f"Parlay {parlay.id} won but its payout cannot be computed "
        f"(missing leg prices, {push_legs} pushes)"
    )
    return None, None


def aggregate(
    parlay: Parlay,
    leg_states: Iterable,
    default_stake: Optional[float] = None,
) -> ParlayOutcome:
    """
    Compute a parlay's outcome from the current state of all its legs.

    Args:
        parlay: Parlay (id, stake, potential_payout, final_outcome are used)
        leg_states: Every leg of the parlay, as objects with `outcome` and
            `price` attributes (ParlayLeg rows work)
        default_stake: Stake to use when the parlay has none recorded

    Returns:
        ParlayOutcome; payout fields are set only for terminal outcomes
    """
    legs = list(leg_states)
    won_prices = [leg.price for leg in legs if leg.outcome == LegResult.WON]
    lost = sum(1 for leg in legs if leg.outcome == LegResult.LOST)
    pushes = sum(1 for leg in legs if leg.outcome == LegResult.PUSH)
    pending = len(legs) - len(won_prices) - lost - pushes

    outcome = ParlayOutcome(
        parlay_id=parlay.id,
        outcome=ParlayResult.PENDING,
        won_legs=len(won_prices),
        lost_legs=lost,
        push_legs=pushes,
        pending_legs=pending,
    )

    if parlay.final_outcome in ParlayResult.TERMINAL:
        outcome.outcome = parlay.final_outcome
        outcome.payout = parlay.payout
        outcome.profit_loss = parlay.profit_loss
        outcome.hit_percentage = parlay.hit_percentage
        return outcome

    if not legs:
        return outcome

    stake = _stake(parlay, default_stake)

    if lost:
        outcome.outcome = ParlayResult.LOSS
        outcome.payout = 0.0
        outcome.profit_loss = -to_cents(stake)
        outcome.hit_percentage = _hit_percentage(len(won_prices), len(won_prices) + lost + pushes)
        return outcome

    if pending:
        return outcome

    outcome.outcome = ParlayResult.WIN
    outcome.payout, outcome.profit_loss = _win_payout(parlay, won_prices, pushes, stake)
    # A win counts as a full hit; a parlay where every leg pushed hit nothing
    outcome.hit_percentage = 100.0 if won_prices else 0.0
    return outcome
