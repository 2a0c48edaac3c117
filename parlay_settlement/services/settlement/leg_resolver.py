"""
Leg resolver: decide one leg's outcome, without side effects.

A leg is resolved when all of these hold:
- It is still pending (resolution is monotonic)
- Its scheduled start plus the grace period has passed
- The feed has a unique, final result for its game

Anything short of that returns None and the leg is retried next run.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from parlay_settlement.core.exceptions import MalformedLegError
from parlay_settlement.models import ParlayLeg, LegStatus
from parlay_settlement.services.settlement.result_lookup import find_result
from parlay_settlement.services.settlement.rules import settle
from parlay_settlement.services.settlement.team_matcher import TeamMatcher, default_matcher
from parlay_settlement.services.settlement.types import GameResult, LegOutcome
from parlay_settlement.utils.timezone import to_naive_utc

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = timedelta(hours=4)


class LegResolver:
    """
    Resolve pending legs against fetched game results.

    Usage:
        resolver = LegResolver(timedelta(hours=4), matcher)
        outcome = resolver.resolve(leg, results, as_of=utc_now())
    """

    def __init__(
        self,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        matcher: Optional[TeamMatcher] = None,
        tz_name: Optional[str] = None,
    ):
        self.grace_period = grace_period
        self.matcher = matcher or default_matcher()
        self.tz_name = tz_name

    def is_eligible(self, leg: ParlayLeg, as_of: datetime) -> bool:
        """Check whether the leg's game is old enough to look up."""
        if leg.game_time is None:
            return False
        return to_naive_utc(leg.game_time) + self.grace_period <= to_naive_utc(as_of)

    def resolve(
        self,
        leg: ParlayLeg,
        results: Iterable[GameResult],
        as_of: datetime,
    ) -> Optional[LegOutcome]:
        """
        Decide a leg's outcome.

        Args:
            leg: Bet leg
            results: Results for the leg's sport and date
            as_of: Evaluation time

        Returns:
            LegOutcome, or None if the leg cannot (yet) be decided

        Raises:
            MalformedLegError: If the leg's own data cannot be settled
        """
        if leg.status != LegStatus.PENDING:
            return None

        if not self.is_eligible(leg, as_of):
            return None

        result = find_result(leg, results, self.matcher, self.tz_name)
        if result is None:
            return None

        if not result.is_final:
            logger.debug(f"Game {result.event_id} for leg {leg.id} is {result.status}, not final")
            return None

        try:
            settlement = settle(
                leg.bet_type,
                leg.pick,
                leg.line,
                leg.home_team,
                leg.away_team,
                result.home_score,
                result.away_score,
                matcher=self.matcher,
                sport=leg.sport,
            )
        except MalformedLegError as e:
            raise MalformedLegError(e.reason, leg_id=leg.id) from e

        return LegOutcome(
            leg_id=leg.id,
            parlay_id=leg.parlay_id,
            outcome=settlement.outcome,
            actual_value=settlement.actual_value,
            margin_of_victory=settlement.margin_of_victory,
            result=result,
        )
