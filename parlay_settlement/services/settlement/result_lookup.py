"""
Game result lookup: find the feed's game for a bet leg.

Matching runs in two stages:
1. Exact filter on sport and calendar date (settlement time zone)
2. Pairwise team match: leg home vs result home AND leg away vs result away

A leg is only settled against a unique candidate. Zero matches and multiple
matches both return None; the leg stays pending and is retried next run.
"""
import logging
from typing import Iterable, List, Optional

from parlay_settlement.models import ParlayLeg
from parlay_settlement.services.settlement.team_matcher import TeamMatcher, default_matcher
from parlay_settlement.services.settlement.types import GameResult
from parlay_settlement.utils.timezone import settlement_date

logger = logging.getLogger(__name__)


def find_result(
    leg: ParlayLeg,
    candidates: Iterable[GameResult],
    matcher: Optional[TeamMatcher] = None,
    tz_name: Optional[str] = None,
) -> Optional[GameResult]:
    """
    Find the unique game result for a leg.

    Args:
        leg: Bet leg (sport, game_time, home_team, away_team are used)
        candidates: Results fetched for the leg's sport and date
        matcher: Team matcher (default: textual rule)
        tz_name: Settlement time zone (default from settings)

    Returns:
        The matching GameResult, or None if there is no unique match
    """
    matcher = matcher or default_matcher()
    sport = (leg.sport or "").upper()
    day = settlement_date(leg.game_time, tz_name)

    same_day: List[GameResult] = [
        c for c in candidates
        if c.sport.upper() == sport and c.game_date == day
    ]

    matches = [
        c for c in same_day
        if matcher.matches(leg.home_team, c.home_team, sport)
        and matcher.matches(leg.away_team, c.away_team, sport)
    ]

    if len(matches) == 1:
        return matches[0]

    if len(matches) > 1:
        logger.info(
            f"Ambiguous result for leg {leg.id}: {leg.away_team} @ {leg.home_team} "
            f"matched {len(matches)} games",
            extra={"leg_id": leg.id, "event_ids": [m.event_id for m in matches]},
        )
    else:
        logger.debug(
            f"No result for leg {leg.id}: {leg.away_team} @ {leg.home_team} "
            f"({sport} {day}, {len(same_day)} candidates)"
        )
    return None
