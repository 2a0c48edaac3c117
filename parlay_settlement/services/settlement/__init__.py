"""
Bet outcome resolution.

Components, leaves first:
- team_matcher: same-team decision for two spellings
- rules: leg outcome from a final score
- result_lookup: the feed's game for a leg
- leg_resolver: eligibility + lookup + rules for one leg
- parlay_aggregator: parlay outcome and payout from its legs
- controller: one resolution pass with persistence
- manual: operator resolution and override
"""
from parlay_settlement.services.settlement.controller import ResolutionRunController
from parlay_settlement.services.settlement.leg_resolver import LegResolver
from parlay_settlement.services.settlement.manual import ManualSettlementService
from parlay_settlement.services.settlement.parlay_aggregator import aggregate
from parlay_settlement.services.settlement.result_lookup import find_result
from parlay_settlement.services.settlement.rules import settle
from parlay_settlement.services.settlement.team_matcher import TeamMatcher, teams_match
from parlay_settlement.services.settlement.types import (
    GameResult,
    GameStatus,
    LegOutcome,
    LegSettlement,
    ParlayOutcome,
    RunSummary,
    ScoreFeed,
)

__all__ = [
    "ResolutionRunController",
    "LegResolver",
    "ManualSettlementService",
    "aggregate",
    "find_result",
    "settle",
    "TeamMatcher",
    "teams_match",
    "GameResult",
    "GameStatus",
    "LegOutcome",
    "LegSettlement",
    "ParlayOutcome",
    "RunSummary",
    "ScoreFeed",
]
