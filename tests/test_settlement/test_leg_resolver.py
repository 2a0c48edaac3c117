"""Unit tests for the leg resolver.

Test Strategy:
1. Eligibility gate (grace period)
2. No result / non-final result leaves the leg unresolved
3. Final result produces a LegOutcome with the matched result
4. Resolved legs are never re-evaluated
5. Malformed legs raise with the leg ID attached
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from parlay_settlement.core.exceptions import MalformedLegError
from parlay_settlement.models import LegResult, LegStatus
from parlay_settlement.services.settlement.leg_resolver import LegResolver
from parlay_settlement.services.settlement.types import GameStatus


@pytest.fixture
def resolver():
    return LegResolver(grace_period=timedelta(hours=4), tz_name="America/New_York")


class TestEligibility:
    """Test the grace period gate."""

    def test_not_eligible_before_grace(self, resolver, leg_factory, kickoff):
        """Should not be eligible while the game may still be running."""
        assert not resolver.is_eligible(leg_factory(), kickoff + timedelta(hours=3, minutes=59))

    def test_eligible_at_grace_boundary(self, resolver, leg_factory, kickoff):
        """Should be eligible exactly at start + grace."""
        assert resolver.is_eligible(leg_factory(), kickoff + timedelta(hours=4))

    def test_ineligible_leg_is_not_resolved(self, resolver, leg_factory, result_factory, kickoff):
        """Should return None before the grace period even with a final result."""
        assert resolver.resolve(leg_factory(), [result_factory()], kickoff + timedelta(hours=1)) is None


class TestResolve:
    """Test leg resolution."""

    def test_final_result_resolves(self, resolver, leg_factory, result_factory, after_grace):
        """Should resolve a won moneyline leg and carry the matched result."""
        leg = leg_factory(pick="Denver Broncos")
        result = result_factory()

        outcome = resolver.resolve(leg, [result], after_grace)

        assert outcome is not None
        assert outcome.leg_id == leg.id
        assert outcome.parlay_id == leg.parlay_id
        assert outcome.outcome == LegResult.WON
        assert outcome.actual_value == Decimal(3)
        assert outcome.result is result

    def test_no_result(self, resolver, leg_factory, after_grace):
        """Should return None when the feed has no game for the leg."""
        assert resolver.resolve(leg_factory(), [], after_grace) is None

    @pytest.mark.parametrize("status", [
        GameStatus.SCHEDULED,
        GameStatus.IN_PROGRESS,
        GameStatus.POSTPONED,
        GameStatus.FINAL_UNSCORED,
    ])
    def test_non_final_result(self, resolver, leg_factory, result_factory, after_grace, status):
        """Should return None while the game is not final."""
        result = result_factory(status=status, home_score=None, away_score=None)
        assert resolver.resolve(leg_factory(), [result], after_grace) is None

    def test_resolved_leg_is_not_reevaluated(self, resolver, leg_factory, result_factory, after_grace):
        """Should return None for a leg that is already resolved."""
        leg = leg_factory(status=LegStatus.RESOLVED, outcome=LegResult.LOST)
        assert resolver.resolve(leg, [result_factory()], after_grace) is None

    def test_malformed_leg_raises_with_id(self, resolver, leg_factory, result_factory, after_grace):
        """Should raise MalformedLegError carrying the leg ID."""
        leg = leg_factory(bet_type="player_points", pick="Over 24.5")

        with pytest.raises(MalformedLegError) as exc_info:
            resolver.resolve(leg, [result_factory()], after_grace)

        assert exc_info.value.leg_id == leg.id

    def test_spread_leg(self, resolver, leg_factory, result_factory, after_grace):
        """Should settle a spread leg with its stored line."""
        leg = leg_factory(bet_type="spread", pick="Denver Broncos", line=Decimal("3.5"))
        result = result_factory(home_score=20, away_score=23)

        outcome = resolver.resolve(leg, [result], after_grace)

        assert outcome.outcome == LegResult.WON
        assert outcome.margin_of_victory == Decimal("0.5")
