"""Unit tests for game result lookup.

Test Strategy:
1. Unique pairwise match is returned
2. Sport and calendar date are exact filters
3. Ambiguous and missing matches return None
4. Late kickoffs keep their Eastern calendar date
"""
from datetime import date, datetime

from parlay_settlement.services.settlement.result_lookup import find_result
from parlay_settlement.services.settlement.team_matcher import TeamMatcher


class TestFindResult:
    """Test result lookup for a leg."""

    def test_unique_match(self, leg_factory, result_factory):
        """Should return the one result whose teams match pairwise."""
        leg = leg_factory(home_team="Broncos", away_team="Chiefs")
        target = result_factory()
        other = result_factory(event_id="2", home_team="Buffalo Bills", away_team="Miami Dolphins")

        assert find_result(leg, [other, target]) is target

    def test_home_and_away_must_both_match(self, leg_factory, result_factory):
        """Should not match when the teams are swapped."""
        leg = leg_factory()
        swapped = result_factory(home_team="Kansas City Chiefs", away_team="Denver Broncos")

        assert find_result(leg, [swapped]) is None

    def test_filters_by_sport(self, leg_factory, result_factory):
        """Should ignore results from another sport."""
        leg = leg_factory(sport="NFL")
        assert find_result(leg, [result_factory(sport="NCAAF")]) is None

    def test_filters_by_date(self, leg_factory, result_factory):
        """Should ignore a rematch on another date."""
        leg = leg_factory()
        assert find_result(leg, [result_factory(game_date=date(2024, 10, 6))]) is None

    def test_ambiguous_match_returns_none(self, leg_factory, result_factory, caplog):
        """Should return None when two same-day games both match 'State' / 'Tigers'."""
        leg = leg_factory(sport="NCAAF", home_team="State", away_team="Tigers")
        candidates = [
            result_factory(event_id="1", sport="NCAAF", home_team="Iowa State Cyclones", away_team="Missouri Tigers"),
            result_factory(event_id="2", sport="NCAAF", home_team="Kansas State Wildcats", away_team="LSU Tigers"),
        ]

        with caplog.at_level("INFO"):
            assert find_result(leg, candidates) is None
        assert any("Ambiguous" in r.getMessage() for r in caplog.records)

    def test_no_candidates(self, leg_factory):
        """Should return None for an empty candidate list."""
        assert find_result(leg_factory(), []) is None

    def test_late_kickoff_uses_eastern_date(self, leg_factory, result_factory):
        """Should place a 10:30 PM ET kickoff (03:30 UTC) on the Eastern date."""
        leg = leg_factory(game_time=datetime(2025, 1, 6, 3, 30))
        result = result_factory(game_date=date(2025, 1, 5))

        assert find_result(leg, [result], tz_name="America/New_York") is result

    def test_alias_matcher(self, leg_factory, result_factory):
        """Should match abbreviations through the alias table."""
        matcher = TeamMatcher({"NFL": {
            "DEN": "den", "Denver Broncos": "den",
            "KC": "kc", "Kansas City Chiefs": "kc",
        }})
        leg = leg_factory(home_team="DEN", away_team="KC")
        result = result_factory()

        assert find_result(leg, [result], matcher=matcher) is result
