"""Tests for the session helpers and the run_settlement() entry point.

Both run against a throwaway SQLite database configured through settings,
with the score feed replaced by an in-memory fake.
"""
from datetime import datetime, timedelta

import pytest

import parlay_settlement
from parlay_settlement.core import database
from parlay_settlement.core.config import settings
from parlay_settlement.models import Parlay, ParlayLeg, LegResult, LegStatus, ParlayResult
from parlay_settlement.services import score_feed


KICKOFF = datetime(2025, 1, 5, 18, 0)


@pytest.fixture
def sqlite_settings(monkeypatch):
    """Point the engine at a fresh in-memory database."""
    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite://")
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_SessionLocal", None)
    database.init_db()
    yield
    database.get_engine().dispose()


def add_parlay(db, parlay_id="parlay-1"):
    db.add(Parlay(
        id=parlay_id,
        user_id="user-1",
        stake=100.0,
        potential_payout=190.91,
        created_at=KICKOFF - timedelta(days=1),
        updated_at=KICKOFF - timedelta(days=1),
    ))
    db.add(ParlayLeg(
        id=f"{parlay_id}-leg-1",
        parlay_id=parlay_id,
        leg_number=1,
        sport="NFL",
        game_time=KICKOFF,
        home_team="Denver Broncos",
        away_team="Kansas City Chiefs",
        bet_type="moneyline",
        pick="Denver Broncos",
        price=-110,
        status=LegStatus.PENDING,
        outcome=LegResult.PENDING,
        created_at=KICKOFF - timedelta(days=1),
    ))


class TestSessionScope:
    """Test the transactional session helper."""

    def test_commits_on_success(self, sqlite_settings):
        """Should commit when the block completes."""
        with database.session_scope() as db:
            add_parlay(db)

        with database.session_scope() as db:
            assert db.query(Parlay).count() == 1

    def test_rolls_back_on_error(self, sqlite_settings):
        """Should discard changes when the block raises."""
        with pytest.raises(RuntimeError):
            with database.session_scope() as db:
                add_parlay(db)
                db.flush()
                raise RuntimeError("boom")

        with database.session_scope() as db:
            assert db.query(Parlay).count() == 0


class TestRunSettlement:
    """Test one full settlement pass through the package entry point."""

    def test_settles_and_commits(self, sqlite_settings, monkeypatch, result_factory):
        """Should settle a finished parlay and return the summary as a dict."""
        results = [result_factory()]
        closed = []

        class FakeFeed:
            async def fetch_results(self, sport, day):
                return results

            def close(self):
                closed.append(True)

        monkeypatch.setattr(score_feed, "create_score_feed", FakeFeed)
        with database.session_scope() as db:
            add_parlay(db)

        summary = parlay_settlement.run_settlement(as_of=KICKOFF + timedelta(hours=5))

        assert summary["legs_resolved"] == 1
        assert summary["parlays_resolved"] == 1
        assert summary["warnings"] == []
        assert isinstance(summary["started_at"], str)
        assert closed == [True]

        with database.session_scope() as db:
            parlay = db.get(Parlay, "parlay-1")
            assert parlay.final_outcome == ParlayResult.WIN
            assert parlay.payout == 190.91

    def test_closes_feed_on_failure(self, sqlite_settings, monkeypatch):
        """Should close the feed even if the run raises."""
        closed = []

        class FakeFeed:
            def close(self):
                closed.append(True)

        def broken_controller(*args, **kwargs):
            raise RuntimeError("controller failed")

        monkeypatch.setattr(score_feed, "create_score_feed", FakeFeed)
        monkeypatch.setattr(
            "parlay_settlement.services.settlement.ResolutionRunController", broken_controller
        )

        with pytest.raises(RuntimeError):
            parlay_settlement.run_settlement()

        assert closed == [True]
