"""Shared pytest fixtures for parlay settlement tests."""
import sys
import uuid
from pathlib import Path
from datetime import datetime, timedelta, date
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from parlay_settlement.models import Base, Parlay, ParlayLeg, TeamAlias, LegStatus, LegResult, ParlayResult
from parlay_settlement.services.settlement.types import GameResult, GameStatus

# Sunday Jan 5 2025, 1:00 PM ET
KICKOFF = datetime(2025, 1, 5, 18, 0)
GAME_DAY = date(2025, 1, 5)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    # StaticPool keeps the single in-memory connection alive for the session
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def kickoff() -> datetime:
    """Scheduled start of the default test game (naive UTC)."""
    return KICKOFF


@pytest.fixture
def after_grace() -> datetime:
    """A moment past the default 4 hour grace window."""
    return KICKOFF + timedelta(hours=5)


def _leg_values(**overrides) -> dict:
    values = {
        "id": str(uuid.uuid4()),
        "parlay_id": "parlay-1",
        "leg_number": 1,
        "sport": "NFL",
        "game_time": KICKOFF,
        "home_team": "Denver Broncos",
        "away_team": "Kansas City Chiefs",
        "bet_type": "moneyline",
        "pick": "Denver Broncos",
        "line": None,
        "price": -110,
        "status": LegStatus.PENDING,
        "outcome": LegResult.PENDING,
        "created_at": KICKOFF - timedelta(days=1),
    }
    values.update(overrides)
    return values


@pytest.fixture
def leg_factory():
    """Build transient ParlayLeg objects (not added to any session)."""
    def _make(**overrides) -> ParlayLeg:
        return ParlayLeg(**_leg_values(**overrides))
    return _make


@pytest.fixture
def result_factory():
    """Build GameResult records; defaults to Chiefs 24 @ Broncos 27, final."""
    def _make(**overrides) -> GameResult:
        values = {
            "event_id": "401671000",
            "sport": "NFL",
            "game_date": GAME_DAY,
            "home_team": "Denver Broncos",
            "away_team": "Kansas City Chiefs",
            "home_score": 27,
            "away_score": 24,
            "status": GameStatus.FINAL,
            "start_time": KICKOFF,
        }
        values.update(overrides)
        return GameResult(**values)
    return _make


@pytest.fixture
def parlay_factory(db_session: Session):
    """
    Persist a parlay with legs.

    Each leg is given as a dict of overrides on the default Broncos/Chiefs
    moneyline leg.
    """
    def _make(
        legs: list,
        stake: float = 100.0,
        potential_payout: float = None,
        final_outcome: str = ParlayResult.PENDING,
        parlay_id: str = None,
    ) -> Parlay:
        parlay_id = parlay_id or str(uuid.uuid4())
        parlay = Parlay(
            id=parlay_id,
            user_id="user-1",
            stake=stake,
            potential_payout=potential_payout,
            final_outcome=final_outcome,
            created_at=KICKOFF - timedelta(days=1),
            updated_at=KICKOFF - timedelta(days=1),
        )
        db_session.add(parlay)
        for number, overrides in enumerate(legs, start=1):
            values = _leg_values(parlay_id=parlay_id, leg_number=number)
            values.update(overrides)
            db_session.add(ParlayLeg(**values))
        db_session.commit()
        return parlay
    return _make


@pytest.fixture
def sample_team_aliases(db_session: Session):
    """Alias rows for a few NFL teams."""
    rows = [
        ("kc_chiefs", "Kansas City Chiefs"),
        ("kc_chiefs", "KC"),
        ("kc_chiefs", "Chiefs"),
        ("den_broncos", "Denver Broncos"),
        ("den_broncos", "DEN"),
        ("den_broncos", "Broncos"),
    ]
    aliases = [
        TeamAlias(
            id=str(uuid.uuid4()),
            sport="NFL",
            team_key=key,
            alias=alias.lower(),
            source="manual",
            created_at=KICKOFF,
        )
        for key, alias in rows
    ]
    db_session.add_all(aliases)
    db_session.commit()
    return aliases
