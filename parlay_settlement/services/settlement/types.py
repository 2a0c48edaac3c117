"""
Value types passed between the settlement components.

GameResult comes from the score feed and is never mutated. LegOutcome and
ParlayOutcome are decisions computed by the pure components; only the run
controller and the manual service persist them.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Protocol


class GameStatus:
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"
    FINAL_UNSCORED = "final_unscored"  # Completed but the feed's score is unusable
    POSTPONED = "postponed"
    CANCELED = "canceled"
    DELAYED = "delayed"


@dataclass(frozen=True)
class GameResult:
    """Final (or current) state of one game as reported by the score feed."""
    event_id: str
    sport: str
    game_date: date  # Calendar date in the settlement time zone
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    status: str
    start_time: Optional[datetime] = None  # Naive UTC
    source: str = "espn"

    @property
    def is_final(self) -> bool:
        return (
            self.status == GameStatus.FINAL
            and self.home_score is not None
            and self.away_score is not None
        )

    def __repr__(self):
        return (f"GameResult({self.sport} {self.game_date}: {self.away_team} {self.away_score} @ "
                f"{self.home_team} {self.home_score}, {self.status})")


@dataclass(frozen=True)
class LegSettlement:
    """Outcome of applying a bet's rule to a final score."""
    outcome: str  # 'won', 'lost' or 'push'
    actual_value: Decimal
    margin_of_victory: Decimal


@dataclass(frozen=True)
class LegOutcome:
    """A leg resolution decided by the resolver, not yet persisted."""
    leg_id: str
    parlay_id: str
    outcome: str
    actual_value: Decimal
    margin_of_victory: Decimal
    result: GameResult


@dataclass
class ParlayOutcome:
    """Aggregate state of a parlay computed from its legs."""
    parlay_id: str
    outcome: str  # 'pending', 'win' or 'loss'
    payout: Optional[float] = None
    profit_loss: Optional[float] = None
    hit_percentage: Optional[float] = None
    won_legs: int = 0
    lost_legs: int = 0
    push_legs: int = 0
    pending_legs: int = 0

    def __repr__(self):
        return (f"ParlayOutcome(id={self.parlay_id}, outcome={self.outcome}, "
                f"W{self.won_legs}-L{self.lost_legs}-P{self.push_legs}, "
                f"pending={self.pending_legs}, payout={self.payout})")


@dataclass
class RunSummary:
    """Counters and warnings from one resolution run."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    legs_checked: int = 0
    legs_resolved: int = 0
    legs_conflicted: int = 0
    parlays_resolved: int = 0
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, warning: str):
        """Add a warning to the summary."""
        self.warnings.append(warning)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data

    def __repr__(self):
        return (f"RunSummary(run_id={self.run_id}, checked={self.legs_checked}, "
                f"resolved={self.legs_resolved}, conflicted={self.legs_conflicted}, "
                f"parlays={self.parlays_resolved}, warnings={len(self.warnings)})")


class ScoreFeed(Protocol):
    """Source of game results for one sport and calendar date."""

    async def fetch_results(self, sport: str, day: date) -> List[GameResult]:
        ...
