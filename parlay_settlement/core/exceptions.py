"""
Settlement error taxonomy.

- ScoreFeedError: transient external failure, isolated to one (sport, date) group
- MalformedLegError: bet data that cannot be settled; the leg stays pending
- An ambiguous or missing game match is not an exception (lookup returns None)
- A lost conditional update is not an exception (repository returns False)
"""
from datetime import date
from typing import Optional


class SettlementError(Exception):
    """Base class for settlement engine errors."""


class MalformedLegError(SettlementError):
    """Leg data is missing or unparseable; settling it would be a guess."""

    def __init__(self, reason: str, leg_id: Optional[str] = None):
        self.reason = reason
        self.leg_id = leg_id
        super().__init__(f"leg {leg_id}: {reason}" if leg_id else reason)


class ScoreFeedError(SettlementError):
    """The score feed could not be fetched for a sport and date."""

    def __init__(self, sport: str, day: date, reason: str):
        self.sport = sport
        self.day = day
        self.reason = reason
        super().__init__(f"score feed failed for {sport} on {day.isoformat()}: {reason}")
