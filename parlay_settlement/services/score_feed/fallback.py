"""
Ordered fallback across score feeds.

Feeds are asked in turn for a (sport, date). The first non-empty answer is
used as is; answers from different providers are never merged, since their
event ids and team spellings differ and a merge would produce duplicate games.

Usage:
    feed = create_score_feed()
    results = await feed.fetch_results("NFL", date(2025, 1, 5))
    feed.close()
"""
from datetime import date
from typing import List, Optional, Sequence

from pybreaker import CircuitBreakerError

from parlay_settlement.core.config import Settings, settings
from parlay_settlement.core.exceptions import ScoreFeedError
from parlay_settlement.core.logging import get_logger
from parlay_settlement.services.score_feed.api_sports_feed import APISportsScoreFeed
from parlay_settlement.services.score_feed.espn_feed import ESPNScoreFeed
from parlay_settlement.services.settlement.types import GameResult

logger = get_logger(__name__)


class FallbackScoreFeed:
    """Score feed that falls through to the next feed on an empty result or a failure."""

    def __init__(self, feeds: Sequence):
        if not feeds:
            raise ValueError("FallbackScoreFeed needs at least one feed")
        self.feeds = list(feeds)

    async def fetch_results(self, sport: str, day: date) -> List[GameResult]:
        """
        Get game results from the first feed that has any.

        Returns:
            The first non-empty result, or [] if every feed answered empty

        Raises:
            ScoreFeedError: If every feed failed (the last failure)
            CircuitBreakerError: If every feed failed and the last breaker was open
        """
        last_error: Optional[Exception] = None
        answered = False

        for feed in self.feeds:
            name = getattr(feed, "source", type(feed).__name__)
            try:
                results = await feed.fetch_results(sport, day)
            except (ScoreFeedError, CircuitBreakerError) as e:
                logger.warning(f"{name} score feed failed for {sport} on {day.isoformat()}: {e}")
                last_error = e
                continue

            answered = True
            if results:
                return results
            logger.info(f"{name} score feed had no {sport} games on {day.isoformat()}, trying next")

        if last_error is not None and not answered:
            raise last_error
        return []

    def close(self):
        """Close every feed."""
        for feed in self.feeds:
            feed.close()


def create_score_feed(app_settings: Optional[Settings] = None):
    """
    Build the configured score feed.

    API-Sports is put ahead of ESPN only when APISPORTS_API_KEY is set;
    otherwise the ESPN feed is used on its own.
    """
    app_settings = app_settings or settings
    if app_settings.APISPORTS_API_KEY:
        logger.info("Score feeds: API-Sports with ESPN fallback")
        return FallbackScoreFeed([
            APISportsScoreFeed(api_key=app_settings.APISPORTS_API_KEY, base_url=app_settings.APISPORTS_BASE_URL),
            ESPNScoreFeed(base_url=app_settings.ESPN_BASE_URL),
        ])
    return ESPNScoreFeed(base_url=app_settings.ESPN_BASE_URL)
