"""
Score feeds.

Usage:
    from parlay_settlement.services.score_feed import create_score_feed

    feed = create_score_feed()
"""
from parlay_settlement.services.score_feed.base import HTTPScoreFeed
from parlay_settlement.services.score_feed.espn_feed import ESPNScoreFeed, ESPN_SPORT_PATHS
from parlay_settlement.services.score_feed.api_sports_feed import APISportsScoreFeed, API_SPORTS_LEAGUES
from parlay_settlement.services.score_feed.fallback import FallbackScoreFeed, create_score_feed
from parlay_settlement.services.score_feed.circuit_breaker import (
    api_sports_breaker,
    espn_breaker,
    reset_breaker,
)

__all__ = [
    "HTTPScoreFeed",
    "ESPNScoreFeed",
    "ESPN_SPORT_PATHS",
    "APISportsScoreFeed",
    "API_SPORTS_LEAGUES",
    "FallbackScoreFeed",
    "create_score_feed",
    "espn_breaker",
    "api_sports_breaker",
    "reset_breaker",
]
