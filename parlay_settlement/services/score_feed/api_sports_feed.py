"""
API-Sports score feed.

Keyed provider tried ahead of ESPN when APISPORTS_API_KEY is set. Each sport
lives on its own API host; one request lists every game of a date in the
settlement time zone, and games of other leagues are filtered out here.

API Endpoints:
- Base URL: https://v1.{api}.api-sports.io
- Games: /games?date=YYYY-MM-DD&timezone=America/New_York
- Auth: x-apisports-key header

Payload shapes differ by API: american-football nests the game's id, date
and status under "game", the other APIs keep them at the top level.
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pybreaker import CircuitBreaker

from parlay_settlement.core.config import settings
from parlay_settlement.core.exceptions import ScoreFeedError
from parlay_settlement.core.logging import get_logger
from parlay_settlement.services.score_feed.base import HTTPScoreFeed, RequestSpec, parse_score
from parlay_settlement.services.score_feed.circuit_breaker import api_sports_breaker
from parlay_settlement.services.settlement.types import GameResult, GameStatus
from parlay_settlement.utils.timezone import settlement_date, to_naive_utc

logger = get_logger(__name__)

# Sport code -> (API name, league id)
API_SPORTS_LEAGUES = {
    "NFL": ("american-football", 1),
    "NCAAF": ("american-football", 2),
    "NBA": ("basketball", 12),
    "MLB": ("baseball", 1),
    "NHL": ("hockey", 57),
}

# Short status codes
FINISHED_CODES = {"FT", "AOT", "AP"}
SCHEDULED_CODES = {"NS", "TBD"}
POSTPONED_CODES = {"PST", "POST"}
CANCELED_CODES = {"CANC", "ABD"}
DELAYED_CODES = {"SUSP", "INTR", "DELAYED"}
_LIVE_CODE = re.compile(r"^(?:Q[1-4]|OT|HT|BT|P[1-3]|PT|IN\d+|LIVE)$")


class APISportsScoreFeed(HTTPScoreFeed):
    """
    Score feed backed by API-Sports.

    Usage:
        feed = APISportsScoreFeed(api_key="...")
        results = await feed.fetch_results("NBA", date(2025, 1, 5))
        feed.close()
    """

    source = "api-sports"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        tz_name: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Initialize the feed.

        Args:
            api_key: API-Sports key (default: settings.APISPORTS_API_KEY)
            base_url: Host template with an {api} placeholder

        Other arguments as for HTTPScoreFeed.

        Raises:
            ValueError: If no API key is available
        """
        self.api_key = api_key or settings.APISPORTS_API_KEY
        if not self.api_key:
            raise ValueError("API-Sports feed requires APISPORTS_API_KEY")

        super().__init__(
            base_url=base_url or settings.APISPORTS_BASE_URL,
            breaker=breaker or api_sports_breaker,
            timeout=timeout,
            retry_attempts=retry_attempts,
            backoff_seconds=backoff_seconds,
            cache_ttl=cache_ttl,
            tz_name=tz_name,
            client=client,
        )

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        headers["x-apisports-key"] = self.api_key
        return headers

    def _build_request(self, sport: str, day: date) -> Optional[RequestSpec]:
        league = API_SPORTS_LEAGUES.get(sport)
        if league is None:
            return None
        api, _ = league
        url = f"{self.base_url.format(api=api)}/games"
        return url, {"date": day.isoformat(), "timezone": self.tz_name}

    def _check_payload(self, sport: str, day: date, data: Dict[str, Any]) -> None:
        # Quota and key problems come back as HTTP 200 with an "errors" object
        errors = data.get("errors")
        if errors:
            raise ScoreFeedError(sport, day, f"provider error: {errors}")

    # ==================== PARSING ====================

    def parse_scoreboard(self, sport: str, data: Dict[str, Any]) -> List[GameResult]:
        """Parse a games payload, keeping the sport's league only."""
        _, league_id = API_SPORTS_LEAGUES[sport]
        results = []
        for item in data.get("response") or []:
            league = item.get("league") or {}
            if str(league.get("id")) != str(league_id):
                continue
            result = self.parse_game(sport, item)
            if result is not None:
                results.append(result)
            else:
                logger.debug(f"Skipping unparseable {sport} game {(item.get('game') or item).get('id')}")
        return results

    def parse_game(self, sport: str, item: Dict[str, Any]) -> Optional[GameResult]:
        """Parse one game, or None if teams or start time are missing."""
        game = item.get("game") or item
        teams = item.get("teams") or {}
        home_team = (teams.get("home") or {}).get("name")
        away_team = (teams.get("away") or {}).get("name")
        if not home_team or not away_team:
            return None

        start_time = self._parse_start_time(game)
        if start_time is None:
            return None

        status = self._parse_game_status(game.get("status") or {})

        home_score = away_score = None
        if status == GameStatus.FINAL:
            scores = item.get("scores") or {}
            home_score = parse_score(scores.get("home"))
            away_score = parse_score(scores.get("away"))
            if home_score is None or away_score is None:
                logger.warning(f"Final {sport} game {game.get('id')} has unreadable scores ({scores!r})")
                status = GameStatus.FINAL_UNSCORED
                home_score = away_score = None

        return GameResult(
            event_id=str(game.get("id")),
            sport=sport,
            game_date=settlement_date(start_time, self.tz_name),
            home_team=home_team,
            away_team=away_team,
            home_score=home_score,
            away_score=away_score,
            status=status,
            start_time=start_time,
            source=self.source,
        )

    @staticmethod
    def _parse_game_status(status: Dict) -> str:
        """Parse a short status code to simplified form."""
        code = (status.get("short") or "").upper()

        if code in FINISHED_CODES:
            return GameStatus.FINAL
        if code in SCHEDULED_CODES:
            return GameStatus.SCHEDULED
        if code in POSTPONED_CODES:
            return GameStatus.POSTPONED
        if code in CANCELED_CODES:
            return GameStatus.CANCELED
        if code in DELAYED_CODES:
            return GameStatus.DELAYED
        if _LIVE_CODE.match(code):
            return GameStatus.IN_PROGRESS
        return code.lower() or "unknown"

    @staticmethod
    def _parse_start_time(game: Dict[str, Any]) -> Optional[datetime]:
        """
        Parse a game's start to naive UTC.

        Uses the Unix timestamp when present ("date": {"timestamp": ...} or a
        top-level "timestamp"), else the ISO 8601 "date" string.
        """
        raw_date = game.get("date")
        timestamp = raw_date.get("timestamp") if isinstance(raw_date, dict) else game.get("timestamp")

        if timestamp is not None:
            try:
                return to_naive_utc(datetime.fromtimestamp(int(timestamp), tz=timezone.utc))
            except (TypeError, ValueError, OverflowError, OSError):
                pass

        if isinstance(raw_date, str) and raw_date:
            try:
                return to_naive_utc(datetime.fromisoformat(raw_date.replace("Z", "+00:00")))
            except ValueError:
                return None
        return None
