"""
ESPN scoreboard score feed.

Fetches one scoreboard per (sport, date) and parses it into GameResult
records for settlement. Transport, retries, breaker and cache come from
HTTPScoreFeed.

ESPN API Endpoints:
- Base URL: https://site.api.espn.com/apis/site/v2/sports/
- Scoreboard: {sport_path}/scoreboard?dates=YYYYMMDD
- Documentation: Unofficial, community-maintained

ESPN lists a scoreboard date in US Eastern time, matching the settlement
calendar date. College scoreboards only list featured games unless a
division group is requested, so NCAAF/NCAAB add `groups` and `limit`.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pybreaker import CircuitBreaker

from parlay_settlement.core.config import settings
from parlay_settlement.core.logging import get_logger
from parlay_settlement.services.score_feed.base import HTTPScoreFeed, RequestSpec, parse_score
from parlay_settlement.services.score_feed.circuit_breaker import espn_breaker
from parlay_settlement.services.settlement.types import GameResult, GameStatus
from parlay_settlement.utils.timezone import settlement_date, to_naive_utc

logger = get_logger(__name__)

# Sport code -> ESPN path
ESPN_SPORT_PATHS = {
    "NFL": "football/nfl",
    "NCAAF": "football/college-football",
    "NBA": "basketball/nba",
    "NCAAB": "basketball/mens-college-basketball",
    "WNBA": "basketball/wnba",
    "MLB": "baseball/mlb",
    "NHL": "hockey/nhl",
}

# Extra scoreboard parameters so every game of the day is listed
ESPN_EXTRA_PARAMS = {
    "NCAAF": {"groups": "80", "limit": "500"},  # FBS
    "NCAAB": {"groups": "50", "limit": "500"},  # Division I
}


class ESPNScoreFeed(HTTPScoreFeed):
    """
    Score feed backed by ESPN's public scoreboard.

    Usage:
        feed = ESPNScoreFeed()
        results = await feed.fetch_results("NFL", date(2025, 1, 5))
        feed.close()
    """

    source = "espn"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        tz_name: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(
            base_url=base_url or settings.ESPN_BASE_URL,
            breaker=breaker or espn_breaker,
            timeout=timeout,
            retry_attempts=retry_attempts,
            backoff_seconds=backoff_seconds,
            cache_ttl=cache_ttl,
            tz_name=tz_name,
            client=client,
        )

    def _build_request(self, sport: str, day: date) -> Optional[RequestSpec]:
        sport_path = ESPN_SPORT_PATHS.get(sport)
        if not sport_path:
            return None
        params = {"dates": day.strftime("%Y%m%d"), **ESPN_EXTRA_PARAMS.get(sport, {})}
        return f"{self.base_url}/{sport_path}/scoreboard", params

    # ==================== PARSING ====================

    def parse_scoreboard(self, sport: str, data: Dict[str, Any]) -> List[GameResult]:
        """Parse a scoreboard payload, skipping events that cannot be read."""
        results = []
        for event in data.get("events") or []:
            result = self.parse_event(sport, event)
            if result is not None:
                results.append(result)
            else:
                logger.debug(f"Skipping unparseable {sport} event {event.get('id')}")
        return results

    def parse_event(self, sport: str, event: Dict[str, Any]) -> Optional[GameResult]:
        """Parse one scoreboard event, or None if teams or start time are missing."""
        competitions = event.get("competitions") or [{}]
        competition = competitions[0]

        home, away = self._parse_competitors(competition.get("competitors") or [])
        if home is None or away is None:
            return None

        start_time = self._parse_espn_date(event.get("date") or competition.get("date"))
        if start_time is None:
            return None

        status = self._parse_game_status(event.get("status") or competition.get("status") or {})

        home_score = away_score = None
        if status == GameStatus.FINAL:
            home_score = parse_score(home.get("score"))
            away_score = parse_score(away.get("score"))
            if home_score is None or away_score is None:
                logger.warning(
                    f"Final {sport} event {event.get('id')} has unreadable scores "
                    f"({home.get('score')!r}, {away.get('score')!r})"
                )
                status = GameStatus.FINAL_UNSCORED
                home_score = away_score = None

        return GameResult(
            event_id=str(event.get("id")),
            sport=sport,
            game_date=settlement_date(start_time, self.tz_name),
            home_team=home["name"],
            away_team=away["name"],
            home_score=home_score,
            away_score=away_score,
            status=status,
            start_time=start_time,
            source=self.source,
        )

    @staticmethod
    def _parse_competitors(competitors: List[Dict]) -> Tuple[Optional[Dict], Optional[Dict]]:
        """Parse competitors array to (home, away)."""
        home = None
        away = None

        for competitor in competitors:
            team_data = competitor.get("team") or {}
            name = team_data.get("displayName") or team_data.get("name") or team_data.get("shortDisplayName")
            if not name:
                continue

            parsed = {"name": name, "score": competitor.get("score")}
            if competitor.get("homeAway") == "home":
                home = parsed
            elif competitor.get("homeAway") == "away":
                away = parsed

        return home, away

    @staticmethod
    def _parse_game_status(status: Dict) -> str:
        """Parse game status to simplified form."""
        status_type = status.get("type") or {}
        state = status_type.get("state")
        name = (status_type.get("name") or "").upper()

        if name == "STATUS_POSTPONED":
            return GameStatus.POSTPONED
        if name in ("STATUS_CANCELED", "STATUS_CANCELLED"):
            return GameStatus.CANCELED
        if "DELAY" in name:
            return GameStatus.DELAYED
        if state == "pre":
            return GameStatus.SCHEDULED
        if state == "in":
            return GameStatus.IN_PROGRESS
        if state == "post" and status_type.get("completed"):
            return GameStatus.FINAL

        if name.startswith("STATUS_"):
            name = name[len("STATUS_"):]
        return name.lower() or "unknown"

    @staticmethod
    def _parse_espn_date(date_str: Optional[str]) -> Optional[datetime]:
        """
        Parse ESPN date string to naive UTC.

        ESPN dates are ISO 8601 in UTC, often without seconds
        (e.g., "2025-01-05T18:00Z").
        """
        if not date_str:
            return None
        try:
            parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = datetime.strptime(date_str, "%Y-%m-%dT%H:%MZ")
            except ValueError:
                return None
        return to_naive_utc(parsed)
