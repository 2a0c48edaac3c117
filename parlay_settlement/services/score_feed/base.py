"""
Base class for HTTP score feeds.

Subclasses describe one provider: which URL serves a sport's games for a date
and how to read the payload. The base class owns the transport:

- httpx.Client with an explicit timeout, run in the default executor
- tenacity retries with exponential back-off on transport and HTTP errors
- a pybreaker circuit breaker per provider, checked on every attempt
- an in-memory TTL cache of parsed results per (sport, date)

Usage:
    class MyFeed(HTTPScoreFeed):
        source = "my_provider"

        def _build_request(self, sport, day):
            return f"{self.base_url}/{sport}/games", {"date": day.isoformat()}

        def parse_scoreboard(self, sport, data):
            ...
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pybreaker import CircuitBreaker
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from parlay_settlement.core.config import settings
from parlay_settlement.core.exceptions import ScoreFeedError
from parlay_settlement.core.logging import get_logger
from parlay_settlement.services.settlement.types import GameResult

logger = get_logger(__name__)

RequestSpec = Tuple[str, Dict[str, str]]


class HTTPScoreFeed(ABC):
    """
    Score feed fetched over HTTP, one request per (sport, date).

    Attributes:
        source: Provider name, recorded on every GameResult
        base_url: Provider API base
        breaker: Circuit breaker guarding this provider
    """

    source = "http"

    def __init__(
        self,
        base_url: str,
        breaker: CircuitBreaker,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        tz_name: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the feed.

        Args:
            base_url: Provider API base
            breaker: Circuit breaker for this provider
            timeout: Per-request timeout in seconds
            retry_attempts: Attempts per fetch, including the first
            backoff_seconds: Exponential back-off multiplier (0 disables waiting)
            cache_ttl: Seconds parsed results stay cached (0 disables caching)
            tz_name: Settlement time zone for game dates
            client: Preconfigured httpx.Client (tests pass one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.breaker = breaker
        self.timeout = timeout if timeout is not None else settings.SCORE_FEED_TIMEOUT
        self.retry_attempts = max(1, retry_attempts if retry_attempts is not None else settings.SCORE_FEED_RETRY_ATTEMPTS)
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.SCORE_FEED_BACKOFF_SECONDS
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.SCORE_FEED_CACHE_TTL
        self.tz_name = tz_name or settings.SETTLEMENT_TIMEZONE

        self._client = client
        self._cache: Dict[Tuple[str, date], tuple] = {}  # key -> (results, expiry)

    # ==================== PROVIDER HOOKS ====================

    @abstractmethod
    def _build_request(self, sport: str, day: date) -> Optional[RequestSpec]:
        """Return (url, params) for a sport and date, or None if unsupported."""

    @abstractmethod
    def parse_scoreboard(self, sport: str, data: Dict[str, Any]) -> List[GameResult]:
        """Parse a provider payload into game results."""

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _check_payload(self, sport: str, day: date, data: Dict[str, Any]) -> None:
        """Raise ScoreFeedError for a payload the provider marks as failed."""

    # ==================== CLIENT ====================

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    # ==================== CACHE ====================

    def _get_cached(self, key: Tuple[str, date]) -> Optional[List[GameResult]]:
        if key in self._cache:
            results, expiry = self._cache[key]
            if datetime.now() < expiry:
                return results
            del self._cache[key]
        return None

    def _set_cache(self, key: Tuple[str, date], results: List[GameResult]):
        if self.cache_ttl > 0:
            self._cache[key] = (results, datetime.now() + timedelta(seconds=self.cache_ttl))

    # ==================== TRANSPORT ====================

    def _request(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        response = self._get_client().get(url, params=params, headers=self._default_headers())
        response.raise_for_status()
        return response.json()

    def _fetch_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Fetch a payload with retries, each attempt through the breaker.

        Blocking; called from the executor.

        Raises:
            httpx.HTTPError: After the last failed attempt
            CircuitBreakerError: If the breaker is open
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
            retry=retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self.breaker.call(self._request, url, params)

    async def fetch_results(self, sport: str, day: date) -> List[GameResult]:
        """
        Get game results for a sport and calendar date.

        Args:
            sport: Sport code ('NFL', 'NBA', 'NCAAF', ...)
            day: Calendar date in the settlement time zone

        Returns:
            Parsed results (empty for unsupported sports)

        Raises:
            ScoreFeedError: If the games could not be fetched
            CircuitBreakerError: If the breaker is open
        """
        sport_key = sport.upper()
        request = self._build_request(sport_key, day)
        if request is None:
            logger.warning(f"Unsupported sport for {self.source} score feed: {sport}")
            return []

        cache_key = (sport_key, day)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        url, params = request
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, self._fetch_json, url, params)
        except httpx.HTTPError as e:
            raise ScoreFeedError(sport_key, day, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            # Body was not JSON
            raise ScoreFeedError(sport_key, day, f"invalid response body: {e}") from e

        self._check_payload(sport_key, day, data)
        results = self.parse_scoreboard(sport_key, data)
        self._set_cache(cache_key, results)

        logger.info(f"Fetched {len(results)} {self.source} games for {sport_key} on {day.isoformat()}")
        return results


def parse_score(score: Any) -> Optional[int]:
    """
    Parse a reported score to int.

    Accepts "27", 27, 27.0 and objects such as {"value": 27.0} or
    {"total": 27}. Returns None for anything that is not a whole,
    non-negative number.
    """
    if isinstance(score, dict):
        score = next(
            (score[k] for k in ("total", "value", "displayValue") if score.get(k) is not None),
            None,
        )
    if score is None or isinstance(score, bool):
        return None
    try:
        value = Decimal(str(score).strip())
    except InvalidOperation:
        return None
    if not value.is_finite() or value != value.to_integral_value() or value < 0:
        return None
    return int(value)
