"""Tests for logging, timezone and config helpers."""
import json
import logging
from datetime import date, datetime, timezone

from parlay_settlement.core.config import Settings
from parlay_settlement.core.logging import (
    JSONFormatter,
    ColoredFormatter,
    set_run_id,
    get_run_id,
    clear_run_id,
)
from parlay_settlement.utils.timezone import settlement_date, to_naive_utc


def make_record(message="Leg resolved", **extra) -> logging.LogRecord:
    record = logging.LogRecord("parlay_settlement.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Test structured log formatting."""

    def test_json_formatter_includes_run_id_and_extras(self):
        """Should emit the run ID and extra fields as JSON."""
        token = set_run_id("run-123")
        try:
            line = JSONFormatter().format(make_record(leg_id="leg-1"))
        finally:
            clear_run_id(token)

        data = json.loads(line)
        assert data["message"] == "Leg resolved"
        assert data["level"] == "INFO"
        assert data["run_id"] == "run-123"
        assert data["extra"] == {"leg_id": "leg-1"}

    def test_run_id_cleared(self):
        """Should reset the run ID with the token."""
        token = set_run_id("run-456")
        clear_run_id(token)
        assert get_run_id() == ""

    def test_colored_formatter_appends_run_id(self):
        """Should append the run ID in development output."""
        token = set_run_id("run-789")
        try:
            line = ColoredFormatter().format(make_record())
        finally:
            clear_run_id(token)
        assert line.endswith("| run_id=run-789")


class TestTimezone:
    """Test settlement date helpers."""

    def test_evening_game_stays_on_eastern_date(self):
        """Should map 03:30 UTC to the previous Eastern day."""
        assert settlement_date(datetime(2025, 1, 6, 3, 30), "America/New_York") == date(2025, 1, 5)

    def test_dst_offset(self):
        """Should apply the summer offset (UTC-4)."""
        assert settlement_date(datetime(2025, 7, 5, 3, 59), "America/New_York") == date(2025, 7, 4)
        assert settlement_date(datetime(2025, 7, 5, 4, 0), "America/New_York") == date(2025, 7, 5)

    def test_to_naive_utc(self):
        """Should strip tzinfo after converting to UTC."""
        aware = datetime(2025, 1, 5, 18, 0, tzinfo=timezone.utc)
        assert to_naive_utc(aware) == datetime(2025, 1, 5, 18, 0)
        assert to_naive_utc(datetime(2025, 1, 5, 18, 0)) == datetime(2025, 1, 5, 18, 0)


class TestSettings:
    """Test settings validation."""

    def test_production_requires_database_url(self):
        """Should flag the development database URL in production."""
        assert Settings(ENVIRONMENT="production").validate_required_secrets() == ["DATABASE_URL"]

    def test_production_with_database_url(self):
        """Should pass with a real database URL."""
        prod = Settings(ENVIRONMENT="production", DATABASE_URL="postgresql://app@db/settlement")
        assert prod.validate_required_secrets() == []

    def test_defaults(self):
        """Should default to a 4 hour grace window and Eastern dates."""
        defaults = Settings()
        assert defaults.RESOLUTION_GRACE_HOURS == 4.0
        assert defaults.SETTLEMENT_TIMEZONE == "America/New_York"

    def test_group_timeout_covers_retries_of_both_feeds(self):
        """Should leave room for every attempt and back-off of both feeds in one group."""
        defaults = Settings()
        attempts = defaults.SCORE_FEED_RETRY_ATTEMPTS
        backoff = sum(min(defaults.SCORE_FEED_BACKOFF_SECONDS * 2 ** n, 10) for n in range(attempts - 1))
        per_feed = attempts * defaults.SCORE_FEED_TIMEOUT + backoff

        assert defaults.SCORE_FEED_GROUP_TIMEOUT > 2 * per_feed
