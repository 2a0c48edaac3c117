"""
Circuit breaker for score feed calls.

Uses pybreaker. After DEFAULT_FAIL_MAX consecutive failed fetches the breaker
opens and every fetch fails fast with CircuitBreakerError until
DEFAULT_RESET_TIMEOUT seconds have passed; then one trial call is let through.

States:
- closed: calls pass through
- open: calls fail immediately
- half-open: one call allowed to test recovery
"""
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

from parlay_settlement.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5  # Consecutive failures before opening
DEFAULT_RESET_TIMEOUT = 60  # Seconds before a trial call


class LoggingListener(CircuitBreakerListener):
    """Log breaker state changes."""

    def state_change(self, cb, old_state, new_state):
        old_name = old_state.name if old_state else None
        logger.warning(f"Circuit breaker '{cb.name}' changed state: {old_name} -> {new_state.name}")


def create_breaker(
    name: str,
    fail_max: int = DEFAULT_FAIL_MAX,
    reset_timeout: int = DEFAULT_RESET_TIMEOUT,
) -> CircuitBreaker:
    """Create a circuit breaker that logs its state changes."""
    return CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=name,
        listeners=[LoggingListener()],
    )


# One breaker per provider, shared by all feed instances in the process
espn_breaker = create_breaker("espn_api")
api_sports_breaker = create_breaker("api_sports")


def reset_breaker(breaker: CircuitBreaker) -> None:
    """
    Manually reset a circuit breaker to closed state.

    Only reset if you know the feed has recovered.
    """
    breaker.close()
    logger.warning(f"Circuit breaker '{breaker.name}' manually reset to CLOSED state")


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "DEFAULT_FAIL_MAX",
    "DEFAULT_RESET_TIMEOUT",
    "create_breaker",
    "espn_breaker",
    "api_sports_breaker",
    "reset_breaker",
]
