"""
Parlay settlement engine.

Decides, from final scores, whether each parlay leg won, lost or pushed and
settles the parlays. A scheduler (outside this package) calls
run_settlement() periodically.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

__version__ = "1.0.0"


def run_settlement(as_of: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Run one settlement pass against the configured database and ESPN.

    Must not be called from inside a running event loop; async callers use
    ResolutionRunController.run_once() directly.

    Args:
        as_of: Evaluation time (default: now)

    Returns:
        RunSummary as a dict
    """
    from parlay_settlement.core.config import settings
    from parlay_settlement.core.database import session_scope
    from parlay_settlement.core.logging import configure_logging
    from parlay_settlement.services.score_feed import create_score_feed
    from parlay_settlement.services.settlement import ResolutionRunController

    if not logging.getLogger().handlers:
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    feed = create_score_feed()
    try:
        with session_scope() as db:
            summary = asyncio.run(ResolutionRunController(db, feed).run_once(as_of))
    finally:
        feed.close()
    return summary.to_dict()
