"""
Resolution run controller: one settlement pass over all pending work.

Steps per run:
1. Load pending legs of parlays that are not yet settled
2. Group eligible legs by (sport, calendar date) and fetch each group once,
   concurrently, each fetch bounded by a timeout
3. Resolve legs and persist each with a conditional update
4. Re-aggregate every touched parlay from its full current leg set and
   persist terminal outcomes with a conditional update
5. Return a RunSummary

Failures are contained:
- A failed group fetch becomes a warning; other groups proceed
- A malformed leg becomes a warning; the leg stays pending
- A lost conditional update is counted as a conflict

Runs are idempotent: with no new feed data a second run writes nothing.
Database errors propagate; the caller owns the transaction.
"""
import asyncio
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from pybreaker import CircuitBreakerError
from sqlalchemy.orm import Session

from parlay_settlement.core.config import Settings, settings as default_settings
from parlay_settlement.core.exceptions import MalformedLegError, ScoreFeedError
from parlay_settlement.core.logging import get_logger, set_run_id, get_run_id, clear_run_id
from parlay_settlement.models import ParlayLeg, LegStatus, ParlayResult
from parlay_settlement.repositories import (
    LegRepository,
    ParlayRepository,
    TeamAliasRepository,
    AuditLogRepository,
)
from parlay_settlement.services.settlement.leg_resolver import LegResolver
from parlay_settlement.services.settlement.parlay_aggregator import aggregate
from parlay_settlement.services.settlement.team_matcher import TeamMatcher
from parlay_settlement.services.settlement.types import GameResult, LegOutcome, RunSummary, ScoreFeed
from parlay_settlement.utils.timezone import settlement_date, to_naive_utc, utc_now

logger = get_logger(__name__)

GroupKey = Tuple[str, date]


class ResolutionRunController:
    """
    Drive one resolution pass.

    Usage:
        with session_scope() as db:
            summary = await ResolutionRunController(db, ESPNScoreFeed()).run_once()
    """

    def __init__(
        self,
        db: Session,
        feed: ScoreFeed,
        settings: Optional[Settings] = None,
        matcher: Optional[TeamMatcher] = None,
    ):
        """
        Initialize the controller.

        Args:
            db: Database session (committed by the caller)
            feed: Score feed
            settings: Settings (default: module settings)
            matcher: Team matcher (default: built from the alias table per run)
        """
        self.db = db
        self.feed = feed
        self.settings = settings or default_settings
        self.matcher = matcher

        self.legs = LegRepository(db)
        self.parlays = ParlayRepository(db)
        self.audit = AuditLogRepository(db)

    async def run_once(self, as_of: Optional[datetime] = None) -> RunSummary:
        """
        Run one resolution pass.

        Args:
            as_of: Evaluation time (default: now, UTC)

        Returns:
            RunSummary with counters and warnings
        """
        as_of = to_naive_utc(as_of) if as_of else utc_now()
        summary = RunSummary(run_id=str(uuid.uuid4()), started_at=utc_now())
        token = set_run_id(summary.run_id)

        try:
            logger.info(f"Starting resolution run as of {as_of.isoformat()}")
            await self._run(as_of, summary)
            summary.finished_at = utc_now()
            logger.info(
                f"Resolution run finished: {summary.legs_checked} checked, "
                f"{summary.legs_resolved} resolved, {summary.legs_conflicted} conflicted, "
                f"{summary.parlays_resolved} parlays settled, {len(summary.warnings)} warnings"
            )
            return summary
        finally:
            clear_run_id(token)

    async def _run(self, as_of: datetime, summary: RunSummary):
        matcher = self.matcher or TeamMatcher.from_repository(TeamAliasRepository(self.db))
        resolver = LegResolver(
            grace_period=timedelta(hours=self.settings.RESOLUTION_GRACE_HOURS),
            matcher=matcher,
            tz_name=self.settings.SETTLEMENT_TIMEZONE,
        )

        # Step 1: load
        pending = self.legs.find_pending_for_open_parlays()
        touched: Set[str] = {leg.parlay_id for leg in pending}

        # Step 2: group and fetch
        groups = self._group_eligible(pending, resolver, as_of)
        summary.legs_checked = sum(len(legs) for legs in groups.values())
        fetched = await self._fetch_groups(list(groups), summary)

        # Step 3: resolve legs
        for key, legs in groups.items():
            results = fetched.get(key)
            if results is None:
                continue
            for leg in legs:
                self._resolve_leg(leg, results, as_of, resolver, summary)

        # Step 4: aggregate parlays
        touched.update(p.id for p in self.parlays.find_open_without_pending_legs())
        for parlay_id in sorted(touched):
            self._settle_parlay(parlay_id, summary)

        for parlay in self.parlays.find_open_without_legs():
            summary.add_warning(f"parlay {parlay.id} has no legs; left pending")

        self.db.flush()

    def _group_eligible(
        self,
        legs: List[ParlayLeg],
        resolver: LegResolver,
        as_of: datetime,
    ) -> Dict[GroupKey, List[ParlayLeg]]:
        """Group legs whose game is old enough by (sport, settlement date)."""
        groups: Dict[GroupKey, List[ParlayLeg]] = defaultdict(list)
        for leg in legs:
            if not resolver.is_eligible(leg, as_of):
                continue
            day = settlement_date(leg.game_time, self.settings.SETTLEMENT_TIMEZONE)
            groups[((leg.sport or "").upper(), day)].append(leg)
        return dict(groups)

    async def _fetch_groups(
        self,
        keys: List[GroupKey],
        summary: RunSummary,
    ) -> Dict[GroupKey, List[GameResult]]:
        """Fetch every group concurrently; failed groups are left out."""
        semaphore = asyncio.Semaphore(max(1, self.settings.SCORE_FEED_MAX_CONCURRENCY))
        timeout = self.settings.SCORE_FEED_GROUP_TIMEOUT

        async def fetch(key: GroupKey) -> Tuple[GroupKey, Optional[List[GameResult]]]:
            sport, day = key
            async with semaphore:
                try:
                    results = await asyncio.wait_for(self.feed.fetch_results(sport, day), timeout=timeout)
                    return key, list(results)
                except asyncio.TimeoutError:
                    reason = f"timed out after {timeout}s"
                except ScoreFeedError as e:
                    reason = e.reason
                except CircuitBreakerError:
                    reason = "circuit breaker open"
                except Exception as e:
                    logger.exception(f"Unexpected error fetching {sport} results for {day}")
                    reason = f"unexpected error: {e}"

            logger.warning(f"Score feed failed for {sport} on {day.isoformat()}: {reason}")
            summary.add_warning(f"score feed failed for {sport} {day.isoformat()}: {reason}")
            return key, None

        fetched = await asyncio.gather(*(fetch(key) for key in keys))
        return {key: results for key, results in fetched if results is not None}

    def _resolve_leg(
        self,
        leg: ParlayLeg,
        results: List[GameResult],
        as_of: datetime,
        resolver: LegResolver,
        summary: RunSummary,
    ):
        try:
            outcome = resolver.resolve(leg, results, as_of)
        except MalformedLegError as e:
            logger.warning(f"Malformed leg {leg.id}: {e.reason}")
            summary.add_warning(f"malformed leg {leg.id}: {e.reason}")
            return

        if outcome is None:
            return

        if self._persist_leg(outcome):
            summary.legs_resolved += 1
        else:
            summary.legs_conflicted += 1
            logger.info(f"Leg {leg.id} was already resolved by another writer")

    def _persist_leg(self, outcome: LegOutcome) -> bool:
        result = outcome.result
        resolved = self.legs.mark_resolved_if_pending(
            outcome.leg_id,
            outcome.outcome,
            resolved_at=utc_now(),
            actual_value=outcome.actual_value,
            margin_of_victory=outcome.margin_of_victory,
            matched_event_id=result.event_id,
            final_home_score=result.home_score,
            final_away_score=result.away_score,
        )
        if resolved:
            self.audit.record(
                entity_type="leg",
                entity_id=outcome.leg_id,
                action="resolved",
                previous_state=LegStatus.PENDING,
                new_state=outcome.outcome,
                details={
                    "event_id": result.event_id,
                    "home_team": result.home_team,
                    "away_team": result.away_team,
                    "home_score": result.home_score,
                    "away_score": result.away_score,
                    "actual_value": outcome.actual_value,
                },
                run_id=get_run_id(),
            )
            logger.info(
                f"Leg {outcome.leg_id} resolved {outcome.outcome} "
                f"({result.away_team} {result.away_score} @ {result.home_team} {result.home_score})"
            )
        return resolved

    def _settle_parlay(self, parlay_id: str, summary: RunSummary):
        parlays = self.parlays.find_by_ids([parlay_id], refresh=True)
        if not parlays:
            return
        parlay = parlays[0]
        if parlay.final_outcome in ParlayResult.TERMINAL:
            return

        legs = self.legs.find_by_parlay(parlay_id)
        if not legs:
            return

        outcome = aggregate(parlay, legs, default_stake=self.settings.DEFAULT_STAKE)
        if outcome.outcome not in ParlayResult.TERMINAL:
            return

        settled = self.parlays.settle_if_pending(
            parlay_id,
            outcome.outcome,
            payout=outcome.payout,
            profit_loss=outcome.profit_loss,
            hit_percentage=outcome.hit_percentage,
            settled_at=utc_now(),
        )
        if not settled:
            logger.info(f"Parlay {parlay_id} was already settled by another writer")
            return

        summary.parlays_resolved += 1
        if outcome.outcome == ParlayResult.WIN and outcome.payout is None:
            summary.add_warning(f"parlay {parlay_id} won but payout could not be computed")

        self.audit.record(
            entity_type="parlay",
            entity_id=parlay_id,
            action="settled",
            previous_state=ParlayResult.PENDING,
            new_state=outcome.outcome,
            details={
                "payout": outcome.payout,
                "profit_loss": outcome.profit_loss,
                "won_legs": outcome.won_legs,
                "lost_legs": outcome.lost_legs,
                "push_legs": outcome.push_legs,
                "pending_legs": outcome.pending_legs,
            },
            run_id=get_run_id(),
        )
        logger.info(f"Parlay {parlay_id} settled: {outcome!r}")
