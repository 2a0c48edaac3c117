"""
Repository layer for settlement data access.

Usage:
    from parlay_settlement.repositories import LegRepository
    from parlay_settlement.core.database import session_scope

    with session_scope() as db:
        legs = LegRepository(db).find_pending_for_open_parlays()
"""

from parlay_settlement.repositories.base import BaseRepository
from parlay_settlement.repositories.leg_repository import LegRepository
from parlay_settlement.repositories.parlay_repository import ParlayRepository
from parlay_settlement.repositories.team_alias_repository import TeamAliasRepository
from parlay_settlement.repositories.audit_repository import AuditLogRepository

__all__ = [
    "BaseRepository",
    "LegRepository",
    "ParlayRepository",
    "TeamAliasRepository",
    "AuditLogRepository",
]
