"""
Settlement models.

Usage:
    from parlay_settlement.models import Parlay, ParlayLeg, LegStatus
"""
from parlay_settlement.models.settlement import (
    Base,
    LegStatus,
    LegResult,
    ParlayResult,
    BetType,
    Parlay,
    ParlayLeg,
    TeamAlias,
    SettlementAuditLog,
)

__all__ = [
    "Base",
    "LegStatus",
    "LegResult",
    "ParlayResult",
    "BetType",
    "Parlay",
    "ParlayLeg",
    "TeamAlias",
    "SettlementAuditLog",
]
