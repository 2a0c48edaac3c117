"""
Settlement models: parlays, their legs, team aliases and the audit trail.

Status values are stored as plain strings; the constant classes below are the
only values the engine writes.

Lifecycle:
- A ParlayLeg is created pending when the user locks a pick and is mutated
  exactly once, pending -> resolved, by a conditional update.
- A Parlay moves from pending to win/loss and is then immutable, except for
  an explicit, audit-logged operator override.
"""
from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Numeric, Text, Index, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class LegStatus:
    PENDING = "pending"
    RESOLVED = "resolved"


class LegResult:
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    PUSH = "push"

    SETTLED = (WON, LOST, PUSH)


class ParlayResult:
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"

    TERMINAL = (WIN, LOSS)


class BetType:
    MONEYLINE = "moneyline"
    SPREAD = "spread"
    TOTAL = "total"


# =============================================================================
# PARLAY
# =============================================================================

class Parlay(Base):
    """A user's combined bet; wins only if every leg wins (pushes excluded)."""
    __tablename__ = "parlays"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    stake = Column(Float, nullable=False, default=100.0)
    potential_payout = Column(Float, nullable=True)  # Quoted total return at lock time

    final_outcome = Column(String(10), nullable=False, default=ParlayResult.PENDING, index=True)
    payout = Column(Float, nullable=True)
    profit_loss = Column(Float, nullable=True)
    hit_percentage = Column(Float, nullable=True)
    settled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    legs = relationship("ParlayLeg", back_populates="parlay", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_parlays_outcome_created', 'final_outcome', 'created_at'),
    )

    def __repr__(self):
        return f"Parlay(id={self.id}, outcome={self.final_outcome}, legs={len(self.legs)})"


class ParlayLeg(Base):
    """One wagered proposition within a parlay."""
    __tablename__ = "parlay_legs"

    id = Column(String(36), primary_key=True)
    parlay_id = Column(String(36), ForeignKey("parlays.id", ondelete="CASCADE"), nullable=False, index=True)
    leg_number = Column(Integer, nullable=True)

    # Bet parameters as recorded at lock time
    sport = Column(String(10), nullable=False)  # 'NFL', 'NBA', 'NCAAF', ...
    game_time = Column(DateTime, nullable=False, index=True)  # Scheduled start, naive UTC
    home_team = Column(String(100), nullable=False)
    away_team = Column(String(100), nullable=False)
    bet_type = Column(String(50), nullable=False)
    pick = Column(String(200), nullable=False)  # "Kansas City Chiefs", "Over (47.5)"
    line = Column(Numeric(8, 2), nullable=True)  # Signed spread for the picked side, or total threshold
    price = Column(Integer, nullable=True)  # American odds

    # Resolution state
    status = Column(String(10), nullable=False, default=LegStatus.PENDING, index=True)
    outcome = Column(String(10), nullable=False, default=LegResult.PENDING)
    resolved_at = Column(DateTime, nullable=True)

    # Written together with the outcome for auditing
    actual_value = Column(Numeric(8, 2), nullable=True)
    margin_of_victory = Column(Numeric(8, 2), nullable=True)
    matched_event_id = Column(String(50), nullable=True)
    final_home_score = Column(Integer, nullable=True)
    final_away_score = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False)

    parlay = relationship("Parlay", back_populates="legs")

    __table_args__ = (
        Index('ix_parlay_legs_status_sport_time', 'status', 'sport', 'game_time'),
    )

    def __repr__(self):
        return (f"ParlayLeg(id={self.id}, {self.away_team} @ {self.home_team}, "
                f"{self.bet_type} {self.pick!r}, outcome={self.outcome})")


# =============================================================================
# TEAM ALIASES
# =============================================================================

class TeamAlias(Base):
    """
    Known spellings of a team, keyed by a stable internal team key.

    Lets the matcher compare identities ("KC" and "Kansas City Chiefs" are both
    'kc_chiefs') before falling back to text heuristics.
    """
    __tablename__ = "team_aliases"

    id = Column(String(36), primary_key=True)
    sport = Column(String(10), nullable=False)
    team_key = Column(String(50), nullable=False, index=True)
    alias = Column(String(100), nullable=False)  # Normalized spelling
    source = Column(String(50), nullable=True)  # 'espn', 'odds_api', 'manual'
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('sport', 'alias', name='uq_team_aliases_sport_alias'),
    )


# =============================================================================
# AUDIT LOG
# =============================================================================

class SettlementAuditLog(Base):
    """Audit trail of every settlement mutation."""
    __tablename__ = "settlement_audit_log"

    id = Column(String(36), primary_key=True)
    entity_type = Column(String(10), nullable=False)  # 'leg' or 'parlay'
    entity_id = Column(String(36), nullable=False, index=True)
    action = Column(String(20), nullable=False)  # 'resolved', 'settled', 'manual_override'
    previous_state = Column(String(10), nullable=True)
    new_state = Column(String(10), nullable=False)
    details = Column(Text, nullable=True)  # JSON
    performed_by = Column(String(100), nullable=False, default='system')
    run_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, index=True)
