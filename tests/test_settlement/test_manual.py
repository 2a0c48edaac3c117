"""Tests for operator settlement actions.

Test Strategy:
1. Manual leg resolution uses the conditional update (never re-resolves)
2. Resolving the last leg settles the parlay
3. Overriding a terminal parlay is audit-logged with the previous state
"""
import json

import pytest

from parlay_settlement.models import Parlay, ParlayLeg, SettlementAuditLog, LegResult, LegStatus, ParlayResult
from parlay_settlement.services.settlement.manual import ManualSettlementService


class TestResolveLeg:
    """Test manual leg resolution."""

    def test_resolves_pending_leg_and_settles_parlay(self, db_session, parlay_factory):
        """Should resolve the leg and settle its single-leg parlay."""
        parlay = parlay_factory([{"price": 150}])
        leg_id = db_session.query(ParlayLeg).one().id

        assert ManualSettlementService(db_session).resolve_leg(leg_id, LegResult.WON, performed_by="ops")
        db_session.commit()

        db_session.expire_all()
        leg = db_session.get(ParlayLeg, leg_id)
        assert leg.status == LegStatus.RESOLVED
        assert leg.outcome == LegResult.WON

        settled = db_session.get(Parlay, parlay.id)
        assert settled.final_outcome == ParlayResult.WIN
        assert settled.payout == 250.0

        actions = {row.action for row in db_session.query(SettlementAuditLog)}
        assert actions == {"manual_resolve", "settled"}

    def test_does_not_re_resolve(self, db_session, parlay_factory, after_grace):
        """Should return False for a leg that is already resolved."""
        parlay_factory([{"status": LegStatus.RESOLVED, "outcome": LegResult.LOST, "resolved_at": after_grace}])
        leg_id = db_session.query(ParlayLeg).one().id

        assert not ManualSettlementService(db_session).resolve_leg(leg_id, LegResult.WON, performed_by="ops")
        db_session.expire_all()
        assert db_session.get(ParlayLeg, leg_id).outcome == LegResult.LOST

    def test_invalid_outcome(self, db_session, parlay_factory):
        """Should reject outcomes other than won/lost/push."""
        parlay_factory([{}])
        leg_id = db_session.query(ParlayLeg).one().id

        with pytest.raises(ValueError):
            ManualSettlementService(db_session).resolve_leg(leg_id, LegResult.PENDING, performed_by="ops")

    def test_unknown_leg(self, db_session):
        """Should raise for an unknown leg."""
        with pytest.raises(ValueError):
            ManualSettlementService(db_session).resolve_leg("missing", LegResult.WON, performed_by="ops")


class TestOverrideParlay:
    """Test manual parlay override."""

    def test_override_terminal_parlay_is_audited(self, db_session, parlay_factory):
        """Should change a settled loss to a win and record the previous state."""
        parlay = parlay_factory([{}], final_outcome=ParlayResult.LOSS)

        service = ManualSettlementService(db_session)
        assert service.override_parlay(parlay.id, ParlayResult.WIN, profit_loss=90.91, performed_by="ops")
        db_session.commit()

        db_session.expire_all()
        overridden = db_session.get(Parlay, parlay.id)
        assert overridden.final_outcome == ParlayResult.WIN
        assert overridden.profit_loss == 90.91
        assert overridden.payout == 190.91

        audit = db_session.query(SettlementAuditLog).one()
        assert audit.action == "manual_override"
        assert audit.previous_state == ParlayResult.LOSS
        assert audit.new_state == ParlayResult.WIN
        assert audit.performed_by == "ops"
        assert json.loads(audit.details)["previous"]["final_outcome"] == ParlayResult.LOSS

    def test_override_to_loss_defaults_profit(self, db_session, parlay_factory):
        """Should derive profit/loss from the stake for a loss."""
        parlay = parlay_factory([{}], stake=25.0)

        ManualSettlementService(db_session).override_parlay(parlay.id, ParlayResult.LOSS, performed_by="ops")

        db_session.expire_all()
        assert db_session.get(Parlay, parlay.id).profit_loss == -25.0

    def test_override_unknown_parlay(self, db_session):
        """Should return False for an unknown parlay."""
        assert not ManualSettlementService(db_session).override_parlay("missing", ParlayResult.WIN, performed_by="ops")

    def test_override_invalid_outcome(self, db_session, parlay_factory):
        """Should reject unknown outcomes."""
        parlay = parlay_factory([{}])
        with pytest.raises(ValueError):
            ManualSettlementService(db_session).override_parlay(parlay.id, "void", performed_by="ops")
