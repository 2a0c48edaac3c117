"""
Settlement audit log repository.
"""
import json
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from parlay_settlement.models import SettlementAuditLog
from parlay_settlement.repositories.base import BaseRepository
from parlay_settlement.utils.timezone import utc_now


def _serialize(obj: Any) -> Any:
    """Convert datetimes and decimals to JSON-safe values."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(item) for item in obj]
    return obj


class AuditLogRepository(BaseRepository[SettlementAuditLog]):
    """Repository for SettlementAuditLog model."""

    def __init__(self, db: Session):
        super().__init__(SettlementAuditLog, db)

    def record(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        previous_state: Optional[str],
        new_state: str,
        details: Optional[Dict[str, Any]] = None,
        performed_by: str = "system",
        run_id: Optional[str] = None,
    ) -> SettlementAuditLog:
        """
        Add an audit row to the current transaction.

        Returns:
            The audit record (not yet committed)
        """
        return self.create(
            id=str(uuid.uuid4()),
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            previous_state=previous_state,
            new_state=new_state,
            details=json.dumps(_serialize(details)) if details else None,
            performed_by=performed_by,
            run_id=run_id or None,
            created_at=utc_now(),
        )

    def find_for_entity(self, entity_id: str) -> List[SettlementAuditLog]:
        """Audit rows for one leg or parlay, oldest first."""
        return (
            self.query()
            .filter(SettlementAuditLog.entity_id == entity_id)
            .order_by(SettlementAuditLog.created_at)
            .all()
        )
