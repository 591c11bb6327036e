"""ADPILOT — Audit Sink.

Accepts {identity, action, details, timestamp} records. Audit writes must
never break the operation being audited, so failures are logged and dropped.
"""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from app.core.logging import get_logger
from app.core.timeutils import ensure_utc, utcnow
from app.models.audit_models import AuditLog

logger = get_logger("audit")

# Action names
SYNC_COMPLETED = "sync_completed"
SYNC_ERROR_IDENTITY = "sync_error_identity"
SYNC_ERROR_ACCOUNT = "sync_error_account"
RECOMMENDATION_GENERATED = "recommendation_generated"
RECOMMENDATION_APPLIED = "recommendation_applied"
RECOMMENDATION_DISMISSED = "recommendation_dismissed"
CAMPAIGN_GOALS_UPDATED = "campaign_goals_updated"
ACCOUNT_DISCONNECTED = "account_disconnected"


class AuditSink:
    """Writes audit records through the given session."""

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        identity: Optional[str],
        action: str,
        details: Dict[str, Any],
        performed_by: str = "system",
        campaign_id: Optional[int] = None,
        recommendation_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            user_id=identity,
            action=action,
            details=json.dumps(details, default=str),
            performed_by=performed_by,
            campaign_id=campaign_id,
            recommendation_id=recommendation_id,
            created_at=timestamp or utcnow(),
        )
        try:
            self.session.add(entry)
            self.session.commit()
            return entry
        except Exception as e:
            self.session.rollback()
            logger.error(f"Failed to write audit entry '{action}': {e}")
            return None

    def latest(self, action: str) -> Optional[AuditLog]:
        return self.session.exec(
            select(AuditLog)
            .where(AuditLog.action == action)
            .order_by(AuditLog.created_at.desc())  # type: ignore
            .limit(1)
        ).first()

    def latest_timestamp(self, action: str) -> Optional[datetime]:
        entry = self.latest(action)
        return ensure_utc(entry.created_at) if entry else None
