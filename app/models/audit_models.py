"""ADPILOT — Audit Log Model (Append-only)."""

from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from app.core.timeutils import utcnow


class AuditLog(SQLModel, table=True):
    """Append-only audit trail: sync results, sync errors, recommendation actions."""

    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)
    action: str = Field(index=True)
    details: str = Field(default="{}", description="JSON payload")
    performed_by: str = Field(default="system", description="system | user | ai")
    campaign_id: Optional[int] = None
    recommendation_id: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
