"""ADPILOT — Identity, Connection & External Account Models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, UniqueConstraint

from app.core.timeutils import utcnow


class AdminIdentity(SQLModel, table=True):
    """A local admin user. Only admins may connect an ads platform account."""

    __tablename__ = "admin_identities"

    id: str = Field(primary_key=True)
    username: str = Field(index=True, unique=True)
    email: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class AdsConnection(SQLModel, table=True):
    """Root credential for one identity (the credential store row)."""

    __tablename__ = "ads_connections"

    id: Optional[int] = Field(default=None, primary_key=True)
    admin_user_id: str = Field(foreign_key="admin_identities.id", index=True)
    root_account_id: str = Field(description="Manager or standalone account ID")
    root_account_name: str = ""
    refresh_token: str
    is_active: bool = True
    connected_at: datetime = Field(default_factory=utcnow)


class AccountSelection(SQLModel, table=True):
    """Which leaf accounts an identity has chosen to sync."""

    __tablename__ = "account_selections"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="admin_identities.id", index=True, unique=True)
    selected_account_ids: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    updated_at: datetime = Field(default_factory=utcnow)


class ExternalAccount(SQLModel, table=True):
    """An advertising account at the remote platform, owned by one identity.

    Created on first successful resolution, refreshed on every sync and only
    removed by an explicit disconnect.
    """

    __tablename__ = "external_accounts"
    __table_args__ = (
        UniqueConstraint("owner_user_id", "account_id", name="uq_external_account"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_user_id: str = Field(foreign_key="admin_identities.id", index=True)
    account_id: str = Field(index=True, description="Platform customer ID")
    display_name: str = ""
    is_manager: bool = False
    parent_account_id: Optional[str] = None
    is_primary: bool = False
    last_seen_at: datetime = Field(default_factory=utcnow)


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS — resolution results
# ─────────────────────────────────────────────


class AdsCredential(BaseModel):
    """Refresh-token credential bound to one root account."""

    user_id: str
    root_account_id: str
    root_account_name: str = ""
    refresh_token: str


class ResolvedAccount(BaseModel):
    """One leaf account as discovered by the resolver."""

    account_id: str
    display_name: str = ""
    is_manager: bool = False
    parent_account_id: Optional[str] = None
    is_primary: bool = False


class AccountHierarchy(BaseModel):
    """Resolver output: whether the root is a manager, plus its leaves."""

    is_manager: bool
    leaf_accounts: List[ResolvedAccount]
    degraded: bool = False
