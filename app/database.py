"""ADPILOT — Database Engine & Session Factory.

SQLite for local runs, PostgreSQL (Neon/Supabase style URLs) in deployment.
"""

from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, Session, create_engine

from app.config import settings
from app.core.logging import get_logger

# Table registration
from app.models import account_models, audit_models, campaign_models, recommendation_models  # noqa: F401

logger = get_logger("database")

db_url = settings.effective_database_url


def masked_url(url: str) -> str:
    """Render the URL with its password hidden, for logs and /health."""
    return make_url(url).render_as_string(hide_password=True)


def backend_name(url: str) -> str:
    return "sqlite" if url.startswith("sqlite") else "postgresql"


def build_engine(url: str) -> Engine:
    """SQLite gets a thread-shareable connection; Postgres gets a recycled pool."""
    if backend_name(url) == "sqlite":
        logger.info(f"📦 Campaign store on SQLite: {url}")
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})

    logger.info(f"🐘 Campaign store on PostgreSQL: {masked_url(url)}")
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=300,
    )


engine = build_engine(db_url)


def test_connection() -> bool:
    """SELECT 1 against the store. Failures are logged, not raised."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database reachable")
        return True
    except Exception as e:
        logger.error(f"❌ Database unreachable: {e}")
        return False


def init_db() -> None:
    """Create campaign, account, recommendation and audit tables."""
    SQLModel.metadata.create_all(engine)
    logger.info(f"✅ {len(SQLModel.metadata.tables)} tables ready")


def database_info() -> Dict[str, Any]:
    return {"database": backend_name(db_url), "database_url": masked_url(db_url)}


def get_session():
    """Dependency — yields a DB session."""
    with Session(engine) as session:
        yield session
