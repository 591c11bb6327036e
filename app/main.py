"""ADPILOT — FastAPI Application Entry Point.

Google Ads campaign sync with multi-AI consensus recommendations.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.ai.registry import get_registry
from app.api.ai_routes import router as ai_router
from app.api.campaign_routes import router as campaign_router
from app.api.recommendation_routes import router as recommendation_router
from app.api.sync_routes import router as sync_router
from app.core.logging import get_logger
from app.database import database_info, init_db, test_connection
from app.scheduler.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")

VERSION = "1.0.0"

# Serverless hosts have no long-lived process to run the daily job in
IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


def _prepare_store() -> None:
    if not test_connection():
        logger.error("❌ Campaign store offline — sync and recommendations will fail")
        return
    try:
        init_db()
    except Exception as e:
        logger.error(f"❌ Table creation failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Store check, provider registry, then the daily sync job."""
    logger.info(f"🚀 ADPILOT {VERSION} starting ({'serverless' if IS_SERVERLESS else 'long-running'})")
    _prepare_store()

    registry = get_registry()
    if not registry.is_ready:
        logger.warning("⚠️ No AI provider configured — recommendation endpoints will return 503")

    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("ADPILOT shut down")


app = FastAPI(
    title="ADPILOT",
    description="Sync Google Ads campaigns and generate multi-AI consensus optimization recommendations.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router)
app.include_router(campaign_router)
app.include_router(recommendation_router)
app.include_router(ai_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "healthy",
        "service": "adpilot",
        "version": VERSION,
        **database_info(),
    }
