"""
AURA Dashboard — API Server
=============================

Serves Instagram conversation funnel analytics computed from the
ig_conversations table in Supabase.

Route groups:
  /api/health                        - Health check
  /api/conversations/analytics/*     - Deliveries, response times, conversion
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting AURA Dashboard...")

    # Supabase connection check
    try:
        from scripts.lib.supabase_client import get_client
        get_client()
        logger.info("Supabase connected")
    except Exception as e:
        logger.warning("Supabase not available: %s", e)

    logger.info("AURA Dashboard ready")
    yield
    logger.info("Shutting down AURA Dashboard...")


# ─── App Setup ────────────────────────────────────────────────

cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8001"
).split(",")

app = FastAPI(
    title="AURA Dashboard",
    version=VERSION,
    description="Instagram Conversations Funnel Analytics",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Include Routers ──────────────────────────────────────────

from dashboard.api.routers.conversation_analytics import router as conversation_analytics_router

app.include_router(conversation_analytics_router)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health():
    """Health check with service status."""
    supabase_ok = False
    try:
        from scripts.lib.supabase_client import get_client
        get_client()
        supabase_ok = True
    except Exception as e:
        logger.debug("Supabase health check failed: %s", e)

    return {
        "status": "healthy",
        "service": "AURA Dashboard",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "supabase": supabase_ok,
        },
    }
