"""
API Application for the AffiMark Product Verifier

FastAPI app that:
1. Initializes the database on startup
2. Serves health and database status checks
3. Mounts the verifier endpoints (analyze, rerank, playbook, watchlist)
"""

import logging
import sys
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from src.database import check_db_connection, get_database_url, init_db  # noqa: E402
from src.utils.config import get_settings  # noqa: E402
from api.verifier import router as verifier_router  # noqa: E402

settings = get_settings()


def resolve_log_level(name: str) -> int:
    """Logging level for a LOG_LEVEL name such as "debug"; unknown names give INFO."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


# Configure logging to stdout (Railway treats stderr as errors)
logging.basicConfig(
    level=resolve_log_level(settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

VERSION = "1.0.0"

app = FastAPI(
    title="AffiMark Product Verifier",
    description="Affiliate product verification: scores, verdict and ranked alternatives",
    version=VERSION,
)

app.include_router(verifier_router)


# ============================================================================
# STARTUP - Initialize Database
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Initializing database...")
    init_db()
    if check_db_connection():
        logger.info("Database connection verified")
    else:
        logger.warning("Database connection check failed - continuing anyway")


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "AffiMark Product Verifier"}


@app.get("/api/health")
async def health():
    """Detailed health check including database status."""
    db_connected = check_db_connection()
    database_url = get_database_url()

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if db_connected else "disconnected",
        "database_type": "postgresql" if database_url.startswith("postgresql") else "sqlite",
    }
