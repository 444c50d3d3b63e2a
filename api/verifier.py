"""
API Endpoints for the Product Verifier

Handles:
1. Analyze a product URL
2. Get a session
3. Re-rank alternatives in another mode
4. Generate a promotion playbook
5. Watchlist (add, list, alerts, monitor run)
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.auth.dependencies import get_current_user
from src.auth.models import CurrentUser
from src.services import (
    AlternativeNotFoundError,
    InvalidUrlError,
    NothingToRerankError,
    ProductFetchError,
    SessionNotFoundError,
    SessionNotReadyError,
    VerifierError,
    VerifierService,
)
from src.verifier import RankMode

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/verifier",
    tags=["Verifier"],
)


@lru_cache
def get_verifier_service() -> VerifierService:
    return VerifierService()


# =============================================================================
# REQUEST MODELS
# =============================================================================

class AnalyzeRequest(BaseModel):
    """Request to verify a product URL."""
    url: str = Field(..., min_length=4, max_length=2048)
    user_categories: Optional[List[str]] = Field(
        default=None,
        description="Categories the audience follows (e.g., ['fashion', 'beauty'])"
    )
    traffic_type: Literal["ORGANIC", "PAID", "MIXED"] = "ORGANIC"


class RerankRequest(BaseModel):
    """Request to re-rank alternatives."""
    mode: RankMode


class PlaybookRequest(BaseModel):
    """Approve the original product (no id) or one of its alternatives."""
    selected_alternative_id: Optional[str] = None


# =============================================================================
# ERROR MAPPING
# =============================================================================

ERROR_STATUS = {
    InvalidUrlError: 400,
    NothingToRerankError: 409,
    SessionNotReadyError: 409,
    SessionNotFoundError: 404,
    AlternativeNotFoundError: 404,
    ProductFetchError: 502,
}


def _http_error(e: VerifierError) -> HTTPException:
    status_code = ERROR_STATUS.get(type(e), 400)
    detail: Dict[str, Any] = {"error": e.message}
    if e.session_id and isinstance(e, ProductFetchError):
        detail["session_id"] = e.session_id
    return HTTPException(status_code=status_code, detail=detail)


def _server_error(message: str) -> HTTPException:
    return HTTPException(status_code=500, detail={"error": message})


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/analyze")
async def analyze(
    request: AnalyzeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    """
    Verify a product URL.

    Returns the snapshot (scores, verdict, economics, coverage) and the
    recommendations (routing, winner, buckets) for the new session.
    """
    try:
        return await service.analyze_url(
            request.url,
            current_user.id,
            user_categories=request.user_categories,
            traffic_type=request.traffic_type,
        )
    except VerifierError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Analysis failed for {request.url}: {e}", exc_info=True)
        raise _server_error("Analysis failed")


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    try:
        return service.get_session(session_id, current_user.id)
    except VerifierError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Loading session {session_id} failed: {e}", exc_info=True)
        raise _server_error("Failed to load session")


@router.post("/sessions/{session_id}/rerank")
async def rerank(
    session_id: str,
    request: RerankRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    """Re-rank the session's alternatives under another mode."""
    try:
        return service.rerank_session(session_id, current_user.id, request.mode)
    except VerifierError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Re-rank failed for {session_id}: {e}", exc_info=True)
        raise _server_error("Re-rank failed")


@router.post("/sessions/{session_id}/playbook")
async def playbook(
    session_id: str,
    request: PlaybookRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    try:
        return await service.generate_session_playbook(
            session_id, current_user.id, request.selected_alternative_id
        )
    except VerifierError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Playbook generation failed for {session_id}: {e}", exc_info=True)
        raise _server_error("Playbook generation failed")


@router.post("/sessions/{session_id}/watchlist")
async def add_to_watchlist(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    try:
        return service.add_to_watchlist(session_id, current_user.id)
    except VerifierError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Watchlist add failed for {session_id}: {e}", exc_info=True)
        raise _server_error("Failed to add to watchlist")


@router.get("/watchlist")
async def list_watchlist(
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    try:
        items = service.list_watchlist(current_user.id)
    except Exception as e:
        logger.error(f"Listing watchlist failed for {current_user.id}: {e}", exc_info=True)
        raise _server_error("Failed to load watchlist")
    return {"items": items, "total": len(items)}


@router.get("/alerts")
async def list_alerts(
    unread_only: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    try:
        alerts = service.list_alerts(current_user.id, unread_only=unread_only)
    except Exception as e:
        logger.error(f"Listing alerts failed for {current_user.id}: {e}", exc_info=True)
        raise _server_error("Failed to load alerts")
    return {"alerts": alerts, "total": len(alerts)}


@router.post("/watchlist/check")
async def check_watchlist(
    current_user: CurrentUser = Depends(get_current_user),
    service: VerifierService = Depends(get_verifier_service),
):
    """Run one monitoring pass over due watchlist items (all users)."""
    logger.info(f"Watchlist check triggered by {current_user.id}")
    try:
        return await service.run_watchlist_monitor()
    except Exception as e:
        logger.error(f"Watchlist check failed: {e}", exc_info=True)
        raise _server_error("Watchlist check failed")
