"""
Repository Layer - Clean Interface for Verifier Data

Provides simple functions to store and retrieve verifier data.
Handles all SQLAlchemy complexity internally; callers get plain dicts.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .models import (
    AffiliateProgram,
    BrandReputation,
    ProductScrapeCache,
    SessionStatus,
    VerifierAlert,
    VerifierSession,
    WatchlistItem,
)
from .session import get_db_context

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# VERIFIER SESSIONS
# =============================================================================

def create_verifier_session(
    user_id: str,
    input_url: str,
    normalized: Dict[str, Any],
    user_context: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a session in the analyzing state.

    Returns:
        Id of the created session
    """
    with get_db_context() as db:
        session = VerifierSession(
            user_id=user_id,
            input_url=input_url,
            normalized_url=normalized.get("normalized"),
            platform=normalized.get("platform"),
            region=normalized.get("region"),
            product_id=normalized.get("product_id"),
            user_context=user_context or {},
            status=SessionStatus.ANALYZING.value,
        )
        db.add(session)
        db.flush()

        session_id = session.id
        logger.info(f"Created verifier session {session_id} for {input_url}")
        return session_id


def update_verifier_session(session_id: str, **fields: Any) -> bool:
    """Set columns on a session. Unknown column names raise AttributeError."""
    with get_db_context() as db:
        session = db.get(VerifierSession, session_id)
        if not session:
            return False
        for name, value in fields.items():
            if not hasattr(VerifierSession, name):
                raise AttributeError(f"VerifierSession has no column {name}")
            setattr(session, name, value)
        return True


def fail_verifier_session(session_id: str, error_message: str) -> None:
    update_verifier_session(
        session_id,
        status=SessionStatus.FAILED.value,
        error_message=error_message[:1000],
    )
    logger.error(f"Verifier session {session_id} failed: {error_message}")


def get_verifier_session(session_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Session row as a dict; None when missing or owned by another user."""
    with get_db_context() as db:
        session = db.get(VerifierSession, session_id)
        if not session:
            return None
        if user_id is not None and session.user_id != user_id:
            return None

        data = session.to_dict()
        data["created_at"] = _iso(session.created_at)
        data["updated_at"] = _iso(session.updated_at)
        return data


# =============================================================================
# AFFILIATE PROGRAMS
# =============================================================================

def get_brand_program(brand_slug: str) -> Optional[Dict[str, Any]]:
    """Best active program (highest commission) for a brand."""
    with get_db_context() as db:
        program = (
            db.query(AffiliateProgram)
            .filter(AffiliateProgram.brand_slug == brand_slug)
            .filter(AffiliateProgram.is_active.is_(True))
            .order_by(AffiliateProgram.commission_rate_high.desc())
            .first()
        )
        return program.to_dict() if program else None


def get_category_programs(
    category: str,
    exclude_brand_slug: Optional[str] = None,
    min_commission: Optional[float] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """
    Active programs in a category, highest commission first.

    Args:
        category: Primary category (lower-case)
        exclude_brand_slug: Brand to leave out (usually the analysed one)
        min_commission: Minimum commission_rate_high
        limit: Maximum rows
    """
    with get_db_context() as db:
        query = (
            db.query(AffiliateProgram)
            .filter(AffiliateProgram.primary_category == category.lower())
            .filter(AffiliateProgram.is_active.is_(True))
        )
        if exclude_brand_slug:
            query = query.filter(AffiliateProgram.brand_slug != exclude_brand_slug)
        if min_commission is not None:
            query = query.filter(AffiliateProgram.commission_rate_high >= min_commission)

        programs = query.order_by(AffiliateProgram.commission_rate_high.desc()).limit(limit).all()
        return [p.to_dict() for p in programs]


def upsert_affiliate_program(data: Dict[str, Any]) -> str:
    """Insert or update a program by id."""
    with get_db_context() as db:
        program = db.get(AffiliateProgram, data["id"]) if data.get("id") else None
        if program is None:
            program = AffiliateProgram()
            db.add(program)
        for name, value in data.items():
            if hasattr(AffiliateProgram, name):
                setattr(program, name, value)
        db.flush()
        return program.id


# =============================================================================
# REPUTATION
# =============================================================================

def get_brand_reputation(brand_slug: str) -> Optional[Dict[str, Any]]:
    with get_db_context() as db:
        reputation = (
            db.query(BrandReputation)
            .filter(BrandReputation.brand_slug == brand_slug)
            .first()
        )
        return reputation.to_dict() if reputation else None


def upsert_brand_reputation(brand_slug: str, data: Dict[str, Any]) -> None:
    with get_db_context() as db:
        reputation = (
            db.query(BrandReputation)
            .filter(BrandReputation.brand_slug == brand_slug)
            .first()
        )
        if reputation is None:
            reputation = BrandReputation(brand_slug=brand_slug)
            db.add(reputation)
        for name, value in data.items():
            if hasattr(BrandReputation, name) and name != "id":
                setattr(reputation, name, value)
        reputation.scraped_at = data.get("scraped_at") or datetime.utcnow()


# =============================================================================
# SCRAPE CACHE
# =============================================================================

def get_cached_scrape(normalized_url: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """Cached extraction for a URL, or None when missing or expired."""
    now = now or datetime.utcnow()
    with get_db_context() as db:
        entry = db.get(ProductScrapeCache, normalized_url)
        if not entry or entry.expires_at < now:
            return None
        return entry.extracted_data


def store_scrape(
    normalized_url: str,
    platform: Optional[str],
    extracted_data: Dict[str, Any],
    ttl_hours: int = 24,
) -> None:
    now = datetime.utcnow()
    with get_db_context() as db:
        entry = db.get(ProductScrapeCache, normalized_url)
        if entry is None:
            entry = ProductScrapeCache(normalized_url=normalized_url)
            db.add(entry)
        entry.platform = platform
        entry.extracted_data = extracted_data
        entry.scraped_at = now
        entry.expires_at = now + timedelta(hours=ttl_hours)


# =============================================================================
# WATCHLIST
# =============================================================================

def create_watchlist_item(
    user_id: str,
    url: str,
    normalized_url: Optional[str],
    product_name: str,
    brand: Optional[str],
    merchant: Optional[str],
    category: Optional[str],
    last_snapshot: Dict[str, Any],
    session_id: Optional[str] = None,
    monitoring_config: Optional[Dict[str, bool]] = None,
) -> Dict[str, Any]:
    with get_db_context() as db:
        item = WatchlistItem(
            user_id=user_id,
            session_id=session_id,
            url=url,
            normalized_url=normalized_url,
            product_name=product_name,
            brand=brand,
            merchant=merchant,
            category=category,
            last_snapshot=last_snapshot,
            monitoring_config=monitoring_config,
            next_check_at=datetime.utcnow(),
        )
        db.add(item)
        db.flush()

        logger.info(f"Added {product_name} to watchlist of user {user_id}")
        return _watchlist_to_dict(item)


def list_watchlist(user_id: str) -> List[Dict[str, Any]]:
    with get_db_context() as db:
        items = (
            db.query(WatchlistItem)
            .filter(WatchlistItem.user_id == user_id)
            .filter(WatchlistItem.is_active.is_(True))
            .order_by(WatchlistItem.created_at.desc())
            .all()
        )
        return [_watchlist_to_dict(i) for i in items]


def get_due_watchlist_items(limit: int = 50, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Active items whose next check time has passed."""
    now = now or datetime.utcnow()
    with get_db_context() as db:
        items = (
            db.query(WatchlistItem)
            .filter(WatchlistItem.is_active.is_(True))
            .filter(WatchlistItem.next_check_at <= now)
            .order_by(WatchlistItem.next_check_at)
            .limit(limit)
            .all()
        )
        return [i.to_dict() for i in items]


def record_watchlist_check(
    item_id: str,
    alerts: List[Dict[str, Any]],
    snapshot: Optional[Dict[str, Any]],
    recheck_hours: int = 6,
) -> None:
    """Store alerts, refresh the snapshot and schedule the next check."""
    now = datetime.utcnow()
    with get_db_context() as db:
        item = db.get(WatchlistItem, item_id)
        if not item:
            return

        for alert in alerts:
            db.add(VerifierAlert(**alert))
        item.alert_count = (item.alert_count or 0) + len(alerts)
        if snapshot is not None:
            item.last_snapshot = snapshot
        item.last_checked_at = now
        item.next_check_at = now + timedelta(hours=recheck_hours)


def list_alerts(user_id: str, unread_only: bool = False, limit: int = 50) -> List[Dict[str, Any]]:
    with get_db_context() as db:
        query = db.query(VerifierAlert).filter(VerifierAlert.user_id == user_id)
        if unread_only:
            query = query.filter(VerifierAlert.is_read.is_(False))
        alerts = query.order_by(VerifierAlert.created_at.desc()).limit(limit).all()

        result = []
        for alert in alerts:
            data = alert.to_dict()
            data["created_at"] = _iso(alert.created_at)
            result.append(data)
        return result


def _watchlist_to_dict(item: WatchlistItem) -> Dict[str, Any]:
    data = item.to_dict()
    for name in ("last_checked_at", "next_check_at", "created_at", "updated_at"):
        data[name] = _iso(getattr(item, name))
    return data
