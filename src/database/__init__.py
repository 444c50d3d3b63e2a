"""
AffiMark Database Layer

Usage:
    from src.database import (
        # Session management
        init_db, get_db_context,

        # Models
        VerifierSession, AffiliateProgram, WatchlistItem,

        # Repository (high-level operations)
        create_verifier_session, get_verifier_session, get_category_programs,
    )

    init_db()
    session_id = create_verifier_session(user_id, url, normalized.to_dict())
"""

# Models
from .models import (
    Base,
    SessionStatus,
    AlertSeverity,
    VerifierSession,
    AffiliateProgram,
    BrandReputation,
    ProductScrapeCache,
    WatchlistItem,
    VerifierAlert,
)

# Session management
from .session import (
    get_database_url,
    get_engine,
    reset_engine,
    get_session_factory,
    get_db_context,
    init_db,
    check_db_connection,
)

# Repository
from .repository import (
    create_verifier_session,
    update_verifier_session,
    fail_verifier_session,
    get_verifier_session,
    get_brand_program,
    get_category_programs,
    upsert_affiliate_program,
    get_brand_reputation,
    upsert_brand_reputation,
    get_cached_scrape,
    store_scrape,
    create_watchlist_item,
    list_watchlist,
    get_due_watchlist_items,
    record_watchlist_check,
    list_alerts,
)

__all__ = [
    # Models
    "Base",
    "SessionStatus",
    "AlertSeverity",
    "VerifierSession",
    "AffiliateProgram",
    "BrandReputation",
    "ProductScrapeCache",
    "WatchlistItem",
    "VerifierAlert",
    # Session
    "get_database_url",
    "get_engine",
    "reset_engine",
    "get_session_factory",
    "get_db_context",
    "init_db",
    "check_db_connection",
    # Repository
    "create_verifier_session",
    "update_verifier_session",
    "fail_verifier_session",
    "get_verifier_session",
    "get_brand_program",
    "get_category_programs",
    "upsert_affiliate_program",
    "get_brand_reputation",
    "upsert_brand_reputation",
    "get_cached_scrape",
    "store_scrape",
    "create_watchlist_item",
    "list_watchlist",
    "get_due_watchlist_items",
    "record_watchlist_check",
    "list_alerts",
]
