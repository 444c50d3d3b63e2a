"""
SQLAlchemy Models for the AffiMark Product Verifier

Tables:
1. verifier_sessions       - one analysed URL and everything decided about it
2. affiliate_programs      - program catalogue used for commission and alternatives
3. brand_reputation        - aggregated merchant review data per brand
4. product_scrape_cache    - scraped product pages, reused until expiry
5. verifier_watchlist      - products a user asked us to keep an eye on
6. verifier_alerts         - changes detected on watched products

Ids are string UUIDs and JSON columns use JSONB on PostgreSQL, so the same
models run on SQLite for local development and tests.
"""

import enum
from datetime import datetime
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, Text,
    ForeignKey, Index, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class SessionStatus(enum.Enum):
    """Lifecycle of a verifier session"""
    ANALYZING = "analyzing"
    RECOMMENDATIONS_READY = "recommendations_ready"
    PLAYBOOK_READY = "playbook_ready"
    COMPLETED = "completed"
    FAILED = "failed"


class AlertSeverity(enum.Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ColumnsMixin:
    """Plain dict of column values, for handing rows to pure code."""

    def to_dict(self) -> Dict[str, Any]:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# =============================================================================
# VERIFIER SESSIONS
# =============================================================================

class VerifierSession(ColumnsMixin, Base):
    """
    One product URL run through the verifier.

    Status flow: analyzing -> recommendations_ready -> playbook_ready
    -> completed, or failed at any point.
    """
    __tablename__ = "verifier_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)

    # Input
    input_url = Column(Text, nullable=False)
    normalized_url = Column(Text)
    platform = Column(String(30))
    region = Column(String(10))
    product_id = Column(String(100))
    user_context = Column(JSONType)  # traffic_type, categories

    status = Column(String(30), default=SessionStatus.ANALYZING.value)
    error_message = Column(Text)

    # Snapshot
    product_data = Column(JSONType)
    scores = Column(JSONType)
    score_breakdowns = Column(JSONType)
    confidence = Column(String(10))
    evidence = Column(JSONType)
    verdict = Column(JSONType)
    insights = Column(JSONType)
    economics = Column(JSONType)
    coverage = Column(JSONType)

    # Recommendations
    routing = Column(JSONType)
    rank_mode = Column(String(30))
    winner = Column(JSONType)
    buckets = Column(JSONType, default=list)
    ranked_alternatives = Column(JSONType, default=list)

    # Playbook
    selected_alternative_id = Column(String(64))
    approved_item = Column(JSONType)
    playbook = Column(JSONType)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_verifier_session_user", "user_id"),
        Index("idx_verifier_session_status", "status"),
    )


# =============================================================================
# REFERENCE DATA
# =============================================================================

class AffiliateProgram(ColumnsMixin, Base):
    """
    Affiliate program catalogue.

    Conversion and refund rates are fractions (0.03 means 3%), commission
    rates are percentages.
    """
    __tablename__ = "affiliate_programs"

    id = Column(String(36), primary_key=True, default=_uuid)
    program_name = Column(String(255))
    brand_name = Column(String(255), nullable=False)
    brand_slug = Column(String(255), nullable=False)
    merchant_name = Column(String(255))
    primary_category = Column(String(100))
    network = Column(String(100))

    # Economics
    commission_rate_low = Column(Float, default=0)
    commission_rate_high = Column(Float, default=0)
    cookie_duration_days = Column(Integer, default=30)
    avg_conversion_rate = Column(Float)
    avg_order_value = Column(Float)
    refund_rate = Column(Float)
    typical_price_low = Column(Float)
    typical_price_high = Column(Float)
    currency = Column(String(3), default="EUR")

    # Trust
    merchant_rating = Column(Float)
    verified_program = Column(Boolean, default=False)
    requires_application = Column(Boolean, default=True)
    confidence_score = Column(Integer)  # 1-5
    last_verified_at = Column(DateTime)
    brand_tier = Column(String(20))  # premium, mainstream, budget
    high_demand_category = Column(Boolean, default=False)
    has_free_shipping = Column(Boolean, default=False)
    has_easy_returns = Column(Boolean, default=False)

    # Risk
    program_paused = Column(Boolean, default=False)
    compliance_risk = Column(Boolean, default=False)

    # Trend
    trend_score = Column(Float)
    trend_eligible = Column(Boolean, default=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_affiliate_program_brand", "brand_slug", "is_active"),
        Index("idx_affiliate_program_category", "primary_category", "is_active"),
    )


class BrandReputation(ColumnsMixin, Base):
    """Merchant reviews aggregated per brand slug"""
    __tablename__ = "brand_reputation"

    id = Column(String(36), primary_key=True, default=_uuid)
    brand_slug = Column(String(255), unique=True, nullable=False)

    trustpilot_rating = Column(Float)
    trustpilot_reviews = Column(Integer, default=0)
    google_rating = Column(Float)
    google_reviews = Column(Integer, default=0)
    reviews_io_rating = Column(Float)
    reviews_io_reviews = Column(Integer, default=0)
    overall_rating = Column(Float)
    overall_reviews = Column(Integer, default=0)
    sentiment_score = Column(Float)

    has_shipping_complaints = Column(Boolean, default=False)
    has_quality_complaints = Column(Boolean, default=False)
    has_support_complaints = Column(Boolean, default=False)

    scraped_at = Column(DateTime, default=datetime.utcnow)


class ProductScrapeCache(Base):
    """Scraped product pages keyed by normalized URL"""
    __tablename__ = "product_scrape_cache"

    normalized_url = Column(Text, primary_key=True)
    platform = Column(String(30))
    extracted_data = Column(JSONType, nullable=False)
    scraped_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)


# =============================================================================
# WATCHLIST
# =============================================================================

class WatchlistItem(ColumnsMixin, Base):
    """A verified product the user wants monitored"""
    __tablename__ = "verifier_watchlist"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)
    session_id = Column(String(36), ForeignKey("verifier_sessions.id"), nullable=True)

    url = Column(Text, nullable=False)
    normalized_url = Column(Text)
    product_name = Column(String(500))
    brand = Column(String(255))
    merchant = Column(String(255))
    category = Column(String(100))

    last_snapshot = Column(JSONType)
    """
    {
        "scores": {"product_viability": 72, "offer_merchant": 68, "economics_feasibility": 55},
        "verdict": "YELLOW",
        "confidence": "MED"
    }
    """
    monitoring_config = Column(JSONType)

    is_active = Column(Boolean, default=True)
    alert_count = Column(Integer, default=0)
    last_checked_at = Column(DateTime)
    next_check_at = Column(DateTime, default=datetime.utcnow)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship("VerifierSession")
    alerts = relationship("VerifierAlert", back_populates="watchlist_item", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_watchlist_user", "user_id"),
        Index("idx_watchlist_due", "is_active", "next_check_at"),
    )


class VerifierAlert(ColumnsMixin, Base):
    """Change detected on a watched product"""
    __tablename__ = "verifier_alerts"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)
    watchlist_id = Column(String(36), ForeignKey("verifier_watchlist.id"), nullable=False)

    alert_type = Column(String(50), nullable=False)
    severity = Column(String(10), default=AlertSeverity.INFO.value)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    previous_value = Column(JSONType)
    new_value = Column(JSONType)
    is_read = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    watchlist_item = relationship("WatchlistItem", back_populates="alerts")

    __table_args__ = (
        Index("idx_alert_user", "user_id", "is_read"),
    )
