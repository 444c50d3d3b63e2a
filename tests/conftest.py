"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules.
"""

import pytest
from typing import Any, Dict

from src.database import init_db, reset_engine
from src.verifier import (
    CommissionData,
    ConfidenceLevel,
    ProductPrice,
    RankerCandidate,
    ReputationData,
    ScrapedProductData,
)


# ============================================================================
# Product / Merchant / Program Fixtures
# ============================================================================

@pytest.fixture
def strong_product() -> ScrapedProductData:
    """Well-documented, discounted fashion product with strong reviews."""
    return ScrapedProductData(
        title="Air Zoom Pegasus 40",
        brand="Nike",
        category="fashion",
        description="Responsive running shoe for daily training.",
        price=ProductPrice(amount=40.0, currency="EUR", original_amount=60.0),
        rating=4.6,
        review_count=1200,
        availability="in_stock",
        image_url="https://example.com/pegasus.jpg",
        claims=["1K+ bought in past month"],
        has_return_policy=True,
        has_shipping_info=True,
    )


@pytest.fixture
def strong_reputation() -> ReputationData:
    return ReputationData(
        trustpilot_rating=4.5,
        trustpilot_reviews=800,
        reviews_io_rating=4.6,
        reviews_io_reviews=120,
        overall_rating=4.6,
        overall_reviews=500,
        recency_days=3,
    )


@pytest.fixture
def brand_commission() -> CommissionData:
    """Verified brand program: 10-14%, 5% conversion, 5% refunds."""
    return CommissionData(
        rate_low=10,
        rate_high=14,
        cookie_days=30,
        network="Awin",
        avg_conversion_rate=0.05,
        avg_order_value=80,
        refund_rate=0.05,
        requires_application=False,
        program_name="Nike EU",
        program_confidence=5,
        last_verified_days=2,
        is_brand_program=True,
    )


@pytest.fixture
def make_candidate():
    """Factory for ranker candidates with sensible mid-range defaults."""
    def _make(candidate_id: str = "c1", **overrides: Any) -> RankerCandidate:
        values: Dict[str, Any] = {
            "id": candidate_id,
            "title": f"Program {candidate_id}",
            "brand": f"Brand {candidate_id}",
            "category": "fashion",
            "merchant": f"Brand {candidate_id}",
            "network": "Awin",
            "product_viability": 60,
            "offer_merchant": 60,
            "economics": 60,
            "commission_rate_low": 5,
            "commission_rate_high": 8,
            "cookie_days": 30,
            "coverage": 0.6,
            "confidence": ConfidenceLevel.MED,
            "risk_score": 0.2,
        }
        values.update(overrides)
        return RankerCandidate(**values)
    return _make


@pytest.fixture
def make_program():
    """Factory for affiliate_programs rows as plain dicts."""
    def _make(program_id: str = "p1", **overrides: Any) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "id": program_id,
            "program_name": f"Program {program_id}",
            "brand_name": f"Brand {program_id}",
            "brand_slug": f"brand{program_id}",
            "merchant_name": f"Brand {program_id}",
            "primary_category": "fashion",
            "network": "Awin",
            "commission_rate_low": 6,
            "commission_rate_high": 10,
            "cookie_duration_days": 30,
            "avg_conversion_rate": 0.03,
            "avg_order_value": 70,
            "refund_rate": 0.06,
            "typical_price_low": 40,
            "typical_price_high": 90,
            "merchant_rating": 4.2,
            "verified_program": True,
            "requires_application": False,
            "confidence_score": 4,
            "brand_tier": "mainstream",
            "is_active": True,
        }
        values.update(overrides)
        return values
    return _make


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    """Fresh SQLite database per test, wired into the global engine."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("POSTGRES_URL", raising=False)
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "verifier_test.db"))

    reset_engine()
    init_db()
    yield
    reset_engine()
