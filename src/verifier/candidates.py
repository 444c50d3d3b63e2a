"""
Candidate Builders

Converts affiliate program rows into ranker candidates and commission
records, and aggregates category statistics for relative price tags.

Program rows are plain dicts with the columns of the affiliate_programs
table (see src.database.models.AffiliateProgram).
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .helpers import ConfidenceLevel, Platform, clamp, percentile
from .models import CategoryStats, CommissionData
from .ranker import RankerCandidate

MIN_PROGRAMS_FOR_STATS = 3

PLATFORM_CATEGORIES = {
    Platform.AMAZON: "electronics",
    Platform.ZALANDO: "fashion",
    Platform.ABOUTYOU: "fashion",
    Platform.ASOS: "fashion",
    Platform.SEPHORA: "beauty",
    Platform.DOUGLAS: "beauty",
    Platform.MEDIAMARKT: "electronics",
    Platform.SATURN: "electronics",
}

COVERAGE_SIGNALS = [
    "commission_rate_high",
    "cookie_duration_days",
    "avg_conversion_rate",
    "avg_order_value",
    "merchant_rating",
    "verified_program",
    "last_verified_at",
]


# =============================================================================
# NAMING
# =============================================================================

def derive_brand_slug(brand: Optional[str], merchant: Optional[str]) -> str:
    """'Nike Inc.' -> 'nikeinc'."""
    name = (brand or merchant or "unknown").lower()
    return re.sub(r"[^a-z0-9]", "", name)


def derive_category(platform: Any) -> str:
    """Likely category for marketplaces that do not expose one."""
    try:
        return PLATFORM_CATEGORIES.get(Platform(platform), "general")
    except ValueError:
        return "general"


# =============================================================================
# PROGRAM -> CANDIDATE
# =============================================================================

def program_to_candidate(program: Dict[str, Any]) -> RankerCandidate:
    """Build a RankerCandidate from an affiliate program row."""
    brand = program.get("brand_name") or ""
    return RankerCandidate(
        id=str(program["id"]),
        title=program.get("program_name") or f"{brand} Affiliate Program",
        brand=brand,
        category=program.get("primary_category") or "",
        merchant=program.get("merchant_name") or brand,
        network=program.get("network") or "",
        product_viability=product_viability_from_program(program),
        offer_merchant=offer_merchant_from_program(program),
        economics=economics_from_program(program),
        commission_rate_low=program.get("commission_rate_low") or 0,
        commission_rate_high=program.get("commission_rate_high") or 0,
        cookie_days=program.get("cookie_duration_days") or 30,
        avg_conversion_rate=program.get("avg_conversion_rate"),
        avg_order_value=program.get("avg_order_value"),
        refund_rate=program.get("refund_rate"),
        coverage=program_coverage(program),
        confidence=program_confidence(program),
        hard_stop_flags=program_hard_stop_flags(program),
        risk_score=program_risk(program),
        trend_score=program.get("trend_score"),
        trend_eligible=bool(program.get("trend_eligible")),
        price_low=program.get("typical_price_low"),
        price_high=program.get("typical_price_high"),
        currency=program.get("currency") or "EUR",
    )


def product_viability_from_program(program: Dict[str, Any]) -> int:
    score = 50

    tier = program.get("brand_tier")
    if tier == "premium":
        score += 20
    elif tier == "mainstream":
        score += 10

    rating = program.get("merchant_rating")
    if rating and rating >= 4.5:
        score += 15
    elif rating and rating >= 4.0:
        score += 10

    if program.get("high_demand_category"):
        score += 10

    return int(clamp(score))


def offer_merchant_from_program(program: Dict[str, Any]) -> int:
    score = 50

    rating = program.get("merchant_rating")
    if rating and rating >= 4.5:
        score += 25
    elif rating and rating >= 4.0:
        score += 15
    elif rating and rating >= 3.5:
        score += 5

    if program.get("verified_program"):
        score += 15
    if program.get("has_free_shipping"):
        score += 5
    if program.get("has_easy_returns"):
        score += 5

    return int(clamp(score))


def economics_from_program(program: Dict[str, Any]) -> int:
    """Commission 40 + cookie 20 + conversion 20 + AOV 20."""
    rate = program.get("commission_rate_high") or 0
    if rate >= 15:
        score = 40
    elif rate >= 10:
        score = 30
    elif rate >= 7:
        score = 25
    elif rate >= 5:
        score = 20
    elif rate >= 3:
        score = 15
    else:
        score = 10

    cookie = program.get("cookie_duration_days") or 30
    if cookie >= 90:
        score += 20
    elif cookie >= 60:
        score += 15
    elif cookie >= 30:
        score += 10
    else:
        score += 5

    conversion = program.get("avg_conversion_rate") or 0
    if conversion >= 0.05:
        score += 20
    elif conversion >= 0.03:
        score += 15
    elif conversion >= 0.02:
        score += 10
    else:
        score += 5

    aov = program.get("avg_order_value") or 0
    if aov >= 100:
        score += 20
    elif aov >= 75:
        score += 15
    elif aov >= 50:
        score += 10
    else:
        score += 5

    return int(clamp(score))


def program_coverage(program: Dict[str, Any]) -> float:
    """Share of the 8 program signals that are present."""
    signals = sum(1 for key in COVERAGE_SIGNALS if program.get(key))
    if program.get("refund_rate") is not None:
        signals += 1
    return signals / 8


def program_confidence(program: Dict[str, Any]) -> ConfidenceLevel:
    coverage = program_coverage(program)
    if coverage >= 0.75 and program.get("verified_program"):
        return ConfidenceLevel.HIGH
    if coverage >= 0.5:
        return ConfidenceLevel.MED
    return ConfidenceLevel.LOW


def program_hard_stop_flags(program: Dict[str, Any]) -> List[str]:
    flags = []
    rating = program.get("merchant_rating")
    refund = program.get("refund_rate")

    if rating and rating < 2.5:
        flags.append("MERCHANT_RISK")
    if refund and refund > 0.25:
        flags.append("HIGH_REFUND_RATE")
    if program.get("program_paused"):
        flags.append("PROGRAM_PAUSED")
    if program.get("compliance_risk"):
        flags.append("COMPLIANCE_RISK")
    return flags


def program_risk(program: Dict[str, Any]) -> float:
    """0-1 risk from merchant rating, refund rate, verification and application."""
    risk = 0.0

    rating = program.get("merchant_rating")
    if rating:
        if rating < 3.0:
            risk += 0.3
        elif rating < 3.5:
            risk += 0.2
        elif rating < 4.0:
            risk += 0.1
    else:
        risk += 0.15

    refund = program.get("refund_rate")
    if refund:
        if refund > 0.20:
            risk += 0.25
        elif refund > 0.10:
            risk += 0.15
        elif refund > 0.05:
            risk += 0.05

    if not program.get("verified_program"):
        risk += 0.1
    if program.get("requires_application"):
        risk += 0.05

    return clamp(risk, 0.0, 1.0)


# =============================================================================
# PROGRAM -> COMMISSION
# =============================================================================

def commission_from_program(
    program: Dict[str, Any],
    is_brand_program: bool = True,
    now: Optional[datetime] = None,
) -> CommissionData:
    """Commission record for scoring, from the best matching program row."""
    last_verified = program.get("last_verified_at")
    verified_days = 30
    if isinstance(last_verified, datetime):
        now = now or datetime.now(timezone.utc)
        if last_verified.tzinfo is None:
            last_verified = last_verified.replace(tzinfo=timezone.utc)
        verified_days = max(0, (now - last_verified).days)

    return CommissionData(
        rate_low=program.get("commission_rate_low") or 0,
        rate_high=program.get("commission_rate_high") or 0,
        cookie_days=program.get("cookie_duration_days") or 30,
        network=program.get("network"),
        avg_conversion_rate=program.get("avg_conversion_rate"),
        avg_order_value=program.get("avg_order_value"),
        refund_rate=program.get("refund_rate"),
        requires_application=program.get("requires_application") is not False,
        program_name=program.get("program_name"),
        program_confidence=program.get("confidence_score"),
        last_verified_days=verified_days,
        is_brand_program=is_brand_program,
    )


# =============================================================================
# CATEGORY STATS
# =============================================================================

def compute_category_stats(programs: List[Dict[str, Any]]) -> Optional[CategoryStats]:
    """
    Price and commission distribution for a category.

    Returns None when fewer than 3 programs are available.
    """
    if len(programs) < MIN_PROGRAMS_FOR_STATS:
        return None

    commissions = [p.get("commission_rate_high") or 0 for p in programs]
    commissions = [c for c in commissions if c > 0]
    aovs = [p.get("avg_order_value") or 0 for p in programs]
    aovs = [a for a in aovs if a > 0]
    prices = sorted(p.get("typical_price_low") or 0 for p in programs)
    prices = [p for p in prices if p > 0]

    return CategoryStats(
        median_price=percentile(prices, 0.5) or 50,
        price_p25=percentile(prices, 0.25) or 25,
        price_p75=percentile(prices, 0.75) or 100,
        median_aov=sum(aovs) / len(aovs) if aovs else 50,
        avg_commission=sum(commissions) / len(commissions) if commissions else 5,
    )
