"""
Pillar Scoring

Deterministic formulas for the three 0-100 pillar scores:

1. Product Viability (0-100)
   demand signals 25 + review sentiment 25 + pricing 25 + category fit 15 + uniqueness 10

2. Offer & Merchant (0-100)
   merchant trust 30 + shipping/returns 20 + policy clarity 15 + brand risk 20 + compliance 15

3. Economics Feasibility (0-100)
   commission 40 + conversion 25 + AOV 20 + refund adjustment 15

Plus category benchmarks and the monthly earning band estimate.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .helpers import MONTHLY_CLICKS_HIGH, MONTHLY_CLICKS_LOW, clamp, round_half_up
from .models import CategoryBenchmarks, CommissionData, ReputationData, ScrapedProductData

logger = logging.getLogger(__name__)


# =============================================================================
# CATEGORY BENCHMARKS
# =============================================================================

DEFAULT_BENCHMARKS: Dict[str, CategoryBenchmarks] = {
    "electronics": CategoryBenchmarks(4, 24, 2.5, 120, 5, 500, 100),
    "fashion": CategoryBenchmarks(7, 30, 3.0, 65, 15, 200, 50),
    "beauty": CategoryBenchmarks(8, 30, 3.5, 45, 8, 300, 30),
    "home": CategoryBenchmarks(6, 25, 2.0, 90, 10, 150, 80),
    "software": CategoryBenchmarks(25, 60, 5.0, 200, 8, 100, 150),
    "travel": CategoryBenchmarks(5, 20, 1.5, 250, 12, 1000, 200),
    "food": CategoryBenchmarks(10, 20, 4.0, 40, 5, 200, 35),
    "luxury": CategoryBenchmarks(7, 20, 1.0, 400, 12, 50, 300),
}

FALLBACK_BENCHMARKS = CategoryBenchmarks(5, 30, 2.5, 75, 8, 200, 60)

MAJOR_BRANDS = ["amazon", "nike", "adidas", "apple", "samsung", "sony", "zara", "hm"]

KNOWN_BRANDS = [
    "sony", "samsung", "apple", "nike", "adidas", "puma", "bose", "dyson",
    "philips", "canon", "logitech", "sephora", "zalando", "asos", "hm",
    "zara", "douglas", "ikea", "lego", "bosch", "dell", "hp", "lenovo",
]

FLAGGED_CLAIM_TERMS = [
    "miracle", "cure", "guaranteed results", "lose weight fast",
    "fda approved", "clinically proven", "doctor recommended",
]

DEMAND_BADGE_WORDS = ("bought", "sold", "popular")


def get_benchmarks(category: Optional[str]) -> CategoryBenchmarks:
    """Benchmarks for a category, falling back to cross-category averages."""
    if not category:
        return FALLBACK_BENCHMARKS
    return DEFAULT_BENCHMARKS.get(category.lower(), FALLBACK_BENCHMARKS)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class ScoringInput:
    product: ScrapedProductData
    reputation: Optional[ReputationData]
    commission: Optional[CommissionData]
    category_benchmarks: CategoryBenchmarks
    user_categories: List[str] = field(default_factory=list)


@dataclass
class ScoreResult:
    product_viability: int
    offer_merchant: int
    economics_feasibility: int
    breakdowns: Dict[str, Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_viability": self.product_viability,
            "offer_merchant": self.offer_merchant,
            "economics_feasibility": self.economics_feasibility,
            "breakdowns": self.breakdowns,
        }


@dataclass
class EarningBand:
    low: float
    high: float
    currency: str
    assumptions: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "low": self.low,
            "high": self.high,
            "currency": self.currency,
            "assumptions": dict(self.assumptions),
        }


# =============================================================================
# MAIN SCORING
# =============================================================================

def compute_scores(data: ScoringInput) -> ScoreResult:
    """
    Compute all three pillar scores for a product.

    Args:
        data: Scraped product, optional reputation/commission, category benchmarks

    Returns:
        ScoreResult with clamped 0-100 scores and per-component breakdowns
    """
    pv = _product_viability(data)
    om = _offer_merchant(data)
    ec = _economics(data)

    result = ScoreResult(
        product_viability=_clamp_score(pv["total"]),
        offer_merchant=_clamp_score(om["total"]),
        economics_feasibility=_clamp_score(ec["total"]),
        breakdowns={
            "product_viability": pv["breakdown"],
            "offer_merchant": om["breakdown"],
            "economics": ec["breakdown"],
        },
    )
    logger.debug(
        f"Scores: pv={result.product_viability} om={result.offer_merchant} "
        f"ec={result.economics_feasibility}"
    )
    return result


def compute_earning_band(
    product: ScrapedProductData,
    commission: Optional[CommissionData],
    benchmarks: CategoryBenchmarks,
) -> EarningBand:
    """
    Monthly earning range for 500 (low) to 2,000 (high) clicks.

    earning = clicks * commission% * conversion * AOV * (1 - refund)
    """
    comm_low = commission.rate_low if commission else benchmarks.avg_commission * 0.8
    comm_high = commission.rate_high if commission else benchmarks.avg_commission * 1.2
    conversion = _conversion_pct(commission, benchmarks) / 100
    aov = _aov(product, commission, benchmarks)
    refund = _refund_pct(commission, benchmarks) / 100

    low = MONTHLY_CLICKS_LOW * (comm_low / 100) * conversion * aov * (1 - refund)
    high = MONTHLY_CLICKS_HIGH * (comm_high / 100) * conversion * aov * (1 - refund)

    return EarningBand(
        low=round_half_up(low * 100) / 100,
        high=round_half_up(high * 100) / 100,
        currency=product.price.currency if product.price else "EUR",
        assumptions={
            "aov": round_half_up(aov),
            "conversion_rate": round_half_up(conversion * 10000) / 100,
            "refund_rate": round_half_up(refund * 10000) / 100,
            "estimated_monthly_clicks": round_half_up((MONTHLY_CLICKS_LOW + MONTHLY_CLICKS_HIGH) / 2),
        },
    )


# =============================================================================
# PRODUCT VIABILITY
# =============================================================================

def _product_viability(data: ScoringInput) -> Dict[str, Any]:
    product = data.product
    benchmarks = data.category_benchmarks

    # Demand (0-25): review count as proxy
    review_count = product.review_count or 0
    if review_count >= 1000:
        demand = 25
    elif review_count >= 500:
        demand = 22
    elif review_count >= 100:
        demand = 18
    elif review_count >= 50:
        demand = 15
    elif review_count >= 10:
        demand = 10
    elif review_count >= 1:
        demand = 5
    else:
        demand = 3

    has_badge = any(
        word in claim.lower() for claim in product.claims for word in DEMAND_BADGE_WORDS
    )
    if has_badge:
        demand = min(25, demand + 3)

    # Sentiment (0-25)
    rating = product.rating
    if rating is None:
        sentiment = 12
    elif rating >= 4.5:
        sentiment = 25
    elif rating >= 4.2:
        sentiment = 22
    elif rating >= 4.0:
        sentiment = 20
    elif rating >= 3.5:
        sentiment = 15
    elif rating >= 3.0:
        sentiment = 10
    elif rating >= 2.0:
        sentiment = 5
    else:
        sentiment = 2

    # Pricing (0-25)
    pricing = 15
    price = product.price.amount if product.price else None
    if price is not None and benchmarks.avg_price > 0:
        ratio = price / benchmarks.avg_price
        if ratio <= 0.5:
            pricing = 25
        elif ratio <= 0.8:
            pricing = 22
        elif ratio <= 1.2:
            pricing = 18
        elif ratio <= 1.5:
            pricing = 12
        elif ratio <= 2.0:
            pricing = 8
        else:
            pricing = 4
    if product.price and price and product.price.is_discounted:
        pricing = min(25, pricing + 3)

    # Category fit (0-15)
    category_fit = 10
    if product.category and data.user_categories:
        match = any(c.lower() == product.category.lower() for c in data.user_categories)
        category_fit = 15 if match else 7

    # Uniqueness (0-10): niche brands are harder to buy elsewhere
    uniqueness = 6
    if product.brand:
        is_major = any(b in product.brand.lower() for b in MAJOR_BRANDS)
        uniqueness = 4 if is_major else 8

    currency = product.price.currency if product.price else "EUR"
    return {
        "total": demand + sentiment + pricing + category_fit + uniqueness,
        "breakdown": {
            "demand_signals": demand,
            "review_sentiment": sentiment,
            "pricing_competitiveness": pricing,
            "category_fit": category_fit,
            "uniqueness": uniqueness,
            "details": {
                "demand": f"{review_count} reviews" + (", popular badge detected" if has_badge else ""),
                "sentiment": f"{rating}/5 stars" if rating is not None else "No rating data",
                "pricing": (
                    f"{currency} {price} vs category avg {benchmarks.avg_price}"
                    if price is not None else "Price unknown"
                ),
                "fit": product.category or "Category not detected",
                "uniqueness": f"Brand: {product.brand}" if product.brand else "Brand unknown",
            },
        },
    }


# =============================================================================
# OFFER & MERCHANT
# =============================================================================

def _offer_merchant(data: ScoringInput) -> Dict[str, Any]:
    product = data.product
    reputation = data.reputation
    overall = reputation.overall_rating if reputation else None

    # Merchant trust (0-30)
    if overall is None:
        trust = 15
    elif overall >= 4.5:
        trust = 30
    elif overall >= 4.0:
        trust = 26
    elif overall >= 3.5:
        trust = 20
    elif overall >= 3.0:
        trust = 15
    elif overall >= 2.0:
        trust = 8
    else:
        trust = 3

    # Shipping & returns (0-20)
    shipping = 10
    if reputation:
        if reputation.has_shipping_complaints:
            shipping -= 5
        elif reputation.overall_reviews > 100:
            shipping += 5
    if product.availability == "in_stock":
        shipping = min(20, shipping + 3)
    if product.availability == "out_of_stock":
        shipping = max(0, shipping - 5)

    # Policy clarity (0-15)
    policy = 10
    if reputation:
        if reputation.has_support_complaints:
            policy -= 4
        if overall and overall >= 4.0:
            policy += 3
    policy = int(clamp(policy, 0, 15))

    # Brand risk (0-20): higher is safer
    if product.brand:
        is_known = any(b in product.brand.lower() for b in KNOWN_BRANDS)
        brand_risk = 20 if is_known else 12
        if not is_known and (product.review_count or 0) < 10:
            brand_risk = 5
    else:
        brand_risk = 5

    # Compliance (0-15)
    compliance = 13
    text = " ".join(list(product.claims) + [product.description or ""]).lower()
    if any(term in text for term in FLAGGED_CLAIM_TERMS):
        compliance = 5

    return {
        "total": trust + shipping + policy + brand_risk + compliance,
        "breakdown": {
            "merchant_trust": trust,
            "shipping_returns": shipping,
            "policy_clarity": policy,
            "brand_risk": brand_risk,
            "compliance": compliance,
            "details": {
                "trust": (
                    f"{overall}/5 ({reputation.overall_reviews} reviews)"
                    if overall is not None else "No reputation data available"
                ),
                "shipping": f"Availability: {product.availability}",
                "policy": (
                    "Support complaints detected"
                    if reputation and reputation.has_support_complaints
                    else "No support issues detected"
                ),
                "brand": product.brand or "Brand not identified",
                "compliance": "Suspicious claims detected" if compliance < 10 else "No compliance concerns",
            },
        },
    }


# =============================================================================
# ECONOMICS FEASIBILITY
# =============================================================================

def _economics(data: ScoringInput) -> Dict[str, Any]:
    product = data.product
    commission = data.commission
    benchmarks = data.category_benchmarks

    rate = (commission.rate_low + commission.rate_high) / 2 if commission else benchmarks.avg_commission
    cookie_days = commission.cookie_days if commission else benchmarks.avg_cookie_days
    conversion = _conversion_pct(commission, benchmarks)
    aov = _aov(product, commission, benchmarks)
    refund = _refund_pct(commission, benchmarks)

    # Commission (0-40) relative to category
    ratio = rate / benchmarks.avg_commission
    if ratio >= 2.0:
        commission_pts = 40
    elif ratio >= 1.5:
        commission_pts = 35
    elif ratio >= 1.2:
        commission_pts = 30
    elif ratio >= 0.9:
        commission_pts = 25
    elif ratio >= 0.6:
        commission_pts = 18
    elif ratio >= 0.3:
        commission_pts = 10
    else:
        commission_pts = 5

    if cookie_days >= 60:
        commission_pts = min(40, commission_pts + 3)
    elif cookie_days <= 7:
        commission_pts = max(0, commission_pts - 3)

    # Conversion (0-25)
    conv_ratio = conversion / benchmarks.avg_conversion_rate
    if conv_ratio >= 1.5:
        conversion_pts = 25
    elif conv_ratio >= 1.2:
        conversion_pts = 22
    elif conv_ratio >= 0.9:
        conversion_pts = 18
    elif conv_ratio >= 0.6:
        conversion_pts = 12
    elif conv_ratio >= 0.3:
        conversion_pts = 7
    else:
        conversion_pts = 3

    # AOV (0-20)
    aov_ratio = aov / benchmarks.avg_order_value
    if aov_ratio >= 2.0:
        aov_pts = 20
    elif aov_ratio >= 1.5:
        aov_pts = 18
    elif aov_ratio >= 1.0:
        aov_pts = 14
    elif aov_ratio >= 0.7:
        aov_pts = 10
    elif aov_ratio >= 0.4:
        aov_pts = 6
    else:
        aov_pts = 3

    # Refund adjustment (0-15): lower refund rate scores higher
    if refund <= 3:
        refund_pts = 15
    elif refund <= 5:
        refund_pts = 13
    elif refund <= 10:
        refund_pts = 10
    elif refund <= 15:
        refund_pts = 7
    elif refund <= 25:
        refund_pts = 4
    else:
        refund_pts = 2

    currency = product.price.currency if product.price else "EUR"
    return {
        "total": commission_pts + conversion_pts + aov_pts + refund_pts,
        "breakdown": {
            "commission_component": commission_pts,
            "conversion_component": conversion_pts,
            "aov_component": aov_pts,
            "refund_adjustment": refund_pts,
            "details": {
                "commission": (
                    f"{commission.rate_low}-{commission.rate_high}% ({commission.network}), {cookie_days}d cookie"
                    if commission else f"Category avg: {benchmarks.avg_commission}%"
                ),
                "conversion": f"Est. conversion: {conversion}%",
                "aov": f"AOV: {currency} {aov:.0f}",
                "refund": f"Refund rate: ~{refund}%",
            },
        },
    }


# =============================================================================
# HELPERS
# =============================================================================

def _conversion_pct(commission: Optional[CommissionData], benchmarks: CategoryBenchmarks) -> float:
    """Program conversion rates are stored as fractions; benchmarks as percent."""
    if commission and commission.avg_conversion_rate is not None:
        return commission.avg_conversion_rate * 100
    return benchmarks.avg_conversion_rate


def _refund_pct(commission: Optional[CommissionData], benchmarks: CategoryBenchmarks) -> float:
    if commission and commission.refund_rate is not None:
        return commission.refund_rate * 100
    return benchmarks.avg_refund_rate


def _aov(
    product: ScrapedProductData,
    commission: Optional[CommissionData],
    benchmarks: CategoryBenchmarks,
) -> float:
    if commission and commission.avg_order_value is not None:
        return commission.avg_order_value
    if product.price is not None:
        return product.price.amount
    return benchmarks.avg_order_value


def _clamp_score(value: float) -> int:
    return int(clamp(round_half_up(value), 0, 100))
