"""
Coverage Engine

Measures how much of the scoring was backed by real data versus
fallback defaults, per pillar:
- Product: rating, reviews, review volume, price, brand, description
- Merchant: Trustpilot, Trustpilot volume, Reviews.io, return policy, shipping
- Economics: affiliate program, program confidence, commission, cookie

Coverage drives winner suppression and the trending bucket.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .helpers import DataQuality, round_half_up
from .models import CommissionData, ReputationData, ScrapedProductData


# =============================================================================
# SIGNAL WEIGHTS
# =============================================================================

PRODUCT_SIGNALS = {
    "has_rating": 0.25,
    "has_reviews": 0.25,
    "review_volume": 0.20,
    "has_price": 0.15,
    "has_brand": 0.10,
    "has_description": 0.05,
}

MERCHANT_SIGNALS = {
    "has_trustpilot": 0.40,
    "trustpilot_volume": 0.20,
    "has_reviews_io": 0.20,
    "has_return_policy": 0.10,
    "has_shipping_info": 0.10,
}

ECONOMICS_SIGNALS = {
    "has_affiliate_program": 0.50,
    "program_confidence": 0.20,
    "has_commission_data": 0.20,
    "has_cookie_data": 0.10,
}

PILLAR_WEIGHTS = {
    "product_viability": 0.35,
    "offer_merchant": 0.35,
    "economics": 0.30,
}

MISSING_NO_PROGRAM = "No affiliate program found"
MISSING_NO_TRUSTPILOT = "No Trustpilot data"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class CoverageInput:
    # Product
    has_rating: bool = False
    has_reviews: bool = False
    review_count: int = 0
    has_price: bool = False
    has_brand: bool = False
    has_description: bool = False

    # Merchant
    has_trustpilot: bool = False
    trustpilot_reviews: int = 0
    has_reviews_io: bool = False

    # Economics
    has_affiliate_program: bool = False
    program_confidence: Optional[int] = None  # 1-5
    has_commission_data: bool = False
    has_cookie_data: bool = False

    # Policy
    has_return_policy: bool = False
    has_shipping_info: bool = False


@dataclass
class CoverageResult:
    overall_score: float
    by_pillar: Dict[str, float]
    missing_signals: List[str] = field(default_factory=list)
    data_quality: DataQuality = DataQuality.LOW
    recommendation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "by_pillar": dict(self.by_pillar),
            "missing_signals": list(self.missing_signals),
            "data_quality": self.data_quality.value,
            "recommendation": self.recommendation,
        }


# =============================================================================
# MAIN CALCULATION
# =============================================================================

def calculate_coverage(data: CoverageInput) -> CoverageResult:
    """
    Calculate data coverage for an analysis.

    Args:
        data: Which signals were found for the product, merchant and program

    Returns:
        CoverageResult with overall score (0-1), per-pillar scores,
        missing signals (product -> merchant -> economics) and a recommendation
    """
    product, product_missing = _product_coverage(data)
    merchant, merchant_missing = _merchant_coverage(data)
    economics, economics_missing = _economics_coverage(data)

    overall = (
        product * PILLAR_WEIGHTS["product_viability"]
        + merchant * PILLAR_WEIGHTS["offer_merchant"]
        + economics * PILLAR_WEIGHTS["economics"]
    )

    missing = product_missing + merchant_missing + economics_missing

    if overall >= 0.7:
        quality = DataQuality.HIGH
    elif overall >= 0.4:
        quality = DataQuality.MEDIUM
    else:
        quality = DataQuality.LOW

    return CoverageResult(
        overall_score=_round2(overall),
        by_pillar={
            "product_viability": _round2(product),
            "offer_merchant": _round2(merchant),
            "economics": _round2(economics),
        },
        missing_signals=missing,
        data_quality=quality,
        recommendation=_recommendation(missing, quality),
    )


def quick_coverage_check(data: CoverageInput) -> Dict[str, bool]:
    """
    Cheap eligibility pre-check used when filtering candidates.

    Returns:
        {"eligible_for_winner": bool, "eligible_for_trending": bool}
    """
    eligible_for_winner = (data.has_rating or data.has_reviews) and (
        data.has_trustpilot or data.has_reviews_io or data.has_return_policy
    )
    eligible_for_trending = (
        data.has_rating
        and data.has_reviews
        and (data.review_count or 0) >= 10
        and (data.has_trustpilot or data.has_reviews_io)
    )
    return {
        "eligible_for_winner": bool(eligible_for_winner),
        "eligible_for_trending": bool(eligible_for_trending),
    }


def build_coverage_input(
    product: ScrapedProductData,
    reputation: Optional[ReputationData],
    commission: Optional[CommissionData],
) -> CoverageInput:
    """Derive coverage signals from the collaborator outputs."""
    has_program = commission is not None and commission.is_brand_program
    return CoverageInput(
        has_rating=bool(product.rating),
        has_reviews=(product.review_count or 0) > 0,
        review_count=product.review_count or 0,
        has_price=product.price is not None,
        has_brand=bool(product.brand),
        has_description=bool(product.description),
        has_trustpilot=reputation is not None and reputation.has_trustpilot,
        trustpilot_reviews=reputation.trustpilot_reviews if reputation else 0,
        has_reviews_io=reputation is not None and reputation.has_reviews_io,
        has_affiliate_program=has_program,
        program_confidence=commission.program_confidence if has_program else None,
        has_commission_data=commission is not None,
        has_cookie_data=commission is not None and commission.cookie_days is not None,
        has_return_policy=product.has_return_policy,
        has_shipping_info=product.has_shipping_info,
    )


# =============================================================================
# PILLAR COVERAGE
# =============================================================================

def _product_coverage(data: CoverageInput) -> Tuple[float, List[str]]:
    score = 0.0
    missing: List[str] = []

    if data.has_rating:
        score += PRODUCT_SIGNALS["has_rating"]
    else:
        missing.append("No product rating")

    if data.has_reviews:
        score += PRODUCT_SIGNALS["has_reviews"]
        if data.review_count >= 100:
            score += PRODUCT_SIGNALS["review_volume"]
        elif data.review_count >= 20:
            score += PRODUCT_SIGNALS["review_volume"] * 0.5
        elif data.review_count > 0:
            score += PRODUCT_SIGNALS["review_volume"] * 0.2
    else:
        missing.append("No customer reviews")

    if data.has_price:
        score += PRODUCT_SIGNALS["has_price"]
    else:
        missing.append("Price not detected")

    if data.has_brand:
        score += PRODUCT_SIGNALS["has_brand"]
    else:
        missing.append("Brand not identified")

    if data.has_description:
        score += PRODUCT_SIGNALS["has_description"]

    return min(1.0, score), missing


def _merchant_coverage(data: CoverageInput) -> Tuple[float, List[str]]:
    score = 0.0
    missing: List[str] = []

    if data.has_trustpilot:
        score += MERCHANT_SIGNALS["has_trustpilot"]
        if data.trustpilot_reviews >= 100:
            score += MERCHANT_SIGNALS["trustpilot_volume"]
        elif data.trustpilot_reviews >= 20:
            score += MERCHANT_SIGNALS["trustpilot_volume"] * 0.5
    else:
        missing.append(MISSING_NO_TRUSTPILOT)

    if data.has_reviews_io:
        score += MERCHANT_SIGNALS["has_reviews_io"]

    if data.has_return_policy:
        score += MERCHANT_SIGNALS["has_return_policy"]
    else:
        missing.append("Return policy unclear")

    if data.has_shipping_info:
        score += MERCHANT_SIGNALS["has_shipping_info"]
    else:
        missing.append("Shipping info unclear")

    return min(1.0, score), missing


def _economics_coverage(data: CoverageInput) -> Tuple[float, List[str]]:
    score = 0.0
    missing: List[str] = []

    if data.has_affiliate_program:
        score += ECONOMICS_SIGNALS["has_affiliate_program"]
        if data.program_confidence is not None:
            if data.program_confidence >= 4:
                score += ECONOMICS_SIGNALS["program_confidence"]
            elif data.program_confidence >= 3:
                score += ECONOMICS_SIGNALS["program_confidence"] * 0.5
    else:
        missing.append(MISSING_NO_PROGRAM)

    if data.has_commission_data:
        score += ECONOMICS_SIGNALS["has_commission_data"]
    else:
        missing.append("Commission rate estimated")

    if data.has_cookie_data:
        score += ECONOMICS_SIGNALS["has_cookie_data"]

    return min(1.0, score), missing


def _recommendation(missing: List[str], quality: DataQuality) -> str:
    if quality == DataQuality.HIGH:
        return "Strong data coverage. Recommendations are reliable."

    if quality == DataQuality.MEDIUM:
        if MISSING_NO_PROGRAM in missing:
            return "Using category benchmarks for economics. Verify commission rates before committing."
        if MISSING_NO_TRUSTPILOT in missing:
            return "Limited merchant trust data. Consider verifying merchant reputation."
        return "Moderate data coverage. Key signals present."

    if len(missing) >= 3:
        return "Limited data available. Test with small commitment first."
    return "Some key signals missing. Verify before full commitment."


def _round2(value: float) -> float:
    return round_half_up(value * 100) / 100
