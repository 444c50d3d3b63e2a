"""
Verdict Engine

Turns pillar scores, evidence confidence and hard-stop checks into:
- Verdict: GREEN / YELLOW / RED / TEST_FIRST
- Primary action: APPROVE / ALT_BRAND / ALT_PRODUCT / TEST_FIRST
- Top 3 pros, top 3 risks and key assumptions (deterministic selection)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .evidence import EvidenceSummary
from .helpers import (
    MERCHANT_EXTREME_RATING,
    VERDICT_GREEN_FLOOR,
    VERDICT_RED_FLOOR,
    VERDICT_YELLOW_AVERAGE,
    ConfidenceLevel,
    HardStopFlag,
    PrimaryAction,
    VerdictStatus,
)
from .models import CommissionData, ReputationData, ScrapedProductData
from .scoring import ScoreResult

logger = logging.getLogger(__name__)

MAX_ITEMS = 3

BANNED_CLAIMS = [
    "miracle cure", "guaranteed weight loss", "fda approved",
    "cures cancer", "instant results guaranteed", "100% cure",
]

# Any of these forces RED regardless of scores
RED_FLAGS = {
    HardStopFlag.MERCHANT_RISK_EXTREME,
    HardStopFlag.COMPLIANCE_RISK_HIGH,
    HardStopFlag.PRODUCT_PAGE_NOT_FOUND,
}


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class VerdictInput:
    scores: ScoreResult
    confidence: EvidenceSummary
    product: ScrapedProductData
    reputation: Optional[ReputationData] = None
    commission: Optional[CommissionData] = None


@dataclass
class VerdictResult:
    status: VerdictStatus
    primary_action: PrimaryAction
    hard_stop_flags: List[HardStopFlag] = field(default_factory=list)
    top_pros: List[str] = field(default_factory=list)
    top_risks: List[str] = field(default_factory=list)
    key_assumptions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "primary_action": self.primary_action.value,
            "hard_stop_flags": [f.value for f in self.hard_stop_flags],
            "top_pros": list(self.top_pros),
            "top_risks": list(self.top_risks),
            "key_assumptions": list(self.key_assumptions),
        }


# =============================================================================
# HARD STOPS
# =============================================================================

def _merchant_risk_extreme(data: VerdictInput) -> bool:
    rating = data.reputation.overall_rating if data.reputation else None
    return rating is not None and rating < MERCHANT_EXTREME_RATING


def _compliance_risk_high(data: VerdictInput) -> bool:
    text = " ".join(list(data.product.claims) + [data.product.description or ""]).lower()
    return any(claim in text for claim in BANNED_CLAIMS)


def _evidence_too_thin(data: VerdictInput) -> bool:
    return (
        data.confidence.confidence == ConfidenceLevel.LOW
        and data.confidence.total_data_points <= 2
    )


def _product_page_not_found(data: VerdictInput) -> bool:
    has_price = data.product.price is not None and bool(data.product.price.amount)
    return not data.product.title and not has_price


def _out_of_stock(data: VerdictInput) -> bool:
    return data.product.availability == "out_of_stock"


HARD_STOP_CHECKS: List[Tuple[HardStopFlag, Callable[[VerdictInput], bool]]] = [
    (HardStopFlag.MERCHANT_RISK_EXTREME, _merchant_risk_extreme),
    (HardStopFlag.COMPLIANCE_RISK_HIGH, _compliance_risk_high),
    (HardStopFlag.EVIDENCE_TOO_THIN, _evidence_too_thin),
    (HardStopFlag.PRODUCT_PAGE_NOT_FOUND, _product_page_not_found),
    (HardStopFlag.OUT_OF_STOCK, _out_of_stock),
]


def detect_hard_stops(data: VerdictInput) -> List[HardStopFlag]:
    """Run every hard-stop check in order; flags may coexist."""
    return [flag for flag, check in HARD_STOP_CHECKS if check(data)]


# =============================================================================
# VERDICT
# =============================================================================

def compute_verdict(data: VerdictInput) -> VerdictResult:
    """
    Compute the verdict for a product analysis.

    Args:
        data: Scores, evidence summary and the collaborator records

    Returns:
        VerdictResult with status, action, flags and at most 3 items per list
    """
    flags = detect_hard_stops(data)
    status = determine_status(data.scores, data.confidence.confidence, flags)
    action = determine_primary_action(status, data.scores, flags)

    result = VerdictResult(
        status=status,
        primary_action=action,
        hard_stop_flags=flags,
        top_pros=_generate_pros(data)[:MAX_ITEMS],
        top_risks=_generate_risks(data, flags)[:MAX_ITEMS],
        key_assumptions=_generate_assumptions(data)[:MAX_ITEMS],
    )
    logger.info(
        f"Verdict {status.value} / {action.value} "
        f"(flags: {[f.value for f in flags] or 'none'})"
    )
    return result


def determine_status(
    scores: ScoreResult,
    confidence: ConfidenceLevel,
    flags: List[HardStopFlag],
) -> VerdictStatus:
    if any(f in RED_FLAGS for f in flags):
        return VerdictStatus.RED

    if confidence == ConfidenceLevel.LOW:
        return VerdictStatus.TEST_FIRST

    pv = scores.product_viability
    om = scores.offer_merchant
    ec = scores.economics_feasibility

    if min(pv, om, ec) < VERDICT_RED_FLOOR:
        return VerdictStatus.RED
    if HardStopFlag.OUT_OF_STOCK in flags:
        return VerdictStatus.YELLOW
    if pv >= VERDICT_GREEN_FLOOR and om >= VERDICT_GREEN_FLOOR and ec >= VERDICT_GREEN_FLOOR:
        return VerdictStatus.GREEN
    if (pv + om + ec) / 3 >= VERDICT_YELLOW_AVERAGE:
        return VerdictStatus.YELLOW
    return VerdictStatus.RED


def determine_primary_action(
    status: VerdictStatus,
    scores: ScoreResult,
    flags: List[HardStopFlag],
) -> PrimaryAction:
    if status == VerdictStatus.TEST_FIRST:
        return PrimaryAction.TEST_FIRST
    if status == VerdictStatus.GREEN:
        return PrimaryAction.APPROVE

    pv = scores.product_viability
    om = scores.offer_merchant
    ec = scores.economics_feasibility
    lowest = min(pv, om, ec)

    # Merchant or economics weakness: switch brand. Product weakness: switch product.
    if lowest == om or HardStopFlag.MERCHANT_RISK_EXTREME in flags:
        return PrimaryAction.ALT_BRAND
    if lowest == ec:
        return PrimaryAction.ALT_BRAND
    return PrimaryAction.ALT_PRODUCT


# =============================================================================
# PROS / RISKS / ASSUMPTIONS
# =============================================================================

def _generate_pros(data: VerdictInput) -> List[str]:
    pros: List[Tuple[str, int]] = []
    product = data.product
    commission = data.commission
    pv = data.scores.breakdowns["product_viability"]
    om = data.scores.breakdowns["offer_merchant"]
    ec = data.scores.breakdowns["economics"]

    if pv["demand_signals"] >= 18:
        count = product.review_count or 0
        pros.append((f"High demand: {count:,} reviews indicate strong market interest", pv["demand_signals"]))
    if pv["review_sentiment"] >= 20:
        pros.append((
            f"Excellent reviews: {_num(product.rating)}/5 star rating shows high customer satisfaction",
            pv["review_sentiment"],
        ))
    if pv["pricing_competitiveness"] >= 18:
        pros.append((
            "Competitively priced within category, easier sell for your audience",
            pv["pricing_competitiveness"],
        ))

    if om["merchant_trust"] >= 24:
        rating = data.reputation.overall_rating if data.reputation else None
        suffix = f" ({_num(rating)}/5 reputation)" if rating else ""
        pros.append((f"Trusted merchant{suffix}: low risk of customer complaints", om["merchant_trust"]))
    if om["brand_risk"] >= 18:
        pros.append((
            f"{product.brand or 'This brand'} is well-known, increasing conversion confidence",
            om["brand_risk"],
        ))

    if ec["commission_component"] >= 28:
        rate = _rate_range(commission) if commission else "above average"
        pros.append((f"Strong commission rate ({rate}), better than category average", ec["commission_component"]))
    if ec["aov_component"] >= 14:
        pros.append(("High average order value increases your earnings per conversion", ec["aov_component"]))
    if commission and commission.cookie_days >= 30:
        pros.append((f"{commission.cookie_days}-day cookie window gives more time for conversions", 15))

    return [text for text, _ in sorted(pros, key=lambda p: -p[1])]


def _generate_risks(data: VerdictInput, flags: List[HardStopFlag]) -> List[str]:
    risks: List[Tuple[str, int]] = []
    product = data.product
    commission = data.commission
    pv = data.scores.breakdowns["product_viability"]
    om = data.scores.breakdowns["offer_merchant"]
    ec = data.scores.breakdowns["economics"]

    if HardStopFlag.MERCHANT_RISK_EXTREME in flags:
        risks.append(("Merchant has extremely low trust rating: high risk of customer issues and refunds", 100))
    if HardStopFlag.COMPLIANCE_RISK_HIGH in flags:
        risks.append(("Product page contains potentially problematic claims (compliance risk)", 95))
    if HardStopFlag.OUT_OF_STOCK in flags:
        risks.append(("Product is currently out of stock, so traffic will not convert", 90))
    if HardStopFlag.EVIDENCE_TOO_THIN in flags:
        risks.append(("Very limited data available, analysis may not be reliable", 85))

    if pv["demand_signals"] <= 8:
        risks.append(("Low demand signals: few reviews suggest limited market interest", 70))
    if pv["review_sentiment"] <= 10:
        suffix = f" ({_num(product.rating)}/5)" if product.rating else ""
        risks.append((f"Below-average reviews{suffix} may hurt conversion rates", 65))
    if om["merchant_trust"] <= 12:
        rating = data.reputation.overall_rating if data.reputation else None
        suffix = f" ({_num(rating)}/5 reputation)" if rating else ""
        risks.append((f"Merchant trust concerns{suffix}: may increase refund rate", 60))
    if om["shipping_returns"] <= 8:
        risks.append(("Shipping or return policy concerns detected, may affect customer satisfaction", 55))
    if ec["commission_component"] <= 12:
        rate = _rate_range(commission) if commission else "below average"
        risks.append((f"Low commission rate ({rate}), consider alternative programs", 50))
    if commission and commission.cookie_days <= 7:
        risks.append((f"Short cookie window ({commission.cookie_days} days), conversions may be lost", 45))
    if ec["refund_adjustment"] <= 5:
        risks.append(("High estimated refund rate in this category may reduce actual earnings", 40))
    if not product.brand:
        risks.append(("Brand not identified: unknown brands carry higher conversion risk", 35))
    if commission and commission.requires_application:
        risks.append((f"Program requires application ({commission.network}), approval not guaranteed", 20))

    return [text for text, _ in sorted(risks, key=lambda r: -r[1])]


def _generate_assumptions(data: VerdictInput) -> List[str]:
    assumptions: List[str] = []
    product = data.product

    if data.commission is None or not data.commission.is_brand_program:
        assumptions.append("Commission rates based on category averages, actual rates may vary")
    if not product.review_count:
        assumptions.append("No on-page review data found, demand assessment may be less reliable")
    if data.confidence.confidence != ConfidenceLevel.HIGH:
        assumptions.append("Limited data sources available, scores may change with more data")
    if product.price is None or not product.price.amount:
        assumptions.append("Price not detected, economics estimate uses category average")

    assumptions.append("Earning estimates assume 500-2,000 monthly clicks, adjust based on your actual traffic")
    return assumptions


def _rate_range(commission: CommissionData) -> str:
    return f"{_num(commission.rate_low)}-{_num(commission.rate_high)}%"


def _num(value: Optional[float]) -> str:
    """Render 4.0 as '4' and 4.5 as '4.5'."""
    if value is None:
        return "None"
    if float(value).is_integer():
        return str(int(value))
    return str(value)
