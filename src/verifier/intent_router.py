"""
Intent Router

Decides which alternatives to show after a verdict, based on:
- Verdict and hard-stop flags
- Weakest pillar score
- Confidence and coverage

Outputs the rank mode consumed by the ranker and the bucket strategy
consumed by the bucketizer.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .helpers import (
    SUPPRESS_WINNER_COVERAGE,
    TRENDING_MIN_COVERAGE,
    VERY_WEAK_PILLAR_THRESHOLD,
    WEAK_PILLAR_THRESHOLD,
    AvoidCause,
    BucketStrategy,
    ConfidenceLevel,
    PillarName,
    PrimaryRoute,
    RankMode,
    VerdictStatus,
    enum_value,
)


# Lower-case substrings matched against hard-stop flags
MERCHANT_FLAG_HINTS = ["merchant_risk", "trust_score_critical", "compliance_risk"]
DEMAND_FLAG_HINTS = ["no_reviews", "thin_evidence"]
ECONOMICS_FLAG_HINTS = ["no_program", "commission_too_low"]

TEST_FIRST_BANNER = "Limited data available. Test before committing."

PILLAR_TO_MODE = {
    PillarName.PRODUCT_VIABILITY: RankMode.DEMAND_FIRST,
    PillarName.OFFER_MERCHANT: RankMode.TRUST_FIRST,
    PillarName.ECONOMICS: RankMode.ECONOMICS_FIRST,
}

PILLAR_TO_CAUSE = {
    PillarName.PRODUCT_VIABILITY: AvoidCause.DEMAND,
    PillarName.OFFER_MERCHANT: AvoidCause.MERCHANT,
    PillarName.ECONOMICS: AvoidCause.ECONOMICS,
}

AVOID_ROUTES = {
    AvoidCause.DEMAND: (RankMode.DEMAND_FIRST, "Weak demand signals - prioritizing higher-demand alternatives"),
    AvoidCause.MERCHANT: (RankMode.TRUST_FIRST, "Merchant risk detected - prioritizing trusted brands"),
    AvoidCause.ECONOMICS: (RankMode.ECONOMICS_FIRST, "Poor economics - prioritizing higher-margin programs"),
    AvoidCause.MULTIPLE: (RankMode.BALANCED, "Multiple concerns - balanced alternative search"),
}


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class PillarScores:
    product_viability: float
    offer_merchant: float
    economics: float


@dataclass
class PillarInfo:
    name: PillarName
    score: float


@dataclass
class RankWeights:
    product_viability: float
    offer_merchant: float
    economics: float
    trend: float
    coverage: float
    risk_penalty: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "product_viability": self.product_viability,
            "offer_merchant": self.offer_merchant,
            "economics": self.economics,
            "trend": self.trend,
            "coverage": self.coverage,
            "risk_penalty": self.risk_penalty,
        }


@dataclass
class IntentRouterInput:
    verdict: VerdictStatus
    scores: PillarScores
    confidence: ConfidenceLevel
    coverage: float
    hard_stop_flags: List[str] = field(default_factory=list)
    category: Optional[str] = None


@dataclass
class IntentRouterOutput:
    primary_route: PrimaryRoute
    rank_mode: RankMode
    bucket_strategy: BucketStrategy
    show_trending: bool
    suppress_winner: bool
    banner: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_route": self.primary_route.value,
            "rank_mode": self.rank_mode.value,
            "bucket_strategy": self.bucket_strategy.value,
            "show_trending": self.show_trending,
            "suppress_winner": self.suppress_winner,
            "banner": self.banner,
            "reason": self.reason,
        }


# =============================================================================
# ROUTER
# =============================================================================

def route_intent(data: IntentRouterInput) -> IntentRouterOutput:
    """
    Pick route, rank mode and bucket strategy for the alternatives view.

    Args:
        data: Verdict, flags, pillar scores, confidence and coverage

    Returns:
        IntentRouterOutput
    """
    weakest = find_weakest_pillar(data.scores)
    suppress_winner = False
    banner = None
    primary_route = PrimaryRoute.CATEGORY_ALTERNATIVES
    bucket_strategy = BucketStrategy.STANDARD

    if data.verdict == VerdictStatus.TEST_FIRST or data.confidence == ConfidenceLevel.LOW:
        primary_route = PrimaryRoute.TEST_FIRST
        suppress_winner = data.coverage < SUPPRESS_WINNER_COVERAGE
        banner = TEST_FIRST_BANNER
        reason = "Low confidence triggers test-first mode"
        rank_mode = get_rank_mode_from_weakest_pillar(weakest)
        bucket_strategy = BucketStrategy.CONSERVATIVE

    elif data.verdict == VerdictStatus.RED:
        cause = determine_avoid_cause(data.hard_stop_flags, weakest, data.scores)
        rank_mode, reason = AVOID_ROUTES[cause]

    elif data.verdict == VerdictStatus.YELLOW:
        rank_mode = get_rank_mode_from_weakest_pillar(weakest)
        reason = f"Caution on {weakest.name.value} - showing balanced alternatives"

    else:
        rank_mode = RankMode.BALANCED
        reason = "Product looks good - showing alternatives for comparison"

    show_trending = (
        data.coverage >= TRENDING_MIN_COVERAGE
        and data.confidence in (ConfidenceLevel.MED, ConfidenceLevel.HIGH)
        and data.verdict != VerdictStatus.RED
    )

    return IntentRouterOutput(
        primary_route=primary_route,
        rank_mode=rank_mode,
        bucket_strategy=bucket_strategy,
        show_trending=show_trending,
        suppress_winner=suppress_winner,
        banner=banner,
        reason=reason,
    )


def find_weakest_pillar(scores: PillarScores) -> PillarInfo:
    """Lowest pillar; ties go to the first in product -> merchant -> economics order."""
    pillars = [
        PillarInfo(PillarName.PRODUCT_VIABILITY, scores.product_viability),
        PillarInfo(PillarName.OFFER_MERCHANT, scores.offer_merchant),
        PillarInfo(PillarName.ECONOMICS, scores.economics),
    ]
    weakest = pillars[0]
    for pillar in pillars[1:]:
        if pillar.score < weakest.score:
            weakest = pillar
    return weakest


def get_rank_mode_from_weakest_pillar(weakest: PillarInfo) -> RankMode:
    if weakest.score >= WEAK_PILLAR_THRESHOLD:
        return RankMode.BALANCED
    return PILLAR_TO_MODE[weakest.name]


def determine_avoid_cause(
    hard_stop_flags: List[Any],
    weakest: PillarInfo,
    scores: PillarScores,
) -> AvoidCause:
    """
    Why a RED product should be avoided.

    Flag substrings are checked first (merchant, demand, economics),
    then a very weak pillar, then whether two or more pillars are weak.
    """
    flags = [str(enum_value(f)).lower() for f in hard_stop_flags]

    def has_any(hints: List[str]) -> bool:
        return any(hint in flag for flag in flags for hint in hints)

    if has_any(MERCHANT_FLAG_HINTS):
        return AvoidCause.MERCHANT
    if has_any(DEMAND_FLAG_HINTS):
        return AvoidCause.DEMAND
    if has_any(ECONOMICS_FLAG_HINTS):
        return AvoidCause.ECONOMICS

    if weakest.score < VERY_WEAK_PILLAR_THRESHOLD:
        return PILLAR_TO_CAUSE[weakest.name]

    weak_count = sum(
        1 for score in (scores.product_viability, scores.offer_merchant, scores.economics)
        if score < WEAK_PILLAR_THRESHOLD
    )
    return AvoidCause.MULTIPLE if weak_count >= 2 else AvoidCause.DEMAND


# =============================================================================
# RANK WEIGHTS
# =============================================================================

RANK_WEIGHTS: Dict[RankMode, RankWeights] = {
    RankMode.DEMAND_FIRST: RankWeights(0.55, 0.25, 0.20, 0.10, 0.05, 0.15),
    RankMode.TRUST_FIRST: RankWeights(0.25, 0.55, 0.20, 0.05, 0.05, 0.20),
    RankMode.ECONOMICS_FIRST: RankWeights(0.30, 0.20, 0.50, 0.05, 0.05, 0.10),
    RankMode.BALANCED: RankWeights(0.35, 0.35, 0.30, 0.05, 0.05, 0.15),
}


def get_weights_for_mode(mode: RankMode) -> RankWeights:
    """Ranker weights for a mode (a fresh copy); unknown modes get the balanced vector."""
    try:
        weights = RANK_WEIGHTS[RankMode(mode)]
    except ValueError:
        weights = RANK_WEIGHTS[RankMode.BALANCED]
    return replace(weights)
