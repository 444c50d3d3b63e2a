"""
Alternatives Ranker

Ranks alternative candidates with the weights of a rank mode:

    rank_score = 100 * (w_pv*pv/100 + w_om*om/100 + w_ec*ec/100
                        + w_trend*trend + w_cov*coverage - w_risk*risk)

clamped to 0-100. Each ranked alternative also gets up to 4 compact tags,
a winner-eligibility flag and a bucket hint. Candidates are never mutated;
ranking produces new RankedAlternative records.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .helpers import (
    WINNER_MIN_COVERAGE,
    WINNER_MIN_ECONOMICS,
    WINNER_MIN_OFFER_MERCHANT,
    WINNER_MIN_PRODUCT_VIABILITY,
    BucketKey,
    ConfidenceLevel,
    RankMode,
    clamp,
    enum_value,
    round_half_up,
)
from .intent_router import RankWeights, get_weights_for_mode
from .models import CategoryStats

logger = logging.getLogger(__name__)

MAX_TAGS = 4

# Tag thresholds
TRUSTED_MERCHANT_OM = 75
STRONG_DEMAND_PV = 75
HIGH_MARGIN_EC = 80
HIGH_AOV = 100
LOW_AOV = 30
LONG_COOKIE_DAYS = 60
SHORT_COOKIE_DAYS = 14
LOW_PROOF_COVERAGE = 0.4
REFUND_RISK_RATE = 0.10
TRENDING_SCORE = 0.6
BUDGET_PERCENTILE = 0.25
PREMIUM_PERCENTILE = 0.75

# Bucket hint thresholds
SAFE_HINT_OM = 70
SAFE_HINT_RISK = 0.3
SAFE_HINT_PV = 60
UPSIDE_HINT_EC = 75
UPSIDE_HINT_RISK = 0.5
BUDGET_HINT_PERCENTILE = 0.35
BUDGET_HINT_PV = 50


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class RankerCandidate:
    """One alternative product/program with its scores, economics and risk."""
    id: str
    title: str = ""
    brand: str = ""
    category: str = ""
    merchant: str = ""
    network: str = ""

    # Pillar scores (0-100)
    product_viability: float = 0
    offer_merchant: float = 0
    economics: float = 0

    # Economics
    commission_rate_low: float = 0
    commission_rate_high: float = 0
    cookie_days: int = 30
    avg_conversion_rate: Optional[float] = None
    avg_order_value: Optional[float] = None
    refund_rate: Optional[float] = None

    # Coverage & confidence
    coverage: float = 0.0
    confidence: ConfidenceLevel = ConfidenceLevel.LOW

    # Risk
    hard_stop_flags: List[str] = field(default_factory=list)
    risk_score: float = 0.0  # 0-1, higher is riskier

    # Trend
    trend_score: Optional[float] = None
    trend_eligible: bool = False

    # Price
    price_low: Optional[float] = None
    price_high: Optional[float] = None
    currency: str = "EUR"

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: enum_value(getattr(self, f.name)) for f in fields(self)}
        data["hard_stop_flags"] = list(self.hard_stop_flags)
        if "tags" in data:
            data["tags"] = list(data["tags"])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Build from a stored JSON record, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        if "confidence" in kwargs:
            kwargs["confidence"] = ConfidenceLevel(kwargs["confidence"])
        if kwargs.get("bucket_hint") is not None:
            kwargs["bucket_hint"] = BucketKey(kwargs["bucket_hint"])
        return cls(**kwargs)


def candidate_fields(candidate: RankerCandidate) -> Dict[str, Any]:
    """Candidate field values, with the flag list copied rather than shared."""
    values = {f.name: getattr(candidate, f.name) for f in fields(RankerCandidate)}
    values["hard_stop_flags"] = list(candidate.hard_stop_flags)
    return values


@dataclass
class RankedAlternative(RankerCandidate):
    rank_score: int = 0
    tags: List[str] = field(default_factory=list)
    winner_eligible: bool = False
    bucket_hint: Optional[BucketKey] = None

    def to_candidate(self) -> RankerCandidate:
        """Drop the ranking fields."""
        return RankerCandidate(**candidate_fields(self))


@dataclass
class RankerOutput:
    ranked: List[RankedAlternative]
    winner: Optional[RankedAlternative]
    mode: RankMode

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ranked": [r.to_dict() for r in self.ranked],
            "winner": self.winner.to_dict() if self.winner else None,
            "mode": self.mode.value,
        }


# =============================================================================
# RANKING
# =============================================================================

def rank_alternatives(
    candidates: List[RankerCandidate],
    mode: RankMode,
    category_stats: Optional[CategoryStats] = None,
) -> RankerOutput:
    """
    Score, tag and sort candidates for a rank mode.

    Args:
        candidates: Alternatives to rank (not modified)
        mode: Rank mode selecting the weight vector
        category_stats: Price distribution for budget/premium tags

    Returns:
        RankerOutput with ranked list (stable, descending), winner and mode
    """
    weights = get_weights_for_mode(mode)

    scored = [
        RankedAlternative(
            **candidate_fields(c),
            rank_score=calculate_rank_score(c, weights),
            tags=generate_tags(c, category_stats),
            winner_eligible=is_winner_eligible(c),
            bucket_hint=determine_bucket_hint(c, category_stats),
        )
        for c in candidates
    ]

    ranked = sorted(scored, key=lambda r: -r.rank_score)
    winner = next((r for r in ranked if r.winner_eligible), None)

    logger.debug(
        f"Ranked {len(ranked)} candidates in {RankMode(mode).value} mode, "
        f"winner={winner.id if winner else None}"
    )
    return RankerOutput(ranked=ranked, winner=winner, mode=RankMode(mode))


def rerank_with_mode(
    previous_ranked: List[RankedAlternative],
    new_mode: RankMode,
    category_stats: Optional[CategoryStats] = None,
) -> RankerOutput:
    """Re-rank a previous result under another mode."""
    candidates = [r.to_candidate() for r in previous_ranked]
    return rank_alternatives(candidates, new_mode, category_stats)


def calculate_rank_score(candidate: RankerCandidate, weights: RankWeights) -> int:
    score = (
        weights.product_viability * candidate.product_viability / 100
        + weights.offer_merchant * candidate.offer_merchant / 100
        + weights.economics * candidate.economics / 100
        + weights.trend * (candidate.trend_score or 0)
        + weights.coverage * candidate.coverage
        - weights.risk_penalty * candidate.risk_score
    )
    return round_half_up(clamp(score * 100, 0, 100))


def is_winner_eligible(candidate: RankerCandidate) -> bool:
    if candidate.hard_stop_flags:
        return False
    if candidate.coverage < WINNER_MIN_COVERAGE:
        return False
    return (
        candidate.product_viability >= WINNER_MIN_PRODUCT_VIABILITY
        and candidate.offer_merchant >= WINNER_MIN_OFFER_MERCHANT
        and candidate.economics >= WINNER_MIN_ECONOMICS
    )


# =============================================================================
# TAGS & BUCKET HINTS
# =============================================================================

def generate_tags(
    candidate: RankerCandidate,
    category_stats: Optional[CategoryStats] = None,
) -> List[str]:
    """Qualitative labels in fixed check order, first 4 kept."""
    tags: List[str] = []
    aov = candidate.avg_order_value

    if candidate.offer_merchant >= TRUSTED_MERCHANT_OM:
        tags.append("Trusted merchant")
    if candidate.product_viability >= STRONG_DEMAND_PV:
        tags.append("Strong demand")
    if candidate.economics >= HIGH_MARGIN_EC:
        tags.append("High margin")

    if aov is not None and aov >= HIGH_AOV:
        tags.append("High AOV")
    elif aov is not None and aov <= LOW_AOV:
        tags.append("Low AOV")

    if candidate.cookie_days >= LONG_COOKIE_DAYS:
        tags.append("Long cookie")
    elif candidate.cookie_days <= SHORT_COOKIE_DAYS:
        tags.append("Short cookie")

    if enum_value(candidate.confidence) == ConfidenceLevel.HIGH.value:
        tags.append("Program verified")
    if candidate.coverage < LOW_PROOF_COVERAGE:
        tags.append("Low proof")
    if candidate.refund_rate is not None and candidate.refund_rate >= REFUND_RISK_RATE:
        tags.append("Refund risk")
    if _is_trending(candidate):
        tags.append("Trending")

    if category_stats and candidate.price_low is not None:
        pct = calculate_price_percentile(candidate.price_low, category_stats)
        if pct <= BUDGET_PERCENTILE:
            tags.append("Budget-friendly")
        elif pct >= PREMIUM_PERCENTILE:
            tags.append("Premium")

    return tags[:MAX_TAGS]


def determine_bucket_hint(
    candidate: RankerCandidate,
    category_stats: Optional[CategoryStats] = None,
) -> Optional[BucketKey]:
    """First match of trending -> safe -> upside -> budget, else None."""
    if _is_trending(candidate):
        return BucketKey.TRENDING

    if (
        candidate.offer_merchant >= SAFE_HINT_OM
        and candidate.risk_score < SAFE_HINT_RISK
        and candidate.product_viability >= SAFE_HINT_PV
    ):
        return BucketKey.SAFE

    high_aov = candidate.avg_order_value is not None and candidate.avg_order_value >= HIGH_AOV
    if (candidate.economics >= UPSIDE_HINT_EC or high_aov) and candidate.risk_score < UPSIDE_HINT_RISK:
        return BucketKey.UPSIDE

    if category_stats and candidate.price_low is not None:
        pct = calculate_price_percentile(candidate.price_low, category_stats)
        if (
            pct <= BUDGET_HINT_PERCENTILE
            and candidate.product_viability >= BUDGET_HINT_PV
            and candidate.refund_rate is not None
            and candidate.refund_rate < REFUND_RISK_RATE
        ):
            return BucketKey.BUDGET

    return None


def calculate_price_percentile(price: float, stats: CategoryStats) -> float:
    """
    Approximate percentile of a price within its category.

    Clamped to 0.25 below p25 and 0.75 above p75, linear in between.
    """
    if price <= stats.price_p25:
        return 0.25
    if price >= stats.price_p75:
        return 0.75
    spread = stats.price_p75 - stats.price_p25
    return 0.25 + ((price - stats.price_p25) / spread) * 0.5


def _is_trending(candidate: RankerCandidate) -> bool:
    return bool(
        candidate.trend_eligible
        and candidate.trend_score is not None
        and candidate.trend_score >= TRENDING_SCORE
    )
