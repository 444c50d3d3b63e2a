"""
Bucketizer

Splits ranked alternatives (minus the winner) into decision-ready buckets:
- safe: trusted brands with proven track records
- upside: better margins or AOV, moderate risk
- budget: lower price point, high conversion potential
- trending: rising popularity in this category

Pass 1 places items by their ranker bucket hint, pass 2 tops up each
bucket from the remaining items using bucket-specific checks.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .helpers import BUCKET_ORDER, BucketKey, BucketStrategy
from .ranker import RankedAlternative

logger = logging.getLogger(__name__)

BUCKET_DEFS: Dict[BucketKey, Dict[str, str]] = {
    BucketKey.SAFE: {
        "title": "Safe pick",
        "description": "Trusted brands with proven track records",
    },
    BucketKey.UPSIDE: {
        "title": "Higher upside",
        "description": "Better margins or AOV, moderate risk",
    },
    BucketKey.BUDGET: {
        "title": "Budget-friendly",
        "description": "Lower price point, high conversion potential",
    },
    BucketKey.TRENDING: {
        "title": "Trending now",
        "description": "Rising popularity in this category",
    },
}

CONSERVATIVE_LIMIT = 2


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class BucketizerConfig:
    items_per_bucket: int = 3
    show_trending: bool = True
    bucket_strategy: BucketStrategy = BucketStrategy.STANDARD


@dataclass
class Bucket:
    key: BucketKey
    title: str
    description: str
    items: List[RankedAlternative] = field(default_factory=list)
    eligible: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key.value,
            "title": self.title,
            "description": self.description,
            "items": [i.to_dict() for i in self.items],
            "eligible": self.eligible,
        }


@dataclass
class BucketizerOutput:
    winner: Optional[RankedAlternative]
    buckets: List[Bucket] = field(default_factory=list)
    total_candidates: int = 0
    overflow: List[RankedAlternative] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner.to_dict() if self.winner else None,
            "buckets": [b.to_dict() for b in self.buckets],
            "total_candidates": self.total_candidates,
            "overflow": [o.to_dict() for o in self.overflow],
        }


# =============================================================================
# BUCKET CHECKS
# =============================================================================

def is_safe_candidate(item: RankedAlternative) -> bool:
    return (
        item.offer_merchant >= 65
        and item.risk_score < 0.35
        and item.product_viability >= 55
        and not item.hard_stop_flags
    )


def is_upside_candidate(item: RankedAlternative) -> bool:
    high_aov = item.avg_order_value is not None and item.avg_order_value >= 80
    return (item.economics >= 70 or high_aov) and item.risk_score < 0.5


def is_budget_candidate(item: RankedAlternative) -> bool:
    low_refund_risk = item.refund_rate is None or item.refund_rate < 0.10
    return "Budget-friendly" in item.tags or (
        item.product_viability >= 50 and low_refund_risk and item.economics >= 50
    )


def is_trending_candidate(item: RankedAlternative) -> bool:
    return (
        item.trend_eligible
        and item.trend_score is not None
        and item.trend_score >= 0.5
        and item.coverage >= 0.5
    )


BUCKET_CHECKS: Dict[BucketKey, Callable[[RankedAlternative], bool]] = {
    BucketKey.SAFE: is_safe_candidate,
    BucketKey.UPSIDE: is_upside_candidate,
    BucketKey.BUDGET: is_budget_candidate,
    BucketKey.TRENDING: is_trending_candidate,
}


# =============================================================================
# BUCKETIZE
# =============================================================================

def bucketize(
    ranked: List[RankedAlternative],
    winner: Optional[RankedAlternative],
    config: Optional[BucketizerConfig] = None,
) -> BucketizerOutput:
    """
    Partition ranked alternatives into named buckets.

    Args:
        ranked: Ranker output, best first
        winner: Selected winner, excluded from every bucket by id
        config: Bucket size, trending visibility and strategy

    Returns:
        BucketizerOutput with only non-empty buckets in safe, upside,
        budget, trending order, plus the unassigned overflow
    """
    cfg = config or BucketizerConfig()
    limit = cfg.items_per_bucket

    pool = [r for r in ranked if winner is None or r.id != winner.id]
    active = [k for k in BUCKET_ORDER if k != BucketKey.TRENDING or cfg.show_trending]
    buckets: Dict[BucketKey, List[RankedAlternative]] = {k: [] for k in BUCKET_ORDER}
    assigned = set()

    # Pass 1: ranker hints. Flagged items never go to safe.
    for item in pool:
        hint = item.bucket_hint
        if hint is None or hint not in active:
            continue
        if hint == BucketKey.SAFE and item.hard_stop_flags:
            continue
        if len(buckets[hint]) < limit:
            buckets[hint].append(item)
            assigned.add(item.id)

    # Pass 2: top up by bucket checks, best rank first
    for key in active:
        _fill_bucket(buckets[key], pool, assigned, limit, BUCKET_CHECKS[key])

    if BucketStrategy(cfg.bucket_strategy) == BucketStrategy.CONSERVATIVE:
        for key in (BucketKey.UPSIDE, BucketKey.BUDGET):
            for dropped in buckets[key][CONSERVATIVE_LIMIT:]:
                assigned.discard(dropped.id)
            buckets[key] = buckets[key][:CONSERVATIVE_LIMIT]

    output = [
        Bucket(key=key, items=buckets[key], eligible=True, **BUCKET_DEFS[key])
        for key in active
        if buckets[key]
    ]
    overflow = [item for item in pool if item.id not in assigned]

    logger.debug(
        f"Bucketized {len(pool)} alternatives into "
        f"{[(b.key.value, len(b.items)) for b in output]}, overflow={len(overflow)}"
    )

    return BucketizerOutput(
        winner=winner,
        buckets=output,
        total_candidates=len(ranked),
        overflow=overflow,
    )


def _fill_bucket(
    bucket: List[RankedAlternative],
    pool: List[RankedAlternative],
    assigned: set,
    limit: int,
    check: Callable[[RankedAlternative], bool],
) -> None:
    if len(bucket) >= limit:
        return
    eligible = sorted(
        (c for c in pool if c.id not in assigned and check(c)),
        key=lambda c: -c.rank_score,
    )
    for item in eligible:
        if len(bucket) >= limit:
            break
        bucket.append(item)
        assigned.add(item.id)


# =============================================================================
# UI HELPERS
# =============================================================================

def get_buckets_summary(output: BucketizerOutput) -> Dict[str, Any]:
    return {
        "has_winner": output.winner is not None,
        "bucket_count": len(output.buckets),
        "total_shortlist": sum(len(b.items) for b in output.buckets),
        "bucket_keys": [b.key.value for b in output.buckets],
    }


def create_empty_bucketizer_output() -> BucketizerOutput:
    """Empty result used when no alternatives could be loaded."""
    return BucketizerOutput(winner=None, buckets=[], total_candidates=0, overflow=[])
