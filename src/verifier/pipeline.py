"""
Verifier Pipeline

Runs every deterministic stage for one analysed product:

    scores -> evidence -> verdict -> earning band -> coverage
           -> intent routing -> ranking -> bucketing

Pure: all lookups (scrape, reputation, programs) happen before this is
called, so the whole decision can be reproduced from its inputs.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .bucketizer import BucketizerConfig, BucketizerOutput, bucketize
from .coverage import CoverageResult, build_coverage_input, calculate_coverage
from .evidence import (
    AffiliateDbEvidence,
    EvidenceCollector,
    EvidenceSummary,
    ProductPageEvidence,
    ReputationEvidence,
)
from .intent_router import IntentRouterInput, IntentRouterOutput, PillarScores, route_intent
from .models import (
    CategoryBenchmarks,
    CategoryStats,
    CommissionData,
    ReputationData,
    ScrapedProductData,
)
from .ranker import RankerCandidate, RankerOutput, rank_alternatives
from .scoring import EarningBand, ScoreResult, ScoringInput, compute_earning_band, compute_scores
from .url_normalizer import NormalizedUrl
from .verdict import VerdictInput, VerdictResult, compute_verdict

logger = logging.getLogger(__name__)


@dataclass
class PipelineInput:
    normalized: NormalizedUrl
    product: ScrapedProductData
    category: str
    benchmarks: CategoryBenchmarks
    reputation: Optional[ReputationData] = None
    commission: Optional[CommissionData] = None
    candidates: List[RankerCandidate] = field(default_factory=list)
    category_stats: Optional[CategoryStats] = None
    user_categories: List[str] = field(default_factory=list)
    items_per_bucket: int = 3


@dataclass
class VerifierReport:
    """Everything the pipeline decided, plus the JSON views of it."""
    normalized: NormalizedUrl
    product: ScrapedProductData
    category: str
    scores: ScoreResult
    evidence: EvidenceSummary
    verdict: VerdictResult
    earning_band: EarningBand
    economics: Dict[str, Any]
    coverage: CoverageResult
    routing: IntentRouterOutput
    ranking: RankerOutput
    buckets: BucketizerOutput

    @property
    def winner(self):
        return self.buckets.winner

    def snapshot(self) -> Dict[str, Any]:
        product = self.product
        region_availability = product.region_availability or (
            [self.normalized.region] if self.normalized.region else []
        )
        return {
            "product": {
                "title": product.title,
                "brand": product.brand,
                "category": self.category,
                "merchant": self.normalized.merchant,
                "price": asdict(product.price) if product.price else None,
                "region_availability": region_availability,
            },
            "scores": {
                "product_viability": self.scores.product_viability,
                "offer_merchant": self.scores.offer_merchant,
                "economics": self.scores.economics_feasibility,
            },
            "score_breakdowns": self.scores.breakdowns,
            "confidence": {
                "level": self.evidence.confidence.value,
                "evidence": self.evidence.to_dict(),
            },
            "verdict": {
                "status": self.verdict.status.value,
                "primary_action": self.verdict.primary_action.value,
                "hard_stop_flags": [f.value for f in self.verdict.hard_stop_flags],
            },
            "insights": {
                "top_pros": list(self.verdict.top_pros),
                "top_risks": list(self.verdict.top_risks),
                "key_assumptions": list(self.verdict.key_assumptions),
            },
            "economics": self.economics,
            "coverage": self.coverage.to_dict(),
        }

    def recommendations(self) -> Dict[str, Any]:
        return {
            "mode": self.routing.rank_mode.value,
            "routing": self.routing.to_dict(),
            "winner": self.buckets.winner.to_dict() if self.buckets.winner else None,
            "buckets": [b.to_dict() for b in self.buckets.buckets],
            "total_candidates": self.buckets.total_candidates,
            "can_rerank": len(self.ranking.ranked) > 1,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot(),
            "recommendations": self.recommendations(),
        }


# =============================================================================
# PIPELINE
# =============================================================================

def run_verifier_pipeline(data: PipelineInput) -> VerifierReport:
    """
    Score, judge and find alternatives for one product.

    Args:
        data: Normalized URL, scraped product and the looked-up context

    Returns:
        VerifierReport
    """
    product = data.product
    reputation = data.reputation
    commission = data.commission

    scores = compute_scores(ScoringInput(
        product=product,
        reputation=reputation,
        commission=commission,
        category_benchmarks=data.benchmarks,
        user_categories=data.user_categories,
    ))

    evidence = collect_evidence(data.normalized, product, reputation, commission)

    verdict = compute_verdict(VerdictInput(
        scores=scores,
        confidence=evidence,
        product=product,
        reputation=reputation,
        commission=commission,
    ))

    earning_band = compute_earning_band(product, commission, data.benchmarks)
    economics = build_economics(commission, data.benchmarks, earning_band)
    coverage = calculate_coverage(build_coverage_input(product, reputation, commission))

    routing = route_intent(IntentRouterInput(
        verdict=verdict.status,
        hard_stop_flags=[f.value for f in verdict.hard_stop_flags],
        scores=PillarScores(
            product_viability=scores.product_viability,
            offer_merchant=scores.offer_merchant,
            economics=scores.economics_feasibility,
        ),
        confidence=evidence.confidence,
        coverage=coverage.overall_score,
        category=data.category,
    ))

    ranking = rank_alternatives(data.candidates, routing.rank_mode, data.category_stats)
    winner = None if routing.suppress_winner else ranking.winner
    buckets = bucketize(ranking.ranked, winner, BucketizerConfig(
        items_per_bucket=data.items_per_bucket,
        show_trending=routing.show_trending,
        bucket_strategy=routing.bucket_strategy,
    ))

    logger.info(
        f"Pipeline for {data.normalized.normalized}: {verdict.status.value}, "
        f"coverage={coverage.overall_score}, mode={routing.rank_mode.value}, "
        f"{len(ranking.ranked)} alternatives"
    )

    return VerifierReport(
        normalized=data.normalized,
        product=product,
        category=data.category,
        scores=scores,
        evidence=evidence,
        verdict=verdict,
        earning_band=earning_band,
        economics=economics,
        coverage=coverage,
        routing=routing,
        ranking=ranking,
        buckets=buckets,
    )


def collect_evidence(
    normalized: NormalizedUrl,
    product: ScrapedProductData,
    reputation: Optional[ReputationData],
    commission: Optional[CommissionData],
) -> EvidenceSummary:
    collector = EvidenceCollector()

    if product.title or product.price is not None:
        collector.add_product_page_evidence(ProductPageEvidence(
            has_rating=product.rating is not None,
            rating=product.rating,
            review_count=product.review_count or 0,
            has_price=product.price is not None,
            has_description=bool(product.description),
            has_brand=bool(product.brand),
            has_images=bool(product.image_url),
            page_url=normalized.normalized,
        ))

    if reputation is not None:
        collector.add_reputation_evidence(ReputationEvidence(
            trustpilot_score=reputation.trustpilot_rating,
            trustpilot_reviews=reputation.trustpilot_reviews,
            reviews_io_score=reputation.reviews_io_rating,
            reviews_io_reviews=reputation.reviews_io_reviews,
            recency_days=reputation.recency_days,
        ))

    if commission is not None:
        collector.add_affiliate_db_evidence(AffiliateDbEvidence(
            program_found=commission.is_brand_program,
            program_name=commission.program_name,
            confidence_score=commission.program_confidence,
            last_verified_days=commission.last_verified_days,
        ))

    return collector.get_summary()


def build_economics(
    commission: Optional[CommissionData],
    benchmarks: CategoryBenchmarks,
    earning_band: EarningBand,
) -> Dict[str, Any]:
    """Commission terms shown next to the earning band."""
    if commission:
        terms = {
            "rate_pct_low": commission.rate_low,
            "rate_pct_high": commission.rate_high,
            "model": "CPS",
            "network": commission.network,
        }
    else:
        terms = {
            "rate_pct_low": round(benchmarks.avg_commission * 0.8, 2),
            "rate_pct_high": round(benchmarks.avg_commission * 1.2, 2),
            "model": "CPS",
            "network": "category_average",
        }
    return {
        "commission": terms,
        "cookie_days": commission.cookie_days if commission else benchmarks.avg_cookie_days,
        "earning_band": earning_band.to_dict(),
        "assumptions": dict(earning_band.assumptions),
    }
