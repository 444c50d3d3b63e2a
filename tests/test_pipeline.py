"""
Verifier Pipeline Tests

End-to-end runs of the deterministic pipeline, from scraped product
to snapshot and bucketed recommendations.
"""

import pytest

from src.verifier import (
    BucketStrategy,
    CommissionData,
    ConfidenceLevel,
    PipelineInput,
    PrimaryRoute,
    ReputationData,
    ScrapedProductData,
    VerdictStatus,
    compute_category_stats,
    get_benchmarks,
    normalize_url,
    program_to_candidate,
    run_verifier_pipeline,
)
from src.verifier.pipeline import build_economics, collect_evidence
from src.verifier.scoring import FALLBACK_BENCHMARKS, compute_earning_band

PRODUCT_URL = "https://www.zalando.de/nike-pegasus-NI112O0BV-Q11.html?utm_source=x"


@pytest.fixture
def normalized():
    return normalize_url(PRODUCT_URL)


@pytest.fixture
def programs(make_program):
    return [
        make_program("a", merchant_rating=4.7, brand_tier="premium", commission_rate_high=16),
        make_program("b"),
        make_program("c", merchant_rating=3.2, verified_program=False, typical_price_low=15),
        make_program("d", commission_rate_high=4, avg_order_value=30, refund_rate=0.15),
    ]


class TestStrongProduct:
    """A well-documented product from a trusted merchant."""

    @pytest.fixture
    def report(self, normalized, strong_product, strong_reputation, brand_commission, programs):
        return run_verifier_pipeline(PipelineInput(
            normalized=normalized,
            product=strong_product,
            category="fashion",
            benchmarks=get_benchmarks("fashion"),
            reputation=strong_reputation,
            commission=brand_commission,
            candidates=[program_to_candidate(p) for p in programs],
            category_stats=compute_category_stats(programs),
            user_categories=["fashion"],
        ))

    def test_verdict_and_routing(self, report):
        assert report.verdict.status == VerdictStatus.GREEN
        assert report.evidence.confidence == ConfidenceLevel.HIGH
        assert report.coverage.overall_score == pytest.approx(1.0)
        assert report.routing.primary_route == PrimaryRoute.CATEGORY_ALTERNATIVES
        assert report.routing.show_trending is True
        assert report.routing.suppress_winner is False

    def test_winner_is_top_eligible_and_not_bucketed(self, report):
        assert report.winner is not None
        assert report.winner.id == report.ranking.winner.id

        bucketed = [i.id for b in report.buckets.buckets for i in b.items]
        assert report.winner.id not in bucketed
        assert report.buckets.total_candidates == 4

    def test_snapshot(self, report):
        snapshot = report.snapshot()

        assert snapshot["product"]["merchant"] == "Zalando"
        assert snapshot["product"]["category"] == "fashion"
        assert snapshot["product"]["region_availability"] == ["DE"]
        assert snapshot["product"]["price"] == {"amount": 40.0, "currency": "EUR", "original_amount": 60.0}
        assert snapshot["scores"] == {"product_viability": 94, "offer_merchant": 94, "economics": 87}
        assert snapshot["verdict"]["status"] == "GREEN"
        assert snapshot["confidence"]["level"] == "HIGH"
        assert snapshot["economics"]["commission"] == {
            "rate_pct_low": 10,
            "rate_pct_high": 14,
            "model": "CPS",
            "network": "Awin",
        }
        assert len(snapshot["insights"]["top_pros"]) == 3

    def test_recommendations(self, report):
        recommendations = report.recommendations()

        assert recommendations["mode"] == "balanced"
        assert recommendations["routing"]["rank_mode"] == "balanced"
        assert recommendations["winner"]["id"] == report.winner.id
        assert recommendations["can_rerank"] is True
        assert all(b["items"] for b in recommendations["buckets"])

    def test_items_per_bucket(self, normalized, strong_product, programs):
        report = run_verifier_pipeline(PipelineInput(
            normalized=normalized,
            product=strong_product,
            category="fashion",
            benchmarks=get_benchmarks("fashion"),
            candidates=[program_to_candidate(p) for p in programs],
            category_stats=compute_category_stats(programs),
            items_per_bucket=1,
        ))

        assert report.buckets.buckets
        assert all(len(b.items) == 1 for b in report.buckets.buckets)


class TestThinData:
    """Nothing could be extracted from the page."""

    @pytest.fixture
    def report(self, normalized, programs):
        return run_verifier_pipeline(PipelineInput(
            normalized=normalized,
            product=ScrapedProductData(),
            category="general",
            benchmarks=FALLBACK_BENCHMARKS,
            candidates=[program_to_candidate(p) for p in programs],
        ))

    def test_red_verdict_routes_to_test_first(self, report):
        assert report.verdict.status == VerdictStatus.RED
        assert report.evidence.confidence == ConfidenceLevel.LOW
        assert report.routing.primary_route == PrimaryRoute.TEST_FIRST
        assert report.routing.bucket_strategy == BucketStrategy.CONSERVATIVE
        assert report.routing.banner == "Limited data available. Test before committing."

    def test_winner_suppressed_on_low_coverage(self, report):
        assert report.coverage.overall_score < 0.4
        assert report.ranking.winner is not None
        assert report.winner is None
        assert report.recommendations()["winner"] is None

    def test_category_average_economics(self, report):
        economics = report.snapshot()["economics"]

        assert economics["commission"] == {
            "rate_pct_low": 4.0,
            "rate_pct_high": 6.0,
            "model": "CPS",
            "network": "category_average",
        }
        assert economics["cookie_days"] == 30
        assert economics["earning_band"]["low"] == pytest.approx(34.5)


class TestNoCandidates:
    """Pipeline without any alternatives."""

    def test_empty_recommendations(self, normalized, strong_product):
        report = run_verifier_pipeline(PipelineInput(
            normalized=normalized,
            product=strong_product,
            category="fashion",
            benchmarks=get_benchmarks("fashion"),
        ))

        recommendations = report.recommendations()
        assert recommendations["winner"] is None
        assert recommendations["buckets"] == []
        assert recommendations["total_candidates"] == 0
        assert recommendations["can_rerank"] is False
        assert set(report.to_dict()) == {"snapshot", "recommendations"}


class TestCollectEvidence:
    """Tests for evidence gathering from collaborator records."""

    def test_category_fallback_is_not_program_evidence(self, normalized, strong_product):
        fallback = CommissionData(rate_low=4, rate_high=8, program_confidence=5, is_brand_program=False)

        summary = collect_evidence(normalized, strong_product, None, fallback)

        assert [s.source.value for s in summary.sources] == ["product_page"]

    def test_reputation_sources(self, normalized, strong_product):
        reputation = ReputationData(trustpilot_rating=4.0, trustpilot_reviews=60, recency_days=12)

        summary = collect_evidence(normalized, strong_product, reputation, None)

        assert [s.source.value for s in summary.sources] == ["product_page", "trustpilot"]
        assert summary.sources[0].url == normalized.normalized

    def test_no_page_evidence_without_title_or_price(self, normalized):
        summary = collect_evidence(normalized, ScrapedProductData(description="text"), None, None)

        assert summary.sources == []

    def test_build_economics_with_commission(self, strong_product, brand_commission):
        benchmarks = get_benchmarks("fashion")
        band = compute_earning_band(strong_product, brand_commission, benchmarks)

        economics = build_economics(brand_commission, benchmarks, band)

        assert economics["cookie_days"] == 30
        assert economics["assumptions"] == band.assumptions
        assert economics["earning_band"]["currency"] == "EUR"
