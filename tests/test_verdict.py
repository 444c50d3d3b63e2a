"""
Verdict Engine Tests

Tests for hard-stop detection, verdict status, primary action and the
pros / risks / assumptions lists.
"""

import pytest

from src.verifier import (
    ConfidenceLevel,
    EvidenceSummary,
    HardStopFlag,
    PrimaryAction,
    ProductPrice,
    ReputationData,
    ScoreResult,
    ScoringInput,
    ScrapedProductData,
    VerdictInput,
    VerdictStatus,
    compute_scores,
    compute_verdict,
    detect_hard_stops,
    get_benchmarks,
)
from src.verifier.verdict import determine_primary_action, determine_status


def _evidence(confidence=ConfidenceLevel.MED, points=30):
    return EvidenceSummary(
        sources=[],
        total_data_points=points,
        source_count=2,
        cross_source_agreement=ConfidenceLevel.MED,
        confidence=confidence,
    )


def _scores(pv, om, ec):
    return ScoreResult(product_viability=pv, offer_merchant=om, economics_feasibility=ec, breakdowns={})


def _verdict_input(product, reputation=None, commission=None, confidence=ConfidenceLevel.MED, points=30):
    scores = compute_scores(ScoringInput(
        product=product,
        reputation=reputation,
        commission=commission,
        category_benchmarks=get_benchmarks(product.category),
    ))
    return VerdictInput(
        scores=scores,
        confidence=_evidence(confidence, points),
        product=product,
        reputation=reputation,
        commission=commission,
    )


@pytest.fixture
def plain_product():
    return ScrapedProductData(title="Desk Lamp", price=ProductPrice(amount=35.0), availability="in_stock")


class TestHardStops:
    """Tests for each hard-stop check."""

    def test_none_for_plain_product(self, plain_product):
        assert detect_hard_stops(_verdict_input(plain_product)) == []

    def test_merchant_risk_extreme(self, plain_product):
        data = _verdict_input(plain_product, reputation=ReputationData(overall_rating=1.8))

        assert detect_hard_stops(data) == [HardStopFlag.MERCHANT_RISK_EXTREME]

    def test_merchant_rating_at_threshold_is_fine(self, plain_product):
        data = _verdict_input(plain_product, reputation=ReputationData(overall_rating=2.0))

        assert detect_hard_stops(data) == []

    def test_banned_claim(self, plain_product):
        plain_product.claims = ["Miracle Cure for back pain"]

        assert detect_hard_stops(_verdict_input(plain_product)) == [HardStopFlag.COMPLIANCE_RISK_HIGH]

    def test_evidence_too_thin(self, plain_product):
        thin = _verdict_input(plain_product, confidence=ConfidenceLevel.LOW, points=2)
        enough = _verdict_input(plain_product, confidence=ConfidenceLevel.LOW, points=3)

        assert HardStopFlag.EVIDENCE_TOO_THIN in detect_hard_stops(thin)
        assert HardStopFlag.EVIDENCE_TOO_THIN not in detect_hard_stops(enough)

    def test_flags_coexist_in_order(self):
        product = ScrapedProductData(availability="out_of_stock")
        data = _verdict_input(
            product,
            reputation=ReputationData(overall_rating=1.2),
            confidence=ConfidenceLevel.LOW,
            points=0,
        )

        assert detect_hard_stops(data) == [
            HardStopFlag.MERCHANT_RISK_EXTREME,
            HardStopFlag.EVIDENCE_TOO_THIN,
            HardStopFlag.PRODUCT_PAGE_NOT_FOUND,
            HardStopFlag.OUT_OF_STOCK,
        ]


class TestDetermineStatus:
    """Tests for the status decision order."""

    def test_red_flag_beats_low_confidence(self):
        status = determine_status(
            _scores(90, 90, 90), ConfidenceLevel.LOW, [HardStopFlag.PRODUCT_PAGE_NOT_FOUND]
        )
        assert status == VerdictStatus.RED

    def test_low_confidence_is_test_first(self):
        assert determine_status(_scores(90, 90, 90), ConfidenceLevel.LOW, []) == VerdictStatus.TEST_FIRST

    def test_pillar_below_floor_is_red(self):
        assert determine_status(_scores(90, 39, 90), ConfidenceLevel.HIGH, []) == VerdictStatus.RED

    def test_out_of_stock_caps_at_yellow(self):
        status = determine_status(_scores(90, 90, 90), ConfidenceLevel.HIGH, [HardStopFlag.OUT_OF_STOCK])
        assert status == VerdictStatus.YELLOW

    def test_green(self):
        assert determine_status(_scores(65, 65, 65), ConfidenceLevel.MED, []) == VerdictStatus.GREEN

    def test_yellow_on_average(self):
        assert determine_status(_scores(80, 45, 60), ConfidenceLevel.MED, []) == VerdictStatus.YELLOW

    def test_red_on_low_average(self):
        assert determine_status(_scores(45, 45, 45), ConfidenceLevel.MED, []) == VerdictStatus.RED


class TestPrimaryAction:
    """Tests for the recommended next step."""

    @pytest.mark.parametrize("status,scores,expected", [
        (VerdictStatus.TEST_FIRST, (90, 90, 90), PrimaryAction.TEST_FIRST),
        (VerdictStatus.GREEN, (90, 90, 90), PrimaryAction.APPROVE),
        (VerdictStatus.YELLOW, (80, 45, 60), PrimaryAction.ALT_BRAND),
        (VerdictStatus.YELLOW, (80, 70, 45), PrimaryAction.ALT_BRAND),
        (VerdictStatus.YELLOW, (45, 80, 70), PrimaryAction.ALT_PRODUCT),
    ])
    def test_action(self, status, scores, expected):
        assert determine_primary_action(status, _scores(*scores), []) == expected

    def test_extreme_merchant_risk_switches_brand(self):
        action = determine_primary_action(
            VerdictStatus.RED, _scores(20, 80, 70), [HardStopFlag.MERCHANT_RISK_EXTREME]
        )
        assert action == PrimaryAction.ALT_BRAND


class TestComputeVerdict:
    """End-to-end verdict for realistic inputs."""

    def test_strong_product_is_approved(self, strong_product, strong_reputation, brand_commission):
        data = _verdict_input(
            strong_product, strong_reputation, brand_commission, confidence=ConfidenceLevel.HIGH, points=216,
        )

        result = compute_verdict(data)

        assert result.status == VerdictStatus.GREEN
        assert result.primary_action == PrimaryAction.APPROVE
        assert result.hard_stop_flags == []
        assert result.top_pros == [
            "Strong commission rate (10-14%), better than category average",
            "Trusted merchant (4.6/5 reputation): low risk of customer complaints",
            "High demand: 1,200 reviews indicate strong market interest",
        ]
        assert result.top_risks == []
        assert result.key_assumptions == [
            "Earning estimates assume 500-2,000 monthly clicks, adjust based on your actual traffic"
        ]

    def test_lists_capped_at_three(self):
        product = ScrapedProductData(availability="out_of_stock", description="miracle cure")
        data = _verdict_input(
            product, reputation=ReputationData(overall_rating=1.5), confidence=ConfidenceLevel.LOW, points=0,
        )

        result = compute_verdict(data)

        assert result.status == VerdictStatus.RED
        assert len(result.top_risks) == 3
        assert result.top_risks[0].startswith("Merchant has extremely low trust rating")
        assert len(result.key_assumptions) <= 3

    def test_to_dict(self, plain_product):
        data = compute_verdict(_verdict_input(plain_product)).to_dict()

        assert data["status"] in {"GREEN", "YELLOW", "RED", "TEST_FIRST"}
        assert isinstance(data["hard_stop_flags"], list)
