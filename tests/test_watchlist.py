"""
Watchlist Monitor Tests

Tests for alert detection against stored snapshots and the coarse
previous-value estimates.
"""

import pytest

from src.verifier import (
    ScrapedProductData,
    detect_watchlist_alerts,
    estimate_previous_commission,
    estimate_previous_rating,
    refresh_snapshot,
)


@pytest.fixture
def item():
    return {
        "id": "w1",
        "user_id": "u1",
        "product_name": "Pegasus",
        "brand": "Nike",
        "category": "fashion",
        "last_snapshot": {
            "scores": {"product_viability": 80, "offer_merchant": 70, "economics_feasibility": 65},
            "verdict": "GREEN",
            "confidence": "HIGH",
        },
    }


class TestEstimates:
    """Tests for previous value estimates."""

    @pytest.mark.parametrize("score,rating", [(85, 4.5), (80, 4.5), (70, 4.2), (60, 4.0), (50, 3.5), (40, 3.0), (10, 2.5)])
    def test_previous_rating(self, score, rating):
        assert estimate_previous_rating(score) == rating

    @pytest.mark.parametrize("score,rate", [(80, 10), (65, 7), (50, 5), (35, 3), (0, 2)])
    def test_previous_commission(self, score, rate):
        assert estimate_previous_commission(score) == rate

    def test_missing_score_counts_as_zero(self):
        assert estimate_previous_rating(None) == 2.5
        assert estimate_previous_commission(None) == 2


class TestAlerts:
    """Tests for alert detection."""

    def test_no_snapshot_no_alerts(self, item):
        item["last_snapshot"] = None

        assert detect_watchlist_alerts(item, ScrapedProductData(availability="out_of_stock")) == []

    def test_rating_drop(self, item):
        alerts = detect_watchlist_alerts(item, ScrapedProductData(rating=4.0))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.alert_type == "review_sentiment_change"
        assert alert.severity == "warning"
        assert alert.title == "Pegasus ratings dropped"
        assert alert.description == "Rating changed from ~4.5 to 4.0"
        assert alert.previous_value == {"rating": 4.5}
        assert alert.user_id == "u1"
        assert alert.watchlist_id == "w1"

    def test_small_rating_change_ignored(self, item):
        assert detect_watchlist_alerts(item, ScrapedProductData(rating=4.7)) == []

    def test_rating_alert_can_be_disabled(self, item):
        item["monitoring_config"] = {"review_sentiment": False}

        assert detect_watchlist_alerts(item, ScrapedProductData(rating=2.0)) == []

    def test_commission_increase(self, item, make_program):
        program = make_program(commission_rate_low=10, commission_rate_high=14)

        alerts = detect_watchlist_alerts(item, ScrapedProductData(), current_program=program)

        assert [a.alert_type for a in alerts] == ["commission_change"]
        assert alerts[0].severity == "info"
        assert alerts[0].title == "Commission rate increased for Nike"
        assert alerts[0].description == "Now offering 10-14%"
        assert alerts[0].new_value == {"rate_low": 10, "rate_high": 14}

    def test_commission_decrease(self, item, make_program):
        program = make_program(commission_rate_low=2, commission_rate_high=4)

        alerts = detect_watchlist_alerts(item, ScrapedProductData(), current_program=program)

        assert alerts[0].severity == "warning"
        assert alerts[0].title == "Commission rate decreased for Nike"

    def test_commission_needs_brand(self, item, make_program):
        item["brand"] = None

        alerts = detect_watchlist_alerts(
            item, ScrapedProductData(), current_program=make_program(commission_rate_low=20, commission_rate_high=30)
        )

        assert alerts == []

    def test_out_of_stock_is_critical(self, item):
        alerts = detect_watchlist_alerts(item, ScrapedProductData(availability="out_of_stock"))

        assert alerts[0].alert_type == "availability_change"
        assert alerts[0].severity == "critical"
        assert alerts[0].new_value == {"availability": "out_of_stock"}

    def test_better_alternative(self, item, make_program):
        item["last_snapshot"]["scores"]["economics_feasibility"] = 50
        better = [make_program("x", brand_name="Acme", commission_rate_high=12, network="CJ")]

        alerts = detect_watchlist_alerts(item, ScrapedProductData(), better_programs=better)

        assert [a.alert_type for a in alerts] == ["better_alternative"]
        assert alerts[0].description == "Acme offers up to 12% via CJ"

    def test_no_better_alternative_when_economics_fine(self, item, make_program):
        better = [make_program("x", commission_rate_high=20)]

        assert detect_watchlist_alerts(item, ScrapedProductData(), better_programs=better) == []

    def test_alert_order(self, item, make_program):
        item["last_snapshot"]["scores"]["economics_feasibility"] = 40
        alerts = detect_watchlist_alerts(
            item,
            ScrapedProductData(rating=3.5, availability="out_of_stock"),
            current_program=make_program(commission_rate_low=8, commission_rate_high=12),
            better_programs=[make_program("x", commission_rate_high=15)],
        )

        assert [a.alert_type for a in alerts] == [
            "review_sentiment_change",
            "commission_change",
            "availability_change",
            "better_alternative",
        ]

    def test_null_scores(self, item, make_program):
        item["last_snapshot"]["scores"] = {"product_viability": None, "economics_feasibility": None}

        alerts = detect_watchlist_alerts(
            item,
            ScrapedProductData(rating=4.0),
            current_program=make_program(commission_rate_low=10, commission_rate_high=14),
            better_programs=[make_program("x", commission_rate_high=12)],
        )

        assert [a.alert_type for a in alerts] == [
            "review_sentiment_change",
            "commission_change",
            "better_alternative",
        ]
        assert alerts[0].previous_value == {"rating": 2.5}
        assert alerts[1].previous_value == {"estimated_avg": 2}


class TestRefreshSnapshot:
    """Tests for snapshot refresh after a check."""

    def test_keeps_scores_records_latest(self, item):
        refreshed = refresh_snapshot(item["last_snapshot"], ScrapedProductData(rating=4.4, availability="in_stock"))

        assert refreshed["scores"] == item["last_snapshot"]["scores"]
        assert refreshed["verdict"] == "GREEN"
        assert refreshed["last_rating"] == 4.4
        assert refreshed["last_availability"] == "in_stock"
