"""
Repository Tests

Tests for session, program, reputation, scrape cache and watchlist
storage against a throwaway SQLite database.
"""

from datetime import datetime, timedelta

import pytest

from src.database import (
    create_verifier_session,
    create_watchlist_item,
    fail_verifier_session,
    get_brand_program,
    get_brand_reputation,
    get_cached_scrape,
    get_category_programs,
    get_due_watchlist_items,
    get_verifier_session,
    list_alerts,
    list_watchlist,
    record_watchlist_check,
    store_scrape,
    update_verifier_session,
    upsert_affiliate_program,
    upsert_brand_reputation,
)

NORMALIZED = {
    "normalized": "https://www.zalando.de/nike-pegasus.html",
    "platform": "zalando",
    "region": "DE",
    "product_id": "NI112O0BV-Q11",
}

SNAPSHOT = {
    "scores": {"product_viability": 80, "offer_merchant": 70, "economics_feasibility": 65},
    "verdict": "GREEN",
    "confidence": "HIGH",
}


def _watch(user_id="u1", **overrides):
    values = {
        "user_id": user_id,
        "url": "https://www.zalando.de/nike-pegasus.html",
        "normalized_url": NORMALIZED["normalized"],
        "product_name": "Pegasus",
        "brand": "Nike",
        "merchant": "Zalando",
        "category": "fashion",
        "last_snapshot": SNAPSHOT,
    }
    values.update(overrides)
    return create_watchlist_item(**values)


class TestSessions:
    """Tests for verifier session storage."""

    def test_create_and_get(self, sqlite_db):
        session_id = create_verifier_session(
            "u1", "zalando.de/nike-pegasus.html", NORMALIZED, {"traffic_type": "PAID", "categories": []}
        )

        session = get_verifier_session(session_id, "u1")

        assert session["status"] == "analyzing"
        assert session["normalized_url"] == NORMALIZED["normalized"]
        assert session["platform"] == "zalando"
        assert session["region"] == "DE"
        assert session["user_context"]["traffic_type"] == "PAID"
        assert isinstance(session["created_at"], str)

    def test_other_user_cannot_read(self, sqlite_db):
        session_id = create_verifier_session("u1", "https://a.com/p", NORMALIZED)

        assert get_verifier_session(session_id, "u2") is None
        assert get_verifier_session(session_id) is not None

    def test_missing_session(self, sqlite_db):
        assert get_verifier_session("does-not-exist", "u1") is None
        assert update_verifier_session("does-not-exist", status="completed") is False

    def test_update_json_columns(self, sqlite_db):
        session_id = create_verifier_session("u1", "https://a.com/p", NORMALIZED)

        assert update_verifier_session(session_id, scores={"economics": 55}, buckets=[{"type": "safe"}])

        session = get_verifier_session(session_id, "u1")
        assert session["scores"] == {"economics": 55}
        assert session["buckets"] == [{"type": "safe"}]

    def test_update_unknown_column(self, sqlite_db):
        session_id = create_verifier_session("u1", "https://a.com/p", NORMALIZED)

        with pytest.raises(AttributeError):
            update_verifier_session(session_id, not_a_column=1)

    def test_fail(self, sqlite_db):
        session_id = create_verifier_session("u1", "https://a.com/p", NORMALIZED)

        fail_verifier_session(session_id, "x" * 2000)

        session = get_verifier_session(session_id, "u1")
        assert session["status"] == "failed"
        assert len(session["error_message"]) == 1000


class TestPrograms:
    """Tests for the affiliate program catalogue."""

    def test_brand_program_is_highest_commission(self, sqlite_db, make_program):
        upsert_affiliate_program(make_program("a", brand_slug="nike", commission_rate_high=8))
        upsert_affiliate_program(make_program("b", brand_slug="nike", commission_rate_high=14))
        upsert_affiliate_program(make_program("c", brand_slug="nike", commission_rate_high=20, is_active=False))

        assert get_brand_program("nike")["id"] == "b"
        assert get_brand_program("adidas") is None

    def test_upsert_updates_existing(self, sqlite_db, make_program):
        upsert_affiliate_program(make_program("a", network="Awin"))
        upsert_affiliate_program({"id": "a", "network": "CJ"})

        program = get_brand_program("branda")
        assert program["network"] == "CJ"
        assert program["commission_rate_high"] == 10

    def test_category_programs(self, sqlite_db, make_program):
        upsert_affiliate_program(make_program("a", commission_rate_high=6))
        upsert_affiliate_program(make_program("b", commission_rate_high=12))
        upsert_affiliate_program(make_program("c", commission_rate_high=9))
        upsert_affiliate_program(make_program("d", commission_rate_high=30, is_active=False))
        upsert_affiliate_program(make_program("e", primary_category="beauty"))

        assert [p["id"] for p in get_category_programs("Fashion")] == ["b", "c", "a"]
        assert [p["id"] for p in get_category_programs("fashion", exclude_brand_slug="brandb")] == ["c", "a"]
        assert [p["id"] for p in get_category_programs("fashion", min_commission=9)] == ["b", "c"]
        assert [p["id"] for p in get_category_programs("fashion", limit=1)] == ["b"]
        assert get_category_programs("toys") == []


class TestReputation:
    """Tests for brand reputation rows."""

    def test_upsert_and_get(self, sqlite_db):
        scraped = datetime(2026, 1, 5)
        upsert_brand_reputation("nike", {"trustpilot_rating": 4.1, "trustpilot_reviews": 300, "scraped_at": scraped})
        upsert_brand_reputation("nike", {"trustpilot_rating": 4.3})

        reputation = get_brand_reputation("nike")
        assert reputation["trustpilot_rating"] == 4.3
        assert reputation["trustpilot_reviews"] == 300
        assert reputation["scraped_at"] > scraped

    def test_missing(self, sqlite_db):
        assert get_brand_reputation("nobody") is None


class TestScrapeCache:
    """Tests for the scraped page cache."""

    def test_fresh_entry(self, sqlite_db):
        store_scrape(NORMALIZED["normalized"], "zalando", {"title": "Pegasus"}, ttl_hours=24)

        assert get_cached_scrape(NORMALIZED["normalized"]) == {"title": "Pegasus"}

    def test_expired_entry(self, sqlite_db):
        store_scrape(NORMALIZED["normalized"], "zalando", {"title": "Pegasus"}, ttl_hours=1)

        later = datetime.utcnow() + timedelta(hours=2)
        assert get_cached_scrape(NORMALIZED["normalized"], now=later) is None

    def test_store_overwrites(self, sqlite_db):
        store_scrape(NORMALIZED["normalized"], "zalando", {"title": "Old"})
        store_scrape(NORMALIZED["normalized"], "zalando", {"title": "New"})

        assert get_cached_scrape(NORMALIZED["normalized"])["title"] == "New"

    def test_missing(self, sqlite_db):
        assert get_cached_scrape("https://nowhere.example/p") is None


class TestWatchlist:
    """Tests for watchlist items and alerts."""

    def test_create_and_list(self, sqlite_db):
        item = _watch()
        _watch(user_id="u2")

        assert item["product_name"] == "Pegasus"
        assert item["last_snapshot"] == SNAPSHOT
        assert item["alert_count"] == 0
        assert isinstance(item["next_check_at"], str)
        assert [i["id"] for i in list_watchlist("u1")] == [item["id"]]

    def test_linked_to_session(self, sqlite_db):
        session_id = create_verifier_session("u1", "https://a.com/p", NORMALIZED)

        item = _watch(session_id=session_id)

        assert item["session_id"] == session_id

    def test_due_items(self, sqlite_db):
        item = _watch()
        soon = datetime.utcnow() + timedelta(minutes=1)

        due = get_due_watchlist_items(now=soon)

        assert [i["id"] for i in due] == [item["id"]]
        assert get_due_watchlist_items(now=datetime.utcnow() - timedelta(hours=1)) == []

    def test_record_check(self, sqlite_db):
        item = _watch()
        alert = {
            "user_id": "u1",
            "watchlist_id": item["id"],
            "alert_type": "availability_change",
            "severity": "critical",
            "title": "Pegasus is out of stock",
            "description": "Product availability changed to out of stock",
            "previous_value": None,
            "new_value": {"availability": "out_of_stock"},
        }
        snapshot = dict(SNAPSHOT, last_availability="out_of_stock")

        record_watchlist_check(item["id"], [alert], snapshot, recheck_hours=6)

        stored = list_watchlist("u1")[0]
        assert stored["alert_count"] == 1
        assert stored["last_snapshot"]["last_availability"] == "out_of_stock"
        assert stored["last_checked_at"] is not None
        assert get_due_watchlist_items(now=datetime.utcnow() + timedelta(minutes=1)) == []

        alerts = list_alerts("u1")
        assert len(alerts) == 1
        assert alerts[0]["alert_type"] == "availability_change"
        assert alerts[0]["new_value"] == {"availability": "out_of_stock"}
        assert alerts[0]["is_read"] is False

    def test_record_check_unknown_item(self, sqlite_db):
        record_watchlist_check("missing", [], None)

        assert list_alerts("u1") == []

    def test_unread_filter(self, sqlite_db):
        item = _watch()
        alert = {
            "user_id": "u1",
            "watchlist_id": item["id"],
            "alert_type": "commission_change",
            "severity": "info",
            "title": "Commission rate increased for Nike",
            "description": "Now offering 10-14%",
        }
        record_watchlist_check(item["id"], [alert, dict(alert, is_read=True)], None)

        assert len(list_alerts("u1")) == 2
        assert len(list_alerts("u1", unread_only=True)) == 1
        assert list_alerts("u2") == []
