"""
Bucketizer Tests

Tests for hint placement, bucket top-up, winner exclusion, trending
visibility and the conservative strategy.
"""

import pytest

from src.verifier import (
    BucketizerConfig,
    BucketKey,
    BucketStrategy,
    ConfidenceLevel,
    RankedAlternative,
    bucketize,
    create_empty_bucketizer_output,
    get_buckets_summary,
)


def _ranked(item_id, rank_score=50, bucket_hint=None, **overrides):
    values = {
        "id": item_id,
        "title": f"Program {item_id}",
        "product_viability": 60,
        "offer_merchant": 60,
        "economics": 60,
        "coverage": 0.6,
        "confidence": ConfidenceLevel.MED,
        "risk_score": 0.2,
        "rank_score": rank_score,
        "bucket_hint": bucket_hint,
    }
    values.update(overrides)
    return RankedAlternative(**values)


def _upside(item_id, rank_score=50):
    # high economics, too little demand for budget
    return _ranked(item_id, rank_score, economics=80, product_viability=40)


def _keys(output):
    return [b.key for b in output.buckets]


def _ids(output, key):
    bucket = next(b for b in output.buckets if b.key == key)
    return [i.id for i in bucket.items]


class TestPlacement:
    """Tests for hint and check based placement."""

    def test_winner_excluded(self):
        winner = _ranked("w", 90)
        ranked = [winner, _ranked("a", 60), _ranked("b", 55)]

        output = bucketize(ranked, winner)

        placed = [i.id for b in output.buckets for i in b.items]
        assert "w" not in placed
        assert output.winner is winner
        assert output.total_candidates == 3

    def test_hint_wins_over_checks(self):
        hinted = _ranked("h", bucket_hint=BucketKey.SAFE)

        output = bucketize([hinted], None)

        assert _ids(output, BucketKey.SAFE) == ["h"]

    def test_flagged_item_never_safe(self):
        flagged = _ranked("f", bucket_hint=BucketKey.SAFE, offer_merchant=90, hard_stop_flags=["OUT_OF_STOCK"])

        output = bucketize([flagged], None)

        assert BucketKey.SAFE not in _keys(output)

    def test_only_non_empty_buckets_in_order(self):
        safe = _ranked("s", 70, offer_merchant=80, product_viability=70, risk_score=0.1)
        budget = _ranked("b", 60)

        output = bucketize([safe, budget], None)

        assert _keys(output) == [BucketKey.SAFE, BucketKey.BUDGET]
        assert output.buckets[0].title == "Safe pick"
        assert output.buckets[0].eligible is True

    def test_top_up_prefers_higher_rank(self):
        low = _ranked("low", 40)
        high = _ranked("high", 80)

        output = bucketize([low, high], None, BucketizerConfig(items_per_bucket=1))

        assert _ids(output, BucketKey.BUDGET) == ["high"]
        assert [o.id for o in output.overflow] == ["low"]

    def test_bucket_limit_and_overflow(self):
        ranked = [_ranked(str(i), 90 - i) for i in range(5)]

        output = bucketize(ranked, None)

        assert _ids(output, BucketKey.BUDGET) == ["0", "1", "2"]
        assert [o.id for o in output.overflow] == ["3", "4"]

    def test_item_placed_once(self):
        both = _ranked("x", 70, offer_merchant=80, product_viability=70, economics=80, risk_score=0.1)

        output = bucketize([both], None)

        assert _keys(output) == [BucketKey.SAFE]


class TestTrending:
    """Tests for trending visibility."""

    def test_trending_shown(self):
        item = _ranked("t", trend_eligible=True, trend_score=0.7, bucket_hint=BucketKey.TRENDING)

        output = bucketize([item], None, BucketizerConfig(show_trending=True))

        assert _keys(output) == [BucketKey.TRENDING]

    def test_trending_hidden(self):
        item = _ranked("t", trend_eligible=True, trend_score=0.7, bucket_hint=BucketKey.TRENDING, product_viability=40)

        output = bucketize([item], None, BucketizerConfig(show_trending=False))

        assert BucketKey.TRENDING not in _keys(output)
        assert [o.id for o in output.overflow] == ["t"]

    def test_trending_check_needs_coverage(self):
        item = _ranked("t", trend_eligible=True, trend_score=0.9, coverage=0.4, product_viability=40)

        assert bucketize([item], None).buckets == []


class TestStrategy:
    """Tests for bucket strategies."""

    def test_conservative_caps_upside(self):
        ranked = [_upside(str(i), 90 - i) for i in range(4)]

        output = bucketize(ranked, None, BucketizerConfig(bucket_strategy=BucketStrategy.CONSERVATIVE))

        assert _ids(output, BucketKey.UPSIDE) == ["0", "1"]
        assert [o.id for o in output.overflow] == ["2", "3"]

    def test_conservative_keeps_safe_at_full_size(self):
        ranked = [
            _ranked(str(i), 90 - i, offer_merchant=80, product_viability=70, risk_score=0.1)
            for i in range(3)
        ]

        output = bucketize(ranked, None, BucketizerConfig(bucket_strategy=BucketStrategy.CONSERVATIVE))

        assert len(_ids(output, BucketKey.SAFE)) == 3

    def test_aggressive_matches_standard(self):
        ranked = [_upside(str(i), 90 - i) for i in range(4)]

        standard = bucketize(ranked, None, BucketizerConfig(bucket_strategy=BucketStrategy.STANDARD))
        aggressive = bucketize(ranked, None, BucketizerConfig(bucket_strategy=BucketStrategy.AGGRESSIVE))

        assert aggressive.to_dict() == standard.to_dict()


class TestHelpers:
    """Tests for summary and empty output."""

    def test_empty_output(self):
        output = create_empty_bucketizer_output()

        assert output.to_dict() == {"winner": None, "buckets": [], "total_candidates": 0, "overflow": []}

    def test_summary(self):
        winner = _ranked("w", 90)
        output = bucketize([winner, _ranked("a"), _upside("u")], winner)

        summary = get_buckets_summary(output)

        assert summary == {
            "has_winner": True,
            "bucket_count": 2,
            "total_shortlist": 2,
            "bucket_keys": ["upside", "budget"],
        }

    @pytest.mark.parametrize("strategy", ["standard", "conservative", "aggressive"])
    def test_string_strategy_accepted(self, strategy):
        output = bucketize([_ranked("a")], None, BucketizerConfig(bucket_strategy=strategy))

        assert output.total_candidates == 1
