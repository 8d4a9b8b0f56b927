"""Tests for calculation history (in-memory fallback)."""

import pytest
from ltvboost.history import HistoryStore


@pytest.fixture
def store():
    s = HistoryStore(redis_url="redis://invalid:9999/0")
    assert s.redis is None
    return s


class TestHistory:
    def test_add_and_get(self, store):
        store.add_record(123, "pnl", "Net profit $4,000.00")
        store.add_record(123, "ads", "Target CAC $20.83")

        history = store.get_history(123)
        assert len(history) == 2
        assert history[0]["calculator"] == "ads"  # Most recent first
        assert history[1]["calculator"] == "pnl"

    def test_summary_truncated(self, store):
        store.add_record(1, "ltv", "x" * 500)
        assert len(store.get_history(1)[0]["summary"]) == 200

    def test_limit(self, store):
        for i in range(5):
            store.add_record(1, "ltv", f"run {i}")
        assert len(store.get_history(1, limit=2)) == 2

    def test_max_history_limit(self):
        store = HistoryStore(redis_url="redis://invalid:9999/0", max_history=3)
        for i in range(5):
            store.add_record(200, "pnl", f"result_{i}")
        history = store.get_history(200)
        assert len(history) == 3
        assert history[0]["summary"] == "result_4"

    def test_separate_users(self, store):
        store.add_record(1, "pnl", "r1")
        store.add_record(2, "ads", "r2")
        assert len(store.get_history(1)) == 1
        assert store.get_history(2)[0]["calculator"] == "ads"

    def test_empty(self, store):
        assert store.get_history(404) == []


class TestRateLimit:
    def test_rate_limit(self, store):
        for _ in range(5):
            assert store.check_rate_limit(999, max_per_min=5) is True
        assert store.check_rate_limit(999, max_per_min=5) is False

    def test_per_user(self, store):
        for _ in range(3):
            store.check_rate_limit(1, max_per_min=2)
        assert store.check_rate_limit(2, max_per_min=2) is True


class TestStats:
    def test_stats(self, store):
        store.add_record(100, "pnl", "a")
        store.add_record(100, "pnl", "b")
        store.add_record(100, "ads", "c")

        stats = store.get_stats(100)
        assert stats["total"] == 3
        assert stats["calculators"] == {"pnl": 2, "ads": 1}

    def test_stats_empty(self, store):
        assert store.get_stats(1) == {"total": 0, "calculators": {}}
