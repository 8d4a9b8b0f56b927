"""Tests for the metrics and suggestions store."""

import sqlite3
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from ltvboost.recommendations import StoreMetrics, SuggestionPriority, SuggestionType
from ltvboost.store import (
    MetricsNotFound,
    ads_for_user,
    get_latest_metrics,
    init_db,
    list_suggestions,
    onboard,
    pnl_for_user,
    save_store_metrics,
    set_implemented,
)
from ltvboost.validator import InputValidationError


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "test.db"
        init_db(path)
        yield path


BEAUTY = StoreMetrics(aov=30, monthly_revenue=5000, repeat_rate=10, niche="Beauty")
APPAREL = StoreMetrics(aov=80, monthly_revenue=20000, repeat_rate=30, niche="apparel")


class TestInitDB:
    def test_creates_tables(self, db_path):
        conn = sqlite3.connect(str(db_path))
        tables = {r[0] for r in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'")}
        conn.close()
        assert {"store_metrics", "suggestions"} <= tables

    def test_idempotent(self, db_path):
        init_db(db_path)


class TestMetrics:
    def test_no_metrics(self, db_path):
        assert get_latest_metrics(1, db_path) is None

    def test_save_and_get(self, db_path):
        metrics_id = save_store_metrics(1, BEAUTY, db_path)
        latest = get_latest_metrics(1, db_path)
        assert latest.id == metrics_id
        assert latest.metrics == BEAUTY

    def test_latest_wins(self, db_path):
        save_store_metrics(1, BEAUTY, db_path)
        newer = save_store_metrics(1, APPAREL, db_path)
        latest = get_latest_metrics(1, db_path)
        assert latest.id == newer
        assert latest.metrics.niche == "apparel"

    def test_per_user(self, db_path):
        save_store_metrics(1, BEAUTY, db_path)
        assert get_latest_metrics(2, db_path) is None


class TestOnboard:
    def test_saves_metrics_and_suggestions(self, db_path):
        result = onboard(7, BEAUTY, db_path)
        assert len(result.recommendations) == 4
        stored = list_suggestions(7, db_path=db_path)
        assert [s.recommendation for s in stored] == result.recommendations
        assert all(s.store_metrics_id == result.metrics_id for s in stored)
        assert not any(s.implemented for s in stored)

    def test_round_trips_enums(self, db_path):
        onboard(7, BEAUTY, db_path)
        first = list_suggestions(7, db_path=db_path)[0].recommendation
        assert first.type is SuggestionType.SUBSCRIPTION
        assert first.priority is SuggestionPriority.HIGH

    def test_invalid_metrics_rejected(self, db_path):
        with pytest.raises(InputValidationError):
            onboard(7, StoreMetrics(0, 5000, 10, "Beauty"), db_path)
        assert get_latest_metrics(7, db_path) is None

    def test_failed_suggestions_roll_back_metrics(self, db_path):
        with patch("ltvboost.store._insert_suggestions",
                   side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(sqlite3.OperationalError):
                onboard(7, BEAUTY, db_path)
        assert get_latest_metrics(7, db_path) is None
        assert list_suggestions(7, db_path=db_path) == []

    def test_history_kept_on_resubmit(self, db_path):
        first = onboard(7, BEAUTY, db_path)
        second = onboard(7, APPAREL, db_path)
        all_suggestions = list_suggestions(7, db_path=db_path)
        assert len(all_suggestions) == len(first.recommendations) + len(second.recommendations)
        latest_only = list_suggestions(7, second.metrics_id, db_path)
        assert len(latest_only) == len(second.recommendations)


class TestSetImplemented:
    def test_mark_and_unmark(self, db_path):
        onboard(7, BEAUTY, db_path)
        sid = list_suggestions(7, db_path=db_path)[0].id

        assert set_implemented(7, sid, True, db_path)
        s = list_suggestions(7, db_path=db_path)[0]
        assert s.implemented
        assert s.implemented_at is not None

        assert set_implemented(7, sid, False, db_path)
        s = list_suggestions(7, db_path=db_path)[0]
        assert not s.implemented
        assert s.implemented_at is None

    def test_other_users_suggestion(self, db_path):
        onboard(7, BEAUTY, db_path)
        sid = list_suggestions(7, db_path=db_path)[0].id
        assert not set_implemented(8, sid, True, db_path)
        assert not list_suggestions(7, db_path=db_path)[0].implemented

    def test_unknown_id(self, db_path):
        assert not set_implemented(7, 999, True, db_path)


class TestCalculatorsForUser:
    def test_pnl_uses_latest_revenue(self, db_path):
        onboard(7, StoreMetrics(50, 20000, 20, "beauty"), db_path)
        r = pnl_for_user(7, 50, 5000, 1000, db_path)
        assert r.monthly_revenue == 20000
        assert r.net_profit == 4000
        assert r.net_profit_margin == 20.0

    def test_ads_uses_latest_metrics(self, db_path):
        onboard(7, StoreMetrics(50, 10000, 20, "beauty"), db_path)
        r = ads_for_user(7, 50, 3, 1000, db_path)
        assert r.ltv == 62.5
        assert r.max_scalable_ad_spend == 2000

    def test_no_metrics(self, db_path):
        with pytest.raises(MetricsNotFound) as exc:
            pnl_for_user(7, 50, 0, 0, db_path)
        assert exc.value.user_id == 7
        with pytest.raises(MetricsNotFound):
            ads_for_user(7, 50, db_path=db_path)

    def test_invalid_pnl_inputs(self, db_path):
        onboard(7, BEAUTY, db_path)
        with pytest.raises(InputValidationError):
            pnl_for_user(7, 150, 0, 0, db_path)

    def test_invalid_ads_inputs(self, db_path):
        onboard(7, BEAUTY, db_path)
        with pytest.raises(InputValidationError):
            ads_for_user(7, 50, target_ltv_cac_ratio=0, db_path=db_path)
