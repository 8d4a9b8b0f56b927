"""SQLite-backed store for merchant metrics and suggestions.

Each onboarding submission saves an immutable store_metrics row; the newest
row per user is the one calculators read. Recommendations generated from a
submission are saved as suggestions the merchant can mark implemented. Older
suggestions are kept when newer metrics arrive.
"""
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from ltvboost.ads_calculator import (
    AdsCalculatorInputs,
    AdsCalculatorResults,
    calculate_ads_scalability,
)
from ltvboost.config import config
from ltvboost.pnl import PNLInputs, PNLResult, calculate_pnl
from ltvboost.recommendations import (
    Recommendation,
    StoreMetrics,
    SuggestionPriority,
    SuggestionType,
    generate_recommendations,
)
from ltvboost.validator import (
    validate_ads_inputs,
    validate_pnl_inputs,
    validate_store_metrics,
)


class MetricsNotFound(LookupError):
    """The user has not submitted store metrics yet."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            f"No store metrics found for user {user_id}. Complete onboarding first."
        )


@contextmanager
def _get_db(db_path: Optional[Path] = None):
    """Context manager for database connections."""
    path = Path(db_path or config.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db(db_path: Optional[Path] = None):
    """Initialize database tables."""
    with _get_db(db_path) as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS store_metrics (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                aov REAL NOT NULL,
                monthly_revenue REAL NOT NULL,
                repeat_rate REAL NOT NULL,
                niche TEXT NOT NULL,
                created_at REAL NOT NULL
            );

            CREATE TABLE IF NOT EXISTS suggestions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                store_metrics_id INTEGER NOT NULL REFERENCES store_metrics(id),
                type TEXT NOT NULL,
                priority TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                estimated_impact TEXT NOT NULL,
                implemented INTEGER NOT NULL DEFAULT 0,
                implemented_at REAL,
                created_at REAL NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_metrics_user ON store_metrics(user_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_sugg_user ON suggestions(user_id);
            CREATE INDEX IF NOT EXISTS idx_sugg_metrics ON suggestions(store_metrics_id);
        """)


@dataclass
class StoredMetrics:
    id: int
    user_id: int
    metrics: StoreMetrics
    created_at: float


@dataclass
class StoredSuggestion:
    id: int
    user_id: int
    store_metrics_id: int
    recommendation: Recommendation
    implemented: bool = False
    implemented_at: Optional[float] = None
    created_at: float = 0.0


@dataclass
class OnboardingResult:
    metrics_id: int
    recommendations: list[Recommendation] = field(default_factory=list)


def _row_to_metrics(row: sqlite3.Row) -> StoredMetrics:
    return StoredMetrics(
        id=row["id"],
        user_id=row["user_id"],
        metrics=StoreMetrics(
            aov=row["aov"],
            monthly_revenue=row["monthly_revenue"],
            repeat_rate=row["repeat_rate"],
            niche=row["niche"],
        ),
        created_at=row["created_at"],
    )


def _row_to_suggestion(row: sqlite3.Row) -> StoredSuggestion:
    return StoredSuggestion(
        id=row["id"],
        user_id=row["user_id"],
        store_metrics_id=row["store_metrics_id"],
        recommendation=Recommendation(
            type=SuggestionType(row["type"]),
            priority=SuggestionPriority(row["priority"]),
            title=row["title"],
            description=row["description"],
            estimated_impact=row["estimated_impact"],
        ),
        implemented=bool(row["implemented"]),
        implemented_at=row["implemented_at"],
        created_at=row["created_at"],
    )


def _insert_metrics(conn: sqlite3.Connection, user_id: int, metrics: StoreMetrics) -> int:
    cur = conn.execute(
        """INSERT INTO store_metrics
           (user_id, aov, monthly_revenue, repeat_rate, niche, created_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, metrics.aov, metrics.monthly_revenue, metrics.repeat_rate,
         metrics.niche, time.time()),
    )
    return cur.lastrowid


def _insert_suggestions(conn: sqlite3.Connection, user_id: int, metrics_id: int,
                        recommendations: list[Recommendation]) -> list[int]:
    now = time.time()
    ids = []
    for rec in recommendations:
        cur = conn.execute(
            """INSERT INTO suggestions
               (user_id, store_metrics_id, type, priority, title,
                description, estimated_impact, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, metrics_id, rec.type.value, rec.priority.value, rec.title,
             rec.description, rec.estimated_impact, now),
        )
        ids.append(cur.lastrowid)
    return ids


def save_store_metrics(user_id: int, metrics: StoreMetrics,
                       db_path: Optional[Path] = None) -> int:
    """Insert a metrics submission and return its id."""
    with _get_db(db_path) as conn:
        return _insert_metrics(conn, user_id, metrics)


def get_latest_metrics(user_id: int, db_path: Optional[Path] = None) -> Optional[StoredMetrics]:
    """Most recent metrics submission for a user, if any."""
    with _get_db(db_path) as conn:
        row = conn.execute(
            """SELECT * FROM store_metrics WHERE user_id = ?
               ORDER BY created_at DESC, id DESC LIMIT 1""",
            (user_id,),
        ).fetchone()
    return _row_to_metrics(row) if row else None


def save_suggestions(user_id: int, metrics_id: int, recommendations: list[Recommendation],
                     db_path: Optional[Path] = None) -> list[int]:
    with _get_db(db_path) as conn:
        return _insert_suggestions(conn, user_id, metrics_id, recommendations)


def onboard(user_id: int, metrics: StoreMetrics,
            db_path: Optional[Path] = None) -> OnboardingResult:
    """Validate and save metrics, then generate and save recommendations.

    Metrics and suggestions are written in one transaction. Raises
    InputValidationError when the metrics are invalid.
    """
    validate_store_metrics(metrics).raise_for_errors()

    recommendations = generate_recommendations(metrics)
    with _get_db(db_path) as conn:
        metrics_id = _insert_metrics(conn, user_id, metrics)
        _insert_suggestions(conn, user_id, metrics_id, recommendations)

    logger.info("Onboarded user {} (metrics #{}, {} suggestions)",
                user_id, metrics_id, len(recommendations))
    return OnboardingResult(metrics_id=metrics_id, recommendations=recommendations)


def list_suggestions(user_id: int, metrics_id: Optional[int] = None,
                     db_path: Optional[Path] = None) -> list[StoredSuggestion]:
    """Suggestions for a user, optionally limited to one metrics submission."""
    query = "SELECT * FROM suggestions WHERE user_id = ?"
    params: list = [user_id]
    if metrics_id is not None:
        query += " AND store_metrics_id = ?"
        params.append(metrics_id)
    query += " ORDER BY id"

    with _get_db(db_path) as conn:
        rows = conn.execute(query, params).fetchall()
    return [_row_to_suggestion(r) for r in rows]


def set_implemented(user_id: int, suggestion_id: int, implemented: bool,
                    db_path: Optional[Path] = None) -> bool:
    """Mark a suggestion (not) implemented. False if the user does not own it."""
    with _get_db(db_path) as conn:
        cur = conn.execute(
            """UPDATE suggestions SET implemented = ?, implemented_at = ?
               WHERE id = ? AND user_id = ?""",
            (int(implemented), time.time() if implemented else None,
             suggestion_id, user_id),
        )
        updated = cur.rowcount > 0

    if updated:
        logger.info("User {} marked suggestion #{} implemented={}",
                    user_id, suggestion_id, implemented)
    else:
        logger.warning("User {} tried to toggle unknown suggestion #{}",
                       user_id, suggestion_id)
    return updated


def _require_metrics(user_id: int, db_path: Optional[Path]) -> StoreMetrics:
    latest = get_latest_metrics(user_id, db_path)
    if latest is None:
        raise MetricsNotFound(user_id)
    return latest.metrics


def pnl_for_user(user_id: int, gross_margin_percentage: float, monthly_ad_spend: float,
                 monthly_operating_expenses: float,
                 db_path: Optional[Path] = None) -> PNLResult:
    """P&L using the revenue from the user's latest metrics."""
    metrics = _require_metrics(user_id, db_path)
    inputs = PNLInputs(
        gross_margin_percentage=gross_margin_percentage,
        monthly_ad_spend=monthly_ad_spend,
        monthly_operating_expenses=monthly_operating_expenses,
        monthly_revenue=metrics.monthly_revenue,
    )
    validate_pnl_inputs(inputs).raise_for_errors()
    return calculate_pnl(inputs)


def ads_for_user(user_id: int, gross_margin_percentage: float,
                 target_ltv_cac_ratio: float = 3.0, current_ad_spend: float = 0.0,
                 db_path: Optional[Path] = None) -> AdsCalculatorResults:
    """Ads scalability using the user's latest metrics."""
    metrics = _require_metrics(user_id, db_path)
    inputs = AdsCalculatorInputs(
        aov=metrics.aov,
        monthly_revenue=metrics.monthly_revenue,
        repeat_rate=metrics.repeat_rate,
        niche=metrics.niche,
        gross_margin_percentage=gross_margin_percentage,
        target_ltv_cac_ratio=target_ltv_cac_ratio,
        current_ad_spend=current_ad_spend,
    )
    validate_ads_inputs(inputs).raise_for_errors()
    return calculate_ads_scalability(inputs)
