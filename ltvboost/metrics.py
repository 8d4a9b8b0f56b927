"""Store metric primitives.

LTV, MER and target MER, plus the shared rounding and zero-denominator
helpers used by the other calculators.

LTV = AOV / (1 - repeat rate)

Two policies exist for repeat rates at or above 100%:
- CAPPED (dashboard figures): LTV is held at 10x AOV
- UNCAPPED (ads calculator): the raw formula, infinite at exactly 100%
"""

from __future__ import annotations

import math
from enum import Enum

LTV_CAP_MULTIPLIER = 10
TARGET_CAC_SHARE = 0.3  # CAC should stay near 30% of LTV
DEFAULT_TARGET_MER = 3.0


class LTVPolicy(str, Enum):
    CAPPED = "capped"
    UNCAPPED = "uncapped"


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` when the denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def round_money(value: float) -> float:
    """Round a money value to cents. Non-finite values pass through."""
    if not math.isfinite(value):
        return value
    return round(value, 2)


def calculate_ltv(aov: float, repeat_rate: float,
                  policy: LTVPolicy = LTVPolicy.CAPPED) -> float:
    """Customer lifetime value from AOV and repeat rate (0-100)."""
    rate = repeat_rate / 100
    if policy == LTVPolicy.CAPPED:
        if rate >= 1:
            return aov * LTV_CAP_MULTIPLIER
        return aov / (1 - rate)

    # Uncapped: 100% repeat means the customer never churns.
    if rate == 1:
        return math.inf if aov >= 0 else -math.inf
    return aov / (1 - rate)


def calculate_mer(revenue: float, ad_spend: float) -> float:
    """Marketing efficiency ratio; 0 when there is no ad spend."""
    return safe_divide(revenue, ad_spend, 0.0)


def get_target_mer(aov: float, repeat_rate: float) -> float:
    """MER a store should aim for given its LTV."""
    ltv = calculate_ltv(aov, repeat_rate)
    cac = ltv * TARGET_CAC_SHARE
    return aov / cac if cac > 0 else DEFAULT_TARGET_MER


def format_currency(amount: float) -> str:
    """Format as US dollars, e.g. ``$1,234.50`` or ``-$12.00``."""
    if math.isnan(amount):
        return "n/a"
    if math.isinf(amount):
        return "∞" if amount > 0 else "-∞"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def summarize_store(aov: float, monthly_revenue: float, repeat_rate: float) -> dict:
    """Headline figures for a store's dashboard cards."""
    return {
        "aov": aov,
        "monthly_revenue": monthly_revenue,
        "repeat_rate": repeat_rate,
        "ltv": round_money(calculate_ltv(aov, repeat_rate)),
        "target_mer": round(get_target_mer(aov, repeat_rate), 1),
    }
