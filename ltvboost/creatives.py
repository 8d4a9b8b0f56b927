"""Ad Creative Profitability.

Score each ad creative on CTR, CPC, ROAS and profit against the break-even
ROAS set by product cost, then rank them: the most profitable to scale and the
unprofitable ones to kill.

Revenue per purchase is not tracked per creative yet, so every purchase is
valued at ASSUMED_AOV.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable

from ltvboost.metrics import format_currency, round_money, safe_divide

ASSUMED_AOV = 50.0


@dataclass
class CreativeData:
    name: str
    spend: float
    impressions: int
    clicks: int
    purchases: int
    cogs_percentage: float = 40.0


@dataclass
class CreativeResult:
    name: str
    spend: float
    impressions: int
    clicks: int
    purchases: int
    cogs_percentage: float
    ctr: float
    cpc: float
    revenue: float
    roas: float
    cogs: float
    profit: float
    breakeven_roas: float
    is_profitable: bool

    def to_dict(self) -> dict:
        return asdict(self)


SAMPLE_CREATIVES = [
    CreativeData("Video Ad 1", spend=100, impressions=10000, clicks=500, purchases=5),
    CreativeData("Image Ad 2", spend=150, impressions=15000, clicks=300, purchases=2),
    CreativeData("UGC Ad 3", spend=50, impressions=8000, clicks=600, purchases=8),
]


def breakeven_roas(cogs_percentage: float) -> float:
    """ROAS at which gross margin exactly covers ad spend."""
    gross_margin = 1 - cogs_percentage / 100
    if gross_margin <= 0:
        return math.inf
    return 1 / gross_margin


def evaluate_creative(data: CreativeData) -> CreativeResult:
    """Compute delivery and profit metrics for one creative."""
    target = breakeven_roas(data.cogs_percentage)
    ctr = safe_divide(data.clicks, data.impressions) * 100
    cpc = safe_divide(data.spend, data.clicks)
    revenue = data.purchases * ASSUMED_AOV
    roas = safe_divide(revenue, data.spend)
    cogs = revenue * (data.cogs_percentage / 100)
    profit = revenue - data.spend - cogs

    return CreativeResult(
        name=data.name,
        spend=data.spend,
        impressions=data.impressions,
        clicks=data.clicks,
        purchases=data.purchases,
        cogs_percentage=data.cogs_percentage,
        ctr=round(ctr, 2),
        cpc=round_money(cpc),
        revenue=round_money(revenue),
        roas=round(roas, 2),
        cogs=round_money(cogs),
        profit=round_money(profit),
        breakeven_roas=round_money(target),
        is_profitable=roas >= target,
    )


def evaluate_creatives(creatives: Iterable[CreativeData]) -> list[CreativeResult]:
    """Evaluate all creatives, most profitable first."""
    results = [evaluate_creative(c) for c in creatives]
    return sorted(results, key=lambda r: r.profit, reverse=True)


def top_performers(results: list[CreativeResult], limit: int = 3) -> list[CreativeResult]:
    ranked = sorted(results, key=lambda r: r.profit, reverse=True)
    return ranked[:limit]


def kill_list(results: list[CreativeResult]) -> list[CreativeResult]:
    """Creatives whose ROAS is below break-even."""
    return [r for r in results if not r.is_profitable]


def format_report(results: list[CreativeResult]) -> str:
    lines = [
        "═══ Creative Performance ═══",
        f"{'Creative':<16} {'Spend':>10} {'CTR':>7} {'CPC':>7} {'ROAS':>6} {'Profit':>11}",
        "─" * 62,
    ]
    for r in results:
        marker = "" if r.is_profitable else " ❌"
        lines.append(
            f"{r.name:<16} {format_currency(r.spend):>10} {r.ctr:>6.2f}% "
            f"{format_currency(r.cpc):>7} {r.roas:>5.2f}x {format_currency(r.profit):>11}{marker}"
        )

    winners = top_performers(results)
    losers = kill_list(results)
    if winners:
        lines.append(f"\n🏆 Scale: {', '.join(r.name for r in winners)}")
    if losers:
        lines.append(f"🔪 Kill: {', '.join(r.name for r in losers)}")
    return "\n".join(lines)
