"""Ads Scalability Calculator.

Works out how much a store can afford to pay for a customer, and how far ad
spend can be pushed, from its LTV and gross margin.

- Max Profitable CAC is the break-even point: gross profit per customer.
- Target CAC keeps the chosen LTV:CAC ratio (3:1 is the usual benchmark).
- Max scalable ad spend is a fixed share of monthly revenue.

Current CAC is not tracked yet, so scalability is judged against an assumed
current CAC of 80% of target. Under that proxy every finite target is
scalable; pass a measured CAC to :func:`assess_scalability` once one exists.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from loguru import logger

from ltvboost.metrics import LTVPolicy, calculate_ltv, format_currency, round_money

ASSUMED_CURRENT_CAC_FACTOR = 0.8
MAX_AD_SPEND_SHARE = 0.20  # aggressive scaling benchmark


@dataclass
class AdsCalculatorInputs:
    aov: float
    monthly_revenue: float
    repeat_rate: float
    niche: str
    gross_margin_percentage: float
    target_ltv_cac_ratio: float = 3.0
    current_ad_spend: float = 0.0


@dataclass
class AdsCalculatorResults:
    ltv: float
    gross_profit_per_customer: float
    max_profitable_cac: float
    target_cac: float
    max_scalable_ad_spend: float
    current_ltv_cac_ratio: float  # echo of the target until CAC is tracked
    is_scalable: bool
    scaling_recommendation: str

    def to_dict(self) -> dict:
        return asdict(self)

    def summary(self) -> str:
        status = "✅ SCALE" if self.is_scalable else "⛔ HOLD"
        return "\n".join([
            f"═══ Ads Scalability: {status} ═══",
            f"LTV:                    {format_currency(self.ltv)}",
            f"Gross Profit/Customer:  {format_currency(self.gross_profit_per_customer)}",
            f"Max Profitable CAC:     {format_currency(self.max_profitable_cac)}",
            f"Target CAC:             {format_currency(self.target_cac)}",
            f"Max Scalable Ad Spend:  {format_currency(self.max_scalable_ad_spend)}/mo",
            "",
            self.scaling_recommendation,
        ])


def assess_scalability(target_cac: float, current_cac: Optional[float] = None) -> bool:
    """True when the current (or assumed) CAC is below the target CAC."""
    if current_cac is None:
        current_cac = target_cac * ASSUMED_CURRENT_CAC_FACTOR
    return current_cac < target_cac


def scaling_recommendation(
    is_scalable: bool,
    target_cac: float,
    max_profitable_cac: float,
    max_scalable_ad_spend: float,
    target_ratio: float,
) -> str:
    """Advice text for either outcome of the scalability check."""
    if is_scalable:
        return (
            f"Your estimated Target CAC is ${target_cac:.2f}. Since your LTV:CAC ratio "
            f"is healthy, you can safely scale your ad spend up to "
            f"${max_scalable_ad_spend:.2f} per month. Focus on maintaining a LTV:CAC "
            f"ratio above {target_ratio:g}:1."
        )
    return (
        f"Your estimated Max Profitable CAC is ${max_profitable_cac:.2f}. Your current "
        f"ad performance suggests you are operating too close to or above your "
        f"break-even point. Focus on improving your LTV (AOV and Repeat Rate) before "
        f"scaling ad spend."
    )


def calculate_ads_scalability(inputs: AdsCalculatorInputs) -> AdsCalculatorResults:
    """Calculate max profitable CAC, target CAC and scalable ad spend."""
    ltv = calculate_ltv(inputs.aov, inputs.repeat_rate, LTVPolicy.UNCAPPED)
    # Zero margin earns nothing per customer, even when LTV is unbounded.
    if inputs.gross_margin_percentage == 0:
        gross_profit_per_customer = 0.0
    else:
        gross_profit_per_customer = ltv * (inputs.gross_margin_percentage / 100)
    max_profitable_cac = gross_profit_per_customer
    target_cac = ltv / inputs.target_ltv_cac_ratio
    max_scalable_ad_spend = inputs.monthly_revenue * MAX_AD_SPEND_SHARE

    is_scalable = assess_scalability(target_cac)
    advice = scaling_recommendation(
        is_scalable,
        target_cac,
        max_profitable_cac,
        max_scalable_ad_spend,
        inputs.target_ltv_cac_ratio,
    )
    logger.debug("Ads calculator: ltv={} target_cac={} scalable={}",
                 ltv, target_cac, is_scalable)

    return AdsCalculatorResults(
        ltv=round_money(ltv),
        gross_profit_per_customer=round_money(gross_profit_per_customer),
        max_profitable_cac=round_money(max_profitable_cac),
        target_cac=round_money(target_cac),
        max_scalable_ad_spend=round_money(max_scalable_ad_spend),
        current_ltv_cac_ratio=inputs.target_ltv_cac_ratio,
        is_scalable=is_scalable,
        scaling_recommendation=advice,
    )
