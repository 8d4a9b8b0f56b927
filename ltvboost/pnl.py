"""Profit & Loss Calculator.

Derives COGS, gross profit, net profit and margins from a month of revenue
and the merchant's cost inputs:

- COGS = Revenue x (1 - Gross Margin %)
- Gross Profit = Revenue - COGS
- Net Profit = Gross Profit - Ad Spend - Operating Expenses
- Net Margin = Net Profit / Revenue x 100

Revenue is supplied by the caller (normally the latest store metrics), so the
calculator never touches storage.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from loguru import logger

from ltvboost.metrics import format_currency, round_money, safe_divide


@dataclass
class PNLInputs:
    """Cost inputs for a month; percentages are 0-100."""
    gross_margin_percentage: float
    monthly_ad_spend: float
    monthly_operating_expenses: float
    monthly_revenue: float


@dataclass
class PNLResult:
    monthly_revenue: float
    cogs: float
    gross_profit: float
    ad_spend: float
    operating_expenses: float
    net_profit: float
    gross_margin_percentage: float
    net_profit_margin: float

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0

    def to_dict(self) -> dict:
        return asdict(self)

    def summary(self) -> str:
        lines = [
            "═══ Profit & Loss ═══",
            f"Revenue:             {format_currency(self.monthly_revenue)}",
            f"COGS:                {format_currency(self.cogs)}",
            f"Gross Profit:        {format_currency(self.gross_profit)}"
            f" ({self.gross_margin_percentage:.1f}%)",
            f"Ad Spend:            {format_currency(self.ad_spend)}",
            f"Operating Expenses:  {format_currency(self.operating_expenses)}",
            "─" * 30,
            f"Net Profit:          {format_currency(self.net_profit)}",
            f"Net Margin:          {self.net_profit_margin:.2f}%",
        ]
        if self.net_profit < 0:
            lines.append("\n⚠️ Running at a loss — cut ad spend or raise margin")
        return "\n".join(lines)


def calculate_pnl(inputs: PNLInputs) -> PNLResult:
    """Calculate the monthly P&L from revenue and cost inputs."""
    revenue = inputs.monthly_revenue

    cogs = revenue * (1 - inputs.gross_margin_percentage / 100)
    gross_profit = revenue - cogs
    net_profit = gross_profit - inputs.monthly_ad_spend - inputs.monthly_operating_expenses

    # No revenue means no meaningful margin.
    net_profit_margin = safe_divide(net_profit, revenue, 0.0) * 100

    logger.debug("P&L: revenue={} net_profit={:.2f}", revenue, net_profit)

    return PNLResult(
        monthly_revenue=round_money(revenue),
        cogs=round_money(cogs),
        gross_profit=round_money(gross_profit),
        ad_spend=round_money(inputs.monthly_ad_spend),
        operating_expenses=round_money(inputs.monthly_operating_expenses),
        net_profit=round_money(net_profit),
        gross_margin_percentage=inputs.gross_margin_percentage,
        net_profit_margin=round(net_profit_margin, 2),
    )
