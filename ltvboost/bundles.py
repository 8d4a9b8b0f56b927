"""Bundle Tier Builder.

Price quantity-discount bundles ("Buy 2 save 10%") and check what each tier
leaves after product cost.

Per tier:
- Final price = base price x quantity, less the tier discount
- Profit = final price - COGS per unit x quantity
- Margin = profit / final price, as a whole percentage
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Optional

from ltvboost.metrics import format_currency, round_money

DEFAULT_BASE_PRICE = 39.99
DEFAULT_COGS_PER_UNIT = 10.0


@dataclass
class BundleTier:
    name: str
    quantity: int
    discount_percent: float = 0.0


@dataclass
class BundleTierResult:
    name: str
    quantity: int
    discount_percent: float
    total_before_discount: float
    discount: float
    final_price: float
    total_cogs: float
    profit: float
    margin: int  # whole percent

    def to_dict(self) -> dict:
        return asdict(self)


def default_tiers() -> list[BundleTier]:
    return [
        BundleTier(name="Buy 2", quantity=2, discount_percent=10),
        BundleTier(name="Buy 3", quantity=3, discount_percent=15),
    ]


def evaluate_bundle_tier(base_price: float, cogs_per_unit: float,
                         tier: BundleTier) -> BundleTierResult:
    """Price a single tier and compute its profit and margin."""
    total_before_discount = base_price * tier.quantity
    discount = total_before_discount * (tier.discount_percent / 100)
    final_price = total_before_discount - discount
    total_cogs = cogs_per_unit * tier.quantity
    profit = final_price - total_cogs
    # Half-up rounding; a free or negative-priced bundle has no margin.
    margin = math.floor(profit / final_price * 100 + 0.5) if final_price > 0 else 0

    return BundleTierResult(
        name=tier.name,
        quantity=tier.quantity,
        discount_percent=tier.discount_percent,
        total_before_discount=round_money(total_before_discount),
        discount=round_money(discount),
        final_price=round_money(final_price),
        total_cogs=round_money(total_cogs),
        profit=round_money(profit),
        margin=int(margin),
    )


@dataclass
class BundleBuilder:
    """An editable, ordered list of tiers sharing one base price and unit cost."""
    base_price: float = DEFAULT_BASE_PRICE
    cogs_per_unit: float = DEFAULT_COGS_PER_UNIT
    tiers: list[BundleTier] = field(default_factory=default_tiers)

    def add_tier(self, name: Optional[str] = None, quantity: int = 2,
                 discount_percent: float = 10.0) -> BundleTier:
        """Append a tier, "Bundle N" x2 at 10% off unless given."""
        tier = BundleTier(
            name=name or f"Bundle {len(self.tiers) + 1}",
            quantity=quantity,
            discount_percent=discount_percent,
        )
        self.tiers.append(tier)
        return tier

    def remove_tier(self, index: int) -> BundleTier:
        return self.tiers.pop(index)

    def update_tier(self, index: int, **fields) -> BundleTier:
        tier = self.tiers[index]
        for key, value in fields.items():
            if not hasattr(tier, key):
                raise AttributeError(f"BundleTier has no field {key!r}")
            setattr(tier, key, value)
        return tier

    def evaluate(self) -> list[BundleTierResult]:
        return [evaluate_bundle_tier(self.base_price, self.cogs_per_unit, t)
                for t in self.tiers]

    def best_tier(self) -> Optional[BundleTierResult]:
        results = self.evaluate()
        if not results:
            return None
        return max(results, key=lambda r: r.profit)

    def format_table(self) -> str:
        lines = [
            "═══ Bundle Tiers ═══",
            f"Base price: {format_currency(self.base_price)}  |  "
            f"COGS/unit: {format_currency(self.cogs_per_unit)}",
            "",
            f"{'Tier':<14} {'Qty':>4} {'Off':>6} {'Price':>11} {'Profit':>11} {'Margin':>7}",
            "─" * 58,
        ]
        for r in self.evaluate():
            lines.append(
                f"{r.name:<14} {r.quantity:>4} {r.discount_percent:>5.0f}% "
                f"{format_currency(r.final_price):>11} {format_currency(r.profit):>11} "
                f"{r.margin:>6}%"
            )
        return "\n".join(lines)
