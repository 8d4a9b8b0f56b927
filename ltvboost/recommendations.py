"""LTV Recommendation Engine.

Maps a store's metrics to prioritized growth plays. Each rule is an
independent (predicate, producer) pair; rules run in declaration order and
every rule that matches appends its recommendations, so one store profile can
trigger several rules and the output is neither deduplicated nor capped.

A retention play is appended whenever fewer than MIN_RECOMMENDATIONS were
produced.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable


class SuggestionType(str, Enum):
    SUBSCRIPTION = "SUBSCRIPTION"
    BUNDLE = "BUNDLE"
    UPSELL = "UPSELL"
    CROSS_SELL = "CROSS_SELL"
    LOYALTY = "LOYALTY"
    RETENTION = "RETENTION"


class SuggestionPriority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


PRIORITY_ORDER = {
    SuggestionPriority.CRITICAL: 0,
    SuggestionPriority.HIGH: 1,
    SuggestionPriority.MEDIUM: 2,
    SuggestionPriority.LOW: 3,
}

MIN_RECOMMENDATIONS = 3


@dataclass(frozen=True)
class StoreMetrics:
    """Onboarding metrics; repeat_rate is a percentage (0-100)."""
    aov: float
    monthly_revenue: float
    repeat_rate: float
    niche: str


@dataclass(frozen=True)
class Recommendation:
    type: SuggestionType
    priority: SuggestionPriority
    title: str
    description: str
    estimated_impact: str

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        d["priority"] = self.priority.value
        return d


@dataclass(frozen=True)
class Rule:
    name: str
    applies: Callable[[StoreMetrics], bool]
    produce: Callable[[StoreMetrics], list[Recommendation]]


def _niche_has(metrics: StoreMetrics, *words: str) -> bool:
    niche = metrics.niche.lower()
    return any(w in niche for w in words)


# ── Producers ────────────────────────────────────────────────

def _subscription_and_bundle(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.SUBSCRIPTION, SuggestionPriority.HIGH,
            "Launch a Subscribe & Save Program",
            f"With an AOV of ${m.aov:.1f} and only {m.repeat_rate:.1f}% repeat customers, "
            "implementing a subscription model with 15-20% discount can dramatically "
            "increase LTV. Start with your top 3 products and offer monthly delivery options.",
            "+25-40% LTV",
        ),
        Recommendation(
            SuggestionType.BUNDLE, SuggestionPriority.HIGH,
            "Create Product Bundles to Increase AOV",
            "Bundle complementary products together at a 10-15% discount. This increases "
            "your average order value while providing perceived value to customers. "
            "Target bundles that push AOV above $50.",
            "+$15-25 AOV",
        ),
    ]


def _loyalty_and_winback(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.LOYALTY, SuggestionPriority.HIGH,
            "Implement a Points-Based Loyalty Program",
            "Your customers are spending decent amounts but not returning. Launch a loyalty "
            "program offering 1 point per $1 spent, with rewards at 100, 250, and 500 "
            "points. This incentivizes repeat purchases.",
            "+15-20% repeat rate",
        ),
        Recommendation(
            SuggestionType.RETENTION, SuggestionPriority.MEDIUM,
            "Set Up Win-Back Email Campaigns",
            "Create automated email sequences for customers who haven't purchased in 30, "
            "60, and 90 days. Offer exclusive discounts (10-15%) to bring them back.",
            "+10-15% LTV",
        ),
    ]


def _upsell_and_cross_sell(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.UPSELL, SuggestionPriority.CRITICAL,
            "Add Post-Purchase One-Click Upsells",
            f"With a high AOV of ${m.aov:.1f}, your customers are willing to spend. "
            "Implement post-purchase upsells offering complementary products at 20-30% off "
            "immediately after checkout. This can add $15-30 per order.",
            "+$20-35 AOV",
        ),
        Recommendation(
            SuggestionType.CROSS_SELL, SuggestionPriority.HIGH,
            "Optimize Product Page Cross-Sells",
            'Add "Frequently Bought Together" sections on your product pages. Use AI to '
            "recommend complementary products that increase cart value by 20-40%.",
            "+$25-40 AOV",
        ),
    ]


def _vip_program(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.LOYALTY, SuggestionPriority.MEDIUM,
            "Launch VIP Tier for Top Customers",
            f"With {m.repeat_rate:.1f}% repeat customers, create a VIP program for customers "
            "who've made 3+ purchases. Offer exclusive perks, early access, and special "
            "discounts to increase retention.",
            "+10-15% LTV",
        ),
        Recommendation(
            SuggestionType.UPSELL, SuggestionPriority.MEDIUM,
            "Create Exclusive Bundles for Repeat Customers",
            "Your repeat customers trust you. Offer them exclusive premium bundles or "
            "limited edition products at a slight premium to maximize revenue from your "
            "best customers.",
            "+$10-20 AOV",
        ),
    ]


def _bogo_quick_win(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.BUNDLE, SuggestionPriority.CRITICAL,
            "Quick Win: BOGO on Best-Selling Product",
            "Test a Buy One Get One 50% Off promotion on your top seller for 7 days. This "
            "low-risk strategy can quickly increase AOV and introduce customers to "
            "multiple products.",
            "+30-50% revenue",
        ),
    ]


def _beauty_box(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.SUBSCRIPTION, SuggestionPriority.HIGH,
            "Beauty Box Subscription Model",
            "Beauty products are perfect for subscriptions. Create a monthly beauty box "
            "with 3-5 sample or full-size products. Price it at $25-35/month for "
            "predictable recurring revenue.",
            "+50-80% LTV",
        ),
    ]


def _auto_replenishment(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.SUBSCRIPTION, SuggestionPriority.CRITICAL,
            "Auto-Replenishment Program",
            "Consumable products are ideal for auto-replenishment. Offer customers the "
            "option to receive products every 30, 60, or 90 days at a 15% discount.",
            "+60-100% LTV",
        ),
    ]


def _complete_the_look(m: StoreMetrics) -> list[Recommendation]:
    return [
        Recommendation(
            SuggestionType.CROSS_SELL, SuggestionPriority.HIGH,
            "Complete-the-Look Recommendations",
            'Add "Complete the Look" sections showing full outfit combinations. This '
            "increases units per transaction and AOV significantly in fashion.",
            "+$30-50 AOV",
        ),
    ]


POST_PURCHASE_SEQUENCE = Recommendation(
    SuggestionType.RETENTION, SuggestionPriority.MEDIUM,
    "Launch Post-Purchase Email Sequence",
    "Create a 5-email sequence over 30 days: Thank you → Product tips → Review request "
    "→ Related products → Exclusive offer. This nurtures customers and drives repeat "
    "purchases.",
    "+8-12% repeat rate",
)


RULES: tuple[Rule, ...] = (
    Rule("low_aov_low_repeat",
         lambda m: m.aov < 40 and m.repeat_rate < 20,
         _subscription_and_bundle),
    Rule("mid_aov_low_repeat",
         lambda m: 40 <= m.aov < 70 and m.repeat_rate < 25,
         _loyalty_and_winback),
    Rule("high_aov",
         lambda m: m.aov >= 70,
         _upsell_and_cross_sell),
    Rule("good_repeat_rate",
         lambda m: m.repeat_rate >= 25,
         _vip_program),
    Rule("low_revenue",
         lambda m: m.monthly_revenue < 10000,
         _bogo_quick_win),
    Rule("beauty_niche",
         lambda m: _niche_has(m, "beauty", "cosmetic"),
         _beauty_box),
    Rule("consumables_niche",
         lambda m: _niche_has(m, "food", "supplement"),
         _auto_replenishment),
    Rule("fashion_niche",
         lambda m: _niche_has(m, "fashion", "apparel"),
         _complete_the_look),
)


def matching_rules(metrics: StoreMetrics) -> list[str]:
    """Names of the rules that fire for these metrics, in order."""
    return [rule.name for rule in RULES if rule.applies(metrics)]


def generate_recommendations(metrics: StoreMetrics) -> list[Recommendation]:
    """Run every rule over the metrics and collect their recommendations."""
    recommendations: list[Recommendation] = []
    for rule in RULES:
        if rule.applies(metrics):
            recommendations.extend(rule.produce(metrics))

    # Always leave the merchant with a retention play.
    if len(recommendations) < MIN_RECOMMENDATIONS:
        recommendations.append(POST_PURCHASE_SEQUENCE)

    return recommendations


def sort_by_priority(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Stable sort, CRITICAL first; ties keep rule order."""
    return sorted(recommendations, key=lambda r: PRIORITY_ORDER[r.priority])


def format_recommendations(recommendations: list[Recommendation]) -> str:
    icons = {
        SuggestionPriority.CRITICAL: "🔴",
        SuggestionPriority.HIGH: "🟠",
        SuggestionPriority.MEDIUM: "🟡",
        SuggestionPriority.LOW: "⚪",
    }
    lines = [f"═══ {len(recommendations)} Recommended LTV Plays ═══"]
    for i, rec in enumerate(recommendations, 1):
        lines.append(
            f"\n{i}. {icons[rec.priority]} [{rec.priority.value}] {rec.title} "
            f"({rec.type.value}, {rec.estimated_impact})"
        )
        lines.append(f"   {rec.description}")
    return "\n".join(lines)
