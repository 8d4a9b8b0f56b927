"""Input validator for the calculators.

Checks merchant-entered figures before they reach a calculator:
- Money fields must be positive / non-negative
- Percentages must sit in 0-100
- Counts must be whole and non-negative
- Warnings flag inputs that compute but produce odd numbers
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ltvboost.ads_calculator import AdsCalculatorInputs
from ltvboost.bundles import BundleTier
from ltvboost.creatives import CreativeData
from ltvboost.pnl import PNLInputs
from ltvboost.recommendations import StoreMetrics


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    severity: Severity
    field: str
    message: str
    suggestion: Optional[str] = None


@dataclass
class ValidationResult:
    subject: str
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(i.severity == Severity.ERROR for i in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.WARNING)

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        return next((i for i in self.issues if i.severity == Severity.ERROR), None)

    def error(self, field_name: str, message: str, suggestion: Optional[str] = None):
        self.issues.append(ValidationIssue(Severity.ERROR, field_name, message, suggestion))

    def warn(self, field_name: str, message: str, suggestion: Optional[str] = None):
        self.issues.append(ValidationIssue(Severity.WARNING, field_name, message, suggestion))

    def raise_for_errors(self):
        if not self.passed:
            raise InputValidationError(self)

    def summary(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        return (
            f"{status} | {self.subject} | "
            f"Errors: {self.error_count} | Warnings: {self.warning_count}"
        )


class InputValidationError(ValueError):
    """Raised by callers that want an exception instead of a result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        issue = result.first_error
        super().__init__(f"{issue.field}: {issue.message}" if issue else result.summary())


# ── Field checks ──────────────────────────────────────────────

def _finite(value) -> bool:
    return value is not None and math.isfinite(value)


def _positive(result: ValidationResult, name: str, value: float, label: str):
    if not _finite(value) or value <= 0:
        result.error(name, f"{label} must be positive")


def _non_negative(result: ValidationResult, name: str, value: float, label: str):
    if not _finite(value) or value < 0:
        result.error(name, f"{label} cannot be negative")


def _percentage(result: ValidationResult, name: str, value: float, label: str):
    if not _finite(value) or not 0 <= value <= 100:
        result.error(name, f"{label} must be between 0 and 100")


def _whole(result: ValidationResult, name: str, value, label: str):
    if isinstance(value, bool) or not isinstance(value, int):
        if not (isinstance(value, float) and value.is_integer()):
            result.error(name, f"{label} must be a whole number")
            return
    if value < 0:
        result.error(name, f"{label} cannot be negative")


# ── Validators ────────────────────────────────────────────────

def validate_store_metrics(metrics: StoreMetrics) -> ValidationResult:
    result = ValidationResult("store metrics")
    _positive(result, "aov", metrics.aov, "AOV")
    _positive(result, "monthly_revenue", metrics.monthly_revenue, "Monthly revenue")
    _percentage(result, "repeat_rate", metrics.repeat_rate, "Repeat rate")
    if not (metrics.niche or "").strip():
        result.error("niche", "Niche is required", "e.g. beauty, supplements, apparel")
    return result


def validate_ltv_inputs(aov: float, repeat_rate: float,
                        revenue: Optional[float] = None,
                        ad_spend: Optional[float] = None) -> ValidationResult:
    result = ValidationResult("LTV inputs")
    _positive(result, "aov", aov, "AOV")
    _percentage(result, "repeat_rate", repeat_rate, "Repeat rate")
    if revenue is not None:
        _non_negative(result, "revenue", revenue, "Revenue")
    if ad_spend is not None:
        _non_negative(result, "ad_spend", ad_spend, "Ad spend")
    return result


def validate_pnl_inputs(inputs: PNLInputs) -> ValidationResult:
    result = ValidationResult("P&L inputs")
    _percentage(result, "gross_margin_percentage", inputs.gross_margin_percentage,
                "Gross margin")
    _non_negative(result, "monthly_ad_spend", inputs.monthly_ad_spend, "Ad spend")
    _non_negative(result, "monthly_operating_expenses", inputs.monthly_operating_expenses,
                  "Operating expenses")
    if inputs.monthly_revenue == 0:
        result.warn("monthly_revenue", "No revenue recorded; net margin will read 0%",
                    "Update your store metrics")
    return result


def validate_ads_inputs(inputs: AdsCalculatorInputs) -> ValidationResult:
    result = validate_store_metrics(StoreMetrics(
        aov=inputs.aov,
        monthly_revenue=inputs.monthly_revenue,
        repeat_rate=inputs.repeat_rate,
        niche=inputs.niche,
    ))
    result.subject = "ads calculator inputs"
    _percentage(result, "gross_margin_percentage", inputs.gross_margin_percentage,
                "Gross margin")
    _positive(result, "target_ltv_cac_ratio", inputs.target_ltv_cac_ratio,
              "Target LTV:CAC ratio")
    _non_negative(result, "current_ad_spend", inputs.current_ad_spend, "Current ad spend")
    if inputs.repeat_rate is not None and inputs.repeat_rate >= 100:
        result.warn("repeat_rate", "A 100% repeat rate makes LTV unbounded",
                    "Use your measured repeat rate, typically below 60%")
    return result


def validate_bundle_tier(tier: BundleTier) -> ValidationResult:
    result = ValidationResult(f"bundle tier {tier.name!r}")
    _whole(result, "quantity", tier.quantity, "Quantity")
    if result.passed and tier.quantity == 0:
        result.error("quantity", "Quantity must be at least 1")
    _percentage(result, "discount_percent", tier.discount_percent, "Discount")
    return result


def validate_creative(data: CreativeData) -> ValidationResult:
    result = ValidationResult(f"creative {data.name!r}")
    _non_negative(result, "spend", data.spend, "Spend")
    _whole(result, "impressions", data.impressions, "Impressions")
    _whole(result, "clicks", data.clicks, "Clicks")
    _whole(result, "purchases", data.purchases, "Purchases")
    _percentage(result, "cogs_percentage", data.cogs_percentage, "COGS percentage")
    if not result.passed:
        return result
    if data.clicks > data.impressions:
        result.warn("clicks", "More clicks than impressions", "Check the ad platform export")
    if data.purchases > data.clicks:
        result.warn("purchases", "More purchases than clicks",
                    "View-through purchases inflate ROAS")
    return result
