"""CLI tool for LTVBoost.

Usage:
    python -m ltvboost.cli ltv --aov 50 --repeat-rate 20 [--uncapped]
    python -m ltvboost.cli pnl --revenue 20000 --margin 50 --ad-spend 5000 --opex 1000
    python -m ltvboost.cli ads --aov 50 --revenue 10000 --repeat-rate 20 --margin 50
    python -m ltvboost.cli bundle --price 39.99 --cogs 10 [--tier "Buy 2:2:10" ...]
    python -m ltvboost.cli creatives [--file creatives.json] [--format csv]
    python -m ltvboost.cli recommend --aov 30 --revenue 5000 --repeat-rate 10 --niche beauty
    python -m ltvboost.cli onboard --user 1 --aov 30 --revenue 5000 --repeat-rate 10 --niche beauty
    python -m ltvboost.cli suggestions --user 1
    python -m ltvboost.cli toggle --user 1 --id 3 [--undo]
"""
import argparse
import json
import sys

from ltvboost.export import to_json
from ltvboost.log import setup_logging


def _fail(result):
    """Print validation issues and exit."""
    print(result.summary())
    for issue in result.issues:
        icon = {"error": "❌", "warning": "⚠️", "info": "ℹ️"}[issue.severity.value]
        print(f"  {icon} [{issue.field}] {issue.message}")
        if issue.suggestion:
            print(f"     💡 {issue.suggestion}")
    sys.exit(1)


def _emit(result, as_json: bool):
    if as_json:
        print(to_json(result.to_dict()))
    else:
        print(result.summary())


def cmd_ltv(args):
    """Show LTV, MER and target MER for a store."""
    from ltvboost.metrics import (
        LTVPolicy, calculate_ltv, calculate_mer, format_currency, get_target_mer,
    )
    from ltvboost.validator import validate_ltv_inputs

    check = validate_ltv_inputs(args.aov, args.repeat_rate, args.revenue, args.ad_spend)
    if not check.passed:
        _fail(check)

    policy = LTVPolicy.UNCAPPED if args.uncapped else LTVPolicy.CAPPED
    ltv = calculate_ltv(args.aov, args.repeat_rate, policy)
    print(f"📈 LTV ({policy.value}): {format_currency(ltv)}")
    print(f"🎯 Target MER: {get_target_mer(args.aov, args.repeat_rate):.1f}x")
    if args.revenue is not None and args.ad_spend is not None:
        print(f"📊 Current MER: {calculate_mer(args.revenue, args.ad_spend):.2f}x")


def cmd_pnl(args):
    """Calculate a monthly P&L."""
    from ltvboost.pnl import PNLInputs, calculate_pnl
    from ltvboost.validator import validate_pnl_inputs

    inputs = PNLInputs(
        gross_margin_percentage=args.margin,
        monthly_ad_spend=args.ad_spend,
        monthly_operating_expenses=args.opex,
        monthly_revenue=args.revenue,
    )
    check = validate_pnl_inputs(inputs)
    if not check.passed:
        _fail(check)
    _emit(calculate_pnl(inputs), args.json)


def cmd_ads(args):
    """Calculate ad spend scalability."""
    from ltvboost.ads_calculator import AdsCalculatorInputs, calculate_ads_scalability
    from ltvboost.validator import validate_ads_inputs

    inputs = AdsCalculatorInputs(
        aov=args.aov,
        monthly_revenue=args.revenue,
        repeat_rate=args.repeat_rate,
        niche=args.niche,
        gross_margin_percentage=args.margin,
        target_ltv_cac_ratio=args.ratio,
        current_ad_spend=args.ad_spend,
    )
    check = validate_ads_inputs(inputs)
    if not check.passed:
        _fail(check)
    _emit(calculate_ads_scalability(inputs), args.json)


def _parse_tier(value: str):
    """Parse ``name:quantity:discount``."""
    from ltvboost.bundles import BundleTier

    parts = value.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Tier must be name:quantity:discount, got {value!r}")
    try:
        return BundleTier(name=parts[0], quantity=int(parts[1]),
                          discount_percent=float(parts[2]))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid tier numbers in {value!r}")


def cmd_bundle(args):
    """Price bundle tiers."""
    from ltvboost.bundles import BundleBuilder
    from ltvboost.validator import validate_bundle_tier

    builder = BundleBuilder(base_price=args.price, cogs_per_unit=args.cogs)
    if args.tier:
        builder.tiers = list(args.tier)
    for tier in builder.tiers:
        check = validate_bundle_tier(tier)
        if not check.passed:
            _fail(check)

    if args.json:
        print(to_json([r.to_dict() for r in builder.evaluate()]))
        return
    print(builder.format_table())
    best = builder.best_tier()
    if best:
        print(f"\n🏆 Most profitable tier: {best.name}")


def cmd_creatives(args):
    """Rank ad creatives by profit."""
    from ltvboost.creatives import (
        SAMPLE_CREATIVES, CreativeData, evaluate_creatives, format_report,
    )
    from ltvboost.export import export_records
    from ltvboost.validator import validate_creative

    if args.file:
        with open(args.file) as f:
            creatives = [CreativeData(**item) for item in json.load(f)]
    else:
        creatives = SAMPLE_CREATIVES

    for creative in creatives:
        check = validate_creative(creative)
        if not check.passed:
            _fail(check)

    results = evaluate_creatives(creatives)
    if args.format:
        data = export_records([r.to_dict() for r in results], args.format)
        if data is None:
            print(f"❌ Unsupported format: {args.format} (csv, json, txt)")
            sys.exit(1)
        print(data)
        return
    print(format_report(results))


def _metrics_from_args(args):
    from ltvboost.recommendations import StoreMetrics

    return StoreMetrics(
        aov=args.aov,
        monthly_revenue=args.revenue,
        repeat_rate=args.repeat_rate,
        niche=args.niche,
    )


def cmd_recommend(args):
    """Generate recommendations without saving them."""
    from ltvboost.recommendations import (
        format_recommendations, generate_recommendations, sort_by_priority,
    )
    from ltvboost.validator import validate_store_metrics

    metrics = _metrics_from_args(args)
    check = validate_store_metrics(metrics)
    if not check.passed:
        _fail(check)

    recs = generate_recommendations(metrics)
    if args.by_priority:
        recs = sort_by_priority(recs)
    if args.json:
        print(to_json([r.to_dict() for r in recs]))
        return
    print(format_recommendations(recs))


def cmd_onboard(args):
    """Save store metrics and their recommendations."""
    from ltvboost import store
    from ltvboost.recommendations import format_recommendations
    from ltvboost.validator import validate_store_metrics

    metrics = _metrics_from_args(args)
    check = validate_store_metrics(metrics)
    if not check.passed:
        _fail(check)

    store.init_db(args.db)
    result = store.onboard(args.user, metrics, args.db)
    print(f"💾 Saved metrics #{result.metrics_id} for user {args.user}")
    print(format_recommendations(result.recommendations))


def cmd_suggestions(args):
    """List saved suggestions."""
    from ltvboost import store

    store.init_db(args.db)
    rows = store.list_suggestions(args.user, args.metrics_id, args.db)
    if not rows:
        print("📭 No suggestions yet. Run `onboard` first.")
        return
    for s in rows:
        mark = "✅" if s.implemented else "⬜"
        rec = s.recommendation
        print(f"{mark} #{s.id} [{rec.priority.value}] {rec.title} ({rec.estimated_impact})")


def cmd_toggle(args):
    """Mark a suggestion implemented (or not)."""
    from ltvboost import store

    store.init_db(args.db)
    implemented = not args.undo
    if not store.set_implemented(args.user, args.id, implemented, args.db):
        print(f"❌ Suggestion #{args.id} not found")
        sys.exit(1)
    print(f"{'✅' if implemented else '⬜'} Suggestion #{args.id} updated")


def _add_store_args(p, niche_required: bool = True):
    p.add_argument("--aov", type=float, required=True, help="Average order value")
    p.add_argument("--revenue", type=float, required=True, help="Monthly revenue")
    p.add_argument("--repeat-rate", type=float, required=True, help="Repeat rate (0-100)")
    p.add_argument("--niche", required=niche_required, default="general", help="Store niche")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ltvboost",
        description="LTVBoost CLI: LTV, P&L, ads scalability, bundles, creatives and recommendations",
    )
    parser.add_argument("--log-level", help="Log level (default from LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", help="Command")

    # ltv
    p = sub.add_parser("ltv", help="LTV and MER")
    p.add_argument("--aov", type=float, required=True, help="Average order value")
    p.add_argument("--repeat-rate", type=float, required=True, help="Repeat rate (0-100)")
    p.add_argument("--revenue", type=float, help="Revenue for current MER")
    p.add_argument("--ad-spend", type=float, help="Ad spend for current MER")
    p.add_argument("--uncapped", action="store_true", help="Do not cap LTV at 10x AOV")

    # pnl
    p = sub.add_parser("pnl", help="Monthly profit & loss")
    p.add_argument("--revenue", type=float, required=True, help="Monthly revenue")
    p.add_argument("--margin", type=float, required=True, help="Gross margin %%")
    p.add_argument("--ad-spend", type=float, default=0.0, help="Monthly ad spend")
    p.add_argument("--opex", type=float, default=0.0, help="Monthly operating expenses")
    p.add_argument("--json", action="store_true", help="Output JSON")

    # ads
    p = sub.add_parser("ads", help="Ads scalability")
    _add_store_args(p, niche_required=False)
    p.add_argument("--margin", type=float, required=True, help="Gross margin %%")
    p.add_argument("--ratio", type=float, default=3.0, help="Target LTV:CAC ratio")
    p.add_argument("--ad-spend", type=float, default=0.0, help="Current monthly ad spend")
    p.add_argument("--json", action="store_true", help="Output JSON")

    # bundle
    p = sub.add_parser("bundle", help="Bundle tier pricing")
    p.add_argument("--price", type=float, default=39.99, help="Base unit price")
    p.add_argument("--cogs", type=float, default=10.0, help="COGS per unit")
    p.add_argument("--tier", type=_parse_tier, action="append",
                   help="Tier as name:quantity:discount (repeatable)")
    p.add_argument("--json", action="store_true", help="Output JSON")

    # creatives
    p = sub.add_parser("creatives", help="Ad creative profitability")
    p.add_argument("--file", "-f", help="JSON list of creatives (defaults to samples)")
    p.add_argument("--format", help="Export format: csv, json, txt")

    # recommend
    p = sub.add_parser("recommend", help="Generate recommendations")
    _add_store_args(p)
    p.add_argument("--by-priority", action="store_true", help="Sort CRITICAL first")
    p.add_argument("--json", action="store_true", help="Output JSON")

    # onboard
    p = sub.add_parser("onboard", help="Save metrics and suggestions")
    p.add_argument("--user", type=int, required=True, help="User ID")
    _add_store_args(p)
    p.add_argument("--db", help="Database path")

    # suggestions
    p = sub.add_parser("suggestions", help="List saved suggestions")
    p.add_argument("--user", type=int, required=True, help="User ID")
    p.add_argument("--metrics-id", type=int, help="Only this metrics submission")
    p.add_argument("--db", help="Database path")

    # toggle
    p = sub.add_parser("toggle", help="Mark a suggestion implemented")
    p.add_argument("--user", type=int, required=True, help="User ID")
    p.add_argument("--id", type=int, required=True, help="Suggestion ID")
    p.add_argument("--undo", action="store_true", help="Mark not implemented")
    p.add_argument("--db", help="Database path")

    return parser


COMMANDS = {
    "ltv": cmd_ltv,
    "pnl": cmd_pnl,
    "ads": cmd_ads,
    "bundle": cmd_bundle,
    "creatives": cmd_creatives,
    "recommend": cmd_recommend,
    "onboard": cmd_onboard,
    "suggestions": cmd_suggestions,
    "toggle": cmd_toggle,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    COMMANDS[args.command](args)


if __name__ == "__main__":
    main()
