"""
Entry point for the Market Research Analytics Engine.

Usage:
  # Analyze the bundled sample data:
  python main.py demo

  # Analyze your own bundle and save the JSON report:
  python main.py analyze bundle.json --options options.json --output report.json --base-year 2025

  # Run tests:
  python main.py test
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("main")

HERE = os.path.dirname(os.path.abspath(__file__))
SAMPLE_BUNDLE = os.path.join(HERE, "data", "sample_bundle.json")


def print_report(report) -> None:
    """Formatted console report."""
    print("\n" + "=" * 70)
    print("  MARKET RESEARCH REPORT")
    print("=" * 70)
    if not report.success:
        print(f"  ❌ Analysis failed: {report.error}")
        print("=" * 70)
        return
    print(f"  Stages     : {report.completed_stages}/{report.metadata.get('total_stages', 6)} with results")
    if "generated_at" in report.metadata:
        print(f"  Generated  : {report.metadata['generated_at']}")
    for stage, meta in report.metadata.get("stages", {}).items():
        error = f"  ({meta['error']})" if meta["error"] else ""
        print(f"    {stage:<13} method={meta['method']:<14} conf={meta['confidence']:.2f}{error}")
    print("=" * 70)

    ms = report.market_size
    if ms:
        print("\n📈 MARKET SIZE")
        print("-" * 70)
        print(f"  Total      : {ms.total_market_size:,.0f}   growth={ms.growth_rate:.1%}")
        for name, size in ms.segment_sizes.items():
            print(f"    {name:<28} {size:>16,.0f}")
        for year in ms.forecast:
            label = year.year if year.year is not None else f"+{year.year_offset}"
            print(
                f"    {label!s:<6} size={year.market_size:>16,.0f}  "
                f"growth={year.growth_rate:+.2%}  penetration={year.penetration:.1%}"
            )

    seg = report.segmentation
    if seg:
        print("\n📊 SEGMENTS")
        print("-" * 70)
        for s in seg.segments:
            print(f"  {s.name:<32} share={s.share:>6.1%}  size={s.size:>14,.0f}")

    tr = report.trends
    if tr:
        print("\n📉 TRENDS")
        print("-" * 70)
        for t in tr.trends:
            print(f"  {t.type:<12} {t.direction:<11} strength={t.strength:.4f}  r2={t.r2:.3f}")
        if tr.seasonality:
            print(f"  Seasonality: {tr.seasonality.type} (period {tr.seasonality.period})")
        if tr.forecast:
            nxt = tr.forecast[0]
            print(f"  Next period {nxt.period}: {nxt.value:,.2f} [{nxt.lower_bound:,.2f}, {nxt.upper_bound:,.2f}]")

    pr = report.price_analysis
    if pr:
        print("\n💰 PRICING")
        print("-" * 70)
        rng = pr.price_range
        print(f"  Range      : {rng['min']:,.2f} – {rng['max']:,.2f}  avg={rng['avg']:,.2f}")
        if pr.price_elasticity and pr.price_elasticity.get("elasticity") is not None:
            print(f"  Elasticity : {pr.price_elasticity['elasticity']:.2f} ({pr.price_elasticity['elasticity_type']})")
        if pr.optimum_price_points:
            points = ", ".join(
                f"{name}={price:,.2f}"
                for name, price in pr.optimum_price_points["recommended_price_points"].items()
            )
            print(f"  Recommended: {points}")

    ca = report.competitor_analysis
    if ca:
        print("\n🏁 COMPETITORS")
        print("-" * 70)
        shares = (ca.market_share or {}).get("market_shares", {})
        for c in ca.competitors:
            own = " ⭐" if c.is_own else ""
            share = shares.get(c.name)
            share_txt = f"{share:.1%}" if share is not None else "  n/a"
            print(f"  {c.name:<28} share={share_txt}{own}")
        if ca.market_share:
            print(f"  HHI={ca.market_share['hhi']:,.0f} ({ca.market_share['concentration']})")
        if ca.swot_analysis:
            for key, items in ca.swot_analysis.items():
                for item in items:
                    print(f"    [{key}] {item}")

    gp = report.gap_opportunities
    if gp:
        print("\n⚠️  MARKET GAPS")
        print("-" * 70)
        for g in gp.gaps:
            print(f"  [{g.type}] {g.name:<36} size={g.size:>14,.0f}")
        print("\n🏆 OPPORTUNITIES")
        print("-" * 70)
        if gp.opportunities:
            for rank, o in enumerate(gp.opportunities, 1):
                print(f"  #{rank}  {o.name:<40} score={o.score:>3}  risk={o.risk_level}")
        else:
            print("  No gap cleared the opportunity threshold.")
        print(f"  Addressable potential: {gp.potential_market_size:,.0f}")
    print("=" * 70)


def _load_json(path):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def analyze(bundle_path: str, options_path=None, output=None, base_year=None):
    from utils.pipeline import load_bundle, run_market_analysis, save_report

    options = _load_json(options_path) if options_path else {}
    if base_year is not None:
        options["base_year"] = base_year

    report = run_market_analysis(load_bundle(bundle_path), options=options)
    print_report(report)
    if output:
        save_report(report, output)
    return report


def demo():
    """End-to-end run over the bundled sample data."""
    logger.info("=== Market Research — Demo Run ===")
    return analyze(SAMPLE_BUNDLE)


def run_tests():
    """Run pytest."""
    import subprocess
    result = subprocess.run(["pytest", "tests/", "-v", "--tb=short"], cwd=HERE)
    sys.exit(result.returncode)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Market Research Analytics Engine")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("demo", help="Analyze the bundled sample data")

    p_analyze = sub.add_parser("analyze", help="Analyze a JSON market data bundle")
    p_analyze.add_argument("bundle", help="Path to the market data bundle (JSON)")
    p_analyze.add_argument("--options", help="Path to a JSON file with analyzer options")
    p_analyze.add_argument("--output", help="Write the full report as JSON to this path")
    p_analyze.add_argument("--base-year", type=int, help="Calendar year of forecast year 0")

    sub.add_parser("test", help="Run the test suite")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    command = args.command or "demo"

    if command == "demo":
        demo()
    elif command == "analyze":
        report = analyze(args.bundle, args.options, args.output, args.base_year)
        sys.exit(0 if report.success else 1)
    elif command == "test":
        run_tests()
