"""
Chart-ready projections of a market research report.

Each builder takes one typed analyzer result and returns a plain dict
({labels, data, title, type, ...}) that a front end can hand straight to a
charting library. Builders return None when their source stage is missing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.schemas import (
    CompetitorResult, GapResult, PriceResult, SegmentationResult, TrendResult,
)


def _pct(value: float) -> float:
    return round(value * 100, 2)


def segmentation_pie(segmentation: Optional[SegmentationResult]) -> Optional[Dict[str, Any]]:
    if segmentation is None or not segmentation.segments:
        return None
    return {
        "labels": [s.name for s in segmentation.segments],
        "data": [_pct(s.share) for s in segmentation.segments],
        "title": "Market Segmentation",
        "type": "pie",
    }


def competitor_scatter(
    competitors: Optional[CompetitorResult],
    x_axis: str = "price",
    y_axis: str = "quality",
) -> Optional[Dict[str, Any]]:
    """Competitors placed on two positioning dimensions (0-100 scale)."""
    if competitors is None or competitors.positioning is None:
        return None
    matrix = competitors.positioning.matrix
    xs, ys = matrix.get(x_axis, {}), matrix.get(y_axis, {})
    points = [
        {
            "name": c.name,
            "x": round(xs[c.name], 2),
            "y": round(ys[c.name], 2),
            "is_own": c.is_own,
        }
        for c in competitors.competitors
        if c.name in xs and c.name in ys
    ]
    if not points:
        return None
    return {
        "x_axis": x_axis,
        "y_axis": y_axis,
        "competitors": points,
        "title": "Competitive Positioning",
        "type": "scatter",
    }


def market_share_bar(competitors: Optional[CompetitorResult]) -> Optional[Dict[str, Any]]:
    """Share per competitor, with whatever the list does not cover as "Others"."""
    if competitors is None or not competitors.market_share:
        return None
    shares: Dict[str, float] = competitors.market_share["market_shares"]
    labels: List[str] = list(shares)
    data = [_pct(s) for s in shares.values()]
    remainder = 1.0 - sum(shares.values())
    if remainder > 1e-9:
        labels.append("Others")
        data.append(_pct(remainder))
    return {
        "labels": labels,
        "data": data,
        "title": "Market Share Distribution",
        "type": "bar",
    }


def trend_line(trends: Optional[TrendResult]) -> Optional[Dict[str, Any]]:
    if trends is None or not trends.forecast:
        return None
    best = trends.best_trend
    return {
        "labels": [p.period for p in trends.forecast],
        "data": [round(p.value, 4) for p in trends.forecast],
        "lower_bound": [round(p.lower_bound, 4) for p in trends.forecast],
        "upper_bound": [round(p.upper_bound, 4) for p in trends.forecast],
        "trend": best.type if best else None,
        "title": "Trend Forecast",
        "type": "line",
    }


def price_histogram(prices: Optional[PriceResult]) -> Optional[Dict[str, Any]]:
    if prices is None or not prices.price_distribution:
        return None
    edges = prices.price_distribution["bin_edges"]
    labels = [f"{lo:,.2f}-{hi:,.2f}" for lo, hi in zip(edges[:-1], edges[1:])]
    return {
        "labels": labels,
        "data": list(prices.price_distribution["histogram"]),
        "title": "Price Distribution",
        "type": "bar",
    }


def opportunity_ranking(gaps: Optional[GapResult]) -> Optional[Dict[str, Any]]:
    if gaps is None or not gaps.opportunities:
        return None
    return {
        "labels": [o.name for o in gaps.opportunities],
        "data": [o.score for o in gaps.opportunities],
        "market_size": [round(o.potential_market_size, 2) for o in gaps.opportunities],
        "title": "Opportunity Ranking",
        "type": "bar",
    }


def build_visualizations(
    segmentation: Optional[SegmentationResult] = None,
    trends: Optional[TrendResult] = None,
    prices: Optional[PriceResult] = None,
    competitors: Optional[CompetitorResult] = None,
    gaps: Optional[GapResult] = None,
    x_axis: str = "price",
    y_axis: str = "quality",
) -> Dict[str, Dict[str, Any]]:
    """All projections that have data behind them, keyed by chart name."""
    charts = {
        "market_segmentation": segmentation_pie(segmentation),
        "competitor_positioning": competitor_scatter(competitors, x_axis, y_axis),
        "market_share_distribution": market_share_bar(competitors),
        "trend_forecast": trend_line(trends),
        "price_distribution": price_histogram(prices),
        "opportunity_ranking": opportunity_ranking(gaps),
    }
    return {name: chart for name, chart in charts.items() if chart is not None}
