"""
Core data models for the Market Research Analytics Engine.
"""

from .schemas import (
    AnalysisResult,
    MarketForecastYear,
    MarketSizeResult,
    Segment,
    SegmentationResult,
    Breakpoint,
    Trend,
    Seasonality,
    ForecastPoint,
    TrendResult,
    PriceResult,
    CompetitorRecord,
    PositioningMatrix,
    CompetitorResult,
    Gap,
    Opportunity,
    GapResult,
    MarketResearchReport,
)

__all__ = [
    "AnalysisResult",
    "MarketForecastYear",
    "MarketSizeResult",
    "Segment",
    "SegmentationResult",
    "Breakpoint",
    "Trend",
    "Seasonality",
    "ForecastPoint",
    "TrendResult",
    "PriceResult",
    "CompetitorRecord",
    "PositioningMatrix",
    "CompetitorResult",
    "Gap",
    "Opportunity",
    "GapResult",
    "MarketResearchReport",
]
