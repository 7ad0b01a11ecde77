"""
Core data models / schemas for the Market Research Analytics Engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


EMPTY_METHODS = ("none", "error")


def _round(value: Optional[float], digits: int = 4) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), digits)


# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------

@dataclass
class AnalysisResult:
    """Uniform envelope shared by every analyzer result."""
    confidence: float = 0.0
    method: str = "none"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.method not in EMPTY_METHODS

    def _envelope(self) -> Dict[str, Any]:
        return {
            "confidence": _round(self.confidence),
            "method": self.method,
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Market size
# ---------------------------------------------------------------------------

@dataclass
class MarketForecastYear:
    year_offset: int
    market_size: float
    growth_rate: float
    penetration: float
    year: Optional[int] = None          # only set when a base year is supplied

    def to_dict(self) -> Dict:
        return {
            "year_offset": self.year_offset,
            "year": self.year,
            "market_size": _round(self.market_size, 2),
            "growth_rate": _round(self.growth_rate),
            "penetration": _round(self.penetration),
        }


@dataclass
class MarketSizeResult(AnalysisResult):
    total_market_size: float = 0.0
    segment_sizes: Dict[str, float] = field(default_factory=dict)
    growth_rate: float = 0.0
    forecast: List[MarketForecastYear] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "total_market_size": _round(self.total_market_size, 2),
            "segment_sizes": {k: _round(v, 2) for k, v in self.segment_sizes.items()},
            "growth_rate": _round(self.growth_rate),
            "forecast": [f.to_dict() for f in self.forecast],
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------

@dataclass
class Segment:
    name: str
    share: float                                    # [0, 1]
    size: float                                     # ≥ 0
    criteria: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    source: str = "explicit"                        # explicit | distribution | default | basic

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "share": _round(self.share),
            "size": _round(self.size, 2),
            "criteria": dict(self.criteria),
            "description": self.description,
            "source": self.source,
        }


@dataclass
class SegmentationResult(AnalysisResult):
    segments: List[Segment] = field(default_factory=list)
    demographic: Dict[str, Any] = field(default_factory=dict)
    psychographic: Dict[str, Any] = field(default_factory=dict)
    coverage: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "segments": [s.to_dict() for s in self.segments],
            "demographic": self.demographic,
            "psychographic": self.psychographic,
            "coverage": _round(self.coverage),
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

@dataclass
class Breakpoint:
    index: int
    period: str
    timestamp: float
    value: float
    slope_before: float
    slope_after: float
    slope_change: float
    direction_change: bool

    def to_dict(self) -> Dict:
        return {
            "index": self.index,
            "period": self.period,
            "timestamp": self.timestamp,
            "value": self.value,
            "slope_before": _round(self.slope_before),
            "slope_after": _round(self.slope_after),
            "slope_change": _round(self.slope_change),
            "direction_change": self.direction_change,
        }


@dataclass
class Trend:
    type: str                       # linear | exponential | breakpoints
    direction: str                  # increasing | decreasing
    strength: float                 # ≥ 0
    r2: float                       # [0, 1]
    slope: float = 0.0
    intercept: float = 0.0
    equation: str = ""
    breakpoints: List[Breakpoint] = field(default_factory=list)

    @property
    def forecastable(self) -> bool:
        return self.type in ("linear", "exponential")

    def to_dict(self) -> Dict:
        d = {
            "type": self.type,
            "direction": self.direction,
            "strength": _round(self.strength),
            "r2": _round(self.r2),
            "slope": _round(self.slope),
            "intercept": _round(self.intercept),
            "equation": self.equation,
        }
        if self.breakpoints:
            d["breakpoints"] = [b.to_dict() for b in self.breakpoints]
        return d


@dataclass
class Seasonality:
    period: int
    type: str                       # quarterly | monthly | weekly | daily | custom
    strength: float
    indexes: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "type": self.type,
            "strength": _round(self.strength),
            "indexes": [_round(i) for i in self.indexes],
        }


@dataclass
class ForecastPoint:
    period: str
    timestamp: float
    value: float
    lower_bound: float
    upper_bound: float

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "timestamp": self.timestamp,
            "value": _round(self.value),
            "lower_bound": _round(self.lower_bound),
            "upper_bound": _round(self.upper_bound),
        }


@dataclass
class TrendResult(AnalysisResult):
    trends: List[Trend] = field(default_factory=list)
    seasonality: Optional[Seasonality] = None
    forecast: List[ForecastPoint] = field(default_factory=list)
    data_points: int = 0

    @property
    def best_trend(self) -> Optional[Trend]:
        forecastable = [t for t in self.trends if t.forecastable]
        if not forecastable:
            return None
        return max(forecastable, key=lambda t: t.r2)

    def to_dict(self) -> Dict:
        return {
            "trends": [t.to_dict() for t in self.trends],
            "seasonality": self.seasonality.to_dict() if self.seasonality else None,
            "forecast": [p.to_dict() for p in self.forecast],
            "data_points": self.data_points,
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

@dataclass
class PriceResult(AnalysisResult):
    price_range: Dict[str, float] = field(default_factory=dict)
    price_distribution: Dict[str, Any] = field(default_factory=dict)
    price_elasticity: Optional[Dict[str, Any]] = None
    competitive_pricing: Optional[Dict[str, Any]] = None
    optimum_price_points: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict:
        return {
            "price_range": self.price_range,
            "price_distribution": self.price_distribution,
            "price_elasticity": self.price_elasticity,
            "competitive_pricing": self.competitive_pricing,
            "optimum_price_points": self.optimum_price_points,
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Competitors
# ---------------------------------------------------------------------------

@dataclass
class CompetitorRecord:
    name: str                                           # unique within a run
    positioning: Dict[str, float] = field(default_factory=dict)
    market_share: Optional[float] = None                # [0, 1]
    segments: List[str] = field(default_factory=list)
    is_own: bool = False
    pricing: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "positioning": {k: _round(v, 2) for k, v in self.positioning.items()},
            "market_share": _round(self.market_share),
            "segments": list(self.segments),
            "is_own": self.is_own,
            "pricing": self.pricing,
        }


@dataclass
class PositioningMatrix:
    dimensions: List[str]
    matrix: Dict[str, Dict[str, float]]                 # dimension → competitor → score [0,100]
    relative_positions: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    averages: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "dimensions": list(self.dimensions),
            "matrix": {
                dim: {name: _round(score, 2) for name, score in scores.items()}
                for dim, scores in self.matrix.items()
            },
            "relative_positions": self.relative_positions,
            "averages": {k: _round(v, 2) for k, v in self.averages.items()},
        }


@dataclass
class CompetitorResult(AnalysisResult):
    competitors: List[CompetitorRecord] = field(default_factory=list)
    positioning: Optional[PositioningMatrix] = None
    market_share: Optional[Dict[str, Any]] = None
    competitive_advantages: Optional[Dict[str, Any]] = None
    swot_analysis: Optional[Dict[str, List[str]]] = None

    @property
    def own(self) -> Optional[CompetitorRecord]:
        return next((c for c in self.competitors if c.is_own), None)

    def to_dict(self) -> Dict:
        return {
            "competitors": [c.to_dict() for c in self.competitors],
            "positioning": self.positioning.to_dict() if self.positioning else None,
            "market_share": self.market_share,
            "competitive_advantages": self.competitive_advantages,
            "swot_analysis": self.swot_analysis,
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Gaps & opportunities
# ---------------------------------------------------------------------------

@dataclass
class Gap:
    type: str                       # segment | demographic | psychographic | positioning
    name: str
    description: str
    size: float                     # ≤ total market size
    target_customers: str = ""
    competitor_presence: List[str] = field(default_factory=list)
    coverage: Optional[float] = None
    dimension: Optional[str] = None
    position: Optional[float] = None
    gap_magnitude: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "size": _round(self.size, 2),
            "target_customers": self.target_customers,
            "competitor_presence": list(self.competitor_presence),
            "coverage": _round(self.coverage),
            "dimension": self.dimension,
            "position": _round(self.position, 2),
            "gap_magnitude": _round(self.gap_magnitude, 2),
        }


@dataclass
class Opportunity:
    name: str
    description: str
    score: int                      # [0, 100]
    potential_market_size: float
    target_customers: str
    competitive_advantage: str
    entry_barriers: List[str]
    time_to_market: str
    risk_level: str
    gap_type: str = ""
    score_breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "description": self.description,
            "score": self.score,
            "potential_market_size": _round(self.potential_market_size, 2),
            "target_customers": self.target_customers,
            "competitive_advantage": self.competitive_advantage,
            "entry_barriers": list(self.entry_barriers),
            "time_to_market": self.time_to_market,
            "risk_level": self.risk_level,
            "gap_type": self.gap_type,
            "score_breakdown": {k: _round(v, 2) for k, v in self.score_breakdown.items()},
        }


@dataclass
class GapResult(AnalysisResult):
    gaps: List[Gap] = field(default_factory=list)
    opportunities: List[Opportunity] = field(default_factory=list)
    potential_market_size: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "gaps": [g.to_dict() for g in self.gaps],
            "opportunities": [o.to_dict() for o in self.opportunities],
            "potential_market_size": _round(self.potential_market_size, 2),
            **self._envelope(),
        }


# ---------------------------------------------------------------------------
# Composite report
# ---------------------------------------------------------------------------

@dataclass
class MarketResearchReport:
    success: bool
    market_size: Optional[MarketSizeResult] = None
    segmentation: Optional[SegmentationResult] = None
    trends: Optional[TrendResult] = None
    price_analysis: Optional[PriceResult] = None
    competitor_analysis: Optional[CompetitorResult] = None
    gap_opportunities: Optional[GapResult] = None
    visualization_data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def completed_stages(self) -> int:
        slots = [
            self.market_size, self.segmentation, self.trends,
            self.price_analysis, self.competitor_analysis, self.gap_opportunities,
        ]
        return sum(1 for s in slots if s is not None)

    def to_dict(self) -> Dict:
        def _slot(result):
            return result.to_dict() if result is not None else None

        d = {
            "success": self.success,
            "market_size": _slot(self.market_size),
            "segmentation": _slot(self.segmentation),
            "trends": _slot(self.trends),
            "price_analysis": _slot(self.price_analysis),
            "competitor_analysis": _slot(self.competitor_analysis),
            "gap_opportunities": _slot(self.gap_opportunities),
            "visualization_data": self.visualization_data,
            "metadata": self.metadata,
        }
        if self.error:
            d["error"] = self.error
        return d

    def summary(self) -> str:
        if not self.success:
            return f"Market Analysis Summary:\n  ❌ {self.error}"
        lines = ["Market Analysis Summary:"]
        for stage, meta in self.metadata.get("stages", {}).items():
            status = "✅" if meta["method"] not in EMPTY_METHODS else "⚠️ "
            detail = f" — {meta['error']}" if meta.get("error") else ""
            lines.append(
                f"  {status} {stage:<13} method={meta['method']:<14} "
                f"confidence={meta['confidence']:.2f}{detail}"
            )
        return "\n".join(lines)
