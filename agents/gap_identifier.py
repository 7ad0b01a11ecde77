"""
Gap & Opportunity Identification Agent
--------------------------------------
Finds underserved areas of the market and ranks them as opportunities.

Gap discovery:
  segment        competitor coverage of the segment < 0.7
  demographic    subgroup with explicit coverage < 0.6
  psychographic  subgroup with explicit coverage < 0.6
  positioning    dimension with score σ > 15 whose largest consecutive
                 sorted gap > 20 (white space at the gap midpoint)

Opportunity score (0-100):

  S = 0.3·MarketSize + 0.3·Competition + 0.2·Growth + 0.2·Profit

A gap becomes an Opportunity when S ≥ minOpportunityScore (60).
Addressable size = Σ size_k · 0.8^k (k = rank), capped at 30% of the market.

Input:  MarketSizeResult, SegmentationResult?, CompetitorResult?
Output: GapResult
"""

import math
import logging
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from agents.base import Analyzer, InsufficientInputError
from models.schemas import (
    AnalysisResult, CompetitorResult, Gap, GapResult, MarketSizeResult,
    Opportunity, SegmentationResult,
)
from utils.parsing import as_share, is_mapping, pick, to_float

logger = logging.getLogger(__name__)


DESCRIPTIONS = {
    "segment": "Develop an offering aimed specifically at the {name} segment, which competitors currently underserve.",
    "demographic": "Target the {name} demographic group with a tailored product or service.",
    "psychographic": "Develop an offering that matches the values and needs of the {name} psychographic group.",
    "positioning": "Position a product or service in the gap on the {dimension} dimension, where there is little competition.",
}

ADVANTAGES = {
    "segment": "Specialisation in the specific needs of the {name} segment",
    "demographic": "Deep understanding of the {name} demographic group",
    "psychographic": "Alignment with the values and lifestyle of the {name} psychographic group",
    "positioning": "Unique positioning on the {dimension} dimension, between existing competitors",
}

BARRIERS = {
    "segment": [
        "Specialist knowledge of the segment is required",
        "Potentially high cost of tailored product development",
    ],
    "demographic": ["Communicating effectively with the target group"],
    "psychographic": [
        "Complexity of understanding psychographic motivations",
        "Coming across as authentic to the target group",
    ],
    "positioning": [
        "Risk of being stuck in the middle between existing positions",
        "Communicating a clear value proposition",
    ],
}

TIME_TO_MARKET = {
    "segment": "Medium (6-12 months)",
    "demographic": "Short-Medium (3-9 months)",
    "psychographic": "Medium-Long (9-18 months)",
    "positioning": "Medium (6-12 months)",
}

PROFIT_BY_TYPE = {"segment": 70.0, "demographic": 60.0, "psychographic": 80.0}


def _usable(result: Any) -> bool:
    return isinstance(result, AnalysisResult) and result.ok


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def risk_level(score: float) -> str:
    if score >= 80:
        return "Low"
    if score >= 60:
        return "Low-Medium"
    if score >= 40:
        return "Medium"
    return "High"


def forecast_cagr(market_size: MarketSizeResult) -> Optional[float]:
    forecast = market_size.forecast
    if len(forecast) < 2 or forecast[0].market_size <= 0:
        return None
    years = len(forecast) - 1
    return (forecast[-1].market_size / forecast[0].market_size) ** (1 / years) - 1


class GapOpportunityIdentifier(Analyzer):
    result_cls = GapResult

    def __init__(self, config=None):
        super().__init__(name="GapOpportunityIdentifier", config=config)

    def identify(
        self,
        market_size: Optional[MarketSizeResult],
        segmentation: Optional[SegmentationResult] = None,
        competitor_analysis: Optional[CompetitorResult] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> GapResult:
        return self.execute(market_size, segmentation, competitor_analysis, options=options)

    # ------------------------------------------------------------------
    def run(
        self,
        market_size: Any,
        segmentation: Any,
        competitor_analysis: Any,
        options: Dict[str, Any],
    ) -> GapResult:
        if not _usable(market_size):
            raise InsufficientInputError("Gap identification needs a market size estimate")
        segmentation = segmentation if _usable(segmentation) else None
        competitors = competitor_analysis if _usable(competitor_analysis) else None
        if segmentation is None and competitors is None:
            raise InsufficientInputError(
                "Gap identification needs a segmentation or a competitor analysis"
            )

        total = market_size.total_market_size
        gaps = self.find_gaps(total, segmentation, competitors)
        min_score = float(self.option(options, "min_opportunity_score", self.config.MIN_OPPORTUNITY_SCORE))
        opportunities = self.opportunities(gaps, market_size, competitors, min_score)
        potential = self.potential_market_size(gaps, total)

        confidence = 0.5
        for upstream in (market_size, segmentation, competitors):
            if upstream is not None:
                confidence += upstream.confidence * 0.1
        if segmentation is not None and segmentation.segments:
            confidence += 0.1
        if competitors is not None and competitors.competitors:
            confidence += 0.1

        available = sum(1 for r in (market_size, segmentation, competitors) if r is not None)
        method = "comprehensive" if available == 3 else "partial"

        self.logger.info(
            f"[{self.name}] {method}: {len(gaps)} gaps, {len(opportunities)} opportunities, "
            f"addressable={potential:,.0f}"
        )
        return GapResult(
            gaps=gaps,
            opportunities=opportunities,
            potential_market_size=potential,
            confidence=min(confidence, 1.0),
            method=method,
        )

    # ─── Gap discovery ───────────────────────────────────────────────────

    def find_gaps(
        self,
        total: float,
        segmentation: Optional[SegmentationResult],
        competitors: Optional[CompetitorResult],
    ) -> List[Gap]:
        gaps: List[Gap] = []
        if segmentation is not None:
            gaps.extend(self.segment_gaps(segmentation, competitors))
            gaps.extend(self.group_gaps("demographic", segmentation.demographic, total))
            gaps.extend(self.group_gaps("psychographic", segmentation.psychographic, total))
        if competitors is not None:
            gaps.extend(self.positioning_gaps(competitors, total))

        ceiling = max(total, 0.0)
        for gap in gaps:
            gap.size = min(max(gap.size, 0.0), ceiling)
        gaps.sort(key=lambda g: g.size, reverse=True)
        return gaps

    def segment_gaps(
        self, segmentation: SegmentationResult, competitors: Optional[CompetitorResult]
    ) -> List[Gap]:
        threshold = self.config.SEGMENT_COVERAGE_THRESHOLD
        rivals = competitors.competitors if competitors is not None else []
        gaps = []
        for segment in segmentation.segments:
            present = [c.name for c in rivals if segment.name in c.segments]
            coverage = len(present) / len(rivals) if rivals else 0.0
            if coverage < threshold:
                gaps.append(Gap(
                    type="segment",
                    name=segment.name,
                    description=f"Insufficient coverage in segment: {segment.name}",
                    size=segment.size,
                    target_customers=segment.description or segment.name,
                    competitor_presence=present,
                    coverage=coverage,
                ))
        return gaps

    def group_gaps(self, kind: str, summary: Mapping[str, Any], total: float) -> List[Gap]:
        threshold = self.config.GROUP_COVERAGE_THRESHOLD
        gaps = []
        for criterion, groups in summary.items():
            if not isinstance(groups, (list, tuple)):
                continue
            for group in groups:
                if not is_mapping(group):
                    continue
                coverage = to_float(group.get("coverage"))
                if coverage is None or coverage >= threshold:
                    continue
                name = f"{criterion}: {pick(group, 'name', default='unnamed')}"
                size = to_float(group.get("size"))
                if size is None:
                    share = as_share(pick(group, "percentage", "share"))
                    size = (share or 0.0) * total
                gaps.append(Gap(
                    type=kind,
                    name=name,
                    description=f"Insufficient coverage in {kind} group: {name}",
                    size=size,
                    target_customers=name,
                    competitor_presence=[],
                    coverage=coverage,
                ))
        return gaps

    def positioning_gaps(self, competitors: CompetitorResult, total: float) -> List[Gap]:
        if competitors.positioning is None:
            return []
        gaps = []
        for dimension in competitors.positioning.dimensions:
            scores = sorted(competitors.positioning.matrix.get(dimension, {}).values())
            if len(scores) < 2 or float(np.std(scores)) <= self.config.POSITIONING_STDDEV_THRESHOLD:
                continue
            widest, position = 0.0, 0.0
            for low, high in zip(scores, scores[1:]):
                if high - low > widest:
                    widest, position = high - low, (high + low) / 2
            if widest <= self.config.POSITIONING_GAP_THRESHOLD:
                continue
            multiplier = self.config.DIMENSION_MULTIPLIERS.get(dimension, 1.0)
            gaps.append(Gap(
                type="positioning",
                name=f"{dimension} gap",
                description=f"Positioning gap on dimension {dimension} around score {position:.1f}",
                size=widest / 100 * total * multiplier,
                target_customers=f"Customers who value {dimension} at level {position:.1f}",
                competitor_presence=[],
                dimension=dimension,
                position=position,
                gap_magnitude=widest,
            ))
        return gaps

    # ─── Scoring ─────────────────────────────────────────────────────────

    def market_size_score(self, gap: Gap, total: float) -> float:
        if not total:
            return 50.0
        ratio = gap.size / total
        if ratio < 0.1:
            return 30.0
        if ratio < 0.2:
            return 60.0
        if ratio < 0.3:
            return 80.0
        return 100.0

    def competition_score(self, gap: Gap, competitors: Optional[CompetitorResult]) -> float:
        if competitors is not None and gap.type in ("segment", "positioning"):
            present = len(gap.competitor_presence)
            if present == 0:
                return 100.0
            if present == 1:
                return 80.0
            if present <= 3:
                return 60.0
            return 40.0
        if gap.coverage is not None:
            return (1 - gap.coverage) * 100
        return 50.0

    def growth_score(self, market_size: MarketSizeResult) -> float:
        cagr = forecast_cagr(market_size)
        if cagr is None:
            return 50.0
        if cagr < 0:
            return 20.0
        if cagr < 0.05:
            return 40.0
        if cagr < 0.1:
            return 60.0
        if cagr < 0.2:
            return 80.0
        return 100.0

    def profit_score(self, gap: Gap) -> float:
        if gap.type in PROFIT_BY_TYPE:
            return PROFIT_BY_TYPE[gap.type]
        label = gap.name.lower()
        if "premium" in label or "luxury" in label:
            return 90.0
        if "budget" in label or "low" in label:
            return 40.0
        return 60.0

    def score(self, gap: Gap, market_size: MarketSizeResult, competitors: Optional[CompetitorResult]) -> Dict[str, float]:
        weights = self.config.OPPORTUNITY_WEIGHTS
        parts = {
            "market_size": self.market_size_score(gap, market_size.total_market_size),
            "competition": self.competition_score(gap, competitors),
            "growth": self.growth_score(market_size),
            "profit": self.profit_score(gap),
        }
        parts["total"] = sum(parts[k] * weights[k] for k in weights)
        return parts

    # ─── Opportunities ───────────────────────────────────────────────────

    def opportunities(
        self,
        gaps: List[Gap],
        market_size: MarketSizeResult,
        competitors: Optional[CompetitorResult],
        min_score: float,
    ) -> List[Opportunity]:
        total = market_size.total_market_size
        found = []
        for gap in gaps:
            breakdown = self.score(gap, market_size, competitors)
            score = min(max(round_half_up(breakdown["total"]), 0), 100)
            if score < min_score:
                continue
            fields = {"name": gap.name, "dimension": gap.dimension or gap.name.replace(" gap", "")}
            barriers = []
            if total and gap.size < total * 0.1:
                barriers.append("Limited market size may restrict economies of scale")
            barriers.extend(BARRIERS.get(gap.type, []))
            found.append(Opportunity(
                name=f"Opportunity: {gap.name}",
                description=DESCRIPTIONS.get(
                    gap.type, "Develop an offering aimed at {name}, an underserved area of the market."
                ).format(**fields),
                score=score,
                potential_market_size=gap.size,
                target_customers=gap.target_customers,
                competitive_advantage=ADVANTAGES.get(
                    gap.type, "First-mover advantage in an underserved area of the market"
                ).format(**fields),
                entry_barriers=barriers,
                time_to_market=TIME_TO_MARKET.get(gap.type, "Medium (6-12 months)"),
                risk_level=risk_level(score),
                gap_type=gap.type,
                score_breakdown=breakdown,
            ))
        found.sort(key=lambda o: o.score, reverse=True)
        return found

    def potential_market_size(self, gaps: List[Gap], total: float) -> float:
        decay = self.config.OVERLAP_DECAY
        combined = sum(gap.size * decay ** rank for rank, gap in enumerate(gaps))
        return min(combined, max(total, 0.0) * self.config.MAX_OPPORTUNITY_SHARE)
