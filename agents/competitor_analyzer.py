"""
Competitor Analysis Agent
-------------------------
Positions competitors against each other and measures market concentration.

  Positioning : score per dimension from a direct field, `scores` or
                `positioning`; each dimension column is put on a 0-100 scale
                (see infer_scale) and clamped
  Shares      : explicit shares (fractions or percents), remainder split over
                records without one, equal split when none are given
  CR3 / CR5   : combined share of the top 3 / top 5
  HHI         : Σ (100 · share)²    <1500 unconcentrated, <2500 moderately,
                                    else highly concentrated
  Advantages  : owner vs best rival per dimension, 10-point threshold
  SWOT        : relative deltas >10, share vs 1/N, rival deltas >15,
                concentration class

Input:  [competitor records] or {competitors: [...]}
Output: CompetitorResult
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from agents.base import Analyzer, InsufficientInputError, OwnerSelector
from models.schemas import CompetitorRecord, CompetitorResult, PositioningMatrix
from utils.parsing import as_share, is_mapping, pick, to_float

logger = logging.getLogger(__name__)


def infer_scale(values: List[float]) -> float:
    """
    Upper bound of the scale a dimension column was recorded on, judged from
    the column maximum: ≤1 → 0-1, ≤10 → 0-10, ≤100 → 0-100, else the max itself.
    """
    top = max(values) if values else 0.0
    if top <= 1:
        return 1.0
    if top <= 10:
        return 10.0
    if top <= 100:
        return 100.0
    return top


def concentration_class(hhi: float, moderate: float = 1500.0, high: float = 2500.0) -> str:
    if hhi < moderate:
        return "unconcentrated"
    if hhi < high:
        return "moderately concentrated"
    return "highly concentrated"


class CompetitorAnalyzer(Analyzer):
    result_cls = CompetitorResult

    def __init__(self, config=None):
        super().__init__(name="CompetitorAnalyzer", config=config)

    def analyze(self, competitor_data: Any, options: Optional[Mapping[str, Any]] = None) -> CompetitorResult:
        return self.execute(competitor_data, options=options)

    # ------------------------------------------------------------------
    def run(self, competitor_data: Any, options: Dict[str, Any]) -> CompetitorResult:
        raw = self.normalize(competitor_data)
        if not raw:
            raise InsufficientInputError("No competitor records provided")

        dimensions = list(self.option(options, "dimensions", self.config.POSITIONING_DIMENSIONS))
        names = self.assign_names(raw)
        owner = OwnerSelector.from_options(options).select(names, raw)

        positioning = self.positioning(raw, names, dimensions, options)
        market_share = self.market_share(raw, names)
        competitors = [
            CompetitorRecord(
                name=name,
                positioning={d: positioning.matrix[d][name] for d in dimensions if name in positioning.matrix[d]},
                market_share=market_share["market_shares"].get(name),
                segments=self._segments(record),
                is_own=(i == owner),
                pricing=dict(pick(record, "pricing", default={})) if is_mapping(pick(record, "pricing")) else {},
                raw=dict(record),
            )
            for i, (name, record) in enumerate(zip(names, raw))
        ]
        own_name = names[owner] if owner is not None else None

        advantages = self.competitive_advantages(own_name, positioning)
        swot = self.swot(own_name, names, positioning, market_share)

        has_share = market_share["explicit_count"] > 0
        has_positioning = any(self._has_positioning(r) for r in raw)
        if has_share and has_positioning:
            method = "comprehensive"
        elif has_share:
            method = "market-share"
        elif has_positioning:
            method = "positioning"
        else:
            method = "basic"

        self.logger.info(
            f"[{self.name}] {method}: {len(raw)} competitors, owner={own_name}, "
            f"HHI={market_share['hhi']:.0f} ({market_share['concentration']})"
        )
        return CompetitorResult(
            competitors=competitors,
            positioning=positioning,
            market_share=market_share,
            competitive_advantages=advantages,
            swot_analysis=swot,
            confidence=self.confidence(raw, has_share),
            method=method,
        )

    # ─── Normalisation ───────────────────────────────────────────────────

    def normalize(self, competitor_data: Any) -> List[Mapping[str, Any]]:
        if is_mapping(competitor_data):
            competitor_data = pick(competitor_data, "competitors")
        if not isinstance(competitor_data, (list, tuple)):
            return []
        return [c for c in competitor_data if is_mapping(c)]

    def assign_names(self, records: List[Mapping[str, Any]]) -> List[str]:
        """Deterministic names: `Competitor N` when unnamed, ` (k)` suffix on repeats."""
        names: List[str] = []
        seen: Dict[str, int] = {}
        for i, record in enumerate(records):
            name = pick(record, "name")
            base = str(name) if name not in (None, "") else f"Competitor {i + 1}"
            candidate = base
            while candidate in seen:
                seen[base] += 1
                candidate = f"{base} ({seen[base]})"
            seen.setdefault(base, 1)
            seen.setdefault(candidate, 1)
            names.append(candidate)
        return names

    def _segments(self, record: Mapping[str, Any]) -> List[str]:
        segments = pick(record, "segments")
        if is_mapping(segments):
            return [str(s) for s in segments]
        if isinstance(segments, (list, tuple)):
            return [str(s) for s in segments]
        return []

    def _has_positioning(self, record: Mapping[str, Any]) -> bool:
        if is_mapping(pick(record, "positioning")) or is_mapping(pick(record, "scores")):
            return True
        return any(
            to_float(record.get(d)) is not None
            for d in self.config.POSITIONING_DIMENSIONS if d != "marketShare"
        )

    # ─── Positioning ─────────────────────────────────────────────────────

    def raw_score(self, record: Mapping[str, Any], dimension: str) -> Optional[float]:
        direct = to_float(record.get(dimension))
        if direct is not None:
            return direct
        for container in ("scores", "positioning"):
            nested = pick(record, container)
            if is_mapping(nested):
                value = to_float(nested.get(dimension))
                if value is not None:
                    return value
        return None

    def positioning(
        self,
        records: List[Mapping[str, Any]],
        names: List[str],
        dimensions: List[str],
        options: Mapping[str, Any],
    ) -> PositioningMatrix:
        scales = options.get("score_scales") or {}
        matrix: Dict[str, Dict[str, float]] = {}
        averages: Dict[str, float] = {}
        for dimension in dimensions:
            column = {
                name: score
                for name, record in zip(names, records)
                for score in [self.raw_score(record, dimension)]
                if score is not None
            }
            scale = to_float(scales.get(dimension)) if is_mapping(scales) else to_float(scales)
            if not scale:
                scale = infer_scale(list(column.values()))
            matrix[dimension] = {
                name: min(max(score / scale * 100, 0.0), 100.0)
                for name, score in column.items()
            }
            if matrix[dimension]:
                averages[dimension] = float(np.mean(list(matrix[dimension].values())))

        relative: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for name in names:
            relative[name] = {}
            for dimension in dimensions:
                score = matrix[dimension].get(name)
                if score is None:
                    continue
                avg = averages[dimension]
                relative[name][dimension] = {
                    "score": score,
                    "relative_to": avg,
                    "position": "above" if score > avg else "below",
                }
        return PositioningMatrix(
            dimensions=dimensions,
            matrix=matrix,
            relative_positions=relative,
            averages=averages,
        )

    # ─── Market share ────────────────────────────────────────────────────

    def market_share(self, records: List[Mapping[str, Any]], names: List[str]) -> Dict[str, Any]:
        explicit: Dict[str, float] = {}
        for name, record in zip(names, records):
            share = pick(record, "marketShare")
            if share is None and is_mapping(pick(record, "market")):
                share = pick(record, "market").get("share")
            share = as_share(share)
            if share is not None:
                explicit[name] = min(share, 1.0)

        total = sum(explicit.values())
        if total > 1.0:
            explicit = {name: s / total for name, s in explicit.items()}
            total = 1.0

        shares: Dict[str, float] = {}
        if explicit:
            missing = [n for n in names if n not in explicit]
            remainder = max(0.0, 1.0 - total) / len(missing) if missing else 0.0
            for name in names:
                shares[name] = explicit.get(name, remainder)
        else:
            shares = {name: 1.0 / len(names) for name in names}

        ordered = sorted(shares.values(), reverse=True)
        hhi = sum((s * 100) ** 2 for s in shares.values())
        return {
            "market_shares": shares,
            "concentration_ratio": {"cr3": sum(ordered[:3]), "cr5": sum(ordered[:5])},
            "hhi": hhi,
            "concentration": concentration_class(hhi, self.config.HHI_MODERATE, self.config.HHI_HIGH),
            "explicit_count": len(explicit),
        }

    # ─── Advantages & SWOT ───────────────────────────────────────────────

    def competitive_advantages(
        self, own_name: Optional[str], positioning: PositioningMatrix
    ) -> Optional[Dict[str, Any]]:
        if own_name is None:
            return None
        threshold = self.config.ADVANTAGE_THRESHOLD
        by_dimension: Dict[str, Dict[str, Any]] = {}
        for dimension in positioning.dimensions:
            scores = positioning.matrix.get(dimension, {})
            own = scores.get(own_name)
            if own is None:
                continue
            rivals = sorted(
                ((n, s) for n, s in scores.items() if n != own_name),
                key=lambda item: item[1],
                reverse=True,
            )
            if not rivals:
                by_dimension[dimension] = {"type": "parity", "score": own, "gap": 0.0, "top_competitor": None}
                continue
            top_name, top = rivals[0]
            if own > top + threshold:
                kind = "significant advantage"
            elif own > top:
                kind = "slight advantage"
            elif own < top - threshold:
                kind = "significant disadvantage"
            elif own < top:
                kind = "slight disadvantage"
            else:
                kind = "parity"
            by_dimension[dimension] = {
                "type": kind,
                "score": own,
                "gap": abs(own - top),
                "top_competitor": top_name,
            }

        def _dims(kind: str) -> List[str]:
            return [d for d, v in by_dimension.items() if v["type"] == kind]

        return {
            "by_dimension": by_dimension,
            "summary": {
                "significant_advantages": _dims("significant advantage"),
                "slight_advantages": _dims("slight advantage"),
                "significant_disadvantages": _dims("significant disadvantage"),
                "slight_disadvantages": _dims("slight disadvantage"),
            },
        }

    def swot(
        self,
        own_name: Optional[str],
        names: List[str],
        positioning: PositioningMatrix,
        market_share: Dict[str, Any],
    ) -> Optional[Dict[str, List[str]]]:
        if own_name is None:
            return None
        swot: Dict[str, List[str]] = {"strengths": [], "weaknesses": [], "opportunities": [], "threats": []}
        own_positions = positioning.relative_positions.get(own_name, {})
        delta = self.config.SWOT_POSITION_DELTA

        for dimension, data in own_positions.items():
            if data["position"] == "above" and data["score"] - data["relative_to"] > delta:
                swot["strengths"].append(f"Strong {dimension} position compared to competitors")
            elif data["position"] == "below" and data["relative_to"] - data["score"] > delta:
                swot["weaknesses"].append(f"Weak {dimension} position compared to competitors")

        own_share = market_share["market_shares"].get(own_name)
        if own_share:
            average = 1.0 / len(names)
            if own_share > average * 1.5:
                swot["strengths"].append("Strong market share compared to the industry average")
            elif own_share < average * 0.5:
                swot["weaknesses"].append("Weak market share compared to the industry average")

        rival_delta = self.config.SWOT_COMPETITOR_DELTA
        for name in names:
            if name == own_name:
                continue
            for dimension, data in positioning.relative_positions.get(name, {}).items():
                if dimension not in own_positions:
                    continue
                if data["position"] == "below" and data["relative_to"] - data["score"] > rival_delta:
                    swot["opportunities"].append(f"Opportunity to win market share from {name} on {dimension}")
                if data["position"] == "above" and data["score"] - data["relative_to"] > rival_delta:
                    swot["threats"].append(f"Threat from {name}'s strong position on {dimension}")

        if market_share["concentration"] == "highly concentrated":
            swot["opportunities"].append(
                "Opportunity to gain share in a concentrated market through differentiation"
            )
        elif market_share["concentration"] == "unconcentrated":
            swot["opportunities"].append("Opportunity to become market leader in a fragmented market")
            swot["threats"].append("Threat of intense competition in a fragmented market")
        return swot

    # ─── Confidence ──────────────────────────────────────────────────────

    def confidence(self, records: List[Mapping[str, Any]], has_share: bool) -> float:
        dimensions = set()
        for record in records:
            dimensions.update(d for d in self.config.POSITIONING_DIMENSIONS if record.get(d) is not None)
            for container in ("scores", "positioning"):
                nested = pick(record, container)
                if is_mapping(nested):
                    dimensions.update(nested.keys())

        confidence = 0.5
        confidence += 0.1 if len(records) > 1 else 0.0
        confidence += 0.1 if len(records) > 3 else 0.0
        confidence += 0.1 if len(dimensions) > 2 else 0.0
        confidence += 0.1 if len(dimensions) > 4 else 0.0
        confidence += 0.1 if has_share else 0.0
        return min(confidence, 1.0)
