"""
Market Segmentation Agent
-------------------------
Splits the market into named segments from demographic and/or
psychographic data.

Method (by available input):
  hybrid         both inputs                 confidence 0.85
  demographic    demographic only            confidence 0.70
  psychographic  psychographic only          confidence 0.65
  basic          nothing recognisable        confidence 0.40

Segment generation, first that yields segments:
  1. explicit named segments
  2. value → share distributions (≤3 criteria, drop < minClusterSize,
     cap at maxClusterCount)
  3. canonical default bands for the first recognised criterion
  4. one "General market" segment

Shares summing above 1 are rescaled proportionally; coverage = min(Σ share, 1).

Input:  demographic mapping, psychographic mapping
Output: SegmentationResult
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from agents.base import Analyzer, InsufficientInputError
from models.schemas import Segment, SegmentationResult
from utils.parsing import as_share, is_mapping, is_record_list, pick, pick_float, to_float

logger = logging.getLogger(__name__)


# ─── Canonical default bands ─────────────────────────────────────────────────

DEFAULT_BANDS: Dict[str, List[tuple]] = {
    "age": [
        ("Youth", "18-24", 0.20, "Consumers aged 18 to 24"),
        ("Young adults", "25-34", 0.25, "Consumers aged 25 to 34"),
        ("Adults", "35-54", 0.35, "Consumers aged 35 to 54"),
        ("Seniors", "55+", 0.20, "Consumers aged 55 and over"),
    ],
    "income": [
        ("Low income", "low", 0.30, "Consumers with a low income"),
        ("Middle income", "medium", 0.50, "Consumers with a middle income"),
        ("High income", "high", 0.20, "Consumers with a high income"),
    ],
    "gender": [
        ("Men", "male", 0.50, "Male consumers"),
        ("Women", "female", 0.50, "Female consumers"),
    ],
    "location": [
        ("Urban", "urban", 0.60, "Consumers in urban areas"),
        ("Suburban", "suburban", 0.30, "Consumers in suburban areas"),
        ("Rural", "rural", 0.10, "Consumers in rural areas"),
    ],
    "lifestyle": [
        ("Traditional", "traditional", 0.30, "Consumers with a traditional lifestyle"),
        ("Modern", "modern", 0.40, "Consumers with a modern lifestyle"),
        ("Adventurous", "adventurous", 0.30, "Consumers with an adventurous lifestyle"),
    ],
}

GENERIC_BANDS = [
    ("Segment A", None, 0.40, "General market segment A"),
    ("Segment B", None, 0.30, "General market segment B"),
    ("Segment C", None, 0.30, "General market segment C"),
]


def _distribution(raw: Any) -> Dict[str, float]:
    """{value: share} from a mapping or a list of {name, share|percentage} groups."""
    out: Dict[str, float] = {}
    if is_mapping(raw):
        for value, share in raw.items():
            s = as_share(share)
            if s is not None:
                out[str(value)] = s
    elif is_record_list(raw):
        for group in raw:
            name = pick(group, "name", "value", "label")
            s = as_share(pick(group, "share", "percentage"))
            if name is not None and s is not None:
                out[str(name)] = s
    return out


def _explicit_segments(raw: Any) -> Dict[str, Mapping[str, Any]]:
    if is_mapping(raw):
        return {str(k): (v if is_mapping(v) else {"share": v}) for k, v in raw.items()}
    if is_record_list(raw):
        return {
            str(pick(s, "name", default=f"Segment {i + 1}")): s
            for i, s in enumerate(raw)
        }
    return {}


class MarketSegmentation(Analyzer):
    result_cls = SegmentationResult

    METHOD_CONFIDENCE = {
        "hybrid": 0.85,
        "demographic": 0.7,
        "psychographic": 0.65,
        "basic": 0.4,
    }

    def __init__(self, config=None):
        super().__init__(name="MarketSegmentation", config=config)

    def segment(
        self,
        demographic: Any,
        psychographic: Any = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> SegmentationResult:
        return self.execute(demographic, psychographic, options=options)

    # ------------------------------------------------------------------
    def run(self, demographic: Any, psychographic: Any, options: Dict[str, Any]) -> SegmentationResult:
        demo = demographic if is_mapping(demographic) else None
        psycho = psychographic if is_mapping(psychographic) else None
        if demo is None and psycho is None:
            raise InsufficientInputError("No demographic or psychographic data provided")

        demo_criteria = self.relevant_criteria(demo, self.config.DEMOGRAPHIC_CRITERIA)
        psycho_criteria = self.relevant_criteria(psycho, self.config.PSYCHOGRAPHIC_CRITERIA)

        combined = self.combine(demo, psycho)
        criteria = demo_criteria + psycho_criteria
        explicit = _explicit_segments(combined["segments"])

        if not explicit and not criteria:
            method = "basic"
        elif demo is not None and psycho is not None:
            method = "hybrid"
        elif demo is not None:
            method = "demographic"
        else:
            method = "psychographic"

        segments = self.generate_segments(combined, explicit, criteria, options)
        total_value = to_float(options.get("total_market_value"))
        if total_value is None:
            total_value = pick_float(combined, "totalMarketValue")
        if total_value is None:
            total_value = self.config.DEFAULT_TOTAL_MARKET_VALUE
        segments = self.size_segments(segments, total_value)
        coverage = min(sum(s.share for s in segments), 1.0)

        self.logger.info(
            f"[{self.name}] {method}: {len(segments)} segments, "
            f"criteria={criteria}, coverage={coverage:.0%}"
        )
        return SegmentationResult(
            segments=segments,
            demographic=self.summarize(demo, demo_criteria) if method != "basic" else {},
            psychographic=self.summarize(psycho, psycho_criteria) if method != "basic" else {},
            coverage=coverage,
            confidence=self.METHOD_CONFIDENCE[method],
            method=method,
        )

    # ─── Criteria ────────────────────────────────────────────────────────

    def relevant_criteria(self, data: Optional[Mapping[str, Any]], candidates: List[str]) -> List[str]:
        if data is None:
            return []
        distributions = pick(data, "distributions", default={})
        explicit = _explicit_segments(pick(data, "segments"))
        found = []
        for criterion in candidates:
            if (
                pick(data, criterion) not in (None, "", [], {})
                or (is_mapping(distributions) and distributions.get(criterion))
                or any(seg.get(criterion) is not None for seg in explicit.values())
            ):
                found.append(criterion)
        return found

    def combine(self, demo: Optional[Mapping], psycho: Optional[Mapping]) -> Dict[str, Any]:
        combined: Dict[str, Any] = {"distributions": {}, "segments": {}}
        for part in (demo, psycho):
            if part is None:
                continue
            for key, value in part.items():
                if key not in ("distributions", "segments"):
                    combined[key] = value
            distributions = pick(part, "distributions")
            if is_mapping(distributions):
                combined["distributions"].update(distributions)
            combined["segments"].update(_explicit_segments(pick(part, "segments")))
        return combined

    def distributions(self, data: Mapping[str, Any], criteria: List[str]) -> Dict[str, Dict[str, float]]:
        """Explicit distributions plus top-level criterion group lists/maps."""
        out: Dict[str, Dict[str, float]] = {}
        explicit = data.get("distributions") or {}
        for criterion in criteria:
            dist = _distribution(explicit.get(criterion))
            if not dist:
                dist = _distribution(pick(data, criterion))
            if dist:
                out[criterion] = dist
        return out

    # ─── Segment generation ──────────────────────────────────────────────

    def generate_segments(
        self,
        data: Mapping[str, Any],
        explicit: Dict[str, Mapping[str, Any]],
        criteria: List[str],
        options: Mapping[str, Any],
    ) -> List[Segment]:
        if explicit:
            return [self._from_explicit(name, attrs, criteria) for name, attrs in explicit.items()]

        segments = self._from_distributions(self.distributions(data, criteria), options)
        if segments:
            return segments

        return self._default_segments(criteria)

    def _from_explicit(self, name: str, attrs: Mapping[str, Any], criteria: List[str]) -> Segment:
        share = as_share(pick(attrs, "share", "percentage"))
        size = pick_float(attrs, "size")
        return Segment(
            name=name,
            share=share if share is not None else -1.0,
            size=size if size is not None else -1.0,
            criteria={c: str(attrs[c]) for c in criteria if attrs.get(c) is not None},
            description=str(pick(attrs, "description", default="")),
            source="explicit",
        )

    def _from_distributions(
        self,
        distributions: Dict[str, Dict[str, float]],
        options: Mapping[str, Any],
    ) -> List[Segment]:
        max_segments = int(self.option(options, "max_segments", self.config.MAX_CLUSTER_COUNT))
        min_share = float(self.option(options, "min_cluster_size", self.config.MIN_CLUSTER_SIZE))
        primary = list(distributions)[: self.config.MAX_SEGMENTATION_CRITERIA]

        segments: List[Segment] = []
        for criterion in primary:
            for value, share in distributions[criterion].items():
                if share < min_share:
                    continue
                segments.append(Segment(
                    name=f"{criterion[:1].upper()}{criterion[1:]}: {value}",
                    share=share,
                    size=-1.0,
                    criteria={criterion: value},
                    description=f"Segment based on {criterion}: {value}",
                    source="distribution",
                ))
                if len(segments) >= max_segments:
                    return segments
        return segments

    def _default_segments(self, criteria: List[str]) -> List[Segment]:
        if not criteria:
            return [Segment(
                name="General market",
                share=1.0,
                size=-1.0,
                description="General market segment without specific criteria",
                source="basic",
            )]
        primary = criteria[0]
        bands = DEFAULT_BANDS.get(primary, GENERIC_BANDS)
        return [
            Segment(
                name=name,
                share=share,
                size=-1.0,
                criteria={primary: value} if value is not None else {},
                description=description,
                source="default",
            )
            for name, value, share, description in bands
        ]

    # ─── Sizing ──────────────────────────────────────────────────────────

    def size_segments(self, segments: List[Segment], total_value: float) -> List[Segment]:
        """
        Fill in missing shares/sizes. Negative values mark "not given".
        Explicit shares are kept; segments without one split the remaining
        share by size, using the mean known size where a size is missing too.
        """
        if not segments:
            return segments
        missing = [s for s in segments if s.share < 0]
        if missing:
            known_share = sum(s.share for s in segments if s.share >= 0)
            remaining = 1.0 if len(missing) == len(segments) else max(1.0 - known_share, 0.0)
            sizes = [s.size for s in missing if s.size > 0]
            fallback = float(np.mean(sizes)) if sizes else 1.0
            weights = [s.size if s.size > 0 else fallback for s in missing]
            total_weight = sum(weights)
            for s, w in zip(missing, weights):
                s.share = remaining * w / total_weight

        share_sum = sum(s.share for s in segments)
        if share_sum > 1.0:
            for s in segments:
                s.share = s.share / share_sum

        for s in segments:
            if s.size < 0:
                s.size = s.share * total_value
        return segments

    # ─── Summaries ───────────────────────────────────────────────────────

    def summarize(self, data: Optional[Mapping[str, Any]], criteria: List[str]) -> Dict[str, Any]:
        """Raw per-criterion data (group lists keep their coverage fields)."""
        if data is None:
            return {}
        distributions = pick(data, "distributions", default={})
        summary: Dict[str, Any] = {}
        for criterion in criteria:
            raw = pick(data, criterion)
            if isinstance(raw, (list, tuple)):
                summary[criterion] = list(raw)
            elif is_mapping(distributions) and distributions.get(criterion):
                summary[criterion] = distributions[criterion]
            elif raw is not None:
                summary[criterion] = raw
        return summary
