"""
Market Research Orchestrator
----------------------------
Fan-out / fan-in over the analyzers:

  MarketSizeEstimator ─┐
  MarketSegmentation  ─┤
  TrendAnalyzer       ─┼─► GapOpportunityIdentifier ─► MarketResearchReport
  PriceAnalyzer       ─┤
  CompetitorAnalyzer  ─┘

The five leaf analyzers share no state and run concurrently in a thread
pool; the gap stage waits for all of them. A stage without usable input
leaves its report slot empty instead of failing the run.

Input:  bundle {marketSize, segmentation, trends, pricing, competitors}
Output: MarketResearchReport
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from agents.base import Analyzer
from agents.competitor_analyzer import CompetitorAnalyzer
from agents.gap_identifier import GapOpportunityIdentifier
from agents.market_size import MarketSizeEstimator
from agents.price_analyzer import PriceAnalyzer
from agents.segmentation import MarketSegmentation
from agents.trend_analyzer import TrendAnalyzer
from config.settings import Settings, settings
from models.schemas import AnalysisResult, MarketResearchReport
from utils.parsing import is_mapping, pick, pick_float
from utils.visualization import build_visualizations

# stage name → bundle key (camelCase; snake_case spelling is accepted too)
LEAF_STAGES: Dict[str, str] = {
    "market_size": "marketSize",
    "segmentation": "segmentation",
    "trends": "trends",
    "pricing": "pricing",
    "competitors": "competitors",
}
GAP_STAGE = "gaps"
STAGES = list(LEAF_STAGES) + [GAP_STAGE]


def stage_options(options: Mapping[str, Any], stage: str) -> Dict[str, Any]:
    """Shared options with `options[stage]` layered on top."""
    shared = {k: v for k, v in options.items() if k not in STAGES}
    own = options.get(stage)
    if is_mapping(own):
        shared.update(own)
    return shared


def segmentation_inputs(raw: Any) -> Tuple[Any, Any]:
    """Split the segmentation bundle entry into (demographic, psychographic)."""
    if not is_mapping(raw):
        return None, None
    demographic = pick(raw, "demographic")
    psychographic = pick(raw, "psychographic")
    if demographic is None and psychographic is None:
        return raw, None
    segments = pick(raw, "segments")
    if segments is not None:
        demographic = dict(demographic) if is_mapping(demographic) else {}
        demographic.setdefault("segments", segments)
    return demographic, psychographic


class MarketResearchOrchestrator:
    """Runs the full market analysis and assembles the composite report."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.market_size = MarketSizeEstimator(config=self.config)
        self.segmentation = MarketSegmentation(config=self.config)
        self.trends = TrendAnalyzer(config=self.config)
        self.pricing = PriceAnalyzer(config=self.config)
        self.competitors = CompetitorAnalyzer(config=self.config)
        self.gaps = GapOpportunityIdentifier(config=self.config)
        self.logger = logging.getLogger("orchestrator")

    @property
    def analyzers(self) -> Dict[str, Analyzer]:
        return {
            "market_size": self.market_size,
            "segmentation": self.segmentation,
            "trends": self.trends,
            "pricing": self.pricing,
            "competitors": self.competitors,
            GAP_STAGE: self.gaps,
        }

    # ------------------------------------------------------------------
    def analyze_market(
        self,
        bundle: Any,
        options: Optional[Mapping[str, Any]] = None,
    ) -> MarketResearchReport:
        options = dict(options or {})
        if not is_mapping(bundle):
            self.logger.error(f"❌ Market data bundle must be a mapping, got {type(bundle).__name__}")
            return MarketResearchReport(
                success=False,
                error="Market data bundle must be a mapping",
                metadata={"completed_stages": 0, "total_stages": len(STAGES)},
            )

        started = time.perf_counter()
        self.logger.info(f"🚀 Market analysis starting — {len(STAGES)} stages")

        results = self._run_leaves(bundle, options)
        results[GAP_STAGE] = self.gaps.identify(
            results["market_size"],
            results["segmentation"],
            results["competitors"],
            options=stage_options(options, GAP_STAGE),
        )

        report = self._assemble(results, options)
        elapsed = time.perf_counter() - started
        self.logger.info(
            f"✅ Market analysis complete — {report.completed_stages}/{len(STAGES)} stages "
            f"produced results in {elapsed:.2f}s"
        )
        return report

    # ─── Fan-out ─────────────────────────────────────────────────────────

    def _leaf_calls(self, bundle: Mapping[str, Any], options: Mapping[str, Any]) -> Dict[str, Callable[[], AnalysisResult]]:
        inputs = {stage: pick(bundle, key) for stage, key in LEAF_STAGES.items()}
        demographic, psychographic = segmentation_inputs(inputs["segmentation"])

        segmentation_opts = stage_options(options, "segmentation")
        if segmentation_opts.get("total_market_value") is None:
            total = pick_float(
                inputs["market_size"], "totalMarketSize", "totalAddressableMarket", "estimatedSize"
            )
            if total is not None:
                segmentation_opts["total_market_value"] = total

        return {
            "market_size": lambda: self.market_size.estimate(
                inputs["market_size"], options=stage_options(options, "market_size")),
            "segmentation": lambda: self.segmentation.segment(
                demographic, psychographic, options=segmentation_opts),
            "trends": lambda: self.trends.analyze(
                inputs["trends"], options=stage_options(options, "trends")),
            "pricing": lambda: self.pricing.analyze(
                inputs["pricing"], options=stage_options(options, "pricing")),
            "competitors": lambda: self.competitors.analyze(
                inputs["competitors"], options=stage_options(options, "competitors")),
        }

    def _run_leaves(self, bundle: Mapping[str, Any], options: Mapping[str, Any]) -> Dict[str, AnalysisResult]:
        calls = self._leaf_calls(bundle, options)
        results: Dict[str, AnalysisResult] = {}
        with ThreadPoolExecutor(max_workers=self.config.MAX_WORKERS) as executor:
            futures = {executor.submit(call): stage for stage, call in calls.items()}
            for future in as_completed(futures):
                stage = futures[future]
                try:
                    results[stage] = future.result()
                except Exception as e:
                    self.logger.error(f"  ❌ '{stage}' crashed outside its analyzer: {e}")
                    results[stage] = self.analyzers[stage].result_cls(
                        confidence=0.0, method="error", error=str(e) or type(e).__name__
                    )
                self.logger.info(f"  [{len(results)}/{len(calls)}] {stage}: {results[stage].method}")
        return results

    # ─── Fan-in ──────────────────────────────────────────────────────────

    def _assemble(self, results: Dict[str, AnalysisResult], options: Mapping[str, Any]) -> MarketResearchReport:
        def _slot(stage: str):
            result = results.get(stage)
            return result if result is not None and result.ok else None

        report = MarketResearchReport(
            success=True,
            market_size=_slot("market_size"),
            segmentation=_slot("segmentation"),
            trends=_slot("trends"),
            price_analysis=_slot("pricing"),
            competitor_analysis=_slot("competitors"),
            gap_opportunities=_slot(GAP_STAGE),
        )
        charts = options.get("visualization")
        charts = charts if is_mapping(charts) else {}
        report.visualization_data = build_visualizations(
            segmentation=report.segmentation,
            trends=report.trends,
            prices=report.price_analysis,
            competitors=report.competitor_analysis,
            gaps=report.gap_opportunities,
            x_axis=charts.get("x_axis", "price"),
            y_axis=charts.get("y_axis", "quality"),
        )
        report.metadata = self._metadata(results, report, options)
        return report

    def _metadata(
        self,
        results: Dict[str, AnalysisResult],
        report: MarketResearchReport,
        options: Mapping[str, Any],
    ) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "app_version": self.config.APP_VERSION,
            "stages": {
                stage: {
                    "method": results[stage].method,
                    "confidence": round(results[stage].confidence, 4),
                    "error": results[stage].error,
                }
                for stage in STAGES
            },
            "completed_stages": report.completed_stages,
            "total_stages": len(STAGES),
        }
        now = options.get("now")
        if isinstance(now, (datetime, date)):
            metadata["generated_at"] = now.isoformat()
        return metadata

    def __repr__(self):
        return f"<MarketResearchOrchestrator: {len(STAGES)} stages>"
