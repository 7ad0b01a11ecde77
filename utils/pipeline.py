"""
Pipeline runner — loads a market data bundle, runs the orchestrator and
returns a MarketResearchReport.

Architecture:
  [MarketSize | Segmentation | Trends | Pricing | Competitors] → GapOpportunities
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from agents.orchestrator import MarketResearchOrchestrator
from config.settings import Settings
from models.schemas import MarketResearchReport

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_bundle(path: PathLike) -> Dict[str, Any]:
    """Read a JSON market data bundle from disk."""
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def save_report(report: MarketResearchReport, path: PathLike) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(report.to_dict(), fh, indent=2, ensure_ascii=False)
    logger.info(f"Report written to {path}")


def run_market_analysis(
    bundle: Any,
    options: Optional[Mapping[str, Any]] = None,
    config: Optional[Settings] = None,
    verbose: bool = True,
) -> MarketResearchReport:
    """
    End-to-end market analysis.

    Parameters
    ----------
    bundle : dict or path
        {marketSize, segmentation, trends, pricing, competitors}; a str or
        Path is loaded as JSON first.
    options : dict, optional
        Shared analyzer options, with per-stage overrides under the stage
        name (market_size, segmentation, trends, pricing, competitors, gaps).
    config : Settings, optional
        Alternative configuration; defaults to the module-level settings.
    """
    if isinstance(bundle, (str, Path)):
        bundle = load_bundle(bundle)

    orchestrator = MarketResearchOrchestrator(config=config)
    report = orchestrator.analyze_market(bundle, options)
    if verbose and report.success:
        logger.info(report.summary())
    return report
