from .base import Analyzer, InsufficientInputError, OwnerSelector
from .market_size import MarketSizeEstimator
from .segmentation import MarketSegmentation
from .trend_analyzer import TrendAnalyzer
from .price_analyzer import PriceAnalyzer
from .competitor_analyzer import CompetitorAnalyzer
from .gap_identifier import GapOpportunityIdentifier
from .orchestrator import MarketResearchOrchestrator

__all__ = [
    "Analyzer", "InsufficientInputError", "OwnerSelector",
    "MarketSizeEstimator", "MarketSegmentation", "TrendAnalyzer",
    "PriceAnalyzer", "CompetitorAnalyzer", "GapOpportunityIdentifier",
    "MarketResearchOrchestrator",
]
