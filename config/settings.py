"""
Configuration & Settings
Market Research Analytics Engine
"""

from pydantic import BaseModel, ConfigDict
from typing import Dict, List


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # App
    APP_NAME: str = "Market Research Analytics Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Market size
    DEFAULT_GROWTH_RATE: float = 0.05
    INDUSTRY_GROWTH_RATES: Dict[str, float] = {
        "technology": 0.12,
        "healthcare": 0.08,
        "retail": 0.04,
        "finance": 0.05,
        "manufacturing": 0.03,
        "energy": 0.06,
        "education": 0.04,
        "entertainment": 0.07,
        "food": 0.03,
        "transportation": 0.05,
    }
    # Pmax of the logistic adoption curve per industry
    INDUSTRY_PENETRATION_CEILINGS: Dict[str, float] = {
        "technology": 0.65,
        "healthcare": 0.80,
        "retail": 0.90,
        "finance": 0.75,
        "manufacturing": 0.70,
        "energy": 0.85,
        "education": 0.80,
        "entertainment": 0.95,
        "food": 0.95,
        "transportation": 0.85,
    }
    DEFAULT_INDUSTRY: str = "technology"
    DEFAULT_PENETRATION_CEILING: float = 0.80
    DEFAULT_CURRENT_PENETRATION: float = 0.20
    S_CURVE_RATE: float = 0.5
    FORECAST_YEARS: int = 5
    DEFAULT_AVERAGE_PRICE: float = 100.0

    # Segmentation
    MIN_CLUSTER_SIZE: float = 0.05
    MAX_CLUSTER_COUNT: int = 8
    MAX_SEGMENTATION_CRITERIA: int = 3
    DEFAULT_TOTAL_MARKET_VALUE: float = 1_000_000.0
    DEMOGRAPHIC_CRITERIA: List[str] = [
        "age", "gender", "income", "education", "occupation",
        "location", "urbanicity", "familySize", "maritalStatus",
    ]
    PSYCHOGRAPHIC_CRITERIA: List[str] = [
        "interests", "activities", "opinions", "attitudes", "values",
        "lifestyle", "personality", "socialClass", "buyingBehavior",
    ]

    # Trend analysis
    SIGNIFICANCE_THRESHOLD: float = 0.05
    MIN_DATA_POINTS: int = 5
    FORECAST_HORIZON: int = 12
    SEASONALITY_PERIODS: List[int] = [4, 12]

    # Pricing
    ELASTICITY_INELASTIC_BELOW: float = 0.5
    ELASTICITY_UNIT_BELOW: float = 1.5
    PRICE_TIER_MULTIPLIERS: Dict[str, float] = {
        "budget": 0.7,
        "midRange": 1.3,
        "premium": 2.0,
    }
    COMPETITIVE_PRICE_BAND: float = 0.10
    MAX_HISTOGRAM_BINS: int = 10

    # Competitor analysis
    POSITIONING_DIMENSIONS: List[str] = [
        "price", "quality", "innovation", "marketShare", "customerSatisfaction",
    ]
    ADVANTAGE_THRESHOLD: float = 10.0
    SWOT_POSITION_DELTA: float = 10.0
    SWOT_COMPETITOR_DELTA: float = 15.0
    HHI_MODERATE: float = 1500.0
    HHI_HIGH: float = 2500.0

    # Gap & opportunity identification
    SEGMENT_COVERAGE_THRESHOLD: float = 0.7
    GROUP_COVERAGE_THRESHOLD: float = 0.6
    POSITIONING_STDDEV_THRESHOLD: float = 15.0
    POSITIONING_GAP_THRESHOLD: float = 20.0
    MIN_OPPORTUNITY_SCORE: float = 60.0
    OPPORTUNITY_WEIGHTS: Dict[str, float] = {
        "market_size": 0.3,
        "competition": 0.3,
        "growth": 0.2,
        "profit": 0.2,
    }
    DIMENSION_MULTIPLIERS: Dict[str, float] = {
        "price": 1.2,
        "quality": 1.1,
        "innovation": 0.9,
        "marketShare": 0.8,
    }
    OVERLAP_DECAY: float = 0.8
    MAX_OPPORTUNITY_SHARE: float = 0.3

    # Orchestration
    MAX_WORKERS: int = 5


settings = Settings()
