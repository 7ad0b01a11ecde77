"""
Market Size Estimation Agent
----------------------------
Estimates the total market size and per-segment sizes using the best method
the data supports (first match wins):

  top-down     totalMarketSize + segment shares              confidence 0.80
  bottom-up    customerCount × averageSpending               confidence 0.75
  value-chain  Σ value-chain stage values                    confidence 0.70
  comparable   similarity-weighted mean of analogous markets confidence 0.60
  basic        estimatedSize or potentialCustomers × price   confidence 0.40

A multi-year forecast follows a logistic adoption curve:

  P(t)  = Pmax / (1 + e^{-r (t - t0)}),   P(0) = current penetration
  g(t)  = g · P(t) / P(t-1), clamped to ±2|g|

Input:  market data mapping
Output: MarketSizeResult
"""

import math
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from agents.base import Analyzer, InsufficientInputError
from models.schemas import MarketForecastYear, MarketSizeResult
from utils.parsing import as_share, is_mapping, pick, pick_float, to_float

logger = logging.getLogger(__name__)


def share_map(raw: Any) -> Dict[str, float]:
    """
    Normalize a segment-share description into {name: share}.
    Accepts {name: share} or [{name, share|percentage}].
    """
    shares: Dict[str, float] = {}
    if is_mapping(raw):
        items = raw.items()
    elif isinstance(raw, (list, tuple)):
        items = [
            (pick(r, "name", "segment"), pick(r, "share", "percentage"))
            for r in raw if is_mapping(r)
        ]
    else:
        return shares
    for name, value in items:
        share = as_share(value)
        if name is not None and share is not None:
            shares[str(name)] = share
    return shares


def logistic_penetration(p0: float, p_max: float, rate: float, t: float) -> float:
    """Logistic penetration at time t, anchored so that P(0) = p0."""
    t0 = math.log(p_max / p0 - 1.0) / rate
    return p_max / (1.0 + math.exp(-rate * (t - t0)))


class MarketSizeEstimator(Analyzer):
    result_cls = MarketSizeResult

    def __init__(self, config=None):
        super().__init__(name="MarketSizeEstimator", config=config)

    def estimate(self, market_data: Any, options: Optional[Mapping[str, Any]] = None) -> MarketSizeResult:
        return self.execute(market_data, options=options)

    # ------------------------------------------------------------------
    def run(self, market_data: Any, options: Dict[str, Any]) -> MarketSizeResult:
        if not is_mapping(market_data) or not market_data:
            raise InsufficientInputError("No market data provided")

        method = self.select_method(market_data)
        if method is None:
            raise InsufficientInputError(
                "Market data lacks totals, customer counts, value chain, "
                "comparable markets or an estimated size"
            )

        estimators = {
            "top-down": (self._top_down, 0.8),
            "bottom-up": (self._bottom_up, 0.75),
            "value-chain": (self._value_chain, 0.7),
            "comparable": (self._comparable, 0.6),
            "basic": (self._basic, 0.4),
        }
        estimator, confidence = estimators[method]
        total, segment_sizes = estimator(market_data)

        growth_rate = self.growth_rate(market_data, options)
        result = MarketSizeResult(
            total_market_size=total,
            segment_sizes=segment_sizes,
            growth_rate=growth_rate,
            confidence=confidence,
            method=method,
        )
        result.forecast = self.forecast(total, growth_rate, market_data, options)
        self.logger.info(
            f"[{self.name}] {method}: total={total:,.0f} growth={growth_rate:.1%} "
            f"segments={len(segment_sizes)}"
        )
        return result

    def select_method(self, data: Mapping[str, Any]) -> Optional[str]:
        if pick_float(data, "totalMarketSize") is not None and share_map(pick(data, "segments")):
            return "top-down"
        if (pick_float(data, "customerCount") is not None
                and pick_float(data, "averageSpending") is not None):
            return "bottom-up"
        if self._value_chain_stages(data):
            return "value-chain"
        if self._comparables(data):
            return "comparable"
        if self._basic_total(data) is not None:
            return "basic"
        return None

    # ─── Estimators ──────────────────────────────────────────────────────

    def _top_down(self, data) -> Tuple[float, Dict[str, float]]:
        total = pick_float(data, "totalMarketSize")
        shares = share_map(pick(data, "segments"))
        return total, {name: total * share for name, share in shares.items()}

    def _bottom_up(self, data) -> Tuple[float, Dict[str, float]]:
        total = pick_float(data, "customerCount") * pick_float(data, "averageSpending")
        shares = share_map(pick(data, "customerSegments"))
        return total, {name: total * share for name, share in shares.items()}

    def _value_chain_stages(self, data) -> Dict[str, float]:
        raw = pick(data, "valueChain")
        stages: Dict[str, float] = {}
        if is_mapping(raw):
            for stage, value in raw.items():
                v = to_float(value)
                if v is not None:
                    stages[str(stage)] = v
        elif isinstance(raw, (list, tuple)):
            for i, item in enumerate(raw):
                if not is_mapping(item):
                    continue
                v = pick_float(item, "value", "size")
                if v is not None:
                    stages[str(pick(item, "stage", "name", default=f"Stage {i + 1}"))] = v
        return stages

    def _value_chain(self, data) -> Tuple[float, Dict[str, float]]:
        stages = self._value_chain_stages(data)
        return float(sum(stages.values())), dict(stages)

    def _comparables(self, data) -> List[Tuple[float, float]]:
        markets = pick(data, "comparableMarkets")
        if not isinstance(markets, (list, tuple)):
            return []
        pairs = []
        for market in markets:
            size = pick_float(market, "size", "marketSize")
            if size is None:
                continue
            weight = pick_float(market, "similarity", "weight")
            pairs.append((size, 1.0 if weight is None else weight))
        return pairs

    def _comparable(self, data) -> Tuple[float, Dict[str, float]]:
        pairs = self._comparables(data)
        sizes = np.array([p[0] for p in pairs], dtype=float)
        weights = np.array([p[1] for p in pairs], dtype=float)
        if weights.sum() <= 0:
            return float(sizes.mean()), {}
        return float(np.average(sizes, weights=weights)), {}

    def _basic_total(self, data) -> Optional[float]:
        estimated = pick_float(data, "estimatedSize", "totalAddressableMarket", "totalMarketSize")
        if estimated is not None:
            return estimated
        customers = pick_float(data, "potentialCustomers")
        if customers is None:
            return None
        price = pick_float(data, "averagePrice")
        return customers * (self.config.DEFAULT_AVERAGE_PRICE if price is None else price)

    def _basic(self, data) -> Tuple[float, Dict[str, float]]:
        return self._basic_total(data), {}

    # ─── Growth & forecast ───────────────────────────────────────────────

    def growth_rate(self, data: Mapping[str, Any], options: Mapping[str, Any]) -> float:
        explicit = to_float(options.get("growth_rate"))
        if explicit is None:
            explicit = pick_float(data, "growthRate")
        if explicit is not None:
            return explicit
        industry = pick(data, "industry")
        return self.config.INDUSTRY_GROWTH_RATES.get(
            str(industry).lower() if industry else "", self.config.DEFAULT_GROWTH_RATE
        )

    def _base_year(self, options: Mapping[str, Any]) -> Optional[int]:
        base_year = options.get("base_year")
        if base_year is not None:
            return int(base_year)
        now = options.get("now")
        if isinstance(now, (datetime, date)):
            return now.year
        return None

    def forecast(
        self,
        total: float,
        growth_rate: float,
        data: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> List[MarketForecastYear]:
        years = int(self.option(options, "forecast_years", self.config.FORECAST_YEARS))
        industry = str(pick(data, "industry", default=self.config.DEFAULT_INDUSTRY)).lower()
        p_max = self.config.INDUSTRY_PENETRATION_CEILINGS.get(
            industry, self.config.DEFAULT_PENETRATION_CEILING
        )
        p0 = pick_float(data, "currentPenetration")
        if p0 is None:
            p0 = self.config.DEFAULT_CURRENT_PENETRATION
        # P0 must sit strictly inside (0, Pmax) for t0 to exist
        eps = 1e-6
        p0 = min(max(p0, eps), p_max - eps)
        rate = self.config.S_CURVE_RATE
        base_year = self._base_year(options)

        forecast: List[MarketForecastYear] = []
        size = total
        previous = p0
        for offset in range(1, years + 1):
            penetration = min(logistic_penetration(p0, p_max, rate, offset), p_max)
            cap = abs(growth_rate) * 2
            year_growth = max(min(growth_rate * penetration / previous, cap), -cap)
            size *= 1 + year_growth
            forecast.append(MarketForecastYear(
                year_offset=offset,
                year=base_year + offset if base_year is not None else None,
                market_size=size,
                growth_rate=year_growth,
                penetration=penetration,
            ))
            previous = penetration
        return forecast
