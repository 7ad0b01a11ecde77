"""
Price Analysis Agent
--------------------
Describes the market price landscape and recommends price points.

Accepted shapes (decoded into one PriceObservations record):
  [12.5, 15, ...]                          flat price list
  [{name, pricing: {average|range}}, ...]  competitor list
  {prices: [...], sales|demand: [...]}     prices, optional quantity series
  {products: [{price}, ...]}
  {competitors: [...]}
  {elasticity: {prices, sales|demand}}     nested quantity series

Elasticity   : mean |%ΔQ / %ΔP| over consecutive observations
Tiers        : budget < 0.7·avg ≤ midRange < 1.3·avg ≤ premium < 2.0·avg ≤ luxury
Price points : min + 0.2R, avg, max - 0.2R, max + 0.1R; ×1.1 inelastic,
               ×0.9 elastic; shifted by half the gap to the market average

Input:  price data (list or mapping)
Output: PriceResult
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from agents.base import Analyzer, InsufficientInputError, OwnerSelector
from models.schemas import PriceResult
from utils.parsing import is_mapping, is_number_list, is_record_list, numbers, pick, to_float

logger = logging.getLogger(__name__)

PERCENTILES = (10, 25, 50, 75, 90)

INTERPRETATIONS = {
    "inelastic": (
        "Demand is inelastic: price changes have relatively little effect on "
        "demand. Price increases can raise revenue."
    ),
    "unitElastic": (
        "Demand is roughly unit elastic: price changes move demand "
        "proportionally. Total revenue stays about the same."
    ),
    "elastic": (
        "Demand is elastic: price changes have a relatively large effect on "
        "demand. Price cuts can raise revenue."
    ),
}


# ─── Data Structures ─────────────────────────────────────────────────────────


@dataclass
class PriceObservations:
    """Canonical form of every accepted price-data shape."""
    prices: List[float] = field(default_factory=list)
    competitors: List[Mapping[str, Any]] = field(default_factory=list)
    series_prices: List[float] = field(default_factory=list)
    quantities: List[float] = field(default_factory=list)
    is_list: bool = False
    has_price_list: bool = False
    has_quantities: bool = False
    list_length: int = 0


def competitor_price(record: Mapping[str, Any]) -> Optional[float]:
    """Representative price: explicit average, else the midpoint of a 2-value range."""
    pricing = pick(record, "pricing")
    if not is_mapping(pricing):
        return None
    average = to_float(pricing.get("average"))
    if average is not None:
        return average
    bounds = pricing.get("range")
    if isinstance(bounds, (list, tuple)) and len(bounds) == 2:
        low, high = to_float(bounds[0]), to_float(bounds[1])
        if low is not None and high is not None:
            return (low + high) / 2
    return None


def pick_price(product: Any) -> Optional[float]:
    return to_float(pick(product, "price"))


def _competitor_prices(records: List[Mapping[str, Any]]) -> List[float]:
    prices: List[float] = []
    for record in records:
        pricing = pick(record, "pricing")
        if not is_mapping(pricing):
            continue
        average = to_float(pricing.get("average"))
        if average is not None:
            prices.append(average)
        bounds = pricing.get("range")
        if isinstance(bounds, (list, tuple)):
            prices.extend(numbers(bounds))
    return prices


class PriceAnalyzer(Analyzer):
    result_cls = PriceResult

    def __init__(self, config=None):
        super().__init__(name="PriceAnalyzer", config=config)

    def analyze(self, price_data: Any, options: Optional[Mapping[str, Any]] = None) -> PriceResult:
        return self.execute(price_data, options=options)

    # ------------------------------------------------------------------
    def run(self, price_data: Any, options: Dict[str, Any]) -> PriceResult:
        obs = self.decode(price_data)

        price_range = self.price_range(obs.prices)
        distribution = self.price_distribution(obs.prices, price_range)
        elasticity = self.price_elasticity(obs) if obs.has_quantities else None
        competitive = self.competitive_pricing(obs.competitors, options)
        optimum = self.optimum_price_points(price_range, elasticity, competitive)

        if obs.has_quantities:
            method = "elasticity"
        elif obs.competitors:
            method = "competitive"
        else:
            method = "basic"

        confidence = 0.5
        if obs.is_list or obs.has_price_list:
            confidence += 0.1
        if obs.has_quantities:
            confidence += 0.2
        if obs.is_list and obs.list_length > 5:
            confidence += 0.1

        self.logger.info(
            f"[{self.name}] {method}: {len(obs.prices)} prices, "
            f"{len(obs.competitors)} competitors, elasticity={elasticity and elasticity['elasticity_type']}"
        )
        return PriceResult(
            price_range=price_range,
            price_distribution=distribution,
            price_elasticity=elasticity,
            competitive_pricing=competitive,
            optimum_price_points=optimum,
            confidence=min(confidence, 1.0),
            method=method,
        )

    # ─── Input decoding ──────────────────────────────────────────────────

    def decode(self, price_data: Any) -> PriceObservations:
        obs = PriceObservations()

        if isinstance(price_data, (list, tuple)):
            obs.is_list = True
            obs.list_length = len(price_data)
            if is_number_list(price_data):
                obs.prices = numbers(price_data)
            elif is_record_list(price_data):
                obs.competitors = list(price_data)
                obs.prices = _competitor_prices(obs.competitors)
            else:
                raise InsufficientInputError("Price list must hold only numbers or only competitor records")

        elif is_mapping(price_data):
            raw_prices = pick(price_data, "prices")
            products = pick(price_data, "products")
            competitors = pick(price_data, "competitors")

            if isinstance(raw_prices, (list, tuple)):
                obs.has_price_list = True
                obs.prices = numbers(raw_prices)
            elif isinstance(products, (list, tuple)):
                obs.prices = [p for p in (pick_price(prod) for prod in products) if p is not None]

            if is_record_list(competitors):
                obs.competitors = list(competitors)
                if not obs.prices:
                    obs.prices = _competitor_prices(obs.competitors)

            self._decode_quantities(price_data, obs)
        else:
            raise InsufficientInputError("No price data provided")

        if not obs.prices and obs.series_prices:
            obs.prices = numbers(obs.series_prices)
        if not obs.prices and not obs.competitors:
            raise InsufficientInputError("No usable prices or competitors found")
        return obs

    def _decode_quantities(self, data: Mapping[str, Any], obs: PriceObservations) -> None:
        nested = pick(data, "elasticity")
        for source in (data, nested):
            if not is_mapping(source):
                continue
            quantities = pick(source, "sales", "demand")
            series_prices = pick(source, "prices")
            if isinstance(quantities, (list, tuple)) and isinstance(series_prices, (list, tuple)):
                obs.has_quantities = True
                obs.quantities = [to_float(q) for q in quantities]
                obs.series_prices = [to_float(p) for p in series_prices]
                return

    # ─── Range & distribution ────────────────────────────────────────────

    def price_range(self, prices: List[float]) -> Dict[str, float]:
        if not prices:
            return {}
        arr = np.asarray(prices, dtype=float)
        return {
            "min": float(arr.min()),
            "max": float(arr.max()),
            "avg": float(arr.mean()),
            "median": float(np.median(arr)),
            "std_dev": float(arr.std()),
            "range": float(arr.max() - arr.min()),
            "count": int(arr.size),
        }

    def price_distribution(self, prices: List[float], price_range: Dict[str, float]) -> Dict[str, Any]:
        if not prices:
            return {}
        n = len(prices)
        bins = min(self.config.MAX_HISTOGRAM_BINS, math.ceil(math.sqrt(n)))
        low, width = price_range["min"], price_range["range"] / bins
        histogram = [0] * bins
        for price in prices:
            index = 0 if width == 0 else min(int((price - low) // width), bins - 1)
            histogram[index] += 1
        bin_edges = [low + i * width for i in range(bins + 1)]

        ordered = sorted(prices)
        percentiles = {
            f"p{p}": ordered[min(int(p / 100 * n), n - 1)]
            for p in PERCENTILES
        }
        return {
            "histogram": histogram,
            "bin_edges": bin_edges,
            "percentiles": percentiles,
            "segments": self.price_tiers(prices, price_range["avg"]),
        }

    def price_tiers(self, prices: List[float], average: float) -> Dict[str, float]:
        tiers = self.config.PRICE_TIER_MULTIPLIERS
        counts = {"budget": 0, "midRange": 0, "premium": 0, "luxury": 0}
        for price in prices:
            if price < average * tiers["budget"]:
                counts["budget"] += 1
            elif price < average * tiers["midRange"]:
                counts["midRange"] += 1
            elif price < average * tiers["premium"]:
                counts["premium"] += 1
            else:
                counts["luxury"] += 1
        return {tier: count / len(prices) for tier, count in counts.items()}

    # ─── Elasticity ──────────────────────────────────────────────────────

    def price_elasticity(self, obs: PriceObservations) -> Dict[str, Any]:
        observations = []
        prices, quantities = obs.series_prices, obs.quantities
        if len(prices) == len(quantities) and len(prices) >= 2:
            for i in range(1, len(prices)):
                p0, p1, q0, q1 = prices[i - 1], prices[i], quantities[i - 1], quantities[i]
                if None in (p0, p1, q0, q1) or p0 == 0 or q0 == 0:
                    continue
                price_change = (p1 - p0) / p0
                if price_change == 0:
                    continue
                quantity_change = (q1 - q0) / q0
                observations.append({
                    "price_change": price_change,
                    "quantity_change": quantity_change,
                    "elasticity": abs(quantity_change / price_change),
                })

        elasticity = (
            sum(o["elasticity"] for o in observations) / len(observations)
            if observations else None
        )
        elasticity_type = self.elasticity_type(elasticity)
        return {
            "elasticity": elasticity,
            "elasticity_type": elasticity_type,
            "interpretation": INTERPRETATIONS.get(
                elasticity_type, "Insufficient data to determine price elasticity"
            ),
            "observations": observations,
        }

    def elasticity_type(self, elasticity: Optional[float]) -> Optional[str]:
        if elasticity is None:
            return None
        if elasticity < self.config.ELASTICITY_INELASTIC_BELOW:
            return "inelastic"
        if elasticity < self.config.ELASTICITY_UNIT_BELOW:
            return "unitElastic"
        return "elastic"

    # ─── Competitive pricing ─────────────────────────────────────────────

    def competitive_pricing(
        self, competitors: List[Mapping[str, Any]], options: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        if not competitors:
            return None
        names = [str(pick(c, "name", default=f"Competitor {i + 1}")) for i, c in enumerate(competitors)]
        prices: Dict[str, float] = {}
        for name, record in zip(names, competitors):
            price = competitor_price(record)
            if price is not None:
                prices[name] = price
        if not prices:
            return None

        market_average = sum(prices.values()) / len(prices)
        owner = OwnerSelector.from_options(options).select(names, competitors)
        own_price = prices.get(names[owner]) if owner is not None else None
        if own_price is None:
            own_price = market_average

        band = self.config.COMPETITIVE_PRICE_BAND
        differences: Dict[str, Optional[float]] = {}
        positioning: Dict[str, str] = {}
        for name, price in prices.items():
            differences[name] = (price - own_price) / own_price * 100 if own_price else None
            if price < own_price * (1 - band):
                positioning[name] = "lower"
            elif price > own_price * (1 + band):
                positioning[name] = "higher"
            else:
                positioning[name] = "similar"

        return {
            "competitor_prices": prices,
            "own_price": own_price,
            "own_name": names[owner] if owner is not None else None,
            "price_differences": differences,
            "price_positioning": positioning,
            "average_market_price": market_average,
        }

    # ─── Recommendations ─────────────────────────────────────────────────

    def optimum_price_points(
        self,
        price_range: Dict[str, float],
        elasticity: Optional[Dict[str, Any]],
        competitive: Optional[Dict[str, Any]],
    ) -> Optional[Dict[str, Any]]:
        if not price_range:
            return None
        spread = price_range["range"]
        points = {
            "budget": price_range["min"] + spread * 0.2,
            "midRange": price_range["avg"],
            "premium": price_range["max"] - spread * 0.2,
            "luxury": price_range["max"] + spread * 0.1,
        }

        factors = ["market price range"]
        elasticity_type = elasticity["elasticity_type"] if elasticity else None
        if elasticity_type:
            factors.append(f"price elasticity ({elasticity_type})")
            scale = {"inelastic": 1.1, "elastic": 0.9}.get(elasticity_type, 1.0)
            points = {k: v * scale for k, v in points.items()}

        if competitive and competitive.get("average_market_price"):
            factors.append("competitor prices")
            shift = (competitive["average_market_price"] - points["midRange"]) * 0.5
            points = {k: v + shift for k, v in points.items()}

        return {
            "recommended_price_points": {k: round(v, 2) for k, v in points.items()},
            "explanation": "Price recommendations are based on " + ", ".join(factors),
        }
