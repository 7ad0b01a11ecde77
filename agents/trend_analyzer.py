"""
Trend Analysis Agent
--------------------
Detects directional trends, structural breakpoints and seasonality in a
time series, then projects it forward.

  Linear fit      : OLS on (index, value)
  Exponential fit : OLS on (index, ln value), all values > 0
  Breakpoints     : split index i ∈ [m, n-m]; flag when the slope flips sign
                    or |Δslope| > 2τ; merge flags closer than m/2
  Seasonality     : per-phase mean ÷ overall mean for period ∈ {4, 12};
                    strength = min(10 · var(index), 1)
  Forecast        : best-r² trend, × seasonal index of the continued phase,
                    interval = 0.1 · |ŷ| · (1 + 0.05k) · (2 - r²)

  Confidence = 0.4 · min(n/20, 1) + 0.6 · r²(best trend)

Input:  {timeSeries | historicalData | periods + values}
Output: TrendResult
"""

import math
import re
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from agents.base import Analyzer, InsufficientInputError
from models.schemas import Breakpoint, ForecastPoint, Seasonality, Trend, TrendResult
from utils.parsing import is_mapping, pick, to_float

logger = logging.getLogger(__name__)

_QUARTER = re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE)
_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")
_YEAR = re.compile(r"^(\d{4})$")

SEASONALITY_TYPES = {4: "quarterly", 12: "monthly", 52: "weekly", 365: "daily"}


# ─── Data Structures ─────────────────────────────────────────────────────────


@dataclass
class SeriesPoint:
    period: str
    timestamp: float        # UTC epoch seconds
    value: float


@dataclass
class LinearFit:
    slope: float
    intercept: float
    r2: float


# ─── Period parsing ──────────────────────────────────────────────────────────


def _utc(year: int, month: int = 1, day: int = 1) -> float:
    return datetime(year, month, day, tzinfo=timezone.utc).timestamp()


def parse_period(label: Any) -> float:
    """
    Convert a period label to UTC epoch seconds.
    Accepts datetime/date, "YYYY-Qn", "YYYY-MM", "YYYY", ISO dates,
    numeric years 1900-2100 and raw epoch numbers.
    """
    if isinstance(label, datetime):
        if label.tzinfo is None:
            label = label.replace(tzinfo=timezone.utc)
        return label.timestamp()
    if isinstance(label, date):
        return _utc(label.year, label.month, label.day)
    if isinstance(label, bool):
        raise InsufficientInputError(f"Unparseable period label: {label!r}")
    if isinstance(label, (int, float)):
        if 1900 <= label <= 2100 and float(label).is_integer():
            return _utc(int(label))
        return float(label)
    if isinstance(label, str):
        text = label.strip()
        m = _QUARTER.match(text)
        if m:
            return _utc(int(m.group(1)), (int(m.group(2)) - 1) * 3 + 1)
        m = _MONTH.match(text)
        if m and 1 <= int(m.group(2)) <= 12:
            return _utc(int(m.group(1)), int(m.group(2)))
        m = _YEAR.match(text)
        if m:
            return _utc(int(m.group(1)))
        numeric = to_float(text)
        if numeric is not None:
            return parse_period(numeric)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise InsufficientInputError(f"Unparseable period label: {label!r}")
        return parse_period(parsed)
    raise InsufficientInputError(f"Unparseable period label: {label!r}")


def format_period(timestamp: float) -> str:
    """YYYY-MM for timestamps that map to a calendar date, else the raw number."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m")
    except (OverflowError, OSError, ValueError):
        return str(round(timestamp))


# ─── Statistics ──────────────────────────────────────────────────────────────


def linear_fit(values: List[float]) -> LinearFit:
    """OLS of values against their index 0..n-1."""
    n = len(values)
    if n < 2:
        return LinearFit(0.0, 0.0, 0.0)
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    sxy = float((dx * dy).sum())
    sxx = float((dx * dx).sum())
    syy = float((dy * dy).sum())
    slope = sxy / sxx if sxx else 0.0
    intercept = float(y.mean()) - slope * float(x.mean())
    r2 = (sxy * sxy) / (sxx * syy) if sxy and syy else 0.0
    return LinearFit(slope, intercept, min(max(r2, 0.0), 1.0))


def seasonal_indexes(values: List[float], period: int) -> List[float]:
    arr = np.asarray(values, dtype=float)
    overall = arr.mean()
    if overall == 0:
        return [1.0] * period
    return [float(arr[phase::period].mean() / overall) for phase in range(period)]


def seasonal_strength(indexes: List[float]) -> float:
    return min(float(np.var(indexes)) * 10, 1.0)


class TrendAnalyzer(Analyzer):
    result_cls = TrendResult

    def __init__(self, config=None):
        super().__init__(name="TrendAnalyzer", config=config)

    def analyze(self, trend_data: Any, options: Optional[Mapping[str, Any]] = None) -> TrendResult:
        return self.execute(trend_data, options=options)

    # ------------------------------------------------------------------
    def run(self, trend_data: Any, options: Dict[str, Any]) -> TrendResult:
        min_points = int(self.option(options, "min_data_points", self.config.MIN_DATA_POINTS))
        threshold = float(self.option(options, "significance_threshold", self.config.SIGNIFICANCE_THRESHOLD))

        series = self.normalize(trend_data)
        if len(series) < min_points:
            raise InsufficientInputError(
                f"Trend analysis needs at least {min_points} data points, got {len(series)}"
            )

        trends = self.identify_trends(series, threshold, min_points)
        seasonality = self.detect_seasonality([p.value for p in series], threshold, options)
        result = TrendResult(
            trends=trends,
            seasonality=seasonality,
            data_points=len(series),
        )
        best = result.best_trend
        result.forecast = self.forecast(series, best, seasonality, options)
        result.confidence = 0.4 * min(len(series) / 20, 1.0) + 0.6 * (best.r2 if best else 0.0)
        result.method = self.method_for(len(series))

        self.logger.info(
            f"[{self.name}] n={len(series)} trends={[t.type for t in trends]} "
            f"seasonality={seasonality.type if seasonality else None}"
        )
        return result

    # ─── Input decoding ──────────────────────────────────────────────────

    def normalize(self, trend_data: Any) -> List[SeriesPoint]:
        if not is_mapping(trend_data):
            raise InsufficientInputError("Trend data must be a mapping")

        raw: List[Tuple[Any, Any]] = []
        time_series = pick(trend_data, "timeSeries")
        historical = pick(trend_data, "historicalData")
        periods, values = pick(trend_data, "periods"), pick(trend_data, "values")

        if isinstance(time_series, (list, tuple)):
            raw = [(pick(p, "date", "period"), pick(p, "value")) for p in time_series if is_mapping(p)]
        elif isinstance(historical, (list, tuple)):
            raw = [(pick(p, "date", "period", "year"), pick(p, "value")) for p in historical if is_mapping(p)]
        elif isinstance(periods, (list, tuple)) and isinstance(values, (list, tuple)):
            if len(periods) != len(values):
                raise InsufficientInputError("periods and values differ in length")
            raw = list(zip(periods, values))
        else:
            raise InsufficientInputError("No timeSeries, historicalData or periods/values found")

        series = []
        for label, value in raw:
            v = to_float(value)
            if label is None or v is None:
                continue
            series.append(SeriesPoint(period=str(label), timestamp=parse_period(label), value=v))
        series.sort(key=lambda p: p.timestamp)
        return series

    # ─── Trend identification ────────────────────────────────────────────

    def identify_trends(self, series: List[SeriesPoint], threshold: float, min_points: int) -> List[Trend]:
        values = [p.value for p in series]
        trends: List[Trend] = []

        linear = linear_fit(values)
        if abs(linear.slope) > threshold:
            trends.append(Trend(
                type="linear",
                direction="increasing" if linear.slope > 0 else "decreasing",
                strength=abs(linear.slope),
                r2=linear.r2,
                slope=linear.slope,
                intercept=linear.intercept,
                equation=f"y = {linear.slope:.4f}x + {linear.intercept:.4f}",
            ))

        if all(v > 0 for v in values):
            expo = linear_fit([math.log(v) for v in values])
            if abs(expo.slope) > threshold:
                trends.append(Trend(
                    type="exponential",
                    direction="increasing" if expo.slope > 0 else "decreasing",
                    strength=abs(expo.slope),
                    r2=expo.r2,
                    slope=expo.slope,
                    intercept=expo.intercept,
                    equation=f"y = {math.exp(expo.intercept):.4f} * e^({expo.slope:.4f}x)",
                ))

        breakpoints = self.find_breakpoints(series, threshold, min_points)
        if breakpoints:
            last = breakpoints[-1]
            trends.append(Trend(
                type="breakpoints",
                direction="increasing" if last.slope_after > 0 else "decreasing",
                strength=max(b.slope_change for b in breakpoints),
                r2=0.0,
                breakpoints=breakpoints,
            ))
        return trends

    def find_breakpoints(self, series: List[SeriesPoint], threshold: float, min_points: int) -> List[Breakpoint]:
        values = [p.value for p in series]
        n = len(values)
        if n < min_points * 2:
            return []

        candidates: List[Breakpoint] = []
        for i in range(min_points, n - min_points + 1):
            before = linear_fit(values[:i])
            after = linear_fit(values[i:])
            slope_change = abs(before.slope - after.slope)
            direction_change = before.slope * after.slope < 0
            if direction_change or slope_change > threshold * 2:
                point = series[i]
                candidates.append(Breakpoint(
                    index=i,
                    period=point.period,
                    timestamp=point.timestamp,
                    value=point.value,
                    slope_before=before.slope,
                    slope_after=after.slope,
                    slope_change=slope_change,
                    direction_change=direction_change,
                ))

        merged: List[Breakpoint] = []
        for bp in candidates:
            if not merged or bp.index - merged[-1].index > min_points / 2:
                merged.append(bp)
            elif bp.slope_change > merged[-1].slope_change:
                merged[-1] = bp
        return merged

    # ─── Seasonality ─────────────────────────────────────────────────────

    def detect_seasonality(
        self, values: List[float], threshold: float, options: Mapping[str, Any]
    ) -> Optional[Seasonality]:
        periods = self.option(options, "seasonality_periods", self.config.SEASONALITY_PERIODS)
        best: Optional[Seasonality] = None
        for period in periods:
            if len(values) < period * 2:
                continue
            indexes = seasonal_indexes(values, period)
            strength = seasonal_strength(indexes)
            if best is None or strength > best.strength:
                best = Seasonality(
                    period=period,
                    type=SEASONALITY_TYPES.get(period, "custom"),
                    strength=strength,
                    indexes=indexes,
                )
        if best is None or best.strength <= threshold:
            return None
        return best

    # ─── Forecast ────────────────────────────────────────────────────────

    def forecast(
        self,
        series: List[SeriesPoint],
        trend: Optional[Trend],
        seasonality: Optional[Seasonality],
        options: Mapping[str, Any],
    ) -> List[ForecastPoint]:
        horizon = int(self.option(options, "forecast_horizon", self.config.FORECAST_HORIZON))
        n = len(series)
        last = series[-1]
        step = (last.timestamp - series[0].timestamp) / (n - 1) if n > 1 else 0.0
        quality = trend.r2 if trend else 0.5

        points: List[ForecastPoint] = []
        for k in range(1, horizon + 1):
            if trend is None:
                value = last.value
            elif trend.type == "exponential":
                value = last.value * math.exp(trend.slope * k)
            else:
                value = last.value + trend.slope * k
            if seasonality:
                value *= seasonality.indexes[(n - 1 + k) % seasonality.period]
            half_width = 0.1 * abs(value) * (1 + 0.05 * k) * (2 - quality)
            timestamp = last.timestamp + step * k
            points.append(ForecastPoint(
                period=format_period(timestamp),
                timestamp=timestamp,
                value=value,
                lower_bound=value - half_width,
                upper_bound=value + half_width,
            ))
        return points

    def method_for(self, n: int) -> str:
        if n < 10:
            return "basic"
        if n >= 20:
            return "advanced"
        return "standard"
