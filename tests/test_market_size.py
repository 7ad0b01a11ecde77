"""
Market size estimation tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime

import pytest
from agents.market_size import MarketSizeEstimator, logistic_penetration, share_map


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def estimator():
    return MarketSizeEstimator()


@pytest.fixture
def top_down_data():
    return {
        "totalMarketSize": 1_000_000,
        "segments": {"A": 0.4, "B": 0.6},
        "growthRate": 0.1,
    }


# ─── Helpers ─────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_share_map_accepts_mapping_and_list(self):
        assert share_map({"A": 0.4, "B": 60}) == {"A": 0.4, "B": 0.6}
        assert share_map([
            {"name": "A", "share": 0.25},
            {"segment": "B", "percentage": 75},
        ]) == {"A": 0.25, "B": 0.75}

    def test_share_map_ignores_junk(self):
        assert share_map("nope") == {}
        assert share_map([{"name": "A"}, "x", {"share": 0.2}]) == {}

    def test_logistic_anchored_at_current_penetration(self):
        assert logistic_penetration(0.2, 0.65, 0.5, 0) == pytest.approx(0.2)

    def test_logistic_approaches_ceiling(self):
        late = logistic_penetration(0.2, 0.65, 0.5, 50)
        assert late == pytest.approx(0.65, rel=1e-6)
        assert late <= 0.65


# ─── Method selection ────────────────────────────────────────────────────────

class TestMethods:
    def test_top_down(self, estimator, top_down_data):
        result = estimator.estimate(top_down_data)
        assert result.method == "top-down"
        assert result.confidence == pytest.approx(0.8)
        assert result.total_market_size == pytest.approx(1_000_000)
        assert result.segment_sizes["A"] == pytest.approx(400_000)
        assert result.segment_sizes["B"] == pytest.approx(600_000)
        assert result.growth_rate == pytest.approx(0.1)

    def test_bottom_up(self, estimator):
        result = estimator.estimate({
            "customerCount": 2000,
            "averageSpending": 50,
            "customerSegments": {"smb": 0.5, "enterprise": 0.5},
        })
        assert result.method == "bottom-up"
        assert result.confidence == pytest.approx(0.75)
        assert result.total_market_size == pytest.approx(100_000)
        assert result.segment_sizes == {"smb": pytest.approx(50_000), "enterprise": pytest.approx(50_000)}

    def test_value_chain_list(self, estimator):
        result = estimator.estimate({
            "valueChain": [
                {"stage": "production", "value": 300},
                {"stage": "distribution", "value": 200},
                {"value": 100},
            ]
        })
        assert result.method == "value-chain"
        assert result.total_market_size == pytest.approx(600)
        assert result.segment_sizes["Stage 3"] == pytest.approx(100)

    def test_comparable_weighted_mean(self, estimator):
        result = estimator.estimate({
            "comparableMarkets": [
                {"size": 100, "similarity": 3},
                {"size": 200, "similarity": 1},
            ]
        })
        assert result.method == "comparable"
        assert result.confidence == pytest.approx(0.6)
        assert result.total_market_size == pytest.approx(125)

    def test_comparable_zero_weights_fall_back_to_mean(self, estimator):
        result = estimator.estimate({
            "comparableMarkets": [
                {"size": 100, "similarity": 0},
                {"size": 300, "similarity": 0},
            ]
        })
        assert result.total_market_size == pytest.approx(200)

    def test_basic_from_potential_customers(self, estimator):
        result = estimator.estimate({"potentialCustomers": 1000})
        assert result.method == "basic"
        assert result.confidence == pytest.approx(0.4)
        assert result.total_market_size == pytest.approx(100_000)

    def test_basic_from_estimated_size(self, estimator):
        result = estimator.estimate({"estimatedSize": "2,500,000"})
        assert result.method == "basic"
        assert result.total_market_size == pytest.approx(2_500_000)

    def test_top_down_wins_over_other_methods(self, estimator, top_down_data):
        data = dict(top_down_data, customerCount=10, averageSpending=10)
        assert estimator.estimate(data).method == "top-down"

    def test_snake_case_keys(self, estimator):
        result = estimator.estimate({"total_market_size": 500, "segments": {"x": 1.0}})
        assert result.method == "top-down"
        assert result.segment_sizes["x"] == pytest.approx(500)


# ─── Insufficient input ──────────────────────────────────────────────────────

class TestInsufficientInput:
    @pytest.mark.parametrize("data", [None, {}, [], "market", {"industry": "technology"}])
    def test_returns_empty_result(self, estimator, data):
        result = estimator.estimate(data)
        assert result.method == "none"
        assert result.confidence == 0.0
        assert result.error, "Insufficient input should carry an explanation"
        assert result.forecast == []
        assert not result.ok


# ─── Growth & forecast ───────────────────────────────────────────────────────

class TestForecast:
    def test_growth_rate_resolution_order(self, estimator):
        data = {"estimatedSize": 100, "industry": "Healthcare"}
        assert estimator.estimate(data).growth_rate == pytest.approx(0.08)
        assert estimator.estimate(dict(data, growthRate=0.2)).growth_rate == pytest.approx(0.2)
        assert estimator.estimate(data, {"growth_rate": 0.3}).growth_rate == pytest.approx(0.3)
        assert estimator.estimate({"estimatedSize": 100}).growth_rate == pytest.approx(0.05)

    def test_forecast_length_and_bounds(self, estimator, top_down_data):
        result = estimator.estimate(top_down_data)
        assert len(result.forecast) == 5
        for year in result.forecast:
            assert abs(year.growth_rate) <= 2 * abs(result.growth_rate) + 1e-12
            assert 0.0 < year.penetration <= 0.65

    def test_forecast_compounds(self, estimator, top_down_data):
        result = estimator.estimate(top_down_data)
        size = result.total_market_size
        for year in result.forecast:
            size *= 1 + year.growth_rate
            assert year.market_size == pytest.approx(size)

    def test_negative_growth_shrinks_market(self, estimator):
        result = estimator.estimate({"estimatedSize": 1000, "growthRate": -0.05})
        assert all(y.growth_rate < 0 for y in result.forecast)
        assert all(y.growth_rate >= -0.1 - 1e-12 for y in result.forecast)
        assert result.forecast[-1].market_size < 1000

    def test_years_only_with_explicit_base(self, estimator, top_down_data):
        no_clock = estimator.estimate(top_down_data)
        assert all(y.year is None for y in no_clock.forecast)

        with_year = estimator.estimate(top_down_data, {"base_year": 2024})
        assert [y.year for y in with_year.forecast] == [2025, 2026, 2027, 2028, 2029]

        with_now = estimator.estimate(top_down_data, {"now": datetime(2030, 6, 1)})
        assert with_now.forecast[0].year == 2031

    def test_forecast_years_option(self, estimator, top_down_data):
        assert len(estimator.estimate(top_down_data, {"forecast_years": 3}).forecast) == 3

    def test_deterministic(self, estimator, top_down_data):
        assert estimator.estimate(top_down_data).to_dict() == estimator.estimate(top_down_data).to_dict()
