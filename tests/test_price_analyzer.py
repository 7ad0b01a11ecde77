"""
Price analysis tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from agents.price_analyzer import PriceAnalyzer, competitor_price


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def analyzer():
    return PriceAnalyzer()


@pytest.fixture
def competitor_list():
    return [
        {"name": "Acme", "pricing": {"average": 100}},
        {"name": "Globex", "pricing": {"range": [80, 120]}},
        {"name": "Northwind", "isOwn": True, "pricing": {"average": 90}},
    ]


# ─── Range & distribution ────────────────────────────────────────────────────

class TestRangeAndDistribution:
    def test_price_range(self, analyzer):
        result = analyzer.analyze([10, 20, 30, 40])
        rng = result.price_range
        assert rng["min"] == 10 and rng["max"] == 40
        assert rng["avg"] == pytest.approx(25)
        assert rng["median"] == pytest.approx(25)
        assert rng["std_dev"] == pytest.approx(125 ** 0.5)
        assert rng["range"] == pytest.approx(30)
        assert rng["count"] == 4
        assert result.method == "basic"
        assert result.confidence == pytest.approx(0.6)

    def test_histogram_and_percentiles(self, analyzer):
        dist = analyzer.analyze([10, 20, 30, 40]).price_distribution
        assert dist["histogram"] == [2, 2]
        assert dist["bin_edges"] == pytest.approx([10, 25, 40])
        assert dist["percentiles"]["p10"] == 10
        assert dist["percentiles"]["p50"] == 30
        assert dist["percentiles"]["p90"] == 40

    def test_identical_prices_share_one_bin(self, analyzer):
        dist = analyzer.analyze([5, 5, 5, 5]).price_distribution
        assert dist["histogram"][0] == 4
        assert sum(dist["histogram"]) == 4

    def test_price_tiers(self, analyzer):
        tiers = analyzer.analyze([10, 20, 30, 40]).price_distribution["segments"]
        assert tiers == {
            "budget": pytest.approx(0.25),
            "midRange": pytest.approx(0.5),
            "premium": pytest.approx(0.25),
            "luxury": pytest.approx(0.0),
        }
        assert sum(tiers.values()) == pytest.approx(1.0)

    def test_long_list_raises_confidence(self, analyzer):
        assert analyzer.analyze([1, 2, 3, 4, 5, 6]).confidence == pytest.approx(0.7)

    def test_products_shape(self, analyzer):
        result = analyzer.analyze({"products": [{"price": 49.99}, {"price": "99.99"}, {"name": "free"}]})
        assert result.price_range["count"] == 2
        assert result.price_range["max"] == pytest.approx(99.99)


# ─── Elasticity ──────────────────────────────────────────────────────────────

class TestElasticity:
    def test_unit_elastic(self, analyzer):
        result = analyzer.analyze({"prices": [10, 12], "sales": [100, 80]})
        el = result.price_elasticity
        assert el["observations"][0]["price_change"] == pytest.approx(0.2)
        assert el["observations"][0]["quantity_change"] == pytest.approx(-0.2)
        assert el["elasticity"] == pytest.approx(1.0)
        assert el["elasticity_type"] == "unitElastic"
        assert result.method == "elasticity"
        assert result.confidence == pytest.approx(0.8)

    def test_inelastic_scales_price_points_up(self, analyzer):
        result = analyzer.analyze({"prices": [10, 20], "demand": [100, 90]})
        assert result.price_elasticity["elasticity_type"] == "inelastic"
        points = result.optimum_price_points["recommended_price_points"]
        assert points["budget"] == pytest.approx(13.2)
        assert "price elasticity (inelastic)" in result.optimum_price_points["explanation"]

    def test_nested_elasticity_block(self, analyzer):
        result = analyzer.analyze({
            "products": [{"price": 199.99}, {"price": 99.99}, {"price": 49.99}],
            "elasticity": {
                "prices": [49.99, 69.99, 89.99, 109.99, 129.99],
                "sales": [1000, 850, 700, 500, 300],
            },
        })
        el = result.price_elasticity
        assert len(el["observations"]) == 4
        assert el["elasticity_type"] == "unitElastic"
        assert result.price_range["count"] == 3

    def test_unusable_series_gives_no_elasticity(self, analyzer):
        result = analyzer.analyze({"prices": [10, 10], "sales": [5, 6]})
        assert result.price_elasticity["elasticity"] is None
        assert result.price_elasticity["elasticity_type"] is None


# ─── Competitive pricing ─────────────────────────────────────────────────────

class TestCompetitivePricing:
    def test_competitor_price_midpoint(self):
        assert competitor_price({"pricing": {"range": [80, 120]}}) == pytest.approx(100)
        assert competitor_price({"pricing": {"average": 70, "range": [1, 2]}}) == pytest.approx(70)
        assert competitor_price({"pricing": {"range": [1, 2, 3]}}) is None

    def test_owner_by_flag(self, analyzer, competitor_list):
        result = analyzer.analyze(competitor_list)
        cp = result.competitive_pricing
        assert result.method == "competitive"
        assert cp["own_name"] == "Northwind"
        assert cp["own_price"] == pytest.approx(90)
        assert cp["price_differences"]["Acme"] == pytest.approx(100 / 9)
        assert cp["price_positioning"] == {"Acme": "higher", "Globex": "higher", "Northwind": "similar"}
        assert cp["average_market_price"] == pytest.approx(290 / 3)

    def test_owner_by_option(self, analyzer, competitor_list):
        cp = analyzer.analyze(competitor_list, {"own_name": "Acme"}).competitive_pricing
        assert cp["own_name"] == "Acme"
        assert cp["price_positioning"]["Globex"] == "similar"

    def test_no_owner_uses_market_average(self, analyzer):
        cp = analyzer.analyze([
            {"name": "A", "pricing": {"average": 50}},
            {"name": "B", "pricing": {"average": 150}},
        ]).competitive_pricing
        assert cp["own_name"] is None
        assert cp["own_price"] == pytest.approx(100)
        assert cp["price_positioning"] == {"A": "lower", "B": "higher"}

    def test_price_points_shift_toward_market(self, analyzer, competitor_list):
        points = analyzer.analyze(competitor_list).optimum_price_points["recommended_price_points"]
        # range of [100, 80, 120, 90]: midRange 97.5 shifted half-way to 96.67
        assert points["midRange"] == pytest.approx(97.08, abs=0.01)
        assert points["budget"] < points["midRange"] < points["premium"] < points["luxury"]


# ─── Insufficient input ──────────────────────────────────────────────────────

class TestInsufficientInput:
    @pytest.mark.parametrize("data", [
        None, "cheap", [], [1, "a", None], {}, {"prices": []},
        {"sales": [100, 80]},
        {"demand": [100, 80], "elasticity": {"sales": [1, 2]}},
        {"prices": [], "sales": []},
    ])
    def test_returns_empty_result(self, analyzer, data):
        result = analyzer.analyze(data)
        assert result.method == "none"
        assert result.confidence == 0.0
        assert result.price_range == {}
        assert result.optimum_price_points is None

    def test_quantities_without_series_prices_are_ignored(self, analyzer):
        result = analyzer.analyze({"products": [{"price": 10}, {"price": 20}], "sales": [5, 4]})
        assert result.method == "basic"
        assert result.price_elasticity is None
        assert result.confidence == pytest.approx(0.5)
