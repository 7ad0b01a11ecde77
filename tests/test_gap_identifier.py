"""
Gap & opportunity identification tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from agents.gap_identifier import GapOpportunityIdentifier, forecast_cagr, risk_level, round_half_up
from models.schemas import (
    CompetitorRecord, CompetitorResult, MarketForecastYear, MarketSizeResult,
    PositioningMatrix, Segment, SegmentationResult,
)


def market(total=1_000_000.0, rate=0.12, years=5):
    forecast = [
        MarketForecastYear(
            year_offset=k,
            market_size=total * (1 + rate) ** k,
            growth_rate=rate,
            penetration=0.3,
        )
        for k in range(1, years + 1)
    ]
    return MarketSizeResult(
        total_market_size=total, growth_rate=rate, forecast=forecast,
        confidence=0.8, method="top-down",
    )


def segmentation(*segments, demographic=None):
    return SegmentationResult(
        segments=[Segment(name=n, share=share, size=size) for n, share, size in segments],
        demographic=demographic or {},
        confidence=0.7,
        method="demographic",
    )


def competitors(covered_segment="Premium Segment", count=5, positioning=None):
    records = [
        CompetitorRecord(name=f"Rival {i}", segments=[covered_segment] if i == 1 else [])
        for i in range(1, count + 1)
    ]
    return CompetitorResult(
        competitors=records, positioning=positioning, confidence=0.7, method="basic",
    )


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def identifier():
    return GapOpportunityIdentifier()


@pytest.fixture
def premium_only():
    return segmentation(("Premium Segment", 0.2, 200_000.0))


# ─── Helpers ─────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_round_half_up(self):
        assert round_half_up(77.5) == 78
        assert round_half_up(78.4999) == 78

    def test_risk_levels(self):
        assert [risk_level(s) for s in (85, 60, 45, 10)] == ["Low", "Low-Medium", "Medium", "High"]

    def test_forecast_cagr(self):
        assert forecast_cagr(market(rate=0.12)) == pytest.approx(0.12)
        assert forecast_cagr(market(years=1)) is None


# ─── Segment gaps & scoring ──────────────────────────────────────────────────

class TestSegmentGaps:
    def test_low_coverage_segment_becomes_opportunity(self, identifier, premium_only):
        result = identifier.identify(market(), premium_only, competitors())
        gap = result.gaps[0]
        assert gap.type == "segment"
        assert gap.coverage == pytest.approx(0.2)
        assert gap.competitor_presence == ["Rival 1"]

        opp = result.opportunities[0]
        assert opp.score == 78
        assert opp.risk_level == "Low-Medium"
        assert opp.score_breakdown["market_size"] == 80
        assert opp.score_breakdown["competition"] == 80
        assert opp.score_breakdown["growth"] == 80
        assert opp.score_breakdown["profit"] == 70
        assert opp.potential_market_size == pytest.approx(200_000)
        assert result.method == "comprehensive"

    def test_low_score_gap_is_not_an_opportunity(self, identifier):
        seg = segmentation(("Premium Segment", 0.05, 50_000.0))
        result = identifier.identify(market(rate=-0.05), seg, competitors())
        assert len(result.gaps) == 1, "Under-covered segment must always be reported as a gap"
        assert result.opportunities == []

    def test_min_score_option(self, identifier, premium_only):
        result = identifier.identify(
            market(), premium_only, competitors(), {"min_opportunity_score": 90}
        )
        assert result.gaps and result.opportunities == []

    def test_well_covered_segment_is_not_a_gap(self, identifier, premium_only):
        comp = competitors()
        for record in comp.competitors:
            record.segments = ["Premium Segment"]
        result = identifier.identify(market(), premium_only, comp)
        assert result.gaps == []

    def test_segmentation_without_competitors(self, identifier, premium_only):
        result = identifier.identify(market(), premium_only)
        assert result.gaps[0].coverage == 0.0
        assert result.opportunities[0].score_breakdown["competition"] == 100
        assert result.method == "partial"

    def test_gaps_sorted_and_potential_decayed(self, identifier):
        seg = segmentation(
            ("Niche", 0.05, 50_000.0),
            ("Premium Segment", 0.2, 200_000.0),
        )
        result = identifier.identify(market(), seg, competitors())
        assert [g.name for g in result.gaps] == ["Premium Segment", "Niche"]
        assert result.potential_market_size == pytest.approx(200_000 + 50_000 * 0.8)

    def test_potential_capped_at_market_share(self, identifier):
        seg = segmentation(("A", 0.5, 500_000.0), ("B", 0.5, 500_000.0))
        result = identifier.identify(market(), seg)
        assert result.potential_market_size == pytest.approx(300_000)


# ─── Group & positioning gaps ────────────────────────────────────────────────

class TestOtherGaps:
    def test_demographic_group_gaps(self, identifier):
        seg = segmentation(demographic={"age": [
            {"name": "18-24", "percentage": 0.15, "coverage": 0.3},
            {"name": "25-34", "percentage": 0.35, "coverage": 0.8},
            {"name": "35-44", "percentage": 0.25, "coverage": 0},
        ]})
        result = identifier.identify(market(), seg, competitors())
        names = {g.name: g for g in result.gaps if g.type == "demographic"}
        assert set(names) == {"age: 18-24", "age: 35-44"}
        assert names["age: 18-24"].size == pytest.approx(150_000)

    def test_group_gaps_score_from_coverage_with_competitors(self, identifier):
        seg = segmentation(demographic={"age": [
            {"name": "18-24", "percentage": 0.3, "coverage": 0.3},
        ]})
        result = identifier.identify(market(), seg, competitors())
        opp = next(o for o in result.opportunities if o.gap_type == "demographic")
        assert opp.score_breakdown["competition"] == pytest.approx(70)

    def test_positioning_gap(self, identifier):
        matrix = PositioningMatrix(
            dimensions=["price"],
            matrix={"price": {"A": 10, "B": 20, "C": 80, "D": 90}},
        )
        result = identifier.identify(market(), None, competitors(count=4, positioning=matrix))
        gap = result.gaps[0]
        assert gap.type == "positioning"
        assert gap.dimension == "price"
        assert gap.position == pytest.approx(50)
        assert gap.gap_magnitude == pytest.approx(60)
        assert gap.size == pytest.approx(0.6 * 1_000_000 * 1.2)
        assert result.opportunities[0].score == 88
        assert result.opportunities[0].risk_level == "Low"

    def test_tight_positioning_has_no_gap(self, identifier):
        matrix = PositioningMatrix(
            dimensions=["quality"],
            matrix={"quality": {"A": 70, "B": 72, "C": 75}},
        )
        result = identifier.identify(market(), None, competitors(count=3, positioning=matrix))
        assert result.gaps == []

    def test_gap_sizes_bounded_by_market(self, identifier):
        matrix = PositioningMatrix(
            dimensions=["price"],
            matrix={"price": {"A": 0, "B": 100}},
        )
        seg = segmentation(("Huge", 1.0, 5_000_000.0))
        result = identifier.identify(market(), seg, competitors(count=2, positioning=matrix))
        assert all(0 <= g.size <= 1_000_000 for g in result.gaps)

    def test_zero_market_caps_gaps_and_potential(self, identifier):
        seg = segmentation(("Huge", 0.5, 500_000.0))
        result = identifier.identify(market(total=0.0), seg)
        assert [g.size for g in result.gaps] == [0.0]
        assert result.potential_market_size == 0.0


# ─── Input requirements ──────────────────────────────────────────────────────

class TestInputRequirements:
    def test_needs_market_size(self, identifier, premium_only):
        result = identifier.identify(None, premium_only, competitors())
        assert result.method == "none"
        assert result.confidence == 0.0

    def test_needs_segmentation_or_competitors(self, identifier):
        assert identifier.identify(market()).method == "none"

    def test_empty_upstream_results_are_ignored(self, identifier, premium_only):
        empty_market = MarketSizeResult(method="none")
        assert identifier.identify(empty_market, premium_only).method == "none"

    def test_confidence(self, identifier, premium_only):
        result = identifier.identify(market(), premium_only, competitors())
        assert result.confidence == pytest.approx(0.5 + 0.08 + 0.07 + 0.07 + 0.1 + 0.1)
        assert 0.0 <= result.confidence <= 1.0
