"""
Market segmentation tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from agents.segmentation import MarketSegmentation


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def segmenter():
    return MarketSegmentation()


@pytest.fixture
def demographic():
    return {
        "age": [
            {"name": "18-24", "percentage": 0.3},
            {"name": "25-34", "percentage": 0.5},
            {"name": "35+", "percentage": 0.2},
        ],
    }


@pytest.fixture
def psychographic():
    return {"lifestyle": {"Active": 0.6, "Relaxed": 0.4}}


# ─── Method selection ────────────────────────────────────────────────────────

class TestMethods:
    def test_demographic_distribution(self, segmenter, demographic):
        result = segmenter.segment(demographic)
        assert result.method == "demographic"
        assert result.confidence == pytest.approx(0.7)
        assert [s.name for s in result.segments] == ["Age: 18-24", "Age: 25-34", "Age: 35+"]
        assert [s.share for s in result.segments] == pytest.approx([0.3, 0.5, 0.2])
        assert result.segments[1].size == pytest.approx(500_000)
        assert result.segments[1].criteria == {"age": "25-34"}
        assert result.coverage == pytest.approx(1.0)

    def test_hybrid(self, segmenter, demographic, psychographic):
        result = segmenter.segment(demographic, psychographic)
        assert result.method == "hybrid"
        assert result.confidence == pytest.approx(0.85)
        names = [s.name for s in result.segments]
        assert "Lifestyle: Active" in names
        assert sum(s.share for s in result.segments) <= 1.0 + 1e-9

    def test_psychographic_only(self, segmenter, psychographic):
        result = segmenter.segment(None, psychographic)
        assert result.method == "psychographic"
        assert result.confidence == pytest.approx(0.65)
        assert len(result.segments) == 2

    def test_basic_without_criteria(self, segmenter):
        result = segmenter.segment({"region_code": 7})
        assert result.method == "basic"
        assert result.confidence == pytest.approx(0.4)
        assert len(result.segments) == 1
        general = result.segments[0]
        assert general.name == "General market"
        assert general.share == pytest.approx(1.0)
        assert general.size == pytest.approx(1_000_000)

    def test_default_bands_for_unquantified_criterion(self, segmenter):
        result = segmenter.segment({"age": "adults"})
        assert result.method == "demographic"
        assert [s.source for s in result.segments] == ["default"] * 4
        assert sum(s.share for s in result.segments) == pytest.approx(1.0)


# ─── Explicit segments & sizing ──────────────────────────────────────────────

class TestSizing:
    def test_shares_derived_from_sizes(self, segmenter):
        result = segmenter.segment({"segments": [
            {"name": "A", "size": 300},
            {"name": "B", "size": 100},
        ]})
        shares = {s.name: s.share for s in result.segments}
        assert shares == {"A": pytest.approx(0.75), "B": pytest.approx(0.25)}
        assert result.segments[0].size == pytest.approx(300)

    def test_explicit_shares_kept_when_others_missing(self, segmenter):
        result = segmenter.segment({"segments": [
            {"name": "A", "share": 0.4},
            {"name": "B"},
        ]})
        shares = {s.name: s.share for s in result.segments}
        assert shares == {"A": pytest.approx(0.4), "B": pytest.approx(0.6)}
        assert result.coverage == pytest.approx(1.0)

    def test_unsized_segment_takes_mean_known_size(self, segmenter):
        result = segmenter.segment({"segments": [
            {"name": "A", "size": 500_000},
            {"name": "B"},
        ]})
        shares = {s.name: s.share for s in result.segments}
        assert shares == {"A": pytest.approx(0.5), "B": pytest.approx(0.5)}
        assert result.segments[1].size == pytest.approx(500_000)

    def test_oversubscribed_shares_normalized(self, segmenter):
        result = segmenter.segment({"segments": {"A": 0.6, "B": 0.8}})
        assert sum(s.share for s in result.segments) == pytest.approx(1.0)
        assert result.segments[0].share == pytest.approx(0.6 / 1.4)
        assert result.coverage == pytest.approx(1.0)

    def test_total_market_value_option(self, segmenter, demographic):
        result = segmenter.segment(demographic, options={"total_market_value": 2_000})
        assert [s.size for s in result.segments] == pytest.approx([600, 1000, 400])

    def test_small_groups_dropped(self, segmenter):
        result = segmenter.segment({"income": {"low": 0.02, "medium": 0.58, "high": 0.4}})
        assert [s.name for s in result.segments] == ["Income: medium", "Income: high"]
        assert result.coverage == pytest.approx(0.98)

    def test_max_segments_option(self, segmenter, demographic):
        result = segmenter.segment(demographic, options={"max_segments": 2})
        assert len(result.segments) == 2

    def test_explicit_segment_criteria(self, segmenter):
        result = segmenter.segment({"segments": [
            {"name": "Students", "age": "18-24", "share": 0.4},
        ]})
        assert result.segments[0].criteria == {"age": "18-24"}

    def test_summary_keeps_group_lists(self, segmenter, demographic):
        result = segmenter.segment(demographic)
        assert result.demographic["age"] == demographic["age"]
        assert result.psychographic == {}


# ─── Insufficient input ──────────────────────────────────────────────────────

class TestInsufficientInput:
    @pytest.mark.parametrize("demo,psycho", [(None, None), ("x", [1, 2]), (42, None)])
    def test_returns_empty_result(self, segmenter, demo, psycho):
        result = segmenter.segment(demo, psycho)
        assert result.method == "none"
        assert result.confidence == 0.0
        assert result.segments == []

    def test_shares_and_confidence_bounded(self, segmenter, demographic, psychographic):
        result = segmenter.segment(demographic, psychographic)
        assert 0.0 <= result.confidence <= 1.0
        for s in result.segments:
            assert 0.0 <= s.share <= 1.0
            assert s.size >= 0.0
