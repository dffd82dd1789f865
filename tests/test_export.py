"""Tests for report export and Prometheus metrics."""

import json

import pytest
from prometheus_client import REGISTRY

from appropriateness import metrics
from appropriateness.export import export_json, export_markdown
from config.settings import settings


# ===================================================================
# EXPORT
# ===================================================================


class TestExportMarkdown:

    def test_sections(self, engine, demo_scenarios):
        result = engine.evaluate(demo_scenarios["pe-pregnancy-ctpa"].request)
        md = export_markdown(result)
        assert md.startswith("# Imaging Appropriateness Report")
        assert "**Score:** 6/9 (may be appropriate)" in md
        for heading in ("## Reference Criteria", "## Factors", "## Alternatives",
                        "## Safety Warnings", "## Reasoning", "## Evidence"):
            assert heading in md
        assert "| Pregnancy | Pregnant, medium radiation | -1.5 |" in md
        assert "- [CRITICAL] Patient is pregnant." in md

    def test_insufficient_data(self, engine, make_request):
        result = engine.evaluate(make_request(topic="Toothache", procedure="Dental panoramic film"))
        md = export_markdown(result)
        assert "**Score:** Insufficient data" in md
        assert "## Reference Criteria" not in md
        assert "## Alternatives" not in md


class TestExportJson:

    def test_parses_back(self, engine, demo_scenarios):
        result = engine.evaluate(demo_scenarios["lbp-red-flags"].request)
        data = json.loads(export_json(result))
        assert data["score"] == 9
        assert data["category"] == "usually appropriate"
        assert data["coverage_status"] == "GENERAL_GUIDANCE"
        assert data["match_result"]["fact"] is None
        assert len(data["factors"]) == 4


# ===================================================================
# METRICS
# ===================================================================


def _count(category, coverage):
    value = REGISTRY.get_sample_value(
        "appropriateness_evaluation_total", {"category": category, "coverage": coverage},
    )
    return value or 0.0


class TestMetrics:

    def test_evaluation_recorded(self, engine, demo_scenarios):
        before = _count("usually appropriate", "DIRECT_MATCH")
        engine.evaluate(demo_scenarios["headache-appropriate"].request)
        assert _count("usually appropriate", "DIRECT_MATCH") == before + 1

    def test_warnings_recorded(self):
        before = REGISTRY.get_sample_value(
            "appropriateness_safety_warning_total", {"severity": "critical"},
        ) or 0.0
        metrics.record_warnings(["critical", "info"])
        after = REGISTRY.get_sample_value(
            "appropriateness_safety_warning_total", {"severity": "critical"},
        )
        assert after == before + 1

    def test_reference_sizes(self):
        metrics.update_reference_sizes(27, 23, 8)
        assert REGISTRY.get_sample_value(
            "appropriateness_reference_table_size", {"table": "safety_rules"},
        ) == 8

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "METRICS_ENABLED", False)
        before = _count("may be appropriate", "SIMILAR_MATCH")
        metrics.record_evaluation("may be appropriate", "SIMILAR_MATCH", 0.001)
        assert _count("may be appropriate", "SIMILAR_MATCH") == pytest.approx(before)
