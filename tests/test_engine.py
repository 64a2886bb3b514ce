"""
Tests for the analysis engine.
"""
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from cursor_cost_explorer import analyze, export_json
from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.core.registry import DEFAULT_REGISTRY, ModelCategory, ModelInfo
from cursor_cost_explorer.demo.sample_data import build_demo_events
from cursor_cost_explorer.ingest.models import UsageEvent

TOP_LEVEL_KEYS = {
    "metadata",
    "summary",
    "cost_analysis",
    "model_efficiency",
    "plan_recommendation",
    "cache_efficiency",
    "opportunities",
    "patterns",
}


class TestAnalysisEngine:
    """Test the orchestrated result."""

    def create_event(self, day=3, hour=10, cost=1.0, kind="Included", model="composer-1"):
        """Create a test event."""
        return UsageEvent(
            timestamp=datetime(2025, 11, day, hour, 0, tzinfo=timezone.utc),
            kind=kind,
            model=model,
            cost=cost,
            total_tokens=10_000,
            cache_read_tokens=6_000,
            input_tokens=3_000,
            output_tokens=1_000,
        )

    def create_events(self):
        return [
            self.create_event(day=3, cost=10),
            self.create_event(day=3, hour=15, cost=20, model="claude-4.5-sonnet"),
            self.create_event(day=4, cost=15, kind="On-Demand"),
            self.create_event(day=4, hour=20, cost=3, kind="Errored, Not Charged"),
        ]

    def test_result_shape(self):
        result = analyze(self.create_events())

        assert set(result) == TOP_LEVEL_KEYS
        assert result["metadata"]["total_records"] == 4
        assert result["metadata"]["analysis_version"] == "1.0"
        assert set(result["summary"]) == {"period", "cost", "usage"}
        assert "summary" not in result["cost_analysis"]
        assert set(result["opportunities"]) == {
            "list",
            "total_potential_savings_monthly",
            "total_potential_savings_yearly",
            "total_opportunities_found",
        }

    def test_summary_values(self):
        summary = analyze(self.create_events())["summary"]

        assert summary["period"] == {"start": "2025-11-03", "end": "2025-11-04", "days": 2}
        assert summary["cost"]["total"] == 48
        assert summary["cost"]["daily_average"] == 24
        assert summary["cost"]["by_type"] == {"included": 30, "on_demand": 15, "errored": 0}
        assert summary["usage"]["cache_efficiency"] == pytest.approx(60)

    def test_plan_section(self):
        plan = analyze(self.create_events())["plan_recommendation"]
        assert plan["current_monthly_cost"] == pytest.approx(720)
        assert plan["recommended_plan"] == "Ultra"
        assert plan["savings_monthly"] == pytest.approx(468)
        assert plan["confidence"] == "high"

    def test_idempotent_except_timestamp(self):
        events = self.create_events()
        first = analyze(events)
        second = analyze(events)
        first["metadata"].pop("generated_at")
        second["metadata"].pop("generated_at")
        assert first == second

    def test_generated_at_is_utc_iso(self):
        generated_at = analyze(self.create_events())["metadata"]["generated_at"]
        parsed = datetime.fromisoformat(generated_at)
        assert parsed.tzinfo is not None

    def test_empty_events_rejected(self):
        with pytest.raises(ValidationError):
            analyze([])

    def test_analyzer_failure_aborts(self):
        """Test a failing analyzer is not swallowed."""
        with patch(
            "cursor_cost_explorer.core.engine.analyze_patterns",
            side_effect=ValidationError("boom"),
        ):
            with pytest.raises(ValidationError, match="boom"):
                analyze(self.create_events())

    def test_custom_registry(self):
        """Test injected registries drive recommendations."""
        registry = DEFAULT_REGISTRY.with_models({
            "my-model": ModelInfo(
                name="my-model",
                display_name="Mine",
                category=ModelCategory.COST_EFFICIENT,
                use_case="Everything",
            ),
        })
        result = analyze([self.create_event(model="my-model")], registry)
        ranking = result["model_efficiency"]["rankings"][0]
        assert ranking["recommendation"] == "Use for: Everything"

    def test_demo_data_analyzes(self):
        result = analyze(build_demo_events())
        assert result["metadata"]["total_records"] == len(build_demo_events())
        assert len(result["opportunities"]["list"]) <= 5


class TestExportJson:
    """Test JSON serialization."""

    def test_compact_by_default(self):
        assert export_json({"a": 1, "b": [1, 2]}) == '{"a": 1, "b": [1, 2]}'

    def test_pretty_uses_two_spaces(self):
        assert export_json({"a": 1}, pretty=True) == '{\n  "a": 1\n}'

    def test_non_ascii_kept_verbatim(self):
        assert export_json({"model": "modèle-ü"}) == '{"model": "modèle-ü"}'

    def test_full_result_round_trips(self):
        events = [
            UsageEvent(
                timestamp=datetime(2025, 11, 3, 10, 0, tzinfo=timezone.utc),
                kind="Included",
                model="composer-1",
                cost=1.0,
                total_tokens=1000,
            )
        ]
        result = analyze(events)
        assert json.loads(export_json(result, pretty=True)) == result
