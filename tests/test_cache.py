"""
Tests for the cache efficiency analyzer.
"""
from datetime import datetime, timezone

import pytest

from cursor_cost_explorer.core.cache import (
    AVERAGE_TIPS,
    POOR_TIPS,
    analyze_cache,
    benchmark_hit_rate,
    project_improvement,
)
from cursor_cost_explorer.core.cost import summarize
from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.ingest.models import UsageEvent


class TestCacheAnalyzer:
    """Test cache metrics, benchmarks and feedback."""

    def create_event(self, cache=0, input_tokens=0, output_tokens=0, cost=5.0, total_tokens=None):
        """Create a test event."""
        if total_tokens is None:
            total_tokens = cache + input_tokens + output_tokens
        return UsageEvent(
            timestamp=datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc),
            kind="Included",
            model="composer-1",
            cost=cost,
            total_tokens=total_tokens,
            cache_read_tokens=cache,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def analyze(self, events):
        return analyze_cache(events, summarize(events))

    def test_good_band_at_75_percent(self):
        """Test a 75% hit rate lands in Good without meeting the 85% threshold."""
        events = [
            self.create_event(cache=700, input_tokens=300),
            self.create_event(cache=800, input_tokens=200),
        ]

        analysis = self.analyze(events)

        assert analysis.metrics.cache_hit_rate == pytest.approx(75)
        assert analysis.benchmark.level == "Good"
        assert analysis.benchmark.threshold_met is False
        assert analysis.feedback.potential_savings is None

    def test_threshold_met_at_85(self):
        result = benchmark_hit_rate(85)
        assert result.level == "Excellent"
        assert result.threshold_met

    @pytest.mark.parametrize("rate,level", [
        (0, "Poor"),
        (59.9, "Poor"),
        (60, "Average"),
        (74.9, "Average"),
        (84.9, "Good"),
        (91.9, "Excellent"),
        (92, "Outstanding"),
        (100, "Outstanding"),
    ])
    def test_benchmark_bands(self, rate, level):
        assert benchmark_hit_rate(rate).level == level

    def test_poor_feedback_projects_savings(self):
        """Test 50% hit rate closes a quarter of the gap to 75%."""
        events = [
            self.create_event(cache=500, input_tokens=500),
            self.create_event(cache=500, input_tokens=500),
        ]

        feedback = self.analyze(events).feedback

        # $10 over one day projects to $300/month; gain is 25 * 0.25 = 6.25 points
        assert feedback.tips == POOR_TIPS
        assert feedback.potential_savings.improvement_percentage == pytest.approx(6.25)
        assert feedback.potential_savings.monthly == pytest.approx(18.75)
        assert feedback.potential_savings.yearly == pytest.approx(225)
        assert "below average" in feedback.summary

    def test_average_feedback(self):
        events = [self.create_event(cache=700, input_tokens=300)]
        feedback = self.analyze(events).feedback
        assert feedback.tips == AVERAGE_TIPS
        assert feedback.potential_savings.improvement_percentage == pytest.approx(0.75)

    def test_projection_without_summary(self):
        """Test missing cost summary projects zero dollars."""
        feedback = analyze_cache([self.create_event(cache=100, input_tokens=900)]).feedback
        assert feedback.potential_savings.monthly == 0

    def test_project_improvement_above_target(self):
        assert project_improvement(80, 100, 0.25).monthly == 0

    def test_overall_efficiency_uses_all_tokens(self):
        events = [self.create_event(cache=500, input_tokens=250, output_tokens=250)]
        metrics = self.analyze(events).metrics
        assert metrics.overall_cache_efficiency == pytest.approx(50)
        assert metrics.cache_hit_rate == pytest.approx(500 / 750 * 100)

    def test_savings_price_cache_at_input_rate(self):
        """Test cached tokens are valued at the average input-token cost."""
        events = [self.create_event(cache=400, input_tokens=500, cost=1.0, total_tokens=1000)]
        savings = self.analyze(events).savings
        assert savings.estimated_cost_without_cache == pytest.approx(0.4)
        assert savings.savings_yearly == pytest.approx(4.8)
        assert savings.cache_tokens_processed == 400

    def test_no_tokens(self):
        analysis = self.analyze([self.create_event(total_tokens=0)])
        assert analysis.metrics.cache_hit_rate == 0
        assert analysis.metrics.overall_cache_efficiency == 0
        assert analysis.benchmark.level == "Poor"

    def test_empty_events_rejected(self):
        with pytest.raises(ValidationError):
            analyze_cache([])

    def test_to_dict(self):
        data = self.analyze([self.create_event(cache=950, input_tokens=50)]).to_dict()
        assert set(data) == {"metrics", "benchmark", "savings", "feedback"}
        assert data["benchmark"]["level"] == "Outstanding"
        assert data["feedback"]["potential_savings"] is None
