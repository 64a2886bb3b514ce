"""
Tests for usage pattern analysis.
"""
from datetime import datetime, timezone

import pytest

from cursor_cost_explorer.core.aggregates import DailyAggregate
from cursor_cost_explorer.core.cost import summarize
from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.core.patterns import (
    WorkStyle,
    analyze_patterns,
    coefficient_of_variation,
    consistency_label,
    detect_sprints,
    hourly_distribution,
    peak_hours,
    weekday_distribution,
)
from cursor_cost_explorer.ingest.models import UsageEvent

# Two working weeks in November 2025 (Monday 3rd to Friday 14th)
WEEKDAYS = [3, 4, 5, 6, 7, 10, 11, 12, 13, 14]


class TestUsagePatterns:
    """Test distributions, sprints and work styles."""

    def create_event(self, day, hour=10, cost=1.0):
        """Create a test event."""
        return UsageEvent(
            timestamp=datetime(2025, 11, day, hour, 15, tzinfo=timezone.utc),
            kind="Included",
            model="composer-1",
            cost=cost,
            total_tokens=1000,
        )

    def create_daily(self, costs):
        """Create daily aggregates for consecutive days."""
        return [
            DailyAggregate(date=f"2025-11-{i + 1:02d}", cost=cost, request_count=1, total_tokens=0)
            for i, cost in enumerate(costs)
        ]

    def analyze(self, events):
        return analyze_patterns(events, summarize(events))

    def test_hourly_distribution_covers_all_hours(self):
        events = [self.create_event(3, hour=9), self.create_event(3, hour=9), self.create_event(3, hour=14)]

        hourly = hourly_distribution(events)

        assert len(hourly) == 24
        assert hourly[9].requests == 2
        assert hourly[9].percentage == pytest.approx(200 / 3)
        assert hourly[14].cost == 1.0
        assert sum(h.requests for h in hourly) == 3

    def test_weekday_distribution_starts_on_sunday(self):
        """Test 1 November 2025 (a Saturday) and 2 November (a Sunday)."""
        weekly = weekday_distribution([self.create_event(1), self.create_event(2)])
        assert weekly[6].day_name == "Saturday"
        assert weekly[6].requests == 1
        assert weekly[0].day_name == "Sunday"
        assert weekly[0].requests == 1

    def test_peak_hours_ties_prefer_earlier_hour(self):
        events = (
            [self.create_event(3, hour=9)] * 3
            + [self.create_event(3, hour=14)] * 2
            + [self.create_event(3, hour=22), self.create_event(3, hour=20)]
        )
        peaks = peak_hours(hourly_distribution(events))
        assert [p.hour for p in peaks] == [9, 14, 20]

    def test_detect_sprint_above_two_sigma(self):
        """Test a $20 day among $1 days is a sprint."""
        sprints = detect_sprints(self.create_daily([1] * 9 + [20]))

        assert len(sprints) == 1
        assert sprints[0].date == "2025-11-10"
        assert sprints[0].deviation == pytest.approx(17.1)
        assert sprints[0].deviation_percentage == pytest.approx(17.1 / 2.9 * 100)

    def test_no_sprints_when_flat(self):
        assert detect_sprints(self.create_daily([5] * 10)) == []
        assert detect_sprints([]) == []

    def test_sprints_limited_and_sorted(self):
        costs = [1] * 60 + [30, 50, 40, 45, 35, 38]
        sprints = detect_sprints(self.create_daily(costs))
        assert len(sprints) == 5
        assert [s.cost for s in sprints] == [50, 45, 40, 38, 35]

    @pytest.mark.parametrize("cv,label", [(0.1, "steady"), (0.3, "moderate"), (0.49, "moderate"), (0.5, "bursty")])
    def test_consistency_label(self, cv, label):
        assert consistency_label(cv) == label

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([2, 2, 2]) == 0
        assert coefficient_of_variation([0, 0]) == 0
        assert coefficient_of_variation([1, 3]) == pytest.approx(0.5)

    def test_night_coder_with_steady_usage(self):
        """Test evening-only weekday usage over two weeks."""
        analysis = self.analyze([self.create_event(day, hour=20) for day in WEEKDAYS])
        work_style = analysis.work_style

        assert work_style.styles == [WorkStyle.NIGHT_CODER, WorkStyle.STEADY_USER]
        assert work_style.primary_style == WorkStyle.NIGHT_CODER
        assert work_style.evening_percentage == pytest.approx(100)
        assert work_style.usage_consistency == "steady"
        titles = [r.title for r in analysis.recommendations]
        assert "Night Coding Pattern Detected" in titles
        assert "Steady Usage Pattern" in titles

    def test_weekend_warrior(self):
        analysis = self.analyze([self.create_event(1), self.create_event(3)])
        assert analysis.work_style.styles == [WorkStyle.WEEKEND_WARRIOR]
        assert analysis.work_style.weekend_percentage == pytest.approx(50)

    def test_sprint_worker(self):
        """Test bursty daily spend over more than a week."""
        costs = [1] * 9 + [20]
        events = [self.create_event(day, cost=cost) for day, cost in zip(WEEKDAYS, costs)]

        analysis = self.analyze(events)

        assert analysis.work_style.has_style(WorkStyle.SPRINT_WORKER)
        assert analysis.work_style.usage_consistency == "bursty"
        assert analysis.sprints[0].date == "2025-11-14"
        assert analysis.recommendations[-1].title == "Sprint Detected: 2025-11-14"

    def test_short_history_defaults_to_steady(self):
        """Test variance styles need more than a week of data."""
        analysis = self.analyze([self.create_event(3, cost=1), self.create_event(4, cost=50)])
        assert analysis.work_style.styles == [WorkStyle.STEADY_USER]
        assert analysis.work_style.characteristics == ["Regular usage pattern"]

    def test_missing_inputs_rejected(self):
        events = [self.create_event(3)]
        with pytest.raises(ValidationError):
            analyze_patterns([], summarize(events))
        with pytest.raises(ValidationError):
            analyze_patterns(events, None)

    def test_to_dict(self):
        data = self.analyze([self.create_event(3)]).to_dict()
        assert len(data["hourly_distribution"]) == 24
        assert len(data["daily_distribution"]) == 7
        assert data["daily_distribution"][1]["dayName"] == "Monday"
        assert data["work_style"]["primary_style"] == "steady_user"
