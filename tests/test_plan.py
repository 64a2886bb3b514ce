"""
Tests for plan inference and recommendation.
"""
from datetime import datetime, timezone

import pytest

from cursor_cost_explorer.core.cost import summarize
from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.core.plan import (
    Confidence,
    PlanRecommendation,
    conservative_savings,
    optimize_plan,
)
from cursor_cost_explorer.ingest.models import UsageEvent


class TestPlanOptimizer:
    """Test the spend-band decision tree."""

    def create_events(self, total_cost, count=2, kind="Included"):
        """Create ``count`` events split over two days with ``total_cost`` in total."""
        return [
            UsageEvent(
                timestamp=datetime(2025, 11, 1 + (i % 2), 12, 0, tzinfo=timezone.utc),
                kind=kind,
                model="composer-1",
                cost=total_cost / count,
                total_tokens=1000,
            )
            for i in range(count)
        ]

    def optimize(self, events):
        return optimize_plan(events, summarize(events))

    def test_heavy_spend_recommends_ultra(self):
        """Test $300/month recommends Ultra and saves 90% of the difference."""
        analysis = self.optimize(self.create_events(20))
        recommendation = analysis.recommendation

        assert analysis.actual_monthly_cost == pytest.approx(300)
        assert analysis.current_plan.plan == "Ultra"
        assert recommendation.recommended_plan == "Ultra"
        assert recommendation.savings_monthly == pytest.approx(90)
        assert recommendation.savings_yearly == pytest.approx(1080)
        assert recommendation.confidence == Confidence.HIGH
        assert recommendation.actions == ["Visit cursor.sh/settings → Billing → Upgrade to Ultra"]

    def test_near_ultra_spend_never_negative(self):
        """Test $195/month suggests Ultra without negative savings."""
        recommendation = self.optimize(self.create_events(13)).recommendation
        assert recommendation.recommended_plan == "Ultra"
        assert recommendation.savings_monthly == 0
        assert recommendation.confidence == Confidence.MEDIUM

    def test_pro_band(self):
        """Test $30/month stays on Pro."""
        analysis = self.optimize(self.create_events(2))
        assert analysis.current_plan.plan == "Pro"
        assert analysis.current_plan.confidence == Confidence.MEDIUM
        assert analysis.recommendation.recommended_plan == "Pro"
        assert analysis.recommendation.savings_monthly == 0
        assert analysis.recommendation.confidence == Confidence.HIGH

    def test_low_spend_recommends_free(self):
        """Test $3/month with few requests suggests Free."""
        analysis = self.optimize(self.create_events(0.2))
        recommendation = analysis.recommendation
        assert analysis.current_plan.plan == "Free"
        assert recommendation.recommended_plan == "Free"
        assert recommendation.savings_monthly == pytest.approx(2.7)
        assert recommendation.confidence == Confidence.HIGH

    def test_low_spend_over_free_limit_stays_pro(self):
        """Test 60 requests/month exceed the Free limit."""
        recommendation = self.optimize(self.create_events(0.2, count=4)).recommendation
        assert recommendation.recommended_plan == "Pro"
        assert recommendation.savings_monthly == 0
        assert any("exceeds Free tier limits" in r for r in recommendation.reasoning)

    def test_request_volume(self):
        analysis = self.optimize(self.create_events(2, count=40))
        assert analysis.request_analysis.monthly_requests == pytest.approx(600)
        assert analysis.request_analysis.exceeds_pro_limit
        assert not analysis.request_analysis.exceeds_ultra_limit

    def test_missing_inputs_rejected(self):
        events = self.create_events(2)
        with pytest.raises(ValidationError):
            optimize_plan([], summarize(events))
        with pytest.raises(ValidationError):
            optimize_plan(events, None)


class TestPlanRecommendation:
    """Test recommendation value object."""

    def create_recommendation(self, current="Pro", recommended="Ultra", savings=50.0,
                              confidence=Confidence.HIGH):
        """Create a test recommendation."""
        return PlanRecommendation(
            current_plan=current,
            recommended_plan=recommended,
            recommended_cost=200,
            actual_monthly_cost=250,
            savings_monthly=savings,
            savings_yearly=savings * 12,
            confidence=confidence,
        )

    @pytest.mark.parametrize("raw,expected", [(100, 90), (0, 0), (-10, 0)])
    def test_conservative_savings(self, raw, expected):
        assert conservative_savings(raw) == pytest.approx(expected)

    def test_negative_savings_rejected(self):
        with pytest.raises(ValidationError):
            self.create_recommendation(savings=-1)

    def test_upgrade_and_should_act(self):
        recommendation = self.create_recommendation()
        assert recommendation.is_upgrade
        assert not recommendation.is_downgrade
        assert recommendation.should_act()
        assert recommendation.savings_percentage == pytest.approx(20)
        assert recommendation.summary == "Consider Ultra plan. Save $50.00/month."

    def test_optimal_plan(self):
        recommendation = self.create_recommendation(recommended="Pro", savings=0)
        assert recommendation.is_optimal
        assert not recommendation.should_act()
        assert "is optimal" in recommendation.summary

    def test_low_confidence_not_actionable(self):
        recommendation = self.create_recommendation(confidence=Confidence.LOW)
        assert not recommendation.should_act()

    def test_to_dict(self):
        data = self.create_recommendation().to_dict()
        assert data["confidence"] == "high"
        assert data["is_upgrade"] is True
