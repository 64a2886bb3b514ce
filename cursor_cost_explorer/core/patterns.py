"""
Usage pattern analysis.

Looks at when requests happen (hour of day, day of week, UTC), finds
sprint days whose spend is a statistical outlier, and classifies the
user's work style.
"""

import logging
import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .aggregates import DailyAggregate, aggregate_days
from .cost import CostSummary
from .errors import ValidationError
from cursor_cost_explorer.ingest.models import UsageEvent

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
SUNDAY, SATURDAY = 0, 6

PEAK_HOURS_COUNT = 3
MAX_SPRINTS = 5

# A sprint day costs more than mean + SPRINT_SIGMA * population stddev
SPRINT_SIGMA = 2

EVENING_START_HOUR = 18
EVENING_END_HOUR = 23
NIGHT_CODER_MIN_PERCENTAGE = 40
WEEKEND_WARRIOR_MIN_PERCENTAGE = 20

# Coefficient-of-variation bands of daily cost
STEADY_MAX_CV = 0.3
MODERATE_MAX_CV = 0.5
# Style classification by variance needs more than a week of history
MIN_DAYS_FOR_VARIANCE_STYLES = 7


class WorkStyle(Enum):
    NIGHT_CODER = "night_coder"
    WEEKEND_WARRIOR = "weekend_warrior"
    SPRINT_WORKER = "sprint_worker"
    STEADY_USER = "steady_user"


_STYLE_DESCRIPTIONS = {
    WorkStyle.NIGHT_CODER: "You primarily code during evening hours (18h-23h)",
    WorkStyle.WEEKEND_WARRIOR: "You do significant work on weekends",
    WorkStyle.SPRINT_WORKER: "Your usage comes in bursts with high variance",
    WorkStyle.STEADY_USER: "You maintain consistent daily usage patterns",
}


@dataclass(frozen=True)
class HourBucket:
    hour: int
    requests: int
    cost: float
    percentage: float
    cost_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "requests": self.requests,
            "cost": self.cost,
            "percentage": self.percentage,
            "cost_percentage": self.cost_percentage,
        }


@dataclass(frozen=True)
class WeekdayBucket:
    day: int  # 0 = Sunday
    requests: int
    cost: float
    percentage: float
    cost_percentage: float

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "dayName": self.day_name,
            "requests": self.requests,
            "cost": self.cost,
            "percentage": self.percentage,
            "cost_percentage": self.cost_percentage,
        }


@dataclass(frozen=True)
class Sprint:
    date: str
    cost: float
    requests: int
    deviation: float
    deviation_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "cost": self.cost,
            "requests": self.requests,
            "deviation": self.deviation,
            "deviation_percentage": self.deviation_percentage,
        }


@dataclass(frozen=True)
class WorkStyleProfile:
    """The user's work styles; never empty, first entry is primary."""
    styles: List[WorkStyle]
    characteristics: List[str]
    evening_percentage: float
    weekend_percentage: float
    usage_consistency: str

    def __post_init__(self):
        if not self.styles:
            raise ValidationError("Work style profile needs at least one style")

    @property
    def primary_style(self) -> WorkStyle:
        return self.styles[0]

    @property
    def description(self) -> str:
        return _STYLE_DESCRIPTIONS[self.primary_style]

    def has_style(self, style: WorkStyle) -> bool:
        return style in self.styles

    @property
    def is_steady_user(self) -> bool:
        return self.has_style(WorkStyle.STEADY_USER) or self.usage_consistency == "steady"

    @property
    def recommendations(self) -> List[str]:
        advice = []
        if self.has_style(WorkStyle.NIGHT_CODER):
            advice.append("Consider optimizing your workflow for evening peak hours")
            advice.append("Ensure your plan supports your evening usage patterns")
        if self.has_style(WorkStyle.WEEKEND_WARRIOR):
            advice.append(
                f"Your weekend usage ({self.weekend_percentage:.1f}%) suggests steady investment in Pro/Ultra"
            )
            advice.append("Ensure your plan aligns with weekend-heavy usage")
        if self.has_style(WorkStyle.SPRINT_WORKER):
            advice.append("Consider timing sprints with billing cycle start to maximize plan value")
            advice.append("Your bursty pattern may benefit from Ultra plan for unlimited capacity")
        if self.is_steady_user:
            advice.append("Your consistent usage pattern justifies Pro/Ultra investment for predictable costs")
            advice.append("Consider fixed-cost plans to avoid overage charges")
        return advice or ["Your usage patterns are consistent and efficient"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_style": self.primary_style.value,
            "styles": [s.value for s in self.styles],
            "characteristics": list(self.characteristics),
            "description": self.description,
            "evening_percentage": self.evening_percentage,
            "weekend_percentage": self.weekend_percentage,
            "usage_consistency": self.usage_consistency,
            "is_night_coder": self.has_style(WorkStyle.NIGHT_CODER),
            "is_weekend_warrior": self.has_style(WorkStyle.WEEKEND_WARRIOR),
            "is_sprint_worker": self.has_style(WorkStyle.SPRINT_WORKER),
            "is_steady_user": self.is_steady_user,
            "recommendations": self.recommendations,
            "characteristics_summary": ". ".join(self.characteristics) or "Regular usage pattern",
        }


@dataclass(frozen=True)
class PatternRecommendation:
    type: str
    title: str
    message: str
    priority: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
        }
        data.update(self.extra)
        return data


@dataclass(frozen=True)
class PatternAnalysis:
    hourly_distribution: List[HourBucket]
    daily_distribution: List[WeekdayBucket]
    peak_hours: List[HourBucket]
    sprints: List[Sprint]
    work_style: WorkStyleProfile
    recommendations: List[PatternRecommendation]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hourly_distribution": [h.to_dict() for h in self.hourly_distribution],
            "daily_distribution": [d.to_dict() for d in self.daily_distribution],
            "peak_hours": [
                {"hour": h.hour, "requests": h.requests, "cost": h.cost, "percentage": h.percentage}
                for h in self.peak_hours
            ],
            "sprints": [s.to_dict() for s in self.sprints],
            "work_style": self.work_style.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def analyze_patterns(
    events: Sequence[UsageEvent],
    cost_summary: Optional[CostSummary],
) -> PatternAnalysis:
    """Analyze temporal usage patterns.

    Args:
        events: Usage events to analyze
        cost_summary: Summary from the cost analyzer (period length)

    Returns:
        PatternAnalysis with distributions, peaks, sprints, work style and
        recommendations

    Raises:
        ValidationError: If events is empty or the cost summary is missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")
    if cost_summary is None:
        raise ValidationError("Cost summary is required")

    hourly = hourly_distribution(events)
    weekly = weekday_distribution(events)
    daily_costs = aggregate_days(events)
    peaks = peak_hours(hourly)
    sprints = detect_sprints(daily_costs)
    work_style = identify_work_style(hourly, weekly, daily_costs, cost_summary)
    logger.debug(
        "Work style %s (%s), %d sprint days",
        work_style.primary_style.value, work_style.usage_consistency, len(sprints),
    )

    return PatternAnalysis(
        hourly_distribution=hourly,
        daily_distribution=weekly,
        peak_hours=peaks,
        sprints=sprints,
        work_style=work_style,
        recommendations=generate_recommendations(work_style, peaks, sprints),
    )


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def hourly_distribution(events: Sequence[UsageEvent]) -> List[HourBucket]:
    """Requests and cost per UTC hour of day, all 24 hours."""
    requests = [0] * 24
    costs = [0.0] * 24
    for event in events:
        hour = event.utc_timestamp.hour
        requests[hour] += 1
        costs[hour] += event.cost

    total_requests = len(events)
    total_cost = sum(e.cost for e in events)
    return [
        HourBucket(
            hour=hour,
            requests=requests[hour],
            cost=costs[hour],
            percentage=_percent(requests[hour], total_requests),
            cost_percentage=_percent(costs[hour], total_cost),
        )
        for hour in range(24)
    ]


def weekday_distribution(events: Sequence[UsageEvent]) -> List[WeekdayBucket]:
    """Requests and cost per UTC day of week, Sunday first."""
    requests = [0] * 7
    costs = [0.0] * 7
    for event in events:
        # isoweekday: Monday=1 .. Sunday=7
        day = event.utc_timestamp.isoweekday() % 7
        requests[day] += 1
        costs[day] += event.cost

    total_requests = len(events)
    total_cost = sum(e.cost for e in events)
    return [
        WeekdayBucket(
            day=day,
            requests=requests[day],
            cost=costs[day],
            percentage=_percent(requests[day], total_requests),
            cost_percentage=_percent(costs[day], total_cost),
        )
        for day in range(7)
    ]


def peak_hours(hourly: Sequence[HourBucket], count: int = PEAK_HOURS_COUNT) -> List[HourBucket]:
    """Busiest hours by request count; ties go to the earlier hour."""
    return sorted(hourly, key=lambda h: h.requests, reverse=True)[:count]


def detect_sprints(daily_costs: Sequence[DailyAggregate], limit: int = MAX_SPRINTS) -> List[Sprint]:
    """Find days whose cost exceeds mean + 2 population stddevs.

    Returns the top ``limit`` such days, most expensive first.
    """
    if not daily_costs:
        return []

    costs = [d.cost for d in daily_costs]
    mean = statistics.fmean(costs)
    threshold = mean + SPRINT_SIGMA * statistics.pstdev(costs)

    outliers = sorted(
        (d for d in daily_costs if d.cost > threshold),
        key=lambda d: d.cost,
        reverse=True,
    )
    return [
        Sprint(
            date=d.date,
            cost=d.cost,
            requests=d.request_count,
            deviation=d.deviation_from(mean),
            deviation_percentage=d.deviation_percentage(mean),
        )
        for d in outliers[:limit]
    ]


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population stddev over mean; 0 when the mean is 0."""
    if not values:
        return 0.0
    mean = statistics.fmean(values)
    if mean <= 0:
        return 0.0
    return statistics.pstdev(values) / mean


def consistency_label(cv: float) -> str:
    if cv < STEADY_MAX_CV:
        return "steady"
    if cv < MODERATE_MAX_CV:
        return "moderate"
    return "bursty"


def identify_work_style(
    hourly: Sequence[HourBucket],
    weekly: Sequence[WeekdayBucket],
    daily_costs: Sequence[DailyAggregate],
    cost_summary: CostSummary,
) -> WorkStyleProfile:
    """Classify the user's work style.

    Every matching style is kept, in a fixed order: night coder, weekend
    warrior, sprint worker, steady user. With no match the user is a steady
    user.
    """
    styles: List[WorkStyle] = []
    characteristics: List[str] = []

    evening_percentage = sum(
        h.percentage for h in hourly if EVENING_START_HOUR <= h.hour <= EVENING_END_HOUR
    )
    if evening_percentage > NIGHT_CODER_MIN_PERCENTAGE:
        styles.append(WorkStyle.NIGHT_CODER)
        characteristics.append("Peak usage in evening hours (18h-23h)")

    weekend_percentage = sum(d.percentage for d in weekly if d.day in (SUNDAY, SATURDAY))
    if weekend_percentage > WEEKEND_WARRIOR_MIN_PERCENTAGE:
        styles.append(WorkStyle.WEEKEND_WARRIOR)
        characteristics.append(f"High weekend usage ({weekend_percentage:.1f}% on weekends)")

    cv = coefficient_of_variation([d.cost for d in daily_costs])
    long_enough = cost_summary.days > MIN_DAYS_FOR_VARIANCE_STYLES
    if cv > MODERATE_MAX_CV and long_enough:
        styles.append(WorkStyle.SPRINT_WORKER)
        characteristics.append("Usage in bursts with high variance")
    if cv < STEADY_MAX_CV and long_enough:
        styles.append(WorkStyle.STEADY_USER)
        characteristics.append("Consistent daily usage pattern")

    if not styles:
        styles.append(WorkStyle.STEADY_USER)
        characteristics.append("Regular usage pattern")

    return WorkStyleProfile(
        styles=styles,
        characteristics=characteristics,
        evening_percentage=evening_percentage,
        weekend_percentage=weekend_percentage,
        usage_consistency=consistency_label(cv),
    )


def generate_recommendations(
    work_style: WorkStyleProfile,
    peaks: Sequence[HourBucket],
    sprints: Sequence[Sprint],
) -> List[PatternRecommendation]:
    """One recommendation per matched style, plus one for the top sprint."""
    recommendations = []

    if work_style.has_style(WorkStyle.NIGHT_CODER):
        peak = f"{peaks[0].hour}h" if peaks else "evening"
        recommendations.append(PatternRecommendation(
            type="work_pattern",
            title="Night Coding Pattern Detected",
            message=(
                f"You're most active during evening hours ({peak}). "
                "Consider optimizing your workflow for these peak hours."
            ),
            priority="low",
        ))

    if work_style.has_style(WorkStyle.WEEKEND_WARRIOR):
        recommendations.append(PatternRecommendation(
            type="work_pattern",
            title="Weekend Warrior Pattern",
            message=(
                f"You use Cursor heavily on weekends ({work_style.weekend_percentage:.1f}% of usage). "
                "Your steady usage justifies Pro/Ultra investment."
            ),
            priority="low",
        ))

    if work_style.has_style(WorkStyle.SPRINT_WORKER):
        recommendations.append(PatternRecommendation(
            type="optimization",
            title="Sprint Worker Pattern",
            message=(
                "Your usage comes in bursts. Consider timing sprints with billing cycle "
                "start to maximize plan value."
            ),
            priority="medium",
            extra={"action": "Plan your intensive coding sessions at the start of your billing cycle"},
        ))

    if work_style.has_style(WorkStyle.STEADY_USER):
        recommendations.append(PatternRecommendation(
            type="optimization",
            title="Steady Usage Pattern",
            message="Your consistent daily usage pattern justifies Pro/Ultra investment for predictable costs.",
            priority="low",
        ))

    if sprints:
        top = sprints[0]
        recommendations.append(PatternRecommendation(
            type="sprint",
            title=f"Sprint Detected: {top.date}",
            message=(
                f"Unusually high activity on {top.date} ({top.deviation_percentage:.0f}% above average). "
                "This suggests intensive coding sessions."
            ),
            priority="low",
            extra={"sprint_date": top.date, "sprint_cost": top.cost},
        ))

    return recommendations
