"""
Cost aggregation and breakdowns.

Summarizes spend over the export period and breaks it down by model,
billing bucket and day.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .aggregates import DailyAggregate, aggregate_days, aggregate_models
from .errors import ValidationError
from .registry import DEFAULT_REGISTRY, ModelRegistry
from cursor_cost_explorer.ingest.models import RequestKind, UsageEvent

logger = logging.getLogger(__name__)

TOP_N = 5


@dataclass(frozen=True)
class CostSummary:
    """Totals for the export period.

    This is the summary the plan, cache and pattern analyzers build on.
    """
    start: str
    end: str
    days: int
    total_cost: float
    daily_average: float
    total_requests: int
    requests_per_day: float
    total_tokens: int

    def __post_init__(self):
        if self.days < 0:
            raise ValidationError("days cannot be negative")
        if self.total_cost < 0:
            raise ValidationError("total_cost cannot be negative")

    @property
    def monthly_cost(self) -> float:
        """Spend projected to a 30-day month."""
        return self.total_cost / (self.days or 1) * 30

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": {"start": self.start, "end": self.end, "days": self.days},
            "cost": {"total": self.total_cost, "daily_average": self.daily_average},
            "usage": {
                "total_requests": self.total_requests,
                "requests_per_day": self.requests_per_day,
                "total_tokens": self.total_tokens,
            },
        }


@dataclass(frozen=True)
class ModelCostShare:
    model: str
    total_cost: float
    request_count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "total_cost": self.total_cost,
            "request_count": self.request_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class KindBreakdown:
    cost: float
    request_count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cost": self.cost,
            "request_count": self.request_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class ExpensiveRequest:
    timestamp: str
    model: str
    kind: str
    cost: float
    total_tokens: int
    row_number: int  # 1-based position in the input

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.timestamp,
            "model": self.model,
            "kind": self.kind,
            "cost": self.cost,
            "total_tokens": self.total_tokens,
            "row_number": self.row_number,
        }


@dataclass(frozen=True)
class CostAnalysis:
    """Complete cost analysis result."""
    summary: CostSummary
    breakdown_by_model: List[ModelCostShare]
    breakdown_by_type: Dict[RequestKind, KindBreakdown]
    daily_costs: List[DailyAggregate]
    top_expensive_requests: List[ExpensiveRequest]
    top_expensive_days: List[DailyAggregate]

    @property
    def most_expensive_model(self) -> Optional[ModelCostShare]:
        return self.breakdown_by_model[0] if self.breakdown_by_model else None

    def to_dict(self) -> Dict[str, Any]:
        most_expensive = self.most_expensive_model
        return {
            "summary": self.summary.to_dict(),
            "breakdown_by_model": [m.to_dict() for m in self.breakdown_by_model],
            "breakdown_by_type": {
                kind.value: breakdown.to_dict()
                for kind, breakdown in self.breakdown_by_type.items()
            },
            "daily_costs": [d.to_dict() for d in self.daily_costs],
            "top_expensive_requests": [r.to_dict() for r in self.top_expensive_requests],
            "top_expensive_days": [
                {"date": d.date, "cost": d.cost, "request_count": d.request_count}
                for d in self.top_expensive_days
            ],
            "most_expensive_model": most_expensive.to_dict() if most_expensive else None,
        }


def analyze_costs(
    events: Sequence[UsageEvent],
    registry: ModelRegistry = DEFAULT_REGISTRY,
) -> CostAnalysis:
    """Aggregate usage events into cost statistics.

    Args:
        events: Usage events to analyze
        registry: Model registry used when aggregating per model

    Returns:
        CostAnalysis with summary, breakdowns and top-N lists

    Raises:
        ValidationError: If events is empty or missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")

    daily_costs = aggregate_days(events)
    summary = summarize(events, daily_costs)
    logger.debug(
        "Cost summary: %d events over %d days, total $%.2f",
        summary.total_requests, summary.days, summary.total_cost,
    )

    return CostAnalysis(
        summary=summary,
        breakdown_by_model=breakdown_by_model(events, registry),
        breakdown_by_type=breakdown_by_type(events),
        daily_costs=daily_costs,
        top_expensive_requests=top_expensive_requests(events, TOP_N),
        top_expensive_days=top_expensive_days(daily_costs, TOP_N),
    )


def summarize(
    events: Sequence[UsageEvent],
    daily_costs: Optional[List[DailyAggregate]] = None,
) -> CostSummary:
    """Compute period totals; daily average is total cost over distinct days."""
    if not events:
        raise ValidationError("Events list cannot be empty")
    if daily_costs is None:
        daily_costs = aggregate_days(events)

    total_cost = sum(e.cost for e in events)
    total_requests = len(events)
    days = len(daily_costs)
    divisor = days or 1

    return CostSummary(
        start=daily_costs[0].date if daily_costs else "",
        end=daily_costs[-1].date if daily_costs else "",
        days=days,
        total_cost=total_cost,
        daily_average=total_cost / divisor,
        total_requests=total_requests,
        requests_per_day=total_requests / divisor,
        total_tokens=sum(e.total_tokens for e in events),
    )


def breakdown_by_model(
    events: Sequence[UsageEvent],
    registry: ModelRegistry = DEFAULT_REGISTRY,
) -> List[ModelCostShare]:
    """Cost share per model, most expensive first."""
    total_cost = sum(e.cost for e in events)
    shares = [
        ModelCostShare(
            model=aggregate.model,
            total_cost=aggregate.total_cost,
            request_count=aggregate.request_count,
            percentage=aggregate.percentage_of(total_cost),
        )
        for aggregate in aggregate_models(events, registry)
    ]
    return sorted(shares, key=lambda s: s.total_cost, reverse=True)


def breakdown_by_type(events: Sequence[UsageEvent]) -> Dict[RequestKind, KindBreakdown]:
    """Cost per billing bucket.

    Errored and aborted requests are not charged, so their bucket cost is
    always zero whatever the export says. Percentages are taken against the
    billed total. Events whose kind matches no bucket are left out.
    """
    costs = {kind: 0.0 for kind in RequestKind}
    counts = {kind: 0 for kind in RequestKind}

    for event in events:
        bucket = event.bucket
        if bucket is None:
            logger.debug("Unclassified request kind %r for model %s", event.kind, event.model)
            continue
        counts[bucket] += 1
        if bucket is not RequestKind.ERRORED:
            costs[bucket] += event.cost

    billed_total = sum(costs.values())
    return {
        kind: KindBreakdown(
            cost=costs[kind],
            request_count=counts[kind],
            percentage=costs[kind] / billed_total * 100 if billed_total > 0 else 0.0,
        )
        for kind in RequestKind
    }


def top_expensive_requests(events: Sequence[UsageEvent], limit: int = TOP_N) -> List[ExpensiveRequest]:
    """Most expensive single events; ties keep input order."""
    ranked = sorted(enumerate(events, start=1), key=lambda item: item[1].cost, reverse=True)
    return [
        ExpensiveRequest(
            timestamp=event.timestamp.isoformat(),
            model=event.model,
            kind=event.kind,
            cost=event.cost,
            total_tokens=event.total_tokens,
            row_number=row_number,
        )
        for row_number, event in ranked[:limit]
    ]


def top_expensive_days(daily_costs: Sequence[DailyAggregate], limit: int = TOP_N) -> List[DailyAggregate]:
    """Most expensive days; ties keep chronological order."""
    return sorted(daily_costs, key=lambda d: d.cost, reverse=True)[:limit]
