"""
Per-model and per-day aggregates.

Immutable rollups of usage events plus the pure functions that score and
categorize them.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .errors import LogicError
from .registry import ModelCategory, ModelRegistry
from cursor_cost_explorer.ingest.models import UsageEvent

TOKENS_PER_MILLION = 1_000_000

# Category bands, in dollars per million tokens
COST_EFFICIENT_MAX_COST_PER_M = 50
SPECIALIZED_MAX_COST_PER_M = 500

# Reasoning models are scored on output tokens and get this multiplier
REASONING_SCORE_BOOST = 1.2


@dataclass(frozen=True)
class ModelAggregate:
    """Usage statistics for one model."""
    model: str
    total_cost: float
    request_count: int
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    total_cache_read: int
    is_reasoning_model: bool = False

    @property
    def cost_per_million_tokens(self) -> float:
        if self.total_tokens == 0:
            return 0.0
        return self.total_cost / self.total_tokens * TOKENS_PER_MILLION

    @property
    def cost_per_million_output_tokens(self) -> float:
        if self.total_output_tokens == 0:
            return 0.0
        return self.total_cost / self.total_output_tokens * TOKENS_PER_MILLION

    @property
    def average_cost_per_request(self) -> float:
        if self.request_count == 0:
            return 0.0
        return self.total_cost / self.request_count

    @property
    def cache_efficiency(self) -> float:
        """Share of all tokens that were cache reads, in percent."""
        if self.total_tokens == 0:
            return 0.0
        return self.total_cache_read / self.total_tokens * 100

    @property
    def scoring_cost_per_million(self) -> float:
        """Cost basis used for scoring and categorization."""
        if self.is_reasoning_model:
            return self.cost_per_million_output_tokens
        return self.cost_per_million_tokens

    def percentage_of(self, total_cost: float) -> float:
        if total_cost == 0:
            return 0.0
        return self.total_cost / total_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "total_cost": self.total_cost,
            "request_count": self.request_count,
            "total_tokens": self.total_tokens,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cache_read": self.total_cache_read,
            "cost_per_million_tokens": self.cost_per_million_tokens,
            "cost_per_million_output_tokens": self.cost_per_million_output_tokens,
            "average_cost_per_request": self.average_cost_per_request,
            "cache_efficiency": self.cache_efficiency,
            "category": categorize(self).value,
            "is_thinking_model": self.is_reasoning_model,
        }


@dataclass(frozen=True)
class DailyAggregate:
    """Usage statistics for one UTC calendar day."""
    date: str
    cost: float
    request_count: int
    total_tokens: int

    @property
    def average_cost_per_request(self) -> float:
        if self.request_count == 0:
            return 0.0
        return self.cost / self.request_count

    @property
    def average_tokens_per_request(self) -> float:
        if self.request_count == 0:
            return 0.0
        return self.total_tokens / self.request_count

    def deviation_from(self, average_cost: float) -> float:
        return self.cost - average_cost

    def deviation_percentage(self, average_cost: float) -> float:
        if average_cost == 0:
            return 0.0
        return (self.cost - average_cost) / average_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "cost": self.cost,
            "request_count": self.request_count,
            "total_tokens": self.total_tokens,
            "average_cost_per_request": self.average_cost_per_request,
            "average_tokens_per_request": self.average_tokens_per_request,
        }


def group_by_model(events: Sequence[UsageEvent]) -> Dict[str, List[UsageEvent]]:
    """Group events by model name, preserving first-seen order."""
    groups: Dict[str, List[UsageEvent]] = {}
    for event in events:
        groups.setdefault(event.model, []).append(event)
    return groups


def group_by_day(events: Sequence[UsageEvent]) -> Dict[str, List[UsageEvent]]:
    """Group events by UTC day, preserving first-seen order."""
    groups: Dict[str, List[UsageEvent]] = {}
    for event in events:
        groups.setdefault(event.day, []).append(event)
    return groups


def aggregate_model(
    model: str,
    events: Sequence[UsageEvent],
    registry: ModelRegistry,
) -> ModelAggregate:
    """Roll up events for a single model."""
    if not events:
        raise LogicError(f"Cannot aggregate model {model!r} without events")
    return ModelAggregate(
        model=model,
        total_cost=sum(e.cost for e in events),
        request_count=len(events),
        total_tokens=sum(e.total_tokens for e in events),
        total_input_tokens=sum(e.input_tokens for e in events),
        total_output_tokens=sum(e.output_tokens for e in events),
        total_cache_read=sum(e.cache_read_tokens for e in events),
        is_reasoning_model=registry.is_reasoning_model(model),
    )


def aggregate_models(
    events: Sequence[UsageEvent],
    registry: ModelRegistry,
) -> List[ModelAggregate]:
    """Roll up events per model, in first-seen order."""
    return [
        aggregate_model(model, model_events, registry)
        for model, model_events in group_by_model(events).items()
    ]


def aggregate_days(events: Sequence[UsageEvent]) -> List[DailyAggregate]:
    """Roll up events per UTC day, sorted by date ascending."""
    days = [
        DailyAggregate(
            date=day,
            cost=sum(e.cost for e in day_events),
            request_count=len(day_events),
            total_tokens=sum(e.total_tokens for e in day_events),
        )
        for day, day_events in group_by_day(events).items()
    ]
    return sorted(days, key=lambda d: d.date)


def categorize(aggregate: ModelAggregate) -> ModelCategory:
    """Place a model in a cost tier by its scoring cost basis."""
    cost_per_m = aggregate.scoring_cost_per_million
    if cost_per_m < COST_EFFICIENT_MAX_COST_PER_M:
        return ModelCategory.COST_EFFICIENT
    if cost_per_m < SPECIALIZED_MAX_COST_PER_M:
        return ModelCategory.SPECIALIZED
    return ModelCategory.PREMIUM


def efficiency_score(aggregate: ModelAggregate) -> float:
    """Score a model 0-100, higher meaning cheaper per token.

    $0/M scores 100 and $1000/M scores 0. Reasoning models are judged on
    output-token cost and boosted by 20% before clamping.
    """
    score = 100 - aggregate.scoring_cost_per_million / 10
    if aggregate.is_reasoning_model:
        score *= REASONING_SCORE_BOOST
    score = max(0.0, min(100.0, score))
    return round(score, 2)
