"""
Model efficiency scoring and ranking.

Scores each model by what it costs per million tokens and ranks them from
most to least cost-efficient.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .aggregates import ModelAggregate, aggregate_models, categorize, efficiency_score
from .errors import ValidationError
from .registry import DEFAULT_REGISTRY, ModelCategory, ModelRegistry, model_recommendation
from cursor_cost_explorer.ingest.models import UsageEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelRanking:
    """A scored model and its position in the ranking."""
    rank: int
    aggregate: ModelAggregate
    efficiency_score: float
    category: ModelCategory
    recommendation: str

    @property
    def model(self) -> str:
        return self.aggregate.model

    def to_dict(self) -> Dict[str, Any]:
        aggregate = self.aggregate
        return {
            "rank": self.rank,
            "model": aggregate.model,
            "efficiency_score": self.efficiency_score,
            "cost_per_million_tokens": aggregate.cost_per_million_tokens,
            "cost_per_million_output_tokens": aggregate.cost_per_million_output_tokens,
            "average_cost_per_request": aggregate.average_cost_per_request,
            "category": self.category.value,
            "is_thinking_model": aggregate.is_reasoning_model,
            "recommendation": self.recommendation,
            "total_cost": aggregate.total_cost,
            "request_count": aggregate.request_count,
            "total_tokens": aggregate.total_tokens,
            "cache_efficiency": aggregate.cache_efficiency,
        }


@dataclass(frozen=True)
class ModelEfficiencyAnalysis:
    rankings: List[ModelRanking]

    def to_dict(self) -> Dict[str, Any]:
        return {"rankings": [r.to_dict() for r in self.rankings]}


def analyze_model_efficiency(
    events: Sequence[UsageEvent],
    registry: ModelRegistry = DEFAULT_REGISTRY,
) -> ModelEfficiencyAnalysis:
    """Score and rank every model seen in the events.

    Args:
        events: Usage events to analyze
        registry: Model registry for reasoning flags and recommendations

    Returns:
        ModelEfficiencyAnalysis with rankings, highest score first

    Raises:
        ValidationError: If events is empty or missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")

    scored = []
    for aggregate in aggregate_models(events, registry):
        category = categorize(aggregate)
        scored.append((
            aggregate,
            efficiency_score(aggregate),
            category,
            model_recommendation(registry, aggregate.model, category),
        ))

    # Stable sort: equal scores keep first-seen order
    scored.sort(key=lambda item: item[1], reverse=True)
    logger.debug("Ranked %d models by efficiency", len(scored))

    return ModelEfficiencyAnalysis(rankings=[
        ModelRanking(
            rank=index,
            aggregate=aggregate,
            efficiency_score=score,
            category=category,
            recommendation=recommendation,
        )
        for index, (aggregate, score, category, recommendation) in enumerate(scored, start=1)
    ])
