"""
Savings opportunities.

Collects concrete ways to spend less (switching plan, moving traffic to
cheaper models, cutting errors, caching better) and ranks them by how
much they would save each month.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .cache import TARGET_CACHE_HIT_RATE, CacheAnalysis, analyze_cache
from .cost import CostAnalysis, CostSummary, analyze_costs
from .errors import ValidationError
from .model_efficiency import ModelEfficiencyAnalysis, ModelRanking, analyze_model_efficiency
from .plan import Confidence, PlanAnalysis, optimize_plan
from .registry import DEFAULT_REGISTRY, ModelCategory, ModelRegistry
from cursor_cost_explorer.ingest.models import UsageEvent

logger = logging.getLogger(__name__)

MAX_OPPORTUNITIES = 5
MIN_ACTIONABLE_SAVINGS = 5

# Model migration assumptions
MIGRATION_SHARE = 0.30
EXPENSIVE_MODEL_MIN_COST_PER_M = 500
ALTERNATIVE_MODEL_MAX_COST_PER_M = 100
MIN_MIGRATION_SAVINGS = 5

# Error reduction assumptions, in percent of requests
ERROR_RATE_THRESHOLD = 3
TARGET_ERROR_RATE = 2

CACHE_FALLBACK_FACTOR = 0.5


class OpportunityType(Enum):
    PLAN_OPTIMIZATION = "plan_optimization"
    MODEL_MIGRATION = "model_migration"
    ERROR_REDUCTION = "error_reduction"
    CACHE_OPTIMIZATION = "cache_optimization"


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Impact(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_DIFFICULTY_WEIGHTS = {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}
_IMPACT_WEIGHTS = {Impact.HIGH: 1.5, Impact.MEDIUM: 1.0, Impact.LOW: 0.5}


@dataclass(frozen=True)
class SavingsOpportunity:
    """A single way to reduce monthly spend."""
    type: OpportunityType
    title: str
    savings_monthly: float
    savings_yearly: float
    difficulty: Difficulty
    impact: Impact
    action: str
    reasoning: str
    confidence: Confidence
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.savings_monthly < 0 or self.savings_yearly < 0:
            raise ValidationError("Opportunity savings cannot be negative")

    @property
    def roi_score(self) -> float:
        """Savings per unit of effort, scaled by impact, on a 0-100 scale."""
        base = self.savings_monthly / _DIFFICULTY_WEIGHTS[self.difficulty]
        score = base * _IMPACT_WEIGHTS[self.impact]
        return min(100.0, max(0.0, score / 2 * 100))

    @property
    def priority_score(self) -> float:
        savings_weight = min(1.0, self.savings_monthly / 50)
        return self.roi_score * 0.5 + _IMPACT_WEIGHTS[self.impact] * 20 + savings_weight * 30

    def is_actionable(self, threshold: float = MIN_ACTIONABLE_SAVINGS) -> bool:
        return self.savings_monthly >= threshold and self.confidence != Confidence.LOW

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "title": self.title,
            "savings_monthly": self.savings_monthly,
            "savings_yearly": self.savings_yearly,
            "difficulty": self.difficulty.value,
            "impact": self.impact.value,
            "action": self.action,
            "reasoning": self.reasoning,
            "confidence": self.confidence.value,
            "roi_score": self.roi_score,
            "priority_score": self.priority_score,
            "is_actionable": self.is_actionable(),
        }
        data.update(self.details)
        return data


@dataclass(frozen=True)
class SavingsAnalysis:
    opportunities: List[SavingsOpportunity]
    total_opportunities_found: int

    @property
    def total_potential_savings_monthly(self) -> float:
        return sum(o.savings_monthly for o in self.opportunities)

    @property
    def total_potential_savings_yearly(self) -> float:
        return self.total_potential_savings_monthly * 12

    def to_dict(self) -> Dict[str, Any]:
        return {
            "list": [o.to_dict() for o in self.opportunities],
            "total_potential_savings_monthly": self.total_potential_savings_monthly,
            "total_potential_savings_yearly": self.total_potential_savings_yearly,
            "total_opportunities_found": self.total_opportunities_found,
        }


def find_savings_opportunities(
    events: Sequence[UsageEvent],
    registry: ModelRegistry = DEFAULT_REGISTRY,
) -> SavingsAnalysis:
    """Identify and rank savings opportunities.

    Re-runs the cost, plan, model and cache analyzers on the events, then
    keeps the five opportunities with the largest monthly savings.

    Args:
        events: Usage events to analyze
        registry: Model registry passed to the model analyzer

    Returns:
        SavingsAnalysis with at most five opportunities, largest first

    Raises:
        ValidationError: If events is empty or missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")

    cost_analysis = analyze_costs(events, registry)
    summary = cost_analysis.summary
    plan_analysis = optimize_plan(events, summary)
    model_analysis = analyze_model_efficiency(events, registry)
    cache_analysis = analyze_cache(events, summary)

    found: List[SavingsOpportunity] = []

    plan_opportunity = plan_optimization_opportunity(plan_analysis)
    if plan_opportunity is not None:
        found.append(plan_opportunity)

    found.extend(model_migration_opportunities(model_analysis, summary))

    error_opportunity = error_reduction_opportunity(events, cost_analysis)
    if error_opportunity is not None:
        found.append(error_opportunity)

    cache_opportunity = cache_optimization_opportunity(cache_analysis, summary)
    if cache_opportunity is not None:
        found.append(cache_opportunity)

    # Stable sort keeps discovery order among equal savings
    ranked = sorted(found, key=lambda o: o.savings_monthly, reverse=True)
    logger.debug("Found %d savings opportunities, keeping %d", len(found), min(len(found), MAX_OPPORTUNITIES))

    return SavingsAnalysis(
        opportunities=ranked[:MAX_OPPORTUNITIES],
        total_opportunities_found=len(found),
    )


def plan_optimization_opportunity(plan_analysis: PlanAnalysis) -> Optional[SavingsOpportunity]:
    recommendation = plan_analysis.recommendation
    if recommendation.savings_monthly <= 0:
        return None
    if recommendation.current_plan == recommendation.recommended_plan:
        return None

    verb = "Downgrade" if recommendation.is_downgrade else "Upgrade"
    return SavingsOpportunity(
        type=OpportunityType.PLAN_OPTIMIZATION,
        title=f"{verb} to {recommendation.recommended_plan} Plan",
        savings_monthly=recommendation.savings_monthly,
        savings_yearly=recommendation.savings_yearly,
        difficulty=Difficulty.EASY,
        impact=Impact.HIGH if recommendation.savings_monthly > 50 else Impact.MEDIUM,
        action=(
            recommendation.actions[0]
            if recommendation.actions
            else f"Switch to {recommendation.recommended_plan} plan"
        ),
        reasoning=" ".join(recommendation.reasoning),
        confidence=recommendation.confidence,
        details={
            "current_plan": recommendation.current_plan,
            "recommended_plan": recommendation.recommended_plan,
        },
    )


def _migration_impact(savings: float) -> Impact:
    if savings > 30:
        return Impact.HIGH
    if savings > 10:
        return Impact.MEDIUM
    return Impact.LOW


def _cheapest_alternative(rankings: Sequence[ModelRanking]) -> Optional[ModelRanking]:
    candidates = [
        r for r in rankings
        if r.category == ModelCategory.COST_EFFICIENT
        and r.aggregate.cost_per_million_tokens < ALTERNATIVE_MODEL_MAX_COST_PER_M
    ]
    if not candidates:
        return None
    # min() keeps the first of equally cheap models, i.e. the better ranked
    return min(candidates, key=lambda r: r.aggregate.cost_per_million_tokens)


def model_migration_opportunities(
    model_analysis: ModelEfficiencyAnalysis,
    cost_summary: CostSummary,
) -> List[SavingsOpportunity]:
    """Opportunities from moving 30% of each premium model's traffic.

    The target is the cheapest cost-efficient model in use. Savings below
    $5/month are not reported.
    """
    alternative = _cheapest_alternative(model_analysis.rankings)
    if alternative is None:
        return []

    expensive = [
        r for r in model_analysis.rankings
        if r.category == ModelCategory.PREMIUM
        or r.aggregate.cost_per_million_tokens > EXPENSIVE_MODEL_MIN_COST_PER_M
    ]

    days = cost_summary.days or 30
    opportunities = []
    for ranking in expensive:
        source = ranking.aggregate
        migratable = math.floor(source.request_count * MIGRATION_SHARE)
        if migratable == 0:
            continue

        period_savings = (
            source.average_cost_per_request - alternative.aggregate.average_cost_per_request
        ) * migratable
        monthly = period_savings / days * 30
        if monthly < MIN_MIGRATION_SAVINGS:
            continue

        opportunities.append(SavingsOpportunity(
            type=OpportunityType.MODEL_MIGRATION,
            title=f"Migrate {MIGRATION_SHARE * 100:.0f}% of {source.model} → {alternative.model}",
            savings_monthly=monthly,
            savings_yearly=monthly * 12,
            difficulty=Difficulty.MEDIUM,
            impact=_migration_impact(monthly),
            action=f"Move routine {source.model} work to {alternative.model}. {alternative.recommendation}",
            reasoning=(
                f"{source.model} costs ${source.cost_per_million_tokens:.0f}/M tokens vs "
                f"{alternative.model} at ${alternative.aggregate.cost_per_million_tokens:.0f}/M tokens"
            ),
            confidence=Confidence.MEDIUM,
            details={
                "migration_percentage": MIGRATION_SHARE,
                "from_model": source.model,
                "to_model": alternative.model,
                "migratable_requests": migratable,
            },
        ))
    return opportunities


def error_reduction_opportunity(
    events: Sequence[UsageEvent],
    cost_analysis: CostAnalysis,
) -> Optional[SavingsOpportunity]:
    """Opportunity from cutting the error rate to 2%, if it is above 3%.

    Uses the raw cost recorded on errored requests, since that is the
    spend the export attributes to failed work.
    """
    errored = [e for e in events if e.is_errored]
    error_rate = len(errored) / len(events) * 100
    if error_rate <= ERROR_RATE_THRESHOLD:
        return None

    days = cost_analysis.summary.days or 30
    monthly_errored_cost = sum(e.cost for e in errored) / days * 30
    savings = max(0.0, monthly_errored_cost - monthly_errored_cost * (TARGET_ERROR_RATE / error_rate))

    return SavingsOpportunity(
        type=OpportunityType.ERROR_REDUCTION,
        title=f"Reduce error rate from {error_rate:.1f}% to {TARGET_ERROR_RATE}%",
        savings_monthly=savings,
        savings_yearly=savings * 12,
        difficulty=Difficulty.MEDIUM,
        impact=Impact.MEDIUM if error_rate > 10 else Impact.LOW,
        action="Review failed requests to identify patterns, break large prompts into smaller chunks",
        reasoning=(
            f"You're spending ${monthly_errored_cost:.2f}/month on errored requests "
            f"({error_rate:.1f}% error rate)"
        ),
        confidence=Confidence.MEDIUM,
        details={
            "current_error_rate": error_rate,
            "target_error_rate": TARGET_ERROR_RATE,
            "errored_requests": len(errored),
            "total_requests": len(events),
        },
    )


def cache_optimization_opportunity(
    cache_analysis: CacheAnalysis,
    cost_summary: CostSummary,
) -> Optional[SavingsOpportunity]:
    """Opportunity from raising the cache hit rate to 75%, if below it."""
    rate = cache_analysis.metrics.cache_hit_rate
    if rate >= TARGET_CACHE_HIT_RATE:
        return None

    feedback = cache_analysis.feedback
    savings = feedback.potential_savings.monthly if feedback.potential_savings else 0.0
    if savings == 0:
        # Half the cost-weighted gap to the target
        savings = cost_summary.monthly_cost * (TARGET_CACHE_HIT_RATE - rate) / 100 * CACHE_FALLBACK_FACTOR
    savings = max(0.0, savings)

    return SavingsOpportunity(
        type=OpportunityType.CACHE_OPTIMIZATION,
        title=f"Improve cache rate from {rate:.1f}% to {TARGET_CACHE_HIT_RATE:.0f}%+",
        savings_monthly=savings,
        savings_yearly=savings * 12,
        difficulty=Difficulty.MEDIUM,
        impact=Impact.MEDIUM if rate < 60 else Impact.LOW,
        action="; ".join(feedback.tips),
        reasoning=(
            f"Your cache rate ({rate:.1f}%) is below the recommended "
            f"{TARGET_CACHE_HIT_RATE:.0f}% threshold"
        ),
        confidence=Confidence.LOW,
        details={
            "current_cache_rate": rate,
            "target_cache_rate": TARGET_CACHE_HIT_RATE,
            "tips": list(feedback.tips),
        },
    )
