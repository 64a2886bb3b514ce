"""
Plan tier inference and recommendation.

Infers which Cursor plan the user is probably on from their spend and
request volume, then recommends the tier that fits their usage.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .cost import CostSummary
from .errors import ValidationError
from cursor_cost_explorer.ingest.models import UsageEvent

logger = logging.getLogger(__name__)


class Confidence(Enum):
    """How sure a heuristic is about its conclusion."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PlanTier:
    """A fixed-price Cursor plan."""
    name: str
    monthly_cost: float
    request_limit: int  # fast requests per 30 days
    description: str


FREE = PlanTier("Free", 0, 50, "Free tier with limited requests")
PRO = PlanTier("Pro", 20, 500, "Pro tier with 500 fast requests/month")
ULTRA = PlanTier("Ultra", 200, 10000, "Ultra tier with ~10,000 fast requests/month")

PLAN_TIERS: Dict[str, PlanTier] = {tier.name: tier for tier in (FREE, PRO, ULTRA)}
_TIER_ORDER = {FREE.name: 1, PRO.name: 2, ULTRA.name: 3}

# Monthly spend bands (USD) driving inference and the recommendation tree
ULTRA_SPEND_THRESHOLD = 220
ULTRA_CONSIDER_THRESHOLD = 180
PRO_SPEND_THRESHOLD = 15
LOW_SPEND_THRESHOLD = 5

# Share of savings reported, to under-promise
SAVINGS_DISCOUNT = 0.9
MIN_ACTIONABLE_SAVINGS = 5


@dataclass(frozen=True)
class CurrentPlan:
    """The plan the user is inferred to be on."""
    plan: str
    confidence: Confidence
    monthly_cost: float
    monthly_requests: float
    included_requests_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan,
            "confidence": self.confidence.value,
            "monthly_cost": self.monthly_cost,
            "monthly_requests": self.monthly_requests,
            "included_requests_percentage": self.included_requests_percentage,
        }


@dataclass(frozen=True)
class RequestAnalysis:
    """Request volume projected to a 30-day month."""
    total_requests: int
    monthly_requests: float
    included_requests: int
    on_demand_requests: int
    errored_requests: int
    exceeds_pro_limit: bool
    exceeds_ultra_limit: bool
    requests_per_day: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "monthly_requests": self.monthly_requests,
            "included_requests": self.included_requests,
            "on_demand_requests": self.on_demand_requests,
            "errored_requests": self.errored_requests,
            "exceeds_pro_limit": self.exceeds_pro_limit,
            "exceeds_ultra_limit": self.exceeds_ultra_limit,
            "requests_per_day": self.requests_per_day,
        }


@dataclass(frozen=True)
class PlanRecommendation:
    """Recommended plan with conservative savings figures."""
    current_plan: str
    recommended_plan: str
    recommended_cost: float
    actual_monthly_cost: float
    savings_monthly: float
    savings_yearly: float
    confidence: Confidence
    reasoning: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    monthly_requests: float = 0.0
    exceeds_pro_limit: bool = False

    def __post_init__(self):
        if self.savings_monthly < 0 or self.savings_yearly < 0:
            raise ValidationError("Plan savings cannot be negative")

    @property
    def savings_percentage(self) -> float:
        if self.actual_monthly_cost == 0:
            return 0.0
        return self.savings_monthly / self.actual_monthly_cost * 100

    @property
    def is_optimal(self) -> bool:
        return self.current_plan == self.recommended_plan

    @property
    def is_upgrade(self) -> bool:
        return _TIER_ORDER.get(self.recommended_plan, 0) > _TIER_ORDER.get(self.current_plan, 0)

    @property
    def is_downgrade(self) -> bool:
        return _TIER_ORDER.get(self.recommended_plan, 0) < _TIER_ORDER.get(self.current_plan, 0)

    def should_act(self, threshold: float = MIN_ACTIONABLE_SAVINGS) -> bool:
        """Worth switching: a different plan, real savings and high confidence."""
        return (
            not self.is_optimal
            and self.savings_monthly >= threshold
            and self.confidence == Confidence.HIGH
        )

    @property
    def summary(self) -> str:
        if self.is_optimal:
            return f"Your current plan ({self.current_plan}) is optimal for your usage."
        if self.savings_monthly > 0:
            savings_text = f"Save ${self.savings_monthly:.2f}/month"
        else:
            savings_text = "No significant savings"
        return f"Consider {self.recommended_plan} plan. {savings_text}."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_plan": self.current_plan,
            "recommended_plan": self.recommended_plan,
            "recommended_cost": self.recommended_cost,
            "actual_monthly_cost": self.actual_monthly_cost,
            "savings_monthly": self.savings_monthly,
            "savings_yearly": self.savings_yearly,
            "savings_percentage": self.savings_percentage,
            "confidence": self.confidence.value,
            "reasoning": list(self.reasoning),
            "actions": list(self.actions),
            "is_optimal": self.is_optimal,
            "should_act": self.should_act(),
            "is_upgrade": self.is_upgrade,
            "is_downgrade": self.is_downgrade,
            "monthly_requests": self.monthly_requests,
            "exceeds_pro_limit": self.exceeds_pro_limit,
        }


@dataclass(frozen=True)
class PlanAnalysis:
    """Complete plan optimization result."""
    current_plan: CurrentPlan
    actual_monthly_cost: float
    request_analysis: RequestAnalysis
    recommendation: PlanRecommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_plan": self.current_plan.to_dict(),
            "actual_monthly_cost": self.actual_monthly_cost,
            "request_analysis": self.request_analysis.to_dict(),
            "recommendation": self.recommendation.to_dict(),
        }


def optimize_plan(
    events: Sequence[UsageEvent],
    cost_summary: Optional[CostSummary],
) -> PlanAnalysis:
    """Infer the current plan and recommend one.

    Args:
        events: Usage events to analyze
        cost_summary: Summary from the cost analyzer (days and total cost)

    Returns:
        PlanAnalysis with the inferred plan, request volume and recommendation

    Raises:
        ValidationError: If events is empty or the cost summary is missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")
    if cost_summary is None:
        raise ValidationError("Cost summary is required")

    monthly_cost = cost_summary.monthly_cost
    request_analysis = analyze_request_volume(events, cost_summary)
    current_plan = detect_current_plan(events, cost_summary, monthly_cost)
    recommendation = recommend_plan(current_plan, monthly_cost, request_analysis)
    logger.debug(
        "Plan: monthly cost $%.2f, inferred %s, recommended %s",
        monthly_cost, current_plan.plan, recommendation.recommended_plan,
    )

    return PlanAnalysis(
        current_plan=current_plan,
        actual_monthly_cost=monthly_cost,
        request_analysis=request_analysis,
        recommendation=recommendation,
    )


def _monthly_requests(events: Sequence[UsageEvent], cost_summary: CostSummary) -> float:
    return len(events) / (cost_summary.days or 1) * 30


def detect_current_plan(
    events: Sequence[UsageEvent],
    cost_summary: CostSummary,
    monthly_cost: float,
) -> CurrentPlan:
    """Guess the user's plan from spend and request mix.

    Over $220/month is almost certainly Ultra. Between $15 and $220 it is
    Pro when mostly included requests at Pro volume, Ultra at very high
    volume, Pro otherwise. Below $15 it is Free.
    """
    monthly_requests = _monthly_requests(events, cost_summary)
    included = sum(1 for e in events if e.is_included)
    included_percentage = included / len(events) * 100

    if monthly_cost > ULTRA_SPEND_THRESHOLD:
        plan, confidence = ULTRA.name, Confidence.HIGH
    elif monthly_cost > PRO_SPEND_THRESHOLD:
        if included_percentage > 70 and monthly_requests > 400:
            plan, confidence = PRO.name, Confidence.HIGH
        elif monthly_requests > 1000:
            plan, confidence = ULTRA.name, Confidence.MEDIUM
        else:
            plan, confidence = PRO.name, Confidence.MEDIUM
    else:
        plan = FREE.name
        confidence = Confidence.HIGH if monthly_cost < LOW_SPEND_THRESHOLD else Confidence.MEDIUM

    return CurrentPlan(
        plan=plan,
        confidence=confidence,
        monthly_cost=monthly_cost,
        monthly_requests=monthly_requests,
        included_requests_percentage=included_percentage,
    )


def analyze_request_volume(events: Sequence[UsageEvent], cost_summary: CostSummary) -> RequestAnalysis:
    monthly_requests = _monthly_requests(events, cost_summary)
    return RequestAnalysis(
        total_requests=len(events),
        monthly_requests=monthly_requests,
        included_requests=sum(1 for e in events if e.is_included),
        on_demand_requests=sum(1 for e in events if e.is_on_demand),
        errored_requests=sum(1 for e in events if e.is_errored),
        exceeds_pro_limit=monthly_requests > PRO.request_limit,
        exceeds_ultra_limit=monthly_requests > ULTRA.request_limit,
        requests_per_day=len(events) / (cost_summary.days or 1),
    )


def conservative_savings(raw_savings: float) -> float:
    """Discount raw savings by 10%, never going below zero."""
    return max(0.0, raw_savings * SAVINGS_DISCOUNT)


def recommend_plan(
    current_plan: CurrentPlan,
    monthly_cost: float,
    request_analysis: RequestAnalysis,
) -> PlanRecommendation:
    """Walk the spend-band decision tree.

    Args:
        current_plan: Inferred current plan
        monthly_cost: Spend projected to a 30-day month
        request_analysis: Projected request volume

    Returns:
        PlanRecommendation with savings discounted by 10%
    """
    reasoning: List[str] = []
    actions: List[str] = []
    monthly_requests = request_analysis.monthly_requests

    if monthly_cost > ULTRA_SPEND_THRESHOLD:
        recommended = ULTRA
        raw_savings = monthly_cost - ULTRA.monthly_cost
        reasoning.append(
            f"You're spending ${monthly_cost:.2f}/month, which exceeds Ultra's fixed cost "
            f"of ${ULTRA.monthly_cost:.0f}/month"
        )
        reasoning.append(f"Upgrading to Ultra would save ${raw_savings:.2f}/month")
        if request_analysis.exceeds_pro_limit:
            reasoning.append(f"You consistently exceed Pro's {PRO.request_limit} request limit")
        actions.append("Visit cursor.sh/settings → Billing → Upgrade to Ultra")
        confidence = Confidence.HIGH
    elif monthly_cost >= ULTRA_CONSIDER_THRESHOLD:
        recommended = ULTRA
        raw_savings = monthly_cost - ULTRA.monthly_cost
        reasoning.append(f"You're spending ${monthly_cost:.2f}/month, close to Ultra's fixed cost")
        reasoning.append("Ultra provides unlimited requests and priority access for a predictable cost")
        if request_analysis.exceeds_pro_limit:
            reasoning.append(f"You're exceeding Pro's {PRO.request_limit} request limit")
        actions.append("Consider upgrading to Ultra for better experience and predictable costs")
        confidence = Confidence.MEDIUM
    elif monthly_cost >= PRO_SPEND_THRESHOLD:
        recommended = PRO
        raw_savings = 0.0
        reasoning.append(f"You're spending ${monthly_cost:.2f}/month, which is optimal for Pro tier")
        if request_analysis.exceeds_pro_limit:
            reasoning.append(
                f"You're exceeding Pro's {PRO.request_limit} request limit - consider Ultra if this continues"
            )
        else:
            reasoning.append(f"Your usage ({monthly_requests:.0f} requests/month) fits within Pro's limits")
        actions.append("Stay on Pro - your current usage is well-suited for this tier")
        confidence = Confidence.HIGH
    else:
        recommended = FREE
        raw_savings = monthly_cost
        reasoning.append(f"You're spending ${monthly_cost:.2f}/month, which is low")
        reasoning.append(
            f"Consider downgrading to Free tier if you can work within the {FREE.request_limit} request limit"
        )
        if monthly_requests > FREE.request_limit:
            reasoning.append(
                f"However, your usage ({monthly_requests:.0f} requests/month) exceeds Free tier limits"
            )
            reasoning.append("Pro tier is recommended to avoid request limits")
            recommended = PRO
            raw_savings = 0.0
        actions.append("Evaluate if Free tier meets your needs, or stay on Pro for flexibility")
        confidence = Confidence.HIGH if monthly_cost < LOW_SPEND_THRESHOLD else Confidence.MEDIUM

    savings = conservative_savings(raw_savings)
    return PlanRecommendation(
        current_plan=current_plan.plan,
        recommended_plan=recommended.name,
        recommended_cost=recommended.monthly_cost,
        actual_monthly_cost=monthly_cost,
        savings_monthly=savings,
        savings_yearly=savings * 12,
        confidence=confidence,
        reasoning=reasoning,
        actions=actions,
        monthly_requests=monthly_requests,
        exceeds_pro_limit=request_analysis.exceeds_pro_limit,
    )
