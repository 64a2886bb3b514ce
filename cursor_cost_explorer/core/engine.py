"""
Analysis engine.

Runs every analyzer over one set of usage events and assembles the nested
report that the JSON export and text renderer consume.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from .cache import analyze_cache
from .cost import analyze_costs
from .errors import ValidationError
from .model_efficiency import analyze_model_efficiency
from .patterns import analyze_patterns
from .plan import optimize_plan
from .registry import DEFAULT_REGISTRY, ModelRegistry
from .savings import find_savings_opportunities
from cursor_cost_explorer.ingest.models import RequestKind, UsageEvent

logger = logging.getLogger(__name__)

ANALYSIS_VERSION = "1.0"


def analyze(
    events: Sequence[UsageEvent],
    registry: Optional[ModelRegistry] = None,
) -> Dict[str, Any]:
    """Run the full analysis.

    The cost summary is computed once and shared by the plan, cache and
    pattern analyzers. Any analyzer failure aborts the whole call.

    Args:
        events: Usage events to analyze
        registry: Model registry to use, defaults to the built-in one

    Returns:
        Result dict with metadata, summary, cost_analysis, model_efficiency,
        plan_recommendation, cache_efficiency, opportunities and patterns

    Raises:
        ValidationError: If events is empty or missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")

    registry = registry or DEFAULT_REGISTRY
    logger.info("Analyzing %d usage events", len(events))

    cost_analysis = analyze_costs(events, registry)
    summary = cost_analysis.summary

    model_analysis = analyze_model_efficiency(events, registry)
    plan_analysis = optimize_plan(events, summary)
    cache_analysis = analyze_cache(events, summary)
    pattern_analysis = analyze_patterns(events, summary)
    savings_analysis = find_savings_opportunities(events, registry)

    by_type = cost_analysis.breakdown_by_type
    recommendation = plan_analysis.recommendation
    summary_dict = summary.to_dict()
    summary_dict["cost"]["by_type"] = {
        kind.value: by_type[kind].cost for kind in RequestKind
    }
    summary_dict["usage"]["cache_efficiency"] = cache_analysis.metrics.overall_cache_efficiency

    cost_dict = cost_analysis.to_dict()
    del cost_dict["summary"]

    return {
        "metadata": {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "total_records": len(events),
            "analysis_version": ANALYSIS_VERSION,
        },
        "summary": summary_dict,
        "cost_analysis": cost_dict,
        "model_efficiency": model_analysis.to_dict(),
        "plan_recommendation": {
            "current_plan": plan_analysis.current_plan.plan,
            "current_monthly_cost": plan_analysis.actual_monthly_cost,
            "recommended_plan": recommendation.recommended_plan,
            "recommended_cost": recommendation.recommended_cost,
            "savings_monthly": recommendation.savings_monthly,
            "savings_yearly": recommendation.savings_yearly,
            "confidence": recommendation.confidence.value,
            "reasoning": list(recommendation.reasoning),
            "actions": list(recommendation.actions),
        },
        "cache_efficiency": cache_analysis.to_dict(),
        "opportunities": savings_analysis.to_dict(),
        "patterns": pattern_analysis.to_dict(),
    }


def export_json(result: Dict[str, Any], pretty: bool = False) -> str:
    """Serialize an analysis result, indented by two spaces when pretty."""
    return json.dumps(result, indent=2 if pretty else None, ensure_ascii=False)
