"""
Cache efficiency analyzer.

Measures how much prompt input was served from cache, benchmarks the hit
rate, and estimates what caching saved and what better caching could save.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .cost import CostSummary
from .errors import ValidationError
from cursor_cost_explorer.ingest.models import UsageEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheBenchmark:
    """Upper bound (exclusive) of a hit-rate band."""
    threshold: float
    label: str
    description: str


POOR = CacheBenchmark(60, "Poor", "significant waste")
AVERAGE = CacheBenchmark(75, "Average", "room for improvement")
GOOD = CacheBenchmark(85, "Good", "effective usage")
EXCELLENT = CacheBenchmark(92, "Excellent", "top 10%")
OUTSTANDING = CacheBenchmark(100, "Outstanding", "top 1%")

CACHE_BENCHMARKS = (POOR, AVERAGE, GOOD, EXCELLENT, OUTSTANDING)

# Hit rate users should aim for
TARGET_CACHE_HIT_RATE = 75.0

# Share of the gap to the target assumed closable, per band
POOR_IMPROVEMENT = 0.25
AVERAGE_IMPROVEMENT = 0.15

POOR_TIPS = [
    "Work in longer continuous sessions (not short bursts)",
    "Keep related files open together",
    "Use @Files references instead of copying code into prompts",
    "Avoid frequently switching between unrelated projects",
    "Use Cursor's workspace context features",
]
AVERAGE_TIPS = [
    "Work in longer continuous sessions",
    "Keep related files open together",
    "Use @Files references instead of copying code",
]
GOOD_TIPS = [
    "Continue working in focused sessions",
    "Keep related files open together",
]
TOP_TIPS = [
    "You're leveraging Cursor's cache effectively",
    "Keep up the good work!",
]


@dataclass(frozen=True)
class CacheMetrics:
    total_cache_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    total_tokens: int

    @property
    def cache_hit_rate(self) -> float:
        """Share of cache + fresh input served from cache, in percent."""
        denominator = self.total_cache_tokens + self.total_input_tokens
        return self.total_cache_tokens / denominator * 100 if denominator > 0 else 0.0

    @property
    def overall_cache_efficiency(self) -> float:
        """Cache reads relative to all tokens processed, in percent."""
        return self.total_cache_tokens / self.total_tokens * 100 if self.total_tokens > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cache_tokens": self.total_cache_tokens,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_tokens,
            "cache_hit_rate": self.cache_hit_rate,
            "overall_cache_efficiency": self.overall_cache_efficiency,
        }


@dataclass(frozen=True)
class CacheSavings:
    estimated_cost_without_cache: float
    actual_cost_with_cache: float
    savings_monthly: float
    savings_yearly: float
    cache_tokens_processed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "estimated_cost_without_cache": self.estimated_cost_without_cache,
            "actual_cost_with_cache": self.actual_cost_with_cache,
            "savings_monthly": self.savings_monthly,
            "savings_yearly": self.savings_yearly,
            "cache_tokens_processed": self.cache_tokens_processed,
        }


@dataclass(frozen=True)
class BenchmarkResult:
    level: str
    description: str
    cache_hit_rate: float
    threshold_met: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "description": self.description,
            "cache_hit_rate": self.cache_hit_rate,
            "threshold_met": self.threshold_met,
        }


@dataclass(frozen=True)
class PotentialSavings:
    monthly: float
    yearly: float
    improvement_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthly": self.monthly,
            "yearly": self.yearly,
            "improvement_percentage": self.improvement_percentage,
        }


@dataclass(frozen=True)
class CacheFeedback:
    summary: str
    tips: List[str] = field(default_factory=list)
    potential_savings: Optional[PotentialSavings] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "tips": list(self.tips),
            "potential_savings": self.potential_savings.to_dict() if self.potential_savings else None,
        }


@dataclass(frozen=True)
class CacheAnalysis:
    metrics: CacheMetrics
    benchmark: BenchmarkResult
    savings: CacheSavings
    feedback: CacheFeedback

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "benchmark": self.benchmark.to_dict(),
            "savings": self.savings.to_dict(),
            "feedback": self.feedback.to_dict(),
        }


def analyze_cache(
    events: Sequence[UsageEvent],
    cost_summary: Optional[CostSummary] = None,
) -> CacheAnalysis:
    """Analyze cache efficiency for the events.

    Args:
        events: Usage events to analyze
        cost_summary: Summary from the cost analyzer, used to scale the
            projected savings to a monthly figure

    Returns:
        CacheAnalysis with metrics, benchmark, savings and feedback

    Raises:
        ValidationError: If events is empty or missing
    """
    if not events:
        raise ValidationError("Events list cannot be empty")

    metrics = calculate_metrics(events)
    savings = calculate_savings(events, metrics)
    benchmark = benchmark_hit_rate(metrics.cache_hit_rate)
    feedback = generate_feedback(metrics, benchmark, cost_summary)
    logger.debug("Cache hit rate %.1f%% (%s)", metrics.cache_hit_rate, benchmark.level)

    return CacheAnalysis(metrics=metrics, benchmark=benchmark, savings=savings, feedback=feedback)


def calculate_metrics(events: Sequence[UsageEvent]) -> CacheMetrics:
    return CacheMetrics(
        total_cache_tokens=sum(e.cache_read_tokens for e in events),
        total_input_tokens=sum(e.input_tokens for e in events),
        total_output_tokens=sum(e.output_tokens for e in events),
        total_tokens=sum(e.total_tokens for e in events),
    )


def calculate_savings(events: Sequence[UsageEvent], metrics: CacheMetrics) -> CacheSavings:
    """Estimate what cached tokens would have cost as fresh input.

    Each event's cost is split by its input-token share to get an average
    cost per input token; cached tokens are priced at that rate and taken
    to cost nothing when served from cache.
    """
    input_cost = 0.0
    input_tokens = 0
    for event in events:
        if event.input_tokens > 0:
            input_ratio = event.input_tokens / (event.total_tokens or 1)
            input_cost += event.cost * input_ratio
            input_tokens += event.input_tokens

    cost_per_input_token = input_cost / input_tokens if input_tokens > 0 else 0.0
    cost_without_cache = metrics.total_cache_tokens * cost_per_input_token

    return CacheSavings(
        estimated_cost_without_cache=cost_without_cache,
        actual_cost_with_cache=0.0,
        savings_monthly=cost_without_cache,
        savings_yearly=cost_without_cache * 12,
        cache_tokens_processed=metrics.total_cache_tokens,
    )


def benchmark_hit_rate(cache_hit_rate: float) -> BenchmarkResult:
    """Place a hit rate in its benchmark band."""
    band = OUTSTANDING
    for candidate in CACHE_BENCHMARKS[:-1]:
        if cache_hit_rate < candidate.threshold:
            band = candidate
            break

    return BenchmarkResult(
        level=band.label,
        description=band.description,
        cache_hit_rate=cache_hit_rate,
        threshold_met=cache_hit_rate >= GOOD.threshold,
    )


def project_improvement(
    cache_hit_rate: float,
    monthly_cost: float,
    improvement: float,
) -> PotentialSavings:
    """Savings from closing ``improvement`` of the gap to the target hit rate."""
    gain = max(0.0, TARGET_CACHE_HIT_RATE - cache_hit_rate) * improvement
    monthly = max(0.0, monthly_cost * gain / 100)
    return PotentialSavings(monthly=monthly, yearly=monthly * 12, improvement_percentage=gain)


def generate_feedback(
    metrics: CacheMetrics,
    benchmark: BenchmarkResult,
    cost_summary: Optional[CostSummary],
) -> CacheFeedback:
    rate = metrics.cache_hit_rate
    monthly_cost = cost_summary.monthly_cost if cost_summary is not None else 0.0

    if benchmark.level == POOR.label:
        return CacheFeedback(
            summary=f"Your cache rate ({rate:.1f}%) is below average",
            tips=list(POOR_TIPS),
            potential_savings=project_improvement(rate, monthly_cost, POOR_IMPROVEMENT),
        )
    if benchmark.level == AVERAGE.label:
        return CacheFeedback(
            summary=f"Your cache rate ({rate:.1f}%) is average - there's room for improvement",
            tips=list(AVERAGE_TIPS),
            potential_savings=project_improvement(rate, monthly_cost, AVERAGE_IMPROVEMENT),
        )
    if benchmark.level == GOOD.label:
        return CacheFeedback(summary=f"Your cache rate ({rate:.1f}%) is good", tips=list(GOOD_TIPS))
    return CacheFeedback(
        summary=f"Your cache rate ({rate:.1f}%) is {benchmark.level.lower()}",
        tips=list(TOP_TIPS),
    )
