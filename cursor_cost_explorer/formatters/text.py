"""
Plain-text report rendering.

Renders an analysis result dict as a terminal report made of rich tables,
with optional ASCII bar charts.
"""

import io
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.table import Table

from cursor_cost_explorer.core.errors import ValidationError

REPORT_WIDTH = 80
BAR_WIDTH = 50
MAX_GRAPH_MODELS = 8
MAX_TREND_DAYS = 30


def _format_currency(amount: Optional[float]) -> str:
    return f"${amount or 0:,.2f}"


def _format_percentage(value: Optional[float]) -> str:
    return f"{value or 0:.1f}%"


def _format_number(value: Optional[float], decimals: int = 0) -> str:
    return f"{value or 0:,.{decimals}f}"


def _format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def _format_date(iso_value: Optional[str]) -> str:
    if not iso_value:
        return "Unknown"
    try:
        return datetime.fromisoformat(iso_value).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    except ValueError:
        return iso_value


def _heading(title: str, char: str = "-") -> List[str]:
    return [char * REPORT_WIDTH, title, char * REPORT_WIDTH, ""]


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Table:
    table = Table(box=box.ASCII, show_edge=True)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    return table


def bar_chart(items: Sequence[Tuple[str, float, float]], width: int = BAR_WIDTH) -> List[str]:
    """Horizontal bars scaled to the largest value.

    Args:
        items: (label, value, percentage) triples
        width: Length of the longest bar

    Returns:
        One line per item
    """
    if not items:
        return []
    label_width = max(len(label) for label, _, _ in items)
    largest = max(value for _, value, _ in items)
    lines = []
    for label, value, percentage in items:
        length = round(value / largest * width) if largest > 0 else 0
        lines.append(
            f"  {label.ljust(label_width)} |{'#' * length}{' ' * (width - length)}| "
            f"{_format_currency(value)} ({_format_percentage(percentage)})"
        )
    return lines


class _Report:
    """Accumulates lines and tables in order."""

    def __init__(self):
        self._buffer = io.StringIO()
        self._console = Console(
            file=self._buffer,
            width=REPORT_WIDTH,
            color_system=None,
            markup=False,
            highlight=False,
            emoji=False,
        )

    def line(self, text: str = "") -> None:
        self._console.print(text, soft_wrap=True)

    def lines(self, texts: Sequence[str]) -> None:
        for text in texts:
            self.line(text)

    def table(self, table: Table) -> None:
        self._console.print(table)
        self.line()

    def text(self) -> str:
        return self._buffer.getvalue().rstrip() + "\n"


def render_text(result: Dict[str, Any], show_graphs: bool = False) -> str:
    """Render an analysis result as a plain-text report.

    Args:
        result: Dict returned by ``analyze``
        show_graphs: Include ASCII charts for cost share, daily trend and
            hourly activity

    Returns:
        The report text

    Raises:
        ValidationError: If result is empty
    """
    if not result:
        raise ValidationError("Analysis result cannot be empty")

    report = _Report()
    _render_metadata(report, result.get("metadata") or {})
    _render_summary(report, result.get("summary") or {})
    _render_cost_analysis(report, result.get("cost_analysis") or {}, show_graphs)
    _render_model_efficiency(report, result.get("model_efficiency") or {})
    _render_plan(report, result.get("plan_recommendation") or {})
    _render_cache(report, result.get("cache_efficiency") or {})
    _render_opportunities(report, result.get("opportunities") or {})
    _render_patterns(report, result.get("patterns") or {}, show_graphs)
    return report.text()


def _render_metadata(report: _Report, metadata: Dict[str, Any]) -> None:
    report.lines(_heading("CURSOR COST EXPLORER - ANALYSIS REPORT", "="))
    report.line(f"Generated: {_format_date(metadata.get('generated_at'))}")
    report.line(f"Total Records: {metadata.get('total_records', 0)}")
    report.line(f"Analysis Version: {metadata.get('analysis_version', '1.0')}")
    report.line()


def _render_summary(report: _Report, summary: Dict[str, Any]) -> None:
    report.lines(_heading("SUMMARY"))
    period = summary.get("period")
    if period:
        report.line(f"Period: {period['start']} to {period['end']} ({period['days']} days)")
        report.line()

    cost = summary.get("cost") or {}
    by_type = cost.get("by_type") or {}
    report.table(_table(["Metric", "Value"], [
        ["Total Cost", _format_currency(cost.get("total"))],
        ["Daily Average", _format_currency(cost.get("daily_average"))],
        ["Included Cost", _format_currency(by_type.get("included"))],
        ["On-Demand Cost", _format_currency(by_type.get("on_demand"))],
    ]))

    usage = summary.get("usage") or {}
    report.table(_table(["Metric", "Value"], [
        ["Total Requests", _format_number(usage.get("total_requests"))],
        ["Requests per Day", _format_number(usage.get("requests_per_day"), 2)],
        ["Total Tokens", _format_number(usage.get("total_tokens"))],
        ["Cache Efficiency", _format_percentage(usage.get("cache_efficiency"))],
    ]))


def _render_cost_analysis(report: _Report, cost_analysis: Dict[str, Any], show_graphs: bool) -> None:
    report.lines(_heading("COST ANALYSIS"))

    models = cost_analysis.get("breakdown_by_model") or []
    if models:
        report.line("Cost Breakdown by Model:")
        report.table(_table(["Model", "Cost", "Requests", "Percentage"], [
            [
                m["model"],
                _format_currency(m["total_cost"]),
                _format_number(m["request_count"]),
                _format_percentage(m["percentage"]),
            ]
            for m in models
        ]))
        if show_graphs:
            report.line("Cost Distribution (Top Models):")
            report.lines(bar_chart([
                (m["model"][:20], m["total_cost"], m["percentage"])
                for m in models[:MAX_GRAPH_MODELS]
            ]))
            report.line()

    by_type = cost_analysis.get("breakdown_by_type") or {}
    if by_type:
        rows = []
        for key, label in (("included", "Included"), ("on_demand", "On-Demand")):
            data = by_type.get(key)
            if data:
                count = data["request_count"]
                rows.append([
                    label,
                    _format_currency(data["cost"]),
                    _format_number(count),
                    _format_currency(data["cost"] / count if count else 0),
                ])
        errored = by_type.get("errored")
        if errored and errored["request_count"] > 0:
            rows.append([
                "Errored (Not Charged)", "$0.00", _format_number(errored["request_count"]), "$0.00",
            ])
        report.line("Cost Breakdown by Type:")
        report.table(_table(["Type", "Cost", "Requests", "Avg Cost/Request"], rows))

    most_expensive = cost_analysis.get("most_expensive_model")
    if most_expensive:
        report.line(f"Most Expensive Model: {most_expensive['model']}")
        report.line(f"  Total Cost: {_format_currency(most_expensive['total_cost'])}")
        report.line()

    days = cost_analysis.get("top_expensive_days") or []
    if days:
        report.line(f"Top {len(days)} Most Expensive Days:")
        report.table(_table(["Date", "Cost", "Requests"], [
            [d["date"], _format_currency(d["cost"]), _format_number(d["request_count"])]
            for d in days
        ]))

    daily = (cost_analysis.get("daily_costs") or [])[:MAX_TREND_DAYS]
    if show_graphs and len(daily) > 1:
        total = sum(d["cost"] for d in daily)
        report.line("Daily Cost Trend:")
        report.lines(bar_chart([
            (d["date"], d["cost"], d["cost"] / total * 100 if total > 0 else 0)
            for d in daily
        ], width=40))
        report.line()


def _render_model_efficiency(report: _Report, model_efficiency: Dict[str, Any]) -> None:
    rankings = model_efficiency.get("rankings") or []
    if not rankings:
        return

    report.lines(_heading("MODEL EFFICIENCY RANKINGS"))
    report.lines([
        "Ranked by efficiency score (higher is better):",
        "  - Base score: 100 - (cost_per_million_tokens / 10), clamped to 0-100",
        "  - Thinking models are scored on output tokens and get a 20% boost",
        "",
    ])
    report.table(_table(["Rank", "Model", "Efficiency", "Cost/M Tokens", "Cost/M Output"], [
        [
            str(r["rank"]),
            r["model"],
            _format_number(r["efficiency_score"], 2),
            _format_currency(r["cost_per_million_tokens"]),
            _format_currency(r["cost_per_million_output_tokens"]),
        ]
        for r in rankings
    ]))

    report.line("Recommendations:")
    for r in rankings:
        if r.get("recommendation"):
            report.line(f"  {r['model']}: {r['recommendation']}")
    report.line()


def _render_plan(report: _Report, plan: Dict[str, Any]) -> None:
    if not plan:
        return

    report.lines(_heading("PLAN RECOMMENDATION"))
    report.table(_table(["Metric", "Value"], [
        ["Current Plan (Estimated)", plan.get("current_plan", "Unknown")],
        ["Current Monthly Cost", _format_currency(plan.get("current_monthly_cost"))],
        ["Recommended Plan", plan.get("recommended_plan", "Unknown")],
        ["Recommended Monthly Cost", _format_currency(plan.get("recommended_cost"))],
        ["Monthly Savings", _format_currency(plan.get("savings_monthly"))],
        ["Yearly Savings", _format_currency(plan.get("savings_yearly"))],
        ["Confidence", plan.get("confidence", "low")],
    ]))

    reasoning = plan.get("reasoning") or []
    if reasoning:
        report.line("Reasoning:")
        for reason in reasoning:
            report.line(f"  {reason}")
        report.line()

    actions = plan.get("actions") or []
    if actions:
        report.line("Recommended Actions:")
        for index, action in enumerate(actions, start=1):
            report.line(f"  {index}. {action}")
        report.line()


def _render_cache(report: _Report, cache: Dict[str, Any]) -> None:
    if not cache:
        return

    report.lines(_heading("CACHE EFFICIENCY"))
    metrics = cache.get("metrics") or {}
    benchmark = cache.get("benchmark") or {}
    savings = cache.get("savings") or {}
    report.table(_table(["Metric", "Value"], [
        ["Cache Hit Rate", _format_percentage(metrics.get("cache_hit_rate"))],
        ["Overall Cache Efficiency", _format_percentage(metrics.get("overall_cache_efficiency"))],
        ["Cache Tokens", _format_number(metrics.get("total_cache_tokens"))],
        ["Benchmark", f"{benchmark.get('level', 'Unknown')} ({benchmark.get('description', '')})"],
        ["Estimated Savings from Cache", _format_currency(savings.get("savings_monthly"))],
    ]))

    feedback = cache.get("feedback") or {}
    if feedback.get("summary"):
        report.line(feedback["summary"])
    for tip in feedback.get("tips") or []:
        report.line(f"  - {tip}")
    potential = feedback.get("potential_savings")
    if potential and potential.get("monthly", 0) > 0:
        report.line(
            f"Potential savings: {_format_currency(potential['monthly'])}/month "
            f"({_format_currency(potential['yearly'])}/year)"
        )
    report.line()


def _render_opportunities(report: _Report, opportunities: Dict[str, Any]) -> None:
    report.lines(_heading("SAVINGS OPPORTUNITIES"))
    items = opportunities.get("list") or []
    if not items:
        report.line("No significant savings opportunities found.")
        report.line()
        return

    report.table(_table(["#", "Opportunity", "Monthly", "Difficulty", "Impact"], [
        [
            str(index),
            item["title"],
            _format_currency(item["savings_monthly"]),
            item["difficulty"],
            item["impact"],
        ]
        for index, item in enumerate(items, start=1)
    ]))
    for index, item in enumerate(items, start=1):
        report.line(f"{index}. {item['title']}")
        report.line(f"   Action: {item['action']}")
        report.line(f"   Why: {item['reasoning']}")
    report.line()
    report.line(
        f"Total potential savings: "
        f"{_format_currency(opportunities.get('total_potential_savings_monthly'))}/month "
        f"({_format_currency(opportunities.get('total_potential_savings_yearly'))}/year)"
    )
    report.line()


def _render_patterns(report: _Report, patterns: Dict[str, Any], show_graphs: bool) -> None:
    if not patterns:
        return

    report.lines(_heading("USAGE PATTERNS"))
    work_style = patterns.get("work_style") or {}
    if work_style:
        report.line(f"Work Style: {work_style.get('description', '')}")
        report.line(f"Usage Consistency: {work_style.get('usage_consistency', 'unknown')}")
        for characteristic in work_style.get("characteristics") or []:
            report.line(f"  - {characteristic}")
        report.line()

    peaks = patterns.get("peak_hours") or []
    if peaks:
        report.line("Peak Hours (UTC):")
        report.table(_table(["Hour", "Requests", "Cost", "Share"], [
            [
                _format_hour(p["hour"]),
                _format_number(p["requests"]),
                _format_currency(p["cost"]),
                _format_percentage(p["percentage"]),
            ]
            for p in peaks
        ]))

    hourly = patterns.get("hourly_distribution") or []
    if show_graphs and hourly:
        report.line("Hourly Activity (UTC, cost):")
        report.lines(bar_chart([
            (_format_hour(h["hour"]), h["cost"], h["cost_percentage"]) for h in hourly
        ], width=40))
        report.line()

    sprints = patterns.get("sprints") or []
    if sprints:
        report.line("Sprint Days:")
        report.table(_table(["Date", "Cost", "Requests", "Above Average"], [
            [
                s["date"],
                _format_currency(s["cost"]),
                _format_number(s["requests"]),
                _format_percentage(s["deviation_percentage"]),
            ]
            for s in sprints
        ]))

    recommendations = patterns.get("recommendations") or []
    if recommendations:
        report.line("Pattern Recommendations:")
        for rec in recommendations:
            report.line(f"  [{rec['priority']}] {rec['title']}: {rec['message']}")
        report.line()
