"""
core.insights
Post-round feedback and end-of-game archetype.

These only read metrics; the UI turns keys into text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .effects import total_tokens
from .state import Allocations, FeedbackThresholds, Metrics, metrics_delta

DEVICES_PER_TOKEN = 50

ARCHETYPES = (
    "EFFICIENCY_FIRST",
    "SUSTAINABILITY_CHAMPION",
    "RESILIENT_OPERATOR",
    "OVER_CONNECTED_RISK_TAKER",
    "EARLY_WARNING_GUARDIAN",
    "VISIBILITY_FOCUSED",
    "BALANCED_ARCHITECT",
)


@dataclass(frozen=True)
class FeedbackItem:
    key: str
    kind: str  # positive | warning
    params: Dict[str, Any] = field(default_factory=dict)


def round_feedback(
    metrics_before: Metrics,
    metrics_after: Metrics,
    allocations: Allocations,
    thresholds: FeedbackThresholds,
) -> Tuple[FeedbackItem, ...]:
    """Feedback items for one round, in display order."""
    d = metrics_delta(metrics_before, metrics_after)
    t = thresholds
    items: List[FeedbackItem] = []

    if d.visibility_insight >= t.high_visibility_delta:
        items.append(FeedbackItem("feedback.highVisibility", "positive"))
    if d.efficiency_throughput >= t.high_efficiency_delta:
        items.append(FeedbackItem("feedback.highEfficiency", "positive"))
    if d.sustainability_emissions >= t.high_sustainability_delta:
        items.append(FeedbackItem("feedback.highSustainability", "positive"))
    if d.early_warning_prevention >= t.high_early_warning_delta:
        items.append(FeedbackItem("feedback.highEarlyWarning", "positive"))

    if d.complexity_risk >= t.high_complexity_delta:
        items.append(
            FeedbackItem(
                "feedback.highComplexity",
                "warning",
                {"device_count": total_tokens(allocations) * DEVICES_PER_TOKEN},
            )
        )

    if metrics_after.complexity_risk > t.critical_complexity_absolute and d.early_warning_prevention < t.low_early_warning_delta:
        items.append(FeedbackItem("feedback.complexityWarning", "warning"))

    gains = (d.visibility_insight, d.efficiency_throughput, d.sustainability_emissions, d.early_warning_prevention)
    if all(g > t.balanced_growth_min_delta for g in gains) and d.complexity_risk < t.balanced_growth_max_complexity:
        items.append(FeedbackItem("feedback.balancedGrowth", "positive"))

    return tuple(items)


def _variance(values: List[float]) -> float:
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def classify_archetype(metrics: Metrics) -> str:
    vis = float(metrics.visibility_insight)
    eff = float(metrics.efficiency_throughput)
    sus = float(metrics.sustainability_emissions)
    ew = float(metrics.early_warning_prevention)
    cx = float(metrics.complexity_risk)

    resilience = max(0.0, ew - cx * 0.5)
    top = max(vis, eff, sus, ew)

    if cx > 55 and ew < 40:
        return "OVER_CONNECTED_RISK_TAKER"

    strong = sum(1 for s in (vis, eff, sus, ew, resilience) if s >= 45)
    if strong >= 3 and _variance([vis, eff, sus, ew]) < 200:
        return "BALANCED_ARCHITECT"

    if sus == top and sus >= 50:
        return "SUSTAINABILITY_CHAMPION"
    if eff == top and eff >= 50:
        return "EFFICIENCY_FIRST"
    if ew == top and ew >= 45:
        return "EARLY_WARNING_GUARDIAN"
    if vis == top and vis >= 50:
        return "VISIBILITY_FOCUSED"

    return "BALANCED_ARCHITECT"
