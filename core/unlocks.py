"""
core.unlocks
Card unlock predicates.

Configuration refers to predicates by tag. The set of tags is closed: adding a
new one means adding an entry to UNLOCK_PREDICATES (and content.schemas picks
it up for validation automatically).
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from .state import Allocations, Card, GameConfig, Metrics, UnlockConditions

UnlockPredicate = Callable[[Metrics, Allocations, UnlockConditions], bool]


def _complexity_high(metrics: Metrics, allocations: Allocations, cond: UnlockConditions) -> bool:
    return float(metrics.complexity_risk) >= float(cond.complexity_high_threshold)


UNLOCK_PREDICATES: Dict[str, UnlockPredicate] = {
    "complexity_high": _complexity_high,
}


def evaluate_unlock_condition(
    condition: Optional[str],
    metrics: Metrics,
    allocations: Allocations,
    config: Optional[GameConfig] = None,
) -> bool:
    if condition is None:
        return True
    pred = UNLOCK_PREDICATES.get(condition)
    if pred is None:
        raise ValueError(f"Unknown unlock condition: {condition!r}")
    cond = config.unlock_conditions if config is not None else UnlockConditions()
    return bool(pred(metrics, allocations, cond))


def available_cards(
    cards: Sequence[Card],
    current_round: int,
    metrics: Metrics,
    allocations: Allocations,
    config: Optional[GameConfig] = None,
) -> List[Card]:
    """Cards playable this round, catalog order preserved."""
    return [
        c
        for c in cards
        if int(current_round) in c.rounds_available
        and evaluate_unlock_condition(c.unlock_condition, metrics, allocations, config)
    ]
