"""engine.pipeline

Core round flow (headless).

allocation effects -> synergy bonuses -> clamp -> disaster penalties -> clamp

The order is load-bearing: disasters must see bounded values, and the
second clamp catches penalties pushing a dimension out of range.

This layer is UI-agnostic.
"""

from __future__ import annotations

from typing import Sequence

from core.effects import (
    CardCatalog,
    apply_allocation_effects,
    apply_disaster_penalties,
    apply_synergy_bonuses,
)
from core.state import Allocations, GameConfig, Metrics, RoundResult, SynergyRule, clamp_metrics


def calculate_round_effects(
    metrics_before: Metrics,
    allocations: Allocations,
    cards: CardCatalog,
    config: GameConfig,
    synergies: Sequence[SynergyRule],
    current_round: int,
    penalty_scale: float = 1.0,
) -> RoundResult:
    """Compute one round. Pure: identical inputs give identical results."""
    allocs = dict(allocations)

    m = apply_allocation_effects(metrics_before, allocs, cards, config.token_mechanics)
    m, active = apply_synergy_bonuses(m, allocs, synergies)
    m = clamp_metrics(m)

    m, fired = apply_disaster_penalties(m, int(current_round), allocs, config.disasters, penalty_scale)
    m = clamp_metrics(m)

    return RoundResult(metrics_after=m, active_synergies=active, triggered_disasters=fired)
