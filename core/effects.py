"""
core.effects
Round economy rules:
- per-token allocation effects (diminishing returns + sprawl penalty)
- synergy bonuses
- round-scoped disaster penalties

All functions are pure. None of them clamp; clamping is a pipeline checkpoint
(see engine.pipeline).
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Tuple, Union

from .state import (
    METRIC_KEYS,
    ActiveSynergy,
    Allocations,
    Card,
    DisasterEvent,
    DisasterRule,
    Metrics,
    SynergyRule,
    TokenMechanics,
    add_to_metric,
    metrics_to_dict,
)

CardCatalog = Union[Sequence[Card], Mapping[str, Card]]


def _index_cards(cards: CardCatalog) -> Dict[str, Card]:
    if isinstance(cards, Mapping):
        return dict(cards)
    # first occurrence wins, like a linear find()
    out: Dict[str, Card] = {}
    for c in cards:
        out.setdefault(c.id, c)
    return out


def total_tokens(allocations: Allocations) -> int:
    return int(sum(int(t) for t in allocations.values()))


def token_multipliers(tokens: int, tm: TokenMechanics) -> List[float]:
    """Per-token multiplier schedule, token index order."""
    return [
        1.0 if i < tm.diminishing_returns_threshold else float(tm.diminishing_returns_multiplier)
        for i in range(int(tokens))
    ]


def sprawl_penalty(allocations: Allocations, tm: TokenMechanics) -> float:
    """Global complexity surcharge for spending past the sprawl threshold."""
    used = total_tokens(allocations)
    if used <= tm.iot_sprawl_threshold:
        return 0.0
    return float(used - tm.iot_sprawl_threshold) * float(tm.iot_sprawl_penalty_per_token)


def apply_allocation_effects(
    base_metrics: Metrics,
    allocations: Allocations,
    cards: CardCatalog,
    token_mechanics: TokenMechanics,
) -> Metrics:
    """Add every funded card's per-token effects to `base_metrics` (pure, unclamped).

    Unknown card ids are skipped. Token counts above the UI cap are honoured.
    """
    by_id = _index_cards(cards)
    acc = metrics_to_dict(base_metrics)

    for card_id, tokens in allocations.items():
        if int(tokens) <= 0:
            continue
        card = by_id.get(card_id)
        if card is None:
            continue
        effects = card.per_token_effects
        for mult in token_multipliers(int(tokens), token_mechanics):
            for k in METRIC_KEYS:
                acc[k] += float(getattr(effects, k)) * mult

    acc["complexity_risk"] += sprawl_penalty(allocations, token_mechanics)
    return Metrics(**acc)


def apply_synergy_bonuses(
    metrics: Metrics,
    allocations: Allocations,
    synergies: Sequence[SynergyRule],
) -> Tuple[Metrics, Tuple[ActiveSynergy, ...]]:
    """Add bonuses for every synergy whose cards are all funded.

    The payout scales with the least-funded participant. Every rule reads the
    same allocation map and bonuses simply accumulate.
    """
    out = metrics
    active: List[ActiveSynergy] = []

    for rule in synergies:
        counts = [int(allocations.get(cid, 0)) for cid in rule.cards]
        if not counts or any(c < 1 for c in counts):
            continue
        min_tokens = min(counts)
        scaled = float(rule.bonus_amount) * min_tokens
        out = add_to_metric(out, rule.bonus_effect, scaled)
        active.append(
            ActiveSynergy(
                id=rule.id,
                name_key=rule.name_key,
                bonus_effect=rule.bonus_effect,
                bonus_amount=float(rule.bonus_amount),
                participating_cards=tuple(rule.cards),
                scaled_bonus=scaled,
            )
        )

    return out, tuple(active)


def is_mitigated(rule: DisasterRule, allocations: Allocations) -> bool:
    return any(int(allocations.get(cid, 0)) > 0 for cid in rule.mitigated_by)


def apply_disaster_penalties(
    metrics: Metrics,
    current_round: int,
    allocations: Allocations,
    disasters: Sequence[DisasterRule],
    penalty_scale: float = 1.0,
) -> Tuple[Metrics, Tuple[DisasterEvent, ...]]:
    """Apply penalties of disasters scheduled for `current_round`.

    Trigger conditions are read from the incoming snapshot, so one disaster's
    penalty never triggers or cancels another in the same round.
    """
    out = metrics
    fired: List[DisasterEvent] = []

    for rule in disasters:
        if int(rule.round) != int(current_round):
            continue
        if metrics.get(rule.trigger_metric) < float(rule.threshold):
            continue
        if is_mitigated(rule, allocations):
            continue

        for key, penalty in rule.penalties.items():
            if penalty is None:
                continue
            out = add_to_metric(out, key, float(penalty) * float(penalty_scale))

        fired.append(
            DisasterEvent(
                id=rule.id,
                round=int(current_round),
                trigger_metric=rule.trigger_metric,
                threshold=float(rule.threshold),
                penalties=dict(rule.penalties),
                copy_key=rule.copy_key,
                mitigated_by=tuple(rule.mitigated_by),
            )
        )

    return out, tuple(fired)
