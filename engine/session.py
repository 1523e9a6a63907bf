"""engine.session

Session flow on top of the round pipeline:
- token allocation within the round budget (the per-card UI cap lives here)
- running / re-running the current round and keeping round history
- advancing rounds with half-allocation carryover

Every function takes a GameState and returns a new one; nothing is stored
here. The caller owns the state (and decides whether to persist it).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from core.effects import CardCatalog, total_tokens
from core.modes import get_disaster_penalty_scale, get_tokens_per_round
from core.state import (
    INITIAL_METRICS,
    Allocations,
    GameConfig,
    GameState,
    Metrics,
    RoundHistoryEntry,
    RoundResult,
    SynergyRule,
)

from .config import EngineConfig
from .pipeline import calculate_round_effects

CARRYOVER_RATIO = 0.5


def new_game(config: EngineConfig) -> GameState:
    return GameState(
        current_round=1,
        metrics=INITIAL_METRICS,
        tokens_available=int(get_tokens_per_round(config.difficulty)[0]),
    )


def tokens_used(allocations: Allocations) -> int:
    return total_tokens(allocations)


def can_run_plan(state: GameState) -> bool:
    return tokens_used(state.allocations) > 0


def allocate_tokens(state: GameState, card_id: str, tokens: int, *, max_per_card: int = 3) -> GameState:
    """Set a card's tokens, bounded by the per-card cap and the remaining budget."""
    current = int(state.allocations.get(card_id, 0))
    others = sum(int(t) for cid, t in state.allocations.items() if cid != card_id)
    remaining = int(state.tokens_available) - others
    new_tokens = max(0, min(int(max_per_card), int(tokens), current + remaining))

    allocs = dict(state.allocations)
    allocs[card_id] = new_tokens
    return replace(state, allocations=allocs)


def metrics_before_round(state: GameState) -> Metrics:
    """Round 1 starts from the baseline; later rounds from the previous round's result."""
    if int(state.current_round) == 1:
        return INITIAL_METRICS
    prev = next((h for h in state.round_history if int(h.round) == int(state.current_round) - 1), None)
    if prev is None:
        return INITIAL_METRICS
    return prev.metrics_after


def run_plan(
    state: GameState,
    *,
    cards: CardCatalog,
    game_config: GameConfig,
    synergies: Sequence[SynergyRule],
    config: EngineConfig,
) -> Tuple[GameState, RoundResult]:
    """Run the current round's plan.

    Re-running a round replaces its history entry. Disaster events are recorded
    once per (id, round).
    """
    rnd = int(state.current_round)
    before = metrics_before_round(state)
    allocs: Dict[str, int] = dict(state.allocations)

    result = calculate_round_effects(
        before,
        allocs,
        cards,
        game_config,
        synergies,
        rnd,
        get_disaster_penalty_scale(config.difficulty),
    )

    entry = RoundHistoryEntry(
        round=rnd,
        metrics_before=before,
        metrics_after=result.metrics_after,
        allocations=allocs,
        events=result.triggered_disasters,
        synergies=result.active_synergies,
    )
    history: List[RoundHistoryEntry] = list(state.round_history)
    idx = next((i for i, h in enumerate(history) if int(h.round) == rnd), -1)
    if idx >= 0:
        history[idx] = entry
    else:
        history.append(entry)

    events = list(state.disaster_events)
    for ev in result.triggered_disasters:
        if not any(e.id == ev.id and int(e.round) == int(ev.round) for e in events):
            events.append(ev)

    new_state = replace(
        state,
        metrics=result.metrics_after,
        round_history=tuple(history),
        disaster_events=tuple(events),
        is_game_complete=rnd == int(config.final_round),
    )
    return new_state, result


def carry_over(allocations: Allocations) -> Dict[str, int]:
    return {cid: int(int(t) * CARRYOVER_RATIO) for cid, t in allocations.items()}


def next_round(state: GameState, config: EngineConfig) -> GameState:
    nxt = int(state.current_round) + 1
    if nxt > int(config.final_round):
        return state

    kept = carry_over(state.allocations)
    schedule = get_tokens_per_round(config.difficulty)
    budget = int(schedule[min(nxt, len(schedule)) - 1]) + total_tokens(kept)

    return replace(state, current_round=nxt, tokens_available=budget, allocations=kept)


def reset_round(state: GameState) -> GameState:
    """Drop this round's edits (back to the carried-over plan)."""
    if int(state.current_round) == 1 or not state.round_history:
        return replace(state, allocations={})
    return replace(state, allocations=carry_over(state.round_history[-1].allocations))
