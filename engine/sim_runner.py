"""engine.sim_runner

Headless runner for quick balance/sanity checks.

Plays a full game through engine.session without any UI. Allocation choices
come from a strategy; the default one is seeded and deterministic so runs are
reproducible and CI-friendly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.insights import classify_archetype
from core.modes import get_config_for_difficulty
from core.rng import seeded_stream
from core.state import Card, GameState
from core.unlocks import available_cards

from content.loader import Catalog, load_catalog

from .config import EngineConfig
from .logging import round_log
from .session import allocate_tokens, metrics_before_round, new_game, next_round, run_plan

Strategy = Callable[[GameState, Sequence[Card]], Dict[str, int]]


@dataclass
class SeededAllocator:
    """Spends the round budget one token at a time on random playable cards."""

    base_seed: int
    max_per_card: int = 3

    def __call__(self, state: GameState, playable: Sequence[Card]) -> Dict[str, int]:
        rng = seeded_stream(int(self.base_seed), "allocate", int(state.current_round))
        allocs = {cid: int(t) for cid, t in state.allocations.items()}
        budget = int(state.tokens_available) - sum(allocs.values())
        ids = [c.id for c in playable]
        while budget > 0:
            open_ids = [cid for cid in ids if allocs.get(cid, 0) < self.max_per_card]
            if not open_ids:
                break
            cid = rng.choice(open_ids)
            allocs[cid] = allocs.get(cid, 0) + 1
            budget -= 1
        return allocs


def run_headless_sim(
    catalog: Optional[Catalog] = None,
    config: Optional[EngineConfig] = None,
    strategy: Optional[Strategy] = None,
) -> Dict[str, Any]:
    """Run a deterministic game and return a summary."""
    cfg = config or EngineConfig()
    cat = catalog or load_catalog()
    game_config = get_config_for_difficulty(cat.config, cfg.difficulty)
    pick = strategy or SeededAllocator(base_seed=cfg.base_seed, max_per_card=cfg.max_tokens_per_card)

    state = new_game(cfg)
    initial = state
    logs: List[Dict[str, Any]] = []

    while True:
        playable = available_cards(cat.cards, state.current_round, state.metrics, state.allocations, game_config)
        for cid, tokens in pick(state, playable).items():
            state = allocate_tokens(state, cid, tokens, max_per_card=cfg.max_tokens_per_card)

        before = metrics_before_round(state)
        allocs = dict(state.allocations)
        state, result = run_plan(state, cards=cat.cards, game_config=game_config, synergies=cat.synergies, config=cfg)
        logs.append(round_log(round_no=state.current_round, metrics_before=before, allocations=allocs, result=result))

        if state.is_game_complete:
            break
        state = next_round(state, cfg)

    return {
        "rounds": len(logs),
        "initial": initial,
        "final": state,
        "logs": logs,
        "archetype": classify_archetype(state.metrics),
    }
