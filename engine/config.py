"""engine.config

Engine configuration passed from UI.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.modes import DEFAULT_DIFFICULTY


@dataclass(frozen=True)
class EngineConfig:
    difficulty: str = DEFAULT_DIFFICULTY
    base_seed: int = 0
    max_tokens_per_card: int = 3
    final_round: int = 3
