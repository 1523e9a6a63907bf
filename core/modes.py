"""
core.modes
Difficulty profiles (token budgets, diminishing returns, sprawl, disaster severity).

Kept in core so balancing lives in one place, but UI can still display labels.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Tuple

from .state import DisasterRule, GameConfig, TokenMechanics


@dataclass(frozen=True)
class DifficultyProfile:
    id: str
    name_key: str
    description_key: str
    tokens_per_round: Tuple[int, int, int]
    token_mechanics: TokenMechanics
    disaster_penalty_scale: float
    additional_disasters: Tuple[DisasterRule, ...] = ()


DIFFICULTY_PRESETS: Dict[str, DifficultyProfile] = {
    "easy": DifficultyProfile(
        id="easy",
        name_key="difficulty.easy.name",
        description_key="difficulty.easy.description",
        tokens_per_round=(12, 7, 7),
        token_mechanics=TokenMechanics(
            diminishing_returns_threshold=4,
            diminishing_returns_multiplier=0.6,
            iot_sprawl_threshold=14,
            iot_sprawl_penalty_per_token=1.0,
        ),
        disaster_penalty_scale=0.75,
    ),
    "normal": DifficultyProfile(
        id="normal",
        name_key="difficulty.normal.name",
        description_key="difficulty.normal.description",
        tokens_per_round=(10, 5, 5),
        token_mechanics=TokenMechanics(
            diminishing_returns_threshold=3,
            diminishing_returns_multiplier=0.5,
            iot_sprawl_threshold=12,
            iot_sprawl_penalty_per_token=2.0,
        ),
        disaster_penalty_scale=1.0,
    ),
    "hard": DifficultyProfile(
        id="hard",
        name_key="difficulty.hard.name",
        description_key="difficulty.hard.description",
        tokens_per_round=(8, 4, 4),
        token_mechanics=TokenMechanics(
            diminishing_returns_threshold=2,
            diminishing_returns_multiplier=0.4,
            iot_sprawl_threshold=10,
            iot_sprawl_penalty_per_token=3.0,
        ),
        disaster_penalty_scale=1.25,
        additional_disasters=(
            DisasterRule(
                id="supply_chain_disruption",
                round=2,
                trigger_metric="visibility_insight",
                threshold=35.0,
                penalties={"efficiency_throughput": -10.0, "early_warning_prevention": -5.0},
                copy_key="disasters.supplyChainDisruption",
                mitigated_by=("warehouseFlow", "digitalTwin"),
            ),
            DisasterRule(
                id="energy_crisis",
                round=2,
                trigger_metric="sustainability_emissions",
                threshold=35.0,
                penalties={"sustainability_emissions": -15.0, "efficiency_throughput": -5.0},
                copy_key="disasters.energyCrisis",
                mitigated_by=("energyMonitoring", "smartBuilding"),
            ),
        ),
    ),
}

DEFAULT_DIFFICULTY = "normal"


def get_difficulty_profile(difficulty_id: str) -> DifficultyProfile:
    try:
        return DIFFICULTY_PRESETS[difficulty_id]
    except KeyError:
        valid = ", ".join(sorted(DIFFICULTY_PRESETS))
        raise ValueError(f"Unknown difficulty: {difficulty_id!r} (expected one of: {valid})") from None


def get_config_for_difficulty(base_config: GameConfig, difficulty_id: str) -> GameConfig:
    """Compose the session config for a difficulty.

    Token mechanics are replaced; the preset's extra disasters are appended to
    the base list. Nothing else changes and base_config is left untouched.
    """
    preset = get_difficulty_profile(difficulty_id)
    return replace(
        base_config,
        token_mechanics=preset.token_mechanics,
        disasters=tuple(base_config.disasters) + tuple(preset.additional_disasters),
    )


def get_tokens_per_round(difficulty_id: str) -> Tuple[int, int, int]:
    return get_difficulty_profile(difficulty_id).tokens_per_round


def get_disaster_penalty_scale(difficulty_id: str) -> float:
    return float(get_difficulty_profile(difficulty_id).disaster_penalty_scale)
