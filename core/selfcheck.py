"""
core.selfcheck
Minimal "it runs" proof for the round rules.

Run:
  python -m core.selfcheck
"""

from __future__ import annotations

from dataclasses import asdict

from .effects import apply_allocation_effects, apply_disaster_penalties, apply_synergy_bonuses
from .modes import DIFFICULTY_PRESETS, get_config_for_difficulty
from .rng import seeded_stream
from .state import (
    INITIAL_METRICS,
    METRIC_KEYS,
    ZERO_METRICS,
    Card,
    DisasterRule,
    GameConfig,
    SynergyRule,
    clamp_metrics,
    metrics_from_mapping,
)


def _card(cid: str, **effects: float) -> Card:
    return Card(
        id=cid,
        rounds_available=(1, 2, 3),
        unlock_condition=None,
        per_token_effects=metrics_from_mapping(effects, default=ZERO_METRICS),
    )


def run_three_round_smoke() -> None:
    base_seed = 42
    cards = [
        _card("digitalTwin", visibility_insight=8, complexity_risk=3),
        _card("predictiveMaintenance", early_warning_prevention=6, complexity_risk=2),
        _card("gridSensors", visibility_insight=4, early_warning_prevention=5, complexity_risk=2),
        _card("securityHardening", early_warning_prevention=3, complexity_risk=-6),
    ]
    synergies = [
        SynergyRule("visibility-maintenance", ("digitalTwin", "predictiveMaintenance", "gridSensors"), "early_warning_prevention", 2.0),
    ]
    base = GameConfig(
        token_mechanics=DIFFICULTY_PRESETS["normal"].token_mechanics,
        disasters=(
            DisasterRule("ransomware_attack", 3, "complexity_risk", 80.0, {"efficiency_throughput": -20.0}, mitigated_by=("securityHardening",)),
        ),
    )

    for difficulty, preset in DIFFICULTY_PRESETS.items():
        cfg = get_config_for_difficulty(base, difficulty)
        metrics = INITIAL_METRICS

        for rnd in (1, 2, 3):
            # random plan within the round budget
            rng = seeded_stream(base_seed, "selfcheck", difficulty, rnd)
            allocs = {c.id: 0 for c in cards}
            for _ in range(preset.tokens_per_round[rnd - 1]):
                cid = rng.choice(list(allocs))
                if allocs[cid] < 3:
                    allocs[cid] += 1

            m = apply_allocation_effects(metrics, allocs, cards, cfg.token_mechanics)
            m, _ = apply_synergy_bonuses(m, allocs, synergies)
            m = clamp_metrics(m)
            m, _ = apply_disaster_penalties(m, rnd, allocs, cfg.disasters, preset.disaster_penalty_scale)
            metrics = clamp_metrics(m)

            # invariants
            for k in METRIC_KEYS:
                assert 0.0 <= metrics.get(k) <= 100.0, (difficulty, rnd, k)

        assert len(cfg.disasters) == len(base.disasters) + len(preset.additional_disasters)
        print(f"{difficulty}: final metrics {asdict(metrics)}")

    print("OK: 3-round core smoke test passed.")


if __name__ == "__main__":
    run_three_round_smoke()
