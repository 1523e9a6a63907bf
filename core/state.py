"""
core.state
Core domain data models (UI independent).

Everything here is an immutable value. Functions that "change" a value return
a new one; callers never see their inputs mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


METRIC_MIN = 0.0
METRIC_MAX = 100.0

# Wire names, also the dataclass field names.
METRIC_KEYS: Tuple[str, ...] = (
    "visibility_insight",
    "efficiency_throughput",
    "sustainability_emissions",
    "early_warning_prevention",
    "complexity_risk",
)

Allocations = Mapping[str, int]


def _freeze(obj: Any, name: str) -> None:
    # Mapping fields are stored as read-only copies and left out of __hash__.
    object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


@dataclass(frozen=True)
class Metrics:
    """The five tracked dimensions.

    Values are meant to live in 0..100 but may overshoot while a round is being
    computed; clamp_metrics() is applied at the pipeline checkpoints.

    complexity_risk is "lower is better", the other four "higher is better".
    Direction is a display concern only.
    """

    visibility_insight: float
    efficiency_throughput: float
    sustainability_emissions: float
    early_warning_prevention: float
    complexity_risk: float

    def get(self, key: str) -> float:
        if key not in METRIC_KEYS:
            raise KeyError(key)
        return float(getattr(self, key))


INITIAL_METRICS = Metrics(
    visibility_insight=25.0,
    efficiency_throughput=30.0,
    sustainability_emissions=30.0,
    early_warning_prevention=20.0,
    complexity_risk=20.0,
)

ZERO_METRICS = Metrics(0.0, 0.0, 0.0, 0.0, 0.0)


def clamp_metrics(m: Metrics) -> Metrics:
    return Metrics(**{k: clamp(float(getattr(m, k)), METRIC_MIN, METRIC_MAX) for k in METRIC_KEYS})


def add_to_metric(m: Metrics, key: str, amount: float) -> Metrics:
    """Return a copy of `m` with `amount` added to one dimension (no clamping)."""
    return replace(m, **{key: m.get(key) + float(amount)})


def metrics_delta(before: Metrics, after: Metrics) -> Metrics:
    return Metrics(**{k: float(getattr(after, k)) - float(getattr(before, k)) for k in METRIC_KEYS})


def metrics_from_mapping(d: Mapping[str, float], default: Metrics = INITIAL_METRICS) -> Metrics:
    """Bridge helper for dict-based metrics (JSON, UI state)."""
    return Metrics(**{k: float(d.get(k, getattr(default, k))) for k in METRIC_KEYS})


def metrics_to_dict(m: Metrics) -> Dict[str, float]:
    return {k: float(getattr(m, k)) for k in METRIC_KEYS}


# -------------------------
# Catalog records
# -------------------------


@dataclass(frozen=True)
class Card:
    """An initiative card. Effects apply once per token spent on it."""

    id: str
    rounds_available: Tuple[int, ...]
    unlock_condition: Optional[str]
    per_token_effects: Metrics
    category: str = ""
    company_name: str = ""
    feedback_key: str = ""
    iot_process_stages: Tuple[str, ...] = ()
    copy_keys: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        _freeze(self, "copy_keys")


@dataclass(frozen=True)
class SynergyRule:
    id: str
    cards: Tuple[str, ...]
    bonus_effect: str
    bonus_amount: float
    name_key: str = ""
    description_key: str = ""


@dataclass(frozen=True)
class DisasterRule:
    """Round-scoped penalty. Any funded card in `mitigated_by` cancels it."""

    id: str
    round: int
    trigger_metric: str
    threshold: float
    penalties: Mapping[str, float] = field(hash=False)
    copy_key: str = ""
    mitigated_by: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "penalties")


@dataclass(frozen=True)
class TokenMechanics:
    diminishing_returns_threshold: int
    diminishing_returns_multiplier: float
    iot_sprawl_threshold: int
    iot_sprawl_penalty_per_token: float


@dataclass(frozen=True)
class FeedbackThresholds:
    high_visibility_delta: float = 8.0
    high_efficiency_delta: float = 8.0
    high_sustainability_delta: float = 8.0
    high_early_warning_delta: float = 8.0
    high_complexity_delta: float = 10.0
    critical_complexity_absolute: float = 60.0
    low_early_warning_delta: float = 5.0
    balanced_growth_min_delta: float = 3.0
    balanced_growth_max_complexity: float = 8.0


@dataclass(frozen=True)
class UnlockConditions:
    complexity_high_threshold: float = 40.0


@dataclass(frozen=True)
class GameConfig:
    """Base game configuration (loaded once per session, read-only)."""

    token_mechanics: TokenMechanics
    feedback_thresholds: FeedbackThresholds = field(default_factory=FeedbackThresholds)
    unlock_conditions: UnlockConditions = field(default_factory=UnlockConditions)
    disasters: Tuple[DisasterRule, ...] = ()


# -------------------------
# Round outputs
# -------------------------


@dataclass(frozen=True)
class ActiveSynergy:
    id: str
    name_key: str
    bonus_effect: str
    bonus_amount: float
    participating_cards: Tuple[str, ...]
    scaled_bonus: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name_key": self.name_key,
            "bonus_effect": self.bonus_effect,
            "bonus_amount": float(self.bonus_amount),
            "participating_cards": list(self.participating_cards),
            "scaled_bonus": float(self.scaled_bonus),
        }


@dataclass(frozen=True)
class DisasterEvent:
    id: str
    round: int
    trigger_metric: str
    threshold: float
    penalties: Mapping[str, float] = field(hash=False)
    copy_key: str
    mitigated_by: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "penalties")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "round": int(self.round),
            "trigger_metric": self.trigger_metric,
            "threshold": float(self.threshold),
            "penalties": dict(self.penalties),
            "copy_key": self.copy_key,
            "mitigated_by": list(self.mitigated_by),
        }


@dataclass(frozen=True)
class RoundResult:
    metrics_after: Metrics
    active_synergies: Tuple[ActiveSynergy, ...] = ()
    triggered_disasters: Tuple[DisasterEvent, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics_after": metrics_to_dict(self.metrics_after),
            "active_synergies": [s.to_dict() for s in self.active_synergies],
            "triggered_disasters": [d.to_dict() for d in self.triggered_disasters],
        }


# -------------------------
# Session state
# -------------------------


@dataclass(frozen=True)
class RoundHistoryEntry:
    round: int
    metrics_before: Metrics
    metrics_after: Metrics
    allocations: Mapping[str, int] = field(hash=False)
    events: Tuple[DisasterEvent, ...] = ()
    synergies: Tuple[ActiveSynergy, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "allocations")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": int(self.round),
            "metrics_before": metrics_to_dict(self.metrics_before),
            "metrics_after": metrics_to_dict(self.metrics_after),
            "allocations": dict(self.allocations),
            "events": [e.to_dict() for e in self.events],
            "synergies": [s.to_dict() for s in self.synergies],
        }


@dataclass(frozen=True)
class GameState:
    """Session state owned by the caller.

    current_round is 1-based. allocations are the live (not yet run) plan for
    current_round.
    """

    current_round: int
    metrics: Metrics
    tokens_available: int
    allocations: Mapping[str, int] = field(default_factory=dict, hash=False)
    round_history: Tuple[RoundHistoryEntry, ...] = ()
    disaster_events: Tuple[DisasterEvent, ...] = ()
    is_game_complete: bool = False

    def __post_init__(self) -> None:
        _freeze(self, "allocations")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_round": int(self.current_round),
            "metrics": metrics_to_dict(self.metrics),
            "tokens_available": int(self.tokens_available),
            "allocations": dict(self.allocations),
            "round_history": [h.to_dict() for h in self.round_history],
            "disaster_events": [e.to_dict() for e in self.disaster_events],
            "is_game_complete": bool(self.is_game_complete),
        }
