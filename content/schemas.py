"""content.schemas

Contracts for the external game configuration:
- cards.json       -> tuple[Card]
- synergies.json   -> tuple[SynergyRule]
- gameConfig.json  -> GameConfig

Parsing accepts the camelCase keys used by the game's JSON files (snake_case
works too). Validation is strict: anything malformed raises ValueError so a
broken catalog is rejected at load time instead of misbehaving mid-game.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.state import (
    METRIC_KEYS,
    Card,
    DisasterRule,
    FeedbackThresholds,
    GameConfig,
    Metrics,
    SynergyRule,
    TokenMechanics,
    UnlockConditions,
)
from core.unlocks import UNLOCK_PREDICATES

ALLOWED_CATEGORIES = {"visibility", "streamlining", "sustainability", "early_warning", "security"}
ALLOWED_STAGES = {"sense", "share", "process", "act"}


def _pick(obj: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for n in names:
        if n in obj and obj[n] is not None:
            return obj[n]
    return default


def _as_number(x: Any, where: str) -> float:
    if isinstance(x, bool):
        raise ValueError(f"{where}: expected a number, got bool")
    try:
        v = float(x)
    except (TypeError, ValueError):
        raise ValueError(f"{where}: expected a number, got {x!r}") from None
    if not math.isfinite(v):
        raise ValueError(f"{where}: expected a finite number, got {x!r}")
    return v


def _as_int(x: Any, where: str) -> int:
    v = _as_number(x, where)
    if v != int(v):
        raise ValueError(f"{where}: expected an integer, got {x!r}")
    return int(v)


def _as_str_list(x: Any, where: str) -> Tuple[str, ...]:
    if x is None:
        return ()
    if not isinstance(x, (list, tuple)):
        raise ValueError(f"{where}: expected a list")
    out: List[str] = []
    for item in x:
        s = str(item or "").strip()
        if not s:
            raise ValueError(f"{where}: empty entry")
        out.append(s)
    return tuple(out)


def normalize_metric_key(key: Any, where: str) -> str:
    k = str(key or "").strip()
    if k not in METRIC_KEYS:
        raise ValueError(f"{where}: unknown metric {k!r}")
    return k


def normalize_delta(d: Any, where: str) -> Dict[str, float]:
    """Partial metric vector -> {metric: float}. None entries are dropped."""
    if not isinstance(d, Mapping):
        raise ValueError(f"{where}: expected an object")
    out: Dict[str, float] = {}
    for k, v in d.items():
        if v is None:
            continue
        key = normalize_metric_key(k, where)
        out[key] = _as_number(v, f"{where}.{key}")
    return out


# =========================
# Cards
# =========================


def card_from_mapping(obj: Mapping[str, Any]) -> Card:
    cid = str(_pick(obj, "id", default="") or "").strip()
    where = f"card {cid or '?'}"

    effects = normalize_delta(_pick(obj, "perTokenEffects", "per_token_effects", default={}), f"{where}.perTokenEffects")
    rounds = _pick(obj, "roundsAvailable", "rounds_available", default=[])
    if not isinstance(rounds, (list, tuple)):
        raise ValueError(f"{where}: roundsAvailable must be a list")

    unlock = _pick(obj, "unlockCondition", "unlock_condition")
    copy_keys = _pick(obj, "copyKeys", "copy_keys", default={})
    if not isinstance(copy_keys, Mapping):
        raise ValueError(f"{where}: copyKeys must be an object")

    return Card(
        id=cid,
        rounds_available=tuple(_as_int(r, f"{where}.roundsAvailable") for r in rounds),
        unlock_condition=None if unlock is None else str(unlock).strip(),
        per_token_effects=Metrics(**{k: effects.get(k, 0.0) for k in METRIC_KEYS}),
        category=str(_pick(obj, "category", default="") or "").strip(),
        company_name=str(_pick(obj, "companyName", "company_name", default="") or "").strip(),
        feedback_key=str(_pick(obj, "feedbackKey", "feedback_key", default="") or "").strip(),
        iot_process_stages=_as_str_list(_pick(obj, "iotProcessStages", "iot_process_stages"), f"{where}.iotProcessStages"),
        copy_keys={str(k): str(v) for k, v in copy_keys.items()},
    )


def validate_card(c: Card) -> None:
    if not c.id:
        raise ValueError("card.id must be a non-empty string")
    if not c.rounds_available:
        raise ValueError(f"card {c.id}: roundsAvailable must not be empty")
    if any(r < 1 for r in c.rounds_available):
        raise ValueError(f"card {c.id}: rounds must be >= 1")
    if c.unlock_condition is not None and c.unlock_condition not in UNLOCK_PREDICATES:
        raise ValueError(f"card {c.id}: unknown unlockCondition {c.unlock_condition!r}")
    if c.category and c.category not in ALLOWED_CATEGORIES:
        raise ValueError(f"card {c.id}: invalid category {c.category!r}")
    if any(s not in ALLOWED_STAGES for s in c.iot_process_stages):
        raise ValueError(f"card {c.id}: invalid iotProcessStages")


# =========================
# Synergies
# =========================


def synergy_from_mapping(obj: Mapping[str, Any]) -> SynergyRule:
    sid = str(_pick(obj, "id", default="") or "").strip()
    where = f"synergy {sid or '?'}"
    return SynergyRule(
        id=sid,
        cards=_as_str_list(_pick(obj, "cards", default=[]), f"{where}.cards"),
        bonus_effect=normalize_metric_key(_pick(obj, "bonusEffect", "bonus_effect"), f"{where}.bonusEffect"),
        bonus_amount=_as_number(_pick(obj, "bonusAmount", "bonus_amount"), f"{where}.bonusAmount"),
        name_key=str(_pick(obj, "nameKey", "name_key", default="") or "").strip(),
        description_key=str(_pick(obj, "descriptionKey", "description_key", default="") or "").strip(),
    )


def validate_synergy(s: SynergyRule) -> None:
    if not s.id:
        raise ValueError("synergy.id must be a non-empty string")
    if len(s.cards) < 2:
        raise ValueError(f"synergy {s.id}: needs at least 2 cards")
    if len(set(s.cards)) != len(s.cards):
        raise ValueError(f"synergy {s.id}: duplicate cards")


# =========================
# Disasters
# =========================


def disaster_from_mapping(obj: Mapping[str, Any]) -> DisasterRule:
    did = str(_pick(obj, "id", default="") or "").strip()
    where = f"disaster {did or '?'}"
    return DisasterRule(
        id=did,
        round=_as_int(_pick(obj, "round"), f"{where}.round"),
        trigger_metric=normalize_metric_key(_pick(obj, "triggerMetric", "trigger_metric"), f"{where}.triggerMetric"),
        threshold=_as_number(_pick(obj, "threshold"), f"{where}.threshold"),
        penalties=normalize_delta(_pick(obj, "penalties", default={}), f"{where}.penalties"),
        copy_key=str(_pick(obj, "copyKey", "copy_key", default="") or "").strip(),
        mitigated_by=_as_str_list(_pick(obj, "mitigatedBy", "mitigated_by"), f"{where}.mitigatedBy"),
    )


def validate_disaster(d: DisasterRule) -> None:
    if not d.id:
        raise ValueError("disaster.id must be a non-empty string")
    if d.round < 1:
        raise ValueError(f"disaster {d.id}: round must be >= 1")
    if not d.penalties:
        raise ValueError(f"disaster {d.id}: penalties must not be empty")


# =========================
# Game config
# =========================

_FEEDBACK_FIELDS = {
    "highVisibilityDelta": "high_visibility_delta",
    "highEfficiencyDelta": "high_efficiency_delta",
    "highSustainabilityDelta": "high_sustainability_delta",
    "highEarlyWarningDelta": "high_early_warning_delta",
    "highComplexityDelta": "high_complexity_delta",
    "criticalComplexityAbsolute": "critical_complexity_absolute",
    "lowEarlyWarningDelta": "low_early_warning_delta",
    "balancedGrowthMinDelta": "balanced_growth_min_delta",
    "balancedGrowthMaxComplexity": "balanced_growth_max_complexity",
}


def token_mechanics_from_mapping(obj: Mapping[str, Any]) -> TokenMechanics:
    where = "tokenMechanics"
    if not isinstance(obj, Mapping):
        raise ValueError(f"{where}: expected an object")
    tm = TokenMechanics(
        diminishing_returns_threshold=_as_int(
            _pick(obj, "diminishingReturnsThreshold", "diminishing_returns_threshold"), f"{where}.diminishingReturnsThreshold"
        ),
        diminishing_returns_multiplier=_as_number(
            _pick(obj, "diminishingReturnsMultiplier", "diminishing_returns_multiplier"), f"{where}.diminishingReturnsMultiplier"
        ),
        iot_sprawl_threshold=_as_int(_pick(obj, "iotSprawlThreshold", "iot_sprawl_threshold"), f"{where}.iotSprawlThreshold"),
        iot_sprawl_penalty_per_token=_as_number(
            _pick(obj, "iotSprawlPenaltyPerToken", "iot_sprawl_penalty_per_token"), f"{where}.iotSprawlPenaltyPerToken"
        ),
    )
    if tm.diminishing_returns_threshold < 0 or tm.iot_sprawl_threshold < 0:
        raise ValueError(f"{where}: thresholds must be >= 0")
    return tm


def game_config_from_mapping(obj: Mapping[str, Any]) -> GameConfig:
    fb_raw = _pick(obj, "feedbackThresholds", "feedback_thresholds", default={})
    if not isinstance(fb_raw, Mapping):
        raise ValueError("feedbackThresholds: expected an object")
    fb: Dict[str, float] = {}
    for camel, snake in _FEEDBACK_FIELDS.items():
        v = _pick(fb_raw, camel, snake)
        if v is not None:
            fb[snake] = _as_number(v, f"feedbackThresholds.{camel}")

    un_raw = _pick(obj, "unlockConditions", "unlock_conditions", default={})
    if not isinstance(un_raw, Mapping):
        raise ValueError("unlockConditions: expected an object")
    un: Dict[str, float] = {}
    thr = _pick(un_raw, "complexityHighThreshold", "complexity_high_threshold")
    if thr is not None:
        un["complexity_high_threshold"] = _as_number(thr, "unlockConditions.complexityHighThreshold")

    raw_disasters = _pick(obj, "disasters", default=[])
    if not isinstance(raw_disasters, list):
        raise ValueError("disasters: expected a list")

    return GameConfig(
        token_mechanics=token_mechanics_from_mapping(_pick(obj, "tokenMechanics", "token_mechanics", default={})),
        feedback_thresholds=FeedbackThresholds(**fb),
        unlock_conditions=UnlockConditions(**un),
        disasters=tuple(disaster_from_mapping(d) for d in raw_disasters),
    )


def _check_unique(ids: Iterable[str], what: str) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise ValueError(f"duplicate {what} id: {i!r}")
        seen.add(i)


def validate_catalog(
    cards: Sequence[Card],
    synergies: Sequence[SynergyRule],
    config: GameConfig,
    extra_card_refs: Optional[Iterable[str]] = None,
) -> None:
    """Validate everything together, including cross references to card ids."""
    for c in cards:
        validate_card(c)
    for s in synergies:
        validate_synergy(s)
    for d in config.disasters:
        validate_disaster(d)

    _check_unique((c.id for c in cards), "card")
    _check_unique((s.id for s in synergies), "synergy")
    _check_unique((d.id for d in config.disasters), "disaster")

    known = {c.id for c in cards}
    for s in synergies:
        missing = [cid for cid in s.cards if cid not in known]
        if missing:
            raise ValueError(f"synergy {s.id}: unknown cards {missing}")
    for d in config.disasters:
        missing = [cid for cid in d.mitigated_by if cid not in known]
        if missing:
            raise ValueError(f"disaster {d.id}: unknown mitigating cards {missing}")
    for cid in extra_card_refs or ():
        if cid not in known:
            raise ValueError(f"unknown card reference: {cid!r}")

    return None
