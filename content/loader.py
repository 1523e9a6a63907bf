"""content.loader

Load the card catalog, synergy rules and base game config from JSON.

The catalog is read once per session and never mutated. Any problem (missing
file, bad JSON, schema violation) rejects the whole catalog with ValueError
or FileNotFoundError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from core.modes import DIFFICULTY_PRESETS
from core.state import Card, GameConfig, SynergyRule

from .schemas import card_from_mapping, game_config_from_mapping, synergy_from_mapping, validate_catalog

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"

CARDS_FILE = "cards.json"
SYNERGIES_FILE = "synergies.json"
GAME_CONFIG_FILE = "gameConfig.json"


@dataclass(frozen=True)
class Catalog:
    cards: Tuple[Card, ...]
    synergies: Tuple[SynergyRule, ...]
    config: GameConfig

    def card(self, card_id: str) -> Optional[Card]:
        return next((c for c in self.cards if c.id == card_id), None)

    @property
    def card_ids(self) -> Tuple[str, ...]:
        return tuple(c.id for c in self.cards)


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise FileNotFoundError(f"catalog file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e


def _list_payload(data: Any, key: str, where: str) -> Sequence[Mapping[str, Any]]:
    # both a bare list and {"<key>": [...]} are accepted
    if isinstance(data, Mapping):
        data = data.get(key)
    if not isinstance(data, list):
        raise ValueError(f"{where}: expected a list of objects")
    for i, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise ValueError(f"{where}[{i}]: expected an object")
    return data


def catalog_from_dicts(
    cards: Any,
    synergies: Any,
    game_config: Mapping[str, Any],
    *,
    extra_card_refs: Sequence[str] = (),
) -> Catalog:
    if not isinstance(game_config, Mapping):
        raise ValueError(f"{GAME_CONFIG_FILE}: expected an object")

    cat = Catalog(
        cards=tuple(card_from_mapping(c) for c in _list_payload(cards, "cards", CARDS_FILE)),
        synergies=tuple(synergy_from_mapping(s) for s in _list_payload(synergies, "synergies", SYNERGIES_FILE)),
        config=game_config_from_mapping(game_config),
    )
    validate_catalog(cat.cards, cat.synergies, cat.config, extra_card_refs)
    return cat


def load_catalog(directory: Optional[Union[str, Path]] = None, *, check_presets: bool = True) -> Catalog:
    """Load and validate a catalog directory (default: the bundled one).

    With check_presets, cards named by difficulty presets must exist too.
    """
    base = Path(directory) if directory is not None else DATA_DIR
    cat = catalog_from_dicts(
        _read_json(base / CARDS_FILE),
        _read_json(base / SYNERGIES_FILE),
        _read_json(base / GAME_CONFIG_FILE),
        extra_card_refs=preset_card_refs() if check_presets else (),
    )
    logger.debug("loaded catalog from %s: %d cards, %d synergies, %d disasters", base, len(cat.cards), len(cat.synergies), len(cat.config.disasters))
    return cat


def preset_card_refs() -> Tuple[str, ...]:
    """Card ids referenced by difficulty presets (extra disasters' mitigations)."""
    refs: Dict[str, None] = {}
    for preset in DIFFICULTY_PRESETS.values():
        for d in preset.additional_disasters:
            for cid in d.mitigated_by:
                refs.setdefault(cid, None)
    return tuple(refs)
