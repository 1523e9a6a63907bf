"""
core.rng
Seeded random streams for the headless runner, the self-check and the fuzz
tests. The round engine itself never draws random numbers.

Seeds are derived with blake2b over (base_seed, labels) instead of hash(), so
the same pair replays the same stream in every process.
"""

from __future__ import annotations

import hashlib
import random
from typing import Union

Label = Union[str, int]

SEED_BYTES = 8
SEED_PERSON = b"iot-strategy"


def derive_seed(base_seed: int, *labels: Label) -> int:
    key = "/".join(str(part) for part in (int(base_seed),) + labels)
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=SEED_BYTES, person=SEED_PERSON).digest()
    return int.from_bytes(digest, "big")


def seeded_stream(base_seed: int, *labels: Label) -> random.Random:
    """Random instance for one labelled use, e.g. ("allocate", round_no)."""
    return random.Random(derive_seed(base_seed, *labels))
