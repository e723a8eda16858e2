from __future__ import annotations

import random
import string
import time
from collections.abc import Callable

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9

IdFactory = Callable[[str], str]


def epoch_millis(clock: Callable[[], float] = time.time) -> int:
    return int(clock() * 1000)


def generate_id(
    prefix: str = "id_",
    *,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> str:
    """Build ``{prefix}{millis}_{random}``.

    The random suffix keeps ids apart when several are minted within the same
    millisecond. Collisions are not detected.
    """
    source = rng or random
    suffix = "".join(source.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}{epoch_millis(clock)}_{suffix}"


def build_id_factory(
    *,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> IdFactory:
    def _factory(prefix: str) -> str:
        return generate_id(prefix, clock=clock, rng=rng)

    return _factory
