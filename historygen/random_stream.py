"""Seed-keyed pseudo-random streams.

Every stochastic generator takes a ``random.Random`` instance. Streams are
built from string seeds so that sub-streams can be keyed by composite ids
(``{base}-{location}-{supplier}``) and stay stable when unrelated generation
steps are added elsewhere.

Algorithms:
    mt19937  standard library Mersenne Twister (string seeds hashed with SHA-512)
    pcg64    numpy PCG64
    philox   numpy Philox
    sfc64    numpy SFC64
"""

from __future__ import annotations

import hashlib
import random

import numpy as np

from historygen.errors import ConfigValidationError


DEFAULT_ALGORITHM = "mt19937"

BIT_GENERATORS = {
    "pcg64": np.random.PCG64,
    "philox": np.random.Philox,
    "sfc64": np.random.SFC64,
}

ALGORITHMS = (DEFAULT_ALGORITHM, *BIT_GENERATORS)


def stable_seed_int(seed: str) -> int:
    """Map a seed string to a 128-bit integer, independent of PYTHONHASHSEED."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:16], "big", signed=False)


class BitGeneratorRandom(random.Random):
    """``random.Random`` driven by a numpy bit generator.

    Overrides the documented subclass hooks (random, getrandbits, seed,
    getstate, setstate) so all the usual helpers keep working.
    """

    def __init__(self, seed: str, *, algorithm: str) -> None:
        self._algorithm = algorithm
        self._generator: np.random.Generator | None = None
        super().__init__(seed)

    def seed(self, a=None, version: int = 2) -> None:
        bit_generator = BIT_GENERATORS[self._algorithm](stable_seed_int(str(a)))
        self._generator = np.random.Generator(bit_generator)

    def random(self) -> float:
        return float(self._generator.random())

    def getrandbits(self, k: int) -> int:
        if k < 0:
            raise ValueError("number of bits must be non-negative")
        n_bytes = (k + 7) // 8
        value = int.from_bytes(self._generator.bytes(n_bytes), "little")
        return value >> (n_bytes * 8 - k)

    def getstate(self):
        return self._generator.bit_generator.state

    def setstate(self, state) -> None:
        self._generator.bit_generator.state = state


def create_random(seed: str, algorithm: str = DEFAULT_ALGORITHM) -> random.Random:
    """Create a deterministic stream for ``seed``.

    Identical (seed, algorithm) pairs always produce identical sequences.
    """
    if algorithm == DEFAULT_ALGORITHM:
        return random.Random(seed)
    if algorithm not in BIT_GENERATORS:
        raise ConfigValidationError(
            f"Unknown RNG algorithm '{algorithm}'; expected one of {', '.join(ALGORITHMS)}"
        )
    return BitGeneratorRandom(seed, algorithm=algorithm)


def derive_seed(base_seed: str, *parts: str) -> str:
    return "-".join([base_seed, *parts])


def derive_random(base_seed: str, *parts: str, algorithm: str = DEFAULT_ALGORITHM) -> random.Random:
    """Sub-stream keyed by ``{base_seed}-{part}-{part}...``."""
    return create_random(derive_seed(base_seed, *parts), algorithm)
