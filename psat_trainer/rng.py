from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Seed:
    """Immutable RNG state threaded through the model.

    Each draw returns a fresh Seed; the old value stays valid, so a stream
    can be replayed from any earlier seed.
    """

    state: int

    @classmethod
    def from_int(cls, value: int) -> "Seed":
        return cls(state=int(value) & _STATE_MASK)

    @classmethod
    def from_entropy(cls) -> "Seed":
        # Host-side only; the core never seeds itself.
        return cls.from_int(random.SystemRandom().getrandbits(_STATE_BITS))

    def next_index(self, n: int) -> tuple[int, "Seed"]:
        """Uniform index in [0, n) plus the successor seed."""

        if n <= 0:
            raise ValueError("n must be > 0")
        rng = random.Random(self.state)
        index = rng.randrange(n)
        return index, Seed(state=rng.getrandbits(_STATE_BITS))

    def next_int(self, lo: int, hi: int) -> tuple[int, "Seed"]:
        """Uniform integer in [lo, hi] (inclusive bounds)."""

        if hi < lo:
            raise ValueError("hi must be >= lo")
        offset, nxt = self.next_index(hi - lo + 1)
        return lo + offset, nxt


_STATE_BITS = 64
_STATE_MASK = (1 << _STATE_BITS) - 1
