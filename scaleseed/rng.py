"""Seeded pseudo-random stream (xorshift32)."""

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0


class SeededRng:
    """
    Deterministic float stream in [0, 1).

    Each generator owns one stream seeded with ``seed + offset`` so reordering
    unrelated generators never shifts another generator's draws.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._state = (seed & _MASK32) or 1

    def __call__(self) -> float:
        s = self._state
        s ^= (s << 13) & _MASK32
        s ^= s >> 17
        s ^= (s << 5) & _MASK32
        self._state = s
        return s / _TWO_POW_32

    def uniform(self, low: float, high: float) -> float:
        """Float in [low, high)."""
        return low + self() * (high - low)

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high] inclusive."""
        return low + int(self() * (high - low + 1))

    def choice_index(self, n: int) -> int:
        """Index in [0, n)."""
        return int(self() * n)


def seeded_rng(seed: int) -> SeededRng:
    """Create a stream for ``seed``; equal seeds yield equal sequences."""
    return SeededRng(seed)
