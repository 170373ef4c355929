from .model import Side, TroopType

MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


class DRNG:
    """Deterministic Random Number Generator (mulberry32).

    The stored state only ever advances by a fixed increment; each draw mixes
    a copy of it. The bit recipe is part of the engine's reproducibility
    contract, do not swap the generator.
    """

    def __init__(self, seed: int):
        self._state = seed & MASK32

    def next_uint32(self) -> int:
        """Advance the stream and return the next raw 32-bit output."""
        self._state = (self._state + _INCREMENT) & MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        t = (t ^ ((t + (((t ^ (t >> 7)) * (t | 61)) & MASK32)) & MASK32)) & MASK32
        return (t ^ (t >> 14)) & MASK32

    def random(self) -> float:
        """Return a float in [0, 1)."""
        return self.next_uint32() / _TWO_32

    def bernoulli(self, p: float) -> bool:
        """Return True with probability p."""
        return self.random() < p


def to_int32(x: int) -> int:
    """Wrap an integer to signed 32 bits."""
    x &= MASK32
    return x - 0x100000000 if x & 0x80000000 else x


def battle_seed(me: Side, enemy: Side) -> int:
    """Seed derived only from troop counts, so equal inputs give equal streams."""
    return to_int32(int(
        me.count(TroopType.INFANTRY)
        + 3 * me.count(TroopType.CAVALRY)
        + 7 * me.count(TroopType.ARCHERS)
        + enemy.count(TroopType.INFANTRY)
        + 5 * enemy.count(TroopType.CAVALRY)
        + 11 * enemy.count(TroopType.ARCHERS)
    ))


def trial_stream(seed: int, trial: int, stride: int = 9973) -> DRNG:
    """Independent stream for one Monte Carlo trial."""
    return DRNG(seed + trial * stride)
