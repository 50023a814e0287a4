"""Sources of per-round randomness.

Every stochastic choice made during a run goes through one of these objects,
so that a fixed seed (or a fixed external sequence) reproduces a run exactly.
"""

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from .errors import ExhaustedRandomness, InvalidConfiguration

SeedLike = Union[None, int, np.random.SeedSequence]


class SeededRandomness:
    """
    Draws discoverers from numpy's default generator.

    Args:
        seed: Anything `numpy.random.default_rng` accepts. `None` seeds from
            the operating system and makes the run non-reproducible.
    """

    external = False

    def __init__(self, seed: SeedLike = None) -> None:
        self.rng = np.random.default_rng(seed)

    def next_discoverer(self, weights: Sequence[float]) -> int:
        return int(self.rng.choice(len(weights), p=weights))

    def uniform(self) -> float:
        return float(self.rng.random())

    def choice(self, n: int) -> int:
        return int(self.rng.integers(n))


class ExternalRandomness:
    """
    Replays a supplied sequence of discoverer ids.

    Coin flips made by strategies (`uniform`, `choice`) are not part of the
    supplied sequence; they come from an auxiliary generator seeded with
    `seed`.
    """

    external = True

    def __init__(self, sequence: Iterable[int], seed: SeedLike = 0) -> None:
        self.sequence: List[int] = [int(x) for x in sequence]
        self.position = 0
        self.rng = np.random.default_rng(seed)

    def __len__(self) -> int:
        return len(self.sequence)

    def validate(self, num_participants: int) -> None:
        for value in self.sequence:
            if not 0 <= value < num_participants:
                raise InvalidConfiguration(
                    f"external randomness names participant {value}, "
                    f"but only {num_participants} participants exist"
                )

    def next_discoverer(self, weights: Sequence[float]) -> int:
        if self.position >= len(self.sequence):
            raise ExhaustedRandomness(len(self.sequence))
        value = self.sequence[self.position]
        self.position += 1
        return value

    def uniform(self) -> float:
        return float(self.rng.random())

    def choice(self, n: int) -> int:
        return int(self.rng.integers(n))


def make_randomness(seed: SeedLike = None, sequence: Optional[Sequence[int]] = None):
    """Returns an external source when `sequence` is given, a seeded one otherwise."""
    if sequence is not None:
        return ExternalRandomness(sequence, seed=0 if seed is None else seed)
    return SeededRandomness(seed)
