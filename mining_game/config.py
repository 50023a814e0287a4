"""Run configuration produced by SimulationBuilder."""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .randomness import make_randomness

DEFAULT_ROUNDS = 10_000
DEFAULT_TIE_BREAK = "earliest_published"


@dataclass(frozen=True)
class ParticipantSpec:
    strategy: object
    power: float


@dataclass(frozen=True)
class SimulationConfig:
    """
    Everything needed to run one simulation.

    Attributes:
        participants: Strategy and normalized power of each participant; the
            position in this tuple is the participant id.
        round_limit: Number of rounds to run.
        seed: Seed of the randomness source (or of the auxiliary generator in
            external mode).
        sequence: External sequence of discoverer ids, replacing the seeded draw.
        canonical_tie_break: Fork-choice rule among equal-depth public blocks.
        prune_interval: Prune stale forks every this many rounds; None disables pruning.
    """
    participants: Tuple[ParticipantSpec, ...]
    round_limit: int = DEFAULT_ROUNDS
    seed: Union[None, int, np.random.SeedSequence] = None
    sequence: Optional[Tuple[int, ...]] = None
    canonical_tie_break: str = DEFAULT_TIE_BREAK
    prune_interval: Optional[int] = None

    @property
    def num_participants(self) -> int:
        return len(self.participants)

    @property
    def weights(self) -> Tuple[float, ...]:
        return tuple(p.power for p in self.participants)

    @property
    def strategy_names(self) -> Tuple[str, ...]:
        return tuple(p.strategy.name for p in self.participants)

    def make_randomness(self):
        return make_randomness(self.seed, self.sequence)
