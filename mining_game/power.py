"""Distributions of mining (hash or stake) power across participants."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidConfiguration

# Allowable difference between a distribution sum and 1.0.
EPSILON_POWER = 1e-6


@dataclass(frozen=True)
class PowerDistribution:
    """
    Describes how power is split between participants.

    Attributes:
        kind: "equal", "participant" (one participant gets `power`, the rest
            share what is left equally) or "values" (explicit weights).
        participant: Participant id used by the "participant" kind.
        power: Power of `participant` for the "participant" kind.
        weights: Explicit weights for the "values" kind.
    """
    kind: str = "equal"
    participant: Optional[int] = None
    power: Optional[float] = None
    weights: Tuple[float, ...] = ()

    @classmethod
    def equal(cls) -> "PowerDistribution":
        return cls("equal")

    @classmethod
    def for_participant(cls, participant: int, power: float) -> "PowerDistribution":
        return cls("participant", participant=participant, power=float(power))

    @classmethod
    def from_values(cls, weights: Sequence[float]) -> "PowerDistribution":
        return cls("values", weights=tuple(float(w) for w in weights))

    def validate(self, num_participants: int) -> None:
        if num_participants <= 0:
            raise InvalidConfiguration("cannot distribute power over zero participants")

        if self.kind == "equal":
            return
        if self.kind == "values":
            if len(self.weights) != num_participants:
                raise InvalidConfiguration(
                    f"power distribution has {len(self.weights)} values "
                    f"for {num_participants} participants"
                )
            for w in self.weights:
                if np.isnan(w) or not 0.0 <= w <= 1.0:
                    raise InvalidConfiguration(f"power value {w} is not in [0, 1]")
            total = sum(self.weights)
            if abs(total - 1.0) > EPSILON_POWER:
                raise InvalidConfiguration(f"power values sum to {total}, not 1.0")
            return
        if self.kind == "participant":
            if num_participants == 1:
                raise InvalidConfiguration("cannot set the power of a lone participant")
            if self.participant is None or not 0 <= self.participant < num_participants:
                raise InvalidConfiguration(f"cannot set power for unknown participant {self.participant}")
            if self.power is None or np.isnan(self.power) or not 0.0 <= self.power <= 1.0:
                raise InvalidConfiguration(f"power value {self.power} is not in [0, 1]")
            return
        raise InvalidConfiguration(f"unknown power distribution kind {self.kind!r}")

    def values(self, num_participants: int) -> List[float]:
        """Validated weights, one per participant, in participant order."""
        self.validate(num_participants)

        if self.kind == "equal":
            return [1.0 / num_participants] * num_participants
        if self.kind == "values":
            # Rescale away the tolerated rounding so the weights are valid probabilities.
            weights = np.asarray(self.weights, dtype=float)
            return (weights / np.sum(weights)).tolist()
        other = (1.0 - self.power) / (num_participants - 1)
        return [self.power if i == self.participant else other for i in range(num_participants)]

    def power_of(self, participant: int, num_participants: int) -> float:
        return self.values(num_participants)[participant]
