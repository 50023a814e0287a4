"""Tie-breaking rules strategies use to pick among equal-depth public tips."""

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidConfiguration

TIE_BREAK_RULES = ("earliest", "favor_miner", "favor_miner_prob", "random")


@dataclass(frozen=True)
class TieBreaker:
    """
    Picks the block to mine on when several public blocks share the deepest depth.

    Rules:
        earliest: the block published first.
        favor_miner: the earliest block owned by `miner`, else the earliest block.
        favor_miner_prob: with probability `probability` the earliest block owned
            by `miner`, otherwise the earliest block owned by anyone else. This is
            the `gamma` parameter of the selfish mining literature.
        random: a block chosen uniformly at random.
    """
    rule: str = "earliest"
    miner: Optional[int] = None
    probability: float = 1.0

    def __post_init__(self) -> None:
        if self.rule not in TIE_BREAK_RULES:
            raise InvalidConfiguration(f"tie break rule must be one of {TIE_BREAK_RULES}, got {self.rule!r}")
        if self.rule in ("favor_miner", "favor_miner_prob") and self.miner is None:
            raise InvalidConfiguration(f"tie break rule {self.rule!r} needs a miner")
        if not 0.0 <= self.probability <= 1.0:
            raise InvalidConfiguration("tie break probability must be between 0 and 1")

    @classmethod
    def earliest(cls) -> "TieBreaker":
        return cls("earliest")

    @classmethod
    def favor_miner(cls, miner: int) -> "TieBreaker":
        return cls("favor_miner", miner=miner)

    @classmethod
    def favor_miner_prob(cls, miner: int, probability: float) -> "TieBreaker":
        return cls("favor_miner_prob", miner=miner, probability=probability)

    @classmethod
    def random(cls) -> "TieBreaker":
        return cls("random")

    def choose(self, view) -> int:
        """Returns one of `view.public_tips()` according to the rule."""
        tips = view.public_tips()
        if self.rule == "earliest" or len(tips) == 1:
            return tips[0]
        if self.rule == "random":
            return tips[view.choice(len(tips))]

        favored = next((b for b in tips if view.participant(b) == self.miner), None)
        if self.rule == "favor_miner":
            return tips[0] if favored is None else favored

        not_favored = next((b for b in tips if view.participant(b) != self.miner), None)
        if favored is None:
            return not_favored
        if not_favored is None:
            return favored
        return favored if view.uniform() < self.probability else not_favored
