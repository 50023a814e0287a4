"""Turning a finished block tree into revenue figures."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Sequence, Tuple

import numpy as np

from .tree import BlockTree

if TYPE_CHECKING:
    from .config import SimulationConfig
    from .engine import Participant, RoundRecord


@dataclass(frozen=True)
class SimulationResult:
    """
    Outcome of one run.

    Attributes:
        rounds: Rounds executed.
        block_counts: Canonical-chain blocks per participant (genesis excluded).
        revenue_shares: block_counts divided by the canonical chain length.
        blocks_mined: Every block each participant discovered, canonical or not.
        power: Power weight per participant.
        strategies: Strategy name per participant.
        canonical_length: Number of non-genesis blocks on the canonical chain.
        blocks_published: Number of non-genesis public blocks in the final tree.
        tree: The final block tree.
        records: The full round log.
    """
    rounds: int
    block_counts: Dict[int, int]
    revenue_shares: Dict[int, float]
    blocks_mined: Dict[int, int]
    power: Tuple[float, ...]
    strategies: Tuple[str, ...]
    canonical_length: int
    blocks_published: int
    tree: BlockTree = field(repr=False, compare=False)
    records: Tuple["RoundRecord", ...] = field(repr=False)

    def orphaned(self, participant: int) -> int:
        """Blocks the participant mined that did not end up on the canonical chain."""
        return self.blocks_mined[participant] - self.block_counts[participant]

    def relative_revenue(self, participant: int) -> float:
        """Revenue share over power share; above 1 means the strategy paid off."""
        power = self.power[participant]
        return self.revenue_shares[participant] / power if power else 0.0


class RevenueAccountant:
    """Walks the canonical chain and credits each block to its owner."""

    def __init__(self, participants: Sequence["Participant"]) -> None:
        self.participants = list(participants)

    def compute(self, tree: BlockTree, records: Sequence["RoundRecord"]) -> SimulationResult:
        ids = [p.id for p in self.participants]
        counts = {pid: 0 for pid in ids}
        chain = tree.canonical_chain()[1:]
        for b in chain:
            counts[tree.participant(b)] += 1

        total = len(chain)
        shares = {pid: counts[pid] / total if total else 0.0 for pid in ids}

        mined = {pid: 0 for pid in ids}
        for record in records:
            mined[record.discoverer] += len(record.mined)

        return SimulationResult(
            rounds=len(records),
            block_counts=counts,
            revenue_shares=shares,
            blocks_mined=mined,
            power=tuple(p.power for p in self.participants),
            strategies=tuple(p.strategy.name for p in self.participants),
            canonical_length=total,
            blocks_published=sum(1 for b in tree if b.public) - 1,
            tree=tree,
            records=tuple(records),
        )


@dataclass(frozen=True)
class TrialSummary:
    """
    Repeated runs of one configuration and their revenue statistics.

    Shares are indexed by participant id.
    """
    config: "SimulationConfig" = field(repr=False)
    results: Tuple[SimulationResult, ...] = field(repr=False)
    mean_share: Dict[int, float]
    std_share: Dict[int, float]
    median_share: Dict[int, float]
    min_share: Dict[int, float]
    max_share: Dict[int, float]

    @classmethod
    def from_results(cls, config: "SimulationConfig", results: Sequence[SimulationResult]) -> "TrialSummary":
        n = config.num_participants
        shares = np.array([[r.revenue_shares[p] for p in range(n)] for r in results], dtype=float)

        def per_participant(values) -> Dict[int, float]:
            return {p: float(values[p]) for p in range(n)}

        return cls(
            config=config,
            results=tuple(results),
            mean_share=per_participant(np.mean(shares, axis=0)),
            std_share=per_participant(np.std(shares, axis=0)),
            median_share=per_participant(np.median(shares, axis=0)),
            min_share=per_participant(np.min(shares, axis=0)),
            max_share=per_participant(np.max(shares, axis=0)),
        )

    @property
    def trials(self) -> int:
        return len(self.results)

    @property
    def rounds(self) -> int:
        return self.config.round_limit

    @property
    def mean_blocks_published(self) -> float:
        return float(np.mean([r.blocks_published for r in self.results]))

    @property
    def mean_chain_length(self) -> float:
        return float(np.mean([r.canonical_length for r in self.results]))


# --------------------------- Ideal revenue curves ----------------------------

def honest_revenue(alpha):
    return alpha


def selfish_revenue(alpha, gamma: float = 0.0):
    """
    Long-run revenue share of a selfish miner with power `alpha` (Eyal and
    Sirer), where `gamma` is the fraction of honest power that mines on the
    selfish block during a race. Accepts floats or numpy arrays.
    """
    a = np.asarray(alpha, dtype=float)
    value = (a * (1 - a) ** 2 * (4 * a + gamma * (1 - 2 * a)) - a ** 3) / (1 - a * (1 + a * (2 - a)))
    return float(value) if value.ndim == 0 else value


def nsm_revenue(alpha):
    """Revenue share of the nothing-at-stake selfish miner of Ferreira and Weinberg."""
    a = np.asarray(alpha, dtype=float)
    value = (4 * a ** 2 - 8 * a ** 3 - a ** 4 + 7 * a ** 5 - 3 * a ** 6) / (
        1 - a - 2 * a ** 2 + 3 * a ** 4 - 3 * a ** 5 + a ** 6
    )
    return float(value) if value.ndim == 0 else value
