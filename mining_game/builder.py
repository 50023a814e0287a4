"""Assembling, validating and running simulations."""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence, Union

import numpy as np

from .accounting import SimulationResult, TrialSummary
from .config import DEFAULT_ROUNDS, DEFAULT_TIE_BREAK, ParticipantSpec, SimulationConfig
from .engine import SimulationEngine
from .errors import InvalidConfiguration
from .power import PowerDistribution
from .randomness import ExternalRandomness
from .strategies import make_strategy
from .tree import CANONICAL_TIE_BREAKS

logger = logging.getLogger(__name__)


class SimulationBuilder:
    """
    Collects the parameters of a simulation and validates them in `build()`.

    Participants get ids in the order they are added, starting at 0::

        config = (
            SimulationBuilder()
            .add_participant("honest")
            .add_participant("selfish", publish_threshold=2)
            .participant_power(1, 0.4)
            .rounds(10_000)
            .seed(7)
            .build()
        )
    """

    def __init__(self) -> None:
        self._strategies: List[object] = []
        self._power = PowerDistribution.equal()
        self._rounds = DEFAULT_ROUNDS
        self._seed = None
        self._sequence: Optional[Sequence[int]] = None
        self._tie_break = DEFAULT_TIE_BREAK
        self._prune_interval: Optional[int] = None

    def add_participant(self, strategy: Union[str, object], **params) -> "SimulationBuilder":
        """Adds a participant using a strategy instance or a registered strategy name."""
        if isinstance(strategy, str):
            strategy = make_strategy(strategy, **params)
        elif params:
            raise InvalidConfiguration("strategy parameters are only accepted with a strategy name")
        self._strategies.append(strategy)
        return self

    def add_participants(self, count: int, strategy: Union[str, object], **params) -> "SimulationBuilder":
        for _ in range(count):
            self.add_participant(strategy, **params)
        return self

    def power(self, dist: PowerDistribution) -> "SimulationBuilder":
        self._power = dist
        return self

    def equal_power(self) -> "SimulationBuilder":
        return self.power(PowerDistribution.equal())

    def power_values(self, weights: Sequence[float]) -> "SimulationBuilder":
        return self.power(PowerDistribution.from_values(weights))

    def participant_power(self, participant: int, power: float) -> "SimulationBuilder":
        """Gives `participant` the given power and splits the rest equally."""
        return self.power(PowerDistribution.for_participant(participant, power))

    def rounds(self, rounds: int) -> "SimulationBuilder":
        self._rounds = rounds
        return self

    def seed(self, seed) -> "SimulationBuilder":
        self._seed = seed
        return self

    def external_randomness(self, sequence: Sequence[int]) -> "SimulationBuilder":
        """Replays `sequence` as the discoverer of each round instead of drawing one."""
        self._sequence = sequence
        return self

    def canonical_tie_break(self, rule: str) -> "SimulationBuilder":
        self._tie_break = rule
        return self

    def prune_every(self, rounds: Optional[int]) -> "SimulationBuilder":
        self._prune_interval = rounds
        return self

    def build(self) -> SimulationConfig:
        n = len(self._strategies)
        if n == 0:
            raise InvalidConfiguration("no participants were added")
        for strategy in self._strategies:
            if not all(hasattr(strategy, attr) for attr in ("decide", "initial_state", "tie_breaker_for", "name")):
                raise InvalidConfiguration(f"{strategy!r} does not implement the strategy interface")
        if self._rounds is None or self._rounds <= 0:
            raise InvalidConfiguration("number of rounds must be greater than 0")
        if self._tie_break not in CANONICAL_TIE_BREAKS:
            raise InvalidConfiguration(f"canonical tie break must be one of {CANONICAL_TIE_BREAKS}")
        if self._prune_interval is not None and self._prune_interval <= 0:
            raise InvalidConfiguration("prune interval must be greater than 0")

        weights = self._power.values(n)
        sequence = None
        if self._sequence is not None:
            sequence = tuple(int(x) for x in self._sequence)
            ExternalRandomness(sequence).validate(n)

        return SimulationConfig(
            participants=tuple(ParticipantSpec(s, w) for s, w in zip(self._strategies, weights)),
            round_limit=self._rounds,
            seed=self._seed,
            sequence=sequence,
            canonical_tie_break=self._tie_break,
            prune_interval=self._prune_interval,
        )


def run_simulation(config: SimulationConfig) -> SimulationResult:
    return SimulationEngine(config).run()


def trial_configs(config: SimulationConfig, trials: int) -> List[SimulationConfig]:
    """One config per trial, each with its own seed spawned from `config.seed`."""
    if trials <= 0:
        raise InvalidConfiguration("cannot run 0 trials")
    base = config.seed if isinstance(config.seed, np.random.SeedSequence) else np.random.SeedSequence(config.seed)
    return [replace(config, seed=child) for child in base.spawn(trials)]


def run_trials(config: SimulationConfig, trials: int, workers: Optional[int] = None) -> TrialSummary:
    """
    Runs `trials` independent simulations of `config`.

    Trials share nothing, so with `workers` > 1 they are spread over worker
    processes. Results are the same whatever the number of workers.
    """
    configs = trial_configs(config, trials)
    logger.info("running %d trials of %d rounds on %s worker(s)", trials, config.round_limit, workers or 1)

    if workers is not None and workers > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(run_simulation, configs))
    else:
        results = [run_simulation(c) for c in configs]

    return TrialSummary.from_results(config, results)
