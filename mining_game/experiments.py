"""
Power sweeps pitting one strategy against honest miners.

    python -m mining_game selfish --rounds 10000 --trials 50 --plot results/selfish.png
    python -m mining_game n-deficit --n 2 --gamma 0.5 --csv

Participant 0 is honest; participant 1 runs the chosen strategy and its power
is swept over the requested range.
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional, Sequence

import numpy as np

from .accounting import TrialSummary, honest_revenue, selfish_revenue
from .builder import SimulationBuilder, run_trials
from .report import format_summaries, plot_power_sweep
from .strategies import STRATEGIES, Honest, make_strategy
from .ties import TieBreaker

logger = logging.getLogger(__name__)

ATTACKER = 1


def sweep_power(
    make_builder: Callable[[], SimulationBuilder],
    participant: int,
    powers: Sequence[float],
    trials: int,
    workers: Optional[int] = None,
) -> List[TrialSummary]:
    """Runs `trials` simulations for every power value of `participant`."""
    summaries = []
    for power in powers:
        config = make_builder().participant_power(participant, float(power)).build()
        summary = run_trials(config, trials, workers)
        logger.info(
            "participant %d power %.3f: revenue %.4f ± %.4f",
            participant, power, summary.mean_share[participant], summary.std_share[participant],
        )
        summaries.append(summary)
    return summaries


def attacker_strategy(args):
    if args.strategy == "selfish":
        return make_strategy("selfish", publish_threshold=args.threshold)
    if args.strategy in ("n-deficit", "n-deficit-eager"):
        return make_strategy(args.strategy, n=args.n, publish_threshold=args.threshold)
    if args.strategy == "nothing-at-stake":
        return make_strategy("nothing-at-stake", window=args.window)
    if args.strategy == "honest-forking":
        return make_strategy("honest-forking", p=args.p)
    return make_strategy(args.strategy)


def ideal_curve(args):
    if args.strategy == "selfish":
        return lambda a: selfish_revenue(a, args.gamma)
    # Nothing-at-stake publishes every block at once, so it earns its power share.
    if args.strategy in ("honest", "nothing-at-stake"):
        return honest_revenue
    return None


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="mining_game", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("strategy", choices=sorted(STRATEGIES), help="strategy of participant 1")
    parser.add_argument("--start", type=float, default=0.0, help="lowest swept power")
    parser.add_argument("--stop", type=float, default=0.5, help="highest swept power")
    parser.add_argument("--step", type=float, default=0.05, help="power increment")
    parser.add_argument("--rounds", type=int, default=10_000)
    parser.add_argument("--trials", type=int, default=20)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None, help="worker processes for trials")
    parser.add_argument("--gamma", type=float, default=0.0,
                        help="share of honest power mining on the attacker's block in a race")
    parser.add_argument("--threshold", type=int, default=2, help="publish threshold of withholding strategies")
    parser.add_argument("--n", type=int, default=1, help="deficit bound of the n-deficit strategy")
    parser.add_argument("--window", type=int, default=0, help="live-tip window of nothing-at-stake")
    parser.add_argument("--p", type=float, default=0.25, help="forking probability of honest-forking")
    parser.add_argument("--prune-every", type=int, default=None)
    parser.add_argument("--csv", action="store_true", help="print CSV instead of a table")
    parser.add_argument("--plot", default=None, help="save a revenue plot to this PNG path")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    attacker = attacker_strategy(args)
    honest = Honest(TieBreaker.favor_miner_prob(ATTACKER, args.gamma)) if args.gamma > 0 else Honest()

    def make_builder() -> SimulationBuilder:
        return (
            SimulationBuilder()
            .add_participant(honest)
            .add_participant(attacker)
            .rounds(args.rounds)
            .seed(args.seed)
            .prune_every(args.prune_every)
        )

    powers = np.arange(args.start, args.stop + args.step / 2, args.step)
    summaries = sweep_power(make_builder, ATTACKER, powers, args.trials, args.workers)

    ideal = ideal_curve(args)
    print(format_summaries(summaries, "csv" if args.csv else "pretty", participant=ATTACKER, ideal=ideal))

    if args.plot:
        path = plot_power_sweep(summaries, ATTACKER, args.plot, ideal=ideal)
        print(f"Plot saved to: {path}", file=sys.stderr)
    return 0
