"""
The round loop.

Each round:
  1. the randomness source draws the discoverer;
  2. the discoverer's block (one per mining target) is appended, private,
     under the block(s) it is currently mining on;
  3. every participant decides, the discoverer first and then the others by
     ascending id; each action is applied before the next participant
     decides;
  4. a RoundRecord is appended.

Strategies never touch the tree. They return an Action, which the engine
validates against the participant's view and applies, or rejects as a no-op.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .accounting import RevenueAccountant, SimulationResult
from .actions import Action, ActionKind
from .config import SimulationConfig
from .errors import ExhaustedRandomness, InvalidAction, SimulationError
from .tree import BlockTree
from .view import ChainView

logger = logging.getLogger(__name__)


class EngineStatus(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass
class Participant:
    id: int
    power: float
    strategy: Any
    state: Any = None


@dataclass(frozen=True)
class ActionRecord:
    """A participant's action in a round; `error` is set when it was rejected."""
    participant: int
    action: Optional[Action]
    error: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class RoundRecord:
    round: int
    discoverer: int
    mined: Tuple[int, ...]
    actions: Tuple[ActionRecord, ...]
    head: int
    head_depth: int
    leads: Tuple[int, ...]


# How a participant picks the parent(s) of the next block it discovers.
FOLLOW_HEAD = "follow-head"
PRIVATE_TIP = "private-tip"
EXPLICIT = "explicit"
LIVE_TIPS = "live-tips"


@dataclass
class MiningTarget:
    mode: str = FOLLOW_HEAD
    blocks: Tuple[int, ...] = ()
    window: int = 0


class SimulationEngine:
    """
    Runs one simulation described by a SimulationConfig.

    The engine owns the block tree and the round log. `run()` may be called
    once; `step()` runs a single round and is handy for scripted scenarios.
    """

    def __init__(self, config: SimulationConfig, randomness=None) -> None:
        self.config = config
        self.tree = BlockTree(config.canonical_tie_break)
        self.randomness = config.make_randomness() if randomness is None else randomness
        self.participants: List[Participant] = [
            Participant(i, spec.power, spec.strategy, spec.strategy.initial_state())
            for i, spec in enumerate(config.participants)
        ]
        self.weights = list(config.weights)
        self.targets = {p.id: MiningTarget() for p in self.participants}
        self.records: List[RoundRecord] = []
        self.round = 0
        self.status = EngineStatus.IDLE

    # --------------------------------- Loop -----------------------------------

    def run(self) -> SimulationResult:
        if self.status is not EngineStatus.IDLE:
            raise SimulationError(f"cannot run an engine that is {self.status.value}")

        logger.info(
            "running %d rounds with %s",
            self.config.round_limit,
            ", ".join(f"{p.strategy.name} ({p.power:.3f})" for p in self.participants),
        )
        try:
            while self.round < self.config.round_limit:
                self.step()
        except ExhaustedRandomness as e:
            e.rounds_completed = self.round
            logger.error("randomness exhausted after %d rounds", self.round)
            raise
        finally:
            self.status = EngineStatus.TERMINATED

        result = self.result()
        logger.info(
            "finished %d rounds, canonical chain length %d, revenue %s",
            result.rounds,
            result.canonical_length,
            ", ".join(f"{p}: {s:.4f}" for p, s in result.revenue_shares.items()),
        )
        return result

    def step(self) -> RoundRecord:
        """Executes one round and returns its record."""
        if self.status is EngineStatus.TERMINATED:
            raise SimulationError("engine has terminated")
        self.status = EngineStatus.RUNNING

        round_index = self.round + 1
        discoverer = self.randomness.next_discoverer(self.weights)
        mined = self._discover(discoverer, round_index)

        order = [discoverer] + [p.id for p in self.participants if p.id != discoverer]
        actions = tuple(
            self._decide(self.participants[pid], mined if pid == discoverer else (), round_index)
            for pid in order
        )

        interval = self.config.prune_interval
        if interval and round_index % interval == 0:
            self._prune(round_index)

        head = self.tree.canonical_head()
        record = RoundRecord(
            round=round_index,
            discoverer=discoverer,
            mined=mined,
            actions=actions,
            head=head,
            head_depth=self.tree.depth(head),
            leads=tuple(self.tree.lead(p.id) for p in self.participants),
        )
        self.records.append(record)
        self.round = round_index
        return record

    def result(self) -> SimulationResult:
        """Revenue accounting over the rounds completed so far."""
        return RevenueAccountant(self.participants).compute(self.tree, self.records)

    # ------------------------------- Internals --------------------------------

    def _view(self, participant: int, round_index: int) -> ChainView:
        return ChainView(self.tree, participant, self.randomness, round_index)

    def _discover(self, pid: int, round_index: int) -> Tuple[int, ...]:
        target = self.targets[pid]
        if target.mode == FOLLOW_HEAD:
            strategy = self.participants[pid].strategy
            parents = (strategy.tie_breaker_for(pid).choose(self._view(pid, round_index)),)
        elif target.mode == PRIVATE_TIP:
            parents = (self.tree.tip(pid),)
        elif target.mode == EXPLICIT:
            parents = target.blocks
        else:
            parents = tuple(self.tree.live_tips(target.window))

        mined = tuple(self.tree.append(parent, pid, round_index) for parent in parents)
        self.tree.set_tip(pid, max(mined, key=lambda b: (self.tree.depth(b), -b)))
        logger.debug("round %d: participant %d mined %s on %s", round_index, pid, mined, parents)
        return mined

    def _decide(self, participant: Participant, mined: Tuple[int, ...], round_index: int) -> ActionRecord:
        view = self._view(participant.id, round_index)
        action = None
        try:
            action = participant.strategy.decide(view, participant.state, mined)
            self._apply(participant, action, view, round_index)
        except InvalidAction as e:
            logger.warning("round %d: rejected action %s of participant %d: %s",
                           round_index, action, participant.id, e)
            return ActionRecord(participant.id, action, str(e))
        return ActionRecord(participant.id, action)

    def _apply(self, participant: Participant, action: Action, view: ChainView, round_index: int) -> None:
        # Validate everything first so that a rejected action leaves no trace.
        pid = participant.id
        if not isinstance(action, Action):
            raise InvalidAction(f"participant {pid} returned {action!r} instead of an Action")
        for b in action.blocks:
            if not view.is_visible(b):
                raise InvalidAction(f"block {b} is not visible to participant {pid}")

        kind = action.kind
        if kind is not ActionKind.MINE_ON_PUBLIC_HEAD and action.window is not None:
            raise InvalidAction(f"{kind.value} does not take a window")

        if kind is ActionKind.MINE_ON_PUBLIC_HEAD:
            self._require_public(action.blocks)
            if action.window is not None:
                if action.blocks or action.window < 0:
                    raise InvalidAction("a live-tip window needs no blocks and must be non-negative")
                self.targets[pid] = MiningTarget(LIVE_TIPS, window=action.window)
                self.tree.set_tip(pid, self.tree.live_tips(action.window)[0])
            elif action.blocks:
                self.targets[pid] = MiningTarget(EXPLICIT, blocks=action.blocks)
                self.tree.set_tip(pid, max(action.blocks, key=lambda b: (self.tree.depth(b), -b)))
            else:
                # The tie breaker runs once, when the next block is discovered.
                self.targets[pid] = MiningTarget(FOLLOW_HEAD)
                self.tree.set_tip(pid, self.tree.canonical_head())

        elif kind is ActionKind.MINE_ON_PRIVATE_TIP:
            if len(action.blocks) > 1:
                raise InvalidAction("mining on a private tip takes at most one block")
            if action.blocks:
                self.tree.set_tip(pid, action.blocks[0])
            self.targets[pid] = MiningTarget(PRIVATE_TIP)

        elif kind is ActionKind.PUBLISH_PRIVATE_CHAIN:
            for b in action.blocks or (self.tree.tip(pid),):
                published = self.tree.publish(b, round_index)
                if published:
                    logger.debug("round %d: participant %d published %s", round_index, pid, published)

        elif kind is ActionKind.ADOPT_PUBLIC_CHAIN:
            if len(action.blocks) > 1:
                raise InvalidAction("adopting takes at most one block")
            self._require_public(action.blocks)
            if action.blocks:
                self.tree.set_tip(pid, action.blocks[0])
                self.targets[pid] = MiningTarget(PRIVATE_TIP)
            else:
                self.tree.set_tip(pid, self.tree.canonical_head())
                self.targets[pid] = MiningTarget(FOLLOW_HEAD)

        else:
            raise InvalidAction(f"unknown action kind {kind!r}")

    def _require_public(self, blocks: Tuple[int, ...]) -> None:
        for b in blocks:
            if not self.tree.is_public(b):
                raise InvalidAction(f"block {b} is not public")

    def _prune(self, round_index: int) -> None:
        live = [b for t in self.targets.values() for b in t.blocks]
        removed = self.tree.prune_stale(self.config.round_limit - round_index, live)
        if removed:
            logger.debug("round %d: pruned %d stale blocks", round_index, len(removed))
