"""
Mining strategies.

A strategy is a small immutable configuration object plus a separate mutable
private-state object created by `initial_state()`. Each round the engine
calls `decide(view, state, mined)` for every participant, where `mined` holds
the ids of the blocks the participant discovered this round (empty otherwise),
and applies the returned Action.

Withholding strategies reason about the *lead*: depth of their private tip
minus depth of the public head.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional, Protocol, Tuple

from .actions import Action
from .errors import InvalidConfiguration
from .ties import TieBreaker
from .view import ChainView


class Strategy(Protocol):
    """Decision contract shared by every strategy."""

    @property
    def name(self) -> str: ...

    def tie_breaker_for(self, participant: int) -> TieBreaker: ...

    def initial_state(self) -> Any: ...

    def decide(self, view: ChainView, state: Any, mined: Tuple[int, ...]) -> Action: ...


# --------------------------------- Honest ------------------------------------

@dataclass(frozen=True)
class Honest:
    """Publishes every block at once and always mines on the public head."""
    tie_breaker: TieBreaker = field(default_factory=TieBreaker)

    @property
    def name(self) -> str:
        return "Honest"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return self.tie_breaker

    def initial_state(self) -> None:
        return None

    def decide(self, view: ChainView, state: None, mined: Tuple[int, ...]) -> Action:
        if mined:
            return Action.publish(*mined)
        return Action.mine_on_public_head()


@dataclass(frozen=True)
class HonestForking:
    """
    An honest miner that, with probability `p`, mines one block behind the
    public head instead of on it.
    """
    p: float = 0.0
    tie_breaker: TieBreaker = field(default_factory=TieBreaker)

    def __post_init__(self) -> None:
        if not 0.0 <= self.p <= 1.0:
            raise InvalidConfiguration("forking probability must be between 0 and 1")

    @property
    def name(self) -> str:
        return f"Honest Forking, p={self.p}"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return self.tie_breaker

    def initial_state(self) -> None:
        return None

    def decide(self, view: ChainView, state: None, mined: Tuple[int, ...]) -> Action:
        if mined:
            return Action.publish(*mined)
        if self.p > 0.0 and view.uniform() < self.p:
            parent = view.parent(self.tie_breaker.choose(view))
            if parent is not None:
                return Action.mine_on_public_head(parent)
        return Action.mine_on_public_head()


# ------------------------------ Nothing at stake -----------------------------

@dataclass(frozen=True)
class NothingAtStake:
    """
    A staker for whom mining is free: it extends every live public tip within
    `window` blocks of the deepest public depth, and publishes what it finds.
    """
    window: int = 0
    tie_breaker: TieBreaker = field(default_factory=TieBreaker)

    def __post_init__(self) -> None:
        if self.window < 0:
            raise InvalidConfiguration("nothing-at-stake window must be non-negative")

    @property
    def name(self) -> str:
        return "Nothing-at-Stake" if self.window == 0 else f"Nothing-at-Stake, window={self.window}"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return self.tie_breaker

    def initial_state(self) -> None:
        return None

    def decide(self, view: ChainView, state: None, mined: Tuple[int, ...]) -> Action:
        if mined:
            return Action.publish(*mined)
        return Action.mine_on_public_head(window=self.window)


# ---------------------------------- Noise ------------------------------------

@dataclass(frozen=True)
class Noise:
    """
    Publishes every block at once, on a parent drawn uniformly from all
    published blocks. Models stale or badly connected miners.
    """

    @property
    def name(self) -> str:
        return "Noise"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return TieBreaker()

    def initial_state(self) -> None:
        return None

    def decide(self, view: ChainView, state: None, mined: Tuple[int, ...]) -> Action:
        if mined:
            return Action.publish(*mined)
        blocks = view.public_blocks()
        return Action.mine_on_public_head(blocks[view.choice(len(blocks))])


# ------------------------------ Withholding ----------------------------------

@dataclass
class WithholdingState:
    """
    Private state of the withholding strategies.

    Attributes:
        hidden: Own unpublished blocks, oldest first.
        public_depth: Public head depth expected after the last decision; a
            deeper head means a competitor published.
        racing: Our branch ties the public head after a match.
        contested: A competitor caught up with or overtook our hidden branch
            and we kept mining on it anyway (N-deficit only).
    """
    hidden: Deque[int] = field(default_factory=deque)
    public_depth: int = 0
    racing: bool = False
    contested: bool = False


def _withhold(state: WithholdingState, head_depth: int) -> Action:
    state.public_depth = head_depth
    return Action.mine_on_private_tip()


def _publish_all(state: WithholdingState, lead: int, head_depth: int) -> Action:
    block = state.hidden[-1]
    state.hidden.clear()
    state.racing = lead == 0
    state.contested = False
    state.public_depth = head_depth + max(lead, 0)
    return Action.publish(block)


def _concede(state: WithholdingState, head_depth: int) -> Action:
    state.hidden.clear()
    state.racing = False
    state.contested = False
    state.public_depth = head_depth
    return Action.adopt()


def _reveal(view: ChainView, state: WithholdingState, head_depth: int) -> Action:
    # Publish the withheld blocks that are no deeper than the public head.
    last = None
    while state.hidden and view.depth(state.hidden[0]) <= head_depth:
        last = state.hidden.popleft()
    if last is None:
        return _withhold(state, head_depth)
    state.public_depth = head_depth
    return Action.publish(last)


@dataclass(frozen=True)
class SelfishMining:
    """
    Selfish mining as described by Eyal and Sirer.

    Attributes:
        publish_threshold: When a competing block leaves the lead at 0 the
            whole private chain is published to race; when it leaves the lead
            above 0 but below this threshold, the whole chain is published to
            override. Otherwise only the blocks up to the public depth are
            revealed. 2 reproduces the original attack.
        cement_lead: If set, publish everything as soon as the lead reaches it.
        tie_breaker: Defaults to favouring the participant's own blocks.
    """
    publish_threshold: int = 2
    cement_lead: Optional[int] = None
    tie_breaker: Optional[TieBreaker] = None

    def __post_init__(self) -> None:
        if self.publish_threshold < 1:
            raise InvalidConfiguration("publish threshold must be at least 1")
        if self.cement_lead is not None and self.cement_lead < 1:
            raise InvalidConfiguration("cement lead must be at least 1")

    @property
    def name(self) -> str:
        return "Selfish" if self.publish_threshold == 2 else f"Selfish, threshold={self.publish_threshold}"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return self.tie_breaker or TieBreaker.favor_miner(participant)

    def initial_state(self) -> WithholdingState:
        return WithholdingState()

    def decide(self, view: ChainView, state: WithholdingState, mined: Tuple[int, ...]) -> Action:
        head_depth = view.head_depth()
        moved = head_depth > state.public_depth
        racing, state.racing = state.racing, False

        if mined:
            state.hidden.append(mined[-1])

        if not state.hidden:
            state.public_depth = head_depth
            if racing and not moved:
                # Keep mining on our branch of the tie.
                state.racing = True
                return Action.mine_on_private_tip()
            return Action.mine_on_public_head()

        lead = view.depth(state.hidden[-1]) - head_depth
        if lead < 0:
            return _concede(state, head_depth)

        if mined:
            if racing or (self.cement_lead is not None and lead >= self.cement_lead):
                return _publish_all(state, lead, head_depth)
            return _withhold(state, head_depth)

        if not moved:
            return _withhold(state, head_depth)
        if lead < self.publish_threshold:
            return _publish_all(state, lead, head_depth)
        return _reveal(view, state, head_depth)


@dataclass(frozen=True)
class NDeficit:
    """
    The N-deficit family: selfish mining that keeps extending its hidden
    branch after a competitor ties or overtakes it, as long as it trails by
    fewer than `n` blocks.

    The lead is bounded by `n` as well: whenever a discovery would put the
    private chain more than `n` blocks ahead, the whole chain is published.
    """
    n: int = 1
    publish_threshold: int = 2
    tie_breaker: Optional[TieBreaker] = None

    # Race with a matching hidden block instead of withholding it.
    eager = False

    def __post_init__(self) -> None:
        if self.n < 1:
            raise InvalidConfiguration("n must be at least 1")
        if self.publish_threshold < 1:
            raise InvalidConfiguration("publish threshold must be at least 1")

    @property
    def name(self) -> str:
        return f"{self.n}-Deficit"

    def tie_breaker_for(self, participant: int) -> TieBreaker:
        return self.tie_breaker or TieBreaker.favor_miner(participant)

    def initial_state(self) -> WithholdingState:
        return WithholdingState()

    def decide(self, view: ChainView, state: WithholdingState, mined: Tuple[int, ...]) -> Action:
        head_depth = view.head_depth()
        moved = head_depth > state.public_depth

        if mined:
            state.hidden.append(mined[-1])

        if not state.hidden:
            state.contested = False
            state.public_depth = head_depth
            return Action.mine_on_public_head()

        lead = view.depth(state.hidden[-1]) - head_depth
        if -lead >= self.n:
            return _concede(state, head_depth)
        if lead > self.n:
            return _publish_all(state, lead, head_depth)

        if mined:
            if state.contested and lead >= 1:
                return _publish_all(state, lead, head_depth)
            return _withhold(state, head_depth)

        if not moved:
            return _withhold(state, head_depth)
        if lead == 0 and self.eager:
            return _publish_all(state, lead, head_depth)
        if lead <= 0:
            state.contested = True
            return _withhold(state, head_depth)
        if lead < self.publish_threshold:
            return _publish_all(state, lead, head_depth)
        return _reveal(view, state, head_depth)


@dataclass(frozen=True)
class NDeficitEager(NDeficit):
    """
    N-deficit mining that races instead of withholding: when a competitor
    publishes a block at the height of its hidden tip, it announces its own.
    """
    eager = True

    @property
    def name(self) -> str:
        return f"{self.n}-Deficit Eager"


# -------------------------------- Registry -----------------------------------

STRATEGIES: Dict[str, type] = {
    "honest": Honest,
    "honest-forking": HonestForking,
    "selfish": SelfishMining,
    "nothing-at-stake": NothingAtStake,
    "n-deficit": NDeficit,
    "n-deficit-eager": NDeficitEager,
    "noise": Noise,
}


def make_strategy(name: str, **params) -> Strategy:
    """Creates a registered strategy by name, e.g. `make_strategy("n-deficit", n=2)`."""
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise InvalidConfiguration(
            f"unknown strategy {name!r}, expected one of {sorted(STRATEGIES)}"
        ) from None
    try:
        return cls(**params)
    except TypeError as e:
        raise InvalidConfiguration(f"bad parameters for strategy {name!r}: {e}") from e
