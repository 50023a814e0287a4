"""Actions a strategy can propose for a round."""

import enum
from dataclasses import dataclass
from typing import Optional, Tuple


class ActionKind(enum.Enum):
    MINE_ON_PUBLIC_HEAD = "mine-on-public-head"
    MINE_ON_PRIVATE_TIP = "mine-on-private-tip"
    PUBLISH_PRIVATE_CHAIN = "publish-private-chain"
    ADOPT_PUBLIC_CHAIN = "adopt-public-chain"


@dataclass(frozen=True)
class Action:
    """
    A proposed action.

    Attributes:
        kind: What to do.
        blocks: Blocks the action refers to. For MINE_ON_PUBLIC_HEAD an explicit
            set of public blocks to extend, for MINE_ON_PRIVATE_TIP a visible
            block to extend instead of the current tip, for
            PUBLISH_PRIVATE_CHAIN the blocks to publish (with their ancestors),
            for ADOPT_PUBLIC_CHAIN the public block to adopt. Empty means the
            natural default: the public head, the private tip, the private tip
            and the canonical head respectively.
        window: For MINE_ON_PUBLIC_HEAD only: extend every live public tip
            within `window` blocks of the deepest public depth, resolved when a
            block is discovered.
    """
    kind: ActionKind
    blocks: Tuple[int, ...] = ()
    window: Optional[int] = None

    @classmethod
    def mine_on_public_head(cls, *blocks: int, window: Optional[int] = None) -> "Action":
        return cls(ActionKind.MINE_ON_PUBLIC_HEAD, tuple(blocks), window)

    @classmethod
    def mine_on_private_tip(cls, block: Optional[int] = None) -> "Action":
        return cls(ActionKind.MINE_ON_PRIVATE_TIP, () if block is None else (block,))

    @classmethod
    def publish(cls, *blocks: int) -> "Action":
        return cls(ActionKind.PUBLISH_PRIVATE_CHAIN, tuple(blocks))

    @classmethod
    def adopt(cls, block: Optional[int] = None) -> "Action":
        return cls(ActionKind.ADOPT_PUBLIC_CHAIN, () if block is None else (block,))

    def __str__(self) -> str:
        if self.window is not None:
            return f"{self.kind.value}(window={self.window})"
        if self.blocks:
            return f"{self.kind.value}({', '.join(map(str, self.blocks))})"
        return self.kind.value
