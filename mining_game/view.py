"""What a participant is allowed to see of the block tree."""

from typing import List, Optional

from .errors import InvalidAction
from .tree import BlockTree


class ChainView:
    """
    Read-only view of a BlockTree for one participant.

    Exposes every public block plus the participant's own private blocks.
    Touching any other block raises InvalidAction, which the engine treats as
    a faulty decision for the round.
    """

    def __init__(self, tree: BlockTree, participant: int, randomness, round: int) -> None:
        self._tree = tree
        self._randomness = randomness
        self.participant_id = participant
        self.round = round

    def is_visible(self, block_id: int) -> bool:
        if not self._tree.contains(block_id):
            return False
        block = self._tree.block(block_id)
        return block.public or block.participant == self.participant_id

    def _visible(self, block_id: int):
        if not self.is_visible(block_id):
            raise InvalidAction(f"block {block_id} is not visible to participant {self.participant_id}")
        return self._tree.block(block_id)

    def depth(self, block_id: int) -> int:
        return self._visible(block_id).depth

    def parent(self, block_id: int) -> Optional[int]:
        return self._visible(block_id).parent

    def participant(self, block_id: int) -> Optional[int]:
        return self._visible(block_id).participant

    def is_public(self, block_id: int) -> bool:
        return self._visible(block_id).public

    def is_own(self, block_id: int) -> bool:
        return self._visible(block_id).participant == self.participant_id

    def canonical_head(self) -> int:
        return self._tree.canonical_head()

    def head_depth(self) -> int:
        return self._tree.max_public_depth()

    def public_tips(self) -> List[int]:
        return self._tree.public_tips()

    def live_tips(self, window: int = 0) -> List[int]:
        return self._tree.live_tips(window)

    def public_blocks(self) -> List[int]:
        return self._tree.public_blocks()

    def private_tip(self) -> int:
        return self._tree.tip(self.participant_id)

    def lead(self) -> int:
        """Depth of the private tip minus depth of the public head."""
        return self._tree.lead(self.participant_id)

    def uniform(self) -> float:
        return self._randomness.uniform()

    def choice(self, n: int) -> int:
        return self._randomness.choice(n)
