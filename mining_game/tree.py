"""The block tree shared by all participants of a simulation."""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import InvalidConfiguration, UnknownParent

GENESIS_ID = 0

# Rules for choosing the canonical head among equal-depth public blocks.
CANONICAL_TIE_BREAKS = ("earliest_published", "lowest_participant")


@dataclass(frozen=True)
class Block:
    """
    A discovered block.

    Attributes:
        id: Position in the tree's arena. Genesis is 0; ids grow with discovery order.
        participant: Owner, or None for the genesis block.
        parent: Parent id, None only for genesis.
        depth: Distance from genesis.
        round: Round in which the block was discovered.
        public: Whether the block has been published.
        published_round: Round of publication, None while private.
        publish_seq: Global publication order, used for "earliest published" ties.
    """
    id: int
    participant: Optional[int]
    parent: Optional[int]
    depth: int
    round: int
    public: bool = False
    published_round: Optional[int] = None
    publish_seq: Optional[int] = None


class BlockTree:
    """
    Arena of blocks with stable integer ids.

    The tree is append-only apart from `prune_stale`, and publication is a
    one-way private -> public transition. Publishing a block publishes all of
    its unpublished ancestors, so every public block has a public parent.
    """

    def __init__(self, tie_break: str = "earliest_published") -> None:
        if tie_break not in CANONICAL_TIE_BREAKS:
            raise InvalidConfiguration(
                f"canonical tie break must be one of {CANONICAL_TIE_BREAKS}, got {tie_break!r}"
            )
        self.tie_break = tie_break

        genesis = Block(GENESIS_ID, None, None, 0, 0, public=True, published_round=0, publish_seq=0)
        self._blocks: List[Optional[Block]] = [genesis]
        self._children: List[List[int]] = [[]]
        self._public_by_depth: List[List[int]] = [[GENESIS_ID]]
        self._tips: Dict[int, int] = {}
        self._publish_count = 1
        self._size = 1

    # ------------------------------- Accessors --------------------------------

    def __len__(self) -> int:
        return self._size

    def __contains__(self, block_id: int) -> bool:
        return self.contains(block_id)

    def __iter__(self) -> Iterator[Block]:
        return (b for b in self._blocks if b is not None)

    def contains(self, block_id: int) -> bool:
        return 0 <= block_id < len(self._blocks) and self._blocks[block_id] is not None

    def block(self, block_id: int) -> Block:
        if not self.contains(block_id):
            raise KeyError(f"block {block_id} is not in the tree")
        return self._blocks[block_id]

    def depth(self, block_id: int) -> int:
        return self.block(block_id).depth

    def parent(self, block_id: int) -> Optional[int]:
        return self.block(block_id).parent

    def participant(self, block_id: int) -> Optional[int]:
        return self.block(block_id).participant

    def is_public(self, block_id: int) -> bool:
        return self.block(block_id).public

    def children(self, block_id: int) -> List[int]:
        self.block(block_id)
        return list(self._children[block_id])

    def ancestors(self, block_id: int) -> List[int]:
        """Ids from genesis down to `block_id`, inclusive."""
        path = []
        curr: Optional[int] = block_id
        while curr is not None:
            path.append(curr)
            curr = self.block(curr).parent
        path.reverse()
        return path

    @property
    def next_id(self) -> int:
        return len(self._blocks)

    # ------------------------------- Mutation ---------------------------------

    def append(self, parent_id: int, participant: int, round: int) -> int:
        """Adds a private block under `parent_id` and returns its id."""
        if not self.contains(parent_id):
            raise UnknownParent(parent_id)
        parent = self._blocks[parent_id]

        block = Block(len(self._blocks), participant, parent_id, parent.depth + 1, round)
        if block.depth != parent.depth + 1:
            raise AssertionError(f"block {block.id} has inconsistent depth {block.depth}")

        self._blocks.append(block)
        self._children.append([])
        self._children[parent_id].append(block.id)
        self._size += 1
        return block.id

    def publish(self, block_id: int, round: Optional[int] = None) -> List[int]:
        """
        Publishes `block_id` together with its unpublished ancestors.

        Returns the ids that became public, oldest first. Publishing a public
        block is a no-op and returns an empty list.
        """
        pending = []
        curr = self.block(block_id)
        while not curr.public:
            pending.append(curr.id)
            curr = self._blocks[curr.parent]

        pending.reverse()
        for b in pending:
            self._mark_public(b, round)
        return pending

    def _mark_public(self, block_id: int, round: Optional[int]) -> None:
        block = self._blocks[block_id]
        self._blocks[block_id] = replace(
            block,
            public=True,
            published_round=block.round if round is None else round,
            publish_seq=self._publish_count,
        )
        self._publish_count += 1

        while len(self._public_by_depth) <= block.depth:
            self._public_by_depth.append([])
        self._public_by_depth[block.depth].append(block_id)

    # ------------------------------ Fork choice -------------------------------

    def max_public_depth(self) -> int:
        depth = len(self._public_by_depth) - 1
        while not self._public_by_depth[depth]:
            depth -= 1
        return depth

    def public_tips(self) -> List[int]:
        """Public blocks at the deepest public depth, in publication order."""
        return list(self._public_by_depth[self.max_public_depth()])

    def public_blocks(self) -> List[int]:
        """Every public block, shallowest first."""
        return [b for level in self._public_by_depth for b in level]

    def live_tips(self, window: int = 0) -> List[int]:
        """
        Public leaves (no public children) at most `window` blocks shallower
        than the deepest public block. Deepest first, then publication order.
        """
        top = self.max_public_depth()
        tips = []
        for depth in range(top, max(top - window, 0) - 1, -1):
            for b in self._public_by_depth[depth]:
                if not any(self._blocks[c].public for c in self._children[b]):
                    tips.append(b)
        return tips

    def canonical_head(self) -> int:
        tips = self._public_by_depth[self.max_public_depth()]
        if self.tie_break == "earliest_published":
            return tips[0]
        return min(tips, key=lambda b: (self._blocks[b].participant, self._blocks[b].publish_seq, b))

    def canonical_chain(self) -> List[int]:
        return self.ancestors(self.canonical_head())

    # ------------------------------ Participants ------------------------------

    def tip(self, participant: int) -> int:
        """The deepest block `participant` is currently extending."""
        return self._tips.get(participant, GENESIS_ID)

    def set_tip(self, participant: int, block_id: int) -> None:
        self.block(block_id)
        self._tips[participant] = block_id

    def lead(self, participant: int) -> int:
        return self.depth(self.tip(participant)) - self.max_public_depth()

    # -------------------------------- Pruning ---------------------------------

    def prune_stale(self, remaining_rounds: int, live: Iterable[int] = ()) -> List[int]:
        """
        Drops forks that can no longer become canonical.

        A subtree is removed when it contains no live block (participant tips,
        the canonical head and `live`) and its deepest block would stay short
        of the canonical depth even if every remaining round extended it.
        Returns the removed ids.
        """
        head = self.canonical_head()
        head_depth = self.depth(head)

        keep = set()
        for b in [head, *self._tips.values(), *live]:
            while b is not None and b not in keep and self.contains(b):
                keep.add(b)
                b = self._blocks[b].parent

        roots = [
            c for k in keep for c in self._children[k]
            if c not in keep and self._subtree_max_depth(c) + remaining_rounds < head_depth
        ]

        removed: List[int] = []
        for root in sorted(roots):
            self._children[self._blocks[root].parent].remove(root)
            removed.extend(self._remove_subtree(root))
        return removed

    def _subtree_max_depth(self, root: int) -> int:
        deepest = 0
        stack = [root]
        while stack:
            b = stack.pop()
            deepest = max(deepest, self._blocks[b].depth)
            stack.extend(self._children[b])
        return deepest

    def _remove_subtree(self, root: int) -> List[int]:
        removed = []
        stack = [root]
        while stack:
            b = stack.pop()
            block = self._blocks[b]
            stack.extend(self._children[b])
            if block.public:
                self._public_by_depth[block.depth].remove(b)
            self._blocks[b] = None
            self._children[b] = []
            self._size -= 1
            removed.append(b)
        return removed

    # ------------------------------- Checking ---------------------------------

    def check_invariants(self) -> None:
        """Raises AssertionError if the tree is not a connected, depth-consistent rooted tree."""
        for block in self:
            if block.id == GENESIS_ID:
                if block.parent is not None or block.depth != 0:
                    raise AssertionError("genesis must be a depth-0 root")
                continue
            if not self.contains(block.parent):
                raise AssertionError(f"block {block.id} has dangling parent {block.parent}")
            parent = self._blocks[block.parent]
            if block.depth != parent.depth + 1:
                raise AssertionError(f"block {block.id} depth {block.depth} != parent depth + 1")
            if block.id not in self._children[parent.id]:
                raise AssertionError(f"block {block.id} missing from its parent's children")
            if block.public and not parent.public:
                raise AssertionError(f"public block {block.id} has a private parent")
        for participant, b in self._tips.items():
            if not self.contains(b):
                raise AssertionError(f"tip {b} of participant {participant} is not in the tree")
