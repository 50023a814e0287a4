import pytest

from mining_game import GENESIS_ID, BlockTree, InvalidConfiguration, UnknownParent


def chain(tree, parent, participant, length, publish=True):
    ids = []
    for i in range(length):
        parent = tree.append(parent, participant, i + 1)
        if publish:
            tree.publish(parent)
        ids.append(parent)
    return ids


def test_genesis_only():
    tree = BlockTree()
    assert len(tree) == 1
    assert tree.canonical_head() == GENESIS_ID
    assert tree.is_public(GENESIS_ID)
    assert tree.participant(GENESIS_ID) is None
    assert tree.canonical_chain() == [GENESIS_ID]
    assert tree.max_public_depth() == 0


def test_append_sets_depth_and_stays_private():
    tree = BlockTree()
    a = tree.append(GENESIS_ID, 0, 1)
    b = tree.append(a, 1, 2)
    assert (tree.depth(a), tree.depth(b)) == (1, 2)
    assert tree.parent(b) == a
    assert tree.children(a) == [b]
    assert not tree.is_public(b)
    assert tree.canonical_head() == GENESIS_ID
    tree.check_invariants()


def test_append_unknown_parent():
    tree = BlockTree()
    with pytest.raises(UnknownParent) as excinfo:
        tree.append(42, 0, 1)
    assert excinfo.value.parent_id == 42
    assert len(tree) == 1


def test_publish_includes_ancestors_and_is_idempotent():
    tree = BlockTree()
    a = tree.append(GENESIS_ID, 0, 1)
    b = tree.append(a, 0, 2)
    assert tree.publish(b, round=5) == [a, b]
    assert tree.is_public(a) and tree.is_public(b)
    assert tree.block(a).published_round == 5
    assert tree.publish(b) == []
    assert tree.canonical_head() == b


def test_canonical_head_prefers_earliest_published():
    tree = BlockTree()
    x = tree.append(GENESIS_ID, 1, 1)
    y = tree.append(GENESIS_ID, 0, 1)
    tree.publish(x)
    tree.publish(y)
    assert tree.public_tips() == [x, y]
    assert tree.canonical_head() == x


def test_canonical_head_lowest_participant_rule():
    tree = BlockTree("lowest_participant")
    x = tree.append(GENESIS_ID, 1, 1)
    y = tree.append(GENESIS_ID, 0, 1)
    tree.publish(x)
    tree.publish(y)
    assert tree.canonical_head() == y


def test_deeper_public_block_wins():
    tree = BlockTree()
    short = chain(tree, GENESIS_ID, 0, 1)
    long = chain(tree, GENESIS_ID, 1, 3)
    assert tree.canonical_head() == long[-1]
    assert tree.canonical_chain() == [GENESIS_ID] + long
    assert short[0] not in tree.canonical_chain()


def test_unknown_tie_break_rule():
    with pytest.raises(InvalidConfiguration):
        BlockTree("longest")


def test_lead_of_private_tip():
    tree = BlockTree()
    private = chain(tree, GENESIS_ID, 1, 3, publish=False)
    tree.set_tip(1, private[-1])
    assert tree.lead(1) == 3
    assert tree.lead(0) == 0
    chain(tree, GENESIS_ID, 0, 2)
    assert tree.lead(1) == 1


def test_live_tips_window():
    tree = BlockTree()
    main = chain(tree, GENESIS_ID, 0, 3)
    side = chain(tree, main[0], 1, 1)
    assert tree.live_tips(0) == [main[-1]]
    assert tree.live_tips(1) == [main[-1], side[0]]


def test_prune_removes_hopeless_forks():
    tree = BlockTree()
    main = chain(tree, GENESIS_ID, 0, 1)
    stale = chain(tree, GENESIS_ID, 1, 1)
    main += chain(tree, main[-1], 0, 4)

    assert tree.prune_stale(remaining_rounds=10) == []
    assert tree.prune_stale(remaining_rounds=1) == stale
    assert stale[0] not in tree
    assert tree.public_tips() == [main[-1]]
    assert len(tree) == 6
    tree.check_invariants()


def test_prune_keeps_participant_tips_and_their_ancestors():
    tree = BlockTree()
    stale = chain(tree, GENESIS_ID, 1, 2, publish=False)
    chain(tree, GENESIS_ID, 0, 6)
    tree.set_tip(1, stale[-1])
    assert tree.prune_stale(remaining_rounds=0) == []
    assert all(b in tree for b in stale)


def test_prune_keeps_live_blocks():
    tree = BlockTree()
    stale = chain(tree, GENESIS_ID, 1, 1)
    chain(tree, GENESIS_ID, 0, 6)
    assert tree.prune_stale(remaining_rounds=0, live=stale) == []


def test_check_invariants_catches_dangling_tip():
    tree = BlockTree()
    stale = chain(tree, GENESIS_ID, 1, 1)
    chain(tree, GENESIS_ID, 0, 4)
    tree.prune_stale(remaining_rounds=0)
    tree._tips[1] = stale[0]
    with pytest.raises(AssertionError):
        tree.check_invariants()
