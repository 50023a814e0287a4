import logging
from dataclasses import dataclass
from typing import Callable

import pytest

from mining_game import (
    Action,
    EngineStatus,
    ExhaustedRandomness,
    ExternalRandomness,
    Honest,
    SelfishMining,
    SimulationBuilder,
    SimulationEngine,
    SimulationError,
    TieBreaker,
)


@dataclass(frozen=True)
class Scripted:
    """Strategy whose decision is a plain function of the view and the mined blocks."""
    decision: Callable
    name: str = "Scripted"

    def tie_breaker_for(self, participant):
        return TieBreaker()

    def initial_state(self):
        return None

    def decide(self, view, state, mined):
        return self.decision(view, mined)


def test_round_order_and_records(run_sequence):
    engine = run_sequence([0, 1, 0], Honest(), Honest())
    assert [r.round for r in engine.records] == [1, 2, 3]
    assert [r.discoverer for r in engine.records] == [0, 1, 0]
    assert [a.participant for a in engine.records[1].actions] == [1, 0]
    assert [r.head_depth for r in engine.records] == [1, 2, 3]
    assert engine.status is EngineStatus.TERMINATED


def test_head_depth_never_decreases(selfish_builder):
    engine = SimulationEngine(selfish_builder.rounds(2000).build())
    engine.run()
    depths = [r.head_depth for r in engine.records]
    assert all(a <= b for a, b in zip(depths, depths[1:]))
    engine.tree.check_invariants()


def test_same_seed_same_run(selfish_builder):
    config = selfish_builder.rounds(1000).build()
    first, second = SimulationEngine(config).run(), SimulationEngine(config).run()
    assert first.records == second.records
    assert first.revenue_shares == second.revenue_shares


def test_same_sequence_same_run(run_sequence):
    sequence = [1, 0, 1, 1, 0, 0, 1, 0]
    first = run_sequence(sequence, Honest(), SelfishMining())
    second = run_sequence(sequence, Honest(), SelfishMining())
    assert first.records == second.records


def test_honest_only_chain_has_every_block():
    config = SimulationBuilder().add_participants(3, "honest").rounds(500).seed(3).build()
    result = SimulationEngine(config).run()
    assert result.canonical_length == 500
    assert sum(result.revenue_shares.values()) == pytest.approx(1.0)
    assert all(result.orphaned(p) == 0 for p in range(3))


def test_rejected_action_leaves_tree_untouched(run_sequence, caplog):
    adopt_own_private = Scripted(lambda view, mined: Action.adopt(*mined) if mined else Action.mine_on_public_head())
    with caplog.at_level(logging.WARNING, logger="mining_game.engine"):
        engine = run_sequence([1], Honest(), adopt_own_private)

    record = engine.records[0].actions[0]
    assert record.participant == 1
    assert record.rejected
    assert "not public" in record.error
    assert not engine.tree.is_public(engine.records[0].mined[0])
    assert engine.tree.canonical_head() == 0
    assert any("rejected action" in r.getMessage() for r in caplog.records)


def test_partially_invalid_publish_publishes_nothing(run_sequence):
    publish_with_missing = Scripted(lambda view, mined: Action.publish(*mined, 999) if mined else Action.mine_on_public_head())
    engine = run_sequence([1], Honest(), publish_with_missing)
    assert engine.records[0].actions[0].rejected
    assert not engine.tree.is_public(engine.records[0].mined[0])


def test_cannot_publish_someone_elses_private_block(run_sequence):
    private = SelfishMining()
    thief = Scripted(lambda view, mined: Action.publish(1))
    engine = run_sequence([0, 1], private, thief, Honest())
    rejected = [a for r in engine.records for a in r.actions if a.rejected]
    assert rejected and all(a.participant == 1 for a in rejected)
    assert not engine.tree.is_public(1)


def test_non_action_is_rejected(run_sequence):
    engine = run_sequence([0], Scripted(lambda view, mined: None), Honest())
    assert engine.records[0].actions[0].rejected


def test_rejected_discoverer_keeps_block_private_then_moves_on(run_sequence):
    engine = run_sequence([1, 0], Honest(), Scripted(lambda view, mined: None))
    assert engine.result().block_counts == {0: 1, 1: 0}


def test_exhausted_randomness_reports_progress():
    config = SimulationBuilder().add_participants(2, "honest").external_randomness([0, 1]).rounds(5).build()
    engine = SimulationEngine(config)
    with pytest.raises(ExhaustedRandomness) as excinfo:
        engine.run()
    assert excinfo.value.rounds_completed == 2
    assert engine.status is EngineStatus.TERMINATED
    assert engine.result().rounds == 2


def test_engine_runs_once(run_sequence):
    engine = run_sequence([0], Honest(), Honest())
    with pytest.raises(SimulationError):
        engine.run()
    with pytest.raises(SimulationError):
        engine.step()


def test_step_by_step():
    config = SimulationBuilder().add_participants(2, "honest").external_randomness([1, 1]).rounds(2).build()
    engine = SimulationEngine(config)
    record = engine.step()
    assert engine.status is EngineStatus.RUNNING
    assert record.mined == (1,)
    assert record.head == 1


def test_pruning_does_not_change_outcome(selfish_builder):
    plain = SimulationEngine(selfish_builder.rounds(3000).build()).run()
    pruned_engine = SimulationEngine(selfish_builder.prune_every(100).build())
    pruned = pruned_engine.run()

    assert pruned.revenue_shares == plain.revenue_shares
    assert pruned.tree.canonical_chain() == plain.tree.canonical_chain()
    assert len(pruned.tree) < len(plain.tree)
    pruned_engine.tree.check_invariants()


class CountingRandomness(ExternalRandomness):
    def __init__(self, sequence):
        super().__init__(sequence)
        self.choices = 0

    def choice(self, n):
        self.choices += 1
        return super().choice(n)


def test_follow_head_tie_is_broken_once_per_discovery():
    # Rounds 1-2 leave a public tie; participant 2 breaks it only when it mines in round 3.
    config = (
        SimulationBuilder()
        .add_participant(Honest())
        .add_participant(SelfishMining())
        .add_participant(Honest(TieBreaker.random()))
        .external_randomness([1, 0, 2])
        .rounds(3)
        .build()
    )
    randomness = CountingRandomness(config.sequence)
    engine = SimulationEngine(config, randomness)
    engine.step()
    engine.step()
    assert len(engine.tree.public_tips()) == 2
    assert engine.tree.tip(2) == engine.tree.canonical_head()
    assert randomness.choices == 0

    block = engine.step().mined[0]
    assert randomness.choices == 1
    assert engine.tree.parent(block) in (1, 2)
