import numpy as np
import pytest

from mining_game import (
    BlockTree,
    Honest,
    Participant,
    RevenueAccountant,
    SimulationBuilder,
    TrialSummary,
    honest_revenue,
    nsm_revenue,
    run_trials,
    selfish_revenue,
)


def participants(n):
    return [Participant(i, 1.0 / n, Honest()) for i in range(n)]


def test_revenue_follows_canonical_chain():
    tree = BlockTree()
    a = tree.append(0, 0, 1)
    b = tree.append(a, 1, 2)
    c = tree.append(b, 1, 3)
    orphan = tree.append(0, 2, 1)
    tree.publish(c)
    tree.publish(orphan)

    result = RevenueAccountant(participants(3)).compute(tree, [])
    assert result.block_counts == {0: 1, 1: 2, 2: 0}
    assert result.revenue_shares == pytest.approx({0: 1 / 3, 1: 2 / 3, 2: 0.0})
    assert result.canonical_length == 3
    assert result.blocks_published == 4
    assert result.strategies == ("Honest",) * 3


def test_empty_chain_has_zero_shares():
    result = RevenueAccountant(participants(2)).compute(BlockTree(), [])
    assert result.revenue_shares == {0: 0.0, 1: 0.0}
    assert result.rounds == 0


def test_shares_sum_to_one_and_relative_revenue(run_sequence):
    engine = run_sequence([0, 0, 1, 0], Honest(), Honest())
    result = engine.result()
    assert sum(result.revenue_shares.values()) == pytest.approx(1.0)
    assert result.blocks_mined == {0: 3, 1: 1}
    assert result.relative_revenue(0) == pytest.approx(0.75 / 0.5)


def test_honest_revenue_converges_to_power():
    config = SimulationBuilder().add_participants(3, "honest").rounds(5000).seed(11).build()
    summary = run_trials(config, trials=5)
    for p in range(3):
        assert summary.mean_share[p] == pytest.approx(1 / 3, abs=0.02)


def test_trial_summary_statistics():
    config = SimulationBuilder().add_participants(2, "honest").rounds(200).seed(5).build()
    summary = run_trials(config, trials=4)
    shares = np.array([r.revenue_shares[0] for r in summary.results])
    assert summary.trials == 4
    assert summary.rounds == 200
    assert summary.mean_chain_length == pytest.approx(np.mean([r.canonical_length for r in summary.results]))
    assert summary.mean_blocks_published == 200
    assert summary.mean_share[0] == pytest.approx(np.mean(shares))
    assert summary.std_share[0] == pytest.approx(np.std(shares))
    assert summary.min_share[0] <= summary.median_share[0] <= summary.max_share[0]
    assert TrialSummary.from_results(config, summary.results).mean_share == summary.mean_share


def test_ideal_curves():
    assert honest_revenue(0.3) == 0.3
    assert selfish_revenue(0.0) == 0.0
    # Profitability threshold of the attack without network advantage.
    assert selfish_revenue(1 / 3) == pytest.approx(1 / 3)
    assert selfish_revenue(0.4) == pytest.approx(0.4837, abs=1e-3)
    assert selfish_revenue(0.25, gamma=1.0) > 0.25
    assert nsm_revenue(0.0) == 0.0

    grid = np.linspace(0.0, 0.45, 10)
    assert selfish_revenue(grid).shape == grid.shape
    assert isinstance(nsm_revenue(0.3), float)
