import pytest

from mining_game import SimulationBuilder, SimulationEngine


@pytest.fixture
def run_sequence():
    """Runs one engine over a scripted sequence of discoverers and returns it."""

    def run(sequence, *strategies, tie_break="earliest_published"):
        builder = SimulationBuilder()
        for strategy in strategies:
            builder.add_participant(strategy)
        config = (
            builder.external_randomness(sequence)
            .rounds(len(sequence))
            .canonical_tie_break(tie_break)
            .build()
        )
        engine = SimulationEngine(config)
        engine.run()
        return engine

    return run


@pytest.fixture
def selfish_builder():
    """Honest participant 0 against a selfish participant 1 with 40% of the power."""
    return (
        SimulationBuilder()
        .add_participant("honest")
        .add_participant("selfish", publish_threshold=2)
        .participant_power(1, 0.4)
        .rounds(10_000)
        .seed(2024)
    )
