"""Exceptions raised while building or running a mining simulation."""

from typing import Optional


class SimulationError(Exception):
    """Base class for every error raised by the simulator."""


class InvalidConfiguration(SimulationError, ValueError):
    """The simulation could not be built from the given parameters."""


class UnknownParent(SimulationError, LookupError):
    """A block was appended under a parent that is not in the tree."""

    def __init__(self, parent_id: int) -> None:
        super().__init__(f"parent block {parent_id} is not in the tree")
        self.parent_id = parent_id


class InvalidAction(SimulationError):
    """A strategy referenced a block it cannot see, or proposed a malformed action."""


class ExhaustedRandomness(SimulationError):
    """An external randomness sequence ran out before the round limit."""

    def __init__(self, supplied: int, rounds_completed: Optional[int] = None) -> None:
        super().__init__(f"external randomness exhausted after {supplied} draws")
        self.supplied = supplied
        self.rounds_completed = supplied if rounds_completed is None else rounds_completed
