"""Simulating strategic block withholding in proof-of-work and proof-of-stake mining games."""

from .accounting import (
    RevenueAccountant,
    SimulationResult,
    TrialSummary,
    honest_revenue,
    nsm_revenue,
    selfish_revenue,
)
from .actions import Action, ActionKind
from .builder import SimulationBuilder, run_simulation, run_trials
from .config import ParticipantSpec, SimulationConfig
from .engine import ActionRecord, EngineStatus, Participant, RoundRecord, SimulationEngine
from .errors import (
    ExhaustedRandomness,
    InvalidAction,
    InvalidConfiguration,
    SimulationError,
    UnknownParent,
)
from .power import PowerDistribution
from .randomness import ExternalRandomness, SeededRandomness
from .strategies import (
    STRATEGIES,
    Honest,
    HonestForking,
    NDeficit,
    NDeficitEager,
    Noise,
    NothingAtStake,
    SelfishMining,
    Strategy,
    make_strategy,
)
from .ties import TieBreaker
from .tree import GENESIS_ID, Block, BlockTree
from .view import ChainView

__version__ = "0.1.0"
