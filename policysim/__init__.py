"""Policy-intervention health simulator.

This package projects health-outcome trajectories for a vector of policy
intervention levels, values the outcomes economically and provides the
analytical tooling around it: sensitivity and cost-effectiveness analyses,
compartmental disease models, health-economic evaluation and causal-effect
estimation.

Each submodule exposes pure functions (or per-call model objects) that
accept typed pydantic parameter models.  :class:`SimulationEngine` in
`aggregate.py` composes them into a full scenario run.
"""

from .params import (
    EngineSettings,
    Intervention,
    InterventionCatalog,
    OutcomeDefinition,
    SimulationRequest,
    TrajectoryParams,
    ValuationParams,
)
from .catalog import default_catalog
from .sim_1_effects import ActiveSynergy, adoption, compose_effect, detect_synergies, diminishing_returns
from .sim_2_trajectories import ProjectedOutcome, generate_trajectory, trajectory_frame
from .economics import EconomicImpact, economic_impact, irr, npv, payback_period
from .aggregate import SimulationEngine, SimulationResult, run_enhanced_simulation, run_simulation

__all__ = [
    "EngineSettings",
    "Intervention",
    "InterventionCatalog",
    "OutcomeDefinition",
    "SimulationRequest",
    "TrajectoryParams",
    "ValuationParams",
    "default_catalog",
    "ActiveSynergy",
    "adoption",
    "compose_effect",
    "detect_synergies",
    "diminishing_returns",
    "ProjectedOutcome",
    "generate_trajectory",
    "trajectory_frame",
    "EconomicImpact",
    "economic_impact",
    "npv",
    "irr",
    "payback_period",
    "SimulationEngine",
    "SimulationResult",
    "run_simulation",
    "run_enhanced_simulation",
]
