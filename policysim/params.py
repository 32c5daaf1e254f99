# MIT License
"""Data models for the policy-intervention simulator.

All data models are defined using [`pydantic.BaseModel`](https://docs.pydantic.dev/)
to provide type checking, validation and JSON serialisation.  The
:class:`InterventionCatalog` holds the static intervention definitions and
is validated once when it is built: degenerate ranges, dangling references
and duplicate synergy edges are rejected here and never at compute time.

Run-time inputs live in :class:`SimulationRequest`; the tunable constants of
the trajectory generator and the economic valuator live in
:class:`TrajectoryParams` and :class:`ValuationParams`.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic import field_serializer, field_validator, model_validator

InterventionCategory = Literal[
    "prevention",
    "screening",
    "treatment",
    "infrastructure",
    "workforce",
    "digital",
    "behavioral",
    "fiscal",
]

ScalingFunction = Literal["linear", "logarithmic", "sigmoid"]

MAX_HORIZON_YEARS = 50


class SynergyEdge(BaseModel):
    """A declared multiplicative boost when two interventions are both active."""

    model_config = ConfigDict(frozen=True)

    partner: str = Field(..., description="Id of the partner intervention")
    multiplier: float = Field(1.0, ge=1.0, le=10.0, description="Effect multiplier applied to both endpoints")
    description: str = Field("", description="Why the two interventions reinforce each other")


class ImpactCoefficient(BaseModel):
    """Effect of one intervention on one outcome.

    Attributes
    ----------
    outcome:
        Id of the affected outcome; must exist in the catalog.
    base_effect:
        Fractional change in the outcome when the intervention moves across
        its whole range (e.g. -0.12 for a 12% reduction).
    diminishing_threshold:
        Level above which marginal benefit is attenuated.
    demographic_weights:
        Relative responsiveness per age band.  Descriptive only.
    """

    model_config = ConfigDict(frozen=True)

    outcome: str
    base_effect: float = Field(..., ge=-1.0, le=1.0)
    diminishing_threshold: float
    demographic_weights: Dict[str, float] = Field(default_factory=dict)


class Intervention(BaseModel):
    """A single policy lever with its range, cost and impact coefficients."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    category: InterventionCategory
    subcategory: str = ""
    description: str = ""
    unit: str = ""
    min_level: float
    max_level: float
    baseline: float
    step: float = Field(1.0, gt=0.0)
    cost_per_unit: float = Field(0.0, description="Billions per full-range move; negative means revenue")
    scaling_function: ScalingFunction = "linear"
    prerequisites: Tuple[str, ...] = ()
    synergies: Tuple[SynergyEdge, ...] = ()
    conflicts: Tuple[str, ...] = ()
    implementation_delay: float = Field(0.0, ge=0.0, le=50.0, description="Years before any effect appears")
    ramp_up_period: float = Field(1.0, gt=0.0, le=50.0, description="Years from first effect to full adoption")
    impacts: Tuple[ImpactCoefficient, ...] = ()

    @model_validator(mode="after")
    def _check_range(self) -> "Intervention":
        if not self.min_level < self.max_level:
            raise ValueError(
                f"intervention {self.id!r}: min_level must be strictly below max_level "
                f"(got {self.min_level} and {self.max_level})"
            )
        if not self.min_level <= self.baseline <= self.max_level:
            raise ValueError(f"intervention {self.id!r}: baseline {self.baseline} outside [{self.min_level}, {self.max_level}]")
        return self

    @field_validator("impacts")
    @classmethod
    def _one_impact_per_outcome(cls, v):
        seen = set()
        for impact in v:
            if impact.outcome in seen:
                raise ValueError(f"duplicate impact record for outcome {impact.outcome!r}")
            seen.add(impact.outcome)
        return v

    @property
    def span(self) -> float:
        return self.max_level - self.min_level


class OutcomeDefinition(BaseModel):
    """An enumerated health or economic metric tracked by the simulator."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    label: str = ""
    baseline_value: float
    higher_is_better: bool = Field(False, description="Polarity: True for life expectancy-like metrics")
    optimal_ratio: float = Field(1.0, gt=0.0, description="Reference-optimal target as a multiple of the baseline")


class ProvinceMultipliers(BaseModel):
    """Fixed per-province effectiveness multipliers."""

    model_config = ConfigDict(frozen=True)

    urban: float = Field(1.0, gt=0.0, le=5.0)
    digital: float = Field(1.0, gt=0.0, le=5.0)
    screening: float = Field(1.0, gt=0.0, le=5.0)

    @property
    def average(self) -> float:
        return (self.urban + self.digital + self.screening) / 3.0


class InterventionCatalog(BaseModel):
    """Immutable set of interventions, outcomes and provinces.

    Cross references (synergy partners, prerequisites, conflicts and impact
    outcomes) are checked here.  A synergy edge between the same unordered
    pair may be declared from both sides only if the multipliers agree; the
    two declarations then describe one edge.

    Id lookups and the per-outcome impact index are built once at load time.
    ``provinces`` is exposed as a read-only mapping.
    """

    model_config = ConfigDict(frozen=True)

    interventions: Tuple[Intervention, ...]
    outcomes: Tuple[OutcomeDefinition, ...]
    provinces: Mapping[str, ProvinceMultipliers] = Field(default_factory=dict)
    start_year: int = Field(2025, ge=1900, le=2200)

    _by_id: Dict[str, Intervention] = PrivateAttr(default_factory=dict)
    _outcome_by_id: Dict[str, OutcomeDefinition] = PrivateAttr(default_factory=dict)
    _impacts: Dict[str, Tuple[Tuple[Intervention, ImpactCoefficient], ...]] = PrivateAttr(default_factory=dict)

    @field_validator("provinces")
    @classmethod
    def _read_only_provinces(cls, v):
        return MappingProxyType(dict(v))

    @field_serializer("provinces")
    def _dump_provinces(self, v):
        return dict(v)

    def model_post_init(self, __context: Any) -> None:
        self._by_id = {i.id: i for i in self.interventions}
        self._outcome_by_id = {o.id: o for o in self.outcomes}
        impacts: Dict[str, List[Tuple[Intervention, ImpactCoefficient]]] = {o.id: [] for o in self.outcomes}
        for itv in self.interventions:
            for impact in itv.impacts:
                impacts.setdefault(impact.outcome, []).append((itv, impact))
        self._impacts = {k: tuple(v) for k, v in impacts.items()}

    @model_validator(mode="after")
    def _check_references(self) -> "InterventionCatalog":
        ids = [i.id for i in self.interventions]
        if len(set(ids)) != len(ids):
            dupes = sorted({x for x in ids if ids.count(x) > 1})
            raise ValueError(f"duplicate intervention ids: {dupes}")
        outcome_ids = [o.id for o in self.outcomes]
        if len(set(outcome_ids)) != len(outcome_ids):
            raise ValueError("duplicate outcome ids")
        known, known_outcomes = set(ids), set(outcome_ids)

        edges: Dict[frozenset, Tuple[str, str, float]] = {}
        for itv in self.interventions:
            for ref in itv.prerequisites:
                if ref not in known:
                    raise ValueError(f"intervention {itv.id!r}: unknown prerequisite {ref!r}")
            for ref in itv.conflicts:
                if ref not in known:
                    raise ValueError(f"intervention {itv.id!r}: unknown conflict {ref!r}")
            for impact in itv.impacts:
                if impact.outcome not in known_outcomes:
                    raise ValueError(f"intervention {itv.id!r}: unknown outcome {impact.outcome!r}")
            for edge in itv.synergies:
                if edge.partner not in known:
                    raise ValueError(f"intervention {itv.id!r}: unknown synergy partner {edge.partner!r}")
                if edge.partner == itv.id:
                    raise ValueError(f"intervention {itv.id!r}: synergy with itself")
                pair = frozenset((itv.id, edge.partner))
                if pair in edges:
                    owner, _, multiplier = edges[pair]
                    if owner == itv.id:
                        raise ValueError(f"duplicate synergy edge {itv.id!r} -> {edge.partner!r}")
                    if multiplier != edge.multiplier:
                        raise ValueError(
                            f"conflicting synergy multipliers for {sorted(pair)}: {multiplier} vs {edge.multiplier}"
                        )
                else:
                    edges[pair] = (itv.id, edge.partner, edge.multiplier)
        return self

    def get(self, intervention_id: str) -> Intervention:
        return self._by_id[intervention_id]

    def outcome(self, outcome_id: str) -> OutcomeDefinition:
        return self._outcome_by_id[outcome_id]

    def impacts_on(self, outcome: str) -> Tuple[Tuple[Intervention, ImpactCoefficient], ...]:
        """(intervention, impact) pairs affecting ``outcome``, in catalog order."""
        return self._impacts.get(outcome, ())

    def by_category(self, category: str) -> List[Intervention]:
        return [i for i in self.interventions if i.category == category]

    def baseline_levels(self) -> Dict[str, float]:
        return {i.id: i.baseline for i in self.interventions}


class TrajectoryParams(BaseModel):
    """Constants of the trajectory generator."""

    negative_drift: float = Field(0.05, ge=0.0, le=1.0, description="Worsening of lower-is-better outcomes over the horizon")
    positive_drift: float = Field(0.015, ge=0.0, le=1.0, description="Improvement of higher-is-better outcomes over the horizon")
    optimal_exponent: float = Field(0.7, gt=0.0, le=5.0)
    uncertainty_base: float = Field(0.08, ge=0.0, le=1.0)
    uncertainty_cap: float = Field(0.12, ge=0.0, le=1.0)


class ValuationParams(BaseModel):
    """Monetary coefficients and population figures used by the valuator.

    Money is in billions of the catalog's currency, population in millions.
    """

    population_millions: float = Field(35.3, gt=0.0)
    life_expectancy: float = Field(78.8, gt=0.0, le=130.0)
    healthcare_costs_bn: float = Field(125.0, ge=0.0)
    productivity_loss_bn: float = Field(45.0, ge=0.0)
    disease_cost_bn: Dict[str, float] = Field(
        default_factory=lambda: {"diabetes": 0.8, "cvd": 0.6, "obesity": 0.4},
        description="Annual cost of each disease outcome recovered per unit of effect",
    )
    direct_cost_outcome: str = "healthcareCosts"
    life_outcome: str = "lifeExpectancy"
    cost_scale: float = Field(10.0, gt=0.0)
    reference_horizon: float = Field(15.0, gt=0.0)
    npv_factor: float = Field(0.85, gt=0.0, le=1.0, description="Simplified net-present-value factor")
    productivity_recovery: float = Field(0.5, ge=0.0, le=1.0)
    affected_population_frac: float = Field(0.3, ge=0.0, le=1.0)
    qaly_utility_weight: float = Field(0.7, ge=0.0, le=1.0)


class EngineSettings(BaseModel):
    """Engine-wide behaviour switches."""

    level_policy: Literal["clamp", "reject"] = Field(
        "clamp", description="What to do with a level outside its catalog range"
    )
    trajectory: TrajectoryParams = Field(default_factory=TrajectoryParams)
    valuation: ValuationParams = Field(default_factory=ValuationParams)


class SimulationRequest(BaseModel):
    """Inputs supplied by the caller for one simulation run."""

    levels: Dict[str, float] = Field(default_factory=dict, description="Intervention id -> level; missing ids stay at baseline")
    horizon: int = Field(15, ge=1, le=MAX_HORIZON_YEARS, description="Projection horizon (years)")
    provincial_overrides: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    budget: Optional[float] = Field(None, description="Available budget in the same unit as total_cost")
