# MIT License
"""Simulation engine.

Functions in this module tie the effect composer, the trajectory generator
and the economic valuator together into one run, and add the analyses built
on top of a run: one-way sensitivity, a per-intervention cost-effectiveness
ranking, prerequisite locks and budget usage.  The "enhanced" run combines
the compartmental disease models with the health-economics layer.

The engine holds only the immutable catalog and its settings; every call
recomputes its results from the inputs.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional

import pandas as pd
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .catalog import default_catalog
from .causal import EFFECT_ESTIMATES, ExpectedEffect, expected_intervention_effect
from .economics import EconomicImpact, annual_cashflows, economic_impact, intervention_cost, irr, npv, payback_period
from .health_economics import (
    CEACandidate,
    CEAResult,
    CECategory,
    HealthState,
    QALYResult,
    calculate_daly,
    calculate_qaly,
    ce_thresholds,
    classify_cost_effectiveness,
    run_cea,
)
from .params import EngineSettings, InterventionCatalog, SimulationRequest
from .sim_1_effects import ActiveSynergy, compose_effect, detect_synergies, provincial_effect
from .sim_2_trajectories import ProjectedOutcome, generate_trajectory
from .sim_3_epidemiology import (
    ChronicDiseaseModel,
    ChronicEffect,
    CommunicableDiseaseModel,
    EpidemiologyBaseline,
    InterventionEffect,
    VectorBorneModel,
    run_integrated_projection,
)
from .utils import clamp, pct, request_hash, round_half_up

logger = structlog.get_logger(__name__)

CASHFLOW_DISCOUNT_RATE = 0.03


class BudgetUsage(BaseModel):
    budget: float
    spent: float
    remaining: float
    utilisation: float = Field(..., description="spent / budget; inf for a zero budget with positive spend")
    within_budget: bool


class SimulationResult(BaseModel):
    """Everything a caller needs to render one scenario."""

    trajectories: Dict[str, List[ProjectedOutcome]]
    economic_impact: EconomicImpact
    active_synergies: List[ActiveSynergy]
    outcome_deltas: Dict[str, float] = Field(..., description="Horizon-end effect per outcome, percent")
    provincial_impacts: Dict[str, Dict[str, float]]
    locked_interventions: List[str]
    budget: Optional[BudgetUsage] = None
    cashflow_npv: float
    cashflow_irr: float
    payback_years: float
    input_hash: str

    def trajectory_frame(self) -> pd.DataFrame:
        """All trajectories stacked in one long DataFrame."""
        rows = []
        for outcome, points in self.trajectories.items():
            for p in points:
                rows.append(dict(outcome=outcome, **p.model_dump()))
        return pd.DataFrame(rows)


class EpidemiologyLevers(BaseModel):
    """Coverage levels (percent) driving the compartmental models."""

    art_coverage: float = Field(82.0, ge=0.0, le=100.0)
    itn_coverage: float = Field(68.0, ge=0.0, le=100.0)
    screening_coverage: float = Field(30.0, ge=0.0, le=100.0)


class EnhancedEconomicImpact(BaseModel):
    total_cost: float
    healthcare_savings: float
    productivity_gains: float
    qaly_gained: float
    daly_averted: float
    roi: float
    net_benefit: float
    icer: float
    ce_category: CECategory
    confidence_level: str


class EnhancedResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    economic_impact: EnhancedEconomicImpact
    disease_projections: pd.DataFrame
    integrated_projection: pd.DataFrame
    intervention_effects: Dict[str, ExpectedEffect]
    confidence_levels: Dict[str, str]
    cea_results: List[CEAResult]
    qaly_details: QALYResult


# catalog ids with a literature estimate under another name
_EVIDENCE_KEYS = {"primaryCare": "primaryCareExpansion", "ncdScreening": "ncdScreening", "sugarTax": "sugarTax"}


class SimulationEngine:
    """Run scenarios against one validated catalog.

    Parameters
    ----------
    catalog:
        Intervention catalog; defaults to :func:`~policysim.catalog.default_catalog`.
    settings:
        Level policy and the trajectory / valuation constants.
    """

    def __init__(self, catalog: Optional[InterventionCatalog] = None, settings: Optional[EngineSettings] = None):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.settings = settings if settings is not None else EngineSettings()
        self._outcomes = [o.id for o in self.catalog.outcomes]

    # -- inputs ------------------------------------------------------------

    def normalise_levels(self, levels: Mapping[str, float]) -> Dict[str, float]:
        """Check ids and apply the level policy.

        Unknown ids and non-finite values raise ``ValueError``.  Levels
        outside ``[min_level, max_level]`` are clamped (with a warning) or
        rejected depending on ``settings.level_policy``.
        """
        out = {}
        for key, value in levels.items():
            try:
                itv = self.catalog.get(key)
            except KeyError:
                raise ValueError(f"unknown intervention id {key!r}") from None
            value = float(value)
            if not math.isfinite(value):
                raise ValueError(f"level of {key!r} must be finite")
            if not itv.min_level <= value <= itv.max_level:
                if self.settings.level_policy == "reject":
                    raise ValueError(f"level {value} of {key!r} outside [{itv.min_level}, {itv.max_level}]")
                clamped = clamp(value, itv.min_level, itv.max_level)
                logger.warning("level_clamped", intervention=key, requested=value, clamped=clamped)
                value = clamped
            out[key] = value
        return out

    def level(self, levels: Mapping[str, float], intervention_id: str) -> float:
        value = levels.get(intervention_id)
        return self.catalog.get(intervention_id).baseline if value is None else value

    def locked_interventions(self, levels: Mapping[str, float]) -> List[str]:
        """Interventions with at least one prerequisite not raised above its baseline."""
        locked = []
        for itv in self.catalog.interventions:
            for req in itv.prerequisites:
                if self.level(levels, req) <= self.catalog.get(req).baseline:
                    locked.append(itv.id)
                    break
        return locked

    @staticmethod
    def budget_usage(spent: float, budget: float) -> BudgetUsage:
        if budget > 0:
            utilisation = spent / budget
        else:
            utilisation = math.inf if spent > 0 else 0.0
        return BudgetUsage(budget=budget, spent=spent, remaining=budget - spent,
                           utilisation=utilisation, within_budget=spent <= budget)

    # -- main run ----------------------------------------------------------

    def run(self, request: SimulationRequest) -> SimulationResult:
        """Project every outcome, value the scenario and collect the diagnostics."""
        levels = self.normalise_levels(request.levels)
        overrides = {}
        for province, prov_levels in request.provincial_overrides.items():
            if province not in self.catalog.provinces:
                logger.warning("unknown_province_override", province=province)
            overrides[province] = self.normalise_levels(prov_levels)
        horizon = request.horizon
        synergies = detect_synergies(self.catalog, levels)

        trajectories = {
            o: generate_trajectory(self.catalog, o, levels, synergies, horizon, params=self.settings.trajectory)
            for o in self._outcomes
        }
        impact = economic_impact(self.catalog, levels, synergies, horizon, self.settings.valuation)
        deltas = {o: pct(compose_effect(self.catalog, o, levels, synergies, horizon)) for o in self._outcomes}
        provincial = {
            p: {o: pct(provincial_effect(self.catalog, o, p, levels, overrides, synergies, horizon)) for o in self._outcomes}
            for p in self.catalog.provinces
        }
        flows = annual_cashflows(self.catalog, levels, synergies, horizon, self.settings.valuation)["cashflow"].tolist()
        budget = None
        if request.budget is not None:
            budget = self.budget_usage(impact.total_cost, request.budget)

        result = SimulationResult(
            trajectories=trajectories,
            economic_impact=impact,
            active_synergies=synergies,
            outcome_deltas=deltas,
            provincial_impacts=provincial,
            locked_interventions=self.locked_interventions(levels),
            budget=budget,
            cashflow_npv=npv(flows, CASHFLOW_DISCOUNT_RATE),
            cashflow_irr=irr(flows),
            payback_years=payback_period(flows),
            input_hash=request_hash(request),
        )
        logger.debug("simulation_run", horizon=horizon, changed=len(levels), synergies=len(synergies),
                     total_cost=impact.total_cost, roi=impact.roi)
        return result

    # -- analyses ----------------------------------------------------------

    def sensitivity(self, base_levels: Mapping[str, float], outcome: str, horizon: int = 15) -> pd.DataFrame:
        """One-way sensitivity of ``outcome`` to each intervention.

        Each intervention is moved to its minimum and to its maximum with
        every other level held; synergies are those of ``base_levels``.

        Returns
        -------
        pandas.DataFrame
            Columns ``intervention, min, max, range`` in percent, sorted by
            descending range.
        """
        self.catalog.outcome(outcome)
        levels = self.normalise_levels(base_levels)
        synergies = detect_synergies(self.catalog, levels)
        rows = []
        for itv in self.catalog.interventions:
            lo = compose_effect(self.catalog, outcome, {**levels, itv.id: itv.min_level}, synergies, horizon)
            hi = compose_effect(self.catalog, outcome, {**levels, itv.id: itv.max_level}, synergies, horizon)
            rows.append(dict(intervention=itv.id, min=pct(lo), max=pct(hi), range=pct(abs(hi - lo))))
        df = pd.DataFrame(rows)
        return df.sort_values("range", ascending=False, kind="stable").reset_index(drop=True)

    def cost_effectiveness(self, horizon: int = 15) -> pd.DataFrame:
        """Cost per QALY of raising each intervention alone to its maximum.

        Interventions that gain no QALYs get an infinite cost per QALY and
        rank last.

        Returns
        -------
        pandas.DataFrame
            Columns ``intervention, total_cost, qaly_gained, cost_per_qaly,
            rank`` sorted by rank.
        """
        base = self.catalog.baseline_levels()
        rows = []
        for itv in self.catalog.interventions:
            test = {**base, itv.id: itv.max_level}
            synergies = detect_synergies(self.catalog, test)
            impact = economic_impact(self.catalog, test, synergies, horizon, self.settings.valuation)
            cpq = impact.total_cost * 1e9 / impact.qaly_gained if impact.qaly_gained > 0 else math.inf
            rows.append(dict(intervention=itv.id, total_cost=impact.total_cost, qaly_gained=impact.qaly_gained,
                             cost_per_qaly=round_half_up(cpq)))
        df = pd.DataFrame(rows).sort_values("cost_per_qaly", kind="stable").reset_index(drop=True)
        df["rank"] = range(1, len(df) + 1)
        return df

    # -- enhanced ----------------------------------------------------------

    def run_enhanced(self, levels: Mapping[str, float], levers: Optional[EpidemiologyLevers] = None,
                     horizon: int = 15, baseline: Optional[EpidemiologyBaseline] = None) -> EnhancedResult:
        """Epidemiology-driven run.

        The coverage levers drive the three disease models; their
        projections feed QALY and DALY estimates, a cost-effectiveness
        analysis of the active interventions and a monetary valuation.
        """
        if horizon < 1:
            raise ValueError("horizon must be at least 1 year")
        levels = self.normalise_levels(levels)
        levers = levers or EpidemiologyLevers()
        baseline = baseline or EpidemiologyBaseline()
        disease = disease_projections(levers, baseline, horizon)
        integrated = run_integrated_projection(
            baseline.model_copy(update=dict(hiv_treatment=levers.art_coverage)),
            hiv=InterventionEffect(beta_reduction=0.1, treatment_increase=0.2, mortality_reduction=0.05),
            malaria=InterventionEffect(beta_reduction=0.2, treatment_increase=0.1, mortality_reduction=0.1),
            ncd=ChronicEffect(screening_increase=0.3, control_improvement=0.15),
            years=horizon,
        )

        effects, confidence = {}, {}
        for itv in self.catalog.interventions:
            value = self.level(levels, itv.id)
            if value <= itv.baseline:
                continue
            key = _EVIDENCE_KEYS.get(itv.id)
            coverage = (value - itv.min_level) / itv.span * 100.0
            base_cov = (itv.baseline - itv.min_level) / itv.span * 100.0
            effects[itv.id] = expected_intervention_effect(key or itv.id, coverage, base_cov)
            confidence[itv.id] = EFFECT_ESTIMATES[key].confidence if key else "low"

        total_cost = intervention_cost(self.catalog, levels, horizon, self.settings.valuation)
        qaly_details = calculate_qaly(_health_states(disease), 0.03, True)
        population_qaly = qaly_details.discounted * baseline.population / 1e6 * 0.3
        daly_averted = _daly_averted(disease, baseline)

        candidates = []
        for itv in self.catalog.interventions:
            value = self.level(levels, itv.id)
            if value <= itv.baseline:
                continue
            share = abs(sum(i.base_effect for i in itv.impacts)) / 3.0
            candidates.append(CEACandidate(name=itv.name or itv.id,
                                           cost=(value - itv.baseline) / itv.span * itv.cost_per_unit * 10 * 1e6,
                                           qaly=population_qaly * share))
        thresholds = ce_thresholds()
        cea = run_cea(candidates, thresholds.cost_effective) if candidates else []
        icer = total_cost * 1e9 / population_qaly if population_qaly > 0 else math.inf

        first, last = disease.iloc[0], disease.iloc[-1]
        hiv_reduction = (first["hiv_prevalence"] - last["hiv_prevalence"]) / (first["hiv_prevalence"] or 1.0)
        malaria_reduction = (first["malaria_incidence"] - last["malaria_incidence"]) / (first["malaria_incidence"] or 1.0)
        healthcare_savings = (hiv_reduction * 0.8 + malaria_reduction * 0.3 + 0.1 * 0.2) * horizon * 0.85
        productivity_gains = last["mortality_reduction"] * 0.5 * horizon * 0.85
        net_benefit = healthcare_savings + productivity_gains - total_cost
        roi = net_benefit / total_cost * 100.0 if total_cost > 0 else 0.0

        impact = EnhancedEconomicImpact(
            total_cost=round_half_up(total_cost, 1),
            healthcare_savings=round_half_up(float(healthcare_savings), 1),
            productivity_gains=round_half_up(float(productivity_gains), 1),
            qaly_gained=round_half_up(population_qaly),
            daly_averted=round_half_up(daly_averted * baseline.population / 1e6 * 0.1),
            roi=round_half_up(float(roi)),
            net_benefit=round_half_up(float(net_benefit), 1),
            icer=round_half_up(icer),
            ce_category=classify_cost_effectiveness(icer, thresholds),
            confidence_level=_overall_confidence(list(confidence.values())),
        )
        logger.debug("enhanced_run", horizon=horizon, art=levers.art_coverage, itn=levers.itn_coverage,
                     screening=levers.screening_coverage)
        return EnhancedResult(
            economic_impact=impact,
            disease_projections=disease,
            integrated_projection=integrated,
            intervention_effects=effects,
            confidence_levels=confidence,
            cea_results=cea,
            qaly_details=qaly_details,
        )


def disease_projections(levers: EpidemiologyLevers, baseline: EpidemiologyBaseline, horizon: int) -> pd.DataFrame:
    """Step the three disease models under the given coverage levers.

    Coverage above the default levers scales the model parameters.  Each
    row is recorded after stepping, so the first row is already one year in.
    """
    defaults = EpidemiologyLevers()
    pop = baseline.population
    hiv = CommunicableDiseaseModel(pop, baseline.hiv_prevalence, levers.art_coverage)
    malaria = VectorBorneModel(pop, baseline.malaria_incidence)
    ncd = ChronicDiseaseModel(pop, baseline.diabetes_prevalence, baseline.diabetes_undiagnosed)

    art_gain = (levers.art_coverage - defaults.art_coverage) / 100.0
    if art_gain > 0:
        hiv.apply_intervention(InterventionEffect(beta_reduction=art_gain * 0.5, treatment_increase=art_gain * 0.3,
                                                  mortality_reduction=art_gain * 0.3))
    itn_gain = (levers.itn_coverage - defaults.itn_coverage) / 100.0
    if itn_gain > 0:
        malaria.apply_intervention(InterventionEffect(beta_reduction=itn_gain * 0.4, treatment_increase=0.05,
                                                      mortality_reduction=0.1))
    screening_gain = (levers.screening_coverage - defaults.screening_coverage) / 100.0
    if screening_gain > 0:
        ncd.apply_intervention(ChronicEffect(screening_increase=screening_gain * 0.6, control_improvement=0.1))

    rows = []
    for y in range(horizon + 1):
        h = hiv.step_year()
        m = malaria.step_year()
        c = ncd.step_year()
        hiv_prev = (h["I"] + h["T"]) / pop * 100.0
        malaria_inc = (m["E"] + m["I"]) / pop * 1000.0
        hiv_mort = h["T"] / (h["I"] + h["T"] + 0.001) * 0.9
        if baseline.malaria_incidence > 0:
            malaria_mort = min(0.3, (68.0 - malaria_inc / baseline.malaria_incidence * 68.0) / 100.0)
        else:
            malaria_mort = 0.0
        rows.append(dict(year=baseline.start_year + y,
                         hiv_prevalence=hiv_prev,
                         hiv_cases=round(h["I"] + h["T"]),
                         malaria_incidence=malaria_inc,
                         malaria_cases=round(m["I"] * 10),
                         diabetes_prevalence=(c["diagnosed"] + c["undiagnosed"]) / pop * 100.0,
                         mortality_reduction=hiv_mort * 0.4 + malaria_mort * 0.3
                         + 0.3 * levers.screening_coverage / 100.0))
    return pd.DataFrame(rows)


def _health_states(disease: pd.DataFrame) -> List[HealthState]:
    states = []
    for i, row in enumerate(disease.itertuples(index=False)):
        utility = 0.85 - row.hiv_prevalence / 100 * 0.15 - row.malaria_incidence / 1000 * 0.05 \
            - row.diabetes_prevalence / 100 * 0.08
        states.append(HealthState(name=f"year {i}", utility=max(0.4, utility), duration=1, annual_cost=100.0))
    return states


def _daly_averted(disease: pd.DataFrame, baseline: EpidemiologyBaseline) -> float:
    reduction = float(disease["mortality_reduction"].iloc[-1])
    before = calculate_daly(5000.0, 55.0, 0.15 * baseline.population, 0.1, 10.0)
    after = calculate_daly(5000.0 * (1.0 - reduction), 57.0, 0.12 * baseline.population, 0.08, 8.0)
    return before.total - after.total


def _overall_confidence(levels: List[str]) -> str:
    n = len(levels)
    high = levels.count("high")
    medium = levels.count("medium")
    if high > n / 2:
        return "high"
    if high + medium > n / 2:
        return "medium"
    return "low"


def run_simulation(request: SimulationRequest, catalog: Optional[InterventionCatalog] = None,
                   settings: Optional[EngineSettings] = None) -> SimulationResult:
    """Convenience wrapper: build an engine and run one request."""
    return SimulationEngine(catalog, settings).run(request)


def run_enhanced_simulation(levels: Mapping[str, float], levers: Optional[EpidemiologyLevers] = None,
                            horizon: int = 15, catalog: Optional[InterventionCatalog] = None) -> EnhancedResult:
    """Convenience wrapper around :meth:`SimulationEngine.run_enhanced`."""
    return SimulationEngine(catalog).run_enhanced(levels, levers, horizon)
