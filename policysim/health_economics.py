# MIT License
"""Health-economic evaluation.

Discounting, QALYs and DALYs, disease management costs, cost-effectiveness
analysis with dominance checks and an efficiency frontier, probabilistic
sensitivity analysis (PSA) with an acceptability curve, and WHO-CHOICE style
ranking of interventions by cost per DALY averted.

Costs are in the currency of the unit cost table (USD by default).  The
default cost-effectiveness thresholds are one and three times a GDP per
capita of 1500.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .utils import round_half_up

logger = structlog.get_logger(__name__)

DEFAULT_DISCOUNT_RATE = 0.03
DEFAULT_GDP_PER_CAPITA = 1500.0
REFERENCE_LIFE_EXPECTANCY = 86.6
PSA_QALY_SCALE = 20.0

CECategory = Literal["highly_cost_effective", "cost_effective", "not_cost_effective"]

# EQ-5D style utility weights per health state
UTILITY_WEIGHTS: Dict[str, float] = {
    "healthy": 1.0,
    "hiv_on_art": 0.947,
    "hiv_symptomatic": 0.582,
    "aids_without_art": 0.453,
    "malaria_uncomplicated": 0.949,
    "malaria_severe": 0.633,
    "diabetes_controlled": 0.985,
    "diabetes_uncontrolled": 0.951,
    "diabetes_complications": 0.7,
    "diabetic_neuropathy": 0.624,
    "diabetic_foot": 0.149,
    "angina_stable": 0.906,
    "heart_failure_mild": 0.842,
    "heart_failure_severe": 0.532,
    "post_stroke": 0.677,
    "hypertension_controlled": 0.99,
    "hypertension_uncontrolled": 0.95,
}

# unit costs, USD
UNIT_COSTS: Dict[str, float] = {
    "phc_visit": 8,
    "specialist_visit": 25,
    "emergency_visit": 45,
    "hospital_day": 35,
    "icu_day": 150,
    "hiv_test": 5,
    "malaria_rdt": 1.5,
    "blood_glucose": 2,
    "hba1c": 15,
    "ecg": 10,
    "art_annual": 180,
    "act_treatment": 3,
    "metformin_annual": 25,
    "insulin_annual": 200,
    "antihypertensive_annual": 40,
    "statin_annual": 30,
    "itn_bednet": 2,
    "irs_household": 5,
    "community_health_worker_visit": 3,
}


class HealthState(BaseModel):
    """A period spent in one health state."""

    name: str
    utility: float = Field(..., ge=0.0, le=1.0)
    duration: int = Field(..., ge=0, description="Whole years spent in the state")
    annual_cost: float = 0.0


class QALYResult(BaseModel):
    undiscounted: float
    discounted: float
    life_years: float
    quality_adjustment: float


class DALYComponents(BaseModel):
    yll: float
    yld: float
    total: float


class CostResult(BaseModel):
    undiscounted: float
    discounted: float
    direct: float
    indirect: float
    intangible: float = 0.0


class CEThresholds(BaseModel):
    highly_cost_effective: float
    cost_effective: float


class CEACandidate(BaseModel):
    name: str
    cost: float
    qaly: float


class CEAResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    intervention: str
    total_cost: float
    total_qaly: float
    icer: float
    net_monetary_benefit: float
    dominated: bool = False
    extended_dominated: bool = False

    @property
    def on_frontier(self) -> bool:
        return not (self.dominated or self.extended_dominated)


class AcceptabilityPoint(BaseModel):
    wtp: float
    probability: float = Field(..., ge=0.0, le=1.0)


class PSAResult(BaseModel):
    """Summary of a probabilistic sensitivity analysis."""

    iterations: int
    method: str
    mean_cost: float
    mean_qaly: float
    mean_nmb: float
    median_icer: float
    cost_ci95: Tuple[float, float]
    qaly_ci95: Tuple[float, float]
    icer_ci95: Tuple[float, float]
    acceptability: List[AcceptabilityPoint]


class InterventionRanking(BaseModel):
    id: str
    name: str
    cost_per_daly_averted: float
    cost_per_qaly_gained: float
    rank: int
    ce_category: CECategory


# ---------------------------------------------------------------------------
# discounting


def discount_factor(year: float, rate: float = DEFAULT_DISCOUNT_RATE) -> float:
    """``(1 + rate) ** -year``; 1 at year 0."""
    if rate <= -1.0:
        raise ValueError("discount rate must be greater than -1")
    return (1.0 + rate) ** (-year)


def present_value(values: Iterable[float], rate: float = DEFAULT_DISCOUNT_RATE) -> float:
    """Present value of a series whose first element falls in year 0."""
    return sum(v * discount_factor(y, rate) for y, v in enumerate(values))


def _discounted_years(length: float, rate: float) -> float:
    """Sum of discount factors over ``length`` years, the final partial year weighted by its fraction."""
    if length <= 0:
        return 0.0
    whole = int(math.floor(length))
    total = sum(discount_factor(y, rate) for y in range(whole))
    frac = length - whole
    if frac > 0:
        total += frac * discount_factor(whole, rate)
    return total


# ---------------------------------------------------------------------------
# QALY / DALY


def calculate_qaly(states: Sequence[HealthState], rate: float = DEFAULT_DISCOUNT_RATE,
                   half_cycle_correction: bool = True) -> QALYResult:
    """Quality-adjusted life years of a sequence of health states.

    Parameters
    ----------
    states:
        Health states in chronological order.
    rate:
        Annual discount rate.
    half_cycle_correction:
        Halve the first and last year of each state.

    Returns
    -------
    QALYResult
        Undiscounted and discounted QALYs, total life years and the mean
        utility per life year.
    """
    undiscounted = discounted = 0.0
    total_years = 0
    current = 0
    for state in states:
        years = state.duration
        total_years += years
        for y in range(years):
            q = state.utility
            if half_cycle_correction and (y == 0 or y == years - 1):
                q *= 0.5
            undiscounted += q
            discounted += q * discount_factor(current + y, rate)
        current += years
    return QALYResult(
        undiscounted=undiscounted,
        discounted=discounted,
        life_years=float(total_years),
        quality_adjustment=undiscounted / max(1, total_years),
    )


def calculate_qaly_gained(baseline_states: Sequence[HealthState], intervention_states: Sequence[HealthState],
                          rate: float = DEFAULT_DISCOUNT_RATE) -> float:
    """Discounted QALYs of the intervention pathway minus the baseline pathway."""
    return calculate_qaly(intervention_states, rate).discounted - calculate_qaly(baseline_states, rate).discounted


def calculate_daly(deaths: float, age_at_death: float, prevalent_cases: float, disability_weight: float,
                   duration: float, rate: float = DEFAULT_DISCOUNT_RATE,
                   reference_life_expectancy: float = REFERENCE_LIFE_EXPECTANCY) -> DALYComponents:
    """Disability-adjusted life years, discounted.

    ``YLL = deaths * sum of discount factors over (reference LE - age at death)``
    and ``YLD = cases * disability weight * sum of discount factors over the
    duration``.  A fractional final year counts by its fraction.
    """
    if deaths < 0 or prevalent_cases < 0:
        raise ValueError("deaths and prevalent cases must be non-negative")
    if not 0.0 <= disability_weight <= 1.0:
        raise ValueError("disability weight must be in [0, 1]")
    years_lost = max(0.0, reference_life_expectancy - age_at_death)
    yll = deaths * _discounted_years(years_lost, rate)
    yld = prevalent_cases * disability_weight * _discounted_years(duration, rate)
    return DALYComponents(yll=yll, yld=yld, total=yll + yld)


# ---------------------------------------------------------------------------
# costs


def _annual_disease_cost(disease: str, state: str) -> Tuple[float, float]:
    c = UNIT_COSTS
    if disease == "hiv":
        if state == "on_treatment":
            return c["art_annual"] + c["phc_visit"] * 4 + c["specialist_visit"] * 2, 200.0
        return c["specialist_visit"] * 4 + c["hospital_day"] * 10, 800.0
    if disease == "malaria":
        if state == "uncomplicated":
            return c["malaria_rdt"] + c["act_treatment"] + c["phc_visit"], 50.0
        return c["hospital_day"] * 5 + c["emergency_visit"], 200.0
    if disease == "diabetes":
        if state == "controlled":
            return c["metformin_annual"] + c["phc_visit"] * 4 + c["hba1c"] * 2, 100.0
        if state == "uncontrolled":
            return c["insulin_annual"] + c["specialist_visit"] * 4 + c["hba1c"] * 4, 300.0
        return c["insulin_annual"] + c["specialist_visit"] * 12 + c["hospital_day"] * 10 + c["hba1c"] * 4, 1000.0
    if disease == "cvd":
        if state == "stable":
            return c["antihypertensive_annual"] + c["statin_annual"] + c["phc_visit"] * 4 + c["ecg"] * 2, 150.0
        return c["hospital_day"] * 14 + c["icu_day"] * 3 + c["specialist_visit"] * 6, 2000.0
    raise ValueError(f"unknown disease {disease!r}; expected hiv, malaria, diabetes or cvd")


def calculate_disease_cost(disease: str, state: str, years: int, rate: float = DEFAULT_DISCOUNT_RATE) -> CostResult:
    """Direct (medical) and indirect (productivity) cost of managing a disease state.

    Unrecognised states fall into the most severe state of the disease.
    """
    if years < 0:
        raise ValueError("years must be non-negative")
    direct, indirect = _annual_disease_cost(disease, state)
    pv_direct = present_value([direct] * years, rate)
    pv_indirect = present_value([indirect] * years, rate)
    return CostResult(
        undiscounted=(direct + indirect) * years,
        discounted=pv_direct + pv_indirect,
        direct=pv_direct,
        indirect=pv_indirect,
    )


# ---------------------------------------------------------------------------
# cost-effectiveness


def ce_thresholds(gdp_per_capita: float = DEFAULT_GDP_PER_CAPITA) -> CEThresholds:
    """WHO-CHOICE thresholds: 1x and 3x GDP per capita."""
    return CEThresholds(highly_cost_effective=gdp_per_capita, cost_effective=3.0 * gdp_per_capita)


def classify_cost_effectiveness(ratio: float, thresholds: Optional[CEThresholds] = None) -> CECategory:
    thresholds = thresholds or ce_thresholds()
    if ratio < thresholds.highly_cost_effective:
        return "highly_cost_effective"
    if ratio < thresholds.cost_effective:
        return "cost_effective"
    return "not_cost_effective"


def calculate_icer(intervention_cost: float, comparator_cost: float,
                   intervention_qaly: float, comparator_qaly: float) -> float:
    """Incremental cost per QALY; +/-inf when the QALY difference is zero."""
    d_cost = intervention_cost - comparator_cost
    d_qaly = intervention_qaly - comparator_qaly
    if d_qaly == 0:
        return math.inf if d_cost > 0 else -math.inf
    return d_cost / d_qaly


def calculate_nmb(qaly_gained: float, cost: float, wtp: Optional[float] = None) -> float:
    """Net monetary benefit ``qaly * wtp - cost``."""
    if wtp is None:
        wtp = ce_thresholds().cost_effective
    return qaly_gained * wtp - cost


def _frontier_icers(points: List[CEACandidate]) -> List[float]:
    icers = []
    prev_cost, prev_qaly = 0.0, 0.0
    for p in points:
        icers.append(calculate_icer(p.cost, prev_cost, p.qaly, prev_qaly))
        prev_cost, prev_qaly = p.cost, p.qaly
    return icers


def run_cea(candidates: Sequence[CEACandidate], wtp: Optional[float] = None) -> List[CEAResult]:
    """Cost-effectiveness analysis with strong and extended dominance.

    Parameters
    ----------
    candidates:
        Interventions with their total cost and QALYs.  The implicit
        comparator of the cheapest frontier point is "do nothing" at the
        origin.
    wtp:
        Willingness to pay per QALY for the net monetary benefit.

    Returns
    -------
    list of CEAResult
        One result per candidate, in ascending cost order.  Frontier points
        carry the ICER against the previous frontier point; dominated points
        carry the ICER against the frontier point preceding them.
    """
    if wtp is None:
        wtp = ce_thresholds().cost_effective
    ordered = sorted(candidates, key=lambda c: (c.cost, -c.qaly))

    strongly = set()
    for i, c in enumerate(ordered):
        for j, other in enumerate(ordered):
            if i == j:
                continue
            if other.cost <= c.cost and other.qaly >= c.qaly and (other.cost < c.cost or other.qaly > c.qaly):
                strongly.add(i)
                break

    frontier = [i for i in range(len(ordered)) if i not in strongly]
    extended = set()
    # prune until ICERs increase along the frontier
    while True:
        icers = _frontier_icers([ordered[i] for i in frontier])
        drop = None
        for k in range(len(frontier) - 1):
            if icers[k] > icers[k + 1]:
                drop = k
                break
        if drop is None:
            break
        extended.add(frontier.pop(drop))

    frontier_icer = dict(zip(frontier, _frontier_icers([ordered[i] for i in frontier])))
    results = []
    for i, c in enumerate(ordered):
        if i in frontier_icer:
            icer = frontier_icer[i]
        else:
            before = [f for f in frontier if f < i]
            ref = ordered[before[-1]] if before else CEACandidate(name="origin", cost=0.0, qaly=0.0)
            icer = calculate_icer(c.cost, ref.cost, c.qaly, ref.qaly)
        results.append(CEAResult(
            intervention=c.name,
            total_cost=c.cost,
            total_qaly=c.qaly,
            icer=round_half_up(icer),
            net_monetary_benefit=round_half_up(calculate_nmb(c.qaly, c.cost, wtp)),
            dominated=i in strongly,
            extended_dominated=i in extended,
        ))
    logger.debug("cea_complete", candidates=len(ordered), frontier=len(frontier),
                 dominated=len(strongly), extended=len(extended))
    return results


# ---------------------------------------------------------------------------
# probabilistic sensitivity analysis


def _gamma_draws(rng: np.random.Generator, mean: float, sd: float, n: int) -> np.ndarray:
    """Gamma draws with matching moments; a negative mean (cost saving) is mirrored."""
    if sd == 0:
        return np.full(n, float(mean))
    if mean == 0:
        raise ValueError("gamma cost draws need a non-zero mean")
    shape = mean ** 2 / sd ** 2
    scale = sd ** 2 / abs(mean)
    return math.copysign(1.0, mean) * rng.gamma(shape, scale, size=n)


def _beta_draws(rng: np.random.Generator, mean: float, sd: float, n: int) -> np.ndarray:
    if sd == 0:
        return np.full(n, float(mean))
    if not 0.0 < mean < 1.0:
        raise ValueError(f"scaled QALY mean must lie in (0, 1), got {mean}")
    var = sd ** 2
    if var >= mean * (1.0 - mean):
        raise ValueError("QALY standard deviation too large for a beta distribution")
    common = mean * (1.0 - mean) / var - 1.0
    return rng.beta(mean * common, (1.0 - mean) * common, size=n)


def _order_stat(values: np.ndarray, q: float) -> float:
    ordered = np.sort(values)
    idx = min(len(ordered) - 1, int(math.floor(len(ordered) * q)))
    return float(ordered[idx])


def run_psa(
    base_cost: float,
    base_qaly: float,
    cost_sd: float,
    qaly_sd: float,
    comparator_cost: float = 0.0,
    comparator_qaly: float = 0.0,
    iterations: int = 1000,
    wtp_grid: Sequence[float] = (0, 1500, 3000, 4500, 6000, 7500, 9000),
    rng: Optional[np.random.Generator] = None,
    method: Literal["parametric", "approximate"] = "approximate",
    wtp: Optional[float] = None,
) -> PSAResult:
    """Probabilistic sensitivity analysis of one intervention against a comparator.

    Parameters
    ----------
    base_cost, base_qaly:
        Point estimates of the intervention.
    cost_sd, qaly_sd:
        Standard deviations of cost and QALYs.
    comparator_cost, comparator_qaly:
        Fixed comparator.
    iterations:
        Number of draws.
    wtp_grid:
        Willingness-to-pay values of the acceptability curve.
    rng:
        Random generator; pass a seeded one for reproducible results.
    method:
        ``"approximate"`` (the default) uses clamped symmetric perturbations
        built from sums of uniforms; costs never cross zero, so cost-saving
        interventions stay cost saving. ``"parametric"`` draws costs from a
        gamma (mirrored for negative costs) and QALYs from a beta
        distribution with matching moments. QALYs are scaled into
        ``[0, 1]`` by 20, or by twice ``|base_qaly|`` when that is larger.
    wtp:
        Willingness to pay for the mean net monetary benefit.

    Returns
    -------
    PSAResult
    """
    if iterations < 1:
        raise ValueError("iterations must be positive")
    if cost_sd < 0 or qaly_sd < 0:
        raise ValueError("standard deviations must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    if wtp is None:
        wtp = ce_thresholds().cost_effective

    q_scale = max(PSA_QALY_SCALE, 2.0 * abs(base_qaly))
    q_mean, q_sd = base_qaly / q_scale, qaly_sd / q_scale
    if method == "parametric":
        costs = _gamma_draws(rng, base_cost, cost_sd, iterations)
        qalys = _beta_draws(rng, q_mean, q_sd, iterations) * q_scale
    elif method == "approximate":
        costs = base_cost + cost_sd * (rng.random((iterations, 2)).sum(axis=1) - 1.0)
        costs = np.maximum(0.0, costs) if base_cost >= 0 else np.minimum(0.0, costs)
        qalys = np.clip(q_mean + q_sd * (rng.random((iterations, 3)).sum(axis=1) - 1.5), 0.01, 0.99) * q_scale
    else:
        raise ValueError(f"unknown PSA method {method!r}")

    d_cost = costs - comparator_cost
    d_qaly = qalys - comparator_qaly
    with np.errstate(divide="ignore", invalid="ignore"):
        icers = np.where(d_qaly == 0, np.where(d_cost > 0, np.inf, -np.inf), d_cost / d_qaly)
    nmb = d_qaly * wtp - d_cost

    curve = [AcceptabilityPoint(wtp=float(w), probability=float(np.mean(d_qaly * w - d_cost > 0))) for w in wtp_grid]
    result = PSAResult(
        iterations=iterations,
        method=method,
        mean_cost=float(costs.mean()),
        mean_qaly=float(qalys.mean()),
        mean_nmb=float(nmb.mean()),
        median_icer=_order_stat(icers, 0.5),
        cost_ci95=(_order_stat(costs, 0.025), _order_stat(costs, 0.975)),
        qaly_ci95=(_order_stat(qalys, 0.025), _order_stat(qalys, 0.975)),
        icer_ci95=(_order_stat(icers, 0.025), _order_stat(icers, 0.975)),
        acceptability=curve,
    )
    logger.debug("psa_complete", iterations=iterations, method=method, mean_nmb=result.mean_nmb)
    return result


# ---------------------------------------------------------------------------
# ranking


class RankingInput(BaseModel):
    id: str
    name: str = ""
    annual_cost: float
    daly_averted: float
    qaly_gained: float


def rank_interventions(items: Sequence[RankingInput],
                       gdp_per_capita: float = DEFAULT_GDP_PER_CAPITA) -> List[InterventionRanking]:
    """Rank by cost per DALY averted (lowest first) and classify against GDP thresholds."""
    thresholds = ce_thresholds(gdp_per_capita)
    scored = []
    for it in items:
        per_daly = it.annual_cost / it.daly_averted if it.daly_averted > 0 else math.inf
        per_qaly = it.annual_cost / it.qaly_gained if it.qaly_gained > 0 else math.inf
        scored.append((it, round_half_up(per_daly), round_half_up(per_qaly),
                       classify_cost_effectiveness(per_daly, thresholds)))
    scored.sort(key=lambda s: s[1])
    return [
        InterventionRanking(id=it.id, name=it.name or it.id, cost_per_daly_averted=per_daly,
                            cost_per_qaly_gained=per_qaly, rank=rank, ce_category=category)
        for rank, (it, per_daly, per_qaly, category) in enumerate(scored, start=1)
    ]
