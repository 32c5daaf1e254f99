# MIT License
"""Economic valuation of intervention scenarios.

:func:`economic_impact` converts the horizon-end outcome effects into
money (healthcare savings and productivity gains), QALYs and a return on
investment.  :func:`annual_cashflows` spreads the same quantities over the
projection years so that the classic financial metrics (NPV, IRR and
payback period) can be applied to a scenario.  The financial helpers are
deliberately lightweight and do not depend on the rest of the model.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict

from .params import InterventionCatalog, ValuationParams
from .sim_1_effects import ActiveSynergy, compose_effect, level_of
from .utils import round_half_up


class EconomicImpact(BaseModel):
    """Monetary value of a scenario.  Money in billions, QALYs in person-years."""

    model_config = ConfigDict(frozen=True)

    total_cost: float
    healthcare_savings: float
    productivity_gains: float
    qaly_gained: float
    roi: float
    net_benefit: float


def intervention_cost(catalog: InterventionCatalog, levels: Mapping[str, float], horizon: int,
                      params: Optional[ValuationParams] = None) -> float:
    """Cost of moving every intervention away from its baseline for ``horizon`` years.

    Negative contributions are revenue (taxes).
    """
    params = params or ValuationParams()
    total = 0.0
    for itv in catalog.interventions:
        change = level_of(catalog, levels, itv.id) - itv.baseline
        if change == 0 or itv.span <= 0:
            continue
        total += (change / itv.span) * itv.cost_per_unit * params.cost_scale * (horizon / params.reference_horizon)
    return total


def _annual_savings(catalog, levels, synergies, year, params: ValuationParams) -> float:
    savings = 0.0
    for outcome, coef in params.disease_cost_bn.items():
        savings += abs(compose_effect(catalog, outcome, levels, synergies, year)) * coef
    savings += abs(compose_effect(catalog, params.direct_cost_outcome, levels, synergies, year)) * params.healthcare_costs_bn
    return savings


def _annual_productivity(catalog, levels, synergies, year, params: ValuationParams) -> float:
    life = abs(compose_effect(catalog, params.life_outcome, levels, synergies, year))
    return life * params.productivity_loss_bn * params.productivity_recovery


def economic_impact(
    catalog: InterventionCatalog,
    levels: Mapping[str, float],
    synergies: List[ActiveSynergy],
    horizon: int,
    params: Optional[ValuationParams] = None,
) -> EconomicImpact:
    """Value a scenario at the end of its horizon.

    Parameters
    ----------
    catalog:
        Validated intervention catalog.
    levels:
        Intervention levels; missing ids are at baseline.
    synergies:
        Active synergies for ``levels``.
    horizon:
        Projection horizon in years.
    params:
        Valuation coefficients.

    Returns
    -------
    EconomicImpact
        Money rounded to one decimal, QALYs and ROI rounded to integers.
        ROI is 0 when the scenario costs nothing or raises revenue.
    """
    params = params or ValuationParams()
    total_cost = intervention_cost(catalog, levels, horizon, params)

    annual_savings = _annual_savings(catalog, levels, synergies, horizon, params)
    healthcare_savings = annual_savings * horizon * params.npv_factor
    productivity_gains = _annual_productivity(catalog, levels, synergies, horizon, params) * horizon * params.npv_factor

    life_effect = abs(compose_effect(catalog, params.life_outcome, levels, synergies, horizon))
    years_gained = life_effect * params.life_expectancy
    affected = params.population_millions * params.affected_population_frac * 1e6
    qaly_gained = years_gained * affected * params.qaly_utility_weight

    benefit = healthcare_savings + productivity_gains
    roi = (benefit - total_cost) / total_cost * 100.0 if total_cost > 0 else 0.0

    return EconomicImpact(
        total_cost=round_half_up(total_cost, 1),
        healthcare_savings=round_half_up(healthcare_savings, 1),
        productivity_gains=round_half_up(productivity_gains, 1),
        qaly_gained=round_half_up(qaly_gained),
        roi=round_half_up(roi),
        net_benefit=round_half_up(benefit - total_cost, 1),
    )


def annual_cashflows(
    catalog: InterventionCatalog,
    levels: Mapping[str, float],
    synergies: List[ActiveSynergy],
    horizon: int,
    params: Optional[ValuationParams] = None,
) -> pd.DataFrame:
    """Year-by-year cost and benefit profile of a scenario.

    Costs are spread evenly over the horizon; benefits follow the effect of
    each year so adoption delays show up as late returns.

    Returns
    -------
    pandas.DataFrame
        Columns ``year, cost, healthcare_savings, productivity_gains,
        cashflow, cum_cashflow`` with years ``1 .. horizon``.
    """
    params = params or ValuationParams()
    cost_per_year = intervention_cost(catalog, levels, horizon, params) / horizon
    rows = []
    for y in range(1, horizon + 1):
        savings = _annual_savings(catalog, levels, synergies, y, params)
        productivity = _annual_productivity(catalog, levels, synergies, y, params)
        rows.append(dict(year=y,
                         cost=cost_per_year,
                         healthcare_savings=savings,
                         productivity_gains=productivity,
                         cashflow=savings + productivity - cost_per_year))
    df = pd.DataFrame(rows)
    df["cum_cashflow"] = df["cashflow"].cumsum()
    return df


def npv(cashflows: Iterable[float], discount_rate: float) -> float:
    """Compute the net present value of a series of cashflows.

    Parameters
    ----------
    cashflows:
        Iterable of annual cashflows where the first element is cashflow
        in year 1.
    discount_rate:
        Discount rate as a decimal (e.g. 0.03 for 3%).

    Returns
    -------
    float
        Net present value of the cashflows.
    """
    return sum(cf / ((1.0 + discount_rate) ** i) for i, cf in enumerate(cashflows, start=1))


def irr(cashflows: Iterable[float]) -> float:
    """Approximate the internal rate of return of a series of cashflows.

    Bisection on ``[-0.9, 1.0]``.  Returns ``nan`` when the NPV does not
    change sign on that interval.
    """
    flows = list(cashflows)
    lo, hi = -0.9, 1.0
    f_lo, f_hi = npv(flows, lo), npv(flows, hi)
    if f_lo == 0.0:
        return lo
    if f_lo * f_hi > 0:
        return float("nan")
    for _ in range(100):
        mid = (lo + hi) / 2.0
        f_mid = npv(flows, mid)
        if abs(f_mid) < 1e-9 or (hi - lo) < 1e-9:
            return mid
        if (f_mid > 0) == (f_lo > 0):
            lo, f_lo = mid, f_mid
        else:
            hi = mid
    return (lo + hi) / 2.0


def payback_period(cashflows: Iterable[float]) -> float:
    """Years until the cumulative cashflow becomes non-negative, or NaN if never."""
    cum = 0.0
    for i, cf in enumerate(cashflows, start=1):
        cum += cf
        if cum >= 0.0:
            return float(i)
    return float("nan")
