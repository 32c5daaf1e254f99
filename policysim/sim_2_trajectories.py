# MIT License
"""Outcome trajectory generator.

For one outcome and one set of intervention levels this module produces a
year-by-year projection with four series: the do-nothing baseline (which
drifts over time), the intervention scenario, a reference-optimal path and
an uncertainty band around the intervention scenario.  The projection is
deterministic and is fully recomputed on every call.
"""

from __future__ import annotations

import math
from typing import List, Mapping, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict

from .params import InterventionCatalog, TrajectoryParams
from .sim_1_effects import ActiveSynergy, compose_effect


class ProjectedOutcome(BaseModel):
    """One year of an outcome projection."""

    model_config = ConfigDict(frozen=True)

    year: int
    baseline: float
    intervention: float
    optimal: float
    lower_bound: float
    upper_bound: float


def drift_factor(higher_is_better: bool, t: float, params: TrajectoryParams) -> float:
    """Do-nothing drift at fraction ``t`` of the horizon."""
    rate = params.positive_drift if higher_is_better else params.negative_drift
    return 1.0 + rate * t


def uncertainty(year: int, horizon: int, params: TrajectoryParams) -> float:
    """Half-width of the relative uncertainty band; grows with time and is capped."""
    return min(params.uncertainty_cap, params.uncertainty_base * math.sqrt(year + 1) / math.sqrt(horizon + 1))


def generate_trajectory(
    catalog: InterventionCatalog,
    outcome: str,
    levels: Mapping[str, float],
    synergies: List[ActiveSynergy],
    horizon: int,
    baseline_value: Optional[float] = None,
    params: Optional[TrajectoryParams] = None,
) -> List[ProjectedOutcome]:
    """Project one outcome over ``horizon`` years.

    Parameters
    ----------
    catalog:
        Validated catalog; supplies the outcome polarity, its optimal ratio
        and the start year.
    outcome:
        Outcome id.
    levels:
        Intervention levels; missing ids are at baseline.
    synergies:
        Active synergies for ``levels``.
    horizon:
        Number of years to project (>= 1).
    baseline_value:
        Starting value.  Defaults to the outcome's catalog baseline.
    params:
        Drift and uncertainty constants.

    Returns
    -------
    list of ProjectedOutcome
        ``horizon + 1`` records for years ``start_year .. start_year + horizon``.
    """
    if horizon < 1:
        raise ValueError("horizon must be at least 1 year")
    params = params or TrajectoryParams()
    definition = catalog.outcome(outcome)
    base = definition.baseline_value if baseline_value is None else baseline_value
    target = base * definition.optimal_ratio

    rows = []
    for y in range(horizon + 1):
        t = y / horizon
        baseline = base * drift_factor(definition.higher_is_better, t, params)
        effect = compose_effect(catalog, outcome, levels, synergies, y)
        intervention = baseline * (1.0 + effect)
        optimal = base + (target - base) * t ** params.optimal_exponent
        u = uncertainty(y, horizon, params)
        rows.append(
            ProjectedOutcome(
                year=catalog.start_year + y,
                baseline=baseline,
                intervention=intervention,
                optimal=optimal,
                lower_bound=intervention * (1.0 - u),
                upper_bound=intervention * (1.0 + u),
            )
        )
    return rows


def trajectory_frame(
    catalog: InterventionCatalog,
    outcome: str,
    levels: Mapping[str, float],
    synergies: List[ActiveSynergy],
    horizon: int,
    baseline_value: Optional[float] = None,
    params: Optional[TrajectoryParams] = None,
) -> pd.DataFrame:
    """Same as :func:`generate_trajectory` but as a pandas DataFrame.

    Adds a ``delta`` column (intervention minus baseline) and the outcome id.
    """
    rows = [p.model_dump() for p in generate_trajectory(catalog, outcome, levels, synergies, horizon, baseline_value, params)]
    df = pd.DataFrame(rows)
    df["delta"] = df["intervention"] - df["baseline"]
    df.insert(0, "outcome", outcome)
    return df
