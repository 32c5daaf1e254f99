# MIT License
"""Effect composition for the policy simulator.

This module turns a set of intervention levels into a fractional change of
each outcome at a given year.  Three pieces combine here:

* the adoption curve, an S-shaped ramp that delays and phases in each
  intervention;
* diminishing returns, attenuating the marginal benefit of levels above an
  impact's threshold;
* synergies, multiplicative boosts when two declared partners are both
  raised above their baselines.

All functions are pure and take the :class:`~policysim.params.InterventionCatalog`
explicitly.  A missing level always means "at baseline".
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .params import InterventionCatalog, ProvinceMultipliers

logger = structlog.get_logger(__name__)

ADOPTION_STEEPNESS = 6.0
DIMINISHING_RATE = 0.05


class ActiveSynergy(BaseModel):
    """A synergy edge whose two endpoints are both active."""

    model_config = ConfigDict(frozen=True)

    pair: Tuple[str, str] = Field(..., description="Sorted pair of intervention ids")
    multiplier: float
    description: str = ""

    def involves(self, intervention_id: str) -> bool:
        return intervention_id in self.pair


def adoption(year: float, delay: float, ramp_up: float) -> float:
    """Fraction of an intervention's full effect realised at ``year``.

    Parameters
    ----------
    year:
        Years since the start of the projection.
    delay:
        Implementation delay; nothing happens up to and including this year.
    ramp_up:
        Years from the first effect to full adoption.

    Returns
    -------
    float
        Value in ``[0, 1]``.  Zero while ``year <= delay``, one once the
        ramp-up period has elapsed and a logistic curve in between.
    """
    effective = year - delay
    if effective <= 0:
        return 0.0
    t = effective / ramp_up
    if t >= 1.0:
        return 1.0
    return 1.0 / (1.0 + math.exp(-ADOPTION_STEEPNESS * (t - 0.5)))


def diminishing_returns(effect: float, level: float, threshold: float) -> float:
    """Attenuate ``effect`` when ``level`` exceeds ``threshold``.

    The divisor is always >= 1 so the sign of the effect never flips.
    """
    if level <= threshold:
        return effect
    return effect / (1.0 + DIMINISHING_RATE * (level - threshold))


def level_of(catalog: InterventionCatalog, levels: Mapping[str, float], intervention_id: str) -> float:
    """Level of one intervention, falling back to its baseline."""
    value = levels.get(intervention_id)
    if value is None:
        return catalog.get(intervention_id).baseline
    return float(value)


def detect_synergies(catalog: InterventionCatalog, levels: Mapping[str, float]) -> List[ActiveSynergy]:
    """Return every synergy edge whose two endpoints are active.

    An intervention is active when its level is strictly above its
    baseline.  Each unordered pair appears at most once and the list is
    sorted by pair so the result does not depend on catalog order.
    """
    active = {itv.id for itv in catalog.interventions if level_of(catalog, levels, itv.id) > itv.baseline}
    found: Dict[Tuple[str, str], ActiveSynergy] = {}
    for itv in catalog.interventions:
        if itv.id not in active:
            continue
        for edge in itv.synergies:
            if edge.partner not in active:
                continue
            pair = tuple(sorted((itv.id, edge.partner)))
            if pair not in found:
                found[pair] = ActiveSynergy(pair=pair, multiplier=edge.multiplier, description=edge.description)
    synergies = [found[k] for k in sorted(found)]
    if synergies:
        logger.debug("synergies_detected", count=len(synergies), pairs=[s.pair for s in synergies])
    return synergies


def synergy_multiplier(intervention_id: str, synergies: List[ActiveSynergy]) -> float:
    """Product of the multipliers of every active synergy touching an intervention."""
    mult = 1.0
    for syn in synergies:
        if syn.involves(intervention_id):
            mult *= syn.multiplier
    return mult


def compose_effect(
    catalog: InterventionCatalog,
    outcome: str,
    levels: Mapping[str, float],
    synergies: List[ActiveSynergy],
    year: float,
) -> float:
    """Fractional change of ``outcome`` at ``year`` caused by all interventions.

    Parameters
    ----------
    catalog:
        Validated intervention catalog.
    outcome:
        Outcome id.
    levels:
        Intervention id to level.  Missing ids are at baseline.
    synergies:
        Output of :func:`detect_synergies`.
    year:
        Years since the start of the projection.

    Returns
    -------
    float
        Sum of the per-intervention contributions.  Negative values reduce
        the outcome.
    """
    total = 0.0
    for itv, impact in catalog.impacts_on(outcome):
        value = level_of(catalog, levels, itv.id)
        change = value - itv.baseline
        if change == 0 or itv.span <= 0:
            continue
        effect = impact.base_effect * (change / itv.span)
        effect = diminishing_returns(effect, value, impact.diminishing_threshold)
        effect *= adoption(year, itv.implementation_delay, itv.ramp_up_period)
        effect *= synergy_multiplier(itv.id, synergies)
        total += effect
    return total


def province_multipliers(catalog: InterventionCatalog, province: str) -> ProvinceMultipliers:
    """Multipliers of a province; unknown provinces are neutral."""
    return catalog.provinces.get(province, ProvinceMultipliers())


def provincial_effect(
    catalog: InterventionCatalog,
    outcome: str,
    province: str,
    levels: Mapping[str, float],
    overrides: Optional[Mapping[str, Mapping[str, float]]],
    synergies: List[ActiveSynergy],
    year: float,
) -> float:
    """Effect on ``outcome`` in one province.

    The province's level overrides are applied on top of the national
    levels and the composed effect is scaled by the mean of the province's
    urban, digital and screening multipliers.  Synergies are the national
    ones.
    """
    effective = dict(levels)
    if overrides and province in overrides:
        effective.update(overrides[province])
    effect = compose_effect(catalog, outcome, effective, synergies, year)
    return effect * province_multipliers(catalog, province).average
