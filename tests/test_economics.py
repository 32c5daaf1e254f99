"""Tests for the economic valuator and the cashflow helpers."""

import math

from policysim.catalog import default_catalog
from policysim.economics import (
    annual_cashflows,
    economic_impact,
    intervention_cost,
    irr,
    npv,
    payback_period,
)
from policysim.sim_1_effects import detect_synergies
from policysim.utils import round_half_up

CATALOG = default_catalog()


def test_npv_simple():
    cfs = [-100.0, 60.0, 60.0]
    expected = -100 / 1.1 + 60 / 1.1 ** 2 + 60 / 1.1 ** 3
    assert math.isclose(npv(cfs, 0.10), expected)


def test_npv_zero_rate_is_sum():
    assert math.isclose(npv([1.0, 2.0, 3.0], 0.0), 6.0)


def test_irr_simple():
    assert math.isclose(irr([-100.0, 110.0]), 0.10, abs_tol=1e-6)


def test_irr_without_sign_change_is_nan():
    assert math.isnan(irr([10.0, 10.0, 10.0]))


def test_payback_period():
    assert payback_period([-100.0, 50.0, 60.0]) == 3.0
    assert payback_period([5.0]) == 1.0
    assert math.isnan(payback_period([-100.0, 10.0]))


def test_round_half_up():
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.5) == 3.0
    assert round_half_up(-2.5) == -2.0


def test_baseline_scenario_costs_nothing():
    impact = economic_impact(CATALOG, CATALOG.baseline_levels(), [], 15)
    assert impact.total_cost == 0.0
    assert impact.healthcare_savings == 0.0
    assert impact.qaly_gained == 0.0
    assert impact.roi == 0.0


def test_sugar_tax_is_revenue():
    levels = {"sugarTax": 20}
    impact = economic_impact(CATALOG, levels, detect_synergies(CATALOG, levels), 15)
    assert impact.total_cost == -0.8
    assert impact.healthcare_savings == 0.7
    assert impact.productivity_gains == 0.0
    assert impact.roi == 0.0
    assert impact.net_benefit == 1.5


def test_cost_scales_with_horizon():
    levels = {"primaryCare": 80}
    assert math.isclose(intervention_cost(CATALOG, levels, 30), 2 * intervention_cost(CATALOG, levels, 15))


def test_screening_gains_life_years():
    levels = {"ncdScreening": 80}
    impact = economic_impact(CATALOG, levels, [], 15)
    assert impact.total_cost > 0
    assert impact.qaly_gained > 0
    assert impact.productivity_gains > 0


def test_annual_cashflows_shape():
    levels = {"ncdScreening": 80}
    df = annual_cashflows(CATALOG, levels, [], 10)
    assert list(df.columns) == ["year", "cost", "healthcare_savings", "productivity_gains", "cashflow", "cum_cashflow"]
    assert df["year"].tolist() == list(range(1, 11))
    assert math.isclose(df["cost"].sum(), intervention_cost(CATALOG, levels, 10))
    # benefits only after the implementation delay
    assert df["healthcare_savings"].iloc[0] == 0.0
    assert df["healthcare_savings"].iloc[-1] > 0.0
    assert math.isclose(df["cum_cashflow"].iloc[-1], df["cashflow"].sum())
