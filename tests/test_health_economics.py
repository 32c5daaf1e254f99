"""Tests for discounting, QALY/DALY, costing, CEA, PSA and ranking."""

import math

import numpy as np
import pytest

from policysim.health_economics import (
    CEACandidate,
    HealthState,
    RankingInput,
    calculate_daly,
    calculate_disease_cost,
    calculate_icer,
    calculate_nmb,
    calculate_qaly,
    calculate_qaly_gained,
    ce_thresholds,
    classify_cost_effectiveness,
    discount_factor,
    present_value,
    rank_interventions,
    run_cea,
    run_psa,
)


def test_discount_factor():
    assert discount_factor(0, 0.03) == 1.0
    assert math.isclose(discount_factor(1, 0.03), 1 / 1.03)
    factors = [discount_factor(y, 0.03) for y in range(10)]
    assert all(b < a for a, b in zip(factors, factors[1:]))
    with pytest.raises(ValueError):
        discount_factor(1, -1.0)


def test_present_value_first_element_undiscounted():
    assert math.isclose(present_value([100.0, 100.0], 0.05), 100.0 + 100.0 / 1.05)


def test_qaly_half_cycle_correction():
    states = [HealthState(name="healthy", utility=1.0, duration=3)]
    assert math.isclose(calculate_qaly(states, rate=0.0).undiscounted, 2.0)
    plain = calculate_qaly(states, rate=0.0, half_cycle_correction=False)
    assert math.isclose(plain.undiscounted, 3.0)
    assert plain.life_years == 3.0
    assert math.isclose(plain.quality_adjustment, 1.0)


def test_qaly_discounting_lowers_value():
    states = [HealthState(name="hiv_on_art", utility=0.947, duration=10)]
    r = calculate_qaly(states, rate=0.03)
    assert r.discounted < r.undiscounted


def test_qaly_gained():
    base = [HealthState(name="aids_without_art", utility=0.453, duration=5)]
    better = [HealthState(name="hiv_on_art", utility=0.947, duration=5)]
    assert calculate_qaly_gained(base, better) > 0


def test_daly_fractional_final_year():
    assert math.isclose(calculate_daly(1, 85.6, 0, 0.0, 0, rate=0.0).yll, 1.0)
    assert math.isclose(calculate_daly(1, 86.1, 0, 0.0, 0, rate=0.0).yll, 0.5)
    assert calculate_daly(1, 90.0, 0, 0.0, 0, rate=0.0).yll == 0.0


def test_daly_components_sum():
    d = calculate_daly(10, 50.0, 100, 0.2, 5, rate=0.03)
    assert math.isclose(d.total, d.yll + d.yld)
    assert d.yld < 100 * 0.2 * 5


def test_daly_rejects_bad_weight():
    with pytest.raises(ValueError):
        calculate_daly(1, 50.0, 1, 1.5, 1)


def test_disease_cost_hiv_on_treatment():
    r = calculate_disease_cost("hiv", "on_treatment", 1)
    assert math.isclose(r.direct, 262.0)
    assert math.isclose(r.indirect, 200.0)
    assert math.isclose(r.discounted, 462.0)
    assert math.isclose(r.undiscounted, 462.0)


def test_disease_cost_unknown_disease():
    with pytest.raises(ValueError):
        calculate_disease_cost("flu", "mild", 1)


def test_thresholds_and_classification():
    t = ce_thresholds(1500)
    assert t.highly_cost_effective == 1500
    assert t.cost_effective == 4500
    assert classify_cost_effectiveness(1000, t) == "highly_cost_effective"
    assert classify_cost_effectiveness(3000, t) == "cost_effective"
    assert classify_cost_effectiveness(5000, t) == "not_cost_effective"


def test_icer_and_nmb():
    assert math.isclose(calculate_icer(200, 100, 12, 10), 50.0)
    assert calculate_icer(200, 100, 10, 10) == math.inf
    assert math.isclose(calculate_nmb(2, 100, 1000), 1900.0)


def test_cea_strong_dominance():
    results = run_cea([CEACandidate(name="B", cost=200, qaly=5), CEACandidate(name="A", cost=100, qaly=10)])
    by_name = {r.intervention: r for r in results}
    assert [r.intervention for r in results] == ["A", "B"]
    assert by_name["B"].dominated
    assert not by_name["A"].dominated
    assert by_name["A"].on_frontier
    assert by_name["A"].icer == 10.0


def test_cea_extended_dominance():
    results = run_cea([
        CEACandidate(name="A", cost=100, qaly=10),
        CEACandidate(name="B", cost=200, qaly=12),
        CEACandidate(name="C", cost=300, qaly=20),
    ])
    by_name = {r.intervention: r for r in results}
    assert by_name["B"].extended_dominated
    assert not by_name["B"].dominated
    assert by_name["C"].on_frontier
    assert by_name["C"].icer == 20.0
    assert by_name["B"].icer == 50.0


def test_cea_nmb_uses_wtp():
    results = run_cea([CEACandidate(name="A", cost=100, qaly=1)], wtp=1000)
    assert results[0].net_monetary_benefit == 900.0


def test_psa_is_reproducible_with_seed():
    a = run_psa(1000, 5, 100, 1, iterations=500, rng=np.random.default_rng(42), method="parametric")
    b = run_psa(1000, 5, 100, 1, iterations=500, rng=np.random.default_rng(42), method="parametric")
    assert a == b
    assert a.method == "parametric"
    assert a.cost_ci95[0] <= a.mean_cost <= a.cost_ci95[1]
    assert a.qaly_ci95[0] <= a.mean_qaly <= a.qaly_ci95[1]
    probs = [p.probability for p in a.acceptability]
    assert probs[0] == 0.0
    assert all(b >= a for a, b in zip(probs, probs[1:]))


def test_psa_approximate_method():
    r = run_psa(1000, 5, 100, 1, iterations=300, rng=np.random.default_rng(1), method="approximate")
    assert r.iterations == 300
    assert math.isclose(r.mean_cost, 1000, rel_tol=0.05)
    assert math.isclose(r.mean_qaly, 5, rel_tol=0.05)


def test_psa_default_keeps_cost_saving_negative():
    r = run_psa(-100, 2, 20, 0.5, iterations=400, rng=np.random.default_rng(5))
    assert r.method == "approximate"
    assert r.mean_cost < 0
    assert r.cost_ci95[1] <= 0
    assert math.isclose(r.mean_qaly, 2, rel_tol=0.05)


def test_psa_parametric_mirrors_negative_costs():
    r = run_psa(-100, 2, 20, 0.5, iterations=400, rng=np.random.default_rng(5), method="parametric")
    assert r.mean_cost < 0
    assert math.isclose(r.mean_cost, -100, rel_tol=0.1)


def test_psa_handles_qalys_above_twenty():
    for method in ("approximate", "parametric"):
        r = run_psa(1000, 25, 100, 2, iterations=400, rng=np.random.default_rng(9), method=method)
        assert math.isclose(r.mean_qaly, 25, rel_tol=0.05)


def test_psa_rejects_bad_inputs():
    with pytest.raises(ValueError):
        run_psa(1000, 5, 100, 1, method="bootstrap")
    with pytest.raises(ValueError):
        run_psa(0, 5, 100, 1, method="parametric")
    with pytest.raises(ValueError):
        run_psa(1000, 5, 100, 1, iterations=0)


def test_rank_interventions():
    ranked = rank_interventions([
        RankingInput(id="dear", annual_cost=10000, daly_averted=2, qaly_gained=1),
        RankingInput(id="cheap", annual_cost=100, daly_averted=1, qaly_gained=1),
        RankingInput(id="none", annual_cost=50, daly_averted=0, qaly_gained=0),
    ])
    assert [r.id for r in ranked] == ["cheap", "dear", "none"]
    assert [r.rank for r in ranked] == [1, 2, 3]
    assert ranked[0].ce_category == "highly_cost_effective"
    assert ranked[1].ce_category == "not_cost_effective"
    assert ranked[2].cost_per_daly_averted == math.inf
