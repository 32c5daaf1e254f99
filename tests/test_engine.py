"""End-to-end tests for the simulation engine.

Each test builds a fresh engine on the default catalog and checks one
observable of a run: trajectories, economic figures, locks, budget usage,
the analyses and the epidemiology-driven run.
"""

import math

import pytest

from policysim.aggregate import (
    EpidemiologyLevers,
    SimulationEngine,
    disease_projections,
    run_enhanced_simulation,
    run_simulation,
)
from policysim.params import EngineSettings, SimulationRequest
from policysim.sim_3_epidemiology import EpidemiologyBaseline


def test_default_run_changes_nothing():
    result = SimulationEngine().run(SimulationRequest())
    assert len(result.trajectories) == 8
    assert all(len(points) == 16 for points in result.trajectories.values())
    assert all(v == 0.0 for v in result.outcome_deltas.values())
    assert result.economic_impact.total_cost == 0.0
    assert result.active_synergies == []
    assert result.budget is None
    for points in result.trajectories.values():
        assert all(p.intervention == p.baseline for p in points)


def test_locked_interventions_at_defaults():
    locked = SimulationEngine().run(SimulationRequest()).locked_interventions
    assert set(locked) == {"transFatBan", "mentalHealthScreening", "specialistCare",
                           "chronicDiseaseManagement", "digitalHealthTwin"}


def test_raising_prerequisite_unlocks():
    engine = SimulationEngine()
    locked = engine.locked_interventions({"primaryCare": 2, "foodLabeling": 40})
    assert locked == ["digitalHealthTwin"]


def test_unknown_intervention_rejected():
    with pytest.raises(ValueError, match="unknown intervention"):
        SimulationEngine().run(SimulationRequest(levels={"magicPill": 10}))


def test_non_finite_level_rejected():
    with pytest.raises(ValueError):
        SimulationEngine().normalise_levels({"sugarTax": float("nan")})


def test_out_of_range_level_clamped_or_rejected():
    assert SimulationEngine().normalise_levels({"sugarTax": 80}) == {"sugarTax": 50.0}
    strict = SimulationEngine(settings=EngineSettings(level_policy="reject"))
    with pytest.raises(ValueError, match="outside"):
        strict.normalise_levels({"sugarTax": 80})


def test_sugar_tax_run():
    result = run_simulation(SimulationRequest(levels={"sugarTax": 50}))
    end = result.trajectories["obesity"][-1]
    assert end.intervention < end.baseline
    assert result.outcome_deltas["obesity"] < 0
    assert result.economic_impact.total_cost < 0
    assert result.economic_impact.roi == 0.0


def test_provincial_impacts():
    result = run_simulation(SimulationRequest(levels={"sugarTax": 20}))
    national = result.outcome_deltas["obesity"]
    assert len(result.provincial_impacts) == 13
    assert math.isclose(result.provincial_impacts["riyadh"]["obesity"], national * 1.1)


def test_provincial_override_changes_only_that_province():
    request = SimulationRequest(levels={"sugarTax": 20}, provincial_overrides={"jazan": {"sugarTax": 40}})
    result = run_simulation(request)
    plain = run_simulation(SimulationRequest(levels={"sugarTax": 20}))
    assert result.provincial_impacts["jazan"]["obesity"] < plain.provincial_impacts["jazan"]["obesity"]
    assert result.provincial_impacts["riyadh"] == plain.provincial_impacts["riyadh"]


def test_budget_usage():
    usage = SimulationEngine.budget_usage(5.0, 10.0)
    assert usage.remaining == 5.0
    assert usage.utilisation == 0.5
    assert usage.within_budget
    over = SimulationEngine.budget_usage(5.0, 0.0)
    assert over.utilisation == math.inf
    assert not over.within_budget
    result = run_simulation(SimulationRequest(levels={"primaryCare": 5}, budget=1.0))
    assert result.budget is not None
    assert not result.budget.within_budget


def test_input_hash_is_stable():
    a = run_simulation(SimulationRequest(levels={"sugarTax": 20}, horizon=10))
    b = run_simulation(SimulationRequest(levels={"sugarTax": 20}, horizon=10))
    c = run_simulation(SimulationRequest(levels={"sugarTax": 25}, horizon=10))
    assert a.input_hash == b.input_hash
    assert a.input_hash != c.input_hash


def test_trajectory_frame():
    df = run_simulation(SimulationRequest(horizon=5)).trajectory_frame()
    assert len(df) == 8 * 6
    assert set(df["outcome"]) == {"diabetes", "obesity", "cvd", "hypertension", "lifeExpectancy",
                                  "healthyLifeYears", "healthcareCosts", "productivity"}


def test_sensitivity():
    df = SimulationEngine().sensitivity({}, "obesity")
    assert list(df.columns) == ["intervention", "min", "max", "range"]
    assert len(df) == 25
    sugar = df[df["intervention"] == "sugarTax"].iloc[0]
    assert math.isclose(sugar["min"], 0.0, abs_tol=1e-12)
    assert math.isclose(sugar["max"], -6.0)
    assert math.isclose(sugar["range"], 6.0)
    assert df["range"].is_monotonic_decreasing


def test_sensitivity_unknown_outcome():
    with pytest.raises(KeyError):
        SimulationEngine().sensitivity({}, "happiness")


def test_cost_effectiveness_ranking():
    df = SimulationEngine().cost_effectiveness()
    assert df["rank"].tolist() == list(range(1, 26))
    assert df.iloc[0]["intervention"] == "tobaccoTax"
    assert df.iloc[0]["cost_per_qaly"] < 0
    # no life-expectancy effect, no QALYs
    sugar = df[df["intervention"] == "sugarTax"].iloc[0]
    assert sugar["cost_per_qaly"] == math.inf


def test_enhanced_run_without_interventions():
    result = run_enhanced_simulation({}, horizon=10)
    assert len(result.disease_projections) == 11
    assert len(result.integrated_projection) == 11
    assert result.economic_impact.total_cost == 0.0
    assert result.economic_impact.confidence_level == "low"
    assert result.cea_results == []
    assert result.intervention_effects == {}


def test_enhanced_run_with_interventions():
    result = run_enhanced_simulation({"sugarTax": 20, "ncdScreening": 60},
                                     levers=EpidemiologyLevers(art_coverage=90, itn_coverage=80), horizon=10)
    assert result.confidence_levels == {"sugarTax": "high", "ncdScreening": "medium"}
    assert result.economic_impact.confidence_level == "medium"
    assert len(result.cea_results) == 2
    assert result.intervention_effects["sugarTax"].expected_effect < 0
    assert result.qaly_details.discounted > 0


def test_enhanced_run_rejects_bad_horizon():
    with pytest.raises(ValueError):
        SimulationEngine().run_enhanced({}, horizon=0)


def test_disease_projections_with_zero_malaria_baseline():
    df = disease_projections(EpidemiologyLevers(), EpidemiologyBaseline(malaria_incidence=0.0), 5)
    assert len(df) == 6
    assert df["mortality_reduction"].map(math.isfinite).all()
