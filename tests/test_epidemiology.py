"""Tests for the compartmental disease models."""

import math

import pytest

from policysim.sim_3_epidemiology import (
    PROJECTION_COLUMNS,
    ChronicDiseaseModel,
    ChronicEffect,
    CommunicableDiseaseModel,
    InterventionEffect,
    VectorBorneModel,
    run_integrated_projection,
)

POP = 19.61e6


def test_communicable_projection_rows_and_start():
    model = CommunicableDiseaseModel(POP, 11.1, 82.0)
    df = model.project(10)
    assert list(df.columns) == PROJECTION_COLUMNS
    assert len(df) == 11
    assert math.isclose(df["prevalence"].iloc[0], 11.1)
    assert math.isclose(df["on_treatment"].iloc[0], 82.0)
    assert df["year"].iloc[0] == 2025


def test_compartments_never_negative():
    models = [
        CommunicableDiseaseModel(POP, 11.1, 82.0),
        VectorBorneModel(POP, 285.0),
        ChronicDiseaseModel(POP, 3.5, 58.0),
    ]
    for model in models:
        for _ in range(20):
            state = model.step_year()
            assert all(v >= 0.0 for v in state.values())


def test_state_is_a_copy():
    model = CommunicableDiseaseModel(POP, 11.1, 82.0)
    state = model.state
    state["S"] = -1.0
    assert model.state["S"] > 0


def test_no_infected_means_no_treatment():
    model = CommunicableDiseaseModel(1000.0, 0.0, 50.0)
    df = model.project(3)
    assert (df["on_treatment"] == 0.0).all()
    assert (df["prevalence"] == 0.0).all()


def test_treatment_scale_up_lowers_deaths():
    base = CommunicableDiseaseModel(POP, 11.1, 60.0).project(10)
    treated = CommunicableDiseaseModel(POP, 11.1, 60.0)
    treated.apply_intervention(InterventionEffect(treatment_increase=0.5))
    df = treated.project(10)
    assert df["deaths"].iloc[-1] < base["deaths"].iloc[-1]


def test_seasonal_modifier_peaks_at_peak_month():
    model = VectorBorneModel(POP, 285.0, seasonal_amplitude=0.3, peak_month=1)
    assert math.isclose(model.seasonal_modifier(1), 1.3)
    assert math.isclose(model.seasonal_modifier(7), 0.7)


def test_seasonal_amplitude_validated():
    with pytest.raises(ValueError):
        VectorBorneModel(POP, 285.0, seasonal_amplitude=1.5)


def test_vector_projection_rows():
    df = VectorBorneModel(POP, 285.0).project(5)
    assert len(df) == 6
    assert (df["prevalence"] >= 0).all()


def test_prevention_lowers_chronic_prevalence():
    base = ChronicDiseaseModel(POP, 3.5, 58.0).project(10)
    prevented = ChronicDiseaseModel(POP, 3.5, 58.0)
    prevented.apply_intervention(ChronicEffect(prevention_effect=0.5))
    df = prevented.project(10)
    assert math.isclose(df["prevalence"].iloc[0], base["prevalence"].iloc[0])
    assert df["prevalence"].iloc[-1] < base["prevalence"].iloc[-1]


def test_invalid_population_and_years():
    with pytest.raises(ValueError):
        ChronicDiseaseModel(0.0, 3.5, 58.0)
    with pytest.raises(ValueError):
        ChronicDiseaseModel(POP, 3.5, 58.0).project(0)


def test_integrated_projection():
    df = run_integrated_projection(years=8)
    assert len(df) == 9
    for col in ("year", "hiv_prevalence", "malaria_incidence", "diabetes_daly",
                "total_daly", "life_expectancy", "healthy_life_expectancy"):
        assert col in df.columns
    row = df.iloc[3]
    assert math.isclose(row["total_daly"], row["hiv_daly"] + row["malaria_daly"] + row["diabetes_daly"])
    assert (df["healthy_life_expectancy"] < df["life_expectancy"]).all()
