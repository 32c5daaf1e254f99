# MIT License
"""Compartmental disease models.

Three deterministic models run on an annual clock:

* :class:`CommunicableDiseaseModel` - a chronic infection with a treatment
  compartment that suppresses onward transmission (HIV-like);
* :class:`VectorBorneModel` - a seasonal SEIR with weekly sub-steps and
  waning immunity (malaria-like);
* :class:`ChronicDiseaseModel` - a multi-state Markov cascade from healthy
  to complications (diabetes-like).

Every compartment is clamped to zero after each (sub)step.  Population is
not conserved; deaths accumulate in their own stock.  Each model returns its
projection as a pandas DataFrame with the columns ``year, prevalence,
incidence, deaths, on_treatment, daly``.
"""

from __future__ import annotations

import math
from typing import Dict, Optional

import pandas as pd
import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

PROJECTION_COLUMNS = ["year", "prevalence", "incidence", "deaths", "on_treatment", "daly"]


class DiseaseParams(BaseModel):
    """Annual rates of an infectious disease model."""

    beta: float = Field(..., ge=0.0, description="Transmission rate")
    sigma: float = Field(0.0, ge=0.0, description="Incubation rate (1 / latent period)")
    gamma: float = Field(0.0, ge=0.0, description="Recovery rate")
    mu: float = Field(..., ge=0.0, description="Disease mortality rate")
    treatment_rate: float = Field(..., ge=0.0)
    treatment_efficacy: float = Field(..., ge=0.0, le=1.0)


class InterventionEffect(BaseModel):
    """Relative parameter changes applied to an infectious disease model."""

    beta_reduction: float = Field(0.0, ge=0.0, le=1.0)
    treatment_increase: float = Field(0.0, ge=0.0)
    mortality_reduction: float = Field(0.0, ge=0.0, le=1.0)


class ChronicParams(BaseModel):
    """Annual transition probabilities of the chronic disease cascade."""

    progression_to_risk: float = Field(0.02, ge=0.0, le=1.0)
    progression_to_disease: float = Field(0.05, ge=0.0, le=1.0)
    diagnosis_rate: float = Field(0.1, ge=0.0)
    control_rate: float = Field(0.3, ge=0.0)
    complication_rate: float = Field(0.03, ge=0.0, le=1.0)
    mortality_complication: float = Field(0.05, ge=0.0, le=1.0)
    mortality_controlled: float = Field(0.01, ge=0.0, le=1.0)


class ChronicEffect(BaseModel):
    """Relative parameter changes applied to the chronic disease cascade."""

    screening_increase: float = Field(0.0, ge=0.0)
    control_improvement: float = Field(0.0, ge=0.0)
    prevention_effect: float = Field(0.0, ge=0.0, le=1.0)
    treatment_access: float = Field(0.0, ge=0.0, le=1.0)


class EpidemiologyBaseline(BaseModel):
    """Starting point of the integrated projection."""

    population: float = Field(19.61e6, gt=0.0)
    hiv_prevalence: float = Field(11.1, ge=0.0, le=100.0, description="% of population")
    hiv_treatment: float = Field(82.0, ge=0.0, le=100.0, description="% of infected on treatment")
    malaria_incidence: float = Field(285.0, ge=0.0, description="Cases per 1000 per year")
    diabetes_prevalence: float = Field(3.5, ge=0.0, le=100.0)
    diabetes_undiagnosed: float = Field(58.0, ge=0.0, le=100.0, description="% of cases undiagnosed")
    life_expectancy: float = Field(64.0, gt=0.0)
    start_year: int = 2025


def _clamp_state(state: Dict[str, float]) -> None:
    for key, value in state.items():
        state[key] = max(0.0, value)


class _CompartmentModel:
    """Shared plumbing: state copies and the annual projection loop."""

    def __init__(self, population: float, start_year: int = 2025):
        if population <= 0:
            raise ValueError("population must be positive")
        self.population = float(population)
        self.start_year = start_year
        self._state: Dict[str, float] = {}

    @property
    def state(self) -> Dict[str, float]:
        """Copy of the current compartment stocks."""
        return dict(self._state)

    def step_year(self) -> Dict[str, float]:
        raise NotImplementedError

    def _record(self, y: int, years: int) -> dict:
        raise NotImplementedError

    def project(self, years: int) -> pd.DataFrame:
        """Record the current state, then step ``years`` times, recording after each step.

        Returns ``years + 1`` rows.  The model is advanced in place.
        """
        if years < 1:
            raise ValueError("years must be at least 1")
        rows = []
        for y in range(years + 1):
            rows.append(self._record(y, years))
            if y < years:
                self.step_year()
        return pd.DataFrame(rows, columns=PROJECTION_COLUMNS)


class CommunicableDiseaseModel(_CompartmentModel):
    """Chronic infection with a treatment compartment (S, I, T, D).

    Parameters
    ----------
    population:
        Total population.
    prevalence_pct:
        Initial share of the population infected, in percent.
    treatment_coverage_pct:
        Share of the infected already on treatment, in percent.
    """

    def __init__(self, population: float, prevalence_pct: float, treatment_coverage_pct: float,
                 params: Optional[DiseaseParams] = None, start_year: int = 2025):
        super().__init__(population, start_year)
        infected = self.population * prevalence_pct / 100.0
        treated = infected * treatment_coverage_pct / 100.0
        self._state = dict(S=self.population - infected, E=0.0, I=infected - treated, R=0.0, T=treated, D=0.0)
        self.params = params or DiseaseParams(beta=0.03, sigma=12.0, gamma=0.0, mu=0.02,
                                              treatment_rate=0.15, treatment_efficacy=0.95)

    def apply_intervention(self, effect: InterventionEffect) -> None:
        p = self.params
        self.params = p.model_copy(update=dict(
            beta=p.beta * (1.0 - effect.beta_reduction),
            treatment_rate=p.treatment_rate * (1.0 + effect.treatment_increase),
            mu=p.mu * (1.0 - effect.mortality_reduction),
        ))

    def step_year(self) -> Dict[str, float]:
        s = self._state
        p = self.params
        n = self.population
        # viral suppression on treatment cuts onward transmission
        effective_beta = p.beta * (1.0 - p.treatment_efficacy * (s["T"] / (s["I"] + s["T"] + 0.001)))
        new_infections = effective_beta * s["S"] * (s["I"] / n)
        new_treatment = p.treatment_rate * s["I"]
        untreated_deaths = p.mu * s["I"]
        treated_deaths = p.mu * 0.1 * s["T"]

        s["S"] -= new_infections
        s["I"] += new_infections - new_treatment - untreated_deaths
        s["T"] += new_treatment - treated_deaths
        s["D"] += untreated_deaths + treated_deaths
        _clamp_state(s)
        return self.state

    def _record(self, y: int, years: int) -> dict:
        s = self._state
        n = self.population
        infected = s["I"] + s["T"]
        incidence = self.params.beta * s["S"] * (s["I"] / n)
        yld = s["I"] * 0.4 + s["T"] * 0.053
        yll = s["D"] / max(1, years) * 30.0
        return dict(year=self.start_year + y,
                    prevalence=infected / n * 100.0,
                    incidence=incidence / n * 1000.0,
                    deaths=s["D"],
                    on_treatment=s["T"] / infected * 100.0 if infected > 0 else 0.0,
                    daly=yld + yll)


class VectorBorneModel(_CompartmentModel):
    """Seasonal SEIR with a treatment counter (S, E, I, R, T, D).

    Each simulated year runs 52 weekly sub-steps.  Transmission peaks in
    ``peak_month`` and is modulated by ``1 + amplitude * cos(phase)``.  At the
    end of the year half of the recovered lose immunity and the treatment
    counter restarts.
    """

    WEEKS = 52

    def __init__(self, population: float, annual_incidence_per_1000: float, seasonal_amplitude: float = 0.3,
                 peak_month: int = 1, params: Optional[DiseaseParams] = None, start_year: int = 2025):
        super().__init__(population, start_year)
        if not 0.0 <= seasonal_amplitude <= 1.0:
            raise ValueError("seasonal_amplitude must be in [0, 1]")
        self.seasonal_amplitude = seasonal_amplitude
        self.peak_month = peak_month
        # prevalence ~ incidence x two-week infection duration
        infected = annual_incidence_per_1000 / 1000.0 * self.population * (14.0 / 365.0)
        self._state = dict(S=self.population - infected, E=infected * 0.3, I=infected * 0.7, R=0.0, T=0.0, D=0.0)
        self.params = params or DiseaseParams(beta=annual_incidence_per_1000 / 1000.0 / 4.0, sigma=52.0, gamma=26.0,
                                              mu=0.001, treatment_rate=0.6, treatment_efficacy=0.95)

    def seasonal_modifier(self, month: int) -> float:
        phase = (month - self.peak_month) / 12.0 * 2.0 * math.pi
        return 1.0 + self.seasonal_amplitude * math.cos(phase)

    def apply_intervention(self, effect: InterventionEffect) -> None:
        p = self.params
        self.params = p.model_copy(update=dict(
            beta=p.beta * (1.0 - effect.beta_reduction),
            mu=p.mu * (1.0 - effect.mortality_reduction),
            treatment_rate=p.treatment_rate * (1.0 + effect.treatment_increase),
        ))

    def step_year(self) -> Dict[str, float]:
        s = self._state
        p = self.params
        n = self.population
        dt = 1.0 / self.WEEKS
        for week in range(self.WEEKS):
            month = math.floor(week / 4.33)
            lam = p.beta * self.seasonal_modifier(month) * s["I"] / n
            new_exposed = lam * s["S"]
            new_infected = p.sigma * s["E"] * dt
            recovered = p.gamma * s["I"] * dt
            treated = p.treatment_rate * s["I"] * dt
            deaths = p.mu * s["I"] * (1.0 - p.treatment_rate * p.treatment_efficacy) * dt

            s["S"] += -new_exposed * dt + recovered * 0.1
            s["E"] += new_exposed * dt - new_infected
            s["I"] += new_infected - recovered - treated - deaths
            s["R"] += recovered * 0.9
            s["T"] += treated
            s["D"] += deaths
            _clamp_state(s)
        # waning immunity
        s["S"] += s["R"] * 0.5
        s["R"] *= 0.5
        s["T"] = 0.0
        return self.state

    def _record(self, y: int, years: int) -> dict:
        s = self._state
        n = self.population
        yld = s["I"] * 0.08
        yll = s["D"] / max(1, y) * 35.0
        return dict(year=self.start_year + y,
                    prevalence=(s["I"] + s["E"]) / n * 100.0,
                    incidence=self.params.beta * s["S"] / n * 1000.0,
                    deaths=s["D"],
                    on_treatment=self.params.treatment_rate * 100.0,
                    daly=yld + yll)


class ChronicDiseaseModel(_CompartmentModel):
    """Healthy -> at risk -> undiagnosed -> diagnosed -> {controlled, complications} -> dead."""

    def __init__(self, population: float, prevalence_pct: float, undiagnosed_pct: float,
                 params: Optional[ChronicParams] = None, start_year: int = 2025):
        super().__init__(population, start_year)
        with_disease = self.population * prevalence_pct / 100.0
        undiagnosed = with_disease * undiagnosed_pct / 100.0
        diagnosed = with_disease - undiagnosed
        self._state = dict(
            healthy=self.population * 0.5,
            at_risk=self.population * 0.3,
            undiagnosed=undiagnosed,
            diagnosed=diagnosed * 0.6,
            controlled=diagnosed * 0.4,
            complications=0.0,
            deaths=0.0,
        )
        self.params = params or ChronicParams()

    def apply_intervention(self, effect: ChronicEffect) -> None:
        p = self.params
        self.params = p.model_copy(update=dict(
            diagnosis_rate=p.diagnosis_rate * (1.0 + effect.screening_increase),
            control_rate=p.control_rate * (1.0 + effect.control_improvement),
            progression_to_risk=p.progression_to_risk * (1.0 - effect.prevention_effect),
            progression_to_disease=p.progression_to_disease * (1.0 - effect.prevention_effect),
            complication_rate=p.complication_rate * (1.0 - effect.treatment_access * 0.5),
        ))

    def step_year(self) -> Dict[str, float]:
        s = self._state
        p = self.params
        new_at_risk = p.progression_to_risk * s["healthy"]
        new_undiagnosed = p.progression_to_disease * s["at_risk"]
        new_diagnosed = p.diagnosis_rate * s["undiagnosed"]
        new_controlled = p.control_rate * s["diagnosed"]
        new_complications = p.complication_rate * s["diagnosed"]
        deaths_complication = p.mortality_complication * s["complications"]
        deaths_controlled = p.mortality_controlled * s["controlled"]

        s["healthy"] -= new_at_risk
        s["at_risk"] += new_at_risk - new_undiagnosed
        s["undiagnosed"] += new_undiagnosed - new_diagnosed
        s["diagnosed"] += new_diagnosed - new_controlled - new_complications
        s["controlled"] += new_controlled - deaths_controlled
        s["complications"] += new_complications - deaths_complication
        s["deaths"] += deaths_complication + deaths_controlled
        _clamp_state(s)
        return self.state

    def _record(self, y: int, years: int) -> dict:
        s = self._state
        n = self.population
        with_disease = s["undiagnosed"] + s["diagnosed"] + s["controlled"] + s["complications"]
        yld = (s["undiagnosed"] * 0.02 + s["diagnosed"] * 0.015
               + s["controlled"] * 0.01 + s["complications"] * 0.3)
        yll = s["deaths"] / max(1, y) * 15.0
        return dict(year=self.start_year + y,
                    prevalence=with_disease / n * 100.0,
                    incidence=self.params.progression_to_disease * s["at_risk"] / n * 1000.0,
                    deaths=s["deaths"],
                    on_treatment=(s["diagnosed"] + s["controlled"]) / max(1.0, with_disease) * 100.0,
                    daly=yld + yll)


def run_integrated_projection(
    baseline: Optional[EpidemiologyBaseline] = None,
    hiv: Optional[InterventionEffect] = None,
    malaria: Optional[InterventionEffect] = None,
    ncd: Optional[ChronicEffect] = None,
    years: int = 15,
) -> pd.DataFrame:
    """Project the three disease models in lockstep.

    Parameters
    ----------
    baseline:
        Population and starting epidemiology.
    hiv, malaria, ncd:
        Optional parameter changes for each model.
    years:
        Projection horizon.

    Returns
    -------
    pandas.DataFrame
        One row per year with ``<disease>_<metric>`` columns for each model,
        ``total_daly``, ``life_expectancy`` and ``healthy_life_expectancy``.
    """
    baseline = baseline or EpidemiologyBaseline()
    models = {
        "hiv": CommunicableDiseaseModel(baseline.population, baseline.hiv_prevalence, baseline.hiv_treatment,
                                        start_year=baseline.start_year),
        "malaria": VectorBorneModel(baseline.population, baseline.malaria_incidence, start_year=baseline.start_year),
        "diabetes": ChronicDiseaseModel(baseline.population, baseline.diabetes_prevalence,
                                        baseline.diabetes_undiagnosed, start_year=baseline.start_year),
    }
    if hiv is not None:
        models["hiv"].apply_intervention(hiv)
    if malaria is not None:
        models["malaria"].apply_intervention(malaria)
    if ncd is not None:
        models["diabetes"].apply_intervention(ncd)

    frames = []
    for name, model in models.items():
        df = model.project(years).set_index("year")
        frames.append(df.add_prefix(f"{name}_"))
    df = pd.concat(frames, axis=1).reset_index()

    df["total_daly"] = df["hiv_daly"] + df["malaria_daly"] + df["diabetes_daly"]
    # 1000 DALYs per 100K population ~ 0.1 years of life expectancy
    le_impact = df["total_daly"] / baseline.population * 100_000 * 0.0001
    i = df.index.to_numpy()
    df["life_expectancy"] = baseline.life_expectancy - le_impact * 0.5 + i * 0.15
    df["healthy_life_expectancy"] = (baseline.life_expectancy - 8.0) - le_impact + i * 0.2
    logger.debug("integrated_projection", years=years, final_daly=float(df["total_daly"].iloc[-1]))
    return df
