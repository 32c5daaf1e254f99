# MIT License
"""Default intervention catalog.

Twenty-five national health policy levers across eight categories, the eight
outcomes they act on and the per-province effectiveness multipliers.  The
catalog is built on demand by :func:`default_catalog` so callers (and test
fixtures) can construct alternative catalogs without touching global state.

Costs are in billions per full-range move of a lever; negative costs are
revenue (taxes).
"""
from __future__ import annotations

from typing import Dict, Optional

from .params import (
    ImpactCoefficient,
    Intervention,
    InterventionCatalog,
    OutcomeDefinition,
    ProvinceMultipliers,
    SynergyEdge,
)


def _impact(outcome: str, effect: float, threshold: float, weights: Optional[Dict[str, float]] = None) -> ImpactCoefficient:
    return ImpactCoefficient(
        outcome=outcome,
        base_effect=effect,
        diminishing_threshold=threshold,
        demographic_weights=weights or {},
    )


def _syn(partner: str, multiplier: float, description: str) -> SynergyEdge:
    return SynergyEdge(partner=partner, multiplier=multiplier, description=description)


DEFAULT_OUTCOMES = (
    OutcomeDefinition(id="diabetes", label="Diabetes prevalence (%)", baseline_value=16.4, optimal_ratio=0.4),
    OutcomeDefinition(id="obesity", label="Obesity rate (%)", baseline_value=30.5, optimal_ratio=0.45),
    OutcomeDefinition(id="cvd", label="Cardiovascular disease prevalence (%)", baseline_value=8.2, optimal_ratio=0.5),
    OutcomeDefinition(id="hypertension", label="Hypertension prevalence (%)", baseline_value=15.2, optimal_ratio=0.5),
    OutcomeDefinition(id="lifeExpectancy", label="Life expectancy (years)", baseline_value=78.8, higher_is_better=True, optimal_ratio=1.15),
    OutcomeDefinition(id="healthyLifeYears", label="Healthy life expectancy (years)", baseline_value=65.0, higher_is_better=True, optimal_ratio=1.2),
    OutcomeDefinition(id="healthcareCosts", label="Healthcare costs (bn)", baseline_value=125.0, optimal_ratio=0.7),
    OutcomeDefinition(id="productivity", label="Productivity (bn)", baseline_value=45.0, higher_is_better=True, optimal_ratio=1.3),
)

DEFAULT_PROVINCES: Dict[str, ProvinceMultipliers] = {
    "riyadh": ProvinceMultipliers(urban=1.1, digital=1.2, screening=1.0),
    "makkah": ProvinceMultipliers(urban=1.0, digital=1.1, screening=0.95),
    "eastern": ProvinceMultipliers(urban=1.05, digital=1.15, screening=1.0),
    "madinah": ProvinceMultipliers(urban=0.95, digital=1.0, screening=1.0),
    "asir": ProvinceMultipliers(urban=0.85, digital=0.9, screening=1.1),
    "jazan": ProvinceMultipliers(urban=0.75, digital=0.8, screening=1.2),
    "qassim": ProvinceMultipliers(urban=0.9, digital=0.95, screening=1.05),
    "tabuk": ProvinceMultipliers(urban=0.8, digital=0.85, screening=1.1),
    "hail": ProvinceMultipliers(urban=0.85, digital=0.9, screening=1.1),
    "najran": ProvinceMultipliers(urban=0.75, digital=0.8, screening=1.15),
    "aljawf": ProvinceMultipliers(urban=0.8, digital=0.85, screening=1.1),
    "northernBorders": ProvinceMultipliers(urban=0.7, digital=0.75, screening=1.2),
    "albahah": ProvinceMultipliers(urban=0.8, digital=0.85, screening=1.1),
}


def _interventions():
    return (
        # prevention
        Intervention(
            id="sugarTax", name="Sugar-Sweetened Beverage Tax", category="prevention", subcategory="fiscal",
            description="Tax on sugary beverages to reduce consumption and generate health revenue",
            unit="%", min_level=0, max_level=50, baseline=0, step=5, cost_per_unit=-0.2,
            synergies=(
                _syn("nutritionEducation", 1.4, "Education amplifies tax effect"),
                _syn("foodLabeling", 1.2, "Labels help informed choices"),
            ),
            implementation_delay=1, ramp_up_period=2,
            impacts=(
                _impact("obesity", -0.12, 30, {"10-19": 1.5, "20-29": 1.3, "30-39": 1.0, "40+": 0.8}),
                _impact("diabetes", -0.08, 30, {"40-49": 1.2, "50-59": 1.3, "60+": 1.0}),
                _impact("cvd", -0.05, 35, {"50+": 1.2}),
            ),
        ),
        Intervention(
            id="tobaccoTax", name="Tobacco Tax Increase", category="prevention", subcategory="fiscal",
            description="Increase tobacco taxation to reduce smoking prevalence",
            unit="%", min_level=0, max_level=100, baseline=50, step=10, cost_per_unit=-0.3,
            scaling_function="logarithmic", implementation_delay=0.5, ramp_up_period=1,
            impacts=(
                _impact("cvd", -0.10, 80, {"30-49": 1.3, "50+": 1.1}),
                _impact("lifeExpectancy", 0.02, 80),
            ),
        ),
        Intervention(
            id="transFatBan", name="Trans-Fat Ban", category="prevention", subcategory="regulatory",
            description="Ban industrial trans-fats in food products",
            unit="% compliance", min_level=0, max_level=100, baseline=0, step=10, cost_per_unit=0.05,
            scaling_function="sigmoid", prerequisites=("foodLabeling",),
            implementation_delay=2, ramp_up_period=3,
            impacts=(
                _impact("cvd", -0.08, 80, {"40+": 1.3}),
                _impact("obesity", -0.05, 80),
            ),
        ),
        Intervention(
            id="foodLabeling", name="Mandatory Nutrition Labels", category="prevention", subcategory="regulatory",
            description="Front-of-pack warning labels on unhealthy foods",
            unit="% coverage", min_level=0, max_level=100, baseline=20, step=10, cost_per_unit=0.08,
            synergies=(
                _syn("sugarTax", 1.2, "Combined effect on purchasing"),
                _syn("nutritionEducation", 1.3, "Educated consumers use labels"),
            ),
            implementation_delay=1, ramp_up_period=2,
            impacts=(
                _impact("obesity", -0.06, 70, {"20-39": 1.3}),
                _impact("diabetes", -0.04, 70),
            ),
        ),
        # screening
        Intervention(
            id="ncdScreening", name="NCD Screening Coverage", category="screening", subcategory="population",
            description="Population-wide screening for diabetes, hypertension, and CVD risk",
            unit="% coverage", min_level=20, max_level=95, baseline=42, step=5, cost_per_unit=0.15,
            synergies=(
                _syn("primaryCare", 1.35, "Better follow-up care"),
                _syn("digitalHealthTwin", 1.25, "AI-driven risk stratification"),
            ),
            implementation_delay=1, ramp_up_period=3,
            impacts=(
                _impact("diabetes", -0.15, 75, {"40-59": 1.4, "60+": 1.2}),
                _impact("cvd", -0.12, 75, {"50+": 1.3}),
                _impact("hypertension", -0.10, 75, {"40+": 1.2}),
                _impact("lifeExpectancy", 0.025, 80),
            ),
        ),
        Intervention(
            id="cancerScreening", name="Cancer Screening Programs", category="screening", subcategory="targeted",
            description="Breast, colorectal, and cervical cancer screening programs",
            unit="% eligible", min_level=10, max_level=80, baseline=25, step=5, cost_per_unit=0.25,
            synergies=(_syn("primaryCare", 1.2, "PHC referral pathway"),),
            implementation_delay=2, ramp_up_period=4,
            impacts=(
                _impact("lifeExpectancy", 0.015, 60, {"50+": 1.5}),
                _impact("healthcareCosts", -0.03, 60),
            ),
        ),
        Intervention(
            id="mentalHealthScreening", name="Mental Health Screening", category="screening", subcategory="targeted",
            description="Depression and anxiety screening in primary care settings",
            unit="% coverage", min_level=5, max_level=70, baseline=10, step=5, cost_per_unit=0.12,
            prerequisites=("primaryCare",),
            synergies=(_syn("digitalHealthTwin", 1.3, "AI early detection"),),
            implementation_delay=2, ramp_up_period=3,
            impacts=(
                _impact("productivity", 0.05, 50, {"20-49": 1.4}),
                _impact("healthyLifeYears", 0.03, 50),
            ),
        ),
        Intervention(
            id="maternalChildHealth", name="Maternal & Child Health Checks", category="screening", subcategory="lifecycle",
            description="Comprehensive maternal and early childhood health monitoring",
            unit="% coverage", min_level=40, max_level=98, baseline=65, step=5, cost_per_unit=0.18,
            synergies=(_syn("communityHealthWorkers", 1.4, "Community outreach"),),
            implementation_delay=1, ramp_up_period=2,
            impacts=(
                _impact("lifeExpectancy", 0.02, 85, {"0-9": 2.0}),
                _impact("healthyLifeYears", 0.04, 85, {"0-9": 2.0}),
            ),
        ),
        # treatment
        Intervention(
            id="primaryCare", name="Primary Care Expansion", category="treatment", subcategory="access",
            description="New primary healthcare centers per 100K population",
            unit="centers/100K", min_level=0, max_level=5, baseline=0, step=0.5, cost_per_unit=2.5,
            synergies=(
                _syn("ncdScreening", 1.35, "Screening + follow-up"),
                _syn("chronicDiseaseManagement", 1.4, "Integrated care"),
            ),
            implementation_delay=3, ramp_up_period=5,
            impacts=(
                _impact("lifeExpectancy", 0.035, 3),
                _impact("cvd", -0.10, 3, {"50+": 1.3}),
                _impact("diabetes", -0.06, 3),
            ),
        ),
        Intervention(
            id="specialistCare", name="Specialist Care Access", category="treatment", subcategory="access",
            description="Reduce wait times and increase specialist availability",
            unit="% improvement", min_level=0, max_level=100, baseline=40, step=10, cost_per_unit=1.8,
            scaling_function="logarithmic", prerequisites=("primaryCare",),
            synergies=(_syn("telemedicine", 1.3, "Virtual consultations"),),
            implementation_delay=2, ramp_up_period=4,
            impacts=(
                _impact("cvd", -0.08, 70, {"50+": 1.4}),
                _impact("lifeExpectancy", 0.02, 70),
            ),
        ),
        Intervention(
            id="chronicDiseaseManagement", name="Chronic Disease Programs", category="treatment", subcategory="management",
            description="Integrated care programs for diabetes, CVD, and hypertension",
            unit="% enrolled", min_level=10, max_level=90, baseline=25, step=5, cost_per_unit=0.8,
            prerequisites=("primaryCare",),
            synergies=(
                _syn("digitalHealthTwin", 1.5, "AI-powered personalization"),
                _syn("medicationAccess", 1.3, "Treatment adherence"),
            ),
            implementation_delay=2, ramp_up_period=3,
            impacts=(
                _impact("diabetes", -0.12, 70, {"40+": 1.3}),
                _impact("cvd", -0.10, 70),
                _impact("healthcareCosts", -0.08, 70),
            ),
        ),
        Intervention(
            id="medicationAccess", name="Medication Subsidies", category="treatment", subcategory="affordability",
            description="Subsidized essential medications for chronic conditions",
            unit="% coverage", min_level=30, max_level=100, baseline=55, step=5, cost_per_unit=1.2,
            synergies=(_syn("chronicDiseaseManagement", 1.3, "Complete care pathway"),),
            implementation_delay=1, ramp_up_period=2,
            impacts=(
                _impact("hypertension", -0.08, 80),
                _impact("diabetes", -0.06, 80),
                _impact("lifeExpectancy", 0.015, 80),
            ),
        ),
        # infrastructure
        Intervention(
            id="hospitalBeds", name="Hospital Bed Expansion", category="infrastructure", subcategory="capacity",
            description="Increase hospital beds per 10,000 population",
            unit="beds/10K", min_level=0, max_level=10, baseline=0, step=1, cost_per_unit=3.5,
            synergies=(_syn("nurseExpansion", 1.25, "Staffed capacity"),),
            implementation_delay=5, ramp_up_period=7,
            impacts=(
                _impact("lifeExpectancy", 0.01, 5),
                _impact("cvd", -0.05, 5, {"60+": 1.4}),
            ),
        ),
        Intervention(
            id="clinicNetwork", name="Clinic Network Growth", category="infrastructure", subcategory="access",
            description="Expand community clinic coverage especially in rural areas",
            unit="% expansion", min_level=0, max_level=50, baseline=10, step=5, cost_per_unit=1.5,
            scaling_function="logarithmic",
            synergies=(_syn("communityHealthWorkers", 1.35, "Community integration"),),
            implementation_delay=3, ramp_up_period=5,
            impacts=(
                _impact("lifeExpectancy", 0.02, 35),
                _impact("healthcareCosts", -0.04, 35),
            ),
        ),
        Intervention(
            id="emergencyResponse", name="Emergency Response Upgrade", category="infrastructure", subcategory="emergency",
            description="Improve ambulance coverage and emergency room capacity",
            unit="% improvement", min_level=0, max_level=100, baseline=30, step=10, cost_per_unit=0.9,
            scaling_function="logarithmic", implementation_delay=2, ramp_up_period=3,
            impacts=(
                _impact("cvd", -0.06, 70, {"50+": 1.5}),
                _impact("lifeExpectancy", 0.01, 70),
            ),
        ),
        # workforce
        Intervention(
            id="physicianTraining", name="Physician Training Pipeline", category="workforce", subcategory="education",
            description="Medical school expansion and residency programs",
            unit="% increase", min_level=0, max_level=100, baseline=20, step=10, cost_per_unit=2.2,
            synergies=(_syn("specialistCare", 1.3, "More specialists available"),),
            implementation_delay=7, ramp_up_period=10,
            impacts=(
                _impact("lifeExpectancy", 0.025, 60),
                _impact("cvd", -0.05, 60),
            ),
        ),
        Intervention(
            id="nurseExpansion", name="Nurse & Allied Health", category="workforce", subcategory="training",
            description="Train and recruit nurses and allied health professionals",
            unit="% increase", min_level=0, max_level=100, baseline=30, step=10, cost_per_unit=1.4,
            synergies=(
                _syn("hospitalBeds", 1.25, "Staffed beds"),
                _syn("primaryCare", 1.2, "PHC staffing"),
            ),
            implementation_delay=4, ramp_up_period=6,
            impacts=(
                _impact("lifeExpectancy", 0.015, 70),
                _impact("healthcareCosts", -0.03, 70),
            ),
        ),
        Intervention(
            id="communityHealthWorkers", name="Community Health Workers", category="workforce", subcategory="community",
            description="Train community health workers for prevention and education",
            unit="% coverage", min_level=0, max_level=100, baseline=5, step=5, cost_per_unit=0.6,
            synergies=(
                _syn("maternalChildHealth", 1.4, "Home visits"),
                _syn("clinicNetwork", 1.35, "Community link"),
            ),
            implementation_delay=2, ramp_up_period=4,
            impacts=(
                _impact("diabetes", -0.05, 60, {"40+": 1.2}),
                _impact("obesity", -0.06, 60),
                _impact("lifeExpectancy", 0.01, 60),
            ),
        ),
        # digital
        Intervention(
            id="digitalHealthTwin", name="Personal Health AI", category="digital", subcategory="ai",
            description="AI-powered personal health assistant and digital twin",
            unit="% adoption", min_level=5, max_level=100, baseline=15, step=5, cost_per_unit=0.12,
            scaling_function="sigmoid", prerequisites=("ehrIntegration",),
            synergies=(
                _syn("chronicDiseaseManagement", 1.5, "Personalized care"),
                _syn("ncdScreening", 1.25, "Risk prediction"),
                _syn("mentalHealthScreening", 1.3, "Mental health monitoring"),
            ),
            implementation_delay=2, ramp_up_period=4,
            impacts=(
                _impact("diabetes", -0.12, 70, {"30-59": 1.3}),
                _impact("obesity", -0.08, 70, {"20-49": 1.2}),
                _impact("cvd", -0.10, 70),
                _impact("lifeExpectancy", 0.03, 80),
            ),
        ),
        Intervention(
            id="telemedicine", name="Telemedicine Platforms", category="digital", subcategory="access",
            description="Virtual consultations and remote monitoring",
            unit="% visits", min_level=10, max_level=80, baseline=20, step=5, cost_per_unit=0.3,
            scaling_function="logarithmic",
            synergies=(
                _syn("specialistCare", 1.3, "Remote specialists"),
                _syn("mentalHealthScreening", 1.35, "Mental health access"),
            ),
            implementation_delay=1, ramp_up_period=2,
            impacts=(
                _impact("healthcareCosts", -0.06, 60),
                _impact("lifeExpectancy", 0.01, 60),
            ),
        ),
        Intervention(
            id="ehrIntegration", name="Health Data Integration", category="digital", subcategory="infrastructure",
            description="National electronic health records integration",
            unit="% integration", min_level=20, max_level=100, baseline=40, step=10, cost_per_unit=0.5,
            scaling_function="sigmoid",
            synergies=(_syn("digitalHealthTwin", 1.4, "Data foundation"),),
            implementation_delay=3, ramp_up_period=5,
            impacts=(
                _impact("healthcareCosts", -0.05, 80),
                _impact("lifeExpectancy", 0.01, 80),
            ),
        ),
        # behavioral
        Intervention(
            id="physicalActivity", name="Activity Campaigns", category="behavioral", subcategory="lifestyle",
            description="National physical activity promotion and infrastructure",
            unit="% reach", min_level=10, max_level=80, baseline=25, step=5, cost_per_unit=0.08,
            synergies=(
                _syn("schoolNutrition", 1.3, "Youth habits"),
                _syn("digitalHealthTwin", 1.25, "Activity tracking"),
            ),
            implementation_delay=1, ramp_up_period=3,
            impacts=(
                _impact("obesity", -0.18, 60, {"20-49": 1.3}),
                _impact("cvd", -0.08, 60),
                _impact("diabetes", -0.10, 60),
                _impact("lifeExpectancy", 0.02, 65),
            ),
        ),
        Intervention(
            id="nutritionEducation", name="Nutrition Programs", category="behavioral", subcategory="education",
            description="Public nutrition education and healthy eating initiatives",
            unit="% reach", min_level=10, max_level=80, baseline=20, step=5, cost_per_unit=0.1,
            synergies=(
                _syn("sugarTax", 1.4, "Tax + education combo"),
                _syn("foodLabeling", 1.3, "Label comprehension"),
            ),
            implementation_delay=1, ramp_up_period=3,
            impacts=(
                _impact("obesity", -0.10, 60, {"20-39": 1.3}),
                _impact("diabetes", -0.06, 60),
            ),
        ),
        Intervention(
            id="schoolNutrition", name="School Nutrition", category="behavioral", subcategory="youth",
            description="Healthy school meal programs and nutrition education",
            unit="% schools", min_level=10, max_level=100, baseline=35, step=5, cost_per_unit=0.18,
            synergies=(_syn("physicalActivity", 1.3, "Comprehensive youth health"),),
            implementation_delay=1, ramp_up_period=3,
            impacts=(
                _impact("obesity", -0.15, 80, {"10-19": 2.0, "0-9": 1.5}),
                _impact("diabetes", -0.05, 80, {"10-19": 1.5}),
                _impact("lifeExpectancy", 0.01, 85),
            ),
        ),
        # fiscal
        Intervention(
            id="priceControls", name="Healthcare Price Controls", category="fiscal", subcategory="regulation",
            description="Regulate healthcare service and pharmaceutical pricing",
            unit="% reduction", min_level=0, max_level=50, baseline=10, step=5, cost_per_unit=0.2,
            scaling_function="logarithmic",
            synergies=(_syn("medicationAccess", 1.2, "Affordable meds"),),
            implementation_delay=2, ramp_up_period=3,
            impacts=(_impact("healthcareCosts", -0.08, 35),),
        ),
    )


def default_catalog() -> InterventionCatalog:
    """Build and validate the default 25-intervention catalog."""
    return InterventionCatalog(
        interventions=_interventions(),
        outcomes=DEFAULT_OUTCOMES,
        provinces=dict(DEFAULT_PROVINCES),
        start_year=2025,
    )
