"""Tests for adoption, diminishing returns, synergies and effect composition."""

import math

from policysim.catalog import default_catalog
from policysim.sim_1_effects import (
    adoption,
    compose_effect,
    detect_synergies,
    diminishing_returns,
    provincial_effect,
    synergy_multiplier,
)

CATALOG = default_catalog()


def test_adoption_zero_until_delay():
    assert adoption(0, 1, 2) == 0.0
    assert adoption(1, 1, 2) == 0.0
    assert adoption(0.5, 0.5, 1) == 0.0


def test_adoption_midpoint_and_plateau():
    assert math.isclose(adoption(2, 1, 2), 0.5)
    assert adoption(3, 1, 2) == 1.0
    assert adoption(50, 1, 2) == 1.0


def test_adoption_non_decreasing():
    values = [adoption(y / 4, 2, 5) for y in range(0, 60)]
    assert all(b >= a for a, b in zip(values, values[1:]))
    assert all(0.0 <= v <= 1.0 for v in values)


def test_diminishing_returns():
    assert diminishing_returns(-0.1, 20, 30) == -0.1
    assert math.isclose(diminishing_returns(-0.1, 50, 30), -0.05)
    # never flips the sign
    for level in range(0, 200, 10):
        assert diminishing_returns(-0.1, level, 30) < 0
        assert diminishing_returns(0.1, level, 30) > 0


def test_baseline_levels_give_zero_effect():
    base = CATALOG.baseline_levels()
    assert detect_synergies(CATALOG, base) == []
    for o in CATALOG.outcomes:
        for year in (0, 5, 15, 50):
            assert compose_effect(CATALOG, o.id, base, [], year) == 0.0
            assert compose_effect(CATALOG, o.id, {}, [], year) == 0.0


def test_sugar_tax_effect_on_obesity():
    levels = {"sugarTax": 20}
    effect = compose_effect(CATALOG, "obesity", levels, detect_synergies(CATALOG, levels), 15)
    assert math.isclose(effect, -0.12 * 20 / 50)
    assert abs(effect) < 0.12


def test_diminishing_applied_above_threshold():
    levels = {"ncdScreening": 95}
    effect = compose_effect(CATALOG, "diabetes", levels, [], 15)
    expected = -0.15 * (95 - 42) / 75 / (1 + 0.05 * (95 - 75))
    assert math.isclose(effect, expected)


def test_no_impact_record_contributes_nothing():
    # sugar tax has no impact on life expectancy
    assert compose_effect(CATALOG, "lifeExpectancy", {"sugarTax": 50}, [], 15) == 0.0


def test_raising_negative_effect_intervention_keeps_outcome_below_baseline():
    itv = CATALOG.get("physicalActivity")
    level = itv.baseline + itv.step
    while level <= itv.max_level:
        effect = compose_effect(CATALOG, "obesity", {itv.id: level}, [], 15)
        assert effect < 0.0
        level += itv.step


def test_synergy_detected_once_and_sorted():
    levels = {"sugarTax": 20, "nutritionEducation": 40}
    syns = detect_synergies(CATALOG, levels)
    assert len(syns) == 1
    assert syns[0].pair == ("nutritionEducation", "sugarTax")
    assert math.isclose(syns[0].multiplier, 1.4)
    assert math.isclose(synergy_multiplier("sugarTax", syns), 1.4)
    assert synergy_multiplier("foodLabeling", syns) == 1.0


def test_synergy_needs_strictly_above_baseline():
    # nutritionEducation at its baseline is not active
    assert detect_synergies(CATALOG, {"sugarTax": 20, "nutritionEducation": 20}) == []


def test_synergy_order_independent():
    a = detect_synergies(CATALOG, {"sugarTax": 20, "nutritionEducation": 40, "foodLabeling": 50})
    b = detect_synergies(CATALOG, {"foodLabeling": 50, "nutritionEducation": 40, "sugarTax": 20})
    assert a == b
    assert len(a) == 3
    pairs = [s.pair for s in a]
    assert pairs == sorted(pairs)
    assert len(set(pairs)) == len(pairs)


def test_synergy_boosts_effect():
    levels = {"sugarTax": 20, "nutritionEducation": 40}
    plain = compose_effect(CATALOG, "obesity", levels, [], 15)
    boosted = compose_effect(CATALOG, "obesity", levels, detect_synergies(CATALOG, levels), 15)
    assert math.isclose(boosted, plain * 1.4)


def test_provincial_effect_scales_by_average_multiplier():
    levels = {"sugarTax": 20}
    national = compose_effect(CATALOG, "obesity", levels, [], 15)
    riyadh = provincial_effect(CATALOG, "obesity", "riyadh", levels, None, [], 15)
    assert math.isclose(riyadh, national * (1.1 + 1.2 + 1.0) / 3)
    unknown = provincial_effect(CATALOG, "obesity", "atlantis", levels, None, [], 15)
    assert math.isclose(unknown, national)


def test_provincial_override_applies():
    levels = {"sugarTax": 20}
    overrides = {"jazan": {"sugarTax": 40}}
    jazan = provincial_effect(CATALOG, "obesity", "jazan", levels, overrides, [], 15)
    expected = -0.12 * 40 / 50 / (1 + 0.05 * 10) * (0.75 + 0.8 + 1.2) / 3
    assert math.isclose(jazan, expected)
