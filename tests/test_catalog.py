"""Tests for the intervention catalog.

These tests check that the default catalog loads, and that configuration
errors (degenerate ranges, dangling references, duplicate or conflicting
synergy edges) are rejected when a catalog is built.
"""

import pytest
from pydantic import ValidationError

from policysim.catalog import DEFAULT_PROVINCES, default_catalog
from policysim.params import (
    ImpactCoefficient,
    Intervention,
    InterventionCatalog,
    OutcomeDefinition,
    SimulationRequest,
    SynergyEdge,
)


OUTCOMES = (OutcomeDefinition(id="obesity", baseline_value=30.0),)


def _itv(id, synergies=(), prerequisites=(), **kw):
    fields = dict(id=id, category="prevention", min_level=0, max_level=10, baseline=0,
                  synergies=synergies, prerequisites=prerequisites,
                  impacts=(ImpactCoefficient(outcome="obesity", base_effect=-0.1, diminishing_threshold=8),))
    fields.update(kw)
    return Intervention(**fields)


def test_default_catalog_shape():
    cat = default_catalog()
    assert len(cat.interventions) == 25
    assert len(cat.outcomes) == 8
    assert len(cat.provinces) == 13
    assert set(DEFAULT_PROVINCES) == set(cat.provinces)
    assert cat.get("sugarTax").max_level == 50
    assert cat.outcome("lifeExpectancy").higher_is_better
    assert not cat.outcome("diabetes").higher_is_better
    assert len(cat.by_category("digital")) == 3


def test_default_catalog_has_no_dangling_synergy():
    cat = default_catalog()
    ids = {i.id for i in cat.interventions}
    for itv in cat.interventions:
        for edge in itv.synergies:
            assert edge.partner in ids


def test_get_unknown_raises_key_error():
    with pytest.raises(KeyError):
        default_catalog().get("doesNotExist")


def test_degenerate_range_rejected():
    with pytest.raises(ValidationError):
        _itv("a", min_level=5, max_level=5, baseline=5)


def test_baseline_outside_range_rejected():
    with pytest.raises(ValidationError):
        _itv("a", baseline=11)


def test_duplicate_impact_outcome_rejected():
    impact = ImpactCoefficient(outcome="obesity", base_effect=-0.1, diminishing_threshold=5)
    with pytest.raises(ValidationError):
        _itv("a", impacts=(impact, impact))


def test_duplicate_ids_rejected():
    with pytest.raises(ValidationError):
        InterventionCatalog(interventions=(_itv("a"), _itv("a")), outcomes=OUTCOMES)


def test_dangling_synergy_partner_rejected():
    with pytest.raises(ValidationError, match="unknown synergy partner"):
        InterventionCatalog(interventions=(_itv("a", synergies=(SynergyEdge(partner="zzz", multiplier=1.2),)),),
                            outcomes=OUTCOMES)


def test_dangling_prerequisite_rejected():
    with pytest.raises(ValidationError, match="unknown prerequisite"):
        InterventionCatalog(interventions=(_itv("a", prerequisites=("zzz",)),), outcomes=OUTCOMES)


def test_unknown_outcome_rejected():
    bad = _itv("a", impacts=(ImpactCoefficient(outcome="nope", base_effect=0.1, diminishing_threshold=1),))
    with pytest.raises(ValidationError, match="unknown outcome"):
        InterventionCatalog(interventions=(bad,), outcomes=OUTCOMES)


def test_self_synergy_rejected():
    with pytest.raises(ValidationError, match="itself"):
        InterventionCatalog(interventions=(_itv("a", synergies=(SynergyEdge(partner="a", multiplier=1.2),)),),
                            outcomes=OUTCOMES)


def test_reciprocal_edge_with_same_multiplier_accepted():
    a = _itv("a", synergies=(SynergyEdge(partner="b", multiplier=1.3),))
    b = _itv("b", synergies=(SynergyEdge(partner="a", multiplier=1.3),))
    cat = InterventionCatalog(interventions=(a, b), outcomes=OUTCOMES)
    assert len(cat.interventions) == 2


def test_reciprocal_edge_with_conflicting_multiplier_rejected():
    a = _itv("a", synergies=(SynergyEdge(partner="b", multiplier=1.3),))
    b = _itv("b", synergies=(SynergyEdge(partner="a", multiplier=1.5),))
    with pytest.raises(ValidationError, match="conflicting"):
        InterventionCatalog(interventions=(a, b), outcomes=OUTCOMES)


def test_repeated_edge_rejected():
    edges = (SynergyEdge(partner="b", multiplier=1.3), SynergyEdge(partner="b", multiplier=1.3))
    with pytest.raises(ValidationError, match="duplicate synergy"):
        InterventionCatalog(interventions=(_itv("a", synergies=edges), _itv("b")), outcomes=OUTCOMES)


def test_catalog_is_frozen():
    cat = default_catalog()
    with pytest.raises(ValidationError):
        cat.start_year = 2030


def test_request_horizon_bounds():
    assert SimulationRequest().horizon == 15
    with pytest.raises(ValidationError):
        SimulationRequest(horizon=0)
    with pytest.raises(ValidationError):
        SimulationRequest(horizon=51)


def test_impact_index_by_outcome():
    cat = default_catalog()
    pairs = cat.impacts_on("obesity")
    assert [itv.id for itv, _ in pairs] == [i.id for i in cat.interventions
                                            if any(m.outcome == "obesity" for m in i.impacts)]
    assert all(impact.outcome == "obesity" for _, impact in pairs)
    assert cat.impacts_on("happiness") == ()
    assert cat.get("sugarTax") is cat.interventions[[i.id for i in cat.interventions].index("sugarTax")]
    with pytest.raises(KeyError):
        cat.outcome("happiness")


def test_provinces_are_read_only():
    cat = default_catalog()
    with pytest.raises(TypeError):
        cat.provinces["riyadh"] = cat.provinces["jazan"]
    with pytest.raises(TypeError):
        del cat.provinces["jazan"]
    assert isinstance(cat.model_dump()["provinces"], dict)
    assert len(cat.model_dump()["provinces"]) == 13
