import json

import pytest

from agi_milestones.core.catalog import (
    CAPABILITY_GAINS,
    ALIGNMENT_CHANGES,
    DEFAULT_CATALOG,
    MILESTONE_COMPLEXITY,
    MilestoneCatalog,
    parse_milestone_type,
)
from agi_milestones.core.metrics import MilestoneType

MT = MilestoneType


def test_tables_are_exhaustive():
    for table in (MILESTONE_COMPLEXITY, CAPABILITY_GAINS, ALIGNMENT_CHANGES):
        assert set(table) == set(MilestoneType)


def test_topological_order_respects_prerequisites():
    order = DEFAULT_CATALOG.topological_order()
    assert len(order) == 12
    position = {m: i for i, m in enumerate(order)}
    for milestone in MilestoneType:
        for prereq in DEFAULT_CATALOG.prerequisites(milestone):
            assert position[prereq] < position[milestone]
    assert order[-1] == MT.SUPERINTELLIGENCE


def test_roots_and_sink():
    roots = {m for m in MilestoneType if not DEFAULT_CATALOG.prerequisites(m)}
    assert roots == {MT.ADVANCED_REASONING, MT.VALUE_ALIGNMENT, MT.INTERPRETABILITY}
    assert DEFAULT_CATALOG.dependents(MT.SUPERINTELLIGENCE) == ()


def test_dependents_and_closure():
    assert DEFAULT_CATALOG.dependents(MT.ADVANCED_REASONING) == (
        MT.STRATEGIC_PLANNING, MT.TRANSFER_LEARNING, MT.CREATIVE_PROBLEM_SOLVING,
    )
    closure = DEFAULT_CATALOG.all_prerequisites(MT.SUPERINTELLIGENCE)
    assert MT.ADVANCED_REASONING in closure
    assert MT.SUPERINTELLIGENCE not in closure
    assert closure == set(MilestoneType) - {
        MT.SUPERINTELLIGENCE, MT.MULTI_AGENT_COORDINATION, MT.STRATEGIC_PLANNING,
    }


def test_cycle_rejected():
    with pytest.raises(ValueError, match="cycle"):
        DEFAULT_CATALOG.with_overrides({"Advanced Reasoning": {"prerequisite_milestones": ["Superintelligence"]}})


def test_self_reference_rejected():
    with pytest.raises(ValueError):
        DEFAULT_CATALOG.with_overrides({"ADVANCED_REASONING": {"prerequisite_milestones": ["ADVANCED_REASONING"]}})


def test_missing_entry_rejected():
    complexity = dict(MILESTONE_COMPLEXITY)
    del complexity[MT.INTERPRETABILITY]
    with pytest.raises(ValueError):
        MilestoneCatalog(complexity=complexity)


@pytest.mark.parametrize("complexity", [-2, 0, 11, 4.5, True, "7"])
def test_out_of_range_complexity_rejected(complexity):
    with pytest.raises(ValueError, match="Complexity"):
        DEFAULT_CATALOG.with_overrides({"Advanced Reasoning": {"complexity": complexity}})


@pytest.mark.parametrize("fields", [
    {"research_points_cost": -1},
    {"compute_budget_required": -500},
    {"minimum_capability_level": 120},
    {"minimum_alignment_level": -5},
    {"research_points_cost": float("nan")},
])
def test_negative_requirements_rejected(fields):
    with pytest.raises(ValueError):
        DEFAULT_CATALOG.with_overrides({MT.VALUE_ALIGNMENT: fields})


def test_overrides_return_new_catalog():
    tuned = DEFAULT_CATALOG.with_overrides({MT.ADVANCED_REASONING: {"research_points_cost": 1000, "complexity": 4}})
    assert tuned.requirements(MT.ADVANCED_REASONING).research_points_cost == 1000
    assert tuned.complexity(MT.ADVANCED_REASONING) == 4
    assert DEFAULT_CATALOG.requirements(MT.ADVANCED_REASONING).research_points_cost == 3000
    assert DEFAULT_CATALOG.complexity(MT.ADVANCED_REASONING) == 3


def test_from_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"Value Alignment": {"estimated_time_months": 4}}))
    catalog = MilestoneCatalog.from_json(path)
    assert catalog.requirements(MT.VALUE_ALIGNMENT).estimated_time_months == 4

    path.write_text(json.dumps([1, 2]))
    with pytest.raises(ValueError):
        MilestoneCatalog.from_json(path)


def test_parse_milestone_type():
    assert parse_milestone_type(MT.META_LEARNING) is MT.META_LEARNING
    assert parse_milestone_type("Meta-Learning") is MT.META_LEARNING
    assert parse_milestone_type("meta_learning") is MT.META_LEARNING
    with pytest.raises(ValueError):
        parse_milestone_type("Time Travel")
