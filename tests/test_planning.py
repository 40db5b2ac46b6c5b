import math

import pytest

from agi_milestones.core.catalog import DEFAULT_CATALOG
from agi_milestones.core.metrics import AlignmentMetrics, AlignmentStance, CapabilityMetrics, MilestoneType
from agi_milestones.core.planning import (
    DisruptionLevel,
    assess_alignment_tax,
    calculate_progression_path,
    evaluate_alignment_tradeoff,
    predict_industry_disruption,
    simulate_capability_explosion,
)

MT = MilestoneType


def alignment_at(score):
    return AlignmentMetrics().shift_all(score - 50)


def assert_respects_prerequisites(order):
    position = {m: i for i, m in enumerate(order)}
    for milestone in order:
        for prereq in DEFAULT_CATALOG.prerequisites(milestone):
            assert position[prereq] < position[milestone], f"{prereq.value} must precede {milestone.value}"


@pytest.mark.parametrize("stance", list(AlignmentStance))
def test_every_path_respects_prerequisites(stance):
    path = calculate_progression_path(CapabilityMetrics(), alignment_at(70), stance, 200_000)
    assert sorted(path.recommended_order, key=lambda m: m.value) == sorted(MilestoneType, key=lambda m: m.value)
    assert_respects_prerequisites(path.recommended_order)
    assert path.recommended_order[-1] == MT.SUPERINTELLIGENCE


def test_path_totals_come_from_catalog():
    path = calculate_progression_path(CapabilityMetrics(), alignment_at(50), AlignmentStance.BALANCED, 200_000)
    assert path.total_research_points_cost == 105_000
    assert path.estimated_time_months == 156
    assert path.total_compute_budget == 44_000_000
    assert path.key_risks == ()
    assert len(path.critical_decisions) == 3


def test_safety_first_puts_alignment_first():
    path = calculate_progression_path(CapabilityMetrics(), alignment_at(50), AlignmentStance.SAFETY_FIRST, 0)
    assert path.recommended_order[:2] == (MT.VALUE_ALIGNMENT, MT.INTERPRETABILITY)
    assert any("Insufficient research points" in risk for risk in path.key_risks)


def test_low_alignment_forces_safety_first():
    path = calculate_progression_path(
        CapabilityMetrics().shift_all(80), alignment_at(30), AlignmentStance.CAPABILITY_FIRST, 200_000
    )
    assert path.recommended_order[0] == MT.VALUE_ALIGNMENT
    assert path.reasoning.startswith("Safety-first")
    assert any(risk.startswith("CRITICAL") for risk in path.key_risks)
    assert any(risk.startswith("WARNING") for risk in path.key_risks)


def test_capability_first_requires_strong_alignment():
    strong = calculate_progression_path(CapabilityMetrics(), alignment_at(65), AlignmentStance.CAPABILITY_FIRST, 0)
    assert strong.reasoning.startswith("Capability-first")
    assert strong.recommended_order[:3] == (MT.ADVANCED_REASONING, MT.STRATEGIC_PLANNING, MT.TRANSFER_LEARNING)

    moderate = calculate_progression_path(CapabilityMetrics(), alignment_at(50), AlignmentStance.CAPABILITY_FIRST, 0)
    assert moderate.reasoning.startswith("Balanced")


def test_progression_path_rejects_negative_budget():
    with pytest.raises(ValueError):
        calculate_progression_path(CapabilityMetrics(), AlignmentMetrics(), AlignmentStance.BALANCED, -1)


def test_alignment_tradeoff_recommendations():
    assert evaluate_alignment_tradeoff(10_000, alignment_at(30)).recommendation is AlignmentStance.SAFETY_FIRST
    assert evaluate_alignment_tradeoff(60_000, alignment_at(75)).recommendation is AlignmentStance.CAPABILITY_FIRST
    assert evaluate_alignment_tradeoff(10_000, alignment_at(75)).recommendation is AlignmentStance.BALANCED

    tradeoff = evaluate_alignment_tradeoff(10_000, alignment_at(50))
    assert tradeoff.recommendation is AlignmentStance.BALANCED
    assert tradeoff.safety_first.alignment_score == 85
    assert tradeoff.capability_first.alignment_score == 40
    assert tradeoff.projection(AlignmentStance.BALANCED).catastrophic_risk == pytest.approx(0.075)
    with pytest.raises(ValueError):
        evaluate_alignment_tradeoff(-1, alignment_at(50))


def test_alignment_tax():
    free = assess_alignment_tax(50)
    assert free.tax_percentage == 0
    assert not free.worth_it

    strict = assess_alignment_tax(80)
    assert strict.with_alignment_speed == pytest.approx(5.4)
    assert strict.tax_percentage == pytest.approx(80)
    assert strict.cost_benefit_ratio == pytest.approx(0.625, abs=0.006)
    assert strict.worth_it
    assert len(strict.safety_benefits) == 5

    with pytest.raises(ValueError):
        assess_alignment_tax(101)


def test_capability_explosion_not_triggered():
    capability = CapabilityMetrics(self_improvement_rate=0.5)
    assert not simulate_capability_explosion(capability, alignment_at(50), False).triggered
    assert not simulate_capability_explosion(capability, alignment_at(70), True).triggered
    calm = simulate_capability_explosion(CapabilityMetrics(self_improvement_rate=0.3), alignment_at(50), True)
    assert not calm.triggered
    assert calm.time_to_singularity_months == math.inf


def test_capability_explosion_projection():
    capability = CapabilityMetrics().shift_all(50)
    explosion = simulate_capability_explosion(capability, alignment_at(50), True)
    assert explosion.triggered
    assert explosion.exponential_growth_rate == 1.5
    assert explosion.iterations_projected == 20
    assert explosion.time_to_singularity_months == 60
    assert explosion.control_probability == pytest.approx(0.0194, abs=1e-4)
    assert explosion.final_capability_estimate.reasoning_score == 100
    assert explosion.final_capability_estimate.self_improvement_rate == 1.0
    assert any(action.startswith("EXISTENTIAL THREAT") for action in explosion.emergency_actions)


def test_industry_disruption():
    agi = predict_industry_disruption(MT.GENERAL_INTELLIGENCE, 50, first_mover=True)
    assert agi.disruption_level is DisruptionLevel.CATASTROPHIC
    assert agi.market_share_shift == pytest.approx(72.8)
    assert agi.regulatory_probability == pytest.approx(0.664)
    assert agi.timeline_months == 12
    assert "ALL INDUSTRIES" in agi.affected_industries[0]

    reasoning = predict_industry_disruption(MT.ADVANCED_REASONING, 80, first_mover=False)
    assert reasoning.disruption_level is DisruptionLevel.MINOR
    assert reasoning.economic_impact == 150_000_000

    assert predict_industry_disruption(MT.SUPERINTELLIGENCE, 90, False).timeline_months == 6
    with pytest.raises(ValueError):
        predict_industry_disruption(MT.SUPERINTELLIGENCE, 120, False)
