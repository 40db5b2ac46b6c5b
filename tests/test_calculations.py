import pytest

from agi_milestones.core.calculations import (
    NO_ACTIVE_MILESTONES,
    base_achievement_rate,
    calculate_achievement_probability,
    calculate_impact_consequences,
    calculate_impact_score,
    calculate_organization_alignment_score,
    check_prerequisites,
    classify_posture,
    classify_risk,
    evaluate_alignment_risk,
)
from agi_milestones.core.catalog import DEFAULT_CATALOG
from agi_milestones.core.metrics import (AlignmentMetrics, AlignmentPosture, CapabilityMetrics, ImpactConsequences,
                                         MilestoneStatus, MilestoneType, RiskLevel)
from agi_milestones.core.records import new_progression_record

from scripted import FIXED_NOW

MT = MilestoneType


def capability_at(score):
    return CapabilityMetrics().shift_all(score)


def alignment_at(score):
    return AlignmentMetrics().shift_all(score - 50)


def test_advanced_reasoning_example():
    result = calculate_achievement_probability(MT.ADVANCED_REASONING, 5000, capability_at(40), alignment_at(50))
    assert result.breakdown.base_rate == 0.25
    assert result.breakdown.research_boost == pytest.approx(0.06225, abs=1e-5)
    assert result.breakdown.capability_bonus == pytest.approx(0.08)
    assert result.breakdown.alignment_penalty == pytest.approx(-0.25)
    assert result.probability == pytest.approx(0.1422, abs=1e-4)
    assert result.percent_chance == pytest.approx(14.23)


def test_probability_is_capped():
    result = calculate_achievement_probability(
        MT.ADVANCED_REASONING, 10_000_000, capability_at(100), alignment_at(100), learning_bonus=0.2
    )
    assert result.probability == 0.75
    assert result.breakdown.research_boost == 0.25

    custom = calculate_achievement_probability(
        MT.ADVANCED_REASONING, 10_000_000, capability_at(100), alignment_at(100), probability_cap=0.5
    )
    assert custom.probability == 0.5


def test_probability_is_floored_at_zero():
    result = calculate_achievement_probability(MT.SUPERINTELLIGENCE, 0, capability_at(0), alignment_at(0))
    assert result.breakdown.total() < 0
    assert result.probability == 0.0


def test_probability_monotonic_in_research_points():
    probabilities = [
        calculate_achievement_probability(MT.META_LEARNING, rp, capability_at(50), alignment_at(80)).probability
        for rp in (0, 1_000, 5_000, 20_000, 100_000, 1_000_000)
    ]
    assert probabilities == sorted(probabilities)


def test_negative_research_points_rejected():
    with pytest.raises(ValueError):
        calculate_achievement_probability(MT.ADVANCED_REASONING, -1, capability_at(0), alignment_at(50))


def test_probability_non_increasing_in_complexity():
    probabilities = []
    for complexity in range(3, 11):
        catalog = DEFAULT_CATALOG.with_overrides({MT.ADVANCED_REASONING: {"complexity": complexity}})
        result = calculate_achievement_probability(
            MT.ADVANCED_REASONING, 5000, capability_at(40), alignment_at(50), catalog=catalog
        )
        probabilities.append(result.probability)
    assert all(later <= earlier for earlier, later in zip(probabilities, probabilities[1:]))
    assert probabilities[0] == pytest.approx(0.1422, abs=1e-4)
    assert probabilities[-1] == 0.0


def test_base_rate_rounds_down():
    assert base_achievement_rate(3) == 0.25
    assert base_achievement_rate(9) == 0.05
    assert base_achievement_rate(10) == 0.02
    assert base_achievement_rate(2) == 0.25


def test_risk_classification_boundaries():
    assert classify_risk(59.9) is RiskLevel.HIGH
    assert classify_risk(60.0) is RiskLevel.CRITICAL
    assert classify_risk(40.0) is RiskLevel.HIGH
    assert classify_risk(39.99) is RiskLevel.MEDIUM
    assert classify_risk(20.0) is RiskLevel.MEDIUM
    assert classify_risk(0.0) is RiskLevel.LOW


def test_risk_scales_with_complexity():
    low = evaluate_alignment_risk(MT.ADVANCED_REASONING, capability_at(90), alignment_at(50))
    high = evaluate_alignment_risk(MT.SUPERINTELLIGENCE, capability_at(90), alignment_at(50))
    assert low.capability_alignment_gap == pytest.approx(40)
    assert low.risk_score == pytest.approx(24)
    assert low.risk_level is RiskLevel.MEDIUM
    assert high.risk_score == pytest.approx(80)
    assert high.risk_level is RiskLevel.CRITICAL
    assert any("Critical gap" in r for r in high.recommendations)


def test_risk_never_negative():
    result = evaluate_alignment_risk(MT.GENERAL_INTELLIGENCE, capability_at(10), alignment_at(90))
    assert result.capability_alignment_gap == pytest.approx(-80)
    assert result.risk_score == 0
    assert result.risk_level is RiskLevel.LOW


def test_risk_weight_is_injectable():
    result = evaluate_alignment_risk(
        MT.ADVANCED_REASONING, capability_at(70), alignment_at(0), complexity_weight=lambda complexity: 1.0
    )
    assert result.risk_score == pytest.approx(70)
    assert result.risk_level is RiskLevel.CRITICAL


def test_impact_score():
    consequences = ImpactConsequences(industry_disruption_level=24, economic_value_created=150_000_000)
    score = calculate_impact_score(capability_at(40), alignment_at(50), consequences)
    assert score.breakdown.capability == pytest.approx(12)
    assert score.breakdown.alignment == pytest.approx(10)
    assert score.breakdown.disruption == pytest.approx(6)
    assert score.breakdown.value == pytest.approx(3.75)
    assert score.total_impact == pytest.approx(31.75)

    rich = calculate_impact_score(capability_at(0), alignment_at(0), ImpactConsequences(economic_value_created=2e9))
    assert rich.breakdown.value == 25


def test_impact_consequences():
    consequences = calculate_impact_consequences(MT.ADVANCED_REASONING, capability_at(40), alignment_at(50))
    assert consequences.industry_disruption_level == 24
    assert consequences.regulatory_attention == 21
    assert consequences.competitive_advantage == 27
    assert consequences.economic_value_created == 150_000_000
    assert consequences.public_perception_change == pytest.approx(2.5)
    assert consequences.catastrophic_risk_probability == 0

    extreme = calculate_impact_consequences(MT.SUPERINTELLIGENCE, capability_at(100), alignment_at(0))
    assert extreme.industry_disruption_level == 80
    assert extreme.public_perception_change == -50
    assert extreme.catastrophic_risk_probability == 1.0


def test_prerequisites_all_or_nothing():
    requirements = DEFAULT_CATALOG.requirements(MT.MULTI_AGENT_COORDINATION)
    result = check_prerequisites(requirements, capability_at(20), alignment_at(50), 9000, 4_000_000,
                                 achieved={MT.STRATEGIC_PLANNING})
    assert not result.can_attempt
    assert result.missing_prerequisites == (MT.NATURAL_LANGUAGE_UNDERSTANDING,)
    assert result.requirements_met == {
        "prerequisites": False,
        "capability": True,
        "alignment": True,
        "research_points": True,
        "compute_budget": True,
    }

    nothing = check_prerequisites(requirements, capability_at(20), alignment_at(50), 9000, 4_000_000)
    assert nothing.missing_prerequisites == (MT.STRATEGIC_PLANNING, MT.NATURAL_LANGUAGE_UNDERSTANDING)

    ready = check_prerequisites(requirements, capability_at(20), alignment_at(50), 9000, 4_000_000,
                                achieved={MT.STRATEGIC_PLANNING, MT.NATURAL_LANGUAGE_UNDERSTANDING})
    assert ready.can_attempt


def test_prerequisites_thresholds():
    requirements = DEFAULT_CATALOG.requirements(MT.CREATIVE_PROBLEM_SOLVING)
    result = check_prerequisites(requirements, capability_at(0), alignment_at(20), 100, 0,
                                 achieved={MT.ADVANCED_REASONING})
    assert result.requirements_met == {
        "prerequisites": True,
        "capability": False,
        "alignment": False,
        "research_points": False,
        "compute_budget": False,
    }


def org_record(milestone_type, status, capability=None, alignment=None):
    return new_progression_record(
        "org-1", milestone_type, FIXED_NOW, status=status,
        capability=capability or CapabilityMetrics(), alignment=alignment or AlignmentMetrics(),
    )


def test_posture_bands():
    assert classify_posture(9.9) is AlignmentPosture.SAFE
    assert classify_posture(10) is AlignmentPosture.MODERATE
    assert classify_posture(30) is AlignmentPosture.HIGH
    assert classify_posture(50) is AlignmentPosture.CRITICAL


def test_organization_score_is_complexity_weighted():
    records = [
        org_record(MT.ADVANCED_REASONING, MilestoneStatus.ACHIEVED,
                   capability=CapabilityMetrics(reasoning_score=40), alignment=alignment_at(60)),
        org_record(MT.NATURAL_LANGUAGE_UNDERSTANDING, MilestoneStatus.FAILED, alignment=alignment_at(70)),
        org_record(MT.GENERAL_INTELLIGENCE, MilestoneStatus.AVAILABLE, alignment=alignment_at(80)),
        # locked records carry no weight
        org_record(MT.SUPERINTELLIGENCE, MilestoneStatus.LOCKED, alignment=alignment_at(0)),
    ]
    score = calculate_organization_alignment_score(records)
    assert score.milestone_count == 3
    # (60*3 + 70*5 + 80*8) / (3 + 5 + 8)
    assert score.alignment_score == pytest.approx(73.125)
    assert score.alignment.safety_measures == pytest.approx(73.125)
    assert score.capability.reasoning_score == pytest.approx(7.5)
    assert score.capability_score == pytest.approx(1.25)
    assert score.gap == pytest.approx(1.25 - 73.125)
    assert score.posture is AlignmentPosture.SAFE
    assert len(score.recommendations) == 3


def test_organization_score_flags_weak_dimensions():
    records = [org_record(MT.ADVANCED_REASONING, MilestoneStatus.AVAILABLE,
                          capability=capability_at(90), alignment=alignment_at(30))]
    score = calculate_organization_alignment_score(records)
    assert score.gap == pytest.approx(60)
    assert score.posture is AlignmentPosture.CRITICAL
    assert any(r.startswith("Safety measures critically low") for r in score.recommendations)
    assert any(r.startswith("Low interpretability") for r in score.recommendations)
    assert any(r.startswith("Self-improvement capability detected") for r in score.recommendations)


def test_organization_score_without_active_records():
    score = calculate_organization_alignment_score([org_record(MT.SUPERINTELLIGENCE, MilestoneStatus.LOCKED)])
    assert score.milestone_count == 0
    assert score.alignment_score == 50
    assert score.capability_score == 0
    assert score.posture is AlignmentPosture.SAFE
    assert score.recommendations == NO_ACTIVE_MILESTONES
