"""Pure calculations for milestone achievement probability, risk, impact and prerequisites.

Nothing in this module touches persistence or randomness. Every result can be
re-derived from a stored progression record alone.
"""

import math
from typing import Callable, Collection, Dict, Iterable, List, Tuple

import attrs

from .catalog import DEFAULT_CATALOG, MilestoneCatalog, ResearchRequirements
from .config import default_complexity_weight
from .metrics import (AlignmentMetrics, AlignmentPosture, CapabilityMetrics, ImpactConsequences, MilestoneStatus,
                      MilestoneType, RiskLevel, clamp)
from .records import ProgressionRecord

PROBABILITY_CAP = 0.75
RESEARCH_BOOST_CAP = 0.25
RESEARCH_BOOST_FACTOR = 0.08
CAPABILITY_BONUS_FACTOR = 0.20
ECONOMIC_VALUE_SCALE = 1_000_000_000

# Base achievement rate by complexity
BASE_ACHIEVEMENT_RATES: Dict[int, float] = {
    3: 0.25,
    4: 0.20,
    5: 0.15,
    6: 0.10,
    7: 0.08,
    8: 0.05,
    10: 0.02,  # Superintelligence
}

RISK_RECOMMENDATIONS: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.CRITICAL: (
        "URGENT: Halt capability research immediately and focus on alignment",
        "Implement emergency safety protocols and interpretability measures",
        "Consider regulatory consultation before proceeding",
    ),
    RiskLevel.HIGH: (
        "WARNING: Capability significantly outpacing alignment",
        "Increase investment in Value Alignment and Interpretability milestones",
        "Implement additional control mechanisms and safety measures",
    ),
    RiskLevel.MEDIUM: (
        "Monitor capability-alignment balance closely",
        "Maintain balanced research approach (SafetyFirst or Balanced stance)",
        "Prepare alignment challenges for stakeholder review",
    ),
    RiskLevel.LOW: (
        "Alignment levels acceptable for current capability",
        "Continue balanced research approach",
        "Monitor for capability explosion events",
    ),
}


@attrs.frozen
class ProbabilityBreakdown:
    base_rate: float
    research_boost: float
    capability_bonus: float
    alignment_penalty: float
    learning_bonus: float = 0.0

    def total(self) -> float:
        return (self.base_rate + self.research_boost + self.capability_bonus
                + self.alignment_penalty + self.learning_bonus)


@attrs.frozen
class ProbabilityResult:
    probability: float
    breakdown: ProbabilityBreakdown

    @property
    def percent_chance(self) -> float:
        return round(self.probability * 100, 2)


@attrs.frozen
class RiskAssessment:
    risk_level: RiskLevel
    risk_score: float
    capability_alignment_gap: float
    recommendations: Tuple[str, ...] = ()


@attrs.frozen
class ImpactBreakdown:
    capability: float
    alignment: float
    disruption: float
    value: float


@attrs.frozen
class ImpactScore:
    total_impact: float
    breakdown: ImpactBreakdown


@attrs.frozen
class PrerequisiteResult:
    """Outcome of the prerequisite validator.

    ``requirements_met`` holds one boolean per criterion: ``prerequisites``,
    ``capability``, ``alignment``, ``research_points``, ``compute_budget``.
    """
    can_attempt: bool
    missing_prerequisites: Tuple[MilestoneType, ...]
    requirements_met: Dict[str, bool]

    @property
    def milestones_unlocked(self) -> bool:
        return self.requirements_met["prerequisites"]


def base_achievement_rate(complexity: int) -> float:
    """Base rate for a complexity, rounding down to the nearest tabulated key."""
    keys = [k for k in BASE_ACHIEVEMENT_RATES if k <= complexity]
    if not keys:
        return BASE_ACHIEVEMENT_RATES[min(BASE_ACHIEVEMENT_RATES)]
    return BASE_ACHIEVEMENT_RATES[max(keys)]


def research_boost(research_points: float) -> float:
    """Logarithmic research contribution, capped so budgets cannot buy certainty."""
    if research_points < 0:
        raise ValueError("research_points must be non-negative")
    return min(RESEARCH_BOOST_CAP, math.log10(research_points / 1000 + 1) * RESEARCH_BOOST_FACTOR)


def calculate_achievement_probability(
        milestone_type: MilestoneType,
        research_points_invested: float,
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        *,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
        probability_cap: float = PROBABILITY_CAP,
        learning_bonus: float = 0.0,
) -> ProbabilityResult:
    """Chance that one attempt at ``milestone_type`` succeeds.

    probability = clamp(base + research + capability + alignment penalty, 0, cap)

    Args:
        milestone_type: The milestone being attempted (selects the base rate)
        research_points_invested: Cumulative research points, including the attempt's own
        capability: Current capability vector
        alignment: Current alignment vector; below 100 it reduces the chance by up to 0.5
        catalog: Source of complexity ratings
        probability_cap: Upper clamp
        learning_bonus: Extra additive term from the failure-learning hook
    """
    breakdown = ProbabilityBreakdown(
        base_rate=base_achievement_rate(catalog.complexity(milestone_type)),
        research_boost=research_boost(research_points_invested),
        capability_bonus=capability.average() / 100 * CAPABILITY_BONUS_FACTOR,
        alignment_penalty=-(100 - alignment.average()) / 200,
        learning_bonus=learning_bonus,
    )
    return ProbabilityResult(
        probability=clamp(breakdown.total(), 0.0, probability_cap),
        breakdown=breakdown,
    )


def classify_risk(risk_score: float) -> RiskLevel:
    if risk_score >= 60:
        return RiskLevel.CRITICAL
    if risk_score >= 40:
        return RiskLevel.HIGH
    if risk_score >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def evaluate_alignment_risk(
        milestone_type: MilestoneType,
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        *,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
        complexity_weight: Callable[[int], float] = default_complexity_weight,
) -> RiskAssessment:
    """Score how far capability outpaces alignment, amplified by milestone complexity."""
    avg_capability = capability.average()
    avg_alignment = alignment.average()
    gap = avg_capability - avg_alignment
    risk_score = clamp(gap * complexity_weight(catalog.complexity(milestone_type)), 0.0, 100.0)
    level = classify_risk(risk_score)

    recommendations = list(RISK_RECOMMENDATIONS[level])
    if level is RiskLevel.CRITICAL:
        recommendations.insert(
            1, f"Critical gap detected: {avg_capability:.1f} capability vs {avg_alignment:.1f} alignment"
        )
    return RiskAssessment(
        risk_level=level,
        risk_score=risk_score,
        capability_alignment_gap=gap,
        recommendations=tuple(recommendations),
    )


def calculate_impact_score(
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        consequences: ImpactConsequences,
) -> ImpactScore:
    """Weighted 0-100 impact: capability 30%, alignment 20%, disruption 25%, value 25%."""
    breakdown = ImpactBreakdown(
        capability=capability.average() / 100 * 30,
        alignment=alignment.average() / 100 * 20,
        disruption=consequences.industry_disruption_level / 100 * 25,
        value=min(25.0, consequences.economic_value_created / ECONOMIC_VALUE_SCALE * 25),
    )
    total = breakdown.capability + breakdown.alignment + breakdown.disruption + breakdown.value
    return ImpactScore(total_impact=total, breakdown=breakdown)


def calculate_impact_consequences(
        milestone_type: MilestoneType,
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        *,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
) -> ImpactConsequences:
    """Fallout of achieving ``milestone_type`` with the given post-achievement metrics."""
    complexity = catalog.complexity(milestone_type)
    avg_alignment = alignment.average()
    gap = capability.average() - avg_alignment

    return ImpactConsequences(
        industry_disruption_level=min(100.0, complexity * 8),
        regulatory_attention=min(100.0, complexity * 7),
        public_perception_change=clamp((avg_alignment - 50) / 2 - gap / 4, -50.0, 50.0),
        competitive_advantage=min(100.0, complexity * 9),
        catastrophic_risk_probability=clamp(gap / 100 * (complexity / 5), 0.0, 1.0),
        economic_value_created=complexity * 50_000_000,
    )


def check_prerequisites(
        requirements: ResearchRequirements,
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        research_points_invested: float,
        compute_budget_spent: float,
        achieved: Collection[MilestoneType] = (),
) -> PrerequisiteResult:
    """Validate a milestone's gates. Every prerequisite must be achieved; no partial credit."""
    achieved_set = set(achieved)
    missing: List[MilestoneType] = [
        prereq for prereq in requirements.prerequisite_milestones if prereq not in achieved_set
    ]
    requirements_met = {
        "prerequisites": not missing,
        "capability": capability.average() >= requirements.minimum_capability_level,
        "alignment": alignment.average() >= requirements.minimum_alignment_level,
        "research_points": research_points_invested >= requirements.research_points_cost,
        "compute_budget": compute_budget_spent >= requirements.compute_budget_required,
    }
    return PrerequisiteResult(
        can_attempt=all(requirements_met.values()),
        missing_prerequisites=tuple(missing),
        requirements_met=requirements_met,
    )


POSTURE_RECOMMENDATIONS: Dict[AlignmentPosture, Tuple[str, ...]] = {
    AlignmentPosture.SAFE: (
        "Alignment leads capability: strong safety posture",
        "Maintain the current balanced approach",
        "Keep an alignment-first strategy for high-complexity milestones",
    ),
    AlignmentPosture.MODERATE: (
        "Balanced development at an acceptable risk level",
        "Monitor the capability-alignment gap closely",
        "Prioritize alignment milestones in the next research phase",
    ),
    AlignmentPosture.HIGH: (
        "WARNING: Capability significantly outpacing alignment",
        "URGENT: Pause capability milestones and focus on alignment",
        "Invest in Interpretability and Value Alignment",
        "Consider external safety audits",
    ),
    AlignmentPosture.CRITICAL: (
        "CRITICAL: Dangerous capability-alignment imbalance",
        "IMMEDIATE ACTION: Stop all capability research",
        "Emergency alignment investment required",
        "Engage AI safety experts and regulatory review",
    ),
}

NO_ACTIVE_MILESTONES: Tuple[str, ...] = (
    "No active milestones yet",
    "Begin with alignment foundations (Value Alignment, Interpretability)",
    "Establish safety measures before pursuing capability milestones",
)


@attrs.frozen
class OrganizationAlignmentScore:
    """Complexity-weighted view of an organization across its active milestones."""
    alignment_score: float
    capability_score: float
    gap: float
    posture: AlignmentPosture
    recommendations: Tuple[str, ...]
    milestone_count: int
    capability: CapabilityMetrics
    alignment: AlignmentMetrics


def classify_posture(gap: float) -> AlignmentPosture:
    if gap < 10:
        return AlignmentPosture.SAFE
    if gap < 30:
        return AlignmentPosture.MODERATE
    if gap < 50:
        return AlignmentPosture.HIGH
    return AlignmentPosture.CRITICAL


def _weighted_average(vectors: List[Dict[str, float]], weights: List[int]) -> Dict[str, float]:
    total = sum(weights)
    return {
        name: sum(vector[name] * weight for vector, weight in zip(vectors, weights)) / total
        for name in vectors[0]
    }


def calculate_organization_alignment_score(
        records: Iterable[ProgressionRecord],
        *,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
) -> OrganizationAlignmentScore:
    """Score an organization from its Available, Failed and Achieved records.

    Each metric is averaged across records weighted by milestone complexity, so
    harder milestones move the organization's scores more. Locked records are
    ignored. With no active records the organization scores neutral alignment
    (50) and no capability.
    """
    active = [r for r in records if r.status is not MilestoneStatus.LOCKED]
    if not active:
        alignment, capability = AlignmentMetrics(), CapabilityMetrics()
        return OrganizationAlignmentScore(
            alignment_score=alignment.average(),
            capability_score=capability.average(),
            gap=capability.average() - alignment.average(),
            posture=AlignmentPosture.SAFE,
            recommendations=NO_ACTIVE_MILESTONES,
            milestone_count=0,
            capability=capability,
            alignment=alignment,
        )

    weights = [catalog.complexity(r.milestone_type) for r in active]
    capability_values = _weighted_average([r.capability.to_dict() for r in active], weights)
    alignment_values = _weighted_average([r.alignment.to_dict() for r in active], weights)
    capability = CapabilityMetrics(**{
        name: clamp(value, 0.0, 1.0 if name == "self_improvement_rate" else 100.0)
        for name, value in capability_values.items()
    })
    alignment = AlignmentMetrics(**{name: clamp(value, 0.0, 100.0) for name, value in alignment_values.items()})

    alignment_score = alignment.average()
    capability_score = capability.average()
    gap = capability_score - alignment_score
    posture = classify_posture(gap)

    recommendations = list(POSTURE_RECOMMENDATIONS[posture])
    if alignment.safety_measures < 40:
        recommendations.append("Safety measures critically low: prioritize safety infrastructure")
    if alignment.interpretability < 50:
        recommendations.append("Low interpretability: invest in transparency and explainability")
    if capability.self_improvement_rate > 0.5 and alignment_score < 70:
        recommendations.append("Self-improvement capability detected: alignment must exceed 70 before proceeding")

    return OrganizationAlignmentScore(
        alignment_score=alignment_score,
        capability_score=capability_score,
        gap=gap,
        posture=posture,
        recommendations=tuple(recommendations),
        milestone_count=len(active),
        capability=capability,
        alignment=alignment,
    )
