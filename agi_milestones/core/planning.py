"""Strategic read models for planning a path to AGI.

All functions here are pure and never touch the store. They answer "what if"
questions for an organization: which order to research milestones in, which
stance to take, and what the consequences of a breakthrough would be.
"""

import math
from enum import Enum
from typing import Dict, List, Sequence, Set, Tuple

import attrs

from .catalog import DEFAULT_CATALOG, MilestoneCatalog
from .metrics import AlignmentMetrics, AlignmentStance, CapabilityMetrics, MilestoneType

MT = MilestoneType

SAFETY_FIRST_ORDER: Tuple[MilestoneType, ...] = (
    MT.VALUE_ALIGNMENT, MT.INTERPRETABILITY, MT.ADVANCED_REASONING, MT.STRATEGIC_PLANNING,
    MT.TRANSFER_LEARNING, MT.CREATIVE_PROBLEM_SOLVING, MT.NATURAL_LANGUAGE_UNDERSTANDING,
    MT.MULTI_AGENT_COORDINATION, MT.META_LEARNING, MT.SELF_IMPROVEMENT, MT.GENERAL_INTELLIGENCE,
    MT.SUPERINTELLIGENCE,
)
CAPABILITY_FIRST_ORDER: Tuple[MilestoneType, ...] = (
    MT.ADVANCED_REASONING, MT.STRATEGIC_PLANNING, MT.TRANSFER_LEARNING, MT.CREATIVE_PROBLEM_SOLVING,
    MT.META_LEARNING, MT.NATURAL_LANGUAGE_UNDERSTANDING, MT.SELF_IMPROVEMENT, MT.GENERAL_INTELLIGENCE,
    MT.SUPERINTELLIGENCE, MT.MULTI_AGENT_COORDINATION, MT.VALUE_ALIGNMENT, MT.INTERPRETABILITY,
)
BALANCED_ORDER: Tuple[MilestoneType, ...] = (
    MT.ADVANCED_REASONING, MT.VALUE_ALIGNMENT, MT.STRATEGIC_PLANNING, MT.INTERPRETABILITY,
    MT.TRANSFER_LEARNING, MT.CREATIVE_PROBLEM_SOLVING, MT.NATURAL_LANGUAGE_UNDERSTANDING,
    MT.META_LEARNING, MT.MULTI_AGENT_COORDINATION, MT.SELF_IMPROVEMENT, MT.GENERAL_INTELLIGENCE,
    MT.SUPERINTELLIGENCE,
)

PATH_REASONING: Dict[AlignmentStance, str] = {
    AlignmentStance.SAFETY_FIRST: (
        "Safety-first path: build a strong alignment foundation before high-capability milestones. "
        "Value Alignment and Interpretability come first to reduce catastrophic risk."
    ),
    AlignmentStance.CAPABILITY_FIRST: (
        "Capability-first path: rapid progression to AGI with minimal safety overhead. "
        "Acceptable only while alignment is already strong (60+)."
    ),
    AlignmentStance.BALANCED: (
        "Balanced path: interleave capability and alignment milestones so alignment grows "
        "continuously as capabilities increase."
    ),
}

# Market disruption intensity of each breakthrough, 0-100
DISRUPTION_INTENSITY: Dict[MilestoneType, float] = {
    MT.ADVANCED_REASONING: 15,
    MT.STRATEGIC_PLANNING: 20,
    MT.TRANSFER_LEARNING: 30,
    MT.CREATIVE_PROBLEM_SOLVING: 25,
    MT.META_LEARNING: 35,
    MT.NATURAL_LANGUAGE_UNDERSTANDING: 40,
    MT.MULTI_AGENT_COORDINATION: 30,
    MT.SELF_IMPROVEMENT: 50,
    MT.GENERAL_INTELLIGENCE: 70,
    MT.SUPERINTELLIGENCE: 95,
    MT.VALUE_ALIGNMENT: 10,
    MT.INTERPRETABILITY: 10,
}

AFFECTED_INDUSTRIES: Dict[MilestoneType, Tuple[str, ...]] = {
    MT.ADVANCED_REASONING: ("Consulting", "Financial Services", "Legal Services"),
    MT.STRATEGIC_PLANNING: ("Consulting", "Financial Services", "Legal Services"),
    MT.TRANSFER_LEARNING: ("Education", "Corporate Training", "Research & Development"),
    MT.META_LEARNING: ("Education", "Corporate Training", "Research & Development"),
    MT.NATURAL_LANGUAGE_UNDERSTANDING: (
        "Customer Service", "Content Creation", "Translation Services", "Legal Research"
    ),
    MT.GENERAL_INTELLIGENCE: ("ALL INDUSTRIES - transformative general-purpose capability",),
    MT.SUPERINTELLIGENCE: ("ALL INDUSTRIES - transformative general-purpose capability",),
}


class DisruptionLevel(Enum):
    MINOR = "Minor"
    MODERATE = "Moderate"
    MAJOR = "Major"
    CATASTROPHIC = "Catastrophic"


COMPETITOR_RESPONSES: Dict[DisruptionLevel, str] = {
    DisruptionLevel.MINOR: "Competitors increase R&D investment and pursue similar milestones",
    DisruptionLevel.MODERATE: "Industry consolidation begins; smaller players seek partnerships or exit",
    DisruptionLevel.MAJOR: "Aggressive acquisition attempts, regulatory lobbying, potential antitrust scrutiny",
    DisruptionLevel.CATASTROPHIC: (
        "Winner-take-all scenario: competitors face an existential threat, government intervention likely"
    ),
}


@attrs.frozen
class ProgressionPath:
    recommended_order: Tuple[MilestoneType, ...]
    reasoning: str
    estimated_time_months: int
    total_research_points_cost: float
    total_compute_budget: float
    key_risks: Tuple[str, ...]
    critical_decisions: Tuple[str, ...]


@attrs.frozen
class PathProjection:
    time_to_agi_months: int
    alignment_score: float
    catastrophic_risk: float
    economic_value: float


@attrs.frozen
class AlignmentTradeoff:
    safety_first: PathProjection
    balanced: PathProjection
    capability_first: PathProjection
    recommendation: AlignmentStance
    reasoning: str

    def projection(self, stance: AlignmentStance) -> PathProjection:
        return {
            AlignmentStance.SAFETY_FIRST: self.safety_first,
            AlignmentStance.BALANCED: self.balanced,
            AlignmentStance.CAPABILITY_FIRST: self.capability_first,
        }[stance]


@attrs.frozen
class AlignmentTax:
    base_research_speed: float
    with_alignment_speed: float
    tax_percentage: float
    safety_benefits: Tuple[str, ...]
    cost_benefit_ratio: float
    worth_it: bool


@attrs.frozen
class CapabilityExplosion:
    triggered: bool
    trigger_milestone: MilestoneType
    exponential_growth_rate: float
    iterations_projected: int
    final_capability_estimate: CapabilityMetrics
    control_probability: float
    time_to_singularity_months: float
    emergency_actions: Tuple[str, ...] = ()


@attrs.frozen
class IndustryDisruption:
    disruption_level: DisruptionLevel
    affected_industries: Tuple[str, ...]
    market_share_shift: float
    competitor_response: str
    regulatory_probability: float
    timeline_months: int
    economic_impact: float


def order_by_prerequisites(
        preferred: Sequence[MilestoneType], catalog: MilestoneCatalog = DEFAULT_CATALOG
) -> Tuple[MilestoneType, ...]:
    """Reorder ``preferred`` minimally so that every milestone follows its prerequisites.

    Repeatedly takes the earliest preferred milestone whose prerequisites are
    already placed. Milestones missing from ``preferred`` are appended in
    catalog order.
    """
    remaining = list(preferred) + [m for m in catalog.topological_order() if m not in preferred]
    placed: List[MilestoneType] = []
    done: Set[MilestoneType] = set()
    while remaining:
        for milestone in remaining:
            if all(p in done for p in catalog.prerequisites(milestone)):
                break
        else:
            raise ValueError("Prerequisite graph cannot be satisfied")
        remaining.remove(milestone)
        placed.append(milestone)
        done.add(milestone)
    return tuple(placed)


def calculate_progression_path(
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        stance: AlignmentStance,
        available_research_points: float,
        *,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
) -> ProgressionPath:
    """Recommend a research order for ``stance`` given the current metrics.

    Low alignment (below 40) forces the safety-first ordering regardless of the
    requested stance. Capability-first is only honoured with alignment of 60+.
    """
    if available_research_points < 0:
        raise ValueError("available_research_points must be non-negative")

    avg_capability = capability.average()
    avg_alignment = alignment.average()

    if stance is AlignmentStance.SAFETY_FIRST or avg_alignment < 40:
        effective, preferred = AlignmentStance.SAFETY_FIRST, SAFETY_FIRST_ORDER
    elif stance is AlignmentStance.CAPABILITY_FIRST and avg_alignment >= 60:
        effective, preferred = AlignmentStance.CAPABILITY_FIRST, CAPABILITY_FIRST_ORDER
    else:
        effective, preferred = AlignmentStance.BALANCED, BALANCED_ORDER

    order = order_by_prerequisites(preferred, catalog)
    requirements = [catalog.requirements(m) for m in order]
    months = sum(r.estimated_time_months for r in requirements)
    research_points = sum(r.research_points_cost for r in requirements)
    compute = sum(r.compute_budget_required for r in requirements)

    key_risks = []
    gap = avg_capability - avg_alignment
    if gap > 30:
        key_risks.append(f"CRITICAL: Capability-alignment gap of {gap:.1f} points - high catastrophic risk")
    if stance is AlignmentStance.CAPABILITY_FIRST and avg_alignment < 60:
        key_risks.append("WARNING: Capability-first stance with alignment below 60 is extremely dangerous")
    if available_research_points < research_points:
        key_risks.append(
            f"Insufficient research points: {available_research_points:,.0f} available vs {research_points:,.0f} needed"
        )

    critical_decisions = [
        f"Self-Improvement (step {order.index(MT.SELF_IMPROVEMENT) + 1}): enables capability explosion. "
        "Ensure alignment of 70+ before attempting.",
        f"General Intelligence (step {order.index(MT.GENERAL_INTELLIGENCE) + 1}): industry-defining achievement. "
        "Ensure robust safety measures.",
        "Superintelligence: final milestone with existential risk if misaligned. Requires alignment of 80+.",
    ]

    return ProgressionPath(
        recommended_order=order,
        reasoning=PATH_REASONING[effective],
        estimated_time_months=months,
        total_research_points_cost=research_points,
        total_compute_budget=compute,
        key_risks=tuple(key_risks),
        critical_decisions=tuple(critical_decisions),
    )


def evaluate_alignment_tradeoff(research_budget: float, alignment: AlignmentMetrics) -> AlignmentTradeoff:
    """Project the three stances and recommend one."""
    if research_budget < 0:
        raise ValueError("research_budget must be non-negative")
    avg_alignment = alignment.average()
    misalignment = 1 - avg_alignment / 100

    safety_first = PathProjection(48, min(100.0, avg_alignment + 35), max(0.01, 0.05 * misalignment), 800_000_000)
    balanced = PathProjection(36, min(100.0, avg_alignment + 20), max(0.05, 0.15 * misalignment), 1_200_000_000)
    capability_first = PathProjection(24, max(0.0, avg_alignment - 10), max(0.10, 0.35 * misalignment), 1_800_000_000)

    if avg_alignment < 40:
        recommendation = AlignmentStance.SAFETY_FIRST
        reasoning = (f"Alignment critically low ({avg_alignment:.1f}). A safety-first approach is mandatory; "
                     f"capability-first carries a {capability_first.catastrophic_risk:.0%} catastrophic risk.")
    elif avg_alignment >= 70 and research_budget >= 50_000:
        recommendation = AlignmentStance.CAPABILITY_FIRST
        reasoning = (f"Strong alignment ({avg_alignment:.1f}) and sufficient budget. Capability-first reaches AGI "
                     f"in {capability_first.time_to_agi_months} months with acceptable risk.")
    else:
        recommendation = AlignmentStance.BALANCED
        reasoning = (f"Moderate alignment ({avg_alignment:.1f}). Balanced keeps risk near "
                     f"{balanced.catastrophic_risk:.0%} on a {balanced.time_to_agi_months}-month timeline.")

    return AlignmentTradeoff(
        safety_first=safety_first,
        balanced=balanced,
        capability_first=capability_first,
        recommendation=recommendation,
        reasoning=reasoning,
    )


def assess_alignment_tax(target_alignment: float) -> AlignmentTax:
    """Research slowdown (months per milestone) for holding alignment at ``target_alignment``."""
    if not 0 <= target_alignment <= 100:
        raise ValueError("target_alignment must be between 0 and 100")

    base_speed = 3.0
    with_alignment = base_speed + max(0.0, (target_alignment - 50) * 0.08)
    tax_percentage = (with_alignment - base_speed) / base_speed * 100

    benefits = []
    if target_alignment >= 60:
        benefits.append("Reduced catastrophic risk (<15% vs 35% for low alignment)")
    if target_alignment >= 70:
        benefits.append("Robust control mechanisms that can handle capability explosions")
        benefits.append("Positive public perception and regulatory compliance")
    if target_alignment >= 80:
        benefits.append("Industry-leading safety standards as a competitive advantage")
        benefits.append("Superintelligence can be pursued with acceptable risk")
    if target_alignment >= 90:
        benefits.append("Near-perfect alignment: transformative AI without existential risk")

    risk_reduction = (target_alignment - 30) / 100
    delay_cost = tax_percentage / 100
    ratio = risk_reduction / (delay_cost or 1)

    return AlignmentTax(
        base_research_speed=round(base_speed, 2),
        with_alignment_speed=round(with_alignment, 2),
        tax_percentage=round(tax_percentage, 2),
        safety_benefits=tuple(benefits),
        cost_benefit_ratio=round(ratio, 2),
        worth_it=ratio > 1.5 or target_alignment >= 70,
    )


def simulate_capability_explosion(
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        self_improvement_achieved: bool,
) -> CapabilityExplosion:
    """Project recursive self-improvement.

    Triggers once Self-Improvement is achieved with a rate above 0.3 while
    alignment stays below 70. Each 3-month iteration multiplies capability by
    ``1 + rate`` and erodes control probability by 15%.
    """
    rate = capability.self_improvement_rate
    avg_alignment = alignment.average()
    if not (self_improvement_achieved and rate > 0.3 and avg_alignment < 70):
        return CapabilityExplosion(
            triggered=False,
            trigger_milestone=MT.SELF_IMPROVEMENT,
            exponential_growth_rate=1.0,
            iterations_projected=0,
            final_capability_estimate=capability,
            control_probability=1.0,
            time_to_singularity_months=math.inf,
        )

    growth = 1 + rate
    iterations = math.ceil(10 / rate)
    projected = capability.to_dict()
    control = avg_alignment / 100
    for _ in range(iterations):
        projected = {
            name: min(1.0 if name == "self_improvement_rate" else 100.0, value * growth)
            for name, value in projected.items()
        }
        control *= 0.85
    months = iterations * 3

    actions = []
    if control < 0.5:
        actions.append("CRITICAL: Control probability below 50% - implement emergency shutdown protocols")
    if control < 0.3:
        actions.append("URGENT: Activate hard limits on computational resources")
        actions.append("URGENT: Engage external safety review board immediately")
    if control < 0.1:
        actions.append("EXISTENTIAL THREAT: System approaching an uncontrollable intelligence explosion")
        actions.append("Execute containment protocols and notify regulatory authorities")
    actions.append("Halt all capability research and focus on alignment immediately")
    actions.append("Implement interpretability measures to understand AI decision-making")
    actions.append(f"Estimated {months} months until point of no return")

    return CapabilityExplosion(
        triggered=True,
        trigger_milestone=MT.SELF_IMPROVEMENT,
        exponential_growth_rate=round(growth, 2),
        iterations_projected=iterations,
        final_capability_estimate=CapabilityMetrics(**projected),
        control_probability=round(control, 4),
        time_to_singularity_months=months,
        emergency_actions=tuple(actions),
    )


def classify_disruption(total: float) -> DisruptionLevel:
    if total < 25:
        return DisruptionLevel.MINOR
    if total < 50:
        return DisruptionLevel.MODERATE
    if total < 75:
        return DisruptionLevel.MAJOR
    return DisruptionLevel.CATASTROPHIC


def predict_industry_disruption(
        milestone_type: MilestoneType,
        company_alignment: float,
        first_mover: bool,
) -> IndustryDisruption:
    if not 0 <= company_alignment <= 100:
        raise ValueError("company_alignment must be between 0 and 100")

    base = DISRUPTION_INTENSITY[milestone_type]
    total = min(100.0, base * 1.3 if first_mover else base)
    level = classify_disruption(total)
    regulatory = min(1.0, (100 - company_alignment) / 100 * 0.6 + total / 100 * 0.4)

    return IndustryDisruption(
        disruption_level=level,
        affected_industries=AFFECTED_INDUSTRIES.get(milestone_type, ()),
        market_share_shift=round(min(90.0, total * 0.8), 2),
        competitor_response=COMPETITOR_RESPONSES[level],
        regulatory_probability=round(regulatory, 4),
        timeline_months=6 if milestone_type is MT.SUPERINTELLIGENCE else 12,
        economic_impact=total * 10_000_000,
    )
