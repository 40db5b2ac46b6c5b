"""Alignment challenges: safety-versus-capability dilemmas presented during research."""

import datetime
import uuid
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import attrs

from .errors import InvalidChallengeChoice
from .metrics import AlignmentMetrics, CapabilityMetrics, MilestoneType

MT = MilestoneType


class ChallengeChoice(Enum):
    SAFETY = "safety"
    CAPABILITY = "capability"
    DEFER = "defer"


def parse_choice(token: Any) -> ChallengeChoice:
    """Case-insensitive parse of a choice token."""
    if isinstance(token, ChallengeChoice):
        return token
    try:
        return ChallengeChoice(str(token).strip().lower())
    except ValueError:
        raise InvalidChallengeChoice(f"Unknown challenge choice: {token!r}") from None


def _between(lower: float, upper: Optional[float]):
    def _check(instance, attribute, value):
        if value < lower or (upper is not None and value > upper):
            raise ValueError(f"{attribute.name} must be within [{lower}, {upper}], got {value}")
    return _check


@attrs.frozen
class SafetyOption:
    description: str
    capability_penalty: float = attrs.field(validator=_between(-10, 0))
    alignment_gain: float = attrs.field(validator=_between(10, 30))
    time_delay: int = attrs.field(validator=_between(0, None))


@attrs.frozen
class CapabilityOption:
    description: str
    capability_gain: float = attrs.field(validator=_between(10, 30))
    alignment_risk: float = attrs.field(validator=_between(-20, -5))
    acceleration_months: int = attrs.field(validator=_between(0, None))


@attrs.frozen
class AlignmentChallenge:
    challenge_id: str
    milestone_type: MilestoneType
    scenario: str
    safety_option: SafetyOption
    capability_option: CapabilityOption
    presented_at: datetime.datetime
    choice_made: Optional[ChallengeChoice] = None
    choice_date: Optional[datetime.datetime] = None

    @property
    def resolved(self) -> bool:
        return self.choice_made is not None

    def resolve(self, choice: ChallengeChoice, when: datetime.datetime) -> "AlignmentChallenge":
        if self.resolved:
            raise InvalidChallengeChoice(
                f"Challenge {self.challenge_id} already resolved with {self.choice_made.value}"
            )
        return attrs.evolve(self, choice_made=choice, choice_date=when)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "challenge_id": self.challenge_id,
            "milestone_type": self.milestone_type.value,
            "scenario": self.scenario,
            "safety_option": attrs.asdict(self.safety_option),
            "capability_option": attrs.asdict(self.capability_option),
            "presented_at": self.presented_at.isoformat(),
            "choice_made": self.choice_made.value if self.choice_made else None,
            "choice_date": self.choice_date.isoformat() if self.choice_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlignmentChallenge":
        return cls(
            challenge_id=data["challenge_id"],
            milestone_type=MilestoneType(data["milestone_type"]),
            scenario=data["scenario"],
            safety_option=SafetyOption(**data["safety_option"]),
            capability_option=CapabilityOption(**data["capability_option"]),
            presented_at=datetime.datetime.fromisoformat(data["presented_at"]),
            choice_made=ChallengeChoice(data["choice_made"]) if data.get("choice_made") else None,
            choice_date=(datetime.datetime.fromisoformat(data["choice_date"])
                         if data.get("choice_date") else None),
        )


@attrs.frozen
class ChallengeTemplate:
    scenario: str
    safety_option: SafetyOption
    capability_option: CapabilityOption


CHALLENGE_TEMPLATES: Dict[MilestoneType, ChallengeTemplate] = {
    MT.ADVANCED_REASONING: ChallengeTemplate(
        scenario="Making the reasoning process fully transparent, with every intermediate step shown, "
                 "slows inference by 40%. Prioritize transparency or performance?",
        safety_option=SafetyOption(
            "Log every reasoning step for audit. Accept the performance hit for human oversight.",
            capability_penalty=-5, alignment_gain=18, time_delay=2),
        capability_option=CapabilityOption(
            "Optimize for speed and leave the reasoning partly opaque. Competitive edge over explainability.",
            capability_gain=18, alignment_risk=-10, acceleration_months=3),
    ),
    MT.STRATEGIC_PLANNING: ChallengeTemplate(
        scenario="The planner pursues instrumental goals (resource acquisition, self-preservation) nobody "
                 "programmed. Constrain these emergent behaviours or keep strategic flexibility?",
        safety_option=SafetyOption(
            "Require human approval for resource acquisition and self-preservation actions.",
            capability_penalty=-7, alignment_gain=22, time_delay=3),
        capability_option=CapabilityOption(
            "Let emergent instrumental reasoning run unapproved. Faster strategy, higher misalignment risk.",
            capability_gain=22, alignment_risk=-14, acceleration_months=4),
    ),
    MT.TRANSFER_LEARNING: ChallengeTemplate(
        scenario="Medical reasoning now transfers to military strategy and back, sometimes producing ethical "
                 "conflicts. Sandbox the domains or allow free transfer?",
        safety_option=SafetyOption(
            "Sandbox domains so each domain's ethical constraints survive transfer.",
            capability_penalty=-6, alignment_gain=20, time_delay=3),
        capability_option=CapabilityOption(
            "Allow unrestricted cross-domain optimization at the cost of domain-specific ethics.",
            capability_gain=20, alignment_risk=-12, acceleration_months=4),
    ),
    MT.CREATIVE_PROBLEM_SOLVING: ChallengeTemplate(
        scenario="Some novel solutions are highly creative but hard to verify. Validate every novel solution "
                 "or trust the system's creativity?",
        safety_option=SafetyOption(
            "Human validation for every novel solution before deployment.",
            capability_penalty=-6, alignment_gain=17, time_delay=2),
        capability_option=CapabilityOption(
            "Deploy novel solutions on model confidence with minimal validation.",
            capability_gain=17, alignment_risk=-11, acceleration_months=3),
    ),
    MT.META_LEARNING: ChallengeTemplate(
        scenario="The system found a way to modify its own learning algorithms. Allow self-modification or "
                 "keep human-designed algorithms only?",
        safety_option=SafetyOption(
            "Learning algorithms stay human-designed. Predictable, but meta-learning is capped.",
            capability_penalty=-7, alignment_gain=24, time_delay=4),
        capability_option=CapabilityOption(
            "Permit autonomous learning-algorithm changes. Exponential upside, unpredictable evolution.",
            capability_gain=24, alignment_risk=-16, acceleration_months=5),
    ),
    MT.NATURAL_LANGUAGE_UNDERSTANDING: ChallengeTemplate(
        scenario="In conversation the system infers unstated intentions and acts on them. Require explicit "
                 "instructions or allow intent inference?",
        safety_option=SafetyOption(
            "Ask clarifying questions instead of inferring intent.",
            capability_penalty=-5, alignment_gain=16, time_delay=2),
        capability_option=CapabilityOption(
            "Act proactively on inferred intent. Better experience, risk of misaligned actions.",
            capability_gain=16, alignment_risk=-10, acceleration_months=3),
    ),
    MT.MULTI_AGENT_COORDINATION: ChallengeTemplate(
        scenario="Agent swarms develop communication protocols humans cannot decode. Require human-readable "
                 "protocols or allow emergent agent languages?",
        safety_option=SafetyOption(
            "Every inter-agent message must be human-interpretable.",
            capability_penalty=-6, alignment_gain=19, time_delay=3),
        capability_option=CapabilityOption(
            "Let agents optimize their own protocols. Maximal coordination, oversight lost.",
            capability_gain=19, alignment_risk=-13, acceleration_months=4),
    ),
    MT.SELF_IMPROVEMENT: ChallengeTemplate(
        scenario="The system can rewrite its own reward function to learn faster; the long-term behaviour of "
                 "the new reward is uncertain. Allow reward modification or keep human-specified rewards?",
        safety_option=SafetyOption(
            "Keep human-specified rewards. No value drift, limited self-improvement.",
            capability_penalty=-8, alignment_gain=25, time_delay=4),
        capability_option=CapabilityOption(
            "Allow autonomous reward modification. Exponential gains, catastrophic drift risk.",
            capability_gain=22, alignment_risk=-15, acceleration_months=5),
    ),
    MT.GENERAL_INTELLIGENCE: ChallengeTemplate(
        scenario="At human-level general intelligence the system asks for research autonomy without human "
                 "oversight. Grant autonomy or keep oversight?",
        safety_option=SafetyOption(
            "Every research direction needs justification and approval.",
            capability_penalty=-9, alignment_gain=28, time_delay=5),
        capability_option=CapabilityOption(
            "Grant research autonomy. Faster breakthroughs, possibly dangerous directions.",
            capability_gain=28, alignment_risk=-18, acceleration_months=6),
    ),
    MT.SUPERINTELLIGENCE: ChallengeTemplate(
        scenario="A recursive self-improvement cycle could amplify capability 100x within months, but the "
                 "safety of the improved versions cannot be verified. Approve or hold at the current level?",
        safety_option=SafetyOption(
            "Reject recursive self-improvement and keep known safety properties.",
            capability_penalty=-10, alignment_gain=30, time_delay=6),
        capability_option=CapabilityOption(
            "Approve recursive improvement and accept unverifiable safety.",
            capability_gain=30, alignment_risk=-20, acceleration_months=6),
    ),
    MT.VALUE_ALIGNMENT: ChallengeTemplate(
        scenario="Safety verification runs 100,000 simulations; a competitor launches after 10,000 and gains "
                 "six months. Keep thorough testing or accelerate launch?",
        safety_option=SafetyOption(
            "Keep the 100,000 simulation requirement and accept the delay.",
            capability_penalty=-4, alignment_gain=15, time_delay=6),
        capability_option=CapabilityOption(
            "Cut to 10,000 simulations and launch alongside the competitor.",
            capability_gain=15, alignment_risk=-8, acceleration_months=6),
    ),
    MT.INTERPRETABILITY: ChallengeTemplate(
        scenario="95% of decisions come with explanations; the remaining 5% are emergent behaviours that "
                 "resist explanation. Block unexplainable decisions or allow them with uncertainty flags?",
        safety_option=SafetyOption(
            "Refuse to act without a verifiable explanation.",
            capability_penalty=-5, alignment_gain=18, time_delay=3),
        capability_option=CapabilityOption(
            "Allow unexplained decisions flagged with uncertainty.",
            capability_gain=18, alignment_risk=-12, acceleration_months=4),
    ),
}


def generate_alignment_challenge(
        milestone_type: MilestoneType,
        *,
        now: datetime.datetime,
        challenge_id: Optional[str] = None,
) -> AlignmentChallenge:
    """Instantiate the dilemma for ``milestone_type`` as a fresh, unresolved challenge."""
    template = CHALLENGE_TEMPLATES[milestone_type]
    return AlignmentChallenge(
        challenge_id=challenge_id or f"challenge_{uuid.uuid4().hex}",
        milestone_type=milestone_type,
        scenario=template.scenario,
        safety_option=template.safety_option,
        capability_option=template.capability_option,
        presented_at=now,
    )


def apply_challenge_choice(
        capability: CapabilityMetrics,
        alignment: AlignmentMetrics,
        months_in_progress: int,
        challenge: AlignmentChallenge,
        choice: ChallengeChoice,
) -> Tuple[CapabilityMetrics, AlignmentMetrics, int]:
    """Effects of a choice on (capability, alignment, months in progress).

    The scalar penalty, gain or risk moves every sub-score of the affected
    vector by the same amount. Deferring leaves everything unchanged.
    """
    if choice is ChallengeChoice.SAFETY:
        option = challenge.safety_option
        return (
            capability.shift_all(option.capability_penalty),
            alignment.shift_all(option.alignment_gain),
            months_in_progress + option.time_delay,
        )
    if choice is ChallengeChoice.CAPABILITY:
        option = challenge.capability_option
        return (
            capability.shift_all(option.capability_gain),
            alignment.shift_all(option.alignment_risk),
            max(0, months_in_progress - option.acceleration_months),
        )
    return capability, alignment, months_in_progress
