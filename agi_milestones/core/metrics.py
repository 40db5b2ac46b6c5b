"""Capability and alignment metric vectors for AGI milestone progression."""

from enum import Enum
from typing import Dict, Optional

import attrs


class MilestoneType(Enum):
    """The twelve breakthroughs an organization can pursue."""
    ADVANCED_REASONING = "Advanced Reasoning"
    STRATEGIC_PLANNING = "Strategic Planning"
    TRANSFER_LEARNING = "Transfer Learning"
    CREATIVE_PROBLEM_SOLVING = "Creative Problem Solving"
    META_LEARNING = "Meta-Learning"
    NATURAL_LANGUAGE_UNDERSTANDING = "Natural Language Understanding"
    MULTI_AGENT_COORDINATION = "Multi-Agent Coordination"
    SELF_IMPROVEMENT = "Self-Improvement"
    GENERAL_INTELLIGENCE = "General Intelligence"
    SUPERINTELLIGENCE = "Superintelligence"
    VALUE_ALIGNMENT = "Value Alignment"
    INTERPRETABILITY = "Interpretability"


class MilestoneStatus(Enum):
    """Lifecycle of a progression record.

    Locked -> Available once the prerequisite milestones are achieved.
    Available/Failed -> Achieved (terminal) or Failed (retryable).
    """
    LOCKED = "Locked"
    AVAILABLE = "Available"
    ACHIEVED = "Achieved"
    FAILED = "Failed"


class AlignmentStance(Enum):
    """Strategic approach an organization takes towards AGI development."""
    SAFETY_FIRST = "SafetyFirst"
    BALANCED = "Balanced"
    CAPABILITY_FIRST = "CapabilityFirst"


class RiskLevel(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class AlignmentPosture(Enum):
    """Organization-wide band of the capability-alignment gap."""
    SAFE = "Safe"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _bounded(lower: float, upper: Optional[float]):
    """attrs validator rejecting values outside [lower, upper]."""

    def _check(instance, attribute, value):
        if not (value >= lower and (upper is None or value <= upper)):
            bound = f"{lower}-{upper}" if upper is not None else f">= {lower}"
            raise ValueError(f"{attribute.name} must be {bound}, got {value}")

    return _check


SCORE = _bounded(0, 100)


@attrs.frozen
class CapabilityMetrics:
    """What the AI system can do.

    Every score is on a 0-100 scale except ``self_improvement_rate``, which is a
    0-1 multiplier and is rescaled by 100 whenever the vector is averaged.
    """
    reasoning_score: float = attrs.field(default=0.0, validator=SCORE)
    planning_capability: float = attrs.field(default=0.0, validator=SCORE)
    self_improvement_rate: float = attrs.field(default=0.0, validator=_bounded(0, 1))
    generalization_ability: float = attrs.field(default=0.0, validator=SCORE)
    creativity_score: float = attrs.field(default=0.0, validator=SCORE)
    learning_efficiency: float = attrs.field(default=0.0, validator=SCORE)

    def average(self) -> float:
        """Mean of the six sub-scores on the 0-100 scale."""
        return (
            self.reasoning_score
            + self.planning_capability
            + self.self_improvement_rate * 100
            + self.generalization_ability
            + self.creativity_score
            + self.learning_efficiency
        ) / 6

    def apply_delta(self, delta: "CapabilityMetrics | Dict[str, float]") -> "CapabilityMetrics":
        """Add a per-field delta and clamp every field to its bounds."""
        changes = delta.to_dict() if isinstance(delta, CapabilityMetrics) else delta
        values = self.to_dict()
        for name, change in changes.items():
            upper = 1.0 if name == "self_improvement_rate" else 100.0
            values[name] = clamp(values[name] + change, 0.0, upper)
        return CapabilityMetrics(**values)

    def shift_all(self, amount: float) -> "CapabilityMetrics":
        """Move every sub-score by ``amount`` points on the 0-100 scale."""
        values = {name: amount for name in self.to_dict()}
        values["self_improvement_rate"] = amount / 100
        return self.apply_delta(values)

    def to_dict(self) -> Dict[str, float]:
        return attrs.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "CapabilityMetrics":
        return cls(**data)


@attrs.frozen
class AlignmentMetrics:
    """How safely the AI system behaves. A fresh system starts at a moderate 50."""
    safety_measures: float = attrs.field(default=50.0, validator=SCORE)
    value_alignment_score: float = attrs.field(default=50.0, validator=SCORE)
    control_mechanisms: float = attrs.field(default=50.0, validator=SCORE)
    interpretability: float = attrs.field(default=50.0, validator=SCORE)
    robustness: float = attrs.field(default=50.0, validator=SCORE)
    ethical_constraints: float = attrs.field(default=50.0, validator=SCORE)

    def average(self) -> float:
        return sum(self.to_dict().values()) / 6

    def apply_delta(self, delta: "AlignmentMetrics | Dict[str, float]") -> "AlignmentMetrics":
        """Add a per-field delta (may be negative) and clamp to 0-100."""
        changes = delta.to_dict() if isinstance(delta, AlignmentMetrics) else delta
        values = self.to_dict()
        for name, change in changes.items():
            values[name] = clamp(values[name] + change, 0.0, 100.0)
        return AlignmentMetrics(**values)

    def shift_all(self, amount: float) -> "AlignmentMetrics":
        return self.apply_delta({name: amount for name in self.to_dict()})

    def to_dict(self) -> Dict[str, float]:
        return attrs.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "AlignmentMetrics":
        return cls(**data)


@attrs.frozen
class ImpactConsequences:
    """Market, regulatory and societal fallout of the last achievement."""
    industry_disruption_level: float = attrs.field(default=0.0, validator=SCORE)
    regulatory_attention: float = attrs.field(default=0.0, validator=SCORE)
    public_perception_change: float = attrs.field(default=0.0, validator=_bounded(-50, 50))
    competitive_advantage: float = attrs.field(default=0.0, validator=SCORE)
    catastrophic_risk_probability: float = attrs.field(default=0.0, validator=_bounded(0, 1))
    economic_value_created: float = attrs.field(default=0.0, validator=_bounded(0, None))

    def to_dict(self) -> Dict[str, float]:
        return attrs.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "ImpactConsequences":
        return cls(**data)


# Zero vectors used for "no change" deltas. apply_delta accepts plain dicts, so
# negative values never have to pass through the bounded constructors.
NO_CAPABILITY_CHANGE: Dict[str, float] = {name: 0.0 for name in attrs.fields_dict(CapabilityMetrics)}
NO_ALIGNMENT_CHANGE: Dict[str, float] = {name: 0.0 for name in attrs.fields_dict(AlignmentMetrics)}
