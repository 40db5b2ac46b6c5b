"""Errors reported by the milestone engine. All of them are recoverable by the caller."""

from typing import Dict, List, Optional

from .metrics import MilestoneType


class MilestoneError(Exception):
    """Base class for milestone engine errors."""


class NotFound(MilestoneError):
    """No progression record (or challenge) exists for the requested key."""


class AlreadyAchieved(MilestoneError):
    """The milestone is already achieved; achieved records are immutable."""

    def __init__(self, organization_id: str, milestone_type: MilestoneType):
        self.organization_id = organization_id
        self.milestone_type = milestone_type
        super().__init__(f"{milestone_type.value} already achieved by {organization_id}")


class PrerequisitesNotMet(MilestoneError):
    """The prerequisite graph or the metric thresholds block the attempt."""

    def __init__(
            self,
            milestone_type: MilestoneType,
            missing_prerequisites: List[MilestoneType],
            requirements_met: Optional[Dict[str, bool]] = None,
    ):
        self.milestone_type = milestone_type
        self.missing_prerequisites = list(missing_prerequisites)
        self.requirements_met = dict(requirements_met or {})
        failed = [name for name, met in self.requirements_met.items() if not met]
        detail = ", ".join(m.value for m in self.missing_prerequisites) or "none"
        super().__init__(
            f"Cannot attempt {milestone_type.value}: missing prerequisites [{detail}], "
            f"unmet criteria {failed}"
        )


class InsufficientResources(MilestoneError):
    """Declared research points or compute budget fall short of the requirement."""

    def __init__(self, milestone_type: MilestoneType, shortfalls: Dict[str, float]):
        self.milestone_type = milestone_type
        self.shortfalls = dict(shortfalls)
        parts = ", ".join(f"{name} short by {amount:,.0f}" for name, amount in shortfalls.items())
        super().__init__(f"Insufficient resources for {milestone_type.value}: {parts}")


class InvalidChallengeChoice(MilestoneError):
    """Unknown choice token, or the challenge was already resolved."""


class ConcurrencyConflict(MilestoneError):
    """Lost the compare-and-swap race too many times; the caller may retry."""
