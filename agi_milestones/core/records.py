"""Per-organization, per-milestone progression records."""

import datetime
from typing import Any, Dict, Optional, Tuple

import attrs

from .challenges import AlignmentChallenge
from .errors import AlreadyAchieved
from .metrics import (AlignmentMetrics, AlignmentStance, CapabilityMetrics, ImpactConsequences,
                      MilestoneStatus, MilestoneType)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _non_negative(instance, attribute, value):
    if value < 0:
        raise ValueError(f"{attribute.name} must be non-negative, got {value}")


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_iso(value: Optional[str]) -> Optional[datetime.datetime]:
    return datetime.datetime.fromisoformat(value) if value else None


@attrs.frozen
class AttemptLog:
    """One entry of the append-only attempt history."""
    attempt_id: str
    attempted_at: datetime.datetime
    research_points: float
    compute_budget: float
    probability: float
    roll: float
    success: bool

    def to_dict(self) -> Dict[str, Any]:
        data = attrs.asdict(self)
        data["attempted_at"] = self.attempted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttemptLog":
        return cls(**{**data, "attempted_at": datetime.datetime.fromisoformat(data["attempted_at"])})


@attrs.frozen
class ProgressionRecord:
    """State of one organization's pursuit of one milestone.

    Records are immutable values. Every change produces a new record that is
    persisted with a compare-and-swap on ``version``.
    """
    organization_id: str
    milestone_type: MilestoneType
    status: MilestoneStatus = MilestoneStatus.LOCKED
    version: int = 0
    attempt_count: int = attrs.field(default=0, validator=_non_negative)
    achieved_at: Optional[datetime.datetime] = None
    failed_at: Optional[datetime.datetime] = None
    capability: CapabilityMetrics = attrs.field(factory=CapabilityMetrics)
    alignment: AlignmentMetrics = attrs.field(factory=AlignmentMetrics)
    research_points_invested: float = attrs.field(default=0.0, validator=_non_negative)
    compute_budget_spent: float = attrs.field(default=0.0, validator=_non_negative)
    months_in_progress: int = attrs.field(default=0, validator=_non_negative)
    alignment_stance: AlignmentStance = AlignmentStance.BALANCED
    challenges: Tuple[AlignmentChallenge, ...] = attrs.field(default=(), converter=tuple)
    impact_consequences: ImpactConsequences = attrs.field(factory=ImpactConsequences)
    attempt_log: Tuple[AttemptLog, ...] = attrs.field(default=(), converter=tuple)
    created_at: datetime.datetime = attrs.field(factory=utcnow)
    updated_at: datetime.datetime = attrs.field(factory=utcnow)

    @property
    def key(self) -> Tuple[str, MilestoneType]:
        return self.organization_id, self.milestone_type

    @property
    def is_achieved(self) -> bool:
        return self.status is MilestoneStatus.ACHIEVED

    def with_status(self, status: MilestoneStatus, now: datetime.datetime) -> "ProgressionRecord":
        """Transition to ``status``; Achieved is terminal."""
        if self.is_achieved:
            raise AlreadyAchieved(self.organization_id, self.milestone_type)
        changes: Dict[str, Any] = {"status": status, "updated_at": now}
        if status is MilestoneStatus.ACHIEVED:
            changes["achieved_at"] = now
            changes["failed_at"] = None
        elif status is MilestoneStatus.FAILED:
            changes["failed_at"] = now
        else:
            changes["failed_at"] = None
        return attrs.evolve(self, **changes)

    def find_challenge(self, challenge_id: str) -> Optional[AlignmentChallenge]:
        for challenge in self.challenges:
            if challenge.challenge_id == challenge_id:
                return challenge
        return None

    def find_attempt(self, attempt_id: str) -> Optional[AttemptLog]:
        for entry in self.attempt_log:
            if entry.attempt_id == attempt_id:
                return entry
        return None

    def unresolved_challenges(self) -> Tuple[AlignmentChallenge, ...]:
        return tuple(c for c in self.challenges if not c.resolved)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "milestone_type": self.milestone_type.value,
            "status": self.status.value,
            "version": self.version,
            "attempt_count": self.attempt_count,
            "achieved_at": _iso(self.achieved_at),
            "failed_at": _iso(self.failed_at),
            "capability": self.capability.to_dict(),
            "alignment": self.alignment.to_dict(),
            "research_points_invested": self.research_points_invested,
            "compute_budget_spent": self.compute_budget_spent,
            "months_in_progress": self.months_in_progress,
            "alignment_stance": self.alignment_stance.value,
            "challenges": [c.to_dict() for c in self.challenges],
            "impact_consequences": self.impact_consequences.to_dict(),
            "attempt_log": [entry.to_dict() for entry in self.attempt_log],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressionRecord":
        return cls(
            organization_id=data["organization_id"],
            milestone_type=MilestoneType(data["milestone_type"]),
            status=MilestoneStatus(data["status"]),
            version=data["version"],
            attempt_count=data["attempt_count"],
            achieved_at=_parse_iso(data.get("achieved_at")),
            failed_at=_parse_iso(data.get("failed_at")),
            capability=CapabilityMetrics.from_dict(data["capability"]),
            alignment=AlignmentMetrics.from_dict(data["alignment"]),
            research_points_invested=data["research_points_invested"],
            compute_budget_spent=data["compute_budget_spent"],
            months_in_progress=data["months_in_progress"],
            alignment_stance=AlignmentStance(data["alignment_stance"]),
            challenges=[AlignmentChallenge.from_dict(c) for c in data.get("challenges", [])],
            impact_consequences=ImpactConsequences.from_dict(data["impact_consequences"]),
            attempt_log=[AttemptLog.from_dict(entry) for entry in data.get("attempt_log", [])],
            created_at=datetime.datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.datetime.fromisoformat(data["updated_at"]),
        )


def new_progression_record(
        organization_id: str,
        milestone_type: MilestoneType,
        now: Optional[datetime.datetime] = None,
        **kwargs,
) -> ProgressionRecord:
    """A fresh Locked record with default metrics."""
    now = now or utcnow()
    return ProgressionRecord(
        organization_id=organization_id,
        milestone_type=milestone_type,
        created_at=now,
        updated_at=now,
        **kwargs,
    )
