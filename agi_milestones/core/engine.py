"""Achievement orchestration: the only code that mutates progression records.

Every mutation is a read-compute-swap cycle against ``ProgressionStore``. The
compute step is a pure function of the record that was read, so a lost
compare-and-swap simply re-reads and recomputes.
"""

import datetime
import logging
import math
import random
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

import attrs

from . import calculations
from .calculations import PrerequisiteResult, ProbabilityResult
from .catalog import ALIGNMENT_CHANGES, CAPABILITY_GAINS, DEFAULT_CATALOG, MilestoneCatalog
from .challenges import AlignmentChallenge, apply_challenge_choice, generate_alignment_challenge, parse_choice
from .config import EngineConfig
from .errors import AlreadyAchieved, ConcurrencyConflict, InsufficientResources, NotFound, PrerequisitesNotMet
from .metrics import (AlignmentMetrics, AlignmentStance, CapabilityMetrics, ImpactConsequences,
                      MilestoneStatus, MilestoneType)
from .records import AttemptLog, ProgressionRecord, new_progression_record, utcnow
from .store import ProgressionStore
from .utils import get_transcript_logger

logger = logging.getLogger(__name__)
script_logger = get_transcript_logger()

LearningBonus = Callable[[ProgressionRecord], float]
RecordUpdate = Callable[[ProgressionRecord], Optional[ProgressionRecord]]


def no_learning_bonus(record: ProgressionRecord) -> float:
    """Default hook: failed attempts teach nothing."""
    return 0.0


@attrs.frozen
class AchievementResult:
    success: bool
    probability: float
    roll: float
    outcome: str
    record: ProgressionRecord
    capability_gain: Dict[str, float] = attrs.field(factory=dict)
    alignment_change: Dict[str, float] = attrs.field(factory=dict)
    impact_consequences: Optional[ImpactConsequences] = None
    replayed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "probability": self.probability,
            "roll": self.roll,
            "outcome": self.outcome,
            "record": self.record.to_dict(),
            "capability_gain": dict(self.capability_gain),
            "alignment_change": dict(self.alignment_change),
            "impact_consequences": self.impact_consequences.to_dict() if self.impact_consequences else None,
            "replayed": self.replayed,
        }


def resolve_attempt(
        record: ProgressionRecord,
        *,
        research_points: float,
        compute_budget: float,
        roll: float,
        attempt_id: str,
        now: datetime.datetime,
        catalog: MilestoneCatalog = DEFAULT_CATALOG,
        probability_cap: float = calculations.PROBABILITY_CAP,
        learning_bonus: float = 0.0,
) -> Tuple[ProgressionRecord, ProbabilityResult, bool]:
    """Next record after one attempt with a pre-drawn ``roll``.

    The probability is taken after this attempt's research points are added.
    Success is ``roll < probability``.
    """
    milestone = record.milestone_type
    invested = record.research_points_invested + research_points
    probability = calculations.calculate_achievement_probability(
        milestone, invested, record.capability, record.alignment,
        catalog=catalog, probability_cap=probability_cap, learning_bonus=learning_bonus,
    )
    success = roll < probability.probability

    entry = AttemptLog(
        attempt_id=attempt_id,
        attempted_at=now,
        research_points=research_points,
        compute_budget=compute_budget,
        probability=probability.probability,
        roll=roll,
        success=success,
    )
    updated = attrs.evolve(
        record,
        research_points_invested=invested,
        compute_budget_spent=record.compute_budget_spent + compute_budget,
        attempt_count=record.attempt_count + 1,
        attempt_log=record.attempt_log + (entry,),
    )
    if not success:
        return updated.with_status(MilestoneStatus.FAILED, now), probability, False

    capability = updated.capability.apply_delta(CAPABILITY_GAINS[milestone])
    alignment = updated.alignment.apply_delta(ALIGNMENT_CHANGES[milestone])
    updated = attrs.evolve(
        updated,
        capability=capability,
        alignment=alignment,
        impact_consequences=calculations.calculate_impact_consequences(
            milestone, capability, alignment, catalog=catalog
        ),
    )
    return updated.with_status(MilestoneStatus.ACHIEVED, now), probability, True


@attrs.define
class MilestoneEngine:
    """Drives progression records through Locked/Available/Failed/Achieved.

    Args:
        store: Persistence boundary holding the records
        config: Tunable parameters (probability cap, CAS retries, risk weighting)
        catalog: Milestone requirements and prerequisite graph
        random_gen: Source of attempt rolls; anything with a ``random()`` method
        clock: Returns the current timestamp
        learning_bonus: Extra probability granted from a record's history
    """
    store: ProgressionStore
    config: EngineConfig = attrs.field(factory=EngineConfig)
    catalog: MilestoneCatalog = DEFAULT_CATALOG
    random_gen: Optional[random.Random] = None
    clock: Callable[[], datetime.datetime] = utcnow
    learning_bonus: LearningBonus = no_learning_bonus

    _random: random.Random = attrs.field(init=False)

    def __attrs_post_init__(self):
        self._random = self.random_gen if self.random_gen is not None else random.Random(self.config.random_seed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_progression_record(self, organization_id: str, milestone_type: MilestoneType) -> ProgressionRecord:
        record = await self.store.get(organization_id, milestone_type)
        if record is None:
            raise NotFound(f"No progression record for {organization_id}/{milestone_type.value}")
        return record

    async def list_progression_records(self, organization_id: str) -> List[ProgressionRecord]:
        snapshot = await self.store.snapshot(organization_id)
        return [snapshot[m] for m in self.catalog.topological_order() if m in snapshot]

    async def check_prerequisites(
            self,
            organization_id: str,
            milestone_type: MilestoneType,
            *,
            research_points: float = 0,
            compute_budget: float = 0,
    ) -> PrerequisiteResult:
        """Validate against one consistent snapshot, counting an optional prospective investment."""
        _check_resources(research_points, compute_budget)
        snapshot = await self.store.snapshot(organization_id)
        record = self._from_snapshot(snapshot, organization_id, milestone_type)
        return self._validate(record, snapshot, research_points, compute_budget)

    async def organization_alignment_score(self, organization_id: str) -> calculations.OrganizationAlignmentScore:
        """Complexity-weighted scores across one consistent snapshot of the organization."""
        snapshot = await self.store.snapshot(organization_id)
        if not snapshot:
            raise NotFound(f"No progression records for {organization_id}")
        return calculations.calculate_organization_alignment_score(snapshot.values(), catalog=self.catalog)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def initialize_organization(
            self,
            organization_id: str,
            *,
            capability: Optional[CapabilityMetrics] = None,
            alignment: Optional[AlignmentMetrics] = None,
            stance: AlignmentStance = AlignmentStance.BALANCED,
    ) -> List[ProgressionRecord]:
        """Create Locked records for every milestone type and unlock the roots.

        Records that already exist are left untouched. New records start from
        the given metric profile (defaults otherwise).
        """
        existing = await self.store.snapshot(organization_id)
        now = self.clock()
        profile: Dict[str, Any] = {"alignment_stance": stance}
        if capability is not None:
            profile["capability"] = capability
        if alignment is not None:
            profile["alignment"] = alignment
        created = 0
        for milestone in self.catalog.topological_order():
            if milestone in existing:
                continue
            try:
                await self.store.insert(new_progression_record(organization_id, milestone, now, **profile))
                created += 1
            except ValueError:
                logger.debug(f"{organization_id}/{milestone.value} - Created concurrently, keeping existing record")
        logger.info(f"Initialized {organization_id}: {created} new progression records")
        await self.unlock_available_milestones(organization_id)
        return await self.list_progression_records(organization_id)

    async def unlock_available_milestones(self, organization_id: str) -> List[ProgressionRecord]:
        """Promote Locked records whose prerequisite milestones are all achieved."""
        snapshot = await self.store.snapshot(organization_id)
        achieved = _achieved(snapshot)
        unlocked = []
        for milestone in self.catalog.topological_order():
            record = snapshot.get(milestone)
            if record is None or record.status is not MilestoneStatus.LOCKED:
                continue
            if not all(p in achieved for p in self.catalog.prerequisites(milestone)):
                continue

            def unlock(current: ProgressionRecord) -> Optional[ProgressionRecord]:
                if current.status is not MilestoneStatus.LOCKED:
                    return None
                return current.with_status(MilestoneStatus.AVAILABLE, self.clock())

            updated = await self._update(organization_id, milestone, unlock)
            if updated.status is MilestoneStatus.AVAILABLE:
                logger.info(f"{organization_id} - {milestone.value} is now available")
                unlocked.append(updated)
        return unlocked

    async def attempt_achievement(
            self,
            organization_id: str,
            milestone_type: MilestoneType,
            research_points: float,
            compute_budget: float,
            *,
            attempt_id: Optional[str] = None,
    ) -> AchievementResult:
        """Spend resources on one trial of ``milestone_type``.

        Raises:
            NotFound: No record for the organization and milestone
            AlreadyAchieved: The milestone is terminal
            PrerequisitesNotMet: Prerequisite milestones or metric thresholds block the attempt
            InsufficientResources: Cumulative research points or compute fall short
            ConcurrencyConflict: Lost the compare-and-swap race ``max_cas_attempts`` times
        """
        _check_resources(research_points, compute_budget)
        attempt_id = attempt_id or f"attempt_{uuid.uuid4().hex}"
        roll: Optional[float] = None
        max_attempts = self.config.max_cas_attempts

        for cas_attempt in range(max_attempts):
            snapshot = await self.store.snapshot(organization_id)
            record = self._from_snapshot(snapshot, organization_id, milestone_type)

            previous = record.find_attempt(attempt_id)
            if previous is not None:
                logger.info(f"{organization_id} - Replaying attempt {attempt_id} for {milestone_type.value}")
                return self._replay(record, previous)
            if record.is_achieved:
                raise AlreadyAchieved(organization_id, milestone_type)

            result = self._validate(record, snapshot, research_points, compute_budget)
            if not result.can_attempt:
                raise self._rejection(record, result, research_points, compute_budget)

            # One roll per call, reused if the swap below loses a race.
            if roll is None:
                roll = self._random.random()
            now = self.clock()
            updated, probability, success = resolve_attempt(
                record,
                research_points=research_points,
                compute_budget=compute_budget,
                roll=roll,
                attempt_id=attempt_id,
                now=now,
                catalog=self.catalog,
                probability_cap=self.config.probability_cap,
                learning_bonus=self.learning_bonus(record),
            )
            if await self.store.compare_and_swap(updated, record.version):
                stored = attrs.evolve(updated, version=record.version + 1)
                break
            logger.warning(
                f"{organization_id} - Version conflict on {milestone_type.value} "
                f"(attempt {cas_attempt + 1}/{max_attempts})"
            )
        else:
            raise ConcurrencyConflict(
                f"Gave up on {organization_id}/{milestone_type.value} after {max_attempts} conflicting writes"
            )

        if success:
            outcome = f"{milestone_type.value} achieved by {organization_id}"
            logger.info(f"{outcome} (roll {roll:.3f} < p {probability.probability:.3f})")
        else:
            outcome = f"{milestone_type.value} attempt failed for {organization_id}"
            logger.info(f"{outcome} (roll {roll:.3f} >= p {probability.probability:.3f})")
        script_logger.info({"log_type": "milestone_attempt", "organization": organization_id,
                            "milestone": milestone_type.value, "attempt_id": attempt_id,
                            "probability": probability.probability, "roll": roll, "success": success,
                            "attempt_count": stored.attempt_count})

        if success:
            await self.unlock_available_milestones(organization_id)
            return AchievementResult(
                success=True,
                probability=probability.probability,
                roll=roll,
                outcome=outcome,
                record=stored,
                capability_gain=dict(CAPABILITY_GAINS[milestone_type]),
                alignment_change=dict(ALIGNMENT_CHANGES[milestone_type]),
                impact_consequences=stored.impact_consequences,
            )
        return AchievementResult(
            success=False, probability=probability.probability, roll=roll, outcome=outcome, record=stored,
        )

    async def present_alignment_challenge(
            self, organization_id: str, milestone_type: MilestoneType
    ) -> AlignmentChallenge:
        now = self.clock()
        challenge = generate_alignment_challenge(milestone_type, now=now)

        def append(record: ProgressionRecord) -> ProgressionRecord:
            if record.is_achieved:
                raise AlreadyAchieved(organization_id, milestone_type)
            return attrs.evolve(record, challenges=record.challenges + (challenge,), updated_at=now)

        await self._update(organization_id, milestone_type, append)
        logger.info(f"{organization_id} - Alignment challenge {challenge.challenge_id} for {milestone_type.value}")
        script_logger.info({"log_type": "challenge_presented", "organization": organization_id,
                            "challenge": challenge.to_dict()})
        return challenge

    async def resolve_alignment_challenge(
            self,
            organization_id: str,
            milestone_type: MilestoneType,
            challenge_id: str,
            choice: Any,
    ) -> ProgressionRecord:
        """Apply the chosen option's effects and mark the challenge resolved."""
        parsed = parse_choice(choice)

        def resolve(record: ProgressionRecord) -> ProgressionRecord:
            if record.is_achieved:
                raise AlreadyAchieved(organization_id, milestone_type)
            challenge = record.find_challenge(challenge_id)
            if challenge is None:
                raise NotFound(f"No challenge {challenge_id} on {organization_id}/{milestone_type.value}")
            now = self.clock()
            resolved = challenge.resolve(parsed, now)
            capability, alignment, months = apply_challenge_choice(
                record.capability, record.alignment, record.months_in_progress, challenge, parsed
            )
            return attrs.evolve(
                record,
                capability=capability,
                alignment=alignment,
                months_in_progress=months,
                challenges=tuple(resolved if c.challenge_id == challenge_id else c for c in record.challenges),
                updated_at=now,
            )

        updated = await self._update(organization_id, milestone_type, resolve)
        logger.info(f"{organization_id} - Challenge {challenge_id} resolved with {parsed.value}")
        script_logger.info({"log_type": "challenge_resolved", "organization": organization_id,
                            "milestone": milestone_type.value, "challenge_id": challenge_id,
                            "choice": parsed.value, "avg_capability": updated.capability.average(),
                            "avg_alignment": updated.alignment.average()})
        return updated

    async def set_alignment_stance(
            self, organization_id: str, milestone_type: MilestoneType, stance: Any
    ) -> ProgressionRecord:
        stance = stance if isinstance(stance, AlignmentStance) else AlignmentStance(stance)

        def change(record: ProgressionRecord) -> ProgressionRecord:
            if record.is_achieved:
                raise AlreadyAchieved(organization_id, milestone_type)
            return attrs.evolve(record, alignment_stance=stance, updated_at=self.clock())

        return await self._update(organization_id, milestone_type, change)

    # ------------------------------------------------------------------
    # Pure views over a record
    # ------------------------------------------------------------------

    def calculate_achievement_probability(
            self, record: ProgressionRecord, research_points: float = 0
    ) -> ProbabilityResult:
        return calculations.calculate_achievement_probability(
            record.milestone_type,
            record.research_points_invested + research_points,
            record.capability,
            record.alignment,
            catalog=self.catalog,
            probability_cap=self.config.probability_cap,
            learning_bonus=self.learning_bonus(record),
        )

    def evaluate_alignment_risk(self, record: ProgressionRecord) -> calculations.RiskAssessment:
        return calculations.evaluate_alignment_risk(
            record.milestone_type, record.capability, record.alignment,
            catalog=self.catalog, complexity_weight=self.config.complexity_weight,
        )

    def calculate_impact_score(self, record: ProgressionRecord) -> calculations.ImpactScore:
        return calculations.calculate_impact_score(record.capability, record.alignment, record.impact_consequences)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _from_snapshot(
            snapshot: Dict[MilestoneType, ProgressionRecord], organization_id: str, milestone_type: MilestoneType
    ) -> ProgressionRecord:
        record = snapshot.get(milestone_type)
        if record is None:
            raise NotFound(f"No progression record for {organization_id}/{milestone_type.value}")
        return record

    def _validate(
            self,
            record: ProgressionRecord,
            snapshot: Dict[MilestoneType, ProgressionRecord],
            research_points: float,
            compute_budget: float,
    ) -> PrerequisiteResult:
        return calculations.check_prerequisites(
            self.catalog.requirements(record.milestone_type),
            record.capability,
            record.alignment,
            record.research_points_invested + research_points,
            record.compute_budget_spent + compute_budget,
            _achieved(snapshot),
        )

    def _rejection(
            self,
            record: ProgressionRecord,
            result: PrerequisiteResult,
            research_points: float,
            compute_budget: float,
    ) -> Exception:
        milestone = record.milestone_type
        met = result.requirements_met
        if not (met["prerequisites"] and met["capability"] and met["alignment"]):
            error = PrerequisitesNotMet(milestone, list(result.missing_prerequisites), met)
        else:
            requirements = self.catalog.requirements(milestone)
            shortfalls = {}
            if not met["research_points"]:
                shortfalls["research_points"] = (requirements.research_points_cost
                                                 - record.research_points_invested - research_points)
            if not met["compute_budget"]:
                shortfalls["compute_budget"] = (requirements.compute_budget_required
                                                - record.compute_budget_spent - compute_budget)
            error = InsufficientResources(milestone, shortfalls)
        logger.info(f"{record.organization_id} - Attempt on {milestone.value} rejected: {error}")
        script_logger.info({"log_type": "attempt_rejected", "organization": record.organization_id,
                            "milestone": milestone.value, "requirements_met": met})
        return error

    def _replay(self, record: ProgressionRecord, entry: AttemptLog) -> AchievementResult:
        milestone = record.milestone_type
        if entry.success:
            return AchievementResult(
                success=True,
                probability=entry.probability,
                roll=entry.roll,
                outcome=f"{milestone.value} achieved by {record.organization_id}",
                record=record,
                capability_gain=dict(CAPABILITY_GAINS[milestone]),
                alignment_change=dict(ALIGNMENT_CHANGES[milestone]),
                impact_consequences=record.impact_consequences,
                replayed=True,
            )
        return AchievementResult(
            success=False,
            probability=entry.probability,
            roll=entry.roll,
            outcome=f"{milestone.value} attempt failed for {record.organization_id}",
            record=record,
            replayed=True,
        )

    async def _update(
            self, organization_id: str, milestone_type: MilestoneType, mutate: RecordUpdate
    ) -> ProgressionRecord:
        """Read-modify-swap loop. ``mutate`` returns None to leave the record as is."""
        max_attempts = self.config.max_cas_attempts
        for cas_attempt in range(max_attempts):
            current = await self.get_progression_record(organization_id, milestone_type)
            updated = mutate(current)
            if updated is None:
                return current
            if await self.store.compare_and_swap(updated, current.version):
                return attrs.evolve(updated, version=current.version + 1)
            logger.warning(
                f"{organization_id} - Version conflict on {milestone_type.value} "
                f"(attempt {cas_attempt + 1}/{max_attempts})"
            )
        raise ConcurrencyConflict(
            f"Gave up on {organization_id}/{milestone_type.value} after {max_attempts} conflicting writes"
        )


def _achieved(snapshot: Dict[MilestoneType, ProgressionRecord]) -> set:
    return {m for m, record in snapshot.items() if record.is_achieved}


def _check_resources(research_points: float, compute_budget: float):
    for name, value in (("research_points", research_points), ("compute_budget", compute_budget)):
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"{name} must be a finite non-negative number, got {value}")
