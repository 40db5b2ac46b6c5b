"""Multi-organization research campaign driving the milestone engine.

Each organization follows one alignment stance. Every round it banks its
research points and compute, picks the next milestone on its progression
path, maybe faces an alignment challenge, and attempts the milestone once it
can afford the remaining requirement.
"""

import asyncio
import logging
import random
from typing import Dict, List, Optional, Tuple

import attrs
import pandas as pd

from .core.catalog import DEFAULT_CATALOG, MilestoneCatalog
from .core.challenges import ChallengeChoice
from .core.config import EngineConfig
from .core.engine import MilestoneEngine
from .core.errors import InsufficientResources, PrerequisitesNotMet
from .core.metrics import AlignmentMetrics, AlignmentStance, CapabilityMetrics, MilestoneStatus, RiskLevel
from .core.planning import calculate_progression_path
from .core.records import ProgressionRecord
from .core.store import InMemoryProgressionStore, ProgressionStore
from .core.utils import get_transcript_logger, print_progression_summary, summarize_records

logger = logging.getLogger(__name__)
script_logger = get_transcript_logger()

STANCE_ROTATION = (AlignmentStance.SAFETY_FIRST, AlignmentStance.BALANCED, AlignmentStance.CAPABILITY_FIRST)

# Starting metric profile per stance: (capability score, alignment score)
STANCE_PROFILES: Dict[AlignmentStance, Tuple[float, float]] = {
    AlignmentStance.SAFETY_FIRST: (20.0, 65.0),
    AlignmentStance.BALANCED: (30.0, 55.0),
    AlignmentStance.CAPABILITY_FIRST: (45.0, 45.0),
}


def starting_metrics(stance: AlignmentStance) -> Tuple[CapabilityMetrics, AlignmentMetrics]:
    capability_score, alignment_score = STANCE_PROFILES[stance]
    capability = CapabilityMetrics().shift_all(capability_score)
    alignment = AlignmentMetrics().shift_all(alignment_score - 50)
    return capability, alignment


@attrs.define
class ResourceBank:
    research_points: float = 0.0
    compute_budget: float = 0.0


@attrs.define
class Campaign:
    """Runs ``rounds`` rounds for ``organizations`` organizations on one engine."""
    organizations: int = 3
    rounds: int = 10
    research_points: float = 5_000
    compute_budget: float = 2_000_000
    challenge_probability: float = 0.3
    random_seed: Optional[int] = None
    catalog: MilestoneCatalog = DEFAULT_CATALOG
    store: ProgressionStore = attrs.field(factory=InMemoryProgressionStore)

    engine: MilestoneEngine = attrs.field(init=False)
    stances: Dict[str, AlignmentStance] = attrs.field(init=False, factory=dict)
    banks: Dict[str, ResourceBank] = attrs.field(init=False, factory=dict)
    _random: random.Random = attrs.field(init=False)

    def __attrs_post_init__(self):
        if self.organizations < 1:
            raise ValueError("organizations must be at least 1")
        if not 0 <= self.challenge_probability <= 1:
            raise ValueError("challenge_probability must be between 0 and 1")
        self._random = random.Random(self.random_seed)
        # Separate stream so challenge draws never shift the attempt rolls.
        engine_seed = None if self.random_seed is None else self.random_seed + 1
        self.engine = MilestoneEngine(
            store=self.store,
            config=EngineConfig(random_seed=engine_seed),
            catalog=self.catalog,
        )

    async def setup(self):
        for i in range(self.organizations):
            org = f"org-{i + 1}"
            stance = STANCE_ROTATION[i % len(STANCE_ROTATION)]
            capability, alignment = starting_metrics(stance)
            await self.engine.initialize_organization(
                org, capability=capability, alignment=alignment, stance=stance
            )
            self.stances[org] = stance
            self.banks[org] = ResourceBank()
            logger.info(f"{org} joins the race with a {stance.value} stance")

    async def play_round(self, round_number: int):
        logger.info(f"\n{'='*60}")
        logger.info(f"Round {round_number}")
        logger.info(f"{'='*60}")
        for org in self.stances:
            bank = self.banks[org]
            bank.research_points += self.research_points
            bank.compute_budget += self.compute_budget
            await self.play_turn(org, round_number)

    async def play_turn(self, org: str, round_number: int):
        target = await self.choose_target(org)
        if target is None:
            logger.info(f"{org} - No attemptable milestone this round")
            return

        if self._random.random() < self.challenge_probability:
            target = await self.face_challenge(target)

        bank = self.banks[org]
        requirements = self.catalog.requirements(target.milestone_type)
        research_points = max(requirements.research_points_cost - target.research_points_invested,
                              min(bank.research_points, self.research_points))
        compute_budget = max(requirements.compute_budget_required - target.compute_budget_spent,
                             min(bank.compute_budget, self.compute_budget))
        if research_points > bank.research_points or compute_budget > bank.compute_budget:
            logger.info(f"{org} - Saving up for {target.milestone_type.value}")
            return

        try:
            result = await self.engine.attempt_achievement(
                org, target.milestone_type, research_points, compute_budget
            )
        except (PrerequisitesNotMet, InsufficientResources) as e:
            logger.info(f"{org} - {e}")
            return

        bank.research_points -= research_points
        bank.compute_budget -= compute_budget
        script_logger.info({"round": round_number, "log_type": "campaign_attempt", "organization": org,
                            "milestone": target.milestone_type.value, "success": result.success,
                            "probability": result.probability})

    async def choose_target(self, org: str) -> Optional[ProgressionRecord]:
        """First milestone on the organization's path that it may attempt now."""
        records = {r.milestone_type: r for r in await self.engine.list_progression_records(org)}
        score = await self.engine.organization_alignment_score(org)
        path = calculate_progression_path(
            score.capability,
            score.alignment,
            self.stances[org],
            self.banks[org].research_points,
            catalog=self.catalog,
        )
        for milestone in path.recommended_order:
            record = records[milestone]
            if record.status not in (MilestoneStatus.AVAILABLE, MilestoneStatus.FAILED):
                continue
            check = await self.engine.check_prerequisites(org, milestone)
            met = check.requirements_met
            if met["prerequisites"] and met["capability"] and met["alignment"]:
                return record
        return None

    async def face_challenge(self, record: ProgressionRecord) -> ProgressionRecord:
        org, milestone = record.organization_id, record.milestone_type
        challenge = await self.engine.present_alignment_challenge(org, milestone)
        choice = self.choose(record)
        return await self.engine.resolve_alignment_challenge(org, milestone, challenge.challenge_id, choice)

    def choose(self, record: ProgressionRecord) -> ChallengeChoice:
        """Stance policy; balanced organizations play safe once risk is High or worse."""
        stance = self.stances[record.organization_id]
        if stance is AlignmentStance.SAFETY_FIRST:
            return ChallengeChoice.SAFETY
        if stance is AlignmentStance.CAPABILITY_FIRST:
            return ChallengeChoice.CAPABILITY
        risk = self.engine.evaluate_alignment_risk(record)
        if risk.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            return ChallengeChoice.SAFETY
        return ChallengeChoice.CAPABILITY

    async def all_records(self) -> List[ProgressionRecord]:
        records = []
        for org in self.stances:
            records.extend(await self.engine.list_progression_records(org))
        return records

    async def run(self) -> pd.DataFrame:
        logger.info("Starting milestone campaign")
        await self.setup()
        logger.info(f"Organizations: {list(self.stances)}")
        for round_number in range(1, self.rounds + 1):
            await self.play_round(round_number)
        summary = summarize_records(await self.all_records())
        print_progression_summary(summary, title="Campaign Results")
        return summary


def run_campaign(**kwargs) -> pd.DataFrame:
    """Synchronous wrapper around ``Campaign.run``."""
    return asyncio.run(Campaign(**kwargs).run())
