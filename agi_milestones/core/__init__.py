"""Core engine for AGI milestone progression."""

from .metrics import (
    MilestoneType,
    MilestoneStatus,
    AlignmentStance,
    RiskLevel,
    AlignmentPosture,
    CapabilityMetrics,
    AlignmentMetrics,
    ImpactConsequences,
)
from .catalog import (
    ResearchRequirements,
    MilestoneCatalog,
    DEFAULT_CATALOG,
    parse_milestone_type,
)
from .calculations import (
    ProbabilityResult,
    RiskAssessment,
    ImpactScore,
    PrerequisiteResult,
    OrganizationAlignmentScore,
    calculate_achievement_probability,
    evaluate_alignment_risk,
    calculate_impact_score,
    calculate_impact_consequences,
    check_prerequisites,
    calculate_organization_alignment_score,
)
from .challenges import (
    AlignmentChallenge,
    ChallengeChoice,
    generate_alignment_challenge,
    apply_challenge_choice,
)
from .config import EngineConfig
from .errors import (
    MilestoneError,
    NotFound,
    AlreadyAchieved,
    PrerequisitesNotMet,
    InsufficientResources,
    InvalidChallengeChoice,
    ConcurrencyConflict,
)
from .records import ProgressionRecord, AttemptLog, new_progression_record
from .store import ProgressionStore, InMemoryProgressionStore
from .engine import MilestoneEngine, AchievementResult, resolve_attempt

__all__ = [
    # Metrics
    "MilestoneType",
    "MilestoneStatus",
    "AlignmentStance",
    "RiskLevel",
    "AlignmentPosture",
    "CapabilityMetrics",
    "AlignmentMetrics",
    "ImpactConsequences",
    # Catalog
    "ResearchRequirements",
    "MilestoneCatalog",
    "DEFAULT_CATALOG",
    "parse_milestone_type",
    # Calculations
    "ProbabilityResult",
    "RiskAssessment",
    "ImpactScore",
    "PrerequisiteResult",
    "OrganizationAlignmentScore",
    "calculate_achievement_probability",
    "evaluate_alignment_risk",
    "calculate_impact_score",
    "calculate_impact_consequences",
    "check_prerequisites",
    "calculate_organization_alignment_score",
    # Challenges
    "AlignmentChallenge",
    "ChallengeChoice",
    "generate_alignment_challenge",
    "apply_challenge_choice",
    # Engine
    "EngineConfig",
    "ProgressionRecord",
    "AttemptLog",
    "new_progression_record",
    "ProgressionStore",
    "InMemoryProgressionStore",
    "MilestoneEngine",
    "AchievementResult",
    "resolve_attempt",
    # Errors
    "MilestoneError",
    "NotFound",
    "AlreadyAchieved",
    "PrerequisitesNotMet",
    "InsufficientResources",
    "InvalidChallengeChoice",
    "ConcurrencyConflict",
]
