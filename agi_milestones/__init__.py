"""AGI milestone progression: probability, risk and impact engines with an async orchestrator."""

from .core import (
    MilestoneType,
    MilestoneStatus,
    AlignmentStance,
    RiskLevel,
    CapabilityMetrics,
    AlignmentMetrics,
    ImpactConsequences,
    MilestoneCatalog,
    DEFAULT_CATALOG,
    EngineConfig,
    ProgressionRecord,
    InMemoryProgressionStore,
    MilestoneEngine,
    AchievementResult,
    ChallengeChoice,
)
from .campaign import Campaign, run_campaign

__all__ = [
    "MilestoneType",
    "MilestoneStatus",
    "AlignmentStance",
    "RiskLevel",
    "CapabilityMetrics",
    "AlignmentMetrics",
    "ImpactConsequences",
    "MilestoneCatalog",
    "DEFAULT_CATALOG",
    "EngineConfig",
    "ProgressionRecord",
    "InMemoryProgressionStore",
    "MilestoneEngine",
    "AchievementResult",
    "ChallengeChoice",
    # Campaign
    "Campaign",
    "run_campaign",
]
