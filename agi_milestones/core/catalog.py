"""Static milestone catalog: complexity, prerequisite graph and research costs.

The catalog is built once and shared process-wide. Numeric tuning lives in data
(``with_overrides`` / ``from_json``), never in runtime mutation.
"""

import json
import logging
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import attrs

from .metrics import SCORE, MilestoneType, _bounded

logger = logging.getLogger(__name__)

MT = MilestoneType


@attrs.frozen
class ResearchRequirements:
    """Costs and gates for attempting one milestone type."""
    research_points_cost: float = attrs.field(validator=_bounded(0, None))
    prerequisite_milestones: Tuple[MilestoneType, ...] = attrs.field(default=(), converter=tuple)
    minimum_capability_level: float = attrs.field(default=0.0, validator=SCORE)
    minimum_alignment_level: float = attrs.field(default=0.0, validator=SCORE)
    estimated_time_months: int = attrs.field(default=1)
    compute_budget_required: float = attrs.field(default=0.0, validator=_bounded(0, None))

    @estimated_time_months.validator
    def _check_months(self, attribute, value):
        if value < 1:
            raise ValueError("estimated_time_months must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        data = attrs.asdict(self)
        data["prerequisite_milestones"] = [m.value for m in self.prerequisite_milestones]
        return data


# Complexity drives the base achievement rate and the risk/impact weighting.
COMPLEXITY_RANGE = (1, 10)
MILESTONE_COMPLEXITY: Dict[MilestoneType, int] = {
    MT.ADVANCED_REASONING: 3,
    MT.STRATEGIC_PLANNING: 3,
    MT.TRANSFER_LEARNING: 4,
    MT.CREATIVE_PROBLEM_SOLVING: 4,
    MT.META_LEARNING: 4,
    MT.NATURAL_LANGUAGE_UNDERSTANDING: 5,
    MT.MULTI_AGENT_COORDINATION: 5,
    MT.INTERPRETABILITY: 5,
    MT.VALUE_ALIGNMENT: 6,
    MT.SELF_IMPROVEMENT: 7,
    MT.GENERAL_INTELLIGENCE: 8,
    MT.SUPERINTELLIGENCE: 10,
}

# Capability gained when a milestone is achieved (self_improvement_rate is 0-1).
CAPABILITY_GAINS: Dict[MilestoneType, Dict[str, float]] = {
    MT.ADVANCED_REASONING: {"reasoning_score": 25, "learning_efficiency": 10},
    MT.STRATEGIC_PLANNING: {"planning_capability": 30, "reasoning_score": 10},
    MT.TRANSFER_LEARNING: {"generalization_ability": 35, "learning_efficiency": 15},
    MT.CREATIVE_PROBLEM_SOLVING: {"creativity_score": 30, "reasoning_score": 15},
    MT.META_LEARNING: {"learning_efficiency": 30, "self_improvement_rate": 0.2},
    MT.NATURAL_LANGUAGE_UNDERSTANDING: {"generalization_ability": 20, "creativity_score": 15},
    MT.MULTI_AGENT_COORDINATION: {"planning_capability": 15, "generalization_ability": 10},
    MT.SELF_IMPROVEMENT: {"self_improvement_rate": 0.3, "learning_efficiency": 20},
    MT.GENERAL_INTELLIGENCE: {
        "reasoning_score": 20,
        "planning_capability": 20,
        "generalization_ability": 30,
        "creativity_score": 25,
        "learning_efficiency": 25,
    },
    MT.SUPERINTELLIGENCE: {
        "reasoning_score": 30,
        "planning_capability": 30,
        "self_improvement_rate": 0.5,
        "generalization_ability": 40,
        "creativity_score": 35,
        "learning_efficiency": 40,
    },
    MT.VALUE_ALIGNMENT: {"creativity_score": 5},
    MT.INTERPRETABILITY: {"learning_efficiency": 5},
}

# Alignment shift on achievement: capability breakthroughs erode safety,
# alignment breakthroughs build it.
ALIGNMENT_CHANGES: Dict[MilestoneType, Dict[str, float]] = {
    MT.ADVANCED_REASONING: {"safety_measures": -5, "interpretability": -5},
    MT.STRATEGIC_PLANNING: {"safety_measures": -8, "control_mechanisms": -5},
    MT.TRANSFER_LEARNING: {"safety_measures": -5, "value_alignment_score": -5},
    MT.CREATIVE_PROBLEM_SOLVING: {"interpretability": -10, "ethical_constraints": -5},
    MT.META_LEARNING: {"safety_measures": -10, "control_mechanisms": -8},
    MT.NATURAL_LANGUAGE_UNDERSTANDING: {"interpretability": -5},
    MT.MULTI_AGENT_COORDINATION: {"safety_measures": -5, "robustness": -5},
    MT.SELF_IMPROVEMENT: {"safety_measures": -15, "control_mechanisms": -10, "robustness": -10},
    MT.GENERAL_INTELLIGENCE: {
        "safety_measures": -20,
        "control_mechanisms": -15,
        "robustness": -15,
        "interpretability": -10,
    },
    MT.SUPERINTELLIGENCE: {
        "safety_measures": -30,
        "value_alignment_score": -25,
        "control_mechanisms": -25,
        "interpretability": -20,
        "robustness": -20,
        "ethical_constraints": -15,
    },
    MT.VALUE_ALIGNMENT: {"value_alignment_score": 35, "ethical_constraints": 30, "safety_measures": 20},
    MT.INTERPRETABILITY: {"interpretability": 40, "safety_measures": 15, "control_mechanisms": 10},
}

DEFAULT_REQUIREMENTS: Dict[MilestoneType, ResearchRequirements] = {
    MT.ADVANCED_REASONING: ResearchRequirements(3_000, (), 0, 0, 6, 500_000),
    MT.STRATEGIC_PLANNING: ResearchRequirements(4_000, (MT.ADVANCED_REASONING,), 0, 30, 8, 1_000_000),
    MT.TRANSFER_LEARNING: ResearchRequirements(5_000, (MT.ADVANCED_REASONING,), 0, 30, 9, 1_500_000),
    MT.CREATIVE_PROBLEM_SOLVING: ResearchRequirements(5_000, (MT.ADVANCED_REASONING,), 5, 30, 9, 1_500_000),
    MT.META_LEARNING: ResearchRequirements(7_000, (MT.TRANSFER_LEARNING,), 10, 35, 12, 2_500_000),
    MT.NATURAL_LANGUAGE_UNDERSTANDING: ResearchRequirements(8_000, (MT.TRANSFER_LEARNING,), 10, 35, 12, 3_000_000),
    MT.MULTI_AGENT_COORDINATION: ResearchRequirements(
        9_000, (MT.STRATEGIC_PLANNING, MT.NATURAL_LANGUAGE_UNDERSTANDING), 15, 40, 14, 4_000_000
    ),
    MT.SELF_IMPROVEMENT: ResearchRequirements(
        12_000, (MT.META_LEARNING, MT.CREATIVE_PROBLEM_SOLVING), 25, 45, 18, 6_000_000
    ),
    MT.GENERAL_INTELLIGENCE: ResearchRequirements(
        20_000, (MT.SELF_IMPROVEMENT, MT.NATURAL_LANGUAGE_UNDERSTANDING), 40, 50, 24, 10_000_000
    ),
    MT.SUPERINTELLIGENCE: ResearchRequirements(
        20_000, (MT.GENERAL_INTELLIGENCE, MT.VALUE_ALIGNMENT, MT.INTERPRETABILITY), 60, 60, 24, 10_000_000
    ),
    MT.VALUE_ALIGNMENT: ResearchRequirements(6_000, (), 0, 40, 10, 2_000_000),
    MT.INTERPRETABILITY: ResearchRequirements(6_000, (), 0, 40, 10, 2_000_000),
}


class MilestoneCatalog:
    """Read-only lookup from milestone type to requirements and complexity.

    Construction validates that the table is exhaustive and that the
    prerequisite graph is a DAG; an invalid table raises ``ValueError``.
    """

    def __init__(
            self,
            requirements: Optional[Mapping[MilestoneType, ResearchRequirements]] = None,
            complexity: Optional[Mapping[MilestoneType, int]] = None,
    ):
        self._requirements: Dict[MilestoneType, ResearchRequirements] = dict(requirements or DEFAULT_REQUIREMENTS)
        self._complexity: Dict[MilestoneType, int] = dict(complexity or MILESTONE_COMPLEXITY)
        self._order: Tuple[MilestoneType, ...] = self._validate()
        self._dependents: Dict[MilestoneType, Tuple[MilestoneType, ...]] = {
            milestone: tuple(m for m in self._order if milestone in self._requirements[m].prerequisite_milestones)
            for milestone in MilestoneType
        }

    def _validate(self) -> Tuple[MilestoneType, ...]:
        for milestone in MilestoneType:
            if milestone not in self._requirements:
                raise ValueError(f"No research requirements for {milestone.value}")
            if milestone not in self._complexity:
                raise ValueError(f"No complexity rating for {milestone.value}")
            complexity = self._complexity[milestone]
            low, high = COMPLEXITY_RANGE
            if isinstance(complexity, bool) or not isinstance(complexity, int) or not low <= complexity <= high:
                raise ValueError(
                    f"Complexity of {milestone.value} must be an integer {low}-{high}, got {complexity!r}"
                )
        for milestone, req in self._requirements.items():
            for prereq in req.prerequisite_milestones:
                if not isinstance(prereq, MilestoneType):
                    raise ValueError(f"Unknown prerequisite {prereq!r} for {milestone.value}")
                if prereq == milestone:
                    raise ValueError(f"{milestone.value} cannot require itself")

        graph = {m: set(self._requirements[m].prerequisite_milestones) for m in MilestoneType}
        try:
            ordered = list(TopologicalSorter(graph).static_order())
        except CycleError as e:
            raise ValueError(f"Prerequisite graph contains a cycle: {e.args[1]}") from e

        # Stable order: enum declaration order among nodes at the same depth.
        depth: Dict[MilestoneType, int] = {}
        for milestone in ordered:
            prereqs = graph[milestone]
            depth[milestone] = 1 + max((depth[p] for p in prereqs), default=-1)
        declared = list(MilestoneType)
        return tuple(sorted(ordered, key=lambda m: (depth[m], declared.index(m))))

    def requirements(self, milestone_type: MilestoneType) -> ResearchRequirements:
        return self._requirements[milestone_type]

    def complexity(self, milestone_type: MilestoneType) -> int:
        return self._complexity[milestone_type]

    def prerequisites(self, milestone_type: MilestoneType) -> Tuple[MilestoneType, ...]:
        return self._requirements[milestone_type].prerequisite_milestones

    def all_prerequisites(self, milestone_type: MilestoneType) -> Set[MilestoneType]:
        """Transitive closure of the prerequisite graph below ``milestone_type``."""
        seen: Set[MilestoneType] = set()
        stack: List[MilestoneType] = list(self.prerequisites(milestone_type))
        while stack:
            current = stack.pop()
            if current not in seen:
                seen.add(current)
                stack.extend(self.prerequisites(current))
        return seen

    def dependents(self, milestone_type: MilestoneType) -> Tuple[MilestoneType, ...]:
        """Milestones that list ``milestone_type`` as a direct prerequisite."""
        return self._dependents[milestone_type]

    def topological_order(self) -> Tuple[MilestoneType, ...]:
        return self._order

    def with_overrides(self, overrides: Mapping[Any, Mapping[str, Any]]) -> "MilestoneCatalog":
        """Return a new catalog with some requirement fields replaced.

        Args:
            overrides: Mapping of milestone type (enum, enum value or enum name)
                to a dict of ``ResearchRequirements`` fields. ``complexity`` may
                also be given to re-rate a milestone.
        """
        requirements = dict(self._requirements)
        complexity = dict(self._complexity)
        for key, fields in overrides.items():
            milestone = parse_milestone_type(key)
            fields = dict(fields)
            if "complexity" in fields:
                complexity[milestone] = fields.pop("complexity")
            if "prerequisite_milestones" in fields:
                fields["prerequisite_milestones"] = tuple(
                    parse_milestone_type(p) for p in fields["prerequisite_milestones"]
                )
            requirements[milestone] = attrs.evolve(requirements[milestone], **fields)
        logger.debug(f"Catalog overrides applied for {len(overrides)} milestone types")
        return MilestoneCatalog(requirements, complexity)

    @classmethod
    def from_json(cls, path: str | Path) -> "MilestoneCatalog":
        """Load a JSON file of overrides on top of the default catalog."""
        with open(path) as f:
            overrides = json.load(f)
        if not isinstance(overrides, dict):
            raise ValueError(f"Catalog file {path} must contain a JSON object")
        return DEFAULT_CATALOG.with_overrides(overrides)


def parse_milestone_type(key: Any) -> MilestoneType:
    """Accept an enum member, its display value or its name."""
    if isinstance(key, MilestoneType):
        return key
    try:
        return MilestoneType(key)
    except ValueError:
        pass
    try:
        return MilestoneType[str(key).upper()]
    except KeyError:
        raise ValueError(f"Unknown milestone type: {key!r}") from None


DEFAULT_CATALOG = MilestoneCatalog()
