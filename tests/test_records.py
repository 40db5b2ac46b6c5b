import datetime
import json

import attrs
import pytest

from agi_milestones.core.calculations import (calculate_achievement_probability, calculate_impact_score,
                                              evaluate_alignment_risk)
from agi_milestones.core.challenges import ChallengeChoice, generate_alignment_challenge
from agi_milestones.core.errors import AlreadyAchieved
from agi_milestones.core.metrics import (AlignmentStance, CapabilityMetrics, ImpactConsequences, MilestoneStatus,
                                         MilestoneType)
from agi_milestones.core.records import AttemptLog, ProgressionRecord, new_progression_record

from scripted import FIXED_NOW

LATER = FIXED_NOW + datetime.timedelta(days=30)


def test_new_record_is_locked():
    record = new_progression_record("org-1", MilestoneType.ADVANCED_REASONING, FIXED_NOW)
    assert record.status is MilestoneStatus.LOCKED
    assert record.version == 0
    assert record.attempt_count == 0
    assert record.alignment.average() == 50
    assert record.alignment_stance is AlignmentStance.BALANCED
    assert record.created_at == record.updated_at == FIXED_NOW


def test_failed_then_achieved_clears_failed_at():
    record = new_progression_record("org-1", MilestoneType.ADVANCED_REASONING, FIXED_NOW)
    failed = record.with_status(MilestoneStatus.FAILED, FIXED_NOW)
    assert failed.failed_at == FIXED_NOW
    assert failed.achieved_at is None

    achieved = failed.with_status(MilestoneStatus.ACHIEVED, LATER)
    assert achieved.achieved_at == LATER
    assert achieved.failed_at is None
    assert achieved.updated_at == LATER


def test_achieved_is_terminal():
    record = new_progression_record("org-1", MilestoneType.INTERPRETABILITY, FIXED_NOW)
    achieved = record.with_status(MilestoneStatus.ACHIEVED, FIXED_NOW)
    for status in MilestoneStatus:
        with pytest.raises(AlreadyAchieved):
            achieved.with_status(status, LATER)


def test_negative_resources_rejected():
    with pytest.raises(ValueError):
        new_progression_record("org-1", MilestoneType.ADVANCED_REASONING, FIXED_NOW, research_points_invested=-1)


def test_lookups():
    challenge = generate_alignment_challenge(MilestoneType.META_LEARNING, now=FIXED_NOW)
    entry = AttemptLog("attempt-1", FIXED_NOW, 7000, 2_500_000, 0.2, 0.5, False)
    record = new_progression_record(
        "org-1", MilestoneType.META_LEARNING, FIXED_NOW, challenges=[challenge], attempt_log=[entry]
    )
    assert record.find_challenge(challenge.challenge_id) == challenge
    assert record.find_challenge("missing") is None
    assert record.find_attempt("attempt-1") == entry
    assert record.unresolved_challenges() == (challenge,)

    resolved = attrs.evolve(record, challenges=(challenge.resolve(ChallengeChoice.DEFER, LATER),))
    assert resolved.unresolved_challenges() == ()


def test_dict_round_trip():
    challenge = generate_alignment_challenge(MilestoneType.GENERAL_INTELLIGENCE, now=FIXED_NOW)
    record = ProgressionRecord(
        organization_id="org-2",
        milestone_type=MilestoneType.GENERAL_INTELLIGENCE,
        status=MilestoneStatus.ACHIEVED,
        version=7,
        attempt_count=3,
        achieved_at=LATER,
        capability=CapabilityMetrics(reasoning_score=70, self_improvement_rate=0.6),
        research_points_invested=60_000,
        compute_budget_spent=30_000_000,
        months_in_progress=5,
        alignment_stance=AlignmentStance.CAPABILITY_FIRST,
        challenges=(challenge.resolve(ChallengeChoice.CAPABILITY, LATER),),
        impact_consequences=ImpactConsequences(industry_disruption_level=64, public_perception_change=-12.5),
        attempt_log=(AttemptLog("a", LATER, 20_000, 10_000_000, 0.3, 0.1, True),),
        created_at=FIXED_NOW,
        updated_at=LATER,
    )
    assert ProgressionRecord.from_dict(record.to_dict()) == record


def test_calculations_survive_round_trip():
    record = new_progression_record(
        "org-3", MilestoneType.TRANSFER_LEARNING, FIXED_NOW,
        capability=CapabilityMetrics().shift_all(45), research_points_invested=4_200,
    )
    restored = ProgressionRecord.from_dict(json.loads(json.dumps(record.to_dict())))

    def views(r):
        return (
            calculate_achievement_probability(r.milestone_type, r.research_points_invested, r.capability, r.alignment),
            evaluate_alignment_risk(r.milestone_type, r.capability, r.alignment),
            calculate_impact_score(r.capability, r.alignment, r.impact_consequences),
        )

    assert views(restored) == views(record)
