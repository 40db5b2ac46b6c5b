"""Utility functions for progression display and logging."""
import json
import logging
from typing import Iterable, Optional

import pandas as pd

from .calculations import calculate_impact_score, evaluate_alignment_risk
from .records import ProgressionRecord


logger = logging.getLogger(__name__)


class JSONLFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps(record.msg, default=str)


def setup_logging(verbose: bool = False, log_file: Optional[str] = "milestone_transcript.jsonl"):
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    transcript_logger = logging.getLogger('transcript')
    transcript_logger.setLevel(logging.INFO)
    for handler in list(transcript_logger.handlers):
        transcript_logger.removeHandler(handler)
        handler.close()

    if log_file:
        exp_handler = logging.FileHandler(log_file)
        exp_handler.setFormatter(JSONLFormatter())
        transcript_logger.addHandler(exp_handler)
    transcript_logger.propagate = False
    return transcript_logger


def get_transcript_logger():
    """Get the transcript logger (call after setup_logging)"""
    return logging.getLogger('transcript')


SUMMARY_COLUMNS = [
    "organization_id", "milestone_type", "status", "attempt_count", "research_points_invested",
    "compute_budget_spent", "months_in_progress", "avg_capability", "avg_alignment", "risk_level",
    "risk_score", "impact_score", "challenges_presented",
]


def summarize_records(records: Iterable[ProgressionRecord]) -> pd.DataFrame:
    """One row per progression record with derived risk and impact columns."""
    rows = []
    for record in records:
        risk = evaluate_alignment_risk(record.milestone_type, record.capability, record.alignment)
        impact = calculate_impact_score(record.capability, record.alignment, record.impact_consequences)
        rows.append({
            "organization_id": record.organization_id,
            "milestone_type": record.milestone_type.value,
            "status": record.status.value,
            "attempt_count": record.attempt_count,
            "research_points_invested": record.research_points_invested,
            "compute_budget_spent": record.compute_budget_spent,
            "months_in_progress": record.months_in_progress,
            "avg_capability": round(record.capability.average(), 2),
            "avg_alignment": round(record.alignment.average(), 2),
            "risk_level": risk.risk_level.value,
            "risk_score": round(risk.risk_score, 2),
            "impact_score": round(impact.total_impact, 2),
            "challenges_presented": len(record.challenges),
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def print_progression_summary(
    summary: pd.DataFrame,
    title: str = "Milestone Progression",
    log_level: int = logging.INFO,
):
    """Log achieved milestones per organization.

    Args:
        summary: Frame produced by ``summarize_records``
        title: Optional title for the section
        log_level: Logging level to use (default: INFO)
    """
    message = f"\n{'-'*60}\n{title}\n{'-'*60}\n"
    if summary.empty:
        logger.log(log_level, message + "  (no records)\n")
        return

    for org, group in summary.groupby("organization_id", sort=True):
        achieved = group[group["status"] == "Achieved"]
        message += f"\n{org}:\n"
        message += f"  Achieved: {len(achieved)}/{len(group)}\n"
        message += f"  Attempts: {int(group['attempt_count'].sum())}\n"
        message += f"  Research Points: {group['research_points_invested'].sum():,.0f}\n"
        for _, row in achieved.iterrows():
            message += f"    - {row['milestone_type']} (risk {row['risk_level']}, impact {row['impact_score']:.1f})\n"

    logger.log(log_level, message)
