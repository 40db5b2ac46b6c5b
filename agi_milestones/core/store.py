"""Persistence boundary for progression records."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import attrs

from .metrics import MilestoneType
from .records import ProgressionRecord

logger = logging.getLogger(__name__)

RecordKey = Tuple[str, MilestoneType]


class ProgressionStore(ABC):
    """Async record store with optimistic concurrency on ``ProgressionRecord.version``."""

    @abstractmethod
    async def get(self, organization_id: str, milestone_type: MilestoneType) -> Optional[ProgressionRecord]:
        """Return the current record, or None if the organization never started it."""

    @abstractmethod
    async def snapshot(self, organization_id: str) -> Dict[MilestoneType, ProgressionRecord]:
        """All records of one organization, read at a single point in time."""

    @abstractmethod
    async def insert(self, record: ProgressionRecord) -> ProgressionRecord:
        """Create a record. Raises ValueError if (organization, milestone) already exists."""

    @abstractmethod
    async def compare_and_swap(self, record: ProgressionRecord, expected_version: int) -> bool:
        """Replace the stored record if its version still equals ``expected_version``.

        On success the stored copy carries ``expected_version + 1``.
        """


class InMemoryProgressionStore(ProgressionStore):
    """Dictionary-backed store guarded by an asyncio lock."""

    def __init__(self):
        self._records: Dict[RecordKey, ProgressionRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, organization_id: str, milestone_type: MilestoneType) -> Optional[ProgressionRecord]:
        await asyncio.sleep(0)
        async with self._lock:
            return self._records.get((organization_id, milestone_type))

    async def snapshot(self, organization_id: str) -> Dict[MilestoneType, ProgressionRecord]:
        await asyncio.sleep(0)
        async with self._lock:
            return {
                milestone: record
                for (org, milestone), record in self._records.items()
                if org == organization_id
            }

    async def insert(self, record: ProgressionRecord) -> ProgressionRecord:
        await asyncio.sleep(0)
        async with self._lock:
            if record.key in self._records:
                raise ValueError(
                    f"Progression record already exists for {record.organization_id}/{record.milestone_type.value}"
                )
            self._records[record.key] = record
            return record

    async def compare_and_swap(self, record: ProgressionRecord, expected_version: int) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            current = self._records.get(record.key)
            if current is None or current.version != expected_version:
                logger.debug(
                    f"CAS rejected for {record.organization_id}/{record.milestone_type.value}: "
                    f"expected v{expected_version}, found v{current.version if current else None}"
                )
                return False
            self._records[record.key] = attrs.evolve(record, version=expected_version + 1)
            return True

    def organizations(self) -> List[str]:
        return sorted({org for org, _ in self._records})
