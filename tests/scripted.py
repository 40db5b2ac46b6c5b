import datetime
from typing import List, Optional

from agi_milestones.core.config import EngineConfig
from agi_milestones.core.engine import MilestoneEngine
from agi_milestones.core.store import InMemoryProgressionStore


FIXED_NOW = datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc)


class ScriptedRandom:
    """
    Scripted random source for engine tests.

    Returns the given rolls in order and fails loudly when the engine asks for
    more rolls than the test expected.
    """

    def __init__(self, rolls: List[float]):
        self._rolls = list(rolls)
        self._idx = 0

    @property
    def used(self) -> int:
        return self._idx

    def random(self) -> float:
        if self._idx >= len(self._rolls):
            raise IndexError(
                f"Ran out of scripted rolls. Requested index {self._idx}, "
                f"but only {len(self._rolls)} provided."
            )
        roll = self._rolls[self._idx]
        self._idx += 1
        return roll


def make_engine(rolls: Optional[List[float]] = None, **config) -> MilestoneEngine:
    return MilestoneEngine(
        store=InMemoryProgressionStore(),
        config=EngineConfig(**config),
        random_gen=ScriptedRandom(rolls or []),
        clock=lambda: FIXED_NOW,
    )
