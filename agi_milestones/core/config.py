"""Runtime configuration for the milestone engine."""

from typing import Any, Callable, Dict, Mapping, Optional

import attrs


def default_complexity_weight(complexity: int) -> float:
    """Risk amplification by milestone complexity: 0.6x (complexity 3) to 2.0x (10)."""
    return complexity / 5


@attrs.define
class EngineConfig:
    """Tunable engine parameters.

    Attributes:
        probability_cap: Upper bound on any achievement probability.
        max_cas_attempts: Read-compute-swap cycles tried before a
            ``ConcurrencyConflict`` is surfaced to the caller.
        complexity_weight: Maps milestone complexity to the multiplier applied
            to the capability/alignment gap when scoring risk.
        random_seed: Seed for the engine's random source; None for entropy.
    """
    probability_cap: float = attrs.field(default=0.75)
    max_cas_attempts: int = attrs.field(default=5)
    complexity_weight: Callable[[int], float] = default_complexity_weight
    random_seed: Optional[int] = None

    @probability_cap.validator
    def _check_cap(self, attribute, value):
        if not 0 <= value <= 1:
            raise ValueError("probability_cap must be between 0 and 1")

    @max_cas_attempts.validator
    def _check_attempts(self, attribute, value):
        if value < 1:
            raise ValueError("max_cas_attempts must be at least 1")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        known = {field.name for field in attrs.fields(cls)}
        kwargs: Dict[str, Any] = {k: v for k, v in data.items() if k in known}
        return cls(**kwargs)
