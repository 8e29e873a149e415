"""Tagged optional for period buckets that may not have been observed yet."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Observed:
    """A bucket that has been observed. Zero is a legitimate value."""

    value: float


@dataclass(frozen=True)
class NotYetObserved:
    """A bucket whose value is not known yet (a future hour, an open week)."""


NOT_YET_OBSERVED = NotYetObserved()

Observation = Union[Observed, NotYetObserved]


def observe(raw: float | None) -> Observation:
    """Lift a raw nullable value from a JSON payload."""
    if raw is None:
        return NOT_YET_OBSERVED
    return Observed(float(raw))


def unwrap(observation: Observation) -> float | None:
    """Lower back to the nullable form used on the wire."""
    if isinstance(observation, Observed):
        return observation.value
    return None


def value_or(observation: Observation, default: float = 0.0) -> float:
    """Observed value, or `default` for a bucket not yet observed."""
    if isinstance(observation, Observed):
        return observation.value
    return default
