"""Pydantic model for a dated bucket of metric counters."""

from datetime import date
from typing import Any, Iterable, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..exceptions import MetricKeyMismatchError
from .observation import Observation, observe


class Period(BaseModel):
    """One labeled time bucket of raw metrics.

    `counts` values of None mean "not yet observed", which is distinct from
    0 ("observed and zero"). Instances are frozen; use `with_counts` to
    derive a new period.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str
    start_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )
    counts: dict[str, Optional[float]] = Field(default_factory=dict)

    def value(self, metric: str) -> float:
        """Numeric value of `metric`; missing keys and None read as 0."""
        raw = self.counts.get(metric)
        return 0.0 if raw is None else raw

    def observation(self, metric: str) -> Observation:
        """Tagged value of `metric`; a missing key is not yet observed."""
        return observe(self.counts.get(metric))

    def series(self, keys: Iterable[str]) -> list[float | None]:
        """Raw nullable values for `keys`, in order."""
        return [self.counts.get(key) for key in keys]

    def with_counts(self, extra: Mapping[str, float | None]) -> "Period":
        """New period with `extra` merged over the existing counts."""
        return self.model_copy(update={"counts": {**self.counts, **extra}})

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with counters flattened next to the label."""
        return {
            "label": self.label,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            **self.counts,
        }


def check_consistent_keys(periods: Iterable[Period]) -> None:
    """Ensure every period in a dataset uses the same metric keys.

    The first period defines the expected key set.

    Raises:
        MetricKeyMismatchError: On the first period that differs.
    """
    expected: set[str] | None = None
    for period in periods:
        keys = set(period.counts)
        if expected is None:
            expected = keys
            continue
        if keys != expected:
            raise MetricKeyMismatchError(
                period.label,
                missing=sorted(expected - keys),
                extra=sorted(keys - expected),
            )
