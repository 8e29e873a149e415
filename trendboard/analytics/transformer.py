"""Convert between cumulative (running total) and incremental series."""

from collections.abc import Sequence

from ..models.observation import NOT_YET_OBSERVED, Observation, Observed, observe, unwrap


def to_incremental(
    series: Sequence[float | None], bridge_gaps: bool = False
) -> list[float | None]:
    """Per-bucket values from a running total.

    result[0] = series[0]; result[i] = series[i] - series[i-1].
    A bucket not yet observed stays None. When the predecessor is None the
    bucket passes through unchanged so a gap does not show up as a
    spurious large delta. With bridge_gaps=True the difference is taken
    against the last observed bucket instead.

    Example:
        >>> to_incremental([10, 25, 25, 40])
        [10.0, 15.0, 0.0, 15.0]
        >>> to_incremental([10, None, 25])
        [10.0, None, 25.0]
        >>> to_incremental([10, None, 25], bridge_gaps=True)
        [10.0, None, 15.0]
    """
    result: list[Observation] = []
    previous: Observation = NOT_YET_OBSERVED
    last_observed: Observation = NOT_YET_OBSERVED

    for raw in series:
        current = observe(raw)
        reference = last_observed if bridge_gaps else previous
        if isinstance(current, Observed) and isinstance(reference, Observed):
            result.append(Observed(current.value - reference.value))
        else:
            result.append(current)
        previous = current
        if isinstance(current, Observed):
            last_observed = current

    return [unwrap(o) for o in result]


def to_cumulative(series: Sequence[float | None]) -> list[float | None]:
    """Running total of a per-bucket series.

    A None bucket adds nothing to the total and is still reported as None
    ("not yet known", not "zero").
    """
    running = 0.0
    result: list[float | None] = []
    for raw in series:
        current = observe(raw)
        if isinstance(current, Observed):
            running += current.value
            result.append(running)
        else:
            result.append(None)
    return result


def remaining_to_total(
    series: Sequence[float | None], total: float | None
) -> list[float | None]:
    """What is still to come after each bucket: total - running total.

    None wherever the bucket or the total is unknown.
    """
    end = observe(total)
    result: list[float | None] = []
    for raw in series:
        current = observe(raw)
        if isinstance(current, Observed) and isinstance(end, Observed):
            result.append(end.value - current.value)
        else:
            result.append(None)
    return result
