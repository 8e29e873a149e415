"""Row-relative 0..1 intensities for heatmap colouring."""

from collections.abc import Mapping, Sequence

from .models import HeatmapRow


def normalize_row(values: Sequence[float | None], label: str = "") -> HeatmapRow:
    """Scale a row by its own maximum.

    row_max = max(observed values, 1), so an all-zero or all-None row
    renders at minimum intensity instead of dividing by zero. Each row
    keeps its own shape even when rows differ in scale (today vs a
    yearly average).
    """
    observed = [v for v in values if v is not None]
    row_max = max([*observed, 1.0])

    intensities = [
        0.0 if v is None else max(0.0, min(1.0, v / row_max)) for v in values
    ]
    return HeatmapRow(
        label=label,
        values=list(values),
        intensities=intensities,
        row_max=row_max,
    )


def normalize_rows(rows: Mapping[str, Sequence[float | None]]) -> list[HeatmapRow]:
    """Normalize each labeled row independently, preserving order."""
    return [normalize_row(values, label=label) for label, values in rows.items()]
