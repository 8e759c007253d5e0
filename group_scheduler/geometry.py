"""Time-grid geometry.

A day is drawn as exactly 48 cells of 30 minutes each (00:00-24:00). These
helpers map a time of day to a vertical offset on that grid and an interval
to an (offset, extent) pair. Callers are responsible for clipping intervals
to the day before asking for a position.
"""

from dataclasses import dataclass
from typing import List

CELL_MINUTES = 30
CELLS_PER_DAY = 48
MINUTES_PER_DAY = CELL_MINUTES * CELLS_PER_DAY


@dataclass(frozen=True)
class GridPosition:
    offset: float
    extent: float

    @property
    def bottom(self) -> float:
        return self.offset + self.extent

    def contains(self, y: float) -> bool:
        return self.offset <= y < self.bottom


def _check_minutes(total: int) -> int:
    if not 0 <= total <= MINUTES_PER_DAY:
        raise ValueError(
            f"Time of day out of range: {total} minutes (must be within 00:00-24:00)"
        )
    return total


def minutes_of_day(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight. ``24:00`` is accepted."""
    try:
        hours_str, minutes_str = value.split(":")[:2]
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time of day '{value}': expected HH:MM")
    if not 0 <= minutes < 60:
        raise ValueError(f"Invalid minutes in '{value}'")
    return _check_minutes(hours * 60 + minutes)


def format_minutes(total: int) -> str:
    _check_minutes(total)
    return f"{total // 60:02d}:{total % 60:02d}"


def offset_for(hour: int, minute: int, cell_height: float) -> float:
    """Vertical offset of a time of day, where one cell spans 30 minutes."""
    total = _check_minutes(hour * 60 + minute)
    return total / CELL_MINUTES * cell_height


def interval_position(
    start_minutes: int,
    end_minutes: int,
    cell_height: float,
    min_extent: float,
) -> GridPosition:
    """Offset and extent of ``[start, end)`` on the same day.

    The extent never drops below ``min_extent`` so that short (or degenerate)
    items stay visible.
    """
    _check_minutes(start_minutes)
    _check_minutes(end_minutes)
    duration = end_minutes - start_minutes
    offset = start_minutes / CELL_MINUTES * cell_height
    extent = max(duration / CELL_MINUTES * cell_height, min_extent)
    return GridPosition(offset=offset, extent=extent)


def minutes_at_offset(y: float, cell_height: float) -> int:
    """Start of the 30-minute cell containing vertical position ``y``."""
    if cell_height <= 0:
        raise ValueError("cell_height must be positive")
    cell = int(y // cell_height)
    cell = max(0, min(CELLS_PER_DAY - 1, cell))
    return cell * CELL_MINUTES


def row_labels() -> List[str]:
    """Labels for the 48 grid rows; only whole hours are labelled."""
    labels = []
    for index in range(CELLS_PER_DAY):
        minutes = index * CELL_MINUTES
        labels.append(format_minutes(minutes) if minutes % 60 == 0 else "")
    return labels
