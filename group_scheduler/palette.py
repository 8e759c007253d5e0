"""Display colours.

Both assignments are display-only and never persisted. Event colours are a
hash of the event id, so they survive reloads. Member colours are positional:
the same member may get a different colour when the selection changes.
"""

from typing import Sequence

EVENT_PALETTE = (
    "#3b82f6",  # blue
    "#22c55e",  # green
    "#a855f7",  # purple
    "#f97316",  # orange
    "#ef4444",  # red
    "#06b6d4",  # cyan
    "#eab308",  # yellow
    "#ec4899",  # pink
)

MEMBER_PALETTE = (
    "#a855f7",  # purple
    "#6366f1",  # indigo
    "#ec4899",  # pink
    "#f97316",  # orange
    "#14b8a6",  # teal
    "#eab308",  # yellow
)

LOCAL_EVENT_COLOR = "#3b82f6"


def event_color(event_id: str, palette: Sequence[str] = EVENT_PALETTE) -> str:
    """Colour for an own event: sum of the id's character codes mod palette size."""
    index = abs(sum(ord(ch) for ch in event_id)) % len(palette)
    return palette[index]


def member_color(index: int, palette: Sequence[str] = MEMBER_PALETTE) -> str:
    """Colour for the member at ``index`` in the current selection."""
    return palette[index % len(palette)]
