"""Domain models for the scheduling engine."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

LOCAL_ID_PREFIX = "local-"


class Granularity(Enum):
    """Calendar view mode."""

    MONTH = "month"
    WEEK = "week"
    DAY = "day"

    @classmethod
    def from_string(cls, value: str) -> "Granularity":
        normalized = value.lower().strip()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(
            f"Invalid granularity '{value}'. Must be 'month', 'week', or 'day'."
        )


class EventOrigin(Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class FetchWindow:
    """Half-open range ``[start, end)`` of local calendar dates."""

    start: date
    end: date

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(
                f"Fetch window end {self.end} must be after start {self.start}"
            )

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    @property
    def days(self) -> List[date]:
        count = (self.end - self.start).days
        return [self.start + timedelta(days=offset) for offset in range(count)]


@dataclass(frozen=True)
class ViewState:
    granularity: Granularity
    anchor_date: date
    secondary_nav_date: date
    selected_date: Optional[date] = None


@dataclass(frozen=True)
class CalendarEvent:
    """One of the viewer's own events."""

    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    color: str = ""
    origin: EventOrigin = EventOrigin.REMOTE

    @property
    def is_local(self) -> bool:
        return self.origin is EventOrigin.LOCAL

    @property
    def duration_minutes(self) -> int:
        return round((self.end - self.start).total_seconds() / 60)


@dataclass(frozen=True)
class AvailableSlot:
    """A slot where every selected member is free, as found by the search."""

    date: date
    start: datetime
    end: datetime
    wire_date: str = ""
    start_wire: str = ""
    end_wire: str = ""

    @property
    def key(self) -> str:
        return self.start_wire or self.start.isoformat()


@dataclass(frozen=True)
class MemberBusyBlock:
    member_email: str
    title: str
    start: datetime
    end: datetime
    date: date


@dataclass(frozen=True)
class SearchMeta:
    group_id: str
    start_date: str
    end_date: str
    start_time: str
    end_time: str
    duration_minutes: int
    total_slots_found: int = 0


@dataclass
class BookingDraft:
    target_slot: AvailableSlot
    attendee_emails: Tuple[str, ...] = ()
    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class GroupMember:
    email: str
    name: str = ""


@dataclass
class Group:
    id: str
    name: str
    description: str = ""
    member_count: int = 0
    role: str = "member"
    members: List[GroupMember] = field(default_factory=list)
