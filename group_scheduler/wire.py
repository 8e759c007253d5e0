"""Backend payload models.

These mirror what the calendar/availability service sends. Conversion to
domain models happens here so the rest of the engine only sees aware
datetimes and display-zone dates.
"""

import logging
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from group_scheduler.models import (
    AvailableSlot,
    CalendarEvent,
    EventOrigin,
    Group,
    GroupMember,
    MemberBusyBlock,
)
from group_scheduler.palette import LOCAL_EVENT_COLOR, event_color
from group_scheduler.timezones import (
    compose_utc_instant,
    display_date,
    parse_instant,
)

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


def _instant_from(full: Optional[str], clock: Optional[str], day: Optional[str]):
    """Prefer the full instant; fall back to a bare UTC clock time on ``day``."""
    dt = parse_instant(full)
    if dt is None and clock and day:
        dt = parse_instant(compose_utc_instant(clock, day))
    return dt


class BackendEvent(WireModel):
    id: str
    title: str = ""
    start: str
    end: str
    all_day: Optional[bool] = Field(default=False, alias="allDay")
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")

    def to_event(self) -> Optional[CalendarEvent]:
        start = parse_instant(self.start)
        end = parse_instant(self.end)
        if start is None or end is None:
            logger.warning(f"Skipping event {self.id} with unparseable bounds")
            return None
        return CalendarEvent(
            id=self.id,
            title=self.title,
            start=start,
            end=end,
            all_day=bool(self.all_day),
            # any backend-supplied colour collapses to the fixed blue
            color=LOCAL_EVENT_COLOR if self.background_color else event_color(self.id),
            origin=EventOrigin.REMOTE,
        )


class WireAvailableSlot(WireModel):
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_datetime: Optional[str] = None
    end_datetime: Optional[str] = None

    def to_slot(self, tz: ZoneInfo) -> Optional[AvailableSlot]:
        start = _instant_from(self.start_datetime, self.start_time, self.date)
        end = _instant_from(self.end_datetime, self.end_time, self.date)
        if start is None or end is None:
            logger.warning(f"Skipping available slot with unparseable bounds on {self.date}")
            return None
        return AvailableSlot(
            date=display_date(start, tz),
            start=start,
            end=end,
            wire_date=self.date,
            start_wire=self.start_datetime or start.isoformat(),
            end_wire=self.end_datetime or end.isoformat(),
        )


class WireMemberEvent(WireModel):
    title: str = ""
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_datetime: Optional[str] = None
    end_datetime: Optional[str] = None

    def to_block(self, email: str, tz: ZoneInfo) -> Optional[MemberBusyBlock]:
        start = _instant_from(self.start_datetime, self.start_time, self.date)
        end = _instant_from(self.end_datetime, self.end_time, self.date)
        if start is None or end is None:
            logger.warning(f"Skipping busy block for {email} with unparseable bounds")
            return None
        return MemberBusyBlock(
            member_email=email,
            title=self.title,
            start=start,
            end=end,
            date=display_date(start, tz),
        )


class SearchPeriod(WireModel):
    start_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )
    start_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("start_time", "startTime")
    )
    end_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("end_time", "endTime")
    )


class AvailabilitySearchResponse(WireModel):
    available_slots: List[WireAvailableSlot] = Field(
        default_factory=list,
        validation_alias=AliasChoices("available_slots", "availableSlots"),
    )
    member_schedules: Dict[str, List[WireMemberEvent]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("member_schedules", "memberSchedules"),
    )
    search_period: Optional[SearchPeriod] = Field(
        default=None, validation_alias=AliasChoices("search_period", "searchPeriod")
    )
    total_slots_found: int = Field(
        default=0,
        validation_alias=AliasChoices("total_slots_found", "totalSlotsFound"),
    )

    @field_validator("available_slots", "member_schedules", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any, info):
        if value is None:
            return [] if info.field_name == "available_slots" else {}
        return value


class GroupPayload(WireModel):
    id: str
    name: str
    description: Optional[str] = ""
    member_count: int = Field(
        default=0, validation_alias=AliasChoices("memberCount", "member_count")
    )
    role: str = "member"

    def to_group(self) -> Group:
        return Group(
            id=self.id,
            name=self.name,
            description=self.description or "",
            member_count=self.member_count,
            role=self.role,
        )


class MemberPayload(WireModel):
    email: str
    name: Optional[str] = ""

    def to_member(self) -> GroupMember:
        return GroupMember(email=self.email, name=self.name or "")
