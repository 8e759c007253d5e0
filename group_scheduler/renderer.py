"""
Calendar renderer.

Turns the current view state and the aggregator's collections into a
renderable grid. Month views get a Sunday-first matrix of day cells with
event chips and count badges; week and day views get a 48-row time grid
with positioned items. The renderer never writes to the aggregator or the
view state.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from group_scheduler.aggregator import EventAggregator
from group_scheduler.config import DisplayConfig
from group_scheduler.geometry import (
    CELLS_PER_DAY,
    MINUTES_PER_DAY,
    GridPosition,
    format_minutes,
    interval_position,
    minutes_at_offset,
    row_labels,
)
from group_scheduler.models import (
    AvailableSlot,
    CalendarEvent,
    Granularity,
    MemberBusyBlock,
    ViewState,
)
from group_scheduler.palette import member_color
from group_scheduler.timezones import to_local
from group_scheduler.view_state import compute_fetch_window, first_of_month

logger = logging.getLogger(__name__)

WEEKDAY_HEADERS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Stacking order on the time grid, lowest first.
Z_GRID = 0
Z_BUSY_BLOCK = 10
Z_OWN_EVENT = 20
Z_AVAILABLE_SLOT = 30


class ItemKind(Enum):
    OWN_EVENT = "own_event"
    BUSY_BLOCK = "busy_block"
    AVAILABLE_SLOT = "available_slot"


@dataclass(frozen=True)
class LegendEntry:
    email: str
    color: str


@dataclass(frozen=True)
class GridItem:
    kind: ItemKind
    key: str
    title: str
    label: str
    position: GridPosition
    z_index: int
    color: str = ""
    inset_left: float = 0.0
    inset_right: float = 0.0
    interactive: bool = False
    selected: bool = False
    member_email: Optional[str] = None
    slot: Optional[AvailableSlot] = None


@dataclass
class DayColumn:
    date: date
    weekday: str
    is_today: bool = False
    is_selected: bool = False
    items: List[GridItem] = field(default_factory=list)
    all_day: List[CalendarEvent] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.all_day

    def items_of(self, kind: ItemKind) -> List[GridItem]:
        return [item for item in self.items if item.kind is kind]


@dataclass
class TimeGrid:
    granularity: Granularity
    title: str
    cell_height: float
    rows: List[str]
    columns: List[DayColumn]
    legend: List[LegendEntry] = field(default_factory=list)

    @property
    def height(self) -> float:
        return self.cell_height * CELLS_PER_DAY

    def column_for(self, day: date) -> Optional[DayColumn]:
        for column in self.columns:
            if column.date == day:
                return column
        return None


@dataclass(frozen=True)
class EventChip:
    id: str
    title: str
    time: str
    color: str


@dataclass
class MonthCell:
    date: Optional[date] = None
    events: List[EventChip] = field(default_factory=list)
    more_count: int = 0
    available_count: int = 0
    busy_count: int = 0
    is_today: bool = False
    is_selected: bool = False

    @property
    def is_blank(self) -> bool:
        return self.date is None

    @property
    def day_number(self) -> Optional[int]:
        return self.date.day if self.date else None


@dataclass
class MonthGrid:
    title: str
    weekday_headers: List[str]
    cells: List[MonthCell]
    legend: List[LegendEntry] = field(default_factory=list)

    @property
    def weeks(self) -> int:
        return -(-len(self.cells) // 7)

    def cell_for(self, day: date) -> Optional[MonthCell]:
        for cell in self.cells:
            if cell.date == day:
                return cell
        return None


@dataclass(frozen=True)
class SlotClick:
    slot: AvailableSlot


@dataclass(frozen=True)
class CreateEventClick:
    date: date
    time_of_day: str


@dataclass(frozen=True)
class SelectDayClick:
    date: date


ClickTarget = Union[SlotClick, CreateEventClick, SelectDayClick]
RenderedView = Union[MonthGrid, TimeGrid]


class CalendarRenderer:
    def __init__(self, config: DisplayConfig):
        self.config = config
        self.tz: ZoneInfo = config.zone

    def render(
        self,
        state: ViewState,
        aggregator: EventAggregator,
        selected_slot: Optional[AvailableSlot] = None,
        today: Optional[date] = None,
        title: str = "",
    ) -> RenderedView:
        today = today or datetime.now(self.tz).date()
        legend = self.legend(aggregator)
        if state.granularity is Granularity.MONTH:
            return self._render_month(state, aggregator, today, legend, title)
        return self._render_time_grid(
            state, aggregator, selected_slot, today, legend, title
        )

    def legend(self, aggregator: EventAggregator) -> List[LegendEntry]:
        """Member colours for the current selection, recomputed on every render."""
        if not aggregator.has_searched:
            return []
        return [
            LegendEntry(email=email, color=member_color(index))
            for index, email in enumerate(aggregator.selected_members)
        ]

    # =========================================================================
    # Month view
    # =========================================================================

    def _render_month(
        self,
        state: ViewState,
        aggregator: EventAggregator,
        today: date,
        legend: List[LegendEntry],
        title: str,
    ) -> MonthGrid:
        window = compute_fetch_window(Granularity.MONTH, state.anchor_date)
        month_start = first_of_month(state.anchor_date)
        leading_blanks = (month_start.weekday() + 1) % 7
        limit = self.config.month_cell_event_limit

        cells = [MonthCell() for _ in range(leading_blanks)]
        for day in window.days:
            events = aggregator.own_events_on(day)
            # all-day events lead the cell and count against the same limit
            ordered = [e for e in events if e.all_day] + [e for e in events if not e.all_day]
            cells.append(
                MonthCell(
                    date=day,
                    events=[self._chip(e) for e in ordered[:limit]],
                    more_count=max(0, len(ordered) - limit),
                    available_count=len(aggregator.available_slots_on(day)),
                    busy_count=len(aggregator.busy_blocks_on(day)),
                    is_today=day == today,
                    is_selected=day == state.selected_date,
                )
            )

        return MonthGrid(
            title=title or state.anchor_date.strftime("%B %Y"),
            weekday_headers=list(WEEKDAY_HEADERS),
            cells=cells,
            legend=legend,
        )

    def _chip(self, event: CalendarEvent) -> EventChip:
        return EventChip(
            id=event.id,
            title=event.title,
            time="" if event.all_day else self._hhmm(event.start),
            color=event.color,
        )

    # =========================================================================
    # Week / day view
    # =========================================================================

    def _render_time_grid(
        self,
        state: ViewState,
        aggregator: EventAggregator,
        selected_slot: Optional[AvailableSlot],
        today: date,
        legend: List[LegendEntry],
        title: str,
    ) -> TimeGrid:
        window = compute_fetch_window(state.granularity, state.anchor_date)
        columns = [
            self._column(day, state, aggregator, selected_slot, today)
            for day in window.days
        ]
        return TimeGrid(
            granularity=state.granularity,
            title=title or state.anchor_date.isoformat(),
            cell_height=self.config.cell_height,
            rows=row_labels(),
            columns=columns,
            legend=legend,
        )

    def _column(
        self,
        day: date,
        state: ViewState,
        aggregator: EventAggregator,
        selected_slot: Optional[AvailableSlot],
        today: date,
    ) -> DayColumn:
        column = DayColumn(
            date=day,
            weekday=WEEKDAY_HEADERS[(day.weekday() + 1) % 7],
            is_today=day == today,
            is_selected=day == state.selected_date,
        )

        for block in aggregator.busy_blocks_on(day):
            column.items.append(self._busy_item(block, day, aggregator))

        for event in aggregator.own_events_on(day):
            if event.all_day:
                column.all_day.append(event)
                continue
            column.items.append(self._event_item(event, day))

        selected_key = selected_slot.key if selected_slot else None
        for slot in aggregator.available_slots_on(day):
            column.items.append(
                self._slot_item(slot, day, selected=slot.key == selected_key)
            )

        column.items.sort(key=lambda item: (item.z_index, item.position.offset))
        return column

    def _busy_item(
        self, block: MemberBusyBlock, day: date, aggregator: EventAggregator
    ) -> GridItem:
        index = aggregator.member_index(block.member_email) or 0
        cascade = index % self.config.cascade_depth
        step = self.config.cascade_step
        return GridItem(
            kind=ItemKind.BUSY_BLOCK,
            key=f"busy-{block.member_email}-{block.start.isoformat()}",
            title=block.title,
            label=f"{self._hhmm(block.start)}-{self._hhmm(block.end)}",
            position=self._position(block.start, block.end, day),
            z_index=Z_BUSY_BLOCK,
            color=member_color(index),
            inset_left=cascade * step,
            inset_right=(self.config.cascade_depth - 1 - cascade) * step,
            member_email=block.member_email,
        )

    def _event_item(self, event: CalendarEvent, day: date) -> GridItem:
        return GridItem(
            kind=ItemKind.OWN_EVENT,
            key=event.id,
            title=event.title,
            label=f"{self._hhmm(event.start)} ({event.duration_minutes}min)",
            position=self._position(event.start, event.end, day),
            z_index=Z_OWN_EVENT,
            color=event.color,
        )

    def _slot_item(self, slot: AvailableSlot, day: date, selected: bool) -> GridItem:
        return GridItem(
            kind=ItemKind.AVAILABLE_SLOT,
            key=f"slot-{slot.key}",
            title="Available",
            label=f"{self._hhmm(slot.start)}-{self._hhmm(slot.end)}",
            position=self._position(slot.start, slot.end, day),
            z_index=Z_AVAILABLE_SLOT,
            interactive=True,
            selected=selected,
            slot=slot,
        )

    def _position(self, start: datetime, end: datetime, day: date) -> GridPosition:
        """Grid position of ``[start, end)`` clipped to ``day`` in the display zone."""
        local_start = to_local(start, self.tz)
        local_end = to_local(end, self.tz)
        if local_start.date() < day:
            start_minutes = 0
        else:
            start_minutes = local_start.hour * 60 + local_start.minute
        if local_end.date() > day:
            end_minutes = MINUTES_PER_DAY
        else:
            end_minutes = local_end.hour * 60 + local_end.minute
        if end_minutes < start_minutes:
            end_minutes = start_minutes
        return interval_position(
            start_minutes,
            end_minutes,
            self.config.cell_height,
            self.config.min_extent,
        )

    def _hhmm(self, instant: datetime) -> str:
        return to_local(instant, self.tz).strftime("%H:%M")

    # =========================================================================
    # Hit testing
    # =========================================================================

    def resolve_click(self, grid: TimeGrid, day: date, y: float) -> ClickTarget:
        """Work out what a click at vertical position ``y`` in ``day`` means.

        Available slots sit on top and start the booking flow. A click on any
        other item just selects the day; a click on bare grid opens the
        create-event flow at the cell's start time.
        """
        column = grid.column_for(day)
        if column is None:
            raise ValueError(f"{day} is not shown in the current grid")
        for item in sorted(column.items, key=lambda i: -i.z_index):
            if item.position.contains(y):
                if item.kind is ItemKind.AVAILABLE_SLOT and item.slot is not None:
                    return SlotClick(slot=item.slot)
                return SelectDayClick(date=day)
        minutes = minutes_at_offset(y, grid.cell_height)
        return CreateEventClick(date=day, time_of_day=format_minutes(minutes))
