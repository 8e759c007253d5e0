"""Scheduler session: wires the stores, the renderer and the workflows.

A session owns one API client, one view state store and one aggregator.
Changing the view's granularity or anchor date refetches the user's own
events for the new window in the background.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Callable, Optional, Sequence, Set, Tuple

from group_scheduler.aggregator import EventAggregator
from group_scheduler.api_client import SchedulerApiClient
from group_scheduler.booking import BookingWorkflow
from group_scheduler.config import SchedulerConfig
from group_scheduler.groups import GroupDirectory
from group_scheduler.models import Granularity, ViewState
from group_scheduler.notifications import Notifier
from group_scheduler.renderer import (
    CalendarRenderer,
    ClickTarget,
    CreateEventClick,
    RenderedView,
    SelectDayClick,
    SlotClick,
    TimeGrid,
)
from group_scheduler.view_state import ViewStateStore

logger = logging.getLogger(__name__)

CreateEventHandler = Callable[[CreateEventClick], None]


class SchedulerSession:
    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        api: Optional[SchedulerApiClient] = None,
        today: Optional[date] = None,
        granularity: Granularity = Granularity.MONTH,
    ):
        self.config = config or SchedulerConfig()
        self.tz = self.config.display.zone
        self.notifier = Notifier()
        self.api = api or SchedulerApiClient(self.config.api)
        self.view = ViewStateStore(today or self.today(), granularity)
        self.aggregator = EventAggregator(self.api, self.notifier, self.tz)
        self.renderer = CalendarRenderer(self.config.display)
        self.booking = BookingWorkflow(
            self.api, self.aggregator, self.view, self.notifier, self.config.booking
        )
        self.groups = GroupDirectory(self.api, self.notifier, self.config.groups)
        self.on_create_event: Optional[CreateEventHandler] = None

        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = self.view.subscribe(self._on_view_change)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load the first window of own events and the group list."""
        logger.info(f"Starting scheduler session for window {self.view.fetch_window}")
        await asyncio.gather(
            self.aggregator.load_own_events(self.view.fetch_window),
            self.groups.load_groups(),
        )

    async def settle(self) -> None:
        """Wait for every background refetch started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.api.aclose()
        logger.info("Scheduler session closed")

    async def __aenter__(self) -> "SchedulerSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _on_view_change(self, old: ViewState, new: ViewState) -> None:
        if (
            old.granularity is new.granularity
            and old.anchor_date == new.anchor_date
        ):
            return
        self._spawn(self.aggregator.load_own_events(self.view.fetch_window))

    def _spawn(self, coro: Awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; skipping background refetch")
            coro.close()
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # =========================================================================
    # Rendering and interaction
    # =========================================================================

    def render(self) -> RenderedView:
        return self.renderer.render(
            self.view.state,
            self.aggregator,
            selected_slot=self.booking.selected_slot,
            today=self.today(),
            title=self.view.title(),
        )

    async def search(
        self,
        member_emails: Sequence[str],
        date_window: Tuple[str, str],
        time_window: Tuple[str, str],
        duration_minutes: int,
        group_id: Optional[str] = None,
    ) -> bool:
        """Search availability for the current (or given) group."""
        if group_id is None and self.groups.current_group is not None:
            group_id = self.groups.current_group.id
        self.booking.cancel()
        return await self.aggregator.load_members_and_search(
            group_id, member_emails, date_window, time_window, duration_minutes
        )

    def click(self, grid: TimeGrid, day: date, y: float) -> ClickTarget:
        """Resolve a click on the time grid and act on it."""
        target = self.renderer.resolve_click(grid, day, y)
        if isinstance(target, SlotClick):
            self.booking.select_slot(target.slot)
        elif isinstance(target, CreateEventClick):
            self.view.set_selected_date(target.date)
            if self.on_create_event is not None:
                self.on_create_event(target)
        elif isinstance(target, SelectDayClick):
            self.view.set_selected_date(target.date)
        return target
