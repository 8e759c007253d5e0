"""
Event aggregator: the single writer of the three fetched collections.

It owns the viewer's own events, the selected members' busy blocks and the
available slots from the last availability search. Each collection is
replaced wholesale on every successful fetch. Requests are tagged with a
monotonically increasing token so that a slow, superseded response can
never overwrite the result of a later request.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from group_scheduler.api_client import SchedulerApiClient
from group_scheduler.errors import (
    NetworkFailure,
    ServerError,
    StaleResponse,
    ValidationFailure,
)
from group_scheduler.models import (
    LOCAL_ID_PREFIX,
    AvailableSlot,
    CalendarEvent,
    EventOrigin,
    FetchWindow,
    MemberBusyBlock,
    SearchMeta,
)
from group_scheduler.notifications import Notifier
from group_scheduler.palette import LOCAL_EVENT_COLOR
from group_scheduler.timezones import display_date, window_to_wire

logger = logging.getLogger(__name__)

OWN_EVENTS = "own-events"
SEARCH = "availability-search"


class _TokenCounter:
    """Issues request tokens and remembers the latest one per collection."""

    def __init__(self):
        self._latest: Dict[str, int] = {}

    def issue(self, collection: str) -> int:
        token = self._latest.get(collection, 0) + 1
        self._latest[collection] = token
        return token

    def invalidate(self, collection: str) -> None:
        self.issue(collection)

    def check(self, collection: str, token: int) -> None:
        latest = self._latest.get(collection, 0)
        if token != latest:
            raise StaleResponse(collection, token, latest)

    def is_latest(self, collection: str, token: int) -> bool:
        return self._latest.get(collection, 0) == token


class EventAggregator:
    def __init__(self, api: SchedulerApiClient, notifier: Notifier, tz: ZoneInfo):
        self.api = api
        self.notifier = notifier
        self.tz = tz
        self._tokens = _TokenCounter()

        self._own_events: List[CalendarEvent] = []
        self.own_events_window: Optional[FetchWindow] = None
        self.own_events_error: Optional[str] = None
        self.is_loading_events = False

        # None means "never searched"; an empty list means "searched, none found".
        self._available_slots: Optional[List[AvailableSlot]] = None
        self._busy_blocks: Dict[str, List[MemberBusyBlock]] = {}
        self._selected_members: Tuple[str, ...] = ()
        self.search_meta: Optional[SearchMeta] = None
        self.search_error: Optional[str] = None
        self.is_searching = False

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def own_events(self) -> List[CalendarEvent]:
        return list(self._own_events)

    @property
    def available_slots(self) -> Optional[List[AvailableSlot]]:
        if self._available_slots is None:
            return None
        return list(self._available_slots)

    @property
    def busy_blocks(self) -> Dict[str, List[MemberBusyBlock]]:
        return {email: list(blocks) for email, blocks in self._busy_blocks.items()}

    @property
    def selected_members(self) -> Tuple[str, ...]:
        return self._selected_members

    @property
    def has_searched(self) -> bool:
        return self._available_slots is not None

    def member_index(self, email: str) -> Optional[int]:
        try:
            return self._selected_members.index(email)
        except ValueError:
            return None

    # Per-day projections, keyed on the display-zone date.

    def own_events_on(self, day: date) -> List[CalendarEvent]:
        events = [e for e in self._own_events if self._event_date(e) == day]
        return sorted(events, key=lambda e: (e.start, e.id))

    def _event_date(self, event: CalendarEvent) -> date:
        # all-day events carry a bare date, which is not shifted into the display zone
        if event.all_day and not event.is_local:
            return event.start.date()
        return display_date(event.start, self.tz)

    def available_slots_on(self, day: date) -> List[AvailableSlot]:
        if not self._available_slots:
            return []
        return sorted(
            (slot for slot in self._available_slots if slot.date == day),
            key=lambda slot: slot.start,
        )

    def busy_blocks_on(self, day: date) -> List[MemberBusyBlock]:
        """Busy blocks on ``day`` for selected members, in selection order."""
        blocks: List[MemberBusyBlock] = []
        for email in self._selected_members:
            member_blocks = [b for b in self._busy_blocks.get(email, []) if b.date == day]
            blocks.extend(sorted(member_blocks, key=lambda b: b.start))
        return blocks

    # =========================================================================
    # Own events
    # =========================================================================

    async def load_own_events(self, window: FetchWindow) -> bool:
        """Fetch the viewer's events for ``window`` and replace the collection.

        Returns True when this call's result was applied, False when it failed
        or was superseded by a later request.
        """
        token = self._tokens.issue(OWN_EVENTS)
        self.is_loading_events = True
        try:
            return await self._fetch_own_events(window, token)
        finally:
            if self._tokens.is_latest(OWN_EVENTS, token):
                self.is_loading_events = False

    async def _fetch_own_events(self, window: FetchWindow, token: int) -> bool:
        start, end = window_to_wire(window, self.tz)
        try:
            wire_events = await self.api.get_events(start, end)
            self._tokens.check(OWN_EVENTS, token)
        except StaleResponse as e:
            logger.debug(str(e))
            return False
        except (NetworkFailure, ServerError) as e:
            if not self._tokens.is_latest(OWN_EVENTS, token):
                logger.debug(f"Ignoring failure of superseded events fetch: {e}")
                return False
            logger.error(f"Failed to load calendar events for {start}..{end}: {e}")
            self._own_events = []
            self.own_events_window = window
            self.own_events_error = str(e)
            self.notifier.error(f"Could not load calendar events: {e}")
            return False

        events = [e for e in (w.to_event() for w in wire_events) if e is not None]
        surviving_local = [
            e
            for e in self._own_events
            if e.is_local and not window.contains(self._event_date(e))
        ]
        self._own_events = events + surviving_local
        self.own_events_window = window
        self.own_events_error = None
        logger.info(f"Loaded {len(events)} calendar events for {start}..{end}")
        return True

    def add_local_event(
        self,
        title: str,
        day: date,
        time_of_day: str,
        duration_minutes: int = 60,
    ) -> CalendarEvent:
        """Optimistically show an event before the server knows about it."""
        hours, minutes = (int(part) for part in time_of_day.split(":")[:2])
        start = datetime.combine(day, time(hour=hours, minute=minutes), tzinfo=self.tz)
        event = CalendarEvent(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}",
            title=title,
            start=start,
            end=start + timedelta(minutes=duration_minutes),
            all_day=False,
            color=LOCAL_EVENT_COLOR,
            origin=EventOrigin.LOCAL,
        )
        self._own_events.append(event)
        return event

    # =========================================================================
    # Availability search
    # =========================================================================

    async def load_members_and_search(
        self,
        group_id: Optional[str],
        member_emails: Sequence[str],
        date_window: Tuple[str, str],
        time_window: Tuple[str, str],
        duration_minutes: int,
    ) -> bool:
        """Run the availability search and store its result wholesale."""
        members = tuple(dict.fromkeys(email.strip() for email in member_emails if email.strip()))
        start_date, end_date = date_window
        if not group_id:
            raise ValidationFailure("No group selected")
        if not members:
            raise ValidationFailure("Select at least one member")
        if duration_minutes <= 0:
            raise ValidationFailure("Meeting duration must be positive")
        if start_date > end_date:
            raise ValidationFailure("Search start date must not be after end date")

        token = self._tokens.issue(SEARCH)
        self.is_searching = True
        try:
            return await self._run_search(
                token, group_id, members, date_window, time_window, duration_minutes
            )
        finally:
            if self._tokens.is_latest(SEARCH, token):
                self.is_searching = False

    async def _run_search(
        self,
        token: int,
        group_id: str,
        members: Tuple[str, ...],
        date_window: Tuple[str, str],
        time_window: Tuple[str, str],
        duration_minutes: int,
    ) -> bool:
        start_date, end_date = date_window
        start_time, end_time = time_window
        try:
            result = await self.api.search_availability(
                group_id=group_id,
                selected_members=members,
                start_date=start_date,
                end_date=end_date,
                start_time=start_time,
                end_time=end_time,
                duration_minutes=duration_minutes,
            )
            self._tokens.check(SEARCH, token)
        except StaleResponse as e:
            logger.debug(str(e))
            return False
        except (NetworkFailure, ServerError) as e:
            if not self._tokens.is_latest(SEARCH, token):
                logger.debug(f"Ignoring failure of superseded search: {e}")
                return False
            logger.error(f"Availability search failed: {e}")
            self._available_slots = []
            self._busy_blocks = {}
            self.search_error = str(e)
            self.notifier.error(f"Availability search failed: {e}")
            return False

        slots = [s for s in (w.to_slot(self.tz) for w in result.available_slots) if s]
        busy: Dict[str, List[MemberBusyBlock]] = {}
        for email, schedule in result.member_schedules.items():
            busy[email] = [
                b for b in (item.to_block(email, self.tz) for item in schedule) if b
            ]

        self._available_slots = slots
        self._busy_blocks = busy
        self._selected_members = members
        self.search_meta = SearchMeta(
            group_id=str(group_id),
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=duration_minutes,
            total_slots_found=result.total_slots_found,
        )
        self.search_error = None

        if slots:
            logger.info(f"Availability search found {len(slots)} slots")
        else:
            logger.info("Availability search found no slots")
            self.notifier.info("No available time found for the selected conditions")
        return True

    def clear_search(self) -> None:
        """Forget the search result and member selection. Idempotent."""
        if self.is_searching:
            self._tokens.invalidate(SEARCH)
        self._available_slots = None
        self._busy_blocks = {}
        self._selected_members = ()
        self.search_meta = None
        self.search_error = None
        self.is_searching = False
