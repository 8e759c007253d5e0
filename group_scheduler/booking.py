"""
Booking workflow: from a clicked available slot to a confirmed meeting.

    IDLE -> SLOT_SELECTED -> DIALOG_OPEN -> SUBMITTING -> CONFIRMED
                                  ^              |
                                  +-- FAILED <---+

Selecting a slot opens the dialog in the same step. A failed submission
leaves the dialog open so the user can retry; cancelling keeps the search
results so another slot can be picked.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from group_scheduler.aggregator import EventAggregator
from group_scheduler.api_client import SchedulerApiClient
from group_scheduler.config import BookingConfig
from group_scheduler.errors import NetworkFailure, ServerError, ValidationFailure
from group_scheduler.models import AvailableSlot, BookingDraft
from group_scheduler.notifications import Notifier
from group_scheduler.view_state import ViewStateStore

logger = logging.getLogger(__name__)


class BookingState(Enum):
    IDLE = "idle"
    SLOT_SELECTED = "slot_selected"
    DIALOG_OPEN = "dialog_open"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TransitionListener = Callable[[BookingState, BookingState], None]


class BookingWorkflow:
    def __init__(
        self,
        api: SchedulerApiClient,
        aggregator: EventAggregator,
        view: ViewStateStore,
        notifier: Notifier,
        config: Optional[BookingConfig] = None,
    ):
        self.api = api
        self.aggregator = aggregator
        self.view = view
        self.notifier = notifier
        self.config = config or BookingConfig()

        self.state = BookingState.IDLE
        self.draft: Optional[BookingDraft] = None
        self.selected_slot: Optional[AvailableSlot] = None
        self.error: Optional[str] = None
        self.last_meeting: Optional[Dict[str, Any]] = None
        self._in_flight = False
        self._listeners: List[TransitionListener] = []

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_state: BookingState) -> None:
        old_state = self.state
        self.state = new_state
        logger.debug(f"Booking {old_state.value} -> {new_state.value}")
        for listener in list(self._listeners):
            listener(old_state, new_state)

    @property
    def is_dialog_open(self) -> bool:
        return self.state in (
            BookingState.DIALOG_OPEN,
            BookingState.SUBMITTING,
            BookingState.FAILED,
        )

    @property
    def is_submitting(self) -> bool:
        return self._in_flight

    # =========================================================================
    # Dialog
    # =========================================================================

    def select_slot(self, slot: AvailableSlot) -> None:
        """Select ``slot`` and open the booking dialog with an empty draft."""
        if self._in_flight:
            logger.warning("Ignoring slot selection while a booking is being submitted")
            return
        self.selected_slot = slot
        self.error = None
        self._transition(BookingState.SLOT_SELECTED)
        self.draft = BookingDraft(
            target_slot=slot,
            attendee_emails=self.aggregator.selected_members,
        )
        self._transition(BookingState.DIALOG_OPEN)

    def set_title(self, title: str) -> None:
        self._require_open_draft().title = title

    def set_description(self, description: str) -> None:
        self._require_open_draft().description = description

    def cancel(self) -> None:
        """Close the dialog without booking. Search results are kept."""
        if self._in_flight:
            logger.warning("Cannot cancel while a booking is being submitted")
            return
        self.draft = None
        self.selected_slot = None
        self.error = None
        if self.state is not BookingState.IDLE:
            self._transition(BookingState.IDLE)

    def _require_open_draft(self) -> BookingDraft:
        if self.draft is None or self.state is not BookingState.DIALOG_OPEN:
            raise ValidationFailure("No booking dialog is open")
        return self.draft

    def validate(self) -> BookingDraft:
        """Check the draft before anything is sent."""
        draft = self._require_open_draft()
        title = draft.title.strip()
        description = draft.description.strip()
        attendees = self.aggregator.selected_members

        if not title:
            raise ValidationFailure("Meeting title is required")
        if len(title) > self.config.title_max_length:
            raise ValidationFailure(
                f"Meeting title must be at most {self.config.title_max_length} characters"
            )
        if len(description) > self.config.description_max_length:
            raise ValidationFailure(
                f"Description must be at most {self.config.description_max_length} characters"
            )
        if not attendees:
            raise ValidationFailure("At least one attendee is required")

        draft.attendee_emails = attendees
        return draft

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit(self) -> bool:
        """Book the drafted meeting.

        Returns True when the meeting was confirmed. A call made while an
        earlier submission is still in flight does nothing and returns False.
        Raises ValidationFailure before any request when the draft is invalid.
        """
        if self._in_flight:
            logger.info("Booking already in flight; ignoring duplicate submit")
            return False

        draft = self.validate()

        self._in_flight = True
        self.error = None
        self._transition(BookingState.SUBMITTING)
        try:
            if not await self._send(draft):
                return False
            await self.aggregator.load_own_events(self.view.fetch_window)
        finally:
            self._in_flight = False
            if self.state is BookingState.SUBMITTING:
                logger.warning("Booking submission interrupted; reopening the dialog")
                self._transition(BookingState.DIALOG_OPEN)
        self.notifier.success("Meeting booked successfully")
        return True

    async def _send(self, draft: BookingDraft) -> bool:
        slot = draft.target_slot
        try:
            meeting = await self.api.create_meeting(
                title=draft.title.strip(),
                description=draft.description.strip(),
                start_datetime=slot.start_wire,
                end_datetime=slot.end_wire,
                attendee_emails=list(draft.attendee_emails),
            )
        except (NetworkFailure, ServerError) as e:
            logger.error(f"Meeting booking failed: {e}")
            self.error = str(e)
            self._transition(BookingState.FAILED)
            self.notifier.error(f"Booking failed: {e}")
            self._transition(BookingState.DIALOG_OPEN)
            return False

        logger.info(f"Meeting booked: {draft.title.strip()!r} at {slot.start_wire}")
        self.last_meeting = meeting
        self.aggregator.clear_search()
        self.draft = None
        self.selected_slot = None
        self._transition(BookingState.CONFIRMED)
        return True
