"""View state: granularity, anchor date, mini-navigator date and selection.

The store holds navigation state only and performs no I/O. Anything that
needs to react to a change (the aggregator refetching its window, for
example) registers a listener.
"""

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, List, Optional

from group_scheduler.models import FetchWindow, Granularity, ViewState

logger = logging.getLogger(__name__)

ViewListener = Callable[[ViewState, ViewState], None]


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def first_of_next_month(day: date) -> date:
    return (day.replace(day=28) + timedelta(days=4)).replace(day=1)


def first_of_previous_month(day: date) -> date:
    return (day.replace(day=1) - timedelta(days=1)).replace(day=1)


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def compute_fetch_window(granularity: Granularity, anchor: date) -> FetchWindow:
    """The ``[start, end)`` window of local dates to fetch for a view.

    Month views fetch calendar-month bounds only; the overflow days that a
    month grid may show are not fetched.
    """
    if granularity is Granularity.MONTH:
        return FetchWindow(first_of_month(anchor), first_of_next_month(anchor))
    if granularity is Granularity.WEEK:
        start = week_start(anchor)
        return FetchWindow(start, start + timedelta(days=7))
    return FetchWindow(anchor, anchor + timedelta(days=1))


def _shift_month(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    target = date(year, month + 1, 1)
    last_day = (first_of_next_month(target) - timedelta(days=1)).day
    return target.replace(day=min(day.day, last_day))


class ViewStateStore:
    """Single owner of navigation state for a session."""

    def __init__(
        self,
        today: date,
        granularity: Granularity = Granularity.MONTH,
    ):
        self._state = ViewState(
            granularity=granularity,
            anchor_date=today,
            secondary_nav_date=today,
            selected_date=today,
        )
        self._listeners: List[ViewListener] = []

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def fetch_window(self) -> FetchWindow:
        return compute_fetch_window(self._state.granularity, self._state.anchor_date)

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        old = self._state
        new = replace(old, **changes)
        if new == old:
            return
        self._state = new
        for listener in list(self._listeners):
            listener(old, new)

    # Mutators

    def set_granularity(self, granularity: Granularity) -> None:
        logger.debug(f"View granularity -> {granularity.value}")
        self._update(granularity=granularity)

    def set_anchor_date(self, day: date) -> None:
        self._update(anchor_date=day)

    def set_selected_date(self, day: Optional[date]) -> None:
        self._update(selected_date=day)

    def set_secondary_nav_date(self, day: date) -> None:
        self._update(secondary_nav_date=day)

    def select_date_on_mini_nav(self, day: Optional[date]) -> None:
        """Select a day from the mini navigator.

        The navigator only moves when the day lies in a different month than
        the one it currently shows.
        """
        if day is not None and not same_month(day, self._state.secondary_nav_date):
            self._update(secondary_nav_date=day, selected_date=day)
        else:
            self._update(selected_date=day)

    # Header navigation

    def go_next(self) -> None:
        self.set_anchor_date(self._step(1))

    def go_previous(self) -> None:
        self.set_anchor_date(self._step(-1))

    def go_today(self, today: date) -> None:
        self._update(anchor_date=today, selected_date=today, secondary_nav_date=today)

    def _step(self, direction: int) -> date:
        anchor = self._state.anchor_date
        granularity = self._state.granularity
        if granularity is Granularity.MONTH:
            return _shift_month(anchor, direction)
        if granularity is Granularity.WEEK:
            return anchor + timedelta(weeks=direction)
        return anchor + timedelta(days=direction)

    def title(self) -> str:
        anchor = self._state.anchor_date
        granularity = self._state.granularity
        if granularity is Granularity.WEEK:
            window = self.fetch_window
            last = window.end - timedelta(days=1)
            return f"{window.start.strftime('%b')} {window.start.day} - {last.strftime('%b')} {last.day}, {last.year}"
        if granularity is Granularity.DAY:
            return f"{anchor.strftime('%A, %B')} {anchor.day}, {anchor.year}"
        return anchor.strftime("%B %Y")
