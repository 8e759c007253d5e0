"""Pytest fixtures for group scheduler tests."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import httpx
import pytest
from fastapi import FastAPI, Form, HTTPException, Query

from group_scheduler.api_client import SchedulerApiClient
from group_scheduler.config import (
    ApiConfig,
    BookingConfig,
    DisplayConfig,
    GroupPollConfig,
    SchedulerConfig,
)
from group_scheduler.notifications import Notifier
from group_scheduler.wire import AvailabilitySearchResponse, BackendEvent

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TOKYO = ZoneInfo("Asia/Tokyo")
TODAY = date(2024, 5, 15)


def make_event(
    event_id: str,
    start: str,
    end: str,
    title: str = "Event",
    all_day: bool = False,
) -> BackendEvent:
    return BackendEvent.model_validate(
        {"id": event_id, "title": title, "start": start, "end": end, "allDay": all_day}
    )


def make_search_response(
    slots: Optional[List[Dict[str, Any]]] = None,
    schedules: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> AvailabilitySearchResponse:
    slots = slots or []
    return AvailabilitySearchResponse.model_validate(
        {
            "available_slots": slots,
            "member_schedules": schedules or {},
            "search_period": {
                "start_date": "2024-05-15",
                "end_date": "2024-05-17",
                "start_time": "09:00",
                "end_time": "18:00",
            },
            "total_slots_found": len(slots),
        }
    )


def slot_payload(day: str, start_utc: str, end_utc: str) -> Dict[str, Any]:
    """An available slot as the backend sends it, bounds given as UTC HH:MM."""
    return {
        "date": day,
        "start_time": start_utc,
        "end_time": end_utc,
        "start_datetime": f"{day}T{start_utc}:00Z",
        "end_datetime": f"{day}T{end_utc}:00Z",
    }


def busy_payload(day: str, start_utc: str, end_utc: str, title: str = "Busy"):
    return {
        "title": title,
        "date": day,
        "start_time": start_utc,
        "end_time": end_utc,
        "start_datetime": f"{day}T{start_utc}:00Z",
        "end_datetime": f"{day}T{end_utc}:00Z",
    }


@pytest.fixture
def tz():
    return TOKYO


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def display_config():
    return DisplayConfig(timezone="Asia/Tokyo")


@pytest.fixture
def scheduler_config(display_config):
    return SchedulerConfig(
        api=ApiConfig(base_url="http://testserver", timeout=5.0),
        display=display_config,
        booking=BookingConfig(),
        groups=GroupPollConfig(attempts=3, interval_seconds=0),
    )


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def mock_api():
    """API client double with every backend call stubbed out."""
    api = MagicMock(spec=SchedulerApiClient)
    api.get_events = AsyncMock(return_value=[])
    api.search_availability = AsyncMock(return_value=make_search_response())
    api.create_meeting = AsyncMock(return_value={"status": "created"})
    api.list_groups = AsyncMock(return_value=[])
    api.list_group_members = AsyncMock(return_value=[])
    api.aclose = AsyncMock()
    return api


# =============================================================================
# Stub backend
# =============================================================================


@pytest.fixture
def backend():
    """A FastAPI app standing in for the calendar/availability service.

    ``app.state.requests`` records every request the client made, and the
    ``app.state`` payload attributes can be overridden per test.
    """
    app = FastAPI()
    app.state.requests = []
    app.state.events = [
        {
            "id": "evt-1",
            "title": "Standup",
            "start": "2024-05-15T00:00:00Z",
            "end": "2024-05-15T00:30:00Z",
            "allDay": False,
        }
    ]
    app.state.search = {
        "availableSlots": [slot_payload("2024-05-15", "01:00", "01:30")],
        "memberSchedules": {
            "alice@example.com": [busy_payload("2024-05-15", "02:00", "03:00")]
        },
        "totalSlotsFound": 1,
    }
    app.state.create_status = 200
    app.state.groups = [
        {"id": 7, "name": "Design", "memberCount": 2, "role": "owner"},
    ]
    app.state.members = [
        {"email": "alice@example.com", "name": "Alice"},
        {"email": "bob@example.com", "name": "Bob"},
    ]

    @app.get("/api/calendar/events")
    async def events(start: str = Query(...), end: str = Query(...)):
        app.state.requests.append(("events", {"start": start, "end": end}))
        return app.state.events

    @app.post("/api/meeting/search")
    async def search(
        group_id: str = Form(...),
        selected_members: List[str] = Form(...),
        start_date: str = Form(...),
        end_date: str = Form(...),
        start_time: str = Form(...),
        end_time: str = Form(...),
        duration: int = Form(...),
    ):
        app.state.requests.append(
            (
                "search",
                {
                    "group_id": group_id,
                    "selected_members": selected_members,
                    "start_date": start_date,
                    "end_date": end_date,
                    "start_time": start_time,
                    "end_time": end_time,
                    "duration": duration,
                },
            )
        )
        return app.state.search

    @app.post("/api/meeting/create")
    async def create(
        title: str = Form(...),
        start_datetime: str = Form(...),
        end_datetime: str = Form(...),
        attendee_emails: List[str] = Form(...),
        description: str = Form(""),
    ):
        app.state.requests.append(
            (
                "create",
                {
                    "title": title,
                    "description": description,
                    "start_datetime": start_datetime,
                    "end_datetime": end_datetime,
                    "attendee_emails": attendee_emails,
                },
            )
        )
        if app.state.create_status != 200:
            raise HTTPException(
                status_code=app.state.create_status, detail="Calendar write failed"
            )
        return {"status": "created", "title": title}

    @app.get("/groups/api/groups")
    async def groups():
        app.state.requests.append(("groups", {}))
        return app.state.groups

    @app.get("/groups/api/groups/{group_id}/members")
    async def members(group_id: str):
        app.state.requests.append(("members", {"group_id": group_id}))
        return app.state.members

    return app


@pytest.fixture
def api_client(backend):
    """A real client whose transport is the stub backend."""
    return SchedulerApiClient(
        ApiConfig(base_url="http://testserver", timeout=5.0),
        transport=httpx.ASGITransport(app=backend),
    )
