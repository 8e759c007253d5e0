"""
Async client for the calendar/availability backend.

All reads and the booking submission go through this client. Transport
problems become ``NetworkFailure``; non-2xx answers and payloads that do not
match the expected shape become ``ServerError``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from group_scheduler.config import ApiConfig
from group_scheduler.errors import NetworkFailure, ServerError
from group_scheduler.models import Group, GroupMember
from group_scheduler.wire import (
    AvailabilitySearchResponse,
    BackendEvent,
    GroupPayload,
    MemberPayload,
)

logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)


def _error_message(response: httpx.Response) -> str:
    detail_message = response.text or f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return detail_message
    if isinstance(payload, dict):
        raw_detail = payload.get("detail")
        if isinstance(raw_detail, dict):
            detail_message = (
                raw_detail.get("message")
                or raw_detail.get("detail")
                or raw_detail.get("error")
                or str(raw_detail)
            )
        elif raw_detail:
            detail_message = str(raw_detail)
        if payload.get("error"):
            detail_message = str(payload["error"])
        if payload.get("message"):
            detail_message = str(payload["message"])
    return detail_message


class SchedulerApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` speaking the backend contracts."""

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ApiConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, params=params, data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"Backend error: {e.response.status_code} {message}")
            raise ServerError(message, status_code=e.response.status_code)
        except httpx.RequestError as e:
            logger.error(f"Backend connection error on {method} {path}: {e}")
            raise NetworkFailure(f"Backend unavailable: {e}") from e

        try:
            return response.json()
        except ValueError:
            logger.error(f"Backend returned non-JSON body for {method} {path}")
            raise ServerError(
                "Unexpected response payload", status_code=response.status_code
            )

    # Calendar operations

    async def get_events(self, start: str, end: str) -> List[BackendEvent]:
        payload = await self._request(
            "GET", "/api/calendar/events", params={"start": start, "end": end}
        )
        if not isinstance(payload, list):
            raise ServerError("Expected a list of events")
        try:
            return [BackendEvent.model_validate(item) for item in payload]
        except ValidationError as e:
            logger.error(f"Malformed events payload: {e}")
            raise ServerError("Malformed events payload")

    async def search_availability(
        self,
        group_id: str,
        selected_members: Sequence[str],
        start_date: str,
        end_date: str,
        start_time: str,
        end_time: str,
        duration_minutes: int,
    ) -> AvailabilitySearchResponse:
        form: Dict[str, Any] = {
            "group_id": str(group_id),
            "selected_members": list(selected_members),
            "start_date": start_date,
            "end_date": end_date,
            "start_time": start_time,
            "end_time": end_time,
            "duration": str(duration_minutes),
        }
        payload = await self._request("POST", "/api/meeting/search", data=form)
        try:
            return AvailabilitySearchResponse.model_validate(payload or {})
        except ValidationError as e:
            logger.error(f"Malformed availability payload: {e}")
            raise ServerError("Malformed availability payload")

    async def create_meeting(
        self,
        title: str,
        start_datetime: str,
        end_datetime: str,
        attendee_emails: Sequence[str],
        description: str = "",
    ) -> Dict[str, Any]:
        form: Dict[str, Any] = {
            "title": title,
            "description": description,
            "start_datetime": start_datetime,
            "end_datetime": end_datetime,
            "attendee_emails": list(attendee_emails),
        }
        payload = await self._request("POST", "/api/meeting/create", data=form)
        return payload if isinstance(payload, dict) else {"result": payload}

    # Group lookups

    async def list_groups(self) -> List[Group]:
        payload = await self._request("GET", "/groups/api/groups")
        if not isinstance(payload, list):
            raise ServerError("Expected a list of groups")
        try:
            return [GroupPayload.model_validate(item).to_group() for item in payload]
        except ValidationError as e:
            logger.error(f"Malformed groups payload: {e}")
            raise ServerError("Malformed groups payload")

    async def list_group_members(self, group_id: str) -> List[GroupMember]:
        payload = await self._request("GET", f"/groups/api/groups/{group_id}/members")
        if not isinstance(payload, list):
            raise ServerError("Expected a list of members")
        try:
            return [MemberPayload.model_validate(item).to_member() for item in payload]
        except ValidationError as e:
            logger.error(f"Malformed members payload: {e}")
            raise ServerError("Malformed members payload")
