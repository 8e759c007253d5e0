"""Error taxonomy for the scheduling engine.

Nothing raised here is fatal to the process: display fetches recover by
emptying the affected collection, booking failures stay inline in the
dialog, and validation failures stop a request before it is sent.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base class for all scheduling engine errors."""


class NetworkFailure(SchedulerError):
    """Transport-level failure: no response was received (includes timeouts)."""


class ServerError(SchedulerError):
    """The backend answered with a non-2xx status or an unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"HTTP {self.status_code}: {self.message}"


class ValidationFailure(SchedulerError, ValueError):
    """Client-side validation failed; no request was made."""


class StaleResponse(SchedulerError):
    """A response arrived for a request that has since been superseded."""

    def __init__(self, collection: str, token: int, latest: int):
        super().__init__(
            f"Discarding stale {collection} response (token {token}, latest {latest})"
        )
        self.collection = collection
        self.token = token
        self.latest = latest
