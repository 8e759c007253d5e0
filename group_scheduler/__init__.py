"""
Group scheduler - calendar views and group meeting booking.

Provides:
- Month, week and day calendar grids in a fixed display timezone
- Availability search across the members of a group
- Booking a meeting into a found slot
"""

from group_scheduler.config import SchedulerConfig, load_config
from group_scheduler.errors import (
    NetworkFailure,
    SchedulerError,
    ServerError,
    StaleResponse,
    ValidationFailure,
)
from group_scheduler.models import Granularity
from group_scheduler.session import SchedulerSession

__version__ = "0.1.0"

__all__ = [
    "Granularity",
    "NetworkFailure",
    "SchedulerConfig",
    "SchedulerError",
    "SchedulerSession",
    "ServerError",
    "StaleResponse",
    "ValidationFailure",
    "load_config",
]
