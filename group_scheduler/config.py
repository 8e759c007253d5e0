"""Configuration handling for the group scheduler."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# Load environment variables from .env file if it exists
load_dotenv()


@dataclass
class ApiConfig:
    """Backend service connection settings."""

    base_url: str = "http://localhost:8000"
    timeout: float = 30.0

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"API timeout must be positive, got {self.timeout}")
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiConfig":
        return cls(
            base_url=data.get("base_url")
            or os.environ.get("SCHEDULER_API_URL", "http://localhost:8000"),
            timeout=float(
                data.get("timeout") or os.environ.get("SCHEDULER_API_TIMEOUT", "30")
            ),
        )


@dataclass
class DisplayConfig:
    """Display zone and calendar grid sizing."""

    timezone: str = "Asia/Tokyo"
    cell_height: float = 30.0
    min_extent: float = 20.0
    month_cell_event_limit: int = 3
    cascade_step: float = 4.0
    cascade_depth: int = 3

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except Exception as e:
            raise ValueError(
                f"Invalid timezone '{self.timezone}': {e}. "
                "Must be a valid IANA timezone (e.g., 'Asia/Tokyo')"
            )
        if self.cell_height <= 0:
            raise ValueError("cell_height must be positive")
        if self.min_extent <= 0:
            raise ValueError("min_extent must be positive")
        if self.month_cell_event_limit < 1:
            raise ValueError("month_cell_event_limit must be at least 1")
        if self.cascade_depth < 1:
            raise ValueError("cascade_depth must be at least 1")

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayConfig":
        return cls(
            timezone=data.get("timezone")
            or os.environ.get("SCHEDULER_TIMEZONE", "Asia/Tokyo"),
            cell_height=data.get("cell_height", 30.0),
            min_extent=data.get("min_extent", 20.0),
            month_cell_event_limit=data.get("month_cell_event_limit", 3),
            cascade_step=data.get("cascade_step", 4.0),
            cascade_depth=data.get("cascade_depth", 3),
        )


@dataclass
class BookingConfig:
    """Limits applied to the booking dialog fields."""

    title_max_length: int = 100
    description_max_length: int = 500

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingConfig":
        return cls(
            title_max_length=data.get("title_max_length", 100),
            description_max_length=data.get("description_max_length", 500),
        )


@dataclass
class GroupPollConfig:
    """How long to wait for a just-joined group to show up in the group list."""

    attempts: int = 5
    interval_seconds: float = 0.5

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupPollConfig":
        return cls(
            attempts=data.get("attempts", 5),
            interval_seconds=data.get("interval_seconds", 0.5),
        )


@dataclass
class SchedulerConfig:
    """Top-level scheduler configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    groups: GroupPollConfig = field(default_factory=GroupPollConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchedulerConfig":
        """Create configuration from dictionary."""
        return cls(
            api=ApiConfig.from_dict(data.get("api") or {}),
            display=DisplayConfig.from_dict(data.get("display") or {}),
            booking=BookingConfig.from_dict(data.get("booking") or {}),
            groups=GroupPollConfig.from_dict(data.get("groups") or {}),
        )


def load_config(config_path: Optional[str] = None) -> SchedulerConfig:
    """Load configuration from file or environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        Scheduler configuration

    Raises:
        ValueError: If configuration is invalid
    """
    default_locations = [
        Path("config/scheduler.yaml"),
        Path("config/scheduler.yml"),
        Path("scheduler.yaml"),
        Path("scheduler.yml"),
        Path("~/.config/group-scheduler/config.yaml"),
    ]

    config_data: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {config_path}")
    else:
        for path in default_locations:
            expanded_path = path.expanduser()
            if expanded_path.exists():
                with open(expanded_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {expanded_path}")
                break

    if not config_data:
        logger.info("No configuration file found, using environment variables")

    if not isinstance(config_data, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    try:
        return SchedulerConfig.from_dict(config_data)
    except (TypeError, KeyError) as e:
        raise ValueError(f"Invalid configuration: {e}")
