"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import Any, List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import StaffWorkingHours


class BusinessDayConfig(BaseModel):
    """One weekday of the business-wide default template."""
    weekday: int
    is_working: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("weekday")
    @classmethod
    def validate_weekday(cls, v: int) -> int:
        """Validate weekday is between 0 (Monday) and 6 (Sunday)."""
        if v not in range(7):
            raise ValueError(f"weekday must be between 0 and 6, got {v}")
        return v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def coerce_sexagesimal(cls, v: Any) -> Any:
        # YAML 1.1 reads an unquoted 10:00 as the base-60 integer 600.
        if isinstance(v, int) and not isinstance(v, bool):
            hours, minutes = divmod(v, 60)
            return time(hour=hours, minute=minutes)
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessDayConfig":
        """Ensure a working day opens before it closes."""
        if self.is_working:
            if self.start_time is None or self.end_time is None:
                raise ValueError(f"weekday {self.weekday} needs start_time and end_time")
            if self.end_time <= self.start_time:
                raise ValueError(f"weekday {self.weekday}: end_time must be later than start_time")
        return self

    def to_working_hours(self) -> StaffWorkingHours:
        return StaffWorkingHours(
            weekday=self.weekday,
            is_working=self.is_working,
            start_time=self.start_time,
            end_time=self.end_time,
        )


def _default_business_hours() -> List[BusinessDayConfig]:
    weekdays = [
        BusinessDayConfig(weekday=day, start_time=time(9, 0), end_time=time(18, 0))
        for day in range(5)
    ]
    return weekdays + [
        BusinessDayConfig(weekday=5, start_time=time(9, 0), end_time=time(17, 0)),
        BusinessDayConfig(weekday=6, is_working=False),
    ]


class SchedulingConfig(BaseModel):
    """Slot density, defaults and concurrency limits."""
    slot_step_minutes: int = 30
    default_duration_minutes: int = 60
    lock_timeout_seconds: float = 5.0
    max_occurrences: int = 104

    @field_validator("slot_step_minutes", "default_duration_minutes", "max_occurrences")
    @classmethod
    def validate_positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("lock_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("lock_timeout_seconds must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    business_hours: Optional[List[BusinessDayConfig]] = Field(
        default_factory=_default_business_hours
    )
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    data_file: Path = Path("bookings.json")
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("business_hours")
    @classmethod
    def validate_unique_weekdays(
        cls, value: Optional[List[BusinessDayConfig]]
    ) -> Optional[List[BusinessDayConfig]]:
        """Ensure each weekday appears at most once."""
        if value is None:
            return value
        seen: set[int] = set()
        for day in value:
            if day.weekday in seen:
                raise ValueError(f"Duplicate business_hours entry for weekday {day.weekday}")
            seen.add(day.weekday)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    def default_working_hours(self) -> List[StaffWorkingHours]:
        """Business default template as domain objects; empty when disabled."""
        if not self.business_hours:
            return []
        return [day.to_working_hours() for day in self.business_hours]

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load the configuration from an explicit path, or from the default path
    when it exists, falling back to built-in defaults.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()
