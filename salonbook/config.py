"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .services.availability import AvailabilitySettings


class BackendConfig(BaseModel):
    """Connection settings for the hosted salon backend."""
    base_url: str = "http://localhost:8000/api"
    api_key: Optional[str] = None
    timeout_seconds: float = 10

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure requests cannot wait forever."""
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class BookingConfig(BaseModel):
    """Slot generation and workflow settings."""
    slot_minutes: int = 30
    lookahead_days: int = 14
    auto_advance_delay_seconds: float = 0.3
    default_duration_minutes: int = 30
    count_cancelled_bookings: bool = False
    slots_must_end_by_close: bool = False
    commit_timeout_seconds: float = 15

    @field_validator("slot_minutes", "lookahead_days", "default_duration_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("auto_advance_delay_seconds")
    @classmethod
    def validate_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("auto_advance_delay_seconds cannot be negative")
        return value

    @field_validator("commit_timeout_seconds")
    @classmethod
    def validate_commit_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("commit_timeout_seconds must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_slot_grid(self) -> "BookingConfig":
        """Ensure slots tile an hour-based day evenly."""
        if (24 * 60) % self.slot_minutes != 0:
            raise ValueError("slot_minutes must divide a day evenly")
        return self


class ProgressConfig(BaseModel):
    """Where in-flight booking progress is kept."""
    directory: Path = Field(default_factory=lambda: Path.home() / ".salonbook" / "progress")
    ttl_minutes: int = 120

    @field_validator("ttl_minutes")
    @classmethod
    def validate_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("ttl_minutes must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    salon_id: str
    timezone: str = "Europe/Berlin"
    backend: BackendConfig = Field(default_factory=BackendConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)

    @field_validator("salon_id")
    @classmethod
    def validate_salon_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("salon_id must not be empty")
        return value.strip()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def availability_settings(self) -> AvailabilitySettings:
        """Settings for the availability service."""
        return AvailabilitySettings(
            timezone=self.timezone,
            slot_minutes=self.booking.slot_minutes,
            lookahead_days=self.booking.lookahead_days,
            default_duration_minutes=self.booking.default_duration_minutes,
            count_cancelled_bookings=self.booking.count_cancelled_bookings,
            slots_must_end_by_close=self.booking.slots_must_end_by_close,
        )

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
