"""
Configuration management using Pydantic models loaded from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from .adapters.json_repository import JsonBookingRepository
from .adapters.memory_repository import InMemoryBookingRepository
from .domain.catalog import ServiceCatalog
from .domain.models import OperatingWindow, Service

CONFIG_FILENAME = "bookingengine.yaml"


class OperatingWindowConfig(BaseModel):
    """Bookable hours and slot granularity."""
    open_hour: int = 9
    close_hour: int = 17
    step_minutes: int = 60
    exclude_days: List[int] = Field(default_factory=list)

    @field_validator("open_hour", "close_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @field_validator("step_minutes")
    @classmethod
    def validate_step(cls, value: int) -> int:
        """Ensure the slot step is positive."""
        if value <= 0:
            raise ValueError("step_minutes must be greater than zero")
        return value

    @field_validator("exclude_days")
    @classmethod
    def validate_exclude_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"exclude_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        return list(dict.fromkeys(value))


class ServiceConfig(BaseModel):
    """A bookable service."""
    id: str
    name: str = ""
    duration_minutes: int
    price: float | None = None

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    def to_domain(self) -> Service:
        return Service(id=self.id, name=self.name, duration_minutes=self.duration_minutes, price=self.price)


class StorageConfig(BaseModel):
    """Where the ledger mirrors its bookings."""
    backend: Literal["memory", "json"] = "memory"
    path: Path = Path("bookings.json")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    operating_window: OperatingWindowConfig = Field(default_factory=OperatingWindowConfig)
    services: List[ServiceConfig] = Field(default_factory=list)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceConfig]) -> List[ServiceConfig]:
        """Ensure service ids are unique."""
        seen: set[str] = set()
        for service in value:
            if service.id in seen:
                raise ValueError(f"Duplicate service id detected: {service.id}")
            seen.add(service.id)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

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
                f"Please create a {CONFIG_FILENAME} file. See {CONFIG_FILENAME}.example for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative storage paths are resolved next to the config file
        if not config.storage.path.is_absolute():
            config.storage.path = config_path.parent / config.storage.path

        return config

    def build_operating_window(self) -> OperatingWindow:
        window = self.operating_window
        return OperatingWindow(
            open_hour=window.open_hour,
            close_hour=window.close_hour,
            step_minutes=window.step_minutes,
            exclude_weekdays=list(window.exclude_days),
            timezone=self.timezone,
        )

    def build_catalog(self) -> ServiceCatalog:
        return ServiceCatalog(service.to_domain() for service in self.services)

    def build_repository(self) -> InMemoryBookingRepository:
        if self.storage.backend == "json":
            return JsonBookingRepository(self.storage.path)
        return InMemoryBookingRepository()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for the config in current directory
    config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILENAME

    return config_path
