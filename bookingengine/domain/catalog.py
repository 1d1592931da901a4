"""Lookup of service durations by service id."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator

from pendulum import DateTime

from .exceptions import UnknownServiceError, ValidationError
from .models import Service, TimeRange


class ServiceCatalog:
    """Read-only mapping of service id to :class:`Service`."""

    def __init__(self, services: Iterable[Service] = ()):
        self._services: Dict[str, Service] = {}
        for service in services:
            if service.id in self._services:
                raise ValidationError(f"Duplicate service id: {service.id}")
            self._services[service.id] = service

    def get(self, service_id: str) -> Service:
        """
        Resolve a service.

        Raises:
            UnknownServiceError: If the id is not in the catalog.
        """
        try:
            return self._services[service_id]
        except KeyError:
            raise UnknownServiceError(f"Unknown service: '{service_id}'") from None

    def booking_interval(self, service_id: str, start: DateTime) -> TimeRange:
        """Return ``[start, start + duration)`` for the service."""
        service = self.get(service_id)
        return TimeRange(start=start, end=start.add(minutes=service.duration_minutes))

    def __iter__(self) -> Iterator[Service]:
        return iter(self._services.values())

    def __len__(self) -> int:
        return len(self._services)
