"""
Candidate slot generation for a single calendar day.

Pure domain logic: no storage, no clock, no I/O.
"""

from __future__ import annotations

from datetime import date
from typing import Iterator

from pendulum import DateTime

from .exceptions import ValidationError
from .models import OperatingWindow, TimeRange


class SlotSequence:
    """
    Lazy, finite and restartable sequence of slots.

    Nothing is computed until iteration, and every call to ``iter()`` starts
    again from the opening time.
    """

    def __init__(self, opens_at: DateTime, closes_at: DateTime, step_minutes: int):
        self.opens_at = opens_at
        self.closes_at = closes_at
        self.step_minutes = step_minutes

    def __iter__(self) -> Iterator[TimeRange]:
        current = self.opens_at
        while True:
            slot_end = current.add(minutes=self.step_minutes)
            if slot_end > self.closes_at:
                return
            yield TimeRange(start=current, end=slot_end)
            current = slot_end

    def __len__(self) -> int:
        if self.closes_at <= self.opens_at:
            return 0
        window_minutes = int((self.closes_at - self.opens_at).total_seconds() // 60)
        return window_minutes // self.step_minutes

    def __repr__(self) -> str:
        return f"SlotSequence({self.opens_at} -> {self.closes_at}, every {self.step_minutes} min)"


class SlotGenerator:
    """
    Produces fixed-width candidate slots inside the operating window.

    The slot width is the window's ``step_minutes``, not the service
    duration.
    """

    def __init__(self, window: OperatingWindow):
        self.window = window

    def generate(self, day: date) -> SlotSequence:
        """
        Build the slot sequence for ``day``.

        Raises:
            ValidationError: If ``day`` is an excluded weekday.
        """
        if not self.window.is_working_day(day):
            raise ValidationError(f"{day.isoformat()} is outside the operating window")

        opens_at, closes_at = self.window.bounds_for_day(day)
        return SlotSequence(opens_at, closes_at, self.window.step_minutes)
