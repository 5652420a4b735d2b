"""
Health data provider interface.

The reconciliation engine only depends on this read-only, day-scoped query
surface. Every query may raise ProviderError.
"""

from datetime import date
from typing import Protocol

from daily_health_log.domain.daily_log import SleepInterval


class HealthDataProvider(Protocol):
    """Read-only source of day-bounded health aggregates."""

    async def steps_total(self, day: date) -> int:
        """Total step count for the day."""
        ...

    async def hydration_liters(self, day: date) -> float:
        """Total water intake for the day, in liters."""
        ...

    async def latest_weight_kg(self, up_to: date | None = None) -> float | None:
        """
        Most recent weight sample.

        With up_to set, only samples ending no later than the start of the
        following day count. None means no sample.
        """
        ...

    async def main_sleep_interval(self, day: date) -> SleepInterval | None:
        """Span of the night's asleep samples, or None."""
        ...
