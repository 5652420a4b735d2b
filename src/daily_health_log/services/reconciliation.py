"""
Reconciliation service for filling daily records from health data.

Fills body metrics that are still unset from the health data provider,
never overwriting values the user entered. Provider failures are isolated
per field and per day.
"""

import logging
from datetime import date, timedelta

from pydantic import BaseModel, Field

from daily_health_log.domain.daily_log import BodyMetrics
from daily_health_log.infrastructure.providers.base import HealthDataProvider
from daily_health_log.infrastructure.storage.record_store import RecordStore
from daily_health_log.utils.exceptions import ProviderError
from daily_health_log.utils.timezone_utils import iter_days, today as local_today

logger = logging.getLogger(__name__)


class DayReconciliation(BaseModel):
    """Outcome of reconciling one day."""

    day: date
    filled_fields: list[str] = Field(default_factory=list)
    failed_fields: list[str] = Field(default_factory=list)
    error: str | None = None

    @property
    def is_partial_failure(self) -> bool:
        return bool(self.failed_fields) or self.error is not None


class RangeReconciliation(BaseModel):
    """Outcome of reconciling a range of days."""

    start: date
    end: date
    days: list[DayReconciliation] = Field(default_factory=list)

    @property
    def failed_days(self) -> list[DayReconciliation]:
        return [d for d in self.days if d.is_partial_failure]

    @property
    def filled_count(self) -> int:
        return sum(len(d.filled_fields) for d in self.days)


class ReconciliationService:
    """
    Service for merging provider data into daily records.

    Merge policy is fill-only-if-missing: a field is only queried and set
    while it still holds its unset marker.
    """

    def __init__(self, store: RecordStore, provider: HealthDataProvider, timezone: str = "UTC") -> None:
        """
        Initialize reconciliation service.

        Args:
            store: Record store.
            provider: Health data provider.
            timezone: Local timezone, used to resolve "today".
        """
        self.store = store
        self.provider = provider
        self.timezone = timezone

    async def _fill_sleep(self, day: date, metrics: BodyMetrics) -> bool:
        # A single user-entered bound blocks the merge for the whole pair
        if not metrics.sleep_unset():
            return False

        interval = await self.provider.main_sleep_interval(day)
        if interval is None:
            return False

        metrics.sleep_start = interval.start
        metrics.sleep_end = interval.end
        logger.debug(f"Sleep for {day}: {interval.duration_hours:.1f} h")
        return True

    async def _fill_steps(self, day: date, metrics: BodyMetrics) -> bool:
        if not metrics.steps_unset():
            return False

        # Assigned even when 0; such a day is retried on the next sync
        metrics.steps = await self.provider.steps_total(day)
        return metrics.steps > 0

    async def _fill_hydration(self, day: date, metrics: BodyMetrics) -> bool:
        if not metrics.hydration_unset():
            return False

        liters = await self.provider.hydration_liters(day)
        if liters > 0:
            metrics.hydration_liters = liters
            return True
        return False

    async def _fill_weight(self, day: date, metrics: BodyMetrics) -> bool:
        if not metrics.weight_unset():
            return False

        weight = await self.provider.latest_weight_kg(up_to=day)
        if weight is not None and weight > 0:
            metrics.weight_kg = weight
            return True
        return False

    async def reconcile_day(self, day: date) -> DayReconciliation:
        """
        Fill the unset metrics of a day from the provider and save it.

        Args:
            day: Day key.

        Returns:
            Which fields were filled and which provider queries failed.

        Raises:
            StorageError: If the record cannot be loaded or saved.
        """
        record = self.store.get_or_create(day)
        result = DayReconciliation(day=day)

        steps = [
            ("sleep", self._fill_sleep),
            ("steps", self._fill_steps),
            ("hydration", self._fill_hydration),
            ("weight", self._fill_weight),
        ]

        for field_name, fill in steps:
            try:
                if await fill(day, record.metrics):
                    result.filled_fields.append(field_name)
            except ProviderError as e:
                logger.warning(f"No {field_name} data for {day}: {e}")
                result.failed_fields.append(field_name)

        self.store.save(record)

        logger.info(
            f"Reconciled {day}: filled {result.filled_fields or 'nothing'}"
            + (f", failed {result.failed_fields}" if result.failed_fields else "")
        )
        return result

    async def reconcile_range(self, start: date, end: date) -> RangeReconciliation:
        """
        Reconcile every day from start to end, both inclusive.

        Days are processed one after another. A failing day is recorded and
        the loop moves on; days already processed stay saved if the loop is
        cancelled.

        Args:
            start: First day.
            end: Last day.

        Returns:
            Per-day outcomes.
        """
        outcome = RangeReconciliation(start=start, end=end)

        for day in iter_days(start, end):
            try:
                day_result = await self.reconcile_day(day)
            except Exception as e:
                logger.error(f"Reconciliation failed for {day}: {e}")
                day_result = DayReconciliation(day=day, error=str(e))
            outcome.days.append(day_result)

        logger.info(
            f"Reconciled {len(outcome.days)} days from {start} to {end}, "
            f"{len(outcome.failed_days)} with failures"
        )
        return outcome

    async def sync_recent(self, days_back: int, today: date | None = None) -> RangeReconciliation:
        """
        Reconcile the last days_back days up to and including today.

        Args:
            days_back: Number of days before today to include.
            today: Override for the current day.
        """
        end = today or local_today(self.timezone)
        start = end - timedelta(days=days_back)
        return await self.reconcile_range(start, end)

    async def fill_weight(self, day: date) -> bool:
        """
        Fill only the weight of a day, if still unset.

        Returns:
            True if a weight was filled.

        Raises:
            ProviderError: If the weight query fails.
            StorageError: If the record cannot be loaded or saved.
        """
        record = self.store.get_or_create(day)
        filled = await self._fill_weight(day, record.metrics)
        if filled:
            self.store.save(record)
            logger.info(f"Filled weight for {day}: {record.metrics.weight_kg:.2f} kg")
        return filled
