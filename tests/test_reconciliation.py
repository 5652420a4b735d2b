"""Unit tests for reconciliation service."""

import asyncio
from datetime import date, datetime
from pathlib import Path

import pytz

from daily_health_log.domain.daily_log import SleepInterval
from daily_health_log.infrastructure.storage.record_store import RecordStore
from daily_health_log.services.reconciliation import ReconciliationService
from daily_health_log.utils.exceptions import ProviderError
from daily_health_log.utils.parameters import StorageConfig

UTC = pytz.UTC


class FakeProvider:
    """Provider returning fixed values and recording the queries made."""

    def __init__(
        self,
        steps: int = 0,
        hydration: float = 0.0,
        weight: float | None = None,
        sleep: SleepInterval | None = None,
        failing_days: tuple[date, ...] = (),
        crashing_days: tuple[date, ...] = (),
    ) -> None:
        self.steps = steps
        self.hydration = hydration
        self.weight = weight
        self.sleep = sleep
        self.failing_days = failing_days
        self.crashing_days = crashing_days
        self.calls: list[tuple[str, date | None]] = []

    def _check(self, name: str, day: date | None) -> None:
        self.calls.append((name, day))
        if day in self.failing_days:
            raise ProviderError(f"{name} not authorized")
        if day in self.crashing_days:
            raise RuntimeError(f"{name} crashed")

    async def steps_total(self, day: date) -> int:
        self._check("steps", day)
        return self.steps

    async def hydration_liters(self, day: date) -> float:
        self._check("hydration", day)
        return self.hydration

    async def latest_weight_kg(self, up_to: date | None = None) -> float | None:
        self._check("weight", up_to)
        return self.weight

    async def main_sleep_interval(self, day: date) -> SleepInterval | None:
        self._check("sleep", day)
        return self.sleep


def make_store(tmp_path: Path) -> RecordStore:
    return RecordStore(StorageConfig(database_url=f"sqlite:///{tmp_path / 'log.sqlite'}"), "UTC")


def night(day: int) -> SleepInterval:
    return SleepInterval(
        start=datetime(2025, 1, day - 1, 23, 0, tzinfo=UTC),
        end=datetime(2025, 1, day, 7, 0, tzinfo=UTC),
    )


def test_reconcile_day_fills_unset_fields(tmp_path: Path) -> None:
    """Test that an empty day is filled from every provider query."""
    store = make_store(tmp_path)
    provider = FakeProvider(steps=6500, hydration=1.8, weight=79.2, sleep=night(5))
    service = ReconciliationService(store, provider)
    day = date(2025, 1, 5)

    result = asyncio.run(service.reconcile_day(day))

    if sorted(result.filled_fields) != ["hydration", "sleep", "steps", "weight"]:
        raise AssertionError(f"Unexpected filled fields: {result.filled_fields}")

    metrics = store.get_or_create(day).metrics

    if metrics.steps != 6500:
        raise AssertionError(f"Expected 6500 steps, got {metrics.steps}")

    if metrics.hydration_liters != 1.8:
        raise AssertionError(f"Expected 1.8 L, got {metrics.hydration_liters}")

    if metrics.weight_kg != 79.2:
        raise AssertionError(f"Expected 79.2 kg, got {metrics.weight_kg}")

    if metrics.sleep_start != night(5).start or metrics.sleep_end != night(5).end:
        raise AssertionError(f"Unexpected sleep: {metrics.sleep_start} - {metrics.sleep_end}")


def test_entered_weight_is_not_overwritten(tmp_path: Path) -> None:
    """Test fill-only-if-missing: a user weight survives a different provider weight."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)
    record = store.get_or_create(day)
    record.metrics.weight_kg = 70.0
    store.save(record)

    provider = FakeProvider(weight=75.0)
    asyncio.run(ReconciliationService(store, provider).reconcile_day(day))

    weight = store.get_or_create(day).metrics.weight_kg
    if weight != 70.0:
        raise AssertionError(f"Expected weight to stay 70.0, got {weight}")

    if ("weight", day) in provider.calls:
        raise AssertionError("Weight should not be queried when already set")


def test_zero_provider_hydration_leaves_field_unset(tmp_path: Path) -> None:
    """Test that a provider zero does not count as a filled hydration value."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)

    result = asyncio.run(ReconciliationService(store, FakeProvider(hydration=0.0)).reconcile_day(day))

    if "hydration" in result.filled_fields:
        raise AssertionError("Hydration should not be reported as filled")

    if result.is_partial_failure:
        raise AssertionError(f"Expected no failures, got {result}")

    hydration = store.get_or_create(day).metrics.hydration_liters
    if hydration != 0:
        raise AssertionError(f"Expected hydration to stay 0, got {hydration}")


def test_sleep_pair_not_split(tmp_path: Path) -> None:
    """Test that one entered sleep bound blocks the provider interval entirely."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)
    entered_start = datetime(2025, 1, 5, 8, 0, tzinfo=UTC)
    record = store.get_or_create(day)
    record.metrics.sleep_start = entered_start
    store.save(record)

    provider = FakeProvider(
        sleep=SleepInterval(
            start=datetime(2025, 1, 5, 8, 0, tzinfo=UTC),
            end=datetime(2025, 1, 5, 16, 0, tzinfo=UTC),
        )
    )
    asyncio.run(ReconciliationService(store, provider).reconcile_day(day))

    metrics = store.get_or_create(day).metrics

    if metrics.sleep_start != entered_start:
        raise AssertionError(f"Sleep start changed to {metrics.sleep_start}")

    if metrics.sleep_end is not None:
        raise AssertionError(f"Sleep end should stay unset, got {metrics.sleep_end}")


def test_zero_step_day_is_queried_again(tmp_path: Path) -> None:
    """Test the known limitation: a zero step count is retried on every sync."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)
    provider = FakeProvider(steps=0)
    service = ReconciliationService(store, provider)

    asyncio.run(service.reconcile_day(day))
    asyncio.run(service.reconcile_day(day))

    steps_calls = [c for c in provider.calls if c[0] == "steps"]
    if len(steps_calls) != 2:
        raise AssertionError(f"Expected steps queried twice, got {len(steps_calls)}")


def test_provider_failure_isolated_per_field(tmp_path: Path) -> None:
    """Test that failing queries are recorded without losing the day."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)
    provider = FakeProvider(steps=4000, failing_days=(day,))

    result = asyncio.run(ReconciliationService(store, provider).reconcile_day(day))

    if sorted(result.failed_fields) != ["hydration", "sleep", "steps", "weight"]:
        raise AssertionError(f"Unexpected failed fields: {result.failed_fields}")

    if not result.is_partial_failure:
        raise AssertionError("Expected a partial failure")

    if store.fetch(day) is None:
        raise AssertionError("Expected the day to be created despite provider failures")


def test_range_continues_after_failing_day(tmp_path: Path) -> None:
    """Test that a failing day does not stop the rest of the range."""
    store = make_store(tmp_path)
    bad_day = date(2025, 1, 3)
    provider = FakeProvider(steps=5000, weight=80.0, failing_days=(bad_day,))

    outcome = asyncio.run(
        ReconciliationService(store, provider).reconcile_range(date(2025, 1, 1), date(2025, 1, 5))
    )

    if len(outcome.days) != 5:
        raise AssertionError(f"Expected 5 days processed, got {len(outcome.days)}")

    if [d.day for d in outcome.failed_days] != [bad_day]:
        raise AssertionError(f"Unexpected failed days: {[d.day for d in outcome.failed_days]}")

    for day in (date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 4), date(2025, 1, 5)):
        metrics = store.get_or_create(day).metrics
        if metrics.steps != 5000 or metrics.weight_kg != 80.0:
            raise AssertionError(f"Day {day} was not reconciled: {metrics}")


def test_range_continues_after_unexpected_error(tmp_path: Path) -> None:
    """Test that an unexpected error on one day is recorded and skipped."""
    store = make_store(tmp_path)
    bad_day = date(2025, 1, 3)
    provider = FakeProvider(steps=5000, crashing_days=(bad_day,))

    outcome = asyncio.run(
        ReconciliationService(store, provider).reconcile_range(date(2025, 1, 1), date(2025, 1, 5))
    )

    errors = {d.day: d.error for d in outcome.days if d.error}
    if list(errors) != [bad_day]:
        raise AssertionError(f"Expected an error only for {bad_day}, got {errors}")

    if store.get_or_create(date(2025, 1, 5)).metrics.steps != 5000:
        raise AssertionError("Expected the last day to be reconciled")


def test_sync_recent_covers_window(tmp_path: Path) -> None:
    """Test that sync_recent reconciles days_back days plus today."""
    store = make_store(tmp_path)
    service = ReconciliationService(store, FakeProvider(steps=100))

    outcome = asyncio.run(service.sync_recent(days_back=3, today=date(2025, 1, 10)))

    if outcome.start != date(2025, 1, 7) or outcome.end != date(2025, 1, 10):
        raise AssertionError(f"Unexpected window: {outcome.start} - {outcome.end}")

    if len(outcome.days) != 4:
        raise AssertionError(f"Expected 4 days, got {len(outcome.days)}")


def test_fill_weight_only_when_unset(tmp_path: Path) -> None:
    """Test the single-field weight fill."""
    store = make_store(tmp_path)
    day = date(2025, 1, 5)
    service = ReconciliationService(store, FakeProvider(weight=81.3, steps=900))

    if not asyncio.run(service.fill_weight(day)):
        raise AssertionError("Expected weight to be filled")

    if asyncio.run(service.fill_weight(day)):
        raise AssertionError("Expected second fill to leave the weight alone")

    metrics = store.get_or_create(day).metrics
    if metrics.weight_kg != 81.3:
        raise AssertionError(f"Expected 81.3 kg, got {metrics.weight_kg}")

    if metrics.steps != 0:
        raise AssertionError("Weight fill must not touch other fields")
