"""
Aggregation service for day summaries and trend statistics.

Turns daily records into plain view models: one summary per day and
range-level statistics. Insufficient data yields None, never an error.
"""

import logging
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import BaseModel

from daily_health_log.domain.daily_log import DailyRecord
from daily_health_log.utils.parameters import InsightsConfig

logger = logging.getLogger(__name__)


def _format_day(day: date) -> str:
    return f"{day:%b} {day.day}, {day.year}"


class WeightDelta(BaseModel):
    """Weight change between a baseline day and a later day."""

    delta_kg: float
    start_day: date
    end_day: date
    baseline_kg: float

    @property
    def is_loss(self) -> bool:
        return self.delta_kg < 0

    @property
    def delta_text(self) -> str:
        """Signed delta, e.g. "+1.2 kg" or "-1.5 kg"."""
        sign = "+" if self.delta_kg > 0 else ""
        return f"{sign}{self.delta_kg:.1f} kg"

    @property
    def context_text(self) -> str:
        """Human description of the change and the period it covers."""
        pct = abs(self.delta_kg) / self.baseline_kg * 100.0 if self.baseline_kg > 0 else 0.0
        start = _format_day(self.start_day)
        end = _format_day(self.end_day)
        if self.delta_kg == 0:
            return f"From {start} to {end} (unchanged)"
        verb = "down" if self.is_loss else "up"
        return f"{verb} {abs(self.delta_kg):.1f} kg ({pct:.1f}%) from {start} to {end}"


class SleepSummary(BaseModel):
    start: datetime
    end: datetime
    hours: int
    minutes: int

    @property
    def text(self) -> str:
        """E.g. "22:45 → 06:30 (7h 45m)"."""
        return f"{self.start:%H:%M} → {self.end:%H:%M} ({self.hours}h {self.minutes}m)"


class DaySummary(BaseModel):
    """Formatted view of one day."""

    day: date
    meals: list[str]
    sleep: SleepSummary | None
    steps: int
    weight_kg: float
    hydration_liters: float

    def lines(self) -> list[str]:
        """Render the summary as report lines."""
        lines = [f"Date: {_format_day(self.day)}", "Meals:"]
        lines.extend(f"• {meal}" for meal in self.meals)
        lines.append("Body:")
        if self.sleep is not None:
            lines.append(f"Sleep: {self.sleep.text}")
        lines.append(f"Steps: {self.steps}")
        lines.append(f"Weight: {self.weight_kg:.1f} kg")
        lines.append(f"Hydration: {self.hydration_liters:.1f} L")
        return lines

    def to_dict(self) -> dict[str, Any]:
        """Flat representation for tabular output."""
        return {
            "day": self.day.isoformat(),
            "meal_count": len(self.meals),
            "meals": " / ".join(self.meals),
            "sleep_start": self.sleep.start.isoformat() if self.sleep else None,
            "sleep_end": self.sleep.end.isoformat() if self.sleep else None,
            "sleep_minutes": self.sleep.hours * 60 + self.sleep.minutes if self.sleep else None,
            "steps": self.steps,
            "weight_kg": self.weight_kg,
            "hydration_liters": self.hydration_liters,
        }


class RangeStatistics(BaseModel):
    """Trend statistics over a range of days. None means no data."""

    day_count: int
    weight_delta: WeightDelta | None = None
    average_sleep_hours: float | None = None
    average_steps: float | None = None
    trailing_delta: WeightDelta | None = None
    trailing_window_days: int = 30


class AggregationService:
    """
    Service computing day summaries and range statistics.

    Expects records in ascending day order, as returned by the record store.
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        """
        Initialize aggregation service.

        Args:
            config: Trend statistics configuration.
        """
        self.config = config or InsightsConfig()

    @staticmethod
    def _weighted(records: Sequence[DailyRecord]) -> list[DailyRecord]:
        ordered = sorted(records, key=lambda r: r.day)
        return [r for r in ordered if r.metrics.weight_kg > 0]

    def weight_delta(self, records: Sequence[DailyRecord]) -> WeightDelta | None:
        """
        Net weight change between the first and last weighted day.

        Needs at least two weighted records; a single reading has no delta.
        """
        weighted = self._weighted(records)
        if len(weighted) < 2:
            return None

        first, last = weighted[0], weighted[-1]
        return WeightDelta(
            delta_kg=last.metrics.weight_kg - first.metrics.weight_kg,
            start_day=first.day,
            end_day=last.day,
            baseline_kg=first.metrics.weight_kg,
        )

    def trailing_window_delta(
        self, records: Sequence[DailyRecord], window_days: int
    ) -> WeightDelta | None:
        """
        Weight change over a trailing window ending at the last weighted day.

        The baseline is the latest weighted day at or before
        last.day - window_days. Earlier days only qualify through that bound.

        Args:
            records: Records to search.
            window_days: Window length in days.

        Returns:
            The delta, or None without a baseline inside the bound.
        """
        weighted = self._weighted(records)
        if not weighted:
            return None

        last = weighted[-1]
        cutoff = last.day - timedelta(days=window_days)
        candidates = [r for r in weighted if r.day <= cutoff]
        if not candidates:
            return None

        baseline = candidates[-1]
        return WeightDelta(
            delta_kg=last.metrics.weight_kg - baseline.metrics.weight_kg,
            start_day=baseline.day,
            end_day=last.day,
            baseline_kg=baseline.metrics.weight_kg,
        )

    @staticmethod
    def average_sleep_hours(records: Sequence[DailyRecord]) -> float | None:
        """Mean sleep duration over days with a valid (non-inverted) sleep pair."""
        durations = [
            (r.metrics.sleep_end - r.metrics.sleep_start).total_seconds() / 3600
            for r in records
            if r.metrics.has_sleep() and r.metrics.sleep_end > r.metrics.sleep_start
        ]
        if not durations:
            return None
        return sum(durations) / len(durations)

    @staticmethod
    def average_steps(records: Sequence[DailyRecord]) -> float | None:
        """Mean step count over all days, unset days counting as zero."""
        if not records:
            return None
        return sum(r.metrics.steps for r in records) / len(records)

    def range_statistics(self, records: Sequence[DailyRecord]) -> RangeStatistics:
        """
        Compute all range statistics.

        Args:
            records: Records of the range, ascending by day.

        Returns:
            Range statistics.
        """
        window = self.config.trailing_window_days
        stats = RangeStatistics(
            day_count=len(records),
            weight_delta=self.weight_delta(records),
            average_sleep_hours=self.average_sleep_hours(records),
            average_steps=self.average_steps(records),
            trailing_delta=self.trailing_window_delta(records, window),
            trailing_window_days=window,
        )
        logger.debug(f"Computed statistics over {len(records)} days")
        return stats

    @staticmethod
    def day_summary(record: DailyRecord) -> DaySummary:
        """
        Build the formatted summary of a day.

        Meals are ordered by time and rendered "HH:MM | Type | location |
        description" with empty parts dropped.
        """
        meals = []
        for meal in record.sorted_meals():
            parts = [f"{meal.timestamp:%H:%M}", meal.meal_type or "Meal"]
            parts.extend(
                p.strip() for p in (meal.location, meal.description) if p and p.strip()
            )
            meals.append(" | ".join(parts))

        sleep = None
        metrics = record.metrics
        if metrics.has_sleep():
            total_seconds = max(0, int((metrics.sleep_end - metrics.sleep_start).total_seconds()))
            sleep = SleepSummary(
                start=metrics.sleep_start,
                end=metrics.sleep_end,
                hours=total_seconds // 3600,
                minutes=(total_seconds % 3600) // 60,
            )

        return DaySummary(
            day=record.day,
            meals=meals,
            sleep=sleep,
            steps=metrics.steps,
            weight_kg=metrics.weight_kg,
            hydration_liters=metrics.hydration_liters,
        )

    @staticmethod
    def report_lines(stats: RangeStatistics) -> list[str]:
        """Render range statistics as report sentences."""
        lines = ["Stats"]

        if stats.weight_delta is not None:
            delta = stats.weight_delta.delta_kg
            lines.append(f"You have {'lost' if delta <= 0 else 'gained'} {abs(delta):.1f} kg")
        else:
            lines.append("You have lost N/A kg")

        if stats.average_sleep_hours is not None:
            lines.append(f"You averaged a sleep duration of {stats.average_sleep_hours:.1f} hours")
        else:
            lines.append("You averaged a sleep duration of N/A hours")

        if stats.average_steps is not None:
            lines.append(f"You averaged a number of {int(stats.average_steps)} steps/day")
        else:
            lines.append("You averaged a number of N/A steps/day")

        return lines
