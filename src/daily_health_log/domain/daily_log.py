"""
Daily log domain models.

This module defines the per-day record, its meals and its body metrics.
Numeric body metrics use zero as the "not yet recorded" marker; the
reconciliation merge policy depends on it.
"""

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MealType(str, Enum):
    """Enumeration of the usual meal types. Free text is also accepted."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACK = "Snack"


def suggest_meal_type(timestamp: datetime) -> str:
    """
    Suggest a meal type from the hour a meal was eaten.

    Args:
        timestamp: Meal time.

    Returns:
        Suggested meal type value.
    """
    hour = timestamp.hour
    if 5 <= hour <= 10:
        return MealType.BREAKFAST.value
    if 11 <= hour <= 15:
        return MealType.LUNCH.value
    if 18 <= hour <= 22:
        return MealType.DINNER.value
    return MealType.SNACK.value


class SleepInterval(BaseModel):
    """Main sleep span reported by a health data source."""

    start: datetime
    end: datetime

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


class Meal(BaseModel):
    """A single logged eating event."""

    meal_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex, description="Opaque unique identifier"
    )
    timestamp: datetime = Field(description="Meal date and time (timezone-aware)")
    meal_type: str = Field(MealType.SNACK.value, description="Meal type, free text allowed")
    location: str | None = Field(None, description="Where the meal was eaten")
    description: str | None = Field(None, description="What was eaten")


class BodyMetrics(BaseModel):
    """
    Daily body metrics snapshot.

    Zero means "not recorded" for steps, hydration and weight. The sleep
    bounds are only meaningful as a pair; an inverted pair is accepted here
    and filtered out by consumers.
    """

    sleep_start: datetime | None = Field(None, description="Main sleep start")
    sleep_end: datetime | None = Field(None, description="Main sleep end")
    steps: int = Field(0, ge=0, description="Step count, 0 when unset")
    hydration_liters: float = Field(0.0, ge=0, description="Water intake in liters, 0 when unset")
    weight_kg: float = Field(0.0, ge=0, description="Body weight in kilograms, 0 when unset")

    model_config = ConfigDict(validate_assignment=True)

    def has_sleep(self) -> bool:
        """True when both sleep bounds are set."""
        return self.sleep_start is not None and self.sleep_end is not None

    def sleep_unset(self) -> bool:
        """True when neither sleep bound is set."""
        return self.sleep_start is None and self.sleep_end is None

    def steps_unset(self) -> bool:
        return self.steps == 0

    def hydration_unset(self) -> bool:
        return self.hydration_liters == 0

    def weight_unset(self) -> bool:
        return self.weight_kg == 0


class DailyRecord(BaseModel):
    """
    One calendar day of the health log.

    Owns its meals and its body metrics. The record is a detached working
    copy: changes only reach storage through the record store's save.
    """

    record_id: int | None = Field(None, description="Storage identity, None until persisted")
    day: date = Field(description="Local calendar day key")
    meals: list[Meal] = Field(default_factory=list)
    metrics: BodyMetrics = Field(default_factory=BodyMetrics)

    def sorted_meals(self) -> list[Meal]:
        """Return meals ordered by time eaten."""
        return sorted(self.meals, key=lambda m: m.timestamp)
