"""
Health sample domain models.

Samples are the raw readings exported by a health data source (phone
health app, smart scale) before they are aggregated per day.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SampleKind(str, Enum):
    """Enumeration of supported sample kinds."""

    STEPS = "steps"
    WATER = "water"
    WEIGHT = "weight"
    SLEEP = "sleep"


class SourceType(str, Enum):
    """Enumeration of sample file types."""

    CSV = "csv"
    FIT = "fit"


class HealthSample(BaseModel):
    """
    A single sample from a health data export.

    Quantities are metric: steps as a count, water in liters, weight in
    kilograms. Sleep samples carry a stage instead of a value.
    """

    kind: SampleKind = Field(description="Sample kind")
    start: datetime = Field(description="Sample start (timezone-aware)")
    end: datetime = Field(description="Sample end (timezone-aware)")
    value: float | None = Field(None, description="Quantity, None for sleep samples")
    stage: str | None = Field(None, description="Sleep stage for sleep samples")

    source_file_name: str = Field(description="Name of the source file")
    source_type: SourceType = Field(description="Type of source (CSV or FIT)")

    model_config = ConfigDict(use_enum_values=True)
