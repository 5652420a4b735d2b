"""
Health data provider over exported sample files.

Loads samples from CSV exports and FIT scale files into a pandas DataFrame
and answers the day-scoped queries of the reconciliation engine.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from daily_health_log.domain.daily_log import SleepInterval
from daily_health_log.domain.health_sample import HealthSample, SampleKind
from daily_health_log.infrastructure.parsers.csv_parser import CSVSampleParser
from daily_health_log.infrastructure.parsers.fit_parser import FITWeightParser
from daily_health_log.utils.exceptions import ParsingError, ProviderError
from daily_health_log.utils.parameters import CalendarConfig, ProviderConfig
from daily_health_log.utils.timezone_utils import (
    day_bounds,
    make_timezone_aware,
    next_day,
    sleep_window,
    start_of_day,
)

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = ["kind", "start", "end", "value", "stage", "source_file_name"]


class SampleProvider:
    """
    Provider answering health queries from loaded samples.

    A provider without any loaded source behaves like an unauthorized one:
    every query raises ProviderError.
    """

    def __init__(
        self,
        samples: Iterable[HealthSample] | None,
        calendar_config: CalendarConfig,
        provider_config: ProviderConfig,
    ) -> None:
        """
        Initialize sample provider.

        Args:
            samples: Loaded samples, or None when no source is available.
            calendar_config: Calendar configuration (timezone, sleep window).
            provider_config: Provider configuration (asleep stages).
        """
        self.calendar_config = calendar_config
        self.timezone = calendar_config.timezone
        self.asleep_stages = {s.lower() for s in provider_config.asleep_stages}
        self._frame = self._build_frame(samples) if samples is not None else None

    @classmethod
    def from_files(
        cls,
        paths: Iterable[Path],
        csv_parser: CSVSampleParser,
        fit_parser: FITWeightParser,
        calendar_config: CalendarConfig,
        provider_config: ProviderConfig,
    ) -> "SampleProvider":
        """
        Build a provider from sample files.

        Files that fail to parse are logged and skipped. If no file could be
        loaded the provider is unavailable.
        """
        samples: list[HealthSample] = []
        loaded = 0

        for file_path in paths:
            file_path = Path(file_path)
            if not file_path.is_file():
                logger.warning(f"Sample file not found: {file_path}")
                continue

            try:
                suffix = file_path.suffix.lower()
                if suffix == ".csv":
                    samples.extend(csv_parser.parse(file_path))
                elif suffix == ".fit":
                    samples.extend(fit_parser.parse(file_path))
                else:
                    logger.warning(f"Unsupported sample file format: {file_path.name}")
                    continue
                loaded += 1

            except ParsingError as e:
                logger.error(f"Failed to load {file_path.name}: {e}")

        if loaded == 0:
            logger.warning("No health sample source available")
            return cls(None, calendar_config, provider_config)

        logger.info(f"Loaded {len(samples)} health samples from {loaded} files")
        return cls(samples, calendar_config, provider_config)

    @staticmethod
    def _build_frame(samples: Iterable[HealthSample]) -> pd.DataFrame:
        rows = [s.model_dump(include=set(SAMPLE_COLUMNS)) for s in samples]
        df = pd.DataFrame(rows, columns=SAMPLE_COLUMNS)
        df["start"] = pd.to_datetime(df["start"], utc=True)
        df["end"] = pd.to_datetime(df["end"], utc=True)
        df["value"] = pd.to_numeric(df["value"], errors="coerce")
        return df

    @property
    def available(self) -> bool:
        return self._frame is not None

    def _samples(self, kind: SampleKind) -> pd.DataFrame:
        if self._frame is None:
            raise ProviderError("Health data source is not available")
        return self._frame[self._frame["kind"] == kind.value]

    def _day_sum(self, kind: SampleKind, day: date) -> float:
        df = self._samples(kind)
        start, end = day_bounds(day, self.timezone)
        mask = (df["start"] >= pd.Timestamp(start)) & (df["start"] < pd.Timestamp(end))
        return float(df.loc[mask, "value"].sum())

    def _to_local(self, value: pd.Timestamp) -> datetime:
        return make_timezone_aware(value.to_pydatetime(), self.timezone)

    async def steps_total(self, day: date) -> int:
        try:
            return int(round(self._day_sum(SampleKind.STEPS, day)))
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Steps query failed for {day}: {e}") from e

    async def hydration_liters(self, day: date) -> float:
        try:
            return self._day_sum(SampleKind.WATER, day)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Hydration query failed for {day}: {e}") from e

    async def latest_weight_kg(self, up_to: date | None = None) -> float | None:
        try:
            df = self._samples(SampleKind.WEIGHT).dropna(subset=["value"])
            if up_to is not None:
                limit = start_of_day(next_day(up_to), self.timezone)
                df = df[df["end"] <= pd.Timestamp(limit)]

            if df.empty:
                return None

            latest = df.sort_values("end", kind="stable").iloc[-1]
            return float(latest["value"])

        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Weight query failed up to {up_to}: {e}") from e

    async def main_sleep_interval(self, day: date) -> SleepInterval | None:
        """
        Span from the earliest asleep start to the latest asleep end.

        Considers asleep samples overlapping the night window. Gaps between
        segments are not subtracted.
        """
        try:
            df = self._samples(SampleKind.SLEEP)
            window_start, window_end = sleep_window(
                day,
                self.timezone,
                self.calendar_config.sleep_window_start_hour,
                self.calendar_config.sleep_window_end_hour,
            )
            mask = (
                df["stage"].fillna("").astype(str).str.lower().isin(self.asleep_stages)
                & (df["start"] < pd.Timestamp(window_end))
                & (df["end"] > pd.Timestamp(window_start))
            )
            asleep = df[mask]

            if asleep.empty:
                return None

            return SleepInterval(
                start=self._to_local(asleep["start"].min()),
                end=self._to_local(asleep["end"].max()),
            )

        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Sleep query failed for {day}: {e}") from e
