"""
CSV parser for health sample exports.

Provides robust CSV parsing with encoding detection, delimiter detection,
column name normalization, sample kind mapping and safe numeric conversion.
"""

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from daily_health_log.domain.health_sample import HealthSample, SampleKind, SourceType
from daily_health_log.utils.exceptions import ParsingError
from daily_health_log.utils.parameters import CSVConfig
from daily_health_log.utils.timezone_utils import parse_datetime

logger = logging.getLogger(__name__)


class CSVSampleParser:
    """
    Parser for CSV health sample exports.

    Expects one sample per row with a kind, a start time, an optional end
    time, a value with an optional unit and, for sleep rows, a stage. Source
    column names, kind labels and stage labels are mapped to the canonical
    ones through configuration. Water ends up in liters, weight in kilograms.
    """

    def __init__(self, csv_config: CSVConfig, timezone: str = "UTC") -> None:
        """
        Initialize CSV parser.

        Args:
            csv_config: CSV parsing configuration.
            timezone: Timezone assumed for timestamps without an offset.
        """
        self.csv_config = csv_config
        self.timezone = timezone
        self.column_mappings = csv_config.column_mappings
        self.kind_mappings = {k.strip().lower(): v for k, v in csv_config.kind_mappings.items()}
        self.stage_mappings = {k.strip().lower(): v for k, v in csv_config.stage_mappings.items()}
        self.unit_factors = {k.strip().lower(): v for k, v in csv_config.unit_factors.items()}

    def _detect_encoding(self, file_path: Path) -> str:
        for encoding in self.csv_config.encodings:
            try:
                with open(file_path, encoding=encoding) as f:
                    f.read()
                logger.debug(f"Detected encoding: {encoding}")
                return encoding
            except (UnicodeDecodeError, LookupError):
                continue

        logger.warning("Encoding detection failed, using utf-8")
        return "utf-8"

    def _detect_delimiter(self, file_path: Path, encoding: str) -> str:
        with open(file_path, encoding=encoding) as f:
            first_line = f.readline()

        for delimiter in self.csv_config.delimiters:
            if delimiter in first_line:
                logger.debug(f"Detected delimiter: {repr(delimiter)}")
                return delimiter

        logger.warning("Delimiter detection failed, using comma")
        return ","

    def _normalize_column_names(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Normalize column names to canonical schema.

        Args:
            df: DataFrame with original column names.

        Returns:
            DataFrame with normalized column names.
        """
        rename_map = {}

        for col in df.columns:
            col_stripped = col.strip()
            if col_stripped in self.column_mappings:
                rename_map[col] = self.column_mappings[col_stripped]
            elif col_stripped != col:
                rename_map[col] = col_stripped

        if rename_map:
            df = df.rename(columns=rename_map)
            logger.debug(f"Normalized columns: {list(rename_map.values())}")

        return df

    def _normalize_kind(self, value: Any) -> SampleKind | None:
        """
        Map a source kind label to a sample kind.

        Args:
            value: Raw label from the file.

        Returns:
            Sample kind or None if the label is unknown.
        """
        if pd.isna(value):
            return None

        label = str(value).strip().lower()
        label = self.kind_mappings.get(label, label)

        try:
            return SampleKind(label)
        except ValueError:
            return None

    def _safe_float_conversion(self, value: Any) -> float | None:
        """
        Safely convert value to float, handling comma decimal separator.

        Args:
            value: Value to convert.

        Returns:
            Float value or None if conversion fails.
        """
        if pd.isna(value):
            return None

        if isinstance(value, (int, float)):
            return float(value)

        if isinstance(value, str):
            value = value.strip().replace(",", ".")
            try:
                return float(value)
            except ValueError:
                return None

        return None

    def _normalize_stage(self, row: pd.Series) -> str | None:
        """
        Resolve the sleep stage of a sleep row.

        The stage column wins; exports without one carry the category in
        the value column. Numeric or missing categories give None.

        Args:
            row: Row with normalized column names.

        Returns:
            Canonical stage label or None.
        """
        raw = row.get("stage")
        if raw is None or pd.isna(raw) or str(raw).strip() == "":
            raw = row.get("value")
            if raw is None or pd.isna(raw) or self._safe_float_conversion(raw) is not None:
                return None

        label = str(raw).strip().lower()
        if not label:
            return None
        return self.stage_mappings.get(label, label)

    def _convert_unit(self, kind: SampleKind, value: float, unit: Any) -> float | None:
        """
        Convert a water or weight quantity to liters or kilograms.

        Args:
            kind: Sample kind.
            value: Quantity as exported.
            unit: Unit label, may be missing.

        Returns:
            Converted quantity, or None for an unsupported unit.
        """
        if kind not in (SampleKind.WATER, SampleKind.WEIGHT):
            return value
        if unit is None or pd.isna(unit) or str(unit).strip() == "":
            return value

        factor = self.unit_factors.get(str(unit).strip().lower())
        if factor is None:
            return None
        return value * factor

    def _row_timestamp(self, row: pd.Series, column: str) -> Any:
        raw = row.get(column)
        if raw is None or pd.isna(raw) or str(raw).strip() == "":
            return None
        return parse_datetime(str(raw), None, self.timezone)

    def parse(self, file_path: Path) -> list[HealthSample]:
        """
        Parse CSV file into health samples.

        Rows with an unknown kind, no start time, no stage for a sleep row,
        or no value or an unsupported unit for a quantity kind are skipped.

        Args:
            file_path: Path to CSV file.

        Returns:
            List of health samples.

        Raises:
            ParsingError: If the file cannot be read or lacks required columns.
        """
        try:
            encoding = self._detect_encoding(file_path)
            delimiter = self._detect_delimiter(file_path, encoding)

            df = pd.read_csv(file_path, encoding=encoding, sep=delimiter, dtype=str)

            df = self._normalize_column_names(df)

        except Exception as e:
            raise ParsingError(f"Failed to parse CSV file {file_path}: {e}") from e

        missing = [col for col in ("kind", "start") if col not in df.columns]
        if missing:
            raise ParsingError(f"CSV file {file_path} is missing columns: {missing}")

        samples: list[HealthSample] = []
        skipped = 0

        for idx, row in df.iterrows():
            try:
                kind = self._normalize_kind(row.get("kind"))
                if kind is None:
                    skipped += 1
                    continue

                start = self._row_timestamp(row, "start")
                if start is None:
                    logger.warning(f"Row {idx}: No start time, skipping")
                    skipped += 1
                    continue

                end = self._row_timestamp(row, "end") if "end" in df.columns else None

                value = None
                stage = None
                if kind == SampleKind.SLEEP:
                    stage = self._normalize_stage(row)
                    if stage is None:
                        logger.warning(f"Row {idx}: No sleep stage, skipping")
                        skipped += 1
                        continue
                else:
                    value = self._safe_float_conversion(row.get("value"))
                    if value is None:
                        logger.warning(f"Row {idx}: No value for {kind.value} sample, skipping")
                        skipped += 1
                        continue

                    value = self._convert_unit(kind, value, row.get("unit"))
                    if value is None:
                        logger.warning(f"Row {idx}: Unsupported unit {row.get('unit')!r}, skipping")
                        skipped += 1
                        continue

                samples.append(
                    HealthSample(
                        kind=kind,
                        start=start,
                        end=end or start,
                        value=value,
                        stage=stage,
                        source_file_name=file_path.name,
                        source_type=SourceType.CSV,
                    )
                )

            except Exception as e:
                logger.warning(f"Failed to parse row {idx}: {e}")
                skipped += 1
                continue

        logger.info(f"Parsed {len(samples)} samples from {file_path.name} ({skipped} skipped)")
        return samples
