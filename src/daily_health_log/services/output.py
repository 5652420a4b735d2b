"""
Output service for writing day summaries and statistics.

Handles CSV, Parquet, JSON and plain-text report output.
"""

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from daily_health_log.services.aggregation import AggregationService, DaySummary, RangeStatistics
from daily_health_log.utils.parameters import OutputConfig

logger = logging.getLogger(__name__)


class OutputService:
    """
    Service for writing report data to output files.

    Handles multiple output formats for day summaries.
    """

    def __init__(self, config: OutputConfig) -> None:
        """
        Initialize output service.

        Args:
            config: Output configuration.
        """
        self.config = config
        self.output_dir = Path(config.dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_day_summaries(self, summaries: list[DaySummary]) -> list[Path]:
        """
        Write day summaries to CSV and/or Parquet.

        Args:
            summaries: Day summaries in day order.

        Returns:
            Paths written.
        """
        if not summaries:
            logger.warning("No day summaries to write")
            return []

        df = pd.DataFrame([s.to_dict() for s in summaries])
        written: list[Path] = []

        if "csv" in self.config.formats:
            csv_path = self.output_dir / self.config.files.day_summaries_csv
            df.to_csv(csv_path, index=False, encoding="utf-8")
            logger.info(f"Wrote CSV to {csv_path}")
            written.append(csv_path)

        if "parquet" in self.config.formats:
            parquet_path = self.output_dir / self.config.files.day_summaries_parquet
            df.to_parquet(  # type: ignore[call-overload]
                parquet_path,
                engine=self.config.parquet.engine,
                compression=self.config.parquet.compression,
                index=False,
            )
            logger.info(f"Wrote Parquet to {parquet_path}")
            written.append(parquet_path)

        logger.info(f"Wrote {len(summaries)} day summaries to output")
        return written

    def write_statistics(self, stats: RangeStatistics) -> Path:
        """
        Write range statistics to JSON file.

        Args:
            stats: Range statistics.

        Returns:
            Path written.
        """
        stats_path = self.output_dir / self.config.files.statistics

        payload: dict[str, Any] = stats.model_dump(mode="json")
        for key in ("weight_delta", "trailing_delta"):
            delta = getattr(stats, key)
            if delta is not None:
                payload[key]["delta_text"] = delta.delta_text
                payload[key]["context_text"] = delta.context_text

        with open(stats_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)

        logger.info(f"Wrote statistics to {stats_path}")
        return stats_path

    def write_report(self, summaries: list[DaySummary], stats: RangeStatistics) -> Path:
        """
        Write a plain-text report: one section per day, then the stats.

        Args:
            summaries: Day summaries in day order.
            stats: Range statistics.

        Returns:
            Path written.
        """
        report_path = self.output_dir / self.config.files.report

        sections = ["\n".join(summary.lines()) for summary in summaries]
        sections.append("\n".join(AggregationService.report_lines(stats)))

        with open(report_path, "w", encoding="utf-8") as f:
            f.write("\n\n".join(sections) + "\n")

        logger.info(f"Wrote report with {len(summaries)} days to {report_path}")
        return report_path
