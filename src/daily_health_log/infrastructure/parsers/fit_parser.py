"""
FIT parser for smart scale files.

Provides FIT file parsing using fitparse library.
"""

import logging
from pathlib import Path

from fitparse import FitFile

from daily_health_log.domain.health_sample import HealthSample, SampleKind, SourceType
from daily_health_log.utils.exceptions import ParsingError
from daily_health_log.utils.parameters import FITConfig
from daily_health_log.utils.timezone_utils import make_timezone_aware

logger = logging.getLogger(__name__)


class FITWeightParser:
    """
    Parser for FIT smart scale files.

    Extracts weight scale records as weight samples.
    """

    def __init__(self, fit_config: FITConfig, timezone: str = "UTC") -> None:
        """
        Initialize FIT parser.

        Args:
            fit_config: FIT parsing configuration.
            timezone: Timezone assumed for naive FIT timestamps.
        """
        self.fit_config = fit_config
        self.timezone = timezone

    def parse(self, file_path: Path) -> list[HealthSample]:
        """
        Parse FIT file into weight samples.

        Args:
            file_path: Path to FIT file.

        Returns:
            List of weight samples.

        Raises:
            ParsingError: If parsing fails.
        """
        try:
            fitfile = FitFile(str(file_path))
            samples: list[HealthSample] = []

            for message_type in self.fit_config.message_types:
                for record_data in fitfile.get_messages(message_type):
                    try:
                        data_dict = {field.name: field.value for field in record_data}

                        timestamp = data_dict.get("timestamp")
                        if not timestamp:
                            logger.warning("No timestamp in FIT record, skipping")
                            continue

                        timestamp = make_timezone_aware(
                            timestamp, self.timezone, assume_local=True
                        )

                        mapped_data = {}
                        for fit_field, canonical_field in self.fit_config.field_mappings.items():
                            if data_dict.get(fit_field) is not None:
                                mapped_data[canonical_field] = data_dict[fit_field]

                        if "weight_kg" not in mapped_data:
                            logger.warning("No weight in FIT record, skipping")
                            continue

                        samples.append(
                            HealthSample(
                                kind=SampleKind.WEIGHT,
                                start=timestamp,
                                end=timestamp,
                                value=float(mapped_data["weight_kg"]),
                                source_file_name=file_path.name,
                                source_type=SourceType.FIT,
                            )
                        )

                    except Exception as e:
                        logger.warning(f"Failed to parse FIT record: {e}")
                        continue

            logger.info(f"Parsed {len(samples)} weight samples from {file_path.name}")
            return samples

        except Exception as e:
            raise ParsingError(f"Failed to parse FIT file {file_path}: {e}") from e
