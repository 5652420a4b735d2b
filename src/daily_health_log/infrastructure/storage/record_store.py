"""
Record store backed by SQLite through SQLAlchemy.

Hands out detached DailyRecord working copies and persists them back on
save. Guarantees a single record per calendar day.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from daily_health_log.domain.daily_log import BodyMetrics, DailyRecord, Meal
from daily_health_log.infrastructure.storage.tables import (
    Base,
    BodyMetricsRow,
    DailyRecordRow,
    MealRow,
)
from daily_health_log.utils.exceptions import StorageError
from daily_health_log.utils.parameters import StorageConfig
from daily_health_log.utils.timezone_utils import make_timezone_aware, to_utc_naive

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Persistent store of daily records.

    Every call opens its own session; nothing is cached between calls.
    """

    def __init__(self, config: StorageConfig, timezone: str = "UTC") -> None:
        """
        Initialize record store and create the schema if needed.

        Args:
            config: Storage configuration.
            timezone: Local timezone used to restore stored datetimes.

        Raises:
            StorageError: If the database cannot be opened.
        """
        self.config = config
        self.timezone = timezone
        self.engine: Engine
        self._session_factory: sessionmaker[Session]
        self._connect()

    def _connect(self) -> None:
        try:
            database_path = self._sqlite_path(self.config.database_url)
            if database_path is not None:
                database_path.parent.mkdir(parents=True, exist_ok=True)

            # SQL echo goes through the application log handlers
            self.engine = create_engine(self.config.database_url, future=True)
            Base.metadata.create_all(bind=self.engine)
            self._session_factory = sessionmaker(
                bind=self.engine, future=True, expire_on_commit=False
            )
            logger.debug(f"Connected record store at {self.config.database_url}")

        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to open record store: {e}") from e

    @staticmethod
    def _sqlite_path(database_url: str) -> Path | None:
        prefix = "sqlite:///"
        if not database_url.startswith(prefix):
            return None
        raw = database_url[len(prefix):]
        if not raw or raw == ":memory:":
            return None
        return Path(raw)

    @property
    def database_path(self) -> Path | None:
        """Path of the SQLite database file, or None for non-file databases."""
        return self._sqlite_path(self.config.database_url)

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}: {e}") from e
        finally:
            session.close()

    def reload(self) -> None:
        """
        Drop all connections and reopen the database.

        Needed after the database files were replaced on disk.
        """
        self.engine.dispose()
        self._connect()
        logger.info("Record store reloaded")

    def close(self) -> None:
        self.engine.dispose()

    # Conversion between rows and working copies

    def _restore(self, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return make_timezone_aware(value, self.timezone)

    def _store(self, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return to_utc_naive(value, self.timezone)

    def _to_domain(self, row: DailyRecordRow) -> DailyRecord:
        metrics_row = row.metrics
        metrics = BodyMetrics()
        if metrics_row is not None:
            metrics = BodyMetrics(
                sleep_start=self._restore(metrics_row.sleep_start),
                sleep_end=self._restore(metrics_row.sleep_end),
                steps=metrics_row.steps or 0,
                hydration_liters=metrics_row.hydration_liters or 0.0,
                weight_kg=metrics_row.weight_kg or 0.0,
            )

        meals = [
            Meal(
                meal_id=meal_row.id,
                timestamp=self._restore(meal_row.timestamp),
                meal_type=meal_row.meal_type,
                location=meal_row.location,
                description=meal_row.description,
            )
            for meal_row in row.meals
        ]

        return DailyRecord(record_id=row.id, day=row.day, meals=meals, metrics=metrics)

    def _load_row(self, session: Session, day: date) -> DailyRecordRow | None:
        query = (
            select(DailyRecordRow)
            .where(DailyRecordRow.day == day)
            .options(selectinload(DailyRecordRow.metrics), selectinload(DailyRecordRow.meals))
            .limit(1)
        )
        return session.scalars(query).first()

    # Queries and mutations

    def get_or_create(self, day: date) -> DailyRecord:
        """
        Fetch the record for a day, creating an empty one if absent.

        Repeated calls for the same day return the same record identity.

        Args:
            day: Day key.

        Returns:
            Working copy of the day's record.

        Raises:
            StorageError: If the record cannot be fetched or created.
        """
        try:
            with self._session(f"create record for {day}") as session:
                row = self._load_row(session, day)

                if row is None:
                    row = DailyRecordRow(day=day, metrics=BodyMetricsRow())
                    session.add(row)
                    session.flush()
                    logger.info(f"Created daily record for {day}")
                elif row.metrics is None:
                    row.metrics = BodyMetricsRow()
                    session.flush()
                    logger.warning(f"Record for {day} had no body metrics, created them")

                return self._to_domain(row)

        except StorageError as e:
            # Another writer created the day first
            if not isinstance(e.__cause__, IntegrityError):
                raise

        with self._session(f"fetch record for {day}") as session:
            row = self._load_row(session, day)
            if row is None:
                raise StorageError(f"Record for {day} vanished after a create conflict")
            return self._to_domain(row)

    def fetch(self, day: date) -> DailyRecord | None:
        """Fetch the record for a day without creating it."""
        with self._session(f"fetch record for {day}") as session:
            row = self._load_row(session, day)
            return self._to_domain(row) if row is not None else None

    def fetch_range(self, start: date, end: date) -> list[DailyRecord]:
        """
        Fetch records for days in [start, end).

        Args:
            start: First day (inclusive).
            end: Last day (exclusive).

        Returns:
            Records sorted ascending by day.
        """
        query = (
            select(DailyRecordRow)
            .where(DailyRecordRow.day >= start, DailyRecordRow.day < end)
            .order_by(DailyRecordRow.day)
            .options(selectinload(DailyRecordRow.metrics), selectinload(DailyRecordRow.meals))
        )
        with self._session(f"fetch records from {start} to {end}") as session:
            return [self._to_domain(row) for row in session.scalars(query)]

    def fetch_weighted(self) -> list[DailyRecord]:
        """Fetch every record with a recorded weight, ascending by day."""
        query = (
            select(DailyRecordRow)
            .join(DailyRecordRow.metrics)
            .where(BodyMetricsRow.weight_kg > 0)
            .order_by(DailyRecordRow.day)
            .options(selectinload(DailyRecordRow.metrics), selectinload(DailyRecordRow.meals))
        )
        with self._session("fetch weighted records") as session:
            return [self._to_domain(row) for row in session.scalars(query)]

    def save(self, record: DailyRecord) -> None:
        """
        Persist the body metrics of a working copy.

        Args:
            record: Record previously obtained from this store.

        Raises:
            StorageError: If the record is unknown or the commit fails.
                Stored data is left unchanged.
        """
        if record.record_id is None:
            raise StorageError(f"Record for {record.day} was never persisted")

        with self._session(f"save record for {record.day}") as session:
            row = session.get(DailyRecordRow, record.record_id)
            if row is None:
                logger.error(f"Record {record.record_id} for {record.day} not found")
                raise StorageError(f"Record {record.record_id} for {record.day} not found")

            if row.metrics is None:
                row.metrics = BodyMetricsRow()

            metrics = record.metrics
            row.metrics.sleep_start = self._store(metrics.sleep_start)
            row.metrics.sleep_end = self._store(metrics.sleep_end)
            row.metrics.steps = metrics.steps
            row.metrics.hydration_liters = metrics.hydration_liters
            row.metrics.weight_kg = metrics.weight_kg

        logger.debug(f"Saved record for {record.day}")

    def add_meal(self, record: DailyRecord, meal: Meal) -> DailyRecord:
        """
        Attach a new meal to a record.

        Args:
            record: Owning record.
            meal: Meal to add.

        Returns:
            The record with the meal appended.
        """
        if record.record_id is None:
            raise StorageError(f"Record for {record.day} was never persisted")

        with self._session(f"add meal to {record.day}") as session:
            session.add(
                MealRow(
                    id=meal.meal_id,
                    record_id=record.record_id,
                    timestamp=self._store(meal.timestamp),
                    meal_type=meal.meal_type,
                    location=meal.location,
                    description=meal.description,
                )
            )

        record.meals.append(meal)
        logger.info(f"Added {meal.meal_type} to {record.day}")
        return record

    def delete_meal(self, meal_id: str) -> None:
        """
        Delete a meal. The owning record stays, even with no meals left.

        Raises:
            StorageError: If the meal does not exist or the delete fails.
        """
        with self._session(f"delete meal {meal_id}") as session:
            row = session.get(MealRow, meal_id)
            if row is None:
                raise StorageError(f"Meal {meal_id} not found")
            session.delete(row)

        logger.info(f"Deleted meal {meal_id}")
