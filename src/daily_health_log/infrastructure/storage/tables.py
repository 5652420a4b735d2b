"""
SQLAlchemy table definitions for the daily health log.

Datetimes are stored as naive UTC; the record store converts them to and
from the configured local timezone.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DailyRecordRow(Base):
    """One row per calendar day."""

    __tablename__ = "daily_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, index=True)

    metrics = relationship(
        "BodyMetricsRow",
        back_populates="record",
        uselist=False,
        cascade="all, delete-orphan",
    )
    meals = relationship(
        "MealRow",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="MealRow.timestamp",
    )

    __table_args__ = (UniqueConstraint("day", name="uq_daily_records_day"),)

    def __repr__(self) -> str:
        return f"<DailyRecordRow(id={self.id}, day={self.day})>"


class BodyMetricsRow(Base):
    __tablename__ = "body_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(
        Integer, ForeignKey("daily_records.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    sleep_start = Column(DateTime)
    sleep_end = Column(DateTime)
    steps = Column(Integer, nullable=False, default=0)
    hydration_liters = Column(Float, nullable=False, default=0.0)
    weight_kg = Column(Float, nullable=False, default=0.0)

    record = relationship("DailyRecordRow", back_populates="metrics")


class MealRow(Base):
    __tablename__ = "meals"

    id = Column(String(32), primary_key=True)
    record_id = Column(
        Integer, ForeignKey("daily_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp = Column(DateTime, nullable=False)
    meal_type = Column(Text, nullable=False)
    location = Column(Text)
    description = Column(Text)

    record = relationship("DailyRecordRow", back_populates="meals")

    def __repr__(self) -> str:
        return f"<MealRow(id={self.id}, type='{self.meal_type}')>"
