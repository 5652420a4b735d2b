"""Unit tests for aggregation service."""

from datetime import date, datetime, timedelta

import pytz

from daily_health_log.domain.daily_log import BodyMetrics, DailyRecord, Meal
from daily_health_log.services.aggregation import AggregationService, RangeStatistics, WeightDelta

UTC = pytz.UTC
BASE = date(2025, 1, 1)


def record(offset: int, weight: float = 0.0, steps: int = 0, **metrics: object) -> DailyRecord:
    return DailyRecord(
        day=BASE + timedelta(days=offset),
        metrics=BodyMetrics(weight_kg=weight, steps=steps, **metrics),
    )


def test_weight_delta_first_to_last_weighted_day() -> None:
    """Test net weight change ignores unweighted days."""
    records = [record(0), record(1, weight=80.0), record(3), record(5, weight=78.5)]

    delta = AggregationService().weight_delta(records)

    if delta is None:
        raise AssertionError("Expected a weight delta")

    if abs(delta.delta_kg - (-1.5)) > 1e-9:
        raise AssertionError(f"Expected -1.5 kg, got {delta.delta_kg}")

    if delta.start_day != BASE + timedelta(days=1) or delta.end_day != BASE + timedelta(days=5):
        raise AssertionError(f"Unexpected period: {delta.start_day} - {delta.end_day}")


def test_weight_delta_needs_two_readings() -> None:
    """Test that a single weighted day has no delta."""
    delta = AggregationService().weight_delta([record(0, weight=80.0), record(1)])

    if delta is not None:
        raise AssertionError(f"Expected None, got {delta}")


def test_average_steps_counts_zero_days() -> None:
    """Test that days without steps still count in the average."""
    records = [record(0, steps=0), record(1, steps=5000), record(2, steps=10000)]

    average = AggregationService.average_steps(records)

    if average != 5000:
        raise AssertionError(f"Expected 5000, got {average}")

    if AggregationService.average_steps([]) is not None:
        raise AssertionError("Expected None for an empty range")


def test_trailing_delta_uses_baseline_before_window() -> None:
    """Test the trailing window baseline is the last weighing before the cutoff."""
    service = AggregationService()

    delta = service.trailing_window_delta(
        [record(0, weight=82.0), record(35, weight=78.0)], window_days=30
    )
    if delta is None or delta.delta_kg != -4.0:
        raise AssertionError(f"Expected -4.0 kg, got {delta}")

    inside = service.trailing_window_delta(
        [record(10, weight=82.0), record(35, weight=78.0)], window_days=30
    )
    if inside is not None:
        raise AssertionError(f"Expected None without a baseline before the window, got {inside}")


def test_trailing_delta_cutoff_day_is_inclusive() -> None:
    """Test that a weighing exactly window_days before the last one qualifies."""
    records = [record(0, weight=90.0), record(5, weight=85.0), record(35, weight=80.0)]

    delta = AggregationService().trailing_window_delta(records, window_days=30)

    if delta is None:
        raise AssertionError("Expected a trailing delta")

    if delta.start_day != BASE + timedelta(days=5) or delta.delta_kg != -5.0:
        raise AssertionError(f"Expected baseline on day 5 and -5.0 kg, got {delta}")


def test_average_sleep_skips_inverted_pairs() -> None:
    """Test that only days with end after start contribute to sleep average."""
    records = [
        record(
            0,
            sleep_start=datetime(2024, 12, 31, 23, 0, tzinfo=UTC),
            sleep_end=datetime(2025, 1, 1, 7, 0, tzinfo=UTC),
        ),
        record(
            1,
            sleep_start=datetime(2025, 1, 2, 7, 0, tzinfo=UTC),
            sleep_end=datetime(2025, 1, 1, 23, 0, tzinfo=UTC),
        ),
        record(2, sleep_start=datetime(2025, 1, 2, 22, 0, tzinfo=UTC)),
    ]

    average = AggregationService.average_sleep_hours(records)

    if average != 8.0:
        raise AssertionError(f"Expected 8.0 hours, got {average}")

    if AggregationService.average_sleep_hours([record(3)]) is not None:
        raise AssertionError("Expected None without sleep data")


def test_day_summary_formats_meals_and_sleep() -> None:
    """Test day summary lines for meals and body metrics."""
    day_record = DailyRecord(
        day=date(2025, 1, 5),
        meals=[
            Meal(
                timestamp=datetime(2025, 1, 5, 19, 30, tzinfo=UTC),
                meal_type="Dinner",
                description="Soup",
            ),
            Meal(
                timestamp=datetime(2025, 1, 5, 8, 5, tzinfo=UTC),
                meal_type="Breakfast",
                location="Home",
                description="Oats",
            ),
        ],
        metrics=BodyMetrics(
            sleep_start=datetime(2025, 1, 4, 22, 45, tzinfo=UTC),
            sleep_end=datetime(2025, 1, 5, 6, 30, tzinfo=UTC),
            steps=8421,
            hydration_liters=1.5,
            weight_kg=79.4,
        ),
    )

    summary = AggregationService.day_summary(day_record)

    if summary.meals != ["08:05 | Breakfast | Home | Oats", "19:30 | Dinner | Soup"]:
        raise AssertionError(f"Unexpected meals: {summary.meals}")

    if summary.sleep is None or (summary.sleep.hours, summary.sleep.minutes) != (7, 45):
        raise AssertionError(f"Expected 7h 45m sleep, got {summary.sleep}")

    lines = summary.lines()
    expected = [
        "Date: Jan 5, 2025",
        "Meals:",
        "• 08:05 | Breakfast | Home | Oats",
        "• 19:30 | Dinner | Soup",
        "Body:",
        "Sleep: 22:45 → 06:30 (7h 45m)",
        "Steps: 8421",
        "Weight: 79.4 kg",
        "Hydration: 1.5 L",
    ]
    if lines != expected:
        raise AssertionError(f"Unexpected lines: {lines}")


def test_day_summary_without_sleep() -> None:
    """Test that a half-entered sleep pair is left out of the summary."""
    summary = AggregationService.day_summary(
        record(0, sleep_start=datetime(2025, 1, 1, 23, 0, tzinfo=UTC))
    )

    if summary.sleep is not None:
        raise AssertionError(f"Expected no sleep, got {summary.sleep}")

    if any(line.startswith("Sleep:") for line in summary.lines()):
        raise AssertionError("Sleep line should be omitted")


def test_report_lines_without_data() -> None:
    """Test report sentences fall back to N/A."""
    lines = AggregationService.report_lines(RangeStatistics(day_count=0))

    expected = [
        "Stats",
        "You have lost N/A kg",
        "You averaged a sleep duration of N/A hours",
        "You averaged a number of N/A steps/day",
    ]
    if lines != expected:
        raise AssertionError(f"Unexpected lines: {lines}")


def test_range_statistics_report() -> None:
    """Test statistics over a range and their report sentences."""
    records = [record(0, weight=80.0, steps=4000), record(4, weight=81.0, steps=6000)]

    stats = AggregationService().range_statistics(records)
    lines = AggregationService.report_lines(stats)

    if stats.day_count != 2:
        raise AssertionError(f"Expected 2 days, got {stats.day_count}")

    if lines[1] != "You have gained 1.0 kg":
        raise AssertionError(f"Unexpected weight line: {lines[1]}")

    if lines[3] != "You averaged a number of 5000 steps/day":
        raise AssertionError(f"Unexpected steps line: {lines[3]}")

    if stats.trailing_delta is not None:
        raise AssertionError("Expected no trailing delta over a short range")


def test_weight_delta_texts() -> None:
    """Test rendering of weight delta descriptions."""
    loss = WeightDelta(
        delta_kg=-1.5, start_day=date(2025, 1, 1), end_day=date(2025, 1, 31), baseline_kg=80.0
    )
    if loss.delta_text != "-1.5 kg":
        raise AssertionError(f"Unexpected delta text: {loss.delta_text}")
    if loss.context_text != "down 1.5 kg (1.9%) from Jan 1, 2025 to Jan 31, 2025":
        raise AssertionError(f"Unexpected context text: {loss.context_text}")

    gain = WeightDelta(
        delta_kg=1.2, start_day=date(2025, 1, 1), end_day=date(2025, 1, 31), baseline_kg=80.0
    )
    if gain.delta_text != "+1.2 kg":
        raise AssertionError(f"Unexpected delta text: {gain.delta_text}")

    flat = WeightDelta(
        delta_kg=0.0, start_day=date(2025, 1, 1), end_day=date(2025, 1, 31), baseline_kg=80.0
    )
    if flat.context_text != "From Jan 1, 2025 to Jan 31, 2025 (unchanged)":
        raise AssertionError(f"Unexpected context text: {flat.context_text}")
