"""
Command-line interface for Daily Health Log.

Provides commands for logging meals and metrics, filling days from health
exports, and producing summaries, insights and backups.
"""

import asyncio
from datetime import date, datetime, timedelta
from pathlib import Path

import typer

from daily_health_log.domain.daily_log import DailyRecord, Meal, suggest_meal_type
from daily_health_log.infrastructure.parsers.csv_parser import CSVSampleParser
from daily_health_log.infrastructure.parsers.fit_parser import FITWeightParser
from daily_health_log.infrastructure.providers.sample_provider import SampleProvider
from daily_health_log.infrastructure.storage.record_store import RecordStore
from daily_health_log.services.aggregation import AggregationService
from daily_health_log.services.backup import BackupService
from daily_health_log.services.output import OutputService
from daily_health_log.services.reconciliation import RangeReconciliation, ReconciliationService
from daily_health_log.utils.exceptions import DailyHealthLogError
from daily_health_log.utils.logging_config import get_logger, setup_logging
from daily_health_log.utils.parameters import ParameterLoader
from daily_health_log.utils.timezone_utils import day_key, now_local, parse_datetime, today

app = typer.Typer(help="Daily Health Log - Daily meals, body metrics and trends")

logger = get_logger(__name__)


def init_config(config_path: str = "config/config.yaml") -> ParameterLoader:
    """
    Initialize configuration and logging.

    Args:
        config_path: Path to configuration file.

    Returns:
        Parameter loader instance.
    """
    param_loader = ParameterLoader(config_path)
    setup_logging(
        param_loader.get_logging_config(),
        "daily_health_log",
        sql_echo=param_loader.get_storage_config().echo,
    )
    return param_loader


def build_store(param_loader: ParameterLoader) -> RecordStore:
    return RecordStore(
        param_loader.get_storage_config(), param_loader.get_calendar_config().timezone
    )


def build_provider(param_loader: ParameterLoader) -> SampleProvider:
    calendar_config = param_loader.get_calendar_config()
    provider_config = param_loader.get_provider_config()
    provider = SampleProvider.from_files(
        [Path(p) for p in provider_config.sample_files],
        CSVSampleParser(param_loader.get_csv_config(), calendar_config.timezone),
        FITWeightParser(param_loader.get_fit_config(), calendar_config.timezone),
        calendar_config,
        provider_config,
    )
    if not provider.available:
        typer.echo("Warning: no health export could be loaded, nothing will be filled", err=True)
    return provider


def parse_day(value: str | None, timezone: str) -> date:
    """Parse a day option, defaulting to today."""
    if not value:
        return today(timezone)
    try:
        return parse_datetime(value, None, timezone).date()
    except (ValueError, OverflowError) as e:
        raise typer.BadParameter(f"Invalid date: {value}") from e


def parse_timestamp(value: str, timezone: str) -> datetime:
    """Parse a date and time option in the local timezone."""
    try:
        return parse_datetime(value, None, timezone)
    except (ValueError, OverflowError) as e:
        raise typer.BadParameter(f"Invalid date and time: {value}") from e


def echo_reconciliation(outcome: RangeReconciliation) -> None:
    for day_result in outcome.days:
        filled = ", ".join(day_result.filled_fields) or "nothing"
        line = f"{day_result.day}: filled {filled}"
        if day_result.failed_fields:
            line += f" (no data: {', '.join(day_result.failed_fields)})"
        if day_result.error:
            line += f" [error: {day_result.error}]"
        typer.echo(line)

    typer.echo(
        f"Reconciled {len(outcome.days)} days, filled {outcome.filled_count} fields, "
        f"{len(outcome.failed_days)} days with failures"
    )


@app.command()
def sync(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    days_back: int | None = typer.Option(None, help="Override number of days from config"),
) -> None:
    """
    Fill recent days from the configured health exports.

    Only metrics that are still unset are filled; entered values are kept.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        window = days_back if days_back is not None else param_loader.get_sync_config().days_back

        logger.info(f"Starting health sync for the last {window} days")

        service = ReconciliationService(
            build_store(param_loader), build_provider(param_loader), timezone
        )
        outcome = asyncio.run(service.sync_recent(window))
        echo_reconciliation(outcome)

    except DailyHealthLogError as e:
        logger.error(f"Sync failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def reconcile(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    start: str | None = typer.Option(None, help="First day (YYYY-MM-DD), default today"),
    end: str | None = typer.Option(None, help="Last day, inclusive (default: start)"),
) -> None:
    """
    Fill one day or a range of days from the configured health exports.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        first = parse_day(start, timezone)
        last = parse_day(end, timezone) if end else first

        if last < first:
            raise typer.BadParameter("End day is before start day")

        service = ReconciliationService(
            build_store(param_loader), build_provider(param_loader), timezone
        )
        outcome = asyncio.run(service.reconcile_range(first, last))
        echo_reconciliation(outcome)

    except DailyHealthLogError as e:
        logger.error(f"Reconciliation failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("add-meal")
def add_meal(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    at: str | None = typer.Option(None, help="Meal date and time, default now"),
    meal_type: str | None = typer.Option(None, "--type", help="Breakfast, Lunch, Dinner, Snack..."),
    location: str | None = typer.Option(None, help="Where the meal was eaten"),
    description: str | None = typer.Option(None, help="What was eaten"),
) -> None:
    """
    Log a meal on the day it was eaten.

    The meal type is suggested from the time of day when not given.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        timestamp = parse_timestamp(at, timezone) if at else now_local(timezone)

        store = build_store(param_loader)
        record = store.get_or_create(day_key(timestamp, timezone))
        meal = Meal(
            timestamp=timestamp,
            meal_type=meal_type or suggest_meal_type(timestamp),
            location=location,
            description=description,
        )
        store.add_meal(record, meal)

        typer.echo(f"Added {meal.meal_type} at {timestamp:%Y-%m-%d %H:%M} ({meal.meal_id})")

    except DailyHealthLogError as e:
        logger.error(f"Adding meal failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("delete-meal")
def delete_meal(
    meal_id: str = typer.Argument(..., help="Identifier shown by the show command"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
) -> None:
    """
    Delete a logged meal. The day itself is kept.
    """
    try:
        param_loader = init_config(config_path)
        build_store(param_loader).delete_meal(meal_id)
        typer.echo(f"Deleted meal {meal_id}")

    except DailyHealthLogError as e:
        logger.error(f"Deleting meal failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("log-metrics")
def log_metrics(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Day (YYYY-MM-DD), default today"),
    steps: int | None = typer.Option(None, min=0, help="Step count, 0 clears"),
    hydration: float | None = typer.Option(None, min=0, help="Water in liters, 0 clears"),
    weight: float | None = typer.Option(None, min=0, help="Weight in kg, 0 clears"),
    sleep_start: str | None = typer.Option(None, help="Sleep start date and time"),
    sleep_end: str | None = typer.Option(None, help="Sleep end date and time"),
    clear_sleep: bool = typer.Option(False, help="Remove both sleep bounds"),
) -> None:
    """
    Enter body metrics by hand. Entered values are never overwritten by sync.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        target = parse_day(day, timezone)

        store = build_store(param_loader)
        record = store.get_or_create(target)
        metrics = record.metrics

        if steps is not None:
            metrics.steps = steps
        if hydration is not None:
            metrics.hydration_liters = hydration
        if weight is not None:
            metrics.weight_kg = weight
        if clear_sleep:
            metrics.sleep_start = None
            metrics.sleep_end = None
        if sleep_start:
            metrics.sleep_start = parse_timestamp(sleep_start, timezone)
        if sleep_end:
            metrics.sleep_end = parse_timestamp(sleep_end, timezone)

        store.save(record)
        typer.echo(f"Saved metrics for {target}")

    except DailyHealthLogError as e:
        logger.error(f"Saving metrics failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("fill-weight")
def fill_weight(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Day (YYYY-MM-DD), default today"),
) -> None:
    """
    Fill a day's weight from the latest exported sample, if not entered yet.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        target = parse_day(day, timezone)

        service = ReconciliationService(
            build_store(param_loader), build_provider(param_loader), timezone
        )
        if asyncio.run(service.fill_weight(target)):
            typer.echo(f"Filled weight for {target}")
        else:
            typer.echo(f"Weight for {target} left unchanged")

    except DailyHealthLogError as e:
        logger.error(f"Weight import failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def show(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Day (YYYY-MM-DD), default today"),
) -> None:
    """
    Show the meals and body metrics of a day.
    """
    try:
        param_loader = init_config(config_path)
        target = parse_day(day, param_loader.get_calendar_config().timezone)

        # Viewing a day must not create it
        record = build_store(param_loader).fetch(target) or DailyRecord(day=target)
        summary = AggregationService.day_summary(record)

        typer.echo(f"Date: {summary.day.isoformat()}")
        typer.echo("Meals:")
        for line, meal in zip(summary.meals, record.sorted_meals()):
            typer.echo(f"  {line}  [{meal.meal_id}]")
        if not summary.meals:
            typer.echo("  (none)")
        for line in summary.lines()[2 + len(summary.meals):]:
            typer.echo(line)

    except DailyHealthLogError as e:
        logger.error(f"Show failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def insights(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    window_days: int | None = typer.Option(
        None, min=1, help="Override trailing window from config"
    ),
) -> None:
    """
    Show weight change since the first entry and over the trailing window.
    """
    try:
        param_loader = init_config(config_path)
        insights_config = param_loader.get_insights_config()
        window = (
            window_days if window_days is not None else insights_config.trailing_window_days
        )

        records = build_store(param_loader).fetch_weighted()
        service = AggregationService(insights_config)
        total = service.weight_delta(records)
        trailing = service.trailing_window_delta(records, window)

        typer.echo("Since you began:")
        if total is not None:
            typer.echo(f"  {total.delta_text}  {total.context_text}")
        else:
            typer.echo("  Add weights to see your progress")

        typer.echo(f"Last {window} days:")
        if trailing is not None:
            typer.echo(f"  {trailing.delta_text}  {trailing.context_text}")
        else:
            typer.echo("  Not enough recent data yet")

    except DailyHealthLogError as e:
        logger.error(f"Insights failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def report(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    start: str | None = typer.Option(None, help="First day (default: 7 days ago)"),
    end: str | None = typer.Option(None, help="End day, exclusive (default: tomorrow)"),
) -> None:
    """
    Write day summaries, statistics and a text report for a date range.
    """
    try:
        param_loader = init_config(config_path)
        timezone = param_loader.get_calendar_config().timezone
        current = today(timezone)
        first = parse_day(start, timezone) if start else current - timedelta(days=7)
        stop = parse_day(end, timezone) if end else current + timedelta(days=1)

        if stop <= first:
            raise typer.BadParameter("End day must be after start day")

        records = build_store(param_loader).fetch_range(first, stop)
        service = AggregationService(param_loader.get_insights_config())
        summaries = [service.day_summary(r) for r in records]
        stats = service.range_statistics(records)

        output_service = OutputService(param_loader.get_output_config())
        output_service.write_day_summaries(summaries)
        output_service.write_statistics(stats)
        report_path = output_service.write_report(summaries, stats)

        for line in service.report_lines(stats):
            typer.echo(line)
        typer.echo(f"\nReport for {len(records)} days written to {report_path}")

    except DailyHealthLogError as e:
        logger.error(f"Report failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("backup-export")
def backup_export(
    dest_dir: str = typer.Argument(..., help="Directory receiving the backup folder"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
) -> None:
    """
    Copy the database into a new backup folder.
    """
    try:
        param_loader = init_config(config_path)
        folder = BackupService(build_store(param_loader)).export_database(Path(dest_dir))
        typer.echo(f"Database exported to {folder}")

    except DailyHealthLogError as e:
        logger.error(f"Export failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("backup-import")
def backup_import(
    folder: str = typer.Argument(..., help="Backup folder created by backup-export"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
) -> None:
    """
    Replace the database with a backup. Current data is overwritten.
    """
    try:
        param_loader = init_config(config_path)
        restored = BackupService(build_store(param_loader)).import_database(Path(folder))
        typer.echo(f"Restored {len(restored)} database files from {folder}")

    except DailyHealthLogError as e:
        logger.error(f"Import failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
