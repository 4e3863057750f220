#!/usr/bin/env python3
"""CGM Dashboard CLI Tool - Command-line access to the dashboard engine.

This tool exposes the chart data pipeline:
- Timestamp normalization
- Clinical band classification
- Window resolution and axis ticks
- Window-scoped series from a measurement export (JSON or CSV)

Can be used as:
- Installed command: cgm-dashboard <command>
- Python module: python -m cgm_dashboard.dashboard_cli <command>
- Direct script: python scripts/dashboard_cli.py <command>
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cgm_dashboard.classifier import RangeClassifier
from cgm_dashboard.clients import FileMeasurementClient
from cgm_dashboard.config import DashboardConfig
from cgm_dashboard.formats.series import SERIES_SCHEMA
from cgm_dashboard.interface.dashboard_interface import (
    AbsoluteInstant,
    ClinicalBand,
    DashboardError,
    InvalidTimestamp,
    WindowToken,
    MS_DAY,
    MS_HOUR,
)
from cgm_dashboard.series_builder import SeriesBuilder
from cgm_dashboard.summary_formatter import SummaryFormatter, relative_label
from cgm_dashboard.timestamp_normalizer import TimestampNormalizer
from cgm_dashboard.windowing import (
    WINDOW_SPECS,
    RangeWindowSelector,
    TickGenerator,
    current_instant,
)

app = typer.Typer(
    name="cgm-dashboard",
    help="CGM Dashboard CLI - Normalize, window and classify glucose measurements",
    add_completion=False,
)
console = Console()

BAND_STYLES = {
    ClinicalBand.LOW: "red",
    ClinicalBand.TARGET: "green",
    ClinicalBand.HIGH: "yellow",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show diagnostic log messages"),
) -> None:
    """CGM Dashboard CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# ===== Engine Commands =====

@app.command()
def normalize(
    raw_values: List[str] = typer.Argument(..., help="Raw timestamps (epoch s/ms or ISO-8601)"),
) -> None:
    """Normalize raw timestamps to absolute instants."""
    table = Table(title="Normalized Timestamps")
    table.add_column("Raw", style="cyan")
    table.add_column("Instant (ms)", style="white")
    table.add_column("UTC", style="green")

    failed = 0
    for raw in raw_values:
        try:
            instant = TimestampNormalizer.normalize(raw)
            table.add_row(raw, str(instant), TimestampNormalizer.to_iso(instant))
        except InvalidTimestamp as e:
            failed += 1
            table.add_row(raw, "[red]✗[/red]", f"[red]{e}[/red]")

    console.print(table)
    if failed:
        console.print(f"[red]✗ {failed} of {len(raw_values)} timestamp(s) could not be normalized[/red]")
        raise typer.Exit(1)


@app.command()
def classify(
    values: List[float] = typer.Argument(..., help="Glucose values in mmol/L"),
) -> None:
    """Classify glucose values into LOW / TARGET / HIGH."""
    classifier = RangeClassifier()
    try:
        for value in values:
            band = classifier.classify(value)
            style = BAND_STYLES[band]
            console.print(f"{value:g} mmol/L: [{style}]{band.value}[/{style}]")
    except DashboardError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def window(
    token: str = typer.Argument(..., help="Window token: 6h, 24h, 7d, 30d or 180d"),
    now: Optional[str] = typer.Option(None, "--now", help="Window end as a raw timestamp (default: current time)"),
    calendar_tz: str = typer.Option("UTC", "--calendar-tz", help="Zone for calendar arithmetic"),
    display_tz: str = typer.Option("Europe/Amsterdam", "--tz", help="Zone for labels"),
    locale: str = typer.Option("nl", "--locale", help="Label language (nl or en)"),
) -> None:
    """Resolve a window and show its axis ticks."""
    try:
        config = DashboardConfig(
            window=token,
            calendar_timezone=calendar_tz,
            display_timezone=display_tz,
            locale=locale,
        )
        end = _resolve_now(now)
        interval = RangeWindowSelector(config.calendar_tz).resolve(config.window, end)
        ticks = TickGenerator.for_interval(interval, config.window)
    except (DashboardError, ValueError) as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(1)

    formatter = SummaryFormatter(config.locale, config.display_tz)
    console.print(f"\n[bold]{formatter.chart_title(config.window)}[/bold]")
    console.print(f"Start: {TimestampNormalizer.to_iso(interval.start)}")
    console.print(f"End:   {TimestampNormalizer.to_iso(interval.end)}")

    table = Table(title=f"Ticks ({len(ticks)})")
    table.add_column("Instant (ms)", style="white")
    table.add_column("UTC", style="green")
    table.add_column("Label", style="cyan")
    for tick in ticks:
        table.add_row(str(tick), TimestampNormalizer.to_iso(tick), formatter.tick_label(tick, config.window))
    console.print(table)


@app.command()
def series(
    input_file: Path = typer.Argument(..., help="Measurement export (.json or .csv)"),
    token: str = typer.Option("24h", "--window", "-w", help="Window token: 6h, 24h, 7d, 30d or 180d"),
    now: Optional[str] = typer.Option(None, "--now", help="Window end as a raw timestamp (default: current time)"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the series frame to CSV"),
    show_preview: bool = typer.Option(False, "--preview", "-p", help="Show the chart points"),
    display_tz: str = typer.Option("Europe/Amsterdam", "--tz", help="Zone for labels"),
    locale: str = typer.Option("nl", "--locale", help="Label language (nl or en)"),
) -> None:
    """Build the chart series of a measurement export for one window."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        config = DashboardConfig(window=token, display_timezone=display_tz, locale=locale)
        end = _resolve_now(now)
        interval = RangeWindowSelector(config.calendar_tz).resolve(config.window, end)
    except (DashboardError, ValueError) as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(1)

    with console.status(f"[bold green]Loading {input_file.name}..."):
        fetched = FileMeasurementClient(input_file).fetch_recent_measurements()
    if not fetched.ok:
        console.print(f"[red]✗ Load error: {fetched.error.message}[/red]")
        raise typer.Exit(1)

    builder = SeriesBuilder()
    result = builder.build_with_report(fetched.data, interval)
    frame = builder.to_frame(result.points)
    formatter = SummaryFormatter(config.locale, config.display_tz)

    console.print(f"\n[green]✓[/green] Built {len(result.points)} point(s) from {len(fetched.data)} record(s)")
    if result.failures:
        console.print(f"[yellow]⚠[/yellow] Skipped {len(result.failures)} record(s) with invalid data")

    _print_series_stats(result.points, frame, interval.end, formatter, config.window)

    if show_preview and result.points:
        table = Table(title=formatter.chart_title(config.window))
        table.add_column("Time", style="cyan")
        table.add_column("Glucose", style="white")
        table.add_column("Band")
        for point in result.points:
            band = builder.classifier.classify(point.value)
            style = BAND_STYLES[band]
            table.add_row(
                formatter.datetime_label(point.instant),
                formatter.value_label(point.value),
                f"[{style}]{band.value}[/{style}]",
            )
        console.print(table)

    if output_file:
        frame.write_csv(output_file)
        console.print(f"\n[green]✓[/green] Saved to: {output_file}")


# ===== Info Commands =====

@app.command()
def info(
    schema_out: Optional[Path] = typer.Option(None, "--schema-out", help="Write the series frame Table Schema JSON"),
) -> None:
    """Show supported windows, clinical bands and the series frame schema."""
    windows = Table(title="Windows")
    windows.add_column("Token", style="cyan")
    windows.add_column("Offset", style="white")
    windows.add_column("Calendar", style="white")
    windows.add_column("Tick step", style="white")
    for token, spec in WINDOW_SPECS.items():
        windows.add_row(
            token.value,
            _describe_offset(spec.offset),
            "yes" if spec.calendar else "no",
            _describe_step(spec.tick_step_ms),
        )
    console.print(windows)

    bands = Table(title="Clinical Bands (mmol/L)")
    bands.add_column("Band")
    bands.add_column("From", style="white")
    bands.add_column("To", style="white")
    for region in RangeClassifier().overlay_regions():
        style = BAND_STYLES[region.band]
        bands.add_row(f"[{style}]{region.band.value}[/{style}]", f"{region.lower:.1f}", f"{region.upper:.1f}")
    console.print(bands)

    columns = Table(title="Series Frame Columns")
    columns.add_column("Column", style="cyan")
    columns.add_column("Type", style="yellow")
    for name, dtype in SERIES_SCHEMA.get_polars_schema().items():
        columns.add_row(name, str(dtype))
    console.print(columns)

    if schema_out:
        SERIES_SCHEMA.export_to_json(schema_out)
        console.print(f"\n[green]✓[/green] Schema written to: {schema_out}")


# ===== Helper Functions =====

def _resolve_now(raw: Optional[str]) -> AbsoluteInstant:
    if raw is None:
        return current_instant()
    return TimestampNormalizer.normalize(raw)


def _describe_offset(offset) -> str:
    parts = []
    for unit in ("months", "days", "hours"):
        amount = getattr(offset, unit)
        if amount:
            parts.append(f"{amount} {unit}")
    return ", ".join(parts)


def _describe_step(step_ms: int) -> str:
    if step_ms % MS_DAY == 0:
        return f"{step_ms // MS_DAY} d"
    return f"{step_ms // MS_HOUR} h"


def _print_series_stats(points, frame, now: AbsoluteInstant, formatter: SummaryFormatter, token: WindowToken) -> None:
    """Print statistics about a chart series."""
    console.print(f"\n[bold]{formatter.chart_title(token)}[/bold]")

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Points", f"{len(points):,}")
    if points:
        glucose = frame["glucose"]
        table.add_row("Glucose Mean", formatter.value_label(glucose.mean()))
        table.add_row("Glucose Range", f"{glucose.min():.1f} - {glucose.max():.1f} mmol/L")
        table.add_row("Latest", relative_label(points[-1].instant, now, formatter.locale))
        for band, count, share in RangeClassifier().band_distribution(frame):
            style = BAND_STYLES[band]
            table.add_row(f"[{style}]{band.value}[/{style}]", f"{count:,} ({share:.0%})")

    console.print(table)


# ===== Main Entry Point =====

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
