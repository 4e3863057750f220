#!/usr/bin/env python3
"""Example Session Script - Drives a DashboardSession the way a dashboard view does.

Generates a synthetic day of readings in mixed timestamp forms, then switches
through every window without refetching and prints what a chart would get.

Usage:
    python examples/example_session.py
    python examples/example_session.py --locale en
"""

import random
from datetime import datetime, timedelta, timezone

import typer
from rich.console import Console
from rich.table import Table

from cgm_dashboard import DashboardConfig, DashboardSession, SummaryFormatter
from cgm_dashboard.clients import InMemoryMeasurementClient
from cgm_dashboard.interface.dashboard_interface import WindowToken

app = typer.Typer()
console = Console()


def synthetic_records(now: datetime, hours: int = 30) -> list:
    """Readings every 15 minutes, alternating epoch seconds, epoch ms and ISO strings."""
    records = []
    for i in range(hours * 4):
        moment = now - timedelta(minutes=15 * i)
        value = round(7.0 + 4.5 * random.uniform(-1, 1), 1)
        if i % 3 == 0:
            timestamp = int(moment.timestamp())
        elif i % 3 == 1:
            timestamp = int(moment.timestamp() * 1000)
        else:
            timestamp = moment.strftime("%Y-%m-%dT%H:%M:%S")  # naive, read as UTC
        records.append({"id": i, "value": value, "timestamp": timestamp, "source": "DEVICE_SYNCED"})
    records.append({"id": "broken", "value": 5.0, "timestamp": "not-a-date", "source": "IMPORTED"})
    return records


@app.command()
def main(locale: str = typer.Option("nl", "--locale", help="Label language (nl or en)")) -> None:
    """Show chart data for every window."""
    now = datetime.now(timezone.utc)
    client = InMemoryMeasurementClient(synthetic_records(now))
    config = DashboardConfig(locale=locale, delegated=True)

    with DashboardSession(client, config) as session:
        formatter = SummaryFormatter(config.locale, config.display_tz)
        table = Table(title="Windows")
        table.add_column("Window", style="cyan")
        table.add_column("Points", style="white")
        table.add_column("Ticks", style="white")
        table.add_column("Latest", style="green")

        for token in WindowToken:
            view = session.set_window(token)
            latest = view.points[-1] if view.points else None
            table.add_row(
                view.title,
                str(len(view.points)),
                " | ".join(view.tick_labels),
                formatter.value_label(latest.value) if latest else "—",
            )

        console.print(table)
        console.print(f"Fetches: {client.fetch_calls}, skipped records: {len(view.failures)}")


if __name__ == "__main__":
    app()
