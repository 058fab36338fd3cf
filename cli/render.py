from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_ingestion(payload: Dict[str, Any]) -> None:
    outcome = payload.get("outcome")
    color = typer.colors.GREEN if outcome == "logged" else typer.colors.YELLOW
    typer.secho(payload.get("message", ""), fg=color)
    reading = payload.get("reading")
    if reading:
        echo_key_values(
            [
                ("id", reading.get("id")),
                ("value", reading.get("value")),
                ("recordedAt", reading.get("recordedAt")),
                ("derived", reading.get("derived")),
            ]
        )


def render_day(day: str, payload: Dict[str, Any]) -> None:
    echo_heading(f"{day}  consumed: {payload.get('daySummary')}")
    logs = payload.get("logs") or []
    if not logs:
        typer.echo("  No readings.")
        return
    for entry in logs:
        typer.echo(f"  - {entry.get('time')}  {entry.get('value')}")


def render_summary_all(payload: Dict[str, Any]) -> None:
    if not payload:
        typer.echo("No readings logged yet.")
        return
    for index, (day, summary) in enumerate(payload.items()):
        if index:
            typer.echo()
        render_day(day, summary)


def render_chart(points: List[Dict[str, Any]]) -> None:
    echo_heading("Daily consumption")
    if not points:
        typer.echo("No readings logged yet.")
        return
    for point in points:
        typer.echo(f"{point.get('date')}: {point.get('daySummary')}")
