from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_day, render_ingestion, render_summary_all


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the scale log service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("log")
def log_command(
    ctx: typer.Context,
    value: float = typer.Argument(..., help="Reading value to record."),
    at: Optional[str] = typer.Option(
        None,
        "--at",
        help="ISO-8601 timestamp of the reading (defaults to now on the server).",
    ),
) -> None:
    """Record a reading as if the device had posted it."""
    state = _get_state(ctx)
    render_ingestion(state.client.log_reading(value, recorded_at=at))


@app.command("trigger")
def trigger_command(ctx: typer.Context) -> None:
    """Ask the device for a fresh reading."""
    state = _get_state(ctx)
    typer.echo(f"Requesting a reading via {state.config.base_url} ...")
    render_ingestion(state.client.trigger())


@app.command("summary")
def summary_command(
    ctx: typer.Context,
    day: Optional[str] = typer.Option(
        None,
        "--date",
        "-d",
        help="Day to show as YYYY-MM-DD (defaults to today on the server).",
    ),
) -> None:
    """Show readings and consumption for one day."""
    if day is not None:
        try:
            date.fromisoformat(day)
        except ValueError as exc:
            raise typer.BadParameter(f"{day!r} is not a YYYY-MM-DD date.") from exc
    state = _get_state(ctx)
    render_day(day or "today", state.client.get_summary(day))


@app.command("summary-all")
def summary_all_command(ctx: typer.Context) -> None:
    """Show every day with its readings and consumption."""
    state = _get_state(ctx)
    render_summary_all(state.client.get_summary_all())


@app.command("chart")
def chart_command(ctx: typer.Context) -> None:
    """Show daily consumption totals."""
    state = _get_state(ctx)
    render_chart(state.client.get_chart())
