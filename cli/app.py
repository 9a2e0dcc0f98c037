from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from typing import List, Optional

import typer
import uvicorn

from app.main import create_app
from cli.render import render_directory_json, render_scrape_error
from logging_config import configure_logging
from models.records import BatchResult
from services.aggregator import Aggregator
from services.errors import SensorError
from services.exposition import render_metrics
from services.sensor_client import SensorClient, build_http_client
from settings import Settings, get_settings, parse_bind_addr, parse_sensor_assignments


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Prometheus exporter for Awair local air-data sensors.",
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
    sensor: Optional[List[str]] = typer.Option(
        None,
        "--sensor",
        "-s",
        help="Sensor as NAME=ADDRESS; repeat for each sensor (defaults to AWAIR_SENSORS env).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Root log level (defaults to LOG_LEVEL env or INFO).",
    ),
    hide_log: bool = typer.Option(
        False,
        "--hide-log",
        help="Suppress all log output.",
    ),
    hide_log_date: bool = typer.Option(
        False,
        "--hide-log-date",
        help="Omit the date from log output.",
    ),
    hide_log_file: bool = typer.Option(
        False,
        "--hide-log-file",
        help="Omit the source file from log output.",
    ),
) -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    overrides: dict[str, object] = {}
    if sensor:
        try:
            overrides["sensors"] = parse_sensor_assignments(sensor)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--sensor") from exc
    if log_level:
        overrides["log_level"] = log_level.strip().upper()
    if hide_log:
        overrides["hide_log"] = True
    if hide_log_date:
        overrides["hide_log_date"] = True
    if hide_log_file:
        overrides["hide_log_file"] = True
    ctx.obj = CLIState(settings=dataclasses.replace(settings, **overrides))


@app.command("serve")
def serve_command(
    ctx: typer.Context,
    bind_addr: Optional[str] = typer.Option(
        None,
        "--bind-addr",
        help="The http server bind address, e.g. 127.0.0.1:8081 (defaults to BIND_ADDR env).",
    ),
) -> None:
    """Serve the exporter over HTTP."""
    state = _get_state(ctx)
    address = bind_addr or state.settings.bind_addr
    try:
        host, port = parse_bind_addr(address)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--bind-addr") from exc

    settings = dataclasses.replace(state.settings, bind_addr=address)
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None, access_log=False)


async def _poll_once(settings: Settings) -> BatchResult:
    client = SensorClient(build_http_client(settings))
    try:
        return await Aggregator(client=client, sensors=settings.sensors).aggregate()
    finally:
        await client.aclose()


@app.command("poll")
def poll_command(ctx: typer.Context) -> None:
    """Scrape every sensor once and print the exposition text."""
    state = _get_state(ctx)
    configure_logging(state.settings)
    try:
        batch = asyncio.run(_poll_once(state.settings))
    except SensorError as exc:
        render_scrape_error(exc)
        raise typer.Exit(code=1) from exc
    typer.echo(render_metrics(batch), nl=False)


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """Print the configured sensor directory as JSON."""
    state = _get_state(ctx)
    render_directory_json(state.settings.sensors)
