from __future__ import annotations

import json
from typing import Mapping

import typer

from services.errors import SensorError
from services.exposition import render_directory


def render_directory_json(sensors: Mapping[str, str]) -> None:
    typer.echo(json.dumps(render_directory(sensors), indent=2, ensure_ascii=False))


def render_scrape_error(error: SensorError) -> None:
    typer.secho(f"error fetching data; {error}", fg=typer.colors.RED, err=True)
