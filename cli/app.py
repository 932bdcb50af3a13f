from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_ranking, render_record, render_records, render_sensor


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query particulate matter measurements from the API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for a response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("records")
def records_command(
    ctx: typer.Context,
    chip_id: Optional[int] = typer.Argument(None, help="Chip-ID of the sensor."),
    country: Optional[str] = typer.Option(None, "--country", help="Query a whole country instead."),
    city: Optional[str] = typer.Option(None, "--city", help="Narrow a country query to a city."),
    from_ts: int = typer.Option(0, "--from", help="Window start in ms (0 = default window)."),
    to_ts: int = typer.Option(0, "--to", help="Window end in ms (0 = now)."),
    compressed: bool = typer.Option(False, "--compressed/--full", help="Drop value labels."),
) -> None:
    """List the records of a sensor, a country or a city."""
    state = _get_state(ctx)
    if country:
        payload = state.client.get_scope_records(country, city, from_ts, to_ts)
    elif chip_id is not None:
        payload = state.client.get_records(chip_id, from_ts, to_ts, compressed)
    else:
        raise typer.BadParameter("Provide a chip id or --country.")
    render_records(payload)


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    chip_id: int = typer.Argument(..., help="Chip-ID of the sensor."),
) -> None:
    """Show the latest record of a sensor."""
    state = _get_state(ctx)
    render_record(state.client.get_latest(chip_id))


@app.command("average")
def average_command(
    ctx: typer.Context,
    chip_ids: List[int] = typer.Argument(..., help="Chip-IDs to average over."),
) -> None:
    """Average the latest values of several sensors."""
    state = _get_state(ctx)
    render_record(state.client.get_average(chip_ids))


@app.command("chart")
def chart_command(
    ctx: typer.Context,
    chip_id: Optional[int] = typer.Option(None, "--chip-id"),
    country: Optional[str] = typer.Option(None, "--country"),
    city: Optional[str] = typer.Option(None, "--city"),
    from_ts: int = typer.Option(0, "--from"),
    to_ts: int = typer.Option(0, "--to"),
    field_index: int = typer.Option(0, "--field-index"),
    merge_count: int = typer.Option(1, "--merge-count", help="Records merged per point (single sensor)."),
    granularity: int = typer.Option(60, "--granularity", help="Bucket width in minutes (country/city)."),
) -> None:
    """Fetch a chart series for one field."""
    state = _get_state(ctx)
    if chip_id is None and country is None:
        raise typer.BadParameter("Provide --chip-id or --country.")
    params = {
        "from": from_ts,
        "to": to_ts,
        "fieldIndex": field_index,
    }
    if country is not None:
        params.update({"country": country, "city": city, "granularity": granularity})
    else:
        params.update({"chipId": chip_id, "mergeCount": merge_count})
    render_chart(state.client.get_chart(params))


@app.command("ranking")
def ranking_command(
    ctx: typer.Context,
    scope: str = typer.Argument("country", help="Either 'city' or 'country'."),
    items: int = typer.Option(10, "--items", "-n"),
) -> None:
    """Rank cities or countries by their number of sensors."""
    if scope not in {"city", "country"}:
        raise typer.BadParameter("Scope must be 'city' or 'country'.")
    state = _get_state(ctx)
    render_ranking(state.client.get_ranking(scope, items))


@app.command("sensor")
def sensor_command(
    ctx: typer.Context,
    chip_id: int = typer.Argument(..., help="Chip-ID of the sensor."),
) -> None:
    """Show the metadata of a sensor."""
    state = _get_state(ctx)
    render_sensor(state.client.get_sensor(chip_id))
