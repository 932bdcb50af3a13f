from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_timestamp(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def render_record(payload: Dict[str, Any]) -> None:
    typer.echo(f"{format_timestamp(payload.get('timestamp', 0))}")
    values = payload.get("sensorDataValues") or []
    if not values:
        typer.echo("  (no values)")
    for item in values:
        if isinstance(item, dict):
            typer.echo(f"  {item.get('valueType')}: {item.get('value')}")
        else:
            typer.echo(f"  {item}")


def render_records(payload: List[Dict[str, Any]]) -> None:
    echo_heading(f"Records ({len(payload)})")
    for record in payload:
        render_record(record)


def render_chart(payload: Dict[str, Any]) -> None:
    echo_heading("Chart")
    echo_key_values(
        [
            ("field", payload.get("field", "-")),
            ("sensorCount", payload.get("sensorCount")),
            ("responseTime", f"{payload.get('responseTime')} ms"),
        ]
    )
    values = payload.get("values") or []
    if not values:
        typer.echo("No data in the requested window.")
        return
    for timestamp, value in values:
        typer.echo(f"  {format_timestamp(timestamp)}  {value}")


def render_ranking(payload: List[Dict[str, Any]]) -> None:
    echo_heading("Ranking")
    for position, item in enumerate(payload, start=1):
        place = item.get("country")
        if item.get("city"):
            place = f"{item['city']}, {place}"
        typer.echo(f"{position:>3}. {place}: {item.get('count')}")


def render_sensor(payload: Dict[str, Any]) -> None:
    echo_heading(f"Sensor {payload.get('chipId')}")
    echo_key_values(
        [
            ("position", f"{payload.get('gpsLatitude')}, {payload.get('gpsLongitude')}"),
            ("country", payload.get("country")),
            ("city", payload.get("city")),
            ("indoor", payload.get("indoor")),
            ("firmware", payload.get("firmwareVersion")),
        ]
    )
