from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the particulate matter API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_records(
        self, chip_id: int, from_ts: int = 0, to_ts: int = 0, compressed: bool = False
    ) -> List[Any]:
        params: Dict[str, Any] = {"from": from_ts, "to": to_ts}
        if compressed:
            params["compressed"] = ""
        return self._get(f"/data/{chip_id}", params)

    def get_latest(self, chip_id: int) -> Dict[str, Any]:
        return self._get(f"/data/{chip_id}/latest")

    def get_average(self, chip_ids: Sequence[int]) -> Dict[str, Any]:
        return self._get("/data/average", {"chipIds": ",".join(str(c) for c in chip_ids)})

    def get_scope_records(
        self, country: str, city: Optional[str] = None, from_ts: int = 0, to_ts: int = 0
    ) -> List[Any]:
        path = f"/data/city/{country}/{city}" if city else f"/data/country/{country}"
        return self._get(path, {"from": from_ts, "to": to_ts})

    def get_chart(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._get("/data/chart", {k: v for k, v in params.items() if v is not None})

    def get_ranking(self, scope: str, items: int) -> List[Dict[str, Any]]:
        return self._get(f"/ranking/{scope}", {"items": items})

    def get_sensor(self, chip_id: int) -> Dict[str, Any]:
        return self._get(f"/sensor/{chip_id}")

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            detail = exc.response.json().get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            detail = f"{detail.get('error')}: {detail.get('description')}"
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
