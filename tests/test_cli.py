from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.calls: List[tuple] = []
        self.record_payload: Dict[str, Any] = {
            "timestamp": 1_700_000_000_000,
            "sensorDataValues": [
                {"valueType": "P1", "value": 10.0},
                {"valueType": "P2", "value": 5.0},
            ],
        }
        self.chart_payload: Dict[str, Any] = {
            "values": [[1_700_000_000_000, 15.0], [1_700_003_600_000, 40.0]],
            "field": "P1",
            "responseTime": 3,
            "sensorCount": 2,
        }
        self.closed = False

    def get_records(self, chip_id: int, from_ts: int = 0, to_ts: int = 0, compressed: bool = False) -> List[Any]:
        self.calls.append(("records", chip_id, from_ts, to_ts, compressed))
        return [self.record_payload]

    def get_scope_records(
        self, country: str, city: Optional[str] = None, from_ts: int = 0, to_ts: int = 0
    ) -> List[Any]:
        self.calls.append(("scope", country, city, from_ts, to_ts))
        return [{"timestamp": 1_700_000_000_000, "sensorDataValues": [10.0, 5.0]}]

    def get_latest(self, chip_id: int) -> Dict[str, Any]:
        self.calls.append(("latest", chip_id))
        return self.record_payload

    def get_average(self, chip_ids: Sequence[int]) -> Dict[str, Any]:
        self.calls.append(("average", list(chip_ids)))
        return self.record_payload

    def get_chart(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("chart", params))
        return self.chart_payload

    def get_ranking(self, scope: str, items: int) -> List[Dict[str, Any]]:
        self.calls.append(("ranking", scope, items))
        return [{"country": "Germany", "city": "Berlin", "count": 42}]

    def get_sensor(self, chip_id: int) -> Dict[str, Any]:
        self.calls.append(("sensor", chip_id))
        return {
            "chipId": chip_id,
            "gpsLatitude": 52.52,
            "gpsLongitude": 13.405,
            "country": "Germany",
            "city": "Berlin",
            "indoor": False,
            "firmwareVersion": "NRZ-2020-129",
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_records_of_chip(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["records", "1234", "--from", "5", "--to", "10", "--compressed"])

    assert result.exit_code == 0
    assert "Records (1)" in result.stdout
    assert "2023-11-14T22:13:20Z" in result.stdout
    assert "P1: 10.0" in result.stdout
    assert stub.calls == [("records", 1234, 5, 10, True)]
    assert stub.closed is True


def test_records_of_city(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["records", "--country", "Germany", "--city", "Berlin"])

    assert result.exit_code == 0
    assert stub.calls == [("scope", "Germany", "Berlin", 0, 0)]


def test_records_requires_a_scope(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["records"])

    assert result.exit_code != 0
    assert stub.calls == []


def test_latest_and_average(stub: StubClient, runner: CliRunner) -> None:
    latest = runner.invoke(app, ["latest", "8"])
    average = runner.invoke(app, ["average", "1", "2", "3"])

    assert latest.exit_code == 0
    assert average.exit_code == 0
    assert "P2: 5.0" in average.stdout
    assert stub.calls == [("latest", 8), ("average", [1, 2, 3])]


def test_chart_for_country_sends_granularity(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["chart", "--country", "Germany", "--granularity", "30"])

    assert result.exit_code == 0
    assert "field: P1" in result.stdout
    assert "sensorCount: 2" in result.stdout
    assert "40.0" in result.stdout
    params = stub.calls[0][1]
    assert params["country"] == "Germany"
    assert params["granularity"] == 30
    assert "mergeCount" not in params


def test_chart_for_chip_sends_merge_count(stub: StubClient, runner: CliRunner) -> None:
    stub.chart_payload = {"responseTime": 1, "sensorCount": 1}

    result = runner.invoke(app, ["chart", "--chip-id", "7", "--merge-count", "5"])

    assert result.exit_code == 0
    assert "No data in the requested window." in result.stdout
    params = stub.calls[0][1]
    assert (params["chipId"], params["mergeCount"]) == (7, 5)
    assert "granularity" not in params


def test_ranking_and_sensor(stub: StubClient, runner: CliRunner) -> None:
    ranking = runner.invoke(app, ["ranking", "city", "-n", "3"])
    sensor = runner.invoke(app, ["sensor", "42"])
    bad_scope = runner.invoke(app, ["ranking", "planet"])

    assert "1. Berlin, Germany: 42" in ranking.stdout
    assert "Sensor 42" in sensor.stdout
    assert "firmware: NRZ-2020-129" in sensor.stdout
    assert bad_scope.exit_code != 0
    assert stub.calls == [("ranking", "city", 3), ("sensor", 42)]


def test_base_url_option_reaches_client(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["--base-url", "http://api.example:9000/", "latest", "1"])

    assert result.exit_code == 0
    assert stub.config.base_url == "http://api.example:9000"


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://env-host:8080")
    monkeypatch.setenv("CLI_REQUEST_TIMEOUT", "not-a-number")

    config = load_config()

    assert config == CLIConfig(base_url="http://env-host:8080", timeout=30.0)


def _client_with(handler) -> ApiClient:
    client = ApiClient(CLIConfig(base_url="http://testserver"))
    client._client = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler))
    return client


def test_api_client_sends_query_parameters() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = _client_with(handler)
    client.get_records(1234, compressed=True)
    client.get_average([1, 2])
    client.close()

    assert seen[0].url.path == "/data/1234"
    assert "compressed" in seen[0].url.params
    assert seen[1].url.params["chipIds"] == "1,2"


def test_api_client_reports_error_detail(capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        detail = {"error": "SensorNotExisting", "description": "Sensor 9 does not exist."}
        return httpx.Response(404, json={"detail": detail})

    client = _client_with(handler)

    with pytest.raises(typer.Exit):
        client.get_latest(9)
    client.close()

    assert "404: SensorNotExisting" in capsys.readouterr().err
