import httpx
import pytest

from ram_eta.services.eta.errors import OracleQueryError
from ram_eta.services.routing import osrm_client
from ram_eta.services.routing.osrm_client import OSRMClient, check_health


def _client(handler, **kwargs) -> OSRMClient:
    options = {"base_url": "http://osrm.test/", "profile": "driving", "max_retries": 0, "backoff_seconds": 0}
    options.update(kwargs)
    return OSRMClient(client=httpx.Client(transport=httpx.MockTransport(handler)), **options)


def _coordinates(request: httpx.Request) -> list[tuple[float, float]]:
    segment = request.url.path.rsplit("/", 1)[-1]
    return [tuple(float(value) for value in pair.split(",")) for pair in segment.split(";")]


def test_nearest_returns_snap_distance():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"code": "Ok", "waypoints": [{"distance": 42.5, "name": "Main St"}]})

    result = _client(handler).nearest((1.5, 10.25))

    assert result == {"distance": 42.5}
    assert seen[0].url.path == "/nearest/v1/driving/10.25,1.5"
    assert seen[0].url.params["number"] == "1"


def test_table_single_request():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["sources"] == "0;1"
        assert request.url.params["destinations"] == "2"
        return httpx.Response(200, json={"code": "Ok", "durations": [[120.0], [None]]})

    result = _client(handler).table([(0.0, 10.0), (0.1, 10.1)], [(0.2, 10.2)])

    assert result == {"durations": [[120.0], [None]]}


def test_table_chunks_large_requests_and_stitches_rows():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        coordinates = _coordinates(request)
        assert len(coordinates) <= 4
        sources = [coordinates[int(i)] for i in request.url.params["sources"].split(";")]
        destinations = [coordinates[int(i)] for i in request.url.params["destinations"].split(";")]
        calls.append((len(sources), len(destinations)))
        durations = [[src[0] * 1000 + dst[0] for dst in destinations] for src in sources]
        return httpx.Response(200, json={"code": "Ok", "durations": durations})

    # Longitude doubles as an index so every cell can be traced back.
    sources = [(0.0, float(i)) for i in range(5)]
    destinations = [(1.0, float(100 + j)) for j in range(3)]

    result = _client(handler, max_coordinates_per_request=4).table(sources, destinations)

    assert result["durations"] == [[i * 1000 + 100 + j for j in range(3)] for i in range(5)]
    assert len(calls) == 6


def test_non_ok_code_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"code": "InvalidQuery", "message": "Query string malformed"})

    with pytest.raises(OracleQueryError, match="InvalidQuery"):
        _client(handler, max_retries=3).nearest((0.0, 0.0))

    assert len(calls) == 1


def test_server_errors_are_retried_then_raised():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="busy")

    with pytest.raises(OracleQueryError, match="after 3 attempts"):
        _client(handler, max_retries=2).table([(0.0, 0.0)], [(1.0, 1.0)])

    assert len(calls) == 3


def test_timeout_recovers_on_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, json={"code": "Ok", "waypoints": [{"distance": 3.0}]})

    assert _client(handler, max_retries=1).nearest((0.0, 0.0)) == {"distance": 3.0}
    assert len(calls) == 2


def test_malformed_table_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "Ok", "durations": [[1.0]]})

    with pytest.raises(OracleQueryError):
        _client(handler).table([(0.0, 0.0), (0.1, 0.1)], [(1.0, 1.0)])


def test_table_requires_sources_and_destinations():
    client = _client(lambda request: httpx.Response(500))

    with pytest.raises(ValueError):
        client.table([], [(1.0, 1.0)])
    with pytest.raises(ValueError):
        client.table([(1.0, 1.0)], [])


def test_missing_base_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)

    with pytest.raises(ValueError):
        OSRMClient()
    assert check_health() is False


def test_check_health(monkeypatch: pytest.MonkeyPatch):
    def fake_get(url, params=None, timeout=None):
        assert url.startswith("http://osrm.test/table/v1/")
        return httpx.Response(200, json={"code": "Ok", "durations": [[0.0]]}, request=httpx.Request("GET", url))

    monkeypatch.setattr(osrm_client.httpx, "get", fake_get)

    assert check_health("http://osrm.test/") is True
