"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ..eta.errors import OracleQueryError
from .base import LatLon

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class OSRMClient:
    """Routing oracle backed by an OSRM HTTP server.

    Every area worker builds its own instance; an instance is never shared
    across processes.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_coordinates_per_request: int | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.max_coordinates_per_request = (
            max_coordinates_per_request
            if max_coordinates_per_request is not None
            else settings.osrm_max_coordinates_per_request
        )
        if self.max_coordinates_per_request < 2:
            raise ValueError("max_coordinates_per_request must allow at least one source and one destination.")
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is not None:
            return self._client
        # Square tasks run on a thread pool, so each call gets its own client.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
        )

    def _request(self, service: str, coordinates: Sequence[LatLon], params: dict) -> dict:
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/{service}/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    if response.status_code in RETRYABLE_STATUS_CODES:
                        response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok":
                        raise OracleQueryError(
                            f"OSRM {service} request failed: {data.get('code')} - {data.get('message', 'no message')}"
                        )
                    return data
                except (httpx.TimeoutException, httpx.NetworkError, httpx.HTTPStatusError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise OracleQueryError(
                            f"OSRM {service} request to {self.base_url} failed after {attempt} attempts: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM {service} error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    time.sleep(wait_time)
                except ValueError as exc:
                    raise OracleQueryError(f"OSRM {service} returned an unreadable response: {exc}") from exc
        finally:
            if client is not self._client:
                client.close()

    def nearest(self, point: LatLon) -> dict:
        """Distance in metres from ``point`` to the road it snaps to."""
        data = self._request("nearest", [point], {"number": 1})
        waypoints = data.get("waypoints") or []
        if not waypoints or "distance" not in waypoints[0]:
            raise OracleQueryError("OSRM nearest response has no waypoint distance.")
        return {"distance": waypoints[0]["distance"]}

    def _table_single_request(self, sources: Sequence[LatLon], destinations: Sequence[LatLon]) -> list[list]:
        coordinates = list(sources) + list(destinations)
        params = {
            "annotations": "duration",
            "sources": ";".join(str(i) for i in range(len(sources))),
            "destinations": ";".join(str(i) for i in range(len(sources), len(coordinates))),
        }
        data = self._request("table", coordinates, params)
        durations = data.get("durations")
        if (
            not isinstance(durations, list)
            or len(durations) != len(sources)
            or any(len(row) != len(destinations) for row in durations)
        ):
            raise OracleQueryError(
                f"OSRM table response does not match the {len(sources)}x{len(destinations)} request."
            )
        return durations

    def table(self, sources: Sequence[LatLon], destinations: Sequence[LatLon]) -> dict:
        """Duration matrix in seconds, one row per source, split into URL-sized chunks when needed."""
        if not sources:
            raise ValueError("At least one source is required for OSRM table.")
        if not destinations:
            raise ValueError("At least one destination is required for OSRM table.")

        limit = self.max_coordinates_per_request
        if len(sources) + len(destinations) <= limit:
            return {"durations": self._table_single_request(sources, destinations)}

        destination_chunk = min(len(destinations), max(1, limit // 2))
        source_chunk = max(1, limit - destination_chunk)
        logger.debug(
            f"Chunking OSRM table request: {len(sources)}x{len(destinations)} "
            f"in blocks of {source_chunk}x{destination_chunk}"
        )

        durations: list[list] = []
        for src_start in range(0, len(sources), source_chunk):
            src_block = sources[src_start : src_start + source_chunk]
            rows: list[list] = [[] for _ in src_block]
            for dst_start in range(0, len(destinations), destination_chunk):
                dst_block = destinations[dst_start : dst_start + destination_chunk]
                block = self._table_single_request(src_block, dst_block)
                for row, piece in zip(rows, block):
                    row.extend(piece)
            durations.extend(rows)
        return {"durations": durations}


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by making a minimal table request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
