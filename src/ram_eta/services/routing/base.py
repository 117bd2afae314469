"""Contract for routing oracles consumed by the ETA engine."""

from __future__ import annotations

from typing import Protocol, Sequence

LatLon = tuple[float, float]


class RoutingOracle(Protocol):
    """Road-network engine answering snap-distance and duration-matrix queries.

    Points are ``(lat, lon)`` tuples.
    """

    def nearest(self, point: LatLon) -> dict:
        """Return ``{"distance": metres}`` from ``point`` to the closest routable edge."""
        ...

    def table(self, sources: Sequence[LatLon], destinations: Sequence[LatLon]) -> dict:
        """Return ``{"durations": rows}`` with one row per source and one column per destination.

        ``None`` entries mean no route exists.
        """
        ...
