"""Combine oracle answers into one ETA row per origin."""

from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence

from ...models.domain import ETARecord, Origin

DEFAULT_WALK_SPEED_KMH = 4.0


def road_eta(durations: Sequence[Optional[float]]) -> float:
    """Shortest duration in a table row; missing routes count as unreachable."""
    return min((value if value is not None else math.inf for value in durations), default=math.inf)


def walk_seconds(distance_m: float, walk_speed_kmh: float = DEFAULT_WALK_SPEED_KMH) -> float:
    """Time to walk from an origin to the road it was snapped onto.

    The walk speed is converted to metres per second and applied as a
    multiplier, so a 50 m snap at 4 km/h adds about 55.6 s.
    """
    return distance_m * (walk_speed_kmh * 1000.0 / 3600.0)


def aggregate(
    origins: Sequence[Origin],
    nearest_distances: Sequence[float],
    durations_by_type: Mapping[str, Sequence[Sequence[Optional[float]]]],
    walk_speed_kmh: float = DEFAULT_WALK_SPEED_KMH,
) -> list[ETARecord]:
    """Build one :class:`ETARecord` per origin, in origin order.

    ``nearest_distances[i]`` and row ``i`` of every matrix must belong to ``origins[i]``.
    """
    if len(nearest_distances) != len(origins):
        raise ValueError(f"Expected {len(origins)} nearest distances, got {len(nearest_distances)}.")
    for poi_type, rows in durations_by_type.items():
        if len(rows) != len(origins):
            raise ValueError(f"Expected {len(origins)} duration rows for '{poi_type}', got {len(rows)}.")

    records: list[ETARecord] = []
    for idx, origin in enumerate(origins):
        last_mile = walk_seconds(nearest_distances[idx], walk_speed_kmh)
        poi = {poi_type: road_eta(rows[idx]) + last_mile for poi_type, rows in durations_by_type.items()}
        records.append(
            ETARecord(
                properties=dict(origin.properties),
                latitude=origin.latitude,
                longitude=origin.longitude,
                poi=poi,
            )
        )
    return records
