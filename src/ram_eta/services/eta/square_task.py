"""Compute ETA rows for the origins of a single grid square."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from ...config import Settings
from ...models.domain import ETARecord, Origin, POI
from ...models.messages import WorkerMessage
from ..geospatial import points_within
from ..routing.base import RoutingOracle
from .aggregator import aggregate
from .buffer_search import find_candidate_pois
from .partitioner import WorkUnit

Emit = Callable[[WorkerMessage], None]


@dataclass(slots=True)
class SearchParameters:
    """Numeric knobs shared by every square of a run."""

    max_time_seconds: float = 1800.0
    max_speed_kmh: float = 120.0
    walk_speed_kmh: float = 4.0
    min_candidates: int = 4
    step_seconds: float = 900.0
    max_iterations: Optional[int] = 200

    @classmethod
    def from_settings(cls, config: Settings, **overrides: Any) -> SearchParameters:
        values = {
            "max_time_seconds": config.max_time_seconds,
            "max_speed_kmh": config.max_speed_kmh,
            "walk_speed_kmh": config.walk_speed_kmh,
            "min_candidates": config.poi_min_candidates,
            "step_seconds": config.buffer_step_seconds,
            "max_iterations": config.buffer_max_iterations,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def _noop(message: WorkerMessage) -> None:
    pass


def origins_in_unit(unit: WorkUnit, origins: Sequence[Origin]) -> list[Origin]:
    """Origins owned by the unit's cell and covered by its work area, in input order."""
    if unit.work_area is None:
        return []
    owned = [origin for origin in origins if unit.cell.owns(origin.longitude, origin.latitude)]
    if not owned:
        return []
    return points_within(unit.work_area, owned)


def process_square(
    unit: WorkUnit,
    origins: Sequence[Origin],
    pois_by_type: Mapping[str, Sequence[POI]],
    oracle: RoutingOracle,
    params: SearchParameters,
    *,
    worker_id: Any = None,
    emit: Emit | None = None,
) -> list[ETARecord]:
    """Run the square pipeline: find origins, build POI candidate sets, query the oracle, aggregate.

    Returns an empty list when the square misses the admin area or holds no
    origins. Oracle failures propagate to the caller.
    """
    emit = emit or _noop
    emit(WorkerMessage.debug(worker_id, f"Start square {unit.cell.index} processing."))

    if unit.work_area is None:
        emit(WorkerMessage.square(worker_id, "No intersection"))
        return []

    working_set = origins_in_unit(unit, origins)
    if not working_set:
        emit(WorkerMessage.square(worker_id, "No origins"))
        return []
    emit(WorkerMessage.debug(worker_id, f"Origins in working set: {len(working_set)}"))

    candidates: dict[str, list[POI]] = {}
    for poi_type, pois in pois_by_type.items():
        emit(WorkerMessage.debug(worker_id, f"Total poi of type {poi_type}: {len(pois)}"))
        search = find_candidate_pois(
            unit.work_area,
            pois,
            params.max_time_seconds,
            params.max_speed_kmh,
            min_candidates=params.min_candidates,
            step_seconds=params.step_seconds,
            max_iterations=params.max_iterations,
        )
        emit(
            WorkerMessage.debug(
                worker_id, f"Using {len(search.pois)} pois of type {poi_type}. Time: {search.time_seconds:g}"
            )
        )
        candidates[poi_type] = search.pois

    sources = [origin.coordinates for origin in working_set]

    # One oracle query at a time: the squares of this area already run in parallel.
    nearest_distances = [oracle.nearest(point)["distance"] for point in sources]

    durations_by_type: dict[str, list[list[Optional[float]]]] = {}
    for poi_type, pois in candidates.items():
        if not pois:
            durations_by_type[poi_type] = [[math.inf] for _ in sources]
            continue
        table = oracle.table(sources, [poi.coordinates for poi in pois])
        durations_by_type[poi_type] = table["durations"]

    records = aggregate(working_set, nearest_distances, durations_by_type, params.walk_speed_kmh)
    emit(WorkerMessage.square(worker_id, "Processed"))
    return records
