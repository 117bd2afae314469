"""Grow a time-based buffer around a work area until enough POIs fall inside."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from shapely.geometry.base import BaseGeometry

from ...models.domain import POI
from ..geospatial import buffer_km, points_within

DEFAULT_MIN_CANDIDATES = 4
DEFAULT_STEP_SECONDS = 900.0

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CandidateSearch:
    pois: list[POI]
    time_seconds: float
    iterations: int
    exhausted: bool = False


def budget_to_distance_km(time_seconds: float, speed_kmh: float) -> float:
    return (time_seconds / 3600.0) * speed_kmh


def find_candidate_pois(
    work_area: BaseGeometry,
    pois: Sequence[POI],
    time_seconds: float,
    speed_kmh: float,
    *,
    min_candidates: int = DEFAULT_MIN_CANDIDATES,
    step_seconds: float = DEFAULT_STEP_SECONDS,
    max_iterations: Optional[int] = None,
) -> CandidateSearch:
    """Select the POIs reachable around ``work_area``, widening the radius until at least
    ``min(len(pois), min_candidates)`` are found.

    When ``max_iterations`` buffers have been tried without reaching the minimum
    the whole category is returned and the result is flagged ``exhausted``.
    """
    if step_seconds <= 0:
        raise ValueError("step_seconds must be positive")

    required = min(len(pois), min_candidates)
    budget = time_seconds
    iterations = 0
    while True:
        iterations += 1
        distance = budget_to_distance_km(budget, speed_kmh)
        selected = points_within(buffer_km(work_area, distance), pois)
        if len(selected) >= required:
            return CandidateSearch(pois=selected, time_seconds=budget, iterations=iterations)
        if max_iterations is not None and iterations >= max_iterations:
            logger.warning(
                f"Buffer search stopped after {iterations} steps ({distance:.1f} km) with "
                f"{len(selected)}/{required} POIs; using all {len(pois)}"
            )
            return CandidateSearch(pois=list(pois), time_seconds=budget, iterations=iterations, exhausted=True)
        budget += step_seconds
