"""Split admin areas into grid squares clipped to the area outline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shapely.geometry.base import BaseGeometry

from ...models.domain import AdminArea
from ..geospatial import GridCell, square_grid


@dataclass(slots=True)
class WorkUnit:
    """A grid square and the part of the admin area it covers (``None`` when disjoint)."""

    cell: GridCell
    work_area: Optional[BaseGeometry]


def clip_to_area(area_geometry: BaseGeometry, cell: GridCell) -> Optional[BaseGeometry]:
    clipped = area_geometry.intersection(cell.polygon)
    if clipped.is_empty:
        return None
    return clipped


def partition_area(area: AdminArea, grid_size_km: float) -> list[WorkUnit]:
    cells = square_grid(area.geometry.bounds, grid_size_km)
    return [WorkUnit(cell=cell, work_area=clip_to_area(area.geometry, cell)) for cell in cells]
