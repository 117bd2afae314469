"""Geospatial helper functions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, TypeVar

from pyproj import CRS, Transformer
from shapely import prepare, transform
from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

EARTH_RADIUS_KM = 6371.0
WGS84 = CRS.from_epsg(4326)

PointLike = TypeVar("PointLike")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


@dataclass(slots=True)
class GridCell:
    """Square tile of a grid laid over a bounding box.

    Ownership is half-open (``min <= x < max``) except on the grid's outer
    east/north edges, so every point inside the grid belongs to one cell.
    """

    index: int
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float
    closed_east: bool = False
    closed_north: bool = False

    @property
    def polygon(self) -> BaseGeometry:
        return box(self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def owns(self, lon: float, lat: float) -> bool:
        in_lon = self.min_lon <= lon < self.max_lon or (self.closed_east and lon == self.max_lon)
        in_lat = self.min_lat <= lat < self.max_lat or (self.closed_north and lat == self.max_lat)
        return in_lon and in_lat


def square_grid(bounds: Sequence[float], cell_size_km: float) -> list[GridCell]:
    """Cover ``(min_lon, min_lat, max_lon, max_lat)`` with square cells of ``cell_size_km``.

    The side in degrees is derived from the bbox's southern edge (longitude)
    and western edge (latitude). Column and row counts round up so the grid
    always covers the bbox; the overhang is split evenly on both sides.
    """
    if cell_size_km <= 0:
        raise ValueError("cell_size_km must be positive")

    west, south, east, north = bounds
    width_deg = east - west
    height_deg = north - south
    width_km = haversine_km(south, west, south, east)
    height_km = haversine_km(south, west, north, west)

    cell_width_deg = width_deg * cell_size_km / width_km if width_km > 0 else width_deg or 1e-9
    cell_height_deg = height_deg * cell_size_km / height_km if height_km > 0 else height_deg or 1e-9

    columns = max(1, math.ceil(round(width_deg / cell_width_deg, 9)))
    rows = max(1, math.ceil(round(height_deg / cell_height_deg, 9)))

    start_lon = west - (columns * cell_width_deg - width_deg) / 2
    start_lat = south - (rows * cell_height_deg - height_deg) / 2

    cells: list[GridCell] = []
    for column in range(columns):
        min_lon = start_lon + column * cell_width_deg
        max_lon = start_lon + (column + 1) * cell_width_deg
        # Float drift must never leave the bbox edges uncovered.
        if column == 0:
            min_lon = min(min_lon, west)
        if column == columns - 1:
            max_lon = max(max_lon, east)
        for row in range(rows):
            min_lat = start_lat + row * cell_height_deg
            max_lat = start_lat + (row + 1) * cell_height_deg
            if row == 0:
                min_lat = min(min_lat, south)
            if row == rows - 1:
                max_lat = max(max_lat, north)
            cells.append(
                GridCell(
                    index=len(cells),
                    min_lon=min_lon,
                    min_lat=min_lat,
                    max_lon=max_lon,
                    max_lat=max_lat,
                    closed_east=column == columns - 1,
                    closed_north=row == rows - 1,
                )
            )
    return cells


def buffer_km(geometry: BaseGeometry, distance_km: float) -> BaseGeometry:
    """Buffer a lon/lat geometry by a distance in kilometres.

    The buffer is built in an azimuthal equidistant projection centred on the
    geometry, so the distance holds in every direction.
    """
    if distance_km <= 0:
        return geometry

    centre = geometry.centroid
    local = CRS.from_proj4(
        f"+proj=aeqd +lat_0={centre.y} +lon_0={centre.x} +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
    )
    to_local = Transformer.from_crs(WGS84, local, always_xy=True).transform
    to_wgs = Transformer.from_crs(local, WGS84, always_xy=True).transform

    buffered = transform(geometry, to_local, interleaved=False).buffer(distance_km * 1000.0)
    return transform(buffered, to_wgs, interleaved=False)


def points_within(area: BaseGeometry, points: Iterable[PointLike]) -> list[PointLike]:
    """Return the points (objects with ``longitude``/``latitude``) covered by ``area``, in input order."""

    prepare(area)
    return [item for item in points if area.covers(Point(item.longitude, item.latitude))]
