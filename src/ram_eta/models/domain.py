"""Domain models for admin areas, origins, points of interest and ETA rows."""

from dataclasses import dataclass, field
from typing import Any, Optional

from shapely.geometry.base import BaseGeometry


@dataclass(slots=True)
class AdminArea:
    """A named polygon whose interior origins are analysed."""

    area_id: Any
    name: str
    geometry: BaseGeometry
    properties: dict = field(default_factory=dict)


@dataclass(slots=True)
class Origin:
    """A populated place to compute travel times from."""

    longitude: float
    latitude: float
    properties: dict = field(default_factory=dict)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class POI:
    """A categorised destination."""

    poi_type: str
    longitude: float
    latitude: float
    properties: dict = field(default_factory=dict)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class ETARecord:
    """Origin properties plus the travel time in seconds to each POI type.

    Unreachable types carry ``math.inf``.
    """

    properties: dict
    latitude: float
    longitude: float
    poi: dict[str, float]

    def as_dict(self) -> dict:
        return {
            **self.properties,
            "lat": self.latitude,
            "lon": self.longitude,
            "poi": dict(self.poi),
        }


@dataclass(slots=True)
class AreaResult:
    """ETA rows produced for one admin area."""

    area_id: Any
    name: str
    properties: dict
    records: list[ETARecord]
    square_count: Optional[int] = None
    elapsed_seconds: float = 0.0
