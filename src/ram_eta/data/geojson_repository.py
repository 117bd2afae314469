"""Load admin areas, origins and POIs from GeoJSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Union

from shapely.geometry import shape

from ..models.domain import AdminArea, Origin, POI

logger = logging.getLogger(__name__)

GeoJSONSource = Union[Path, str, Mapping[str, Any]]


def load_feature_collection(source: GeoJSONSource) -> dict:
    """Return a FeatureCollection dict from a path or an already parsed object."""

    if isinstance(source, Mapping):
        data = dict(source)
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"GeoJSON file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)

    if data.get("type") != "FeatureCollection" or not isinstance(data.get("features"), list):
        raise ValueError("Expected a GeoJSON FeatureCollection.")
    return data


def _array_depth(value: Any) -> int:
    depth = 0
    while isinstance(value, (list, tuple)):
        depth += 1
        value = value[0] if value else None
    return depth


def geometry_type_from_coordinates(coordinates: Any) -> str:
    """Infer Polygon or MultiPolygon from the nesting of a bare coordinate array."""
    match _array_depth(coordinates):
        case 3:
            return "Polygon"
        case 4:
            return "MultiPolygon"
        case _:
            raise ValueError("Malformed coordinates array. Expected Polygon or MultiPolygon.")


def parse_admin_areas(source: GeoJSONSource) -> list[AdminArea]:
    collection = load_feature_collection(source)
    areas: list[AdminArea] = []
    for idx, feature in enumerate(collection["features"]):
        properties = dict(feature.get("properties") or {})
        geometry_data = feature.get("geometry") or {}
        if "type" not in geometry_data and "coordinates" in geometry_data:
            geometry_data = {
                "type": geometry_type_from_coordinates(geometry_data["coordinates"]),
                "coordinates": geometry_data["coordinates"],
            }
        if geometry_data.get("type") not in {"Polygon", "MultiPolygon"}:
            raise ValueError(f"Admin area {idx} must be a Polygon or MultiPolygon, got {geometry_data.get('type')}.")

        geometry = shape(geometry_data)
        if not geometry.is_valid:
            logger.warning(f"Admin area {idx} has an invalid outline; repairing it")
            geometry = geometry.buffer(0)

        area_id = properties.get("id", feature.get("id", idx))
        areas.append(
            AdminArea(
                area_id=area_id,
                name=str(properties.get("name") or area_id),
                geometry=geometry,
                properties=properties,
            )
        )
    return areas


def _points(source: GeoJSONSource, label: str) -> list[tuple[float, float, dict]]:
    collection = load_feature_collection(source)
    points: list[tuple[float, float, dict]] = []
    for idx, feature in enumerate(collection["features"]):
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Point":
            raise ValueError(f"{label} {idx} must be a Point, got {geometry.get('type')}.")
        lon, lat = geometry["coordinates"][:2]
        points.append((float(lon), float(lat), dict(feature.get("properties") or {})))
    return points


def parse_origins(source: GeoJSONSource) -> list[Origin]:
    return [Origin(longitude=lon, latitude=lat, properties=props) for lon, lat, props in _points(source, "Origin")]


def parse_pois(source: GeoJSONSource, poi_type: str) -> list[POI]:
    return [
        POI(poi_type=poi_type, longitude=lon, latitude=lat, properties=props)
        for lon, lat, props in _points(source, f"POI '{poi_type}'")
    ]


def parse_pois_by_type(sources: Mapping[str, GeoJSONSource]) -> dict[str, list[POI]]:
    """Index POI collections by type, one FeatureCollection per type."""
    return {poi_type: parse_pois(source, poi_type) for poi_type, source in sources.items()}
