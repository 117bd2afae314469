"""Utilities to serialize ETA results into CSV/GeoJSON/JSON artifacts."""

from __future__ import annotations

import csv
import io
import math
from typing import Optional, Sequence

from ...models.domain import AreaResult


def _eta_value(value: float) -> Optional[float]:
    return None if math.isinf(value) else value


def _rounded_eta(value: float) -> Optional[int]:
    return None if math.isinf(value) else round(value)


def _poi_types(results: Sequence[AreaResult]) -> list[str]:
    types: set[str] = set()
    for area in results:
        for record in area.records:
            types.update(record.poi)
    return sorted(types)


def results_to_csv(results: Sequence[AreaResult]) -> str:
    """One row per origin: origin properties, coordinates, admin area and ``poi.<type>`` columns."""
    rows = [(area, record) for area in results for record in area.records]
    if not rows:
        return ""

    property_fields: dict[str, None] = {}
    for _, record in rows:
        property_fields.update(dict.fromkeys(record.properties))
    for reserved in ("lat", "lon", "admin_area"):
        property_fields.pop(reserved, None)
    poi_types = _poi_types(results)
    fieldnames = list(property_fields) + ["lat", "lon", "admin_area"] + [f"poi.{name}" for name in poi_types]

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    for area, record in rows:
        row = {
            **record.properties,
            "lat": record.latitude,
            "lon": record.longitude,
            "admin_area": area.name,
        }
        for name in poi_types:
            value = record.poi.get(name)
            row[f"poi.{name}"] = "" if value is None else _rounded_eta(value)
        writer.writerow(row)
    return buffer.getvalue()


def results_to_geojson(results: Sequence[AreaResult]) -> dict:
    features = []
    for area in results:
        for record in area.records:
            properties = {
                "id": record.properties.get("id"),
                "name": record.properties.get("name"),
                "pop": record.properties.get("population"),
                "admin_area": area.name,
            }
            for poi_type, value in record.poi.items():
                properties[f"eta-{poi_type}"] = _eta_value(value)
            features.append(
                {
                    "type": "Feature",
                    "properties": properties,
                    "geometry": {"type": "Point", "coordinates": [record.longitude, record.latitude]},
                }
            )
    return {"type": "FeatureCollection", "features": features}


def results_to_json(results: Sequence[AreaResult]) -> list[dict]:
    payload = []
    for area in results:
        rows = []
        for record in area.records:
            row = record.as_dict()
            row["poi"] = {poi_type: _eta_value(value) for poi_type, value in record.poi.items()}
            rows.append(row)
        payload.append({"id": area.area_id, "name": area.name, "results": rows})
    return payload
