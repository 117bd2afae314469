import json
from pathlib import Path

import pytest

from ram_eta.data.geojson_repository import (
    geometry_type_from_coordinates,
    load_feature_collection,
    parse_admin_areas,
    parse_origins,
    parse_pois_by_type,
)

SQUARE = [[[10.0, 0.0], [10.1, 0.0], [10.1, 0.1], [10.0, 0.1], [10.0, 0.0]]]


def _collection(*features) -> dict:
    return {"type": "FeatureCollection", "features": list(features)}


def _point(lon: float, lat: float, **properties) -> dict:
    return {"type": "Feature", "properties": properties, "geometry": {"type": "Point", "coordinates": [lon, lat]}}


def test_load_from_file(tmp_path: Path):
    path = tmp_path / "origins.geojson"
    path.write_text(json.dumps(_collection(_point(10.0, 0.0, id="O1"))), encoding="utf-8")

    assert parse_origins(path)[0].properties == {"id": "O1"}
    assert parse_origins(str(path))[0].longitude == 10.0


def test_missing_file_and_wrong_type():
    with pytest.raises(FileNotFoundError):
        load_feature_collection("does-not-exist.geojson")
    with pytest.raises(ValueError):
        load_feature_collection({"type": "Feature", "geometry": None})


def test_admin_areas_ids_and_names():
    areas = parse_admin_areas(
        _collection(
            {"type": "Feature", "properties": {"id": 7, "name": "Kaya"}, "geometry": {"type": "Polygon", "coordinates": SQUARE}},
            {"type": "Feature", "id": "f-2", "properties": {}, "geometry": {"type": "MultiPolygon", "coordinates": [SQUARE]}},
            {"type": "Feature", "geometry": {"coordinates": SQUARE}},
        )
    )

    assert [(area.area_id, area.name) for area in areas] == [(7, "Kaya"), ("f-2", "f-2"), (2, "2")]
    assert areas[1].geometry.geom_type == "MultiPolygon"
    assert areas[2].geometry.geom_type == "Polygon"


def test_admin_areas_reject_points():
    with pytest.raises(ValueError):
        parse_admin_areas(_collection(_point(10.0, 0.0)))


def test_invalid_outline_is_repaired():
    bow_tie = [[[0.0, 0.0], [1.0, 1.0], [1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]]
    areas = parse_admin_areas(
        _collection({"type": "Feature", "properties": {"name": "Bow"}, "geometry": {"type": "Polygon", "coordinates": bow_tie}})
    )

    assert areas[0].geometry.is_valid


def test_geometry_type_from_coordinates():
    assert geometry_type_from_coordinates(SQUARE) == "Polygon"
    assert geometry_type_from_coordinates([SQUARE]) == "MultiPolygon"
    with pytest.raises(ValueError):
        geometry_type_from_coordinates([10.0, 0.0])


def test_pois_by_type():
    pois = parse_pois_by_type(
        {
            "clinic": _collection(_point(10.06, 0.06, id="C1")),
            "school": _collection(),
        }
    )

    assert pois["clinic"][0].poi_type == "clinic"
    assert pois["clinic"][0].coordinates == (0.06, 10.06)
    assert pois["school"] == []


def test_pois_must_be_points():
    with pytest.raises(ValueError):
        parse_pois_by_type({"clinic": _collection({"type": "Feature", "geometry": {"type": "Polygon", "coordinates": SQUARE}})})
