import warnings

import pytest
from shapely.geometry import Point, box
from shapely.ops import unary_union

from ram_eta.models.domain import Origin
from ram_eta.services.geospatial import buffer_km, haversine_km, points_within, square_grid


def test_haversine_one_degree_of_latitude():
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.05)


def test_square_grid_covers_bbox():
    bounds = (0.0, 0.0, 1.0, 1.0)
    cells = square_grid(bounds, 30)

    # 1 degree at the equator is ~111 km, so 30 km cells need 4 columns and 4 rows.
    assert len(cells) == 16
    assert [cell.index for cell in cells] == list(range(16))
    covered = unary_union([cell.polygon for cell in cells])
    assert covered.covers(box(*bounds))


def test_square_grid_smaller_area_than_cell_yields_one_cell():
    cells = square_grid((10.0, 10.0, 10.05, 10.05), 30)

    assert len(cells) == 1
    assert cells[0].polygon.covers(box(10.0, 10.0, 10.05, 10.05))


def test_square_grid_rejects_non_positive_size():
    with pytest.raises(ValueError):
        square_grid((0.0, 0.0, 1.0, 1.0), 0)


def test_every_point_has_exactly_one_owner():
    cells = square_grid((0.0, 0.0, 1.0, 1.0), 30)
    shared_edge_lon = cells[0].max_lon
    shared_edge_lat = cells[0].max_lat
    probes = [
        (0.0, 0.0),
        (1.0, 1.0),
        (0.5, 0.5),
        (shared_edge_lon, 0.3),
        (0.3, shared_edge_lat),
        (shared_edge_lon, shared_edge_lat),
    ]

    for lon, lat in probes:
        owners = [cell.index for cell in cells if cell.owns(lon, lat)]
        assert len(owners) == 1, (lon, lat, owners)


def test_buffer_km_respects_distance():
    centre = Point(0.0, 0.0)
    buffered = buffer_km(centre, 10)

    assert buffered.covers(Point(0.0, 0.0809))  # ~9 km north
    assert not buffered.covers(Point(0.0, 0.0989))  # ~11 km north
    assert buffered.covers(Point(0.0809, 0.0))  # ~9 km east


def test_buffer_km_zero_distance_returns_geometry():
    area = box(0.0, 0.0, 1.0, 1.0)
    assert buffer_km(area, 0) is area


def test_points_within_keeps_input_order():
    area = box(0.0, 0.0, 1.0, 1.0)
    points = [
        Origin(longitude=0.9, latitude=0.9, properties={"id": "a"}),
        Origin(longitude=2.0, latitude=2.0, properties={"id": "outside"}),
        Origin(longitude=0.1, latitude=0.1, properties={"id": "b"}),
        Origin(longitude=1.0, latitude=0.5, properties={"id": "edge"}),
    ]

    selected = points_within(area, points)

    assert [point.properties["id"] for point in selected] == ["a", "b", "edge"]


def test_buffer_km_polygon_without_deprecation_warnings():
    area = box(10.0, 0.0, 10.1, 0.1)

    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        buffered = buffer_km(area, 5)

    assert buffered.geom_type == "Polygon"
    assert buffered.covers(area)
    assert buffered.covers(Point(10.1 + 0.04, 0.05))  # ~4.5 km east of the edge
    assert not buffered.covers(Point(10.1 + 0.06, 0.05))  # ~6.7 km east of the edge
