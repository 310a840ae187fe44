from __future__ import annotations

from geo.aoi import BBox
from geo.bounds import bounds_of_geometries, coordinate_pairs
from geo.view import camera_for_bounds


def test_bounds_cover_point_and_polygon_outer_ring():
    box = bounds_of_geometries(
        [
            ("Point", [-97.74, 30.27]),
            ("Polygon", [[[-98, 30], [-97, 30], [-97, 31], [-98, 31]]]),
        ]
    )
    assert box == BBox(min_lon=-98, min_lat=30, max_lon=-97, max_lat=31)
    assert box.south_west == (-98, 30)
    assert box.north_east == (-97, 31)


def test_polygon_holes_do_not_contribute():
    pairs = list(
        coordinate_pairs(
            "Polygon",
            [[[0, 0], [1, 0], [1, 1]], [[50, 50], [51, 50], [51, 51]]],
        )
    )
    assert pairs == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]


def test_line_contributes_every_vertex_and_unknown_types_nothing():
    box = bounds_of_geometries(
        [
            ("LineString", [[-100, 29], [-99, 33], [-96, 31]]),
            ("MultiPolygon", [[[[10, 10], [11, 10], [11, 11]]]]),
        ]
    )
    assert box == BBox(min_lon=-100, min_lat=29, max_lon=-96, max_lat=33)


def test_no_geometry_means_no_bounds():
    assert bounds_of_geometries([]) is None
    assert bounds_of_geometries([("MultiPoint", [[1, 2]])]) is None


def test_camera_centers_box_and_zooms_in_for_smaller_boxes():
    wide = BBox(min_lon=-106, min_lat=26, max_lon=-94, max_lat=36)
    small = BBox(min_lon=-98, min_lat=30, max_lon=-97, max_lat=31)
    (lon, lat), z_wide = camera_for_bounds(wide, width=900, height=600, padding=50)
    _, z_small = camera_for_bounds(small, width=900, height=600, padding=50)

    assert abs(lon - (-100.0)) < 1e-6
    # Mercator center sits north of the plain latitude midpoint.
    assert 31.0 < lat < 31.5
    assert z_small > z_wide


def test_camera_for_single_point_uses_max_zoom():
    box = BBox(min_lon=-97.74, min_lat=30.27, max_lon=-97.74, max_lat=30.27)
    (lon, lat), zoom = camera_for_bounds(box, width=900, height=600, padding=50, max_zoom=16)
    assert abs(lon - (-97.74)) < 1e-6
    assert abs(lat - 30.27) < 1e-6
    assert zoom == 16
