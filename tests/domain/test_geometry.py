import math

import numpy as np
import pytest

from corridor_map.domain.entities.geography import BoundingBox, Point
from corridor_map.domain.errors import InvalidGeometryError
from corridor_map.domain.geometry import (
    bounding_rectangle,
    closest_point_on_segment,
    densify_parabola,
    distance_to_segment,
    extend_envelope,
    point_in_polygon,
    polygon_area,
    signed_area,
)


def _winding_number(polygon, p) -> int:
    total = 0.0
    n = len(polygon)
    for i in range(n):
        a, b = polygon[i], polygon[(i + 1) % n]
        a0 = math.atan2(a.y - p.y, a.x - p.x)
        a1 = math.atan2(b.y - p.y, b.x - p.x)
        d = a1 - a0
        while d > math.pi:
            d -= 2 * math.pi
        while d < -math.pi:
            d += 2 * math.pi
        total += d
    return round(total / (2 * math.pi))


def _random_star_polygon(rng, n):
    angles = np.sort(rng.uniform(0, 2 * math.pi, size=n))
    radii = rng.uniform(0.5, 3.0, size=n)
    return [Point(float(r * math.cos(a)), float(r * math.sin(a))) for a, r in zip(angles, radii)]


def test_point_in_polygon_matches_winding_number():
    rng = np.random.default_rng(7)
    for _ in range(40):
        poly = _random_star_polygon(rng, int(rng.integers(3, 12)))
        for x, y in rng.uniform(-3.5, 3.5, size=(50, 2)):
            p = Point(float(x), float(y))
            assert point_in_polygon(poly, p) == (_winding_number(poly, p) != 0)


def test_point_in_polygon_degenerate_and_shared_vertex():
    assert not point_in_polygon([Point(0, 0), Point(1, 1)], Point(0.5, 0.5))
    square = [Point(0, 0), Point(2, 0), Point(2, 2), Point(0, 2)]
    assert point_in_polygon(square, Point(1, 1))
    # the +x ray from (1, 1) grazes the vertex (2, 1) and must be counted once
    diamond = [Point(1, 0), Point(2, 1), Point(1, 2), Point(0, 1)]
    assert point_in_polygon(diamond, Point(1, 1))
    assert not point_in_polygon(diamond, Point(-1, 1))


def test_bounding_rectangle_and_envelope():
    box = bounding_rectangle([Point(3, -1), Point(-2, 4), Point(0, 0)])
    assert box.as_tuple() == (-2, -1, 3, 4)
    ext = extend_envelope(box, 1.5)
    assert ext.as_tuple() == (-3.5, -2.5, 4.5, 5.5)
    assert ext.intersects(BoundingBox(4, 5, 10, 10))
    assert not box.intersects(BoundingBox(4, 5, 10, 10))


def test_inverted_rectangle_is_fatal():
    with pytest.raises(InvalidGeometryError):
        BoundingBox(1, 0, 0, 1)
    with pytest.raises(InvalidGeometryError):
        extend_envelope(BoundingBox(0, 0, 1, 1), -0.1)
    with pytest.raises(InvalidGeometryError):
        bounding_rectangle([])


def test_shoelace_area():
    ccw = [Point(0, 0), Point(4, 0), Point(4, 3), Point(0, 3)]
    assert abs(signed_area(ccw) - 12.0) < 1e-12
    assert abs(signed_area(list(reversed(ccw))) + 12.0) < 1e-12
    assert polygon_area(list(reversed(ccw))) == 12.0


def test_segment_projection():
    a, b = Point(0, 0), Point(10, 0)
    assert closest_point_on_segment(Point(3, 5), a, b) == Point(3, 0)
    assert closest_point_on_segment(Point(-3, 5), a, b) == a
    assert abs(distance_to_segment(Point(13, 4), a, b) - 5.0) < 1e-12


def test_densify_parabola_stays_on_curve():
    focus = Point(50, 20)
    pts = densify_parabola(focus, Point(0, 0), Point(100, 0), Point(30, 20), Point(70, 20), 0.05)
    assert pts[0] == Point(30, 20) and pts[-1] == Point(70, 20)
    assert len(pts) > 8
    for p in pts:
        assert abs(p.y - ((p.x - 50) ** 2 / 40 + 10)) < 1e-9
    assert min(p.y for p in pts) < 10.5
