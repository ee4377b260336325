# corridor_map/domain/geometry.py
import math
from collections.abc import Sequence

from corridor_map.domain.entities.geography import BoundingBox, Point
from corridor_map.domain.errors import InvalidGeometryError


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def cross(o: Point, a: Point, b: Point) -> float:
    """z-component of (a - o) x (b - o); positive when o→a→b turns left."""
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def closest_point_on_segment(p: Point, a: Point, b: Point) -> Point:
    dx, dy = b.x - a.x, b.y - a.y
    den = dx * dx + dy * dy
    if den == 0.0:
        return a
    t = ((p.x - a.x) * dx + (p.y - a.y) * dy) / den
    t = min(1.0, max(0.0, t))
    return Point(a.x + t * dx, a.y + t * dy)


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    return distance(p, closest_point_on_segment(p, a, b))


def point_in_polygon(polygon: Sequence[Point], p: Point) -> bool:
    """
    Even-odd ray casting towards +x.
    Each side is tested half-open (lower end inclusive, upper end exclusive) so a
    ray passing exactly through a shared vertex is counted once.
    """
    n = len(polygon)
    if n < 3:
        return False
    inside = False
    j = n - 1
    for i in range(n):
        pi, pj = polygon[i], polygon[j]
        if (pi.y <= p.y < pj.y) or (pj.y <= p.y < pi.y):
            x_cross = pi.x + (p.y - pi.y) * (pj.x - pi.x) / (pj.y - pi.y)
            if p.x < x_cross:
                inside = not inside
        j = i
    return inside


def bounding_rectangle(points: Sequence[Point]) -> BoundingBox:
    if not points:
        raise InvalidGeometryError("cannot bound an empty point set")
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return BoundingBox(min(xs), min(ys), max(xs), max(ys))


def extend_envelope(box: BoundingBox, margin: float) -> BoundingBox:
    if margin < 0:
        raise InvalidGeometryError(f"negative envelope margin {margin}")
    return BoundingBox(box.min_x - margin, box.min_y - margin, box.max_x + margin, box.max_y + margin)


def signed_area(polygon: Sequence[Point]) -> float:
    """Shoelace area, positive for counter-clockwise winding."""
    n = len(polygon)
    if n < 3:
        return 0.0
    acc = 0.0
    for i in range(n):
        a, b = polygon[i], polygon[(i + 1) % n]
        acc += a.x * b.y - b.x * a.y
    return 0.5 * acc


def polygon_area(polygon: Sequence[Point]) -> float:
    return abs(signed_area(polygon))


def normalize(dx: float, dy: float) -> tuple[float, float]:
    n = math.hypot(dx, dy)
    if n == 0.0:
        return 0.0, 0.0
    return dx / n, dy / n


def densify_parabola(
    focus: Point, a: Point, b: Point, p0: Point, p1: Point, max_distance: float
) -> list[Point]:
    """
    Sample the parabola arc equidistant from `focus` and the line through a-b,
    between its points p0 and p1, so no chord strays more than `max_distance`.
    """
    ux, uy = normalize(b.x - a.x, b.y - a.y)
    nx, ny = -uy, ux
    d = (focus.x - a.x) * nx + (focus.y - a.y) * ny
    if d < 0:
        nx, ny, d = -nx, -ny, -d
    if d == 0.0 or max_distance <= 0:
        return [p0, p1]
    f_t = (focus.x - a.x) * ux + (focus.y - a.y) * uy

    def t_of(p: Point) -> float:
        return (p.x - a.x) * ux + (p.y - a.y) * uy

    def at(t: float) -> Point:
        s = ((t - f_t) ** 2 + d * d) / (2.0 * d)
        return Point(a.x + t * ux + s * nx, a.y + t * uy + s * ny)

    out = [p0]

    def split(t0: float, q0: Point, t1: float, q1: Point, depth: int):
        tm = 0.5 * (t0 + t1)
        qm = at(tm)
        if depth < 16 and distance_to_segment(qm, q0, q1) > max_distance:
            split(t0, q0, tm, qm, depth + 1)
            split(tm, qm, t1, q1, depth + 1)
        else:
            out.append(q1)

    split(t_of(p0), p0, t_of(p1), p1, 0)
    out[-1] = p1
    return out
