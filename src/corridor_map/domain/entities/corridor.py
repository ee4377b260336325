# corridor_map/domain/entities/corridor.py
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from corridor_map.domain.entities.geography import (
    BoundingBox,
    Point,
    PointSite,
    SegmentSite,
    Site,
    SourceCategory,
)
from corridor_map.domain.geometry import (
    bounding_rectangle,
    closest_point_on_segment,
    distance,
    normalize,
    polygon_area,
)


@dataclass
class Vertex:
    id: int
    position: Point
    edges: list[int] = field(default_factory=list)  # outgoing half-edge ids
    is_boundary: bool = False
    is_linked: bool = False


@dataclass(frozen=True)
class EdgeProperty:
    """Contacts of an edge trimmed for an agent of `radius`."""

    radius: float
    left_start: Point
    right_start: Point
    left_end: Point
    right_end: Point


@dataclass(frozen=True)
class CorridorGeometry:
    left_start: Point
    right_start: Point
    left_end: Point
    right_end: Point
    cell: tuple[Point, ...]
    clearance_start: float
    clearance_end: float
    half_width_start: float
    half_width_end: float
    length: float
    area: float
    bbox: BoundingBox


@dataclass
class Edge:
    """
    One direction of a corridor segment. The site that owns this half-edge lies
    on its left; the twin's site lies on its right.
    """

    id: int
    start: int
    end: int
    twin: int
    site_id: int
    category: SourceCategory
    is_linear: bool
    geometry: CorridorGeometry
    properties: dict[float, EdgeProperty] = field(default_factory=dict)

    @property
    def cell(self) -> tuple[Point, ...]:
        return self.geometry.cell

    @property
    def bbox(self) -> BoundingBox:
        return self.geometry.bbox

    @property
    def clearance_start(self) -> float:
        return self.geometry.clearance_start

    @property
    def clearance_end(self) -> float:
        return self.geometry.clearance_end

    @property
    def length(self) -> float:
        return self.geometry.length

    @property
    def cost(self) -> float:
        return self.geometry.length

    @property
    def max_clearance(self) -> float:
        return max(self.geometry.clearance_start, self.geometry.clearance_end)


def site_contact(site: Site, category: SourceCategory, p: Point) -> Point:
    """Point of `site` nearest to `p`, restricted to the feature named by `category`."""
    match site:
        case PointSite(point=q):
            return q
        case SegmentSite(start=a, end=b):
            if category is SourceCategory.SEGMENT_START:
                return a
            if category is SourceCategory.SEGMENT_END:
                return b
            return closest_point_on_segment(p, a, b)
    raise TypeError(site)


def outline_contact(p: Point, sides: Sequence[tuple[Point, Point]]) -> Point:
    """Nearest point to `p` over a run of obstacle sides. Earlier sides win ties."""
    best, best_d = None, math.inf
    for a, b in sides:
        q = closest_point_on_segment(p, a, b)
        d = distance(p, q)
        if d < best_d:
            best, best_d = q, d
    return best


Contact = Callable[[Point], Point]


def corridor_geometry(start: Point, end: Point, left: Contact, right: Contact) -> CorridorGeometry:
    left_start, left_end = left(start), left(end)
    right_start, right_end = right(start), right(end)
    cell = (start, right_start, right_end, end, left_end, left_start)
    return CorridorGeometry(
        left_start=left_start,
        right_start=right_start,
        left_end=left_end,
        right_end=right_end,
        cell=cell,
        clearance_start=min(distance(start, left_start), distance(start, right_start)),
        clearance_end=min(distance(end, left_end), distance(end, right_end)),
        half_width_start=0.5 * distance(left_start, right_start),
        half_width_end=0.5 * distance(left_end, right_end),
        length=distance(start, end),
        area=polygon_area(cell),
        bbox=bounding_rectangle(cell),
    )


def _trim(vertex: Point, contact: Point, radius: float) -> Point:
    ux, uy = normalize(vertex.x - contact.x, vertex.y - contact.y)
    return Point(contact.x + radius * ux, contact.y + radius * uy)


def trimmed_contacts(start: Point, end: Point, g: CorridorGeometry, radius: float) -> EdgeProperty:
    if radius >= g.clearance_start:
        ls = rs = start
    else:
        ls, rs = _trim(start, g.left_start, radius), _trim(start, g.right_start, radius)
    if radius >= g.clearance_end:
        le = re = end
    else:
        le, re = _trim(end, g.left_end, radius), _trim(end, g.right_end, radius)
    return EdgeProperty(radius=radius, left_start=ls, right_start=rs, left_end=le, right_end=re)
