# corridor_map/domain/entities/geography.py
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from corridor_map.domain.errors import InvalidGeometryError


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

    def __getitem__(self, i: int) -> float:
        return (self.x, self.y)[i]


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def __post_init__(self):
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise InvalidGeometryError(
                f"inverted rectangle ({self.min_x}, {self.min_y}, {self.max_x}, {self.max_y})"
            )

    @classmethod
    def from_point(cls, p: Point) -> "BoundingBox":
        return cls(p.x, p.y, p.x, p.y)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            other.min_x > self.max_x
            or other.max_x < self.min_x
            or other.min_y > self.max_y
            or other.max_y < self.min_y
        )

    def contains(self, p: Point) -> bool:
        return self.min_x <= p.x <= self.max_x and self.min_y <= p.y <= self.max_y

    def corners(self) -> list[Point]:
        """Counter-clockwise starting at the lower-left corner."""
        return [
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        ]


class SourceCategory(Enum):
    """Which part of a site generated a Voronoi edge."""

    SINGLE_POINT = "single_point"
    SEGMENT_START = "segment_start"
    SEGMENT_END = "segment_end"
    SEGMENT = "segment"

    @property
    def is_point(self) -> bool:
        return self is not SourceCategory.SEGMENT


@dataclass
class Obstacle:
    id: int
    points: list[Point]
    closed: bool = True
    is_border: bool = False
    segment_ids: list[int] = field(default_factory=list)

    def __post_init__(self):
        if len(self.points) < 2:
            raise InvalidGeometryError(f"obstacle {self.id} needs at least 2 points")

    @property
    def is_solid(self) -> bool:
        """A closed polygon with an interior; borders and open walls are not."""
        return self.closed and not self.is_border and len(self.points) >= 3

    def sides(self) -> Iterable[tuple[Point, Point]]:
        n = len(self.points)
        last = n if (self.closed and n > 2) else n - 1
        for i in range(last):
            yield self.points[i], self.points[(i + 1) % n]


@dataclass(frozen=True)
class PointSite:
    id: int
    point: Point
    parent: int | None = None


@dataclass(frozen=True)
class SegmentSite:
    id: int
    start: Point
    end: Point
    parent: int | None = None

    def __post_init__(self):
        if self.start == self.end:
            raise InvalidGeometryError(f"segment site {self.id} has zero length")


Site = PointSite | SegmentSite
