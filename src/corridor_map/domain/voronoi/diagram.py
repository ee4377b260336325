# corridor_map/domain/voronoi/diagram.py
from dataclasses import dataclass, field

from corridor_map.domain.entities.geography import Point, SourceCategory


@dataclass(frozen=True)
class VoronoiEdge:
    """
    Directed half-edge as handed over by a Voronoi producer.
    `start`/`end` index into `VoronoiDiagram.vertices`; None marks an infinite end.
    `site_id` is the site whose cell lies to the left of start→end.
    """

    start: int | None
    end: int | None
    twin: int
    site_id: int
    category: SourceCategory
    is_linear: bool = True


@dataclass
class VoronoiDiagram:
    vertices: list[Point] = field(default_factory=list)
    edges: list[VoronoiEdge] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.edges)
