# corridor_map/app/protocols.py
import threading
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from corridor_map.domain.entities.geography import BoundingBox, Obstacle, Point, Site
from corridor_map.domain.voronoi.diagram import VoronoiDiagram


# ------------- External collaborators --------------------
@runtime_checkable
class VoronoiBuilder(Protocol):
    """
    Responsibilities:
    • Produce the generalized Voronoi diagram of point and segment sites.
    • Return finite, twin-paired half-edges only; unbounded rays are clipped or dropped.
    • Tag each half-edge with the site (and site part) lying on its left.
    """

    def build(
        self,
        sites: Sequence[Site],
        *,
        obstacles: Sequence[Obstacle] = (),
        bounds: BoundingBox | None = None,
    ) -> VoronoiDiagram: ...


@runtime_checkable
class NearestPointIndex(Protocol):
    def insert(self, key: int, p: Point): ...
    def remove(self, key: int): ...
    def nearest(self, p: Point, k: int = 1) -> list[int]: ...


@runtime_checkable
class RangeIndex(Protocol):
    def insert(self, item_id: int, bbox: BoundingBox): ...
    def delete(self, item_id: int): ...
    def search(self, bbox: BoundingBox) -> list[int]: ...


# ------------- Planning --------------------
@runtime_checkable
class RoutePlanner(Protocol):
    """
    Responsibilities:
      • Find the taut path between two free points for an agent of given radius.
      • Return an empty result rather than raising when no route exists.
    """

    def find_path(
        self,
        start: Point,
        goal: Point,
        radius: float = 0.0,
        cancel: threading.Event | None = None,
    ): ...
