# corridor_map/domain/voronoi/sampled.py
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from scipy.spatial import QhullError, Voronoi, cKDTree

from corridor_map.domain.entities.geography import (
    BoundingBox,
    Obstacle,
    Point,
    PointSite,
    SegmentSite,
    Site,
    SourceCategory,
)
from corridor_map.domain.errors import InvalidGeometryError
from corridor_map.domain.geometry import cross, distance_to_segment, point_in_polygon
from corridor_map.domain.voronoi.diagram import VoronoiDiagram, VoronoiEdge

INSIDE_EPS = 1e-9


@dataclass
class _Generator:
    point: Point
    site_id: int
    category: SourceCategory
    owners: frozenset[int]


class SampledVoronoiBuilder:
    """
    Approximates the generalized (point + segment) Voronoi diagram with an
    ordinary point Voronoi diagram over segment endpoints and interior samples.

    Ridges between generators of the same segment are dropped, which leaves the
    medial edges between distinct features. Accuracy of edge placement is about
    `sample_step / 2`; the step must stay below half the narrowest gap.
    """

    def __init__(self, sample_step: float = 1.0, merge_tolerance: float = 1e-7):
        if sample_step <= 0:
            raise InvalidGeometryError(f"sample_step must be > 0, got {sample_step}")
        self.sample_step = sample_step
        self.merge_tolerance = merge_tolerance

    # ---------- Generators ----------

    def _generators(self, sites: Iterable[Site]) -> list[_Generator]:
        out: list[_Generator] = []
        seen: dict[tuple[float, float], int] = {}

        def push(p: Point, site_id: int, cat: SourceCategory, owners: frozenset[int]):
            key = (p.x, p.y)
            k = seen.get(key)
            if k is not None:
                g = out[k]
                g.owners = g.owners | owners
                return
            seen[key] = len(out)
            out.append(_Generator(p, site_id, cat, owners))

        for site in sorted(sites, key=lambda s: s.id):
            match site:
                case PointSite(id=sid, point=p):
                    push(p, sid, SourceCategory.SINGLE_POINT, frozenset())
                case SegmentSite(id=sid, start=a, end=b):
                    own = frozenset({sid})
                    push(a, sid, SourceCategory.SEGMENT_START, own)
                    push(b, sid, SourceCategory.SEGMENT_END, own)
                    m = max(1, math.ceil(math.hypot(b.x - a.x, b.y - a.y) / self.sample_step))
                    for k in range(1, m):
                        t = k / m
                        q = Point(a.x + t * (b.x - a.x), a.y + t * (b.y - a.y))
                        push(q, sid, SourceCategory.SEGMENT, own)
        return out

    # ---------- Filters ----------

    @staticmethod
    def _inside_obstacle(p: Point, solids: Sequence[Obstacle]) -> bool:
        for obs in solids:
            if point_in_polygon(obs.points, p) and all(
                distance_to_segment(p, a, b) > INSIDE_EPS for a, b in obs.sides()
            ):
                return True
        return False

    @staticmethod
    def _in_bounds(p: Point, bounds: BoundingBox | None) -> bool:
        if bounds is None:
            return True
        return (
            bounds.min_x - INSIDE_EPS <= p.x <= bounds.max_x + INSIDE_EPS
            and bounds.min_y - INSIDE_EPS <= p.y <= bounds.max_y + INSIDE_EPS
        )

    def _merge_vertices(self, verts: np.ndarray) -> list[int]:
        parent = list(range(len(verts)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        if self.merge_tolerance > 0 and len(verts):
            for i, j in sorted(cKDTree(verts).query_pairs(r=self.merge_tolerance)):
                ri, rj = find(i), find(j)
                if ri != rj:
                    parent[max(ri, rj)] = min(ri, rj)
        return [find(i) for i in range(len(verts))]

    # ---------- Build ----------

    def build(
        self,
        sites: Sequence[Site],
        *,
        obstacles: Sequence[Obstacle] = (),
        bounds: BoundingBox | None = None,
    ) -> VoronoiDiagram:
        gens = self._generators(sites)
        if len(gens) < 4:
            return VoronoiDiagram()
        pts = np.array([[g.point.x, g.point.y] for g in gens], dtype=float)
        try:
            vor = Voronoi(pts)
        except QhullError as exc:
            raise InvalidGeometryError(f"voronoi construction failed: {exc}") from exc

        canon = self._merge_vertices(vor.vertices)
        solids = [o for o in obstacles if o.is_solid]

        def vpoint(i: int) -> Point:
            x, y = vor.vertices[i]
            return Point(float(x), float(y))

        def keep(p: Point) -> bool:
            return self._in_bounds(p, bounds) and not self._inside_obstacle(p, solids)

        ridges = []
        for (gi, gj), (vi, vj) in zip(vor.ridge_points.tolist(), vor.ridge_vertices):
            if vi < 0 or vj < 0:
                continue
            ci, cj = canon[vi], canon[vj]
            if ci == cj:
                continue
            a, b = gens[gi], gens[gj]
            if a.owners & b.owners:
                continue
            pi, pj = vpoint(ci), vpoint(cj)
            mid = Point(0.5 * (pi.x + pj.x), 0.5 * (pi.y + pj.y))
            if not (keep(pi) and keep(pj) and keep(mid)):
                continue
            ridges.append((ci, cj, gi, gj))

        used = sorted({c for r in ridges for c in r[:2]})
        slot = {c: k for k, c in enumerate(used)}
        diagram = VoronoiDiagram(vertices=[vpoint(c) for c in used])
        for ci, cj, gi, gj in ridges:
            pi, pj = vpoint(ci), vpoint(cj)
            left, right = (gi, gj) if cross(pi, pj, gens[gi].point) > 0 else (gj, gi)
            k = len(diagram.edges)
            gl, gr = gens[left], gens[right]
            diagram.edges.append(VoronoiEdge(slot[ci], slot[cj], k + 1, gl.site_id, gl.category))
            diagram.edges.append(VoronoiEdge(slot[cj], slot[ci], k, gr.site_id, gr.category))
        return diagram
