# corridor_map/domain/graph/corridor_graph.py
import itertools
import time
from collections.abc import Iterable, Sequence

from corridor_map.domain.entities.corridor import (
    Contact,
    Edge,
    EdgeProperty,
    Vertex,
    corridor_geometry,
    outline_contact,
    site_contact,
    trimmed_contacts,
)
from corridor_map.domain.entities.geography import (
    BoundingBox,
    Obstacle,
    Point,
    PointSite,
    SegmentSite,
    Site,
    SourceCategory,
)
from corridor_map.domain.errors import GraphInvariantError, UnboundedInputError
from corridor_map.domain.geometry import (
    bounding_rectangle,
    densify_parabola,
    point_in_polygon,
    signed_area,
)
from corridor_map.domain.graph.spatial_index import NearestPointIndex, RangeIndex
from corridor_map.domain.voronoi.diagram import VoronoiDiagram
from corridor_map.runtime.hooks import NoopHooks
from corridor_map.runtime.locks import ReadWriteLock

BOUNDARY_EPS = 1e-9
WINDING_EPS = 1e-9


class CorridorGraph:
    """
    Arena of corridor vertices and half-edges built over registered obstacle sites.
    Public queries hold the read side of `lock`; mutators hold the write side.
    """

    def __init__(self, bounds: BoundingBox | None = None, hooks=None):
        self.vertices: dict[int, Vertex] = {}
        self.edges: dict[int, Edge] = {}
        self.sites: dict[int, Site] = {}
        self.obstacles: dict[int, Obstacle] = {}
        self.bounds = bounds
        self.hooks = hooks or NoopHooks()
        self.lock = ReadWriteLock()

        self.vertex_index = NearestPointIndex()
        self.edge_index = RangeIndex()
        self.obstacle_index = RangeIndex()

        self._vertex_ids = itertools.count()
        self._edge_ids = itertools.count()
        self._site_ids = itertools.count()
        self._obstacle_ids = itertools.count()

    # ---------- Sites & obstacles ----------

    def add_point(self, p: Point, parent: int | None = None) -> PointSite:
        with self.lock.write():
            site = PointSite(next(self._site_ids), p, parent)
            self.sites[site.id] = site
            return site

    def add_segment(self, a: Point, b: Point, parent: int | None = None) -> SegmentSite:
        with self.lock.write():
            site = SegmentSite(next(self._site_ids), a, b, parent)
            self.sites[site.id] = site
            return site

    def add_obstacle(
        self, points: Sequence[Point], closed: bool = True, *, is_border: bool = False
    ) -> Obstacle:
        with self.lock.write():
            obs = Obstacle(next(self._obstacle_ids), list(points), closed, is_border)
            sides = [SegmentSite(next(self._site_ids), a, b, obs.id) for a, b in obs.sides()]
            for site in sides:
                self.sites[site.id] = site
                obs.segment_ids.append(site.id)
            self.obstacles[obs.id] = obs
            self.obstacle_index.insert(obs.id, bounding_rectangle(obs.points))
            return obs

    def add_border(self, rect: BoundingBox) -> Obstacle:
        """Wall the map in with the four sides of `rect`; also fixes the map bounds."""
        with self.lock.write():
            self.bounds = rect
            return self.add_obstacle(rect.corners(), closed=True, is_border=True)

    # ---------- Construction ----------

    def build(self, builder) -> None:
        """
        Derive a diagram from every registered site and swap it in for the current
        vertices and edges. Nothing is touched when the producer fails.
        """
        with self.lock.write():
            t0 = time.perf_counter()
            self.hooks.build_start(sites=len(self.sites), obstacles=len(self.obstacles))
            diagram = builder.build(
                [self.sites[k] for k in sorted(self.sites)],
                obstacles=[self.obstacles[k] for k in sorted(self.obstacles)],
                bounds=self.bounds,
            )
            self._clear()
            self.load(diagram)
            self.hooks.build_end(
                vertices=len(self.vertices),
                edges=len(self.edges),
                ms=(time.perf_counter() - t0) * 1000.0,
            )

    def _clear(self) -> None:
        for eid in list(self.edges):
            self.edge_index.delete(eid)
        for vid in list(self.vertices):
            self.vertex_index.remove(vid)
        self.edges.clear()
        self.vertices.clear()

    def load(self, diagram: VoronoiDiagram) -> dict[int, int]:
        """Materialize a finite Voronoi diagram. Returns diagram vertex index -> vertex id."""
        validate_diagram(diagram)
        with self.lock.write():
            used = sorted({i for e in diagram.edges for i in (e.start, e.end)})
            vmap = {i: self.add_vertex(diagram.vertices[i]).id for i in used}
            for i, e in enumerate(diagram.edges):
                if i > e.twin:
                    continue
                t = diagram.edges[e.twin]
                self.add_edge_pair(
                    vmap[e.start],
                    vmap[e.end],
                    (e.site_id, e.category),
                    (t.site_id, t.category),
                    is_linear=e.is_linear,
                )
            return vmap

    def add_vertex(self, position: Point, *, is_linked: bool = False) -> Vertex:
        with self.lock.write():
            v = Vertex(
                next(self._vertex_ids),
                position,
                is_boundary=self._on_bounds(position),
                is_linked=is_linked,
            )
            self.vertices[v.id] = v
            self.vertex_index.insert(v.id, position)
            return v

    def add_edge_pair(
        self,
        start: int,
        end: int,
        left: tuple[int, SourceCategory],
        right: tuple[int, SourceCategory],
        *,
        is_linear: bool = True,
    ) -> tuple[Edge, Edge]:
        """Create start→end (owned by `left`) and its twin end→start (owned by `right`)."""
        with self.lock.write():
            a, b = self.vertices[start].position, self.vertices[end].position
            lc, rc = self._contact(*left), self._contact(*right)
            eid, tid = next(self._edge_ids), next(self._edge_ids)
            fwd = Edge(eid, start, end, tid, left[0], left[1], is_linear,
                       corridor_geometry(a, b, lc, rc))
            bwd = Edge(tid, end, start, eid, right[0], right[1], is_linear,
                       corridor_geometry(b, a, rc, lc))
            for e in (fwd, bwd):
                self.edges[e.id] = e
                self.vertices[e.start].edges.append(e.id)
                self.edge_index.insert(e.id, e.bbox)
            return fwd, bwd

    def _contact(self, site_id: int, category: SourceCategory) -> Contact:
        """
        Contact function for one side of a corridor. Obstacle sides measure against
        the side and its two neighbours, so corridors meeting at a vertex agree on
        the contact even when the producer labelled them with different sides.
        """
        site = self.sites[site_id]
        obs = self.obstacles.get(site.parent) if site.parent is not None else None
        if obs is None or site_id not in obs.segment_ids:
            return lambda p: site_contact(site, category, p)
        ids = obs.segment_ids
        k, n = ids.index(site_id), len(ids)
        if obs.closed and n > 2:
            run = [ids[k], ids[(k - 1) % n], ids[(k + 1) % n]]
        else:
            run = [ids[j] for j in (k, k - 1, k + 1) if 0 <= j < n]
        sides = [(self.sites[j].start, self.sites[j].end) for j in dict.fromkeys(run)]
        return lambda p: outline_contact(p, sides)

    def _on_bounds(self, p: Point) -> bool:
        b = self.bounds
        if b is None:
            return False
        return (
            abs(p.x - b.min_x) <= BOUNDARY_EPS
            or abs(p.x - b.max_x) <= BOUNDARY_EPS
            or abs(p.y - b.min_y) <= BOUNDARY_EPS
            or abs(p.y - b.max_y) <= BOUNDARY_EPS
        )

    # ---------- Deletion ----------

    def remove_edge(self, edge_id: int, *, prune: bool = True) -> None:
        """Detach one half-edge; a start vertex left without edges is dropped as well."""
        with self.lock.write():
            e = self.edges.pop(edge_id)
            self.edge_index.delete(edge_id)
            self.vertices[e.start].edges.remove(edge_id)
            if prune:
                self.prune_vertex(e.start)

    def prune_vertex(self, vertex_id: int) -> bool:
        with self.lock.write():
            v = self.vertices.get(vertex_id)
            if v is None or v.edges:
                return False
            del self.vertices[vertex_id]
            self.vertex_index.remove(vertex_id)
            return True

    def remove_obstacle(self, obstacle_id: int) -> None:
        """Unregister an obstacle and its sites; corridor edges are left untouched."""
        with self.lock.write():
            obs = self.obstacles.pop(obstacle_id)
            self.obstacle_index.delete(obstacle_id)
            for sid in obs.segment_ids:
                self.sites.pop(sid, None)

    def obstacles_in(self, box: BoundingBox) -> list[int]:
        with self.lock.read():
            return self.obstacle_index.search(box)

    def is_free(self, p: Point) -> bool:
        """Inside the map bounds and outside every solid obstacle."""
        with self.lock.read():
            if self.bounds is not None and not self.bounds.contains(p):
                return False
            for oid in self.obstacle_index.search(BoundingBox.from_point(p)):
                obs = self.obstacles[oid]
                if obs.is_solid and point_in_polygon(obs.points, p):
                    return False
            return True

    def remove_edge_pair(self, edge_id: int) -> None:
        with self.lock.write():
            twin = self.edges[edge_id].twin
            self.remove_edge(edge_id)
            if twin in self.edges:
                self.remove_edge(twin)

    # ---------- Queries ----------

    def get_nearest_vertex(self, p: Point) -> Vertex | None:
        with self.lock.read():
            hit = self.vertex_index.nearest(p, 1)
            return self.vertices[hit[0]] if hit else None

    def get_nearest_edge(self, p: Point) -> Edge | None:
        """
        First edge (by id) whose cell contains p; otherwise the lowest-id edge
        leaving the nearest vertex. None only when the graph is empty.
        """
        with self.lock.read():
            for eid in self.edge_index.search(BoundingBox.from_point(p)):
                e = self.edges[eid]
                if point_in_polygon(e.cell, p):
                    return e
            v = self.get_nearest_vertex(p)
            if v is None:
                return None
            if not v.edges:
                raise GraphInvariantError(f"vertex {v.id} is indexed but has no edges")
            return self.edges[min(v.edges)]

    def edges_in(self, box: BoundingBox) -> list[int]:
        with self.lock.read():
            return self.edge_index.search(box)

    def edge_between(self, u: int, v: int) -> Edge | None:
        with self.lock.read():
            best = None
            for eid in self.vertices[u].edges:
                if self.edges[eid].end == v and (best is None or eid < best):
                    best = eid
            return self.edges[best] if best is not None else None

    def twin_of(self, edge: Edge) -> Edge:
        return self.edges[edge.twin]

    def left_site(self, edge: Edge) -> Site:
        return self.sites[edge.site_id]

    def right_site(self, edge: Edge) -> Site:
        return self.sites[self.edges[edge.twin].site_id]

    # ---------- Clearance ----------

    def add_property(self, edge: Edge, radius: float) -> EdgeProperty:
        prop = edge.properties.get(radius)
        if prop is None:
            with self.lock.read():
                a = self.vertices[edge.start].position
                b = self.vertices[edge.end].position
                prop = trimmed_contacts(a, b, edge.geometry, radius)
            edge.properties[radius] = prop
        return prop

    @staticmethod
    def has_enough_clearance(edge: Edge, radius: float) -> bool:
        g = edge.geometry
        return radius <= g.half_width_start and radius <= g.half_width_end

    # ---------- Rendering ----------

    def render_edge(self, edge: Edge, max_distance: float = 0.25) -> list[Point]:
        with self.lock.read():
            a = self.vertices[edge.start].position
            b = self.vertices[edge.end].position
            if edge.is_linear:
                return [a, b]
            twin = self.edges[edge.twin]
            sides = [(self.sites[edge.site_id], edge.category), (self.sites[twin.site_id], twin.category)]
            focus = [s for s in sides if s[1].is_point]
            line = [s for s in sides if not s[1].is_point]
            if len(focus) != 1 or len(line) != 1:
                return [a, b]
            fsite, fcat = focus[0]
            seg = line[0][0]
            return densify_parabola(site_contact(fsite, fcat, a), seg.start, seg.end, a, b, max_distance)

    def cell_polygons(self) -> Iterable[tuple[int, tuple[Point, ...]]]:
        with self.lock.read():
            return [(eid, self.edges[eid].cell) for eid in sorted(self.edges)]

    # ---------- Consistency ----------

    def check_invariants(self) -> None:
        with self.lock.read():
            for e in self.edges.values():
                t = self.edges.get(e.twin)
                if t is None or t.twin != e.id or t.start != e.end or t.end != e.start:
                    raise GraphInvariantError(f"edge {e.id} has a broken twin {e.twin}")
                if e.id not in self.vertices[e.start].edges:
                    raise GraphInvariantError(f"edge {e.id} missing from vertex {e.start}")
                if e.clearance_start < 0 or e.clearance_end < 0:
                    raise GraphInvariantError(f"edge {e.id} has negative clearance")
                # cells run start, right side, end, left side: counter-clockwise
                if signed_area(e.cell) < -WINDING_EPS * max(1.0, e.length * e.max_clearance):
                    raise GraphInvariantError(f"edge {e.id} has a clockwise cell")
            for v in self.vertices.values():
                if not v.edges:
                    raise GraphInvariantError(f"vertex {v.id} is isolated")
                for eid in v.edges:
                    if self.edges[eid].start != v.id:
                        raise GraphInvariantError(f"vertex {v.id} lists foreign edge {eid}")
            if len(self.vertex_index) != len(self.vertices):
                raise GraphInvariantError("vertex index out of sync")
            if len(self.edge_index) != len(self.edges):
                raise GraphInvariantError("edge index out of sync")


def validate_diagram(diagram: VoronoiDiagram) -> None:
    n = len(diagram.edges)
    for i, e in enumerate(diagram.edges):
        if e.start is None or e.end is None:
            raise UnboundedInputError(f"voronoi edge {i} is infinite")
        if not 0 <= e.twin < n or e.twin == i:
            raise UnboundedInputError(f"voronoi edge {i} has no twin")
        t = diagram.edges[e.twin]
        if t.twin != i or t.start != e.end or t.end != e.start:
            raise UnboundedInputError(f"voronoi edges {i} and {e.twin} are not twins")
