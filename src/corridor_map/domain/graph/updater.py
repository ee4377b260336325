# corridor_map/domain/graph/updater.py
import threading
import time
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field

from corridor_map.domain.entities.geography import BoundingBox, Obstacle, Point, Site
from corridor_map.domain.errors import IncrementalUpdateError
from corridor_map.domain.geometry import bounding_rectangle, extend_envelope
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.voronoi.diagram import VoronoiDiagram
from corridor_map.runtime.hooks import NoopHooks


@dataclass
class UpdateReport:
    mode: str  # "patch" | "rebuild"
    obstacle_id: int | None
    envelope: BoundingBox | None
    removed_edges: list[int] = field(default_factory=list)
    added_edges: list[int] = field(default_factory=list)
    removed_vertices: list[int] = field(default_factory=list)
    added_vertices: list[int] = field(default_factory=list)
    spliced: dict[int, int] = field(default_factory=dict)  # sub-map vertex -> live vertex id
    reason: str = ""


class _PatchRejected(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class _Region:
    envelope: BoundingBox
    removed: set[int]  # half-edge ids, closed under twin
    touched: set[int]  # endpoints of removed edges
    frontier: set[int]  # touched vertices that keep at least one edge


@dataclass
class _Patch:
    region: _Region
    sub: VoronoiDiagram
    match: dict[int, int]  # sub vertex index -> live vertex id
    keep: list[int]  # sub edge indices to insert, closed under twin


class DynamicUpdater:
    """
    Inserts obstacles into a live CorridorGraph by re-deriving only the corridors
    around the obstacle. The sub-map is built without holding the graph lock;
    the delete/insert swap then happens under one write lock.
    """

    def __init__(
        self,
        graph: CorridorGraph,
        builder,
        *,
        match_tolerance: float = 1e-6,
        allow_rebuild: bool = True,
        hooks=None,
    ):
        self.graph = graph
        self.builder = builder
        self.match_tolerance = match_tolerance
        self.allow_rebuild = allow_rebuild
        self.hooks = hooks or NoopHooks()
        self._mutex = threading.Lock()

    # ---------- Public API ----------

    def insert_obstacle(self, points: Sequence[Point], closed: bool = True) -> UpdateReport:
        with self._mutex:
            t0 = time.perf_counter()
            obs = self.graph.add_obstacle(points, closed)
            try:
                report = self._insert(obs)
            except Exception as exc:
                # forget the obstacle again
                self.graph.remove_obstacle(obs.id)
                self.hooks.error("update", exc=exc, obstacle_id=obs.id)
                raise
            self.hooks.update_end(
                mode=report.mode,
                removed_edges=len(report.removed_edges),
                added_edges=len(report.added_edges),
                reason=report.reason,
                ms=(time.perf_counter() - t0) * 1000.0,
            )
            return report

    def rebuild(self) -> UpdateReport:
        """Full reconstruction from every registered site."""
        with self._mutex:
            t0 = time.perf_counter()
            report = self._rebuild(None, None, reason="requested")
            self.hooks.update_end(
                mode=report.mode,
                removed_edges=len(report.removed_edges),
                added_edges=len(report.added_edges),
                reason=report.reason,
                ms=(time.perf_counter() - t0) * 1000.0,
            )
            return report

    # ---------- Mechanics ----------

    def _insert(self, obs: Obstacle) -> UpdateReport:
        region = self._affected_region(obs)
        self.hooks.update_start(obstacle_id=obs.id, envelope=region.envelope.as_tuple())
        try:
            patch = self._plan_patch(obs, region)
        except _PatchRejected as rej:
            if not self.allow_rebuild:
                raise IncrementalUpdateError(
                    f"obstacle {obs.id} could not be patched in: {rej.reason}"
                ) from rej
            return self._rebuild(obs.id, region.envelope, reason=rej.reason)
        return self._apply(obs, patch)

    def _rebuild(self, obstacle_id, envelope, *, reason: str) -> UpdateReport:
        g = self.graph
        with g.lock.write():
            old_edges, old_vertices = sorted(g.edges), sorted(g.vertices)
            g.build(self.builder)
            return UpdateReport(
                mode="rebuild",
                obstacle_id=obstacle_id,
                envelope=envelope,
                removed_edges=old_edges,
                added_edges=sorted(g.edges),
                removed_vertices=old_vertices,
                added_vertices=sorted(g.vertices),
                reason=reason,
            )

    def _affected_region(self, obs: Obstacle) -> _Region:
        g = self.graph
        with g.lock.read():
            box = bounding_rectangle(obs.points)
            candidates = g.edges_in(box)
            # clearance reaches past the obstacle's own box
            margin = max((g.edges[e].max_clearance for e in candidates), default=0.0)
            envelope = extend_envelope(box, margin)
            removed: set[int] = set()
            for eid in g.edges_in(envelope):
                removed.add(eid)
                removed.add(g.edges[eid].twin)
            touched = {g.edges[e].start for e in removed}
            frontier = {v for v in touched if any(e not in removed for e in g.vertices[v].edges)}
            return _Region(envelope, removed, touched, frontier)

    def _local_sites(self, obs: Obstacle, region: _Region) -> tuple[list[Site], list[Obstacle]]:
        g = self.graph
        with g.lock.read():
            site_ids: set[int] = set()
            parents: set[int] = {obs.id, *g.obstacles_in(region.envelope)}
            for v in region.touched:
                for eid in g.vertices[v].edges:
                    e = g.edges[eid]
                    site_ids.update((e.site_id, g.edges[e.twin].site_id))
            for sid in list(site_ids):
                parent = g.sites[sid].parent
                if parent is not None:
                    parents.add(parent)
            for p in parents:
                site_ids.update(g.obstacles[p].segment_ids)
            sites = [g.sites[s] for s in sorted(site_ids)]
            return sites, [g.obstacles[p] for p in sorted(parents)]

    def _match_vertices(self, sub: VoronoiDiagram) -> dict[int, int]:
        g = self.graph
        match: dict[int, int] = {}
        claimed: dict[int, int] = {}
        with g.lock.read():
            for i, p in enumerate(sub.vertices):
                hits = g.vertex_index.within(p, self.match_tolerance)
                if not hits:
                    continue
                old = hits[0]
                if old in claimed:
                    raise _PatchRejected(f"vertices {claimed[old]} and {i} both match {old}")
                claimed[old] = i
                match[i] = old
        return match

    def _plan_patch(self, obs: Obstacle, region: _Region) -> _Patch:
        g = self.graph
        if not region.frontier:
            raise _PatchRejected("affected region has no frontier")

        sites, obstacles = self._local_sites(obs, region)
        sub = self.builder.build(sites, obstacles=obstacles, bounds=g.bounds)
        match = self._match_vertices(sub)

        out: dict[int, list[int]] = {}
        for k, e in enumerate(sub.edges):
            out.setdefault(e.start, []).append(k)

        with g.lock.read():
            seeds: list[int] = []
            for i, old in sorted(match.items()):
                if old not in region.frontier:
                    continue
                surviving = set()
                for eid in g.vertices[old].edges:
                    if eid in region.removed:
                        continue
                    e, t = g.edges[eid], g.edges[g.edges[eid].twin]
                    surviving.add((e.site_id, e.category, t.site_id, t.category))
                for k in out.get(i, []):
                    e, t = sub.edges[k], sub.edges[sub.edges[k].twin]
                    if (e.site_id, e.category, t.site_id, t.category) not in surviving:
                        seeds.append(k)

            keep: set[int] = set()
            queue = deque(seeds)
            while queue:
                k = queue.popleft()
                if k in keep:
                    continue
                e = sub.edges[k]
                keep.update((k, e.twin))
                if match.get(e.end) in region.frontier:
                    continue
                queue.extend(out.get(e.end, []))

            self._validate(region, sub, match, sorted(keep))
        return _Patch(region, sub, match, sorted(keep))

    def _validate(self, region: _Region, sub: VoronoiDiagram, match, keep: list[int]):
        g = self.graph
        frontier_hits = {match[i] for i in match if match[i] in region.frontier}
        missing = region.frontier - frontier_hits
        if missing:
            raise _PatchRejected(f"frontier vertices {sorted(missing)[:5]} not reproduced")

        new_degree: dict[int, int] = {}
        used = set()
        for k in keep:
            e = sub.edges[k]
            used.update((e.start, e.end))
            old = match.get(e.start)
            if old in region.frontier:
                new_degree[old] = new_degree.get(old, 0) + 1
        for v in region.frontier:
            before = sum(1 for e in g.vertices[v].edges if e in region.removed)
            if new_degree.get(v, 0) != before:
                raise _PatchRejected(
                    f"frontier vertex {v} changes degree {before} -> {new_degree.get(v, 0)}"
                )
        for i in used:
            old = match.get(i)
            if old is None:
                if not region.envelope.contains(sub.vertices[i]):
                    raise _PatchRejected(f"new vertex {i} escapes the envelope")
            elif old not in region.touched:
                raise _PatchRejected(f"patch reaches untouched vertex {old}")

    def _apply(self, obs: Obstacle, patch: _Patch) -> UpdateReport:
        g, region, sub = self.graph, patch.region, patch.sub
        report = UpdateReport(mode="patch", obstacle_id=obs.id, envelope=region.envelope)
        with g.lock.write():
            for eid in sorted(region.removed):
                g.remove_edge(eid, prune=False)
            report.removed_edges = sorted(region.removed)

            ids: dict[int, int] = {}
            for k in patch.keep:
                for i in (sub.edges[k].start, sub.edges[k].end):
                    if i in ids:
                        continue
                    old = patch.match.get(i)
                    if old is not None:
                        g.vertices[old].is_linked = True
                        ids[i] = old
                        report.spliced[i] = old
                    else:
                        v = g.add_vertex(sub.vertices[i])
                        ids[i] = v.id
                        report.added_vertices.append(v.id)

            for k in patch.keep:
                e = sub.edges[k]
                if k > e.twin:
                    continue
                t = sub.edges[e.twin]
                fwd, bwd = g.add_edge_pair(
                    ids[e.start],
                    ids[e.end],
                    (e.site_id, e.category),
                    (t.site_id, t.category),
                    is_linear=e.is_linear,
                )
                report.added_edges.extend((fwd.id, bwd.id))

            for v in sorted(region.touched):
                if g.prune_vertex(v):
                    report.removed_vertices.append(v)
        return report
