# corridor_map/domain/planning/astar.py
import heapq
import math
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from corridor_map.domain.entities.corridor import Edge
from corridor_map.domain.entities.geography import Point
from corridor_map.domain.graph.corridor_graph import CorridorGraph

Heuristic = Callable[[Point, Point], float]


def euclidean(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def squared_legacy(a: Point, b: Point) -> float:
    """Squared distance. Not admissible; reproduces the legacy expansion order only."""
    dx, dy = b.x - a.x, b.y - a.y
    return dx * dx + dy * dy


@dataclass
class SearchStats:
    expansions: int = 0
    found: bool = False
    reason: str = ""  # found | exhausted | max_expansions | cancelled


@dataclass
class SearchResult:
    vertices: list[int]
    edges: list[int]
    cost: float
    goal: int | None
    stats: SearchStats


def _search(
    graph: CorridorGraph,
    seeds: dict[int, float],
    goals: set[int],
    goal_point: Point,
    *,
    heuristic: Heuristic,
    edge_ok: Callable[[Edge], bool],
    max_expansions: int | None,
    cancel: threading.Event | None,
) -> SearchResult:
    stats = SearchStats()
    g_score: dict[int, float] = {}
    came_from: dict[int, tuple[int, int]] = {}  # vertex -> (previous vertex, edge id)
    open_heap: list[tuple[float, int]] = []
    closed: set[int] = set()

    with graph.lock.read():
        pos = {vid: v.position for vid, v in graph.vertices.items()}

        for vid, g0 in sorted(seeds.items()):
            if vid in pos and g0 < g_score.get(vid, math.inf):
                g_score[vid] = g0
                heapq.heappush(open_heap, (g0 + heuristic(pos[vid], goal_point), vid))

        while open_heap:
            if cancel is not None and cancel.is_set():
                stats.reason = "cancelled"
                return SearchResult([], [], math.inf, None, stats)
            _, u = heapq.heappop(open_heap)
            if u in closed:
                continue
            if u in goals:
                stats.found, stats.reason = True, "found"
                path, edges = [u], []
                while path[-1] in came_from:
                    prev, eid = came_from[path[-1]]
                    path.append(prev)
                    edges.append(eid)
                path.reverse()
                edges.reverse()
                return SearchResult(path, edges, g_score[u], u, stats)
            if max_expansions is not None and stats.expansions >= max_expansions:
                stats.reason = "max_expansions"
                return SearchResult([], [], math.inf, None, stats)
            closed.add(u)
            stats.expansions += 1
            for eid in sorted(graph.vertices[u].edges):
                e = graph.edges[eid]
                if e.end in closed or not edge_ok(e):
                    continue
                cand = g_score[u] + e.cost
                if cand < g_score.get(e.end, math.inf):
                    g_score[e.end] = cand
                    came_from[e.end] = (u, eid)
                    heapq.heappush(open_heap, (cand + heuristic(pos[e.end], goal_point), e.end))

    stats.reason = "exhausted"
    return SearchResult([], [], math.inf, None, stats)


def clearance_filter(graph: CorridorGraph, radius: float) -> Callable[[Edge], bool]:
    if radius <= 0:
        return lambda e: True
    return lambda e: graph.has_enough_clearance(e, radius)


def astar_vertices(
    graph: CorridorGraph,
    start: int,
    goal: int,
    *,
    radius: float = 0.0,
    heuristic: Heuristic = euclidean,
    max_expansions: int | None = None,
    cancel: threading.Event | None = None,
) -> SearchResult:
    """Vertex-to-vertex A*; open-set ties go to the lowest vertex id."""
    return _search(
        graph,
        {start: 0.0},
        {goal},
        graph.vertices[goal].position,
        heuristic=heuristic,
        edge_ok=clearance_filter(graph, radius),
        max_expansions=max_expansions,
        cancel=cancel,
    )


def astar_alternatives(
    graph: CorridorGraph,
    seeds: dict[int, float],
    goals: Iterable[int],
    goal_point: Point,
    *,
    k: int = 1,
    radius: float = 0.0,
    heuristic: Heuristic = euclidean,
    max_expansions: int | None = None,
    cancel: threading.Event | None = None,
) -> list[SearchResult]:
    """
    Up to `k` loopless routes in increasing corridor cost (Yen's algorithm over
    the dual-endpoint search). The first route is the plain A* answer; when it
    is not found it is returned alone. Spur searches start only where the
    previous route had a branch to take and never pass through another seed.
    The first route's stats count the expansions of every search made.
    """
    goal_set = set(goals)
    edge_ok = clearance_filter(graph, radius)
    opts = dict(heuristic=heuristic, max_expansions=max_expansions, cancel=cancel)

    first = _search(graph, seeds, goal_set, goal_point, edge_ok=edge_ok, **opts)
    routes = [first]
    if not first.stats.found:
        return routes

    pool: list[tuple[float, tuple[int, ...], SearchResult]] = []
    seen = {tuple(first.vertices)}
    expansions = first.stats.expansions

    with graph.lock.read():
        while len(routes) < k:
            last = routes[-1]
            for i in range(-1, len(last.vertices) - 1):
                if cancel is not None and cancel.is_set():
                    break
                if i < 0:
                    # deviate at the virtual source: start from a seed nobody used yet
                    used = {r.vertices[0] for r in routes}
                    spur_seeds = {v: c for v, c in seeds.items() if v not in used}
                    root, root_edges = [], []
                    banned: set[int] = set()
                    blocked = set(used)
                else:
                    root, root_edges = last.vertices[: i + 1], last.edges[:i]
                    spur = root[-1]
                    banned = {
                        r.edges[i]
                        for r in routes
                        if len(r.edges) > i and r.vertices[: i + 1] == root
                    }
                    blocked = set(root[:-1]) | (set(seeds) - {spur})
                    spur_seeds = {spur: seeds[root[0]] + sum(graph.edges[e].cost for e in root_edges)}

                def allowed(e: Edge) -> bool:
                    return e.id not in banned and e.end not in blocked and edge_ok(e)

                if i >= 0 and not any(allowed(graph.edges[e]) for e in graph.vertices[spur].edges):
                    continue
                if not spur_seeds:
                    continue

                res = _search(graph, spur_seeds, goal_set, goal_point, edge_ok=allowed, **opts)
                expansions += res.stats.expansions
                if not res.stats.found:
                    continue
                vertices = root[:-1] + res.vertices
                key = tuple(vertices)
                if key in seen:
                    continue
                seen.add(key)
                route = SearchResult(vertices, root_edges + res.edges, res.cost, res.goal, res.stats)
                heapq.heappush(pool, (route.cost, key, route))
            if not pool or (cancel is not None and cancel.is_set()):
                break
            routes.append(heapq.heappop(pool)[2])

    first.stats.expansions = expansions
    return routes


def edge_path(graph: CorridorGraph, vertices: list[int]) -> list[Edge]:
    """Consecutive vertex pairs -> half-edges; parallel edges resolve to the lowest id."""
    out = []
    with graph.lock.read():
        for u, v in zip(vertices, vertices[1:]):
            e = graph.edge_between(u, v)
            if e is None:
                raise KeyError(f"no edge {u} -> {v}")
            out.append(e)
    return out
