import heapq
import math
import threading

import numpy as np
import pytest

from corridor_map.domain.entities.geography import Point, SourceCategory
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.planning.astar import (
    astar_alternatives,
    astar_vertices,
    edge_path,
    squared_legacy,
)
from corridor_map.domain.planning.planner import PathPlanner
from corridor_map.domain.voronoi.diagram import VoronoiDiagram, VoronoiEdge


def _graph_from(points, pairs) -> CorridorGraph:
    """Arbitrary planar-ish test graph; both sides of every corridor see one far post."""
    g = CorridorGraph()
    post = g.add_point(Point(1e4, 1e4))
    edges = []
    for u, v in pairs:
        k = len(edges)
        edges.append(VoronoiEdge(u, v, k + 1, post.id, SourceCategory.SINGLE_POINT))
        edges.append(VoronoiEdge(v, u, k, post.id, SourceCategory.SINGLE_POINT))
    g.load(VoronoiDiagram(vertices=list(points), edges=edges))
    return g


def _dijkstra(graph: CorridorGraph, source: int) -> dict[int, float]:
    dist = {source: 0.0}
    heap = [(0.0, source)]
    while heap:
        d, u = heapq.heappop(heap)
        if d > dist.get(u, math.inf):
            continue
        for eid in graph.vertices[u].edges:
            e = graph.edges[eid]
            nd = d + e.cost
            if nd < dist.get(e.end, math.inf):
                dist[e.end] = nd
                heapq.heappush(heap, (nd, e.end))
    return dist


@pytest.fixture
def diamond():
    pts = [Point(0, 0), Point(1, 1), Point(1, -1), Point(2, 0)]
    return _graph_from(pts, [(0, 1), (0, 2), (1, 3), (2, 3)])


# ------------- Optimality --------------------


def test_astar_matches_dijkstra_on_random_graphs():
    rng = np.random.default_rng(42)
    for trial in range(20):
        n = int(rng.integers(5, 51))
        pts = [Point(float(x), float(y)) for x, y in rng.uniform(0, 100, size=(n, 2))]
        pairs = set()
        for u in range(1, n):
            if rng.random() < 0.9:  # leave some vertices unreachable
                pairs.add((int(rng.integers(0, u)), u))
        for _ in range(n):
            u, v = (int(x) for x in rng.integers(0, n, size=2))
            if u != v:
                pairs.add((min(u, v), max(u, v)))
        g = _graph_from(pts, sorted(pairs))
        ids = sorted(g.vertices)
        src = ids[0]
        truth = _dijkstra(g, src)
        for dst in ids[1:]:
            res = astar_vertices(g, src, dst)
            if dst in truth:
                assert res.stats.found
                assert abs(res.cost - truth[dst]) < 1e-9
                assert abs(sum(g.edges[e].cost for e in res.edges) - res.cost) < 1e-9
            else:
                assert not res.stats.found and res.stats.reason == "exhausted"


def test_ties_break_on_lowest_vertex_id(diamond):
    res = PathPlanner(diamond).find_vertex_path(0, 3)
    assert res.vertices == [0, 1, 3]
    assert res.points == [Point(0, 0), Point(1, 1), Point(2, 0)]
    assert [e.id for e in edge_path(diamond, res.vertices)] == res.edges


def test_expansion_cap_and_cancel(diamond):
    capped = astar_vertices(diamond, 0, 3, max_expansions=1)
    assert not capped.stats.found and capped.stats.reason == "max_expansions"

    cancel = threading.Event()
    cancel.set()
    stopped = astar_vertices(diamond, 0, 3, cancel=cancel)
    assert stopped.stats.reason == "cancelled" and stopped.vertices == []


def test_legacy_heuristic_still_reaches_goal(diamond):
    res = astar_vertices(diamond, 0, 3, heuristic=squared_legacy)
    assert res.stats.found and res.vertices[0] == 0 and res.vertices[-1] == 3


def test_radius_filter_prunes_narrow_corridors(corridor):
    assert astar_vertices(corridor, 0, 2, radius=5.0).stats.found
    blocked = astar_vertices(corridor, 0, 2, radius=5.5)
    assert not blocked.stats.found


# ------------- Alternative routes --------------------


@pytest.fixture
def kite():
    """The diamond plus a long detour 0 - 4 - 3 over the top."""
    pts = [Point(0, 0), Point(1, 1), Point(1, -1), Point(2, 0), Point(1, 3)]
    return _graph_from(pts, [(0, 1), (0, 2), (1, 3), (2, 3), (0, 4), (4, 3)])


def test_alternatives_come_in_cost_order(kite):
    routes = astar_alternatives(kite, {0: 0.0}, [3], Point(2, 0), k=5)
    assert [r.vertices for r in routes] == [[0, 1, 3], [0, 2, 3], [0, 4, 3]]
    costs = [r.cost for r in routes]
    assert costs == sorted(costs)
    for r in routes:
        assert abs(sum(kite.edges[e].cost for e in r.edges) - r.cost) < 1e-9
    assert routes[0].stats.expansions >= 3


def test_alternatives_respect_k(kite):
    assert len(astar_alternatives(kite, {0: 0.0}, [3], Point(2, 0), k=1)) == 1
    assert len(astar_alternatives(kite, {0: 0.0}, [3], Point(2, 0), k=2)) == 2


def test_second_seed_is_tried_as_its_own_route(kite):
    routes = astar_alternatives(kite, {1: 0.0, 2: 5.0}, [3], Point(2, 0), k=2)
    assert [r.vertices for r in routes] == [[1, 3], [2, 3]]
    assert routes[1].cost == pytest.approx(5.0 + math.sqrt(2))


def test_alternatives_stop_when_nothing_is_reachable(corridor):
    routes = astar_alternatives(corridor, {0: 0.0}, [2], Point(100, 5), k=4, radius=5.5)
    assert len(routes) == 1 and not routes[0].stats.found
