# corridor_map/domain/planning/planner.py
import threading
from dataclasses import dataclass, field

from corridor_map.domain.entities.corridor import Edge
from corridor_map.domain.entities.geography import Point
from corridor_map.domain.geometry import distance
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.planning.astar import (
    Heuristic,
    SearchStats,
    astar_alternatives,
    astar_vertices,
    euclidean,
)
from corridor_map.domain.planning.funnel import compute_portals, path_length, string_pull
from corridor_map.runtime.hooks import NoopHooks

LENGTH_EPS = 1e-9


@dataclass
class PlanResult:
    points: list[Point] = field(default_factory=list)
    edges: list[int] = field(default_factory=list)
    vertices: list[int] = field(default_factory=list)
    entry_vertex: int | None = None
    stats: SearchStats = field(default_factory=SearchStats)

    @property
    def found(self) -> bool:
        return bool(self.points)

    @property
    def length(self) -> float:
        return path_length(self.points)


class PathPlanner:
    """
    A* over the corridor graph, then string-pulling through the corridor portals.

    The cheapest medial route is not always the shortest taut one: two routes
    around different obstacles can have near-equal medial length but very
    different pulled lengths. The planner therefore pulls up to `alternatives`
    routes (in medial-cost order) and keeps the shortest result.
    """

    def __init__(
        self,
        graph: CorridorGraph,
        *,
        heuristic: Heuristic = euclidean,
        max_expansions: int | None = None,
        alternatives: int = 12,
        hooks=None,
    ):
        self.graph = graph
        self.heuristic = heuristic
        self.max_expansions = max_expansions
        self.alternatives = max(1, alternatives)
        self.hooks = hooks or NoopHooks()

    def find_path(
        self,
        start: Point,
        goal: Point,
        radius: float = 0.0,
        cancel: threading.Event | None = None,
    ) -> PlanResult:
        with self.graph.lock.read():
            if not self.graph.is_free(start):
                return self._done(PlanResult(stats=SearchStats(reason="outside_map")))
            start_edge = self.graph.get_nearest_edge(start)
            if start_edge is None:
                return self._done(PlanResult(stats=SearchStats(reason="outside_map")))
            return self.find_path_from_edge(start_edge, start, start, goal, radius, cancel)

    def find_path_from_edge(
        self,
        edge: Edge,
        start_anchor: Point,
        end_anchor: Point,
        goal: Point,
        radius: float = 0.0,
        cancel: threading.Event | None = None,
    ) -> PlanResult:
        """
        Plan from corridor `edge`, entering the graph at either of its vertices.
        `start_anchor` / `end_anchor` are the positions the route departs from
        when it leaves through edge.start / edge.end respectively.
        """
        g = self.graph
        with g.lock.read():
            goal_edge = g.get_nearest_edge(goal) if g.is_free(goal) else None
            if goal_edge is None:
                return self._done(PlanResult(stats=SearchStats(reason="outside_map")))
            anchors = {edge.start: start_anchor, edge.end: end_anchor}
            seeds = {v: distance(p, g.vertices[v].position) for v, p in anchors.items()}
            routes = astar_alternatives(
                g,
                seeds,
                (goal_edge.start, goal_edge.end),
                goal,
                k=self.alternatives,
                radius=radius,
                heuristic=self.heuristic,
                max_expansions=self.max_expansions,
                cancel=cancel,
            )
            stats = routes[0].stats
            if not stats.found:
                return self._done(PlanResult(stats=stats))

            best: PlanResult | None = None
            for route in routes:
                entry = route.vertices[0]
                edges = [g.edges[e] for e in route.edges]
                lefts, rights = compute_portals(g, edges, anchors[entry], goal, radius)
                plan = PlanResult(
                    points=string_pull(lefts, rights),
                    edges=route.edges,
                    vertices=route.vertices,
                    entry_vertex=entry,
                    stats=stats,
                )
                if best is None or plan.length < best.length - LENGTH_EPS:
                    best = plan
            return self._done(best)

    def find_vertex_path(
        self,
        start: int,
        goal: int,
        radius: float = 0.0,
        cancel: threading.Event | None = None,
    ) -> PlanResult:
        search = astar_vertices(
            self.graph,
            start,
            goal,
            radius=radius,
            heuristic=self.heuristic,
            max_expansions=self.max_expansions,
            cancel=cancel,
        )
        if not search.stats.found:
            return self._done(PlanResult(stats=search.stats))
        with self.graph.lock.read():
            points = [self.graph.vertices[v].position for v in search.vertices]
        return self._done(
            PlanResult(
                points=points,
                edges=search.edges,
                vertices=search.vertices,
                entry_vertex=start,
                stats=search.stats,
            )
        )

    def _done(self, result: PlanResult) -> PlanResult:
        self.hooks.plan_end(
            found=result.found,
            expansions=result.stats.expansions,
            reason=result.stats.reason,
            length=result.length,
        )
        return result
