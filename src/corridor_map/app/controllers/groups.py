# corridor_map/app/controllers/groups.py
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from corridor_map.domain.entities.corridor import Edge
from corridor_map.domain.entities.geography import Point, PointSite, SegmentSite, Site
from corridor_map.domain.errors import MixedRadiusError
from corridor_map.domain.geometry import distance, distance_to_segment
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.planning.planner import PathPlanner, PlanResult
from corridor_map.runtime.hooks import NoopHooks


@dataclass(frozen=True)
class Agent:
    id: int
    position: Point
    radius: float = 0.0


@dataclass(frozen=True)
class LateralClearance:
    """Distance from an agent to the obstacle features left and right of its corridor."""

    left: float
    right: float


@dataclass
class AgentRoute:
    agent_id: int
    points: list[Point]
    edge_id: int | None
    clearance: LateralClearance | None


@dataclass
class SubGroup:
    edge: Edge
    agents: list[Agent] = field(default_factory=list)
    plan: PlanResult | None = None

    def nearest_member(self, p: Point) -> Point:
        best = min(self.agents, key=lambda a: (distance(a.position, p), a.id))
        return best.position


def _site_distance(site: Site, p: Point) -> float:
    match site:
        case PointSite(point=q):
            return distance(q, p)
        case SegmentSite(start=a, end=b):
            return distance_to_segment(p, a, b)
    raise TypeError(site)


class GroupCoordinator:
    def __init__(
        self,
        graph: CorridorGraph,
        planner: PathPlanner,
        *,
        hooks=None,
        max_workers: int = 1,
    ):
        self.graph = graph
        self.planner = planner
        self.hooks = hooks or NoopHooks()
        self.max_workers = max(1, max_workers)

    def partition(self, agents: list[Agent]) -> list[SubGroup]:
        """Bucket agents by the corridor they stand in; a corridor and its twin share a bucket."""
        if not agents:
            return []
        radius = agents[0].radius
        for a in agents:
            if a.radius != radius:
                raise MixedRadiusError(
                    f"agent {a.id} has radius {a.radius}, group radius is {radius}"
                )
        groups: dict[int, SubGroup] = {}
        with self.graph.lock.read():
            for a in agents:
                e = self.graph.get_nearest_edge(a.position)
                if e is None:
                    continue
                key = min(e.id, e.twin)
                if key not in groups:
                    groups[key] = SubGroup(self.graph.edges[key])
                groups[key].agents.append(a)
        return [groups[k] for k in sorted(groups)]

    def _plan_one(self, sg: SubGroup, target: Point, radius: float) -> SubGroup:
        g = self.graph
        with g.lock.read():
            start_anchor = sg.nearest_member(g.vertices[sg.edge.start].position)
            end_anchor = sg.nearest_member(g.vertices[sg.edge.end].position)
            sg.plan = self.planner.find_path_from_edge(
                sg.edge, start_anchor, end_anchor, target, radius
            )
            # orient the reference edge along the direction of travel
            if sg.plan.entry_vertex == sg.edge.start:
                sg.edge = g.edges[sg.edge.twin]
        return sg

    def plan(self, agents: list[Agent], target: Point) -> dict[int, AgentRoute]:
        groups = self.partition(agents)
        radius = agents[0].radius if agents else 0.0
        if self.max_workers > 1 and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                groups = list(pool.map(lambda sg: self._plan_one(sg, target, radius), groups))
        else:
            groups = [self._plan_one(sg, target, radius) for sg in groups]
        self.hooks.group_plan(subgroups=len(groups), agents=len(agents))

        routes: dict[int, AgentRoute] = {}
        with self.graph.lock.read():
            for sg in groups:
                left = self.graph.left_site(sg.edge)
                right = self.graph.right_site(sg.edge)
                for a in sg.agents:
                    routes[a.id] = AgentRoute(
                        agent_id=a.id,
                        points=list(sg.plan.points) if sg.plan else [],
                        edge_id=sg.edge.id,
                        clearance=LateralClearance(
                            _site_distance(left, a.position), _site_distance(right, a.position)
                        ),
                    )
        for a in agents:
            routes.setdefault(a.id, AgentRoute(a.id, [], None, None))
        return routes
