# corridor_map/app/build.py
from collections.abc import Mapping
from dataclasses import dataclass

from corridor_map.app.controllers.groups import GroupCoordinator
from corridor_map.app.protocols import VoronoiBuilder
from corridor_map.config.models import ScenarioModel
from corridor_map.domain.entities.geography import BoundingBox, Point
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.graph.updater import DynamicUpdater
from corridor_map.domain.planning.planner import PathPlanner
from corridor_map.io.graph_logging import GraphLogging  # JSON logs
from corridor_map.runtime.hooks import NoopHooks
from corridor_map.runtime.registries import make_heuristic, make_voronoi_builder


@dataclass
class App:
    model: ScenarioModel
    builder: VoronoiBuilder
    graph: CorridorGraph
    updater: DynamicUpdater
    planner: PathPlanner
    groups: GroupCoordinator


def build(cfg: ScenarioModel | Mapping, *, use_logging: bool = True) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, ScenarioModel) else ScenarioModel.model_validate(cfg)

    # 1) Hooks
    hooks = (
        GraphLogging(
            run_id=model.run_id,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
        )
        if use_logging
        else NoopHooks()
    )

    # 2) Voronoi producer
    builder = make_voronoi_builder(model.voronoi)

    # 3) Graph: border, obstacles, loose sites, then one full construction
    b = model.map.bounds
    graph = CorridorGraph(hooks=hooks)
    graph.add_border(BoundingBox(b.min_x, b.min_y, b.max_x, b.max_y))
    for obs in model.map.obstacles:
        graph.add_obstacle([Point(x, y) for x, y in obs.points], closed=obs.closed)
    for x, y in model.map.points:
        graph.add_point(Point(x, y))
    for (ax, ay), (bx, by) in model.map.segments:
        graph.add_segment(Point(ax, ay), Point(bx, by))
    graph.build(builder)

    # 4) Services (inject deps explicitly)
    updater = DynamicUpdater(
        graph,
        builder,
        match_tolerance=model.updater.match_tolerance,
        allow_rebuild=model.updater.allow_full_rebuild,
        hooks=hooks,
    )
    planner = PathPlanner(
        graph,
        heuristic=make_heuristic(model.planner.heuristic),
        max_expansions=model.planner.max_expansions,
        alternatives=model.planner.alternatives,
        hooks=hooks,
    )
    groups = GroupCoordinator(graph, planner, hooks=hooks, max_workers=model.group.max_workers)

    return App(model, builder, graph, updater, planner, groups)
