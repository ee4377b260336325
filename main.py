# main.py
from corridor_map.app.build import build
from corridor_map.app.controllers.groups import Agent
from corridor_map.domain.entities.geography import Point
from corridor_map.io.graph_logging import _default_json_logger

BLOCKS = {
    "name": "blocks",
    "run_id": "demo",
    "map": {
        "bounds": {"min_x": -100, "min_y": -100, "max_x": 100, "max_y": 100},
        "obstacles": [
            {"points": [(-40, 10), (-10, 10), (-10, 40), (-40, 40)]},
            {"points": [(10, 10), (40, 10), (40, 40), (10, 40)]},
            {"points": [(10, -40), (40, -40), (40, -10), (10, -10)]},
            {"points": [(-40, -40), (-10, -40), (-10, -10), (-40, -10)]},
        ],
    },
    "voronoi": {"kind": "sampled", "sample_step": 1.0},
}


def run():
    app = build(BLOCKS)
    log = _default_json_logger()

    plan = app.planner.find_path(Point(55, 55), Point(-75, -75))
    log.info(
        "path",
        extra={"extra": {"points": [(p.x, p.y) for p in plan.points], "length": plan.length}},
    )

    report = app.updater.insert_obstacle([Point(60, -66), Point(66, -66), Point(66, -60), Point(60, -60)])
    log.info("inserted", extra={"extra": {"mode": report.mode, "added": len(report.added_edges)}})

    agents = [Agent(1, Point(55, 55), 1.0), Agent(2, Point(58, 52), 1.0), Agent(3, Point(-70, 70), 1.0)]
    routes = app.groups.plan(agents, Point(-75, -75))
    for r in routes.values():
        log.info("route", extra={"extra": {"agent": r.agent_id, "points": len(r.points)}})


if __name__ == "__main__":
    run()
