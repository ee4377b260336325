import logging

import pytest
from pydantic import ValidationError

from corridor_map.app.build import build
from corridor_map.config.models import ScenarioModel
from corridor_map.domain.entities.geography import Point
from corridor_map.domain.planning.astar import euclidean, squared_legacy
from corridor_map.io.graph_logging import GraphLogging
from corridor_map.runtime.registries import make_heuristic


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _capture_logger(name):
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = _Capture()
    logger.addHandler(handler)
    return logger, handler


def test_build_blocks(blocks_app):
    g = blocks_app.graph
    assert len(g.vertices) > 0 and len(g.edges) > 0
    g.check_invariants()
    assert blocks_app.model.name == "blocks"
    assert blocks_app.planner.heuristic is euclidean


def test_build_accepts_a_validated_model(blocks_cfg):
    model = ScenarioModel.model_validate(blocks_cfg)
    app = build(model, use_logging=False)
    assert app.model is model


def test_inverted_bounds_are_rejected(blocks_cfg):
    blocks_cfg["map"]["bounds"] = {"min_x": 100, "min_y": -100, "max_x": -100, "max_y": 100}
    with pytest.raises(ValidationError):
        build(blocks_cfg, use_logging=False)


def test_unknown_voronoi_kind_is_rejected(blocks_cfg):
    blocks_cfg["voronoi"] = {"kind": "fortune"}
    with pytest.raises(ValidationError):
        ScenarioModel.model_validate(blocks_cfg)


def test_unknown_fields_are_rejected(blocks_cfg):
    blocks_cfg["planner"] = {"heuristic": "euclidean", "beam_width": 3}
    with pytest.raises(ValidationError):
        ScenarioModel.model_validate(blocks_cfg)


def test_route_alternatives_are_configurable(blocks_cfg):
    assert build(blocks_cfg, use_logging=False).planner.alternatives == 12
    blocks_cfg["planner"] = {"alternatives": 1}
    assert build(blocks_cfg, use_logging=False).planner.alternatives == 1
    blocks_cfg["planner"] = {"alternatives": 0}
    with pytest.raises(ValidationError):
        ScenarioModel.model_validate(blocks_cfg)


def test_degenerate_obstacle_is_rejected(blocks_cfg):
    blocks_cfg["map"]["obstacles"].append({"points": [(0, 0)]})
    with pytest.raises(ValidationError):
        ScenarioModel.model_validate(blocks_cfg)


def test_heuristic_registry():
    assert make_heuristic("euclidean") is euclidean
    assert make_heuristic("squared_legacy") is squared_legacy
    with pytest.raises(ValueError):
        make_heuristic("manhattan")


def test_logging_hooks_tag_records_with_run_id(blocks_cfg):
    logger, handler = _capture_logger("corridor_map.test.build")
    hooks = GraphLogging(run_id="t-9", logger=logger)
    hooks.build_start(sites=4, obstacles=1)
    hooks.update_end(mode="rebuild", removed_edges=3, added_edges=5, reason="no frontier", ms=1.23456)
    hooks.plan_end(found=True, expansions=7, reason="found", length=12.0)

    msgs = [r.getMessage() for r in handler.records]
    assert msgs == ["build_start", "update_end"]  # plan_end is debug-only
    assert all(r.extra["run_id"] == "t-9" for r in handler.records)
    assert handler.records[1].levelno == logging.WARNING
    assert handler.records[1].extra["ms"] == 1.235


def test_debug_plan_logging_is_sampled():
    logger, handler = _capture_logger("corridor_map.test.sampled")
    hooks = GraphLogging(logger=logger, debug=True, sample_every=2)
    for _ in range(4):
        hooks.plan_end(found=True, expansions=1, reason="found", length=1.0)
    assert len(handler.records) == 2
    assert handler.records[0].levelno == logging.DEBUG


def test_planning_reports_through_hooks(blocks_cfg):
    blocks_cfg["log"] = {"level": "DEBUG", "debug": True}
    app = build(blocks_cfg, use_logging=False)
    logger, handler = _capture_logger("corridor_map.test.planning")
    app.planner.hooks = GraphLogging(run_id="t-1", logger=logger, debug=True)
    app.planner.find_path(Point(55, 55), Point(-75, -75))
    (record,) = handler.records
    assert record.extra["found"] is True
    assert record.extra["reason"] == "found"
