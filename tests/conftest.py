# tests/conftest.py
import pytest

from corridor_map.app.build import build
from corridor_map.domain.entities.geography import Point, SourceCategory
from corridor_map.domain.graph.corridor_graph import CorridorGraph
from corridor_map.domain.voronoi.diagram import VoronoiDiagram, VoronoiEdge

BLOCKS_OBSTACLES = [
    [(-40, 10), (-10, 10), (-10, 40), (-40, 40)],
    [(10, 10), (40, 10), (40, 40), (10, 40)],
    [(10, -40), (40, -40), (40, -10), (10, -10)],
    [(-40, -40), (-10, -40), (-10, -10), (-40, -10)],
]


# ---------- Fixtures


@pytest.fixture
def blocks_cfg():
    return {
        "name": "blocks",
        "run_id": "t-1",
        "map": {
            "bounds": {"min_x": -100, "min_y": -100, "max_x": 100, "max_y": 100},
            "obstacles": [{"points": pts} for pts in BLOCKS_OBSTACLES],
        },
        "voronoi": {"kind": "sampled", "sample_step": 1.0},
    }


@pytest.fixture
def blocks_app(blocks_cfg):
    return build(blocks_cfg, use_logging=False)


@pytest.fixture
def corridor():
    """
    Straight corridor between a floor wall y=0 and a ceiling wall y=10,
    medial axis (0,5) - (50,5) - (100,5).

    Half-edge ids: 0 = v0->v1, 1 = v1->v0, 2 = v1->v2, 3 = v2->v1.
    """
    g = CorridorGraph()
    floor = g.add_segment(Point(0, 0), Point(100, 0))
    ceiling = g.add_segment(Point(100, 10), Point(0, 10))
    seg = SourceCategory.SEGMENT
    diagram = VoronoiDiagram(
        vertices=[Point(0, 5), Point(50, 5), Point(100, 5)],
        edges=[
            VoronoiEdge(0, 1, 1, ceiling.id, seg),
            VoronoiEdge(1, 0, 0, floor.id, seg),
            VoronoiEdge(1, 2, 3, ceiling.id, seg),
            VoronoiEdge(2, 1, 2, floor.id, seg),
        ],
    )
    g.load(diagram)
    return g
