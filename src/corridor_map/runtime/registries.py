# runtime/registries.py
from collections.abc import Callable
from typing import Any

from corridor_map.app.protocols import VoronoiBuilder
from corridor_map.config.models import VoronoiSampledModel, VoronoiUnion
from corridor_map.domain.planning.astar import Heuristic, euclidean, squared_legacy
from corridor_map.domain.voronoi.sampled import SampledVoronoiBuilder

VoronoiFactory = Callable[[VoronoiUnion, Any], VoronoiBuilder]

_voronoi_registry: dict[str, VoronoiFactory] = {}
_heuristic_registry: dict[str, Heuristic] = {}


# ------------------- Voronoi producers ---------------------------


def register_voronoi(kind: str):
    def deco(fn: VoronoiFactory):
        _voronoi_registry[kind] = fn
        return fn

    return deco


def make_voronoi_builder(cfg: VoronoiUnion, *, deps: dict | None = None) -> VoronoiBuilder:
    try:
        factory = _voronoi_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown voronoi kind {cfg.kind!r}")
    return factory(cfg, deps or {})


@register_voronoi("sampled")
def _make_sampled(cfg: VoronoiSampledModel, deps):
    return SampledVoronoiBuilder(sample_step=cfg.sample_step, merge_tolerance=cfg.merge_tolerance)


# ------------------- Heuristics ---------------------------


def register_heuristic(name: str):
    def deco(fn: Heuristic):
        _heuristic_registry[name] = fn
        return fn

    return deco


def make_heuristic(name: str) -> Heuristic:
    try:
        return _heuristic_registry[name]
    except KeyError:
        raise ValueError(f"Unknown heuristic {name!r}")


register_heuristic("euclidean")(euclidean)
register_heuristic("squared_legacy")(squared_legacy)
