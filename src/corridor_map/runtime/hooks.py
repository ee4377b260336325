# corridor_map/runtime/hooks.py
from typing import Protocol


class MapHooks(Protocol):
    def build_start(self, *, sites, obstacles): ...
    def build_end(self, *, vertices, edges, ms): ...
    def update_start(self, *, obstacle_id, envelope): ...
    def update_end(self, *, mode, removed_edges, added_edges, reason, ms): ...
    def plan_end(self, *, found, expansions, reason, length): ...
    def group_plan(self, *, subgroups, agents): ...
    def error(self, where: str, *, exc: BaseException, **kw): ...


class NoopHooks:
    def build_start(self, **_):
        pass

    def build_end(self, **_):
        pass

    def update_start(self, **_):
        pass

    def update_end(self, **_):
        pass

    def plan_end(self, **_):
        pass

    def group_plan(self, **_):
        pass

    def error(self, *_, **__):
        pass
