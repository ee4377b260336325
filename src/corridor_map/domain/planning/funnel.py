# corridor_map/domain/planning/funnel.py
from collections.abc import Sequence

from corridor_map.domain.entities.corridor import Edge
from corridor_map.domain.entities.geography import Point
from corridor_map.domain.geometry import cross, point_in_polygon
from corridor_map.domain.graph.corridor_graph import CorridorGraph


def compute_portals(
    graph: CorridorGraph,
    edges: Sequence[Edge],
    start: Point,
    goal: Point,
    radius: float = 0.0,
) -> tuple[list[Point], list[Point]]:
    """
    Left/right doorway sequence for an edge path, bracketed by (start, start) and
    (goal, goal). Leading edges whose cell already holds `start` and trailing
    edges whose cell holds `goal` contribute nothing except the doorway into the
    goal's cell.
    """
    lefts, rights = [start], [start]

    def push(left: Point, right: Point):
        if left == lefts[-1] and right == rights[-1]:
            return
        lefts.append(left)
        rights.append(right)

    i, j = 0, len(edges) - 1
    while i <= j and point_in_polygon(edges[i].cell, start):
        i += 1
    while j >= i and point_in_polygon(edges[j].cell, goal):
        j -= 1

    for e in edges[i : j + 1]:
        prop = graph.add_property(e, radius)
        push(prop.left_start, prop.right_start)

    if j + 1 < len(edges):
        prop = graph.add_property(edges[j + 1], radius)
        push(prop.left_start, prop.right_start)
    elif i <= j:
        last = edges[j]
        prop = graph.add_property(last, radius)
        end = graph.vertices[last.end].position
        if not point_in_polygon((end, prop.left_end, prop.right_end), goal):
            push(prop.left_end, prop.right_end)

    push(goal, goal)
    return lefts, rights


def _add(path: list[Point], p: Point):
    if not path or path[-1] != p:
        path.append(p)


def string_pull(
    lefts: Sequence[Point], rights: Sequence[Point], *, left_first: bool | None = None
) -> list[Point]:
    """
    Simple stupid funnel over portals given walker-left / walker-right, y up.
    `left_first=None` picks the rail to update first from the first portal's
    geometry; either order yields the same polyline.
    """
    n = len(lefts)
    if n == 0:
        return []
    path: list[Point] = []
    apex = left = right = lefts[0]
    apex_i = left_i = right_i = 0
    _add(path, apex)
    if n == 1:
        return path

    if left_first is None:
        l1, r1 = lefts[1], rights[1]
        dl = (l1.x - apex.x) ** 2 + (l1.y - apex.y) ** 2
        dr = (r1.x - apex.x) ** 2 + (r1.y - apex.y) ** 2
        left_first = dl > dr

    i = 1
    while i < n:
        restarted = False
        for side in ("left", "right") if left_first else ("right", "left"):
            if side == "left":
                nl = lefts[i]
                if cross(apex, left, nl) <= 0.0:
                    if apex == left or cross(apex, right, nl) > 0.0:
                        left, left_i = nl, i
                    else:
                        # left crossed over right: right becomes the new apex
                        _add(path, right)
                        apex, apex_i = right, right_i
                        restarted = True
            else:
                nr = rights[i]
                if cross(apex, right, nr) >= 0.0:
                    if apex == right or cross(apex, left, nr) < 0.0:
                        right, right_i = nr, i
                    else:
                        _add(path, left)
                        apex, apex_i = left, left_i
                        restarted = True
            if restarted:
                left = right = apex
                left_i = right_i = apex_i
                i = apex_i
                break
        i += 1

    _add(path, lefts[-1])
    return path


def path_length(points: Sequence[Point]) -> float:
    return sum(((b.x - a.x) ** 2 + (b.y - a.y) ** 2) ** 0.5 for a, b in zip(points, points[1:]))
