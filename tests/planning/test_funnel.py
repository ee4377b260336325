import pytest

from corridor_map.domain.entities.geography import Point
from corridor_map.domain.planning.funnel import compute_portals, path_length, string_pull
from corridor_map.domain.planning.planner import PathPlanner


@pytest.fixture
def l_corridor():
    # east along y in [0, 10], then north along x in [10, 20]
    lefts = [Point(0, 5), Point(5, 10), Point(10, 10), Point(10, 20), Point(15, 25)]
    rights = [Point(0, 5), Point(5, 0), Point(20, 0), Point(20, 20), Point(15, 25)]
    return lefts, rights


def test_funnel_wraps_the_inner_corner(l_corridor):
    assert string_pull(*l_corridor) == [Point(0, 5), Point(10, 10), Point(15, 25)]


def test_scan_order_does_not_change_the_result(l_corridor):
    a = string_pull(*l_corridor, left_first=True)
    b = string_pull(*l_corridor, left_first=False)
    assert a == b


def test_mirrored_corridor_wraps_the_right_corner(l_corridor):
    lefts, rights = l_corridor
    flip = lambda ps: [Point(p.x, -p.y) for p in ps]  # noqa: E731
    # mirroring swaps which rail is walker-left
    out = string_pull(flip(rights), flip(lefts))
    assert out == [Point(0, -5), Point(10, -10), Point(15, -25)]


def test_funnel_is_idempotent(l_corridor):
    once = string_pull(*l_corridor)
    assert string_pull(once, once) == once


def test_funnel_length_bounds(l_corridor):
    lefts, rights = l_corridor
    out = string_pull(lefts, rights)
    centre = [Point(0, 5), Point(15, 5), Point(15, 25)]
    straight = path_length([out[0], out[-1]])
    assert straight <= path_length(out) <= path_length(centre)


def test_degenerate_inputs():
    p, q = Point(1, 1), Point(4, 5)
    assert string_pull([], []) == []
    assert string_pull([p], [p]) == [p]
    assert string_pull([p, q], [p, q]) == [p, q]
    assert string_pull([p, p, q, q], [p, p, q, q]) == [p, q]


def test_portals_in_a_straight_corridor(corridor):
    e0, e2 = corridor.edges[0], corridor.edges[2]
    lefts, rights = compute_portals(corridor, [e0, e2], Point(10, 5), Point(90, 5))
    assert lefts == [Point(10, 5), Point(50, 10), Point(90, 5)]
    assert rights == [Point(10, 5), Point(50, 0), Point(90, 5)]
    assert string_pull(lefts, rights) == [Point(10, 5), Point(90, 5)]

    lefts, rights = compute_portals(corridor, [e0, e2], Point(10, 5), Point(90, 5), radius=2.0)
    assert lefts[1] == Point(50, 8) and rights[1] == Point(50, 2)


def test_no_edges_is_a_direct_segment(corridor):
    lefts, rights = compute_portals(corridor, [], Point(10, 5), Point(30, 7))
    assert string_pull(lefts, rights) == [Point(10, 5), Point(30, 7)]


def test_planner_in_corridor(corridor):
    plan = PathPlanner(corridor).find_path(Point(10, 5), Point(90, 5))
    assert plan.found
    assert plan.points == [Point(10, 5), Point(90, 5)]
    assert abs(plan.length - 80.0) < 1e-12
