"""Tests for the force-directed layout and hit testing."""

import math
import random

import pytest

from scholia.core.graph import GraphData, GraphEdge, GraphNode
from scholia.core.layout import (
    ForceLayout,
    LayoutParams,
    NodePosition,
    clamp_scale,
    hit_test,
    node_radius,
    to_layout_space,
)


def two_nodes(connected=True):
    nodes = (GraphNode("a", 1), GraphNode("b", 1))
    edges = (GraphEdge("a", "b", 1),) if connected else ()
    return GraphData(nodes=nodes, edges=edges)


def distance(p, q):
    return math.hypot(p[0] - q[0], p[1] - q[1])


@pytest.mark.parametrize("seed", [0, 1, 7, 42, 1234])
def test_connected_pair_settles_near_spring_length(seed):
    """Test two linked nodes end up about one spring length apart."""
    layout = ForceLayout(rng=random.Random(seed))
    positions = layout.run(two_nodes())

    d = distance(positions["a"], positions["b"])
    assert abs(d - LayoutParams().spring_length) <= 25


def test_unconnected_nodes_push_apart():
    """Test pure repulsion increases separation."""
    graph = two_nodes(connected=False)
    start = ForceLayout(rng=random.Random(3)).initial_positions(graph)
    end = ForceLayout(rng=random.Random(3)).run(graph, steps=50)

    d0 = distance((start["a"].x, start["a"].y), (start["b"].x, start["b"].y))
    assert distance(end["a"], end["b"]) > d0


def test_positions_stay_finite_for_coincident_nodes():
    """Test nodes placed on top of each other do not blow up."""
    layout = ForceLayout()
    graph = two_nodes()
    positions = {"a": NodePosition(0.0, 0.0), "b": NodePosition(0.0, 0.0)}
    for i in range(20):
        positions = layout.step(graph, positions, layout.temperature(i, 20))
    for pos in positions.values():
        assert math.isfinite(pos.x) and math.isfinite(pos.y)


def test_step_does_not_mutate_input():
    """Test positions are threaded through, not updated in place."""
    layout = ForceLayout(rng=random.Random(0))
    graph = two_nodes()
    positions = layout.initial_positions(graph)
    snapshot = dict(positions)

    result = layout.step(graph, positions, 1.0)
    assert positions == snapshot
    assert result is not positions
    assert result["a"] != positions["a"]


def test_initial_ring():
    """Test the initial placement spreads nodes around the origin."""
    nodes = tuple(GraphNode(t, 1) for t in "abcd")
    positions = ForceLayout(rng=random.Random(5)).initial_positions(GraphData(nodes=nodes))

    assert set(positions) == set("abcd")
    for pos in positions.values():
        r = math.hypot(pos.x, pos.y)
        assert 0.3 * 200 - 1e-9 <= r <= 200 + 1e-9
        assert (pos.vx, pos.vy) == (0.0, 0.0)
    # node 1 sits at 90 degrees
    assert abs(positions["b"].x) < 1e-9 and positions["b"].y > 0


def test_temperature_schedule():
    """Test temperature falls linearly to its floor."""
    layout = ForceLayout()
    assert layout.temperature(0, 200) == 1.0
    assert layout.temperature(100, 200) == pytest.approx(0.5)
    assert layout.temperature(199, 200) == pytest.approx(0.1)
    assert layout.temperature(0, 0) == pytest.approx(0.1)


def test_empty_graph():
    """Test an empty graph lays out to nothing."""
    assert ForceLayout().run(GraphData()) == {}


def test_custom_steps():
    """Test running zero steps returns the initial placement."""
    graph = two_nodes()
    start = ForceLayout(rng=random.Random(9)).initial_positions(graph)
    result = ForceLayout(rng=random.Random(9)).run(graph, steps=0)
    assert result == {t: (p.x, p.y) for t, p in start.items()}


def test_node_radius():
    """Test node radius grows with highlight count."""
    assert node_radius(0, 0) == 15.0
    assert node_radius(5, 10) == 27.5
    assert node_radius(10, 10) == 40.0


def test_clamp_scale():
    """Test zoom is kept within bounds."""
    assert clamp_scale(0.1) == 0.3
    assert clamp_scale(1.2) == 1.2
    assert clamp_scale(10) == 3.0


def test_to_layout_space():
    """Test screen points map back through the view transform."""
    viewport = (1000.0, 800.0)
    assert to_layout_space((500, 400), (0, 0), 1.0, viewport) == (0.0, 0.0)
    assert to_layout_space((700, 400), (100, 0), 2.0, viewport) == (50.0, 0.0)
    # scale is clamped before use
    assert to_layout_space((530, 400), (0, 0), 0.01, viewport) == pytest.approx((100.0, 0.0))


def test_hit_test():
    """Test hit testing finds the node within its reach."""
    graph = GraphData(nodes=(GraphNode("big", 4), GraphNode("small", 1)))
    layout = {"big": (0.0, 0.0), "small": (200.0, 0.0)}

    # big: radius 40, reach 60; small: radius 21.25, reach 31.875
    assert hit_test(graph, layout, (55.0, 0.0)).tag == "big"
    assert hit_test(graph, layout, (230.0, 0.0)).tag == "small"
    assert hit_test(graph, layout, (100.0, 0.0)) is None
    assert hit_test(GraphData(), {}, (0.0, 0.0)) is None


def test_hit_test_first_match_wins():
    """Test overlapping nodes resolve in graph order."""
    graph = GraphData(nodes=(GraphNode("first", 1), GraphNode("second", 1)))
    layout = {"first": (0.0, 0.0), "second": (10.0, 0.0)}
    assert hit_test(graph, layout, (5.0, 0.0)).tag == "first"
