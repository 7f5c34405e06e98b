import math

import pytest

from rhizome.commands.layout_cmd import layout_inputs
from rhizome.layout import LayoutConfig, LayoutEngine, LayoutMode, LayoutResult
from rhizome.models import EdgeType, GraphEdge, Node


def _nodes(*ids: str) -> list[Node]:
    return [Node(id=node_id, workspace_id="w") for node_id in ids]


def _xy(result: LayoutResult, node_id: str) -> tuple[float, float]:
    point = result.position(node_id)
    assert point is not None, f"{node_id} was not positioned"
    return (point.x, point.y)


@pytest.fixture
def engine() -> LayoutEngine:
    return LayoutEngine()


def test_standard_layout_places_parent_children_and_relation(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "P", "C1", "C2", "R")
    edges = [
        GraphEdge("P", "F", EdgeType.HIERARCHY),
        GraphEdge("F", "C1", EdgeType.HIERARCHY),
        GraphEdge("F", "C2", EdgeType.HIERARCHY),
        GraphEdge("F", "R", EdgeType.RELATION),
    ]
    result = engine.layout(nodes, edges, "F")

    assert _xy(result, "F") == (0.0, 0.0)
    assert _xy(result, "P") == (0.0, -120.0)
    assert _xy(result, "C1") == (-50.0, 120.0)
    assert _xy(result, "C2") == (50.0, 120.0)
    assert _xy(result, "R") == pytest.approx((200.0, 0.0))

    assert [n.id for n in result.positioned_nodes] == ["F", "P", "C1", "C2", "R"]
    assert [(e.edge_type, e.is_curved) for e in result.positioned_edges] == [
        (EdgeType.HIERARCHY, False),
        (EdgeType.HIERARCHY, False),
        (EdgeType.HIERARCHY, False),
        (EdgeType.RELATION, True),
    ]
    levels = {n.id: n.level for n in result.positioned_nodes}
    assert levels == {"F": 0, "P": -1, "C1": 1, "C2": 1, "R": None}


def test_edge_endpoints_match_node_positions(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "C", "R")
    edges = [GraphEdge("F", "C", EdgeType.HIERARCHY), GraphEdge("R", "F", EdgeType.RELATION)]
    result = engine.layout(nodes, edges, "F")

    for edge in result.positioned_edges:
        assert edge.source_point == result.position(edge.source_id)
        assert edge.target_point == result.position(edge.target_id)


def test_grandchildren_are_centred_under_their_own_parent(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "A", "B", "A1", "A2")
    edges = [
        GraphEdge("F", "A", EdgeType.HIERARCHY),
        GraphEdge("F", "B", EdgeType.HIERARCHY),
        GraphEdge("A", "A1", EdgeType.HIERARCHY),
        GraphEdge("A", "A2", EdgeType.HIERARCHY),
    ]
    result = engine.layout(nodes, edges, "F")

    assert _xy(result, "A") == (-50.0, 120.0)
    assert _xy(result, "A1") == (-100.0, 240.0)
    assert _xy(result, "A2") == (0.0, 240.0)


def test_depth_limit_bounds_the_subtree(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "A", "B", "C", "D")
    edges = [
        GraphEdge("F", "A", EdgeType.HIERARCHY),
        GraphEdge("A", "B", EdgeType.HIERARCHY),
        GraphEdge("B", "C", EdgeType.HIERARCHY),
        GraphEdge("C", "D", EdgeType.HIERARCHY),
    ]
    result = engine.layout(nodes, edges, "F", depth_limit=3)

    assert [n.id for n in result.positioned_nodes] == ["F", "A", "B", "C"]
    assert _xy(result, "C") == (0.0, 360.0)
    assert [(e.source_id, e.target_id) for e in result.positioned_edges] == [("F", "A"), ("A", "B"), ("B", "C")]


def test_depth_zero_places_focal_and_relations_only(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "P", "C", "R")
    edges = [
        GraphEdge("P", "F", EdgeType.HIERARCHY),
        GraphEdge("F", "C", EdgeType.HIERARCHY),
        GraphEdge("F", "R", EdgeType.RELATION),
    ]
    result = engine.layout(nodes, edges, "F", depth_limit=0)
    assert [n.id for n in result.positioned_nodes] == ["F", "R"]


def test_hierarchy_cycle_terminates(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "A")
    edges = [GraphEdge("F", "A", EdgeType.HIERARCHY), GraphEdge("A", "F", EdgeType.HIERARCHY)]
    result = engine.layout(nodes, edges, "F", depth_limit=10)

    assert _xy(result, "F") == (0.0, 0.0)
    assert _xy(result, "A") == (0.0, 120.0)


def test_missing_focal_falls_back_to_circle(engine: LayoutEngine) -> None:
    nodes = _nodes("a", "b", "c", "d")
    edges = [GraphEdge("a", "b", EdgeType.RELATION)]
    result = engine.layout(nodes, edges, "missing")

    assert len(result.positioned_nodes) == 4
    for node in result.positioned_nodes:
        assert math.hypot(node.x, node.y) == pytest.approx(150.0)
    assert _xy(result, "a") == pytest.approx((150.0, 0.0))
    assert _xy(result, "b") == pytest.approx((0.0, 150.0))
    assert len(result.positioned_edges) == 1


def test_fallback_radius_is_clamped(engine: LayoutEngine) -> None:
    result = engine.layout(_nodes(*[f"n{i}" for i in range(20)]), [], "missing")
    assert math.hypot(*_xy(result, "n0")) == pytest.approx(300.0)


def test_contextual_layout_zones(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "P", "C1", "C2", "C3", "R1", "R2", "X1", "X2", "X3")
    edges = [
        GraphEdge("P", "F", EdgeType.HIERARCHY),
        GraphEdge("F", "C1", EdgeType.HIERARCHY),
        GraphEdge("F", "C2", EdgeType.HIERARCHY),
        GraphEdge("F", "C3", EdgeType.HIERARCHY),
        GraphEdge("F", "R1", EdgeType.RELATION),
        GraphEdge("R2", "F", EdgeType.RELATION),
        GraphEdge("F", "X1", EdgeType.CROSS_WORKSPACE),
        GraphEdge("F", "X2", EdgeType.CROSS_WORKSPACE),
        GraphEdge("F", "X3", EdgeType.CROSS_WORKSPACE),
    ]
    result = engine.layout(nodes, edges, "F", mode=LayoutMode.CONTEXTUAL)

    assert _xy(result, "F") == (0.0, 0.0)
    assert _xy(result, "P") == (0.0, -180.0)
    assert _xy(result, "C1") == (-160.0, 180.0)
    assert _xy(result, "C2") == (0.0, 180.0)
    assert _xy(result, "C3") == (160.0, 180.0)

    offset = 280.0 / math.sqrt(2)
    assert _xy(result, "R1") == pytest.approx((offset, offset))
    assert _xy(result, "R2") == pytest.approx((offset, -offset))

    assert _xy(result, "X1") == (400.0, -40.0)
    assert _xy(result, "X2") == (-400.0, 0.0)
    assert _xy(result, "X3") == (400.0, 40.0)

    curved = {e.target_id: e.is_curved for e in result.positioned_edges}
    assert curved["C1"] is False
    assert curved["X1"] is True


def test_contextual_single_relation_sits_at_arc_start(engine: LayoutEngine) -> None:
    result = engine.layout(_nodes("F", "R"), [GraphEdge("F", "R", EdgeType.RELATION)], "F", mode="contextual")
    angle = math.atan2(*reversed(_xy(result, "R")))
    assert angle == pytest.approx(math.pi / 4)


def test_edges_to_unplaced_nodes_are_dropped(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "C", "far")
    edges = [
        GraphEdge("F", "C", EdgeType.HIERARCHY),
        GraphEdge("C", "far", EdgeType.RELATION),
        GraphEdge("F", "ghost", EdgeType.RELATION),
    ]
    result = engine.layout(nodes, edges, "F")

    assert [n.id for n in result.positioned_nodes] == ["F", "C"]
    assert [(e.source_id, e.target_id) for e in result.positioned_edges] == [("F", "C")]


def test_layout_is_deterministic(engine: LayoutEngine) -> None:
    nodes = _nodes("F", "A", "B", "R")
    edges = [
        GraphEdge("F", "A", EdgeType.HIERARCHY),
        GraphEdge("F", "B", EdgeType.HIERARCHY),
        GraphEdge("R", "F", EdgeType.RELATION),
    ]
    assert engine.layout(nodes, edges, "F") == engine.layout(nodes, edges, "F")
    assert LayoutEngine().layout(nodes, edges, "F").to_dict() == engine.layout(nodes, edges, "F").to_dict()


def test_custom_config_changes_geometry() -> None:
    engine = LayoutEngine(LayoutConfig(hierarchy_vertical_gap=50, child_horizontal_spacing=40, node_radius=10))
    result = engine.layout(_nodes("F", "C"), [GraphEdge("F", "C", EdgeType.HIERARCHY)], "F")

    assert _xy(result, "C") == (0.0, 50.0)
    assert {n.radius for n in result.positioned_nodes} == {10}


@pytest.mark.parametrize("field", ["hierarchy_vertical_gap", "child_horizontal_spacing", "node_radius"])
def test_config_rejects_non_positive_values(field: str) -> None:
    with pytest.raises(ValueError, match=field):
        LayoutConfig(**{field: 0})


def test_overlapping_pairs_reports_close_nodes() -> None:
    engine = LayoutEngine(LayoutConfig(min_node_distance=150))
    nodes = _nodes("F", "C1", "C2")
    edges = [GraphEdge("F", "C1", EdgeType.HIERARCHY), GraphEdge("F", "C2", EdgeType.HIERARCHY)]
    result = engine.layout(nodes, edges, "F")

    pairs = engine.overlapping_pairs(result)
    assert [(a, b) for a, b, _ in pairs] == [("F", "C1"), ("F", "C2"), ("C1", "C2")]
    assert pairs[2][2] == pytest.approx(100.0)
    assert LayoutEngine().overlapping_pairs(result) == []


def test_fixture_vault_layout(fixture_nodes) -> None:
    visible, edges = layout_inputs(fixture_nodes, "project-alpha")
    result = LayoutEngine().layout(visible, edges, "project-alpha")

    assert _xy(result, "project-alpha") == (0.0, 0.0)
    assert _xy(result, "task-one") == (-50.0, 120.0)
    assert _xy(result, "task-two") == (50.0, 120.0)
    assert _xy(result, "sub-task") == (50.0, 240.0)
    assert _xy(result, "idea-beta") == pytest.approx((200.0, 0.0))
    assert len(result.positioned_nodes) == 5
    assert len(result.positioned_edges) == 4


def test_incoming_cross_workspace_links_reach_the_peripheral_zone() -> None:
    focal = Node(id="F", workspace_id="a", cross_workspace_refs=("Z",))
    incoming = Node(id="X", workspace_id="b", cross_workspace_refs=("F",))
    unrelated = Node(id="Y", workspace_id="b")
    outgoing = Node(id="Z", workspace_id="c")

    visible, edges = layout_inputs([focal, incoming, unrelated, outgoing], "F")
    assert [n.id for n in visible] == ["F", "X", "Z"]
    assert [(e.source, e.target, e.edge_type) for e in edges] == [
        ("F", "Z", EdgeType.CROSS_WORKSPACE),
        ("X", "F", EdgeType.CROSS_WORKSPACE),
    ]

    result = LayoutEngine().layout(visible, edges, "F", mode=LayoutMode.CONTEXTUAL)
    assert _xy(result, "Z") == (400.0, 0.0)
    assert _xy(result, "X") == (-400.0, 0.0)
    assert len(result.positioned_edges) == 2


def test_mutual_cross_workspace_refs_produce_one_edge() -> None:
    focal = Node(id="F", workspace_id="a", cross_workspace_refs=("X",))
    other = Node(id="X", workspace_id="b", cross_workspace_refs=("F",))

    visible, edges = layout_inputs([focal, other], "F")
    assert [n.id for n in visible] == ["F", "X"]
    assert [(e.source, e.target) for e in edges] == [("F", "X")]


@pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf")])
def test_config_rejects_non_finite_values(value: float) -> None:
    with pytest.raises(ValueError, match="relation_radial_distance"):
        LayoutConfig(relation_radial_distance=value)
