import pytest

from rhizome.context import ContextOptions, resolve_context
from rhizome.models import Node


def _node(node_id: str, *, ws: str = "w", **kwargs) -> Node:
    kwargs.setdefault("title", node_id)
    return Node(id=node_id, workspace_id=ws, **kwargs)


def _ids(nodes) -> list[str]:
    return [n.id for n in nodes]


def test_unknown_node_returns_none() -> None:
    assert resolve_context("nope", [_node("a")]) is None


def test_identical_tags_score_and_mutual_suggestion() -> None:
    a = _node("a", title="Alpha", tags=("research", "q1"))
    b = _node("b", title="Beta", tags=("Research", "Q1 "))

    view_a = resolve_context("a", [a, b])
    view_b = resolve_context("b", [a, b])

    assert [(s.node.id, s.score) for s in view_a.suggestions] == [("b", 0.65)]
    assert [(s.node.id, s.score) for s in view_b.suggestions] == [("a", 0.65)]
    assert view_a.suggestions[0].shared_tags == ("q1", "research")
    assert view_a.suggestions[0].matched_keywords == ()


def test_relations_backlinks_and_stale_ids() -> None:
    focal = _node("f", relation_ids=("r", "deleted"))
    r = _node("r")
    b = _node("b", relation_ids=("f",))
    view = resolve_context("f", [focal, r, b])

    assert _ids(view.direct_relations) == ["r"]
    assert _ids(view.backlinks) == ["b"]


def test_backlink_symmetry() -> None:
    nodes = [
        _node("a", relation_ids=("b", "c")),
        _node("b", relation_ids=("c",)),
        _node("c", relation_ids=("a",)),
    ]
    for source in nodes:
        for target_id in source.relation_ids:
            view = resolve_context(target_id, nodes)
            assert source.id in _ids(view.backlinks)


def test_workspace_isolation() -> None:
    focal = _node("f", tags=("shared",), relation_ids=("x",))
    x = _node("x", ws="other", tags=("shared",), relation_ids=("f",))
    y = _node("y", ws="other", tags=("shared",), parent_id="f")
    sibling = _node("s", tags=("shared",))
    view = resolve_context("f", [focal, x, y, sibling])

    foreign = {"x", "y"}
    fields = [
        view.direct_relations,
        view.backlinks,
        view.shared_tag_nodes,
        view.recently_connected,
        view.children,
        view.pending_todos,
        [s.node for s in view.suggestions],
    ]
    for field in fields:
        assert not foreign & set(_ids(field))
    assert view.parent is None
    assert _ids(view.shared_tag_nodes) == ["s"]


def test_hierarchy_neighbors_and_pending_work_with_cycle() -> None:
    focal = _node("f", parent_id="t3")  # malformed: parent is also a descendant
    t1 = _node("t1", type="todo", status="pending", parent_id="f")
    t2 = _node("t2", type="todo", status="completed", parent_id="f")
    t3 = _node("t3", type="task", status="pending", parent_id="t2")
    note = _node("n", type="note", status="pending", parent_id="t1")
    view = resolve_context("f", [focal, t1, t2, t3, note])

    assert view.parent.id == "t3"
    assert _ids(view.children) == ["t1", "t2"]
    assert _ids(view.pending_todos) == ["t1", "t3"]


def test_recently_connected_sorted_by_update_and_limited() -> None:
    focal = _node("f", relation_ids=("r1", "r2", "junk"))
    r1 = _node("r1", updated_at="2024-01-01T00:00:00Z")
    r2 = _node("r2", updated_at="2024-03-01T00:00:00Z")
    junk = _node("junk", updated_at="yesterday-ish")
    b = _node("b", relation_ids=("f",), updated_at="2024-02-01T00:00:00Z")
    r2_back = _node("r2b", updated_at="2023-01-01T00:00:00Z")
    nodes = [focal, r1, r2, junk, b, r2_back]

    view = resolve_context("f", nodes)
    assert _ids(view.recently_connected) == ["r2", "b", "r1", "junk"]

    limited = resolve_context("f", nodes, ContextOptions(recently_connected_limit=2))
    assert _ids(limited.recently_connected) == ["r2", "b"]


def test_recently_connected_dedupes_mutual_links() -> None:
    focal = _node("f", relation_ids=("m",))
    mutual = _node("m", relation_ids=("f",))
    view = resolve_context("f", [focal, mutual])
    assert _ids(view.recently_connected) == ["m"]


def test_suggestions_exclude_connected_nodes() -> None:
    focal = _node("f", tags=("x",), relation_ids=("r",), parent_id="p")
    nodes = [
        focal,
        _node("r", tags=("x",)),
        _node("b", tags=("x",), relation_ids=("f",)),
        _node("p", tags=("x",)),
        _node("c", tags=("x",), parent_id="f"),
        _node("s", tags=("x",)),
    ]
    view = resolve_context("f", nodes)
    assert _ids(s.node for s in view.suggestions) == ["s"]


def test_suggestions_require_overlap_and_min_score() -> None:
    focal = _node("f", title="garden planning notes")
    weak = _node("w", title="garden")
    unrelated = _node("u", title="zebra crossing")
    nodes = [focal, weak, unrelated]

    assert resolve_context("f", nodes).suggestions == ()

    view = resolve_context("f", nodes, ContextOptions(min_suggestion_score=0.1))
    assert [(s.node.id, s.score) for s in view.suggestions] == [("w", 0.1167)]
    assert view.suggestions[0].matched_keywords == ("garden",)


def test_suggestions_zero_threshold_still_needs_overlap() -> None:
    focal = _node("f", title="garden")
    unrelated = _node("u", title="zebra")
    view = resolve_context("f", [focal, unrelated], ContextOptions(min_suggestion_score=0.0))
    assert view.suggestions == ()


def test_suggestion_ties_broken_by_recency_then_input_order() -> None:
    focal = _node("f", title="f", tags=("t",))
    nodes = [
        focal,
        _node("old", title="old", tags=("t",), updated_at="2024-01-01T00:00:00Z"),
        _node("bad", title="bad", tags=("t",), updated_at="???"),
        _node("new", title="new", tags=("t",), updated_at="2024-05-01T00:00:00Z"),
        _node("bad2", title="bad2", tags=("t",)),
    ]
    view = resolve_context("f", nodes)
    assert _ids(s.node for s in view.suggestions) == ["new", "old", "bad", "bad2"]
    assert all(0.0 <= s.score <= 1.0 for s in view.suggestions)


def test_suggestion_limit() -> None:
    focal = _node("f", tags=("t",))
    others = [_node(f"n{i}", tags=("t",)) for i in range(5)]
    view = resolve_context("f", [focal, *others], ContextOptions(suggestion_limit=2))
    assert len(view.suggestions) == 2


def test_determinism_and_serialization() -> None:
    nodes = [
        _node("f", tags=("a", "b"), relation_ids=("r",), content="soil moisture sensors"),
        _node("r", tags=("a",)),
        _node("s", tags=("b",), content="moisture readings"),
        _node("c", type="todo", status="pending", parent_id="f"),
    ]
    first = resolve_context("f", nodes)
    second = resolve_context("f", list(nodes))
    assert first == second
    assert first.to_dict() == second.to_dict()

    data = first.to_dict()
    assert data["directRelations"] == ["r"]
    assert data["pendingTodosInside"] == ["c"]
    assert data["suggestedRelatedNodes"][0]["node"]["id"] == "s"


def test_fixture_vault_context(fixture_nodes) -> None:
    view = resolve_context("project-alpha", fixture_nodes)

    assert _ids(view.direct_relations) == ["idea-beta"]
    assert _ids(view.backlinks) == []
    assert _ids(view.children) == ["task-one", "task-two"]
    assert _ids(view.pending_todos) == ["task-one", "sub-task"]
    assert _ids(view.shared_tag_nodes) == ["note-gamma"]
    assert [(s.node.id, s.score) for s in view.suggestions] == [("note-gamma", pytest.approx(0.6733))]


def test_export_tag_string_matches_tag_list() -> None:
    listed = Node.from_dict({"id": "a", "workspaceId": "w", "tags": ["research", "q1"]})
    joined = Node.from_dict({"id": "b", "workspaceId": "w", "tags": "research, q1"})

    view = resolve_context("a", [listed, joined])
    assert _ids(view.shared_tag_nodes) == ["b"]
    assert view.suggestions[0].score == 0.65
