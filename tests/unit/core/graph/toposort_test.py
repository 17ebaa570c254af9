import pytest

from stablepack.core.graph.toposort import stable_toposort


def _sort(edges: dict[str, list[str]], **kwargs):
    return stable_toposort(edges, lambda n: edges[n], **kwargs)


def test_dependencies_come_first():
    assert _sort({"a": ["b"], "b": ["c"], "c": []}) == ["c", "b", "a"]


def test_ties_are_lexical():
    assert _sort({"z": [], "m": [], "a": []}) == ["a", "m", "z"]


def test_input_order_does_not_matter():
    edges = {"b": ["d"], "a": ["d"], "d": [], "c": ["a"]}
    reordered = dict(reversed(list(edges.items())))
    assert _sort(edges) == _sort(reordered) == ["d", "a", "b", "c"]


def test_unknown_dependencies_are_ignored():
    assert _sort({"a": ["outside"], "b": []}) == ["a", "b"]


def test_cycle_is_broken_at_smallest_node():
    assert _sort({"b": ["a"], "a": ["b"], "c": ["a"]}) == ["a", "b", "c"]


def test_cycle_callback():
    def on_cycle(stuck):
        raise RuntimeError(",".join(stuck))

    with pytest.raises(RuntimeError, match="a,b"):
        _sort({"a": ["b"], "b": ["a"], "c": []}, on_cycle=on_cycle)


def test_self_edge_is_not_a_cycle():
    assert _sort({"a": ["a"]}) == ["a"]
