import pytest

from stablepack.core.data.module import EntryPoint, Module
from stablepack.core.exceptions import GraphError
from stablepack.core.graph.static_graph import StaticModuleGraph


def test_lookup():
    a = Module("a", b"")
    graph = StaticModuleGraph([a], [EntryPoint("app", ("a",))])
    assert graph.get("a") is a
    assert graph.get("b") is None
    assert "a" in graph
    assert len(graph) == 1


def test_duplicate_entry_points():
    with pytest.raises(GraphError, match="Duplicate entry point"):
        StaticModuleGraph(
            [Module("a", b"")],
            [EntryPoint("app", ("a",)), EntryPoint("app", ("a",))],
        )
