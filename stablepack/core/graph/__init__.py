"""Module graph contract, in-memory graph and graph description loader."""

from .graph_loader import GraphLoader, LoadedGraph
from .protocol import ModuleGraph
from .static_graph import StaticModuleGraph

__all__ = ["GraphLoader", "LoadedGraph", "ModuleGraph", "StaticModuleGraph"]
