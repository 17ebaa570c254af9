# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

"""
Loads the resolver's graph description.

The resolver writes a JSON document listing modules with their import
edges, the entry points, the shared (vendor) roots and any explicit dynamic
boundaries. Module contents are read from disk here, on every build, so a
rebuild always sees current bytes.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import pydantic
from loguru import logger
from pydantic import BaseModel, Field

from ..data.module import EntryPoint, Module
from ..exceptions import GraphError
from .static_graph import StaticModuleGraph


class ModuleSpec(BaseModel):
    id: str
    path: str | None = None
    content: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    dynamic_dependencies: list[str] = Field(default_factory=list)


class GraphSpec(BaseModel):
    root: str | None = None
    modules: list[ModuleSpec]
    entries: dict[str, list[str]]
    shared: list[str] = Field(default_factory=list)
    dynamic: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class LoadedGraph:
    graph: StaticModuleGraph
    shared_roots: frozenset[str]
    dynamic_boundaries: frozenset[str]


class GraphLoader:
    """Reads a graph description file and the module sources it points at."""

    def __init__(self, graph_path: Path):
        self.graph_path = graph_path

    def load(self) -> LoadedGraph:
        spec = self._read_spec()
        base_dir = self.graph_path.parent
        if spec.root is not None:
            base_dir = base_dir / spec.root

        modules = [self._read_module(m, base_dir) for m in spec.modules]
        entries = [EntryPoint(name, tuple(roots)) for name, roots in spec.entries.items()]

        logger.debug(
            "Loaded graph {path}: modules={modules} entries={entries}",
            path=str(self.graph_path),
            modules=len(modules),
            entries=len(entries),
        )

        return LoadedGraph(
            graph=StaticModuleGraph(modules, entries),
            shared_roots=frozenset(spec.shared),
            dynamic_boundaries=frozenset(spec.dynamic),
        )

    def _read_spec(self) -> GraphSpec:
        try:
            raw = self.graph_path.read_text(encoding="utf-8")
        except OSError as e:
            raise GraphError(
                f"Cannot read module graph: {self.graph_path}", str(e)
            ) from e

        try:
            return GraphSpec.model_validate(json.loads(raw))
        except json.JSONDecodeError as e:
            raise GraphError(f"Module graph is not valid JSON: {self.graph_path}", str(e)) from e
        except pydantic.ValidationError as e:
            raise GraphError(f"Malformed module graph: {self.graph_path}", str(e)) from e

    @staticmethod
    def _read_module(spec: ModuleSpec, base_dir: Path) -> Module:
        if spec.content is not None:
            content = spec.content.encode("utf-8")
        else:
            source = base_dir / (spec.path or spec.id)
            try:
                content = source.read_bytes()
            except OSError as e:
                raise GraphError(
                    f"Cannot read module {spec.id}",
                    str(e),
                    module_id=spec.id,
                ) from e

        return Module(
            id=spec.id,
            content=content,
            dependencies=tuple(spec.dependencies),
            dynamic_dependencies=tuple(spec.dynamic_dependencies),
        )
