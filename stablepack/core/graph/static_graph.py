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

from collections.abc import Iterable

from ..data.module import EntryPoint, Module
from ..exceptions import GraphError


class StaticModuleGraph:
    """In-memory module graph, built once per build from already-read modules."""

    def __init__(self, modules: Iterable[Module], entry_points: Iterable[EntryPoint]):
        self._modules: dict[str, Module] = {}
        for module in modules:
            if module.id in self._modules:
                raise GraphError(
                    f"Duplicate module id: {module.id}",
                    "Every module in the graph needs a unique id",
                    module_id=module.id,
                )
            self._modules[module.id] = module

        self._entry_points: dict[str, EntryPoint] = {}
        for entry in entry_points:
            if entry.name in self._entry_points:
                raise GraphError(f"Duplicate entry point: {entry.name}")
            self._entry_points[entry.name] = entry

    def modules(self) -> list[Module]:
        return list(self._modules.values())

    def entry_points(self) -> list[EntryPoint]:
        return list(self._entry_points.values())

    def get(self, module_id: str) -> Module | None:
        return self._modules.get(module_id)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)
