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

import hashlib
from dataclasses import dataclass
from functools import cached_property


def _ordered_unique(items) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class Module:
    """
    A single source unit of the module graph.

    Dependency edges keep their declared order with duplicates removed.
    `dynamic_dependencies` are lazy-load edges: they mark dynamic boundaries
    and never make the importer depend on the imported chunk.
    """

    id: str
    content: bytes
    dependencies: tuple[str, ...] = ()
    dynamic_dependencies: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "dependencies", _ordered_unique(self.dependencies))
        object.__setattr__(
            self, "dynamic_dependencies", _ordered_unique(self.dynamic_dependencies)
        )

    @cached_property
    def digest(self) -> str:
        """SHA-256 over the id, the raw content and the static dependency ids."""
        h = hashlib.sha256()
        for part in (self.id.encode("utf-8"), self.content, *self._dep_bytes()):
            h.update(len(part).to_bytes(8, "big"))
            h.update(part)
        return h.hexdigest()

    def _dep_bytes(self) -> list[bytes]:
        return [dep.encode("utf-8") for dep in self.dependencies]


@dataclass(frozen=True)
class EntryPoint:
    """A named root set; its reachable modules form an entry chunk."""

    name: str
    roots: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "roots", _ordered_unique(self.roots))
