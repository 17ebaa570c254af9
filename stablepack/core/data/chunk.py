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

from dataclasses import dataclass
from enum import Enum

from .module import Module


class ChunkKind(str, Enum):
    ENTRY = "entry"
    SHARED = "shared"
    DYNAMIC = "dynamic"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class Chunk:
    """
    A named output unit.

    `modules` are already in the deterministic order they are hashed and
    serialized in. `roots` are the modules an entry chunk runs, or the
    dynamic boundaries a dynamic chunk serves. `dependencies` are the sorted
    names of the chunks this chunk statically depends on.
    """

    name: str
    kind: ChunkKind
    modules: tuple[Module, ...]
    roots: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()

    def module_ids(self) -> list[str]:
        return [m.id for m in self.modules]

    def module_digests(self) -> list[str]:
        return [m.digest for m in self.modules]

    @property
    def is_empty(self) -> bool:
        return not self.modules
