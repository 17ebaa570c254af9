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
from typing import Protocol

from ..data.module import EntryPoint, Module


class ModuleGraph(Protocol):
    """The resolver's view of the application: modules and import edges."""

    def modules(self) -> Iterable[Module]:
        """
        Every module known to the resolver.

        Returns:
            The modules, in no particular order. Callers never rely on it.
        """
        ...

    def entry_points(self) -> Iterable[EntryPoint]:
        """The named entry points declared for this graph."""
        ...

    def get(self, module_id: str) -> Module | None:
        """
        Look a module up by id.

        Returns:
            The module, or None if the graph does not contain it.
        """
        ...
