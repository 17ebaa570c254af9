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

from collections import defaultdict
from collections.abc import Iterable

from ..data.chunk import Chunk


def duplicated_modules(chunks: Iterable[Chunk]) -> dict[str, list[str]]:
    """Module ids found in more than one chunk, mapped to the sorted chunk names."""
    owners: dict[str, list[str]] = defaultdict(list)
    for chunk in chunks:
        for module_id in chunk.module_ids():
            owners[module_id].append(chunk.name)

    return {
        module_id: sorted(names)
        for module_id, names in sorted(owners.items())
        if len(names) > 1
    }


def chunks_disjoint(chunks: Iterable[Chunk]) -> bool:
    """
    Returns True if no module appears in more than one chunk.

    A module listed twice inside the same chunk counts as a duplicate too.
    """
    return not duplicated_modules(chunks)


def dependencies_resolved(chunks: Iterable[Chunk]) -> bool:
    """Returns True if every chunk dependency names a chunk in the set."""
    chunks = list(chunks)
    names = {c.name for c in chunks}
    return all(dep in names for chunk in chunks for dep in chunk.dependencies)
