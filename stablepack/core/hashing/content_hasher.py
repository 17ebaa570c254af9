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
ContentHasher

Computes chunk identities. An identity covers the chunk's own modules and
the identities of every chunk it statically depends on, so a change deep in
the chunk graph reaches every dependent and nothing else.

Identities are computed leaves first: callers order chunks with
`chunk_order` and hand each chunk the identities of its dependencies.
Only module digests, ids and names go in; no timestamps, filesystem order
or object addresses.
"""

import hashlib
from collections.abc import Iterable, Mapping

from ..data.chunk import Chunk, ChunkKind
from ..data.module import Module
from ..exceptions import chunk_cycle
from ..graph.toposort import stable_toposort

IDENTITY_VERSION = "stablepack-chunk-identity-v1"


def _feed(h, tag: str, values: Iterable[str]) -> None:
    values = list(values)
    header = f"{tag}:{len(values)}".encode()
    h.update(len(header).to_bytes(4, "big"))
    h.update(header)
    for value in values:
        raw = value.encode("utf-8")
        h.update(len(raw).to_bytes(8, "big"))
        h.update(raw)


class ContentHasher:
    @staticmethod
    def order_modules(modules: Iterable[Module]) -> tuple[Module, ...]:
        """
        Topological order over the static edges between the given modules.

        Dependencies come first; ties (and cycles) are resolved by module id.
        """
        by_id = {m.id: m for m in modules}
        order = stable_toposort(by_id, lambda module_id: by_id[module_id].dependencies)
        return tuple(by_id[module_id] for module_id in order)

    @staticmethod
    def chunk_order(chunks: Iterable[Chunk]) -> list[Chunk]:
        """Chunks ordered leaves first, ties by name. Cycles raise GraphError."""
        by_name = {c.name: c for c in chunks}

        def _raise_cycle(stuck: list[str]) -> None:
            raise chunk_cycle(stuck)

        order = stable_toposort(
            by_name, lambda name: by_name[name].dependencies, on_cycle=_raise_cycle
        )
        return [by_name[name] for name in order]

    def identity(self, chunk: Chunk, dependency_identities: Mapping[str, str]) -> str:
        """
        Digest of a chunk's content and of the chunks it depends on.

        Args:
            chunk: The chunk to identify.
            dependency_identities: Identities by chunk name. Must cover every
                dependency of `chunk`; extra names are ignored.

        Returns:
            The hex SHA-256 identity.
        """
        missing = [d for d in chunk.dependencies if d not in dependency_identities]
        if missing:
            raise ValueError(
                f"Chunk {chunk.name} hashed before its dependencies: {', '.join(missing)}"
            )

        h = hashlib.sha256()
        _feed(h, "version", [IDENTITY_VERSION])
        _feed(h, "kind", [chunk.kind.value])
        # entry chunks are unique by name even when their content is empty
        _feed(h, "entry", [chunk.name] if chunk.kind is ChunkKind.ENTRY else [])
        _feed(h, "roots", chunk.roots)
        _feed(h, "modules", (m.digest for m in self.order_modules(chunk.modules)))
        _feed(
            h,
            "dependencies",
            (dependency_identities[name] for name in sorted(chunk.dependencies)),
        )
        return h.hexdigest()
