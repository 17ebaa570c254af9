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

from collections.abc import Iterable, Mapping

from ..data.build_result import ChunkArtifact
from ..data.chunk import ChunkKind
from ..data.manifest import Manifest, ManifestChunk
from ..graph.toposort import stable_toposort


class ManifestBuilder:
    """
    Builds the manifest from finished chunk artifacts.

    Runs after every identity is known and feeds into none of them: the
    manifest changes on every build and must not drag chunks along with it.
    """

    def build(
        self,
        artifacts: Iterable[ChunkArtifact],
        entry_requirements: Mapping[str, Iterable[str]],
        dynamic_requirements: Mapping[str, Iterable[str]],
        mode: str,
        public_path: str = "/",
        metadata: Mapping[str, str] | None = None,
    ) -> Manifest:
        by_name = {a.chunk.name: a for a in artifacts}

        runtimes = [a for a in by_name.values() if a.chunk.kind is ChunkKind.RUNTIME]
        if len(runtimes) != 1:
            raise ValueError(f"Expected exactly one runtime chunk, got {len(runtimes)}")

        chunks = {
            name: ManifestChunk(
                name=name,
                kind=artifact.chunk.kind,
                identity=artifact.identity,
                file=artifact.file_name,
                dependencies=artifact.chunk.dependencies,
            )
            for name, artifact in sorted(by_name.items())
        }

        entries = {
            name: self._load_order(required, by_name, last=name)
            for name, required in sorted(entry_requirements.items())
        }
        dynamic = {
            boundary: self._load_order(required, by_name)
            for boundary, required in sorted(dynamic_requirements.items())
        }

        return Manifest(
            mode=mode,
            public_path=public_path,
            runtime=runtimes[0].chunk.name,
            chunks=chunks,
            entries=entries,
            dynamic=dynamic,
            metadata=dict(sorted((metadata or {}).items())),
        )

    @staticmethod
    def _load_order(
        required: Iterable[str],
        by_name: Mapping[str, ChunkArtifact],
        last: str | None = None,
    ) -> tuple[str, ...]:
        """
        Identities of the required chunks and everything they depend on.

        Dependencies come before dependents. `last` (the entry chunk itself)
        goes after everything else because loading it runs the entry.
        """
        closure: set[str] = set()
        stack = list(required)
        while stack:
            name = stack.pop()
            if name in closure:
                continue
            closure.add(name)
            stack.extend(by_name[name].chunk.dependencies)

        def deps_of(name: str) -> Iterable[str]:
            if name == last:
                return closure - {name}
            return by_name[name].chunk.dependencies

        order = stable_toposort(closure, deps_of)
        return tuple(by_name[name].identity for name in order)
