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

from ..exceptions import OrphanModuleError
from .chunk import Chunk
from .manifest import Manifest


@dataclass(frozen=True)
class ChunkArtifact:
    """One emitted chunk: its identity, its file name and its bytes."""

    chunk: Chunk
    identity: str
    file_name: str
    content: bytes
    cached: bool = False


@dataclass(frozen=True)
class BuildResult:
    """
    Everything one build produced.

    Created fresh by the build pipeline and never mutated afterwards.
    """

    artifacts: tuple[ChunkArtifact, ...]
    manifest: Manifest
    orphans: tuple[OrphanModuleError, ...] = ()
    cache_hits: int = 0
    cache_misses: int = 0

    def artifact(self, chunk_name: str) -> ChunkArtifact:
        for artifact in self.artifacts:
            if artifact.chunk.name == chunk_name:
                return artifact
        raise KeyError(chunk_name)

    def identities(self) -> dict[str, str]:
        return {a.chunk.name: a.identity for a in self.artifacts}

    def files(self) -> dict[str, bytes]:
        return {a.file_name: a.content for a in self.artifacts}
