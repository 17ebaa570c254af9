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

import json
from dataclasses import dataclass, field
from typing import Any

from .chunk import ChunkKind

MANIFEST_VERSION = 1
MANIFEST_FILENAME = "manifest.json"
INLINE_GLOBAL = "__STABLEPACK_MANIFEST__"


@dataclass(frozen=True)
class ManifestChunk:
    name: str
    kind: ChunkKind
    identity: str
    file: str
    dependencies: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "identity": self.identity,
            "file": self.file,
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class Manifest:
    """
    Run-time bootstrap record of one build.

    `entries` and `dynamic` map an entry name or a dynamic boundary module to
    the identities of the chunks it needs, dependencies first. The runtime
    chunk is referenced on its own and is loaded before anything else.
    """

    mode: str
    public_path: str
    runtime: str
    chunks: dict[str, ManifestChunk]
    entries: dict[str, tuple[str, ...]]
    dynamic: dict[str, tuple[str, ...]] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)

    def chunk_for_identity(self, identity: str) -> ManifestChunk:
        for chunk in self.chunks.values():
            if chunk.identity == identity:
                return chunk
        raise KeyError(identity)

    def files_for_entry(self, entry_name: str) -> list[str]:
        """URLs to load, in order, to run an entry (runtime first)."""
        runtime_file = self.chunks[self.runtime].file
        files = [runtime_file]
        files.extend(
            self.chunk_for_identity(identity).file
            for identity in self.entries[entry_name]
        )
        return [self.public_path + f for f in files]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": MANIFEST_VERSION,
            "mode": self.mode,
            "public_path": self.public_path,
            "runtime": self.runtime,
            "chunks": {name: c.to_dict() for name, c in self.chunks.items()},
            "entries": {name: list(ids) for name, ids in self.entries.items()},
            "dynamic": {name: list(ids) for name, ids in self.dynamic.items()},
            "metadata": dict(self.metadata),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n"

    def inline_script(self, global_name: str = INLINE_GLOBAL) -> str:
        """Render the manifest as a script tag for embedding into a host page."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        # keep the payload from closing the surrounding script element
        payload = payload.replace("</", "<\\/")
        return f"<script>window.{global_name}={payload};</script>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        if data.get("version") != MANIFEST_VERSION:
            raise ValueError(f"Unsupported manifest version: {data.get('version')}")

        chunks = {
            name: ManifestChunk(
                name=name,
                kind=ChunkKind(raw["kind"]),
                identity=raw["identity"],
                file=raw["file"],
                dependencies=tuple(raw.get("dependencies", ())),
            )
            for name, raw in data["chunks"].items()
        }
        return cls(
            mode=data["mode"],
            public_path=data["public_path"],
            runtime=data["runtime"],
            chunks=chunks,
            entries={k: tuple(v) for k, v in data["entries"].items()},
            dynamic={k: tuple(v) for k, v in data.get("dynamic", {}).items()},
            metadata=dict(data.get("metadata", {})),
        )

    @classmethod
    def from_json(cls, text: str) -> "Manifest":
        return cls.from_dict(json.loads(text))
