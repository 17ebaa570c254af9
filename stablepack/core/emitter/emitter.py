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
Artifact emitters.

A build publishes all of its artifacts together or none of them. The
directory emitter prepares a complete staging directory next to the output
directory and swaps it into place; the memory emitter swaps a whole
dictionary. Readers see either the previous build or the new one.
"""

import os
import shutil
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from ..data.build_result import ChunkArtifact
from ..data.manifest import MANIFEST_FILENAME, Manifest
from ..exceptions import SerializationError


def _check_file_name(file_name: str) -> None:
    # every artifact lives directly inside the output directory
    if Path(file_name).name != file_name or "\\" in file_name or file_name in ("", ".", ".."):
        raise SerializationError(
            f"Refusing to write {file_name!r}",
            "Chunk files must be plain names inside the output directory",
        )


class ArtifactEmitter(ABC):
    @abstractmethod
    def publish(self, artifacts: list[ChunkArtifact], manifest: Manifest) -> None:
        """Make every artifact and the manifest visible at once."""


class MemoryEmitter(ArtifactEmitter):
    """Keeps the published build in memory. Used in development mode."""

    def __init__(self):
        self._lock = threading.Lock()
        self._files: dict[str, bytes] = {}
        self._manifest: Manifest | None = None

    def publish(self, artifacts: list[ChunkArtifact], manifest: Manifest) -> None:
        files = {a.file_name: a.content for a in artifacts}
        files[MANIFEST_FILENAME] = manifest.to_json().encode("utf-8")
        with self._lock:
            self._files = files
            self._manifest = manifest
        logger.debug(f"Published {len(artifacts)} chunks to memory")

    def files(self) -> dict[str, bytes]:
        with self._lock:
            return dict(self._files)

    def read(self, file_name: str) -> bytes:
        with self._lock:
            return self._files[file_name]

    @property
    def manifest(self) -> Manifest | None:
        with self._lock:
            return self._manifest


class DirectoryEmitter(ArtifactEmitter):
    """
    Publishes into a clean output directory.

    The directory only ever holds the files of one build: leftovers of the
    previous build disappear with the swap.
    """

    def __init__(self, out_dir: Path):
        self.out_dir = out_dir

    def publish(self, artifacts: list[ChunkArtifact], manifest: Manifest) -> None:
        parent = self.out_dir.parent
        token = uuid.uuid4().hex[:8]
        staging = parent / f".{self.out_dir.name}.staging-{token}"
        previous = parent / f".{self.out_dir.name}.previous-{token}"

        for artifact in artifacts:
            _check_file_name(artifact.file_name)

        try:
            parent.mkdir(parents=True, exist_ok=True)
            staging.mkdir()
            for artifact in artifacts:
                (staging / artifact.file_name).write_bytes(artifact.content)
            (staging / MANIFEST_FILENAME).write_text(manifest.to_json(), encoding="utf-8")
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise SerializationError(
                f"Cannot write build output to {self.out_dir}", str(e)
            ) from e

        try:
            if self.out_dir.exists():
                os.replace(self.out_dir, previous)
            os.replace(staging, self.out_dir)
        except OSError as e:
            # put the previous build back if it was already moved aside
            if previous.exists() and not self.out_dir.exists():
                os.replace(previous, self.out_dir)
            shutil.rmtree(staging, ignore_errors=True)
            raise SerializationError(
                f"Cannot publish build output to {self.out_dir}", str(e)
            ) from e

        shutil.rmtree(previous, ignore_errors=True)
        logger.debug(f"Published {len(artifacts)} chunks to {self.out_dir}")

    def read_manifest(self) -> Manifest:
        """The manifest of the last published build."""
        path = self.out_dir / MANIFEST_FILENAME
        try:
            return Manifest.from_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SerializationError(f"No published manifest at {path}", str(e)) from e
        except ValueError as e:
            raise SerializationError(f"Unreadable manifest at {path}", str(e)) from e
