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
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from loguru import logger

from ..context import BuildContext
from ..core.cache.incremental_cache import CachedChunkOutput, CacheKey
from ..core.checks.chunk_checks import dependencies_resolved, duplicated_modules
from ..core.data.build_result import BuildResult, ChunkArtifact
from ..core.data.chunk import Chunk
from ..core.data.manifest import MANIFEST_FILENAME
from ..core.exceptions import (
    BuildCancelledError,
    CacheCorruptionError,
    GraphError,
    SerializationError,
)
from ..core.hashing.content_hasher import ContentHasher
from ..core.logging.utils import log_chunks, time_block
from ..core.manifest.manifest_builder import ManifestBuilder
from ..core.partitioner.partitioner import ChunkPartitioner
from ..core.serializer.chunk_serializer import ChunkSerializer, render_file_name
from ..core.serializer.runtime import runtime_chunk


@dataclass(frozen=True)
class _ChunkOutput:
    identity: str
    content: bytes
    cached: bool


class BuildPipeline:
    """
    Runs one build as a transaction.

    Partitioning, hashing and serialization all happen before anything is
    published. Any fatal error leaves the previously published build as it
    was; the cache only ever receives complete entries.
    """

    def __init__(
        self,
        context: BuildContext,
        partitioner: ChunkPartitioner | None = None,
        serializer: ChunkSerializer | None = None,
        manifest_builder: ManifestBuilder | None = None,
    ):
        self.context = context
        self.hasher = ContentHasher()
        self.partitioner = partitioner or ChunkPartitioner(self.hasher)
        self.serializer = serializer or ChunkSerializer(minify=context.settings.minify)
        self.manifest_builder = manifest_builder or ManifestBuilder()

    def run(self) -> BuildResult:
        settings = self.context.settings
        logger.debug(
            "Build started: mode={mode} workers={workers} cache={cache}",
            mode=settings.mode,
            workers=settings.workers,
            cache=self.context.cache is not None,
        )

        with time_block("partitioning"):
            partition = self.partitioner.partition(self.context.graph, self.context.policy)

        for orphan in partition.orphans:
            logger.warning(f"{orphan.message} (excluded)")

        chunks = [*partition.chunks, runtime_chunk(settings.env)]
        log_chunks("partitioned chunks", chunks)
        self._check_chunks(chunks)

        with time_block("chunk_computation"):
            outputs = self._compute_all(chunks)

        artifacts = self._artifacts(chunks, outputs)

        with time_block("manifest"):
            manifest = self.manifest_builder.build(
                artifacts,
                partition.entry_requirements,
                partition.dynamic_requirements,
                mode=settings.mode,
                public_path=settings.public_path,
                metadata=self.context.metadata,
            )

        self._raise_if_cancelled("publishing")
        with time_block("publish"):
            self.context.emitter.publish(list(artifacts), manifest)

        hits = sum(1 for a in artifacts if a.cached)
        logger.debug(
            "Build finished: chunks={chunks} cache_hits={hits} cache_misses={misses}",
            chunks=len(artifacts),
            hits=hits,
            misses=len(artifacts) - hits,
        )

        return BuildResult(
            artifacts=artifacts,
            manifest=manifest,
            orphans=partition.orphans,
            cache_hits=hits,
            cache_misses=len(artifacts) - hits,
        )

    @staticmethod
    def _check_chunks(chunks: list[Chunk]) -> None:
        duplicates = duplicated_modules(chunks)
        if duplicates:
            module_id, names = next(iter(duplicates.items()))
            raise GraphError(
                f"Module {module_id} was placed in more than one chunk",
                f"Chunks: {', '.join(names)}",
                module_id=module_id,
            )
        if not dependencies_resolved(chunks):
            raise GraphError("A chunk depends on a chunk that was never created")

    def _compute_all(self, chunks: list[Chunk]) -> dict[str, _ChunkOutput]:
        """
        Identities and content of every chunk, leaves first.

        A chunk is only submitted once all of its dependencies have an
        identity. Independent chunks run in parallel.
        """
        by_name = {c.name: c for c in self.hasher.chunk_order(chunks)}
        waiting_on = {name: set(c.dependencies) for name, c in by_name.items()}
        dependents: dict[str, list[str]] = defaultdict(list)
        for chunk in by_name.values():
            for dep in chunk.dependencies:
                dependents[dep].append(chunk.name)

        outputs: dict[str, _ChunkOutput] = {}
        pool = ThreadPoolExecutor(
            max_workers=self.context.settings.workers,
            thread_name_prefix="stablepack-chunk",
        )
        try:
            futures: dict[Future, str] = {}

            def submit(name: str) -> None:
                self._raise_if_cancelled(f"chunk {name}")
                chunk = by_name[name]
                dep_identities = {d: outputs[d].identity for d in chunk.dependencies}
                futures[pool.submit(self._compute_chunk, chunk, dep_identities)] = name

            for name, deps in waiting_on.items():
                if not deps:
                    submit(name)

            while futures:
                finished, _ = wait(futures, return_when=FIRST_COMPLETED)
                for future in sorted(finished, key=lambda f: futures[f]):
                    name = futures.pop(future)
                    outputs[name] = future.result()
                    for dependent in dependents[name]:
                        waiting_on[dependent].discard(name)
                        if not waiting_on[dependent]:
                            submit(dependent)
        finally:
            # on failure, queued chunks are dropped and running ones finish
            pool.shutdown(wait=True, cancel_futures=True)

        return outputs

    def _compute_chunk(self, chunk: Chunk, dep_identities: dict[str, str]) -> _ChunkOutput:
        self._raise_if_cancelled(f"chunk {chunk.name}")

        identity = self.hasher.identity(chunk, dep_identities)
        cache = self.context.cache
        if cache is None:
            return _ChunkOutput(identity, self._serialize(chunk), cached=False)

        key = CacheKey.for_chunk(chunk, dep_identities, self.serializer.namespace)
        try:
            hit = cache.lookup(key)
        except CacheCorruptionError as e:
            self._discard(cache, key, e)
            hit = None

        if hit is not None:
            if hit.identity == identity:
                logger.debug(f"Cache hit for chunk {chunk.name}")
                return _ChunkOutput(identity, hit.content, cached=True)
            self._discard(
                cache,
                key,
                CacheCorruptionError(
                    key.digest,
                    f"Cached identity {hit.identity[:12]} does not match {identity[:12]}",
                ),
            )

        content = self._serialize(chunk)
        try:
            cache.store(key, CachedChunkOutput(identity, content))
        except OSError as e:
            logger.warning(f"Could not cache chunk {chunk.name}: {e}")

        return _ChunkOutput(identity, content, cached=False)

    @staticmethod
    def _discard(cache, key: CacheKey, error: CacheCorruptionError) -> None:
        logger.warning(f"{error.message}; recomputing")
        if error.details:
            logger.debug(error.details)
        cache.evict(key)

    def _serialize(self, chunk: Chunk) -> bytes:
        try:
            return self.serializer.serialize(chunk)
        except (ValueError, UnicodeError) as e:
            raise SerializationError(
                f"Cannot serialize chunk {chunk.name}", str(e), chunk_name=chunk.name
            ) from e

    def _artifacts(
        self, chunks: list[Chunk], outputs: dict[str, _ChunkOutput]
    ) -> tuple[ChunkArtifact, ...]:
        settings = self.context.settings
        artifacts = []
        taken: dict[str, str] = {}
        for chunk in sorted(chunks, key=lambda c: c.name):
            output = outputs[chunk.name]
            file_name = render_file_name(
                settings.filename, chunk.name, output.identity, settings.hash_length
            )
            if file_name == MANIFEST_FILENAME or file_name in taken:
                other = taken.get(file_name, "the manifest")
                raise SerializationError(
                    f"Chunks {chunk.name} and {other} would both be written to {file_name}",
                    "Use a filename template that includes [name] or a longer hash",
                    chunk_name=chunk.name,
                )
            taken[file_name] = chunk.name
            artifacts.append(
                ChunkArtifact(
                    chunk=chunk,
                    identity=output.identity,
                    file_name=file_name,
                    content=output.content,
                    cached=output.cached,
                )
            )
        return tuple(artifacts)

    def _raise_if_cancelled(self, before: str) -> None:
        if self.context.cancelled.is_set():
            raise BuildCancelledError("Build cancelled", f"Stopped before {before}")
