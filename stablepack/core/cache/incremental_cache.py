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
IncrementalCache

Content-addressed store of serialized chunk output.

Keys are derived from the multiset of module digests that produced a chunk
(plus the identities of the chunks it depends on), never from chunk names,
so an entry can only ever be found again by the exact same inputs. A
changed module simply produces a different key; staleness is impossible by
construction. What can still happen is damage to the files on disk, which
`lookup` reports as CacheCorruptionError.

Keys map onto a fixed pool of locks: unrelated chunks rarely wait on each
other, and concurrent stores of the same key coalesce into one physical
write. Across
processes entries are written to a temporary file and moved into place, so
the last writer wins with identical bytes.
"""

import hashlib
import json
import os
import shutil
import threading
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from loguru import logger

from ..data.chunk import Chunk, ChunkKind
from ..exceptions import CacheCorruptionError

CACHE_FORMAT = "stablepack-cache-v1"
LOCK_STRIPES = 64


@dataclass(frozen=True)
class CacheKey:
    module_digests: tuple[str, ...]
    kind: str
    entry: str
    roots: tuple[str, ...]
    dependency_identities: tuple[str, ...]
    namespace: str = ""

    @classmethod
    def for_chunk(
        cls,
        chunk: Chunk,
        dependency_identities: Mapping[str, str],
        namespace: str = "",
    ) -> "CacheKey":
        return cls(
            module_digests=tuple(sorted(chunk.module_digests())),
            kind=chunk.kind.value,
            entry=chunk.name if chunk.kind is ChunkKind.ENTRY else "",
            roots=tuple(chunk.roots),
            dependency_identities=tuple(
                dependency_identities[name] for name in sorted(chunk.dependencies)
            ),
            namespace=namespace,
        )

    @cached_property
    def digest(self) -> str:
        payload = json.dumps(
            [
                CACHE_FORMAT,
                self.namespace,
                self.kind,
                self.entry,
                list(self.roots),
                list(self.module_digests),
                list(self.dependency_identities),
            ],
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CachedChunkOutput:
    identity: str
    content: bytes

    @cached_property
    def content_digest(self) -> str:
        return hashlib.sha256(self.content).hexdigest()


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    stores: int = 0
    evictions: int = 0
    corruptions: int = 0


def _atomic_write(path: Path, data: bytes) -> None:
    tmp = path.with_name(f"{path.name}.tmp.{os.getpid()}.{threading.get_ident()}")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


class IncrementalCache:
    """
    Chunk output keyed by content.

    Args:
        cache_dir: Where entries persist between builds. None keeps the
            cache in memory for the lifetime of this object.
        max_entries: Optional bound; least recently used entries are evicted
            from memory and disk once it is exceeded.
    """

    def __init__(self, cache_dir: Path | None = None, max_entries: int | None = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.cache_dir = cache_dir
        self.max_entries = max_entries
        self.stats = CacheStats()

        self._entries: dict[str, CachedChunkOutput] = {}
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        self._recency: OrderedDict[str, None] = OrderedDict()
        self._recency_lock = threading.Lock()

        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._seed_recency()
            self._enforce_bound()

    def lookup(self, key: CacheKey) -> CachedChunkOutput | None:
        """
        Find the output previously stored for exactly these inputs.

        Returns:
            The cached output, or None on a miss.

        Raises:
            CacheCorruptionError: the entry on disk is damaged. The caller
                decides what to do with it; usually `evict` and recompute.
        """
        digest = key.digest
        with self._lock_for(digest):
            output = self._entries.get(digest)
            if output is None and self.cache_dir is not None:
                try:
                    output = self._read_entry(digest)
                except CacheCorruptionError:
                    self._count("corruptions")
                    raise
                if output is not None:
                    self._entries[digest] = output

        if output is None:
            self._count("misses")
            return None

        self._touch(digest)
        self._count("hits")
        return output

    def store(self, key: CacheKey, output: CachedChunkOutput) -> bool:
        """
        Remember the output for these inputs.

        Returns:
            True if this call wrote the entry, False if it was already there.
        """
        digest = key.digest
        with self._lock_for(digest):
            if self._entries.get(digest) == output:
                return False

            self._entries[digest] = output
            if self.cache_dir is not None:
                self._write_entry(digest, output)

        logger.debug(f"Cached chunk output key={digest[:12]} identity={output.identity[:12]}")
        self._touch(digest)
        self._count("stores")
        self._enforce_bound()
        return True

    def evict(self, key: CacheKey | str) -> None:
        digest = key if isinstance(key, str) else key.digest
        with self._lock_for(digest):
            self._entries.pop(digest, None)
            if self.cache_dir is not None:
                for path in self._entry_paths(digest):
                    path.unlink(missing_ok=True)

        with self._recency_lock:
            self._recency.pop(digest, None)
            self.stats.evictions += 1

    def clear(self) -> int:
        """Drop every entry. Returns how many entries were known."""
        with self._recency_lock:
            count = len(self._recency)
            self._recency.clear()
        self._entries.clear()

        if self.cache_dir is not None and self.cache_dir.exists():
            for child in self.cache_dir.iterdir():
                if child.is_dir():
                    shutil.rmtree(child)
        return count

    def __len__(self) -> int:
        with self._recency_lock:
            return len(self._recency)

    def disk_usage(self) -> int:
        """Bytes used by the cache directory."""
        if self.cache_dir is None or not self.cache_dir.exists():
            return 0
        return sum(p.stat().st_size for p in self.cache_dir.rglob("*") if p.is_file())

    def _lock_for(self, digest: str) -> threading.Lock:
        # the same key always maps to the same lock, whatever else was seen
        return self._locks[int(digest[:8], 16) % LOCK_STRIPES]

    def _count(self, name: str) -> None:
        with self._recency_lock:
            setattr(self.stats, name, getattr(self.stats, name) + 1)

    def _touch(self, digest: str) -> None:
        with self._recency_lock:
            self._recency[digest] = None
            self._recency.move_to_end(digest)

    def _enforce_bound(self) -> None:
        if self.max_entries is None:
            return

        with self._recency_lock:
            excess = len(self._recency) - self.max_entries
            victims = list(self._recency)[: max(excess, 0)]

        for digest in victims:
            logger.debug(f"Evicting least recently used cache entry {digest[:12]}")
            self.evict(digest)

    def _seed_recency(self) -> None:
        metas = sorted(
            self.cache_dir.glob("*/*.json"),
            key=lambda p: (p.stat().st_mtime, p.name),
        )
        with self._recency_lock:
            for meta in metas:
                self._recency[meta.stem] = None

    def _entry_paths(self, digest: str) -> tuple[Path, Path]:
        shard = self.cache_dir / digest[:2]
        return shard / f"{digest}.json", shard / f"{digest}.bin"

    def _read_entry(self, digest: str) -> CachedChunkOutput | None:
        meta_path, blob_path = self._entry_paths(digest)
        if not meta_path.exists():
            return None

        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CacheCorruptionError(digest, f"Unreadable metadata: {e}") from e

        if not isinstance(meta, dict) or meta.get("format") != CACHE_FORMAT:
            # written by another cache format; not ours to trust or to repair
            logger.debug(f"Ignoring cache entry {digest[:12]} with foreign format")
            return None

        if meta.get("key") != digest:
            raise CacheCorruptionError(digest, f"Entry claims key {meta.get('key')}")

        try:
            content = blob_path.read_bytes()
        except OSError as e:
            raise CacheCorruptionError(digest, f"Missing content: {e}") from e

        output = CachedChunkOutput(identity=meta.get("identity", ""), content=content)
        if output.content_digest != meta.get("content_sha256"):
            raise CacheCorruptionError(
                digest, "Stored content does not match its recorded digest"
            )

        os.utime(meta_path)
        return output

    def _write_entry(self, digest: str, output: CachedChunkOutput) -> None:
        meta_path, blob_path = self._entry_paths(digest)
        meta_path.parent.mkdir(parents=True, exist_ok=True)

        meta = {
            "format": CACHE_FORMAT,
            "key": digest,
            "identity": output.identity,
            "content_sha256": output.content_digest,
            "size": len(output.content),
        }
        # content first: the metadata file is what marks an entry complete
        _atomic_write(blob_path, output.content)
        _atomic_write(meta_path, json.dumps(meta, sort_keys=True).encode("utf-8"))
