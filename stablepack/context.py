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

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from platformdirs import user_cache_dir
from pydantic import BaseModel, Field, field_validator

from stablepack.core.cache.incremental_cache import IncrementalCache
from stablepack.core.emitter.emitter import (
    ArtifactEmitter,
    DirectoryEmitter,
    MemoryEmitter,
)
from stablepack.core.graph.graph_loader import GraphLoader
from stablepack.core.graph.protocol import ModuleGraph
from stablepack.core.partitioner.partitioner import PartitionPolicy
from stablepack.core.serializer.runtime import collect_environment

Mode = Literal["development", "production"]

# identity prefix length used in file names when hash_length is not set
PRODUCTION_HASH_LENGTH = 8


class GlobalConfig(BaseModel):
    mode: Mode = Field(
        default="production",
        description="Build mode: production writes minified files, development keeps them in memory",
    )
    out_dir: str = Field(
        default="dist", description="Directory production builds are published to"
    )
    cache_dir: str | None = Field(
        default=None,
        description="Directory of the incremental cache (defaults to the user cache dir)",
    )
    use_cache: bool = Field(
        default=True, description="Reuse chunk output from earlier builds"
    )
    max_cache_entries: int | None = Field(
        default=None, ge=1, description="Evict least recently used cache entries past this count"
    )
    hash_length: int | None = Field(
        default=None,
        ge=4,
        le=64,
        description="Identity characters in file names (8 in production, 64 in development)",
    )
    filename: str = Field(
        default="[name].[hash].js", description="File name template for chunks"
    )
    public_path: str = Field(
        default="/", description="URL prefix the runtime loads chunks from"
    )
    workers: int = Field(
        default=4, ge=1, description="Chunks computed in parallel"
    )
    orphans: Literal["exclude", "error"] = Field(
        default="exclude",
        description="What to do with modules no root reaches: exclude them or fail",
    )
    env_vars: list[str] = Field(
        default_factory=lambda: ["NODE_ENV"],
        description="Environment variables embedded in the runtime chunk",
    )
    verbose: bool = Field(default=False, description="Enable verbose logging output")
    silent: bool = Field(
        default=False, description="Only print errors to the console"
    )

    @field_validator("env_vars", mode="before")
    @classmethod
    def _split_env_vars(cls, value):
        # environment variables and the config command hand in plain strings
        if isinstance(value, str):
            return [name.strip() for name in value.split(",") if name.strip()]
        return value

    @field_validator("filename")
    @classmethod
    def _check_filename(cls, value: str):
        if "[name]" not in value and "[hash]" not in value:
            raise ValueError("filename must contain [name] or [hash]")
        if "/" in value or "\\" in value:
            raise ValueError("filename must not contain path separators")
        return value


@dataclass(frozen=True)
class BuildSettings:
    """Everything that decides how chunks are serialized and named."""

    mode: Mode
    hash_length: int | None
    minify: bool
    filename: str
    public_path: str
    workers: int
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_mode(
        cls,
        mode: Mode,
        hash_length: int | None = None,
        filename: str = "[name].[hash].js",
        public_path: str = "/",
        workers: int = 4,
        env: dict[str, str] | None = None,
    ) -> "BuildSettings":
        production = mode == "production"
        if hash_length is None and production:
            hash_length = PRODUCTION_HASH_LENGTH

        return cls(
            mode=mode,
            hash_length=hash_length,
            minify=production,
            filename=filename,
            public_path=public_path,
            workers=workers,
            env=dict(env or {}),
        )


@dataclass(frozen=True)
class GlobalContext:
    config: GlobalConfig
    out_dir: Path
    cache_dir: Path
    verbose: bool
    silent: bool

    @classmethod
    def from_global_config(cls, config: GlobalConfig):
        cache_dir = (
            Path(config.cache_dir)
            if config.cache_dir is not None
            else Path(user_cache_dir("stablepack"))
        )

        return GlobalContext(
            config,
            Path(config.out_dir),
            cache_dir,
            config.verbose,
            config.silent,
        )

    def open_cache(self) -> IncrementalCache:
        return IncrementalCache(self.cache_dir, self.config.max_cache_entries)


@dataclass(frozen=True)
class BuildContext:
    """
    The inputs of one build.

    Replaces any process-wide build state: two builds with two contexts
    never see each other's graph, cache handle or cancellation flag.
    """

    graph: ModuleGraph
    policy: PartitionPolicy
    settings: BuildSettings
    emitter: ArtifactEmitter
    cache: IncrementalCache | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    cancelled: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self.cancelled.set()

    @classmethod
    def from_global_context(
        cls,
        global_context: GlobalContext,
        graph_path: Path,
        mode: Mode | None = None,
        out_dir: Path | None = None,
        use_cache: bool | None = None,
        metadata: dict[str, str] | None = None,
    ):
        config = global_context.config
        mode = mode or config.mode
        out_dir = out_dir or global_context.out_dir
        use_cache = config.use_cache if use_cache is None else use_cache

        loaded = GraphLoader(graph_path).load()
        policy = PartitionPolicy.from_graph(
            loaded.graph,
            shared_roots=loaded.shared_roots,
            dynamic_boundaries=loaded.dynamic_boundaries,
            orphans=config.orphans,
        )

        settings = BuildSettings.for_mode(
            mode,
            hash_length=config.hash_length,
            filename=config.filename,
            public_path=config.public_path,
            workers=config.workers,
            env=collect_environment(config.env_vars),
        )

        if mode == "production":
            emitter = DirectoryEmitter(out_dir)
        else:
            emitter = MemoryEmitter()

        return BuildContext(
            graph=loaded.graph,
            policy=policy,
            settings=settings,
            emitter=emitter,
            cache=global_context.open_cache() if use_cache else None,
            metadata=dict(metadata or {}),
        )
