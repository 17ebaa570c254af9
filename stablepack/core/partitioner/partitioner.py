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
ChunkPartitioner

Splits a module graph into chunks.

Rules, in claim order:
- Everything statically reachable from the shared roots goes to the single
  `vendor` chunk, so framework code survives application edits untouched.
- Every other module reachable from two or more entry points goes to one
  shared chunk per distinct set of entry points reaching it.
- Each entry point gets exactly one entry chunk with what is left of its
  static closure.
- Modules reachable only through lazy-load edges go to a dynamic chunk: one
  per boundary, or one per distinct set of boundaries when several reach
  the same module.

Every module ends up in exactly one chunk. Modules no root reaches are
reported as orphans.
"""

import hashlib
import re
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from loguru import logger

from ..data.chunk import Chunk, ChunkKind
from ..data.module import EntryPoint
from ..exceptions import GraphError, OrphanModuleError, missing_module, unreachable_entry
from ..graph.protocol import ModuleGraph
from ..hashing.content_hasher import ContentHasher

VENDOR_CHUNK = "vendor"
RUNTIME_CHUNK = "runtime"
SHARED_PREFIX = "shared-"
DYNAMIC_PREFIX = "dynamic-"
MAX_NAME_LENGTH = 64
# entry names become file names and parts of shared chunk names
ENTRY_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")

OrphanPolicy = Literal["exclude", "error"]


@dataclass(frozen=True)
class PartitionPolicy:
    entry_points: tuple[EntryPoint, ...]
    shared_roots: frozenset[str] = frozenset()
    dynamic_boundaries: frozenset[str] = frozenset()
    orphans: OrphanPolicy = "exclude"

    @classmethod
    def from_graph(
        cls,
        graph: ModuleGraph,
        shared_roots: Iterable[str] = (),
        dynamic_boundaries: Iterable[str] = (),
        orphans: OrphanPolicy = "exclude",
    ) -> "PartitionPolicy":
        return cls(
            entry_points=tuple(sorted(graph.entry_points(), key=lambda e: e.name)),
            shared_roots=frozenset(shared_roots),
            dynamic_boundaries=frozenset(dynamic_boundaries),
            orphans=orphans,
        )


@dataclass(frozen=True)
class PartitionResult:
    chunks: tuple[Chunk, ...]
    orphans: tuple[OrphanModuleError, ...] = ()
    # chunk names holding any module an entry point / dynamic boundary needs
    entry_requirements: dict[str, tuple[str, ...]] = field(default_factory=dict)
    dynamic_requirements: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def chunk(self, name: str) -> Chunk:
        for chunk in self.chunks:
            if chunk.name == name:
                return chunk
        raise KeyError(name)


def _slug(module_id: str) -> str:
    stem = re.sub(r"\.[A-Za-z0-9]+$", "", module_id)
    return re.sub(r"[^A-Za-z0-9_]+", "-", stem).strip("-") or "module"


def _short_hash(values: Iterable[str]) -> str:
    return hashlib.sha256("\0".join(sorted(values)).encode("utf-8")).hexdigest()[:8]


class ChunkPartitioner:
    def __init__(self, hasher: ContentHasher | None = None):
        self.hasher = hasher or ContentHasher()

    def partition(self, graph: ModuleGraph, policy: PartitionPolicy) -> PartitionResult:
        self._validate(graph, policy)

        vendor = self._closure(graph, policy.shared_roots)
        entry_reach = {e.name: self._closure(graph, e.roots) for e in policy.entry_points}

        statically_reached = set(vendor).union(*entry_reach.values())
        boundary_reach = self._discover_boundaries(
            graph, statically_reached, policy.dynamic_boundaries
        )

        owner: dict[str, str] = dict.fromkeys(vendor, VENDOR_CHUNK)

        # shared by entry points
        entries_of: dict[str, set[str]] = defaultdict(set)
        for entry_name, reach in entry_reach.items():
            for module_id in reach:
                if module_id not in owner:
                    entries_of[module_id].add(entry_name)

        shared_names = self._group_names(
            {frozenset(names) for names in entries_of.values() if len(names) > 1},
            SHARED_PREFIX,
            label=lambda name: name,
        )
        for module_id, names in entries_of.items():
            if len(names) == 1:
                owner[module_id] = next(iter(names))
            else:
                owner[module_id] = shared_names[frozenset(names)]

        # lazily loaded
        boundaries_of: dict[str, set[str]] = defaultdict(set)
        for boundary, reach in boundary_reach.items():
            for module_id in reach:
                if module_id not in owner:
                    boundaries_of[module_id].add(boundary)

        dynamic_names = self._group_names(
            {frozenset(b) for b in boundaries_of.values()},
            DYNAMIC_PREFIX,
            label=_slug,
        )
        for module_id, boundaries in boundaries_of.items():
            owner[module_id] = dynamic_names[frozenset(boundaries)]

        orphans = self._orphans(graph, owner, policy)
        chunks = self._build_chunks(graph, policy, owner, shared_names, dynamic_names)

        # raises GraphError on a cycle between chunks
        self.hasher.chunk_order(chunks)

        entry_requirements = {
            name: tuple(sorted({owner[m] for m in reach} | {name}))
            for name, reach in entry_reach.items()
        }
        dynamic_requirements = {
            boundary: tuple(sorted({owner[m] for m in reach}))
            for boundary, reach in boundary_reach.items()
        }

        logger.debug(
            "Partitioned {modules} modules into {chunks} chunks ({orphans} orphans, {boundaries} dynamic boundaries)",
            modules=len(owner),
            chunks=len(chunks),
            orphans=len(orphans),
            boundaries=len(boundary_reach),
        )

        return PartitionResult(
            chunks=tuple(sorted(chunks, key=lambda c: c.name)),
            orphans=tuple(orphans),
            entry_requirements=entry_requirements,
            dynamic_requirements=dynamic_requirements,
        )

    def _validate(self, graph: ModuleGraph, policy: PartitionPolicy) -> None:
        reserved = {VENDOR_CHUNK, RUNTIME_CHUNK}
        for entry in policy.entry_points:
            if not entry.roots:
                raise unreachable_entry(entry.name)
            if not ENTRY_NAME_PATTERN.fullmatch(entry.name) or ".." in entry.name:
                raise GraphError(
                    f"Invalid entry point name '{entry.name}'",
                    "Entry point names may only contain letters, digits, '_', '-' and single dots",
                )
            if entry.name in reserved or entry.name.startswith(
                (SHARED_PREFIX, DYNAMIC_PREFIX)
            ):
                raise GraphError(
                    f"Entry point name '{entry.name}' is reserved",
                    f"Names {sorted(reserved)} and the prefixes '{SHARED_PREFIX}', "
                    f"'{DYNAMIC_PREFIX}' are used for generated chunks",
                )
            for root in entry.roots:
                if graph.get(root) is None:
                    raise missing_module(root, f"entry point '{entry.name}'")

        for root in sorted(policy.shared_roots):
            if graph.get(root) is None:
                raise missing_module(root, "the shared roots")

        for boundary in sorted(policy.dynamic_boundaries):
            if graph.get(boundary) is None:
                raise missing_module(boundary, "the dynamic boundaries")

        for module in graph.modules():
            for dep in (*module.dependencies, *module.dynamic_dependencies):
                if graph.get(dep) is None:
                    raise missing_module(dep, module.id)

    @staticmethod
    def _closure(graph: ModuleGraph, roots: Iterable[str]) -> set[str]:
        seen: set[str] = set()
        stack = list(roots)
        while stack:
            module_id = stack.pop()
            if module_id in seen:
                continue
            seen.add(module_id)
            stack.extend(graph.get(module_id).dependencies)
        return seen

    def _discover_boundaries(
        self,
        graph: ModuleGraph,
        reached: set[str],
        explicit: Iterable[str],
    ) -> dict[str, set[str]]:
        """Static closure of every dynamic boundary, found to a fixed point."""
        boundary_reach: dict[str, set[str]] = {}
        queue = sorted(set(explicit) | self._lazy_targets(graph, reached))
        while queue:
            boundary = queue.pop()
            if boundary in boundary_reach:
                continue
            reach = self._closure(graph, [boundary])
            boundary_reach[boundary] = reach
            queue.extend(t for t in self._lazy_targets(graph, reach) if t not in boundary_reach)
        return boundary_reach

    @staticmethod
    def _lazy_targets(graph: ModuleGraph, module_ids: Iterable[str]) -> set[str]:
        return {
            target
            for module_id in module_ids
            for target in graph.get(module_id).dynamic_dependencies
        }

    @staticmethod
    def _group_names(groups: set[frozenset[str]], prefix: str, label) -> dict[frozenset[str], str]:
        """
        Deterministic chunk names for groups of entry points or boundaries.

        Names that would collide, or grow too long, get a short hash of the
        group's members instead of the plain label.
        """
        base = {
            group: prefix + "~".join(sorted(label(member) for member in group))
            for group in groups
        }
        counts: dict[str, int] = defaultdict(int)
        for name in base.values():
            counts[name] += 1

        names = {}
        for group, name in base.items():
            if counts[name] > 1 or len(name) > MAX_NAME_LENGTH:
                name = f"{name[: MAX_NAME_LENGTH - 9]}-{_short_hash(group)}"
            names[group] = name
        return names

    @staticmethod
    def _orphans(
        graph: ModuleGraph, owner: dict[str, str], policy: PartitionPolicy
    ) -> list[OrphanModuleError]:
        orphan_ids = sorted(m.id for m in graph.modules() if m.id not in owner)
        orphans = [OrphanModuleError(module_id) for module_id in orphan_ids]
        if orphans and policy.orphans == "error":
            raise orphans[0]
        return orphans

    def _build_chunks(
        self,
        graph: ModuleGraph,
        policy: PartitionPolicy,
        owner: dict[str, str],
        shared_names: dict[frozenset[str], str],
        dynamic_names: dict[frozenset[str], str],
    ) -> list[Chunk]:
        members: dict[str, list[str]] = defaultdict(list)
        for module_id, chunk_name in owner.items():
            members[chunk_name].append(module_id)

        specs: list[tuple[str, ChunkKind, tuple[str, ...]]] = []
        if members[VENDOR_CHUNK]:
            specs.append((VENDOR_CHUNK, ChunkKind.SHARED, ()))
        for name in shared_names.values():
            specs.append((name, ChunkKind.SHARED, ()))
        for entry in policy.entry_points:
            specs.append((entry.name, ChunkKind.ENTRY, entry.roots))
        for boundaries, name in dynamic_names.items():
            specs.append((name, ChunkKind.DYNAMIC, tuple(sorted(boundaries))))

        chunks = []
        for name, kind, roots in specs:
            modules = [graph.get(module_id) for module_id in members[name]]
            dependencies = {
                owner[dep]
                for module in modules
                for dep in module.dependencies
                if owner[dep] != name
            }
            if kind is ChunkKind.ENTRY:
                # running the entry requires its roots, wherever they ended up
                dependencies.update(owner[root] for root in roots if owner[root] != name)
            chunks.append(
                Chunk(
                    name=name,
                    kind=kind,
                    modules=self.hasher.order_modules(modules),
                    roots=roots,
                    dependencies=tuple(sorted(dependencies)),
                )
            )
        return chunks
