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

import heapq
from collections import defaultdict
from collections.abc import Callable, Iterable


def stable_toposort(
    nodes: Iterable[str],
    deps_of: Callable[[str], Iterable[str]],
    on_cycle: Callable[[list[str]], None] | None = None,
) -> list[str]:
    """
    Order nodes so that every node comes after its dependencies.

    Ties are broken by lexical order of the node names, never by the order
    the nodes were handed in. Dependencies outside `nodes` are ignored.

    Args:
        nodes: The nodes to order.
        deps_of: Returns the dependencies of a node.
        on_cycle: Called with the sorted nodes left over when only cycles
            remain. It is expected to raise. Without it, cycles are broken at
            the lexically smallest remaining node.

    Returns:
        The nodes, dependencies first.
    """
    node_set = set(nodes)
    pending: dict[str, set[str]] = {}
    dependents: dict[str, list[str]] = defaultdict(list)

    for node in node_set:
        deps = {d for d in deps_of(node) if d in node_set and d != node}
        pending[node] = deps
        for dep in deps:
            dependents[dep].append(node)

    ready = [node for node, deps in pending.items() if not deps]
    heapq.heapify(ready)
    ordered: list[str] = []
    placed: set[str] = set()

    while len(ordered) < len(node_set):
        if not ready:
            stuck = sorted(node_set - placed)
            if on_cycle is not None:
                on_cycle(stuck)
            # break the cycle deterministically
            ready.append(stuck[0])
            pending[stuck[0]] = set()

        node = heapq.heappop(ready)
        if node in placed:
            continue
        placed.add(node)
        ordered.append(node)

        for dependent in dependents[node]:
            deps = pending[dependent]
            if node in deps:
                deps.discard(node)
                if not deps and dependent not in placed:
                    heapq.heappush(ready, dependent)

    return ordered
