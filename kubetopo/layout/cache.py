"""Caller-owned cache of computed layouts.

The layout functions themselves are stateless.  A caller that re-lays out
the same graph repeatedly (the REST app, an interactive front-end) can own
a LayoutCache; entries are keyed by a SHA-256 content hash of the node
ids/kinds in order, the edges, the strategy and the full LayoutConfig.
Input positions are not part of the key since no strategy reads them.
"""

from __future__ import annotations

import hashlib
import json
import threading
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import replace

from kubetopo.cancellation import CancellationToken
from kubetopo.graph.models import GraphEdge, GraphNode, Position
from kubetopo.layout.engine import apply_layout, resolve_strategy
from kubetopo.models.config import LayoutConfig, LayoutStrategy
from kubetopo.observability.metrics import layout_cache_hits_total, layout_cache_misses_total


def layout_key(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    strategy: LayoutStrategy,
    config: LayoutConfig,
) -> str:
    payload = {
        "nodes": [[n.id, n.kind] for n in nodes],
        "edges": [[e.source, e.target, e.kind.value] for e in edges],
        "strategy": strategy.value,
        "config": config.to_dict(),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(encoded).hexdigest()


class LayoutCache:
    """Bounded LRU map from content hash to node positions.  Thread-safe."""

    def __init__(self, max_entries: int = 128) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, dict[str, Position]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> dict[str, Position] | None:
        with self._lock:
            positions = self._entries.get(key)
            if positions is not None:
                self._entries.move_to_end(key)
            return positions

    def put(self, key: str, nodes: Sequence[GraphNode]) -> None:
        positions = {n.id: n.position for n in nodes if n.position is not None}
        with self._lock:
            self._entries[key] = positions
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def layout(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        strategy: LayoutStrategy | str | None = None,
        config: LayoutConfig | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[GraphNode]:
        """apply_layout() with memoisation."""
        config = config or LayoutConfig()
        chosen = resolve_strategy(strategy, config)
        key = layout_key(nodes, edges, chosen, config)

        cached = self.get(key)
        if cached is not None:
            layout_cache_hits_total.inc()
            return [replace(node, position=cached.get(node.id)) for node in nodes]

        layout_cache_misses_total.inc()
        placed = apply_layout(nodes, edges, chosen, config, cancel=cancel)
        self.put(key, placed)
        return placed
