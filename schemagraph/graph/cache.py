"""Capacity-bounded cache of built dependency graphs.

Graph construction is the expensive step, so hosts that analyse the same
schema snapshot repeatedly keep built graphs in a ``GraphCache`` and pass
it to the loader. The cache is an explicit object owned by the caller;
graph lifetime ends when the caller drops the cache or evicts the key.
"""

import threading
from collections import OrderedDict

import structlog

from .store import DependencyGraph

logger = structlog.get_logger(__name__)


class GraphCache:
    """Least-recently-used map of ``key -> DependencyGraph``.

    Keys are caller-chosen snapshot identifiers (application id plus
    version, a document path, ...). Reads refresh recency; inserts beyond
    ``capacity`` evict the least recently used entry.
    """

    def __init__(self, capacity: int = 8) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._store: OrderedDict[str, DependencyGraph] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> DependencyGraph | None:
        with self._lock:
            graph = self._store.get(key)
            if graph is not None:
                self._store.move_to_end(key)
            return graph

    def put(self, key: str, graph: DependencyGraph) -> None:
        with self._lock:
            self._store[key] = graph
            self._store.move_to_end(key)
            while len(self._store) > self._capacity:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Evicted graph from cache", key=evicted)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
