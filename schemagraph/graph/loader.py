"""Build a dependency graph from a graph document.

A graph document is the already-resolved output of schema ingestion,
as plain JSON:

    {
      "nodes": [{"kind": "object", "key": "object_1", "name": "Orders"}],
      "edges": [
        {"from": {"kind": "field", "key": "field_2"},
         "to": {"kind": "field", "key": "field_1"},
         "type": "derivesFrom",
         "locationPath": "objects[0].fields[1].format.equation",
         "details": {"equation": "{field_1} * 2"}}
      ]
    }

Endpoints may also be given as identity strings (``"field:field_1"``).
Nodes are added in document order, then edges, so insertion order
matches the document.
"""

import json
from pathlib import Path
from typing import Any, Mapping

import structlog

from .cache import GraphCache
from .errors import GraphDocumentError
from .schemas import Edge, NodeRef, details_from_dict, parse_node_id
from .store import DependencyGraph

logger = structlog.get_logger(__name__)


def _node_from(raw: Any, location: str) -> NodeRef:
    try:
        if isinstance(raw, str):
            kind, key = parse_node_id(raw)
            return NodeRef(kind=kind, key=key)
        if isinstance(raw, Mapping):
            kind = raw.get("kind", raw.get("type"))
            return NodeRef(kind=kind, key=raw.get("key"), name=raw.get("name"))
    except (TypeError, ValueError) as e:
        raise GraphDocumentError(f"Invalid node at {location}: {e}", location) from e
    raise GraphDocumentError(f"Invalid node at {location}: {raw!r}", location)


def _edge_from(raw: Any, location: str) -> Edge:
    if not isinstance(raw, Mapping):
        raise GraphDocumentError(f"Invalid edge at {location}: {raw!r}", location)
    source = _node_from(raw.get("from"), f"{location}.from")
    target = _node_from(raw.get("to"), f"{location}.to")
    edge_type = raw.get("type")
    try:
        return Edge(
            source=source,
            target=target,
            type=edge_type,
            location_path=raw.get("locationPath", raw.get("location_path")) or "",
            details=details_from_dict(edge_type, raw.get("details")),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise GraphDocumentError(f"Invalid edge at {location}: {e}", location) from e


def build_graph(
    document: Mapping[str, Any],
    cache: GraphCache | None = None,
    cache_key: str | None = None,
) -> DependencyGraph:
    """Build a graph from a parsed graph document.

    Args:
        document: Mapping with ``nodes`` and ``edges`` lists.
        cache: Optional cache of built graphs.
        cache_key: Snapshot identifier for the cache. Required to use
            the cache; without it the graph is always rebuilt.

    Raises:
        GraphDocumentError: If the document or an entry is malformed.
    """
    if cache is not None and cache_key is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Graph cache hit", cache_key=cache_key)
            return cached

    if not isinstance(document, Mapping):
        raise GraphDocumentError("Graph document must be a JSON object")
    raw_nodes = document.get("nodes", [])
    raw_edges = document.get("edges", [])
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise GraphDocumentError("Graph document 'nodes' and 'edges' must be lists")

    graph = DependencyGraph()
    for i, raw in enumerate(raw_nodes):
        graph.add_node(_node_from(raw, f"nodes[{i}]"))
    for i, raw in enumerate(raw_edges):
        graph.add_edge(_edge_from(raw, f"edges[{i}]"))

    logger.info(
        "Graph built",
        nodes=graph.node_count,
        edges=graph.edge_count,
        cache_key=cache_key,
    )

    if cache is not None and cache_key is not None:
        cache.put(cache_key, graph)
    return graph


def load_graph_document(
    path: str | Path,
    cache: GraphCache | None = None,
) -> DependencyGraph:
    """Read a graph document from disk and build it.

    With a cache, the resolved path plus file modification time is the
    cache key, so an edited document is rebuilt.

    Raises:
        GraphDocumentError: If the file cannot be read, is not valid UTF-8
            JSON or is malformed.
    """
    path = Path(path)
    cache_key = None
    try:
        if cache is not None:
            cache_key = f"{path.resolve()}@{path.stat().st_mtime_ns}"
            cached = cache.get(cache_key)
            if cached is not None:
                return cached
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise GraphDocumentError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise GraphDocumentError(f"{path} is not valid UTF-8: {e}") from e

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise GraphDocumentError(f"{path} is not valid JSON: {e}") from e
    return build_graph(document, cache=cache, cache_key=cache_key)
