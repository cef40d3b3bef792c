"""Tests for graph document loading and the graph cache."""

import json

import pytest

from schemagraph.graph.cache import GraphCache
from schemagraph.graph.errors import GraphDocumentError
from schemagraph.graph.loader import build_graph, load_graph_document
from schemagraph.graph.schemas import DerivationDetails, RuleDetails
from schemagraph.graph.store import DependencyGraph


@pytest.fixture
def document() -> dict:
    """A small graph document mixing mapping and string endpoints."""
    return {
        "nodes": [
            {"kind": "object", "key": "object_1", "name": "Orders"},
            {"kind": "field", "key": "field_1", "name": "Amount"},
        ],
        "edges": [
            {"from": "object:object_1", "to": "field:field_1", "type": "contains"},
            {
                "from": {"kind": "field", "key": "field_2", "name": "Tax"},
                "to": {"kind": "field", "key": "field_1"},
                "type": "derivesFrom",
                "locationPath": "objects[0].fields[1].format.equation",
                "details": {"equation": "{field_1} * 0.2"},
            },
            {
                "from": {"type": "view", "key": "view_1"},
                "to": "field:field_1",
                "type": "uses",
                "locationPath": "scenes[0].views[0].rules.fields[0]",
                "details": {"ruleCategory": "record", "values": [1]},
            },
        ],
    }


class TestBuildGraph:
    """Test graph document parsing."""

    def test_builds_nodes_and_edges(self, document):
        graph = build_graph(document)
        assert graph.node_count == 4
        assert graph.edge_count == 3
        assert [n.id for n in graph.get_all_nodes()] == [
            "object:object_1",
            "field:field_1",
            "field:field_2",
            "view:view_1",
        ]

    def test_declared_names_are_canonical(self, document):
        graph = build_graph(document)
        assert graph.get_node("field:field_1").name == "Amount"
        assert graph.get_node("field:field_2").name == "Tax"

    def test_details_are_typed(self, document):
        graph = build_graph(document)
        derives, = graph.get_outgoing("field:field_2")
        assert derives.details == DerivationDetails(equation="{field_1} * 0.2")
        assert derives.location_path == "objects[0].fields[1].format.equation"
        uses, = graph.get_outgoing("view:view_1")
        assert isinstance(uses.details, RuleDetails)
        assert uses.rule_category == "record"
        assert uses.details.payload == {"values": [1]}

    def test_empty_document(self):
        graph = build_graph({})
        assert graph.node_count == 0

    @pytest.mark.parametrize(
        "document,location",
        [
            ({"nodes": [{"kind": "widget", "key": "w"}]}, "nodes[0]"),
            ({"nodes": ["field"]}, "nodes[0]"),
            ({"nodes": [42]}, "nodes[0]"),
            ({"edges": [{"from": "field:a", "to": "field:b", "type": "nope"}]}, "edges[0]"),
            ({"edges": [{"from": "field:a", "type": "uses"}]}, "edges[0].to"),
            ({"edges": ["field:a"]}, "edges[0]"),
            (
                {
                    "edges": [
                        {"from": "field:a", "to": "field:b", "type": "uses",
                         "details": {"ruleCategory": "sms"}}
                    ]
                },
                "edges[0]",
            ),
        ],
    )
    def test_malformed_entries(self, document, location):
        with pytest.raises(GraphDocumentError) as exc_info:
            build_graph(document)
        assert exc_info.value.location == location

    def test_non_list_sections(self):
        with pytest.raises(GraphDocumentError, match="must be lists"):
            build_graph({"nodes": {}})

    def test_non_mapping_document(self):
        with pytest.raises(GraphDocumentError, match="JSON object"):
            build_graph([])

    def test_cache_by_key(self, document):
        cache = GraphCache()
        first = build_graph(document, cache=cache, cache_key="app@1")
        again = build_graph({}, cache=cache, cache_key="app@1")
        assert again is first
        assert build_graph(document, cache=cache) is not first


class TestLoadGraphDocument:
    """Test reading graph documents from disk."""

    def test_load(self, tmp_path, document):
        path = tmp_path / "app.json"
        path.write_text(json.dumps(document))
        graph = load_graph_document(path)
        assert graph.edge_count == 3

    def test_cached_until_modified(self, tmp_path, document):
        path = tmp_path / "app.json"
        path.write_text(json.dumps(document))
        cache = GraphCache()

        first = load_graph_document(path, cache=cache)
        assert load_graph_document(str(path), cache=cache) is first
        assert len(cache) == 1

        cache.clear()
        assert load_graph_document(path, cache=cache) is not first

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(GraphDocumentError, match="not valid JSON"):
            load_graph_document(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"nodes":[{"kind":"field","key":"\xff\xfe"}],"edges":[]}')
        with pytest.raises(GraphDocumentError, match="not valid UTF-8"):
            load_graph_document(path)

    @pytest.mark.parametrize("use_cache", [False, True])
    def test_missing_file(self, tmp_path, use_cache):
        cache = GraphCache() if use_cache else None
        with pytest.raises(GraphDocumentError, match="Cannot read"):
            load_graph_document(tmp_path / "missing.json", cache=cache)


class TestGraphCache:
    """Test LRU behaviour."""

    def test_get_put(self):
        cache = GraphCache(capacity=2)
        graph = DependencyGraph()
        cache.put("a", graph)
        assert cache.get("a") is graph
        assert cache.get("missing") is None
        assert "a" in cache

    def test_evicts_least_recently_used(self):
        cache = GraphCache(capacity=2)
        graphs = {key: DependencyGraph() for key in "abc"}
        cache.put("a", graphs["a"])
        cache.put("b", graphs["b"])
        cache.get("a")
        cache.put("c", graphs["c"])
        assert "b" not in cache
        assert "a" in cache and "c" in cache
        assert len(cache) == 2

    def test_invalidate(self):
        cache = GraphCache()
        cache.put("a", DependencyGraph())
        cache.invalidate("a")
        cache.invalidate("never-there")
        assert len(cache) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError, match="capacity"):
            GraphCache(capacity=0)
        assert GraphCache(capacity=3).capacity == 3
