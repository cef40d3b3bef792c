"""Tests for graph node, edge and details schemas."""

import pytest

from schemagraph.graph.schemas import (
    DerivationDetails,
    Edge,
    FilterDetails,
    NodeRef,
    RuleDetails,
    details_from_dict,
    parse_node_id,
    to_node_id,
)


class TestNodeRef:
    """Test NodeRef identity and validation."""

    def test_id_is_kind_and_key(self):
        assert NodeRef("field", "field_1").id == "field:field_1"
        assert to_node_id(NodeRef("view", "view_9")) == "view:view_9"

    def test_name_is_not_part_of_identity(self):
        a = NodeRef("field", "field_1", "Amount")
        b = NodeRef("field", "field_1", "Renamed")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_same_key_different_kind_differs(self):
        assert NodeRef("field", "x") != NodeRef("object", "x")

    def test_invalid_kind_raises(self):
        with pytest.raises(ValueError, match="Invalid node kind"):
            NodeRef("widget", "w_1")

    def test_empty_key_raises(self):
        with pytest.raises(ValueError, match="non-empty"):
            NodeRef("field", "")

    def test_parse_node_id(self):
        assert parse_node_id("scene:scene_2") == ("scene", "scene_2")
        # Only the first colon separates kind and key
        assert parse_node_id("field:a:b") == ("field", "a:b")

    @pytest.mark.parametrize("bad", ["field_1", "field:", "widget:w_1", ":x"])
    def test_parse_node_id_rejects_malformed(self, bad):
        with pytest.raises(ValueError, match="Malformed node id"):
            parse_node_id(bad)


class TestEdge:
    """Test Edge validation and helpers."""

    def test_edges_compare_by_identity(self, amount, tax):
        e1 = Edge(tax, amount, "derivesFrom", "p")
        e2 = Edge(tax, amount, "derivesFrom", "p")
        assert e1 != e2
        assert e1 == e1

    def test_invalid_type_raises(self, amount, tax):
        with pytest.raises(ValueError, match="Invalid edge type"):
            Edge(tax, amount, "dependsOn")

    def test_details_must_match_type(self, amount, orders_view):
        with pytest.raises(ValueError, match="cannot describe"):
            Edge(orders_view, amount, "filtersBy", details=DerivationDetails(equation="x"))

    def test_rule_category(self, amount, orders_view):
        edge = Edge(orders_view, amount, "uses", details=RuleDetails(rule_category="email"))
        assert edge.rule_category == "email"
        assert Edge(orders_view, amount, "filtersBy").rule_category is None

    def test_describe(self, amount, orders_view):
        edge = Edge(orders_view, amount, "filtersBy")
        assert edge.describe() == "view:view_1 → field:field_1 · filtersBy"


class TestDetails:
    """Test typed details and their construction from mappings."""

    def test_invalid_rule_category_raises(self):
        with pytest.raises(ValueError, match="Invalid rule_category"):
            RuleDetails(rule_category="sms")

    def test_invalid_rule_source_raises(self):
        with pytest.raises(ValueError, match="Invalid rule_source"):
            RuleDetails(rule_source="api")

    def test_from_dict_accepts_camel_case_aliases(self):
        details = details_from_dict(
            "uses",
            {
                "ruleCategory": "record",
                "ruleSource": "form",
                "ruleType": "values",
                "taskName": "Nightly",
                "values": [{"field": "field_1"}],
                "color": "red",
            },
        )
        assert isinstance(details, RuleDetails)
        assert details.rule_category == "record"
        assert details.rule_source == "form"
        assert details.rule_type == "values"
        assert details.task_name == "Nightly"
        assert details.payload == {"values": [{"field": "field_1"}]}
        assert details.extra == {"color": "red"}

    def test_from_dict_keeps_unknown_keys_in_extra(self):
        details = details_from_dict("filtersBy", {"operator": "is", "value": 3, "match": "and"})
        assert details == FilterDetails(operator="is", value=3, extra={"match": "and"})

    def test_from_dict_edge_types_without_details(self):
        assert details_from_dict("contains", {"anything": 1}) is None
        assert details_from_dict("displays", {"anything": 1}) is None

    def test_from_dict_empty(self):
        assert details_from_dict("derivesFrom", None) is None
        assert details_from_dict("derivesFrom", {}) is None
