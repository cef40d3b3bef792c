"""Pytest fixtures for dependency graph tests.

``orders_graph`` models a small application:

    object_1 Orders:    field_1 Amount, field_2 Tax, field_3 Total
    object_2 Customers: field_4 Lifetime value
    scene_1 Orders page contains view_1 Orders table

    field_2 derivesFrom field_1
    field_3 derivesFrom field_1, field_2
    field_4 derivesFrom field_3 (cross-object) and connectsTo object_1
    view_1 filtersBy field_1, sortsBy field_2, displays field_3
    view_1 uses field_1 (record rule criteria)
    view_1 uses field_2 (column list)
"""

import pytest

from schemagraph.graph.schemas import (
    ConnectionDetails,
    DerivationDetails,
    Edge,
    FilterDetails,
    NodeRef,
    RuleDetails,
    SortDetails,
)
from schemagraph.graph.store import DependencyGraph


@pytest.fixture
def orders() -> NodeRef:
    return NodeRef("object", "object_1", "Orders")


@pytest.fixture
def customers() -> NodeRef:
    return NodeRef("object", "object_2", "Customers")


@pytest.fixture
def amount() -> NodeRef:
    return NodeRef("field", "field_1", "Amount")


@pytest.fixture
def tax() -> NodeRef:
    return NodeRef("field", "field_2", "Tax")


@pytest.fixture
def total() -> NodeRef:
    return NodeRef("field", "field_3", "Total")


@pytest.fixture
def lifetime() -> NodeRef:
    return NodeRef("field", "field_4", "Lifetime value")


@pytest.fixture
def orders_view() -> NodeRef:
    return NodeRef("view", "view_1", "Orders table")


@pytest.fixture
def orders_scene() -> NodeRef:
    return NodeRef("scene", "scene_1", "Orders page")


@pytest.fixture
def orders_graph(
    orders, customers, amount, tax, total, lifetime, orders_view, orders_scene
) -> DependencyGraph:
    """The Orders/Customers application described in the module docstring."""
    graph = DependencyGraph()
    for node in (orders, customers, amount, tax, total, lifetime, orders_view, orders_scene):
        graph.add_node(node)

    graph.add_edges(
        [
            Edge(orders, amount, "contains", "objects[0].fields[0]"),
            Edge(orders, tax, "contains", "objects[0].fields[1]"),
            Edge(orders, total, "contains", "objects[0].fields[2]"),
            Edge(customers, lifetime, "contains", "objects[1].fields[0]"),
            Edge(
                tax, amount, "derivesFrom", "objects[0].fields[1].format.equation",
                DerivationDetails(equation="{field_1} * 0.2", derivation="equation"),
            ),
            Edge(
                total, amount, "derivesFrom", "objects[0].fields[2].format.equation",
                DerivationDetails(equation="{field_1} + {field_2}", derivation="equation"),
            ),
            Edge(
                total, tax, "derivesFrom", "objects[0].fields[2].format.equation",
                DerivationDetails(equation="{field_1} + {field_2}", derivation="equation"),
            ),
            Edge(
                lifetime, total, "derivesFrom", "objects[1].fields[0].format.field",
                DerivationDetails(derivation="sum"),
            ),
            Edge(
                lifetime, orders, "connectsTo", "objects[1].fields[0].format.connection",
                ConnectionDetails(relationship="many"),
            ),
            Edge(
                orders_view, amount, "filtersBy", "scenes[0].views[0].source.criteria[0]",
                FilterDetails(operator="is higher than", value=100),
            ),
            Edge(
                orders_view, tax, "sortsBy", "scenes[0].views[0].source.sort[0]",
                SortDetails(order="desc"),
            ),
            Edge(orders_view, total, "displays", "scenes[0].views[0].columns[2]"),
            Edge(
                orders_view, amount, "uses",
                "scenes[0].views[0].rules.fields[0].criteria",
                RuleDetails(rule_category="record", rule_type="criteria", operator="is"),
            ),
            Edge(orders_view, tax, "uses", "scenes[0].views[0].columns[1]"),
            Edge(orders_scene, orders_view, "contains", "scenes[0].views[0]"),
        ]
    )
    return graph


@pytest.fixture
def cyclic_graph() -> DependencyGraph:
    """Three fields deriving from each other in a loop, plus one bystander."""
    a = NodeRef("field", "a")
    b = NodeRef("field", "b")
    c = NodeRef("field", "c")
    graph = DependencyGraph()
    graph.add_node(NodeRef("field", "bystander"))
    graph.add_edges(
        [
            Edge(a, b, "derivesFrom"),
            Edge(b, c, "derivesFrom"),
            Edge(c, a, "derivesFrom"),
        ]
    )
    return graph
