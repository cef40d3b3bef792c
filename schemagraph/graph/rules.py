"""Index of rules that reference fields.

Rules show up in the graph as ``uses`` edges carrying ``RuleDetails``
with a rule category (record, email, display). The index lists each
such usage once and groups it by category, by where the rule is
declared, and by the field it references.
"""

from dataclasses import dataclass, field
from typing import Any

from .schemas import Edge, NodeRef, RuleDetails
from .store import DependencyGraph


@dataclass(frozen=True)
class RuleDescriptor:
    """One rule's reference to one field.

    Attributes:
        id: ``"{origin id}->{field id}:{location path}"``.
        category: record, email or display.
        source: Where the rule lives: form, table, field or task.
        target_field: The referenced field.
        origin: The view, field or object declaring the rule.
        location_path: Declaration site in the source schema.
        edge: The underlying ``uses`` edge.
        task_name: Task name for scheduled task rules.
        operator: Criteria operator, if any.
        rule_type: "criteria", "values" or "text", if known.
        payload: Raw rule body (values, criteria, email content).
    """

    id: str
    category: str
    source: str
    target_field: NodeRef
    origin: NodeRef
    location_path: str
    edge: Edge
    task_name: str | None = None
    operator: str | None = None
    rule_type: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleIndex:
    """Rule usages grouped three ways."""

    all_rules: list[RuleDescriptor] = field(default_factory=list)
    by_category: dict[str, list[RuleDescriptor]] = field(default_factory=dict)
    by_source: dict[str, list[RuleDescriptor]] = field(default_factory=dict)
    by_field: dict[str, list[RuleDescriptor]] = field(default_factory=dict)

    def for_field(self, field_key: str) -> list[RuleDescriptor]:
        return list(self.by_field.get(field_key, ()))


def _rule_source(edge: Edge, details: RuleDetails) -> str:
    if details.rule_source is not None:
        return details.rule_source
    if edge.source.kind == "view":
        return "table"
    if edge.source.kind == "field":
        return "field"
    return "task"


def build_rule_index(graph: DependencyGraph) -> RuleIndex:
    """Index every categorized rule usage of a field in the graph."""
    index = RuleIndex()
    for edge in graph.get_all_edges():
        if edge.type != "uses" or edge.target.kind != "field":
            continue
        details = edge.details
        if not isinstance(details, RuleDetails) or details.rule_category is None:
            continue

        descriptor = RuleDescriptor(
            id=f"{edge.source_id}->{edge.target_id}:{edge.location_path}",
            category=details.rule_category,
            source=_rule_source(edge, details),
            target_field=graph.get_node(edge.target_id),
            origin=graph.get_node(edge.source_id),
            location_path=edge.location_path,
            edge=edge,
            task_name=details.task_name,
            operator=details.operator,
            rule_type=details.rule_type,
            payload=dict(details.payload),
        )
        index.all_rules.append(descriptor)
        index.by_category.setdefault(descriptor.category, []).append(descriptor)
        index.by_source.setdefault(descriptor.source, []).append(descriptor)
        index.by_field.setdefault(edge.target.key, []).append(descriptor)
    return index
