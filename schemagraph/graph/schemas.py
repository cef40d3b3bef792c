"""Schema definitions for the dependency graph.

Defines the value objects the graph store holds: node references for
schema entities (objects, fields, views, scenes), typed directed edges
between them, and the per-edge-type detail payloads.

Edges point from the dependent entity to the entity it depends on
(``derived_field --derivesFrom--> input_field``,
``view --filtersBy--> field``). ``contains`` is the exception and points
container -> member (``object --contains--> field``).
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Literal, Mapping, Union

NodeKind = Literal["object", "field", "view", "scene"]

EdgeType = Literal[
    "derivesFrom",
    "filtersBy",
    "sortsBy",
    "uses",
    "contains",
    "displays",
    "connectsTo",
]

RuleCategory = Literal["record", "email", "display"]

RuleSource = Literal["form", "table", "field", "task"]

VALID_NODE_KINDS = frozenset({"object", "field", "view", "scene"})

VALID_EDGE_TYPES = frozenset(
    {
        "derivesFrom",
        "filtersBy",
        "sortsBy",
        "uses",
        "contains",
        "displays",
        "connectsTo",
    }
)

VALID_RULE_CATEGORIES = frozenset({"record", "email", "display"})

VALID_RULE_SOURCES = frozenset({"form", "table", "field", "task"})


def to_node_id(node: "NodeRef") -> str:
    """Return the stable identity string ``"{kind}:{key}"`` for a node."""
    return f"{node.kind}:{node.key}"


def parse_node_id(node_id: str) -> tuple[str, str]:
    """Split a node identity string into ``(kind, key)``.

    Raises:
        ValueError: If the string is not of the form ``kind:key`` with a
            known kind and a non-empty key.
    """
    kind, sep, key = node_id.partition(":")
    if not sep or not key or kind not in VALID_NODE_KINDS:
        raise ValueError(f"Malformed node id {node_id!r}")
    return kind, key


@dataclass(frozen=True, eq=False)
class NodeRef:
    """A reference to one schema entity.

    Attributes:
        kind: One of object, field, view, scene.
        key: Stable key from the source schema (e.g., "field_23"),
            unique within a kind.
        name: Optional human-readable label. Not part of identity.
    """

    kind: NodeKind
    key: str
    name: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in VALID_NODE_KINDS:
            raise ValueError(
                f"Invalid node kind {self.kind!r}. "
                f"Must be one of: {sorted(VALID_NODE_KINDS)}"
            )
        if not self.key:
            raise ValueError("Node key must be a non-empty string")

    @property
    def id(self) -> str:
        return to_node_id(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeRef):
            return NotImplemented
        return self.kind == other.kind and self.key == other.key

    def __hash__(self) -> int:
        return hash((self.kind, self.key))


# ---------------------------------------------------------------------------
# Edge details (one payload class per edge type family)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivationDetails:
    """Metadata for ``derivesFrom`` edges.

    Attributes:
        equation: Formula text the dependency was extracted from.
        derivation: Derivation flavour (e.g., "equation", "sum", "count",
            "concatenation").
        extra: Any additional keys from the source declaration.
    """

    edge_types: ClassVar[frozenset[str]] = frozenset({"derivesFrom"})

    equation: str | None = None
    derivation: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RuleDetails:
    """Metadata for ``uses`` edges.

    Attributes:
        rule_category: record, email or display when the usage comes from
            a rule, None for plain value/criteria references.
        rule_source: Where the rule was declared (form, table, field, task).
        rule_type: Part of the rule using the field ("criteria", "values",
            "text").
        operator: Comparison operator for criteria usages.
        task_name: Name of the scheduled task for task rules.
        payload: Raw rule body (values, criteria, email content).
        extra: Any additional keys from the source declaration.
    """

    edge_types: ClassVar[frozenset[str]] = frozenset({"uses"})

    rule_category: RuleCategory | None = None
    rule_source: RuleSource | None = None
    rule_type: str | None = None
    operator: str | None = None
    task_name: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (
            self.rule_category is not None
            and self.rule_category not in VALID_RULE_CATEGORIES
        ):
            raise ValueError(
                f"Invalid rule_category {self.rule_category!r}. "
                f"Must be one of: {sorted(VALID_RULE_CATEGORIES)}"
            )
        if self.rule_source is not None and self.rule_source not in VALID_RULE_SOURCES:
            raise ValueError(
                f"Invalid rule_source {self.rule_source!r}. "
                f"Must be one of: {sorted(VALID_RULE_SOURCES)}"
            )


@dataclass(frozen=True)
class FilterDetails:
    """Metadata for ``filtersBy`` edges."""

    edge_types: ClassVar[frozenset[str]] = frozenset({"filtersBy"})

    operator: str | None = None
    value: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SortDetails:
    """Metadata for ``sortsBy`` edges."""

    edge_types: ClassVar[frozenset[str]] = frozenset({"sortsBy"})

    order: Literal["asc", "desc"] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConnectionDetails:
    """Metadata for ``connectsTo`` edges."""

    edge_types: ClassVar[frozenset[str]] = frozenset({"connectsTo"})

    relationship: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


EdgeDetails = Union[
    DerivationDetails, RuleDetails, FilterDetails, SortDetails, ConnectionDetails
]

_DETAILS_BY_TYPE: dict[str, type] = {
    "derivesFrom": DerivationDetails,
    "uses": RuleDetails,
    "filtersBy": FilterDetails,
    "sortsBy": SortDetails,
    "connectsTo": ConnectionDetails,
}

# Source-schema spellings accepted by details_from_dict
_DETAIL_ALIASES: dict[str, str] = {
    "ruleCategory": "rule_category",
    "ruleSource": "rule_source",
    "ruleType": "rule_type",
    "taskName": "task_name",
}


def details_from_dict(
    edge_type: str, data: Mapping[str, Any] | None
) -> EdgeDetails | None:
    """Build the typed details payload for an edge type from a plain mapping.

    Known keys (snake_case or the source schema's camelCase) become fields;
    everything else is kept in ``extra``. ``uses`` edges collect ``rule``,
    ``values`` and ``email`` bodies into ``payload``.

    Returns:
        The details object, or None for edge types that carry no details
        (``contains``, ``displays``) or when ``data`` is empty.
    """
    if not data:
        return None
    cls = _DETAILS_BY_TYPE.get(edge_type)
    if cls is None:
        return None

    known = {f.name for f in fields(cls)} - {"extra", "payload"}
    kwargs: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    payload: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _DETAIL_ALIASES.get(raw_key, raw_key)
        if key in known:
            kwargs[key] = value
        elif cls is RuleDetails and key in ("rule", "values", "email", "criteria"):
            payload[key] = value
        else:
            extra[key] = value

    if cls is RuleDetails:
        kwargs["payload"] = payload
    return cls(extra=extra, **kwargs)


@dataclass(frozen=True, eq=False)
class Edge:
    """A directed, typed relationship between two nodes.

    Edges compare by identity: two declarations with the same endpoints,
    type and location are still two edges.

    Attributes:
        source: The dependent node (container for ``contains``).
        target: The dependency (member for ``contains``).
        type: Relationship type.
        location_path: Where in the source schema this relationship was
            declared (e.g., "objects[0].fields[3].format.equation").
        details: Typed, edge-type-specific metadata.
    """

    source: NodeRef
    target: NodeRef
    type: EdgeType
    location_path: str = ""
    details: EdgeDetails | None = None

    def __post_init__(self) -> None:
        if self.type not in VALID_EDGE_TYPES:
            raise ValueError(
                f"Invalid edge type {self.type!r}. "
                f"Must be one of: {sorted(VALID_EDGE_TYPES)}"
            )
        if self.details is not None and self.type not in getattr(
            self.details, "edge_types", frozenset()
        ):
            raise ValueError(
                f"{type(self.details).__name__} cannot describe a "
                f"{self.type!r} edge"
            )

    @property
    def source_id(self) -> str:
        return to_node_id(self.source)

    @property
    def target_id(self) -> str:
        return to_node_id(self.target)

    @property
    def rule_category(self) -> str | None:
        """Rule category of a ``uses`` edge, or None."""
        if isinstance(self.details, RuleDetails):
            return self.details.rule_category
        return None

    def describe(self) -> str:
        """Short human-readable form, e.g. ``view:view_1 -> field:field_2 · filtersBy``."""
        return f"{self.source_id} → {self.target_id} · {self.type}"
