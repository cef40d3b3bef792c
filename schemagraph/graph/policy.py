"""Edge visibility policy.

Different consumers look at the same graph through different filters:
the complexity scorer ignores sorts, ripple construction ignores
structural and presentational edges, and ripple rendering hides
containment. Each consumer resolves its filter here instead of
re-deriving exclusion rules at the call site.
"""

from dataclasses import dataclass
from typing import Iterable, Literal

from .schemas import Edge, to_node_id

EdgePolicyContext = Literal["complexity", "rippleBuild", "rippleDisplay"]

DEFAULT_EXCLUDED: dict[str, frozenset[str]] = {
    # Sorting does not add operational complexity to a field
    "complexity": frozenset({"sortsBy"}),
    # Structural and presentational edges do not propagate impact
    "rippleBuild": frozenset({"displays", "contains", "sortsBy"}),
    # Containment and sorts are not drawn in ripple views
    "rippleDisplay": frozenset({"contains", "sortsBy"}),
}

# Edge types drawn field -> dependent in ripple views (impact direction)
_INVERTED_FOR_DISPLAY = frozenset({"filtersBy", "sortsBy", "uses", "derivesFrom"})


def get_default_exclusions_for(context: str) -> frozenset[str]:
    """Default excluded edge types for a policy context.

    Raises:
        ValueError: If ``context`` is not a known policy context.
    """
    try:
        return DEFAULT_EXCLUDED[context]
    except KeyError:
        raise ValueError(
            f"Unknown edge policy context {context!r}. "
            f"Must be one of: {sorted(DEFAULT_EXCLUDED)}"
        ) from None


def is_edge_allowed(
    edge: Edge,
    include: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
    defaults: Iterable[str] = (),
) -> bool:
    """Decide whether an edge is visible.

    An edge is hidden when its type is in ``defaults`` or ``exclude``.
    When ``include`` is non-empty the type must also appear in it.
    """
    if edge.type in defaults or (exclude is not None and edge.type in exclude):
        return False
    if include:
        return edge.type in include
    return True


@dataclass(frozen=True)
class EdgeFilter:
    """A resolved edge filter, callable as ``filter(edge) -> bool``.

    Attributes:
        include: Allow-list of edge types (empty = everything allowed).
        exclude: Caller exclusions.
        defaults: Context default exclusions.
    """

    include: frozenset[str] = frozenset()
    exclude: frozenset[str] = frozenset()
    defaults: frozenset[str] = frozenset()

    @classmethod
    def for_context(
        cls,
        context: str,
        include: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> "EdgeFilter":
        """Merge a context's default exclusions with caller overrides."""
        return cls(
            include=frozenset(include or ()),
            exclude=frozenset(exclude or ()),
            defaults=get_default_exclusions_for(context),
        )

    @property
    def excluded(self) -> frozenset[str]:
        return self.defaults | self.exclude

    def allows(self, edge: Edge) -> bool:
        return is_edge_allowed(edge, self.include, self.exclude, self.defaults)

    __call__ = allows


# ---------------------------------------------------------------------------
# Ripple rendering rules
# ---------------------------------------------------------------------------


def is_edge_displayed_in_ripple(edge: Edge) -> bool:
    """Whether a ripple view draws this edge (context defaults only)."""
    return is_edge_allowed(edge, defaults=get_default_exclusions_for("rippleDisplay"))


def should_display_edge_in_ripple(edge: Edge, root_id: str | None = None) -> bool:
    """Root-aware display rule.

    ``contains`` edges are shown only when they originate at the ripple
    root (an object ripple lists its own fields); every other edge follows
    the ``rippleDisplay`` context.
    """
    if edge.type == "contains":
        return root_id is not None and to_node_id(edge.source) == root_id
    return is_edge_displayed_in_ripple(edge)


def get_displayed_endpoints(edge: Edge) -> tuple[str, str]:
    """Endpoints to draw for an edge in a ripple view, as ``(source_id, target_id)``.

    Dependency edges are stored dependent -> dependency. Ripple views show
    impact, so filter, sort, usage and derivation edges are drawn from the
    dependency to the dependent. Other edges keep their stored direction.
    """
    if edge.type in _INVERTED_FOR_DISPLAY:
        return edge.target_id, edge.source_id
    return edge.source_id, edge.target_id
