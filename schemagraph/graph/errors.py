"""Exceptions raised by the dependency graph engine."""

from typing import Sequence

from .schemas import NodeRef


class GraphError(Exception):
    """Base exception for graph engine errors."""


class CyclicGraphError(GraphError):
    """Raised when an ordering is requested over a cyclic edge subgraph.

    Attributes:
        edge_types: Edge types the ordering was restricted to.
        components: Strongly connected components of size > 1 that make
            the restricted subgraph cyclic.
    """

    def __init__(
        self,
        message: str,
        edge_types: Sequence[str] = (),
        components: Sequence[Sequence[NodeRef]] = (),
    ):
        super().__init__(message)
        self.edge_types = tuple(edge_types)
        self.components = [list(c) for c in components]


class GraphDocumentError(GraphError):
    """Raised when a graph document cannot be turned into a graph."""

    def __init__(self, message: str, location: str | None = None):
        super().__init__(message)
        self.location = location
