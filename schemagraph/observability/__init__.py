"""Observability layer - structured logging."""

from schemagraph.observability.logging import (
    bind_context,
    clear_context,
    setup_logging,
)

__all__ = ["bind_context", "clear_context", "setup_logging"]
