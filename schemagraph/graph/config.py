"""Configuration for the dependency graph engine.

All settings can be overridden via environment variables with GRAPH_ prefix.
Example: GRAPH_RIPPLE_MAX_DEPTH=3
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphConfig(BaseSettings):
    """Dependency graph configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ripple_max_depth: int | None = Field(
        default=None,
        ge=0,
        description="Default ripple traversal depth (None = unbounded)",
    )

    cross_object_hop_cost: int = Field(
        default=2,
        ge=1,
        description="Steps charged for a derivation hop that crosses objects "
        "in the weighted chain depth feature",
    )

    stats_top_n: int = Field(
        default=10,
        ge=1,
        description="Number of most-referenced fields reported by graph stats",
    )

    paths_max_depth: int = Field(
        default=6,
        ge=1,
        le=50,
        description="Maximum hops searched by paths_to",
    )
