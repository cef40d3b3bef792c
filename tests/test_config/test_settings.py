"""Tests for application settings and graph configuration."""

import pytest
from pydantic import ValidationError

from schemagraph.config.settings import Settings, get_settings
from schemagraph.graph.config import GraphConfig


class TestGraphConfig:
    """Test GraphConfig defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in (
            "GRAPH_RIPPLE_MAX_DEPTH",
            "GRAPH_CROSS_OBJECT_HOP_COST",
            "GRAPH_STATS_TOP_N",
            "GRAPH_PATHS_MAX_DEPTH",
        ):
            monkeypatch.delenv(name, raising=False)
        config = GraphConfig()
        assert config.ripple_max_depth is None
        assert config.cross_object_hop_cost == 2
        assert config.stats_top_n == 10
        assert config.paths_max_depth == 6

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GRAPH_RIPPLE_MAX_DEPTH", "3")
        monkeypatch.setenv("GRAPH_CROSS_OBJECT_HOP_COST", "4")
        config = GraphConfig()
        assert config.ripple_max_depth == 3
        assert config.cross_object_hop_cost == 4

    def test_negative_depth_rejected(self):
        with pytest.raises(ValidationError):
            GraphConfig(ripple_max_depth=-1)

    def test_hop_cost_must_be_positive(self):
        with pytest.raises(ValidationError):
            GraphConfig(cross_object_hop_cost=0)


class TestSettings:
    """Test application Settings."""

    def test_fixture_settings(self, test_settings):
        assert test_settings.log_level == "DEBUG"
        assert test_settings.graph_cache_capacity == 2
        assert not test_settings.is_production

    def test_is_production(self):
        assert Settings(environment="production").is_production

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="TRACE")

    def test_cache_capacity_bounds(self):
        with pytest.raises(ValidationError):
            Settings(graph_cache_capacity=0)

    def test_get_settings_is_cached(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        first = get_settings()
        assert first.log_level == "WARNING"
        assert get_settings() is first
