"""Tests for structured logging setup."""

import structlog

from schemagraph.observability import bind_context, clear_context, setup_logging


class TestSetupLogging:
    def test_production_renders_json(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        try:
            setup_logging()
            renderer = structlog.get_config()["processors"][-1]
            assert isinstance(renderer, structlog.processors.JSONRenderer)
        finally:
            structlog.reset_defaults()

    def test_development_renders_console(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        try:
            setup_logging()
            renderer = structlog.get_config()["processors"][-1]
            assert isinstance(renderer, structlog.dev.ConsoleRenderer)
        finally:
            structlog.reset_defaults()


class TestContext:
    def test_bind_and_clear(self):
        bind_context(graph="app.json", root="field:field_1")
        assert structlog.contextvars.get_contextvars() == {
            "graph": "app.json",
            "root": "field:field_1",
        }
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
