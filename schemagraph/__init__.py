"""Schemagraph: dependency analysis for declarative application schemas."""

__version__ = "0.1.0"
