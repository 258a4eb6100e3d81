"""Async chat client with optimistic message dispatch."""

__version__ = "0.1.0"
