# src/logging/__init__.py — v1
"""Log formatters, handlers and context."""
