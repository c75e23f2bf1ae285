# src/cache/__init__.py — v1
"""Fingerprint model, hash primitives, stores and staleness oracle."""
