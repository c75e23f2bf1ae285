# src/batch/__init__.py — v1
"""Batch refresh driver and duplicate reports."""
