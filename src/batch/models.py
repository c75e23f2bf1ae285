# src/batch/models.py — v2
"""Batch processing models: ScanEntry, BatchResult, DedupReport."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ScanEntry(BaseModel):
    """A single file discovered during a scan, and what refresh did with it."""

    file_path: str
    filename: str
    size_bytes: int
    is_image: bool
    status: Literal["pending", "fresh", "recomputed", "error"] = "pending"
    error: str | None = None


class BatchResult(BaseModel):
    """Summary of one refresh run."""

    scan_root: str | None = None
    total_files_found: int
    recomputed: int
    skipped: int
    errors: int
    entries: list[ScanEntry] = Field(default_factory=list)
    duration_seconds: float


class NearDuplicatePair(BaseModel):
    """Two images whose perceptual digests are within the distance threshold."""

    first: str
    second: str
    distance: int
    similarity: float


class DedupReport(BaseModel):
    """Exact duplicate groups and near-duplicate image pairs."""

    exact_groups: list[list[str]] = Field(default_factory=list)
    near_duplicates: list[NearDuplicatePair] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
