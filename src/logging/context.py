# src/logging/context.py — v2
"""Contextual logging support: attach run_id, file path and stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per batch run and per file inside worker tasks.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "path", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    run_id: str | None = None
    path: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        path=_path.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per batch)."""
    _run_id.set(run_id)


def set_file_context(path: str, stage: str | None = None) -> None:
    """Set per-file context (called by each worker task)."""
    _path.set(path)
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _path.set(None)
    _stage.set(None)
