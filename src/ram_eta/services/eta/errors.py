"""Failures raised by the ETA engine."""

from __future__ import annotations

from typing import Any, Optional


class OracleQueryError(Exception):
    """The routing oracle could not answer a nearest/table query."""


class WorkerProcessError(RuntimeError):
    """An area worker process terminated abnormally."""

    def __init__(
        self,
        message: str,
        *,
        area_id: Any = None,
        area_name: Optional[str] = None,
        exit_code: Optional[int] = None,
        remote_stack: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.area_id = area_id
        self.area_name = area_name
        self.exit_code = exit_code
        self.remote_stack = remote_stack


class RegionComputationError(RuntimeError):
    """The region was aborted because one of its area workers failed."""
