"""File-based persistence for analysis outputs."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for storing run artifacts."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "analysis") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        safe_prefix = re.sub(r"[^A-Za-z0-9_.-]+", "-", prefix).strip("-") or "analysis"
        path = self.output_root / f"{safe_prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent, allow_nan=False)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def write_run(self, prefix: str, artifacts: Mapping[str, Any]) -> Path:
        """Create a run directory and write each artifact; ``.csv`` names take text, others JSON."""
        run_dir = self.make_run_directory(prefix)
        for name, content in artifacts.items():
            if name.endswith(".csv"):
                self.write_csv(run_dir / name, content)
            else:
                self.write_json(run_dir / name, content)
        return run_dir
