"""Shared versioned contracts for sheet-merger run summaries."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

CONTRACT_VERSIONS = {
    "sheet_merger.merge_summary": "1.0.0",
    "sheet_merger.combine_summary": "1.0.0",
    "sheet_merger.inspect": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    inputs: Sequence[str | Path],
    status: str = "ok",
    output_paths: Sequence[str | Path] | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_files": [str(item) for item in inputs],
        "output_files": [str(item) for item in output_paths or []],
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
