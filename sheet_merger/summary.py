from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from sheet_merger import __version__ as TOOL_VERSION
from sheet_merger.contracts import build_contract, build_run_summary
from sheet_merger.correlate import join_seed
from sheet_merger.config import MergeConfig
from sheet_merger.pipeline import MergeRun
from sheet_merger.shared import Grid, cell_text


def _label(value: Any) -> str | None:
    text = cell_text(value)
    return text or None


def build_merge_summary(
    run: MergeRun,
    *,
    inputs: Sequence[str | Path],
    output_paths: Sequence[str | Path] = (),
) -> dict[str, Any]:
    contract = build_contract("sheet_merger.merge_summary")
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "outputs": [
            {
                "order_id": _label(output.order_id),
                "item_file": run.sheet(output.item_index).label,
                "altid_file": run.sheet(output.altid_index).label,
                "rows": len(output.records),
                "output_file": str(output_paths[idx]) if idx < len(output_paths) else None,
            }
            for idx, output in enumerate(run.outputs)
        ],
        "run_summary": build_run_summary(
            tool="sheet-merger",
            command="merge",
            inputs=inputs,
            status="ok" if run.outputs else "empty",
            output_paths=output_paths,
            metrics=run.metrics(),
            warnings=run.warnings,
        ),
    }


def build_combine_summary(
    run: MergeRun,
    grid: Grid | None,
    *,
    inputs: Sequence[str | Path],
    master_path: str | Path | None = None,
    output_path: str | Path | None = None,
    dedupe: bool = False,
) -> dict[str, Any]:
    contract = build_contract("sheet_merger.combine_summary")
    metrics = dict(run.metrics())
    metrics["combined_rows"] = len(grid) - 1 if grid else 0
    metrics["dedupe"] = dedupe
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "master_file": str(master_path) if master_path else None,
        "header": [cell_text(value) for value in grid[0]] if grid else [],
        "run_summary": build_run_summary(
            tool="sheet-merger",
            command="combine",
            inputs=inputs,
            status="ok" if grid is not None else "empty",
            output_paths=[output_path] if output_path else [],
            metrics=metrics,
            warnings=run.warnings,
        ),
    }


def build_inspect_report(run: MergeRun, config: MergeConfig, *, inputs: Sequence[str | Path]) -> dict[str, Any]:
    contract = build_contract("sheet_merger.inspect")
    files = []
    for sheet in run.sheets:
        files.append(
            {
                "file": sheet.label,
                # 1-based spreadsheet row numbers
                "altid_header_row": sheet.altid_header_row + 1 if sheet.altid_header_row is not None else None,
                "item_header_row": sheet.item_header_row + 1 if sheet.item_header_row is not None else None,
                "order_id": _label(sheet.order_id),
                "join_seed": _label(join_seed(sheet.item_records or [], config)),
                "altid_rows": len(sheet.altid_records) if sheet.altid_records is not None else None,
                "item_rows": len(sheet.item_records) if sheet.item_records is not None else None,
            }
        )
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "config": config.to_dict(),
        "files": files,
        "run_summary": build_run_summary(
            tool="sheet-merger",
            command="inspect",
            inputs=inputs,
            metrics=run.metrics(),
            warnings=run.warnings,
        ),
    }
