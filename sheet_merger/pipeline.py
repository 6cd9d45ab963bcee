"""Public entry points: read input files, merge them, combine the results.

    from sheet_merger import merge, combine_merged_files

    for csv_text, order_id in merge(["items.xlsx", "alt_ids.xlsx"]):
        ...
    grid = combine_merged_files(["items.xlsx", "alt_ids.xlsx"], master_file="master.xlsx")

Inputs may be paths, raw bytes, or file-like objects (for example Streamlit
uploads). They are read one after another in the order given. Any file that
cannot be decoded aborts the whole call; "nothing to merge" is not an error and
comes back as an empty list (or ``None`` for the combined grid).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from sheet_merger.assemble import combine
from sheet_merger.config import DEFAULT_CONFIG, MergeConfig
from sheet_merger.correlate import MIN_SHEETS_TO_MERGE, MergedOutput, SheetTables, correlate, discover_tables, join_seed
from sheet_merger.loader import load_grid, load_master_grid
from sheet_merger.shared import Grid

logger = logging.getLogger(__name__)

NO_MERGE_WARNING = "No merged data produced. Check header names and order IDs."


@dataclass
class MergeRun:
    names: list[str] = field(default_factory=list)
    sheets: list[SheetTables] = field(default_factory=list)
    outputs: list[MergedOutput] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def pairs(self) -> list[tuple[str, Any]]:
        return [output.as_pair() for output in self.outputs]

    def sheet(self, index: int) -> SheetTables:
        return next(sheet for sheet in self.sheets if sheet.index == index)

    def metrics(self) -> dict[str, Any]:
        return {
            "files_read": len(self.names),
            "sheets_with_data": len(self.sheets),
            "item_tables": sum(1 for sheet in self.sheets if sheet.item_records is not None),
            "altid_tables": sum(1 for sheet in self.sheets if sheet.altid_records is not None),
            "outputs": len(self.outputs),
            "merged_rows": sum(len(output.records) for output in self.outputs),
        }


def read_grids(files: Sequence[Any]) -> list[tuple[str, Grid]]:
    """Decode every input in order. Decode errors propagate."""
    return [load_grid(source) for source in files]


def _sheet_warnings(sheet: SheetTables, config: MergeConfig) -> list[str]:
    warnings = []
    if sheet.item_records is None and sheet.altid_records is None:
        warnings.append(
            f"{sheet.label}: no '{config.item_marker}' or '{config.altid_marker}' header "
            f"in the first {config.max_header_rows} rows"
        )
    if sheet.altid_records is not None and sheet.order_id is None:
        warnings.append(f"{sheet.label}: alt-id table has no '{config.order_id_label}' value")
    if sheet.item_records is not None and join_seed(sheet.item_records, config) is None:
        warnings.append(f"{sheet.label}: item table has no '{config.order_seed_field}' on its first row")
    return warnings


def analyse_grids(named_grids: Sequence[tuple[str, Grid]], config: MergeConfig | None = None) -> MergeRun:
    config = config or DEFAULT_CONFIG
    run = MergeRun(names=[name for name, _ in named_grids])
    for index, (name, grid) in enumerate(named_grids):
        if not grid:
            run.warnings.append(f"{name or f'file {index + 1}'}: no data")
            continue
        sheet = discover_tables(grid, index=index, name=name, config=config)
        run.sheets.append(sheet)
        run.warnings.extend(_sheet_warnings(sheet, config))

    if len(run.sheets) < MIN_SHEETS_TO_MERGE:
        run.warnings.append(
            f"Only {len(run.sheets)} readable sheet(s); at least {MIN_SHEETS_TO_MERGE} are needed to merge."
        )
        return run

    run.outputs = correlate(run.sheets, config)
    if not run.outputs:
        logger.warning(NO_MERGE_WARNING)
        run.warnings.append(NO_MERGE_WARNING)
    return run


def run_merge(files: Sequence[Any], config: MergeConfig | None = None) -> MergeRun:
    return analyse_grids(read_grids(files), config)


def merge(files: Sequence[Any], config: MergeConfig | None = None) -> list[tuple[str, Any]]:
    """Merge a set of export files into ``(csv_text, order_id)`` pairs.

    An empty list means nothing could be merged.
    """
    return run_merge(files, config).pairs


def combine_run(run: MergeRun, master: Grid | None = None, *, dedupe: bool = False) -> Grid | None:
    grid = combine([output.rows for output in run.outputs], master, dedupe=dedupe)
    if grid is None:
        logger.warning("No header found for combined file.")
    return grid


def combine_merged_files(
    files: Sequence[Any],
    master_file: Any = None,
    config: MergeConfig | None = None,
    *,
    dedupe: bool = False,
) -> Grid | None:
    """Merge ``files`` and stack every output into one table.

    Rows of ``master_file`` (when given and not empty) come first and its header
    is used. Returns ``None`` when there is nothing to export.
    """
    run = run_merge(files, config)
    master = load_master_grid(master_file) if master_file is not None else None
    return combine_run(run, master, dedupe=dedupe)
