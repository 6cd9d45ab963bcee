from __future__ import annotations

from typing import Iterable, Sequence

from sheet_merger.shared import EXPECTED_HEADER, Grid, Record, cell_text


def objects_to_rows(records: Sequence[Record], expected_header: Sequence[str] = EXPECTED_HEADER) -> Grid:
    """Lay records out under the canonical header; fields a record lacks become ""."""
    header = list(expected_header)
    if not records:
        return [header]
    rows = []
    for record in records:
        row = []
        for name in header:
            key = record.find_key(name)
            row.append(record[key] if key is not None else "")
        rows.append(row)
    return [header, *rows]


def _row_signature(row: Sequence[object]) -> tuple[str, ...]:
    cells = [cell_text(value) for value in row]
    while cells and cells[-1] == "":
        cells.pop()
    return tuple(cells)


def combine(grids: Iterable[Grid], master: Grid | None = None, *, dedupe: bool = False) -> Grid | None:
    """Stack the data rows of several merged tables into one table.

    The header comes from the first grid, unless a non-empty ``master`` grid is
    given: then the master header is used verbatim and the master's data rows
    go first. Returns ``None`` when there is nothing at all to combine. With
    ``dedupe`` exact repeats of a data row are dropped, first occurrence kept.
    """
    header: list | None = None
    rows: Grid = []
    for grid in grids:
        if not grid:
            continue
        if header is None:
            header = list(grid[0])
        rows.extend(list(row) for row in grid[1:])

    if master:
        header = list(master[0])
        rows = [list(row) for row in master[1:]] + rows

    if header is None:
        return None

    if dedupe:
        seen: set[tuple[str, ...]] = set()
        unique = []
        for row in rows:
            signature = _row_signature(row)
            if signature in seen:
                continue
            seen.add(signature)
            unique.append(row)
        rows = unique

    return [header, *rows]
