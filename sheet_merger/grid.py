from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from sheet_merger.shared import (
    HEADER_SCAN_MAX_ROWS,
    ORDER_ID_LABEL,
    ORDER_ID_OFFSET,
    UNNAMED_PREFIX,
    Grid,
    Record,
    cell_text,
    is_blank,
    normalize_name,
)

logger = logging.getLogger(__name__)


@dataclass
class CleanedSheet:
    header: list[str]
    normalized_header: list[str]
    rows: Grid = field(default_factory=list)


def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def find_header_row(grid: Grid, marker_name: str, max_rows: int = HEADER_SCAN_MAX_ROWS) -> int | None:
    """Return the index of the first row (within ``max_rows``) holding ``marker_name``.

    Cells are compared stringified, lowercased and trimmed. ``None`` means the
    marker was not found; 0 is a valid header position.
    """
    wanted = normalize_name(marker_name)
    for idx, row in enumerate(grid[:max_rows]):
        if any(normalize_name(cell) == wanted for cell in row):
            return idx
    return None


def normalize_header(header_row: Sequence[Any]) -> list[str]:
    return [normalize_name(cell) for cell in header_row]


def _is_droppable_header(value: Any) -> bool:
    text = cell_text(value)
    return not text.strip() or text.startswith(UNNAMED_PREFIX)


def clean_sheet(grid: Grid, header_row_index: int) -> CleanedSheet:
    """Cut the table that starts at ``header_row_index`` out of ``grid``.

    Columns with a blank or ``Unnamed...`` header are dropped, then columns
    with no value in any data row. Surviving columns keep their order.
    """
    header = list(grid[header_row_index])
    data = grid[header_row_index + 1 :]

    named = [idx for idx, value in enumerate(header) if not _is_droppable_header(value)]
    kept = [idx for idx in named if any(not is_blank(_cell(row, idx)) for row in data)]

    clean_header = [cell_text(header[idx]) for idx in kept]
    cleaned = CleanedSheet(
        header=clean_header,
        normalized_header=normalize_header(clean_header),
        rows=[[_cell(row, idx) for idx in kept] for row in data],
    )
    logger.debug("Detected header: %s", clean_header)
    return cleaned


def get_order_id(
    grid: Grid,
    label: str = ORDER_ID_LABEL,
    offset: int = ORDER_ID_OFFSET,
    max_rows: int = HEADER_SCAN_MAX_ROWS,
) -> Any:
    """Read the order identifier from the ``Order ID:`` preamble row, or ``None``."""
    for row in grid[:max_rows]:
        if row and cell_text(row[0]).strip() == label:
            value = _cell(row, offset)
            return None if is_blank(value) else value
    return None


def sheet_to_records(cleaned: CleanedSheet) -> list[Record]:
    records = []
    for row in cleaned.rows:
        record = Record(original_header=cleaned.header)
        for idx, name in enumerate(cleaned.normalized_header):
            record[name] = _cell(row, idx)
        records.append(record)
    return records
