"""Pair item exports with alt-id exports by order id and join their rows.

An *item* table is found under a header row containing ``Item``; an *alt-id*
table under a header row containing ``Alt Universal Id``, with the order id
read from the ``Order ID:`` preamble row of the same sheet. One file can hold
either table, both, or neither.

Matching policy, in order:

* item files are visited in input order, then alt-id files in input order;
* an item file's order id is ``Inmar Order #`` on its first record;
* every alt-id file whose order id equals it (loosely) is joined, each pair
  producing its own output;
* inside a pair both tables are first grouped by their key, then every item
  row takes the first alt-id row with the same key. Item rows without a
  partner are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from sheet_merger.aggregate import group_by
from sheet_merger.assemble import objects_to_rows
from sheet_merger.config import DEFAULT_CONFIG, MergeConfig
from sheet_merger.derived import apply_derived_fields
from sheet_merger.grid import clean_sheet, find_header_row, get_order_id, sheet_to_records
from sheet_merger.shared import Grid, Record, is_blank, key_token, loose_equals, normalize_name
from sheet_merger.writer import encode_delimited

logger = logging.getLogger(__name__)

MIN_SHEETS_TO_MERGE = 2


@dataclass
class SheetTables:
    index: int
    name: str
    altid_header_row: int | None = None
    item_header_row: int | None = None
    order_id: Any = None
    altid_records: list[Record] | None = None
    item_records: list[Record] | None = None

    @property
    def label(self) -> str:
        return self.name or f"file {self.index + 1}"


@dataclass
class MergedOutput:
    order_id: Any
    item_index: int
    altid_index: int
    records: list[Record] = field(default_factory=list)
    rows: Grid = field(default_factory=list)
    csv_text: str = ""

    def as_pair(self) -> tuple[str, Any]:
        return self.csv_text, self.order_id


def discover_tables(grid: Grid, index: int = 0, name: str = "", config: MergeConfig = DEFAULT_CONFIG) -> SheetTables:
    """Locate the alt-id and item tables of one decoded sheet."""
    tables = SheetTables(index=index, name=name)
    tables.altid_header_row = find_header_row(grid, config.altid_marker, config.max_header_rows)
    tables.item_header_row = find_header_row(grid, config.item_marker, config.max_header_rows)
    logger.debug(
        "%s: alt-id header row %s, item header row %s",
        tables.label,
        tables.altid_header_row,
        tables.item_header_row,
    )

    if tables.altid_header_row is not None:
        tables.order_id = get_order_id(
            grid,
            label=config.order_id_label,
            offset=config.order_id_offset,
            max_rows=config.max_header_rows,
        )
        tables.altid_records = sheet_to_records(clean_sheet(grid, tables.altid_header_row))
        logger.debug("%s: order id %r", tables.label, tables.order_id)
    if tables.item_header_row is not None:
        tables.item_records = sheet_to_records(clean_sheet(grid, tables.item_header_row))
    return tables


def join_seed(item_records: Sequence[Record], config: MergeConfig = DEFAULT_CONFIG) -> Any:
    """Order id of an item table, taken from its first record, or ``None``."""
    if not item_records:
        return None
    value = item_records[0].lookup(config.order_seed_field)
    if is_blank(value) or not key_token(value):
        return None
    return value


def join_tables(
    item_records: Sequence[Record],
    altid_records: Sequence[Record],
    config: MergeConfig = DEFAULT_CONFIG,
) -> list[Record]:
    """Inner-join item rows to alt-id rows on ``item`` == ``alt universal id``."""
    item_key = normalize_name(config.item_key)
    altid_key = normalize_name(config.altid_key)

    altid_rows = [record.copy() for record in altid_records]
    item_rows = [record.copy() for record in item_records]
    if altid_rows and altid_key in altid_rows[0]:
        altid_rows = group_by(altid_rows, altid_key)
    if item_rows and item_key in item_rows[0]:
        item_rows = group_by(item_rows, item_key)

    merged: list[Record] = []
    for item_row in item_rows:
        wanted = item_row.get(item_key)
        match = next((row for row in altid_rows if loose_equals(row.get(altid_key), wanted)), None)
        if match is None:
            continue
        merged_row = Record({**item_row, **match}, original_header=match.original_header)
        if altid_key in merged_row:
            merged_row[altid_key] = merged_row.get(item_key)
        merged.append(apply_derived_fields(merged_row))
    return merged


def correlate(sheets: Sequence[SheetTables], config: MergeConfig = DEFAULT_CONFIG) -> list[MergedOutput]:
    """Join every item table with every alt-id table that carries the same order id."""
    outputs: list[MergedOutput] = []
    if len(sheets) < MIN_SHEETS_TO_MERGE:
        return outputs

    item_sheets = [sheet for sheet in sheets if sheet.item_records is not None]
    altid_sheets = [sheet for sheet in sheets if sheet.altid_records is not None]
    for item_sheet in item_sheets:
        order_value = join_seed(item_sheet.item_records, config)
        if order_value is None:
            logger.debug("%s: no %r on first item row, skipped", item_sheet.label, config.order_seed_field)
            continue
        for altid_sheet in altid_sheets:
            if altid_sheet.order_id is None or not loose_equals(order_value, altid_sheet.order_id):
                continue
            records = join_tables(item_sheet.item_records, altid_sheet.altid_records, config)
            if not records:
                logger.debug(
                    "%s + %s: order %r matched but no rows joined",
                    item_sheet.label,
                    altid_sheet.label,
                    order_value,
                )
                continue
            rows = objects_to_rows(records)
            outputs.append(
                MergedOutput(
                    order_id=order_value,
                    item_index=item_sheet.index,
                    altid_index=altid_sheet.index,
                    records=records,
                    rows=rows,
                    csv_text=encode_delimited(rows),
                )
            )
    return outputs
