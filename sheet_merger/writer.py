from __future__ import annotations

import csv
import io
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from sheet_merger.shared import Grid, cell_text, is_blank

GENERAL_SIGNIFICANT_DIGITS = 11
HEADER_COLOR = "1565C0"
UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def format_cell(value: Any) -> str:
    """Render a cell for delimited text the way a spreadsheet's General format would."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and not value.is_integer():
        return format(value, f".{GENERAL_SIGNIFICANT_DIGITS}g")
    if isinstance(value, datetime) and value.time() == datetime.min.time():
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return cell_text(value)


def encode_delimited(grid: Grid, delimiter: str = ",") -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    for row in grid:
        writer.writerow([format_cell(value) for value in row])
    return buffer.getvalue()


def _workbook_value(value: Any) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, (int, float, str, bool, date)):
        return value
    return str(value)


def _infer_col_widths(rows: Grid, min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    width = max(len(row) for row in rows[: sample + 1])
    widths = [min_width] * width
    for row in rows[: sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(format_cell(val)) + 2))
    return widths


def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    """Apply bold header, color, frozen row, and column widths."""
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def build_workbook(grid: Grid, sheet_name: str = "MergedData") -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row in grid:
        ws.append([_workbook_value(value) for value in row])
    if grid:
        _style_sheet(ws, _infer_col_widths(grid), HEADER_COLOR)
    return wb


def encode_workbook(grid: Grid, sheet_name: str = "MergedData") -> bytes:
    buffer = io.BytesIO()
    build_workbook(grid, sheet_name).save(buffer)
    return buffer.getvalue()


def write_workbook(grid: Grid, output_path: Path, sheet_name: str = "MergedData") -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(encode_workbook(grid, sheet_name))
    return output_path


def csv_filename(label: Any, index: int) -> str:
    """File name for one merged output: the order id, else ``merged_file_<n>``."""
    stem = UNSAFE_FILENAME_RE.sub("_", cell_text(label).strip()).strip("._")
    if not stem:
        stem = f"merged_file_{index + 1}"
    return f"{stem}.csv"


def unique_csv_filenames(labels: Sequence[Any]) -> list[str]:
    names: list[str] = []
    used: set[str] = set()
    for index, label in enumerate(labels):
        name = csv_filename(label, index)
        stem = name[: -len(".csv")]
        counter = 2
        while name.lower() in used:
            name = f"{stem}-{counter}.csv"
            counter += 1
        used.add(name.lower())
        names.append(name)
    return names
