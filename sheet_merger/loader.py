"""
loader.py: turns one input file into a Grid (list of rows of cell values).

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods

Public API:
    name, data = read_source(uploaded_file_or_path)
    grid       = decode(data, suffix=".xlsx")
    grid       = load_grid("path/to/export.xlsx")
    grid       = load_master_grid("path/to/master.xlsx")

Only the first sheet of a workbook is read. Rows that are entirely blank are
dropped, except by load_master_grid, which keeps rows exactly as stored.
Whole-number floats come back as int and NaN as None, so a cell reads the
same whether it came from a workbook or a CSV.
"""

from __future__ import annotations

import csv
import io
import math
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

import chardet
import pandas as pd

from sheet_merger.shared import Grid, is_blank

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm", ".xls"}
ODS_FORMATS = {".ods"}
ALL_FORMATS = TEXT_FORMATS | EXCEL_FORMATS | ODS_FORMATS

ZIP_MAGIC = b"PK\x03\x04"
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class DecodeError(ValueError):
    """Raised when an input file cannot be read into a grid."""


# ══════════════════════════════════════════════════════════════════════════════
# SOURCES
# ══════════════════════════════════════════════════════════════════════════════

def read_source(source: Any) -> tuple[str, bytes]:
    """
    Return (display name, raw bytes) for a path, raw bytes, or file-like object.

    File-like objects may expose ``getvalue()`` (Streamlit uploads, BytesIO) or
    ``read()``; their ``name`` attribute is used when present.
    """
    if isinstance(source, (bytes, bytearray)):
        return "", bytes(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.name, path.read_bytes()
    name = Path(str(getattr(source, "name", "") or "")).name
    if hasattr(source, "getvalue"):
        return name, bytes(source.getvalue())
    if hasattr(source, "read"):
        return name, bytes(source.read())
    raise TypeError(f"Unsupported input source: {type(source).__name__}")


def sniff_suffix(data: bytes) -> str:
    if data.startswith(ZIP_MAGIC):
        return ".xlsx"
    if data.startswith(OLE_MAGIC):
        return ".xls"
    return ".csv"


# ══════════════════════════════════════════════════════════════════════════════
# CELL NORMALIZATION
# ══════════════════════════════════════════════════════════════════════════════

def _clean_value(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer() and abs(value) < 2**53:
            return int(value)
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item") and not isinstance(value, (str, bytes, datetime)):
        return _clean_value(value.item())
    return value


def _finish_grid(rows: list[list[Any]], keep_blank_rows: bool = False) -> Grid:
    if keep_blank_rows:
        grid = [[_clean_value(value) for value in raw] for raw in rows]
        if all(is_blank(value) for row in grid for value in row):
            return []
        return grid

    grid = []
    for raw in rows:
        row = [_clean_value(value) for value in raw]
        while row and is_blank(row[-1]):
            row.pop()
        if row:
            grid.append(row)
    return grid


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    detected = result.get("encoding")
    return detected or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line: UTF-8, then the detected encoding, then latin-1, and
    finally CP1252 with replacement. Embedded null bytes are stripped.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines)


def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Uses csv.Sniffer first; falls back to the candidate that splits the most
    lines into the same number of fields. Export preambles have ragged rows, so
    ties go to the comma.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])
    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = 0
    for delim in [",", ";", "\t", "|"]:
        widths = [len(row) for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)]
        multi = [width for width in widths if width > 1]
        if not multi:
            continue
        _, score = Counter(multi).most_common(1)[0]
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


def _decode_text(data: bytes, suffix: str, keep_blank_rows: bool = False) -> Grid:
    text = _read_text_safely(data, _detect_encoding(data))
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    try:
        rows = list(csv.reader(io.StringIO(text), delimiter=delimiter))
    except csv.Error as exc:
        raise DecodeError(f"Could not parse {suffix} file: {exc}") from exc
    return _finish_grid([[cell if cell != "" else None for cell in row] for row in rows], keep_blank_rows)


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOK DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _decode_workbook(data: bytes, suffix: str, keep_blank_rows: bool = False) -> Grid:
    engine = "odf" if suffix in ODS_FORMATS else None
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd. Run: pip install xlrd")
    if suffix in ODS_FORMATS:
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy. Run: pip install odfpy")
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine=engine)
    except Exception as exc:
        raise DecodeError(f"Could not read workbook: {exc}") from exc
    return _finish_grid(df.astype(object).where(pd.notna(df), None).values.tolist(), keep_blank_rows)


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def decode(data: bytes, suffix: str | None = None, *, keep_blank_rows: bool = False) -> Grid:
    """
    Decode raw file bytes into a Grid.

    Args:
        data:   File contents.
        suffix: File extension including the dot. When missing, the format is
                sniffed from the leading bytes (zip → .xlsx, OLE → .xls, else CSV).
        keep_blank_rows: Return rows as stored, blank rows and trailing blank
                cells included. A file with no value at all still gives [].

    Raises:
        ValueError   if the format is unsupported.
        DecodeError  if the contents cannot be parsed.
        ImportError  if an optional reader (xlrd, odfpy) is missing.
    """
    suffix = (suffix or sniff_suffix(data)).lower()
    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")
    if suffix in TEXT_FORMATS:
        return _decode_text(data, suffix, keep_blank_rows)
    return _decode_workbook(data, suffix, keep_blank_rows)


def load_grid(source: Any, *, keep_blank_rows: bool = False) -> tuple[str, Grid]:
    """Read and decode one input; returns (display name, grid)."""
    name, data = read_source(source)
    suffix = Path(name).suffix.lower() if name else None
    return name, decode(data, suffix or None, keep_blank_rows=keep_blank_rows)


def load_master_grid(source: Any) -> Grid:
    """Decode a master file as stored, so its header row and blank rows survive a combine."""
    return load_grid(source, keep_blank_rows=True)[1]
