from __future__ import annotations

from sheet_merger.shared import (
    ACTUAL_UPC,
    EXT_LIQUIDATION_PRC,
    EXTENDED_PRICE,
    LAST_KNOWN_PRICE,
    LIQUIDATION_PCT,
    QUANTITY,
    UNIVERSAL_ID,
    Record,
    cell_text,
    is_blank,
    parse_number,
)

UPC_BASE_LENGTH = 11
ASCII_DIGITS = "0123456789"


def calculate_check_digit(base: str) -> int:
    """UPC-A check digit. Even positions weigh 3, odd weigh 1, non-digits count as 0."""
    base = base.rjust(UPC_BASE_LENGTH, "0")
    total = 0
    for idx, char in enumerate(base[:UPC_BASE_LENGTH]):
        digit = int(char) if char in ASCII_DIGITS else 0
        total += digit * (3 if idx % 2 == 0 else 1)
    return (10 - (total % 10)) % 10


def format_upc(value: object) -> str:
    if is_blank(value):
        return ""
    base = cell_text(value).strip()[-UPC_BASE_LENGTH:].rjust(UPC_BASE_LENGTH, "0")
    return f"{base}{calculate_check_digit(base)}"


def apply_derived_fields(record: Record) -> Record:
    """Fill extended price, ext liquidation price and actual UPC in place.

    Each field is computed only when all of its input keys exist on the record.
    """
    if QUANTITY in record and LAST_KNOWN_PRICE in record:
        record[EXTENDED_PRICE] = parse_number(record[QUANTITY]) * parse_number(record[LAST_KNOWN_PRICE])
    if EXTENDED_PRICE in record and LIQUIDATION_PCT in record:
        record[EXT_LIQUIDATION_PRC] = parse_number(record[EXTENDED_PRICE]) * parse_number(record[LIQUIDATION_PCT]) * 0.01
    if UNIVERSAL_ID in record:
        record[ACTUAL_UPC] = format_upc(record[UNIVERSAL_ID])
    return record
