from __future__ import annotations

import math
import re
from typing import Any

Grid = list[list[Any]]

EXPECTED_HEADER = (
    "Location",
    "Receipt #",
    "Inmar Order #",
    "Item",
    "UPC",
    "Department",
    "Department Name",
    "Item description",
    "Quantity",
    "Last Known Price",
    "Extended Price",
    "Liquidation %",
    "Ext Liquidation Prc",
    "Category Code",
    "Category Code Description",
    "Vendor Name",
    "Container ID",
    "Container",
    "Parent Container",
    "Universal Id",
    "Description",
    "Retail Cost",
    "Store Cost",
    "Invoice Cost",
    "Actual UPC",
)
N_COLS = len(EXPECTED_HEADER)

ITEM_MARKER = "Item"
ALTID_MARKER = "Alt Universal Id"
ORDER_ID_LABEL = "Order ID:"
ORDER_ID_OFFSET = 2
HEADER_SCAN_MAX_ROWS = 20

# Normalized field names the pipeline reads.
ITEM = "item"
ALT_UNIVERSAL_ID = "alt universal id"
INMAR_ORDER = "inmar order #"
QUANTITY = "quantity"
LAST_KNOWN_PRICE = "last known price"
LIQUIDATION_PCT = "liquidation %"
UNIVERSAL_ID = "universal id"

# Normalized field names the pipeline may write. Nothing else is ever added to a record.
EXTENDED_PRICE = "extended price"
EXT_LIQUIDATION_PRC = "ext liquidation prc"
ACTUAL_UPC = "actual upc"
DERIVED_FIELDS = (QUANTITY, EXTENDED_PRICE, EXT_LIQUIDATION_PRC, ACTUAL_UPC, ALT_UNIVERSAL_ID)

UNNAMED_PREFIX = "Unnamed"
NUMBER_PREFIX_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def cell_text(value: object) -> str:
    """Stringify a cell the way a spreadsheet shows it: blanks are "", 12.0 is "12"."""
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_name(value: object) -> str:
    return cell_text(value).lower().strip()


def key_token(value: object) -> str:
    return cell_text(value).strip()


def loose_equals(left: object, right: object) -> bool:
    """Compare join/group keys: stringify both sides, trim, compare.

    Numbers and numeric strings unify ("555" == 555, "12" == 12.0).
    """
    return key_token(left) == key_token(right)


def parse_number(value: object) -> float:
    """Total numeric parse. Reads the leading number of a string and returns 0.0 otherwise."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    match = NUMBER_PREFIX_RE.match(str(value))
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


class Record(dict):
    """One data row keyed by normalized column name.

    ``original_header`` keeps the cleaned, non-normalized header of the sheet the
    row came from so output can be relabeled later.
    """

    def __init__(self, *args: Any, original_header: tuple[str, ...] | list[str] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.original_header = tuple(original_header)

    def copy(self) -> "Record":
        return Record(self, original_header=self.original_header)

    def find_key(self, name: str) -> str | None:
        wanted = normalize_name(name)
        for key in self:
            if normalize_name(key) == wanted:
                return key
        return None

    def lookup(self, name: str, default: Any = None) -> Any:
        """Case- and whitespace-insensitive field access; first matching key wins."""
        key = self.find_key(name)
        if key is None:
            return default
        return self[key]
