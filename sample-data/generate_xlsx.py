#!/usr/bin/env python3
"""
Generates a matching pair of order exports for trying out sheet-merger.

Run from the repo root:
    python sample-data/generate_xlsx.py
    sheet-merger merge sample-data/order_555_items.xlsx sample-data/order_555_alt_ids.xlsx

Quirks baked in:
  order_555_items.xlsx
    - Three report-title rows above the "Item" header
    - A blank-headed column and an "Unnamed: 9" column
    - A named column with no values ("Container ID")
    - Item X1 listed twice (quantities 2 and 3 are summed on merge)
    - Item Z9 has no alt-id row (dropped on merge)
  order_555_alt_ids.xlsx
    - "Order ID:" preamble row with the order number two cells to the right
    - X1 listed twice (first row wins)
"""

from pathlib import Path
import openpyxl

OUTPUT_DIR = Path(__file__).parent
ORDER_ID = "555"

# ── Item export ──────────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Items"
ws.append(["Inmar Return Center"])
ws.append(["Liquidation listing", None, "Printed 2024-03-01"])
ws.append([])
ws.append([
    "Location", "Receipt #", "Inmar Order #", "Item", None, "Item description",
    "Quantity", "Last Known Price", "Liquidation %", "Unnamed: 9", "Container ID",
])
data = [
    ["DC-04", "R-1001", ORDER_ID, "X1", None, "Paper towels 6pk",   2, 10.00, 15, "x", None],
    ["DC-04", "R-1001", ORDER_ID, "Y7", None, "Dish soap 24oz",     1,  3.49, 15, "x", None],
    ["DC-04", "R-1002", ORDER_ID, "X1", None, "Paper towels 6pk",   3, 10.00, 15, "x", None],
    ["DC-04", "R-1002", ORDER_ID, "Z9", None, "Discontinued item",  4,  1.25, 15, "x", None],
]
for row in data:
    ws.append(row)
items_path = OUTPUT_DIR / f"order_{ORDER_ID}_items.xlsx"
wb.save(items_path)

# ── Alt-id export ────────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Universal Ids"
ws.append(["Universal Id Report"])
ws.append(["Order ID:", None, ORDER_ID])
ws.append([])
ws.append(["Alt Universal Id", "Universal Id", "Vendor Name", "Retail Cost"])
ws.append(["X1", "3600029145", "Acme Paper", 12.99])
ws.append(["Y7", "7940000123", "Suds Co", 4.29])
ws.append(["X1", "9999999999", "Duplicate row", 0])
altids_path = OUTPUT_DIR / f"order_{ORDER_ID}_alt_ids.xlsx"
wb.save(altids_path)

print(f"Created: {items_path}")
print(f"Created: {altids_path}")
