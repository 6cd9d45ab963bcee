import csv
import io
import unittest

from sheet_merger.config import MergeConfig
from sheet_merger.correlate import SheetTables, correlate, discover_tables, join_seed, join_tables
from sheet_merger.shared import EXPECTED_HEADER, Record


def item_grid(order_id="555", rows=None):
    rows = rows if rows is not None else [("X1", 2, 10), ("X1", 3, 10)]
    return [
        ["Liquidation listing"],
        ["Inmar Order #", "Item", "Quantity", "Last Known Price"],
        *[[order_id, item, quantity, price] for item, quantity, price in rows],
    ]


def altid_grid(order_id="555", rows=None):
    rows = rows if rows is not None else [("X1", "123")]
    return [
        ["Universal Id Report"],
        ["Order ID:", None, order_id],
        ["Alt Universal Id", "Universal Id"],
        *[[alt, universal] for alt, universal in rows],
    ]


def read_csv(text):
    return list(csv.reader(io.StringIO(text)))


class DiscoverTablesTests(unittest.TestCase):
    def test_item_sheet(self):
        tables = discover_tables(item_grid(), index=0, name="items.xlsx")
        self.assertEqual(tables.item_header_row, 1)
        self.assertIsNone(tables.altid_header_row)
        self.assertIsNone(tables.altid_records)
        self.assertEqual(len(tables.item_records), 2)
        self.assertEqual(tables.label, "items.xlsx")

    def test_altid_sheet_reads_order_id(self):
        tables = discover_tables(altid_grid(order_id=555), index=1)
        self.assertEqual(tables.altid_header_row, 2)
        self.assertEqual(tables.order_id, 555)
        self.assertEqual(tables.altid_records, [{"alt universal id": "X1", "universal id": "123"}])
        self.assertEqual(tables.label, "file 2")

    def test_sheet_with_neither_table(self):
        tables = discover_tables([["nothing", "here"]])
        self.assertIsNone(tables.item_records)
        self.assertIsNone(tables.altid_records)

    def test_custom_markers(self):
        config = MergeConfig(item_marker="SKU")
        tables = discover_tables([["SKU", "Quantity"], ["X1", 1]], config=config)
        self.assertEqual(tables.item_header_row, 0)


class JoinSeedTests(unittest.TestCase):
    def test_reads_first_record_only(self):
        records = [Record({"inmar order #": "555"}), Record({"inmar order #": "777"})]
        self.assertEqual(join_seed(records), "555")

    def test_missing_or_blank_seed_is_none(self):
        self.assertIsNone(join_seed([]))
        self.assertIsNone(join_seed([Record({"item": "X1"})]))
        self.assertIsNone(join_seed([Record({"inmar order #": "  "})]))


class JoinTablesTests(unittest.TestCase):
    def test_first_alt_row_wins_and_unmatched_items_drop(self):
        items = [
            Record({"item": "X1", "quantity": 2, "last known price": 10}),
            Record({"item": "Z9", "quantity": 1, "last known price": 4}),
            Record({"item": "X1", "quantity": 3, "last known price": 10}),
        ]
        alts = [
            Record({"alt universal id": "X1", "universal id": "123"}),
            Record({"alt universal id": "X1", "universal id": "999"}),
        ]
        joined = join_tables(items, alts)

        self.assertEqual(len(joined), 1)
        row = joined[0]
        self.assertEqual(row["quantity"], 5)
        self.assertEqual(row["universal id"], "123")
        self.assertEqual(row["extended price"], 50)
        self.assertEqual(row["actual upc"], "000000001236")

    def test_alt_values_win_and_alt_key_takes_item_value(self):
        items = [Record({"item": 1234, "vendor name": "from items"})]
        alts = [Record({"alt universal id": "1234", "vendor name": "from alt ids"})]
        row = join_tables(items, alts)[0]
        self.assertEqual(row["vendor name"], "from alt ids")
        self.assertEqual(row["alt universal id"], 1234)

    def test_inputs_are_not_mutated(self):
        items = [Record({"item": "X1", "quantity": 2}), Record({"item": "X1", "quantity": 3})]
        alts = [Record({"alt universal id": "X1"})]
        join_tables(items, alts)
        self.assertEqual(items[0], {"item": "X1", "quantity": 2})
        self.assertEqual(alts[0], {"alt universal id": "X1"})

    def test_no_alt_rows_gives_nothing(self):
        self.assertEqual(join_tables([Record({"item": "X1"})], []), [])


class CorrelateTests(unittest.TestCase):
    def sheets(self, *grids):
        return [discover_tables(grid, index=idx, name=f"f{idx}.xlsx") for idx, grid in enumerate(grids)]

    def test_matching_pair_produces_csv_with_order_id(self):
        outputs = correlate(self.sheets(item_grid(), altid_grid()))

        self.assertEqual(len(outputs), 1)
        csv_text, order_id = outputs[0].as_pair()
        self.assertEqual(order_id, "555")
        self.assertEqual((outputs[0].item_index, outputs[0].altid_index), (0, 1))

        rows = read_csv(csv_text)
        self.assertEqual(rows[0], list(EXPECTED_HEADER))
        self.assertEqual(len(rows), 2)
        by_name = dict(zip(rows[0], rows[1]))
        self.assertEqual(by_name["Item"], "X1")
        self.assertEqual(by_name["Quantity"], "5")
        self.assertEqual(by_name["Extended Price"], "50")
        self.assertEqual(by_name["Universal Id"], "123")
        self.assertEqual(by_name["Actual UPC"], "000000001236")
        self.assertEqual(by_name["Location"], "")

    def test_two_sheet_example(self):
        outputs = correlate(self.sheets(item_grid(rows=[("X1", 2, 10)]), altid_grid()))

        self.assertEqual([out.order_id for out in outputs], ["555"])
        row = outputs[0].records[0]
        self.assertEqual(row["extended price"], 20)
        self.assertEqual(row["actual upc"], "000000001236")

    def test_order_ids_match_loosely(self):
        outputs = correlate(self.sheets(item_grid(order_id=555), altid_grid(order_id=" 555 ")))
        self.assertEqual(len(outputs), 1)
        self.assertEqual(outputs[0].order_id, 555)

    def test_different_order_ids_produce_nothing(self):
        self.assertEqual(correlate(self.sheets(item_grid(order_id="555"), altid_grid(order_id="777"))), [])

    def test_alt_sheet_without_order_id_never_matches(self):
        grid = altid_grid()
        grid[1] = ["Order ID:"]
        self.assertEqual(correlate(self.sheets(item_grid(), grid)), [])

    def test_single_sheet_produces_nothing(self):
        combined = item_grid()[:1] + [["Order ID:", None, "555"]] + altid_grid()[2:]
        self.assertEqual(correlate(self.sheets(combined)), [])

    def test_one_output_per_matching_alt_sheet_in_input_order(self):
        outputs = correlate(
            self.sheets(
                altid_grid(rows=[("X1", "111")]),
                item_grid(),
                altid_grid(rows=[("X1", "222")]),
            )
        )
        self.assertEqual([(out.item_index, out.altid_index) for out in outputs], [(1, 0), (1, 2)])
        self.assertEqual([out.records[0]["universal id"] for out in outputs], ["111", "222"])

    def test_item_sheets_are_visited_in_input_order(self):
        outputs = correlate(
            self.sheets(
                item_grid(order_id="777"),
                altid_grid(order_id="555"),
                item_grid(order_id="555"),
                altid_grid(order_id="777"),
            )
        )
        self.assertEqual([out.order_id for out in outputs], ["777", "555"])

    def test_matched_order_without_joined_rows_is_skipped(self):
        outputs = correlate(self.sheets(item_grid(), altid_grid(rows=[("Q0", "123")])))
        self.assertEqual(outputs, [])

    def test_item_sheet_without_seed_is_skipped(self):
        grid = item_grid(order_id=None)
        self.assertEqual(correlate(self.sheets(grid, altid_grid())), [])

    def test_sheet_tables_built_by_hand(self):
        items = SheetTables(index=0, name="", item_records=[Record({"inmar order #": "1", "item": "A"})])
        alts = SheetTables(index=1, name="", order_id="1", altid_records=[Record({"alt universal id": "A"})])
        outputs = correlate([items, alts])
        self.assertEqual(len(outputs), 1)
        self.assertEqual(outputs[0].rows[1][EXPECTED_HEADER.index("Item")], "A")


if __name__ == "__main__":
    unittest.main()
