import importlib.util
import io
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook

from sheet_merger.loader import DecodeError, decode, load_grid, load_master_grid, read_source, sniff_suffix

_XLRD_AVAILABLE = importlib.util.find_spec("xlrd") is not None


def workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class NamedUpload(io.BytesIO):
    """Stands in for a browser upload: bytes plus a file name."""

    def __init__(self, data: bytes, name: str) -> None:
        super().__init__(data)
        self.name = name


class ReadSourceTests(unittest.TestCase):
    def test_path_bytes_and_uploads(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "items.csv"
            path.write_bytes(b"Item\nX1\n")
            self.assertEqual(read_source(path), ("items.csv", b"Item\nX1\n"))
            self.assertEqual(read_source(str(path)), ("items.csv", b"Item\nX1\n"))

        self.assertEqual(read_source(b"abc"), ("", b"abc"))
        self.assertEqual(read_source(NamedUpload(b"abc", "/tmp/x/alt.xlsx")), ("alt.xlsx", b"abc"))

    def test_missing_path_raises(self):
        with self.assertRaises(FileNotFoundError):
            read_source("does/not/exist.xlsx")

    def test_unsupported_source_type(self):
        with self.assertRaises(TypeError):
            read_source(42)


class SniffTests(unittest.TestCase):
    def test_magic_bytes(self):
        self.assertEqual(sniff_suffix(workbook_bytes([["a"]])), ".xlsx")
        self.assertEqual(sniff_suffix(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1rest"), ".xls")
        self.assertEqual(sniff_suffix(b"Item,Quantity\n"), ".csv")


class DecodeWorkbookTests(unittest.TestCase):
    def test_xlsx_cells_come_back_as_plain_python_values(self):
        data = workbook_bytes(
            [
                ["Inmar Return Center"],
                [],
                ["Item", "Quantity", "Last Known Price", "Received"],
                ["X1", 2, 10.5, datetime(2024, 3, 1)],
                ["Y7", 3.0, None, None],
            ]
        )
        grid = decode(data, ".xlsx")

        self.assertEqual(grid[0], ["Inmar Return Center"])
        self.assertEqual(grid[1], ["Item", "Quantity", "Last Known Price", "Received"])
        self.assertEqual(grid[2], ["X1", 2, 10.5, datetime(2024, 3, 1)])
        self.assertEqual(grid[3], ["Y7", 3])
        self.assertIsInstance(grid[2][1], int)

    def test_suffix_is_sniffed_when_missing(self):
        grid = decode(workbook_bytes([["Item"], ["X1"]]))
        self.assertEqual(grid, [["Item"], ["X1"]])

    def test_corrupt_workbook_raises_decode_error(self):
        with self.assertRaises(DecodeError) as ctx:
            decode(b"PK\x03\x04 definitely not a workbook", ".xlsx")
        self.assertIn("Could not read workbook", str(ctx.exception))

    @unittest.skipIf(_XLRD_AVAILABLE, "xlrd installed")
    def test_xls_without_xlrd_names_the_missing_package(self):
        with self.assertRaises(ImportError) as ctx:
            decode(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", ".xls")
        self.assertIn("xlrd", str(ctx.exception))

    def test_unsupported_suffix(self):
        with self.assertRaises(ValueError):
            decode(b"{}", ".json")


class DecodeTextTests(unittest.TestCase):
    def test_csv_blank_cells_become_none_and_blank_rows_drop(self):
        grid = decode(b"Order ID:,,555\n,,\nAlt Universal Id,Universal Id\nX1,123\n", ".csv")
        self.assertEqual(
            grid,
            [["Order ID:", None, "555"], ["Alt Universal Id", "Universal Id"], ["X1", "123"]],
        )

    def test_semicolon_delimiter_is_detected(self):
        grid = decode(b"Item;Quantity\nX1;2\nY7;3\n", ".csv")
        self.assertEqual(grid, [["Item", "Quantity"], ["X1", "2"], ["Y7", "3"]])

    def test_tsv_uses_tab(self):
        self.assertEqual(decode(b"Item\tQuantity\nX1\t2\n", ".tsv"), [["Item", "Quantity"], ["X1", "2"]])

    def test_utf8_bom_is_stripped(self):
        grid = decode("\ufeffItem,Vendor Name\nX1,Café Co\n".encode("utf-8"), ".csv")
        self.assertEqual(grid, [["Item", "Vendor Name"], ["X1", "Café Co"]])

    def test_null_bytes_are_removed(self):
        grid = decode(b"Item,Quantity\nX1\x00,2\n", ".csv")
        self.assertEqual(grid[1], ["X1", "2"])


class LoadGridTests(unittest.TestCase):
    def test_suffix_comes_from_file_name(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "alt_ids.xlsx"
            path.write_bytes(workbook_bytes([["Alt Universal Id"], ["X1"]]))
            self.assertEqual(load_grid(path), ("alt_ids.xlsx", [["Alt Universal Id"], ["X1"]]))

    def test_upload_without_extension_is_sniffed(self):
        name, grid = load_grid(NamedUpload(workbook_bytes([["Item"]]), "export"))
        self.assertEqual(name, "export")
        self.assertEqual(grid, [["Item"]])


class LoadMasterGridTests(unittest.TestCase):
    def test_csv_master_keeps_blank_rows_and_trailing_cells(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "master.csv"
            path.write_text("Item,Quantity,,\nM1,9,,\n,,,\nM2,1,,\n", encoding="utf-8")

            self.assertEqual(
                load_master_grid(path),
                [
                    ["Item", "Quantity", None, None],
                    ["M1", "9", None, None],
                    [None, None, None, None],
                    ["M2", "1", None, None],
                ],
            )
            self.assertEqual(load_grid(path)[1], [["Item", "Quantity"], ["M1", "9"], ["M2", "1"]])

    def test_xlsx_master_header_keeps_full_width(self):
        upload = NamedUpload(workbook_bytes([["Item", "Quantity"], ["M1", 9, "note"]]), "master.xlsx")
        grid = load_master_grid(upload)
        self.assertEqual(grid[0], ["Item", "Quantity", None])
        self.assertEqual(grid[1], ["M1", 9, "note"])

    def test_master_without_values_is_empty(self):
        self.assertEqual(load_master_grid(NamedUpload(b",,\n,,\n", "master.csv")), [])
        self.assertEqual(decode(b"", ".csv", keep_blank_rows=True), [])


if __name__ == "__main__":
    unittest.main()
