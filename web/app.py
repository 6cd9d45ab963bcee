#!/usr/bin/env python3
from __future__ import annotations

import io
import logging
import sys
import zipfile
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sheet_merger.loader import ALL_FORMATS, load_master_grid  # noqa: E402
from sheet_merger.pipeline import combine_run, run_merge  # noqa: E402
from sheet_merger.writer import XLSX_MIME, encode_workbook, unique_csv_filenames  # noqa: E402

logger = logging.getLogger(__name__)

MASTER_FILENAME = "merged_master.xlsx"
ZIP_FILENAME = "merged_files.zip"


def ensure_state() -> None:
    st.session_state.setdefault("processing", False)
    st.session_state.setdefault("action", None)
    st.session_state.setdefault("results", None)
    st.session_state.setdefault("status", None)


def set_status(message: str, kind: str = "info") -> None:
    st.session_state["status"] = (kind, message)


def build_zip(named_csv: list[tuple[str, str]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, csv_text in named_csv:
            archive.writestr(name, csv_text)
    return buffer.getvalue()


def merge_downloads(uploads: list[Any]) -> Optional[dict]:
    run = run_merge(uploads)
    if not run.outputs:
        return None
    names = unique_csv_filenames([output.order_id for output in run.outputs])
    named_csv = [(name, output.csv_text) for name, output in zip(names, run.outputs)]
    return {
        "kind": "merge",
        "files": [
            {"name": name, "data": csv_text.encode("utf-8"), "rows": len(output.records), "preview": output.rows}
            for (name, csv_text), output in zip(named_csv, run.outputs)
        ],
        "zip": build_zip(named_csv),
        "warnings": run.warnings,
    }


def master_download(uploads: list[Any], master_upload: Any = None) -> Optional[dict]:
    run = run_merge(uploads)
    master = load_master_grid(master_upload) if master_upload is not None else None
    grid = combine_run(run, master)
    if grid is None:
        return None
    return {
        "kind": "master",
        "name": MASTER_FILENAME,
        "data": encode_workbook(grid),
        "rows": len(grid) - 1,
        "preview": grid,
        "warnings": run.warnings,
    }


def preview_frame(grid: list[list[Any]], limit: int = 20) -> pd.DataFrame:
    header = [str(value) for value in grid[0]]
    rows = [[("" if value is None else str(value)) for value in row] for row in grid[1 : limit + 1]]
    width = len(header)
    return pd.DataFrame([row[:width] + [""] * (width - len(row)) for row in rows], columns=header)


def process_action(action: str, uploads: list[Any], master_upload: Any) -> None:
    try:
        if action == "merge":
            result = merge_downloads(uploads)
            if result is None:
                set_status("No data could be merged from the uploaded files", "error")
                return
            st.session_state["results"] = result
            set_status(f"Merged {len(result['files'])} file(s). Download them below.", "success")
        else:
            result = master_download(uploads, master_upload)
            if result is None:
                set_status("No data in combined file", "error")
                return
            st.session_state["results"] = result
            set_status("Master Excel file is ready to download.", "success")
    except Exception as exc:
        logger.exception("Failed to process files: %s", exc)
        set_status("Failed to process files", "error")


def render_status() -> None:
    status = st.session_state.get("status")
    if not status:
        return
    kind, message = status
    if kind == "error":
        st.error(message)
    elif kind == "success":
        st.success(message)
    else:
        st.info(message)


def render_results() -> None:
    results = st.session_state.get("results")
    if not results:
        return

    st.subheader("Results")
    if results["warnings"]:
        with st.expander("Notes", expanded=False):
            for warning in results["warnings"]:
                st.warning(warning)

    if results["kind"] == "master":
        st.metric("Combined rows", results["rows"])
        st.dataframe(preview_frame(results["preview"]), width="stretch", hide_index=True)
        st.download_button(
            "Download master workbook",
            data=results["data"],
            file_name=results["name"],
            mime=XLSX_MIME,
            width="stretch",
            key="download_master",
        )
        return

    metrics = st.columns(2)
    metrics[0].metric("Merged files", len(results["files"]))
    metrics[1].metric("Merged rows", sum(item["rows"] for item in results["files"]))
    st.download_button(
        "Download all as zip",
        data=results["zip"],
        file_name=ZIP_FILENAME,
        mime="application/zip",
        width="stretch",
        key="download_zip",
    )
    for item in results["files"]:
        with st.expander(f"{item['name']}  •  {item['rows']} row(s)", expanded=False):
            st.dataframe(preview_frame(item["preview"]), width="stretch", hide_index=True)
            st.download_button(
                "Download CSV",
                data=item["data"],
                file_name=item["name"],
                mime="text/csv",
                width="stretch",
                key=f"download_{item['name']}",
            )


def main() -> None:
    st.set_page_config(page_title="sheet-merger", page_icon="🧾", layout="wide", initial_sidebar_state="collapsed")
    ensure_state()

    st.title("sheet-merger")
    st.caption("Upload item exports and alt-id exports. Rows are joined by order id and item, one CSV per order.")

    processing = st.session_state["processing"]
    file_types = [ext.lstrip(".") for ext in sorted(ALL_FORMATS)]
    uploads = st.file_uploader(
        "Export files",
        type=file_types,
        accept_multiple_files=True,
        key="uploads_input",
        disabled=processing,
    ) or []
    master_upload = st.file_uploader(
        "Master file (optional)",
        type=file_types,
        key="master_input",
        disabled=processing,
    )
    if uploads:
        st.caption("Selected: " + ", ".join(upload.name for upload in uploads))

    columns = st.columns(2)
    merge_clicked = columns[0].button(
        "Merge files", type="primary", width="stretch", disabled=processing or not uploads
    )
    master_clicked = columns[1].button(
        "Build master workbook", width="stretch", disabled=processing or not uploads
    )

    if (merge_clicked or master_clicked) and uploads:
        st.session_state["action"] = "merge" if merge_clicked else "master"
        st.session_state["results"] = None
        st.session_state["processing"] = True
        st.rerun()

    if st.session_state["processing"]:
        with st.spinner("Processing files..."):
            process_action(st.session_state["action"], uploads, master_upload)
        st.session_state["processing"] = False
        st.session_state["action"] = None
        st.rerun()

    render_status()
    if not st.session_state.get("results") and not st.session_state.get("status"):
        st.info("Supported here: " + " ".join(sorted(ALL_FORMATS)))
        return

    render_results()


if __name__ == "__main__":
    main()
