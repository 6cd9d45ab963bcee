from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sheet_merger import __version__ as TOOL_VERSION
from sheet_merger.config import OUTPUT_STAMP_ENV, ConfigError, MergeConfig, load_config, starter_config_text
from sheet_merger.loader import ALL_FORMATS, DecodeError, load_master_grid
from sheet_merger.pipeline import MergeRun, combine_run, run_merge
from sheet_merger.summary import build_combine_summary, build_inspect_report, build_merge_summary
from sheet_merger.writer import encode_delimited, unique_csv_filenames, write_workbook

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_NOTHING_MERGED = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SheetMergerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger = logging.getLogger("sheet_merger")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(logging.DEBUG)


def timestamp_token() -> str:
    override = os.environ.get(OUTPUT_STAMP_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def determine_output_dir(args: argparse.Namespace, command: str) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return Path.cwd() / "sheet-merger-output" / f"{command}-{timestamp_token()}"


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "generated_at":
                result[key] = "1970-01-01T00:00:00Z"
            else:
                result[key] = remove_generated_at(item)
        return result
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def normalize_report_for_cli(payload: Any) -> Any:
    if os.environ.get(OUTPUT_STAMP_ENV):
        return remove_generated_at(payload)
    return payload


def check_inputs(raw_paths: list[str]) -> list[Path]:
    paths = [Path(raw) for raw in raw_paths]
    for path in paths:
        if not path.exists():
            raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
        suffix = path.suffix.lower()
        if suffix not in ALL_FORMATS:
            raise CliError(
                f"Unsupported file type '{suffix or '[missing extension]'}'. "
                f"Supported: {', '.join(sorted(ALL_FORMATS))}",
                EXIT_COMMAND_ERROR,
            )
    return paths


def resolve_config(args: argparse.Namespace) -> MergeConfig:
    try:
        return load_config(getattr(args, "config", None))
    except ConfigError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def classify_backend_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (DecodeError, ImportError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, ValueError):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def render_run_text(title: str, run: MergeRun) -> list[str]:
    metrics = run.metrics()
    lines = [
        title,
        f"Files read: {metrics['files_read']}",
        f"Item tables: {metrics['item_tables']}",
        f"Alt-id tables: {metrics['altid_tables']}",
        f"Merged outputs: {metrics['outputs']}",
        f"Merged rows: {metrics['merged_rows']}",
    ]
    if run.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in run.warnings)
    return lines


def render_merge_text(run: MergeRun, written: list[Path]) -> str:
    lines = render_run_text("sheet-merger merge", run)
    for output, path in zip(run.outputs, written):
        lines.append(f"Order {output.order_id}: {len(output.records)} row(s) -> {path}")
    return "\n".join(lines) + "\n"


def render_inspect_text(report: dict[str, Any]) -> str:
    lines = ["sheet-merger inspect"]
    for item in report["files"]:
        lines.append(f"File: {item['file']}")
        lines.append(f"  Item header row: {item['item_header_row'] or '-'} ({item['item_rows'] or 0} rows)")
        lines.append(f"  Alt-id header row: {item['altid_header_row'] or '-'} ({item['altid_rows'] or 0} rows)")
        lines.append(f"  Order ID: {item['order_id'] or '-'}")
        lines.append(f"  Inmar Order #: {item['join_seed'] or '-'}")
    warnings = report["run_summary"]["warnings"]
    if warnings:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in warnings)
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = SheetMergerArgumentParser(
        prog="sheet-merger",
        description="Join item exports with alt-id exports by order id.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge = subparsers.add_parser("merge", help="Merge export files into one CSV per matched order.")
    merge.add_argument("inputs", nargs="+", help="Input file paths (item and alt-id exports)")
    merge.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    merge.add_argument("--config", help="JSON config overriding markers and join fields")
    merge.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    merge.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    merge.add_argument("-v", "--verbose", action="store_true", help="Debug logs on stderr")

    combine = subparsers.add_parser("combine", help="Merge export files and stack every result into one table.")
    combine.add_argument("inputs", nargs="+", help="Input file paths (item and alt-id exports)")
    combine.add_argument("--master", help="Existing master file whose rows go first")
    combine.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    combine.add_argument("--output", help="Explicit output path")
    combine.add_argument("--format", choices=["xlsx", "csv"], default="xlsx", help="Output format")
    combine.add_argument("--dedupe", action="store_true", help="Drop repeated data rows (first kept)")
    combine.add_argument("--config", help="JSON config overriding markers and join fields")
    combine.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    combine.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    combine.add_argument("-v", "--verbose", action="store_true", help="Debug logs on stderr")

    inspect = subparsers.add_parser("inspect", help="Show detected header rows and order ids per file.")
    inspect.add_argument("inputs", nargs="+", help="Input file paths")
    inspect.add_argument("--config", help="JSON config overriding markers and join fields")
    inspect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    inspect.add_argument("-v", "--verbose", action="store_true", help="Debug logs on stderr")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="sheet-merger.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_merge_command(args: argparse.Namespace) -> int:
    try:
        inputs = check_inputs(args.inputs)
        config = resolve_config(args)
        run = run_merge(inputs, config)
        out_dir = determine_output_dir(args, "merge")
        written: list[Path] = []
        for output, name in zip(run.outputs, unique_csv_filenames([item.order_id for item in run.outputs])):
            path = out_dir / name
            write_text(path, output.csv_text)
            written.append(path)
        summary = normalize_report_for_cli(build_merge_summary(run, inputs=inputs, output_paths=written))
        if run.outputs:
            write_json(out_dir / "merge-summary.json", summary)
        if args.json:
            maybe_emit_json_stdout(summary, True)
        else:
            emit_human(render_merge_text(run, written).rstrip(), quiet=args.quiet)
        if not run.outputs:
            emit_human("No data could be merged from the input files", quiet=args.quiet)
            return EXIT_NOTHING_MERGED
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_combine_command(args: argparse.Namespace) -> int:
    try:
        inputs = check_inputs(args.inputs)
        master_path = check_inputs([args.master])[0] if args.master else None
        config = resolve_config(args)
        out_dir = determine_output_dir(args, "combine")
        output_path = Path(args.output) if args.output else out_dir / f"merged_master.{args.format}"
        safe_output_path(output_path)

        run = run_merge(inputs, config)
        master = load_master_grid(master_path) if master_path else None
        grid = combine_run(run, master, dedupe=args.dedupe)
        if grid is not None:
            if args.format == "csv":
                write_text(output_path, encode_delimited(grid))
            else:
                write_workbook(grid, output_path, sheet_name=config.output_sheet_name)
        summary = normalize_report_for_cli(
            build_combine_summary(
                run,
                grid,
                inputs=inputs,
                master_path=master_path,
                output_path=output_path if grid is not None else None,
                dedupe=args.dedupe,
            )
        )
        if args.json:
            maybe_emit_json_stdout(summary, True)
        else:
            lines = render_run_text("sheet-merger combine", run)
            if grid is not None:
                lines.append(f"Combined rows: {len(grid) - 1}")
                lines.append(f"Master workbook: {output_path}")
            emit_human("\n".join(lines), quiet=args.quiet)
        if grid is None:
            emit_human("No data in combined file", quiet=args.quiet)
            return EXIT_NOTHING_MERGED
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_inspect_command(args: argparse.Namespace) -> int:
    try:
        inputs = check_inputs(args.inputs)
        config = resolve_config(args)
        run = run_merge(inputs, config)
        report = normalize_report_for_cli(build_inspect_report(run, config, inputs=inputs))
        if args.json:
            maybe_emit_json_stdout(report, True)
        else:
            emit_human(render_inspect_text(report).rstrip())
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, starter_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(getattr(args, "verbose", False))
        if args.command == "merge":
            return run_merge_command(args)
        if args.command == "combine":
            return run_combine_command(args)
        if args.command == "inspect":
            return run_inspect_command(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
