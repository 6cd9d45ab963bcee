"""Merge settings: marker labels, scan limits and join fields.

Defaults match the Inmar order exports the tool was built for. A JSON file can
override any of them (``sheet-merger merge --config merge.json``).
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from sheet_merger.shared import (
    ALT_UNIVERSAL_ID,
    ALTID_MARKER,
    HEADER_SCAN_MAX_ROWS,
    INMAR_ORDER,
    ITEM,
    ITEM_MARKER,
    ORDER_ID_LABEL,
    ORDER_ID_OFFSET,
)

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}
OUTPUT_STAMP_ENV = "SHEET_MERGER_OUTPUT_STAMP"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class MergeConfig:
    item_marker: str = ITEM_MARKER
    altid_marker: str = ALTID_MARKER
    order_id_label: str = ORDER_ID_LABEL
    order_id_offset: int = ORDER_ID_OFFSET
    max_header_rows: int = HEADER_SCAN_MAX_ROWS
    order_seed_field: str = INMAR_ORDER
    item_key: str = ITEM
    altid_key: str = ALT_UNIVERSAL_ID
    output_sheet_name: str = "MergedData"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = MergeConfig()


def config_from_mapping(payload: dict[str, Any]) -> MergeConfig:
    known = {item.name for item in fields(MergeConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    for key in ("order_id_offset", "max_header_rows"):
        if key in payload and (not isinstance(payload[key], int) or isinstance(payload[key], bool) or payload[key] < 0):
            raise ConfigError(f"'{key}' must be a non-negative integer")
    for key, value in payload.items():
        if key not in ("order_id_offset", "max_header_rows") and not isinstance(value, str):
            raise ConfigError(f"'{key}' must be a string")
    return replace(DEFAULT_CONFIG, **payload)


def load_config(path: Path | str | None) -> MergeConfig:
    if path is None:
        return DEFAULT_CONFIG
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ConfigError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ConfigError(f"Could not read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a JSON object.")
    return config_from_mapping(payload)


def starter_config_text() -> str:
    return json.dumps(DEFAULT_CONFIG.to_dict(), indent=2) + "\n"
