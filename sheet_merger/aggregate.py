from __future__ import annotations

from typing import Sequence

from sheet_merger.shared import QUANTITY, Record, key_token, normalize_name, parse_number


def group_by(records: Sequence[Record], key: str) -> list[Record]:
    """Collapse records that share a value at ``key``.

    Groups come out in order of first appearance. Each result is a copy of the
    group's first record; when it has a ``quantity`` field that field becomes
    the group total (unparsable quantities count as 0).
    """
    key = normalize_name(key)
    groups: dict[str, list[Record]] = {}
    for record in records:
        groups.setdefault(key_token(record.get(key)), []).append(record)

    result = []
    for rows in groups.values():
        base = rows[0].copy()
        if QUANTITY in base:
            base[QUANTITY] = sum(parse_number(row.get(QUANTITY)) for row in rows)
        result.append(base)
    return result
