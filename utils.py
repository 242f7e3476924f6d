import csv
import io
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

QUOTING_MODES = ("none", "minimal")


def to_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def flatten(record: Dict[str, Any], parent: str = "", out: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Inline nested objects into ``out`` under dotted keys.

    Lists and scalars are leaves and are stored as-is.
    """
    if out is None:
        out = {}
    for key, value in record.items():
        path = f"{parent}.{key}" if parent else key
        if isinstance(value, dict):
            flatten(value, path, out)
        else:
            out[path] = value
    return out


def collect_headers(records: Iterable[Dict[str, Any]]) -> List[str]:
    header: List[str] = []
    seen: set[str] = set()
    for rec in records:
        for k in rec.keys():
            if k not in seen:
                seen.add(k)
                header.append(k)
    return header


def project_row(record: Dict[str, Any], header: Sequence[str]) -> List[str]:
    return [to_cell(record.get(k)) for k in header]


def csv_line(values: Sequence[str], quoting: str = "none") -> str:
    if quoting == "none":
        # No escaping: a cell holding a comma or newline shifts the columns.
        return ",".join(values) + "\n"
    if quoting != "minimal":
        raise ValueError(f"Unknown quoting mode {quoting!r}, expected one of {QUOTING_MODES}")
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(values)
    return buffer.getvalue()
