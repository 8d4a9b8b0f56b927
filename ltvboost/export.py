"""Export calculator results to CSV, JSON or plain text."""
import csv
import io
import json
import math
from enum import Enum
from typing import Optional


def _cell(value):
    """Flatten a value for CSV/TXT output."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float) and math.isnan(value):
        return "nan"
    if isinstance(value, float) and math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return value


def _json_safe(value):
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def to_json(data, pretty: bool = True) -> str:
    """Serialize to strict JSON; infinite and NaN values become null."""
    return json.dumps(_json_safe(data), ensure_ascii=False,
                      indent=2 if pretty else None, allow_nan=False)


def _columns(records: list[dict]) -> list[str]:
    columns: list[str] = []
    for r in records:
        for key in r:
            if key not in columns:
                columns.append(key)
    return columns


def export_csv(records: list[dict]) -> str:
    """Export result records to a CSV string, one column per field."""
    if not records:
        return ""
    columns = _columns(records)
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(columns)
    for r in records:
        writer.writerow([_cell(r.get(c, "")) for c in columns])
    return buf.getvalue()


def export_json(records: list[dict], pretty: bool = True) -> str:
    """Export result records to JSON; infinite ratios become null."""
    return to_json(records, pretty)


def export_txt(records: list[dict], title: str = "LTVBoost Export") -> str:
    """Export result records to plain text."""
    if not records:
        return "No records."
    lines = [title, "=" * 40, ""]
    for i, r in enumerate(records, 1):
        label = r.get("name") or r.get("title") or f"Record {i}"
        lines.append(f"#{i} {label}")
        for key, value in r.items():
            if key in ("name", "title"):
                continue
            lines.append(f"   {key}: {_cell(value)}")
        lines.append("")
    return "\n".join(lines)


EXPORTERS = {
    "csv": export_csv,
    "json": export_json,
    "txt": export_txt,
}


def export_records(records: list[dict], fmt: str = "csv") -> Optional[str]:
    """Export records in the given format. Returns None for unknown formats."""
    exporter = EXPORTERS.get(fmt.lower())
    if not exporter:
        return None
    return exporter(records)
