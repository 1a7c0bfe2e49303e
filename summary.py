"""Summary reports and export file naming for the dashboard downloads."""

import re
from datetime import date
from typing import Dict, Optional

import numpy as np

from data_processing import MeteringDataset
from parameters import describe_parameter


APP_SLUG = "circuitview"

_STAT_LINE_RE = re.compile(r"^(Minimum|Maximum|Average):\s*([-+]?\d+(?:\.\d+)?)")
_PRIMARY_RE = re.compile(r"^Summary Report for:\s*(.+)$")
_SECONDARY_RE = re.compile(r"^Secondary Parameter:\s*(.+)$")
_COUNT_RE = re.compile(r"^Data Points:\s*(\d+)$")


def summarize_parameter(dataset: MeteringDataset, name: str) -> Dict[str, Optional[float]]:
    """Return count/min/max/avg of the finite values recorded for ``name``."""

    values = np.asarray(dataset.values_for(name), dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return {"count": 0, "min": None, "max": None, "avg": None}
    return {
        "count": int(values.size),
        "min": float(values.min()),
        "max": float(values.max()),
        "avg": float(values.mean()),
    }


def _format_stat(value: Optional[float], unit: str) -> str:
    if value is None:
        return "n/a"
    return f"{value:.2f} {unit}".rstrip()


def _stat_lines(stats: Dict[str, Optional[float]], unit: str):
    return [
        f"Minimum: {_format_stat(stats['min'], unit)}",
        f"Maximum: {_format_stat(stats['max'], unit)}",
        f"Average: {_format_stat(stats['avg'], unit)}",
    ]


def format_summary_report(
    dataset: MeteringDataset, primary: str, secondary: Optional[str] = None
) -> str:
    if dataset.empty:
        raise ValueError("No data to summarize")

    primary_unit = describe_parameter(primary).unit
    lines = [
        f"Summary Report for: {primary}",
        f"Data Points: {len(dataset)}",
        "---",
    ]
    lines.extend(_stat_lines(summarize_parameter(dataset, primary), primary_unit))

    if secondary and secondary != "None":
        secondary_unit = describe_parameter(secondary).unit
        lines.extend(["", f"Secondary Parameter: {secondary}", "---"])
        lines.extend(
            _stat_lines(summarize_parameter(dataset, secondary), secondary_unit)
        )

    return "\n".join(lines)


def parse_summary_report(text: str) -> Dict[str, Dict[str, Optional[float]]]:
    """Read parameter statistics back out of a report made by ``format_summary_report``."""

    parsed: Dict[str, Dict[str, Optional[float]]] = {}
    current: Optional[str] = None
    count: Optional[int] = None
    keys = {"Minimum": "min", "Maximum": "max", "Average": "avg"}

    for line in text.splitlines():
        line = line.strip()
        header = _PRIMARY_RE.match(line) or _SECONDARY_RE.match(line)
        if header:
            current = header.group(1).strip()
            parsed[current] = {"count": count, "min": None, "max": None, "avg": None}
            continue
        count_match = _COUNT_RE.match(line)
        if count_match:
            count = int(count_match.group(1))
            if current:
                parsed[current]["count"] = count
            continue
        stat = _STAT_LINE_RE.match(line)
        if stat and current:
            parsed[current][keys[stat.group(1)]] = float(stat.group(2))

    return parsed


def export_file_name(kind: str, parameter: str, day: Optional[date] = None, ext: str = "txt") -> str:
    """Return ``circuitview_<kind>_<Parameter_Name>_<YYYY-MM-DD>.<ext>``."""

    day = day or date.today()
    slug = str(parameter).replace(" ", "_")
    return f"{APP_SLUG}_{kind}_{slug}_{day.isoformat()}.{ext}"
