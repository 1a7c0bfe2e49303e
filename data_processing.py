import io
import math
import os
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

# Debug toggler: set CV_DEBUG=1 to enable verbose parse logs
DEBUG = os.getenv("CV_DEBUG", "0") == "1"


def dprint(*args, **kwargs):
    if DEBUG:
        print(*args, **kwargs)


CSV_DELIMITER = ";"

MS_PER_DAY = 24 * 3600 * 1000

# Reference day used to place time-of-day offsets on a temporal chart axis.
CLOCK_ORIGIN = datetime(2000, 1, 1)

VENDOR_PREFIXES: Tuple[str, ...] = ("ioitsecure447>",)

TIME_HEADER_CANDIDATES: Tuple[str, ...] = ("time", "timestamp", "date")

# Record fields set by the pipeline itself, compared lowercased.
RESERVED_FIELD_NAMES = frozenset({"index", "time", "originaltime", "clock"})

# Evaluated in order, first match wins. Keep aliases distinct enough that a
# header cannot plausibly hit two entries.
HEADER_ALIASES: List[Tuple[str, Tuple[str, ...]]] = [
    ("R phase voltage", ("r phase voltage", "voltage r", "voltage rn")),
    ("Y phase voltage", ("y phase voltage", "voltage y", "voltage yn")),
    ("B phase voltage", ("b phase voltage", "voltage b", "voltage bn")),
    ("Average phase voltage", ("average phase voltage", "avg voltage")),
    ("Power factor", ("power factor", "pf")),
    ("R phase line current", ("r phase line current", "current r", "current rn")),
    ("Y phase line current", ("y phase line current", "current y", "current yn")),
    ("B phase line current", ("b phase line current", "current b", "current bn")),
    ("Neutral current", ("neutral current", "n current")),
    ("Active power", ("active power", "kw")),
    ("Reactive power", ("reactive power", "kvar")),
    ("Apparent power", ("apparent power", "kva")),
]

CANONICAL_PARAMETERS: List[str] = [name for name, _ in HEADER_ALIASES]

_ZERO_WIDTH_CHARS = ("\ufeff", "\u200b", "\u200c", "\u200d")

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)


class MeteringIngestError(ValueError):
    """Base class for fatal ingestion failures shown verbatim to the user."""


class NoTimeColumnError(MeteringIngestError):
    pass


class EmptyResultError(MeteringIngestError):
    pass


class NoNumericColumnsError(MeteringIngestError):
    pass


class DecodeFailureError(MeteringIngestError):
    pass


@dataclass
class MeteringRecord:
    index: int
    source_row: int
    time: int
    original_time: str
    values: Dict[str, float] = field(default_factory=dict)

    def get(self, name: str) -> Optional[float]:
        return self.values.get(name)

    def as_dict(self) -> Dict[str, object]:
        """Return the flat record shape handed to chart components."""

        out: Dict[str, object] = {
            "index": self.index,
            "time": self.time,
            "originalTime": self.original_time,
        }
        out.update(self.values)
        return out


@dataclass
class MeteringDataset:
    """Time-ordered records plus the parameters that carry numeric data."""

    records: List[MeteringRecord] = field(default_factory=list)
    parameters: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def empty(self) -> bool:
        return not self.records

    def values_for(self, name: str) -> List[float]:
        return [rec.values[name] for rec in self.records if name in rec.values]

    def to_frame(self) -> pd.DataFrame:
        """Return a DataFrame with one float column per published parameter."""

        columns = ["index", "time", "originalTime", "Clock"] + list(self.parameters)
        if not self.records:
            return pd.DataFrame(columns=columns)

        rows = []
        for rec in self.records:
            row: Dict[str, object] = {
                "index": rec.index,
                "time": rec.time,
                "originalTime": rec.original_time,
                "Clock": CLOCK_ORIGIN + timedelta(milliseconds=rec.time),
            }
            for name in self.parameters:
                row[name] = rec.values.get(name)
            rows.append(row)

        frame = pd.DataFrame(rows, columns=columns)
        for name in self.parameters:
            frame[name] = pd.to_numeric(frame[name], errors="coerce")
        return frame


def _strip_bom_and_zero_width(text: str) -> str:
    for ch in _ZERO_WIDTH_CHARS:
        text = text.replace(ch, "")
    return text


def _clean_header(raw_header: object) -> str:
    """Lowercase, trim and drop a known vendor prefix from a raw header."""

    text = unicodedata.normalize("NFKC", str(raw_header or ""))
    text = _strip_bom_and_zero_width(text).strip().lower()
    for prefix in VENDOR_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):].strip()
            break
    return text


def _contains_token(text: str, alias: str) -> bool:
    """Return True when ``alias`` occurs in ``text`` between non-alphanumerics."""

    pattern = r"(?<![a-z0-9])" + re.escape(alias) + r"(?![a-z0-9])"
    return re.search(pattern, text) is not None


def resolve_header(raw_header: str) -> str:
    """Return the canonical parameter name for an arbitrary input header.

    Headers that match no alias pass through as their cleaned text so unknown
    columns still reach the chart layer.
    """

    cleaned = _clean_header(raw_header)
    for canonical, aliases in HEADER_ALIASES:
        if any(_contains_token(cleaned, alias) for alias in aliases):
            return canonical
    return cleaned


def detect_time_column(headers: Sequence[str]) -> str:
    """Return the header holding timestamps.

    Candidates are tried in priority order across every header, so any header
    containing ``time`` beats a header containing ``date`` regardless of
    column position.
    """

    for candidate in TIME_HEADER_CANDIDATES:
        for header in headers:
            if candidate in str(header).lower():
                return header
    raise NoTimeColumnError(
        "Could not find a time column. Please ensure a column is named "
        "'time', 'timestamp' or 'date'."
    )


def _parse_int_prefix(text: str) -> Optional[int]:
    match = _INT_PREFIX_RE.match(text)
    if not match:
        return None
    return int(match.group(1))


def parse_time_of_day(text: object) -> Optional[int]:
    """Return milliseconds since midnight for ``"<date> HH:MM[:SS]"`` text.

    The date part is ignored. ``None`` marks a value that cannot be parsed.
    """

    if not isinstance(text, str):
        return None

    parts = text.strip().split(" ")
    if len(parts) < 2:
        return None

    time_parts = parts[1].split(":")
    if len(time_parts) < 2:
        return None

    hours = _parse_int_prefix(time_parts[0])
    minutes = _parse_int_prefix(time_parts[1])
    seconds = _parse_int_prefix(time_parts[2]) if len(time_parts) > 2 else 0
    if hours is None or minutes is None or seconds is None:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        return None

    return (hours * 3600 + minutes * 60 + seconds) * 1000


def coerce_numeric(value: object) -> Optional[float]:
    """Return a finite float from a numeric cell, accepting a decimal comma."""

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).replace(",", ".", 1)
        match = _FLOAT_PREFIX_RE.match(text)
        if not match:
            return None
        try:
            number = float(match.group(1))
        except ValueError:
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def build_header_map(headers: Iterable[str]) -> List[Tuple[str, str]]:
    """Return ``(original, mapped)`` pairs for every header, in file order.

    A mapped name that would shadow one of the fixed record fields (``index``,
    ``time``, ``originalTime``, ``Clock``) gets a ``" (column)"`` suffix.
    """

    pairs: List[Tuple[str, str]] = []
    for header in headers:
        mapped = resolve_header(header)
        if mapped.lower() in RESERVED_FIELD_NAMES:
            mapped = f"{mapped} (column)"
        pairs.append((header, mapped))
    return pairs


def normalize_row(
    row: Mapping[str, object],
    header_map: Sequence[Tuple[str, str]],
    time_header: str,
    row_index: int,
) -> Optional[MeteringRecord]:
    """Return a typed record for one raw row, or ``None`` to drop it."""

    original_time = row.get(time_header)
    time_ms = parse_time_of_day(original_time)
    if time_ms is None:
        dprint(f"[normalize_row] dropping row {row_index}: unparseable time {original_time!r}")
        return None

    values: Dict[str, float] = {}
    for original, mapped in header_map:
        if original == time_header:
            continue
        number = coerce_numeric(row.get(original))
        if number is not None:
            values[mapped] = number

    return MeteringRecord(
        index=row_index,
        source_row=row_index,
        time=time_ms,
        original_time=str(original_time),
        values=values,
    )


def assemble_dataset(
    rows: Iterable[Mapping[str, object]], headers: Sequence[str]
) -> MeteringDataset:
    """Turn decoded rows into a sorted dataset, raising on fatal conditions."""

    headers = list(headers)
    time_header = detect_time_column(headers)
    header_map = build_header_map(headers)

    records: List[MeteringRecord] = []
    total = 0
    for row_index, row in enumerate(rows):
        total += 1
        record = normalize_row(row, header_map, time_header, row_index)
        if record is not None:
            records.append(record)

    if not records:
        raise EmptyResultError(
            "No valid data rows could be parsed from the CSV. Check time format "
            "(DD/MM/YYYY HH:MM:SS) and numeric values (use ',' or '.' as the "
            "decimal separator)."
        )

    # list.sort is stable, so equal times keep their file order.
    records.sort(key=lambda rec: rec.time)
    for position, record in enumerate(records):
        record.index = position

    time_mapped = resolve_header(time_header)
    parameters: List[str] = []
    for original, mapped in header_map:
        if original == time_header or mapped in parameters:
            continue
        if resolve_header(original) == time_mapped:
            continue
        if any(mapped in rec.values for rec in records):
            parameters.append(mapped)

    if not parameters:
        raise NoNumericColumnsError(
            "No valid numeric data columns could be found in the CSV file."
        )

    dprint(
        f"[assemble_dataset] kept {len(records)}/{total} rows, "
        f"time column {time_header!r}, parameters {parameters}"
    )
    return MeteringDataset(records=records, parameters=parameters)


def _read_text(file_obj) -> str:
    """Return upload contents as text, tolerating BOMs and bad bytes."""

    if hasattr(file_obj, "seek"):
        file_obj.seek(0)
    raw = file_obj.read()
    if isinstance(raw, bytes):
        raw = raw.replace(b"\x00", b"")
        return raw.decode("utf-8-sig", errors="replace")
    return str(raw)


def _decode_table(text: str) -> Tuple[List[Dict[str, object]], List[str]]:
    try:
        width = len(
            pd.read_csv(
                io.StringIO(text),
                sep=CSV_DELIMITER,
                dtype=str,
                nrows=0,
                engine="python",
                index_col=False,
            ).columns
        )
        # Rows wider than the header keep their leading cells.
        df = pd.read_csv(
            io.StringIO(text),
            sep=CSV_DELIMITER,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=lambda fields: fields[:width],
            usecols=range(width),
            index_col=False,
        )
    except Exception as exc:
        raise DecodeFailureError(
            "Could not read the file. Please check the format and delimiter (;)."
        ) from exc

    headers = [_strip_bom_and_zero_width(str(col)) for col in df.columns]
    df.columns = headers
    if df.empty:
        raise DecodeFailureError("CSV file is empty or could not be parsed.")

    rows: List[Dict[str, object]] = []
    for record in df.to_dict(orient="records"):
        rows.append(
            {k: (None if isinstance(v, float) and math.isnan(v) else v) for k, v in record.items()}
        )
    return rows, headers


def read_metering_csv(file_obj) -> MeteringDataset:
    """Parse an uploaded semicolon-delimited metering CSV into a dataset."""

    text = _read_text(file_obj)
    if not text.strip():
        raise DecodeFailureError("CSV file is empty or could not be parsed.")

    rows, headers = _decode_table(text)
    name = getattr(file_obj, "name", "<upload>")
    dprint(f"[read_metering_csv] {name}: {len(rows)} rows, headers {headers}")
    return assemble_dataset(rows, headers)


__all__ = [
    "CANONICAL_PARAMETERS",
    "DecodeFailureError",
    "EmptyResultError",
    "HEADER_ALIASES",
    "MeteringDataset",
    "MeteringIngestError",
    "MeteringRecord",
    "NoNumericColumnsError",
    "NoTimeColumnError",
    "assemble_dataset",
    "build_header_map",
    "coerce_numeric",
    "detect_time_column",
    "normalize_row",
    "parse_time_of_day",
    "read_metering_csv",
    "resolve_header",
]
