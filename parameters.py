"""Units, chart kinds and y-axis ranges for metering parameters."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from data_processing import _contains_token


@dataclass(frozen=True)
class ParameterDescriptor:
    unit: str = ""
    chart_kind: str = "line"


DEFAULT_DESCRIPTOR = ParameterDescriptor()

# Ordered so the more specific power keywords win over the generic ones.
_DESCRIPTOR_RULES: List[Tuple[Tuple[str, ...], ParameterDescriptor]] = [
    (("power factor", "pf"), ParameterDescriptor("", "line")),
    (("reactive power", "kvar"), ParameterDescriptor("kVAR", "bar")),
    (("apparent power", "kva"), ParameterDescriptor("kVA", "bar")),
    (("active power", "kw"), ParameterDescriptor("kW", "bar")),
    (("voltage",), ParameterDescriptor("V", "line")),
    (("current",), ParameterDescriptor("A", "line")),
]

# Typical operating windows for a low-voltage three-phase supply.
AXIS_RANGES: List[Tuple[str, Tuple[float, float]]] = [
    ("voltage", (220.0, 240.0)),
    ("current", (0.0, 100.0)),
    ("active power", (0.0, 30.0)),
    ("reactive power", (0.0, 15.0)),
    ("apparent power", (0.0, 33.0)),
    ("power factor", (0.8, 1.0)),
]

AXIS_PADDING_FRACTION = 0.1

SCALE_OPTIONS = ("linear", "log")


def describe_parameter(name: Optional[str]) -> ParameterDescriptor:
    """Return unit and preferred chart kind from keywords in ``name``."""

    if not name:
        return DEFAULT_DESCRIPTOR
    lowered = str(name).strip().lower()
    for keywords, descriptor in _DESCRIPTOR_RULES:
        if any(_contains_token(lowered, keyword) for keyword in keywords):
            return descriptor
    return DEFAULT_DESCRIPTOR


def parameter_label(name: str) -> str:
    unit = describe_parameter(name).unit
    return f"{name} ({unit})" if unit else name


def default_axis_domain(
    name: str, data_min: float, data_max: float
) -> Tuple[float, float]:
    lowered = str(name).lower()
    for keyword, domain in AXIS_RANGES:
        if keyword in lowered:
            return domain

    padding = (data_max - data_min) * AXIS_PADDING_FRACTION
    low = data_min - padding
    high = data_max + padding
    if low < 0 and data_min >= 0:
        low = 0.0
    return (float(low), float(high))


def resolve_axis_domain(
    name: str,
    values: Sequence[float],
    scale: str = "linear",
    custom_min: Optional[float] = None,
    custom_max: Optional[float] = None,
) -> Optional[Tuple[float, float]]:
    """Return the y-axis domain, or ``None`` to let the chart pick one.

    Manual bounds win over the per-parameter defaults; a missing manual side
    falls back to the data extreme. Log scales are always automatic.
    """

    if scale == "log":
        return None

    arr = np.asarray(list(values), dtype=float)
    arr = arr[np.isfinite(arr)]

    if custom_min is not None or custom_max is not None:
        if arr.size == 0 and (custom_min is None or custom_max is None):
            return None
        low = custom_min if custom_min is not None else float(arr.min())
        high = custom_max if custom_max is not None else float(arr.max())
        return (float(low), float(high))

    if arr.size == 0:
        return None
    return default_axis_domain(name, float(arr.min()), float(arr.max()))
