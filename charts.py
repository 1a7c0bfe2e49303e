"""Altair chart builders for the metering dashboard."""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import altair as alt
import pandas as pd

from data_processing import CLOCK_ORIGIN
from parameters import describe_parameter, parameter_label


THEME_COLORS: Dict[str, Dict[str, str]] = {
    "light": {
        "primary": "#0a2540",
        "secondary": "#f5a623",
        "background": "#ffffff",
        "text": "#0a2540",
    },
    "dark": {
        "primary": "#4fc3f7",
        "secondary": "#ffb74d",
        "background": "#0a2540",
        "text": "#e6edf3",
    },
}


def _clock(moment: datetime) -> alt.DateTime:
    return alt.DateTime(
        year=moment.year,
        month=moment.month,
        date=moment.day,
        hours=moment.hour,
        minutes=moment.minute,
    )


DAY_START = _clock(CLOCK_ORIGIN)
DAY_END = _clock(CLOCK_ORIGIN + timedelta(days=1))
HOUR_TICKS = [_clock(CLOCK_ORIGIN + timedelta(hours=h)) for h in range(24)]


def _theme(theme: str) -> Dict[str, str]:
    return THEME_COLORS.get(theme, THEME_COLORS["light"])


def _x_axis(show: bool = True) -> alt.X:
    return alt.X(
        "Clock:T",
        title="Time of day" if show else None,
        scale=alt.Scale(domain=[DAY_START, DAY_END]),
        axis=alt.Axis(format="%H:%M", values=HOUR_TICKS, labelAngle=0) if show else None,
    )


def _series_frame(frame: pd.DataFrame, name: str) -> pd.DataFrame:
    if frame is None or frame.empty or name not in frame.columns:
        return pd.DataFrame(columns=["Clock", "originalTime", "Value", "Series"])
    sub = frame[["Clock", "originalTime", name]].rename(columns={name: "Value"})
    sub = sub.dropna(subset=["Value"]).copy()
    sub["Series"] = name
    return sub


def _mark(chart: alt.Chart, kind: str, color: str) -> alt.Chart:
    if kind == "bar":
        return chart.mark_bar(color=color)
    return chart.mark_line(color=color, strokeWidth=2)


def _series_layer(
    frame: pd.DataFrame,
    name: str,
    color: str,
    scale: str,
    domain: Optional[Tuple[float, float]],
    axis_orient: str = "left",
) -> alt.Chart:
    descriptor = describe_parameter(name)
    if domain is not None:
        y_scale = alt.Scale(type=scale, domain=list(domain), nice=False, clamp=True)
    else:
        y_scale = alt.Scale(type=scale, zero=False)
    base = alt.Chart(_series_frame(frame, name)).encode(
        x=_x_axis(),
        y=alt.Y(
            "Value:Q",
            title=parameter_label(name),
            scale=y_scale,
            axis=alt.Axis(orient=axis_orient, titleColor=color),
        ),
        tooltip=[
            alt.Tooltip("originalTime:N", title="Time"),
            alt.Tooltip("Value:Q", title=name, format=".2f"),
        ],
    )
    return _mark(base, descriptor.chart_kind, color)


def build_main_chart(
    frame: pd.DataFrame,
    primary: str,
    secondary: Optional[str] = None,
    scale: str = "linear",
    domain: Optional[Tuple[float, float]] = None,
    theme: str = "light",
    height: int = 400,
) -> alt.LayerChart:
    """Return the main time-of-day chart for ``primary``.

    In compare mode the secondary series is layered on top; it gets its own
    y axis when its unit differs from the primary's.
    """

    colors = _theme(theme)
    layers: List[alt.Chart] = [
        _series_layer(frame, primary, colors["primary"], scale, domain)
    ]

    dual_axis = False
    if secondary and secondary != "None" and secondary != primary:
        primary_unit = describe_parameter(primary).unit
        secondary_unit = describe_parameter(secondary).unit
        dual_axis = primary_unit != secondary_unit
        layers.append(
            _series_layer(
                frame,
                secondary,
                colors["secondary"],
                scale,
                None if dual_axis else domain,
                axis_orient="right" if dual_axis else "left",
            )
        )

    chart = alt.layer(*layers)
    if dual_axis:
        chart = chart.resolve_scale(y="independent")
    return (
        chart.properties(height=height, title={"text": primary, "anchor": "start"})
        .configure(background=colors["background"])
        .configure_axis(labelColor=colors["text"], titleColor=colors["text"])
        .configure_title(color=colors["text"], fontSize=14)
    )


def build_mini_chart(
    frame: pd.DataFrame, name: str, theme: str = "light", height: int = 96
) -> alt.Chart:
    colors = _theme(theme)
    kind = describe_parameter(name).chart_kind
    base = alt.Chart(_series_frame(frame, name)).encode(
        x=_x_axis(show=False),
        y=alt.Y("Value:Q", axis=None, scale=alt.Scale(zero=False)),
        tooltip=[
            alt.Tooltip("originalTime:N", title="Time"),
            alt.Tooltip("Value:Q", title=name, format=".2f"),
        ],
    )
    return (
        _mark(base, kind, colors["primary"])
        .properties(height=height)
        .configure(background=colors["background"])
        .configure_view(stroke=None)
    )


def chart_to_html(chart: alt.TopLevelMixin) -> str:
    return chart.to_html()
