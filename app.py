import hashlib
from datetime import date
from pathlib import Path
import sys
from typing import List, Optional

import streamlit as st

# Ensure imports work whether the app is executed as a module or as a script
# where the repository directory might not already be on ``sys.path``.
CURRENT_DIR = Path(__file__).resolve().parent
if str(CURRENT_DIR) not in sys.path:
    sys.path.insert(0, str(CURRENT_DIR))

from charts import build_main_chart, build_mini_chart, chart_to_html
from parameters import SCALE_OPTIONS, describe_parameter, resolve_axis_domain
from preferences import (
    NO_SECONDARY,
    PreferenceStore,
    parse_axis_bound,
    prune_favorites,
    reconcile_selection,
    toggle_favorite,
    visible_favorites,
)
from session import DashboardSession
from summary import export_file_name, format_summary_report


st.set_page_config(page_title="CircuitView", layout="wide", page_icon="⚡")


def _state_key(prefix: str, identifier: str) -> str:
    digest = hashlib.sha1(identifier.encode("utf-8")).hexdigest()[:10]
    return f"{prefix}_{digest}"


@st.cache_resource(show_spinner=False)
def _preference_store() -> PreferenceStore:
    return PreferenceStore()


def _persist(key: str, value) -> None:
    prefs = _preference_store()
    if prefs.get(key) != value:
        prefs.set(key, value)
        prefs.save()


# --- Mock login ---------------------------------------------------------------
if not st.session_state.get("user_email"):
    st.title("⚡ CircuitView")
    st.caption("Enter your email below to login to your account")
    with st.form("login_form"):
        email = st.text_input("Email", placeholder="m@example.com")
        submitted = st.form_submit_button("Login")
    if submitted:
        if email and email.strip():
            st.session_state["user_email"] = email.strip()
            st.rerun()
        else:
            st.error("Please enter a valid email.")
    st.stop()


prefs = _preference_store()

if "session" not in st.session_state:
    st.session_state["session"] = DashboardSession.with_sample_data()
session: DashboardSession = st.session_state["session"]

# --- Sidebar: account, theme, upload -----------------------------------------
st.sidebar.header("⚡ CircuitView")
st.sidebar.caption(f"Signed in as {st.session_state['user_email']}")
if st.sidebar.button("Log out"):
    st.session_state.pop("user_email", None)
    st.rerun()

dark_mode = st.sidebar.toggle("Dark mode", value=prefs.get("theme") == "dark")
theme = "dark" if dark_mode else "light"
_persist("theme", theme)

st.sidebar.markdown("### Upload Data")
st.sidebar.caption(
    "Upload a semicolon-delimited (;) CSV file to visualize its data. "
    "This will replace the current view."
)
uploaded = st.sidebar.file_uploader(
    "Upload CSV", type=["csv"], accept_multiple_files=False, key="csv_uploader"
)
if uploaded is not None:
    upload_id = _state_key("upload", f"{uploaded.name}:{uploaded.size}")
    if st.session_state.get("last_upload_id") != upload_id:
        st.session_state["last_upload_id"] = upload_id
        with st.spinner("Processing file..."):
            ok = session.load_upload(uploaded.name, uploaded.getvalue())
        if ok:
            st.sidebar.success(f"Visualizing data from {uploaded.name}")
        else:
            st.sidebar.error(f"Parsing failed: {session.error}")

if st.sidebar.button("Show sample data"):
    session.reset()
    st.session_state.pop("last_upload_id", None)

dataset = session.dataset
available: List[str] = list(dataset.parameters)
st.sidebar.caption(f"{session.source_name or 'No data'}: {len(dataset):,} rows")

if not available:
    st.info("Upload a CSV file to see your data.")
    st.stop()

frame = dataset.to_frame()

# --- Main chart ---------------------------------------------------------------
favorites = prune_favorites(prefs.get("favorites"), available)
_persist("favorites", favorites)

primary, secondary = reconcile_selection(
    prefs.get("selectedParam") or "",
    prefs.get("selectedParamSecondary") or NO_SECONDARY,
    available,
)

with st.expander("Main chart", expanded=True):
    top_left, top_mid, top_right = st.columns([3, 1, 3])
    with top_left:
        primary = st.selectbox(
            "Primary Parameter", available, index=available.index(primary)
        )
    with top_mid:
        st.write("")
        is_favorite = primary in favorites
        if st.button("★" if is_favorite else "☆", help="Remove from favorites" if is_favorite else "Add to favorites"):
            favorites = toggle_favorite(favorites, primary)
            _persist("favorites", favorites)
            st.rerun()
    with top_right:
        compare = st.toggle("Compare Mode", value=bool(prefs.get("isCompareMode")))
        if compare:
            secondary_options = [NO_SECONDARY] + [p for p in available if p != primary]
            if secondary not in secondary_options:
                secondary = NO_SECONDARY
            secondary = st.selectbox(
                "Secondary Parameter",
                secondary_options,
                index=secondary_options.index(secondary),
            )
        else:
            secondary = NO_SECONDARY

    axis_range = prefs.get("yAxisRange") or {}
    scale_col, min_col, max_col, reset_col = st.columns([2, 1, 1, 1])
    with scale_col:
        scale = st.selectbox(
            "Y-Axis Scale",
            SCALE_OPTIONS,
            index=SCALE_OPTIONS.index(prefs.get("yAxisScale")) if prefs.get("yAxisScale") in SCALE_OPTIONS else 0,
            format_func=lambda s: "Logarithmic" if s == "log" else "Linear",
        )
    log_scale = scale == "log"
    with min_col:
        min_text = st.text_input(
            "Min",
            value="" if axis_range.get("min") in (None, "auto") else str(axis_range.get("min")),
            disabled=log_scale,
        )
    with max_col:
        max_text = st.text_input(
            "Max",
            value="" if axis_range.get("max") in (None, "auto") else str(axis_range.get("max")),
            disabled=log_scale,
        )
    custom_min = parse_axis_bound(min_text)
    custom_max = parse_axis_bound(max_text)
    with reset_col:
        st.write("")
        if st.button("Reset range", disabled=log_scale or (custom_min is None and custom_max is None)):
            custom_min = custom_max = None
            _persist("yAxisRange", {"min": "auto", "max": "auto"})
            st.rerun()

    _persist("selectedParam", primary)
    _persist("selectedParamSecondary", secondary)
    _persist("isCompareMode", bool(compare))
    _persist("yAxisScale", scale)
    _persist(
        "yAxisRange",
        {
            "min": "auto" if custom_min is None else custom_min,
            "max": "auto" if custom_max is None else custom_max,
        },
    )

    domain = resolve_axis_domain(
        primary, dataset.values_for(primary), scale, custom_min, custom_max
    )
    chart = build_main_chart(
        frame,
        primary,
        secondary=secondary if compare else None,
        scale=scale,
        domain=domain,
        theme=theme,
    )
    st.altair_chart(chart, use_container_width=True)

    unit = describe_parameter(primary).unit
    st.caption(f"{primary}{f' [{unit}]' if unit else ''} | {len(dataset):,} data points")

    today = date.today()
    dl_chart, dl_summary = st.columns(2)
    with dl_chart:
        st.download_button(
            "Download Graph (HTML)",
            data=chart_to_html(chart).encode("utf-8"),
            file_name=export_file_name("chart", primary, today, ext="html"),
            mime="text/html",
        )
    with dl_summary:
        summary_secondary: Optional[str] = secondary if compare else None
        st.download_button(
            "Download Summary Report",
            data=format_summary_report(dataset, primary, summary_secondary).encode("utf-8"),
            file_name=export_file_name("summary", primary, today),
            mime="text/plain",
        )

# --- Favorites ----------------------------------------------------------------
st.header("Favorites")
with st.expander("Customize Favorites"):
    chosen = st.multiselect(
        "Favorite parameters",
        options=available,
        default=visible_favorites(favorites, available),
    )
    if chosen != visible_favorites(favorites, available):
        favorites = chosen
        _persist("favorites", favorites)

shown = visible_favorites(favorites, available)
if shown:
    columns = st.columns(min(4, len(shown)))
    for idx, name in enumerate(shown):
        with columns[idx % len(columns)]:
            unit = describe_parameter(name).unit
            st.markdown(f"**{name}**")
            st.caption(unit or " ")
            st.altair_chart(build_mini_chart(frame, name, theme=theme), use_container_width=True)
else:
    st.info(
        "No Favorites Yet. Select parameters from your CSV and click the star "
        "icon to add favorites."
    )
