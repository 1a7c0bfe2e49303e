"""Persisted dashboard preferences: favorites and chart selection state.

The ingestion pipeline never reads or writes these; they belong to the
presentation layer only.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from data_processing import dprint


DEFAULT_FAVORITES: List[str] = ["Average phase voltage", "Power factor", "Active power"]

NO_SECONDARY = "None"

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "favorites": list(DEFAULT_FAVORITES),
    "selectedParam": "",
    "selectedParamSecondary": NO_SECONDARY,
    "isCompareMode": False,
    "yAxisScale": "linear",
    "yAxisRange": {"min": "auto", "max": "auto"},
    "theme": "light",
}


def default_preferences_path() -> Path:
    override = os.getenv("CIRCUITVIEW_PREFS")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".circuitview" / "preferences.json"


class PreferenceStore:
    """Small JSON-file key/value store, loaded once and written on ``save``."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else default_preferences_path()
        self._values: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            dprint(f"[PreferenceStore] ignoring unreadable {self.path}: {exc}")
            return
        if isinstance(data, dict):
            self._values = data

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            return self._values[key]
        if default is not None:
            return default
        value = DEFAULT_PREFERENCES.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._values, f, indent=2)

    def as_dict(self) -> Dict[str, Any]:
        merged = json.loads(json.dumps(DEFAULT_PREFERENCES))
        merged.update(self._values)
        return merged


def toggle_favorite(favorites: Sequence[str], name: str) -> List[str]:
    if not name:
        return list(favorites)
    if name in favorites:
        return [fav for fav in favorites if fav != name]
    return list(favorites) + [name]


def prune_favorites(favorites: Sequence[str], available: Sequence[str]) -> List[str]:
    """Drop favorites missing from ``available``; an empty list prunes nothing."""

    if not available:
        return list(favorites)
    return [fav for fav in favorites if fav in available]


def visible_favorites(favorites: Iterable[str], available: Sequence[str]) -> List[str]:
    return [fav for fav in favorites if fav in available]


def reconcile_selection(
    primary: str, secondary: str, available: Sequence[str]
) -> Tuple[str, str]:
    """Return a primary/secondary pair valid for the current parameter list."""

    if not available:
        return "", NO_SECONDARY
    if not primary or primary not in available:
        primary = available[0]
    if secondary != NO_SECONDARY and secondary not in available:
        secondary = NO_SECONDARY
    return primary, secondary


def parse_axis_bound(value: Any) -> Optional[float]:
    """Return a manual axis bound, or ``None`` for ``"auto"``/blank input."""

    if value is None or value == "auto":
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None
