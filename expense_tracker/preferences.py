"""
Local Preferences

A small JSON file holding per-install UI preferences. Today that is only
the last selected view. It is read once at startup and written on every
change.
"""

import json
from pathlib import Path
from typing import Any, Literal, Optional, Union

import structlog

from expense_tracker.utils.device import default_view

logger = structlog.get_logger(__name__)

ViewName = Literal["expenses", "heatmap"]
VIEWS: tuple[str, ...] = ("expenses", "heatmap")
PREFERRED_VIEW_KEY = "preferredView"


class PreferenceStore:
    """Key/value preferences persisted to a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._values: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("preferences_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("preferences_unreadable", path=str(self._path), error="not an object")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")

    def get_preferred_view(self, user_agent: Optional[str] = None) -> ViewName:
        """
        The saved view, or the device default.

        The device default is saved the first time it is used so later
        sessions stay on the same view.
        """
        saved = self.get(PREFERRED_VIEW_KEY)
        if saved in VIEWS:
            return saved

        view = default_view(user_agent)
        self.set(PREFERRED_VIEW_KEY, view)
        return view

    def set_preferred_view(self, view: ViewName) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self.set(PREFERRED_VIEW_KEY, view)
