"""JSON-file key/value store for persisted client state (session, theme)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from app.config.settings import settings

logger = logging.getLogger(__name__)

AUTH_STATE_KEY = "blog_admin_auth"
THEME_STATE_KEY = "theme"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class StateStore:
    """Small persistent key/value map backed by one JSON file.

    No encryption and no expiry; a missing or unreadable file reads as empty.
    """

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self.path = Path(path or settings.STATE_FILE_PATH)
        self._state: dict[str, Any] = self._load()

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._state[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._state:
            del self._state[key]
            self._save()

    def get_theme(self) -> str:
        theme = self.get(THEME_STATE_KEY, DEFAULT_THEME)
        return theme if theme in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Unsupported theme: {theme}")
        self.set(THEME_STATE_KEY, theme)
        return theme

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load persisted state, starting empty", extra={"path": str(self.path), "error": str(exc)})
            return {}
        return loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._state, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise
