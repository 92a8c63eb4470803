"""
DyeTracker - Link Settings
Backend URL and account-link state, stored as JSON in the data directory.

    {
      "api_url": "https://...",
      "auth_token": "",
      "linked_uuid": "",
      "linked_username": ""
    }

A missing file is created with defaults; a corrupt file falls back to
defaults with a warning so startup never fails on bad settings.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Callable

from config import DEFAULT_API_URL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkSettings:
    api_url: str = DEFAULT_API_URL
    auth_token: str = ""
    linked_uuid: str = ""       # without dashes
    linked_username: str = ""

    def is_linked(self) -> bool:
        return bool(self.linked_uuid) and bool(self.auth_token)

    def unlinked(self) -> "LinkSettings":
        return replace(self, auth_token="", linked_uuid="", linked_username="")


_KNOWN_KEYS = {f.name for f in fields(LinkSettings)}


class SettingsManager:
    """Loads, updates and saves LinkSettings."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._settings = LinkSettings()
        self._lock = threading.Lock()

    @property
    def settings(self) -> LinkSettings:
        with self._lock:
            return self._settings

    def is_linked(self) -> bool:
        return self.settings.is_linked()

    def load(self) -> LinkSettings:
        """Read settings from disk, creating the file with defaults if absent."""
        logger.info(f"Settings path: {self.path}")
        if not self.path.exists():
            logger.info(f"Settings file not found, creating default at {self.path}")
            with self._lock:
                self._settings = LinkSettings()
            self.save()
            return self.settings

        try:
            saved = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(saved, dict):
                raise ValueError("settings file is not a JSON object")
            known = {k: str(v) for k, v in saved.items() if k in _KNOWN_KEYS and v is not None}
            loaded = LinkSettings(**known)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to parse settings file, using defaults: {e}")
            loaded = LinkSettings()

        with self._lock:
            self._settings = loaded
        logger.info(f"Settings loaded: api_url={loaded.api_url}")
        return loaded

    def save(self):
        with self._lock:
            data = asdict(self._settings)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            logger.debug(f"Settings saved to {self.path}")
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")

    def update(self, updater: Callable[[LinkSettings], LinkSettings]) -> LinkSettings:
        """Apply updater to the current settings and save."""
        with self._lock:
            self._settings = updater(self._settings)
            result = self._settings
        self.save()
        return result

    def reset(self):
        with self._lock:
            self._settings = LinkSettings()
        self.save()
        logger.info("Settings reset to defaults")
