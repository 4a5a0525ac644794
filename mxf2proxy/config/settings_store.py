"""Persisted user preferences (output format, LUT, watermark).

The pipeline reads one snapshot per batch and never writes, except for the
output-format echo-back done by the front end when the user picks a format.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

import yaml

from mxf2proxy.config.models import ProxySettings


class SettingsStore:
    """YAML-backed key-value store for ProxySettings.

    A missing file yields the defaults (or the supplied ``defaults``); the
    file is only created on the first write.
    """

    def __init__(self, path: Optional[Path] = None, defaults: Optional[ProxySettings] = None):
        self.path = Path(path).expanduser() if path else None
        self._defaults = defaults or ProxySettings()
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        self._settings = self._load()

    def _load(self) -> ProxySettings:
        if self.path is None or not self.path.exists():
            return self._defaults.model_copy()
        with open(self.path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a mapping: {self.path}")
        merged = {**self._defaults.model_dump(), **data}
        return ProxySettings(**merged)

    def snapshot(self) -> ProxySettings:
        """Returns an independent copy of the current settings."""
        with self._lock:
            return self._settings.model_copy()

    def update(self, **changes) -> ProxySettings:
        """Validates and persists a partial update."""
        with self._lock:
            merged = {**self._settings.model_dump(), **changes}
            self._settings = ProxySettings(**merged)
            self._save()
            return self._settings.model_copy()

    def remember_output(self, output_format: Optional[str] = None, watermark_mode: Optional[str] = None) -> ProxySettings:
        """Echoes the format/mode chosen for a run back into the store."""
        changes = {}
        if output_format is not None:
            changes["output_format"] = output_format
        if watermark_mode is not None:
            changes["watermark_mode"] = watermark_mode
        return self.update(**changes)

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(self._settings.model_dump(), handle, sort_keys=False)
        self._logger.debug("Settings saved: %s", self.path)
