"""Settings storage — defaults merged with a JSON file, plus change listeners.

The store owns the only mutable reference. Readers get a frozen
TTSSettings snapshot; update() builds a new snapshot and swaps it in, so a
narration attempt already in flight keeps the snapshot it started with.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from tavern_tts.models import CHARACTER_MAPS, TTSSettings

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"

Listener = Callable[[TTSSettings], None]


def _canonical(fields: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase or snake_case keys to field names; drop unknown keys."""
    by_alias = {
        (info.validation_alias or name): name
        for name, info in TTSSettings.model_fields.items()
    }
    out: dict[str, Any] = {}
    for key, value in fields.items():
        name = key if key in TTSSettings.model_fields else by_alias.get(key)
        if name is not None:
            out[name] = value
    return out


def merge_settings(current: TTSSettings, fields: dict[str, Any]) -> TTSSettings:
    """Return a new snapshot with `fields` merged over `current`.

    Scalars are replaced. Per-character maps merge key-wise, so updating
    one character's voice leaves the others alone.
    """
    data = current.model_dump()
    for name, value in _canonical(fields).items():
        if name in CHARACTER_MAPS and isinstance(value, dict):
            data[name] = {**data[name], **value}
        else:
            data[name] = value
    return TTSSettings.model_validate(data)


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._listeners: list[Listener] = []
        self._settings = self._load()

    def _load(self) -> TTSSettings:
        settings = TTSSettings()
        if self._path.is_file():
            stored = json.loads(self._path.read_text())
            settings = merge_settings(settings, stored)
        return settings

    def _with_env_key(self, settings: TTSSettings) -> TTSSettings:
        if settings.api_key:
            return settings
        env_key = os.getenv(API_KEY_ENV, "")
        return settings.model_copy(update={"api_key": env_key}) if env_key else settings

    def get(self) -> TTSSettings:
        """Current snapshot. An empty stored key falls back to $GEMINI_API_KEY."""
        return self._with_env_key(self._settings)

    def update(self, fields: dict[str, Any]) -> TTSSettings:
        """Merge fields, persist, and notify listeners. Returns the new snapshot.

        Raises pydantic.ValidationError on bad values; nothing is written then.
        """
        new = merge_settings(self._settings, fields)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(new.model_dump_json(by_alias=True, indent=2))
        self._settings = new
        logger.debug("settings updated keys=%s", sorted(_canonical(fields)))

        snapshot = self.get()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)
