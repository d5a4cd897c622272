"""User preference persistence."""

from __future__ import annotations

import logging
from dataclasses import replace

from .constants import PREFERENCES_STORAGE_KEY, THEME_STORAGE_KEY, THEMES
from .models import Preferences
from .storage import KeyValueStore, PersistentValue

logger = logging.getLogger(__name__)

# Stored field name -> Preferences attribute
_STORED_FIELDS = {
    "darkMode": "dark_mode",
    "theme": "theme",
    "examPrepMode": "exam_prep_mode",
}


def _decode_saved(data: object) -> dict | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    return data


def _encode(prefs: Preferences) -> dict:
    return {stored: getattr(prefs, attribute) for stored, attribute in _STORED_FIELDS.items()}


class PreferencesRepository:
    """Preferences stored as a JSON object, with the theme mirrored under its own key.

    The separate ``theme`` key wins over the theme stored in the object when it
    says ``dark``, and ``dark_mode`` always follows the resolved theme.

    Args:
        store: Backing key/value store.
        key: Storage key for the preferences object.
        theme_key: Storage key for the plain theme string.

    Examples:
        repo = PreferencesRepository(MemoryStore())
        repo.save(Preferences(dark_mode=True))
        repo.load().theme  # "dark"
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = PREFERENCES_STORAGE_KEY,
        theme_key: str = THEME_STORAGE_KEY,
    ):
        self.store = store
        self.theme_key = theme_key
        self._value: PersistentValue[dict | None] = PersistentValue(
            store, key, None, decode=_decode_saved
        )

    def load(self) -> Preferences:
        """Return stored preferences merged over the defaults."""
        defaults = Preferences()
        saved = self._value.load()
        stored_theme = self.store.get(self.theme_key)

        if saved is not None:
            saved_theme = saved.get("theme")
            if stored_theme == "dark":
                theme = "dark"
            elif saved_theme in THEMES:
                theme = saved_theme
            else:
                if saved_theme:
                    logger.warning("Ignoring unknown stored theme %r", saved_theme)
                theme = defaults.theme
            exam_prep_mode = saved.get("examPrepMode", defaults.exam_prep_mode)
            if not isinstance(exam_prep_mode, bool):
                logger.warning("Ignoring non-boolean stored examPrepMode %r", exam_prep_mode)
                exam_prep_mode = defaults.exam_prep_mode
            return Preferences(
                dark_mode=theme == "dark",
                theme=theme,
                exam_prep_mode=exam_prep_mode,
            )

        if stored_theme == "dark":
            return replace(defaults, dark_mode=True, theme="dark")

        return defaults

    def save(self, prefs: Preferences) -> Preferences:
        """Normalize and persist preferences.

        Returns:
            Preferences: The normalized preferences that were written.

        Raises:
            StorageError: If the backing store cannot be written.
        """
        theme = "dark" if prefs.theme == "dark" or prefs.dark_mode else "light"
        normalized = replace(prefs, theme=theme, dark_mode=theme == "dark")
        self._value.save(_encode(normalized))
        self.store.set(self.theme_key, theme)
        return normalized

    def update(self, **changes: object) -> Preferences:
        """Apply `changes` to the stored preferences and save them."""
        changes = {key: value for key, value in changes.items() if value is not None}
        prefs = self.load()
        if "theme" in changes and "dark_mode" not in changes:
            changes["dark_mode"] = changes["theme"] == "dark"
        return self.save(replace(prefs, **changes))
