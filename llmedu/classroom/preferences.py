"""
Theme preference storage.

Stored as a bare string under "app_theme_preference". Values outside
ThemePreference are removed on read and treated as absent.
"""

import logging
from typing import Optional

from llmedu.schemas import ThemePreference

from .storage import PersistenceAdapter


logger = logging.getLogger(__name__)

THEME_STORAGE_KEY = "app_theme_preference"


class ThemePreferenceStore:
    """Read and write the learner's theme choice."""

    def __init__(self, adapter: Optional[PersistenceAdapter] = None):
        self.adapter = adapter if adapter is not None else PersistenceAdapter()

    def get(self) -> Optional[ThemePreference]:
        stored = self.adapter.read(THEME_STORAGE_KEY)
        if stored is None:
            return None
        try:
            return ThemePreference(stored)
        except ValueError:
            logger.warning(f"Invalid theme stored: {stored!r}. Clearing invalid value.")
            self.adapter.remove(THEME_STORAGE_KEY)
            return None

    def set(self, theme: ThemePreference | str) -> bool:
        """Store a theme. Unknown values are rejected (returns False)."""
        try:
            value = ThemePreference(theme)
        except ValueError:
            valid = ", ".join(t.value for t in ThemePreference)
            logger.warning(f"Invalid theme name: {theme!r}. Must be one of: {valid}")
            return False
        return self.adapter.write(THEME_STORAGE_KEY, value.value)

    def clear(self) -> bool:
        return self.adapter.remove(THEME_STORAGE_KEY)

    def is_first_visit(self) -> bool:
        """No valid theme chosen yet."""
        return self.get() is None

    def apply_choice(self, choice: Optional[str]) -> bool:
        """
        Persist a choice made in a picker.

        Nothing is written when the picker is still empty or shows the
        stored value. Returns True only when a new value was stored.
        """
        if choice is None:
            return False
        current = self.get()
        if current is not None and current.value == choice:
            return False
        return self.set(choice)
