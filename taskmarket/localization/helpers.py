"""Localization helper functions."""
from typing import Optional

from taskmarket.config import settings
from taskmarket.localization.translations import TRANSLATIONS


def get_translation(key: str, locale: Optional[str] = None, **kwargs) -> str:
    """Get translated message for a key, with optional formatting.

    The locale defaults to ``settings.DEFAULT_LOCALE``; missing keys fall back
    to English.
    """
    locale = locale or settings.DEFAULT_LOCALE
    translations = TRANSLATIONS.get(locale.lower(), TRANSLATIONS.get("en", {}))
    message = translations.get(key) or TRANSLATIONS["en"].get(key, key)

    # Format message with kwargs if provided
    if kwargs:
        try:
            message = message.format(**kwargs)
        except (KeyError, ValueError):
            # If formatting fails, return message as-is
            pass

    return message
