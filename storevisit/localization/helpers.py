"""Localization helper functions."""
from __future__ import annotations

from typing import Optional
from fastapi import Request

from storevisit.config import settings
from storevisit.localization.translations import TRANSLATIONS


def get_locale_from_request(request: Optional[Request] = None, default: Optional[str] = None) -> str:
    """Extract locale from request Accept-Language header or return default."""
    default = default or settings.DEFAULT_LOCALE
    if request is None:
        return default

    accept_language = request.headers.get("Accept-Language", "")
    if not accept_language:
        return default

    # e.g. "es-CR,es;q=0.9,en;q=0.8": the first language wins
    first_lang = accept_language.split(",")[0].split(";")[0].strip().lower()
    if first_lang.startswith("es"):
        return "es"
    elif first_lang.startswith("en"):
        return "en"

    return default


def get_translation(key: str, locale: str = "en", **kwargs) -> str:
    """Get translated message for a key, with optional formatting."""
    translations = TRANSLATIONS.get(locale.lower(), TRANSLATIONS["en"])
    message = translations.get(key, TRANSLATIONS["en"].get(key, key))

    if kwargs:
        try:
            message = message.format(**kwargs)
        except (KeyError, ValueError):
            pass

    return message
