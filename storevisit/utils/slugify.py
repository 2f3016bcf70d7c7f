"""Slugs for form lineages."""
from __future__ import annotations

import re
import unicodedata

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: str, *, max_length: int = 120, default: str = "form") -> str:
    """Lowercase ASCII slug; accents are dropped ("Bitácora Pali" -> "bitacora-pali")."""
    ascii_value = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG_RE.sub("-", ascii_value.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or default
