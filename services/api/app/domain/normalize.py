from __future__ import annotations

import math
import re

_ws = re.compile(r"\s+")
_list_artifacts = re.compile(r"[\[\]'\"]")


def clean_text(s: object) -> str | None:
    """Trim and collapse inner whitespace; blank becomes None."""
    if s is None:
        return None
    value = _ws.sub(" ", str(s)).strip()
    return value or None


def clean_genres(raw: object) -> str | None:
    """Normalize a genre list to "A, B, C".

    Accepts plain comma lists ("Fantasy,  Fiction") as well as the stringified
    Python lists found in scraped CSV dumps ("['Fantasy', 'Fiction']").
    Empty entries are dropped; an empty result is None.
    """
    if raw is None:
        return None
    s = _list_artifacts.sub("", str(raw))
    parts = [_ws.sub(" ", p).strip() for p in s.split(",")]
    parts = [p for p in parts if p]
    return ", ".join(parts) or None


def parse_rating(raw: object) -> float | None:
    """Parse a numeric rating; anything unparseable is treated as absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        s = str(raw).strip()
        if not s:
            return None
        try:
            value = float(s)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def clean_block(s: object) -> str | None:
    """Trim free text (descriptions, reviews) without touching inner layout."""
    if s is None:
        return None
    value = str(s).strip()
    return value or None
