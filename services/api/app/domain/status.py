from __future__ import annotations

from enum import Enum


class ReadingStatus(str, Enum):
    ALREADY_READ = "already_read"
    RECOMMEND = "recommend"
    SAVE = "save"


# Spellings seen in forms, profile tabs and rows written by older releases.
_ALIASES = {
    "already_read": ReadingStatus.ALREADY_READ,
    "already read": ReadingStatus.ALREADY_READ,
    "already": ReadingStatus.ALREADY_READ,
    "recommend": ReadingStatus.RECOMMEND,
    "save": ReadingStatus.SAVE,
}


def coerce_status(value: object) -> ReadingStatus:
    """Map any input onto the closed status set.

    Unknown, blank or missing values fall back to ``already_read``; this is a
    policy, not an error.
    """
    if isinstance(value, ReadingStatus):
        return value
    if not isinstance(value, str):
        return ReadingStatus.ALREADY_READ
    return _ALIASES.get(" ".join(value.strip().lower().split()), ReadingStatus.ALREADY_READ)
