"""Utilities to normalize application names."""

from __future__ import annotations

import re
from typing import Iterable, Optional

_EXE_SUFFIX_PATTERN = re.compile(r"\.exe$", re.IGNORECASE)


def canonical_app_name(name: Optional[str]) -> str:
    """Return the form used for every membership comparison."""
    if not name:
        return ""
    return name.strip().lower()


def app_matches(focused: Optional[str], apps: Iterable[str]) -> Optional[str]:
    """Return the member of ``apps`` that ``focused`` belongs to, if any.

    Matching is case-insensitive and tolerant of substrings in either
    direction, so "Code" matches "Visual Studio Code" and vice versa.
    """
    needle = canonical_app_name(focused)
    if not needle:
        return None
    for app in apps:
        candidate = canonical_app_name(app)
        if not candidate:
            continue
        if needle == candidate or needle in candidate or candidate in needle:
            return app
    return None


def dedupe_app_names(apps: Iterable[str]) -> list[str]:
    """Trim entries and drop blanks and canonical duplicates, keeping order."""
    seen: set[str] = set()
    result: list[str] = []
    for app in apps:
        cleaned = app.strip() if app else ""
        key = canonical_app_name(cleaned)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def display_app_name(process_name: Optional[str]) -> Optional[str]:
    """Turn a process image name such as ``Code.exe`` into ``Code``."""
    if not process_name:
        return None
    cleaned = _EXE_SUFFIX_PATTERN.sub("", process_name.strip())
    return cleaned or None
