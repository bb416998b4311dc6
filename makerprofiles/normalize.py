from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterable

from makerprofiles.config import (
    DEFAULT_HANDLE,
    MAX_COURSE_ID_LENGTH,
    MAX_HANDLE_ATTEMPTS,
    MAX_HANDLE_LENGTH,
    MAX_QUERY_LENGTH,
    MAX_TAGS,
    TAG_OPTIONS,
)

MAKER_ID_PATTERN = re.compile(r"^[A-Z0-9]{3}-[A-Z0-9]{3}-[A-Z0-9]{3}$")
_WHITESPACE_RUN = re.compile(r"\s+")
_HANDLE_DISALLOWED = re.compile(r"[^a-z0-9\-_]")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def clip(value: str | None, limit: int) -> str:
    """Trim surrounding whitespace and cut the value to ``limit`` characters."""
    return (value or "").strip()[:limit]


def normalize_query(value: str | None) -> str:
    """Collapse whitespace in a search query and cap its length."""
    text = " ".join((value or "").split()).strip()
    if not text:
        return ""
    return text[:MAX_QUERY_LENGTH]


def to_handle_slug(value: str | None) -> str:
    """Return a URL-safe handle: lowercase ``[a-z0-9-_]``, at most 32 chars."""
    base = _WHITESPACE_RUN.sub("-", (value or "").strip().lower())
    return _HANDLE_DISALLOWED.sub("", base)[:MAX_HANDLE_LENGTH]


def unique_handle(
    preferred: str | None,
    fallback_name: str | None,
    taken: Callable[[str], bool],
) -> str:
    """Pick a free handle from the preferred value or the display name.

    Collisions get ``-2``, ``-3`` ... appended, cutting the base so the result
    stays within the handle length. After ``MAX_HANDLE_ATTEMPTS`` probes a
    short random token is used instead.
    """
    base = to_handle_slug(preferred) or to_handle_slug(fallback_name) or DEFAULT_HANDLE
    candidate = base
    n = 2
    while taken(candidate):
        suffix = f"-{n}"
        candidate = base[: MAX_HANDLE_LENGTH - len(suffix)] + suffix
        n += 1
        if n > MAX_HANDLE_ATTEMPTS:
            candidate = uuid.uuid4().hex[:8]
            break
    return candidate


def normalize_maker_id(value: str | None) -> str:
    """Format a maker ID as ``ABC-123-DEF``.

    Lowercase input and stray separators are accepted; incomplete trailing
    groups are kept as-is rather than padded.
    """
    cleaned = _NON_ALNUM.sub("", (value or "").strip().upper())[:9]
    groups = [cleaned[i : i + 3] for i in range(0, 9, 3)]
    return "-".join(group for group in groups if group)


def is_valid_maker_id(value: str | None) -> bool:
    """Return True for exactly three hyphenated groups of 3 alphanumerics."""
    return bool(MAKER_ID_PATTERN.fullmatch((value or "").strip().upper()))


def normalize_course_id(value: str | None) -> str:
    """Uppercase a course ID and cut it to 20 characters."""
    return (value or "").strip().upper()[:MAX_COURSE_ID_LENGTH]


def select_tags(requested: Iterable[str]) -> list[str]:
    """Keep known tags only, dedupe in first-seen order, cap at two.

    Unknown values are dropped silently.
    """
    allowed = set(TAG_OPTIONS)
    selected: list[str] = []
    for tag in requested:
        if tag in allowed and tag not in selected:
            selected.append(tag)
        if len(selected) >= MAX_TAGS:
            break
    return selected
