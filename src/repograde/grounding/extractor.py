"""Pull file-name mentions out of free text."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from repograde.constants import DEFAULT_REFERENCE_EXTENSIONS


@lru_cache(maxsize=16)
def _compile(
    extensions: tuple[str, ...],
) -> tuple[re.Pattern[str], re.Pattern[str]]:
    # Longest first so "tsx" wins over "ts" inside the alternation
    alternation = "|".join(
        re.escape(ext)
        for ext in sorted(extensions, key=len, reverse=True)
    )
    bare = re.compile(
        rf"\b[\w\-/.]+\.(?:{alternation})\b", re.IGNORECASE
    )
    quoted = re.compile(
        rf"[\"'`]([^\"'`\n]+\.(?:{alternation}))[\"'`]", re.IGNORECASE
    )
    return bare, quoted


def extract_references(
    text: str,
    extensions: Iterable[str] | None = None,
) -> list[str]:
    """Return unique file mentions in first-seen order.

    Bare mentions are matched first, then quoted mentions (inside
    double quotes, single quotes or backticks), which may contain spaces
    but never span lines. A mention must end on a
    word boundary right after a known extension, so trailing sentence
    punctuation is never part of the match.
    """
    if not text:
        return []
    exts = tuple(
        ext.lstrip(".").lower()
        for ext in (extensions or DEFAULT_REFERENCE_EXTENSIONS)
    )
    bare, quoted = _compile(exts)

    seen: set[str] = set()
    refs: list[str] = []
    for match in bare.findall(text):
        if match not in seen:
            seen.add(match)
            refs.append(match)
    for match in quoted.findall(text):
        if match not in seen:
            seen.add(match)
            refs.append(match)
    return refs
