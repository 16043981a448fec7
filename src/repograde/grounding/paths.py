"""Path normalization and library-path classification."""

from __future__ import annotations

# Substrings marking vendored, generated or installed code
_LIBRARY_MARKERS = (
    "node_modules",
    "vendor",
    ".min.",
    ".bundle.",
    "dist/",
    "build/",
    ".generated.",
    "site-packages",
    "venv",
)


def _normalize_once(path: str) -> str:
    p = path.replace("\\", "/").strip()
    if p.startswith("./"):
        p = p[2:]
    if p.startswith("/"):
        p = p[1:]
    return p.lower().strip()


def normalize_path(path: str) -> str:
    """Canonical form used to compare file references.

    Backslashes become forward slashes, a leading ``./`` and a leading
    ``/`` are dropped, the result is lowercased and trimmed. The
    single-pass transform repeats until stable so the result is a fixed
    point: ``normalize_path(normalize_path(p)) == normalize_path(p)``.
    """
    current = path
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return nxt
        current = nxt


def is_library_path(path: str) -> bool:
    """Return True if the path looks like third-party or generated code."""
    p = normalize_path(path)
    return any(marker in p for marker in _LIBRARY_MARKERS)


def partition_library_references(
    references: list[str],
) -> tuple[list[str], list[str]]:
    """Split references into (user_code, library_code), order preserved."""
    user_code: list[str] = []
    library_code: list[str] = []
    for ref in references:
        if is_library_path(ref):
            library_code.append(ref)
        else:
            user_code.append(ref)
    return user_code, library_code
