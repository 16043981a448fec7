"""Repository ingestion: snapshot a directory, map it, budget context."""

from pathlib import Path

from repograde.constants import BINARY_DETECTION_BUFFER

__all__ = ["is_binary"]


def is_binary(path: Path) -> bool:
    """Return True if the file appears to be binary (null byte in first N bytes)."""
    try:
        with open(path, "rb") as f:
            chunk = f.read(BINARY_DETECTION_BUFFER)
        return b"\x00" in chunk
    except OSError:
        return True
