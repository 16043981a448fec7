"""Load a local directory into an immutable repository snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pathspec

from repograde.config import EXCLUDED_EXTENSIONS, EXCLUDED_FILES, Settings
from repograde.ingestion import is_binary

logger = logging.getLogger(__name__)

# Name fragments of files that may hold credentials
_SECRET_SUFFIXES = (".pem", ".key")
_SECRET_FRAGMENTS = ("id_rsa", "secrets.", "credentials")
_BUNDLE_MARKERS = (".min.", ".bundle.")


@dataclass(frozen=True)
class SourceFile:
    """One readable text file, addressed by its repo-relative POSIX path."""

    path: str
    content: str
    size_bytes: int


@dataclass(frozen=True)
class RepositorySnapshot:
    """Read-only view of a repository, shared by every stage of a run.

    ``files`` is sorted by path; ``all_paths`` is the ground truth that
    generated file references are validated against.
    """

    root: Path
    files: tuple[SourceFile, ...]
    skipped: tuple[str, ...] = ()

    @property
    def all_paths(self) -> frozenset[str]:
        return frozenset(f.path for f in self.files)

    @property
    def total_size(self) -> int:
        return sum(f.size_bytes for f in self.files)

    def get(self, path: str) -> SourceFile | None:
        for f in self.files:
            if f.path == path:
                return f
        return None


def is_secret_file(name: str) -> bool:
    """Return True for files that look like keys, env files or credentials."""
    lowered = name.lower()
    if lowered.startswith(".env"):
        return True
    if lowered.endswith(_SECRET_SUFFIXES):
        return True
    return any(fragment in lowered for fragment in _SECRET_FRAGMENTS)


def _is_excluded(path: Path) -> bool:
    name = path.name
    if name in EXCLUDED_FILES or is_secret_file(name):
        return True
    if path.suffix.lower() in EXCLUDED_EXTENSIONS:
        return True
    return any(marker in name.lower() for marker in _BUNDLE_MARKERS)


def load_snapshot(
    repo_path: Path | str,
    settings: Settings | None = None,
) -> RepositorySnapshot:
    """Walk ``repo_path`` and read every eligible text file.

    * Skips hidden directories and ``settings.skip_directories``.
    * Honors the root ``.gitignore`` via pathspec.
    * Skips assets, lock files, secret-looking files, minified bundles,
      binary files and files above ``max_file_size_bytes``.

    Raises FileNotFoundError if the path is not a directory and
    ValueError if the included files exceed ``max_repo_size_bytes``.
    """
    cfg = settings or Settings()
    root = Path(repo_path).resolve()
    if not root.is_dir():
        msg = f"Local path does not exist: {root}"
        raise FileNotFoundError(msg)

    skip_dirs = set(cfg.skip_directories)
    spec = _load_gitignore(root)

    files: list[SourceFile] = []
    skipped: list[str] = []
    total = 0
    for file_path in _walk_files(root, root, skip_dirs, spec, root):
        rel = file_path.relative_to(root).as_posix()
        if _is_excluded(file_path):
            skipped.append(rel)
            continue
        size = file_path.stat().st_size
        if size > cfg.max_file_size_bytes or is_binary(file_path):
            skipped.append(rel)
            continue
        try:
            content = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning(
                "event=snapshot_read_failed path=%s error=%s", rel, exc
            )
            skipped.append(rel)
            continue
        total += size
        if total > cfg.max_repo_size_bytes:
            msg = (
                f"Repository exceeds max size"
                f" ({total} > {cfg.max_repo_size_bytes} bytes)"
            )
            raise ValueError(msg)
        files.append(SourceFile(path=rel, content=content, size_bytes=size))

    files.sort(key=lambda f: f.path)
    logger.info(
        "event=snapshot_loaded root=%s files=%d skipped=%d bytes=%d",
        root,
        len(files),
        len(skipped),
        total,
    )
    return RepositorySnapshot(
        root=root, files=tuple(files), skipped=tuple(sorted(skipped))
    )


def _walk_files(
    current: Path,
    root: Path,
    skip_dirs: set[str],
    spec: pathspec.PathSpec,
    resolved_root: Path,
) -> list[Path]:
    """Recursive walk; symlinks resolving outside the root are skipped."""
    files: list[Path] = []
    for item in sorted(current.iterdir()):
        if item.is_symlink():
            resolved = item.resolve()
            if not resolved.is_relative_to(resolved_root):
                continue
        rel = item.relative_to(root).as_posix()
        if item.is_dir():
            if item.name.startswith(".") or item.name in skip_dirs:
                continue
            if spec.match_file(rel + "/"):
                continue
            files.extend(
                _walk_files(item, root, skip_dirs, spec, resolved_root)
            )
        elif item.is_file():
            if not spec.match_file(rel):
                files.append(item)
    return files


def _load_gitignore(root: Path) -> pathspec.PathSpec:
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return pathspec.PathSpec.from_lines("gitignore", [])
    try:
        with open(gitignore, encoding="utf-8") as f:
            return pathspec.PathSpec.from_lines("gitignore", f)
    except OSError:
        return pathspec.PathSpec.from_lines("gitignore", [])
