"""Tests for loading a directory into a RepositorySnapshot."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from repograde.config import Settings
from repograde.ingestion import is_binary
from repograde.ingestion.snapshot import is_secret_file, load_snapshot


def _write(root: Path, rel: str, content: str | bytes) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    _write(root, "src/main.py", "print('hi')\n")
    _write(root, "src/utils.py", "def f():\n    return 1\n")
    _write(root, "node_modules/pkg/index.js", "module.exports = 1\n")
    _write(root, ".git/config", "[core]\n")
    _write(root, ".env", "SECRET=1\n")
    _write(root, "keys/server.pem", "-----BEGIN-----\n")
    _write(root, "logo.png", b"\x89PNG\r\n")
    _write(root, "package-lock.json", "{}\n")
    _write(root, "static/app.min.js", "var a=1;\n")
    _write(root, "data/blob.dat", b"abc\x00def")
    _write(root, "ignored/skip.py", "x = 1\n")
    _write(root, "debug.log", "log line\n")
    _write(root, ".gitignore", "ignored/\n*.log\n")
    return root


class TestLoadSnapshot:
    def test_includes_source_files(self, repo: Path) -> None:
        snapshot = load_snapshot(repo, Settings())
        assert "src/main.py" in snapshot.all_paths
        assert "src/utils.py" in snapshot.all_paths
        main = snapshot.get("src/main.py")
        assert main is not None
        assert main.content == "print('hi')\n"
        assert main.size_bytes == len("print('hi')\n")

    def test_skips_dirs_and_gitignored(self, repo: Path) -> None:
        paths = load_snapshot(repo, Settings()).all_paths
        assert not any(p.startswith("node_modules/") for p in paths)
        assert not any(p.startswith(".git/") for p in paths)
        assert "ignored/skip.py" not in paths
        assert "debug.log" not in paths

    def test_excluded_files_are_reported_as_skipped(
        self, repo: Path
    ) -> None:
        snapshot = load_snapshot(repo, Settings())
        for rel in (
            ".env",
            "keys/server.pem",
            "logo.png",
            "package-lock.json",
            "static/app.min.js",
            "data/blob.dat",
        ):
            assert rel not in snapshot.all_paths
            assert rel in snapshot.skipped

    def test_files_sorted_by_path(self, repo: Path) -> None:
        snapshot = load_snapshot(repo, Settings())
        paths = [f.path for f in snapshot.files]
        assert paths == sorted(paths)

    def test_oversized_file_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path, "small.py", "x = 1\n")
        _write(tmp_path, "big.py", "x" * 200)
        snapshot = load_snapshot(
            tmp_path, Settings(max_file_size_bytes=100)
        )
        assert snapshot.all_paths == frozenset({"small.py"})
        assert "big.py" in snapshot.skipped

    def test_repo_too_large(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.py", "x" * 60)
        _write(tmp_path, "b.py", "x" * 60)
        with pytest.raises(ValueError, match="max size"):
            load_snapshot(tmp_path, Settings(max_repo_size_bytes=100))

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "nope", Settings())

    def test_snapshot_is_immutable(self, repo: Path) -> None:
        snapshot = load_snapshot(repo, Settings())
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.files = ()  # type: ignore[misc]

    def test_total_size(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.py", "12345")
        _write(tmp_path, "b.py", "123")
        assert load_snapshot(tmp_path, Settings()).total_size == 8


class TestHelpers:
    @pytest.mark.parametrize(
        "name",
        [".env", ".env.local", "id_rsa", "server.key", "cert.pem",
         "secrets.yaml", "aws_credentials.json"],
    )
    def test_secret_files(self, name: str) -> None:
        assert is_secret_file(name) is True

    @pytest.mark.parametrize("name", ["main.py", "environment.ts", "keys.py"])
    def test_regular_files(self, name: str) -> None:
        assert is_secret_file(name) is False

    def test_is_binary(self, tmp_path: Path) -> None:
        text = tmp_path / "a.txt"
        text.write_text("hello")
        blob = tmp_path / "b.bin"
        blob.write_bytes(b"\x00\x01")
        assert is_binary(text) is False
        assert is_binary(blob) is True

    def test_unreadable_counts_as_binary(self, tmp_path: Path) -> None:
        assert is_binary(tmp_path / "missing") is True
