"""
Tests for the run lock and the progress file.
"""

import json
import os
from pathlib import Path

import pytest

from servercozy.core.errors import LockHeldError
from servercozy.core.persistence.lock import RunLock
from servercozy.core.persistence.progress import ProgressFile, read_progress


# ═══════════════════════════════════════════════════════════════════
#  RunLock
# ═══════════════════════════════════════════════════════════════════


class TestRunLock:
    def test_acquire_writes_pid(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        lock = RunLock(path)
        lock.acquire()
        assert path.read_text().strip() == str(os.getpid())
        lock.release()
        assert not path.exists()

    def test_context_manager(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        with RunLock(path):
            assert path.exists()
        assert not path.exists()

    def test_live_owner_blocks(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        path.write_text(f"{os.getppid()}\n")

        with pytest.raises(LockHeldError) as exc_info:
            RunLock(path).acquire()

        assert exc_info.value.pid == os.getppid()
        assert str(path) in str(exc_info.value)
        assert path.read_text().strip() == str(os.getppid())

    def test_stale_lock_is_replaced(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        # Far beyond any pid_max
        path.write_text("99999999\n")

        with RunLock(path):
            assert path.read_text().strip() == str(os.getpid())

    def test_garbage_lock_is_replaced(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        path.write_text("not a pid\n")
        with RunLock(path):
            assert path.read_text().strip() == str(os.getpid())

    def test_release_leaves_foreign_lock(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        lock = RunLock(path)
        lock.acquire()
        path.write_text("12345\n")
        lock.release()
        assert path.exists()

    def test_release_without_acquire(self, tmp_path: Path):
        path = tmp_path / "servercozy.lock"
        path.write_text(f"{os.getppid()}\n")
        RunLock(path).release()
        assert path.exists()


# ═══════════════════════════════════════════════════════════════════
#  ProgressFile
# ═══════════════════════════════════════════════════════════════════


class TestProgressFile:
    def test_update_and_read(self, tmp_path: Path):
        progress = ProgressFile(tmp_path / "progress.json")
        progress.update("InstallEach", current=3, total=8, detail="ripgrep")

        data = read_progress(progress.path)
        assert data == {"step": "InstallEach", "current": 3, "total": 8, "detail": "ripgrep"}

    def test_update_overwrites(self, tmp_path: Path):
        progress = ProgressFile(tmp_path / "progress.json")
        progress.update("Detect")
        progress.update("Summarize")
        assert json.loads(progress.path.read_text())["step"] == "Summarize"

    def test_no_temp_files_left(self, tmp_path: Path):
        progress = ProgressFile(tmp_path / "progress.json")
        progress.update("Detect")
        assert [p.name for p in tmp_path.iterdir()] == ["progress.json"]

    def test_remove(self, tmp_path: Path):
        progress = ProgressFile(tmp_path / "progress.json")
        progress.update("Detect")
        progress.remove()
        progress.remove()
        assert read_progress(progress.path) is None

    def test_unwritable_directory_never_raises(self, tmp_path: Path):
        progress = ProgressFile(tmp_path / "missing" / "progress.json")
        progress.update("Detect")
        assert read_progress(progress.path) is None

    def test_corrupt_file_reads_as_none(self, tmp_path: Path):
        path = tmp_path / "progress.json"
        path.write_text("{not json")
        assert read_progress(path) is None
