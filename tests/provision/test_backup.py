"""
Tests for configuration backups.
"""

from datetime import datetime
from pathlib import Path

from servercozy.core.persistence.backup import ConfigBackupManager


def _clock(*stamps: datetime):
    it = iter(stamps)
    return lambda: next(it)


T1 = datetime(2024, 5, 1, 12, 0, 0)
T2 = datetime(2024, 5, 1, 12, 0, 5)


class TestBackupIfExists:
    def test_missing_file(self, tmp_path: Path):
        manager = ConfigBackupManager(clock=_clock(T1))
        assert manager.backup_if_exists(tmp_path / ".bashrc") is None
        assert not manager.has_backups()

    def test_copy_and_name(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("original\n")
        manager = ConfigBackupManager(clock=_clock(T1))

        record = manager.backup_if_exists(rc)

        assert record.backup_path == tmp_path / ".bashrc.bak.20240501120000"
        assert record.backup_path.read_text() == "original\n"
        assert record.original_path == rc.absolute()
        assert record.created_at == T1

    def test_second_call_is_a_no_op(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("original\n")
        manager = ConfigBackupManager(clock=_clock(T1, T2))

        first = manager.backup_if_exists(rc)
        rc.write_text("changed by the run\n")
        second = manager.backup_if_exists(rc)

        assert second == first
        assert len(manager.records) == 1
        assert first.backup_path.read_text() == "original\n"
        assert list(tmp_path.glob(".bashrc.bak.*")) == [first.backup_path]

    def test_name_collision_gets_suffix(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("v1\n")
        (tmp_path / ".bashrc.bak.20240501120000").write_text("older run\n")
        manager = ConfigBackupManager(clock=_clock(T1))

        record = manager.backup_if_exists(rc)

        assert record.backup_path.name == ".bashrc.bak.20240501120000.1"
        assert (tmp_path / ".bashrc.bak.20240501120000").read_text() == "older run\n"

    def test_records_keep_creation_order(self, tmp_path: Path):
        a, b = tmp_path / "a", tmp_path / "b"
        a.write_text("a")
        b.write_text("b")
        manager = ConfigBackupManager(clock=_clock(T1, T2))
        manager.backup_if_exists(b)
        manager.backup_if_exists(a)
        assert [r.original_path.name for r in manager.records] == ["b", "a"]


class TestRestore:
    def test_restore_all(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("original\n")
        manager = ConfigBackupManager(clock=_clock(T1))
        record = manager.backup_if_exists(rc)
        rc.write_text("broken\n")

        restored = manager.restore_all()

        assert restored == [rc.absolute()]
        assert rc.read_text() == "original\n"
        assert record.backup_path.exists()

    def test_restore_is_idempotent(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("original\n")
        manager = ConfigBackupManager(clock=_clock(T1))
        manager.backup_if_exists(rc)
        rc.write_text("broken\n")

        manager.restore_all()
        once = rc.read_text()
        manager.restore_all()

        assert rc.read_text() == once == "original\n"

    def test_missing_backup_is_reported_not_raised(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("original\n")
        manager = ConfigBackupManager(clock=_clock(T1))
        record = manager.backup_if_exists(rc)
        record.backup_path.unlink()

        assert manager.restore_all() == []
