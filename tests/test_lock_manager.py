"""Tests for the build lock guard."""

import logging
import os
from pathlib import Path
from unittest import mock

import pytest

from appctl.core.lock_manager import (
    LockAccessError,
    LockError,
    acquire_lock,
    build_lock,
    read_lock_owner,
    release_lock,
)


@pytest.fixture
def lock_path(tmp_path: Path) -> Path:
    """Lock file location inside a not-yet-created directory."""
    return tmp_path / ".appctl" / "build.lock"


class TestAcquireLock:
    """Tests for acquire_lock function."""

    def test_acquire_creates_lock_file_with_own_pid(self, lock_path: Path) -> None:
        """Acquiring with no existing file writes our PID."""
        pid = acquire_lock(lock_path)
        assert pid == os.getpid()
        assert lock_path.read_text() == str(os.getpid())

    def test_second_acquire_fails_without_modifying_file(self, lock_path: Path) -> None:
        """A held lock cannot be acquired again, even by the same process."""
        acquire_lock(lock_path)
        before = lock_path.read_text()

        with pytest.raises(LockError, match="Build already in progress"):
            acquire_lock(lock_path)

        assert lock_path.read_text() == before

    def test_error_names_owner_and_path(self, lock_path: Path) -> None:
        """LockError reports the recorded owner and how to clear the lock."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("4242")

        with (
            mock.patch("appctl.core.lock_manager.psutil.pid_exists", return_value=True),
            pytest.raises(LockError) as exc_info,
        ):
            acquire_lock(lock_path)

        assert exc_info.value.owner == "4242"
        assert "4242" in str(exc_info.value)
        assert str(lock_path) in str(exc_info.value)
        assert "stale" not in str(exc_info.value)

    def test_dead_owner_is_reported_but_not_cleared(self, lock_path: Path) -> None:
        """No automatic staleness recovery: the file stays, the message hints."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("999999")

        with (
            mock.patch("appctl.core.lock_manager.psutil.pid_exists", return_value=False),
            pytest.raises(LockError, match="stale"),
        ):
            acquire_lock(lock_path)

        assert lock_path.read_text() == "999999"

    def test_garbage_content_still_blocks(self, lock_path: Path) -> None:
        """Content that is not a PID still counts as a held lock."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("not-a-pid")

        with pytest.raises(LockError) as exc_info:
            acquire_lock(lock_path)
        assert exc_info.value.owner == "not-a-pid"

    def test_lock_dir_blocked_by_file(self, lock_path: Path) -> None:
        """A regular file where the lock directory belongs is an access error."""
        lock_path.parent.write_text("not a directory")

        with pytest.raises(LockAccessError, match="Cannot access build lock"):
            acquire_lock(lock_path)

        assert lock_path.parent.read_text() == "not a directory"

    def test_unreadable_existing_lock(self, lock_path: Path) -> None:
        """A directory sitting at the lock path cannot be read as an owner."""
        lock_path.mkdir(parents=True)

        with pytest.raises(LockAccessError) as exc_info:
            acquire_lock(lock_path)

        assert exc_info.value.path == lock_path
        assert lock_path.is_dir()


class TestReleaseLock:
    """Tests for release_lock function."""

    def test_owner_release_removes_file(self, lock_path: Path) -> None:
        """Lock file contains PID 100, current PID is 100: file is deleted."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("100")

        with mock.patch("appctl.core.lock_manager.os.getpid", return_value=100):
            assert release_lock(lock_path) is True

        assert not lock_path.exists()

    def test_non_owner_release_keeps_file_and_warns(
        self, lock_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Lock file contains PID 999, current PID is 100: file stays, warning logged."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("999")

        with (
            caplog.at_level(logging.WARNING, logger="appctl"),
            mock.patch("appctl.core.lock_manager.os.getpid", return_value=100),
        ):
            assert release_lock(lock_path) is False

        assert lock_path.read_text() == "999"
        assert any("999" in r.getMessage() for r in caplog.records)
        assert all(r.levelno == logging.WARNING for r in caplog.records)

    def test_release_missing_file_warns(
        self, lock_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Releasing a lock that is gone is a warning, not an error."""
        with caplog.at_level(logging.WARNING, logger="appctl"):
            assert release_lock(lock_path) is False
        assert "already removed" in caplog.text

    def test_acquire_then_release_round_trip(self, lock_path: Path) -> None:
        """A lock acquired by this process is released by it."""
        acquire_lock(lock_path)
        assert release_lock(lock_path) is True
        assert read_lock_owner(lock_path) is None


class TestBuildLock:
    """Tests for the build_lock context manager."""

    def test_lock_held_inside_block(self, lock_path: Path) -> None:
        """The file exists with our PID inside the block and is gone after."""
        with build_lock(lock_path) as pid:
            assert read_lock_owner(lock_path) == str(pid)
        assert not lock_path.exists()

    def test_lock_released_when_block_raises(self, lock_path: Path) -> None:
        """Release happens on the exception path too."""
        with pytest.raises(RuntimeError), build_lock(lock_path):
            raise RuntimeError("step failed")
        assert not lock_path.exists()

    def test_contended_lock_runs_nothing(self, lock_path: Path) -> None:
        """When the lock is held elsewhere the block body never runs."""
        lock_path.parent.mkdir(parents=True)
        lock_path.write_text("12345")
        body = mock.Mock()

        with pytest.raises(LockError), build_lock(lock_path):
            body()

        body.assert_not_called()
        assert lock_path.read_text() == "12345"
