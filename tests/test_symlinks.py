#!/usr/bin/env python3
"""
Tests for symlink synchronization and backups.
"""

import os
from datetime import datetime
from pathlib import Path

import pytest

from dotstrap.core.errors import SymlinkConflict
from dotstrap.core.symlinks import (
    BackupSet,
    LinkSpec,
    LinkStatus,
    SymlinkSynchronizer,
    SyncStatus,
)

STAMP = datetime(2024, 5, 1, 12, 30, 0)


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def dotfiles(tmp_path):
    root = tmp_path / "dotfiles"
    (root / "config" / "git").mkdir(parents=True)
    (root / ".bashrc").write_text("# managed bashrc\n")
    (root / "config" / "starship.toml").write_text("add_newline = false\n")
    (root / "config" / "git" / "config").write_text("[user]\n")
    return root


def synchronizer(dotfiles, home, stamp=STAMP):
    return SymlinkSynchronizer(dotfiles, BackupSet(home, stamp))


class TestBackupSet:
    """Test BackupSet."""

    def test_name_and_lazy_creation(self, home):
        backup = BackupSet(home, STAMP)
        assert backup.path == home / ".dotfiles_backup_20240501_123000"
        assert backup.created is False

    def test_entries_keep_home_relative_path(self, home):
        original = home / ".config" / "starship.toml"
        original.parent.mkdir()
        original.write_text("old")

        target = BackupSet(home, STAMP).store(original)

        assert target == home / ".dotfiles_backup_20240501_123000" / ".config" / "starship.toml"
        assert target.read_text() == "old"
        assert not original.exists()

    def test_existing_entry_is_a_conflict(self, home):
        backup = BackupSet(home, STAMP)
        original = home / ".bashrc"
        original.write_text("one")
        backup.store(original)
        original.write_text("two")

        with pytest.raises(SymlinkConflict):
            backup.store(original)
        assert original.read_text() == "two"


class TestSymlinkSynchronizer:
    """Test SymlinkSynchronizer."""

    def test_creates_missing_links(self, dotfiles, home):
        links = [
            LinkSpec(".bashrc", home / ".bashrc"),
            LinkSpec("config/starship.toml", home / ".config" / "starship.toml"),
        ]

        report = synchronizer(dotfiles, home).sync(links)

        assert report.status is SyncStatus.SUCCESS
        assert report.count(LinkStatus.LINKED) == 2
        assert report.backup_dir is None
        assert (home / ".bashrc").is_symlink()
        assert (home / ".config" / "starship.toml").read_text() == "add_newline = false\n"

    def test_backs_up_regular_file(self, dotfiles, home):
        (home / ".bashrc").write_text("# precious user content\n")

        report = synchronizer(dotfiles, home).sync([LinkSpec(".bashrc", home / ".bashrc")])

        result = report.results[0]
        assert result.status is LinkStatus.BACKED_UP
        assert result.backup_path.read_text() == "# precious user content\n"
        assert report.backup_dir == home / ".dotfiles_backup_20240501_123000"
        assert os.readlink(home / ".bashrc") == str(dotfiles / ".bashrc")

    def test_backs_up_directory_whole(self, dotfiles, home):
        existing = home / ".config" / "git"
        existing.mkdir(parents=True)
        (existing / "config").write_text("[core]\n")
        (existing / "ignore").write_text("*.swp\n")

        report = synchronizer(dotfiles, home).sync([LinkSpec("config/git", existing)])

        backup = report.results[0].backup_path
        assert (backup / "config").read_text() == "[core]\n"
        assert (backup / "ignore").read_text() == "*.swp\n"
        assert existing.is_symlink()

    def test_second_run_is_a_no_op(self, dotfiles, home):
        (home / ".bashrc").write_text("old\n")
        links = [LinkSpec(".bashrc", home / ".bashrc")]
        synchronizer(dotfiles, home).sync(links)

        later = datetime(2024, 5, 1, 12, 31, 0)
        report = synchronizer(dotfiles, home, later).sync(links)

        assert report.status is SyncStatus.NO_CHANGES
        assert report.results[0].status is LinkStatus.UNCHANGED
        assert report.backup_dir is None
        assert not (home / ".dotfiles_backup_20240501_123100").exists()
        backups = [p for p in home.iterdir() if p.name.startswith(".dotfiles_backup_")]
        assert len(backups) == 1

    def test_correct_link_is_not_rewritten(self, dotfiles, home):
        destination = home / ".bashrc"
        os.symlink(dotfiles / ".bashrc", destination)
        before = os.lstat(destination)
        os.utime(home, (1_000_000, 1_000_000))

        report = synchronizer(dotfiles, home).sync([LinkSpec(".bashrc", destination)])

        assert report.results[0].status is LinkStatus.UNCHANGED
        assert os.lstat(destination).st_ino == before.st_ino
        assert os.stat(home).st_mtime == 1_000_000

    def test_relative_link_to_source_is_recognized(self, dotfiles, home):
        destination = home / ".bashrc"
        os.symlink(os.path.relpath(dotfiles / ".bashrc", home), destination)

        report = synchronizer(dotfiles, home).sync([LinkSpec(".bashrc", destination)])

        assert report.results[0].status is LinkStatus.UNCHANGED

    def test_foreign_and_dangling_links_are_replaced(self, dotfiles, home):
        os.symlink("/nonexistent/bashrc", home / ".bashrc")
        other = home / "elsewhere.toml"
        other.write_text("x")
        (home / ".config").mkdir()
        os.symlink(other, home / ".config" / "starship.toml")
        links = [
            LinkSpec(".bashrc", home / ".bashrc"),
            LinkSpec("config/starship.toml", home / ".config" / "starship.toml"),
        ]

        report = synchronizer(dotfiles, home).sync(links)

        assert report.count(LinkStatus.RELINKED) == 2
        assert report.backup_dir is None
        assert os.readlink(home / ".bashrc") == str(dotfiles / ".bashrc")
        assert other.read_text() == "x"

    def test_missing_source_is_linked_anyway(self, dotfiles, home):
        report = synchronizer(dotfiles, home).sync([LinkSpec(".inputrc", home / ".inputrc")])

        assert report.results[0].status is LinkStatus.LINKED
        assert (home / ".inputrc").is_symlink()

    def test_conflict_skips_only_that_link(self, dotfiles, home):
        (home / ".bashrc").write_text("user\n")
        # Occupy the backup slot so the move is refused
        occupied = home / ".dotfiles_backup_20240501_123000" / ".bashrc"
        occupied.parent.mkdir()
        occupied.write_text("earlier backup\n")
        links = [
            LinkSpec(".bashrc", home / ".bashrc"),
            LinkSpec("config/starship.toml", home / ".config" / "starship.toml"),
        ]

        report = synchronizer(dotfiles, home).sync(links)

        assert report.status is SyncStatus.PARTIAL
        assert report.failed == 1
        assert report.results[0].status is LinkStatus.FAILED
        assert report.results[1].status is LinkStatus.LINKED
        assert (home / ".bashrc").read_text() == "user\n"
        assert occupied.read_text() == "earlier backup\n"

    def test_all_links_failing_is_an_error(self, dotfiles, home):
        blocker = home / ".config"
        blocker.write_text("a file where a directory should be")

        report = synchronizer(dotfiles, home).sync(
            [LinkSpec("config/starship.toml", blocker / "starship.toml")]
        )

        assert report.status is SyncStatus.ERROR
        assert len(report.errors) == 1
        assert blocker.read_text() == "a file where a directory should be"
