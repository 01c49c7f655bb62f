#!/usr/bin/env python3
"""
Symlink synchronization for dotstrap.

This module makes every declared destination a symlink to its source inside
the dotfiles tree. Anything already at a destination that is not a symlink is
moved into a per-run backup directory first; nothing is ever deleted.
"""

import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import SymlinkConflict
from ..utils.logger import get_logger
from ..utils.path import display_path, home_relative


@dataclass(frozen=True)
class LinkSpec:
    """One desired symlink: source relative to the dotfiles tree, absolute destination."""
    source: str
    destination: Path


class LinkStatus(Enum):
    """What synchronization did for a single link."""
    LINKED = "linked"
    RELINKED = "relinked"
    BACKED_UP = "backed_up"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class SyncStatus(Enum):
    """Overall synchronization status."""
    SUCCESS = "success"
    ERROR = "error"
    NO_CHANGES = "no_changes"
    PARTIAL = "partial"


@dataclass(frozen=True)
class LinkResult:
    """Result for one LinkSpec."""
    spec: LinkSpec
    status: LinkStatus
    backup_path: Optional[Path] = None
    error: Optional[str] = None


class SyncReport:
    """Result of a synchronization run."""

    def __init__(self):
        self.status = SyncStatus.SUCCESS
        self.results: List[LinkResult] = []
        self.errors: List[str] = []
        self.backup_dir: Optional[Path] = None

    def add(self, result: LinkResult):
        """Record the result of one link."""
        self.results.append(result)
        if result.status is LinkStatus.FAILED:
            self.errors.append(f"{result.spec.destination}: {result.error}")

    def count(self, status: LinkStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def changed(self) -> int:
        return sum(1 for r in self.results
                   if r.status not in (LinkStatus.UNCHANGED, LinkStatus.FAILED))

    @property
    def failed(self) -> int:
        return self.count(LinkStatus.FAILED)

    def finalize(self):
        """Determine overall status."""
        if self.errors:
            if len(self.errors) < len(self.results):
                self.status = SyncStatus.PARTIAL
            else:
                self.status = SyncStatus.ERROR
        elif self.changed == 0:
            self.status = SyncStatus.NO_CHANGES
        else:
            self.status = SyncStatus.SUCCESS


class BackupSet:
    """
    Per-run directory receiving displaced destinations.

    The directory is only created when the first path is stored. Entries are
    keyed by their path relative to home, so two destinations sharing a base
    name never collide.
    """

    def __init__(self, home: Path, timestamp: Optional[datetime] = None):
        self.logger = get_logger(f"{__name__}.BackupSet")
        self.home = Path(home)
        stamp = (timestamp or datetime.now()).strftime('%Y%m%d_%H%M%S')
        self.path = self.home / f".dotfiles_backup_{stamp}"

    @property
    def created(self) -> bool:
        return self.path.is_dir()

    def target_for(self, original: Path) -> Path:
        """Where a displaced path is stored inside this backup set."""
        return self.path / home_relative(original, self.home)

    def store(self, original: Path) -> Path:
        """
        Move a path whole into the backup set.

        Raises:
            SymlinkConflict: The backup entry already exists, or the move failed
        """
        target = self.target_for(original)
        if target.exists() or target.is_symlink():
            raise SymlinkConflict(f"Backup entry {target} already exists")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(original), str(target))
        except OSError as e:
            raise SymlinkConflict(f"Could not back up {original}: {e}")

        self.logger.info(f"Backed up {display_path(original, self.home)} to {target}")
        return target


class SymlinkSynchronizer:
    """Makes declared destinations symlinks to their sources."""

    def __init__(self, source_root: Path, backup_set: BackupSet):
        """
        Initialize symlink synchronizer.

        Args:
            source_root: Root of the dotfiles tree
            backup_set: Backup directory for this run
        """
        self.logger = get_logger(f"{__name__}.SymlinkSynchronizer")
        self.source_root = Path(source_root).resolve()
        self.backup_set = backup_set

    def sync(self, links: Iterable[LinkSpec]) -> SyncReport:
        """Apply every LinkSpec independently; one failure never stops the rest."""
        self.logger.info("Synchronizing dotfiles...")
        report = SyncReport()

        for spec in links:
            try:
                result = self.sync_one(spec)
            except (OSError, SymlinkConflict) as e:
                self.logger.error(f"Skipping {spec.destination}: {e}")
                result = LinkResult(spec, LinkStatus.FAILED, error=str(e))
            report.add(result)

        if self.backup_set.created:
            report.backup_dir = self.backup_set.path
        report.finalize()
        return report

    def sync_one(self, spec: LinkSpec) -> LinkResult:
        """Synchronize a single link."""
        source = self.source_root / spec.source
        destination = Path(spec.destination)

        if not (source.exists() or source.is_symlink()):
            self.logger.warning(f"Source {source} does not exist; linking anyway")

        destination.parent.mkdir(parents=True, exist_ok=True)

        if destination.is_symlink():
            if self._points_to(destination, source):
                self.logger.debug(f"Already linked: {destination}")
                return LinkResult(spec, LinkStatus.UNCHANGED)
            # A symlink holds no unique data: replace it without backup
            destination.unlink()
            self._link(source, destination)
            return LinkResult(spec, LinkStatus.RELINKED)

        backup_path = None
        if destination.exists():
            backup_path = self.backup_set.store(destination)
            if destination.exists():
                raise SymlinkConflict(
                    f"Destination {destination} still exists after backup"
                )

        self._link(source, destination)
        status = LinkStatus.BACKED_UP if backup_path else LinkStatus.LINKED
        return LinkResult(spec, status, backup_path=backup_path)

    def _link(self, source: Path, destination: Path):
        self.logger.info(f"Linking: {destination} -> {source}")
        os.symlink(source, destination)

    @staticmethod
    def _points_to(link: Path, source: Path) -> bool:
        target = os.readlink(link)
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(link), target)
        return os.path.normpath(target) == os.path.normpath(str(source))
