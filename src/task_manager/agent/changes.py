"""Apply file changes under a path policy, with backup and rollback."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from task_manager.agent.errors import FileSystemError, PolicyError
from task_manager.agent.models import CodeChange

logger = logging.getLogger(__name__)

# Change types whose previous content is always saved before they touch the disk.
# A create is backed up only when its target already exists.
BACKED_UP_TYPES = ("modify", "delete")


@dataclass
class RollbackReport:
    reverted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed and not self.skipped


class ChangeApplicator:
    def __init__(
        self,
        files,
        project_root: Path,
        allowed_patterns: tuple[str, ...] = (),
        forbidden_patterns: tuple[str, ...] = (),
    ):
        self.files = files
        self.project_root = Path(project_root)
        self.allowed_patterns = tuple(allowed_patterns)
        self.forbidden_patterns = tuple(forbidden_patterns)

    def resolve(self, file_path: str) -> Path:
        return self.project_root / file_path

    def is_allowed(self, file_path: str) -> bool:
        if any(pattern in file_path for pattern in self.forbidden_patterns):
            return False
        if self.allowed_patterns:
            return any(pattern in file_path for pattern in self.allowed_patterns)
        return True

    def check_policy(self, change: CodeChange):
        if not self.is_allowed(change.file_path):
            raise PolicyError(f"File path not allowed by policy: {change.file_path}")

    def backup(self, change: CodeChange):
        """Copy the live file aside and record the backup path on the change."""
        if change.backup_path:
            return
        full_path = self.resolve(change.file_path)
        if change.change_type not in BACKED_UP_TYPES and not self.files.exists(full_path):
            return
        self.check_policy(change)
        backup_path = f"{full_path}.backup-{int(time.time() * 1000)}"
        try:
            self.files.copy(full_path, backup_path)
        except OSError as e:
            logger.error("Failed to create backup of %s: %s", change.file_path, e)
            raise FileSystemError(f"Failed to back up {change.file_path}: {e}") from e
        change.backup_path = backup_path
        logger.debug("Created backup of %s", change.file_path)

    def apply(self, change: CodeChange) -> bool:
        """Apply one change. Returns False when the path policy skips it."""
        try:
            self.check_policy(change)
        except PolicyError as e:
            logger.warning("Skipping change: %s", e)
            return False

        if change.content is None and change.change_type != "delete":
            raise FileSystemError(f"Content required for {change.change_type} operation")

        self.backup(change)

        full_path = self.resolve(change.file_path)
        try:
            if change.change_type == "delete":
                self.files.delete(full_path)
            else:
                self.files.make_dirs(full_path.parent)
                self.files.write_text(full_path, change.content)
        except OSError as e:
            logger.error("Failed to apply change to %s: %s", change.file_path, e)
            raise FileSystemError(f"Failed to {change.change_type} {change.file_path}: {e}") from e

        logger.info("Applied %s to %s", change.change_type, change.file_path)
        return True

    def rollback(self, changes: list[CodeChange]) -> RollbackReport:
        """Undo changes in reverse order, recording what could not be reverted."""
        report = RollbackReport()
        if changes:
            logger.warning("Rolling back %d change(s)...", len(changes))

        for change in reversed(changes):
            full_path = self.resolve(change.file_path)
            try:
                if change.backup_path:
                    self.files.copy(change.backup_path, full_path)
                    self.files.delete(change.backup_path)
                    change.backup_path = None
                elif change.change_type == "create":
                    if self.files.exists(full_path):
                        self.files.delete(full_path)
                else:
                    logger.warning("Cannot roll back %s: no backup", change.file_path)
                    report.skipped.append(change.file_path)
                    continue
            except OSError as e:
                logger.error("Failed to roll back %s: %s", change.file_path, e)
                report.failed.append((change.file_path, str(e)))
                continue
            report.reverted.append(change.file_path)
            logger.debug("Rolled back %s: %s", change.change_type, change.file_path)

        return report

    def discard_backups(self, changes: list[CodeChange]):
        """Remove backup files that are no longer needed."""
        for change in changes:
            if not change.backup_path:
                continue
            try:
                if self.files.exists(change.backup_path):
                    self.files.delete(change.backup_path)
                change.backup_path = None
            except OSError as e:
                logger.warning("Could not remove backup %s: %s", change.backup_path, e)
