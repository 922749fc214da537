"""Cheap change detection used to decide whether a full analysis is worth running."""

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from task_manager.integrations import git

logger = logging.getLogger(__name__)

FILES_PER_POTENTIAL_TASK = 5


@dataclass
class QuickScan:
    timestamp: datetime = field(default_factory=datetime.now)
    status_changed: bool = False
    recent_changes: int = 0
    dependency_changes: bool = False

    @property
    def potential_tasks(self) -> int:
        return (
            int(self.status_changed)
            + math.ceil(self.recent_changes / FILES_PER_POTENTIAL_TASK)
            + int(self.dependency_changes)
        )


class QuickScanner:
    def __init__(self, files, project_path: Path):
        self.files = files
        self.project_path = Path(project_path)
        self._last_checked: dict[Path, float] = {}

    def scan(self) -> QuickScan:
        try:
            result = QuickScan(
                status_changed=self.has_changed(self.project_path / "PROJECT_STATUS.md"),
                recent_changes=len(self.recent_changes()),
                dependency_changes=self.has_changed(self.project_path / "package-lock.json"),
            )
        except Exception:
            logger.exception("Quick scan failed")
            return QuickScan()
        logger.debug(
            "Quick scan: status changed=%s, recent changes=%d, dependency changes=%s",
            result.status_changed, result.recent_changes, result.dependency_changes,
        )
        return result

    def has_changed(self, path: Path) -> bool:
        """True if the file was modified since the previous check of it."""
        if not self.files.exists(path):
            return False
        modified = self.files.mtime(path)
        last_check = self._last_checked.get(path, 0.0)
        self._last_checked[path] = time.time()
        return modified > last_check

    def recent_changes(self) -> list[str]:
        try:
            return git.changed_files(self.project_path)
        except git.GitError as e:
            logger.debug("No recent git changes: %s", e)
            return []
