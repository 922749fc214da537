"""Local file system operations used by the agent."""

import shutil
from pathlib import Path


class LocalFileSystem:
    """Thin pathlib wrapper. Every call completes before returning; OSError propagates."""

    def exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def is_dir(self, path: str | Path) -> bool:
        return Path(path).is_dir()

    def read_text(self, path: str | Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: str | Path, content: str):
        Path(path).write_text(content, encoding="utf-8")

    def delete(self, path: str | Path):
        Path(path).unlink()

    def make_dirs(self, path: str | Path):
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy(self, src: str | Path, dst: str | Path):
        shutil.copyfile(src, dst)

    def mtime(self, path: str | Path) -> float:
        return Path(path).stat().st_mtime
