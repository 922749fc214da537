"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".task_manager" / "tm.db")
    workspace_root: Path = field(default_factory=lambda: Path.cwd().parent)
    log_dir: Path = field(default_factory=lambda: Path.home() / ".task_manager" / "logs")
    command_timeout: float = 300.0

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("TM_DB_PATH"):
            config.db_path = Path(db)

        if workspace := os.environ.get("TM_WORKSPACE"):
            config.workspace_root = Path(workspace)

        if log_dir := os.environ.get("TM_LOG_DIR"):
            config.log_dir = Path(log_dir)

        if timeout := os.environ.get("TM_COMMAND_TIMEOUT"):
            config.command_timeout = float(timeout)

        return config


def get_config() -> Config:
    return Config.from_env()
