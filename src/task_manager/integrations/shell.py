"""Shell command execution with a per-command timeout."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from task_manager.agent.errors import CommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


@dataclass
class CommandResult:
    stdout: str
    stderr: str


class CommandRunner:
    """Runs shell command strings in a working directory."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT):
        self.default_timeout = default_timeout

    def run(
        self,
        command: str,
        cwd: str | Path,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and return its output. Raises CommandError on failure."""
        limit = timeout if timeout is not None else self.default_timeout
        logger.debug("Executing command in %s: %s", cwd, command)
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command timed out after {limit:g}s: {command}", command=command
            ) from e
        except OSError as e:
            raise CommandError(f"Command could not start: {command}: {e}", command=command) from e

        if result.stdout:
            logger.debug("Command output: %s", result.stdout.strip())
        if result.stderr:
            logger.warning("Command stderr: %s", result.stderr.strip())

        if result.returncode != 0:
            raise CommandError(
                f"Command failed with exit code {result.returncode}: {command}",
                command=command,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return CommandResult(stdout=result.stdout, stderr=result.stderr)
