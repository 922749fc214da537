"""Exceptions raised by the autonomous agent."""


class AgentError(Exception):
    """Base class for agent failures."""


class ValidationError(AgentError):
    """The target project is missing or incomplete. Fatal at startup."""


class FileSystemError(AgentError):
    """A file change, backup or restore could not be performed."""


class PolicyError(FileSystemError):
    """A change targets a path the allow/forbid patterns reject."""


class CommandError(AgentError):
    """A shell command exited non-zero, timed out, or could not start."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
