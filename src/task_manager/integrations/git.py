"""Git subprocess wrappers used by the agent's change scan."""

import subprocess
from pathlib import Path


class GitError(Exception):
    """Raised when a git command fails."""


def run_git(args: list[str], cwd: str | Path | None = None) -> str:
    """Run a git command and return stdout. Raises GitError on failure."""
    cmd = ["git"] + args
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise GitError(f"git {' '.join(args)} failed: {e.stderr.strip()}") from e
    except FileNotFoundError as e:
        raise GitError("git executable not found") from e


def changed_files(cwd: str | Path, base: str = "HEAD~1", head: str = "HEAD") -> list[str]:
    """Files changed between two revisions, skipping node_modules."""
    output = run_git(["diff", "--name-only", base, head], cwd=cwd)
    return [
        line.strip()
        for line in output.split("\n")
        if line.strip() and "node_modules" not in line
    ]
