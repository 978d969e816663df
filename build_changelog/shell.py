"""Shell and git utilities.

Provides a thin wrapper around subprocess for running git queries, plus
output formatting helpers for the command line.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "tag", "--list").
        cwd: Repository directory; defaults to the current directory.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail.

    Returns:
        Stripped stdout from the git command.

    Raises:
        subprocess.CalledProcessError: If check is True and git fails. The
            captured stderr is available on the exception.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
    )
    return result.stdout.strip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Written to stderr so that stdout stays clean for rendered changelogs.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}", file=sys.stderr)

