"""Subprocess helpers for administrative probes."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SubprocessError(Exception):
    """Raised when a probe command fails."""

    pass


def run_command(cmd: list[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess[str]:
    """
    Run a probe command, capturing its output.

    Args:
        cmd: Command and arguments as list (safe, no shell injection)
        cwd: Working directory (optional)

    Returns:
        CompletedProcess with results

    Raises:
        SubprocessError: If the binary is missing or exits non-zero
    """
    logger.debug(f"Probing: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
        )
    except FileNotFoundError as e:
        raise SubprocessError(f"Binary not found: {cmd[0]}") from e

    if result.returncode != 0:
        error_msg = f"Command failed: {' '.join(cmd)}"
        if result.stderr:
            error_msg += f"\n{result.stderr}"
        logger.debug(error_msg)
        raise SubprocessError(error_msg)

    return result


def is_repository(path: Path, admin_binary: str = "svnadmin") -> bool:
    """
    Check that path is a Subversion repository.

    Runs ``svnadmin lstxns``, a fast read-only operation that fails on
    anything that is not a repository.
    """
    try:
        run_command([admin_binary, "lstxns", str(path)])
    except SubprocessError as e:
        logger.debug(f"Repository probe failed for {path}: {e}")
        return False
    return True
