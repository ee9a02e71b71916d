"""ansible-playbook invocation."""

from __future__ import annotations

import logging as py_logging
import subprocess
from pathlib import Path

from wslconverge.errors import ExitCode, WslConvergeError

logger = py_logging.getLogger(__name__)


def playbook_command(playbook: str, profile: str) -> list[str]:
    return ["ansible-playbook", playbook, "-e", f"wsl_profile={profile}"]


def run_playbook(
    playbook: str,
    profile: str,
    *,
    cwd: Path,
    runner: callable = subprocess.run,
) -> None:
    command = playbook_command(playbook, profile)
    logger.debug("Running %s in %s", command, cwd)
    # Output streams straight to the terminal.
    result = runner(command, cwd=cwd, check=False)
    if result.returncode != 0:
        logger.error("Playbook %s failed with exit code %s", playbook, result.returncode)
        raise WslConvergeError(
            f"ansible-playbook {playbook} failed (exit {result.returncode})",
            code=ExitCode.PLAYBOOK_ERROR,
            hint="Review the Ansible output above, fix the failing task, and re-run.",
        )
