"""dnf package installation."""

from __future__ import annotations

import logging as py_logging
import shutil
import subprocess
from collections.abc import Callable, Sequence

from wslconverge.errors import ExitCode, WslConvergeError, combined_output

logger = py_logging.getLogger(__name__)


def dnf_install_command(packages: Sequence[str]) -> list[str]:
    if not packages:
        raise WslConvergeError(
            "No packages to install.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Configure at least one prerequisite package.",
        )
    return ["sudo", "dnf", "install", "-y", *packages]


def install_packages(packages: Sequence[str], *, runner: callable = subprocess.run) -> None:
    command = dnf_install_command(packages)
    logger.info("Installing packages: %s", " ".join(packages))
    # Not captured: sudo may prompt for a password.
    result = runner(command, check=False)
    if result.returncode != 0:
        raise WslConvergeError(
            f"dnf install failed (exit {result.returncode})",
            code=ExitCode.COMMAND_ERROR,
            hint=combined_output(getattr(result, "stdout", ""), getattr(result, "stderr", ""))
            or "Inspect the dnf output above.",
        )


def ensure_git(
    *,
    runner: callable = subprocess.run,
    which: Callable[[str], str | None] | None = None,
) -> bool:
    which_func = which or shutil.which
    if which_func("git"):
        return False
    logger.info("Installing git (required to clone the repo)...")
    install_packages(["git"], runner=runner)
    return True
