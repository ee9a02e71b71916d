"""Linux-filesystem clone of the provisioning repository.

A checkout under /mnt/c (NTFS) is reported as world-writable inside WSL, and
Ansible then refuses to use the ansible.cfg found there. Provisioning
therefore always runs from a clone on the Linux filesystem.
"""

from __future__ import annotations

import logging as py_logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from wslconverge.errors import ExitCode, WslConvergeError

logger = py_logging.getLogger(__name__)


@dataclass
class CloneResult:
    path: Path
    origin: str
    cloned: bool


def _run_git(args: list[str], runner: callable, *, cwd: Path | None = None) -> subprocess.CompletedProcess:
    return runner(["git", *args], capture_output=True, text=True, check=False, cwd=cwd)


def resolve_origin_url(cwd: Path | None = None, *, runner: callable = subprocess.run) -> str:
    inside = _run_git(["rev-parse", "--is-inside-work-tree"], runner, cwd=cwd)
    if inside.returncode != 0 or inside.stdout.strip() != "true":
        raise WslConvergeError(
            "Setup must be run from within the repository so it can discover the origin URL",
            code=ExitCode.PRECONDITION_ERROR,
            hint="cd into the repo on Windows or Linux and run `wslconverge setup <profile>`.",
        )

    origin = _run_git(["config", "--get", "remote.origin.url"], runner, cwd=cwd)
    url = origin.stdout.strip() if origin.returncode == 0 else ""
    if not url:
        raise WslConvergeError(
            "Could not determine remote.origin.url",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Ensure the repo has an 'origin' remote (check `git remote -v`).",
        )
    return url


def ensure_linux_clone(origin: str, target: Path, *, runner: callable = subprocess.run) -> CloneResult:
    """Clone `origin` into `target` once; an existing clone is never updated."""
    target.parent.mkdir(parents=True, exist_ok=True)

    if not (target / ".git").is_dir():
        logger.info("Cloning repo into Linux filesystem: %s", target)
        result = _run_git(["clone", origin, str(target)], runner)
        if result.returncode != 0:
            logger.error("git clone failed: %s", result.stderr.strip())
            raise WslConvergeError(
                f"git clone of {origin} failed",
                code=ExitCode.COMMAND_ERROR,
                hint=(result.stderr or "Check network access and credentials.").strip(),
            )
        return CloneResult(path=target, origin=origin, cloned=True)

    existing = _run_git(["-C", str(target), "config", "--get", "remote.origin.url"], runner)
    existing_url = existing.stdout.strip() if existing.returncode == 0 else ""
    if existing_url and existing_url != origin:
        raise WslConvergeError(
            f"Existing clone at {target} points to a different origin "
            f"(existing: {existing_url}, expected: {origin})",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Delete the directory or fix its remote, then re-run.",
        )
    logger.info("Linux clone already exists; not updating it automatically")
    logger.info('If you want updates, run: git -C "%s" pull', target)
    return CloneResult(path=target, origin=origin, cloned=False)
