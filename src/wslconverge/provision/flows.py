"""Setup, converge and healthcheck flows run inside a distro."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable
from pathlib import Path

from wslconverge.config import BootstrapConfig
from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.profiles import validate_profile
from wslconverge.provision.packages import ensure_git, install_packages
from wslconverge.provision.playbook import run_playbook
from wslconverge.provision.preflight import require_non_root, require_tool, require_valid_home
from wslconverge.provision.repo import ensure_linux_clone, resolve_origin_url

logger = py_logging.getLogger(__name__)

Which = Callable[[str], str | None]


def _require_ansible(profile: str, which: Which | None) -> None:
    require_tool(
        "ansible-playbook",
        hint=f"Run `wslconverge setup {profile}` first.",
        which=which,
    )


def _require_playbook(repo_root: Path, playbook: str) -> None:
    if not (repo_root / playbook).is_file():
        raise WslConvergeError(
            f"Playbook not found: {repo_root / playbook}",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Run the command from the repository root or pass --repo.",
        )


def run_converge(
    profile: str,
    config: BootstrapConfig,
    *,
    repo_root: Path,
    runner: callable = subprocess.run,
    which: Which | None = None,
) -> None:
    profile = validate_profile(profile)
    _require_ansible(profile, which)
    playbook = config.playbooks["site"]
    _require_playbook(repo_root, playbook)
    logger.info("Full converge (packages + dotfiles + neovim) for profile: %s", profile)
    run_playbook(playbook, profile, cwd=repo_root, runner=runner)


def run_healthcheck(
    profile: str,
    config: BootstrapConfig,
    *,
    repo_root: Path,
    runner: callable = subprocess.run,
    which: Which | None = None,
    geteuid: Callable[[], int] | None = None,
    home: str | None = None,
) -> None:
    require_non_root(geteuid)
    require_valid_home(home)
    profile = validate_profile(profile)
    _require_ansible(profile, which)
    playbook = config.playbooks["healthcheck"]
    _require_playbook(repo_root, playbook)
    logger.info("Running healthcheck for profile: %s", profile)
    run_playbook(playbook, profile, cwd=repo_root, runner=runner)


def run_setup(
    profile: str,
    config: BootstrapConfig,
    *,
    cwd: Path | None = None,
    runner: callable = subprocess.run,
    which: Which | None = None,
    geteuid: Callable[[], int] | None = None,
    home: str | None = None,
) -> Path:
    require_non_root(geteuid)
    require_valid_home(home)
    profile = validate_profile(profile)
    require_tool("sudo", which=which)
    require_tool("dnf", hint="dnf is required (are you on Fedora?).", which=which)

    ensure_git(runner=runner, which=which)
    origin = resolve_origin_url(cwd, runner=runner)
    target = Path(config.clone_dir).expanduser()

    logger.info("Profile: %s", profile)
    logger.info("Repo origin: %s", origin)
    logger.info("Linux clone target: %s", target)

    clone = ensure_linux_clone(origin, target, runner=runner)

    logger.info("Installing prerequisites (ansible + dependencies)...")
    install_packages(config.prerequisite_packages, runner=runner)

    logger.info("Running full converge from Linux filesystem clone...")
    run_converge(profile, config, repo_root=clone.path, runner=runner, which=which)
    return clone.path
