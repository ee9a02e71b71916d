"""Distro lifecycle steps: import, first boot, restart verification."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.wsl.host import WslHost
from wslconverge.wsl.users import discover_non_root_users

logger = py_logging.getLogger(__name__)


@dataclass
class ImportResult:
    name: str
    install_dir: Path
    imported: bool


def validate_image(image: str | Path, extensions: Sequence[str]) -> Path:
    path = Path(image).expanduser()
    if not path.exists():
        raise WslConvergeError(
            f"Image not found: {path}",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Pass the path to a downloaded WSL image file.",
        )
    if not path.is_file():
        raise WslConvergeError(
            f"Image path is not a file: {path}",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Pass the image file itself, not its directory.",
        )
    lowered = path.name.lower()
    if not any(lowered.endswith(ext.lower()) for ext in extensions):
        raise WslConvergeError(
            f"Unexpected image file type: {path.name}",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Expected a file ending in " + " or ".join(extensions) + ".",
        )
    if path.stat().st_size == 0:
        raise WslConvergeError(
            f"Image file is empty: {path}",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Download the image again.",
        )
    return path


def ensure_distro_imported(
    host: WslHost,
    name: str,
    install_dir: Path,
    image: Path,
    *,
    version: int = 2,
    registered: Sequence[str] | None = None,
) -> ImportResult:
    existing = host.list_distributions() if registered is None else list(registered)
    if name in existing:
        logger.info("Distro %s already registered; skipping import", name)
        return ImportResult(name=name, install_dir=install_dir, imported=False)

    install_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Importing distro %s into %s", name, install_dir)
    result = host.import_distro(name, install_dir, image, version=version)
    if not result.ok:
        logger.error("Import of distro=%s failed: %s", name, result.output)
        raise WslConvergeError(
            f"wsl --import failed for '{name}' (exit {result.returncode}).",
            code=ExitCode.COMMAND_ERROR,
            hint=result.output or "Inspect the image and the WSL installation.",
        )
    return ImportResult(name=name, install_dir=install_dir, imported=True)


def run_first_boot(
    host: WslHost,
    distro: str,
    oobe_command: Sequence[str],
    *,
    admin_user: str = "root",
    min_uid: int = 1000,
    placeholder_user: str = "nobody",
) -> list[str]:
    """Run the interactive first-boot setup and require a non-root account.

    The exit status of the setup script is not trusted in either direction;
    the account database is the only source of truth.
    """
    logger.info("Running first-boot setup for distro=%s", distro)
    result = host.run_in_session(distro, list(oobe_command), user=admin_user, interactive=True)
    logger.debug("First-boot setup exited code=%s distro=%s", result.returncode, distro)

    candidates = discover_non_root_users(
        host,
        distro,
        admin_user=admin_user,
        min_uid=min_uid,
        placeholder_user=placeholder_user,
    )
    if not candidates:
        logger.error("First-boot setup created no non-root user in distro=%s", distro)
        raise WslConvergeError(
            f"First-boot setup of '{distro}' did not create a non-root user.",
            code=ExitCode.POSTCONDITION_ERROR,
            hint="Rerun the bootstrap and complete account creation when prompted.",
        )
    return candidates


def verify_default_user(host: WslHost, distro: str, *, admin_user: str = "root") -> str:
    host.terminate(distro)
    identity = host.query_default_user(distro)
    if identity == admin_user:
        logger.error("Default user of distro=%s is still %s after restart", distro, admin_user)
        raise WslConvergeError(
            f"Default user of '{distro}' is still '{admin_user}'.",
            code=ExitCode.POSTCONDITION_ERROR,
            hint=f"Inspect /etc/wsl.conf with `wsl -d {distro} -u {admin_user} -- cat /etc/wsl.conf`.",
        )
    logger.info("Verified default user=%s for distro=%s", identity, distro)
    return identity
