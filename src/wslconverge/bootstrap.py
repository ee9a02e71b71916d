"""Sequential bootstrap of the configured distros on the Windows host."""

from __future__ import annotations

import logging as py_logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from wslconverge.config import BootstrapConfig
from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.profiles import PROFILES
from wslconverge.wsl.distro import (
    ensure_distro_imported,
    run_first_boot,
    validate_image,
    verify_default_user,
)
from wslconverge.wsl.host import WslHost
from wslconverge.wsl.users import Prompt, discover_non_root_users, select_default_user
from wslconverge.wsl.wslconf import write_default_user

logger = py_logging.getLogger(__name__)


class BootstrapRequest(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    image: Path
    config: BootstrapConfig = Field(default_factory=BootstrapConfig)
    only: list[str] = Field(default_factory=list)


@dataclass
class DistroOutcome:
    name: str
    install_dir: Path
    imported: bool
    default_user: str


@dataclass
class BootstrapResult:
    outcomes: list[DistroOutcome]


def resolve_distros(config: BootstrapConfig, only: list[str]) -> list[str]:
    if not only:
        return list(config.distros)
    unknown = [name for name in only if name not in config.distros]
    if unknown:
        raise WslConvergeError(
            "Unknown distro: " + ", ".join(unknown),
            code=ExitCode.INVALID_ARGS,
            hint="Choose from: " + ", ".join(config.distros),
        )
    return [name for name in config.distros if name in only]


def bootstrap_distro(
    host: WslHost,
    name: str,
    image: Path,
    config: BootstrapConfig,
    *,
    prompt: Prompt = input,
) -> DistroOutcome:
    install_dir = config.install_dir(name)
    imported = ensure_distro_imported(
        host,
        name,
        install_dir,
        image,
        version=config.wsl_version,
    ).imported

    candidates: list[str] = []
    if not imported:
        candidates = discover_non_root_users(
            host,
            name,
            admin_user=config.admin_user,
            min_uid=config.min_uid,
            placeholder_user=config.placeholder_user,
        )
        if candidates:
            logger.info("Distro %s already has a non-root user; skipping first-boot setup", name)
    if not candidates:
        candidates = run_first_boot(
            host,
            name,
            config.oobe_command,
            admin_user=config.admin_user,
            min_uid=config.min_uid,
            placeholder_user=config.placeholder_user,
        )

    username = select_default_user(
        host,
        name,
        candidates,
        prompt=prompt,
        admin_user=config.admin_user,
    )
    write_default_user(
        host,
        name,
        username,
        conf_path=config.wsl_conf_path,
        admin_user=config.admin_user,
    )
    verified = verify_default_user(host, name, admin_user=config.admin_user)
    return DistroOutcome(name=name, install_dir=install_dir, imported=imported, default_user=verified)


def bootstrap_distros(
    request: BootstrapRequest,
    *,
    host: WslHost,
    prompt: Prompt = input,
) -> BootstrapResult:
    config = request.config
    names = resolve_distros(config, request.only)
    image = validate_image(request.image, config.image_extensions)

    install_base = config.install_base_path()
    install_base.mkdir(parents=True, exist_ok=True)
    logger.debug("Bootstrapping distros=%s image=%s base=%s", names, image, install_base)

    outcomes: list[DistroOutcome] = []
    for name in names:
        logger.info("==> Bootstrapping distro %s", name)
        outcomes.append(bootstrap_distro(host, name, image, config, prompt=prompt))
    return BootstrapResult(outcomes=outcomes)


def next_step_instructions(result: BootstrapResult) -> list[str]:
    lines = ["Bootstrap complete. Next steps (run inside each distro):"]
    for outcome in result.outcomes:
        profile = outcome.name if outcome.name in PROFILES else "<" + "|".join(PROFILES) + ">"
        lines.extend(
            [
                "",
                f"  [{outcome.name}] default user: {outcome.default_user}",
                f"    wsl -d {outcome.name}",
                f"    wslconverge setup {profile}",
                f"    wslconverge healthcheck {profile}   # optional",
            ]
        )
    return lines
