"""XDG config loading for the bootstrapper and provisioning flows."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import TypedDict

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/wslconverge/config.toml").expanduser()
DEFAULT_DISTROS = ("work", "uni", "private")
DEFAULT_INSTALL_BASE = "~/WSL"
DEFAULT_WSL_VERSION = 2
DEFAULT_IMAGE_EXTENSIONS = (".wsl", ".tar")
DEFAULT_ADMIN_USER = "root"
DEFAULT_PLACEHOLDER_USER = "nobody"
DEFAULT_MIN_UID = 1000
DEFAULT_OOBE_COMMAND = ("/usr/libexec/wsl/oobe.sh",)
DEFAULT_WSL_CONF_PATH = "/etc/wsl.conf"
DEFAULT_CLONE_DIR = "~/src/wsl-ansible"
DEFAULT_PREREQUISITE_PACKAGES = ("python3", "python3-libselinux", "ansible")
DEFAULT_SITE_PLAYBOOK = "playbooks/site.yml"
DEFAULT_HEALTHCHECK_PLAYBOOK = "playbooks/healthcheck.yml"
INSTALL_BASE_ENV = "WSLCONVERGE_INSTALL_BASE"

_DISTRO_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class PlaybookPaths(TypedDict):
    site: str
    healthcheck: str


class BootstrapConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    distros: list[str] = Field(default_factory=lambda: list(DEFAULT_DISTROS))
    install_base: str = DEFAULT_INSTALL_BASE
    wsl_version: int = Field(default=DEFAULT_WSL_VERSION, ge=1, le=2)
    image_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS))
    admin_user: str = DEFAULT_ADMIN_USER
    placeholder_user: str = DEFAULT_PLACEHOLDER_USER
    min_uid: int = Field(default=DEFAULT_MIN_UID, ge=1)
    oobe_command: list[str] = Field(default_factory=lambda: list(DEFAULT_OOBE_COMMAND))
    wsl_conf_path: str = DEFAULT_WSL_CONF_PATH
    clone_dir: str = DEFAULT_CLONE_DIR
    prerequisite_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PREREQUISITE_PACKAGES)
    )
    playbooks: PlaybookPaths = Field(
        default_factory=lambda: PlaybookPaths(
            site=DEFAULT_SITE_PLAYBOOK,
            healthcheck=DEFAULT_HEALTHCHECK_PLAYBOOK,
        )
    )

    @field_validator("distros")
    @classmethod
    def _validate_distros(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one distro name is required")
        for name in value:
            if not _DISTRO_NAME.match(name):
                raise ValueError(f"Invalid distro name: {name}")
        if len(set(value)) != len(value):
            raise ValueError("Distro names must be unique")
        return value

    @field_validator("image_extensions")
    @classmethod
    def _validate_extensions(cls, value: list[str]) -> list[str]:
        if not value or any(not item.startswith(".") for item in value):
            raise ValueError("Image extensions must start with '.'")
        return [item.lower() for item in value]

    def install_base_path(self) -> Path:
        return Path(self.install_base).expanduser()

    def install_dir(self, distro: str) -> Path:
        return self.install_base_path() / distro


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _string_list(value: object) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items or None


def _set_if_valid(cfg: BootstrapConfig, field: str, value: object) -> None:
    try:
        setattr(cfg, field, value)
    except ValueError:
        pass


def _sanitize(raw: dict[str, object]) -> BootstrapConfig:
    cfg = BootstrapConfig()

    for field in ("distros", "image_extensions", "oobe_command", "prerequisite_packages"):
        items = _string_list(raw.get(field))
        if items is not None:
            _set_if_valid(cfg, field, items)

    for field in ("install_base", "admin_user", "placeholder_user", "wsl_conf_path", "clone_dir"):
        value = raw.get(field)
        if isinstance(value, str) and value.strip():
            _set_if_valid(cfg, field, value.strip())

    for field in ("wsl_version", "min_uid"):
        value = raw.get(field)
        if isinstance(value, int) and not isinstance(value, bool):
            _set_if_valid(cfg, field, value)

    playbooks = raw.get("playbooks")
    if isinstance(playbooks, dict):
        site = playbooks.get("site", cfg.playbooks["site"])
        healthcheck = playbooks.get("healthcheck", cfg.playbooks["healthcheck"])
        cfg.playbooks = PlaybookPaths(
            site=site if isinstance(site, str) and site.strip() else cfg.playbooks["site"],
            healthcheck=(
                healthcheck
                if isinstance(healthcheck, str) and healthcheck.strip()
                else cfg.playbooks["healthcheck"]
            ),
        )

    return cfg


def _apply_environment(cfg: BootstrapConfig) -> BootstrapConfig:
    env_install_base = os.getenv(INSTALL_BASE_ENV, "").strip()
    if env_install_base:
        cfg.install_base = env_install_base
    return cfg


def load_config(path: str | Path | None = None) -> BootstrapConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_environment(BootstrapConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_environment(BootstrapConfig())
    if not isinstance(raw, dict):
        return _apply_environment(BootstrapConfig())
    return _apply_environment(_sanitize(raw))
