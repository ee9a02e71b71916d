"""Guards that must hold before provisioning touches the distro."""

from __future__ import annotations

import logging as py_logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from wslconverge.errors import ExitCode, WslConvergeError

logger = py_logging.getLogger(__name__)

_ROOT_REMEDIATION = (
    "The WSL default user is not set correctly. Run the Windows bootstrap again "
    "or set the default user for this distro manually, then verify with `id -un`."
)


def require_non_root(geteuid: Callable[[], int] | None = None) -> None:
    euid_func = geteuid or getattr(os, "geteuid", None)
    if euid_func is None:
        return
    if euid_func() == 0:
        logger.error("Provisioning invoked as root")
        raise WslConvergeError(
            "Provisioning must NOT be run as root",
            code=ExitCode.PRECONDITION_ERROR,
            hint=_ROOT_REMEDIATION,
        )


def require_valid_home(home: str | None = None) -> Path:
    raw = home if home is not None else os.environ.get("HOME", "")
    if not raw or raw == "/" or not Path(raw).is_dir():
        raise WslConvergeError(
            f"HOME is invalid ('{raw}')",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Log in as your normal user so HOME points at your home directory.",
        )
    return Path(raw)


def require_tool(
    name: str,
    *,
    hint: str = "",
    which: Callable[[str], str | None] | None = None,
) -> str:
    which_func = which or shutil.which
    location = which_func(name)
    if not location:
        logger.error("Required tool missing: %s", name)
        raise WslConvergeError(
            f"{name} not found",
            code=ExitCode.PRECONDITION_ERROR,
            hint=hint or f"Install {name} and retry.",
        )
    return location
