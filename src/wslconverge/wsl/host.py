"""Narrow capability interface over the `wsl.exe` host tool."""

from __future__ import annotations

import logging as py_logging
import platform
import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from wslconverge.errors import ExitCode, WslConvergeError, combined_output

logger = py_logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class SessionResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return combined_output(self.stdout, self.stderr)


class WslHost(Protocol):
    def list_distributions(self) -> list[str]: ...

    def import_distro(
        self,
        name: str,
        install_dir: Path,
        image: Path,
        *,
        version: int,
    ) -> SessionResult: ...

    def run_in_session(
        self,
        distro: str,
        command: Sequence[str],
        *,
        user: str | None = None,
        input_text: str | None = None,
        interactive: bool = False,
    ) -> SessionResult: ...

    def terminate(self, distro: str) -> None: ...

    def query_default_user(self, distro: str) -> str: ...


def decode_process_output(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if not value:
        return ""

    # wsl.exe may emit UTF-16LE in Windows consoles.
    if b"\x00" in value:
        for encoding in ("utf-16le", "utf-16"):
            try:
                return value.decode(encoding).replace("\ufeff", "")
            except UnicodeDecodeError:
                continue

    for encoding in ("utf-8", "cp1252"):
        try:
            return value.decode(encoding)
        except UnicodeDecodeError:
            continue
    return value.decode("utf-8", errors="replace")


def locate_wsl_binary(
    *,
    system_name: str | None = None,
    which: Callable[[str], str | None] | None = None,
) -> str:
    system = system_name or platform.system()
    if system != "Windows":
        raise WslConvergeError(
            "The bootstrap runs on the Windows host only.",
            code=ExitCode.UNSUPPORTED_PLATFORM,
            hint="Run `wslconverge bootstrap` from PowerShell or cmd on Windows.",
        )
    which_func = which or shutil.which
    wsl_binary = which_func("wsl.exe")
    if not wsl_binary:
        raise WslConvergeError(
            "wsl.exe was not found.",
            code=ExitCode.PRECONDITION_ERROR,
            hint="Install WSL2 and ensure wsl.exe is available in PATH.",
        )
    return wsl_binary


def build_wsl_command(
    distribution: str,
    command: Sequence[str],
    *,
    user: str | None = None,
    wsl_binary: str = "wsl.exe",
) -> list[str]:
    if not distribution:
        logger.error("WSL command requested without distribution")
        raise WslConvergeError(
            "WSL distribution is required.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Name the distribution the command should run in.",
        )
    if not command:
        logger.error("WSL command requested with empty payload")
        raise WslConvergeError(
            "Runtime command is empty.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Provide a command to execute in WSL.",
        )
    prefix = [wsl_binary, "-d", distribution]
    if user:
        prefix.extend(["-u", user])
    return [*prefix, "--", *command]


class WslExeHost:
    """`WslHost` backed by the real `wsl.exe`.

    Every call blocks until the host tool returns; no timeout is applied.
    """

    def __init__(self, *, runner: Runner = subprocess.run, wsl_binary: str = "wsl.exe") -> None:
        self.runner = runner
        self.wsl_binary = wsl_binary

    def _capture(self, command: list[str], *, input_text: str | None = None) -> SessionResult:
        logger.debug("Running host command: %s", command)
        completed = self.runner(
            command,
            capture_output=True,
            text=False,
            check=False,
            input=input_text.encode("utf-8") if input_text is not None else None,
        )
        return SessionResult(
            command=command,
            returncode=completed.returncode,
            stdout=decode_process_output(completed.stdout),
            stderr=decode_process_output(completed.stderr),
        )

    def list_distributions(self) -> list[str]:
        logger.debug("Listing WSL distributions using %s -l -q", self.wsl_binary)
        result = self._capture([self.wsl_binary, "-l", "-q"])
        if not result.ok:
            # A host without any distro reports a non-zero status and a notice.
            if "no installed distributions" in result.output.lower():
                return []
            logger.error("WSL distribution listing failed: %s", result.output)
            raise WslConvergeError(
                "Failed to list WSL distributions.",
                code=ExitCode.COMMAND_ERROR,
                hint=result.output or "Check the WSL installation.",
            )
        distros: list[str] = []
        for line in result.stdout.splitlines():
            name = line.strip()
            if name and name not in distros:
                distros.append(name)
        logger.debug("Discovered %s WSL distributions", len(distros))
        return distros

    def import_distro(
        self,
        name: str,
        install_dir: Path,
        image: Path,
        *,
        version: int,
    ) -> SessionResult:
        command = [
            self.wsl_binary,
            "--import",
            name,
            str(install_dir),
            str(image),
            "--version",
            str(version),
        ]
        return self._capture(command)

    def run_in_session(
        self,
        distro: str,
        command: Sequence[str],
        *,
        user: str | None = None,
        input_text: str | None = None,
        interactive: bool = False,
    ) -> SessionResult:
        wrapped = build_wsl_command(distro, command, user=user, wsl_binary=self.wsl_binary)
        if interactive:
            logger.debug("Running interactive WSL command: %s", wrapped)
            completed = self.runner(wrapped, check=False)
            return SessionResult(command=wrapped, returncode=completed.returncode, stdout="", stderr="")
        return self._capture(wrapped, input_text=input_text)

    def terminate(self, distro: str) -> None:
        result = self._capture([self.wsl_binary, "--terminate", distro])
        if not result.ok:
            logger.error("Failed to terminate distro=%s output=%s", distro, result.output)
            raise WslConvergeError(
                f"Failed to terminate WSL distribution '{distro}'.",
                code=ExitCode.COMMAND_ERROR,
                hint=result.output or "Run `wsl --shutdown` and retry.",
            )
        logger.debug("Terminated distro=%s", distro)

    def query_default_user(self, distro: str) -> str:
        result = self.run_in_session(distro, ["id", "-un"])
        identity = result.stdout.strip()
        if not result.ok or not identity:
            logger.error("Default user query failed distro=%s output=%s", distro, result.output)
            raise WslConvergeError(
                f"Could not determine the default user of '{distro}'.",
                code=ExitCode.COMMAND_ERROR,
                hint=result.output or f"Start the distro with `wsl -d {distro}` and inspect it.",
            )
        return identity
