"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    PRECONDITION_ERROR = 5
    COMMAND_ERROR = 6
    VALIDATION_ERROR = 7
    UNSUPPORTED_PLATFORM = 8
    POSTCONDITION_ERROR = 9
    PLAYBOOK_ERROR = 10


@dataclass
class WslConvergeError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."


def combined_output(stdout: str | None, stderr: str | None) -> str:
    """Join captured stdout/stderr for verbatim diagnostics."""
    parts = [part.strip() for part in (stdout or "", stderr or "") if part and part.strip()]
    return "\n".join(parts)
