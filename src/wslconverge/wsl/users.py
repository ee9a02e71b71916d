"""Non-root account discovery and default-user selection."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from dataclasses import dataclass

from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.wsl.host import WslHost
from wslconverge.wsl.wslconf import USERNAME_PATTERN

logger = py_logging.getLogger(__name__)

Prompt = Callable[[str], str]


@dataclass(frozen=True)
class UserRecord:
    name: str
    uid: int


def parse_passwd(text: str) -> list[UserRecord]:
    records: list[UserRecord] = []
    for line in text.splitlines():
        fields = line.strip().split(":")
        if len(fields) < 3 or not fields[0]:
            continue
        try:
            uid = int(fields[2])
        except ValueError:
            logger.debug("Skipping passwd entry with non-numeric uid: %s", fields[0])
            continue
        records.append(UserRecord(name=fields[0], uid=uid))
    return records


def filter_login_candidates(
    records: list[UserRecord],
    *,
    min_uid: int = 1000,
    placeholder_user: str = "nobody",
) -> list[str]:
    return [
        record.name
        for record in records
        if record.uid >= min_uid and record.name != placeholder_user
    ]


def discover_non_root_users(
    host: WslHost,
    distro: str,
    *,
    admin_user: str = "root",
    min_uid: int = 1000,
    placeholder_user: str = "nobody",
) -> list[str]:
    """Return candidate usernames in passwd order; always a list."""
    result = host.run_in_session(distro, ["getent", "passwd"], user=admin_user)
    if not result.ok:
        logger.error("User discovery failed distro=%s output=%s", distro, result.output)
        raise WslConvergeError(
            f"Failed to read the account database of '{distro}'.",
            code=ExitCode.COMMAND_ERROR,
            hint=result.output or "Check that the distro starts correctly.",
        )
    candidates = filter_login_candidates(
        parse_passwd(result.stdout),
        min_uid=min_uid,
        placeholder_user=placeholder_user,
    )
    logger.debug("Discovered %s non-root users in distro=%s: %s", len(candidates), distro, candidates)
    return candidates


def user_exists(host: WslHost, distro: str, username: str, *, admin_user: str = "root") -> bool:
    if not USERNAME_PATTERN.fullmatch(username):
        return False
    result = host.run_in_session(distro, ["id", "-u", username], user=admin_user)
    return result.ok


def select_default_user(
    host: WslHost,
    distro: str,
    candidates: list[str],
    *,
    prompt: Prompt = input,
    admin_user: str = "root",
) -> str:
    if not candidates:
        raise WslConvergeError(
            f"No non-root user exists in '{distro}'.",
            code=ExitCode.POSTCONDITION_ERROR,
            hint=f"Run `wsl -d {distro}` and complete account creation.",
        )
    if len(candidates) == 1:
        logger.info("Auto-selected default user=%s for distro=%s", candidates[0], distro)
        return candidates[0]

    suggestion = candidates[0]
    question = (
        f"Multiple users found in '{distro}' ({', '.join(candidates)}). "
        f"Default user [{suggestion}]: "
    )
    for attempt in range(2):
        answer = prompt(question).strip() or suggestion
        if user_exists(host, distro, answer, admin_user=admin_user):
            logger.info("Selected default user=%s for distro=%s", answer, distro)
            return answer
        logger.warning(
            "User '%s' does not exist in distro=%s (attempt %s/2)", answer, distro, attempt + 1
        )

    raise WslConvergeError(
        f"No valid default user selected for '{distro}'.",
        code=ExitCode.VALIDATION_ERROR,
        hint="Rerun the bootstrap and enter one of: " + ", ".join(candidates),
    )
