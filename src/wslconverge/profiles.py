"""Provisioning profile catalog."""

from __future__ import annotations

from wslconverge.errors import ExitCode, WslConvergeError

PROFILES = ("work", "uni", "private")


def profile_usage() -> str:
    return "Expected one of: " + "|".join(PROFILES)


def validate_profile(profile: str) -> str:
    normalized = profile.strip()
    if normalized not in PROFILES:
        raise WslConvergeError(
            f"Invalid profile '{profile}'",
            code=ExitCode.INVALID_ARGS,
            hint=profile_usage(),
        )
    return normalized
