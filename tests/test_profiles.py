from __future__ import annotations

import pytest

from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.profiles import PROFILES, validate_profile


@pytest.mark.parametrize("profile", PROFILES)
def test_known_profiles_are_accepted(profile: str) -> None:
    assert validate_profile(profile) == profile


def test_unknown_profile_reports_usage() -> None:
    with pytest.raises(WslConvergeError) as exc:
        validate_profile("gaming")
    assert exc.value.code == ExitCode.INVALID_ARGS
    assert exc.value.hint == "Expected one of: work|uni|private"
