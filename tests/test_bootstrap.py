from __future__ import annotations

from pathlib import Path

import pytest

from wslconverge.bootstrap import (
    BootstrapRequest,
    BootstrapResult,
    DistroOutcome,
    bootstrap_distros,
    next_step_instructions,
    resolve_distros,
)
from wslconverge.config import BootstrapConfig
from wslconverge.errors import ExitCode, WslConvergeError

pytestmark = pytest.mark.critical_regression


def _config(tmp_path: Path, **overrides: object) -> BootstrapConfig:
    return BootstrapConfig(install_base=str(tmp_path / "WSL"), **overrides)


def _no_prompt(question: str) -> str:
    raise AssertionError(f"unexpected prompt: {question}")


def test_bootstraps_every_distro_in_order(fake_host, tmp_path: Path, image_file: Path) -> None:
    for name in ("work", "uni", "private"):
        fake_host.oobe_users[name] = [f"me{name}"]
    request = BootstrapRequest(image=image_file, config=_config(tmp_path))

    result = bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert [outcome.name for outcome in result.outcomes] == ["work", "uni", "private"]
    assert [outcome.default_user for outcome in result.outcomes] == ["mework", "meuni", "meprivate"]
    assert all(outcome.imported for outcome in result.outcomes)
    assert fake_host.wsl_conf["work"] == "[user]\ndefault=mework\n"
    assert (tmp_path / "WSL" / "uni").is_dir()
    # one distro finishes before the next starts
    touched = [call[1] for call in fake_host.calls if call[0] in {"import", "run", "terminate", "whoami"}]
    assert touched == sorted(touched, key=["work", "uni", "private"].index)


def test_rerun_skips_import_and_first_boot(fake_host, tmp_path: Path, image_file: Path) -> None:
    fake_host.registered.append("work")
    fake_host.add_users("work", "alice")
    fake_host.wsl_conf["work"] = "[boot]\nsystemd=true\n[user]\ndefault=alice\n"
    request = BootstrapRequest(image=image_file, config=_config(tmp_path), only=["work"])

    result = bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert result.outcomes[0].imported is False
    assert result.outcomes[0].default_user == "alice"
    assert fake_host.commands("import") == []
    assert not [call for call in fake_host.commands("run") if call[4]]
    assert fake_host.wsl_conf["work"] == "[boot]\nsystemd=true\n[user]\ndefault=alice\n"


def test_registered_distro_without_user_runs_first_boot(fake_host, tmp_path: Path, image_file: Path) -> None:
    fake_host.registered.append("work")
    fake_host.oobe_users["work"] = ["alice"]
    request = BootstrapRequest(image=image_file, config=_config(tmp_path), only=["work"])

    result = bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert result.outcomes[0].default_user == "alice"
    assert [call for call in fake_host.commands("run") if call[4]]


def test_failed_first_boot_status_still_configures_created_user(
    fake_host, tmp_path: Path, image_file: Path
) -> None:
    fake_host.oobe_users["work"] = ["alice"]
    fake_host.oobe_returncode = 1
    request = BootstrapRequest(image=image_file, config=_config(tmp_path), only=["work"])

    result = bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert result.outcomes[0].default_user == "alice"
    assert fake_host.wsl_conf["work"] == "[user]\ndefault=alice\n"


def test_multiple_users_prompt_operator(fake_host, tmp_path: Path, image_file: Path) -> None:
    fake_host.oobe_users["work"] = ["alice", "bob"]
    request = BootstrapRequest(image=image_file, config=_config(tmp_path), only=["work"])

    result = bootstrap_distros(request, host=fake_host, prompt=lambda question: "bob")

    assert result.outcomes[0].default_user == "bob"
    assert fake_host.wsl_conf["work"] == "[user]\ndefault=bob\n"


def test_first_failure_aborts_remaining_distros(fake_host, tmp_path: Path, image_file: Path) -> None:
    fake_host.oobe_users["uni"] = ["carol"]
    request = BootstrapRequest(image=image_file, config=_config(tmp_path))

    with pytest.raises(WslConvergeError) as exc:
        bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert exc.value.code == ExitCode.POSTCONDITION_ERROR
    assert [call[1] for call in fake_host.commands("import")] == ["work"]


def test_invalid_image_fails_before_touching_host(fake_host, tmp_path: Path) -> None:
    request = BootstrapRequest(image=tmp_path / "missing.wsl", config=_config(tmp_path))

    with pytest.raises(WslConvergeError) as exc:
        bootstrap_distros(request, host=fake_host, prompt=_no_prompt)

    assert exc.value.code == ExitCode.PRECONDITION_ERROR
    assert fake_host.calls == []


def test_resolve_distros_keeps_configured_order(tmp_path: Path) -> None:
    config = _config(tmp_path)
    assert resolve_distros(config, ["private", "work"]) == ["work", "private"]
    assert resolve_distros(config, []) == ["work", "uni", "private"]


def test_resolve_distros_rejects_unknown_names(tmp_path: Path) -> None:
    with pytest.raises(WslConvergeError) as exc:
        resolve_distros(_config(tmp_path), ["gaming"])
    assert exc.value.code == ExitCode.INVALID_ARGS


def test_next_steps_mention_setup_and_healthcheck(tmp_path: Path) -> None:
    result = BootstrapResult(
        outcomes=[
            DistroOutcome(name="work", install_dir=tmp_path, imported=True, default_user="alice"),
            DistroOutcome(name="lab", install_dir=tmp_path, imported=False, default_user="bob"),
        ]
    )

    text = "\n".join(next_step_instructions(result))

    assert "wsl -d work" in text
    assert "wslconverge setup work" in text
    assert "wslconverge healthcheck work" in text
    assert "wslconverge setup <work|uni|private>" in text
