from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from wslconverge.wsl.host import SessionResult
from wslconverge.wsl.wslconf import WslConf

_SECURITY_TEST_FILES = {
    "test_wslconf.py",
    "test_users.py",
}

BASE_PASSWD = (
    "root:x:0:0:root:/root:/bin/bash\n"
    "bin:x:1:1:bin:/bin:/sbin/nologin\n"
    "nobody:x:65534:65534:Kernel Overflow User:/:/sbin/nologin\n"
)


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        name = path.name

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)

        if name in _SECURITY_TEST_FILES:
            item.add_marker(pytest.mark.security)


@dataclass
class FakeHost:
    """In-memory stand-in for wsl.exe with one shared account database per distro."""

    registered: list[str] = field(default_factory=list)
    passwd: dict[str, str] = field(default_factory=dict)
    oobe_users: dict[str, list[str]] = field(default_factory=dict)
    wsl_conf: dict[str, str | None] = field(default_factory=dict)
    default_users: dict[str, str] = field(default_factory=dict)
    import_returncode: int = 0
    import_output: str = ""
    write_returncode: int = 0
    oobe_returncode: int = 0
    ignore_wsl_conf: bool = False
    calls: list[tuple] = field(default_factory=list)

    def list_distributions(self) -> list[str]:
        self.calls.append(("list",))
        return list(self.registered)

    def import_distro(self, name: str, install_dir: Path, image: Path, *, version: int) -> SessionResult:
        self.calls.append(("import", name, install_dir, image, version))
        if self.import_returncode == 0:
            self.registered.append(name)
            self.passwd.setdefault(name, BASE_PASSWD)
        return SessionResult(
            command=["wsl.exe", "--import", name],
            returncode=self.import_returncode,
            stdout=self.import_output,
            stderr="",
        )

    def run_in_session(
        self,
        distro: str,
        command: Sequence[str],
        *,
        user: str | None = None,
        input_text: str | None = None,
        interactive: bool = False,
    ) -> SessionResult:
        command = list(command)
        self.calls.append(("run", distro, tuple(command), user, interactive))
        if interactive:
            self.add_users(distro, *self.oobe_users.get(distro, []))
            return self._result(command, self.oobe_returncode)
        if command == ["getent", "passwd"]:
            return self._result(command, 0, self.passwd.get(distro, BASE_PASSWD))
        if command[:2] == ["id", "-u"]:
            names = [line.split(":")[0] for line in self.passwd.get(distro, BASE_PASSWD).splitlines()]
            return self._result(command, 0 if command[2] in names else 1, stderr="no such user")
        if command[:2] == ["sh", "-c"] and input_text is None:
            content = self.wsl_conf.get(distro)
            if content is None:
                return self._result(command, 3)
            return self._result(command, 0, content)
        if command[:2] == ["sh", "-c"]:
            if self.write_returncode != 0:
                return self._result(command, self.write_returncode, stderr="mv: permission denied")
            self.wsl_conf[distro] = input_text
            return self._result(command, 0)
        raise AssertionError(f"unexpected command: {command}")

    def terminate(self, distro: str) -> None:
        self.calls.append(("terminate", distro))
        content = self.wsl_conf.get(distro)
        if content is not None and not self.ignore_wsl_conf:
            configured = WslConf.parse(content).default_user()
            if configured:
                self.default_users[distro] = configured

    def query_default_user(self, distro: str) -> str:
        self.calls.append(("whoami", distro))
        return self.default_users.get(distro, "root")

    def add_users(self, distro: str, *names: str, first_uid: int = 1000) -> None:
        entries = "".join(
            f"{name}:x:{uid}:{uid}::/home/{name}:/bin/bash\n" for uid, name in enumerate(names, start=first_uid)
        )
        self.passwd[distro] = self.passwd.get(distro, BASE_PASSWD) + entries

    def commands(self, kind: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == kind]

    @staticmethod
    def _result(command: list[str], returncode: int, stdout: str = "", stderr: str = "") -> SessionResult:
        return SessionResult(command=command, returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    image = tmp_path / "Fedora.wsl"
    image.write_bytes(b"\x1f\x8b fake image payload")
    return image
