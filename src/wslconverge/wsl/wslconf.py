"""Structured editing of `/etc/wsl.conf` and the default-user merge.

The document is parsed into a preamble (lines before the first bracketed
header) and an ordered list of sections. Every line keeps its original text,
so rendering an unmodified document reproduces the input byte for byte
(apart from a final newline being added when the input lacked one).

`WslConf.set_default_user` guarantees that afterwards exactly one
``default=<name>`` line exists across all ``[user]`` sections:

* the first ``default=`` line of the first ``[user]`` section is rewritten in
  place, and every other ``default=`` line inside ``[user]`` is dropped;
* a ``[user]`` section without the key gets it appended as its last line,
  i.e. before the next section header;
* a document without ``[user]`` gets the section appended at the end,
  separated from existing content by a blank line.

Lines the merge writes take the CRLF ending when the line they replace (or,
for new lines, the first line of the document) ends in ``\\r``, so a CRLF
file stays CRLF throughout.

``default=`` lines outside ``[user]`` are ordinary content and stay untouched.
"""

from __future__ import annotations

import logging as py_logging
import re
from dataclasses import dataclass, field

from wslconverge.errors import ExitCode, WslConvergeError
from wslconverge.wsl.host import WslHost

logger = py_logging.getLogger(__name__)

USER_SECTION = "[user]"
USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*$")
WSL_CONF_MODE = 0o644

_DEFAULT_KEY = re.compile(r"^\s*default\s*=")
_MISSING_EXIT_CODE = 3

# $1 is the target path; stdin carries the new content.
_READ_SCRIPT = 'if [ -f "$1" ]; then cat "$1"; else exit 3; fi'
_WRITE_SCRIPT = (
    "set -e; "
    'tmp=$(mktemp "$1.XXXXXX"); '
    "trap 'rm -f \"$tmp\"' EXIT; "
    'cat > "$tmp"; '
    f'chmod {WSL_CONF_MODE:04o} "$tmp"; '
    'mv -f "$tmp" "$1"'
)


def validate_username(username: str) -> str:
    if not USERNAME_PATTERN.fullmatch(username):
        raise WslConvergeError(
            f"Invalid username '{username}'",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use lowercase letters, digits, '_' or '-', starting with a letter or '_'.",
        )
    return username


def _is_section_header(line: str) -> bool:
    return line.lstrip().startswith("[")


def _line_end(line: str) -> str:
    return "\r" if line.endswith("\r") else ""


@dataclass
class Section:
    header: str
    lines: list[str] = field(default_factory=list)

    @property
    def is_user(self) -> bool:
        return self.header.strip() == USER_SECTION

    def default_entries(self) -> list[str]:
        return [line for line in self.lines if _DEFAULT_KEY.match(line)]


@dataclass
class WslConf:
    preamble: list[str] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> WslConf:
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        document = cls()
        current: Section | None = None
        for line in lines:
            if _is_section_header(line):
                current = Section(header=line)
                document.sections.append(current)
            elif current is None:
                document.preamble.append(line)
            else:
                current.lines.append(line)
        return document

    @property
    def is_empty(self) -> bool:
        return not self.preamble and not self.sections

    @property
    def line_end(self) -> str:
        if self.preamble:
            return _line_end(self.preamble[0])
        if self.sections:
            return _line_end(self.sections[0].header)
        return ""

    def default_user(self) -> str | None:
        for candidate in self.sections:
            if not candidate.is_user:
                continue
            for line in candidate.default_entries():
                return line.split("=", 1)[1].strip()
        return None

    def set_default_user(self, username: str) -> None:
        validate_username(username)
        entry = f"default={username}"
        eol = self.line_end
        written = False

        for index, current in enumerate(self.sections):
            if not current.is_user:
                continue
            kept: list[str] = []
            for line in current.lines:
                if _DEFAULT_KEY.match(line):
                    if not written:
                        kept.append(entry + _line_end(line))
                        written = True
                    continue
                kept.append(line)
            following = self.sections[index + 1] if index + 1 < len(self.sections) else None
            # Consecutive [user] headers behave as one section.
            if not written and (following is None or not following.is_user):
                kept.append(entry + eol)
                written = True
            current.lines = kept

        if not written:
            if not self.is_empty:
                target = self.sections[-1].lines if self.sections else self.preamble
                target.append(eol)
            self.sections.append(Section(header=USER_SECTION + eol, lines=[entry + eol]))

    def render(self) -> str:
        lines = list(self.preamble)
        for current in self.sections:
            lines.append(current.header)
            lines.extend(current.lines)
        if not lines:
            return ""
        return "\n".join(lines) + "\n"


def merge_default_user(text: str | None, username: str) -> str:
    """Return `text` with `default=<username>` set in the ``[user]`` section.

    `None` stands for a missing file.
    """
    validate_username(username)
    if text is None:
        return f"{USER_SECTION}\ndefault={username}\n"
    document = WslConf.parse(text)
    document.set_default_user(username)
    return document.render()


def read_wsl_conf(host: WslHost, distro: str, *, conf_path: str, admin_user: str) -> str | None:
    result = host.run_in_session(
        distro,
        ["sh", "-c", _READ_SCRIPT, "sh", conf_path],
        user=admin_user,
    )
    if result.returncode == _MISSING_EXIT_CODE:
        logger.debug("No %s in distro=%s", conf_path, distro)
        return None
    if not result.ok:
        logger.error("Failed to read %s distro=%s output=%s", conf_path, distro, result.output)
        raise WslConvergeError(
            f"Failed to read {conf_path} in '{distro}'.",
            code=ExitCode.COMMAND_ERROR,
            hint=result.output or "Inspect the distro manually.",
        )
    return result.stdout


def write_default_user(
    host: WslHost,
    distro: str,
    username: str,
    *,
    conf_path: str,
    admin_user: str,
) -> str:
    validate_username(username)
    existing = read_wsl_conf(host, distro, conf_path=conf_path, admin_user=admin_user)
    previous = WslConf.parse(existing).default_user() if existing else None
    merged = merge_default_user(existing, username)
    if existing == merged:
        logger.info("%s in distro=%s already sets default=%s", conf_path, distro, username)
    elif previous:
        logger.info("Replacing default user=%s with %s in distro=%s", previous, username, distro)

    result = host.run_in_session(
        distro,
        ["sh", "-c", _WRITE_SCRIPT, "sh", conf_path],
        user=admin_user,
        input_text=merged,
    )
    if not result.ok:
        logger.error("Failed to write %s distro=%s output=%s", conf_path, distro, result.output)
        raise WslConvergeError(
            f"Failed to write {conf_path} in '{distro}'.",
            code=ExitCode.COMMAND_ERROR,
            hint=result.output or "Inspect the distro manually.",
        )
    logger.info("Set default user=%s in %s for distro=%s", username, conf_path, distro)
    return merged
