"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .bootstrap import BootstrapRequest, bootstrap_distros, next_step_instructions
from .config import load_config
from .errors import ExitCode, WslConvergeError, user_facing_error
from .logging import LOG_LEVELS, configure_logging, default_log_path
from .profiles import PROFILES
from .provision.flows import run_converge, run_healthcheck, run_setup
from .wsl.host import WslExeHost, WslHost, locate_wsl_binary

_VALID_LOG_LEVELS = tuple(LOG_LEVELS)


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wslconverge",
        description="Create and converge the work/uni/private WSL distributions.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    bootstrap = commands.add_parser(
        "bootstrap",
        help="Import distros, run first boot and set the default user (Windows host)",
    )
    bootstrap.add_argument("image", type=Path, help="WSL image file to import")
    bootstrap.add_argument(
        "--distro",
        action="append",
        default=[],
        help="Only bootstrap this distro (repeatable)",
    )

    setup = commands.add_parser("setup", help="Clone into the Linux filesystem, install Ansible and converge")
    setup.add_argument("profile", choices=PROFILES)

    for name, text in (
        ("converge", "Run the site playbook for a profile"),
        ("healthcheck", "Run the healthcheck playbook for a profile"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("profile", choices=PROFILES)
        sub.add_argument("--repo", type=Path, default=None, help="Repository root (default: cwd)")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def _default_host() -> WslHost:
    return WslExeHost(wsl_binary=locate_wsl_binary())


def run_command(
    namespace: argparse.Namespace,
    *,
    host_factory: Callable[[], WslHost] = _default_host,
    prompt: Callable[[str], str] = input,
) -> int:
    config = load_config(namespace.config)

    if namespace.command == "bootstrap":
        request = BootstrapRequest(image=namespace.image, config=config, only=namespace.distro)
        result = bootstrap_distros(request, host=host_factory(), prompt=prompt)
        print("\n".join(next_step_instructions(result)))
    elif namespace.command == "setup":
        run_setup(namespace.profile, config)
    elif namespace.command == "converge":
        run_converge(namespace.profile, config, repo_root=(namespace.repo or Path.cwd()))
    elif namespace.command == "healthcheck":
        run_healthcheck(namespace.profile, config, repo_root=(namespace.repo or Path.cwd()))
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    host_factory: Callable[[], WslHost] | None = None,
    prompt: Callable[[str], str] | None = None,
) -> int:
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        # argparse has already reported the problem on stderr.
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    else:
        log_path = default_log_path(namespace.command)
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        logger.debug("Starting command %s", namespace.command)
        return run_command(
            namespace,
            host_factory=host_factory or _default_host,
            prompt=prompt or input,
        )
    except WslConvergeError as exc:
        logger.error(
            "Handled WslConvergeError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except (EOFError, KeyboardInterrupt):
        logger.warning("Interrupted by operator")
        print(user_facing_error("Interrupted"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
