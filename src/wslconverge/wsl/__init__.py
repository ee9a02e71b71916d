"""WSL host interaction and distro bootstrap steps."""

from .distro import ImportResult, ensure_distro_imported, run_first_boot, validate_image, verify_default_user
from .host import SessionResult, WslExeHost, WslHost, build_wsl_command
from .users import UserRecord, discover_non_root_users, select_default_user, user_exists
from .wslconf import Section, WslConf, merge_default_user, write_default_user

__all__ = [
    "build_wsl_command",
    "discover_non_root_users",
    "ensure_distro_imported",
    "ImportResult",
    "merge_default_user",
    "run_first_boot",
    "Section",
    "select_default_user",
    "SessionResult",
    "user_exists",
    "UserRecord",
    "validate_image",
    "verify_default_user",
    "WslConf",
    "WslExeHost",
    "WslHost",
    "write_default_user",
]
