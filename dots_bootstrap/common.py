"""
Common utilities shared across dots_bootstrap modules.
"""

from __future__ import annotations

import os
from enum import Enum

from .logging_config import get_logger


PROC_VERSION_PATH = "/proc/version"


class ErrorKind(str, Enum):
    """Failure taxonomy for bootstrap operations."""

    ENVIRONMENT_GAP = "environment-gap"          # required tool absent, manager undetected
    INSTALL_FAILURE = "install-failure"          # a single install command failed
    FATAL_PRECONDITION = "fatal-precondition"    # nothing further can succeed
    UNRECOGNIZED_INPUT = "unrecognized-input"    # catalog line of unknown shape


def is_wsl(wsl_distro: str | None = None, proc_version_path: str = PROC_VERSION_PATH) -> bool:
    """
    Check if running inside the Windows Subsystem for Linux.

    Args:
        wsl_distro: Value of WSL_DISTRO_NAME (any non-empty value implies WSL)
        proc_version_path: Kernel version file to inspect

    Returns:
        True if WSL indicators are present, False otherwise.
    """
    if wsl_distro:
        return True

    try:
        with open(proc_version_path, "r", encoding="utf-8", errors="replace") as f:
            banner = f.read().lower()
    except OSError:
        return False

    return "microsoft" in banner or "wsl" in banner


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    DOTS_BOOTSTRAP_DEBUG=1 turns verbose messages on without --verbose.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("DOTS_BOOTSTRAP_DEBUG", "0") == "1":
        get_logger().info(msg)
