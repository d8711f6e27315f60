"""
Platform resolution.

Determines the OS class, native package manager and CPU architecture once at
startup. Resolution never fails: anything unrecognized degrades to
OSClass.UNKNOWN and package manager "none", which downstream code treats as a
valid low-capability platform.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass
from enum import Enum

from .common import is_wsl, vlog, PROC_VERSION_PATH
from .environment import Environment, current_environment
from .package_managers import NO_PACKAGE_MANAGER, detect_package_manager


class OSClass(str, Enum):
    """Operating system families the bootstrap knows how to set up."""

    MACOS = "macos"
    LINUX = "linux"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


# Interactive menu choices
MENU_CHOICES = {
    "1": OSClass.MACOS,
    "2": OSClass.LINUX,
    "3": OSClass.WINDOWS,
}
AUTO_DETECT_CHOICE = "4"


@dataclass(frozen=True)
class PlatformContext:
    """
    Resolved platform information, read-only for the whole run.

    Attributes:
        os_class: Platform the setup runs as (WSL resolves to LINUX)
        package_manager: Native package manager name, or "none"
        arch: Raw machine architecture string (e.g. "x86_64", "aarch64")
        wsl: Whether running inside the Windows Subsystem for Linux
        selected_os: OS class that was selected or detected before WSL mapping
    """
    os_class: OSClass
    package_manager: str = NO_PACKAGE_MANAGER
    arch: str = ""
    wsl: bool = False
    selected_os: OSClass | None = None

    @property
    def has_package_manager(self) -> bool:
        return self.package_manager != NO_PACKAGE_MANAGER

    @property
    def normalized_arch(self) -> str:
        return normalize_arch(self.arch)

    def __str__(self) -> str:
        wsl_str = " (WSL)" if self.wsl else ""
        return f"{self.os_class}{wsl_str}/{self.package_manager}/{self.arch or '?'}"


def detect_os(system: str | None = None) -> OSClass:
    """
    Classify a kernel name as reported by ``uname -s``.

    Args:
        system: Kernel name (defaults to platform.system())

    Returns:
        OSClass for the kernel, OSClass.UNKNOWN if unrecognized
    """
    if system is None:
        system = platform.system()

    if system.startswith("Darwin"):
        return OSClass.MACOS
    if system.startswith("Linux"):
        return OSClass.LINUX
    if system.startswith(("MINGW", "MSYS", "CYGWIN", "Windows")):
        return OSClass.WINDOWS
    return OSClass.UNKNOWN


def normalize_arch(machine: str) -> str:
    """
    Normalize a machine architecture to a release-archive label.

    x86_64 stays x86_64, aarch64 and arm64 become arm64, and anything else
    falls back to x86_64.
    """
    if machine in ("aarch64", "arm64"):
        return "arm64"
    return "x86_64"


def select_os(choice: str, detected: OSClass) -> tuple[OSClass, bool]:
    """
    Map an interactive menu answer to an OS class.

    Args:
        choice: Raw user input ("1"-"4", empty for the default)
        detected: Auto-detected OS class

    Returns:
        Tuple of (selected OS class, whether the input was valid)
    """
    choice = choice.strip()
    if not choice or choice == AUTO_DETECT_CHOICE:
        return (detected, True)
    if choice in MENU_CHOICES:
        return (MENU_CHOICES[choice], True)
    return (detected, False)


def resolve_platform(
    env: Environment | None = None,
    system: str | None = None,
    machine: str | None = None,
    selected: OSClass | None = None,
    proc_version_path: str = PROC_VERSION_PATH,
    verbose: bool = False,
) -> PlatformContext:
    """
    Resolve the platform context for this run.

    Args:
        env: Environment to probe (defaults to the current process environment)
        system: Kernel name override (defaults to platform.system())
        machine: Architecture override (defaults to platform.machine())
        selected: OS class chosen by the user; auto-detect when None
        proc_version_path: Kernel banner used for WSL detection
        verbose: Enable verbose logging

    Returns:
        PlatformContext (never raises)
    """
    if env is None:
        env = current_environment()
    if machine is None:
        machine = platform.machine()

    requested = selected if selected is not None else detect_os(system)
    os_class = requested
    wsl = False

    if requested in (OSClass.WINDOWS, OSClass.LINUX):
        wsl = is_wsl(env.wsl_distro, proc_version_path)
    if requested == OSClass.WINDOWS and wsl:
        vlog("WSL detected, resolving Windows to Linux", verbose)
        os_class = OSClass.LINUX

    package_manager = detect_package_manager(os_class.value, env, verbose=verbose)

    ctx = PlatformContext(
        os_class=os_class,
        package_manager=package_manager,
        arch=machine,
        wsl=wsl,
        selected_os=requested,
    )
    vlog(f"Resolved platform: {ctx}", verbose)
    return ctx
