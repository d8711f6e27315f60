"""
Package manager registry and detection.

Native package managers are probed per platform in a fixed priority order;
the first one found on PATH is used for every native install of the run.
cargo is registered as the secondary toolchain used by fallback recipes.
"""

from __future__ import annotations

from dataclasses import dataclass

from .common import vlog
from .environment import Environment


NO_PACKAGE_MANAGER = "none"


@dataclass(frozen=True)
class PackageManager:
    """
    Package manager definition.

    Attributes:
        name: Package manager identifier (e.g., "apt", "brew", "cargo")
        display_name: Human-readable name
        executable: Executable probed on PATH to detect the manager
        install_command_template: Template for install command (use {package} placeholder)
        update_command: Command that refreshes package lists (empty if none)
        requires_sudo: Whether install/update commands need root privileges
        ok_exit_codes: Update exit codes that still mean success
        cask_command_template: Install template for platform (cask) packages
    """
    name: str
    display_name: str
    executable: str
    install_command_template: tuple[str, ...]
    update_command: tuple[str, ...] = ()
    requires_sudo: bool = False
    ok_exit_codes: tuple[int, ...] = (0,)
    cask_command_template: tuple[str, ...] = ()

    def is_available(self, env: Environment) -> bool:
        """Check if this package manager's executable is on the environment's PATH."""
        return env.has_command(self.executable)

    def get_install_command(self, package: str, cask: bool = False) -> tuple[str, ...]:
        """
        Get install command for a package.

        Args:
            package: Native package name
            cask: Use the platform-package template when the manager has one

        Returns:
            Command tuple to install the package
        """
        template = self.cask_command_template if cask and self.cask_command_template else self.install_command_template
        return tuple(part.replace("{package}", package) for part in template)


# Package Manager Registry

PACKAGE_MANAGERS = (
    PackageManager(
        name="brew",
        display_name="Homebrew",
        executable="brew",
        install_command_template=("brew", "install", "{package}"),
        cask_command_template=("brew", "install", "--cask", "{package}"),
    ),
    PackageManager(
        name="apt",
        display_name="apt",
        executable="apt-get",
        install_command_template=("apt-get", "install", "-y", "{package}"),
        update_command=("apt-get", "update"),
        requires_sudo=True,
    ),
    PackageManager(
        name="dnf",
        display_name="dnf",
        executable="dnf",
        install_command_template=("dnf", "install", "-y", "{package}"),
        update_command=("dnf", "check-update"),
        requires_sudo=True,
        ok_exit_codes=(0, 100),  # 100 means updates are available
    ),
    PackageManager(
        name="yum",
        display_name="yum",
        executable="yum",
        install_command_template=("yum", "install", "-y", "{package}"),
        update_command=("yum", "check-update"),
        requires_sudo=True,
        ok_exit_codes=(0, 100),
    ),
    PackageManager(
        name="pacman",
        display_name="pacman",
        executable="pacman",
        install_command_template=("pacman", "-S", "--noconfirm", "{package}"),
        update_command=("pacman", "-Sy"),
        requires_sudo=True,
    ),
    PackageManager(
        name="zypper",
        display_name="zypper",
        executable="zypper",
        install_command_template=("zypper", "install", "-y", "{package}"),
        update_command=("zypper", "refresh"),
        requires_sudo=True,
    ),
    PackageManager(
        name="choco",
        display_name="Chocolatey",
        executable="choco",
        install_command_template=("choco", "install", "{package}", "-y"),
    ),
    PackageManager(
        name="winget",
        display_name="Windows Package Manager",
        executable="winget",
        install_command_template=("winget", "install", "--id={package}", "-e"),
    ),

    # Secondary toolchain used by fallback recipes
    PackageManager(
        name="cargo",
        display_name="cargo",
        executable="cargo",
        install_command_template=("cargo", "install", "{package}"),
    ),
)

# Probe order per platform; first available wins
DETECTION_ORDER: dict[str, tuple[str, ...]] = {
    "macos": ("brew",),
    "linux": ("apt", "dnf", "yum", "pacman", "zypper"),
    "windows": ("choco", "winget"),
}

# Some managers name a package differently from the catalog
PACKAGE_ALIASES: dict[tuple[str, str], str] = {
    ("winget", "stow"): "GnuWin32.Stow",
}


# Package manager lookup by name
_PM_BY_NAME = {pm.name: pm for pm in PACKAGE_MANAGERS}


def get_package_manager(name: str) -> PackageManager | None:
    """
    Get package manager by name.

    Args:
        name: Package manager name

    Returns:
        PackageManager object, or None if not found (including "none")
    """
    return _PM_BY_NAME.get(name)


def native_package_name(manager: str, package: str) -> str:
    """Return the name ``manager`` uses for ``package``."""
    return PACKAGE_ALIASES.get((manager, package), package)


def detect_package_manager(os_name: str, env: Environment, verbose: bool = False) -> str:
    """
    Detect the native package manager for a platform.

    Args:
        os_name: OS class value ("macos", "linux", "windows", "unknown")
        env: Environment whose PATH is probed
        verbose: Enable verbose logging

    Returns:
        Package manager name, or "none" if nothing was found
    """
    for name in DETECTION_ORDER.get(os_name, ()):
        pm = _PM_BY_NAME[name]
        if pm.is_available(env):
            vlog(f"Detected package manager for {os_name}: {name}", verbose)
            return name
        vlog(f"Package manager not found: {name}", verbose)
    return NO_PACKAGE_MANAGER
