"""
Fallback install recipes.

Used for packages the native package manager could not install. Each recipe
does its own existence checks and reports a FallbackOutcome; none of them
raise. The session tools (prompt, Node version manager, runtime manager) are
installed separately, once per run, from their vendor install scripts.
"""

from __future__ import annotations

import http.client
import os
import shutil
import tarfile
import tempfile
import urllib.error
import urllib.request
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from .common import vlog
from .config import Config, FallbackSettings
from .environment import Environment
from .install_plan import InstallStep, shell_step
from .installer import execute_step
from .logging_config import header, info, success, warning
from .package_managers import get_package_manager
from .platform_info import PlatformContext, normalize_arch


LAZYGIT_RELEASE_URL = (
    "https://github.com/jesseduffield/lazygit/releases/download/"
    "v{version}/lazygit_{version}_Linux_{arch}.tar.gz"
)
ZOXIDE_INSTALL_SCRIPT = "curl -sS https://raw.githubusercontent.com/ajeetdsouza/zoxide/main/install.sh | bash"
FZF_REPOSITORY = "https://github.com/junegunn/fzf.git"

# Where to point users when a recipe cannot run
MANUAL_URLS = {
    "bat": "https://github.com/sharkdp/bat",
    "eza": "https://github.com/eza-community/eza",
    "lazygit": "https://github.com/jesseduffield/lazygit",
    "zoxide": "https://github.com/ajeetdsouza/zoxide",
    "fzf": "https://github.com/junegunn/fzf",
}

DOWNLOAD_TIMEOUT = 60

DOWNLOAD_ERRORS = (urllib.error.URLError, http.client.HTTPException, OSError)
EXTRACT_ERRORS = (tarfile.TarError, EOFError, zlib.error, KeyError, OSError)


class FallbackResult(str, Enum):
    """Outcome of a fallback recipe."""

    SUCCESS = "success"
    FAILURE = "failure"
    NO_RECIPE = "no-recipe"


@dataclass(frozen=True)
class FallbackOutcome:
    """
    Result of attempting a fallback recipe.

    Attributes:
        package: Package name
        result: Recipe outcome
        message: Human-readable summary
        url: Download or manual-install URL, when relevant
    """
    package: str
    result: FallbackResult
    message: str = ""
    url: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result == FallbackResult.SUCCESS

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "package": self.package,
            "result": self.result.value,
            "message": self.message,
            "url": self.url,
        }


def lazygit_release_url(version: str, machine: str) -> str:
    """Build the lazygit Linux release archive URL for a machine architecture."""
    return LAZYGIT_RELEASE_URL.format(version=version, arch=normalize_arch(machine))


def download_file(url: str, dest: str | Path, timeout: int = DOWNLOAD_TIMEOUT) -> None:
    """
    Download ``url`` to ``dest``.

    Raises:
        urllib.error.URLError: On network or HTTP errors
        http.client.HTTPException: If the response body is cut short
        OSError: If the destination cannot be written
    """
    with urllib.request.urlopen(url, timeout=timeout) as response, open(dest, "wb") as f:
        shutil.copyfileobj(response, f)


def extract_binary(archive: str | Path, member: str, dest_dir: Path) -> Path:
    """
    Extract a single named file from a .tar.gz archive and mark it executable.

    The member is written to a temporary file in ``dest_dir`` and renamed to
    ``dest_dir / member`` only once complete; nothing is left behind on error.

    Raises:
        tarfile.TarError: If the archive is unreadable
        EOFError: If the compressed stream is truncated
        zlib.error: If the compressed stream is corrupt
        KeyError: If the member is missing
    """
    target = dest_dir / member
    fd, partial = tempfile.mkstemp(prefix=f".{member}-", dir=dest_dir)
    try:
        with os.fdopen(fd, "wb") as f, tarfile.open(archive, "r:gz") as tar:
            source = tar.extractfile(tar.getmember(member))
            if source is None:
                raise KeyError(member)
            with source:
                shutil.copyfileobj(source, f)
        os.chmod(partial, 0o755)
        os.replace(partial, target)
    except BaseException:
        os.unlink(partial)
        raise
    return target


def _failure(package: str, message: str, url: str | None = None) -> FallbackOutcome:
    warning(message)
    return FallbackOutcome(package=package, result=FallbackResult.FAILURE, message=message, url=url)


def _success(package: str, message: str, url: str | None = None) -> FallbackOutcome:
    success(message)
    return FallbackOutcome(package=package, result=FallbackResult.SUCCESS, message=message, url=url)


def _can_use_cargo(env: Environment, settings: FallbackSettings) -> bool:
    return settings.use_cargo and get_package_manager("cargo").is_available(env)


def _cargo_install(package: str, env: Environment, timeout: int | None, verbose: bool) -> FallbackOutcome:
    cargo = get_package_manager("cargo")
    step = InstallStep(description=f"Install {package} via cargo", command=cargo.get_install_command(package))
    result = execute_step(step, env=env, timeout=timeout, verbose=verbose)
    if result.success:
        return _success(package, f"{package} installed via cargo")
    vlog(f"cargo install {package}: {result.error_message}", verbose)
    return _failure(package, f"Failed to install {package}")


def install_with_cargo(
    package: str,
    ctx: PlatformContext,
    env: Environment,
    settings: FallbackSettings,
    timeout: int | None = None,
    verbose: bool = False,
) -> FallbackOutcome:
    """Build a tool with cargo (bat, eza)."""
    info(f"Installing {package} via cargo or downloading binary...")
    url = MANUAL_URLS.get(package)
    if not _can_use_cargo(env, settings):
        return _failure(package, f"Install Rust/cargo to install {package}, or download from: {url}", url=url)
    return _cargo_install(package, env, timeout, verbose)


def install_lazygit(
    package: str,
    ctx: PlatformContext,
    env: Environment,
    settings: FallbackSettings,
    timeout: int | None = None,
    verbose: bool = False,
) -> FallbackOutcome:
    """Download the lazygit release archive into the user-local bin directory."""
    info("Installing lazygit...")
    url = lazygit_release_url(settings.lazygit_version, ctx.arch)
    vlog(f"lazygit release URL: {url}", verbose)

    fd, archive = tempfile.mkstemp(prefix="lazygit-", suffix=".tar.gz")
    os.close(fd)
    try:
        try:
            download_file(url, archive, timeout=timeout or DOWNLOAD_TIMEOUT)
        except DOWNLOAD_ERRORS as e:
            vlog(f"lazygit download failed: {e}", verbose)
            return _failure(
                package,
                f"Failed to download lazygit. Install manually from: {MANUAL_URLS['lazygit']}",
                url=url,
            )

        try:
            env.local_bin.mkdir(parents=True, exist_ok=True)
            target = extract_binary(archive, "lazygit", env.local_bin)
        except EXTRACT_ERRORS as e:
            vlog(f"lazygit extraction failed: {e}", verbose)
            return _failure(package, "Failed to extract lazygit", url=url)

        vlog(f"lazygit extracted to {target}", verbose)
        return _success(package, "lazygit installed to ~/.local/bin", url=url)
    finally:
        try:
            os.remove(archive)
        except OSError:
            pass


def install_zoxide(
    package: str,
    ctx: PlatformContext,
    env: Environment,
    settings: FallbackSettings,
    timeout: int | None = None,
    verbose: bool = False,
) -> FallbackOutcome:
    """Build zoxide with cargo, or run its vendor install script."""
    info("Installing zoxide...")
    if _can_use_cargo(env, settings):
        return _cargo_install(package, env, timeout, verbose)

    step = shell_step("Install zoxide from vendor script", ZOXIDE_INSTALL_SCRIPT)
    result = execute_step(step, env=env, timeout=timeout, capture=False, verbose=verbose)
    if result.success:
        return _success(package, "zoxide installed")
    return _failure(package, "Failed to install zoxide", url=MANUAL_URLS["zoxide"])


def install_fzf(
    package: str,
    ctx: PlatformContext,
    env: Environment,
    settings: FallbackSettings,
    timeout: int | None = None,
    verbose: bool = False,
) -> FallbackOutcome:
    """Clone fzf into ~/.fzf and run its installer (binary only, rc files untouched)."""
    info("Installing fzf...")
    fzf_dir = env.home / ".fzf"
    if fzf_dir.is_dir():
        return _success(package, "fzf already installed")

    clone = InstallStep(
        description="Clone fzf",
        command=("git", "clone", "--depth", "1", FZF_REPOSITORY, str(fzf_dir)),
    )
    result = execute_step(clone, env=env, timeout=timeout, verbose=verbose)
    if not result.success:
        vlog(f"fzf clone failed: {result.error_message}", verbose)
        return _failure(package, "Failed to install fzf", url=FZF_REPOSITORY)

    installer = InstallStep(
        description="Run fzf installer",
        command=(str(fzf_dir / "install"), "--bin", "--no-update-rc"),
    )
    result = execute_step(installer, env=env, timeout=timeout, verbose=verbose)
    if not result.success:
        vlog(f"fzf installer failed: {result.error_message}", verbose)
        return _failure(package, "Failed to install fzf", url=FZF_REPOSITORY)

    return _success(package, "fzf installed")


Recipe = Callable[..., FallbackOutcome]

RECIPES: dict[str, Recipe] = {
    "bat": install_with_cargo,
    "eza": install_with_cargo,
    "lazygit": install_lazygit,
    "zoxide": install_zoxide,
    "fzf": install_fzf,
}


def attempt_fallback(
    package: str,
    ctx: PlatformContext,
    env: Environment,
    config: Config | None = None,
    verbose: bool = False,
) -> FallbackOutcome:
    """
    Try the bespoke recipe for a package.

    Args:
        package: Short package name
        ctx: Platform context
        env: Environment for child processes and the home directory
        config: Configuration (defaults if None)
        verbose: Enable verbose logging

    Returns:
        FallbackOutcome (NO_RECIPE when the package has no recipe)
    """
    if config is None:
        config = Config()

    recipe = RECIPES.get(package)
    if recipe is None:
        message = f"No fallback method for {package}. Please install manually."
        warning(message)
        return FallbackOutcome(package=package, result=FallbackResult.NO_RECIPE, message=message)

    return recipe(
        package,
        ctx,
        env,
        config.fallback,
        timeout=config.timeout_seconds,
        verbose=verbose,
    )


def run_fallbacks(
    packages: Iterable[str],
    ctx: PlatformContext,
    env: Environment,
    config: Config | None = None,
    verbose: bool = False,
) -> list[FallbackOutcome]:
    """Attempt fallback recipes in the given order (native failure order)."""
    packages = list(packages)
    if not packages:
        return []
    header(f"Attempting alternative installation methods for: {' '.join(packages)}")
    return [attempt_fallback(p, ctx, env, config=config, verbose=verbose) for p in packages]


# ---------------------------------------------------------------------------
# Session tools


class ToolState(str, Enum):
    PRESENT = "present"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionTool:
    """
    Environment-level tool installed from a vendor script.

    Attributes:
        name: Executable name
        display_name: Human-readable name
        script: Shell pipeline that installs the tool
        path_entry: Directory (relative to home) added to PATH after install
    """
    name: str
    display_name: str
    script: str
    path_entry: str | None = None


SESSION_TOOLS = (
    SessionTool("starship", "Starship", "curl -sS https://starship.rs/install.sh | sh -s -- -y"),
    SessionTool("fnm", "fnm", "curl -fsSL https://fnm.vercel.app/install | bash", ".local/share/fnm"),
    SessionTool("mise", "mise", "curl https://mise.run | sh", ".local/bin"),
)


@dataclass(frozen=True)
class SessionToolOutcome:
    name: str
    state: ToolState
    message: str = ""


def install_session_tools(
    env: Environment,
    tools: Iterable[SessionTool] = SESSION_TOOLS,
    timeout: int | None = None,
    verbose: bool = False,
) -> tuple[list[SessionToolOutcome], Environment]:
    """
    Install the session tools that are not on PATH yet.

    Args:
        env: Environment to probe and run installers in
        tools: Tools to check
        timeout: Per-installer timeout in seconds
        verbose: Enable verbose logging

    Returns:
        Tuple of (outcomes, environment with any new PATH entries)
    """
    header("Installing packages that require special installation methods...")
    outcomes = []
    for tool in tools:
        if env.has_command(tool.name):
            success(f"{tool.display_name} is already installed")
            outcomes.append(SessionToolOutcome(tool.name, ToolState.PRESENT))
            continue

        info(f"Installing {tool.display_name}...")
        step = shell_step(f"Install {tool.display_name}", tool.script)
        result = execute_step(step, env=env, timeout=timeout, capture=False, verbose=verbose)
        if not result.success:
            message = f"Failed to install {tool.display_name}: {result.error_message}"
            warning(message)
            outcomes.append(SessionToolOutcome(tool.name, ToolState.FAILED, message))
            continue

        if tool.path_entry:
            env = env.with_path_prepended(env.home / tool.path_entry)
        success(f"{tool.display_name} installed")
        outcomes.append(SessionToolOutcome(tool.name, ToolState.INSTALLED))

    return outcomes, env
