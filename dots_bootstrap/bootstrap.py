"""
Bootstrap run driver.

Runs the OS-specific setup flow, links the dotfiles, installs the session
tools and tmux plugins, and collects everything that happened into a
RunSummary. Individual failures are recorded and the run continues; only a
FatalPreconditionError stops it.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .catalog import DirectiveKind, load_catalog_text, parse_catalog
from .config import Config
from .dotfiles import setup_tmux_plugins, stow_dotfiles
from .environment import Environment, apply_rc_appends, plan_rc_appends
from .fallback import (
    FallbackOutcome,
    FallbackResult,
    SessionToolOutcome,
    ToolState,
    install_session_tools,
    run_fallbacks,
)
from .install_plan import InstallStep, shell_step
from .installer import (
    FatalPreconditionError,
    StepResult,
    execute_step,
    install_native_packages,
    install_package,
    update_package_lists,
)
from .logging_config import error, header, info, success, warning
from .package_managers import get_package_manager
from .planner import ActionStatus, ResolvedAction, actions_with_status, plan_installs, skipped_packages
from .platform_info import OSClass, PlatformContext


HOMEBREW_INSTALL_SCRIPT = (
    '/bin/bash -c "$(curl -fsSL https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)
HOMEBREW_PREFIXES = {
    "arm64": "/opt/homebrew",
    "x86_64": "/usr/local",
}
STOW_URL = "https://www.gnu.org/software/stow/"

FINAL_HINTS = {
    OSClass.MACOS: "Open a new terminal session or run 'exec zsh' to load new configs.",
    OSClass.LINUX: "Open a new terminal session or run 'exec zsh' to load new configs.",
    OSClass.WINDOWS: "Restart your terminal or run 'source ~/.bashrc' to load new configs.",
}


@dataclass
class RunSummary:
    """
    Everything a bootstrap run did, by outcome.

    Attributes:
        platform: Platform context of the run
        already_satisfied: Packages found on PATH
        native_installed: Packages installed by the native manager
        native_failed: Packages the native manager could not install, in failure order
        fallback_succeeded: Packages installed by a fallback recipe
        fallback_failed: Packages whose fallback recipe failed
        fallback_no_recipe: Packages with no fallback recipe
        fallback_outcomes: Every fallback attempt, in attempt order
        skipped_platform: Platform-exclusive packages skipped on this platform
        unmapped: Packages with no native mapping
        unrecognized: Number of unrecognized catalog lines
        session_installed: Session tools installed this run
        session_present: Session tools already on PATH
        session_failed: Session tools whose installer failed
        stowed: Configuration directories linked
        stow_missing: Configuration directories not found under the root
        stow_failed: Configuration directories stow failed on
        tmux_plugins: Whether TPM installed the plugins (None if not attempted)
        rc_files_modified: Shell startup files that were appended to
    """
    platform: PlatformContext | None = None
    already_satisfied: list[str] = field(default_factory=list)
    native_installed: list[str] = field(default_factory=list)
    native_failed: list[str] = field(default_factory=list)
    fallback_succeeded: list[str] = field(default_factory=list)
    fallback_failed: list[str] = field(default_factory=list)
    fallback_no_recipe: list[str] = field(default_factory=list)
    fallback_outcomes: list[FallbackOutcome] = field(default_factory=list)
    skipped_platform: list[str] = field(default_factory=list)
    unmapped: list[str] = field(default_factory=list)
    unrecognized: int = 0
    session_installed: list[str] = field(default_factory=list)
    session_present: list[str] = field(default_factory=list)
    session_failed: list[str] = field(default_factory=list)
    stowed: list[str] = field(default_factory=list)
    stow_missing: list[str] = field(default_factory=list)
    stow_failed: list[str] = field(default_factory=list)
    tmux_plugins: bool | None = None
    rc_files_modified: list[str] = field(default_factory=list)

    def record_plan(self, actions: Iterable[ResolvedAction]) -> None:
        for action in actions:
            if action.status == ActionStatus.ALREADY_SATISFIED:
                self.already_satisfied.append(action.package)
            elif action.status == ActionStatus.SKIPPED_PLATFORM_MISMATCH:
                self.skipped_platform.append(action.package)
            elif action.status == ActionStatus.UNMAPPED:
                self.unmapped.append(action.package)

    def record_fallbacks(self, outcomes: Iterable[FallbackOutcome]) -> None:
        for outcome in outcomes:
            self.fallback_outcomes.append(outcome)
            if outcome.result == FallbackResult.SUCCESS:
                self.fallback_succeeded.append(outcome.package)
            elif outcome.result == FallbackResult.FAILURE:
                self.fallback_failed.append(outcome.package)
            else:
                self.fallback_no_recipe.append(outcome.package)

    def record_session_tools(self, outcomes: Iterable[SessionToolOutcome]) -> None:
        for outcome in outcomes:
            if outcome.state == ToolState.INSTALLED:
                self.session_installed.append(outcome.name)
            elif outcome.state == ToolState.PRESENT:
                self.session_present.append(outcome.name)
            else:
                self.session_failed.append(outcome.name)

    def counts(self) -> dict[str, int]:
        """Package-phase counts by outcome."""
        return {
            "already_satisfied": len(self.already_satisfied),
            "native_installed": len(self.native_installed),
            "native_failed": len(self.native_failed),
            "fallback_succeeded": len(self.fallback_succeeded),
            "fallback_failed": len(self.fallback_failed),
            "fallback_no_recipe": len(self.fallback_no_recipe),
            "skipped_platform": len(self.skipped_platform),
            "unmapped": len(self.unmapped),
            "unrecognized": self.unrecognized,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = dataclasses.asdict(self)
        data["platform"] = str(self.platform) if self.platform is not None else None
        data["fallback_outcomes"] = [o.to_dict() for o in self.fallback_outcomes]
        data["counts"] = self.counts()
        return data


def _run(step: InstallStep, env: Environment, config: Config, verbose: bool, capture: bool = True) -> StepResult:
    return execute_step(step, env=env, timeout=config.timeout_seconds, capture=capture, verbose=verbose)


def homebrew_shellenv_line(arch: str) -> str:
    """Startup line that puts Homebrew on PATH for the given architecture."""
    prefix = HOMEBREW_PREFIXES["arm64" if arch == "arm64" else "x86_64"]
    return f'eval "$({prefix}/bin/brew shellenv)"'


def ensure_local_bin(
    env: Environment,
    config: Config,
    summary: RunSummary,
    verbose: bool = False,
) -> Environment:
    """
    Create ~/.local/bin and put it on PATH.

    Startup files get the PATH export only when the directory was not on
    PATH already.
    """
    env.local_bin.mkdir(parents=True, exist_ok=True)
    if env.on_path(env.local_bin):
        return env

    env = env.with_path_prepended(env.local_bin)
    intents = plan_rc_appends(env, rc_files=config.rc_files)
    for path in apply_rc_appends(intents, verbose=verbose):
        summary.rc_files_modified.append(str(path))
    return env


def install_catalog_packages(
    text: str,
    ctx: PlatformContext,
    env: Environment,
    config: Config | None = None,
    summary: RunSummary | None = None,
    verbose: bool = False,
) -> list[ResolvedAction]:
    """
    Parse, plan and install the catalog with the native package manager.

    Packages the native manager cannot install go through the fallback
    recipes, in the order they failed.

    Args:
        text: Catalog file contents
        ctx: Platform context
        env: Environment for PATH checks and child processes
        config: Configuration (defaults if None)
        summary: RunSummary to record into
        verbose: Enable verbose logging

    Returns:
        The planned actions, in catalog order
    """
    if config is None:
        config = Config()
    if summary is None:
        summary = RunSummary()

    header(f"Installing packages using {ctx.package_manager}...")

    directives = list(parse_catalog(text, ctx=ctx, unrecognized=config.catalog.unrecognized))
    summary.unrecognized += sum(1 for d in directives if d.kind == DirectiveKind.UNRECOGNIZED)

    actions = plan_installs(directives, ctx, env=env, native_names=config.native_names)
    summary.record_plan(actions)

    skipped = skipped_packages(actions)
    if skipped:
        info(f"Skipped platform-exclusive packages: {' '.join(skipped)}")

    if not actions_with_status(actions, ActionStatus.MAPPED_TO_NATIVE):
        success("All mappable packages are already installed")
        return actions

    report = install_native_packages(actions, ctx, env, timeout=config.timeout_seconds, verbose=verbose)
    summary.native_installed.extend(report.installed)
    summary.native_failed.extend(report.failed)

    summary.record_fallbacks(run_fallbacks(report.failed, ctx, env, config=config, verbose=verbose))
    return actions


def _install_stow(ctx: PlatformContext, env: Environment, config: Config, verbose: bool) -> None:
    if env.has_command("stow"):
        return
    pm = get_package_manager(ctx.package_manager)
    via = f" via {pm.display_name}" if pm is not None else ""
    info(f"Installing GNU Stow{via}...")
    result = install_package("stow", ctx, env, timeout=config.timeout_seconds, verbose=verbose)
    if result is not None and not result.success:
        warning(f"Failed to install GNU Stow: {result.error_message}")


def setup_macos(
    ctx: PlatformContext,
    env: Environment,
    config: Config,
    summary: RunSummary,
    verbose: bool = False,
) -> Environment:
    """
    macOS flow: Xcode tools, Homebrew, stow, then ``brew bundle``.

    Raises:
        FatalPreconditionError: If the Xcode Command Line Tools are missing or
            Homebrew cannot be installed
    """
    header("Setting up macOS...")

    check = _run(InstallStep("Check Xcode Command Line Tools", ("xcode-select", "-p")), env, config, verbose)
    if not check.success:
        info("Installing Xcode Command Line Tools...")
        _run(InstallStep("Install Xcode Command Line Tools", ("xcode-select", "--install")), env, config, verbose)
        raise FatalPreconditionError(
            "Xcode Command Line Tools are not installed",
            remediation="Please rerun this script after installation finishes.",
        )

    if not env.has_command("brew"):
        info("Installing Homebrew...")
        result = _run(shell_step("Install Homebrew", HOMEBREW_INSTALL_SCRIPT), env, config, verbose, capture=False)
        if not result.success:
            raise FatalPreconditionError(
                f"Homebrew installation failed: {result.error_message}",
                remediation="Install Homebrew from https://brew.sh and rerun",
            )

        prefix = HOMEBREW_PREFIXES["arm64" if ctx.normalized_arch == "arm64" else "x86_64"]
        env = env.with_path_prepended(f"{prefix}/bin")
        intents = plan_rc_appends(
            env,
            line=homebrew_shellenv_line(ctx.normalized_arch),
            marker="brew shellenv",
            rc_files=(".zprofile",),
            create_missing=True,
        )
        for path in apply_rc_appends(intents, verbose=verbose):
            summary.rc_files_modified.append(str(path))
        ctx = dataclasses.replace(ctx, package_manager="brew")

    success("Homebrew installed and ready.")

    _install_stow(ctx, env, config, verbose)

    catalog_path = Path(config.root_path) / config.catalog.file
    text = load_catalog_text(config.root_path, config.catalog.file)
    if text is None:
        warning(f"No {config.catalog.file} found at {catalog_path} - skipping Homebrew bundle.")
        return env

    directives = list(parse_catalog(text, ctx=ctx, unrecognized=config.catalog.unrecognized))
    summary.unrecognized += sum(1 for d in directives if d.kind == DirectiveKind.UNRECOGNIZED)

    info(f"Installing packages from {config.catalog.file}...")
    bundle = InstallStep("Install catalog with brew bundle", ("brew", "bundle", f"--file={catalog_path}"))
    result = _run(bundle, env, config, verbose, capture=False)
    if not result.success:
        warning(f"brew bundle reported failures: {result.error_message}")
    return env


def setup_linux(
    ctx: PlatformContext,
    env: Environment,
    config: Config,
    summary: RunSummary,
    verbose: bool = False,
) -> Environment:
    """Linux flow: local bin on PATH, package lists, stow, then the catalog."""
    header("Setting up Linux...")

    if not ctx.has_package_manager:
        warning("Could not detect package manager. Please install GNU Stow manually.")
        warning("Cannot install packages automatically without a detected package manager")
        return env

    info(f"Detected package manager: {ctx.package_manager}")
    env = ensure_local_bin(env, config, summary, verbose=verbose)

    update_package_lists(ctx, env, timeout=config.timeout_seconds, verbose=verbose)
    _install_stow(ctx, env, config, verbose)

    text = load_catalog_text(config.root_path, config.catalog.file)
    if text is not None:
        install_catalog_packages(text, ctx, env, config=config, summary=summary, verbose=verbose)
    return env


def setup_windows(
    ctx: PlatformContext,
    env: Environment,
    config: Config,
    summary: RunSummary,
    verbose: bool = False,
) -> Environment:
    """Native Windows flow: install stow with choco or winget. The catalog is not used."""
    header("Setting up Windows...")
    warning("Native Windows detected. Some features may be limited.")

    pm = get_package_manager(ctx.package_manager)
    if pm is not None:
        info(f"{pm.display_name} detected.")
        _install_stow(ctx, env, config, verbose)
    else:
        warning("No package manager detected. Please install GNU Stow manually:")
        info("Chocolatey: choco install stow")
        info("winget: winget install --id=GnuWin32.Stow -e")
        info(f"Or download from: {STOW_URL}")

    if (Path(config.root_path) / config.catalog.file).is_file():
        info(f"{config.catalog.file} found but Homebrew is not typically used on Windows.")
        info("Consider using Chocolatey or winget for package management.")
    return env


def setup_unknown(
    ctx: PlatformContext,
    env: Environment,
    config: Config,
    summary: RunSummary,
    verbose: bool = False,
) -> Environment:
    """
    Generic flow for an unrecognized OS: only check that stow is available.

    Raises:
        FatalPreconditionError: If stow is not on PATH
    """
    error(f"Unknown operating system: {ctx.selected_os or ctx.os_class}")
    warning("Attempting generic setup...")
    if not env.has_command("stow"):
        raise FatalPreconditionError(
            "GNU Stow not found",
            remediation=f"Please install it manually: {STOW_URL}",
        )
    return env


def profile_os(ctx: PlatformContext) -> OSClass:
    """
    OS whose stow directories and final hint apply.

    Windows chosen under WSL runs the Linux flow but keeps the Windows
    profile.
    """
    if ctx.wsl and ctx.selected_os == OSClass.WINDOWS:
        return OSClass.WINDOWS
    return ctx.os_class


SETUP_FLOWS = {
    OSClass.MACOS: setup_macos,
    OSClass.LINUX: setup_linux,
    OSClass.WINDOWS: setup_windows,
    OSClass.UNKNOWN: setup_unknown,
}


def run_bootstrap(
    ctx: PlatformContext,
    env: Environment,
    config: Config | None = None,
    summary: RunSummary | None = None,
    verbose: bool = False,
) -> RunSummary:
    """
    Run the whole bootstrap for a resolved platform.

    Args:
        ctx: Platform context
        env: Starting environment
        config: Configuration (defaults if None)
        summary: RunSummary to record into (lets the caller report a run
            that stopped early)
        verbose: Enable verbose logging

    Returns:
        RunSummary of the run

    Raises:
        FatalPreconditionError: If a precondition for continuing fails
    """
    if config is None:
        config = Config()

    if summary is None:
        summary = RunSummary()
    summary.platform = ctx
    header(f"Starting setup for {ctx.selected_os or ctx.os_class}...")

    if ctx.wsl and ctx.selected_os == OSClass.WINDOWS:
        success("Running in WSL. Using Linux setup...")

    env = SETUP_FLOWS[ctx.os_class](ctx, env, config, summary, verbose=verbose)

    profile = profile_os(ctx)
    report = stow_dotfiles(
        config.root_path,
        config.get_stow_dirs(profile.value),
        env,
        timeout=config.timeout_seconds,
        verbose=verbose,
    )
    summary.stowed.extend(report.linked)
    summary.stow_missing.extend(report.missing)
    summary.stow_failed.extend(report.failed)

    if config.session_tools:
        outcomes, env = install_session_tools(env, timeout=config.timeout_seconds, verbose=verbose)
        summary.record_session_tools(outcomes)

    if config.tmux_plugins:
        summary.tmux_plugins = setup_tmux_plugins(
            env, config.root_path, timeout=config.timeout_seconds, verbose=verbose
        )

    header("Setup complete!")
    hint = FINAL_HINTS.get(profile)
    if hint:
        info(hint)

    return summary
