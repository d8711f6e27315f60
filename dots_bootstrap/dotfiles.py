"""
Dotfile linking and tmux plugin setup.

Thin wrappers over GNU Stow and the tmux plugin manager (TPM).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .environment import Environment
from .install_plan import InstallStep
from .installer import FatalPreconditionError, execute_step
from .logging_config import error, header, info, success, warning


TPM_RELATIVE_DIR = Path(".config") / "tmux" / "plugins" / "tpm"
TPM_SUCCESS_MARKERS = ("download success", "Already installed")


@dataclass
class StowReport:
    """Outcome of linking configuration directories."""

    linked: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def stow_dotfiles(
    root: str | Path,
    directories: Sequence[str],
    env: Environment,
    timeout: int | None = None,
    verbose: bool = False,
) -> StowReport:
    """
    Link each configuration directory under ``root`` with ``stow -v``.

    Args:
        root: Dotfiles repository root (stow runs from here)
        directories: Stow package directories to link
        env: Environment for child processes
        timeout: Per-command timeout in seconds
        verbose: Enable verbose logging

    Returns:
        StowReport

    Raises:
        FatalPreconditionError: If the root directory cannot be entered
    """
    header("Linking configuration files using Stow...")
    root = Path(root).expanduser()
    if not root.is_dir():
        raise FatalPreconditionError(
            f"Cannot change into dotfiles directory: {root}",
            remediation="Clone your dotfiles there or pass --root",
        )

    report = StowReport()
    for directory in directories:
        if not (root / directory).is_dir():
            warning(f"Directory {directory} not found, skipping...")
            report.missing.append(directory)
            continue

        info(f"Stowing {directory}...")
        step = InstallStep(
            description=f"Stow {directory}",
            command=("stow", "-v", directory),
            cwd=str(root),
        )
        result = execute_step(step, env=env, timeout=timeout, capture=False, verbose=verbose)
        if result.success:
            report.linked.append(directory)
        else:
            warning(f"Failed to stow {directory}: {result.error_message}")
            report.failed.append(directory)

    return report


def setup_tmux_plugins(
    env: Environment,
    root: str | Path,
    timeout: int | None = None,
    verbose: bool = False,
) -> bool:
    """
    Install tmux plugins through TPM.

    TPM is expected to arrive through the stowed tmux configuration (as a git
    submodule). Problems are reported and never stop the run.

    Returns:
        True if TPM reported the plugins as installed
    """
    header("Setting up tmux plugins...")
    tpm_dir = env.home / TPM_RELATIVE_DIR

    if not tpm_dir.is_dir():
        error(f"TPM not found at {tpm_dir}")
        info("Ensure tmux configuration was stowed correctly")
        return False

    if not (tpm_dir / "tpm").is_file():
        error("TPM directory exists but tpm executable not found")
        info("This likely means the git submodule wasn't initialized")
        info(f"Run: cd {root} && git submodule update --init --recursive")
        return False

    info("Installing tmux plugins...")
    step = InstallStep(
        description="Install tmux plugins",
        command=(str(tpm_dir / "bin" / "install_plugins"),),
    )
    result = execute_step(step, env=env, timeout=timeout, verbose=verbose)
    output = result.stdout + result.stderr

    if any(marker in output for marker in TPM_SUCCESS_MARKERS):
        success("tmux plugins installed successfully!")
        info("To use tmux with the new configuration, run: tmux")
        return True

    warning("Plugin installation may have encountered issues")
    info("You can manually install by opening tmux and pressing: Ctrl+a then Shift+I")
    return False
