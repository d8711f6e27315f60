"""
Installation execution.

Runs install steps as child processes and reports every outcome as a value.
Command failures never raise: they come back as StepResult with an ErrorKind.
Only fatal preconditions unwind, as FatalPreconditionError, to the CLI.
"""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import Iterable

from .common import ErrorKind, vlog
from .environment import Environment
from .install_plan import InstallStep, native_install_step
from .logging_config import success, warning, info
from .package_managers import get_package_manager, native_package_name
from .planner import ActionStatus, ResolvedAction
from .platform_info import PlatformContext


class BootstrapError(Exception):
    """
    Base exception for bootstrap errors.

    Attributes:
        message: Human-readable error message
        kind: Error classification
        remediation: Suggested fix for the error
    """
    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INSTALL_FAILURE,
        remediation: str | None = None,
    ):
        self.message = message
        self.kind = kind
        self.remediation = remediation
        super().__init__(message)


class FatalPreconditionError(BootstrapError):
    """A precondition failed and the run must stop (exit code 1)."""

    def __init__(self, message: str, remediation: str | None = None):
        super().__init__(message, kind=ErrorKind.FATAL_PRECONDITION, remediation=remediation)


@dataclass(frozen=True)
class StepResult:
    """
    Result of executing a single installation step.

    Attributes:
        step: The installation step that was executed
        success: Whether the step succeeded
        stdout: Standard output from command execution
        stderr: Standard error from command execution
        exit_code: Process exit code
        duration_seconds: Time taken to execute step
        error_kind: Failure classification (None on success)
        error_message: Human-readable error message if failed
    """
    step: InstallStep
    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration_seconds: float
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "step": self.step.to_dict(),
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
        }


def _running_as_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def execute_step(
    step: InstallStep,
    env: Environment | None = None,
    timeout: int | None = None,
    capture: bool = True,
    verbose: bool = False,
) -> StepResult:
    """
    Execute a single installation step.

    Args:
        step: Installation step to execute
        env: Environment for the child process (PATH and HOME)
        timeout: Command timeout in seconds (None waits for the command)
        capture: Capture output instead of streaming it to the terminal
        verbose: Enable verbose logging

    Returns:
        StepResult with execution outcome
    """
    start_time = time.time()

    command = list(step.command)
    if step.requires_sudo and not _running_as_root():
        command = ["sudo"] + command

    vlog(f"Executing: {' '.join(command)}", verbose)

    try:
        result = subprocess.run(
            command,
            capture_output=capture,
            text=True,
            timeout=timeout,
            cwd=step.cwd,
            env=env.as_process_env() if env is not None else None,
            check=False,
        )

        duration = time.time() - start_time
        succeeded = result.returncode in step.ok_exit_codes
        stdout = result.stdout or ""
        stderr = result.stderr or ""

        error_msg = None
        if not succeeded:
            error_msg = f"Command failed with exit code {result.returncode}"
            if stderr:
                error_msg += f": {stderr[:200]}"

        return StepResult(
            step=step,
            success=succeeded,
            stdout=stdout,
            stderr=stderr,
            exit_code=result.returncode,
            duration_seconds=duration,
            error_kind=None if succeeded else ErrorKind.INSTALL_FAILURE,
            error_message=error_msg,
        )

    except subprocess.TimeoutExpired as e:
        duration = time.time() - start_time
        return StepResult(
            step=step,
            success=False,
            stdout=e.stdout.decode() if isinstance(e.stdout, bytes) else (e.stdout or ""),
            stderr=e.stderr.decode() if isinstance(e.stderr, bytes) else (e.stderr or ""),
            exit_code=-1,
            duration_seconds=duration,
            error_kind=ErrorKind.INSTALL_FAILURE,
            error_message=f"Command timed out after {timeout}s",
        )
    except FileNotFoundError:
        duration = time.time() - start_time
        return StepResult(
            step=step,
            success=False,
            stdout="",
            stderr="",
            exit_code=-1,
            duration_seconds=duration,
            error_kind=ErrorKind.ENVIRONMENT_GAP,
            error_message=f"Command not found: {command[0]}",
        )
    except OSError as e:
        duration = time.time() - start_time
        return StepResult(
            step=step,
            success=False,
            stdout="",
            stderr="",
            exit_code=-1,
            duration_seconds=duration,
            error_kind=ErrorKind.INSTALL_FAILURE,
            error_message=f"Unexpected error: {str(e)}",
        )


def update_package_lists(
    ctx: PlatformContext,
    env: Environment,
    timeout: int | None = None,
    verbose: bool = False,
) -> StepResult | None:
    """
    Refresh the native package manager's package lists.

    Returns:
        StepResult, or None if the manager has no update command
    """
    pm = get_package_manager(ctx.package_manager)
    if pm is None or not pm.update_command:
        return None

    info("Updating package lists...")
    step = InstallStep(
        description=f"Update {pm.display_name} package lists",
        command=pm.update_command,
        requires_sudo=pm.requires_sudo,
        ok_exit_codes=pm.ok_exit_codes,
    )
    result = execute_step(step, env=env, timeout=timeout, capture=False, verbose=verbose)
    if not result.success:
        warning(f"Package list update failed: {result.error_message}")
    return result


def install_package(
    name: str,
    ctx: PlatformContext,
    env: Environment,
    timeout: int | None = None,
    verbose: bool = False,
) -> StepResult | None:
    """
    Install one package by name with the native package manager.

    Returns:
        StepResult, or None if no package manager is available
    """
    pm = get_package_manager(ctx.package_manager)
    if pm is None:
        warning(f"Cannot install {name}: no package manager detected")
        return None

    step = InstallStep(
        description=f"Install {name} via {pm.display_name}",
        command=pm.get_install_command(native_package_name(pm.name, name)),
        requires_sudo=pm.requires_sudo,
    )
    return execute_step(step, env=env, timeout=timeout, verbose=verbose)


@dataclass
class NativeInstallReport:
    """
    Outcome of the native install loop.

    Attributes:
        installed: Packages installed successfully
        failed: Packages whose install failed, in failure order
        results: StepResult per attempted package
        skipped_no_manager: Packages not attempted because no manager was detected
    """
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    results: dict[str, StepResult] = field(default_factory=dict)
    skipped_no_manager: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.installed) + len(self.failed)


def install_native_packages(
    actions: Iterable[ResolvedAction],
    ctx: PlatformContext,
    env: Environment,
    timeout: int | None = None,
    verbose: bool = False,
) -> NativeInstallReport:
    """
    Install every MappedToNative action, one package at a time.

    A failing install is recorded and the loop continues; the failure list
    keeps the order in which failures happened.

    Args:
        actions: Planner output
        ctx: Platform context
        env: Environment for child processes
        timeout: Per-command timeout in seconds
        verbose: Enable verbose logging

    Returns:
        NativeInstallReport
    """
    report = NativeInstallReport()
    pending = [a for a in actions if a.status == ActionStatus.MAPPED_TO_NATIVE]

    if not pending:
        return report

    if not ctx.has_package_manager:
        for action in pending:
            warning(f"Skipping {action.package}: no package manager detected")
            report.skipped_no_manager.append(action.package)
        return report

    info("Installing packages...")
    for action in pending:
        step = native_install_step(action, ctx)
        if step is None:
            report.skipped_no_manager.append(action.package)
            continue

        info(f"Installing {action.package}...")
        result = execute_step(step, env=env, timeout=timeout, verbose=verbose)
        report.results[action.package] = result

        if result.success:
            success(f"{action.package} installed successfully")
            report.installed.append(action.package)
        else:
            vlog(f"{action.package}: {result.error_message}", verbose)
            warning(f"{action.package} not available in repositories, will try alternative method")
            report.failed.append(action.package)

    return report
