"""
Installation steps and dry-run plans.

An InstallStep is one external command. A BootstrapPlan collects the steps a
run would execute for its catalog so they can be reviewed as a table, JSON,
or a shell script without changing anything.
"""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass
from typing import Sequence

from .package_managers import get_package_manager
from .planner import ActionStatus, ResolvedAction, skipped_packages
from .platform_info import PlatformContext


@dataclass(frozen=True)
class InstallStep:
    """
    Single external command.

    Attributes:
        description: Human-readable description of the step
        command: Command tuple to execute
        requires_sudo: Whether this step requires sudo/root privileges
        ok_exit_codes: Exit codes that count as success
        cwd: Working directory for the command (None for the current one)
    """
    description: str
    command: tuple[str, ...]
    requires_sudo: bool = False
    ok_exit_codes: tuple[int, ...] = (0,)
    cwd: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "description": self.description,
            "command": list(self.command),
            "requires_sudo": self.requires_sudo,
            "ok_exit_codes": list(self.ok_exit_codes),
            "cwd": self.cwd,
        }

    def to_shell(self) -> str:
        """Render as a shell command line."""
        # Pipelines are passed as ("bash", "-c", script); show the script itself
        if len(self.command) == 3 and self.command[1] == "-c":
            command_str = self.command[2]
        else:
            command_str = shlex.join(self.command)
        if self.requires_sudo:
            command_str = "sudo " + command_str
        if self.cwd:
            command_str = f"(cd {shlex.quote(self.cwd)} && {command_str})"
        return command_str


def shell_step(description: str, script: str, shell: str = "bash") -> InstallStep:
    """Build a step that runs ``script`` through a shell (for vendor install pipelines)."""
    return InstallStep(description=description, command=(shell, "-c", script))


def native_install_step(action: ResolvedAction, ctx: PlatformContext) -> InstallStep | None:
    """
    Build the native install step for a MappedToNative action.

    Returns:
        InstallStep, or None if the platform has no package manager
    """
    pm = get_package_manager(ctx.package_manager)
    if pm is None or action.native_name is None:
        return None
    return InstallStep(
        description=f"Install {action.package} via {pm.display_name}",
        command=pm.get_install_command(action.native_name, cask=action.cask),
        requires_sudo=pm.requires_sudo,
    )


@dataclass(frozen=True)
class BootstrapPlan:
    """
    Reviewable plan for the package phase of a run.

    Attributes:
        platform: Resolved platform context
        actions: Planned actions in catalog order
        steps: Native install steps that would run
        warnings: List of warning messages
    """
    platform: PlatformContext
    actions: tuple[ResolvedAction, ...] = ()
    steps: tuple[InstallStep, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "platform": {
                "os": self.platform.os_class.value,
                "package_manager": self.platform.package_manager,
                "arch": self.platform.arch,
                "wsl": self.platform.wsl,
            },
            "actions": [action.to_dict() for action in self.actions],
            "steps": [step.to_dict() for step in self.steps],
            "skipped": skipped_packages(self.actions),
            "warnings": list(self.warnings),
        }

    def to_json(self, indent: int = 2) -> str:
        """
        Serialize to JSON string.

        Args:
            indent: JSON indentation level
        """
        return json.dumps(self.to_dict(), indent=indent)

    def to_script(self, shell: str = "bash") -> str:
        """
        Generate a shell script running the native install steps.

        Steps are not chained with ``set -e``: one failing package must not
        stop the rest.
        """
        lines = []

        # Shebang
        if shell == "bash":
            lines.append("#!/bin/bash")
        elif shell == "zsh":
            lines.append("#!/bin/zsh")
        else:
            lines.append("#!/bin/sh")
        lines.append("")
        lines.append(f"# Package installation for {self.platform}")
        lines.append("")

        if self.warnings:
            lines.append("# Warnings:")
            for warning in self.warnings:
                lines.append(f"#   - {warning}")
            lines.append("")

        for i, step in enumerate(self.steps, 1):
            lines.append(f"# Step {i}: {step.description}")
            lines.append(f"{step.to_shell()} || echo 'Failed: {step.description}' >&2")
            lines.append("")

        return "\n".join(lines)

    def to_table(self, width: int = 80) -> str:
        """
        Generate human-readable table representation.

        Args:
            width: Maximum table width
        """
        lines = []

        lines.append("=" * width)
        lines.append(f"Bootstrap Plan for {self.platform}")
        lines.append("=" * width)
        lines.append("")

        if self.warnings:
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  ⚠  {warning}")
            lines.append("")

        lines.append("Packages:")
        lines.append("-" * width)
        for action in self.actions:
            native = f" -> {action.native_name}" if action.native_name else ""
            lines.append(f"  {action.package:<24} {action.status.value}{native}")
        if not self.actions:
            lines.append("  (none)")
        lines.append("")

        lines.append("Installation Steps:")
        lines.append("-" * width)
        for i, step in enumerate(self.steps, 1):
            sudo_marker = " [SUDO]" if step.requires_sudo else ""
            lines.append(f"{i}. {step.description}{sudo_marker}")
            lines.append(f"   Command: {' '.join(step.command)}")
        if not self.steps:
            lines.append("  (nothing to install)")

        lines.append("-" * width)
        lines.append("")
        lines.append("This is a dry-run. No changes will be made.")

        return "\n".join(lines)


def generate_bootstrap_plan(
    actions: Sequence[ResolvedAction],
    ctx: PlatformContext,
) -> BootstrapPlan:
    """
    Build the dry-run plan for a set of planned actions.

    Args:
        actions: Planner output
        ctx: Platform context

    Returns:
        BootstrapPlan object
    """
    steps = []
    warnings = []

    if not ctx.has_package_manager:
        warnings.append(f"No package manager detected for {ctx.os_class}; native installs will be skipped")

    for action in actions:
        if action.status != ActionStatus.MAPPED_TO_NATIVE:
            continue
        step = native_install_step(action, ctx)
        if step is not None:
            steps.append(step)

    unmapped = [a.package for a in actions if a.status == ActionStatus.UNMAPPED]
    if unmapped:
        warnings.append(f"No native mapping for: {', '.join(unmapped)}")

    if any(step.requires_sudo for step in steps):
        warnings.append("This installation requires sudo/root privileges")

    return BootstrapPlan(
        platform=ctx,
        actions=tuple(actions),
        steps=tuple(steps),
        warnings=tuple(warnings),
    )


def dry_run_bootstrap(
    actions: Sequence[ResolvedAction],
    ctx: PlatformContext,
    output_format: str = "table",
) -> str:
    """
    Format the dry-run plan for output.

    Raises:
        ValueError: If output_format is invalid
    """
    plan = generate_bootstrap_plan(actions, ctx)

    if output_format == "json":
        return plan.to_json()
    elif output_format == "script":
        return plan.to_script()
    elif output_format == "table":
        return plan.to_table()
    else:
        raise ValueError(f"Invalid output format: {output_format}. Must be 'table', 'json', or 'script'")
