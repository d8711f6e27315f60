"""
Installation planning.

Classifies each package directive against the platform without invoking any
package manager. The caller installs MappedToNative actions one at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

from .catalog import DirectiveKind, PackageDirective
from .environment import Environment, current_environment
from .platform_info import OSClass, PlatformContext

logger = logging.getLogger(__name__)


# Cross-platform tool name -> native package name
NATIVE_NAMES: dict[str, str] = {
    "bat": "bat",          # syntax-highlighting pager
    "eza": "eza",          # directory listing
    "fzf": "fzf",          # fuzzy finder
    "git": "git",
    "lazygit": "lazygit",  # git TUI
    "zoxide": "zoxide",    # directory jumper
    "stow": "stow",        # file linker
    "tmux": "tmux",
}


class ActionStatus(str, Enum):
    """Planning outcome for one package."""

    ALREADY_SATISFIED = "already-satisfied"
    MAPPED_TO_NATIVE = "mapped-to-native"
    UNMAPPED = "unmapped"
    SKIPPED_PLATFORM_MISMATCH = "skipped-platform-mismatch"


@dataclass(frozen=True)
class ResolvedAction:
    """
    Planning outcome for one package directive.

    Attributes:
        package: Short package name
        status: Planning status, computed once per run
        native_name: Package name for the native manager (MappedToNative only)
        directive: Directive the action was planned from
        cask: Whether the directive was a platform (cask) package
    """
    package: str
    status: ActionStatus
    native_name: str | None = None
    directive: PackageDirective | None = None
    cask: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "package": self.package,
            "status": self.status.value,
            "native_name": self.native_name,
            "line": self.directive.line_number if self.directive else None,
            "cask": self.cask,
        }


def _resolve_native_name(
    directive: PackageDirective,
    ctx: PlatformContext,
    native_names: Mapping[str, str],
) -> str | None:
    # Homebrew installs catalog names as written
    if ctx.os_class == OSClass.MACOS and ctx.package_manager == "brew":
        return directive.name
    return native_names.get(directive.short_name or "")


def plan_installs(
    directives: Iterable[PackageDirective],
    ctx: PlatformContext,
    env: Environment | None = None,
    native_names: Mapping[str, str] | None = None,
) -> list[ResolvedAction]:
    """
    Classify package directives into resolved actions.

    Non-package directives produce no action. Platform-exclusive packages on
    another platform are skipped; the rest are looked up in the native name
    table and checked against PATH.

    Args:
        directives: Parsed catalog directives, in file order
        ctx: Platform context
        env: Environment whose PATH decides AlreadySatisfied
        native_names: Extra cross-platform name mappings (override the table)

    Returns:
        List of ResolvedAction, in catalog order
    """
    if env is None:
        env = current_environment()

    table = dict(NATIVE_NAMES)
    if native_names:
        table.update(native_names)

    actions = []
    for directive in directives:
        if not directive.is_package:
            continue

        package = directive.short_name or ""
        cask = directive.kind == DirectiveKind.PLATFORM_PACKAGE

        if not directive.applies_to(ctx.os_class):
            actions.append(ResolvedAction(
                package=package,
                status=ActionStatus.SKIPPED_PLATFORM_MISMATCH,
                directive=directive,
                cask=cask,
            ))
            continue

        native_name = _resolve_native_name(directive, ctx, table)
        if native_name is None:
            logger.warning(f"No mapping found for: {package} (may need manual installation)")
            actions.append(ResolvedAction(
                package=package,
                status=ActionStatus.UNMAPPED,
                directive=directive,
                cask=cask,
            ))
            continue

        if env.has_command(package):
            logger.info(f"{package} is already installed", extra={"outcome": "success"})
            actions.append(ResolvedAction(
                package=package,
                status=ActionStatus.ALREADY_SATISFIED,
                directive=directive,
                cask=cask,
            ))
            continue

        actions.append(ResolvedAction(
            package=package,
            status=ActionStatus.MAPPED_TO_NATIVE,
            native_name=native_name,
            directive=directive,
            cask=cask,
        ))

    return actions


def actions_with_status(actions: Iterable[ResolvedAction], status: ActionStatus) -> list[ResolvedAction]:
    return [a for a in actions if a.status == status]


def skipped_packages(actions: Iterable[ResolvedAction]) -> list[str]:
    """Names skipped as platform-exclusive, in catalog order."""
    return [a.package for a in actions_with_status(actions, ActionStatus.SKIPPED_PLATFORM_MISMATCH)]
