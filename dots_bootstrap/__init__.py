"""
dots-bootstrap - Workstation setup from a dotfiles repository.

Core Modules:
- Platform: OS class, package manager and architecture resolution
- Catalog: Brewfile parsing into typed directives
- Planning: Cross-platform name mapping and install classification
- Installation: Native install loop, fallback recipes, session tools
- Setup: Per-OS flows, stow linking, tmux plugins, run summary
"""

__version__ = "1.0.0"

# Platform and environment
from .platform_info import OSClass, PlatformContext, detect_os, normalize_arch, resolve_platform, select_os
from .environment import Environment, RcAppend, current_environment, plan_rc_appends, apply_rc_appends
from .package_managers import PackageManager, get_package_manager, detect_package_manager

# Catalog and planning
from .catalog import DirectiveKind, PackageDirective, parse_catalog, short_name, load_catalog_text
from .planner import ActionStatus, ResolvedAction, plan_installs, skipped_packages

# Installation
from .install_plan import InstallStep, BootstrapPlan, generate_bootstrap_plan, dry_run_bootstrap
from .installer import (
    ErrorKind,
    BootstrapError,
    FatalPreconditionError,
    StepResult,
    NativeInstallReport,
    execute_step,
    install_native_packages,
)
from .fallback import (
    FallbackOutcome,
    FallbackResult,
    attempt_fallback,
    install_session_tools,
)

# Configuration
from .config import Config, load_config, load_config_file, validate_config

# Setup
from .dotfiles import stow_dotfiles, setup_tmux_plugins
from .bootstrap import RunSummary, run_bootstrap
from .render import render_summary

__all__ = [
    "__version__",
    # Platform and environment
    "OSClass",
    "PlatformContext",
    "detect_os",
    "normalize_arch",
    "resolve_platform",
    "select_os",
    "Environment",
    "RcAppend",
    "current_environment",
    "plan_rc_appends",
    "apply_rc_appends",
    "PackageManager",
    "get_package_manager",
    "detect_package_manager",
    # Catalog and planning
    "DirectiveKind",
    "PackageDirective",
    "parse_catalog",
    "short_name",
    "load_catalog_text",
    "ActionStatus",
    "ResolvedAction",
    "plan_installs",
    "skipped_packages",
    # Installation
    "InstallStep",
    "BootstrapPlan",
    "generate_bootstrap_plan",
    "dry_run_bootstrap",
    "ErrorKind",
    "BootstrapError",
    "FatalPreconditionError",
    "StepResult",
    "NativeInstallReport",
    "execute_step",
    "install_native_packages",
    "FallbackOutcome",
    "FallbackResult",
    "attempt_fallback",
    "install_session_tools",
    # Configuration
    "Config",
    "load_config",
    "load_config_file",
    "validate_config",
    # Setup
    "stow_dotfiles",
    "setup_tmux_plugins",
    "RunSummary",
    "run_bootstrap",
    "render_summary",
]
