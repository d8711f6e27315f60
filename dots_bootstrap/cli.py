"""
Command-line entry point.

Usage:
    dots-bootstrap                    # Interactive OS menu, then full setup
    dots-bootstrap --os linux         # Skip the menu
    dots-bootstrap --dry-run          # Show the package plan without changing anything
    dots-bootstrap --dry-run --format json
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import Callable, Sequence

from . import __version__
from .bootstrap import RunSummary, run_bootstrap
from .catalog import load_catalog_text, parse_catalog
from .common import vlog
from .config import Config, load_config, validate_config
from .environment import Environment, current_environment
from .install_plan import dry_run_bootstrap
from .installer import FatalPreconditionError
from .logging_config import error, setup_logging, success, warning
from .planner import plan_installs
from .platform_info import OSClass, detect_os, resolve_platform, select_os
from .render import render_summary


OS_CHOICES = ("macos", "linux", "windows", "auto")


def show_menu(detected: OSClass, input_fn: Callable[[str], str] = input) -> OSClass:
    """
    Ask which operating system to set up.

    Args:
        detected: Auto-detected OS class (the default answer)
        input_fn: Prompt function (``input`` by default)

    Returns:
        Selected OS class
    """
    print("")
    print("=== Operating System Selection ===")
    print("1) macOS")
    print("2) Linux")
    print("3) Windows (WSL/Git Bash)")
    print(f"4) Auto-detect (current: {detected})")
    print("")
    try:
        choice = input_fn("Select your operating system [1-4] (default: 4): ")
    except EOFError:
        choice = ""

    selected, valid = select_os(choice, detected)
    if not valid:
        warning("Invalid selection. Using auto-detect.")
    success(f"Selected OS: {selected}")
    return selected


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dots-bootstrap",
        description="Bootstrap a workstation from a dotfiles repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--os",
        choices=OS_CHOICES,
        help="Operating system to set up (skips the interactive menu)",
    )
    parser.add_argument(
        "--root",
        help="Dotfiles repository root (default: ~/dots)",
    )
    parser.add_argument(
        "--config",
        help="Path to a configuration file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be installed without changing anything",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json", "script"),
        default="table",
        help="Dry-run output format (default: table)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show warnings and errors",
    )
    parser.add_argument(
        "--log-file",
        help="Also write a full log to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _selected_os(args: argparse.Namespace, interactive: bool) -> OSClass | None:
    if args.os == "auto":
        return None
    if args.os:
        return OSClass(args.os)
    if interactive:
        return show_menu(detect_os())
    return None


def cmd_dry_run(args: argparse.Namespace, config: Config, env: Environment) -> int:
    """Print the package plan for the resolved platform."""
    ctx = resolve_platform(env, selected=_selected_os(args, interactive=False), verbose=args.verbose)
    text = load_catalog_text(config.root_path, config.catalog.file) or ""
    directives = parse_catalog(text, ctx=ctx, unrecognized=config.catalog.unrecognized)
    actions = plan_installs(directives, ctx, env=env, native_names=config.native_names)
    print(dry_run_bootstrap(actions, ctx, output_format=args.format))
    return 0


def cmd_bootstrap(args: argparse.Namespace, config: Config, env: Environment) -> int:
    """Run the full setup and print the run summary."""
    selected = _selected_os(args, interactive=sys.stdin.isatty())
    ctx = resolve_platform(env, selected=selected, verbose=args.verbose)

    summary = RunSummary()
    exit_code = 0
    try:
        run_bootstrap(ctx, env, config=config, summary=summary, verbose=args.verbose)
    except FatalPreconditionError as e:
        error(e.message)
        if e.remediation:
            warning(e.remediation)
        exit_code = 1

    print(render_summary(summary))
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for dots-bootstrap."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        try:
            config = load_config(args.config, verbose=args.verbose)
        except ValueError as e:
            error(str(e))
            return 1

        if args.root:
            config = dataclasses.replace(config, root_dir=args.root)
        for message in validate_config(config):
            vlog(f"Config warning: {message}", args.verbose)

        env = current_environment()

        if args.dry_run:
            return cmd_dry_run(args, config, env)
        return cmd_bootstrap(args, config, env)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
