"""
Package catalog parsing.

The catalog is a Homebrew Brewfile. Each line is classified into a closed set
of directive kinds; only package directives carry a name forward to the
planner. Tools that only make sense on macOS are tagged with a platform filter
so the planner can skip them elsewhere.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

from .common import ErrorKind
from .platform_info import OSClass, PlatformContext

logger = logging.getLogger(__name__)


DEFAULT_CATALOG_FILE = "Brewfile"

# Tools whose functionality is meaningful only on one operating system
PLATFORM_EXCLUSIVE: dict[str, OSClass] = {
    "aerospace": OSClass.MACOS,   # tiling window manager
    "raycast": OSClass.MACOS,     # launcher
    "appcleaner": OSClass.MACOS,  # uninstaller
    "borders": OSClass.MACOS,     # window borders
}

UNRECOGNIZED_MODES = ("warn", "silent")

_TAP_RE = re.compile(r"^\s*tap\b")
_VSCODE_RE = re.compile(r"^\s*vscode\b")
_CASK_RE = re.compile(r'^\s*cask\s+"([^"]+)"')
_BREW_RE = re.compile(r'^\s*brew\s+"([^"]+)"')


class DirectiveKind(str, Enum):
    """Classification of one catalog line."""

    BLANK = "blank"
    COMMENT = "comment"
    TAP = "tap"
    EDITOR_EXTENSION = "editor-extension"
    NATIVE_PACKAGE = "native-package"
    PLATFORM_PACKAGE = "platform-package"
    UNRECOGNIZED = "unrecognized"

    @property
    def is_package(self) -> bool:
        return self in (DirectiveKind.NATIVE_PACKAGE, DirectiveKind.PLATFORM_PACKAGE)


@dataclass(frozen=True)
class PackageDirective:
    """
    One parsed catalog line.

    Attributes:
        raw: Line text without the trailing newline
        kind: Directive classification
        name: Quoted package name, possibly vendor-qualified (package kinds only)
        short_name: Name after the last path separator (package kinds only)
        platform_filter: OS class the package is exclusive to, if any
        line_number: 1-based line number in the catalog
    """
    raw: str
    kind: DirectiveKind
    name: str | None = None
    short_name: str | None = None
    platform_filter: OSClass | None = None
    line_number: int = 0

    @property
    def is_package(self) -> bool:
        return self.kind.is_package

    @property
    def error_kind(self) -> ErrorKind | None:
        if self.kind == DirectiveKind.UNRECOGNIZED:
            return ErrorKind.UNRECOGNIZED_INPUT
        return None

    def applies_to(self, os_class: OSClass) -> bool:
        """Whether this directive is meaningful on ``os_class``."""
        return self.platform_filter is None or self.platform_filter == os_class


def short_name(name: str) -> str:
    """
    Strip the vendor qualification from a package name.

    ``felixkratz/formulae/borders`` becomes ``borders``; already-short names
    are returned unchanged.
    """
    return name.rsplit("/", 1)[-1]


def exclusive_platform(name: str) -> OSClass | None:
    """Return the OS class a package is exclusive to, or None."""
    return PLATFORM_EXCLUSIVE.get(short_name(name))


def _package_directive(raw: str, kind: DirectiveKind, name: str, line_number: int) -> PackageDirective:
    return PackageDirective(
        raw=raw,
        kind=kind,
        name=name,
        short_name=short_name(name),
        platform_filter=exclusive_platform(name),
        line_number=line_number,
    )


def classify_line(raw: str, line_number: int = 0) -> PackageDirective:
    """
    Classify a single catalog line.

    Rules are evaluated in order: blank/comment, tap, editor extension,
    cask (platform package), brew (native package), unrecognized.
    """
    stripped = raw.strip()
    if not stripped:
        return PackageDirective(raw=raw, kind=DirectiveKind.BLANK, line_number=line_number)
    if stripped.startswith("#"):
        return PackageDirective(raw=raw, kind=DirectiveKind.COMMENT, line_number=line_number)
    if _TAP_RE.match(raw):
        return PackageDirective(raw=raw, kind=DirectiveKind.TAP, line_number=line_number)
    if _VSCODE_RE.match(raw):
        return PackageDirective(raw=raw, kind=DirectiveKind.EDITOR_EXTENSION, line_number=line_number)

    match = _CASK_RE.match(raw)
    if match:
        return _package_directive(raw, DirectiveKind.PLATFORM_PACKAGE, match.group(1), line_number)

    match = _BREW_RE.match(raw)
    if match:
        return _package_directive(raw, DirectiveKind.NATIVE_PACKAGE, match.group(1), line_number)

    return PackageDirective(raw=raw, kind=DirectiveKind.UNRECOGNIZED, line_number=line_number)


class CatalogDirectives:
    """
    Lazy, restartable sequence of directives parsed from catalog text.

    Each iteration re-parses the text in file order, so the same object can
    be walked more than once.
    """

    def __init__(
        self,
        text: str,
        ctx: PlatformContext | None = None,
        unrecognized: str = "warn",
    ):
        if unrecognized not in UNRECOGNIZED_MODES:
            raise ValueError(
                f"Invalid unrecognized-line mode: {unrecognized}. "
                f"Must be one of: {', '.join(UNRECOGNIZED_MODES)}"
            )
        self.text = text
        self.ctx = ctx
        self.unrecognized = unrecognized

    def __iter__(self) -> Iterator[PackageDirective]:
        for line_number, raw in enumerate(self.text.splitlines(), 1):
            directive = classify_line(raw, line_number)

            if directive.kind == DirectiveKind.UNRECOGNIZED and self.unrecognized == "warn":
                logger.warning(
                    f"Unrecognized catalog line {line_number}: {raw.strip()}",
                    extra={"error_kind": directive.error_kind},
                )
            elif (
                self.ctx is not None
                and directive.is_package
                and not directive.applies_to(self.ctx.os_class)
            ):
                logger.debug(
                    f"{directive.name} is {directive.platform_filter}-only, "
                    f"not applicable on {self.ctx.os_class}"
                )

            yield directive

    def packages(self) -> list[PackageDirective]:
        """Return only the package directives, in file order."""
        return [d for d in self if d.is_package]


def parse_catalog(
    text: str,
    ctx: PlatformContext | None = None,
    unrecognized: str = "warn",
) -> CatalogDirectives:
    """
    Parse catalog text into directives.

    Args:
        text: Catalog file contents
        ctx: Platform context (used to note platform-exclusive entries)
        unrecognized: "warn" to log unrecognized lines, "silent" to drop them quietly

    Returns:
        CatalogDirectives, iterable any number of times

    Raises:
        ValueError: If unrecognized is not a valid mode
    """
    return CatalogDirectives(text, ctx=ctx, unrecognized=unrecognized)


def load_catalog_text(root: str | Path, filename: str = DEFAULT_CATALOG_FILE) -> str | None:
    """
    Read the catalog file from the dotfiles root.

    Returns:
        File contents, or None if the file does not exist
    """
    path = Path(root).expanduser() / filename
    if not path.is_file():
        logger.warning(f"No {filename} found at {path}")
        return None
    return path.read_text(encoding="utf-8")
