"""
Explicit process environment for the bootstrap run.

The home directory, PATH and WSL marker are captured once into an immutable
Environment value that is passed to every component. PATH changes produce a
new value; shell startup file edits are expressed as RcAppend intents and are
written only when applied.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from .common import vlog


LOCAL_BIN_EXPORT = 'export PATH="$HOME/.local/bin:$PATH"'
DEFAULT_RC_FILES = (".bashrc", ".zshrc", ".profile")


@dataclass(frozen=True)
class Environment:
    """
    Snapshot of the environment variables the bootstrap consumes.

    Attributes:
        home: Home directory
        path: PATH entries in lookup order
        wsl_distro: Value of WSL_DISTRO_NAME, if set
    """
    home: Path
    path: tuple[str, ...] = ()
    wsl_distro: str | None = None

    @staticmethod
    def from_mapping(environ: Mapping[str, str]) -> Environment:
        """Create Environment from an os.environ-like mapping."""
        home = environ.get("HOME") or os.path.expanduser("~")
        raw_path = environ.get("PATH", "")
        return Environment(
            home=Path(home),
            path=tuple(p for p in raw_path.split(os.pathsep) if p),
            wsl_distro=environ.get("WSL_DISTRO_NAME") or None,
        )

    @property
    def local_bin(self) -> Path:
        return self.home / ".local" / "bin"

    @property
    def path_string(self) -> str:
        return os.pathsep.join(self.path)

    def which(self, name: str) -> str | None:
        """Resolve an executable against this environment's PATH (``command -v``)."""
        if not self.path:
            return None
        return shutil.which(name, path=self.path_string)

    def has_command(self, name: str) -> bool:
        return self.which(name) is not None

    def on_path(self, directory: str | Path) -> bool:
        return str(directory) in self.path

    def with_path_prepended(self, directory: str | Path) -> Environment:
        """
        Return a new Environment with ``directory`` at the front of PATH.

        Entries already on PATH are left where they are.
        """
        entry = str(directory)
        if entry in self.path:
            return self
        return Environment(
            home=self.home,
            path=(entry,) + self.path,
            wsl_distro=self.wsl_distro,
        )

    def as_process_env(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Build the environment mapping handed to child processes."""
        merged = dict(os.environ if base is None else base)
        merged["HOME"] = str(self.home)
        merged["PATH"] = self.path_string
        return merged


def current_environment() -> Environment:
    """Capture the running process environment."""
    return Environment.from_mapping(os.environ)


@dataclass(frozen=True)
class RcAppend:
    """
    Intent to append one line to a shell startup file.

    Attributes:
        file: Startup file to edit
        line: Line to append
        marker: Substring whose presence means the file is already configured
    """
    file: Path
    line: str
    marker: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"file": str(self.file), "line": self.line, "marker": self.marker}


def plan_rc_appends(
    env: Environment,
    line: str = LOCAL_BIN_EXPORT,
    marker: str = ".local/bin",
    rc_files: Sequence[str] = DEFAULT_RC_FILES,
    create_missing: bool = False,
) -> list[RcAppend]:
    """
    Work out which startup files still need ``line``.

    Files that do not exist are skipped unless ``create_missing`` is set.
    Files that already contain ``marker`` are left alone.

    Args:
        env: Environment (for the home directory)
        line: Line to append
        marker: Substring that marks a file as already configured
        rc_files: Startup file names relative to the home directory
        create_missing: Plan appends for files that do not exist yet

    Returns:
        List of RcAppend intents, in rc_files order
    """
    intents = []
    for name in rc_files:
        rc_path = env.home / name
        if not rc_path.is_file():
            if create_missing:
                intents.append(RcAppend(file=rc_path, line=line, marker=marker))
            continue
        try:
            content = rc_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        if marker in content:
            continue
        intents.append(RcAppend(file=rc_path, line=line, marker=marker))
    return intents


def apply_rc_appends(intents: Iterable[RcAppend], verbose: bool = False) -> list[Path]:
    """
    Write RcAppend intents to disk.

    The marker is re-checked right before writing so applying the same
    intents twice leaves a single copy of the line.

    Returns:
        Files that were modified
    """
    modified = []
    for intent in intents:
        existing = ""
        if intent.file.is_file():
            existing = intent.file.read_text(encoding="utf-8", errors="replace")
            if intent.marker in existing:
                vlog(f"{intent.file} already contains {intent.marker!r}", verbose)
                continue
        else:
            intent.file.parent.mkdir(parents=True, exist_ok=True)

        with open(intent.file, "a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(intent.line + "\n")
        vlog(f"Appended to {intent.file}: {intent.line}", verbose)
        modified.append(intent.file)
    return modified
