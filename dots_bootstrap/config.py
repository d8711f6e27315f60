"""
Configuration file parsing and management.

Supports YAML and JSON configuration files.
Merges configurations from multiple sources (custom → project → user → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml
from packaging.version import InvalidVersion, Version

from .common import vlog
from .environment import DEFAULT_RC_FILES


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".dots-bootstrap.yml",                                         # Project root (highest priority)
    ".dots-bootstrap.yaml",
    ".dots-bootstrap.json",
    os.path.expanduser("~/.config/dots-bootstrap/config.yml"),     # User global
    os.path.expanduser("~/.config/dots-bootstrap/config.yaml"),
    os.path.expanduser("~/.config/dots-bootstrap/config.json"),
]

DEFAULT_ROOT_DIR = "~/dots"
DEFAULT_LAZYGIT_VERSION = "0.41.0"

# Configuration directories linked with stow, per OS class
DEFAULT_STOW_DIRS: dict[str, list[str]] = {
    "macos": ["aerospace", "starship", "tmux", "wezterm", "zsh"],
    "linux": ["starship", "tmux", "zsh"],
    "windows": ["starship", "zsh"],
}


@dataclass(frozen=True)
class CatalogSettings:
    """
    Catalog file settings.

    Attributes:
        file: Catalog file name, relative to the root directory
        unrecognized: "warn" to log unrecognized lines, "silent" to drop them quietly
    """
    file: str = "Brewfile"
    unrecognized: str = "warn"

    def __post_init__(self):
        """Validate catalog settings after initialization."""
        if self.unrecognized not in {"warn", "silent"}:
            raise ValueError(
                f"Invalid catalog.unrecognized setting: {self.unrecognized}. "
                "Must be 'warn' or 'silent'"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CatalogSettings:
        """Create CatalogSettings from dictionary."""
        return CatalogSettings(
            file=data.get("file", "Brewfile"),
            unrecognized=data.get("unrecognized", "warn"),
        )


@dataclass(frozen=True)
class FallbackSettings:
    """
    Settings for fallback install recipes.

    Attributes:
        lazygit_version: lazygit release to download
        use_cargo: Allow building tools with cargo
    """
    lazygit_version: str = DEFAULT_LAZYGIT_VERSION
    use_cargo: bool = True

    def __post_init__(self):
        """Validate fallback settings after initialization."""
        try:
            Version(self.lazygit_version)
        except InvalidVersion:
            raise ValueError(
                f"Invalid fallback.lazygit_version: {self.lazygit_version}. "
                "Must be a release version such as 0.41.0"
            ) from None
        if self.lazygit_version.startswith("v"):
            raise ValueError(
                f"Invalid fallback.lazygit_version: {self.lazygit_version}. "
                "Give the version without the leading 'v'"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> FallbackSettings:
        """Create FallbackSettings from dictionary."""
        return FallbackSettings(
            lazygit_version=str(data.get("lazygit_version", DEFAULT_LAZYGIT_VERSION)),
            use_cargo=data.get("use_cargo", True),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for the bootstrap.

    Attributes:
        version: Config schema version
        root_dir: Dotfiles repository root (holds the catalog and stow packages)
        catalog: Catalog file settings
        fallback: Fallback recipe settings
        native_names: Extra cross-platform name mappings for the planner
        stow_dirs: Configuration directories to link, per OS class
        rc_files: Shell startup files that receive PATH exports
        session_tools: Install starship, fnm and mise
        tmux_plugins: Install tmux plugins through TPM
        timeout_seconds: Per-command timeout (None waits for each command)
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    root_dir: str = DEFAULT_ROOT_DIR
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    fallback: FallbackSettings = field(default_factory=FallbackSettings)
    native_names: dict[str, str] = field(default_factory=dict)
    stow_dirs: dict[str, list[str]] = field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_STOW_DIRS.items()})
    rc_files: tuple[str, ...] = DEFAULT_RC_FILES
    session_tools: bool = True
    tmux_plugins: bool = True
    timeout_seconds: int | None = None
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        unknown = set(self.stow_dirs) - set(DEFAULT_STOW_DIRS)
        if unknown:
            raise ValueError(
                f"Invalid stow_dirs platform(s): {', '.join(sorted(unknown))}. "
                f"Must be one of: {', '.join(sorted(DEFAULT_STOW_DIRS))}"
            )

        if self.timeout_seconds is not None and (self.timeout_seconds < 1 or self.timeout_seconds > 3600):
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 3600"
            )

    @property
    def root_path(self) -> str:
        return os.path.expanduser(self.root_dir)

    def get_stow_dirs(self, os_name: str) -> list[str]:
        """
        Get the stow directories for an OS class.

        Unknown platforms use the Linux list.
        """
        if os_name in self.stow_dirs:
            return list(self.stow_dirs[os_name])
        return list(self.stow_dirs.get("linux", DEFAULT_STOW_DIRS["linux"]))

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        stow_dirs = {k: list(v) for k, v in DEFAULT_STOW_DIRS.items()}
        for os_name, dirs in data.get("stow_dirs", {}).items():
            stow_dirs[os_name] = list(dirs)

        timeout = data.get("timeout_seconds")

        return Config(
            version=data.get("version", 1),
            root_dir=data.get("root_dir", DEFAULT_ROOT_DIR),
            catalog=CatalogSettings.from_dict(data.get("catalog", {})),
            fallback=FallbackSettings.from_dict(data.get("fallback", {})),
            native_names=dict(data.get("native_names", {})),
            stow_dirs=stow_dirs,
            rc_files=tuple(data.get("rc_files", DEFAULT_RC_FILES)),
            session_tools=data.get("session_tools", True),
            tmux_plugins=data.get("tmux_plugins", True),
            timeout_seconds=int(timeout) if timeout is not None else None,
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        merged_names = dict(other.native_names)
        merged_names.update(self.native_names)

        merged_stow = dict(other.stow_dirs)
        for os_name, dirs in self.stow_dirs.items():
            if dirs != DEFAULT_STOW_DIRS.get(os_name):
                merged_stow[os_name] = dirs

        merged_catalog = CatalogSettings(
            file=self.catalog.file if self.catalog.file != "Brewfile" else other.catalog.file,
            unrecognized=self.catalog.unrecognized if self.catalog.unrecognized != "warn" else other.catalog.unrecognized,
        )
        merged_fallback = FallbackSettings(
            lazygit_version=(
                self.fallback.lazygit_version
                if self.fallback.lazygit_version != DEFAULT_LAZYGIT_VERSION
                else other.fallback.lazygit_version
            ),
            use_cargo=self.fallback.use_cargo and other.fallback.use_cargo,
        )

        return Config(
            version=self.version,
            root_dir=self.root_dir if self.root_dir != DEFAULT_ROOT_DIR else other.root_dir,
            catalog=merged_catalog,
            fallback=merged_fallback,
            native_names=merged_names,
            stow_dirs=merged_stow,
            rc_files=self.rc_files if self.rc_files != DEFAULT_RC_FILES else other.rc_files,
            session_tools=self.session_tools and other.session_tools,
            tmux_plugins=self.tmux_plugins and other.tmux_plugins,
            timeout_seconds=self.timeout_seconds if self.timeout_seconds is not None else other.timeout_seconds,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    ``.json`` files are read as JSON, everything else as YAML.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError, AttributeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .dots-bootstrap.yml
    3. User ~/.config/dots-bootstrap/config.yml
    4. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    # First config has highest priority
    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    warnings = []

    for os_name, dirs in config.stow_dirs.items():
        if not dirs:
            warnings.append(f"Empty stow directory list for {os_name}")
        if len(dirs) != len(set(dirs)):
            warnings.append(f"Duplicate stow directories for {os_name}")

    for name, native in config.native_names.items():
        if not native:
            warnings.append(f"Empty native package name for '{name}'")
        if "/" in name:
            warnings.append(f"native_names key '{name}' should be a short name (no '/')")

    if not os.path.isdir(config.root_path):
        warnings.append(f"Root directory does not exist: {config.root_path}")

    return warnings
