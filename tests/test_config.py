"""
Tests for configuration management (dots_bootstrap/config.py).
"""

from unittest.mock import patch

import pytest

from conftest import FIXTURES_DIR
from dots_bootstrap.config import (
    DEFAULT_LAZYGIT_VERSION,
    DEFAULT_STOW_DIRS,
    CatalogSettings,
    Config,
    FallbackSettings,
    load_config,
    load_config_file,
    validate_config,
)


class TestCatalogSettings:
    """Tests for CatalogSettings dataclass."""

    def test_defaults(self):
        settings = CatalogSettings()
        assert settings.file == "Brewfile"
        assert settings.unrecognized == "warn"

    def test_invalid_unrecognized(self):
        with pytest.raises(ValueError, match="Invalid catalog.unrecognized"):
            CatalogSettings(unrecognized="error")

    def test_from_dict(self):
        settings = CatalogSettings.from_dict({"unrecognized": "silent"})
        assert settings.unrecognized == "silent"
        assert settings.file == "Brewfile"


class TestFallbackSettings:
    """Tests for FallbackSettings dataclass."""

    def test_defaults(self):
        settings = FallbackSettings()
        assert settings.lazygit_version == DEFAULT_LAZYGIT_VERSION
        assert settings.use_cargo is True

    def test_invalid_version(self):
        with pytest.raises(ValueError, match="Invalid fallback.lazygit_version"):
            FallbackSettings(lazygit_version="latest")

    def test_leading_v_rejected(self):
        with pytest.raises(ValueError, match="without the leading 'v'"):
            FallbackSettings(lazygit_version="v0.41.0")

    def test_from_dict_numeric_version(self):
        assert FallbackSettings.from_dict({"lazygit_version": 0.4}).lazygit_version == "0.4"


class TestConfig:
    """Tests for Config dataclass."""

    def test_defaults(self):
        config = Config()
        assert config.version == 1
        assert config.root_dir == "~/dots"
        assert config.session_tools is True
        assert config.timeout_seconds is None
        assert config.get_stow_dirs("macos") == ["aerospace", "starship", "tmux", "wezterm", "zsh"]

    def test_invalid_version(self):
        with pytest.raises(ValueError, match="Unsupported config version"):
            Config(version=2)

    def test_invalid_stow_platform(self):
        with pytest.raises(ValueError, match="Invalid stow_dirs platform"):
            Config(stow_dirs={"freebsd": ["zsh"]})

    @pytest.mark.parametrize("timeout", [0, 3601])
    def test_invalid_timeout(self, timeout):
        with pytest.raises(ValueError, match="Invalid timeout_seconds"):
            Config(timeout_seconds=timeout)

    def test_unknown_os_uses_linux_dirs(self):
        assert Config().get_stow_dirs("unknown") == DEFAULT_STOW_DIRS["linux"]

    def test_get_stow_dirs_returns_copy(self):
        config = Config()
        config.get_stow_dirs("linux").append("nvim")
        assert "nvim" not in config.get_stow_dirs("linux")

    def test_root_path_expands_home(self):
        assert not Config().root_path.startswith("~")

    def test_from_dict(self):
        config = Config.from_dict({
            "root_dir": "/srv/dots",
            "catalog": {"file": "Packages"},
            "stow_dirs": {"windows": ["zsh"]},
            "timeout_seconds": "120",
        })
        assert config.root_dir == "/srv/dots"
        assert config.catalog.file == "Packages"
        assert config.get_stow_dirs("windows") == ["zsh"]
        assert config.get_stow_dirs("linux") == DEFAULT_STOW_DIRS["linux"]
        assert config.timeout_seconds == 120

    def test_immutable(self):
        config = Config()
        with pytest.raises(AttributeError):
            config.root_dir = "/x"


class TestConfigMerging:
    """Tests for Config.merge_with."""

    def test_merge_with_defaults(self):
        custom = Config(root_dir="/srv/dots", native_names={"fd": "fd-find"})
        merged = custom.merge_with(Config())
        assert merged.root_dir == "/srv/dots"
        assert merged.native_names == {"fd": "fd-find"}

    def test_lower_priority_fills_defaults(self):
        high = Config(native_names={"fd": "fd-find"})
        low = Config(
            root_dir="/srv/dots",
            native_names={"fd": "fd", "htop": "htop"},
            catalog=CatalogSettings(unrecognized="silent"),
            fallback=FallbackSettings(lazygit_version="0.40.2"),
            timeout_seconds=60,
        )
        merged = high.merge_with(low)
        assert merged.root_dir == "/srv/dots"
        assert merged.native_names == {"fd": "fd-find", "htop": "htop"}
        assert merged.catalog.unrecognized == "silent"
        assert merged.fallback.lazygit_version == "0.40.2"
        assert merged.timeout_seconds == 60

    def test_stow_dirs_override(self):
        high = Config(stow_dirs={**DEFAULT_STOW_DIRS, "linux": ["zsh"]})
        low = Config(stow_dirs={**DEFAULT_STOW_DIRS, "macos": ["zsh", "aerospace"]})
        merged = high.merge_with(low)
        assert merged.get_stow_dirs("linux") == ["zsh"]
        assert merged.get_stow_dirs("macos") == ["zsh", "aerospace"]

    def test_disabled_features_stay_disabled(self):
        merged = Config().merge_with(Config(session_tools=False))
        assert merged.session_tools is False


class TestConfigLoading:
    """Tests for config file loading."""

    def test_load_yaml(self):
        config = load_config_file(str(FIXTURES_DIR / "config_valid.yml"))
        assert config is not None
        assert config.root_dir == "/tmp/dots-fixture"
        assert config.catalog.unrecognized == "silent"
        assert config.fallback.lazygit_version == "0.40.2"
        assert config.fallback.use_cargo is False
        assert config.native_names["fd"] == "fd-find"
        assert config.get_stow_dirs("linux") == ["starship", "tmux", "zsh", "nvim"]
        assert config.rc_files == (".bashrc", ".zshrc")
        assert config.session_tools is False
        assert config.timeout_seconds == 300
        assert config.source.endswith("config_valid.yml")

    def test_load_json(self):
        config = load_config_file(str(FIXTURES_DIR / "config_valid.json"))
        assert config.root_dir == "/tmp/dots-json"
        assert config.tmux_plugins is False

    def test_invalid_yaml(self):
        assert load_config_file(str(FIXTURES_DIR / "config_invalid.yml")) is None

    def test_failed_validation(self):
        assert load_config_file(str(FIXTURES_DIR / "config_bad_version.yml")) is None

    def test_missing_file(self, tmp_path):
        assert load_config_file(str(tmp_path / "nope.yml")) is None

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        config = load_config_file(str(path))
        assert config == Config(source=str(path))

    @patch("dots_bootstrap.config.CONFIG_LOCATIONS", [])
    def test_load_config_defaults(self):
        assert load_config() == Config()

    @patch("dots_bootstrap.config.CONFIG_LOCATIONS", [])
    def test_load_config_custom_path_missing(self, tmp_path):
        with pytest.raises(ValueError, match="Could not load config"):
            load_config(str(tmp_path / "missing.yml"))

    def test_load_config_precedence(self):
        locations = [str(FIXTURES_DIR / "config_valid.json")]
        with patch("dots_bootstrap.config.CONFIG_LOCATIONS", locations):
            config = load_config(str(FIXTURES_DIR / "config_valid.yml"))
        assert config.root_dir == "/tmp/dots-fixture"
        assert config.native_names == {"ripgrep": "ripgrep", "fd": "fd-find", "htop": "htop"}
        assert config.tmux_plugins is False


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid(self, tmp_path):
        assert validate_config(Config(root_dir=str(tmp_path))) == []

    def test_warnings(self, tmp_path):
        config = Config(
            root_dir=str(tmp_path / "missing"),
            native_names={"vendor/tool": "tool", "fd": ""},
            stow_dirs={"linux": [], "macos": ["zsh", "zsh"]},
        )
        warnings = validate_config(config)
        assert "Empty stow directory list for linux" in warnings
        assert "Duplicate stow directories for macos" in warnings
        assert "Empty native package name for 'fd'" in warnings
        assert any("vendor/tool" in w for w in warnings)
        assert any("Root directory does not exist" in w for w in warnings)
