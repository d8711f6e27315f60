"""
End-to-end bootstrap scenarios.

Package managers and downloads are replaced with mocks; catalog parsing,
planning, fallbacks and summary bookkeeping run for real.
"""

import shutil
import urllib.error
from unittest.mock import MagicMock, patch

from conftest import FIXTURES_DIR
from dots_bootstrap.bootstrap import RunSummary, install_catalog_packages, run_bootstrap
from dots_bootstrap.config import Config
from dots_bootstrap.environment import LOCAL_BIN_EXPORT
from dots_bootstrap.fallback import FallbackResult
from dots_bootstrap.planner import ActionStatus
from dots_bootstrap.platform_info import OSClass, PlatformContext


APT_X86 = PlatformContext(os_class=OSClass.LINUX, package_manager="apt", arch="x86_64")
APT_ARM = PlatformContext(os_class=OSClass.LINUX, package_manager="apt", arch="aarch64")


def _installed_packages(mock_run):
    """Package names passed to ``apt-get install``."""
    packages = []
    for call in mock_run.call_args_list:
        command = [c for c in call[0][0] if c != "sudo"]
        if command[:2] == ["apt-get", "install"]:
            packages.append(command[-1])
    return packages


class TestPackageScenarios:
    """Package-phase scenarios on Linux."""

    @patch("subprocess.run")
    def test_tool_already_on_path(self, mock_run, make_env):
        summary = RunSummary()
        actions = install_catalog_packages(
            'tap "foo/bar"\nbrew "git"\n', APT_X86, make_env(commands=("git",)), summary=summary
        )

        assert [(a.package, a.status) for a in actions] == [("git", ActionStatus.ALREADY_SATISFIED)]
        assert summary.counts()["already_satisfied"] == 1
        assert summary.native_installed == []
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_exclusive_cask_skipped_off_macos(self, mock_run, make_env):
        summary = RunSummary()
        install_catalog_packages('cask "raycast"\n', APT_X86, make_env(), summary=summary)

        assert summary.skipped_platform == ["raycast"]
        assert summary.native_installed == []
        assert summary.native_failed == []
        mock_run.assert_not_called()

    @patch("dots_bootstrap.fallback.download_file")
    @patch("subprocess.run")
    def test_native_failure_then_fallback_failure(self, mock_run, mock_download, make_env):
        mock_run.return_value = MagicMock(returncode=100, stdout="", stderr="E: Unable to locate package lazygit")
        mock_download.side_effect = urllib.error.URLError("network unreachable")
        summary = RunSummary()

        install_catalog_packages('brew "lazygit"\n', APT_ARM, make_env(), summary=summary)

        assert summary.native_failed == ["lazygit"]
        assert summary.fallback_failed == ["lazygit"]
        assert summary.fallback_succeeded == []
        assert _installed_packages(mock_run) == ["lazygit"]
        [outcome] = summary.fallback_outcomes
        assert outcome.package == "lazygit"
        assert outcome.result == FallbackResult.FAILURE
        assert "arm64" in outcome.url
        assert outcome.url.endswith(".tar.gz")
        assert mock_download.call_args[0][0] == outcome.url

    @patch("subprocess.run")
    def test_empty_catalog(self, mock_run, make_env):
        summary = RunSummary()
        actions = install_catalog_packages("", APT_X86, make_env(), summary=summary)

        assert actions == []
        assert set(summary.counts().values()) == {0}
        mock_run.assert_not_called()


class TestFullRun:
    """Whole bootstrap run against the sample catalog."""

    @patch("dots_bootstrap.fallback.download_file")
    @patch("subprocess.run")
    def test_linux_run(self, mock_run, mock_download, make_env, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        root = tmp_path / "dots"
        root.mkdir()
        shutil.copy(FIXTURES_DIR / "Brewfile", root / "Brewfile")
        (root / "tmux").mkdir()
        (root / "zsh").mkdir()

        env = make_env(commands=("apt-get", "git", "stow", "starship", "fnm", "mise"))
        (env.home / ".bashrc").write_text("# bash\n")
        config = Config(root_dir=str(root), tmux_plugins=False)

        summary = run_bootstrap(APT_X86, env, config=config)

        assert summary.already_satisfied == ["git", "stow"]
        assert summary.native_installed == ["bat", "eza", "fzf", "lazygit", "tmux", "zoxide"]
        assert summary.native_failed == []
        assert summary.skipped_platform == ["borders", "aerospace", "raycast"]
        assert summary.unmapped == ["ripgrep", "wezterm"]
        assert summary.unrecognized == 1
        assert summary.stowed == ["tmux", "zsh"]
        assert summary.stow_missing == ["starship"]
        assert summary.session_present == ["starship", "fnm", "mise"]
        assert summary.rc_files_modified == [str(env.home / ".bashrc")]
        assert LOCAL_BIN_EXPORT in (env.home / ".bashrc").read_text()

        assert _installed_packages(mock_run) == ["bat", "eza", "fzf", "lazygit", "tmux", "zoxide"]
        mock_download.assert_not_called()
