"""
Tests for platform resolution (dots_bootstrap/platform_info.py).
"""

import pytest

from dots_bootstrap.platform_info import (
    OSClass,
    PlatformContext,
    detect_os,
    normalize_arch,
    resolve_platform,
    select_os,
)


class TestDetectOS:
    """Tests for kernel name classification."""

    @pytest.mark.parametrize("system,expected", [
        ("Darwin", OSClass.MACOS),
        ("Linux", OSClass.LINUX),
        ("MINGW64_NT-10.0", OSClass.WINDOWS),
        ("MSYS_NT-10.0", OSClass.WINDOWS),
        ("CYGWIN_NT-10.0", OSClass.WINDOWS),
        ("Windows", OSClass.WINDOWS),
        ("FreeBSD", OSClass.UNKNOWN),
        ("", OSClass.UNKNOWN),
    ])
    def test_detect_os(self, system, expected):
        assert detect_os(system) == expected


class TestNormalizeArch:
    """Tests for architecture normalization."""

    @pytest.mark.parametrize("machine,expected", [
        ("x86_64", "x86_64"),
        ("aarch64", "arm64"),
        ("arm64", "arm64"),
        ("i686", "x86_64"),
        ("riscv64", "x86_64"),
        ("", "x86_64"),
    ])
    def test_normalize_arch(self, machine, expected):
        assert normalize_arch(machine) == expected


class TestSelectOS:
    """Tests for the interactive menu mapping."""

    def test_numbered_choices(self):
        assert select_os("1", OSClass.LINUX) == (OSClass.MACOS, True)
        assert select_os("2", OSClass.MACOS) == (OSClass.LINUX, True)
        assert select_os("3", OSClass.LINUX) == (OSClass.WINDOWS, True)

    def test_auto_detect_and_default(self):
        assert select_os("4", OSClass.MACOS) == (OSClass.MACOS, True)
        assert select_os("", OSClass.LINUX) == (OSClass.LINUX, True)

    def test_whitespace_is_ignored(self):
        assert select_os(" 2 \n", OSClass.MACOS) == (OSClass.LINUX, True)

    def test_invalid_choice_falls_back_to_detected(self):
        assert select_os("9", OSClass.LINUX) == (OSClass.LINUX, False)
        assert select_os("linux", OSClass.MACOS) == (OSClass.MACOS, False)


class TestPlatformContext:
    """Tests for PlatformContext."""

    def test_defaults(self):
        ctx = PlatformContext(os_class=OSClass.LINUX)
        assert ctx.package_manager == "none"
        assert ctx.has_package_manager is False
        assert ctx.wsl is False

    def test_str(self):
        ctx = PlatformContext(os_class=OSClass.LINUX, package_manager="apt", arch="aarch64", wsl=True)
        assert str(ctx) == "linux (WSL)/apt/aarch64"
        assert ctx.normalized_arch == "arm64"

    def test_immutable(self):
        ctx = PlatformContext(os_class=OSClass.LINUX)
        with pytest.raises(AttributeError):
            ctx.package_manager = "apt"


class TestResolvePlatform:
    """Tests for resolve_platform."""

    def test_linux_with_apt(self, make_env, tmp_path):
        env = make_env(commands=("apt-get", "dnf"))
        ctx = resolve_platform(
            env=env,
            system="Linux",
            machine="aarch64",
            proc_version_path=str(tmp_path / "missing"),
        )
        assert ctx.os_class == OSClass.LINUX
        assert ctx.package_manager == "apt"
        assert ctx.arch == "aarch64"
        assert ctx.wsl is False

    def test_linux_probe_order(self, make_env, tmp_path):
        env = make_env(commands=("zypper", "pacman"))
        ctx = resolve_platform(env=env, system="Linux", machine="x86_64",
                               proc_version_path=str(tmp_path / "missing"))
        assert ctx.package_manager == "pacman"

    def test_linux_without_package_manager(self, make_env, tmp_path):
        ctx = resolve_platform(env=make_env(), system="Linux", machine="x86_64",
                               proc_version_path=str(tmp_path / "missing"))
        assert ctx.package_manager == "none"
        assert ctx.has_package_manager is False

    def test_linux_wsl_from_proc_version(self, make_env, tmp_path):
        proc_version = tmp_path / "version"
        proc_version.write_text("Linux version 5.15.90.1-microsoft-standard-WSL2")
        ctx = resolve_platform(env=make_env(commands=("apt-get",)), system="Linux",
                               machine="x86_64", proc_version_path=str(proc_version))
        assert ctx.os_class == OSClass.LINUX
        assert ctx.wsl is True

    def test_windows_under_wsl_resolves_to_linux(self, make_env, tmp_path):
        env = make_env(commands=("apt-get", "choco"), wsl_distro="Ubuntu")
        ctx = resolve_platform(env=env, selected=OSClass.WINDOWS, machine="x86_64",
                               proc_version_path=str(tmp_path / "missing"))
        assert ctx.os_class == OSClass.LINUX
        assert ctx.selected_os == OSClass.WINDOWS
        assert ctx.wsl is True
        assert ctx.package_manager == "apt"

    def test_native_windows(self, make_env, tmp_path):
        env = make_env(commands=("winget",))
        ctx = resolve_platform(env=env, system="MINGW64_NT-10.0", machine="x86_64",
                               proc_version_path=str(tmp_path / "missing"))
        assert ctx.os_class == OSClass.WINDOWS
        assert ctx.package_manager == "winget"

    def test_macos_without_homebrew(self, make_env):
        ctx = resolve_platform(env=make_env(), system="Darwin", machine="arm64")
        assert ctx.os_class == OSClass.MACOS
        assert ctx.package_manager == "none"

    def test_macos_with_homebrew(self, make_env):
        ctx = resolve_platform(env=make_env(commands=("brew",)), system="Darwin", machine="arm64")
        assert ctx.package_manager == "brew"

    def test_unknown_never_raises(self, make_env):
        ctx = resolve_platform(env=make_env(commands=("apt-get",)), system="Plan9", machine="mips")
        assert ctx.os_class == OSClass.UNKNOWN
        assert ctx.package_manager == "none"
        assert ctx.normalized_arch == "x86_64"

    def test_selected_overrides_detection(self, make_env, tmp_path):
        ctx = resolve_platform(env=make_env(commands=("brew",)), system="Linux",
                               selected=OSClass.MACOS, machine="arm64",
                               proc_version_path=str(tmp_path / "missing"))
        assert ctx.os_class == OSClass.MACOS
        assert ctx.package_manager == "brew"
