"""
Shared fixtures for dots_bootstrap tests.
"""

from pathlib import Path

import pytest

from dots_bootstrap.environment import Environment
from dots_bootstrap.install_plan import InstallStep
from dots_bootstrap.installer import StepResult
from dots_bootstrap.logging_config import setup_logging


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def propagating_logger():
    """Let caplog see records from the dots_bootstrap logger."""
    setup_logging(propagate=True)
    yield


@pytest.fixture
def make_env(tmp_path):
    """
    Build an Environment with a private home and a PATH holding only the
    given executables.
    """
    def _make(commands=(), wsl_distro=None):
        home = tmp_path / "home"
        home.mkdir(exist_ok=True)
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        for name in commands:
            exe = bin_dir / name
            exe.write_text("#!/bin/sh\nexit 0\n")
            exe.chmod(0o755)
        return Environment(home=home, path=(str(bin_dir),), wsl_distro=wsl_distro)
    return _make


def make_result(success=True, stdout="", stderr="", exit_code=None, command=("true",)):
    """StepResult for patched execute_step calls."""
    if exit_code is None:
        exit_code = 0 if success else 1
    return StepResult(
        step=InstallStep("test", tuple(command)),
        success=success,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        duration_seconds=0.0,
        error_message=None if success else f"Command failed with exit code {exit_code}",
    )

