# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the commonbin test suite.

This module provides foundational fixtures used across all test modules:
- Default configuration that ignores any config file on the machine
- A process supervisor whose signal/atexit hooks are mocked out
- Command directories with sample command files

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
    All fixtures in this file are automatically available in test modules.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Generator

import pytest

from commonbin.core.config import CommonBinConfig
from commonbin.core.log import LOGGER_NAME
from commonbin.process.supervisor import ProcessSupervisor


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove commonbin environment switches inherited from the shell."""
    for name in ("COMMON_BIN_DEBUG", "COMMON_BIN_DEBUG_OPTION", "COMMON_BIN_DEBUG_OPTION_ENV"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() so caplog sees commonbin records in every test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def forget_loaded_commands() -> Generator[None, None, None]:
    """Drop command modules imported from files during a test."""
    before = set(sys.modules)
    yield
    for name in set(sys.modules) - before:
        if name.startswith("_commonbin_command_"):
            del sys.modules[name]


# =============================================================================
# Configuration and Supervisor Fixtures
# =============================================================================


@pytest.fixture
def config() -> CommonBinConfig:
    """Default configuration, independent of the working directory."""
    return CommonBinConfig()


@pytest.fixture
def supervisor(mocker) -> ProcessSupervisor:
    """Supervisor whose termination hooks are recorded instead of installed.

    ``signal.signal`` and ``atexit.register`` are mocked so tests never replace
    the test runner's own handlers.
    """
    mocker.patch("commonbin.process.supervisor.signal.signal", return_value=None)
    mocker.patch("commonbin.process.supervisor.atexit.register")
    return ProcessSupervisor()


@pytest.fixture
def make_command(config, supervisor):
    """Build a command instance wired to the test config and supervisor.

    Example:
        def test_something(make_command):
            main = make_command(Main, ["build", "--watch"])
    """

    def _make(command_cls, raw_argv=(), **kwargs):
        kwargs.setdefault("config", config)
        kwargs.setdefault("supervisor", supervisor)
        return command_cls(list(raw_argv), **kwargs)

    return _make


# =============================================================================
# Command Directory Fixtures
# =============================================================================


COMMAND_FILE_TEMPLATE = '''\
from commonbin.core.command import Command

RUNS = []


class {class_name}(Command):
    description = "{description}"

    def run(self, ctx):
        RUNS.append(ctx.argv)
'''


def write_command_file(directory: Path, name: str, description: str = "") -> Path:
    """Write a minimal command module named ``name`` into ``directory``."""
    path = directory / f"{name}.py"
    path.write_text(
        COMMAND_FILE_TEMPLATE.format(
            class_name=f"{name.capitalize()}Command",
            description=description or f"{name} command",
        )
    )
    return path


@pytest.fixture
def command_file():
    """Factory writing a single command module; see write_command_file()."""
    return write_command_file


@pytest.fixture
def commands_dir(tmp_path: Path) -> Path:
    """Create a command directory with two commands and some noise.

    Creates:
        - start.py, build.py (commands)
        - README.md, data.json (ignored, not .py)
        - _helpers.py (ignored, private)
        - nested/ (ignored, directory)
    """
    directory = tmp_path / "commands"
    directory.mkdir()
    write_command_file(directory, "start", "Start the app")
    write_command_file(directory, "build", "Build the app")
    (directory / "README.md").write_text("# commands\n")
    (directory / "data.json").write_text("{}\n")
    (directory / "_helpers.py").write_text("raise RuntimeError('never imported')\n")
    (directory / "nested").mkdir()
    return directory


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "subprocess: marks tests that start real child processes")
    config.addinivalue_line("markers", "posix: marks tests requiring POSIX signals")
