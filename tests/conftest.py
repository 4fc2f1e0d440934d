"""Generic fixtures."""

import logging

import pytest

from pycommander.ansi import set_color_mode
from pycommander.debug import set_debug
from pycommander.engine import Engine
from pycommander.logging_setup import LogSink


def pytest_configure():
    """Runs once before all."""
    from pycommander.logging_setup import init_logger

    init_logger("/dev/null")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user config files and terminal settings out of the tests."""
    monkeypatch.delenv("PYCOMMANDER_CONFIG_PATH", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setattr("pycommander.engine.GLOBAL_CONFIG_FILE", tmp_path / "missing-global.toml")
    workdir = tmp_path / "project"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield
    set_debug(False)
    set_color_mode("auto")


@pytest.fixture
def test_logger():
    """A plain logger for objects requiring one."""
    return logging.getLogger("pycommander.tests")


@pytest.fixture
def log_sink(mocker, test_logger):
    """A logging sink recording its calls."""
    sink = LogSink(test_logger)
    for name in ("debug", "info", "success", "warning", "error"):
        mocker.patch.object(sink, name)
    return sink


@pytest.fixture
def output():
    """Collects what the engine writes."""
    return []


@pytest.fixture
def engine(log_sink, output):
    """An engine named "tool" with no command registered."""
    return Engine("tool", log=log_sink, output=output.append)
