# tests/services/test_logging.py
import sys

import pytest

from copycontext.config.schema import AppConfig
from copycontext.services.logging import effective_level, setup_logging

@pytest.fixture
def fake_logger(mocker):
    return mocker.patch("copycontext.services.logging.logger")

@pytest.mark.parametrize("configured, verbose, expected", [
    ("INFO", False, "INFO"),
    ("INFO", True, "DEBUG"),
    ("DEBUG", True, "TRACE"),
    ("TRACE", True, "TRACE"),
    ("warning", True, "INFO"),
    ("bogus", False, "INFO"),
])
def test_effective_level(configured, verbose, expected):
    assert effective_level(configured, verbose) == expected

def test_setup_logging_uses_configured_level(fake_logger, mocker):
    mocker.patch("copycontext.services.logging.get_config", return_value=AppConfig(log_level="WARNING"))
    assert setup_logging(verbose=True) == "INFO"
    fake_logger.remove.assert_called_once_with()
    console, log_file = fake_logger.add.call_args_list
    assert console.args[0] is sys.stderr and console.kwargs["level"] == "INFO"
    assert log_file.kwargs["level"] == "DEBUG"
    assert log_file.kwargs["retention"] == "7 days"

def test_file_sink_follows_more_detailed_console(fake_logger):
    assert setup_logging(level="DEBUG", verbose=True) == "TRACE"
    assert [c.kwargs["level"] for c in fake_logger.add.call_args_list] == ["TRACE", "TRACE"]

def test_file_sink_failure_keeps_console(fake_logger):
    fake_logger.add.side_effect = [1, PermissionError("read-only")]
    assert setup_logging(level="INFO") == "INFO"
    assert fake_logger.add.call_count == 2
    assert "File logging disabled" in fake_logger.warning.call_args.args[0]
