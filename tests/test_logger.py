"""
tests/test_logger.py

Unit tests for run logger setup.
"""
import logging

from pynemo.logs.logger import configure_package_logging, get_logger


def test_logger_creates_log_file(tmp_path):
    logger = get_logger(run_name="testrun", scenario="testscen", log_dir=str(tmp_path))
    logger.info("Test log entry")
    log_files = list(tmp_path.glob("*.log"))
    assert len(log_files) == 1
    assert log_files[0].name == "testrun_testscen.log"
    with open(log_files[0], "r") as f:
        content = f.read()
    assert "Test log entry" in content


def test_logger_no_duplicate_handlers(tmp_path):
    first = get_logger(run_name="repeat", scenario="s", log_dir=str(tmp_path))
    second = get_logger(run_name="repeat", scenario="s", log_dir=str(tmp_path))
    assert first is second
    assert len([h for h in second.handlers if isinstance(h, logging.FileHandler)]) == 1


def test_quiet_package_logging():
    configure_package_logging("DEBUG", quiet=True)
    assert logging.getLogger("pynemo").level == logging.WARNING
    configure_package_logging("DEBUG")
    assert logging.getLogger("pynemo").level == logging.DEBUG
    configure_package_logging()
