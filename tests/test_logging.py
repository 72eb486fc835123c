"""
Tests for the session logger.
"""

import logging

import pytest

from civstat.logging_config import SESSION_LOGGER, EpochMillisFormatter, close_logging, setup_logging


@pytest.fixture(autouse=True)
def cleanup_logger():
    """Remove all handlers from the session logger after each test."""
    yield
    close_logging(logging.getLogger(SESSION_LOGGER))


class TestSetupLogging:

    def test_file_handler(self, tmp_path):
        logger = setup_logging(str(tmp_path / "events.log"))
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.FileHandler)
        assert logger.propagate is False

    def test_stderr_by_default(self, capsys):
        logger = setup_logging()
        logger.info("to stderr")
        captured = capsys.readouterr()
        assert captured.err.rstrip().endswith(" to stderr")
        assert captured.out == ""

    def test_lines_are_millis_then_message(self, tmp_path):
        log_file = tmp_path / "events.log"
        logger = setup_logging(str(log_file))
        logger.info("--population=pop.csv")
        logger.error("bad file")
        close_logging(logger)
        lines = log_file.read_text(encoding="utf-8").splitlines()
        stamps = [int(line.split(" ", 1)[0]) for line in lines]
        assert [line.split(" ", 1)[1] for line in lines] == ["--population=pop.csv", "bad file"]
        assert stamps[0] > 10 ** 12
        assert stamps[0] <= stamps[1]

    def test_appends_across_sessions(self, tmp_path):
        log_file = tmp_path / "events.log"
        for msg in ("first", "second"):
            logger = setup_logging(str(log_file))
            logger.info(msg)
            close_logging(logger)
        assert len(log_file.read_text(encoding="utf-8").splitlines()) == 2

    def test_setup_replaces_handlers(self, tmp_path):
        setup_logging(str(tmp_path / "a.log"))
        logger = setup_logging(str(tmp_path / "b.log"))
        assert len(logger.handlers) == 1

    def test_unwritable_log_file(self, tmp_path):
        with pytest.raises(OSError):
            setup_logging(str(tmp_path / "missing-dir" / "events.log"))


class TestFormatter:

    def test_format(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello %s", ("there",), None)
        record.created = 1620000000.5
        assert EpochMillisFormatter().format(record) == "1620000000500 hello there"
