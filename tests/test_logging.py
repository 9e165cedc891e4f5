"""Tests for VICOORD logging setup."""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vicoord.logging import (
    ColoredFormatter,
    SequenceContextFilter,
    get_logger,
    sequence_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging and get_logger."""

    def test_default_level(self):
        """Test logger defaults to INFO with a single console handler."""
        logger = setup_logging("vicoord.test.default")
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_verbose_sets_debug(self):
        """Test verbose switches to DEBUG."""
        logger = setup_logging("vicoord.test.verbose", verbose=True)
        assert logger.level == logging.DEBUG

    def test_repeated_setup_does_not_duplicate_handlers(self):
        """Test calling setup twice keeps one console handler."""
        setup_logging("vicoord.test.repeat")
        logger = setup_logging("vicoord.test.repeat")
        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        """Test file handler writes plain text."""
        log_file = tmp_path / "run.log"
        logger = setup_logging("vicoord.test.file", log_file=log_file, use_colors=True)
        logger.warning("seed unjoinable")
        for handler in logger.handlers:
            handler.flush()
        text = log_file.read_text()
        assert "seed unjoinable" in text
        assert "WARNING" in text
        assert "\033[" not in text

    def test_get_logger_configures_once(self):
        """Test get_logger sets up handlers only when missing."""
        logger = get_logger("vicoord.test.get")
        handlers = list(logger.handlers)
        assert get_logger("vicoord.test.get").handlers == handlers


class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def _record(self, level=logging.WARNING):
        return logging.LogRecord("vicoord", level, __file__, 1, "message", None, None)

    def test_plain_level_name(self):
        """Test level names are bracketed without colours."""
        formatter = ColoredFormatter("%(levelname)s %(message)s", use_colors=False)
        assert formatter.format(self._record()) == "[WARNING] message"

    def test_record_not_modified(self):
        """Test formatting leaves the original record untouched."""
        record = self._record(logging.ERROR)
        ColoredFormatter("%(levelname)s %(message)s", use_colors=False).format(record)
        assert record.levelname == "ERROR"


class TestSequenceContext:
    """Tests for sequence_logger and SequenceContextFilter."""

    def _log_text(self, tmp_path, name, emit):
        log_file = tmp_path / "run.log"
        logger = setup_logging(name, log_file=log_file)
        emit(logger)
        for handler in logger.handlers:
            handler.flush()
        return log_file.read_text()

    def test_sequence_and_model_prefix(self, tmp_path):
        """Test a sequence logger prefixes the sequence and model."""
        text = self._log_text(
            tmp_path, "vicoord.test.context",
            lambda logger: sequence_logger(logger, "s2", "NC_001477").warning("flank unjoinable"),
        )
        assert "s2 [NC_001477]: flank unjoinable" in text

    def test_sequence_only_prefix(self, tmp_path):
        """Test the model is left out when not given."""
        text = self._log_text(
            tmp_path, "vicoord.test.context_seq",
            lambda logger: sequence_logger(logger, "s2").warning("no flank"),
        )
        assert "s2: no flank" in text

    def test_plain_record(self, tmp_path):
        """Test records without a sequence get no prefix."""
        text = self._log_text(
            tmp_path, "vicoord.test.context_plain",
            lambda logger: logger.warning("batch done"),
        )
        assert "[vicoord.test.context_plain] batch done" in text

    def test_filter_sets_context(self):
        """Test the filter fills context and never drops a record."""
        record = logging.LogRecord("vicoord", logging.INFO, __file__, 1, "message", None, None)
        assert SequenceContextFilter().filter(record)
        assert record.context == ""
        record.seq_name = "s1"
        SequenceContextFilter().filter(record)
        assert record.context == "s1: "


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
