"""
Unit Tests for Structured Logging

Tests for session-tagged records and the console and file formatters.
"""
import logging

from vitalsense.services import TremorTestSession
from vitalsense.utils import SessionLogger, get_logger
from vitalsense.utils.logging import SessionFileFormatter, StructuredFormatter


def _record(session_id=None):
    record = logging.LogRecord("vitalsense.test", logging.INFO, __file__, 1, "window closed", None, None)
    if session_id:
        record.session_id = session_id
    return record


class TestSessionLogger:
    """Tests for session-bound loggers."""

    def test_module_logger(self):
        """Test a plain name returns the stdlib logger."""
        logger = get_logger("vitalsense.test")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "vitalsense.test"

    def test_session_logger_tags_records(self, caplog):
        """Test records from a bound logger carry the session id."""
        logger = get_logger("vitalsense.test", session_id="abc")
        assert isinstance(logger, SessionLogger)

        with caplog.at_level(logging.INFO, logger="vitalsense.test"):
            logger.info("hello")

        assert caplog.records[-1].session_id == "abc"

    def test_sessions_log_with_their_id(self, caplog):
        """Test session lifecycle lines are tagged with the session id."""
        with caplog.at_level(logging.INFO, logger="vitalsense.services"):
            session = TremorTestSession(session_id="tremor-1")
            session.stop()

        tagged = [r for r in caplog.records if getattr(r, "session_id", None) == "tremor-1"]
        assert len(tagged) >= 2


class TestFormatters:
    """Tests for console and file formatters."""

    def test_console_tag(self):
        """Test the console line includes the session tag."""
        line = StructuredFormatter(use_color=False).format(_record("abc"))

        assert "[session=abc] window closed" in line
        assert "\033[" not in line

    def test_console_without_session(self):
        """Test untagged records have no session marker."""
        line = StructuredFormatter(use_color=False).format(_record())

        assert "session=" not in line
        assert line.endswith("window closed")

    def test_colored_output(self):
        """Test colour codes wrap the line when enabled."""
        line = StructuredFormatter().format(_record())

        assert line.startswith("\033[32m")
        assert line.endswith("\033[0m")

    def test_file_format(self):
        """Test the file format keeps the session tag before the message."""
        line = SessionFileFormatter().format(_record("abc"))

        assert line.endswith("| INFO | vitalsense.test | [session=abc] window closed")
