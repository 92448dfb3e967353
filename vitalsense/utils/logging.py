"""
Structured Logging Configuration

Provides consistent logging across the assessment engine with structured,
session-tagged output. Session objects log through a ``SessionLogger`` so
every line they write carries ``[session=<id>]``.
"""
import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple, Union
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """Custom formatter with structured output for better parsing."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        record.timestamp = datetime.now(timezone.utc).isoformat()

        # Plain output when the stream is not a terminal (files, CI logs)
        if self.use_color:
            color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
            reset = self.COLORS['RESET']
        else:
            color = reset = ""

        log_message = (
            f"{color}[{record.timestamp}] "
            f"{record.levelname:8} "
            f"[{record.name}] "
            f"{session_tag(record)}"
            f"{record.getMessage()}{reset}"
        )

        if record.exc_info:
            log_message += f"\n{self.formatException(record.exc_info)}"

        return log_message


def session_tag(record: logging.LogRecord) -> str:
    """``[session=<id>] `` for records carrying a session id, else empty."""
    session_id = getattr(record, "session_id", None)
    return f"[session={session_id}] " if session_id else ""


class SessionFileFormatter(logging.Formatter):
    """Pipe-separated file format with the session id as its own column."""

    def __init__(self):
        super().__init__('%(asctime)s | %(levelname)s | %(name)s | %(session)s%(message)s')

    def format(self, record: logging.LogRecord) -> str:
        record.session = session_tag(record)
        return super().format(record)


class SessionLogger(logging.LoggerAdapter):
    """Logger bound to one assessment session."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure engine-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unknown names fall back to INFO
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter(use_color=sys.stdout.isatty()))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(SessionFileFormatter())
        root_logger.addHandler(file_handler)


def get_logger(
    name: str,
    session_id: Optional[str] = None
) -> Union[logging.Logger, SessionLogger]:
    """
    Get a logger instance for a module or a session.

    Args:
        name: Module name (typically __name__)
        session_id: Bind every record to this session when given

    Returns:
        Module logger, or a SessionLogger when ``session_id`` is set
    """
    logger = logging.getLogger(name)
    if session_id is None:
        return logger
    return SessionLogger(logger, {"session_id": session_id})


# Console logging is ready as soon as any module imports this one
setup_logging()
