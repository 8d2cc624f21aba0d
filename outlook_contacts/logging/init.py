from __future__ import annotations

import logging
import sys

"""Console logging for the exporter.

Every line starts with a label taken from the record level:

    INFO wrote out/contactos_outlook.csv rows=12
    WARN row 4: missing required: Celular
    SUMMARY rows=4 eligible=2 ...

Modules log through logging.getLogger(__name__); their records climb to the
"outlook_contacts" logger, which owns the only handler (stdout). SUMMARY is
an extra level between INFO and WARNING, emitted once per run.
"""

__all__ = [
    "LOGGER_NAME",
    "LabeledFormatter",
    "SUMMARY_LEVEL",
    "get_logger",
    "log_summary",
    "reset_logging",
    "set_debug",
    "setup_logging",
]

LOGGER_NAME = "outlook_contacts"
SUMMARY_LEVEL = 25

LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        label = LABELS.get(record.levelno, record.levelname)
        return f"{label} {record.getMessage()}"


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    return handler


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the labeled stdout handler to the package logger once.

    Later calls return the same logger until reset_logging() is called.
    """
    global _logger
    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, LABELS[SUMMARY_LEVEL])
    logger = logging.getLogger(LOGGER_NAME)
    # a logger object outlives reset_logging(); drop the handler it still holds
    logger.handlers.clear()
    logger.addHandler(_console_handler(level))
    logger.setLevel(level)
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def set_debug(logger: logging.Logger) -> None:
    """Let DEBUG records through the logger and all of its handlers."""
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger (tests call this between runs)."""
    global _logger
    _logger = None
