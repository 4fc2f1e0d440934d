"""Logging setup and utilities."""

import logging

from .ansi import LEVEL_STYLES, make_style, should_colorize
from .debug import is_debug, set_debug

__all__ = [
    "LogObjects",
    "LogSink",
    "get_logger",
    "init_logger",
]

SUCCESS = logging.INFO + 5
logging.addLevelName(SUCCESS, "SUCCESS")


class LogObjects:
    """Reusable objects for loggers."""

    handlers: list[logging.Handler] = []


def init_logger(filename: str | None = None, force_debug: bool | str = False) -> None:
    """Initialize the logging system.

    Args:
        filename: Optional filename to log to
        force_debug: If set, force debug level (a string restricts it to groups)
    """
    if force_debug:
        set_debug(force_debug)

    class ScreenLogFormatter(logging.Formatter):
        """A custom formatter, adding colors based on log level.

        Respects NO_COLOR environment variable and TTY detection.
        """

        LOG_FORMAT = r"%(message)s"

        def __init__(self) -> None:
            super().__init__()
            colored = should_colorize()
            self._formatters: dict[int, logging.Formatter] = {}
            for level in (logging.DEBUG, logging.INFO, SUCCESS, logging.WARNING, logging.ERROR, logging.CRITICAL):
                codes = LEVEL_STYLES.get(logging.getLevelName(level))
                if colored and codes:
                    prefix, suffix = make_style(*codes)
                    self._formatters[level] = logging.Formatter(prefix + self.LOG_FORMAT + suffix)
                else:
                    self._formatters[level] = logging.Formatter(self.LOG_FORMAT)

        def format(self, record: logging.LogRecord) -> str:
            return self._formatters.get(record.levelno, self._formatters[logging.INFO]).format(record)

    LogObjects.handlers.clear()
    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(logging.Formatter(fmt=r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"))
        LogObjects.handlers.append(file_handler)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenLogFormatter())
    LogObjects.handlers.append(stream_handler)


def get_logger(name: str = "pycommander", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)

    Returns:
        The logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        logger.setLevel(logging.DEBUG if is_debug() else logging.INFO)
    else:
        logger.setLevel(level)
    logger.propagate = False
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    return logger


class LogSink:
    """Logging facade used by the engine.

    Debug messages carry a group tag (``bootstrap``, ``commandfactory``,
    ``help``...) and are only emitted when debugging is enabled for that
    group. ``quiet`` mutes informational and success messages.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or get_logger()
        self.quiet = False

    def configure(self, quiet: bool = False, debug: bool | str = False) -> None:
        """Apply the ``quiet`` and ``debug`` runtime settings."""
        self.quiet = quiet
        if debug:
            set_debug(True if debug is True else str(debug))
        if is_debug():
            self.log.setLevel(logging.DEBUG)
        else:
            self.log.setLevel(logging.WARNING if quiet else logging.INFO)

    def debug(self, message: str, group: str | None = None) -> None:
        """Log a debug message for `group`."""
        if not is_debug(group):
            return
        if group:
            get_logger(f"{self.log.name}.{group}", logging.DEBUG).debug("Debug (%s): %s", group, message)
        else:
            self.log.debug("Debug: %s", message)

    def info(self, message: str) -> None:
        """Log an informational message (muted by ``--quiet``)."""
        if not self.quiet:
            self.log.info("%s", message)

    def success(self, message: str) -> None:
        """Log a success message (muted by ``--quiet``)."""
        if not self.quiet:
            self.log.log(SUCCESS, "Success: %s", message)

    def warning(self, message: str) -> None:
        """Log a warning; never blocks execution."""
        self.log.warning("Warning: %s", message)

    def error(self, message: str) -> None:
        """Log a fatal error message."""
        self.log.error("Error: %s", message)
