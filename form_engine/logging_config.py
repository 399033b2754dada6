"""Console logging for the form engine's loggers.

The engine logs under the ``form_engine`` hierarchy and, like any library,
only attaches a NullHandler by default. Host applications that want the
engine's warnings on a console call :func:`setup_logging`; it touches only
the ``form_engine`` logger, never the root logger or other handlers.
"""
import logging
import sys
from form_engine.config import get_settings

ENGINE_LOGGER = 'form_engine'

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}
RESET = '\033[0m'

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'


class ColorFormatter(logging.Formatter):
    """Formatter that colours the level name by severity."""

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        # Format a copy; other handlers share the record
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(record)


class EngineConsoleHandler(logging.StreamHandler):
    """Stream handler installed by setup_logging, so it can be replaced on a second call."""


def setup_logging(settings=None, stream=None):
    """Send form engine log records to a console stream.

    Args:
        settings (EngineSettings): Source of log_level and log_colors;
            the process-wide settings when omitted
        stream: Output stream, stdout by default. Colours are only used
            when it is a terminal.

    Returns:
        logging.Logger: The configured ``form_engine`` logger
    """
    settings = settings or get_settings()
    if stream is None:
        stream = sys.stdout
    level = logging.getLevelName(settings.log_level.upper())
    known_level = isinstance(level, int)
    if not known_level:
        level = logging.WARNING

    logger = logging.getLogger(ENGINE_LOGGER)
    logger.setLevel(level)

    for handler in [h for h in logger.handlers if isinstance(h, EngineConsoleHandler)]:
        logger.removeHandler(handler)

    handler = EngineConsoleHandler(stream)
    handler.setLevel(level)
    use_colors = settings.log_colors and hasattr(stream, 'isatty') and stream.isatty()
    handler.setFormatter(ColorFormatter(LOG_FORMAT) if use_colors else logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    if not known_level:
        logger.warning(f"Unknown log level '{settings.log_level}', using WARNING")
    logger.debug(f"Form engine console logging at {logging.getLevelName(level)}")
    return logger
