import logging
from datetime import datetime
import inspect
from colorlog import ColoredFormatter
import os

__all__ = [
    "log_critical",
    "log_error",
    "log_info",
    "log_warning",
    "log_debug",
    "set_log_level",
    "configure_file_logging",
    "quiet_third_party_loggers",
]

LOGGER = logging.getLogger("mismatch_client")

## Allow all messages to be passed to handlers
LOGGER.setLevel(logging.DEBUG)
LOGGER.propagate = False

log_format = ColoredFormatter(
    "%(log_color)s%(asctime)s | %(levelname)s | %(message)s%(reset)s"
)
file_format = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
level = logging.INFO

## Configure logging stream
stream_handler = logging.StreamHandler()
stream_handler.setLevel(level)
stream_handler.setFormatter(log_format)
stream_handler.set_name("stream_handler")
LOGGER.addHandler(stream_handler)


def configure_file_logging(log_dir: str) -> None:
    """
    Add the regular and debug file handlers under log_dir.

    Calling it twice replaces the previous file handlers.
    """
    os.makedirs(os.path.join(log_dir, "logs"), exist_ok=True)
    os.makedirs(os.path.join(log_dir, "debug"), exist_ok=True)

    for handler in list(LOGGER.handlers):
        if handler.name in ("debugger_handler", "regular_handler"):
            LOGGER.removeHandler(handler)
            handler.close()

    today = datetime.now().strftime("%Y-%m-%d")

    ## Configure debug logging file
    debugger_handler = logging.FileHandler(
        os.path.join(log_dir, "debug", f"mismatch-debug-{today}.log"),
        mode="w",
    )
    debugger_handler.setLevel(logging.DEBUG)
    debugger_handler.setFormatter(file_format)
    debugger_handler.set_name("debugger_handler")
    LOGGER.addHandler(debugger_handler)

    ## Configure regular logging file
    regular_handler = logging.FileHandler(
        os.path.join(log_dir, "logs", f"mismatch-logs-{today}.log"),
        mode="w",
    )
    regular_handler.setLevel(stream_handler.level)
    regular_handler.setFormatter(file_format)
    regular_handler.set_name("regular_handler")
    LOGGER.addHandler(regular_handler)


class NoisyLibraryFilter(logging.Filter):
    """Drop per-packet chatter from the media stack below WARNING."""

    def filter(self, record):
        return record.levelno >= logging.WARNING


def quiet_third_party_loggers() -> None:
    """Attach NoisyLibraryFilter to the aiortc, aioice and aiohttp loggers."""
    noisy_filter = NoisyLibraryFilter()

    for logger_name in ["aiortc", "aioice", "aiohttp.client", "aiohttp.websocket"]:
        logger = logging.getLogger(logger_name)
        logger.addFilter(noisy_filter)


def log_critical(message: str) -> None:
    """Log a critical error message."""
    LOGGER.critical(
        f"{inspect.stack()[1].function} | {message}",
        stack_info=True,
        stacklevel=3,
    )


def log_error(message: str) -> None:
    """Log an error message."""
    LOGGER.error(
        f"{inspect.stack()[1].function} | {message}",
        stack_info=True,
        stacklevel=3,
    )


def log_info(message: str) -> None:
    """Log an informational message."""
    LOGGER.info(f"{inspect.stack()[1].function} | {message}")


def log_warning(message: str) -> None:
    """Log a warning message."""
    LOGGER.warning(f"{inspect.stack()[1].function} | {message}")


def log_debug(message: str) -> None:
    """Log a debug message."""
    LOGGER.debug(f"{inspect.stack()[1].function} | {message}")


def set_log_level(level) -> None:
    """Set the logging level."""
    for handler in LOGGER.handlers:
        if handler.name != "debugger_handler":
            handler.setLevel(level)
