import sys
from pathlib import Path
from loguru import logger

LOGS_DIR = Path("logs")

# Remove default logger
logger.remove()

# One file per severity when file logging is on
SEVERITY_FILES = {
    "ERROR": "error.log",
    "WARNING": "warning.log",
    "CRITICAL": "critical.log",
    "INFO": "info.log",
    "DEBUG": "debug.log",
    "TRACE": "trace.log",
    "SUCCESS": "success.log"
}

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]: <18} | {name}:{function}:{line} - {message}"

CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <magenta>{extra[module]: <18}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"

# Records logged without a bound module still need the key for the formats above
logger.configure(extra={"module": "-"})

_console_handler_ids: list = []


def _add_console_handlers(level: str) -> None:
    for handler_id in _console_handler_ids:
        logger.remove(handler_id)
    _console_handler_ids.clear()

    warning_no = logger.level("WARNING").no
    stdout_level = level if logger.level(level).no < warning_no else "WARNING"
    _console_handler_ids.append(logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=stdout_level,
        colorize=True,
        filter=lambda record: record["level"].no < warning_no
    ))
    _console_handler_ids.append(logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level if logger.level(level).no >= warning_no else "WARNING",
        colorize=True,
        filter=lambda record: record["level"].no >= warning_no
    ))


_add_console_handlers("INFO")


def configure_logging(level: str = "INFO", debug_mode: bool = False, write_to_files: bool = True):
    """Apply log settings: console level, debug override and per-severity files."""
    effective_level = "DEBUG" if debug_mode else level.upper()
    _add_console_handlers(effective_level)
    configure_file_logging(write_to_files=write_to_files)


def configure_file_logging(write_to_files: bool = True):
    """Configure file-based logging based on settings."""
    if write_to_files:
        LOGS_DIR.mkdir(exist_ok=True)
        for level, filename in SEVERITY_FILES.items():
            logger.add(
                LOGS_DIR / filename,
                rotation="100 MB",
                retention="7 days",
                compression="zip",
                format=FILE_FORMAT,
                level=level,
                backtrace=True,
                diagnose=True,
                filter=lambda record, level=level: record["level"].name == level
            )


__all__ = ["logger", "configure_logging", "configure_file_logging"]
