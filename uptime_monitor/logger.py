# logger.py
# Module loggers plus the console / rotating file sinks selected by environment

import logging
import os
from logging.handlers import TimedRotatingFileHandler

from colorama import Fore, Style

ROOT_LOGGER_NAME = "uptime_monitor"

FILE_FORMAT = "%(asctime)s [%(levelname)s]: %(message)s"
CONSOLE_FORMAT = (
    f"{Fore.BLUE}%(asctime)s.%(msecs)03d{Fore.RESET} | "
    f"{Style.BRIGHT}%(levelname)s{Style.RESET_ALL} | "
    f"{Fore.BLUE}%(name)s{Fore.RESET}:{Fore.BLUE}%(lineno)d{Fore.RESET} | %(message)s"
)


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(settings) -> None:
    """
    Attach sinks to the package logger.

    - develop: colored console output at DEBUG.
    - production with log_path: daily rotating file at INFO.
    - anything else: plain console at settings.log_level.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.propagate = False

    if settings.environment == "production" and settings.log_path:
        os.makedirs(settings.log_path, exist_ok=True)
        handler = TimedRotatingFileHandler(
            os.path.join(settings.log_path, "uptime-monitor.log"),
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        handler.suffix = "%Y-%m-%d"
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.setLevel(logging.INFO)
    elif settings.environment == "develop":
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.setLevel(logging.DEBUG)
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.setLevel(settings.log_level.upper())

    root.addHandler(handler)
