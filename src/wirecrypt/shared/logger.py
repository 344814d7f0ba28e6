import logging
import re
import sys
from datetime import datetime
from pathlib import Path

from colorama import Fore, Style, init

PACKAGE_LOGGER = "wirecrypt"

FORMAT_STRING_CONSOLE = (
    f"{Style.BRIGHT}%(levelname)-10s "
    + f"{Style.DIM}%(name)-28s "
    + "%(module)s.%(funcName)-30s "
    + f"{Style.RESET_ALL}%(message)s"
)
FORMAT_STRING_FILE = re.sub(r"\x1b\[[0-9;]*m", "", "%(asctime)s - " + FORMAT_STRING_CONSOLE)


class ColorFormatter(logging.Formatter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.color_map = {
            logging.DEBUG: Fore.CYAN,
            logging.INFO: Fore.GREEN,
            logging.WARNING: Fore.YELLOW,
            logging.ERROR: Fore.RED,
            logging.CRITICAL: Fore.MAGENTA,
        }

    def format(self, record):
        color = self.color_map.get(record.levelno, Fore.WHITE)
        message = super().format(record)
        return f"{color}{message}{Style.RESET_ALL}"


class Logger:
    def __init__(self, name, level=logging.INFO):
        # Initialize colorama
        init()

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Loggers are process-wide; only attach handlers once per name
        if self.logger.handlers:
            return

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter(FORMAT_STRING_CONSOLE))
        self.logger.addHandler(console_handler)

    def get_logger(self):
        return self.logger


def attach_file_handler(log_dir: str, name: str = PACKAGE_LOGGER) -> logging.FileHandler:
    """Write a per-day log file under ``log_dir`` for every logger below ``name``.

    Module loggers propagate to the package logger, so one handler here
    covers all of them. Calling it again moves the file to the new directory.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(name)
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            package_logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(
        Path(log_dir) / f"{datetime.now().strftime('%Y-%m-%d')}.log"
    )
    file_handler.setFormatter(logging.Formatter(FORMAT_STRING_FILE))
    package_logger.addHandler(file_handler)
    return file_handler
