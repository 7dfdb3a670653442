import logging
import sys
import os
from datetime import datetime

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers whose level follows the root level
PROJECT_LOGGERS = ["readme_engine", "uvicorn", "uvicorn.error", "uvicorn.access", "main"]


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors each line by level."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    FORMATS = {
        logging.DEBUG: cyan + LOG_FORMAT + reset,
        logging.INFO: green + LOG_FORMAT + reset,
        logging.WARNING: yellow + LOG_FORMAT + reset,
        logging.ERROR: red + LOG_FORMAT + reset,
        logging.CRITICAL: bold_red + LOG_FORMAT + reset,
    }

    def __init__(self, use_color=True):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno) if self.use_color else None
        if not log_fmt:
            log_fmt = LOG_FORMAT
        return logging.Formatter(log_fmt, datefmt=DATE_FORMAT).format(record)


def log_file_path(log_dir, prefix="readme_engine"):
    """One log file per day: <log_dir>/<prefix>_YYYYMMDD.log"""
    return os.path.join(log_dir, f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log")


def setup_logging(level=logging.INFO, log_dir="logs", use_color=None):
    """
    Install console and dated file handlers on the root logger.

    Existing root handlers are replaced so repeated calls (uvicorn reload,
    tests) never duplicate output. An empty ``log_dir`` disables the file
    handler. Colors default to on only when stderr is a terminal.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    if use_color is None:
        use_color = sys.stderr.isatty()

    # stderr keeps stdout free for JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(use_color=use_color))
    root_logger.addHandler(console_handler)

    log_file = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = log_file_path(log_dir)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for logger_name in PROJECT_LOGGERS:
        l = logging.getLogger(logger_name)
        l.setLevel(level)
        l.propagate = True

    root_logger.info(f"Logging initialized (console{' + ' + log_file if log_file else ' only'}).")
    return log_file
