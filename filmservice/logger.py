# filmservice/logger.py
import logging
import sys
from colorama import Fore, Style, just_fix_windows_console

from filmservice.config import LOG_LEVEL

LEVEL_COLORS = {
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA,
}

_configured = False


class ColorFormatter(logging.Formatter):
    """Prefix each record with a coloured level tag, e.g. ``[INFO]``."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, "")
        tag = f"{color}[{record.levelname}]{Style.RESET_ALL}"
        return f"{tag} {super().format(record)}"


def setup_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return
    just_fix_windows_console()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter("%(asctime)s %(name)s: %(message)s", "%Y-%m-%dT%H:%M:%S"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel((level or LOG_LEVEL).upper())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
