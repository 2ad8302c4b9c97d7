# src/migrator/core/utils/configure_logging.py
import logging
import sys
from typing import Mapping, Optional, Union

from tqdm import tqdm

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"

Level = Union[str, int]


class TqdmLogHandler(logging.Handler):
    """Routes records through tqdm.write() so the shrink progress bar stays on one line."""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


def resolve_level(level: Optional[Level], fallback: int = logging.INFO) -> int:
    """Accepts 'debug', 'INFO', 20 or None."""
    if level is None:
        return fallback
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else fallback


def configure_logger(general_level: Level = "INFO",
                     logger_levels: Optional[Mapping[str, Level]] = None) -> logging.Handler:
    """
    Installs one tqdm-aware handler on the root logger and applies
    per-logger levels, e.g. {"urllib3": "WARNING", "werkzeug": "ERROR"}.
    Calling it again swaps the previous handler out.
    """
    handler = TqdmLogHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, TqdmLogHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolve_level(general_level))

    for name, level in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(resolve_level(level, logging.WARNING))
    return handler
