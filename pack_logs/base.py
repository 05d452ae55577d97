from abc import ABC, abstractmethod
from datetime import datetime, timezone
import os

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class Logger(ABC):
    """Structured event logger.

    Every call takes a snake_case event name plus keyword fields, e.g.
    ``logger.info("reveal_started", session_id=sid, card_count=5)``.
    Events below ``min_level`` (``LOG_LEVEL`` env, default DEBUG) are dropped.
    """

    def __init__(self, log_type="engine", min_level=None):
        self.log_type = log_type
        level = (min_level or os.getenv("LOG_LEVEL", "DEBUG")).upper()
        if level == "WARNING":
            level = "WARN"
        self.min_level = LEVELS.get(level, LEVELS["DEBUG"])

    @abstractmethod
    def _log(self, level: str, msg: str, data: dict): ...

    def log(self, level: str, msg: str, **data):
        if LEVELS.get(level, 0) < self.min_level:
            return
        self._log(level, msg, data)

    def info(self, msg: str, **data):
        self.log("INFO", msg, **data)

    def debug(self, msg: str, **data):
        self.log("DEBUG", msg, **data)

    def warning(self, msg: str, **data):
        self.log("WARN", msg, **data)

    def error(self, msg: str, **data):
        self.log("ERROR", msg, **data)
