from pack_logs.base import Logger, utc_timestamp
from pathlib import Path
import json


class FileLogger(Logger):
    """Appends one JSON object per event to ``<base_path>/<log_type>.log``."""

    def __init__(self, log_type="engine", base_path="logs", min_level=None):
        super().__init__(log_type=log_type, min_level=min_level)
        self.path = Path(base_path) / f"{log_type}.log"

        # Ensure directory exists
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _log(self, level, msg, data):
        with open(self.path, "a") as f:
            f.write(json.dumps({
                "ts": utc_timestamp(),
                "log_type": self.log_type,
                "level": level,
                "event": msg,
                **data
            }, default=str) + "\n")
