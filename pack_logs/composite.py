from pack_logs.base import Logger


class CompositeLogger(Logger):
    """Fans every event out to the wrapped loggers. With none it is silent."""

    def __init__(self, *loggers: Logger, log_type="engine"):
        super().__init__(log_type=log_type, min_level="DEBUG")
        self.loggers = loggers

    def _log(self, level, msg, data):
        for l in self.loggers:
            l.log(level, msg, **data)
