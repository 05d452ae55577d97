from pack_logs.composite import CompositeLogger
from pack_logs.file import FileLogger
from pack_logs.json import JSONLogger
from pack_logs.stdout import StdoutLogger


def get_logger(mode="dev", log_type="engine"):
    if mode == "prod":
        return CompositeLogger(
            FileLogger(log_type=log_type),
            JSONLogger(log_type=log_type),
            log_type=log_type,
        )
    if mode == "test":
        return CompositeLogger(log_type=log_type)
    return StdoutLogger(log_type=log_type)
