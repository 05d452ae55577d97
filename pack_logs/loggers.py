from pack_logs.chooseLogType import get_logger
import os

env = os.getenv("ENV", "dev")

pack_logger = get_logger(mode=env, log_type="packs")
reveal_logger = get_logger(mode=env, log_type="reveal")
collection_logger = get_logger(mode=env, log_type="collection")
ledger_logger = get_logger(mode=env, log_type="ledger")
server_logger = get_logger(mode=env, log_type="server")
