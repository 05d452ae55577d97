import json

from pack_logs.chooseLogType import get_logger
from pack_logs.composite import CompositeLogger
from pack_logs.file import FileLogger
from pack_logs.json import JSONLogger
from pack_logs.stdout import StdoutLogger


def test_get_logger_modes():
    assert isinstance(get_logger("dev", "reveal"), StdoutLogger)
    assert isinstance(get_logger("test", "reveal"), CompositeLogger)
    assert get_logger("test").loggers == ()


def test_stdout_logger_prints_event_and_fields(capsys):
    StdoutLogger(log_type="reveal", min_level="DEBUG").info("reveal_started", card_count=5)
    out = capsys.readouterr().out
    assert "[reveal] INFO reveal_started" in out
    assert "'card_count': 5" in out


def test_min_level_filters_events(capsys):
    logger = StdoutLogger(log_type="ledger", min_level="warning")
    logger.debug("ledger_transaction")
    logger.info("ledger_transaction")
    logger.warning("ledger_debit_rejected", amount=10)
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert "WARN ledger_debit_rejected" in lines[0]


def test_log_level_comes_from_the_environment(monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    logger = StdoutLogger(log_type="server")
    logger.warning("request_completed")
    logger.error("request_failed")
    assert capsys.readouterr().out.count("\n") == 1


def test_file_logger_writes_json_lines(tmp_path):
    logger = FileLogger(log_type="collection", base_path=tmp_path, min_level="DEBUG")
    logger.info("collection_committed", session_id="s1", card_count=3)
    logger.error("collection_card_unavailable", card_id="x")

    lines = (tmp_path / "collection.log").read_text().splitlines()
    first = json.loads(lines[0])
    assert first["event"] == "collection_committed"
    assert first["level"] == "INFO"
    assert first["card_count"] == 3
    assert json.loads(lines[1])["level"] == "ERROR"


def test_composite_fans_out(capsys, tmp_path):
    logger = CompositeLogger(
        JSONLogger(log_type="packs", min_level="DEBUG"),
        FileLogger(log_type="packs", base_path=tmp_path, min_level="DEBUG"),
        log_type="packs",
    )
    logger.debug("pack_generated", pack_id="starter-pack")

    printed = json.loads(capsys.readouterr().out)
    assert printed["data"] == {"pack_id": "starter-pack"}
    assert (tmp_path / "packs.log").exists()
