import logging
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

from eoa_delegate.config.logging_config import level_from_env, log_transaction, setup_logger


def test_file_handlers_go_to_log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    logger = setup_logger("eoa_delegate_test_files", console=False)
    try:
        kinds = {type(h) for h in logger.handlers}
        assert TimedRotatingFileHandler in kinds
        assert RotatingFileHandler in kinds
        assert (tmp_path / "logs").is_dir()
    finally:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


def test_console_only_logger(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "unused"))
    logger = setup_logger("eoa_delegate_test_console", to_file=False)
    try:
        assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
        assert not (tmp_path / "unused").exists()
    finally:
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)


def test_level_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert level_from_env() == logging.DEBUG
    monkeypatch.setenv("LOG_LEVEL", "30")
    assert level_from_env() == logging.WARNING
    monkeypatch.setenv("LOG_LEVEL", "loud")
    assert level_from_env() == logging.INFO


def test_log_transaction_format(caplog):
    logger = logging.getLogger("eoa_delegate_test_tx")
    with caplog.at_level(logging.INFO, logger="eoa_delegate_test_tx"):
        log_transaction(logger, "DELEGATE", "0xabc", gas_used=46000, eoa="0x1")
        log_transaction(logger, "DELEGATE", "0xdef", success=False)

    ok, failed = caplog.records
    assert ok.getMessage() == "SUCCESS | DELEGATE | eoa: 0x1 | Gas: 46,000 | TX: 0xabc"
    assert failed.levelno == logging.ERROR
    assert failed.getMessage().startswith("FAILED | DELEGATE")
