import logging

import pytest

from sftps.core.logging import SecretFilter, get_logger, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_secret_filter_masks_arguments():
    secrets = SecretFilter()
    secrets.add("hunter2", None, "")
    record = logging.LogRecord("sftps", logging.INFO, __file__, 1, "auth with %s", ("hunter2",), None)

    assert secrets.filter(record)
    assert record.getMessage() == "auth with ***"


def test_secret_filter_without_secrets_leaves_record():
    record = logging.LogRecord("sftps", logging.INFO, __file__, 1, "ls %s", ("/tmp",), None)

    SecretFilter().filter(record)

    assert record.msg == "ls %s"
    assert record.args == ("/tmp",)


def test_connect_keeps_password_out_of_log_file(ftp, root_logger, tmp_path):
    log_file = tmp_path / "logs" / "sftps.log"
    setup_logging(level="DEBUG", log_file=log_file, rich_tracebacks=False)

    get_logger("sftps.test").warning("server said: bad password %s", "secret")

    for handler in root_logger.handlers:
        handler.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "bad password ***" in text
    assert "secret" not in text


def test_setup_logging_quiets_paramiko(root_logger):
    setup_logging(level="DEBUG", rich_tracebacks=False)

    assert logging.getLogger("paramiko").level == logging.WARNING
