from __future__ import annotations

import logging
from typing import Iterator

import pytest

from todo_backend.logging_setup import setup_logging


@pytest.fixture()
def restore_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_single_handler(restore_root_logger: logging.Logger) -> None:
    setup_logging("debug")
    setup_logging("debug")
    root = restore_root_logger
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG


def test_third_party_records_filtered(restore_root_logger: logging.Logger) -> None:
    setup_logging(logging.INFO)
    (handler,) = restore_root_logger.handlers

    def record(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert handler.filter(record("todo_backend.app", logging.INFO))
    assert not handler.filter(record("werkzeug", logging.INFO))
    assert handler.filter(record("werkzeug", logging.WARNING))
    assert not handler.filter(record("flask_cors.extension", logging.INFO))
    assert not handler.filter(record("psycopg2", logging.INFO))


def test_unknown_level_name_falls_back_to_info(restore_root_logger: logging.Logger) -> None:
    setup_logging("chatty")
    assert restore_root_logger.level == logging.INFO
