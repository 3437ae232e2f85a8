import logging

import pytest

from aruco_pointer.logging_utils import add_file_handler, parse_level, setup_logger


def test_setup_logger_is_idempotent():
    a = setup_logger("logcheck")
    b = setup_logger("logcheck", logging.DEBUG)
    assert a is b
    assert len(a.handlers) == 1
    assert a.level == logging.DEBUG


def test_file_handler_tags_session(tmp_path):
    logger = setup_logger("filecheck")
    path = tmp_path / "session.log"
    handler = add_file_handler(logger, "filecheck", str(path))
    try:
        logger.info("hello")
    finally:
        logger.removeHandler(handler)
        handler.close()
    assert "[filecheck] hello" in path.read_text()


def test_parse_level():
    assert parse_level(None) == logging.INFO
    assert parse_level("debug") == logging.DEBUG
    with pytest.raises(ValueError):
        parse_level("chatty")
