import logging
import sys

import pytest

from fdlines.logging import (
    Formatter,
    Logger,
    get_logging_context,
    init_logging,
    logging_context,
)


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    logging.setLoggerClass(logging.Logger)


def make_record(logger, msg, *args, extra=None):
    return logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, msg, args, None, extra=extra
    )


def test_logging_context_initially_empty():
    assert get_logging_context() == {}


def test_logging_context_adds_fields():
    with logging_context(foo=1, bar=2):
        assert get_logging_context() == {"foo": 1, "bar": 2}
    assert get_logging_context() == {}


def test_nested_logging_context_shadows_fields():
    with logging_context(foo=1, bar=2):
        with logging_context(bar=5, baz=9):
            assert get_logging_context() == {"foo": 1, "bar": 5, "baz": 9}
        assert get_logging_context() == {"foo": 1, "bar": 2}
    assert get_logging_context() == {}


def test_logger_captures_context_and_extra():
    logger = Logger("fdlines.test")
    with logging_context(fd=3):
        record = make_record(logger, "hello %s", "world", extra={"size": 5})

    assert record.context == {"fd": 3}
    assert record.extra == {"size": 5}

    text = Formatter().format(record)
    assert "INFO    fdlines.test hello world | fd:3 size:5" in text


def test_extra_fields_shadow_context():
    logger = Logger("fdlines.test")
    with logging_context(fd=3, size=1):
        record = make_record(logger, "read", extra={"size": 5})

    assert Formatter().format(record).endswith("read | fd:3 size:5")


def test_formatter_handles_plain_records():
    logger = logging.Logger("fdlines.plain")
    record = make_record(logger, "end of stream")

    with logging_context(fd=9):
        text = Formatter().format(record)
    assert text.endswith("fdlines.plain end of stream | fd:9")

    assert Formatter().format(record).endswith("end of stream")


def test_formatter_appends_traceback():
    logger = Logger("fdlines.test")
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logger.makeRecord(
            logger.name, logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    text = Formatter().format(record)
    assert "failed\nTraceback" in text
    assert "RuntimeError: boom" in text


def test_init_logging_installs_one_handler(root_logger):
    first = init_logging("DEBUG")
    second = init_logging("INFO")

    assert first is second
    assert [h for h in root_logger.handlers if h.get_name() == "fdlines"] == [first]
    assert isinstance(first.formatter, Formatter)
    assert root_logger.level == logging.INFO


def test_init_logging_level_from_environment(root_logger, monkeypatch):
    monkeypatch.setenv("FDLINES_LOG_LEVEL", "error")
    init_logging()
    assert root_logger.level == logging.ERROR
