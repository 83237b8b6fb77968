"""Tests for contextual logging."""

import logging

import pytest

from indexsync.core.logging import ContextualLogger, LoggerConfigurator, _DimensionsFormatter


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def handler():
    """Capture records from the indexsync test logger (it does not propagate to root)."""
    handler = _ListHandler()
    target = logging.getLogger("indexsync.tests")
    target.addHandler(handler)
    yield handler
    target.removeHandler(handler)


def test_dimensions_are_attached(handler):
    log = LoggerConfigurator.configure_logger("indexsync.tests", {"index_name": "articles"})

    log.info("hello")

    assert handler.records[0].dimensions == {"index_name": "articles"}


def test_with_context_extends_without_mutating(handler):
    base = LoggerConfigurator.configure_logger("indexsync.tests", {"index_name": "articles"})
    child = base.with_context(component="persister")

    child.warning("child")
    base.warning("base")

    assert isinstance(child, ContextualLogger)
    assert handler.records[0].dimensions == {"index_name": "articles", "component": "persister"}
    assert handler.records[1].dimensions == {"index_name": "articles"}


def test_call_site_dimensions_are_merged(handler):
    log = LoggerConfigurator.configure_logger("indexsync.tests", {"index_name": "articles"})

    log.info("hello", extra={"dimensions": {"batch": 3}})

    assert handler.records[0].dimensions == {"index_name": "articles", "batch": 3}


def test_root_logger_has_single_handler():
    root = LoggerConfigurator.configure_root(force=True)
    LoggerConfigurator.configure_root()

    assert len(root.handlers) == 1
    assert root.propagate is False


def test_text_formatter_renders_dimensions():
    formatter = _DimensionsFormatter("%(message)s")
    record = logging.LogRecord("indexsync", logging.INFO, __file__, 1, "hello", None, None)
    record.dimensions = {"type_name": "article", "index_name": "articles"}

    assert formatter.format(record) == "hello [index_name=articles type_name=article]"
