"""Tests for logging setup and context rendering."""

import json
import logging
import sys

import pytest

from offline_posts.logging_utils import (
    PACKAGE_LOGGER,
    ContextTextFormatter,
    JsonLinesFormatter,
    StateLoggerAdapter,
    configure_logging,
    record_context,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="offline_posts.remote.http",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="GET %s failed",
        args=("http://x/posts",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    package = logging.getLogger(PACKAGE_LOGGER)
    handlers, level = list(package.handlers), package.level
    yield package
    package.handlers[:] = handlers
    package.setLevel(level)


class TestRecordContext:
    """Tests for context field extraction."""

    def test_known_fields_in_order(self):
        record = make_record(status=503, screen="post_list", endpoint="http://x/posts")

        assert list(record_context(record).items()) == [
            ("screen", "post_list"),
            ("endpoint", "http://x/posts"),
            ("status", 503),
        ]

    def test_unknown_and_empty_fields_skipped(self):
        record = make_record(attempt=2, post_id=None)

        assert record_context(record) == {}


class TestFormatters:
    """Tests for text and JSON rendering."""

    def test_text_appends_context(self):
        line = ContextTextFormatter().format(make_record(screen="post_detail", post_id=7))

        assert line.endswith("GET http://x/posts failed [screen=post_detail post_id=7]")
        assert "WARNING offline_posts.remote.http" in line

    def test_text_without_context(self):
        line = ContextTextFormatter().format(make_record())

        assert line.endswith("GET http://x/posts failed")

    def test_json_fields(self):
        output = json.loads(
            JsonLinesFormatter().format(make_record(endpoint="http://x/posts", elapsed_ms=12))
        )

        assert output["level"] == "WARNING"
        assert output["logger"] == "offline_posts.remote.http"
        assert output["message"] == "GET http://x/posts failed"
        assert output["endpoint"] == "http://x/posts"
        assert output["elapsed_ms"] == 12
        assert output["timestamp"].endswith("+00:00")

    def test_json_exception(self):
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record(operation="upsert")
            record.exc_info = sys.exc_info()

        output = json.loads(JsonLinesFormatter().format(record))

        assert output["operation"] == "upsert"
        assert "ValueError: bad payload" in output["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_single_handler_on_package_logger(self, package_logger):
        configure_logging(logging.DEBUG)
        logger = configure_logging(logging.INFO, json_lines=True)

        assert logger is package_logger
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JsonLinesFormatter)
        assert logger.level == logging.INFO

    def test_text_by_default(self, package_logger):
        logger = configure_logging()

        assert isinstance(logger.handlers[0].formatter, ContextTextFormatter)
        assert logger.level == logging.WARNING


class TestStateLoggerAdapter:
    """Tests for reducer context stamping."""

    def test_adds_screen_context(self, caplog):
        adapter = StateLoggerAdapter(
            logging.getLogger("offline_posts.state.reducers"),
            {"screen": "post_detail", "post_id": 3},
        )

        with caplog.at_level(logging.INFO, logger="offline_posts.state.reducers"):
            adapter.info("Reducer started", extra={"status": 200, "screen": "other"})

        record = caplog.records[-1]
        assert record.screen == "post_detail"
        assert record.post_id == 3
        assert record.status == 200
