"""Tests for session-scoped log correlation."""

import logging

import pytest

from src.logging_context import SessionIdFilter, get_session_id, get_session_logger, set_session_id
from tests.conftest import build_concierge


class TestSessionLogger:
    def test_filter_attached_once(self):
        logger = get_session_logger("tests.session_logger")
        get_session_logger("tests.session_logger")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1

    def test_record_carries_session_id(self, caplog):
        set_session_id("SESSION-abc123")
        logger = get_session_logger("tests.session_records")
        with caplog.at_level(logging.INFO, logger="tests.session_records"):
            logger.info("Turn accepted")
        assert caplog.records[-1].session_id == "SESSION-abc123"

    @pytest.mark.asyncio
    async def test_concierge_sets_its_session_id(self, store):
        concierge = build_concierge(store)
        await concierge.submit("iPhone 13")
        assert get_session_id() == "SESSION-test"


class TestLogFormat:
    def test_console_handler_renders_session_id(self):
        from src.config import LOG_FORMAT, _log_handler

        handler = _log_handler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        set_session_id("SESSION-fmt")
        record = logging.LogRecord("plain", logging.INFO, __file__, 1, "hello", None, None)

        assert handler.filter(record)
        assert "[SESSION-fmt] INFO: hello" in handler.format(record)
