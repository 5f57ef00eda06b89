"""Tests for logging setup and request context propagation."""

import logging

import pytest

from src.utils.logging import RequestContext, RequestContextFilter, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_handlers():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    RequestContext.clear()


def _record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


class TestRequestContext:
    def test_filter_adds_bound_values(self):
        RequestContext.set(request_id="req-1", job="check-due-cards")
        record = _record()

        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "req-1"
        assert record.job == "check-due-cards"

    def test_filter_defaults(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.job == "-"

    def test_clear(self):
        RequestContext.set(request_id="req-2")
        RequestContext.clear()
        assert RequestContext.get() == {}


class TestSetupLogging:
    def test_console_only(self):
        setup_logging(log_level="DEBUG", log_to_file=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_file_handlers(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        scheduler_logger = logging.getLogger("src.services.scheduler")
        saved = list(scheduler_logger.handlers)
        try:
            setup_logging(log_level="INFO", log_to_file=True)

            assert (tmp_path / "logs").is_dir()
            assert len(logging.getLogger().handlers) == 3
            assert len(scheduler_logger.handlers) == len(saved) + 1
        finally:
            for handler in scheduler_logger.handlers[len(saved):]:
                handler.close()
            scheduler_logger.handlers[:] = saved
            for handler in logging.getLogger().handlers:
                if isinstance(handler, logging.FileHandler):
                    handler.close()

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="CHATTY", log_to_file=False)
        assert logging.getLogger().level == logging.INFO
