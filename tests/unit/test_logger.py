"""Tests for the context-aware logger."""

import logging
from unittest.mock import MagicMock

from pastebin_core.utils.logger import ContextAwareLogger, configure_logging, get_logger


class TestContextAwareLogger:
    def test_extra_folded_into_message(self):
        inner = MagicMock()
        logger = ContextAwareLogger(inner)

        logger.info("Created paste", extra={"paste_id": 7, "documents": 2})

        message = inner.info.call_args.args[0]
        assert message == "Created paste | paste_id=7 | documents=2"
        assert inner.info.call_args.kwargs["extra"] == {"paste_id": 7, "documents": 2}

    def test_reserved_keys_not_passed_as_extra(self):
        inner = MagicMock()
        logger = ContextAwareLogger(inner)

        logger.warning("Lookup", extra={"name": "a.txt", "message": "x", "paste_id": 1})

        assert inner.warning.call_args.kwargs["extra"] == {"paste_id": 1}
        assert "name=a.txt" in inner.warning.call_args.args[0]

    def test_passes_exc_info(self):
        inner = MagicMock()
        ContextAwareLogger(inner).error("boom", exc_info=True)

        assert inner.error.call_args.kwargs["exc_info"] is True

    def test_real_logger_accepts_reserved_keys(self, caplog):
        logger = ContextAwareLogger(logging.getLogger("pastebin.test"))

        with caplog.at_level(logging.INFO, logger="pastebin.test"):
            logger.info("Document stored", extra={"name": "notes.md", "size": 12})

        assert "name=notes.md" in caplog.text


class TestConfigureLogging:
    def test_configured_logger_is_returned_by_get_logger(self):
        configured = configure_logging("sweeper", log_level="DEBUG")

        assert get_logger() is configured
        assert configured.logger.name == "pastebin.sweeper"
        assert configured.logger.level == logging.DEBUG
        assert configured.logger.propagate is False
        assert len(configured.logger.handlers) == 1

    def test_reconfigure_replaces_handlers(self):
        configure_logging("api")
        configured = configure_logging("api")

        assert len(configured.logger.handlers) == 1

    def test_fallback_logger(self):
        logger = get_logger()

        assert isinstance(logger, ContextAwareLogger)
        assert logger.logger.name == "pastebin"
