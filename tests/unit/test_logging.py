# =============================================================================
# tests/unit/test_logging.py
# Unit Tests for logging setup and helpers
# =============================================================================

import logging

import pytest

from adapta_core.logging import LogContext, RedactTokensFilter, setup_logging
from adapta_core.logging.config import resolve_level


class TestRedactTokensFilter:

    def test_masks_bearer_token(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "GET /me with %s", ("Bearer abc.def",), None)

        assert RedactTokensFilter().filter(record)
        assert record.getMessage() == "GET /me with Bearer ***"

    def test_leaves_other_messages(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "Created %s", ("students/1",), None)

        RedactTokensFilter().filter(record)

        assert record.getMessage() == "Created students/1"


class TestSetupLogging:

    @pytest.mark.parametrize("raw, expected", [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ])
    def test_resolve_level(self, raw, expected):
        assert resolve_level(raw) == expected

    def test_writes_daily_file(self, tmp_path):
        setup_logging("INFO", log_dir=tmp_path)
        logging.getLogger("adapta_core.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        files = list(tmp_path.glob("adapta_*.log"))
        assert len(files) == 1
        assert "hello" in files[0].read_text(encoding="utf-8")

        setup_logging("WARNING", log_to_file=False)
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestLogContext:

    def test_logs_completion(self, caplog):
        logger = logging.getLogger("adapta_core.test")
        with caplog.at_level(logging.INFO, logger="adapta_core.test"):
            with LogContext(logger, "Creating students"):
                pass

        assert "Creating students done in" in caplog.text

    def test_logs_and_reraises_failure(self, caplog):
        logger = logging.getLogger("adapta_core.test")
        with caplog.at_level(logging.INFO, logger="adapta_core.test"):
            with pytest.raises(ValueError):
                with LogContext(logger, "Deleting students/1"):
                    raise ValueError("locked")

        assert "Deleting students/1 failed after" in caplog.text
