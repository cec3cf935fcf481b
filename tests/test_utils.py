"""
Tests for logging, retry and file helpers.
"""

import logging
from typing import Optional
from unittest.mock import MagicMock, patch

import pytest
import requests

from rvman.utils.file_utils import atomic_write_text
from rvman.utils.input_validator import InputValidationError, InputValidator
from rvman.utils.logger import LOG_FILE_NAME, get_logger, setup_logger
from rvman.utils.retry import RetryHandler


class TestLogger:
    """Tests for setup_logger."""

    def teardown_method(self):
        setup_logger()

    def test_reconfiguring_replaces_handlers(self):
        setup_logger()
        logger = setup_logger(level=logging.DEBUG)
        assert logger is get_logger()
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_file_logging(self, tmp_path):
        logger = setup_logger(level=logging.INFO, log_to_file=True, log_to_console=False, log_dir=tmp_path)
        logger.info("已安装 Ruby 3.4.5")
        for handler in logger.handlers:
            handler.flush()
        assert "已安装 Ruby 3.4.5" in (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")


def http_error(status_code: int, headers: Optional[dict] = None) -> requests.exceptions.HTTPError:
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    return requests.exceptions.HTTPError(f"HTTP {status_code}", response=response)


class TestRetryHandler:
    """Tests for RetryHandler."""

    @pytest.fixture
    def handler(self):
        return RetryHandler(max_retries=2, base_delay=0, jitter=False)

    @pytest.mark.parametrize("status_code", [500, 502, 503, 408, 429])
    def test_transient_http_errors_are_retried(self, handler, status_code):
        func = MagicMock(side_effect=[http_error(status_code), "ok"])
        assert handler.execute(func) == "ok"
        assert func.call_count == 2

    @pytest.mark.parametrize("status_code", [400, 403, 404])
    def test_client_errors_are_not_retried(self, handler, status_code):
        func = MagicMock(side_effect=http_error(status_code))
        with pytest.raises(requests.exceptions.HTTPError):
            handler.execute(func)
        assert func.call_count == 1

    def test_gives_up_after_max_retries(self, handler):
        func = MagicMock(side_effect=requests.exceptions.ConnectionError("down"))
        with pytest.raises(requests.exceptions.ConnectionError):
            handler.execute(func)
        assert func.call_count == 3

    def test_backoff_is_capped(self):
        handler = RetryHandler(base_delay=1, max_delay=5, jitter=False)
        with patch("rvman.utils.retry.time.sleep") as mock_sleep:
            func = MagicMock(side_effect=[requests.exceptions.Timeout()] * 3 + ["ok"])
            handler.execute(func)
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2, 4]

    def test_retry_after_is_honored_and_capped(self):
        handler = RetryHandler(base_delay=1, max_delay=5, jitter=False)
        errors = [http_error(429, {"Retry-After": "2"}), http_error(503, {"Retry-After": "7"})]
        with patch("rvman.utils.retry.time.sleep") as mock_sleep:
            assert handler.execute(MagicMock(side_effect=errors + ["ok"])) == "ok"
        assert [c.args[0] for c in mock_sleep.call_args_list] == [2, 5]

    def test_non_numeric_retry_after_uses_backoff(self):
        handler = RetryHandler(base_delay=1, jitter=False)
        error = http_error(503, {"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
        with patch("rvman.utils.retry.time.sleep") as mock_sleep:
            handler.execute(MagicMock(side_effect=[error, "ok"]))
        mock_sleep.assert_called_once_with(1)

    def test_declared_transient_errors_are_retried(self):
        handler = RetryHandler(max_retries=2, base_delay=0, jitter=False, transient_errors=(EOFError,))
        func = MagicMock(side_effect=[EOFError("short read"), "ok"])
        assert handler.execute(func) == "ok"
        assert func.call_count == 2

    @pytest.mark.parametrize(
        "error",
        [
            EOFError("short read"),
            ValueError("bad"),
            requests.exceptions.HTTPError("no response"),
        ],
    )
    def test_other_errors_are_not_retryable(self, handler, error):
        assert not handler.is_retryable(error)
        func = MagicMock(side_effect=error)
        with pytest.raises(type(error)):
            handler.execute(func)
        assert func.call_count == 1


class TestInputValidator:
    """Tests for archive member validation."""

    @pytest.mark.parametrize("name", ["portable-ruby/bin/ruby", "./bin/ruby", "lib"])
    def test_valid_member_names(self, name):
        assert InputValidator.validate_member_name(name)

    @pytest.mark.parametrize("name", ["", "/etc/passwd", "C:\\evil", "a/../../b", "..\\x"])
    def test_invalid_member_names(self, name):
        with pytest.raises(InputValidationError):
            InputValidator.validate_member_name(name)

    def test_safe_join_rejects_escape(self, tmp_path):
        with pytest.raises(InputValidationError):
            InputValidator.safe_join_path(str(tmp_path), "a/../../b")


class TestAtomicWriteText:
    """Tests for atomic_write_text."""

    def test_replaces_content(self, tmp_path):
        target = tmp_path / ".ruby-version"
        target.write_text("3.3.9\n")
        atomic_write_text(target, "3.4.5\n")
        assert target.read_text() == "3.4.5\n"
        assert not (tmp_path / ".ruby-version.tmp").exists()

    def test_failure_keeps_original(self, tmp_path):
        target = tmp_path / ".ruby-version"
        target.write_text("3.3.9\n")
        with patch("rvman.utils.file_utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_text(target, "3.4.5\n")
        assert target.read_text() == "3.3.9\n"
        assert not (tmp_path / ".ruby-version.tmp").exists()
