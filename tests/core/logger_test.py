"""Tests for the logger module."""

import logging
from unittest.mock import MagicMock, patch

import httpx
import pytest

from assetgate.core import logger as logger_module
from assetgate.core.logger import (
    InterceptHandler,
    OpenObserveHandler,
    correlation_filter,
    mask_email,
    mask_secret,
    request_id_var,
)


class TestMasking:
    @pytest.mark.parametrize(
        "email, expected",
        [
            ("jane.doe@example.com", "j***@example.com"),
            ("a@b.io", "a***@b.io"),
            ("not-an-email", "***"),
            (None, "<none>"),
            ("", "<none>"),
        ],
    )
    def test_mask_email(self, email, expected):
        assert mask_email(email) == expected

    def test_mask_secret_keeps_tail(self):
        assert mask_secret("ABCD-1234-WXYZ") == "***WXYZ"
        assert mask_secret("ABC") == "***"
        assert mask_secret(None) == "<none>"


class TestCorrelationFilter:
    """Tests for correlation_filter function."""

    def test_uses_request_id_from_context(self):
        record = {"message": "hello", "extra": {}}
        token = request_id_var.set("req-1234")
        try:
            assert correlation_filter(record) is True
        finally:
            request_id_var.reset(token)

        assert record["extra"]["request_id"] == "req-1234"
        assert isinstance(record["extra"]["process_id"], int)

    def test_generates_short_id_outside_requests(self):
        record = {"message": "hello", "extra": {}}

        correlation_filter(record)

        assert len(record["extra"]["request_id"]) == 8

    def test_drops_openobserve_records(self):
        record = {"message": "POST http://logs.local/api/default/default/_json", "extra": {}}

        with patch.object(logger_module.settings, "openobserve_url", "http://logs.local"):
            assert correlation_filter(record) is False


class TestInterceptHandler:
    def test_forwards_to_loguru(self):
        record = logging.LogRecord("uvicorn", logging.WARNING, __file__, 1, "careful", None, None)

        with patch.object(logger_module.logger, "opt") as mock_opt:
            InterceptHandler().emit(record)

        mock_opt.return_value.log.assert_called_once_with("WARNING", "careful")


def _handler(transport: httpx.MockTransport, max_retries: int = 2) -> OpenObserveHandler:
    with (
        patch("assetgate.core.logger.threading.Thread"),
        patch("assetgate.core.logger.atexit.register"),
    ):
        handler = OpenObserveHandler(
            url="http://logs.local/",
            token="secret",
            org="acme",
            stream="api",
            max_retries=max_retries,
        )

    handler._client = httpx.Client(transport=transport)
    handler.worker_thread = MagicMock(is_alive=MagicMock(return_value=False))
    return handler


class TestOpenObserveHandler:
    """Tests for OpenObserveHandler class."""

    def test_posts_batch_to_stream_endpoint(self):
        requests: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        handler = _handler(httpx.MockTransport(respond))

        handler._flush_batch([{"message": "one"}, {"message": "two"}])

        assert len(requests) == 1
        assert str(requests[0].url) == "http://logs.local/api/acme/api/_json"
        assert requests[0].headers["Authorization"] == "Basic secret"

    def test_retries_then_drops(self):
        attempts = []

        def respond(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(503)

        handler = _handler(httpx.MockTransport(respond), max_retries=2)

        with patch("assetgate.core.logger.time.sleep") as mock_sleep:
            handler._flush_batch([{"message": "one"}])

        assert len(attempts) == 2
        mock_sleep.assert_called_once_with(1)

    def test_empty_batch_is_not_sent(self):
        transport = httpx.MockTransport(lambda request: pytest.fail("unexpected request"))
        handler = _handler(transport)

        handler._flush_batch([])

    def test_send_log_queues_record(self):
        handler = _handler(httpx.MockTransport(lambda request: httpx.Response(200)))

        handler.send_log({"message": "queued"})

        assert handler.log_queue.get_nowait() == {"message": "queued"}

    def test_shutdown_closes_client_once(self):
        handler = _handler(httpx.MockTransport(lambda request: httpx.Response(200)))

        handler.shutdown()
        handler.shutdown()

        assert handler.shutdown_event.is_set()
        assert handler._client.is_closed
