"""Tests for logging utilities."""

import json
import logging

from core.logging_utils import (
    _PrettyJsonFormatter,
    configure_json_logging,
    format_event_log,
    format_reply_log,
    sanitize_headers,
)


class MockLambdaContext:
    aws_request_id = "req-1"
    function_name = "web"
    memory_limit_in_mb = 1024

    def get_remaining_time_in_millis(self):
        return 2500


class TestSanitizeHeaders:
    """Test header redaction."""

    def test_redacts_sensitive_headers(self):
        headers = sanitize_headers(
            {
                "Authorization": "Bearer abc",
                "cookie": "a=1",
                "set-cookie": "b=2",
                "x-api-key": "k",
                "content-type": "text/html",
            }
        )

        assert headers["Authorization"] == "[REDACTED]"
        assert headers["cookie"] == "[REDACTED]"
        assert headers["set-cookie"] == "[REDACTED]"
        assert headers["x-api-key"] == "[REDACTED]"
        assert headers["content-type"] == "text/html"


class TestFormatEventLog:
    """Test format_event_log function."""

    def test_summarises_event_without_body(self):
        event = {
            "rawPath": "/login",
            "rawQueryString": "next=/",
            "headers": {"host": "h", "authorization": "secret"},
            "cookies": ["a=1", "b=2"],
            "requestContext": {"http": {"method": "POST"}},
            "body": "password=hunter2",
            "isBase64Encoded": False,
        }

        log_data = format_event_log(event, "req-1", MockLambdaContext())

        assert log_data["http_method"] == "POST"
        assert log_data["request_path"] == "/login"
        assert log_data["request_query"] == "next=/"
        assert log_data["request_headers"]["authorization"] == "[REDACTED]"
        assert log_data["request_cookie_count"] == 2
        assert log_data["request_body_size"] == len("password=hunter2")
        assert "hunter2" not in json.dumps(log_data)
        assert log_data["lambda_function_name"] == "web"
        assert log_data["lambda_remaining_time_ms"] == 2500

    def test_tolerates_sparse_event(self):
        log_data = format_event_log({}, "unknown")

        assert log_data["http_method"] is None
        assert log_data["request_headers"] == {}
        assert log_data["request_body_size"] == 0
        assert "lambda_function_name" not in log_data


class TestFormatReplyLog:
    """Test format_reply_log function."""

    def test_summarises_reply(self):
        reply = {
            "statusCode": 200,
            "headers": {"content-type": "image/png"},
            "cookies": ["s=1"],
            "body": "AAAA",
            "isBase64Encoded": True,
        }

        log_data = format_reply_log(reply, "req-1", 12.3456)

        assert log_data["response_status"] == 200
        assert log_data["response_cookie_count"] == 1
        assert log_data["response_body_size"] == 4
        assert log_data["response_base64"] is True
        assert log_data["duration_ms"] == 12.35


class TestConfigureJsonLogging:
    """Test configure_json_logging function."""

    def test_replaces_root_handlers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_json_logging(level="warning")

            assert len(root.handlers) == 1
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_pretty_formatter_includes_extra(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1, "hello %s", ("world",), None
        )
        record.request_id = "req-1"

        output = json.loads(_PrettyJsonFormatter().format(record))

        assert output["message"] == "hello world"
        assert output["level"] == "INFO"
        assert output["request_id"] == "req-1"
