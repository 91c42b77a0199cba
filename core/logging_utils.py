"""Logging utilities for the HTTP bridge.

Provides centralized JSON logging configuration and header sanitization
for structured invocation logs.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from pythonjsonlogger import json as jsonlogger

# Sensitive keys to filter (case-insensitive)
SENSITIVE_KEYS = [
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "token",
    "password",
    "secret",
    "credential",
    "session",
    "cookie",
]

# Sensitive header prefixes (case-insensitive)
SENSITIVE_HEADER_PREFIXES = [
    "x-api-key",
    "x-auth",
    "x-token",
    "x-secret",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
]

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_RECORD_ATTRS = frozenset(
    (
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "message", "pathname",
        "process", "processName", "relativeCreated", "thread", "threadName",
        "exc_info", "exc_text", "stack_info", "asctime", "taskName",
    )
)


def configure_json_logging(level: str = "INFO", pretty: bool = False) -> None:
    """Configure ALL loggers to use JSON format.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        pretty: If True, use pretty-printed JSON (for local development).
                If False, use compact JSON (for CloudWatch).
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)

    if pretty:
        formatter = _PrettyJsonFormatter()
    else:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            timestamp=True,
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


class _PrettyJsonFormatter(logging.Formatter):
    """Pretty JSON formatter for local development."""

    def __init__(self, max_string_length: int = 500) -> None:
        super().__init__()
        self.max_string_length = max_string_length

    def _truncate(self, value: Any) -> Any:
        if isinstance(value, str) and len(value) > self.max_string_length:
            return value[: self.max_string_length] + "... (truncated)"
        return value

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = self._truncate(value)

        try:
            return json.dumps(log_data, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return json.dumps({"message": str(record.getMessage())}, indent=2)


def _is_sensitive_header(key: str) -> bool:
    key_lower = key.lower()
    if any(key_lower.startswith(prefix) for prefix in SENSITIVE_HEADER_PREFIXES):
        return True
    return any(sensitive_key in key_lower for sensitive_key in SENSITIVE_KEYS)


def sanitize_headers(headers: Mapping[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Sanitize HTTP headers by redacting sensitive values.

    Args:
        headers: HTTP headers mapping

    Returns:
        Sanitized headers dictionary
    """
    return {
        key: "[REDACTED]" if _is_sensitive_header(key) else value
        for key, value in headers.items()
    }


def format_event_log(
    event: Mapping[str, Any],
    request_id: str,
    lambda_context: Optional[Any] = None,
) -> Dict[str, Any]:
    """Format structured log entry for an inbound gateway event.

    Bodies are never logged, only their size.

    Args:
        event: Raw gateway event
        request_id: Request ID (from Lambda context)
        lambda_context: Optional Lambda context for metadata

    Returns:
        Dictionary with structured log data
    """
    http = (event.get("requestContext") or {}).get("http") or {}
    cookies: List[str] = event.get("cookies") or []
    body = event.get("body")

    log_data = {
        "request_id": request_id,
        "http_method": http.get("method"),
        "request_path": event.get("rawPath"),
        "request_query": event.get("rawQueryString") or None,
        "request_headers": sanitize_headers(event.get("headers") or {}),
        "request_cookie_count": len(cookies),
        "request_body_size": len(body) if body else 0,
        "request_body_base64": bool(event.get("isBase64Encoded", False)),
    }

    if lambda_context:
        log_data["lambda_function_name"] = getattr(
            lambda_context, "function_name", None
        )
        log_data["lambda_memory_limit"] = getattr(
            lambda_context, "memory_limit_in_mb", None
        )
        log_data["lambda_remaining_time_ms"] = getattr(
            lambda_context, "get_remaining_time_in_millis", lambda: None
        )()

    return log_data


def format_reply_log(
    reply: Mapping[str, Any],
    request_id: str,
    duration_ms: float,
) -> Dict[str, Any]:
    """Format structured log entry for an outbound gateway reply.

    Args:
        reply: Gateway reply dictionary
        request_id: Request ID
        duration_ms: Invocation duration in milliseconds

    Returns:
        Dictionary with structured log data
    """
    return {
        "request_id": request_id,
        "response_status": reply.get("statusCode"),
        "response_headers": sanitize_headers(reply.get("headers") or {}),
        "response_cookie_count": len(reply.get("cookies") or []),
        "response_body_size": len(reply.get("body") or ""),
        "response_base64": reply.get("isBase64Encoded", False),
        "duration_ms": round(duration_ms, 2),
    }
