"""Cloud provider adapters for the HTTP bridge.

Each adapter handles:
- Event format transformation (cloud-specific -> httpx.Request)
- Response format transformation (httpx.Response -> cloud-specific)
- Cloud-specific context extraction (request IDs, deadlines, etc.)
"""

from .aws_lambda import (
    GatewayAdapter,
    create_request,
    create_request_handler,
    create_request_headers,
    send_response,
)

__all__ = [
    "GatewayAdapter",
    "create_request",
    "create_request_handler",
    "create_request_headers",
    "send_response",
]
