"""AWS Lambda adapter for the HTTP bridge.

This adapter unwraps HTTP API v2 events (API Gateway / Architect) into
``httpx.Request`` objects, calls the framework-supplied request handler, and
serializes the returned ``httpx.Response`` into the reply shape the gateway
expects.
"""

import asyncio
import base64
import inspect
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

import httpx

from core.interfaces import (
    ABORT_SIGNAL_EXTENSION,
    MODE_EXTENSION,
    AbortSignal,
    GatewayEvent,
    GatewayReply,
    GetLoadContextFunction,
    HandleRequestFunction,
    MissingHostError,
)
from core.logging_utils import format_event_log, format_reply_log
from core.validators import AdapterConfig


class LambdaContext(Protocol):
    """Protocol for AWS Lambda context object.

    This defines the expected interface for Lambda context objects,
    which provide runtime information about the Lambda execution environment.
    """

    aws_request_id: str
    function_name: Optional[str]
    memory_limit_in_mb: Optional[int]

    def get_remaining_time_in_millis(self) -> int: ...


logger = logging.getLogger(__name__)

EventLike = Union[GatewayEvent, Mapping[str, Any]]


def _as_event(event: EventLike) -> GatewayEvent:
    if isinstance(event, GatewayEvent):
        return event
    return GatewayEvent.model_validate(event)


def create_request_headers(
    request_headers: Mapping[str, Optional[str]],
    request_cookies: Optional[List[str]] = None,
) -> httpx.Headers:
    """Build the generic request headers from event headers and cookies.

    Headers with empty or missing values are skipped. Event cookies are joined
    into a single Cookie header.

    Args:
        request_headers: Event header mapping
        request_cookies: Event cookie strings

    Returns:
        Multi-valued header collection
    """
    items = [(name, value) for name, value in request_headers.items() if value]

    if request_cookies:
        items.append(("Cookie", "; ".join(request_cookies)))

    return httpx.Headers(items)


def create_request(
    event: EventLike,
    abort_signal: Optional[AbortSignal] = None,
    mode: Optional[str] = None,
) -> httpx.Request:
    """Convert a gateway event into a generic request.

    Args:
        event: Gateway event (raw mapping or parsed model)
        abort_signal: Cancellation signal for this invocation
        mode: Execution mode forwarded to the handler

    Returns:
        httpx.Request with absolute https URL, merged headers and body

    Raises:
        MissingHostError: If the event has neither x-forwarded-host nor host
        pydantic.ValidationError: If the event is structurally invalid
    """
    event = _as_event(event)

    lowered = {name.lower(): value for name, value in event.headers.items()}
    host = lowered.get("x-forwarded-host") or lowered.get("host")
    if not host:
        raise MissingHostError(
            "Gateway event has no 'x-forwarded-host' or 'host' header; "
            "cannot build request URL"
        )

    search = f"?{event.raw_query_string}" if event.raw_query_string else ""
    url = httpx.URL(f"https://{host}{event.raw_path}{search}")

    body: Optional[Union[str, bytes]] = event.body
    if event.body and event.is_base64_encoded:
        body = base64.b64decode(event.body)

    extensions: Dict[str, Any] = {}
    if abort_signal is not None:
        extensions[ABORT_SIGNAL_EXTENSION] = abort_signal
    if mode is not None:
        extensions[MODE_EXTENSION] = mode

    return httpx.Request(
        event.method,
        url,
        headers=create_request_headers(event.headers, event.cookies),
        content=body,
        extensions=extensions,
    )


async def _buffer_stream(response: httpx.Response) -> bytes:
    """Drain the response body and concatenate its chunks.

    The bytes are returned as the handler produced them, still carrying any
    Content-Encoding, so they match the headers forwarded in the reply.
    Sync and async streams are both supported.
    """
    stream = response.stream
    chunks = []
    try:
        if isinstance(stream, httpx.ByteStream):
            # Buffered at construction; the stream itself still holds the raw bytes
            chunks.extend(stream)
        elif response.is_stream_consumed:
            # Already read by the handler, only the decoded content remains
            chunks.append(response.content)
        elif isinstance(stream, httpx.AsyncByteStream):
            async for chunk in response.aiter_raw():
                chunks.append(chunk)
        else:
            for chunk in response.iter_raw():
                chunks.append(chunk)
    finally:
        if isinstance(stream, httpx.AsyncByteStream):
            await response.aclose()
        else:
            response.close()
    return b"".join(chunks)


def is_binary_content_type(
    content_type: Optional[str], binary_types: Iterable[str]
) -> bool:
    """Check whether a content type must be returned base64-encoded.

    Missing content types are never binary.
    """
    if not content_type:
        return False
    return content_type.lower() in binary_types


async def send_response(
    response: httpx.Response,
    abort_signal: Optional[AbortSignal],
    binary_types: Iterable[str],
) -> Dict[str, Any]:
    """Serialize a generic response into the gateway reply shape.

    Set-Cookie headers are moved into the reply's cookie list, a
    ``Connection: close`` header is added when the invocation was aborted,
    and binary bodies are returned as base64 text.

    Args:
        response: Response produced by the framework handler
        abort_signal: Cancellation signal used for the request
        binary_types: Content types treated as binary

    Returns:
        Gateway reply dictionary
    """
    cookies: List[str] = []

    # The gateway sends set-cookies back outside of the response headers
    for key, value in response.headers.multi_items():
        if key.lower() == "set-cookie":
            cookies.append(value)

    if cookies:
        del response.headers["set-cookie"]

    if abort_signal is not None and abort_signal.aborted:
        response.headers["Connection"] = "close"

    is_binary = is_binary_content_type(
        response.headers.get("content-type"), binary_types
    )

    raw_body = await _buffer_stream(response)
    if is_binary:
        body = base64.b64encode(raw_body).decode("ascii")
    else:
        body = raw_body.decode(response.encoding or "utf-8", errors="replace")

    reply = GatewayReply(
        status_code=response.status_code,
        headers=dict(response.headers.items()),
        cookies=cookies,
        body=body,
        is_base64_encoded=is_binary,
    )
    return reply.to_dict()


class GatewayAdapter:
    """Per-process adapter between gateway events and a framework handler.

    Instances are created once at cold start and reused for every
    invocation. Calling the instance is the synchronous Lambda entry point.
    """

    def __init__(
        self,
        handle_request: HandleRequestFunction,
        get_load_context: Optional[GetLoadContextFunction] = None,
        config: Optional[AdapterConfig] = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            handle_request: Framework request handler
            get_load_context: Optional hook deriving the handler's load context
            config: Process-wide configuration (defaults if omitted)
        """
        self.handle_request = handle_request
        self.get_load_context = get_load_context
        self.config = config or AdapterConfig()
        logger.info(
            "GatewayAdapter initialized",
            extra={
                "mode": self.config.mode,
                "binary_type_count": len(self.config.binary_types),
            },
        )

    @property
    def mode(self) -> str:
        return self.config.mode

    def _schedule_abort(
        self, abort_signal: AbortSignal, context: Optional[LambdaContext]
    ) -> Optional[asyncio.TimerHandle]:
        margin_ms = self.config.abort_margin_ms
        get_remaining = getattr(context, "get_remaining_time_in_millis", None)
        if not margin_ms or not callable(get_remaining):
            return None

        delay = max(get_remaining() - margin_ms, 0) / 1000
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, abort_signal.abort, "deadline approaching")

    async def _call_handler(self, request: httpx.Request, load_context: Any) -> httpx.Response:
        response = self.handle_request(request, load_context)
        if inspect.isawaitable(response):
            response = await response
        return response

    async def handle_event(
        self, event: Mapping[str, Any], context: Optional[LambdaContext] = None
    ) -> Dict[str, Any]:
        """Process one gateway event.

        Args:
            event: Gateway event (HTTP API v2 payload)
            context: Lambda context object

        Returns:
            Gateway reply dictionary

        Raises:
            Whatever the conversion, the handler or the body stream raises;
            nothing is recovered locally.
        """
        start_time = time.perf_counter()
        request_id = getattr(context, "aws_request_id", None) or "unknown"

        logger.info(
            "Lambda invocation started",
            extra=format_event_log(event, request_id, context),
        )

        abort_signal = AbortSignal()
        timer = self._schedule_abort(abort_signal, context)
        try:
            request = create_request(event, abort_signal, mode=self.mode)
            load_context = (
                self.get_load_context(event) if callable(self.get_load_context) else None
            )

            response = await self._call_handler(request, load_context)
            reply = await send_response(
                response, abort_signal, self.config.binary_types
            )
        except Exception as e:
            logger.error(
                f"Error in Lambda handler: {e}",
                extra={
                    "request_id": request_id,
                    "error_type": type(e).__name__,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
                exc_info=True,
            )
            raise
        finally:
            if timer is not None:
                timer.cancel()

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Lambda invocation completed",
            extra=format_reply_log(reply, request_id, duration_ms),
        )
        return reply

    def __call__(
        self, event: Mapping[str, Any], context: Optional[LambdaContext] = None
    ) -> Dict[str, Any]:
        return asyncio.run(self.handle_event(event, context))


def create_request_handler(
    handle_request: HandleRequestFunction,
    get_load_context: Optional[GetLoadContextFunction] = None,
    mode: Optional[str] = None,
    config: Optional[AdapterConfig] = None,
) -> GatewayAdapter:
    """Return a Lambda handler that serves responses from ``handle_request``.

    Args:
        handle_request: Framework request handler
        get_load_context: Optional hook deriving the handler's load context
        mode: Execution mode; overrides the configured one when given
        config: Process-wide configuration

    Returns:
        GatewayAdapter usable directly as the Lambda handler
    """
    config = config or AdapterConfig()
    if mode is not None:
        config = config.model_copy(update={"mode": mode})

    return GatewayAdapter(handle_request, get_load_context, config)
