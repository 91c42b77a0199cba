"""Core interfaces and data models for the HTTP bridge.

This module defines the gateway event and reply shapes exchanged with the
platform, the cancellation signal shared with the framework handler, and the
callable contracts the adapter consumes. The generic request/response pair is
httpx's ``Request``/``Response``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Keys used on httpx.Request.extensions
ABORT_SIGNAL_EXTENSION = "abort_signal"
MODE_EXTENSION = "mode"


class GatewayEventError(Exception):
    """Raised when an inbound gateway event cannot be converted."""

    pass


class MissingHostError(GatewayEventError):
    """Raised when an event carries neither x-forwarded-host nor host."""

    pass


class HttpContext(BaseModel):
    """HTTP section of the event's requestContext."""

    method: str = Field(..., description="HTTP method of the request")
    path: Optional[str] = Field(None, description="Request path")
    source_ip: Optional[str] = Field(None, alias="sourceIp")

    class Config:
        populate_by_name = True


class RequestContext(BaseModel):
    """requestContext block of an HTTP API v2 event."""

    http: HttpContext
    request_id: Optional[str] = Field(None, alias="requestId")

    class Config:
        populate_by_name = True


class GatewayEvent(BaseModel):
    """HTTP API v2 event delivered by the platform to the function."""

    raw_path: str = Field(..., alias="rawPath", description="Raw request path")
    raw_query_string: str = Field(
        "", alias="rawQueryString", description="Raw query string without '?'"
    )
    headers: Dict[str, Optional[str]] = Field(
        default_factory=dict, description="Header name to value mapping"
    )
    cookies: Optional[List[str]] = Field(
        None, description="Cookie strings split out of the Cookie header"
    )
    request_context: RequestContext = Field(..., alias="requestContext")
    body: Optional[str] = Field(None, description="Request body, maybe base64")
    is_base64_encoded: bool = Field(False, alias="isBase64Encoded")

    class Config:
        populate_by_name = True

    @property
    def method(self) -> str:
        return self.request_context.http.method


class GatewayReply(BaseModel):
    """Reply shape expected by the gateway."""

    status_code: int = Field(..., alias="statusCode")
    headers: Dict[str, str] = Field(default_factory=dict)
    cookies: List[str] = Field(default_factory=list)
    body: str = Field("")
    is_base64_encoded: bool = Field(False, alias="isBase64Encoded")

    class Config:
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the gateway's field names."""
        return self.model_dump(by_alias=True)


class AbortSignal:
    """Per-invocation cancellation context shared with the request handler.

    The adapter creates one signal per event and places it on the request's
    extensions. Handlers can poll ``aborted``, await ``wait()`` or register a
    listener to stop in-flight work cooperatively.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Optional[str] = None
        self._event = asyncio.Event()
        self._listeners: List[Callable[["AbortSignal"], None]] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def abort(self, reason: str = "aborted") -> None:
        """Mark the invocation as aborted.

        Only the first call has an effect; listeners run exactly once. A
        listener that raises is logged and the remaining listeners still run.

        Args:
            reason: Human-readable abort reason
        """
        if self._aborted:
            return

        self._aborted = True
        self._reason = reason
        self._event.set()
        logger.info("Invocation aborted", extra={"abort_reason": reason})

        # A failing listener must not keep the others from being notified
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                logger.error(
                    f"Abort listener failed: {e}",
                    extra={"abort_reason": reason, "error_type": type(e).__name__},
                    exc_info=True,
                )

    def add_listener(self, listener: Callable[["AbortSignal"], None]) -> None:
        """Register a callback run on abort, immediately if already aborted."""
        if self._aborted:
            listener(self)
        else:
            self._listeners.append(listener)

    async def wait(self) -> None:
        """Block until the signal is aborted."""
        await self._event.wait()


HandleRequestFunction = Callable[
    [httpx.Request, Any],
    Union[httpx.Response, Awaitable[httpx.Response]],
]
"""Framework-supplied request handler: ``(request, load_context) -> response``."""

GetLoadContextFunction = Callable[[Mapping[str, Any]], Any]
"""Returns the value passed as load context to the framework handler.

It is an escape hatch for handing platform-specific values (the raw event,
secrets, clients) to the framework's loaders and actions.
"""
