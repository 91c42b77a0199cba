"""Run a framework request handler locally behind the Lambda adapter.

Every incoming request is converted into an HTTP API v2 event and pushed
through the same GatewayAdapter the Lambda runtime uses, so cookies, binary
bodies and headers behave as they do in production.

Usage:
    python -m server.local_server app.server:handle_request [--port 3333]
"""

import argparse
import asyncio
import base64
import os
import uuid
from types import SimpleNamespace
from typing import Any, Dict, Optional

from aiohttp import web

from core.loader import HANDLER_ENV_VAR, resolve_import_path
from core.logging_utils import configure_json_logging
from core.validators import get_logging_config, load_config
from server.adapters.aws_lambda import GatewayAdapter, create_request_handler

ADAPTER_KEY = web.AppKey("adapter", GatewayAdapter)

# Request bodies with these content type prefixes are passed as text
_TEXT_PREFIXES = ("text/", "application/json", "application/x-www-form-urlencoded")


async def event_from_request(request: web.Request) -> Dict[str, Any]:
    """Build an HTTP API v2 event from an aiohttp request."""
    headers = {}
    for name, value in request.headers.items():
        key = name.lower()
        if key == "cookie":
            continue
        headers[key] = f"{headers[key]},{value}" if key in headers else value

    cookies = [
        cookie.strip()
        for value in request.headers.getall("Cookie", [])
        for cookie in value.split(";")
        if cookie.strip()
    ]

    raw_body = await request.read()
    body: Optional[str] = None
    is_base64 = False
    if raw_body:
        if request.content_type.startswith(_TEXT_PREFIXES):
            body = raw_body.decode(request.charset or "utf-8")
        else:
            body = base64.b64encode(raw_body).decode("ascii")
            is_base64 = True

    event: Dict[str, Any] = {
        "version": "2.0",
        "rawPath": request.path,
        "rawQueryString": request.query_string,
        "headers": headers,
        "requestContext": {
            "http": {
                "method": request.method,
                "path": request.path,
                "sourceIp": request.remote,
            },
            "requestId": str(uuid.uuid4()),
        },
        "body": body,
        "isBase64Encoded": is_base64,
    }
    if cookies:
        event["cookies"] = cookies
    return event


def response_from_reply(reply: Dict[str, Any]) -> web.Response:
    """Turn a gateway reply dictionary into an aiohttp response."""
    body = reply.get("body") or ""
    payload = base64.b64decode(body) if reply.get("isBase64Encoded") else body.encode("utf-8")

    response = web.Response(status=reply["statusCode"], body=payload)
    for name, value in (reply.get("headers") or {}).items():
        # aiohttp computes these itself from the buffered body
        if name.lower() in ("content-length", "transfer-encoding"):
            continue
        response.headers[name] = value
    for cookie in reply.get("cookies") or []:
        response.headers.add("Set-Cookie", cookie)
    return response


async def handle_any(request: web.Request) -> web.Response:
    """Forward any request through the gateway adapter."""
    adapter = request.app[ADAPTER_KEY]
    event = await event_from_request(request)
    context = SimpleNamespace(
        aws_request_id=event["requestContext"]["requestId"],
        function_name="local",
        memory_limit_in_mb=None,
    )
    reply = await adapter.handle_event(event, context)
    return response_from_reply(reply)


def create_app(adapter: GatewayAdapter) -> web.Application:
    """Create the aiohttp application serving every path through ``adapter``."""
    app = web.Application()
    app[ADAPTER_KEY] = adapter
    app.router.add_route("*", "/{tail:.*}", handle_any)
    return app


async def start_server(adapter: GatewayAdapter, host: str, port: int) -> None:
    """Start local HTTP server."""
    runner = web.AppRunner(create_app(adapter))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    print("\n" + "=" * 50)
    print("Local gateway running!")
    print("=" * 50)
    print(f"URL: http://{host}:{port}/")
    print(f"Mode: {adapter.mode}")
    print("\nPress Ctrl+C to stop")
    print("=" * 50 + "\n")

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "handler",
        nargs="?",
        default=os.environ.get(HANDLER_ENV_VAR),
        help="Request handler import path, e.g. app.server:handle_request",
    )
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=3333)
    parser.add_argument("--mode", default=None, help="Override the execution mode")
    args = parser.parse_args(argv)

    if not args.handler:
        parser.error(f"handler import path required (or set {HANDLER_ENV_VAR})")

    config = load_config()
    configure_json_logging(
        level=get_logging_config(config).get("level", "INFO"),
        pretty=True,  # Pretty-print JSON for better local readability
    )

    adapter = create_request_handler(
        resolve_import_path(args.handler),
        mode=args.mode,
        config=config,
    )

    try:
        asyncio.run(start_server(adapter, args.host, args.port))
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
