"""Tests for the local development server."""

import base64
import subprocess
import sys
from pathlib import Path

import httpx
import pytest
from aiohttp import test_utils

from server.adapters.aws_lambda import GatewayAdapter
from server.local_server import create_app, response_from_reply

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class RecordingHandler:
    """Framework handler double that records the request it received."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.request = None

    async def __call__(self, request, load_context):
        self.request = request
        await request.aread()
        return self.response


class TestLocalServer:
    """Test requests served through the aiohttp app."""

    @pytest.mark.asyncio
    async def test_text_request_round_trip(self):
        handler = RecordingHandler(
            httpx.Response(
                201,
                headers=[
                    ("content-type", "application/json"),
                    ("set-cookie", "a=1; Path=/"),
                    ("set-cookie", "b=2"),
                ],
                text='{"ok": true}',
            )
        )
        app = create_app(GatewayAdapter(handler))

        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.post(
                "/api/items?sort=asc",
                data='{"name": "x"}',
                headers={"Content-Type": "application/json", "Cookie": "s=1; t=2"},
            )
            body = await resp.text()
            set_cookies = resp.headers.getall("Set-Cookie")

        assert resp.status == 201
        assert body == '{"ok": true}'
        assert set_cookies == ["a=1; Path=/", "b=2"]

        request = handler.request
        assert request.method == "POST"
        assert request.url.path == "/api/items"
        assert request.url.query == b"sort=asc"
        assert request.headers["cookie"] == "s=1; t=2"
        assert request.content == b'{"name": "x"}'

    @pytest.mark.asyncio
    async def test_binary_request_and_response(self):
        payload = b"\x00\xffbinary"
        handler = RecordingHandler(
            httpx.Response(200, headers={"content-type": "image/png"}, content=payload)
        )
        app = create_app(GatewayAdapter(handler))

        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.put(
                "/upload",
                data=payload,
                headers={"Content-Type": "application/octet-stream"},
            )
            body = await resp.read()

        assert resp.status == 200
        assert resp.headers["Content-Type"] == "image/png"
        assert body == payload
        assert handler.request.content == payload


class TestResponseFromReply:
    """Test response_from_reply function."""

    def test_decodes_base64_body(self):
        response = response_from_reply(
            {
                "statusCode": 200,
                "headers": {"content-type": "image/gif", "content-length": "999"},
                "cookies": [],
                "body": base64.b64encode(b"GIF89a").decode(),
                "isBase64Encoded": True,
            }
        )

        assert response.status == 200
        assert response.body == b"GIF89a"
        assert response.headers["content-type"] == "image/gif"
        assert response.headers.get("Content-Length") != "999"

    def test_one_set_cookie_per_cookie(self):
        response = response_from_reply(
            {"statusCode": 302, "headers": {"location": "/"}, "cookies": ["a=1", "b=2"]}
        )

        assert response.status == 302
        assert response.headers.getall("Set-Cookie") == ["a=1", "b=2"]
        assert response.body == b""


class TestImportSideEffects:
    """Test that importing the local server leaves the process untouched."""

    def test_import_skips_lambda_entry_setup(self):
        """Test that the Lambda entry point's logging setup does not run."""
        code = (
            "import logging, sys\n"
            "import server.local_server\n"
            "assert 'server.lambda_handler' not in sys.modules\n"
            "assert logging.getLogger().handlers == []\n"
        )

        result = subprocess.run(
            [sys.executable, "-c", code],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0, result.stderr
