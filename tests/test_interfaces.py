"""Tests for gateway models and the abort signal."""

import asyncio

import pytest

from core.interfaces import AbortSignal, GatewayEvent, GatewayReply


class TestGatewayEvent:
    """Test GatewayEvent parsing."""

    def test_parses_wire_names(self):
        event = GatewayEvent.model_validate(
            {
                "rawPath": "/a",
                "rawQueryString": "b=c",
                "headers": {"host": "h", "x-null": None},
                "cookies": ["a=1"],
                "requestContext": {"http": {"method": "PUT"}, "accountId": "123"},
                "body": "e30=",
                "isBase64Encoded": True,
            }
        )

        assert event.raw_path == "/a"
        assert event.raw_query_string == "b=c"
        assert event.headers["x-null"] is None
        assert event.cookies == ["a=1"]
        assert event.method == "PUT"
        assert event.is_base64_encoded is True

    def test_defaults(self):
        event = GatewayEvent.model_validate(
            {"rawPath": "/", "requestContext": {"http": {"method": "GET"}}}
        )

        assert event.raw_query_string == ""
        assert event.headers == {}
        assert event.cookies is None
        assert event.body is None
        assert event.is_base64_encoded is False


class TestGatewayReply:
    """Test GatewayReply serialization."""

    def test_to_dict_uses_wire_names(self):
        reply = GatewayReply(
            status_code=404,
            headers={"content-type": "text/plain"},
            cookies=["a=1"],
            body="nope",
            is_base64_encoded=False,
        )

        assert reply.to_dict() == {
            "statusCode": 404,
            "headers": {"content-type": "text/plain"},
            "cookies": ["a=1"],
            "body": "nope",
            "isBase64Encoded": False,
        }


class TestAbortSignal:
    """Test AbortSignal behavior."""

    def test_starts_not_aborted(self):
        signal = AbortSignal()

        assert signal.aborted is False
        assert signal.reason is None

    def test_first_reason_wins(self):
        signal = AbortSignal()

        signal.abort("timeout")
        signal.abort("other")

        assert signal.aborted is True
        assert signal.reason == "timeout"

    def test_listeners_run_once(self):
        signal = AbortSignal()
        calls = []
        signal.add_listener(calls.append)

        signal.abort()
        signal.abort()

        assert calls == [signal]

    def test_failing_listener_does_not_stop_others(self):
        signal = AbortSignal()
        calls = []

        def broken(sig):
            raise RuntimeError("listener blew up")

        signal.add_listener(broken)
        signal.add_listener(calls.append)

        signal.abort("deadline approaching")

        assert signal.aborted is True
        assert signal.reason == "deadline approaching"
        assert calls == [signal]

    @pytest.mark.asyncio
    async def test_failing_listener_from_timer_still_aborts(self):
        signal = AbortSignal()
        calls = []
        signal.add_listener(lambda sig: 1 / 0)
        signal.add_listener(calls.append)

        asyncio.get_running_loop().call_later(0, signal.abort, "timer")
        await asyncio.wait_for(signal.wait(), timeout=1)

        assert calls == [signal]

    def test_listener_added_after_abort_runs_immediately(self):
        signal = AbortSignal()
        signal.abort()
        calls = []

        signal.add_listener(calls.append)

        assert calls == [signal]

    @pytest.mark.asyncio
    async def test_wait_returns_after_abort(self):
        signal = AbortSignal()
        waiter = asyncio.create_task(signal.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        signal.abort()

        await asyncio.wait_for(waiter, timeout=1)
        assert signal.aborted
