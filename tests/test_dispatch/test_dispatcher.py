"""Tests for the request dispatcher: execution, auth retry, decoding, async."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from routeclient import Client, route
from routeclient.dispatch.dispatcher import decode_body, sanitize_url
from routeclient.exceptions import HTTPError, TransportError
from routeclient.models import ClientConfig


class ItemClient(Client):
    items = route("/items")
    upload = route("POST", "/upload")
    item = route(result="routeclient.registry.objects:ClientObject")


def _client(recorder, **config) -> ItemClient:
    return ItemClient(
        server_url="http://localhost:3000",
        transport=recorder.transport,
        config=ClientConfig(**config),
    )


def _auth_required(request: httpx.Request) -> httpx.Response:
    if request.url.username == "elmer" and request.url.password == "fudd":
        return httpx.Response(200, json={"ok": True})
    return httpx.Response(401, text="auth required")


def _always_401(request: httpx.Request) -> httpx.Response:
    return httpx.Response(401, text="nope")


class TestRequestShape:
    def test_get_with_query_and_headers(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            client.items("red", "--limit", 5, "--tag", "a", "--tag", "b", "-range", [1, 100])
        request = recorder.last
        assert request.method == "GET"
        assert request.url.path == "/items/red"
        assert request.url.params.multi_items() == [("limit", "5"), ("tag", "a"), ("tag", "b")]
        assert request.headers["range"] == "items=1-100"

    def test_map_forces_post(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            client.items({"key": "v"})
        assert recorder.last.method == "POST"
        assert recorder.last.headers["content-type"] == "application/json"
        assert json.loads(recorder.last.content) == {"key": "v"}

    def test_raw_body_with_headers(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            client.upload("plain text", {"Content-Type": "text/plain"})
        assert recorder.last.content == b"plain text"
        assert recorder.last.headers["content-type"] == "text/plain"

    def test_none_flag_value_keeps_pairing(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            client.items("--tag", None, "red")
            client.items(tag=None, limit=5)
        first, second = recorder.requests
        assert str(first.url) == "http://localhost:3000/items/red"
        assert str(second.url) == "http://localhost:3000/items?limit=5"

    def test_one_request_per_call(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            client.items()
            client.items("x")
        assert len(recorder.requests) == 2

    def test_dispatch_directly(self, recorder, quiet_output) -> None:
        recorder.reply(json={"v": 1})
        with _client(recorder) as client:
            assert client.dispatch("PUT", "/raw", "a") == {"v": 1}
        assert (recorder.last.method, recorder.last.url.path) == ("PUT", "/raw/a")


class TestDecoding:
    def test_json(self, recorder, quiet_output) -> None:
        recorder.reply(json={"a": [1, 2]})
        with _client(recorder) as client:
            assert client.items() == {"a": [1, 2]}

    def test_text(self, recorder, quiet_output) -> None:
        recorder.reply(text="hello")
        with _client(recorder) as client:
            assert client.items() == "hello"

    def test_no_content_type(self, recorder, quiet_output) -> None:
        recorder.reply(content=b"raw")
        with _client(recorder) as client:
            assert client.items() == "raw"

    def test_binary(self, recorder, quiet_output) -> None:
        recorder.reply(content=b"\x89PNG", headers={"content-type": "image/png"})
        with _client(recorder) as client:
            assert client.items() == b"\x89PNG"

    def test_json_with_charset_is_not_json(self) -> None:
        response = httpx.Response(
            200, content=b'{"a": 1}', headers={"content-type": "application/json; charset=utf-8"}
        )
        assert decode_body(response) == b'{"a": 1}'

    def test_malformed_json_returns_text(self, quiet_output) -> None:
        response = httpx.Response(200, content=b"{oops", headers={"content-type": "application/json"})
        assert decode_body(response) == "{oops"

    def test_json_null_is_none_without_failure(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(
            lambda request: httpx.Response(200, content=b"null", headers={"content-type": "application/json"})
        )
        with _client(recorder) as client:
            assert client.items() is None
            assert client.res.status_code == 200
            assert client.last_error is None

    def test_wrap_applied_on_success(self, recorder, quiet_output) -> None:
        recorder.reply(json={"id": 3})
        with _client(recorder) as client:
            result = client.item(3)
        assert result.id == 3


class TestFailures:
    def test_non_2xx_returns_none_and_keeps_response(self, recorder, quiet_output) -> None:
        recorder.reply(500, text="boom")
        with _client(recorder) as client:
            assert client.items() is None
            assert client.res.status_code == 500
            assert client.res.text == "boom"
            assert client.errorstring() == "(500) Internal Server Error"
            assert isinstance(client.last_error, HTTPError)
            assert client.last_error.status_code == 500
            assert client.last_error.body == "boom"
            assert client.last_error.exit_code == 5

    def test_wrap_not_applied_on_failure(self, recorder, quiet_output) -> None:
        recorder.reply(404, json={"error": "missing"})
        with _client(recorder) as client:
            assert client.item(9) is None

    def test_transport_error(self, quiet_output) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ItemClient(
            server_url="http://localhost:3000",
            transport=httpx.MockTransport(_fail),
            config=ClientConfig(),
        )
        with client:
            assert client.items() is None
            assert client.res is None
            assert "connection refused" in client.error
            assert "connection refused" in client.errorstring()
            assert isinstance(client.last_error, TransportError)

    def test_error_cleared_by_next_call(self, quiet_output) -> None:
        calls = []

        def _flaky(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={})

        client = ItemClient(
            server_url="http://localhost:3000",
            transport=httpx.MockTransport(_flaky),
            config=ClientConfig(),
        )
        assert client.items() is None
        assert client.error
        assert client.items() == {}
        assert client.error is None
        assert client.last_error is None

    def test_failure_is_logged(self, recorder, quiet_output, capsys) -> None:
        recorder.reply(503, text="down")
        with _client(recorder) as client:
            client.items()
        err = capsys.readouterr().err
        assert "Error trying to GET http://localhost:3000/items" in err
        assert "(503)" in err


class TestAuthRetry:
    def test_retry_once_with_credentials(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_auth_required)
        with _client(recorder, username="elmer", password="fudd") as client:
            assert client.items() == {"ok": True}
            assert client.userinfo == ("elmer", "fudd")
        assert len(recorder.requests) == 2
        assert recorder.requests[0].url.username == ""
        assert recorder.requests[1].url.username == "elmer"
        assert "authorization" in recorder.requests[1].headers

    def test_second_401_is_failure(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_always_401)
        with _client(recorder, username="elmer", password="wrong") as client:
            assert client.items() is None
            assert client.res.status_code == 401
        assert len(recorder.requests) == 2

    def test_no_retry_without_credentials(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_always_401)
        with _client(recorder) as client:
            assert client.items() is None
        assert len(recorder.requests) == 1

    def test_no_retry_when_already_logged_in(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_always_401)
        with _client(recorder, username="elmer", password="fudd") as client:
            client.login()
            assert client.items() is None
        assert len(recorder.requests) == 1

    def test_explicit_login(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_auth_required)
        with _client(recorder) as client:
            client.login(username="elmer", password="fudd")
            assert client.items() == {"ok": True}
        assert len(recorder.requests) == 1


class TestSanitize:
    def test_masks_userinfo(self) -> None:
        assert sanitize_url("http://elmer:fudd@h:3000/x") == "http://user:*****@h:3000/x"

    def test_plain_url_unchanged(self) -> None:
        assert sanitize_url("http://h/x?a=1") == "http://h/x?a=1"

    def test_password_never_logged(self, make_recorder, verbose_output, capsys) -> None:
        recorder = make_recorder(_auth_required)
        with _client(recorder, username="elmer", password="fudd") as client:
            client.items()
        err = capsys.readouterr().err
        assert "Sending : GET" in err
        assert "user:*****@" in err
        assert "fudd" not in err


class TestAsync:
    def test_callback_receives_value(self, recorder, quiet_output) -> None:
        recorder.reply(json={"a": 1})
        received = []

        async def _run():
            client = _client(recorder)
            task = client.items("x", lambda *args: received.append(args))
            assert isinstance(task, asyncio.Task)
            await task
            await client.aclose()

        asyncio.run(_run())
        assert received == [({"a": 1},)]
        assert recorder.last.url.path == "/items/x"

    def test_empty_body_gives_true(self, recorder, quiet_output) -> None:
        recorder.reply(204)
        received = []

        async def _run():
            client = _client(recorder)
            await client.items(lambda *args: received.append(args))
            await client.aclose()

        asyncio.run(_run())
        assert received == [(True,)]

    def test_failure_calls_back_without_arguments(self, recorder, quiet_output) -> None:
        recorder.reply(500, text="boom")
        received = []

        async def _run():
            client = _client(recorder)
            await client.items(lambda *args: received.append(args))
            assert client.res.status_code == 500
            assert isinstance(client.last_error, HTTPError)
            await client.aclose()

        asyncio.run(_run())
        assert received == [()]

    def test_no_auth_retry_in_async_mode(self, make_recorder, quiet_output) -> None:
        recorder = make_recorder(_always_401)
        received = []

        async def _run():
            client = _client(recorder, username="elmer", password="fudd")
            await client.items(lambda *args: received.append(args))
            await client.aclose()

        asyncio.run(_run())
        assert received == [()]
        assert len(recorder.requests) == 1

    def test_wrap_applied(self, recorder, quiet_output) -> None:
        recorder.reply(json={"id": 5})
        received = []

        async def _run():
            client = _client(recorder)
            await client.item(5, received.append)
            await client.aclose()

        asyncio.run(_run())
        assert received[0].id == 5

    def test_dropped_task_finishes_and_reports_callback_error(self, recorder, quiet_output, capsys) -> None:
        recorder.reply(json={"a": 1})

        def _explode(*args):
            raise ValueError("bad callback")

        async def _run():
            client = _client(recorder)
            client.items(_explode)
            assert client.transport.pending == 1
            await client.aclose()
            assert client.transport.pending == 0

        asyncio.run(_run())
        assert len(recorder.requests) == 1
        assert "ValueError: bad callback" in capsys.readouterr().err

    def test_requires_running_loop(self, recorder, quiet_output) -> None:
        with _client(recorder) as client:
            with pytest.raises(RuntimeError):
                client.items(lambda *args: None)
