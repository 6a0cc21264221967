"""Tests for perch.server.sender response emission rules."""

from typing import Any

import anyio
import pytest
from conftest import FakeEngine

from perch.document.shell import DocumentShell
from perch.document.streaming import StreamingAssembler, StreamingSession
from perch.http.response import Response, StreamedDocument
from perch.server.sender import send_response, send_streamed_document


class TestSendResponse:
    async def test_200_preserves_body(self) -> None:
        messages: list[dict] = []

        async def send(message: dict) -> None:
            messages.append(message)

        await send_response(Response("ok").with_header("Cache-Control", "no-cache"), send)

        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"2"
        assert headers[b"content-type"] == b"text/html; charset=utf-8"
        assert headers[b"cache-control"] == b"no-cache"
        assert messages[1]["body"] == b"ok"

    @pytest.mark.parametrize("status", [204, 304])
    async def test_no_body_statuses(self, status: int) -> None:
        messages: list[dict] = []

        async def send(message: dict) -> None:
            messages.append(message)

        await send_response(Response("unexpected-body").with_status(status), send)

        assert dict(messages[0]["headers"])[b"content-length"] == b"0"
        assert messages[1]["body"] == b""

    async def test_utf8_length(self) -> None:
        messages: list[dict] = []

        async def send(message: dict) -> None:
            messages.append(message)

        await send_response(Response("é"), send)
        assert dict(messages[0]["headers"])[b"content-length"] == b"2"


class TestSendStreamedDocument:
    async def test_chunked_with_middleware_headers(self, shell: DocumentShell) -> None:
        engine = FakeEngine()
        messages: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            messages.append(message)

        async def receive() -> dict[str, Any]:
            await anyio.sleep_forever()
            return {}  # pragma: no cover

        session = StreamingSession.from_result("/github", engine.render_streaming("/github", {}))
        document = StreamedDocument(session=session).with_header("Cache-Control", "no-cache")

        with anyio.fail_after(5):
            await send_streamed_document(
                document,
                StreamingAssembler(shell, engine.resolve_scripts_for_modules),
                send,
                receive,
                high_water_mark=4,
            )

        start = messages[0]
        headers = dict(start["headers"])
        assert start["status"] == 200
        assert headers[b"transfer-encoding"] == b"chunked"
        assert headers[b"cache-control"] == b"no-cache"
        assert b"content-length" not in headers
        assert messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}
        assert session.sink is not None and session.sink.ended
