"""ASGI response sending — translates perch responses to ASGI messages.

Buffered responses go out as one body message with a content-length.
Streamed documents get a ``ResponseSink`` and are driven by the
streaming assembler until the session ends.
"""

import logging

from perch._internal.asgi import Receive, Send
from perch.document.sink import ResponseSink
from perch.document.streaming import StreamingAssembler
from perch.http.response import Response, StreamedDocument

logger = logging.getLogger("perch.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(content_type: str, headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    raw: list[tuple[bytes, bytes]] = [(b"content-type", content_type.encode("latin-1"))]
    for name, value in headers:
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send) -> None:
    """Translate a buffered Response into ASGI send() calls."""
    raw_headers = _raw_headers(response.content_type, response.headers)
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


async def send_streamed_document(
    document: StreamedDocument,
    assembler: StreamingAssembler,
    send: Send,
    receive: Receive,
    *,
    high_water_mark: int = 16,
) -> None:
    """Stream a document with chunked transfer encoding.

    Status and headers go out first and are frozen from then on; the
    assembler then writes head, markup, and tail through the sink.
    """
    sink = ResponseSink(send, receive, high_water_mark=high_water_mark)
    session = document.session
    session.bind(sink)

    raw_headers = _raw_headers(document.content_type, document.headers)
    # No content-length: chunked transfer encoding signals body boundaries
    raw_headers.append((b"transfer-encoding", b"chunked"))
    await sink.start(document.status, raw_headers)

    await sink.serve(lambda: assembler.run(session))
    logger.debug("streamed %s: %d bytes", session.url, sink.bytes_written)
