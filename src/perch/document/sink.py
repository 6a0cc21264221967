"""Response sink and backpressure-aware piping.

A ``ResponseSink`` is the write side of one HTTP response. Writes go
through a bounded chunk queue that a drain task forwards to ASGI
``send()``; when the queue is full, ``write()`` suspends, so a fast
source is paced by the connection instead of piling up in memory.

``pipe()`` pulls the next chunk from a source only after the sink has
accepted the previous one. It never ends the sink unless asked to.

Pipeline::

    sink = ResponseSink(send, receive, high_water_mark=16)
    await sink.start(200, headers)
    await sink.serve(body)          # runs body() with the drain task alongside

    async def body():
        await sink.write(head)
        await pipe(markup_stream, sink)          # end=False
        await pipe(iter_chunks(tail), sink)      # end=False
        await sink.end()
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable
from contextlib import aclosing

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from perch._internal.asgi import Receive, Send

logger = logging.getLogger("perch.stream")

type Chunk = str | bytes
type ChunkSource = AsyncIterable[Chunk] | Iterable[Chunk]


def _encode(chunk: Chunk) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class ResponseSink:
    """Write side of a single streamed HTTP response.

    Headers are sent by ``start()`` and cannot change afterwards.
    ``end()`` may be called exactly once; the final ASGI message is sent
    only after every queued chunk has been forwarded.

    Once the client disconnects, writes are dropped and ``disconnected``
    turns true so pipes stop pulling from their sources.
    """

    __slots__ = (
        "_disconnected",
        "_ended",
        "_queue_in",
        "_queue_out",
        "_receive",
        "_send",
        "_started",
        "bytes_written",
        "high_water_mark",
    )

    def __init__(self, send: Send, receive: Receive, *, high_water_mark: int = 16) -> None:
        if high_water_mark < 1:
            msg = f"high_water_mark must be >= 1, got {high_water_mark}"
            raise ValueError(msg)
        self._send = send
        self._receive = receive
        self.high_water_mark = high_water_mark
        self._queue_in: MemoryObjectSendStream[bytes]
        self._queue_out: MemoryObjectReceiveStream[bytes]
        self._queue_in, self._queue_out = anyio.create_memory_object_stream[bytes](
            max_buffer_size=high_water_mark
        )
        self._started = False
        self._ended = False
        self._disconnected = False
        self.bytes_written = 0

    @property
    def started(self) -> bool:
        return self._started

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    @property
    def buffered(self) -> int:
        """Chunks accepted by ``write()`` but not yet handed to ``send()``."""
        return self._queue_in.statistics().current_buffer_used

    async def start(self, status: int, headers: list[tuple[bytes, bytes]]) -> None:
        """Send the response head. Must precede any ``write()``."""
        if self._started:
            msg = "Response headers already sent; status and headers are frozen."
            raise RuntimeError(msg)
        self._started = True
        await self._send({"type": "http.response.start", "status": status, "headers": headers})

    async def write(self, chunk: Chunk) -> None:
        """Queue *chunk* for sending, suspending while the queue is full."""
        if not self._started:
            msg = "write() before start(): headers must be sent first."
            raise RuntimeError(msg)
        if self._ended:
            msg = "write() after end()."
            raise RuntimeError(msg)
        if self._disconnected or not chunk:
            return
        await self._queue_in.send(_encode(chunk))

    async def end(self) -> None:
        """Close the queue; the drain task sends the final body message."""
        if self._ended:
            msg = "Response already ended."
            raise RuntimeError(msg)
        self._ended = True
        await self._queue_in.aclose()

    async def serve(self, body: Callable[[], Awaitable[None]]) -> None:
        """Run *body* while draining the queue and watching for disconnect.

        Returns once *body* has finished and the final message is sent.
        """
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._watch_disconnect)
            async with anyio.create_task_group() as inner:
                inner.start_soon(self._drain)
                try:
                    await body()
                finally:
                    if not self._ended:
                        # body() bailed out early; release the drain task.
                        with anyio.CancelScope(shield=True):
                            await self._queue_in.aclose()
            tg.cancel_scope.cancel()

    async def _drain(self) -> None:
        async with self._queue_out:
            async for data in self._queue_out:
                if self._disconnected:
                    continue
                await self._send({"type": "http.response.body", "body": data, "more_body": True})
                self.bytes_written += len(data)
        if not self._disconnected:
            await self._send({"type": "http.response.body", "body": b"", "more_body": False})

    async def _watch_disconnect(self) -> None:
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                logger.info("client disconnected after %d bytes", self.bytes_written)
                self._disconnected = True
                return


async def pipe(source: ChunkSource, sink: ResponseSink, *, end: bool = False) -> None:
    """Forward every chunk of *source* into *sink*.

    The next chunk is pulled only after ``sink.write()`` returns, so the
    read rate is bounded by the sink's queue. Stops early (closing an
    async source) once the client has gone away. With ``end=False`` the
    sink stays open for whatever comes next.
    """
    if isinstance(source, (str, bytes)):
        source = (source,)
    if isinstance(source, AsyncIterable):
        iterator = aiter(source)
        if hasattr(iterator, "aclose"):
            async with aclosing(iterator):  # type: ignore[type-var]
                await _forward_async(iterator, sink)
        else:
            await _forward_async(iterator, sink)
    else:
        for chunk in source:
            if sink.disconnected:
                break
            await sink.write(chunk)
    if end:
        await sink.end()


async def _forward_async(iterator: AsyncIterator[Chunk], sink: ResponseSink) -> None:
    async for chunk in iterator:
        if sink.disconnected:
            break
        await sink.write(chunk)


async def iter_chunks(text: str, size: int = 16 * 1024) -> AsyncIterator[bytes]:
    """Wrap an in-memory document fragment as a readable chunk stream."""
    data = text.encode("utf-8")
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]
        # Let the drain task run between slices of a large tail.
        await anyio.sleep(0)
