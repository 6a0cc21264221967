"""Streaming document assembly.

Delivers a document in phases, each starting only when the previous one
has finished::

    CREATED ──> HEAD_SENT ──> MARKUP_STREAMING ──> TAIL_PENDING ──> TAIL_STREAMING ──> ENDED

1. **Head** — doctype through the opening container tag, written as soon
   as the response starts.
2. **Markup** — the render engine's stream, piped into the sink without
   ending it. Bytes pass through untouched.
3. **Tail** — once the markup stream is exhausted: resolve per-route
   module scripts (only known after rendering), build the closing
   fragment, and pipe it as its own chunk stream.
4. **End** — the sink is ended after the last tail chunk is queued.

A failing or timed-out markup stream counts as ended early: the error
is logged and the tail is still written, so the connection is always
closed with a well-formed document.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import anyio

from perch.document.hydration import DEFAULT_GLOBAL, script_for, serialize_initial_data
from perch.document.shell import DocumentShell
from perch.document.sink import ResponseSink, iter_chunks, pipe
from perch.errors import StreamError
from perch.render.engine import Markup, RenderResult

logger = logging.getLogger("perch.stream")

TIMEOUT_MARKER = "<!-- perch: render timed out -->"


class SessionState(Enum):
    CREATED = "created"
    HEAD_SENT = "head_sent"
    MARKUP_STREAMING = "markup_streaming"
    TAIL_PENDING = "tail_pending"
    TAIL_STREAMING = "tail_streaming"
    ENDED = "ended"


_NEXT: dict[SessionState, SessionState] = {
    SessionState.CREATED: SessionState.HEAD_SENT,
    SessionState.HEAD_SENT: SessionState.MARKUP_STREAMING,
    SessionState.MARKUP_STREAMING: SessionState.TAIL_PENDING,
    SessionState.TAIL_PENDING: SessionState.TAIL_STREAMING,
    SessionState.TAIL_STREAMING: SessionState.ENDED,
}


@dataclass(slots=True)
class StreamingSession:
    """One in-flight streamed response and its render stream.

    Created by the dispatcher when streaming mode is chosen, bound to a
    sink by the ASGI layer, and advanced only by ``StreamingAssembler``.
    The hydration payload is serialized up front so a
    ``SerializationError`` surfaces before any byte is sent.
    """

    url: str
    markup: Markup
    data_payload: str
    modules: Sequence[str]
    title: str | None = None
    sink: ResponseSink | None = None
    state: SessionState = SessionState.CREATED
    error: StreamError | None = None
    timed_out: bool = False
    history: list[SessionState] = field(default_factory=lambda: [SessionState.CREATED])

    @classmethod
    def from_result(cls, url: str, result: RenderResult) -> StreamingSession:
        return cls(
            url=url,
            markup=result.markup,
            data_payload=serialize_initial_data(result.initial_data),
            modules=result.modules,
            title=result.title,
        )

    def bind(self, sink: ResponseSink) -> None:
        if self.sink is not None:
            msg = "Session is already bound to a response."
            raise RuntimeError(msg)
        self.sink = sink

    def advance(self, to: SessionState) -> None:
        """Move one step forward. Any other transition is a bug."""
        expected = _NEXT.get(self.state)
        if to is not expected:
            msg = f"Illegal session transition {self.state.value} -> {to.value} for {self.url}"
            raise RuntimeError(msg)
        self.state = to
        self.history.append(to)


class StreamingAssembler:
    """Drives a ``StreamingSession`` through its phases.

    Stateless apart from the startup-built shell and settings, so one
    instance serves every concurrent session.
    """

    __slots__ = ("_global_name", "_resolve_scripts", "_shell", "_tail_chunk_size", "_timeout")

    def __init__(
        self,
        shell: DocumentShell,
        resolve_scripts: Callable[[Sequence[str]], Sequence[str]],
        *,
        global_name: str = DEFAULT_GLOBAL,
        tail_chunk_size: int = 16 * 1024,
        timeout: float | None = None,
    ) -> None:
        self._shell = shell
        self._resolve_scripts = resolve_scripts
        self._global_name = global_name
        self._tail_chunk_size = tail_chunk_size
        self._timeout = timeout

    async def run(self, session: StreamingSession) -> None:
        """Emit the whole document. The bound sink must already be started."""
        sink = session.sink
        if sink is None:
            msg = "Session must be bound to a sink before running."
            raise RuntimeError(msg)

        await sink.write(self._shell.head(session.title))
        session.advance(SessionState.HEAD_SENT)

        session.advance(SessionState.MARKUP_STREAMING)
        await self._stream_markup(session, sink)
        logger.info("markup stream end for %s", session.url)

        session.advance(SessionState.TAIL_PENDING)
        tail = self._shell.tail(
            script_for(session.data_payload, global_name=self._global_name),
            self._module_scripts(session),
        )

        session.advance(SessionState.TAIL_STREAMING)
        try:
            await pipe(iter_chunks(tail, self._tail_chunk_size), sink)
        finally:
            with anyio.CancelScope(shield=True):
                await sink.end()
                session.advance(SessionState.ENDED)
        logger.info("tail stream done for %s", session.url)

    async def _stream_markup(self, session: StreamingSession, sink: ResponseSink) -> None:
        try:
            with anyio.move_on_after(self._timeout) as scope:
                await pipe(session.markup, sink)
        except Exception as exc:
            session.error = StreamError(f"Markup stream failed for {session.url}: {exc}")
            session.error.__cause__ = exc
            logger.exception("markup stream failed for %s; closing document", session.url)
            return

        if scope.cancelled_caught:
            session.timed_out = True
            logger.warning(
                "render of %s exceeded %.1fs; closing document", session.url, self._timeout
            )
            await sink.write(TIMEOUT_MARKER)

    def _module_scripts(self, session: StreamingSession) -> Sequence[str]:
        if not session.modules:
            return ()
        try:
            return self._resolve_scripts(list(session.modules))
        except Exception:
            logger.exception("module script lookup failed for %s", session.url)
            return ()
