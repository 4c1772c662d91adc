"""Streaming export responses.

ExportStream sits between the transport and the caller. On one side it
consumes raw text chunks from an httpx streaming response in arrival order.
On the other it produces record batches, errors and completion. Callers
either iterate it directly or register ``data`` / ``error`` / ``end``
handlers and let run() drive it.

Nothing touches the network until the stream is consumed, so handlers
attached right after the stream is returned never miss an emission.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import TYPE_CHECKING, Any

import httpx

from mailchimp_export.exceptions import (
    ExportConnectionError,
    ExportError,
    ExportParseError,
    ExportStreamError,
)
from mailchimp_export.framing import flush_remainder

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from mailchimp_export.framing import Framer

logger = logging.getLogger(__name__)

EVENTS = ("data", "error", "end")

CONNECT_ERROR_MESSAGE = "Unable to connect to the MailChimp API endpoint."


class ExportStream:
    """Incrementally decoded export response.

    Usage::

        stream = client.list(id="abc123", stream=True)
        async for batch in stream:
            for record in batch:
                ...

    or, event style::

        stream = client.list(id="abc123", stream=True)
        stream.on("data", handle_batch).on("error", handle_error).on("end", done)
        task = stream.start_task()
        stream.pause()   # stop reading from the socket
        stream.resume()
        await stream.abort()  # no further data/end events
    """

    def __init__(
        self,
        opener: Callable[[], Awaitable[httpx.Response]],
        framer: Framer,
        *,
        operation: str,
    ) -> None:
        self.operation = operation
        self._opener = opener
        self._framer = framer
        self._handlers: dict[str, list[Callable[..., Any]]] = {event: [] for event in EVENTS}
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._state = "idle"  # idle -> running -> ended | failed | aborted
        self._response: httpx.Response | None = None
        self._task: asyncio.Task[None] | None = None

    # ─── Event interface ───────────────────────────────────────────────────

    def on(self, event: str, handler: Callable[..., Any]) -> ExportStream:
        """Register a handler for ``data``, ``error`` or ``end``.

        Handlers may be plain callables or coroutine functions. Returns the
        stream so registrations can be chained.
        """
        if event not in self._handlers:
            raise ValueError(f"Unknown stream event '{event}'. Expected one of: {', '.join(EVENTS)}")
        self._handlers[event].append(handler)
        return self

    async def _emit(self, event: str, *args: Any) -> None:
        for handler in self._handlers[event]:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result

    async def run(self) -> None:
        """Consume the stream, dispatching events to registered handlers.

        Emits one ``data`` event per batch, then ``end``. On failure emits
        ``error`` instead; without an error handler the exception is raised.
        """
        try:
            async with contextlib.aclosing(self._pump()) as batches:
                async for batch in batches:
                    await self._emit("data", batch)
        except asyncio.CancelledError:
            if self._state == "aborted":
                return
            raise
        except ExportError as e:
            if self._state == "aborted":
                return
            if not self._handlers["error"]:
                raise
            await self._emit("error", e)
            return

        if self._state != "aborted":
            await self._emit("end")

    def start_task(self) -> asyncio.Task[None]:
        """Run the stream as a background task."""
        self._task = asyncio.create_task(self.run())
        return self._task

    # ─── Source interface ──────────────────────────────────────────────────

    def __aiter__(self) -> AsyncIterator[list[Any]]:
        return self._pump()

    async def read_all(self) -> list[Any]:
        """Consume the stream and return every record in order."""
        records: list[Any] = []
        async for batch in self:
            records.extend(batch)
        return records

    async def _pump(self) -> AsyncIterator[list[Any]]:
        if self._state != "idle":
            raise ExportStreamError(
                f"Export stream is {self._state} and cannot be consumed again",
                operation=self.operation,
            )
        self._state = "running"
        logger.debug("Opening export stream for %s", self.operation)

        # Newlines consumed so far; parse errors report lines from body start
        lines_read = 0
        try:
            await self._resumed.wait()
            if self._state == "aborted":
                return
            self._response = await self._opener()

            remainder = ""
            async for chunk in self._response.aiter_text():
                if self._state == "aborted":
                    return
                batch = self._framer(chunk, remainder, partial=True)
                remainder = batch.remainder
                lines_read += chunk.count("\n")
                yield batch.records
                # Hold the next socket read while paused
                await self._resumed.wait()
                if self._state == "aborted":
                    return

            if self._state == "aborted":
                return
            final = flush_remainder(self._framer, remainder)
            if final.records:
                yield final.records
            self._state = "ended"
            logger.debug("Export stream for %s ended", self.operation)
        except ExportError as e:
            if isinstance(e, ExportParseError) and e.line is not None:
                e.line += lines_read
            self._fail(e)
            raise
        except httpx.HTTPError as e:
            error = ExportConnectionError(CONNECT_ERROR_MESSAGE, operation=self.operation)
            self._fail(error)
            raise error from e
        finally:
            if self._response is not None:
                await self._response.aclose()

    def _fail(self, error: ExportError) -> None:
        if self._state != "aborted":
            self._state = "failed"
        if error.operation is None:
            error.operation = self.operation

    # ─── Flow control ──────────────────────────────────────────────────────

    def pause(self) -> None:
        """Stop reading from the transport after the current batch.

        The pending remainder is kept and completed once resumed.
        """
        self._resumed.clear()
        logger.debug("Export stream for %s paused", self.operation)

    def resume(self) -> None:
        """Continue reading from the transport."""
        self._resumed.set()
        logger.debug("Export stream for %s resumed", self.operation)

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    async def abort(self) -> None:
        """Abort the request. No data or end events are emitted afterwards."""
        if self._state in ("ended", "failed", "aborted"):
            return
        self._state = "aborted"
        self._resumed.set()
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        if self._response is not None:
            await self._response.aclose()
        logger.debug("Export stream for %s aborted", self.operation)

    @property
    def state(self) -> str:
        """One of ``idle``, ``running``, ``ended``, ``failed`` or ``aborted``."""
        return self._state


__all__ = ["CONNECT_ERROR_MESSAGE", "EVENTS", "ExportStream"]
