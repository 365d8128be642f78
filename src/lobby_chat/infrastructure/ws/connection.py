"""Per-connection outbound queue and writer task."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

from lobby_chat.domain.value_objects.enums import SessionState
from lobby_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """The subset of starlette's WebSocket the writer needs."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(frozen=True, slots=True)
class _Close:
    code: int
    reason: str | None


class Connection:
    """Handle for one open WebSocket.

    `send` never blocks: frames go onto a bounded queue drained by a writer
    task, so callers may enqueue while holding the registry lock. Once
    `close` or `abort` is called every later `send` is dropped.
    """

    def __init__(
        self,
        transport: Transport,
        origin_address: str,
        *,
        queue_size: int = 256,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.origin_address = origin_address
        self.state = SessionState.PENDING
        self._transport = transport
        self._queue: asyncio.Queue[str | _Close] = asyncio.Queue(maxsize=queue_size)
        self._closing = False
        self._writer: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.origin_address} {self.state}>"

    @property
    def closed(self) -> bool:
        return self._closing

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop(), name=f"ws-writer-{self.id}")

    def send(self, event_type: str, data: dict[str, Any]) -> bool:
        """Queue one frame. Return False if it was dropped."""
        if self._closing:
            return False
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        try:
            self._queue.put_nowait(raw)
        except asyncio.QueueFull:
            logger.warning("Send queue full for %s, dropping %s", self.id, event_type)
            return False
        return True

    def close(
        self,
        code: int,
        reason: str | None = None,
        *,
        state: SessionState = SessionState.DISCONNECTED,
        notice: tuple[str, dict[str, Any]] | None = None,
    ) -> None:
        """Queue an optional final frame and a close. Idempotent."""
        if self._closing:
            return
        if notice is not None:
            self.send(*notice)
        self._closing = True
        self.state = state
        self._force_put(_Close(code=code, reason=reason))

    def abort(self) -> None:
        """Stop the writer without sending a close frame (peer already gone)."""
        self._closing = True
        if not self.state.is_terminal:
            self.state = SessionState.DISCONNECTED
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued frame has been handed to the transport."""
        await self._queue.join()

    async def wait_closed(self) -> None:
        if self._writer is None:
            return
        try:
            await asyncio.shield(self._writer)
        except asyncio.CancelledError:
            if not self._writer.cancelled():
                raise

    def _force_put(self, item: _Close) -> None:
        # The close marker must get through even if the queue is full.
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self._queue.task_done()

    async def _write_loop(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, _Close):
                    try:
                        await self._transport.close(code=item.code, reason=item.reason)
                    except Exception:
                        logger.debug("Close failed for %s", self.id, exc_info=True)
                    return
                try:
                    await self._transport.send_text(item)
                except Exception:
                    logger.warning("Transport error on %s", self.id, exc_info=True)
            finally:
                self._queue.task_done()
