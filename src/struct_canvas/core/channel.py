"""Persistent websocket channel to the source watcher.

Lifecycle::

    DISCONNECTED ──open()──▶ CONNECTING ──▶ CONNECTED ──▶ CLOSED | ERRORED

The channel never reconnects by itself; a closed channel stays closed and
the model keeps its last value until a new session is opened.

Outbound commands are fire-and-forget. ``send()`` is synchronous: it encodes
the command and queues it, and a writer task drains the queue in order. No
acknowledgement is tracked; the watcher's next snapshot is the
reconciliation point.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from typing import Any

from loguru import logger
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config.defaults import DEFAULT_SEND_QUEUE_SIZE
from .exceptions import ChannelError, ConnectionClosedError, PeerError, ProtocolError
from .intents import EditIntent
from .models import Package
from .protocol import (
    ClearLayoutMessage,
    ErrorMessage,
    SnapshotMessage,
    decode_message,
    encode_command,
)


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"
    ERRORED = "errored"


Connector = Callable[[str], Awaitable[Any]]


async def _default_connector(url: str) -> Any:
    # Snapshots of large code bases easily exceed the 1 MiB default frame limit.
    return await connect(url, max_size=None)


class SessionChannel:
    """Duplex connection to the watcher for one editing session."""

    def __init__(
        self,
        url: str,
        on_snapshot: Callable[[SnapshotMessage], None],
        on_peer_error: Callable[[PeerError], None] | None = None,
        on_closed: Callable[[ConnectionClosedError | None], None] | None = None,
        on_clear_layout: Callable[[], None] | None = None,
        connector: Connector | None = None,
        queue_size: int = DEFAULT_SEND_QUEUE_SIZE,
        flush_timeout: float = 1.0,
    ):
        """Initialize the channel (does not connect).

        Args:
            url: Websocket URL including the lastMod token
            on_snapshot: Called for every structural snapshot, in arrival order
            on_peer_error: Called when the watcher reports an error
            on_closed: Called once when the connection ends; receives the
                error for unexpected closes, ``None`` for clean ones
            on_clear_layout: Called when the watcher announces a refresh
            connector: Coroutine factory returning a websocket connection
            queue_size: Maximum number of outbound commands waiting to be written
            flush_timeout: Seconds ``close()`` waits for queued commands
        """
        self.url = url
        self._on_snapshot = on_snapshot
        self._on_peer_error = on_peer_error
        self._on_closed = on_closed
        self._on_clear_layout = on_clear_layout
        self._connector = connector or _default_connector
        self._flush_timeout = flush_timeout

        self._state = ChannelState.DISCONNECTED
        self._ws: Any = None
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._reader_task: asyncio.Task | None = None
        self._writer_task: asyncio.Task | None = None

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    def _set_state(self, state: ChannelState) -> None:
        logger.debug(f"Channel {self._state} -> {state}")
        self._state = state

    async def open(self) -> None:
        """Connect to the watcher and start the reader/writer tasks.

        Raises:
            ChannelError: If the channel was already opened or connecting fails
        """
        if self._state is not ChannelState.DISCONNECTED:
            raise ChannelError(f"Channel already {self._state}; open a new session to reconnect")

        logger.info(f"Connecting to watcher at {self.url}")
        self._set_state(ChannelState.CONNECTING)
        try:
            self._ws = await self._connector(self.url)
        except (OSError, WebSocketException) as e:
            self._set_state(ChannelState.ERRORED)
            raise ChannelError(f"Failed to connect to {self.url}: {e}", {"url": self.url}) from e

        self._set_state(ChannelState.CONNECTED)
        self._reader_task = asyncio.create_task(self._read_loop())
        self._writer_task = asyncio.create_task(self._write_loop())

    def send(self, intent: EditIntent, packages: Iterable[Package] | None = None) -> bool:
        """Queue an edit command for the watcher.

        Args:
            intent: Edit to forward
            packages: Optional package list attached to the command

        Returns:
            True if the command was queued, False if it was dropped
        """
        if not self.is_connected:
            logger.warning(f"Not connected ({self._state}); dropping {intent.kind} command")
            return False

        frame = encode_command(intent, packages)
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Send queue full; dropping {intent.kind} command")
            return False
        return True

    async def close(self) -> None:
        """Flush queued commands and close the connection. Idempotent."""
        if self._state is ChannelState.DISCONNECTED:
            self._set_state(ChannelState.CLOSED)
            return
        if self._ws is None or self._reader_task is None:
            return

        if self.is_connected and self._writer_task and not self._writer_task.done():
            try:
                await asyncio.wait_for(self._queue.join(), self._flush_timeout)
            except TimeoutError:
                logger.warning(f"{self._queue.qsize()} queued command(s) not sent before close")

        await self._stop_writer()
        await self._ws.close()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until the reader loop has finished."""
        if self._reader_task is not None:
            await asyncio.shield(self._reader_task)

    # ── Internals ───────────────────────────────────────────────────────

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                self._handle_frame(raw)
        except ConnectionClosed as e:
            self._finish(
                ConnectionClosedError(f"Connection to watcher lost: {e}", {"url": self.url})
            )
            return
        self._finish(None)

    async def _write_loop(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                await self._ws.send(frame)
            except ConnectionClosed as e:
                logger.warning(f"Dropped outbound command, connection closed: {e}")
                return
            except (WebSocketException, OSError) as e:
                self._finish(
                    ConnectionClosedError(f"Failed to write to watcher: {e}", {"url": self.url})
                )
                break
            finally:
                self._queue.task_done()
        await self._ws.close()

    async def _stop_writer(self) -> None:
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer_task

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            message = decode_message(raw)
        except ProtocolError as e:
            logger.warning(f"Dropping malformed message from watcher: {e}")
            return

        try:
            if isinstance(message, SnapshotMessage):
                self._on_snapshot(message)
            elif isinstance(message, ErrorMessage):
                logger.warning(f"Watcher reported an error: {message.error}")
                if self._on_peer_error:
                    self._on_peer_error(PeerError(message.error))
            elif isinstance(message, ClearLayoutMessage):
                logger.debug("Watcher is refreshing the layout")
                if self._on_clear_layout:
                    self._on_clear_layout()
        except Exception as e:
            logger.error(f"Error handling {type(message).__name__}: {e}")

    def _finish(self, error: ConnectionClosedError | None) -> None:
        if self._state in (ChannelState.CLOSED, ChannelState.ERRORED):
            return
        if error is None:
            logger.info("Connection to watcher closed")
            self._set_state(ChannelState.CLOSED)
        else:
            logger.error(str(error))
            self._set_state(ChannelState.ERRORED)
        writer = self._writer_task
        if writer is not None and not writer.done() and writer is not asyncio.current_task():
            writer.cancel()
        if self._on_closed:
            self._on_closed(error)
