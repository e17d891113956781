# anonyworks/services/connection_broker.py
"""
In-process fan-out registry for live pit viewers.

Maps a pit id to the set of open connections watching it. A connection
belongs to at most one pit: joining a second pit moves it. Delivery is
at-most-once to connections that are open at the moment of the broadcast;
nothing is queued, retried or persisted, so a viewer that reconnects must
re-fetch messages over HTTP.

The registry is guarded by a lock because joins and leaves arrive from the
event loop while broadcasts come from request worker threads.
"""
import asyncio
import logging
import threading
from typing import Any, Dict, Optional, Protocol, Set

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)

NEW_MESSAGE = "newMessage"


class Connection(Protocol):
    @property
    def is_open(self) -> bool: ...

    def send(self, payload: Dict[str, Any]) -> None: ...


class WebSocketConnection:
    """Connection handle for a Starlette websocket.

    ``send`` may be called from any thread; the frame is written on the event
    loop that owns the socket and the caller never waits for it.
    """

    def __init__(self, websocket: WebSocket, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.websocket = websocket
        self.loop = loop or asyncio.get_running_loop()
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        self._closed = True

    async def _send(self, payload: Dict[str, Any]) -> None:
        async with self._send_lock:
            if self.is_open:
                await self.websocket.send_json(payload)

    def send(self, payload: Dict[str, Any]) -> None:
        future = asyncio.run_coroutine_threadsafe(self._send(payload), self.loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("Live delivery failed: %s", exc)


class ConnectionBroker:
    def __init__(self):
        self._lock = threading.Lock()
        self._pits: Dict[str, Set[Connection]] = {}
        self._membership: Dict[Connection, str] = {}

    @staticmethod
    def _key(pit_id) -> str:
        return str(pit_id)

    def join(self, connection: Connection, pit_id) -> None:
        """Register ``connection`` under ``pit_id``, moving it off any previous pit."""
        key = self._key(pit_id)
        with self._lock:
            previous = self._membership.get(connection)
            if previous == key:
                return
            if previous is not None:
                self._discard(connection, previous)
            self._pits.setdefault(key, set()).add(connection)
            self._membership[connection] = key
        if previous is not None:
            logger.info("Live viewer moved from pit %s to %s", previous, key)
        else:
            logger.info("Live viewer joined pit %s", key)

    def leave(self, connection: Connection) -> Optional[str]:
        """Forget ``connection``. Returns the pit it was watching, if any."""
        with self._lock:
            key = self._membership.pop(connection, None)
            if key is not None:
                self._discard(connection, key)
        if key is not None:
            logger.info("Live viewer left pit %s", key)
        return key

    def _discard(self, connection: Connection, key: str) -> None:
        # caller holds the lock
        members = self._pits.get(key)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._pits[key]

    def broadcast(self, pit_id, message: Dict[str, Any]) -> int:
        """Send ``message`` to every open viewer of ``pit_id``.

        Returns the number of connections the frame was handed to. Closed or
        failing connections are skipped.
        """
        key = self._key(pit_id)
        with self._lock:
            targets = list(self._pits.get(key, ()))

        frame = {"type": NEW_MESSAGE, "message": message}
        delivered = 0
        for connection in targets:
            if not connection.is_open:
                continue
            try:
                connection.send(frame)
                delivered += 1
            except Exception as e:
                logger.debug("Skipping live viewer of pit %s: %s", key, e)
        return delivered

    def subscriber_count(self, pit_id) -> int:
        with self._lock:
            return len(self._pits.get(self._key(pit_id), ()))

    def pit_of(self, connection: Connection) -> Optional[str]:
        with self._lock:
            return self._membership.get(connection)

    def active_pits(self) -> Set[str]:
        with self._lock:
            return set(self._pits)
