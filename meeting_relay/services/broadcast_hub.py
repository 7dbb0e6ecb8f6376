"""
Process-wide fan-out of live events to SSE viewers.

The hub owns the set of open subscriber connections. ``publish`` writes one
pre-rendered SSE frame into every connection's bounded buffer; the HTTP layer
drains each buffer into its response. A connection that cannot take a frame
(closed, full, or erroring) is treated as dead and dropped, never reported to
the publisher.
"""

from __future__ import annotations

import itertools
import json
import logging
import queue
import threading
from typing import Callable, Optional

_logger = logging.getLogger("relay.hub")

HEARTBEAT_FRAME = ": keep-alive\n\n"
CONNECTED_FRAME = ": connected\n\n"

_CLOSED = object()


class SubscriberGone(RuntimeError):
    """The subscriber can no longer accept frames."""


def format_sse(message: dict) -> str:
    return f"data: {json.dumps(message, default=str)}\n\n"


class SubscriberConnection:
    """Bounded output buffer for one viewer."""

    def __init__(self, connection_id: int, max_pending: int = 256) -> None:
        self.id = connection_id
        self._frames: queue.Queue = queue.Queue(maxsize=max_pending)
        self._closed = threading.Event()
        self._listener: Optional[Callable[[], None]] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def on_ready(self, listener: Optional[Callable[[], None]]) -> None:
        """Call ``listener`` after every buffered frame and on close.

        Lets an event-loop reader wait for frames without parking a worker
        thread in ``read``. The listener runs on the publishing thread and
        must not block.
        """
        self._listener = listener

    def _notify(self) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            listener()
        except Exception as exc:
            # The reader still drains on its next poll.
            _logger.debug("Ready listener failed for connection id=%s: %s", self.id, exc)

    def write(self, frame: str, timeout: float = 0.0) -> None:
        if self._closed.is_set():
            raise SubscriberGone(f"connection {self.id} is closed")
        try:
            if timeout > 0:
                self._frames.put(frame, timeout=timeout)
            else:
                self._frames.put_nowait(frame)
        except queue.Full as exc:
            raise SubscriberGone(f"connection {self.id} is not draining") from exc
        self._notify()

    def read(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next pending frame, or None on timeout or once closed."""
        if self._closed.is_set() and self._frames.empty():
            return None
        try:
            frame = self._frames.get(timeout=timeout)
        except queue.Empty:
            return None
        if frame is _CLOSED:
            return None
        return frame

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        # Drop undelivered frames and wake a reader blocked in read().
        try:
            while True:
                self._frames.get_nowait()
        except queue.Empty:
            pass
        try:
            self._frames.put_nowait(_CLOSED)
        except queue.Full:
            pass
        self._notify()


class BroadcastHub:
    """Owns the subscriber set and the keep-alive heartbeat."""

    def __init__(
        self,
        *,
        heartbeat_interval: float = 15.0,
        write_timeout: float = 0.0,
        max_pending: int = 256,
    ) -> None:
        """Create an idle hub with no subscribers.

        Args:
            heartbeat_interval: Seconds between keep-alive probes
            write_timeout: Max seconds a single write may wait on a full buffer
            max_pending: Frames a subscriber may lag behind before it is dropped
        """
        self._heartbeat_interval = heartbeat_interval
        self._write_timeout = write_timeout
        self._max_pending = max_pending
        self._lock = threading.RLock()
        self._subscribers: dict[int, SubscriberConnection] = {}
        self._ids = itertools.count(1)

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def is_subscribed(self, connection: SubscriberConnection) -> bool:
        with self._lock:
            return self._subscribers.get(connection.id) is connection

    def subscribe(self, connection: Optional[SubscriberConnection] = None) -> SubscriberConnection:
        with self._lock:
            if connection is None:
                connection = SubscriberConnection(next(self._ids), self._max_pending)
            self._subscribers[connection.id] = connection
            count = len(self._subscribers)
        _logger.info("Subscriber connected: id=%s subscribers=%d", connection.id, count)
        return connection

    def unsubscribe(self, connection: SubscriberConnection) -> None:
        with self._lock:
            removed = self._subscribers.get(connection.id) is connection
            if removed:
                del self._subscribers[connection.id]
            count = len(self._subscribers)
        connection.close()
        if removed:
            _logger.info("Subscriber disconnected: id=%s subscribers=%d", connection.id, count)

    def publish(self, message: dict) -> int:
        """Deliver ``message`` to every current subscriber; returns deliveries."""
        return self._fan_out(format_sse(message))

    def probe(self) -> int:
        """Send a keep-alive comment to every subscriber."""
        return self._fan_out(HEARTBEAT_FRAME)

    def _fan_out(self, frame: str) -> int:
        delivered = 0
        # Held for the whole pass so concurrent publishes reach each
        # subscriber in the same order they took the lock.
        with self._lock:
            dead: list[SubscriberConnection] = []
            for connection in list(self._subscribers.values()):
                try:
                    connection.write(frame, timeout=self._write_timeout)
                    delivered += 1
                except Exception as exc:
                    _logger.debug("Dropping subscriber id=%s: %s", connection.id, exc)
                    dead.append(connection)
            for connection in dead:
                self.unsubscribe(connection)
        return delivered

    # ── Heartbeat lifecycle ────────────────────────────────────────────

    def start(self) -> None:
        """Start the keep-alive thread."""
        if self._running:
            _logger.warning("BroadcastHub already running")
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._heartbeat_loop,
            name="BroadcastHubHeartbeat",
            daemon=True,
        )
        self._thread.start()
        _logger.info("BroadcastHub started (heartbeat every %.1fs)", self._heartbeat_interval)

    def stop(self) -> None:
        """Stop the keep-alive thread and close every open connection."""
        if self._running:
            self._running = False
            self._stop_event.set()
            if self._thread:
                self._thread.join(timeout=5.0)
        with self._lock:
            connections = list(self._subscribers.values())
        for connection in connections:
            self.unsubscribe(connection)
        _logger.info("BroadcastHub stopped")

    def _heartbeat_loop(self) -> None:
        while not self._stop_event.wait(self._heartbeat_interval):
            try:
                self.probe()
            except Exception:
                _logger.exception("Heartbeat probe failed")
