"""Campaign event hub: fans committed events out to live connections.

Mutators never talk to sockets. They commit through ``EventHub.commit`` and
the hub copies each event into a bounded queue per connection; a sender
thread per connection drains its queue onto the wire. A connection whose
queue fills up, or whose send fails, is dropped without affecting anyone
else or the already-committed mutation.
"""

import logging
import os
import queue
import threading
from contextlib import contextmanager
from typing import Callable, Optional

from .events import CampaignEvent, encode_event

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = int(os.environ.get("SLEEPER_SEND_QUEUE_SIZE", "256"))


class Connection:
    """One subscriber socket and its outgoing queue."""

    def __init__(
        self,
        hub: "EventHub",
        campaign_id: int,
        send: Callable[[str], None],
        user_id: Optional[int] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.hub = hub
        self.campaign_id = campaign_id
        self.user_id = user_id
        self._send = send
        self._queue = queue.Queue(maxsize=queue_size)
        self._closed = threading.Event()
        self._idle = threading.Condition()
        self._pending = 0
        self._thread = threading.Thread(
            target=self._pump,
            name=f"hub-send-{campaign_id}",
            daemon=True,
        )

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def start(self):
        self._thread.start()

    def offer(self, frame: str) -> bool:
        """Queue a frame without blocking. False means the queue is full."""
        if self.closed:
            return False
        with self._idle:
            try:
                self._queue.put_nowait(frame)
            except queue.Full:
                return False
            self._pending += 1
        return True

    def close(self):
        self._closed.set()
        try:
            # Wake an idle sender so it can exit
            self._queue.put_nowait(None)
        except queue.Full:
            pass
        with self._idle:
            self._idle.notify_all()

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """Block until everything queued so far was handed to ``send``."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0 or self.closed, timeout)

    def _take_batch(self) -> list:
        first = self._queue.get()
        batch = [first]
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                return batch

    def _pump(self):
        while not self.closed:
            batch = [frame for frame in self._take_batch() if frame is not None]
            if self.closed or not batch:
                continue
            try:
                self._send("\n".join(batch))
            except Exception:
                logger.warning(
                    "Send failed for campaign %d (user %s); dropping connection",
                    self.campaign_id, self.user_id, exc_info=True,
                )
                self.hub.unregister(self)
                return
            finally:
                with self._idle:
                    self._pending -= len(batch)
                    self._idle.notify_all()


class EventHub:
    """Per-campaign connection registry and ordered broadcaster."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._campaigns: dict[int, list[Connection]] = {}
        self._sequencers: dict[int, threading.RLock] = {}

    def register(self, campaign_id: int, send: Callable[[str], None], user_id: Optional[int] = None) -> Connection:
        connection = Connection(self, campaign_id, send, user_id=user_id, queue_size=self.queue_size)
        with self._lock:
            self._campaigns.setdefault(campaign_id, []).append(connection)
            total = len(self._campaigns[campaign_id])
        connection.start()
        logger.info("Client registered for campaign %d (total: %d)", campaign_id, total)
        return connection

    def unregister(self, connection: Connection):
        with self._lock:
            clients = self._campaigns.get(connection.campaign_id, [])
            if connection not in clients:
                return
            clients.remove(connection)
            remaining = len(clients)
            if not clients:
                del self._campaigns[connection.campaign_id]
        connection.close()
        logger.info("Client unregistered from campaign %d (remaining: %d)", connection.campaign_id, remaining)

    def connection_count(self, campaign_id: int) -> int:
        with self._lock:
            return len(self._campaigns.get(campaign_id, []))

    def connections(self, campaign_id: int) -> list[Connection]:
        with self._lock:
            return list(self._campaigns.get(campaign_id, []))

    def sequencer(self, campaign_id: int) -> threading.RLock:
        with self._lock:
            lock = self._sequencers.get(campaign_id)
            if lock is None:
                lock = self._sequencers[campaign_id] = threading.RLock()
            return lock

    def publish(self, event: CampaignEvent):
        """Enqueue an already-committed event for every subscriber."""
        with self.sequencer(event.campaign_id):
            self._fan_out(event)

    @contextmanager
    def commit(self, session, campaign_id: int):
        """Commit ``session`` and publish the events collected in the body.

        Usage::

            with hub.commit(session, campaign_id) as outbox:
                ...mutate...
                outbox.append(DayIncremented(campaign_id, day))

        Commit and enqueue happen under the campaign's sequencer, so every
        subscriber sees events in commit order. If the body raises, nothing
        is committed or published.
        """
        outbox: list[CampaignEvent] = []
        yield outbox
        with self.sequencer(campaign_id):
            session.commit()
            for event in outbox:
                self._fan_out(event)

    def _fan_out(self, event: CampaignEvent):
        frame = encode_event(event)
        for connection in self.connections(event.campaign_id):
            if not connection.offer(frame):
                logger.warning(
                    "Send queue full for campaign %d (user %s); dropping slow client",
                    connection.campaign_id, connection.user_id,
                )
                self.unregister(connection)

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """Wait for every connection to hand off its queued frames."""
        with self._lock:
            everyone = [c for clients in self._campaigns.values() for c in clients]
        return all(connection.wait_idle(timeout) for connection in everyone)

    def close(self):
        with self._lock:
            everyone = [c for clients in self._campaigns.values() for c in clients]
            self._campaigns.clear()
        for connection in everyone:
            connection.close()
