"""
Tests for the campaign event hub.

Tests cover:
- Registration per campaign
- Commit-then-publish and nothing on failure
- Per-campaign ordering
- Dropping slow or broken connections without affecting others
"""

import threading

import pytest

from sleeper.realtime.events import DayIncremented, decode_frame
from sleeper.realtime.hub import EventHub


class FakeSession:
    def __init__(self):
        self.commits = 0

    def commit(self):
        self.commits += 1


def received(frames):
    return [event for frame in frames for event in decode_frame(frame)]


class TestRegistration:

    def test_register_and_unregister(self, hub):
        connection = hub.register(1, lambda frame: None, user_id=5)
        hub.register(2, lambda frame: None)
        assert hub.connection_count(1) == 1
        assert hub.connection_count(2) == 1

        hub.unregister(connection)
        assert hub.connection_count(1) == 0
        assert connection.closed

    def test_unregister_twice_is_harmless(self, hub):
        connection = hub.register(1, lambda frame: None)
        hub.unregister(connection)
        hub.unregister(connection)
        assert hub.connection_count(1) == 0


class TestCommit:

    def test_commits_then_publishes(self, hub):
        frames = []
        hub.register(1, frames.append)
        session = FakeSession()

        with hub.commit(session, 1) as outbox:
            outbox.append(DayIncremented(1, 2))
            assert session.commits == 0

        hub.wait_idle()
        assert session.commits == 1
        assert received(frames) == [DayIncremented(1, 2)]

    def test_failure_publishes_nothing(self, hub):
        frames = []
        hub.register(1, frames.append)
        session = FakeSession()

        with pytest.raises(RuntimeError):
            with hub.commit(session, 1) as outbox:
                outbox.append(DayIncremented(1, 2))
                raise RuntimeError("boom")

        hub.wait_idle()
        assert session.commits == 0
        assert frames == []

    def test_only_same_campaign_receives(self, hub):
        mine, theirs = [], []
        hub.register(1, mine.append)
        hub.register(2, theirs.append)

        hub.publish(DayIncremented(1, 2))
        hub.wait_idle()

        assert received(mine) == [DayIncremented(1, 2)]
        assert theirs == []

    def test_order_preserved_for_every_subscriber(self, hub):
        subscribers = [[] for _ in range(3)]
        for frames in subscribers:
            hub.register(1, frames.append)

        for day in range(2, 52):
            with hub.commit(FakeSession(), 1) as outbox:
                outbox.append(DayIncremented(1, day))
        hub.wait_idle()

        for frames in subscribers:
            assert [event.current_day for event in received(frames)] == list(range(2, 52))


class TestSlowClients:

    def test_full_queue_drops_only_that_client(self):
        hub = EventHub(queue_size=2)
        release = threading.Event()
        fast = []

        def stuck(frame):
            release.wait(5)

        slow = hub.register(1, stuck)
        quick = hub.register(1, fast.append)

        for day in range(2, 10):
            hub.publish(DayIncremented(1, day))
            quick.wait_idle()

        assert slow.closed
        assert hub.connection_count(1) == 1
        release.set()
        hub.wait_idle()
        assert [event.current_day for event in received(fast)] == list(range(2, 10))
        hub.close()

    def test_failed_send_drops_connection(self, hub):
        healthy = []

        def broken(frame):
            raise ConnectionError("socket gone")

        bad = hub.register(1, broken)
        hub.register(1, healthy.append)

        hub.publish(DayIncremented(1, 2))
        hub.wait_idle()

        assert bad.closed
        assert hub.connection_count(1) == 1
        assert received(healthy) == [DayIncremented(1, 2)]

    def test_queued_frames_are_batched(self):
        hub = EventHub()
        gate = threading.Event()
        frames = []

        def send(frame):
            gate.wait(5)
            frames.append(frame)

        hub.register(1, send)
        hub.publish(DayIncremented(1, 2))
        # First frame is in flight; the next two queue up behind it
        threading.Event().wait(0.1)
        hub.publish(DayIncremented(1, 3))
        hub.publish(DayIncremented(1, 4))
        gate.set()
        hub.wait_idle()

        assert [event.current_day for event in received(frames)] == [2, 3, 4]
        assert len(frames) == 2
        assert frames[1].count("\n") == 1
        hub.close()
