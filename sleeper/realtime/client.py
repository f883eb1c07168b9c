"""Client side of the campaign socket.

``ClientSession`` owns one connection and one retry timer. Every time it
(re)connects it pulls the authoritative campaign state before applying
pushed events: missed events are never replayed, so the snapshot is what
makes the view correct and the push stream only keeps it fresh.
"""

import json
import logging
import threading
import urllib.request
from enum import Enum
from typing import Callable, Optional

import socketio

from sleeper import __version__

from .events import (
    CampaignEvent,
    ChallengeUpdate,
    DayIncremented,
    DicePoolUpdated,
    RollComplete,
    decode_frame,
)
from sleeper.models.enums import ChallengeAction, Outcome

logger = logging.getLogger(__name__)

RECENT_ROLLS = 100


class CampaignView:
    """A client's local copy of one campaign."""

    def __init__(self, campaign_id: int):
        self.campaign_id = campaign_id
        self.current_day: Optional[int] = None
        self.characters: dict[int, dict] = {}
        self.pools: dict[int, Optional[dict]] = {}
        self.challenges: dict[int, dict] = {}
        self.rolls: list[dict] = []

    def load_snapshot(self, state: dict):
        """Replace everything with the server's state."""
        self.current_day = state["campaign"]["current_day"]
        self.characters = {c["id"]: c for c in state.get("characters", [])}
        self.pools = {int(cid): pool for cid, pool in state.get("pools", {}).items()}
        self.challenges = {c["id"]: c for c in state.get("challenges", [])}
        # Rolls already counted in the challenge stats; pushes for these are skipped
        self.rolls = list(state.get("rolls", []))[:RECENT_ROLLS]

    def apply(self, event: CampaignEvent):
        if isinstance(event, RollComplete):
            self._apply_roll(event)
        elif isinstance(event, DicePoolUpdated):
            self.pools[event.character_id] = event.pool
        elif isinstance(event, ChallengeUpdate):
            self._apply_challenge(event)
        elif isinstance(event, DayIncremented):
            self.current_day = event.current_day
            # Yesterday's pools are stale the moment the day moves
            self.pools = {cid: None for cid in self.pools}
        else:
            raise TypeError(f"Unhandled event: {event!r}")

    def _apply_roll(self, event: RollComplete):
        roll = event.roll
        # Already reflected by the snapshot or an earlier push
        if any(r.get("id") == roll.get("id") for r in self.rolls):
            return
        self.rolls.insert(0, dict(roll, character_name=event.character_name))
        del self.rolls[RECENT_ROLLS:]

        pool = self.pools.get(event.character_id)
        if pool:
            for die in pool.get("dice", []):
                if die["id"] == event.die_id:
                    die["is_used"] = True

        challenge = self.challenges.get(roll.get("challenge_id"))
        if challenge is not None:
            challenge["total_attempts"] = challenge.get("total_attempts", 0) + 1
            if roll.get("outcome") == Outcome.SUCCESS.value:
                challenge["successful_attempts"] = challenge.get("successful_attempts", 0) + 1
            elif roll.get("outcome") == Outcome.FAILURE.value:
                challenge["failed_attempts"] = challenge.get("failed_attempts", 0) + 1

    def _apply_challenge(self, event: ChallengeUpdate):
        challenge_id = event.challenge["id"]
        if event.action is ChallengeAction.COMPLETED:
            self.challenges.pop(challenge_id, None)
            return
        existing = self.challenges.get(challenge_id, {})
        self.challenges[challenge_id] = dict(
            event.challenge,
            total_attempts=existing.get("total_attempts", 0),
            successful_attempts=existing.get("successful_attempts", 0),
            failed_attempts=existing.get("failed_attempts", 0),
        )

    def unused_dice(self, character_id: int) -> list[dict]:
        pool = self.pools.get(character_id)
        if not pool:
            return []
        return [die for die in pool["dice"] if not die["is_used"]]


class ClientState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_PENDING_RETRY = "closed_pending_retry"
    STOPPED = "stopped"


class ClientSession:
    """
    Keeps one campaign view in sync over a reconnecting socket.

    Args:
        view: CampaignView to keep current
        transport: Object with ``connect(on_frame, on_close)`` and ``close()``
        fetch_state: Callable returning the campaign state snapshot
        timer_factory: ``threading.Timer``-compatible factory for retries
        base_delay: First retry delay in seconds, doubled per failure
        max_delay: Retry delay cap in seconds
    """

    def __init__(
        self,
        view: CampaignView,
        transport,
        fetch_state: Callable[[], dict],
        timer_factory=threading.Timer,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ):
        self.view = view
        self.transport = transport
        self.fetch_state = fetch_state
        self.timer_factory = timer_factory
        self.base_delay = base_delay
        self.max_delay = max_delay

        self.state = ClientState.CLOSED_PENDING_RETRY
        self.attempts = 0
        self._timer = None
        self._lock = threading.RLock()
        self._synced = False
        self._buffer: list[CampaignEvent] = []

    def start(self):
        self._connect()

    def stop(self):
        with self._lock:
            self.state = ClientState.STOPPED
            self._cancel_timer()
        self.transport.close()

    def next_delay(self) -> float:
        return min(self.max_delay, self.base_delay * (2 ** self.attempts))

    def _connect(self):
        with self._lock:
            if self.state is ClientState.STOPPED:
                return
            self._timer = None
            self.state = ClientState.CONNECTING
            self._synced = False
            self._buffer = []

        try:
            self.transport.connect(self._on_frame, self._on_close)
            snapshot = self.fetch_state()
        except Exception:
            logger.warning("Campaign %d: connect failed", self.view.campaign_id, exc_info=True)
            self.transport.close()
            self._schedule_retry()
            return

        with self._lock:
            if self.state is not ClientState.CONNECTING:
                return
            self.view.load_snapshot(snapshot)
            for event in self._buffer:
                self.view.apply(event)
            self._buffer = []
            self._synced = True
            self.attempts = 0
            self.state = ClientState.OPEN
        logger.info("Campaign %d: connected on day %s", self.view.campaign_id, self.view.current_day)

    def _on_frame(self, frame: str):
        try:
            events = decode_frame(frame)
        except ValueError:
            logger.warning("Campaign %d: ignoring malformed frame", self.view.campaign_id, exc_info=True)
            return
        with self._lock:
            for event in events:
                if event.campaign_id != self.view.campaign_id:
                    continue
                if self._synced:
                    self.view.apply(event)
                else:
                    # Held until the snapshot lands
                    self._buffer.append(event)

    def _on_close(self, *args):
        with self._lock:
            if self.state in (ClientState.STOPPED, ClientState.CLOSED_PENDING_RETRY):
                return
        logger.info("Campaign %d: connection closed", self.view.campaign_id)
        self._schedule_retry()

    def _schedule_retry(self):
        with self._lock:
            if self.state is ClientState.STOPPED:
                return
            self._cancel_timer()
            delay = self.next_delay()
            self.attempts += 1
            self.state = ClientState.CLOSED_PENDING_RETRY
            self._synced = False
            self._timer = self.timer_factory(delay, self._connect)
            self._timer.daemon = True
            self._timer.start()
        logger.info("Campaign %d: reconnecting in %.1fs", self.view.campaign_id, delay)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class SocketIOTransport:
    """Socket.IO connection to the campaign room."""

    def __init__(self, base_url: str, campaign_id: int, user_id: int):
        self.base_url = base_url.rstrip("/")
        self.campaign_id = campaign_id
        self.user_id = user_id
        self._client = None

    def connect(self, on_frame, on_close):
        client = socketio.Client(reconnection=False)
        client.on("campaign_event", on_frame)
        client.on("disconnect", on_close)
        client.connect(f"{self.base_url}?campaign_id={self.campaign_id}&user_id={self.user_id}")
        self._client = client

    def close(self):
        if self._client is not None:
            self._client.disconnect()
            self._client = None


def http_state_fetcher(base_url: str, campaign_id: int, user_id: int, timeout: float = 10.0):
    """Build a ``fetch_state`` callable that reads the campaign snapshot over HTTP."""
    url = f"{base_url.rstrip('/')}/api/campaigns/{campaign_id}/state"

    def fetch_state() -> dict:
        request = urllib.request.Request(
            url,
            headers={
                "Accept": "application/json",
                "Cookie": f"sleeper_user_id={user_id}",
                "User-Agent": f"Sleeper-System/{__version__}",
            },
        )
        # Non-2xx raises HTTPError
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return json.loads(response.read().decode("utf-8"))

    return fetch_state
