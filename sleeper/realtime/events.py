"""Typed campaign events and the JSON envelope they travel in.

Envelope::

    {"type": "roll_complete", "campaign_id": 3, "payload": {...}}

Several envelopes sent in one frame are separated by newlines.
"""

import json
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

from sleeper.models.enums import EventType, ChallengeAction


@dataclass
class RollComplete:
    """A die was claimed and a roll recorded."""
    type: ClassVar[EventType] = EventType.ROLL_COMPLETE

    campaign_id: int
    character_id: int
    roll: dict
    character_name: Optional[str] = None

    @property
    def die_id(self) -> Optional[int]:
        return self.roll.get("pool_dice_id")

    def payload(self) -> dict:
        return {
            "character_id": self.character_id,
            "character_name": self.character_name,
            "roll": self.roll,
        }

    @classmethod
    def from_payload(cls, campaign_id: int, payload: dict) -> "RollComplete":
        return cls(
            campaign_id=campaign_id,
            character_id=payload["character_id"],
            roll=payload["roll"],
            character_name=payload.get("character_name"),
        )


@dataclass
class DicePoolUpdated:
    """A pool was rolled or one of its dice was edited."""
    type: ClassVar[EventType] = EventType.DICE_POOL_UPDATED

    campaign_id: int
    character_id: int
    pool: dict

    def payload(self) -> dict:
        return {"character_id": self.character_id, "pool": self.pool}

    @classmethod
    def from_payload(cls, campaign_id: int, payload: dict) -> "DicePoolUpdated":
        return cls(
            campaign_id=campaign_id,
            character_id=payload["character_id"],
            pool=payload["pool"],
        )


@dataclass
class ChallengeUpdate:
    """A challenge was created or completed."""
    type: ClassVar[EventType] = EventType.CHALLENGE_UPDATE

    campaign_id: int
    action: ChallengeAction
    challenge: dict = field(default_factory=dict)

    def payload(self) -> dict:
        return {"action": self.action.value, "challenge": self.challenge}

    @classmethod
    def from_payload(cls, campaign_id: int, payload: dict) -> "ChallengeUpdate":
        return cls(
            campaign_id=campaign_id,
            action=ChallengeAction(payload["action"]),
            challenge=payload["challenge"],
        )


@dataclass
class DayIncremented:
    """The GM advanced the campaign day; every pool is now stale."""
    type: ClassVar[EventType] = EventType.DAY_INCREMENTED

    campaign_id: int
    current_day: int

    def payload(self) -> dict:
        return {"campaign_id": self.campaign_id, "current_day": self.current_day}

    @classmethod
    def from_payload(cls, campaign_id: int, payload: dict) -> "DayIncremented":
        return cls(campaign_id=campaign_id, current_day=payload["current_day"])


CampaignEvent = Union[RollComplete, DicePoolUpdated, ChallengeUpdate, DayIncremented]

EVENT_CLASSES = {
    cls.type: cls for cls in (RollComplete, DicePoolUpdated, ChallengeUpdate, DayIncremented)
}


def to_envelope(event: CampaignEvent) -> dict:
    return {
        "type": event.type.value,
        "campaign_id": event.campaign_id,
        "payload": event.payload(),
    }


def encode_event(event: CampaignEvent) -> str:
    return json.dumps(to_envelope(event))


def parse_event(envelope: dict) -> CampaignEvent:
    """Build a typed event from a decoded envelope.

    Raises:
        ValueError: unknown event type or missing fields
    """
    try:
        event_type = EventType(envelope["type"])
        cls = EVENT_CLASSES[event_type]
        return cls.from_payload(envelope["campaign_id"], envelope.get("payload") or {})
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed event envelope: {exc}") from exc


def decode_frame(frame: str) -> list[CampaignEvent]:
    """Split a newline-delimited frame into typed events."""
    return [parse_event(json.loads(line)) for line in frame.split("\n") if line.strip()]
