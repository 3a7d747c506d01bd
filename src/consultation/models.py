"""Domain types for a multi-participant consultation session.

All value objects are frozen dataclasses: participants, transcriptions and
tips are copied between components, never shared mutably.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class ParticipantRole(Enum):
    """Role of a participant in the consultation."""

    DOCTOR = "doctor"
    PATIENT = "patient"
    AGENT = "agent"


class TipPriority(Enum):
    """Priority attached to a generated tip."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChannelType(Enum):
    """Kind of message channel."""

    GENERAL = "general"
    PRIVATE = "private"


@dataclass(frozen=True)
class Participant:
    """A participant registered in the session."""

    identity: str
    role: ParticipantRole
    name: str


@dataclass(frozen=True)
class TranscriptionMessage:
    """A single transcribed utterance.

    Attributes:
        participant_id: Identity of the speaker
        participant_role: Role of the speaker at the time of speaking
        text: Transcribed text (whitespace-trimmed)
        timestamp: When the utterance was recorded (UTC)
        confidence: Optional STT confidence score (0.0-1.0)
    """

    participant_id: str
    participant_role: ParticipantRole
    text: str
    timestamp: datetime = field(default_factory=utc_now)
    confidence: float | None = None


@dataclass(frozen=True)
class ChatContext:
    """Context for one tip-generation cycle. Rebuilt every cycle, never stored."""

    history: tuple[TranscriptionMessage, ...]
    participants: tuple[Participant, ...]
    system_prompt: str


@dataclass(frozen=True)
class TipMessage:
    """A generated tip addressed to a single participant."""

    target_participant_id: str
    content: str
    priority: TipPriority
    category: str
    timestamp: datetime = field(default_factory=utc_now)


# Domain events


@dataclass(frozen=True)
class ParticipantJoined:
    event_type: ClassVar[str] = "participant_joined"

    participant: Participant
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ParticipantLeft:
    event_type: ClassVar[str] = "participant_left"

    participant_id: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TranscriptionRecorded:
    event_type: ClassVar[str] = "transcription_recorded"

    message: TranscriptionMessage
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TipGenerated:
    event_type: ClassVar[str] = "tip_generated"

    tip: TipMessage
    timestamp: datetime = field(default_factory=utc_now)


DomainEvent = ParticipantJoined | ParticipantLeft | TranscriptionRecorded | TipGenerated
