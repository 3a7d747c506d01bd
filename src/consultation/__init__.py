"""Consultation assistant session core.

Coordinates participants, transcription history, role-aware tip generation
and channel-based message distribution for a LiveKit consultation room.
"""

from src.consultation.config import ConsultationConfig
from src.consultation.errors import (
    ConsultationError,
    DeliveryFailure,
    GenerationFailure,
    SessionStateError,
    TransportUnavailableError,
    UnknownParticipantError,
)
from src.consultation.events import EventBus
from src.consultation.models import (
    ChatContext,
    DomainEvent,
    Participant,
    ParticipantJoined,
    ParticipantLeft,
    ParticipantRole,
    TipGenerated,
    TipMessage,
    TipPriority,
    TranscriptionMessage,
    TranscriptionRecorded,
)
from src.consultation.session import ConsultationSession, SessionState

__all__ = [
    "ConsultationConfig",
    "ConsultationSession",
    "SessionState",
    "EventBus",
    # Errors
    "ConsultationError",
    "DeliveryFailure",
    "GenerationFailure",
    "SessionStateError",
    "TransportUnavailableError",
    "UnknownParticipantError",
    # Domain types
    "ChatContext",
    "DomainEvent",
    "Participant",
    "ParticipantRole",
    "TipMessage",
    "TipPriority",
    "TranscriptionMessage",
    # Events
    "ParticipantJoined",
    "ParticipantLeft",
    "TipGenerated",
    "TranscriptionRecorded",
]
