"""Bridge from LiveKit room events to the consultation session.

LiveKit's event emitter only accepts synchronous callbacks, so every
callback spawns a tracked task that calls into the (async) session.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from typing import Any

from livekit import rtc

from src.consultation.errors import ConsultationError
from src.consultation.models import ParticipantRole
from src.consultation.session import ConsultationSession

logger = logging.getLogger(__name__)


def resolve_role(
    participant: rtc.Participant, default_role: ParticipantRole = ParticipantRole.PATIENT
) -> ParticipantRole:
    """Determine a participant's role.

    Order: ``role`` attribute, ``role`` key in JSON metadata, AGENT for
    LiveKit agent participants, then ``default_role``.

    Args:
        participant: LiveKit participant
        default_role: Fallback role

    Returns:
        Resolved role
    """
    declared = (participant.attributes or {}).get("role")

    if not declared and participant.metadata:
        try:
            metadata = json.loads(participant.metadata)
        except json.JSONDecodeError:
            metadata = None
        if isinstance(metadata, dict):
            declared = metadata.get("role")

    if declared:
        try:
            return ParticipantRole(str(declared).lower())
        except ValueError:
            logger.warning(
                "Unrecognized participant role, using default",
                extra={"participant": participant.identity, "role": declared},
            )

    if participant.kind == rtc.ParticipantKind.PARTICIPANT_KIND_AGENT:
        return ParticipantRole.AGENT

    return default_role


class RoomEventBridge:
    """Translates room membership and transcription events into session calls."""

    def __init__(
        self,
        session: ConsultationSession,
        room: rtc.Room,
        default_role: ParticipantRole = ParticipantRole.PATIENT,
    ) -> None:
        """Initialize bridge.

        Args:
            session: Initialized consultation session
            room: Connected LiveKit room
            default_role: Role for participants that do not declare one
        """
        self._session = session
        self._room = room
        self._default_role = default_role
        self._tasks: set[asyncio.Task[None]] = set()
        # Final segment ids already forwarded, per speaker identity
        self._seen_segments: dict[str, set[str]] = {}
        self._attached = False

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def attach(self) -> None:
        """Subscribe to room events and register participants already present."""
        if self._attached:
            return

        self._room.on("participant_connected", self._on_participant_connected)
        self._room.on("participant_disconnected", self._on_participant_disconnected)
        self._room.on("transcription_received", self._on_transcription_received)
        self._attached = True

        for participant in list(self._room.remote_participants.values()):
            self._on_participant_connected(participant)

        logger.info(
            "Room event bridge attached",
            extra={"room": self._room.name, "participants": len(self._room.remote_participants)},
        )

    async def detach(self) -> None:
        """Unsubscribe from room events and cancel outstanding tasks."""
        if not self._attached:
            return

        self._room.off("participant_connected", self._on_participant_connected)
        self._room.off("participant_disconnected", self._on_participant_disconnected)
        self._room.off("transcription_received", self._on_transcription_received)
        self._attached = False

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._seen_segments.clear()

    async def drain(self) -> None:
        """Wait for every task spawned so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_participant_connected(self, participant: rtc.RemoteParticipant) -> None:
        role = resolve_role(participant, self._default_role)
        name = participant.name or participant.identity
        self._spawn(
            self._session.register_participant(participant.identity, role, name),
            "register_participant",
        )

    def _on_participant_disconnected(self, participant: rtc.RemoteParticipant) -> None:
        self._seen_segments.pop(participant.identity, None)
        self._spawn(
            self._session.handle_participant_left(participant.identity),
            "handle_participant_left",
        )

    def _on_transcription_received(
        self,
        segments: list[rtc.TranscriptionSegment],
        participant: rtc.Participant | None,
        publication: rtc.TrackPublication | None,
    ) -> None:
        if participant is None:
            return

        seen = self._seen_segments.setdefault(participant.identity, set())
        for segment in segments:
            if not segment.final or segment.id in seen:
                continue
            seen.add(segment.id)
            self._spawn(
                self._session.handle_transcription(participant.identity, segment.text),
                "handle_transcription",
            )

    def _spawn(self, coro: Coroutine[Any, Any, Any], operation: str) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(t, operation))

    def _on_task_done(self, task: asyncio.Task[Any], operation: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if isinstance(error, ConsultationError):
            logger.warning(f"{operation} rejected: {error}")
        elif error is not None:
            logger.error(f"{operation} failed: {error}", exc_info=error)
