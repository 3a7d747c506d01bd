"""Transcription history store.

Keeps an append-only log of utterances per participant and answers
time-ordered queries across all participants. Logs are recorded per
participant, so two people speaking near-simultaneously can land in
different logs out of global order; every cross-participant query merges
by timestamp instead of trusting log order.

Typical usage:
    store = TranscriptionStore(registry)
    store.record(TranscriptionMessageFactory.create(participant, "hello"))
    window = store.recent_across_all(limit=20)
"""

import itertools
import logging
import threading
from datetime import datetime

from src.consultation.errors import UnknownParticipantError
from src.consultation.models import Participant, TranscriptionMessage, utc_now
from src.consultation.registry import ParticipantRegistry

logger = logging.getLogger(__name__)


class TranscriptionMessageFactory:
    """Builds transcription messages from a participant and raw STT output."""

    @staticmethod
    def create(
        participant: Participant,
        text: str,
        confidence: float | None = None,
        not_before: datetime | None = None,
    ) -> TranscriptionMessage:
        """Create a message stamped with the current UTC time.

        Args:
            participant: Speaker (copied by value into the message)
            text: Raw transcript text, trimmed of surrounding whitespace
            confidence: Optional STT confidence score
            not_before: Lower bound for the timestamp (normally the speaker's
                last recorded entry)

        Returns:
            Immutable transcription message
        """
        timestamp = utc_now()
        if not_before is not None and timestamp < not_before:
            timestamp = not_before

        return TranscriptionMessage(
            participant_id=participant.identity,
            participant_role=participant.role,
            text=text.strip(),
            timestamp=timestamp,
            confidence=confidence,
        )


class TranscriptionStore:
    """Per-participant transcription logs with a global time-ordered view.

    Attributes:
        registry: Registry used to reject messages from unknown identities
    """

    def __init__(self, registry: ParticipantRegistry) -> None:
        """Initialize an empty store.

        Args:
            registry: Participant registry; only registered identities get a log
        """
        self.registry = registry
        # Each entry carries a global sequence number for stable tie-breaks
        self._logs: dict[str, list[tuple[int, TranscriptionMessage]]] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def record(self, message: TranscriptionMessage) -> None:
        """Append a message to its speaker's log.

        Args:
            message: Transcription to record

        Raises:
            UnknownParticipantError: If the speaker is not registered
            ValueError: If the message is older than the speaker's last entry
        """
        if message.participant_id not in self.registry:
            raise UnknownParticipantError(message.participant_id)

        with self._lock:
            log = self._logs.setdefault(message.participant_id, [])
            if log and message.timestamp < log[-1][1].timestamp:
                raise ValueError(
                    f"Transcription for {message.participant_id} is older than the "
                    f"last recorded entry ({message.timestamp.isoformat()} < "
                    f"{log[-1][1].timestamp.isoformat()})"
                )
            log.append((next(self._sequence), message))

        logger.debug(
            "Transcription recorded",
            extra={
                "participant": message.participant_id,
                "role": message.participant_role.value,
                "text_length": len(message.text),
            },
        )

    def last_timestamp(self, identity: str) -> datetime | None:
        """Timestamp of a participant's most recent entry, or None."""
        with self._lock:
            log = self._logs.get(identity)
            return log[-1][1].timestamp if log else None

    def participant_history(self, identity: str) -> list[TranscriptionMessage]:
        """Return one participant's log in recording order."""
        with self._lock:
            return [message for _, message in self._logs.get(identity, [])]

    def all_transcriptions(self) -> list[TranscriptionMessage]:
        """Return every recorded message merged by timestamp ascending.

        Equal timestamps keep insertion order.
        """
        with self._lock:
            entries = [entry for log in self._logs.values() for entry in log]

        entries.sort(key=lambda entry: (entry[1].timestamp, entry[0]))
        return [message for _, message in entries]

    def recent_across_all(self, limit: int) -> list[TranscriptionMessage]:
        """Return the last ``limit`` messages across all participants.

        Args:
            limit: Maximum number of messages; values <= 0 return nothing

        Returns:
            Up to ``limit`` messages in chronological order
        """
        if limit <= 0:
            return []
        return self.all_transcriptions()[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._logs.clear()

    def clear_participant(self, identity: str) -> None:
        with self._lock:
            self._logs.pop(identity, None)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(log) for log in self._logs.values())
