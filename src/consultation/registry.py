"""In-memory participant registry."""

import logging
import threading

from src.consultation.models import Participant, ParticipantRole

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Identity → participant map for a single session.

    The registry is passive: it never emits events. Every mutation goes
    through one lock so reads never observe a half-applied change.
    """

    def __init__(self) -> None:
        self._participants: dict[str, Participant] = {}
        self._lock = threading.Lock()

    def register(self, identity: str, role: ParticipantRole, name: str) -> Participant:
        """Insert or overwrite a participant.

        Args:
            identity: Unique participant identity
            role: Participant role
            name: Display name

        Returns:
            The stored participant
        """
        participant = Participant(identity=identity, role=role, name=name)
        with self._lock:
            previous = self._participants.get(identity)
            self._participants[identity] = participant

        if previous is not None and previous != participant:
            logger.info(
                "Participant re-registered",
                extra={
                    "participant": identity,
                    "from_role": previous.role.value,
                    "to_role": role.value,
                },
            )
        return participant

    def remove(self, identity: str) -> Participant | None:
        """Remove a participant, returning it if it was registered."""
        with self._lock:
            return self._participants.pop(identity, None)

    def get(self, identity: str) -> Participant | None:
        with self._lock:
            return self._participants.get(identity)

    def all(self) -> list[Participant]:
        """All participants in registration order."""
        with self._lock:
            return list(self._participants.values())

    def identities(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._participants)

    def clear(self) -> None:
        with self._lock:
            self._participants.clear()

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._participants

    def __len__(self) -> int:
        with self._lock:
            return len(self._participants)
