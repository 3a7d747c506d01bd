"""Channel manager: lazy lifecycle and routing of transcripts and tips."""

import logging
import threading
from collections.abc import Callable, Collection

from src.consultation.channels.base import ChatChannel, DataPublisher
from src.consultation.channels.general import GeneralChatChannel
from src.consultation.channels.private import PrivateChatChannel
from src.consultation.models import TipMessage, TranscriptionMessage

logger = logging.getLogger(__name__)


class ChannelManager:
    """Owns the session's general channel and per-participant private channels.

    Channels are created on first use. The channel table lock guards only
    lookups and mutations; sends run after it is released.
    """

    def __init__(self, publisher: DataPublisher) -> None:
        self._publisher = publisher
        self._general: GeneralChatChannel | None = None
        self._private: dict[str, PrivateChatChannel] = {}
        self._lock = threading.Lock()

    @property
    def general(self) -> GeneralChatChannel | None:
        with self._lock:
            return self._general

    def get_or_create_general(
        self,
        initial_audience: Collection[str] = (),
        audience_provider: Callable[[], Collection[str]] | None = None,
    ) -> GeneralChatChannel:
        """Return the general channel, creating it on first call.

        Later calls return the existing channel and ignore their arguments.
        """
        with self._lock:
            if self._general is None:
                self._general = GeneralChatChannel(
                    self._publisher, initial_audience, audience_provider
                )
                logger.info(
                    "General channel created",
                    extra={"initial_audience": sorted(initial_audience)},
                )
            return self._general

    def get_or_create_private(self, identity: str) -> PrivateChatChannel:
        with self._lock:
            channel = self._private.get(identity)
            if channel is None:
                channel = PrivateChatChannel(self._publisher, identity)
                self._private[identity] = channel
                logger.info(
                    "Private channel created",
                    extra={"channel_id": channel.channel_id, "participant": identity},
                )
            return channel

    def private_channels(self) -> dict[str, ChatChannel]:
        """Snapshot of active private channels keyed by identity."""
        with self._lock:
            return dict(self._private)

    async def broadcast_transcript(self, message: TranscriptionMessage) -> None:
        """Send a transcription to everyone over the general channel.

        Logs a warning and returns if the general channel was never created.

        Raises:
            DeliveryFailure: If the transport cannot deliver the message
        """
        channel = self.general
        if channel is None:
            logger.warning("General channel not initialized, dropping transcript broadcast")
            return

        await channel.send(
            {
                "participantId": message.participant_id,
                "role": message.participant_role.value,
                "transcript": message.text,
                "timestamp": message.timestamp.isoformat(),
                "confidence": message.confidence,
            },
            topic="transcript",
        )

    async def send_tip(self, tip: TipMessage) -> None:
        """Deliver a tip over the target's private channel.

        Raises:
            DeliveryFailure: If the transport cannot deliver the message
        """
        channel = self.get_or_create_private(tip.target_participant_id)
        await channel.send(
            {
                "content": tip.content,
                "priority": tip.priority.value,
                "category": tip.category,
                "generatedAt": tip.timestamp.isoformat(),
            },
            topic="tip",
        )

    def remove_private(self, identity: str) -> None:
        with self._lock:
            removed = self._private.pop(identity, None)
        if removed is not None:
            logger.info(
                "Private channel removed",
                extra={"channel_id": removed.channel_id, "participant": identity},
            )

    def clear(self) -> None:
        """Drop every channel (end of session)."""
        with self._lock:
            self._private.clear()
            self._general = None
