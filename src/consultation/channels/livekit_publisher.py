"""LiveKit implementation of the data publisher capability.

Publishes over the room's data channel via the local participant.
"""

import logging
from collections.abc import Collection

from livekit import rtc

from src.consultation.channels.base import DataPublisher
from src.consultation.errors import DeliveryFailure

logger = logging.getLogger(__name__)


class LiveKitDataPublisher(DataPublisher):
    """Data publisher backed by a connected ``rtc.Room``."""

    def __init__(self, room: rtc.Room) -> None:
        """Initialize publisher.

        Args:
            room: LiveKit room the agent is (or will be) connected to
        """
        self._room = room

    @property
    def is_connected(self) -> bool:
        return self._room.connection_state == rtc.ConnectionState.CONN_CONNECTED

    async def publish(
        self,
        payload: bytes,
        *,
        reliable: bool = True,
        topic: str = "",
        destination_identities: Collection[str] | None = None,
    ) -> None:
        if not self.is_connected:
            raise DeliveryFailure("Room or local participant not available")

        try:
            await self._room.local_participant.publish_data(
                payload,
                reliable=reliable,
                topic=topic,
                destination_identities=list(destination_identities or []),
            )
        except Exception as e:
            logger.error(
                "Failed to publish data packet",
                extra={"room": self._room.name, "topic": topic, "error": str(e)},
            )
            raise DeliveryFailure(f"LiveKit publish_data failed: {e}") from e
