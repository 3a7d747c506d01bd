"""Channel and data-publisher abstractions.

A ``DataPublisher`` is the transport capability (LiveKit data packets in
production); a ``ChatChannel`` is a logical addressed stream on top of it.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Collection
from typing import Any

from src.consultation.errors import DeliveryFailure
from src.consultation.models import ChannelType, utc_now

logger = logging.getLogger(__name__)


class DataPublisher(ABC):
    """Transport capability for publishing data packets to room participants."""

    @abstractmethod
    async def publish(
        self,
        payload: bytes,
        *,
        reliable: bool = True,
        topic: str = "",
        destination_identities: Collection[str] | None = None,
    ) -> None:
        """Publish a data packet.

        Args:
            payload: Encoded message
            reliable: Use the reliable (ordered, retransmitted) data channel
            topic: Topic clients filter on
            destination_identities: Recipients; None broadcasts to everyone

        Raises:
            DeliveryFailure: If the transport is unavailable or the publish fails
        """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the underlying transport session is connected."""


class ChatChannel(ABC):
    """Logical message channel bound to a data publisher."""

    channel_type: ChannelType

    def __init__(self, publisher: DataPublisher, channel_id: str) -> None:
        self._publisher = publisher
        self._channel_id = channel_id

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    @abstractmethod
    def audience(self) -> frozenset[str]:
        """Identities this channel delivers to."""

    @abstractmethod
    async def send(self, content: Any, topic: str) -> None:
        """Send a message on this channel.

        Raises:
            DeliveryFailure: If the publisher cannot deliver the message
        """

    async def _publish(
        self,
        message: dict[str, Any],
        topic: str,
        destination_identities: Collection[str] | None = None,
    ) -> None:
        payload = json.dumps({**message, "timestamp": utc_now().isoformat()}).encode("utf-8")

        try:
            await self._publisher.publish(
                payload,
                reliable=True,
                topic=topic,
                destination_identities=destination_identities,
            )
        except DeliveryFailure:
            raise
        except Exception as e:
            raise DeliveryFailure(f"Failed to send on channel {self._channel_id}: {e}") from e

        logger.debug(
            "Channel message sent",
            extra={
                "channel_id": self._channel_id,
                "topic": topic,
                "size": len(payload),
            },
        )
