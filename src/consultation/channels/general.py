"""Broadcast channel visible to every participant."""

from collections.abc import Callable, Collection
from typing import Any

from src.consultation.channels.base import ChatChannel, DataPublisher
from src.consultation.models import ChannelType

GENERAL_CHANNEL_ID = "general"


class GeneralChatChannel(ChatChannel):
    """Broadcast channel.

    The audience is everyone present at send time. The initial audience is
    only a snapshot; when an ``audience_provider`` is given (normally the
    registry's current identities) it takes precedence.
    """

    channel_type = ChannelType.GENERAL

    def __init__(
        self,
        publisher: DataPublisher,
        initial_audience: Collection[str] = (),
        audience_provider: Callable[[], Collection[str]] | None = None,
    ) -> None:
        super().__init__(publisher, GENERAL_CHANNEL_ID)
        self._initial_audience = frozenset(initial_audience)
        self._audience_provider = audience_provider

    @property
    def audience(self) -> frozenset[str]:
        if self._audience_provider is not None:
            return frozenset(self._audience_provider())
        return self._initial_audience

    async def send(self, content: Any, topic: str = "transcript") -> None:
        # No destination identities: broadcast to the whole room
        await self._publish({"type": topic, "content": content}, topic=topic)
